import hashlib

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193


def sha256_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def fnv1a32(value: str) -> str:
    """32-bit FNV-1a over UTF-16 code units, as 8 lowercase hex chars."""
    digest = FNV_OFFSET_BASIS
    data = value.encode("utf-16-le")
    for index in range(0, len(data), 2):
        digest ^= data[index] | (data[index + 1] << 8)
        digest = (digest * FNV_PRIME) & 0xFFFFFFFF
    return f"{digest:08x}"

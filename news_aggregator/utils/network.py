import re
from urllib.parse import urlsplit

_BARE_DOMAIN = re.compile(r"^[a-z0-9.-]+$")


class UnsafeUrlError(ValueError):
    pass


def parse_domain(value: str) -> str | None:
    trimmed = value.strip().lower()
    if not trimmed:
        return None
    if "://" not in trimmed:
        return trimmed if _BARE_DOMAIN.match(trimmed) else None
    try:
        host = urlsplit(trimmed).hostname
    except ValueError:
        return None
    return host.lower() if host else None


def to_base_domain(hostname: str) -> str:
    normalized = hostname.lower()
    parts = [part for part in normalized.split(".") if part]
    if len(parts) <= 2:
        return normalized
    if normalized.endswith(".co.uk"):
        return ".".join(parts[-3:])
    return ".".join(parts[-2:])


def url_hostname(url: str) -> str:
    parsed = urlsplit(url)
    if parsed.scheme not in {"http", "https"}:
        raise UnsafeUrlError("Only http/https URLs are supported")
    host = (parsed.hostname or "").lower()
    if not host:
        raise UnsafeUrlError("URL host is missing")
    return host

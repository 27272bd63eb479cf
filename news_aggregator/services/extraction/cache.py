import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from news_aggregator.core.time import now_ms
from news_aggregator.schemas.article_text import CachedArticleText, CachedExtractionFailure
from news_aggregator.utils.hashing import sha256_text

SUCCESS_TTL_MS = 10 * 60 * 1000
FAILURE_TTL_MS = 90 * 1000


@dataclass(frozen=True)
class CacheEntry:
    kind: Literal["success", "failure"]
    value: CachedArticleText | CachedExtractionFailure


@dataclass(frozen=True)
class CacheHit:
    key_type: Literal["urlHash", "contentHash"]
    entry: CacheEntry


@dataclass(frozen=True)
class _CacheRecord:
    expires_at: int
    entry: CacheEntry


class ArticleTextCache:
    """In-process TTL cache of extraction outcomes.

    Successes are indexed by both URL hash and content hash so a second URL
    serving byte-identical HTML can reuse the earlier extraction. Failures
    are indexed by URL hash only. Expiry is checked lazily on read.
    """

    def __init__(
        self,
        now: Callable[[], int] = now_ms,
        success_ttl_ms: int = SUCCESS_TTL_MS,
        failure_ttl_ms: int = FAILURE_TTL_MS,
    ) -> None:
        self._now = now
        self.success_ttl_ms = success_ttl_ms
        self.failure_ttl_ms = failure_ttl_ms
        self._by_url_hash: dict[str, _CacheRecord] = {}
        self._by_content_hash: dict[str, _CacheRecord] = {}
        self._lock = threading.Lock()

    @staticmethod
    def hash_content(content: str) -> str:
        return sha256_text(content)

    def get(self, url_hash: str, content_hash: str | None = None) -> CacheHit | None:
        with self._lock:
            by_url = self._read(self._by_url_hash, url_hash)
            if by_url is not None:
                return CacheHit(key_type="urlHash", entry=by_url.entry)
            if not content_hash:
                return None
            by_content = self._read(self._by_content_hash, content_hash)
            if by_content is None:
                return None
            return CacheHit(key_type="contentHash", entry=by_content.entry)

    def remember_success(self, value: CachedArticleText) -> None:
        record = _CacheRecord(
            expires_at=self._now() + self.success_ttl_ms,
            entry=CacheEntry(kind="success", value=value),
        )
        with self._lock:
            self._by_url_hash[value.url_hash] = record
            self._by_content_hash[value.content_hash] = record

    def remember_failure(self, value: CachedExtractionFailure) -> None:
        record = _CacheRecord(
            expires_at=self._now() + self.failure_ttl_ms,
            entry=CacheEntry(kind="failure", value=value),
        )
        with self._lock:
            self._by_url_hash[value.url_hash] = record

    def link_url_to_content(self, url_hash: str, content_hash: str) -> bool:
        with self._lock:
            record = self._read(self._by_content_hash, content_hash)
            if record is None or record.entry.kind != "success":
                return False
            self._by_url_hash[url_hash] = record
            return True

    def snapshot_sizes(self) -> dict[str, int]:
        self.clear_expired()
        with self._lock:
            return {
                "url_entries": len(self._by_url_hash),
                "content_entries": len(self._by_content_hash),
            }

    def clear_expired(self) -> None:
        now = self._now()
        with self._lock:
            for index in (self._by_url_hash, self._by_content_hash):
                expired = [key for key, record in index.items() if record.expires_at <= now]
                for key in expired:
                    del index[key]

    def _read(self, index: dict[str, _CacheRecord], key: str) -> _CacheRecord | None:
        record = index.get(key)
        if record is None:
            return None
        if record.expires_at <= self._now():
            del index[key]
            return None
        return record

import json
import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

from news_aggregator.core.time import now_ms
from news_aggregator.schemas.article_text import RemovalLedgerEntry
from news_aggregator.services.normalize import canonicalize_url, url_hash

logger = logging.getLogger(__name__)

DEFAULT_REASON = "removed-by-policy"
LEDGER_PREFIX = "vh/news/removed"


class RemovalLedgerError(ValueError):
    pass


class RemovalLedgerStore(Protocol):
    async def get(self, path: str) -> Any: ...

    async def put(self, path: str, value: Any) -> None: ...


class InMemoryRemovalLedgerStore:
    def __init__(self) -> None:
        self._records: dict[str, Any] = {}
        self._lock = threading.Lock()

    async def get(self, path: str) -> Any:
        with self._lock:
            return self._records.get(path)

    async def put(self, path: str, value: Any) -> None:
        with self._lock:
            self._records[path] = value


class RedisRemovalLedgerStore:
    """Ledger store over a `redis.asyncio` client; values are JSON documents."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisRemovalLedgerStore":
        from redis import asyncio as redis_asyncio

        return cls(redis_asyncio.from_url(url, decode_responses=True))

    async def get(self, path: str) -> Any:
        raw = await self._client.get(path)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Malformed removal ledger record at %s", path)
            return None

    async def put(self, path: str, value: Any) -> None:
        await self._client.set(path, json.dumps(value, sort_keys=True))


def removal_ledger_path(url_hash_value: str) -> str:
    return f"{LEDGER_PREFIX}/{url_hash_value}"


def _normalize_url(value: str) -> tuple[str, str] | None:
    canonical = canonicalize_url(value)
    if canonical is None:
        return None
    return canonical, url_hash(canonical)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def parse_entry(value: Any) -> RemovalLedgerEntry | None:
    if not isinstance(value, dict):
        return None
    removed_at = value.get("removedAt")
    if (
        not isinstance(value.get("urlHash"), str)
        or not isinstance(value.get("canonicalUrl"), str)
        or not isinstance(removed_at, (int, float))
        or isinstance(removed_at, bool)
        or not isinstance(value.get("reason"), str)
    ):
        return None
    removed_by = value.get("removedBy")
    note = value.get("note")
    return RemovalLedgerEntry(
        url_hash=value["urlHash"],
        canonical_url=value["canonicalUrl"],
        removed_at=int(removed_at),
        reason=value["reason"],
        removed_by=removed_by if isinstance(removed_by, str) else None,
        note=note if isinstance(note, str) else None,
    )


class RemovalLedger:
    def __init__(self, store: RemovalLedgerStore | None = None, now: Callable[[], int] = now_ms) -> None:
        self._store = store if store is not None else InMemoryRemovalLedgerStore()
        self._now = now

    async def write(
        self,
        url: str,
        reason: str = DEFAULT_REASON,
        removed_by: str | None = None,
        note: str | None = None,
    ) -> RemovalLedgerEntry:
        normalized = _normalize_url(url)
        if normalized is None:
            raise RemovalLedgerError("Invalid URL for removal ledger")
        canonical, hashed = normalized

        entry = RemovalLedgerEntry(
            url_hash=hashed,
            canonical_url=canonical,
            removed_at=self._now(),
            reason=(reason or "").strip() or DEFAULT_REASON,
            removed_by=_blank_to_none(removed_by),
            note=_blank_to_none(note),
        )
        await self._store.put(removal_ledger_path(hashed), entry.to_record())
        logger.info("Recorded removal url_hash=%s reason=%s", hashed, entry.reason)
        return entry

    async def read_by_url_hash(self, url_hash_value: str) -> RemovalLedgerEntry | None:
        if not url_hash_value.strip():
            return None
        return parse_entry(await self._store.get(removal_ledger_path(url_hash_value)))

    async def read_by_url(self, url: str) -> RemovalLedgerEntry | None:
        normalized = _normalize_url(url)
        if normalized is None:
            return None
        return await self.read_by_url_hash(normalized[1])

    async def is_removed(self, url: str) -> bool:
        return await self.read_by_url(url) is not None

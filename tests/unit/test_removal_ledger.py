import asyncio
import json

import pytest

from news_aggregator.services.normalize import url_hash
from news_aggregator.services.removal_ledger import (
    DEFAULT_REASON,
    InMemoryRemovalLedgerStore,
    RedisRemovalLedgerStore,
    RemovalLedger,
    RemovalLedgerError,
    parse_entry,
    removal_ledger_path,
)


class FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value):
        self.values[key] = value


def run(coro):
    return asyncio.run(coro)


def test_write_persists_canonical_entry(clock):
    store = InMemoryRemovalLedgerStore()
    ledger = RemovalLedger(store=store, now=clock)

    entry = run(ledger.write("https://www.bbc.com/news/a?utm_source=x", reason="  ", removed_by=" ", note=" takedown "))

    expected_hash = url_hash("https://www.bbc.com/news/a")
    assert entry.url_hash == expected_hash
    assert entry.canonical_url == "https://www.bbc.com/news/a"
    assert entry.reason == DEFAULT_REASON
    assert entry.removed_by is None
    assert entry.note == "takedown"
    assert entry.removed_at == clock()

    stored = run(store.get(f"vh/news/removed/{expected_hash}"))
    assert stored["canonicalUrl"] == "https://www.bbc.com/news/a"
    assert stored["removedBy"] is None


def test_write_rejects_invalid_url():
    with pytest.raises(RemovalLedgerError):
        run(RemovalLedger().write("javascript:alert(1)"))


def test_lookups_share_the_path_convention(clock):
    ledger = RemovalLedger(now=clock)
    run(ledger.write("https://www.bbc.com/news/a", reason="legal", removed_by="ops"))

    by_url = run(ledger.read_by_url("https://www.bbc.com/news/a/?fbclid=1"))
    assert by_url.reason == "legal"
    assert by_url.removed_by == "ops"
    assert run(ledger.read_by_url_hash(by_url.url_hash)) == by_url
    assert run(ledger.is_removed("https://www.bbc.com/news/a"))
    assert not run(ledger.is_removed("https://www.bbc.com/news/b"))
    assert run(ledger.read_by_url("not a url")) is None
    assert run(ledger.read_by_url_hash("  ")) is None


def test_malformed_records_parse_to_none():
    assert parse_entry(None) is None
    assert parse_entry("nope") is None
    assert parse_entry({"urlHash": "a", "canonicalUrl": "b", "removedAt": "yesterday", "reason": "x"}) is None
    assert parse_entry({"urlHash": "a", "canonicalUrl": "b", "removedAt": True, "reason": "x"}) is None

    entry = parse_entry({"urlHash": "a", "canonicalUrl": "b", "removedAt": 5, "reason": "x", "note": 7})
    assert entry.note is None
    assert entry.removed_at == 5


def test_malformed_stored_record_reads_as_not_removed():
    store = InMemoryRemovalLedgerStore()
    hashed = url_hash("https://www.bbc.com/news/a")
    run(store.put(removal_ledger_path(hashed), {"urlHash": hashed}))

    assert not run(RemovalLedger(store=store).is_removed("https://www.bbc.com/news/a"))


def test_redis_store_round_trips_json(clock):
    redis_client = FakeRedis()
    ledger = RemovalLedger(store=RedisRemovalLedgerStore(redis_client), now=clock)

    entry = run(ledger.write("https://www.bbc.com/news/a"))

    raw = redis_client.values[removal_ledger_path(entry.url_hash)]
    assert json.loads(raw)["urlHash"] == entry.url_hash
    assert run(ledger.read_by_url("https://www.bbc.com/news/a")) == entry


def test_redis_store_ignores_invalid_json():
    redis_client = FakeRedis()
    redis_client.values["vh/news/removed/abc"] = "{not json"
    assert run(RedisRemovalLedgerStore(redis_client).get("vh/news/removed/abc")) is None

import asyncio

import httpx
import pytest

from news_aggregator.schemas.news import FeedSource
from news_aggregator.services.ingestion.common import html_to_text, normalize_text
from news_aggregator.services.ingestion.rss import ingest_feeds, ingest_source, parse_feed

RSS_DOCUMENT = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example Feed</title>
    <link>https://example.com</link>
    <description>Example</description>
    <item>
      <title>Senate passes budget bill</title>
      <link>https://example.com/news/budget?utm_source=rss</link>
      <description>&lt;p&gt;The &lt;b&gt;Senate&lt;/b&gt; voted late.&lt;/p&gt;</description>
      <pubDate>Tue, 14 Nov 2023 22:13:20 GMT</pubDate>
    </item>
    <item>
      <title>Item without a link</title>
    </item>
    <item>
      <title>Undated update</title>
      <link>https://example.com/news/update</link>
    </item>
  </channel>
</rss>
"""

SOURCE = FeedSource(id="example", name="Example", rss_url="https://feeds.example.com/rss")


def run(coro):
    return asyncio.run(coro)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_text_helpers():
    assert normalize_text("  a \n b\t c ") == "a b c"
    assert normalize_text(None) == ""
    assert html_to_text("<p>Hello <em>world</em></p>") == "Hello world"


def test_parse_feed_skips_incomplete_entries():
    items = parse_feed(RSS_DOCUMENT, SOURCE)

    assert [item.title for item in items] == ["Senate passes budget bill", "Undated update"]
    first = items[0]
    assert first.source_id == "example"
    assert first.url == "https://example.com/news/budget?utm_source=rss"
    assert first.summary == "The Senate voted late."
    assert first.published_at == 1_700_000_000_000
    assert items[1].published_at is None
    assert items[1].summary is None


def test_parse_feed_rejects_garbage():
    with pytest.raises(ValueError):
        parse_feed("<<<this is not xml", SOURCE)


def test_ingest_source_success():
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == SOURCE.rss_url
        return httpx.Response(200, text=RSS_DOCUMENT)

    async def scenario():
        async with mock_client(handler) as client:
            return await ingest_source(SOURCE, client, 1000)

    result = run(scenario())
    assert result.errors == []
    assert len(result.items) == 2


def test_ingest_source_reports_http_status():
    async def scenario():
        async with mock_client(lambda request: httpx.Response(503)) as client:
            return await ingest_source(SOURCE, client, 1000)

    result = run(scenario())
    assert result.items == []
    assert result.errors == ["Failed to fetch feed 'example': HTTP 503"]


def test_ingest_source_reports_timeouts():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async def scenario():
        async with mock_client(handler) as client:
            return await ingest_source(SOURCE, client, 250)

    result = run(scenario())
    assert result.errors == ["Failed to fetch feed 'example': timed out after 250ms"]


def test_ingest_source_reports_parse_failures():
    async def scenario():
        async with mock_client(lambda request: httpx.Response(200, text="<<<broken")) as client:
            return await ingest_source(SOURCE, client, 1000)

    result = run(scenario())
    assert result.items == []
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to parse feed 'example':")


def test_ingest_feeds_skips_disabled_sources_without_network():
    requested: list[str] = []
    disabled = FeedSource(id="off", name="Off", rss_url="https://off.example.com/rss", enabled=False)

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, text=RSS_DOCUMENT)

    async def scenario():
        async with mock_client(handler) as client:
            return await ingest_feeds([SOURCE, disabled], client=client, timeout_ms=1000)

    results = run(scenario())
    assert requested == [SOURCE.rss_url]
    assert [result.source_id for result in results] == ["example"]


def test_ingest_feeds_with_nothing_enabled_returns_empty():
    disabled = FeedSource(id="off", name="Off", rss_url="https://off.example.com/rss", enabled=False)
    assert run(ingest_feeds([disabled])) == []


def test_ingest_source_enforces_total_deadline():
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, text=RSS_DOCUMENT)

    async def scenario():
        async with mock_client(handler) as client:
            return await ingest_source(SOURCE, client, 50)

    result = run(scenario())
    assert result.items == []
    assert result.errors == ["Failed to fetch feed 'example': timed out after 50ms"]


def test_ingest_source_reports_malformed_feed_url():
    broken = FeedSource(id="broken", name="Broken", rss_url="http://[::1/feed")

    async def scenario():
        async with mock_client(lambda request: httpx.Response(200, text=RSS_DOCUMENT)) as client:
            return await ingest_source(broken, client, 1000)

    result = run(scenario())
    assert result.items == []
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to fetch feed 'broken':")

import asyncio
import logging
from collections.abc import Iterable

import feedparser
import httpx

from news_aggregator.core.config import get_settings
from news_aggregator.core.observability import FEED_FETCH_COUNT
from news_aggregator.schemas.news import FeedSource, IngestResult, RawFeedItem
from news_aggregator.services.ingestion.common import html_to_text, struct_time_to_ms

logger = logging.getLogger(__name__)


def _entry_summary(entry: dict) -> str:
    content = entry.get("content")
    html = entry.get("summary") or entry.get("description")
    if not html and isinstance(content, list) and content:
        html = content[0].get("value")
    return html_to_text(html)


def _entry_published_at(entry: dict) -> int | None:
    return struct_time_to_ms(entry.get("published_parsed") or entry.get("updated_parsed"))


def parse_feed(document: str, source: FeedSource) -> list[RawFeedItem]:
    feed = feedparser.parse(document)
    if getattr(feed, "bozo", 0) and not feed.entries:
        reason = feed.get("bozo_exception") or "malformed feed document"
        raise ValueError(str(reason))

    items: list[RawFeedItem] = []
    for entry in feed.entries:
        link = (entry.get("link") or "").strip()
        title = html_to_text(entry.get("title"))
        if not link or not title:
            logger.warning("Invalid feed item skipped for source %s: missing link or title", source.id)
            continue
        items.append(
            RawFeedItem(
                source_id=source.id,
                url=link,
                title=title,
                published_at=_entry_published_at(entry),
                summary=_entry_summary(entry) or None,
            )
        )
    return items


async def ingest_source(source: FeedSource, client: httpx.AsyncClient, timeout_ms: int) -> IngestResult:
    try:
        async with asyncio.timeout(timeout_ms / 1000):
            response = await client.get(source.rss_url, timeout=timeout_ms / 1000)
    except (TimeoutError, httpx.TimeoutException):
        FEED_FETCH_COUNT.labels(source.id, "timeout").inc()
        message = f"Failed to fetch feed '{source.id}': timed out after {timeout_ms}ms"
        logger.warning(message)
        return IngestResult(source_id=source.id, errors=[message])
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        FEED_FETCH_COUNT.labels(source.id, "error").inc()
        message = f"Failed to fetch feed '{source.id}': {str(exc) or type(exc).__name__}"
        logger.warning(message)
        return IngestResult(source_id=source.id, errors=[message])

    if not response.is_success:
        FEED_FETCH_COUNT.labels(source.id, str(response.status_code)).inc()
        message = f"Failed to fetch feed '{source.id}': HTTP {response.status_code}"
        logger.warning(message)
        return IngestResult(source_id=source.id, errors=[message])

    try:
        items = parse_feed(response.text, source)
    except ValueError as exc:
        FEED_FETCH_COUNT.labels(source.id, "parse_error").inc()
        message = f"Failed to parse feed '{source.id}': {exc}"
        logger.warning(message)
        return IngestResult(source_id=source.id, errors=[message])

    FEED_FETCH_COUNT.labels(source.id, "success").inc()
    logger.info("Fetched %d items from feed %s", len(items), source.id)
    return IngestResult(source_id=source.id, items=items)


async def ingest_feeds(
    sources: Iterable[FeedSource],
    client: httpx.AsyncClient | None = None,
    timeout_ms: int | None = None,
) -> list[IngestResult]:
    settings = get_settings()
    timeout = timeout_ms or settings.feed_timeout_ms
    enabled = [source for source in sources if source.enabled]
    if not enabled:
        return []

    if client is not None:
        return list(await asyncio.gather(*(ingest_source(source, client, timeout) for source in enabled)))

    async with httpx.AsyncClient(
        timeout=timeout / 1000,
        follow_redirects=True,
        headers={"User-Agent": settings.user_agent},
    ) as owned_client:
        return list(await asyncio.gather(*(ingest_source(source, owned_client, timeout) for source in enabled)))

import logging
from collections.abc import Sequence

import httpx
from pydantic import ValidationError

from news_aggregator.schemas.news import FeedSource, PipelineResult
from news_aggregator.services.clustering import ClusterOptions, cluster_items
from news_aggregator.services.ingestion.rss import ingest_feeds
from news_aggregator.services.normalize import normalize_and_dedup

logger = logging.getLogger(__name__)

INVALID_SOURCES_ERROR = "Invalid pipeline config: sources must be a list"


def _coerce_sources(sources: Sequence[FeedSource | dict]) -> tuple[list[FeedSource], list[str]]:
    valid: list[FeedSource] = []
    errors: list[str] = []
    for index, source in enumerate(sources):
        if isinstance(source, FeedSource):
            valid.append(source)
            continue
        try:
            valid.append(FeedSource.model_validate(source))
        except ValidationError as exc:
            errors.append(f"Invalid feed source at index {index}: {exc.error_count()} validation error(s)")
    return valid, errors


async def orchestrate_news_pipeline(
    sources: Sequence[FeedSource | dict],
    client: httpx.AsyncClient | None = None,
    cluster_options: ClusterOptions | None = None,
    timeout_ms: int | None = None,
) -> PipelineResult:
    if not isinstance(sources, (list, tuple)):
        logger.error(INVALID_SOURCES_ERROR)
        return PipelineResult(errors=[INVALID_SOURCES_ERROR])
    if not sources:
        return PipelineResult()

    feed_sources, errors = _coerce_sources(sources)
    results = await ingest_feeds(feed_sources, client=client, timeout_ms=timeout_ms)

    raw_items = [item for result in results for item in result.items]
    errors.extend(error for result in results for error in result.errors)

    normalized = normalize_and_dedup(raw_items)
    bundles = cluster_items(normalized, {source.id: source for source in feed_sources}, cluster_options)

    logger.info(
        "Pipeline run complete ingested=%d normalized=%d bundles=%d errors=%d",
        len(raw_items),
        len(normalized),
        len(bundles),
        len(errors),
    )
    return PipelineResult(
        bundles=bundles,
        total_ingested=len(raw_items),
        total_normalized=len(normalized),
        errors=errors,
    )

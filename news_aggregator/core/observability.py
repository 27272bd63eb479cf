import logging

from prometheus_client import Counter, Histogram

from news_aggregator.core.config import Settings

REQUEST_COUNT = Counter(
    "news_aggregator_api_requests_total",
    "Total API requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "news_aggregator_api_request_latency_seconds",
    "API request latency",
    ["method", "path"],
)

EXTRACTION_COUNT = Counter(
    "news_aggregator_extractions_total",
    "Article text extraction outcomes",
    ["outcome", "cache_hit"],
)

FEED_FETCH_COUNT = Counter(
    "news_aggregator_feed_fetch_total",
    "Feed fetch outcomes per source",
    ["source_id", "status"],
)

TASK_COUNT = Counter(
    "news_aggregator_task_total",
    "Total task executions",
    ["task", "status"],
)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

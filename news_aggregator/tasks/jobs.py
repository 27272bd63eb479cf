import asyncio

from celery.utils.log import get_task_logger

from news_aggregator.core.config import get_settings
from news_aggregator.core.observability import TASK_COUNT
from news_aggregator.services.clustering import ClusterOptions
from news_aggregator.services.pipeline import orchestrate_news_pipeline
from news_aggregator.sources.catalog import STARTER_FEED_SOURCES
from news_aggregator.tasks.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="news_aggregator.tasks.jobs.run_news_pipeline")
def run_news_pipeline() -> dict:
    settings = get_settings()
    options = ClusterOptions(
        time_bucket_ms=settings.cluster_time_bucket_ms,
        max_entity_keys=settings.cluster_max_entity_keys,
    )
    try:
        result = asyncio.run(
            orchestrate_news_pipeline(
                list(STARTER_FEED_SOURCES),
                cluster_options=options,
                timeout_ms=settings.feed_timeout_ms,
            )
        )
    except Exception:  # noqa: BLE001
        logger.exception("Task failed run_news_pipeline")
        TASK_COUNT.labels("run_news_pipeline", "failure").inc()
        raise

    for error in result.errors:
        logger.warning("Feed error: %s", error)
    TASK_COUNT.labels("run_news_pipeline", "success").inc()
    return result.to_record()

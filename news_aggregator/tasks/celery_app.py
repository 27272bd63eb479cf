from celery import Celery
from celery.schedules import crontab

from news_aggregator.core.config import get_settings

settings = get_settings()
celery_app = Celery(
    "news_aggregator",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["news_aggregator.tasks.jobs"],
)
celery_app.conf.task_always_eager = settings.celery_eager_mode
celery_app.conf.task_eager_propagates = True

celery_app.conf.task_routes = {
    "news_aggregator.tasks.jobs.run_news_pipeline": {"queue": "ingest"},
}
celery_app.conf.beat_schedule = {
    "run-news-pipeline": {
        "task": "news_aggregator.tasks.jobs.run_news_pipeline",
        "schedule": crontab(minute=f"*/{settings.pipeline_poll_interval_min}"),
    },
}

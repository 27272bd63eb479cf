from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "News Aggregator API"
    env: str = "dev"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 3001
    observability_enabled: bool = True
    user_agent: str = "news-aggregator/0.1 (+https://github.com/news-aggregator)"

    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"
    celery_eager_mode: bool = False
    pipeline_poll_interval_min: int = 30

    feed_timeout_ms: int = 15_000
    cluster_time_bucket_ms: int = 6 * 60 * 60 * 1000
    cluster_max_entity_keys: int = 5

    article_max_attempts: int = 3
    article_fetch_timeout_ms: int = 12_000
    article_backoff_base_ms: int = 250
    article_min_char_count: int = 800
    article_min_word_count: int = 160
    article_min_sentence_count: int = 4
    article_min_quality_score: float = 0.70

    cache_success_ttl_ms: int = 10 * 60 * 1000
    cache_failure_ttl_ms: int = 90 * 1000
    lifecycle_base_backoff_ms: int = 250
    lifecycle_max_backoff_ms: int = 8_000

    allowed_extraction_domains: str = ""
    removal_ledger_backend: str = "memory"

    @property
    def extra_allowed_domain_list(self) -> list[str]:
        return [item.strip().lower() for item in self.allowed_extraction_domains.split(",") if item.strip()]

    @model_validator(mode="after")
    def validate_tunables(self) -> "Settings":
        if not 0 <= self.article_min_quality_score <= 1:
            raise ValueError("article_min_quality_score must be between 0 and 1")
        positive = {
            "article_max_attempts": self.article_max_attempts,
            "article_fetch_timeout_ms": self.article_fetch_timeout_ms,
            "feed_timeout_ms": self.feed_timeout_ms,
            "cluster_time_bucket_ms": self.cluster_time_bucket_ms,
            "cluster_max_entity_keys": self.cluster_max_entity_keys,
            "pipeline_poll_interval_min": self.pipeline_poll_interval_min,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ValueError(f"{name} must be positive")
        if self.removal_ledger_backend not in {"memory", "redis"}:
            raise ValueError("removal_ledger_backend must be one of: memory, redis")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()

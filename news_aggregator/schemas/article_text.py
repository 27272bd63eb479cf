from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from news_aggregator.models.entities import (
    CacheHitType,
    ExtractionErrorCode,
    ExtractionMethod,
    SourceStatus,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ArticleTextQuality(CamelModel):
    char_count: int
    word_count: int
    sentence_count: int
    score: float


class CachedArticleText(CamelModel):
    url: str
    url_hash: str
    content_hash: str
    title: str
    text: str
    extraction_method: ExtractionMethod
    fetched_at: int
    quality: ArticleTextQuality
    source_domain: str


class CachedExtractionFailure(CamelModel):
    url: str
    url_hash: str
    code: ExtractionErrorCode
    message: str
    status_code: int
    retryable: bool
    failed_at: int


class ArticleTextResult(CachedArticleText):
    cache_hit: CacheHitType
    attempts: int


class SourceLifecycleState(CamelModel):
    source_domain: str
    status: SourceStatus = SourceStatus.healthy
    total_attempts: int = 0
    total_successes: int = 0
    total_failures: int = 0
    consecutive_failures: int = 0
    retry_count: int = 0
    last_attempt_at: int | None = None
    last_success_at: int | None = None
    last_failure_at: int | None = None
    last_retry_at: int | None = None
    next_retry_at: int | None = None
    last_backoff_ms: int | None = None
    last_error_message: str | None = None


class RemovalLedgerEntry(CamelModel):
    url_hash: str
    canonical_url: str
    removed_at: int
    reason: str
    removed_by: str | None = None
    note: str | None = None

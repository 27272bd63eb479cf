import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Set
from urllib.parse import urlsplit

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from news_aggregator.core.config import Settings
from news_aggregator.core.observability import EXTRACTION_COUNT
from news_aggregator.core.time import now_ms
from news_aggregator.models.entities import CacheHitType, ExtractionErrorCode, ExtractionMethod
from news_aggregator.schemas.article_text import (
    ArticleTextQuality,
    ArticleTextResult,
    CachedArticleText,
    CachedExtractionFailure,
)
from news_aggregator.services.extraction.cache import ArticleTextCache
from news_aggregator.services.extraction.extractors import (
    BACKOFF_BASE_MS,
    ExtractedText,
    Extractor,
    assess_quality,
    default_fallback_extractor,
    default_primary_extractor,
    is_retryable_status,
)
from news_aggregator.services.normalize import canonicalize_url, url_hash
from news_aggregator.services.removal_ledger import RedisRemovalLedgerStore, RemovalLedger
from news_aggregator.sources.registry import collect_domains, get_starter_source_domain_allowlist, is_source_domain_allowed
from news_aggregator.state_machine.source_lifecycle import SourceLifecycleTracker

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_MS = 12_000
MAX_ATTEMPTS = 3
MIN_CHAR_COUNT = 800
MIN_WORD_COUNT = 160
MIN_SENTENCE_COUNT = 4
MIN_QUALITY_SCORE = 0.70


class ArticleTextServiceError(Exception):
    def __init__(self, code: ExtractionErrorCode | str, message: str, status_code: int, retryable: bool) -> None:
        super().__init__(message)
        self.code = ExtractionErrorCode(code)
        self.message = message
        self.status_code = status_code
        self.retryable = retryable

    def __repr__(self) -> str:
        return (
            f"ArticleTextServiceError(code={self.code.value!r}, message={self.message!r}, "
            f"status_code={self.status_code}, retryable={self.retryable})"
        )


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ArticleTextServiceError) and exc.retryable


class ArticleTextService:
    """Fetch and extract full article text for allowlisted publishers.

    Each `extract` call walks a fixed sequence: canonicalize, allowlist,
    removal ledger, URL-hash cache, then up to `max_attempts` fetches with
    exponential backoff between retryable failures. Terminal failures are
    cached for the failure TTL so a failing host is not hammered.
    """

    def __init__(
        self,
        *,
        allowlist: Set[str] | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        timeout_ms: int = FETCH_TIMEOUT_MS,
        backoff_base_ms: int = BACKOFF_BASE_MS,
        min_char_count: int = MIN_CHAR_COUNT,
        min_word_count: int = MIN_WORD_COUNT,
        min_sentence_count: int = MIN_SENTENCE_COUNT,
        min_quality_score: float = MIN_QUALITY_SCORE,
        client: httpx.AsyncClient | None = None,
        user_agent: str | None = None,
        now: Callable[[], int] = now_ms,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        cache: ArticleTextCache | None = None,
        lifecycle: SourceLifecycleTracker | None = None,
        removal_ledger: RemovalLedger | None = None,
        primary_extractor: Extractor = default_primary_extractor,
        fallback_extractor: Extractor = default_fallback_extractor,
    ) -> None:
        self.allowlist = allowlist if allowlist is not None else get_starter_source_domain_allowlist()
        self.max_attempts = max_attempts
        self.timeout_ms = timeout_ms
        self.backoff_base_ms = backoff_base_ms
        self.min_char_count = min_char_count
        self.min_word_count = min_word_count
        self.min_sentence_count = min_sentence_count
        self.min_quality_score = min_quality_score
        self.user_agent = user_agent
        self.cache = cache if cache is not None else ArticleTextCache(now=now)
        self.lifecycle = lifecycle if lifecycle is not None else SourceLifecycleTracker(now=now)
        self.removal_ledger = removal_ledger if removal_ledger is not None else RemovalLedger(now=now)
        self._client = client
        self._now = now
        self._sleep = sleep
        self._primary_extractor = primary_extractor
        self._fallback_extractor = fallback_extractor

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "ArticleTextService":
        cache = ArticleTextCache(
            success_ttl_ms=settings.cache_success_ttl_ms,
            failure_ttl_ms=settings.cache_failure_ttl_ms,
        )
        lifecycle = SourceLifecycleTracker(
            base_backoff_ms=settings.lifecycle_base_backoff_ms,
            max_backoff_ms=settings.lifecycle_max_backoff_ms,
        )
        store = RedisRemovalLedgerStore.from_url(settings.redis_url) if settings.removal_ledger_backend == "redis" else None
        options = {
            "allowlist": collect_domains(extra=settings.extra_allowed_domain_list),
            "max_attempts": settings.article_max_attempts,
            "timeout_ms": settings.article_fetch_timeout_ms,
            "backoff_base_ms": settings.article_backoff_base_ms,
            "min_char_count": settings.article_min_char_count,
            "min_word_count": settings.article_min_word_count,
            "min_sentence_count": settings.article_min_sentence_count,
            "min_quality_score": settings.article_min_quality_score,
            "user_agent": settings.user_agent,
            "cache": cache,
            "lifecycle": lifecycle,
            "removal_ledger": RemovalLedger(store=store),
        }
        options.update(overrides)
        return cls(**options)

    async def extract(self, input_url: str) -> ArticleTextResult:
        canonical_url = canonicalize_url(input_url)
        if canonical_url is None:
            raise ArticleTextServiceError(
                ExtractionErrorCode.invalid_url, "Only valid http/https URLs are supported", 400, False
            )

        domain = (urlsplit(canonical_url).hostname or "").lower()
        if not is_source_domain_allowed(domain, self.allowlist):
            raise ArticleTextServiceError(
                ExtractionErrorCode.domain_not_allowed, f"Domain is not allowlisted: {domain}", 403, False
            )

        hashed_url = url_hash(canonical_url)
        if await self.removal_ledger.read_by_url_hash(hashed_url) is not None:
            raise ArticleTextServiceError(
                ExtractionErrorCode.removed, "Article has been removed from extraction", 410, False
            )

        direct_hit = self.cache.get(hashed_url)
        if direct_hit is not None and direct_hit.entry.kind == "success":
            EXTRACTION_COUNT.labels("success", CacheHitType.url_hash.value).inc()
            # Linked entries still carry the URL they were first extracted from.
            return ArticleTextResult.model_validate(
                {
                    **direct_hit.entry.value.model_dump(),
                    "url": canonical_url,
                    "url_hash": hashed_url,
                    "source_domain": domain,
                    "cache_hit": CacheHitType.url_hash,
                    "attempts": 0,
                }
            )
        if direct_hit is not None:
            failure = direct_hit.entry.value
            raise ArticleTextServiceError(failure.code, failure.message, failure.status_code, failure.retryable)

        try:
            result = await self._extract_with_retries(canonical_url, hashed_url, domain)
        except ArticleTextServiceError as exc:
            self.lifecycle.record_failure(domain, exc)
            self.cache.remember_failure(
                CachedExtractionFailure(
                    url=canonical_url,
                    url_hash=hashed_url,
                    code=exc.code,
                    message=exc.message,
                    status_code=exc.status_code,
                    retryable=exc.retryable,
                    failed_at=self._now(),
                )
            )
            EXTRACTION_COUNT.labels(exc.code.value, CacheHitType.none.value).inc()
            logger.warning("Article extraction failed domain=%s code=%s: %s", domain, exc.code.value, exc.message)
            raise

        EXTRACTION_COUNT.labels("success", result.cache_hit.value).inc()
        return result

    async def _extract_with_retries(self, canonical_url: str, hashed_url: str, domain: str) -> ArticleTextResult:
        def record_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            self.lifecycle.record_retry(domain, error, retry_state.attempt_number)
            logger.info(
                "Retrying article fetch domain=%s attempt=%d: %s", domain, retry_state.attempt_number, error
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base_ms / 1000),
            retry=retry_if_exception(_is_retryable),
            before_sleep=record_retry,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._attempt(canonical_url, hashed_url, domain, attempt.retry_state.attempt_number)

        raise ArticleTextServiceError(ExtractionErrorCode.fetch_failed, "Article extraction failed", 502, True)

    async def _attempt(self, canonical_url: str, hashed_url: str, domain: str, attempt: int) -> ArticleTextResult:
        self.lifecycle.record_attempt(domain)
        try:
            html = await self._fetch_html(canonical_url)
            content_hash = self.cache.hash_content(html)

            content_hit = self.cache.get(hashed_url, content_hash)
            if content_hit is not None and content_hit.entry.kind == "success":
                self.cache.link_url_to_content(hashed_url, content_hash)
                self.lifecycle.record_success(domain)
                return ArticleTextResult.model_validate(
                    {
                        **content_hit.entry.value.model_dump(),
                        "url": canonical_url,
                        "url_hash": hashed_url,
                        "source_domain": domain,
                        "cache_hit": CacheHitType.content_hash,
                        "attempts": attempt,
                    }
                )

            method, extracted, quality = await self._extract_with_fallback(canonical_url, html)
            success = CachedArticleText(
                url=canonical_url,
                url_hash=hashed_url,
                content_hash=content_hash,
                title=extracted.title,
                text=extracted.text,
                extraction_method=method,
                fetched_at=self._now(),
                quality=quality,
                source_domain=domain,
            )
        except ArticleTextServiceError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ArticleTextServiceError(
                ExtractionErrorCode.fetch_failed, str(exc) or "Article fetch failed", 502, True
            ) from exc

        self.cache.remember_success(success)
        self.lifecycle.record_success(domain)
        return ArticleTextResult.model_validate(
            {**success.model_dump(), "cache_hit": CacheHitType.none, "attempts": attempt}
        )

    async def _run_extractor(self, extractor: Extractor, url: str, html: str) -> ExtractedText | None:
        result = extractor(url, html)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _assess(self, text: str) -> ArticleTextQuality:
        return assess_quality(text, self.min_char_count, self.min_word_count, self.min_sentence_count)

    async def _extract_with_fallback(
        self, url: str, html: str
    ) -> tuple[ExtractionMethod, ExtractedText, ArticleTextQuality]:
        primary = await self._run_extractor(self._primary_extractor, url, html)
        if primary is not None:
            quality = self._assess(primary.text)
            if quality.score >= self.min_quality_score:
                return ExtractionMethod.article_extractor, primary, quality
            logger.debug("Primary extraction below threshold url=%s score=%.3f", url, quality.score)

        fallback = await self._run_extractor(self._fallback_extractor, url, html)
        if fallback is None:
            raise ArticleTextServiceError(
                ExtractionErrorCode.quality_too_low, "Unable to extract readable article text", 422, False
            )

        quality = self._assess(fallback.text)
        if quality.score < self.min_quality_score:
            raise ArticleTextServiceError(
                ExtractionErrorCode.quality_too_low,
                "Extracted text did not meet strict full-text quality thresholds",
                422,
                False,
            )
        return ExtractionMethod.html_fallback, fallback, quality

    async def _fetch_html(self, url: str) -> str:
        timeout = self.timeout_ms / 1000
        # The deadline covers connect, headers and the whole body read.
        try:
            async with asyncio.timeout(timeout):
                if self._client is not None:
                    response = await self._client.get(url, timeout=timeout)
                else:
                    headers = {"User-Agent": self.user_agent} if self.user_agent else None
                    async with httpx.AsyncClient(follow_redirects=True, headers=headers) as client:
                        response = await client.get(url, timeout=timeout)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise ArticleTextServiceError(
                ExtractionErrorCode.fetch_failed, "Article fetch timed out", 502, True
            ) from exc
        except httpx.HTTPError as exc:
            raise ArticleTextServiceError(
                ExtractionErrorCode.fetch_failed, str(exc) or "Article fetch failed", 502, True
            ) from exc

        if not response.is_success:
            raise ArticleTextServiceError(
                ExtractionErrorCode.fetch_failed,
                f"HTTP {response.status_code} while fetching article",
                502,
                is_retryable_status(response.status_code),
            )
        return response.text

from enum import Enum

STORY_BUNDLE_VERSION = "story-bundle-v0"
TIME_BUCKET_UNKNOWN = "tb-unknown"


class SourceStatus(str, Enum):
    healthy = "healthy"
    retrying = "retrying"
    failing = "failing"


class ExtractionErrorCode(str, Enum):
    invalid_url = "invalid-url"
    domain_not_allowed = "domain-not-allowed"
    removed = "removed"
    fetch_failed = "fetch-failed"
    quality_too_low = "quality-too-low"


class ExtractionMethod(str, Enum):
    article_extractor = "article-extractor"
    html_fallback = "html-fallback"


class CacheHitType(str, Enum):
    none = "none"
    url_hash = "urlHash"
    content_hash = "contentHash"

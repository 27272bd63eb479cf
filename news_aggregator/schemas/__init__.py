from news_aggregator.schemas.article_text import (
    ArticleTextQuality,
    ArticleTextResult,
    CachedArticleText,
    CachedExtractionFailure,
    RemovalLedgerEntry,
    SourceLifecycleState,
)
from news_aggregator.schemas.news import (
    ClusterFeatures,
    FeedSource,
    IngestResult,
    NormalizedFeedItem,
    PipelineResult,
    RawFeedItem,
    StoryBundle,
    StoryBundleSource,
)

__all__ = [
    "ArticleTextQuality",
    "ArticleTextResult",
    "CachedArticleText",
    "CachedExtractionFailure",
    "ClusterFeatures",
    "FeedSource",
    "IngestResult",
    "NormalizedFeedItem",
    "PipelineResult",
    "RawFeedItem",
    "RemovalLedgerEntry",
    "SourceLifecycleState",
    "StoryBundle",
    "StoryBundleSource",
]

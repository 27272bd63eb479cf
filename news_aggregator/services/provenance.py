from collections.abc import Iterable, Mapping

from news_aggregator.schemas.news import FeedSource, NormalizedFeedItem, StoryBundleSource
from news_aggregator.utils.hashing import fnv1a32


def to_story_bundle_source(item: NormalizedFeedItem, feed_sources: Mapping[str, FeedSource]) -> StoryBundleSource:
    source = feed_sources.get(item.source_id)
    return StoryBundleSource(
        source_id=item.source_id,
        publisher=source.name if source else item.source_id,
        url=item.canonical_url,
        url_hash=item.url_hash,
        published_at=item.published_at,
        title=item.title,
    )


def compute_provenance_hash(sources: Iterable[StoryBundleSource]) -> str:
    hashes = sorted(source.url_hash for source in sources)
    return fnv1a32("|".join(hashes))

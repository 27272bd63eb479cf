"""Group normalized feed items into cross-publisher story bundles.

Items are first split into fixed-width time buckets, then merged within
each bucket whenever two titles share an entity key. Merging is
transitive through a union-find structure, so chains of overlapping
titles collapse into a single story.
"""

import logging
import re
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from news_aggregator.core.time import now_ms
from news_aggregator.models.entities import TIME_BUCKET_UNKNOWN
from news_aggregator.schemas.news import ClusterFeatures, FeedSource, NormalizedFeedItem, StoryBundle
from news_aggregator.services.provenance import compute_provenance_hash, to_story_bundle_source
from news_aggregator.utils.hashing import fnv1a32

logger = logging.getLogger(__name__)

DEFAULT_TIME_BUCKET_MS = 6 * 60 * 60 * 1000
DEFAULT_MAX_ENTITY_KEYS = 5

STOP_WORDS = frozenset(
    """
    a an the is are was were be been being have has had do does did will would could should may might
    shall can to of in for on with at by from as into about after before between through during above
    below and but or nor not so yet both either neither each every all any few more most other some such
    no only own same than too very just also now then here there when where how what which who whom this
    that these those it its he she they them his her their our your my we you up out
    """.split()
)

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9\s]")


@dataclass
class ClusterOptions:
    time_bucket_ms: int = DEFAULT_TIME_BUCKET_MS
    max_entity_keys: int = DEFAULT_MAX_ENTITY_KEYS
    now_fn: Callable[[], int] = field(default=now_ms)


class DisjointSet:
    def __init__(self, size: int) -> None:
        self.parent = list(range(size))

    def find(self, index: int) -> int:
        parent = self.parent
        while parent[index] != index:
            parent[index] = parent[parent[index]]
            index = parent[index]
        return index

    def union(self, left: int, right: int) -> None:
        left_root = self.find(left)
        right_root = self.find(right)
        if left_root != right_root:
            self.parent[left_root] = right_root


def extract_words(title: str) -> list[str]:
    cleaned = _NON_ALPHANUMERIC.sub("", title.lower())
    return [word for word in cleaned.split() if len(word) > 2 and word not in STOP_WORDS]


def top_entity_keys(items: Sequence[NormalizedFeedItem], limit: int) -> list[str]:
    frequency: Counter[str] = Counter()
    for item in items:
        frequency.update(extract_words(item.title))
    ranked = sorted(frequency.items(), key=lambda pair: (-pair[1], pair[0]))
    return sorted(word for word, _ in ranked[:limit])


def item_time_bucket(published_at: int | None, bucket_ms: int) -> str:
    if published_at is None:
        return TIME_BUCKET_UNKNOWN
    return f"tb-{published_at // bucket_ms}"


def compute_time_bucket(items: Sequence[NormalizedFeedItem], bucket_ms: int) -> str:
    timestamps = [item.published_at for item in items if item.published_at is not None]
    if not timestamps:
        return TIME_BUCKET_UNKNOWN
    return item_time_bucket(min(timestamps), bucket_ms)


def compute_semantic_signature(items: Sequence[NormalizedFeedItem]) -> str:
    return fnv1a32("|".join(sorted(item.canonical_url for item in items)))


def generate_story_id(entity_keys: Sequence[str], time_bucket: str, semantic_signature: str) -> str:
    return "story-" + fnv1a32(f"{','.join(entity_keys)}|{time_bucket}|{semantic_signature}")


def generate_topic_id(entity_keys: Sequence[str]) -> str:
    return "topic-" + fnv1a32(",".join(entity_keys))


def sort_by_time(items: Sequence[NormalizedFeedItem]) -> list[NormalizedFeedItem]:
    # Undated items sort last; sorted() is stable so input order breaks ties.
    return sorted(items, key=lambda item: (item.published_at is None, item.published_at or 0))


def cluster_window(items: Sequence[NormalizedFeedItem], now_fn: Callable[[], int]) -> tuple[int, int]:
    timestamps = [item.published_at for item in items if item.published_at is not None]
    if not timestamps:
        now = now_fn()
        return now, now
    return min(timestamps), max(timestamps)


def merge_by_shared_keys(items: Sequence[NormalizedFeedItem]) -> list[list[NormalizedFeedItem]]:
    groups = DisjointSet(len(items))
    word_to_indices: dict[str, list[int]] = {}
    for index, item in enumerate(items):
        for word in set(extract_words(item.title)):
            word_to_indices.setdefault(word, []).append(index)

    for indices in word_to_indices.values():
        for other in indices[1:]:
            groups.union(indices[0], other)

    clusters: dict[int, list[NormalizedFeedItem]] = {}
    for index, item in enumerate(items):
        clusters.setdefault(groups.find(index), []).append(item)
    return list(clusters.values())


def group_items(items: Sequence[NormalizedFeedItem], bucket_ms: int) -> list[list[NormalizedFeedItem]]:
    by_bucket: dict[str, list[NormalizedFeedItem]] = {}
    for item in items:
        by_bucket.setdefault(item_time_bucket(item.published_at, bucket_ms), []).append(item)

    clusters: list[list[NormalizedFeedItem]] = []
    for bucket_items in by_bucket.values():
        clusters.extend(merge_by_shared_keys(bucket_items))
    return clusters


def build_bundle(
    group: Sequence[NormalizedFeedItem],
    feed_sources: Mapping[str, FeedSource],
    options: ClusterOptions,
) -> StoryBundle:
    first = sort_by_time(group)[0]
    entity_keys = top_entity_keys(group, options.max_entity_keys)
    time_bucket = compute_time_bucket(group, options.time_bucket_ms)
    semantic_signature = compute_semantic_signature(group)
    sources = [to_story_bundle_source(item, feed_sources) for item in group]
    window_start, window_end = cluster_window(group, options.now_fn)

    return StoryBundle(
        story_id=generate_story_id(entity_keys, time_bucket, semantic_signature),
        topic_id=generate_topic_id(entity_keys),
        headline=first.title,
        summary_hint=first.summary,
        cluster_window_start=window_start,
        cluster_window_end=window_end,
        sources=sources,
        cluster_features=ClusterFeatures(
            entity_keys=entity_keys,
            time_bucket=time_bucket,
            semantic_signature=semantic_signature,
        ),
        provenance_hash=compute_provenance_hash(sources),
        created_at=options.now_fn(),
    )


def cluster_items(
    items: Sequence[NormalizedFeedItem],
    feed_sources: Mapping[str, FeedSource],
    options: ClusterOptions | None = None,
) -> list[StoryBundle]:
    if not items:
        return []
    options = options or ClusterOptions()
    bundles = [build_bundle(group, feed_sources, options) for group in group_items(items, options.time_bucket_ms)]
    logger.info("Clustered %d items into %d bundles", len(items), len(bundles))
    return bundles

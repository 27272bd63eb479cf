from news_aggregator.schemas.news import FeedSource, NormalizedFeedItem
from news_aggregator.services.clustering import (
    ClusterOptions,
    DisjointSet,
    cluster_items,
    compute_semantic_signature,
    extract_words,
    generate_story_id,
    generate_topic_id,
    top_entity_keys,
)
from news_aggregator.services.normalize import url_hash
from news_aggregator.utils.hashing import fnv1a32

BASE_TS = 1_700_000_000_000
SIX_HOURS_MS = 21_600_000

FEED_SOURCES = {
    "guardian-us": FeedSource(id="guardian-us", name="The Guardian US", rss_url="https://www.theguardian.com/us-news/rss"),
    "bbc-general": FeedSource(id="bbc-general", name="BBC News", rss_url="https://feeds.bbci.co.uk/news/rss.xml"),
}


def make_item(slug: str, title: str, published_at: int | None = BASE_TS, source_id: str = "guardian-us", summary=None):
    canonical = f"https://example.com/{slug}"
    return NormalizedFeedItem(
        source_id=source_id,
        url=canonical,
        canonical_url=canonical,
        url_hash=url_hash(canonical),
        title=title,
        published_at=published_at,
        summary=summary,
    )


def fixed_options(now: int = BASE_TS + 1) -> ClusterOptions:
    return ClusterOptions(now_fn=lambda: now)


def test_extract_words_filters_stop_words_and_short_tokens():
    assert extract_words("The Climate Change Summit in Paris") == ["climate", "change", "summit", "paris"]
    assert extract_words("U.S. vows: 'No deal' on AI!") == ["vows", "deal"]


def test_extract_words_is_idempotent():
    words = extract_words("Markets Rally After Fed Decision")
    assert extract_words(" ".join(words)) == words


def test_disjoint_set_merges_transitively():
    groups = DisjointSet(4)
    groups.union(0, 1)
    groups.union(1, 2)
    assert groups.find(0) == groups.find(2)
    assert groups.find(3) != groups.find(0)


def test_top_entity_keys_ranks_by_frequency_then_sorts():
    items = [
        make_item("a", "Summit climate talks"),
        make_item("b", "Climate summit ends"),
        make_item("c", "Climate deal reached"),
    ]
    assert top_entity_keys(items, 2) == ["climate", "summit"]
    assert top_entity_keys(items, 3) == ["climate", "deal", "summit"]


def test_empty_input_yields_no_bundles():
    assert cluster_items([], FEED_SOURCES) == []


def test_clustering_is_transitive_within_bucket():
    items = [
        make_item("a", "Climate talks stall"),
        make_item("b", "Climate summit opens", source_id="bbc-general"),
        make_item("c", "Summit leaders arrive"),
    ]

    bundles = cluster_items(items, FEED_SOURCES, fixed_options())

    assert len(bundles) == 1
    assert len(bundles[0].sources) == 3


def test_items_in_different_time_buckets_stay_separate():
    items = [
        make_item("a", "Election results announced", published_at=BASE_TS),
        make_item("b", "Election results announced", published_at=BASE_TS + SIX_HOURS_MS + 1),
    ]

    bundles = cluster_items(items, FEED_SOURCES, fixed_options())

    assert len(bundles) == 2
    assert all(len(bundle.sources) == 1 for bundle in bundles)


def test_bundle_fields_are_derived_from_members():
    items = [
        make_item("late", "Storm hits coast", published_at=BASE_TS + 1000, summary="late summary"),
        make_item("early", "Storm warning issued", published_at=BASE_TS, source_id="bbc-general", summary="early"),
    ]

    [bundle] = cluster_items(items, FEED_SOURCES, fixed_options())

    assert bundle.schema_version == "story-bundle-v0"
    assert bundle.headline == "Storm warning issued"
    assert bundle.summary_hint == "early"
    assert bundle.cluster_window_start == BASE_TS
    assert bundle.cluster_window_end == BASE_TS + 1000
    assert bundle.cluster_features.time_bucket == f"tb-{BASE_TS // SIX_HOURS_MS}"
    assert bundle.cluster_features.semantic_signature == fnv1a32(
        "https://example.com/early|https://example.com/late"
    )
    keys = bundle.cluster_features.entity_keys
    assert keys == sorted(keys)
    features = bundle.cluster_features
    assert bundle.story_id == generate_story_id(keys, features.time_bucket, features.semantic_signature)
    assert bundle.topic_id == generate_topic_id(keys)
    assert bundle.created_at == BASE_TS + 1
    assert {source.publisher for source in bundle.sources} == {"The Guardian US", "BBC News"}


def test_undated_cluster_uses_now_and_unknown_bucket():
    items = [
        make_item("x", "Undated quake report", published_at=None, source_id="unknown-feed"),
        make_item("y", "Quake aftershocks", published_at=None),
    ]

    [bundle] = cluster_items(items, FEED_SOURCES, fixed_options(now=42))

    assert bundle.cluster_features.time_bucket == "tb-unknown"
    assert bundle.cluster_window_start == 42
    assert bundle.cluster_window_end == 42
    assert bundle.headline == "Undated quake report"
    assert bundle.sources[0].publisher == "unknown-feed"


def test_single_item_cluster_is_valid():
    [bundle] = cluster_items([make_item("solo", "Lonely headline")], FEED_SOURCES, fixed_options())
    assert len(bundle.sources) == 1
    assert bundle.sources[0].url == "https://example.com/solo"


def test_ids_are_deterministic_across_runs():
    items = [make_item("a", "Budget vote delayed"), make_item("b", "Budget talks continue")]

    first = cluster_items(items, FEED_SOURCES, fixed_options())
    second = cluster_items(items, FEED_SOURCES, fixed_options())

    assert [bundle.to_record() for bundle in first] == [bundle.to_record() for bundle in second]


def test_semantic_signature_ignores_member_order():
    items = [make_item("a", "One"), make_item("b", "Two")]
    assert compute_semantic_signature(items) == compute_semantic_signature(list(reversed(items)))


def test_bundle_record_uses_schema_version_alias():
    [bundle] = cluster_items([make_item("solo", "Lonely headline")], FEED_SOURCES, fixed_options())
    record = bundle.to_record()
    assert record["schemaVersion"] == "story-bundle-v0"
    assert "summary_hint" not in record
    assert record["cluster_features"]["entity_keys"] == ["headline", "lonely"]

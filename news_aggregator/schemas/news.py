from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from news_aggregator.models.entities import STORY_BUNDLE_VERSION


class FeedSource(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    rss_url: str = Field(min_length=1)
    enabled: bool = True


class RawFeedItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    source_id: str
    url: str
    title: str
    published_at: int | None = None
    summary: str | None = None


class NormalizedFeedItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    source_id: str
    url: str
    canonical_url: str
    url_hash: str
    title: str
    published_at: int | None = None
    summary: str | None = None


class IngestResult(BaseModel):
    source_id: str
    items: list[RawFeedItem] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class StoryBundleSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_id: str
    publisher: str
    url: str
    url_hash: str
    published_at: int | None = None
    title: str


class ClusterFeatures(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity_keys: list[str]
    time_bucket: str
    semantic_signature: str


class StoryBundle(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    schema_version: str = Field(default=STORY_BUNDLE_VERSION, alias="schemaVersion")
    story_id: str
    topic_id: str
    headline: str
    summary_hint: str | None = None
    cluster_window_start: int
    cluster_window_end: int
    sources: list[StoryBundleSource]
    cluster_features: ClusterFeatures
    provenance_hash: str
    created_at: int

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PipelineResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    bundles: list[StoryBundle] = Field(default_factory=list)
    total_ingested: int = 0
    total_normalized: int = 0
    errors: list[str] = Field(default_factory=list)

    def to_record(self) -> dict[str, Any]:
        return {
            "bundles": [bundle.to_record() for bundle in self.bundles],
            "totalIngested": self.total_ingested,
            "totalNormalized": self.total_normalized,
            "errors": list(self.errors),
        }

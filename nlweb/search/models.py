"""Result variants, accumulated stream state, and terminal search response.

Result payloads are schema.org-shaped JSON objects. Each typed variant accepts
its own set of `@type` tags (a scalar tag must match exactly, a tag list must
contain one of them) and keeps any fields it does not declare.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ResultKind(StrEnum):
    RECIPE = "recipe"
    ARTICLE = "article"
    MOVIE = "movie"
    LEGACY = "legacy"  # structuredData element no typed schema accepted


class SearchStatus(StrEnum):
    IDLE = "idle"
    SEARCHING = "searching"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"


def type_tag_matches(type_value: Any, accepted: tuple[str, ...]) -> bool:
    """List tags match on membership, scalar tags on equality."""
    if isinstance(type_value, list):
        return any(tag in type_value for tag in accepted)
    return type_value in accepted


# ---------------------------------------------------------------------------
# Nested schema.org values
# ---------------------------------------------------------------------------


class _OpenModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ImageObject(_OpenModel):
    type_: str | None = Field(default=None, alias="@type")
    id: str | None = Field(default=None, alias="@id")
    url: str | None = None
    content_url: str | None = Field(default=None, alias="contentUrl")


ImageValue = Union[str, ImageObject, list[Union[str, ImageObject]]]


class Person(_OpenModel):
    name: str | None = None


class AggregateRating(_OpenModel):
    rating_value: float | str | None = Field(default=None, alias="ratingValue")
    rating_count: int | str | None = Field(default=None, alias="ratingCount")


class VideoObject(_OpenModel):
    name: str | None = None
    thumbnail_url: str | list[str] | None = Field(default=None, alias="thumbnailUrl")
    thumbnail: ImageValue | None = None
    content_url: str | None = Field(default=None, alias="contentUrl")
    embed_url: str | None = Field(default=None, alias="embedUrl")


# ---------------------------------------------------------------------------
# Result variants
# ---------------------------------------------------------------------------


class TypedResult(_OpenModel):
    """Fields every typed variant requires: identity, score, origin site."""

    kind: ClassVar[ResultKind]
    accepted_types: ClassVar[tuple[str, ...]] = ()

    type_: str | list[str] = Field(alias="@type")
    id: str = Field(alias="@id", strict=True)
    score: float = Field(strict=True, description="Relevance, higher is better")
    site: str = Field(strict=True)
    name: str | None = None
    url: str | None = None
    description: str | None = None
    image: ImageValue | None = None

    @model_validator(mode="after")
    def _check_type_tag(self):
        if not type_tag_matches(self.type_, self.accepted_types):
            raise ValueError(
                f"@type {self.type_!r} is not one of {list(self.accepted_types)}"
            )
        return self

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Recipe(TypedResult):
    kind: ClassVar[ResultKind] = ResultKind.RECIPE
    accepted_types: ClassVar[tuple[str, ...]] = ("Recipe",)

    recipe_ingredient: list[str] | str | None = Field(
        default=None, alias="recipeIngredient"
    )
    recipe_instructions: Any = Field(default=None, alias="recipeInstructions")
    recipe_yield: Any = Field(default=None, alias="recipeYield")
    cook_time: str | None = Field(default=None, alias="cookTime")
    prep_time: str | None = Field(default=None, alias="prepTime")
    total_time: str | None = Field(default=None, alias="totalTime")


class Article(TypedResult):
    kind: ClassVar[ResultKind] = ResultKind.ARTICLE
    accepted_types: ClassVar[tuple[str, ...]] = ("Article", "NewsArticle", "BlogPosting")

    headline: str | None = None
    author: Any = None
    publisher: Any = None
    date_published: str | None = Field(default=None, alias="datePublished")
    date_modified: str | None = Field(default=None, alias="dateModified")
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")


class Movie(TypedResult):
    kind: ClassVar[ResultKind] = ResultKind.MOVIE
    accepted_types: ClassVar[tuple[str, ...]] = ("Movie",)

    director: Person | list[Person] | None = None
    actor: Person | list[Person] | None = None
    aggregate_rating: AggregateRating | None = Field(
        default=None, alias="aggregateRating"
    )
    trailer: VideoObject | list[VideoObject] | None = None
    date_published: str | None = Field(default=None, alias="datePublished")


class LegacyResult(_OpenModel):
    """structuredData element from the chatgpt_app stream shape."""

    kind: ClassVar[ResultKind] = ResultKind.LEGACY

    type_: str | list[str] | None = Field(default=None, alias="@type")
    id: str | None = Field(default=None, alias="@id")
    score: float = 0.0
    site: str | None = None
    name: str | None = None
    url: str | None = None
    description: Any = None
    image: Any = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Summary(_OpenModel):
    """AI-authored summary; updates the summary text, never the result list."""

    type_: Literal["Summary"] = Field(alias="@type")
    text: str = Field(strict=True)


DomainResult = Union[Recipe, Article, Movie, LegacyResult]


# ---------------------------------------------------------------------------
# Stream state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccumulatedState:
    """Snapshot of one search as it streams. Replaced, never mutated."""

    query: str | None = None
    results: list[DomainResult] = field(default_factory=list)
    summary: str | None = None
    decontextualized_query: str | None = None
    loading: bool = False
    error: str | None = None
    streaming_index: int = -1
    result_offset: int = 0
    raw_logs: list[dict[str, Any]] = field(default_factory=list)
    status: SearchStatus = SearchStatus.IDLE


@dataclass
class SearchResponse:
    """Terminal result of one search call."""

    results: list[DomainResult] = field(default_factory=list)
    summary: str | None = None
    decontextualized_query: str | None = None
    raw_logs: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_state(cls, state: AccumulatedState) -> "SearchResponse":
        return cls(
            results=list(state.results),
            summary=state.summary,
            decontextualized_query=state.decontextualized_query,
            raw_logs=list(state.raw_logs),
        )


@dataclass
class QueryResultSet:
    """One completed conversation turn."""

    query: str
    response: SearchResponse

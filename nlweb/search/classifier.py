"""Result classifier: validate raw stream records into typed result variants.

Schemas are tried in a fixed priority order (Recipe, Movie, Article, Summary);
the first one that validates wins. Records no schema accepts are dropped.
"""

import logging
from typing import Any

from pydantic import ValidationError

from nlweb.search.models import (
    Article,
    DomainResult,
    ImageObject,
    LegacyResult,
    Movie,
    Recipe,
    ResultKind,
    Summary,
    TypedResult,
    type_tag_matches,
)

logger = logging.getLogger(__name__)

_CLASSIFY_ORDER: tuple[type[TypedResult] | type[Summary], ...] = (
    Recipe,
    Movie,
    Article,
    Summary,
)


def classify(record: Any) -> Recipe | Movie | Article | Summary | None:
    """Return the first variant whose schema accepts the record, else None."""
    if not isinstance(record, dict):
        logger.debug("Classifier: skipping non-object record: %r", record)
        return None
    for schema in _CLASSIFY_ORDER:
        try:
            return schema.model_validate(record)
        except ValidationError:
            continue
    logger.info(
        "Classifier: no schema matched record @type=%r @id=%r",
        record.get("@type"),
        record.get("@id"),
    )
    return None


def coerce_legacy(record: Any) -> DomainResult | None:
    """structuredData elements: typed variant when one fits, LegacyResult otherwise."""
    if not isinstance(record, dict):
        return None
    parsed = classify(record)
    if isinstance(parsed, (Recipe, Movie, Article)):
        return parsed
    if isinstance(parsed, Summary):
        return None
    try:
        return LegacyResult.model_validate(record)
    except ValidationError as e:
        logger.debug("Classifier: invalid structuredData element: %s", e)
        return None


def result_kind(result: DomainResult) -> ResultKind:
    if isinstance(result, Recipe):
        return ResultKind.RECIPE
    if isinstance(result, Movie):
        return ResultKind.MOVIE
    if isinstance(result, Article):
        return ResultKind.ARTICLE
    if isinstance(result, LegacyResult):
        return ResultKind.LEGACY
    raise TypeError(f"Unknown result variant: {type(result).__name__}")


def result_type_is(result: DomainResult, tag: str) -> bool:
    return type_tag_matches(result.type_, (tag,))


def _extra(result: DomainResult, key: str) -> Any:
    return (result.model_extra or {}).get(key)


def display_title(result: DomainResult) -> str:
    """Card title: name, then headline/title, then a placeholder."""
    for value in (
        result.name,
        getattr(result, "headline", None),
        _extra(result, "title"),
    ):
        if isinstance(value, str) and value.strip():
            return value
    return "Untitled"


def result_link(result: DomainResult) -> str | None:
    """Target URL: url, then grounding."""
    for value in (result.url, _extra(result, "grounding")):
        if isinstance(value, str) and value:
            return value
    return None


# ---------------------------------------------------------------------------
# Thumbnails
# ---------------------------------------------------------------------------


def _image_object_url(image: Any) -> str | None:
    if isinstance(image, ImageObject):
        return image.content_url or image.url or image.id
    if isinstance(image, dict):
        for key in ("contentUrl", "url", "@id"):
            value = image.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def image_urls(image: Any) -> list[str]:
    """All URLs an image value offers (string, ImageObject, or a list of either)."""
    if not image:
        return []
    if isinstance(image, str):
        return [image]
    if isinstance(image, list):
        urls: list[str] = []
        for item in image:
            urls.extend(image_urls(item))
        return urls
    url = _image_object_url(image)
    return [url] if url else []


def _absolute_thumbnail(thumbnail_url: str, site: str) -> str:
    if thumbnail_url.startswith("http"):
        return thumbnail_url
    path = thumbnail_url if thumbnail_url.startswith("/") else f"/{thumbnail_url}"
    return f"https://{site}{path}"


def _trailer_thumbnails(movie: Movie) -> list[str]:
    trailers = movie.trailer if isinstance(movie.trailer, list) else [movie.trailer]
    urls: list[str] = []
    for trailer in trailers:
        if trailer is None:
            continue
        if isinstance(trailer.thumbnail_url, list):
            urls.extend(u for u in trailer.thumbnail_url if u)
        elif trailer.thumbnail_url:
            urls.append(trailer.thumbnail_url)
        urls.extend(image_urls(trailer.thumbnail))
    return urls


def thumbnail_candidates(result: DomainResult) -> list[str]:
    """Image URLs to try in order; callers fall back to a placeholder when all fail."""
    kind = result_kind(result)
    if kind is ResultKind.ARTICLE:
        candidates = []
        if isinstance(result.thumbnail_url, str) and result.thumbnail_url:
            candidates.append(_absolute_thumbnail(result.thumbnail_url, result.site))
        candidates.extend(image_urls(result.image))
    elif kind is ResultKind.MOVIE:
        candidates = image_urls(result.image) + _trailer_thumbnails(result)
    elif kind is ResultKind.RECIPE or kind is ResultKind.LEGACY:
        candidates = image_urls(result.image)
    else:
        raise TypeError(f"Unhandled result kind: {kind}")
    return list(dict.fromkeys(candidates))

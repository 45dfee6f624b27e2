"""Result cache with tag-based invalidation."""

from surveykit.cache.backend import CacheBackend, InMemoryCacheBackend
from surveykit.cache.results import PendingInvalidation, ResultCache, cache_key
from surveykit.cache.tags import (
    ACTION_CLASS_TAGS,
    ACTION_TAGS,
    DISPLAY_TAGS,
    LANGUAGE_TAGS,
    PERSON_TAGS,
    PRODUCT_TAGS,
    RESPONSE_TAGS,
    SEGMENT_TAGS,
    SURVEY_TAGS,
    EntityTags,
)

__all__ = [
    "ACTION_CLASS_TAGS",
    "ACTION_TAGS",
    "DISPLAY_TAGS",
    "LANGUAGE_TAGS",
    "PERSON_TAGS",
    "PRODUCT_TAGS",
    "RESPONSE_TAGS",
    "SEGMENT_TAGS",
    "SURVEY_TAGS",
    "CacheBackend",
    "EntityTags",
    "InMemoryCacheBackend",
    "PendingInvalidation",
    "ResultCache",
    "cache_key",
]

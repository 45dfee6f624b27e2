"""Tests for the cache tag registry."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from surveykit.cache.tags import (
    DISPLAY_TAGS,
    PERSON_TAGS,
    SEGMENT_TAGS,
    SURVEY_TAGS,
    EntityTags,
)

ids = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=24)


class TestTagConstructors:
    def test_by_id(self):
        assert SURVEY_TAGS.by_id("s1") == "surveys-s1"

    def test_relationship_tags(self):
        assert SURVEY_TAGS.by_environment_id("e1") == "environments-e1-surveys"
        assert SURVEY_TAGS.by_action_class_id("ac1") == "actionClasses-ac1-surveys"
        assert SURVEY_TAGS.by_segment_id("seg1") == "segments-seg1-surveys"
        assert DISPLAY_TAGS.by_person_id("p1") == "people-p1-displays"

    def test_entities_do_not_collide(self):
        """The same key under different entities yields different tags."""
        assert SURVEY_TAGS.by_environment_id("e1") != SEGMENT_TAGS.by_environment_id("e1")
        assert PERSON_TAGS.by_id("p1") != DISPLAY_TAGS.by_person_id("p1")

    @given(entity=ids, key=ids)
    def test_deterministic(self, entity, key):
        """Separately built registries agree byte-for-byte."""
        a, b = EntityTags(entity), EntityTags(entity)
        assert a.by_id(key) == b.by_id(key)
        assert a.by_environment_id(key) == b.by_environment_id(key)
        assert a.by_person_id(key) == b.by_person_id(key)


class TestForMutation:
    def test_all_keys(self):
        tags = SURVEY_TAGS.for_mutation(
            id="s1", environment_id="e1", action_class_id="ac1", segment_id="seg1"
        )
        assert tags == {
            "surveys-s1",
            "environments-e1-surveys",
            "actionClasses-ac1-surveys",
            "segments-seg1-surveys",
        }

    def test_missing_keys_are_skipped(self):
        assert SURVEY_TAGS.for_mutation(id="s1", segment_id=None) == {"surveys-s1"}
        assert SURVEY_TAGS.for_mutation() == frozenset()

    def test_matches_population_side(self):
        """Invalidation tags equal the tags readers cache under."""
        tags = DISPLAY_TAGS.for_mutation(person_id="p1", survey_id="s1")
        assert DISPLAY_TAGS.by_person_id("p1") in tags
        assert DISPLAY_TAGS.by_survey_id("s1") in tags

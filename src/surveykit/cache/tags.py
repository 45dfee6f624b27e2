"""Cache tag registry.

Every tag string used to populate or invalidate the result cache is
built here, so readers and writers always agree byte-for-byte.

Tags are pure functions of (entity kind, relationship, key)::

    SURVEY_TAGS.by_id("s1")                 -> "surveys-s1"
    SURVEY_TAGS.by_environment_id("e1")     -> "environments-e1-surveys"
    SURVEY_TAGS.by_action_class_id("ac1")   -> "actionClasses-ac1-surveys"
    DISPLAY_TAGS.by_person_id("p1")         -> "people-p1-displays"
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EntityTags:
    """Tag constructors for one entity kind.

    Args:
        entity: Plural entity name used in every tag (e.g. ``"surveys"``).
    """

    entity: str

    def by_id(self, entity_id: str) -> str:
        return f"{self.entity}-{entity_id}"

    def by_environment_id(self, environment_id: str) -> str:
        return f"environments-{environment_id}-{self.entity}"

    def by_action_class_id(self, action_class_id: str) -> str:
        return f"actionClasses-{action_class_id}-{self.entity}"

    def by_segment_id(self, segment_id: str) -> str:
        return f"segments-{segment_id}-{self.entity}"

    def by_person_id(self, person_id: str) -> str:
        return f"people-{person_id}-{self.entity}"

    def by_survey_id(self, survey_id: str) -> str:
        return f"surveys-{survey_id}-{self.entity}"

    def for_mutation(
        self,
        *,
        id: str | None = None,
        environment_id: str | None = None,
        action_class_id: str | None = None,
        segment_id: str | None = None,
        person_id: str | None = None,
        survey_id: str | None = None,
    ) -> frozenset[str]:
        """All tags made stale by a mutation touching the given keys.

        Keys that are ``None`` (or empty) do not contribute a tag.
        """
        tags: set[str] = set()
        if id:
            tags.add(self.by_id(id))
        if environment_id:
            tags.add(self.by_environment_id(environment_id))
        if action_class_id:
            tags.add(self.by_action_class_id(action_class_id))
        if segment_id:
            tags.add(self.by_segment_id(segment_id))
        if person_id:
            tags.add(self.by_person_id(person_id))
        if survey_id:
            tags.add(self.by_survey_id(survey_id))
        return frozenset(tags)


SURVEY_TAGS = EntityTags("surveys")
SEGMENT_TAGS = EntityTags("segments")
PERSON_TAGS = EntityTags("people")
DISPLAY_TAGS = EntityTags("displays")
ACTION_TAGS = EntityTags("actions")
ACTION_CLASS_TAGS = EntityTags("actionClasses")
PRODUCT_TAGS = EntityTags("products")
RESPONSE_TAGS = EntityTags("responses")
LANGUAGE_TAGS = EntityTags("languages")

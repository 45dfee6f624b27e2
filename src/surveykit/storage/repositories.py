"""Abstract repository interfaces for SurveyKit storage.

Defines ABC interfaces for all database operations. No SQLAlchemy
imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from surveykit.models.survey import SurveyFilterCriteria
    from surveykit.storage.schema import (
        ActionClassRow,
        ActionRow,
        DisplayRow,
        EnvironmentRow,
        LanguageRow,
        PersonRow,
        ProductRow,
        ResponseRow,
        SegmentRow,
        SurveyRow,
    )


class SurveyRepository(ABC):
    """Abstract interface for survey storage operations."""

    @abstractmethod
    def get(self, survey_id: str) -> SurveyRow | None:
        """Get a survey by id. Returns None if not found."""
        ...

    @abstractmethod
    def list_by_environment(
        self,
        environment_id: str,
        *,
        criteria: SurveyFilterCriteria | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Sequence[SurveyRow]:
        """List surveys of an environment.

        Args:
            environment_id: Environment to scope the query.
            criteria: Optional name/status/type/creator filters and sort key.
            limit: Maximum number of rows.
            offset: Number of rows to skip.

        Returns surveys in creation order unless *criteria* names a sort key.
        """
        ...

    @abstractmethod
    def list_by_action_class(
        self,
        action_class_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Sequence[SurveyRow]:
        """List surveys triggered by the given action class."""
        ...

    @abstractmethod
    def list_by_segment(self, segment_id: str) -> Sequence[SurveyRow]:
        """List surveys connected to the given segment."""
        ...

    @abstractmethod
    def list_by_type(self, survey_type: str) -> Sequence[SurveyRow]:
        """List surveys of a given type across all environments."""
        ...

    @abstractmethod
    def count_by_environment(self, environment_id: str) -> int:
        ...

    @abstractmethod
    def get_by_result_share_key(self, result_share_key: str) -> SurveyRow | None:
        ...

    @abstractmethod
    def save(self, survey: SurveyRow) -> None:
        """Insert or update a survey (and its owned bindings)."""
        ...

    @abstractmethod
    def delete(self, survey: SurveyRow) -> None:
        """Delete a survey. Trigger and language bindings go with it."""
        ...


class SegmentRepository(ABC):
    """Abstract interface for segment storage operations."""

    @abstractmethod
    def get(self, segment_id: str) -> SegmentRow | None:
        ...

    @abstractmethod
    def list_by_environment(self, environment_id: str) -> Sequence[SegmentRow]:
        """List segments of an environment, ordered by creation time."""
        ...

    @abstractmethod
    def save(self, segment: SegmentRow) -> None:
        ...

    @abstractmethod
    def delete(self, segment: SegmentRow) -> None:
        """Delete a segment. Connected surveys lose their segment reference."""
        ...

    @abstractmethod
    def delete_private_by_title(self, title: str) -> int:
        """Delete every private segment with the given title.

        Returns the number of segments deleted.
        """
        ...


class ActionClassRepository(ABC):
    """Abstract interface for action-class storage operations."""

    @abstractmethod
    def get(self, action_class_id: str) -> ActionClassRow | None:
        ...

    @abstractmethod
    def get_by_name(self, environment_id: str, name: str) -> ActionClassRow | None:
        ...

    @abstractmethod
    def list_by_environment(self, environment_id: str) -> Sequence[ActionClassRow]:
        ...

    @abstractmethod
    def save(self, action_class: ActionClassRow) -> None:
        ...


class PersonRepository(ABC):
    """Abstract interface for person storage operations."""

    @abstractmethod
    def get(self, person_id: str) -> PersonRow | None:
        ...

    @abstractmethod
    def get_by_user_id(self, environment_id: str, user_id: str) -> PersonRow | None:
        ...

    @abstractmethod
    def save(self, person: PersonRow) -> None:
        ...


class ActionRepository(ABC):
    """Abstract interface for action (event occurrence) storage."""

    @abstractmethod
    def save(self, action: ActionRow) -> None:
        ...

    @abstractmethod
    def list_by_person(self, person_id: str) -> Sequence[ActionRow]:
        """List a person's actions, newest first."""
        ...


class DisplayRepository(ABC):
    """Abstract interface for display storage."""

    @abstractmethod
    def get(self, display_id: str) -> DisplayRow | None:
        ...

    @abstractmethod
    def save(self, display: DisplayRow) -> None:
        ...

    @abstractmethod
    def list_by_person(self, person_id: str) -> Sequence[DisplayRow]:
        """List a person's displays, newest first."""
        ...


class ResponseRepository(ABC):
    """Abstract interface for response storage."""

    @abstractmethod
    def get(self, response_id: str) -> ResponseRow | None:
        ...

    @abstractmethod
    def save(self, response: ResponseRow) -> None:
        ...

    @abstractmethod
    def get_latest_for_survey(self, survey_id: str) -> ResponseRow | None:
        """Most recent response of a survey, or None if it has none."""
        ...


class ProductRepository(ABC):
    """Abstract interface for products and their environments."""

    @abstractmethod
    def get(self, product_id: str) -> ProductRow | None:
        ...

    @abstractmethod
    def get_by_environment_id(self, environment_id: str) -> ProductRow | None:
        ...

    @abstractmethod
    def get_environment(self, environment_id: str) -> EnvironmentRow | None:
        ...

    @abstractmethod
    def list_environments(self, product_id: str) -> Sequence[EnvironmentRow]:
        ...

    @abstractmethod
    def save(self, row: ProductRow | EnvironmentRow) -> None:
        ...


class LanguageRepository(ABC):
    """Abstract interface for product languages."""

    @abstractmethod
    def get(self, language_id: str) -> LanguageRow | None:
        ...

    @abstractmethod
    def list_by_product(self, product_id: str) -> Sequence[LanguageRow]:
        ...

    @abstractmethod
    def save(self, language: LanguageRow) -> None:
        ...

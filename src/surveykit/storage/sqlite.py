"""SQLAlchemy implementations of repository interfaces.

All repositories use SQLAlchemy 2.0-style queries (select() + session.execute()).
Each repository takes a Session in its constructor.  The Sqlite prefix
names the default backend; the queries themselves are dialect-neutral.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from surveykit.storage.repositories import (
    ActionClassRepository,
    ActionRepository,
    DisplayRepository,
    LanguageRepository,
    PersonRepository,
    ProductRepository,
    ResponseRepository,
    SegmentRepository,
    SurveyRepository,
)
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
    SurveyTriggerRow,
)

if TYPE_CHECKING:
    from sqlalchemy import Select

    from surveykit.models.survey import SurveyFilterCriteria


def _paginate(stmt: Select, limit: int | None, offset: int | None) -> Select:
    if limit:
        stmt = stmt.limit(limit)
    if offset:
        stmt = stmt.offset(offset)
    return stmt


class SqliteSurveyRepository(SurveyRepository):
    """SQL implementation of survey repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, survey_id: str) -> SurveyRow | None:
        stmt = select(SurveyRow).where(SurveyRow.id == survey_id)
        return self._session.execute(stmt).unique().scalar_one_or_none()

    def list_by_environment(
        self,
        environment_id: str,
        *,
        criteria: SurveyFilterCriteria | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Sequence[SurveyRow]:
        stmt = select(SurveyRow).where(SurveyRow.environment_id == environment_id)

        if criteria is not None:
            if criteria.name:
                stmt = stmt.where(SurveyRow.name.ilike(f"%{criteria.name}%"))
            if criteria.status:
                stmt = stmt.where(SurveyRow.status.in_([s.value for s in criteria.status]))
            if criteria.type:
                stmt = stmt.where(SurveyRow.type.in_([t.value for t in criteria.type]))
            if criteria.created_by:
                stmt = stmt.where(SurveyRow.created_by == criteria.created_by)

        sort_by = criteria.sort_by if criteria is not None else None
        if sort_by == "updatedAt":
            stmt = stmt.order_by(SurveyRow.updated_at.desc())
        elif sort_by == "createdAt":
            stmt = stmt.order_by(SurveyRow.created_at.desc())
        elif sort_by == "name":
            stmt = stmt.order_by(SurveyRow.name.asc())
        else:
            stmt = stmt.order_by(SurveyRow.created_at.asc())

        stmt = _paginate(stmt, limit, offset)
        return list(self._session.execute(stmt).unique().scalars().all())

    def list_by_action_class(
        self,
        action_class_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Sequence[SurveyRow]:
        stmt = (
            select(SurveyRow)
            .join(SurveyTriggerRow, SurveyTriggerRow.survey_id == SurveyRow.id)
            .where(SurveyTriggerRow.action_class_id == action_class_id)
            .order_by(SurveyRow.created_at.asc())
        )
        stmt = _paginate(stmt, limit, offset)
        return list(self._session.execute(stmt).unique().scalars().all())

    def list_by_segment(self, segment_id: str) -> Sequence[SurveyRow]:
        stmt = (
            select(SurveyRow)
            .where(SurveyRow.segment_id == segment_id)
            .order_by(SurveyRow.created_at.asc())
        )
        return list(self._session.execute(stmt).unique().scalars().all())

    def list_by_type(self, survey_type: str) -> Sequence[SurveyRow]:
        stmt = (
            select(SurveyRow)
            .where(SurveyRow.type == survey_type)
            .order_by(SurveyRow.created_at.asc())
        )
        return list(self._session.execute(stmt).unique().scalars().all())

    def count_by_environment(self, environment_id: str) -> int:
        stmt = select(func.count()).select_from(SurveyRow).where(
            SurveyRow.environment_id == environment_id
        )
        return int(self._session.execute(stmt).scalar_one())

    def get_by_result_share_key(self, result_share_key: str) -> SurveyRow | None:
        stmt = select(SurveyRow).where(SurveyRow.result_share_key == result_share_key)
        return self._session.execute(stmt).unique().scalar_one_or_none()

    def save(self, survey: SurveyRow) -> None:
        self._session.add(survey)
        self._session.flush()

    def delete(self, survey: SurveyRow) -> None:
        self._session.delete(survey)
        self._session.flush()


class SqliteSegmentRepository(SegmentRepository):
    """SQL implementation of segment repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, segment_id: str) -> SegmentRow | None:
        stmt = select(SegmentRow).where(SegmentRow.id == segment_id)
        return self._session.execute(stmt).unique().scalar_one_or_none()

    def list_by_environment(self, environment_id: str) -> Sequence[SegmentRow]:
        stmt = (
            select(SegmentRow)
            .where(SegmentRow.environment_id == environment_id)
            .order_by(SegmentRow.created_at.asc())
        )
        return list(self._session.execute(stmt).unique().scalars().all())

    def save(self, segment: SegmentRow) -> None:
        self._session.add(segment)
        self._session.flush()

    def delete(self, segment: SegmentRow) -> None:
        for survey in list(segment.surveys):
            survey.segment_id = None
            survey.segment = None
        self._session.delete(segment)
        self._session.flush()

    def delete_private_by_title(self, title: str) -> int:
        rows = self._session.execute(
            select(SegmentRow).where(SegmentRow.title == title, SegmentRow.is_private.is_(True))
        ).unique().scalars().all()
        for row in rows:
            self.delete(row)
        return len(rows)


class SqliteActionClassRepository(ActionClassRepository):
    """SQL implementation of action-class repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, action_class_id: str) -> ActionClassRow | None:
        return self._session.get(ActionClassRow, action_class_id)

    def get_by_name(self, environment_id: str, name: str) -> ActionClassRow | None:
        stmt = select(ActionClassRow).where(
            ActionClassRow.environment_id == environment_id,
            ActionClassRow.name == name,
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def list_by_environment(self, environment_id: str) -> Sequence[ActionClassRow]:
        stmt = (
            select(ActionClassRow)
            .where(ActionClassRow.environment_id == environment_id)
            .order_by(ActionClassRow.created_at.asc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def save(self, action_class: ActionClassRow) -> None:
        self._session.add(action_class)
        self._session.flush()


class SqlitePersonRepository(PersonRepository):
    """SQL implementation of person repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, person_id: str) -> PersonRow | None:
        return self._session.get(PersonRow, person_id)

    def get_by_user_id(self, environment_id: str, user_id: str) -> PersonRow | None:
        stmt = select(PersonRow).where(
            PersonRow.environment_id == environment_id,
            PersonRow.user_id == user_id,
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, person: PersonRow) -> None:
        self._session.add(person)
        self._session.flush()


class SqliteActionRepository(ActionRepository):
    """SQL implementation of action repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, action: ActionRow) -> None:
        self._session.add(action)
        self._session.flush()

    def list_by_person(self, person_id: str) -> Sequence[ActionRow]:
        stmt = (
            select(ActionRow)
            .where(ActionRow.person_id == person_id)
            .order_by(ActionRow.created_at.desc())
        )
        return list(self._session.execute(stmt).scalars().all())


class SqliteDisplayRepository(DisplayRepository):
    """SQL implementation of display repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, display_id: str) -> DisplayRow | None:
        return self._session.get(DisplayRow, display_id)

    def save(self, display: DisplayRow) -> None:
        self._session.add(display)
        self._session.flush()

    def list_by_person(self, person_id: str) -> Sequence[DisplayRow]:
        stmt = (
            select(DisplayRow)
            .where(DisplayRow.person_id == person_id)
            .order_by(DisplayRow.created_at.desc())
        )
        return list(self._session.execute(stmt).scalars().all())


class SqliteResponseRepository(ResponseRepository):
    """SQL implementation of response repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, response_id: str) -> ResponseRow | None:
        return self._session.get(ResponseRow, response_id)

    def save(self, response: ResponseRow) -> None:
        self._session.add(response)
        self._session.flush()

    def get_latest_for_survey(self, survey_id: str) -> ResponseRow | None:
        stmt = (
            select(ResponseRow)
            .where(ResponseRow.survey_id == survey_id)
            .order_by(ResponseRow.created_at.desc())
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()


class SqliteProductRepository(ProductRepository):
    """SQL implementation of product/environment repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, product_id: str) -> ProductRow | None:
        return self._session.get(ProductRow, product_id)

    def get_by_environment_id(self, environment_id: str) -> ProductRow | None:
        stmt = (
            select(ProductRow)
            .join(EnvironmentRow, EnvironmentRow.product_id == ProductRow.id)
            .where(EnvironmentRow.id == environment_id)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get_environment(self, environment_id: str) -> EnvironmentRow | None:
        return self._session.get(EnvironmentRow, environment_id)

    def list_environments(self, product_id: str) -> Sequence[EnvironmentRow]:
        stmt = (
            select(EnvironmentRow)
            .where(EnvironmentRow.product_id == product_id)
            .order_by(EnvironmentRow.created_at.asc())
        )
        return list(self._session.execute(stmt).unique().scalars().all())

    def save(self, row: ProductRow | EnvironmentRow) -> None:
        self._session.add(row)
        self._session.flush()


class SqliteLanguageRepository(LanguageRepository):
    """SQL implementation of language repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, language_id: str) -> LanguageRow | None:
        return self._session.get(LanguageRow, language_id)

    def list_by_product(self, product_id: str) -> Sequence[LanguageRow]:
        stmt = (
            select(LanguageRow)
            .where(LanguageRow.product_id == product_id)
            .order_by(LanguageRow.created_at.asc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def save(self, language: LanguageRow) -> None:
        self._session.add(language)
        self._session.flush()

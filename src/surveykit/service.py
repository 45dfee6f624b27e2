"""SurveyService -- the public entry point.

Ties the transactional store to the result cache.  Reads go through the
cache; on a miss they open a short read transaction and the result is
stored under the tags it depends on.  Mutations run in one transaction,
collect the tags they make stale, and invalidate them after the commit
and before returning, so the next read sees the write.

Usage::

    with SurveyService.open("surveys.db") as service:
        surveys = service.get_sync_surveys(environment_id, person_id, version="2.0.0")
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from surveykit.cache.results import ResultCache, cache_key
from surveykit.cache.tags import (
    ACTION_CLASS_TAGS,
    ACTION_TAGS,
    DISPLAY_TAGS,
    PERSON_TAGS,
    PRODUCT_TAGS,
    SEGMENT_TAGS,
    SURVEY_TAGS,
)
from surveykit.exceptions import InvalidInputError
from surveykit.models.config import ServiceConfig
from surveykit.models.environment import ActionClass, Product
from surveykit.models.legacy import LegacySurvey
from surveykit.models.person import Action, Display, Person
from surveykit.models.segment import Segment, SegmentCreateInput, SegmentUpdateInput
from surveykit.models.survey import Survey, SurveyFilterCriteria, SurveyInput
from surveykit.operations import environments as environment_ops
from surveykit.operations import migration as migration_ops
from surveykit.operations import people as people_ops
from surveykit.operations import segments as segment_ops
from surveykit.operations import surveys as survey_ops
from surveykit.operations import sync as sync_ops
from surveykit.segments.modes import evaluation_mode
from surveykit.storage.store import Store

if TYPE_CHECKING:
    from collections.abc import Mapping

    from surveykit.models.environment import Environment
    from surveykit.models.person import Response
    from surveykit.models.survey import Language
    from surveykit.operations.migration import MigrationSummary
    from surveykit.storage.store import UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce(model: type[M], data: M | Mapping[str, Any]) -> M:
    """Validate a request body, raising InvalidInputError on schema failures."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid {model.__name__}: {exc}") from exc


class SurveyService:
    """Survey CRUD, segment targeting and the sync query behind one object.

    Create via :meth:`SurveyService.open` or :meth:`from_components`.

    Args:
        store: Transactional store.
        cache: Result cache.  Owned by the service and closed with it.
        config: Service configuration.
        clock: Returns the current time (UTC, timezone-aware).
    """

    def __init__(
        self,
        store: Store,
        cache: ResultCache,
        *,
        config: ServiceConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._cache = cache
        self._config = config or ServiceConfig()
        self._clock = clock
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str = ":memory:",
        *,
        config: ServiceConfig | None = None,
        cache: ResultCache | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> SurveyService:
        """Open (or create) a survey store and wrap it in a service.

        Args:
            path: SQLite path.  ``":memory:"`` for in-memory (default).
                Ignored when *config* is given.
            config: Service configuration.  Defaults created from *path*.
            cache: Result cache.  A fresh in-memory cache by default.
            clock: Time source, injectable for tests.
        """
        if config is None:
            config = ServiceConfig(db_path=path)
        store = Store.open(
            config.db_path,
            url=config.db_url,
            default_timeout=config.transaction_timeout,
        )
        if cache is None:
            cache = ResultCache(default_ttl=config.revalidation_interval)
        return cls(store, cache, config=config, clock=clock)

    @classmethod
    def from_components(
        cls,
        *,
        store: Store,
        cache: ResultCache | None = None,
        config: ServiceConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> SurveyService:
        """Create a service from pre-built components (testing / DI)."""
        config = config or ServiceConfig()
        if cache is None:
            cache = ResultCache(default_ttl=config.revalidation_interval)
        return cls(store, cache, config=config, clock=clock)

    @property
    def store(self) -> Store:
        return self._store

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def config(self) -> ServiceConfig:
        return self._config

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _read(self, fn: Callable[[UnitOfWork], T]) -> T:
        with self._store.transaction() as uow:
            return fn(uow)

    def _cached(
        self,
        key: str,
        tags: frozenset[str] | set[str],
        result_type: Any,
        fn: Callable[[UnitOfWork], T],
    ) -> T:
        return self._cache.get_or_compute(key, tags, lambda: self._read(fn), result_type)

    def _mutate(self, fn: Callable[..., T], *, timeout: float | None = None) -> T:
        with self._cache.deferred() as pending, self._store.transaction(timeout=timeout) as uow:
            return fn(uow, pending)

    # ------------------------------------------------------------------
    # Surveys
    # ------------------------------------------------------------------

    def get_survey(self, survey_id: str) -> Survey | None:
        return self._cached(
            cache_key("getSurvey", survey_id),
            {SURVEY_TAGS.by_id(survey_id)},
            Optional[Survey],
            lambda uow: survey_ops.get_survey(uow, survey_id),
        )

    def get_surveys(
        self,
        environment_id: str,
        limit: int | None = None,
        offset: int | None = None,
        filter_criteria: SurveyFilterCriteria | None = None,
    ) -> list[Survey]:
        """Surveys of an environment, filtered, sorted and paginated."""
        return self._cached(
            cache_key("getSurveys", environment_id, limit, offset, filter_criteria),
            {SURVEY_TAGS.by_environment_id(environment_id)},
            list[Survey],
            lambda uow: survey_ops.get_surveys(
                uow, environment_id, limit=limit, offset=offset, criteria=filter_criteria
            ),
        )

    def get_surveys_by_action_class_id(
        self,
        action_class_id: str,
        page: int | None = None,
    ) -> list[Survey]:
        return self._cached(
            cache_key("getSurveysByActionClassId", action_class_id, page),
            {SURVEY_TAGS.by_action_class_id(action_class_id)},
            list[Survey],
            lambda uow: survey_ops.get_surveys_by_action_class_id(
                uow, action_class_id, page=page, items_per_page=self._config.items_per_page
            ),
        )

    def get_surveys_by_segment_id(self, segment_id: str) -> list[Survey]:
        return self._cached(
            cache_key("getSurveysBySegmentId", segment_id),
            {SURVEY_TAGS.by_segment_id(segment_id), SEGMENT_TAGS.by_id(segment_id)},
            list[Survey],
            lambda uow: survey_ops.get_surveys_by_segment_id(uow, segment_id),
        )

    def get_survey_count(self, environment_id: str) -> int:
        return self._cached(
            cache_key("getSurveyCount", environment_id),
            {SURVEY_TAGS.by_environment_id(environment_id)},
            int,
            lambda uow: survey_ops.get_survey_count(uow, environment_id),
        )

    def get_survey_id_by_result_share_key(self, result_share_key: str) -> str | None:
        return self._read(
            lambda uow: survey_ops.get_survey_id_by_result_share_key(uow, result_share_key)
        )

    def create_survey(self, environment_id: str, body: SurveyInput | Mapping[str, Any]) -> Survey:
        body = _coerce(SurveyInput, body)
        now = self._clock()
        return self._mutate(
            lambda uow, pending: survey_ops.create_survey(uow, pending, environment_id, body, now=now)
        )

    def update_survey(self, survey: Survey | Mapping[str, Any]) -> Survey:
        survey = _coerce(Survey, survey)
        now = self._clock()
        return self._mutate(
            lambda uow, pending: survey_ops.update_survey(uow, pending, survey, now=now)
        )

    def delete_survey(self, survey_id: str) -> Survey:
        return self._mutate(lambda uow, pending: survey_ops.delete_survey(uow, pending, survey_id))

    def duplicate_survey(self, environment_id: str, survey_id: str, user_id: str | None = None) -> Survey:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: survey_ops.duplicate_survey(
                uow, pending, environment_id, survey_id, user_id, now=now
            )
        )

    def load_new_segment_in_survey(self, survey_id: str, new_segment_id: str) -> Survey:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: survey_ops.load_new_segment_in_survey(
                uow, pending, survey_id, new_segment_id, now=now
            )
        )

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def get_sync_surveys(
        self,
        environment_id: str,
        person_id: str,
        device_type: sync_ops.DeviceType = "desktop",
        version: str | None = None,
    ) -> Union[list[Survey], list[LegacySurvey]]:
        """Surveys the person may be shown now.

        Callers that send no protocol *version* get the legacy survey
        shape and legacy segment evaluation.

        Raises:
            ResourceNotFoundError: Unknown product or person.
            ConfigurationError: A candidate survey has an unknown display option.
        """
        mode = evaluation_mode(version)

        def compute(uow: UnitOfWork) -> list[Any]:
            surveys = sync_ops.get_sync_surveys(
                uow,
                environment_id,
                person_id,
                device_type=device_type,
                mode=mode,
                now=self._clock(),
            )
            if mode.is_legacy:
                return [LegacySurvey.from_survey(survey) for survey in surveys]
            return surveys

        return self._cached(
            sync_ops.sync_cache_key(environment_id, person_id, device_type, mode),
            sync_ops.sync_tags(environment_id, person_id),
            list[LegacySurvey] if mode.is_legacy else list[Survey],
            compute,
        )

    # ------------------------------------------------------------------
    # Segments
    # ------------------------------------------------------------------

    def get_segment(self, segment_id: str) -> Segment:
        return self._cached(
            cache_key("getSegment", segment_id),
            {SEGMENT_TAGS.by_id(segment_id)},
            Segment,
            lambda uow: segment_ops.get_segment(uow, segment_id),
        )

    def get_segments(self, environment_id: str) -> list[Segment]:
        return self._cached(
            cache_key("getSegments", environment_id),
            {SEGMENT_TAGS.by_environment_id(environment_id)},
            list[Segment],
            lambda uow: segment_ops.get_segments(uow, environment_id),
        )

    def create_segment(self, body: SegmentCreateInput | Mapping[str, Any]) -> Segment:
        body = _coerce(SegmentCreateInput, body)
        now = self._clock()
        return self._mutate(lambda uow, pending: segment_ops.create_segment(uow, pending, body, now=now))

    def update_segment(self, segment_id: str, body: SegmentUpdateInput | Mapping[str, Any]) -> Segment:
        body = _coerce(SegmentUpdateInput, body)
        now = self._clock()
        return self._mutate(
            lambda uow, pending: segment_ops.update_segment(uow, pending, segment_id, body, now=now)
        )

    def delete_segment(self, segment_id: str) -> Segment:
        return self._mutate(lambda uow, pending: segment_ops.delete_segment(uow, pending, segment_id))

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------

    def create_person(
        self,
        environment_id: str,
        *,
        user_id: str | None = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> Person:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: people_ops.create_person(
                uow, pending, environment_id, user_id=user_id, attributes=attributes, now=now
            )
        )

    def get_person(self, person_id: str) -> Person | None:
        return self._cached(
            cache_key("getPerson", person_id),
            {PERSON_TAGS.by_id(person_id)},
            Optional[Person],
            lambda uow: people_ops.get_person(uow, person_id),
        )

    def get_person_by_user_id(self, environment_id: str, user_id: str) -> Person | None:
        return self._read(lambda uow: people_ops.get_person_by_user_id(uow, environment_id, user_id))

    def update_person_attributes(self, person_id: str, attributes: Mapping[str, Any]) -> Person:
        return self._mutate(
            lambda uow, pending: people_ops.update_person_attributes(uow, pending, person_id, attributes)
        )

    def record_action(self, person_id: str, action_class_id: str) -> Action:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: people_ops.record_action(uow, pending, person_id, action_class_id, now=now)
        )

    def get_actions_by_person_id(self, person_id: str) -> list[Action]:
        return self._cached(
            cache_key("getActionsByPersonId", person_id),
            {ACTION_TAGS.by_person_id(person_id)},
            list[Action],
            lambda uow: people_ops.get_actions_by_person_id(uow, person_id),
        )

    def create_display(self, survey_id: str, person_id: str | None = None) -> Display:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: people_ops.create_display(uow, pending, survey_id, person_id, now=now)
        )

    def get_displays_by_person_id(self, person_id: str) -> list[Display]:
        return self._cached(
            cache_key("getDisplaysByPersonId", person_id),
            {DISPLAY_TAGS.by_person_id(person_id)},
            list[Display],
            lambda uow: people_ops.get_displays_by_person_id(uow, person_id),
        )

    def create_response(
        self,
        survey_id: str,
        *,
        person_id: str | None = None,
        finished: bool = False,
        data: Mapping[str, Any] | None = None,
    ) -> Response:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: people_ops.create_response(
                uow, pending, survey_id, person_id=person_id, finished=finished, data=data, now=now
            )
        )

    def update_display_response(self, display_id: str, response_id: str) -> Display:
        return self._mutate(
            lambda uow, pending: people_ops.update_display_response(uow, pending, display_id, response_id)
        )

    # ------------------------------------------------------------------
    # Products, environments, action classes, languages
    # ------------------------------------------------------------------

    def create_product(self, name: str, *, recontact_days: int | None = None) -> Product:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: environment_ops.create_product(
                uow, pending, name, recontact_days=recontact_days, now=now
            )
        )

    def create_environment(self, product_id: str, *, type: str = "production") -> Environment:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: environment_ops.create_environment(
                uow, pending, product_id, type=type, now=now  # type: ignore[arg-type]
            )
        )

    def get_product_by_environment_id(self, environment_id: str) -> Product | None:
        return self._cached(
            cache_key("getProductByEnvironmentId", environment_id),
            {PRODUCT_TAGS.by_environment_id(environment_id)},
            Optional[Product],
            lambda uow: environment_ops.get_product_by_environment_id(uow, environment_id),
        )

    def update_product_recontact_days(self, product_id: str, recontact_days: int | None) -> Product:
        return self._mutate(
            lambda uow, pending: environment_ops.update_product_recontact_days(
                uow, pending, product_id, recontact_days
            )
        )

    def create_action_class(
        self,
        environment_id: str,
        name: str,
        *,
        description: str | None = None,
    ) -> ActionClass:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: environment_ops.create_action_class(
                uow, pending, environment_id, name, description=description, now=now
            )
        )

    def get_action_classes(self, environment_id: str) -> list[ActionClass]:
        return self._cached(
            cache_key("getActionClasses", environment_id),
            {ACTION_CLASS_TAGS.by_environment_id(environment_id)},
            list[ActionClass],
            lambda uow: environment_ops.get_action_classes(uow, environment_id),
        )

    def create_language(self, product_id: str, code: str, *, alias: str | None = None) -> Language:
        now = self._clock()
        return self._mutate(
            lambda uow, pending: environment_ops.create_language(
                uow, pending, product_id, code, alias=alias, now=now
            )
        )

    # ------------------------------------------------------------------
    # Migration
    # ------------------------------------------------------------------

    def migrate_web_surveys(self) -> MigrationSummary:
        """Split legacy ``web`` surveys into ``app`` and ``website``.

        Runs as one transaction bounded by ``config.migration_timeout``;
        on failure nothing is applied.
        """
        return self._mutate(
            migration_ops.migrate_web_surveys,
            timeout=self._config.migration_timeout,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Tear down the cache and dispose the store. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._cache.close()
        self._store.close()

    def __enter__(self) -> SurveyService:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SurveyService(db={self._config.db_url or self._config.db_path!r}, closed={self._closed})"

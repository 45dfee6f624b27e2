"""Products, environments, action classes and languages.

These are the fixtures surveys hang off.  The product carries the
product-wide recontact window the eligibility pipeline falls back to.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

from surveykit.cache.tags import ACTION_CLASS_TAGS, LANGUAGE_TAGS, PRODUCT_TAGS
from surveykit.exceptions import InvalidInputError, ResourceNotFoundError
from surveykit.operations.mappers import (
    action_class_from_row,
    environment_from_row,
    language_from_row,
    product_from_row,
)
from surveykit.storage.schema import ActionClassRow, EnvironmentRow, LanguageRow, ProductRow

if TYPE_CHECKING:
    from surveykit.cache.results import PendingInvalidation
    from surveykit.models.environment import ActionClass, Environment, Product
    from surveykit.models.survey import Language
    from surveykit.storage.store import UnitOfWork


def create_product(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    name: str,
    *,
    recontact_days: int | None = None,
    now: datetime,
) -> Product:
    if recontact_days is not None and recontact_days < 0:
        raise InvalidInputError("recontact_days must be >= 0")
    row = ProductRow(id=uuid.uuid4().hex, created_at=now, name=name, recontact_days=recontact_days)
    uow.products.save(row)
    pending.add(PRODUCT_TAGS.for_mutation(id=row.id))
    return product_from_row(row)


def create_environment(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    product_id: str,
    *,
    type: Literal["production", "development"] = "production",
    now: datetime,
) -> Environment:
    if uow.products.get(product_id) is None:
        raise ResourceNotFoundError("Product", product_id)
    row = EnvironmentRow(id=uuid.uuid4().hex, created_at=now, product_id=product_id, type=type)
    uow.products.save(row)
    pending.add(PRODUCT_TAGS.for_mutation(id=product_id, environment_id=row.id))
    return environment_from_row(row)


def get_product_by_environment_id(uow: UnitOfWork, environment_id: str) -> Product | None:
    row = uow.products.get_by_environment_id(environment_id)
    return product_from_row(row) if row is not None else None


def update_product_recontact_days(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    product_id: str,
    recontact_days: int | None,
) -> Product:
    """Change the product-wide recontact window (``None`` disables it)."""
    if recontact_days is not None and recontact_days < 0:
        raise InvalidInputError("recontact_days must be >= 0")
    row = uow.products.get(product_id)
    if row is None:
        raise ResourceNotFoundError("Product", product_id)
    row.recontact_days = recontact_days
    uow.products.save(row)

    pending.add(PRODUCT_TAGS.for_mutation(id=product_id))
    for environment in uow.products.list_environments(product_id):
        pending.add(PRODUCT_TAGS.for_mutation(environment_id=environment.id))
    return product_from_row(row)


def create_action_class(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    environment_id: str,
    name: str,
    *,
    description: str | None = None,
    type: Literal["code", "noCode", "automatic"] = "code",
    no_code_config: dict[str, Any] | None = None,
    now: datetime,
) -> ActionClass:
    """Create an action class. Names are unique within an environment.

    Raises:
        ResourceNotFoundError: If the environment is unknown.
        InvalidInputError: If the name is already taken.
    """
    if uow.products.get_environment(environment_id) is None:
        raise ResourceNotFoundError("Environment", environment_id)
    if uow.action_classes.get_by_name(environment_id, name) is not None:
        raise InvalidInputError(f"Action class {name!r} already exists in environment {environment_id}")
    row = ActionClassRow(
        id=uuid.uuid4().hex,
        created_at=now,
        updated_at=now,
        environment_id=environment_id,
        name=name,
        description=description,
        type=type,
        no_code_config=no_code_config,
    )
    uow.action_classes.save(row)
    pending.add(ACTION_CLASS_TAGS.for_mutation(id=row.id, environment_id=environment_id))
    return action_class_from_row(row)


def get_action_classes(uow: UnitOfWork, environment_id: str) -> list[ActionClass]:
    return [action_class_from_row(row) for row in uow.action_classes.list_by_environment(environment_id)]


def create_language(
    uow: UnitOfWork,
    pending: PendingInvalidation,
    product_id: str,
    code: str,
    *,
    alias: str | None = None,
    now: datetime,
) -> Language:
    if uow.products.get(product_id) is None:
        raise ResourceNotFoundError("Product", product_id)
    row = LanguageRow(
        id=uuid.uuid4().hex,
        created_at=now,
        updated_at=now,
        product_id=product_id,
        code=code,
        alias=alias,
    )
    uow.languages.save(row)
    pending.add(LANGUAGE_TAGS.for_mutation(id=row.id))
    return language_from_row(row)


def get_languages(uow: UnitOfWork, product_id: str) -> list[Language]:
    return [language_from_row(row) for row in uow.languages.list_by_product(product_id)]

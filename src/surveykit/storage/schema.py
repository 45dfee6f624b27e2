"""SQLAlchemy ORM schema for SurveyKit.

Defines all database tables: products, environments, action classes,
languages, segments, surveys (with trigger and language bindings),
people, actions, displays, responses, and _surveykit_meta.

Survey-owned bindings (triggers, languages) cascade on survey deletion.
Displays, actions and responses reference surveys and action classes
by foreign key only.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class UTCDateTime(TypeDecorator):
    """DateTime that always comes back timezone-aware (UTC).

    SQLite drops tzinfo on storage; values are normalized to UTC on the
    way in and re-tagged on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):  # type: ignore[no-untyped-def]
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):  # type: ignore[no-untyped-def]
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    """Base class for all SurveyKit ORM models."""

    pass


class ProductRow(Base):
    """A product. Carries the product-wide recontact window."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    recontact_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class EnvironmentRow(Base):
    __tablename__ = "environments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="production")

    product: Mapped["ProductRow"] = relationship("ProductRow", lazy="joined")


class ActionClassRow(Base):
    """A named event type within an environment."""

    __tablename__ = "action_classes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    environment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("environments.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="code")
    no_code_config: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("environment_id", "name", name="uq_action_classes_env_name"),
    )


class LanguageRow(Base):
    __tablename__ = "languages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    alias: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("product_id", "code", name="uq_languages_product_code"),
    )


class SegmentRow(Base):
    """A targeting rule. Private segments belong to a single survey."""

    __tablename__ = "segments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    environment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("environments.id", ondelete="CASCADE"), nullable=False
    )
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    filters: Mapped[dict] = mapped_column(JSON, nullable=False)

    surveys: Mapped[list["SurveyRow"]] = relationship(
        "SurveyRow", back_populates="segment", lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("environment_id", "title", name="uq_segments_env_title"),
    )


class SurveyRow(Base):
    """A survey and its display policy."""

    __tablename__ = "surveys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="web")
    environment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("environments.id", ondelete="CASCADE"), nullable=False
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    welcome_card: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    questions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    thank_you_card: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    hidden_fields: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    display_option: Mapped[str] = mapped_column(String(30), nullable=False, default="displayOnce")
    recontact_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    auto_close: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    run_on_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    close_on_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    delay: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    display_percentage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    auto_complete: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    redirect_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    single_use: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    pin: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    result_share_key: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)
    inline_triggers: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    segment_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("segments.id", ondelete="SET NULL"), nullable=True
    )

    segment: Mapped[Optional["SegmentRow"]] = relationship(
        "SegmentRow", back_populates="surveys", lazy="joined"
    )
    triggers: Mapped[list["SurveyTriggerRow"]] = relationship(
        "SurveyTriggerRow",
        cascade="all, delete-orphan",
        order_by="SurveyTriggerRow.id",
        lazy="selectin",
    )
    languages: Mapped[list["SurveyLanguageRow"]] = relationship(
        "SurveyLanguageRow",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_surveys_env_created", "environment_id", "created_at"),
        Index("ix_surveys_segment", "segment_id"),
    )


class SurveyTriggerRow(Base):
    """Binding of a survey to an action class that triggers it."""

    __tablename__ = "survey_triggers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    survey_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False
    )
    action_class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("action_classes.id", ondelete="CASCADE"), nullable=False
    )

    action_class: Mapped["ActionClassRow"] = relationship("ActionClassRow", lazy="joined")

    __table_args__ = (
        UniqueConstraint("survey_id", "action_class_id", name="uq_survey_triggers"),
        Index("ix_survey_triggers_action_class", "action_class_id"),
    )


class SurveyLanguageRow(Base):
    """Binding of a language to a survey."""

    __tablename__ = "survey_languages"

    survey_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("surveys.id", ondelete="CASCADE"), primary_key=True
    )
    language_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("languages.id", ondelete="CASCADE"), primary_key=True
    )
    default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    language: Mapped["LanguageRow"] = relationship("LanguageRow", lazy="joined")


class PersonRow(Base):
    __tablename__ = "people"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    environment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("environments.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    attributes: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("environment_id", "user_id", name="uq_people_env_user"),
    )


class ActionRow(Base):
    """One occurrence of an action class by a person."""

    __tablename__ = "actions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    person_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("people.id", ondelete="CASCADE"), nullable=False
    )
    action_class_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("action_classes.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        Index("ix_actions_person_time", "person_id", "created_at"),
    )


class ResponseRow(Base):
    __tablename__ = "responses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    survey_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False
    )
    person_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("people.id", ondelete="SET NULL"), nullable=True
    )
    finished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_responses_survey_time", "survey_id", "created_at"),
    )


class DisplayRow(Base):
    """One presentation of a survey to a person."""

    __tablename__ = "displays"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    person_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("people.id", ondelete="CASCADE"), nullable=True
    )
    survey_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False
    )
    response_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("responses.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        Index("ix_displays_person_time", "person_id", "created_at"),
    )


class SurveyKitMetaRow(Base):
    """Key-value metadata for the SurveyKit database itself (e.g., schema version)."""

    __tablename__ = "_surveykit_meta"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

"""Tests for the SQL repositories."""

from __future__ import annotations

from datetime import timedelta

import pytest

from surveykit.models.survey import SurveyFilterCriteria
from surveykit.storage.schema import (
    ActionClassRow,
    DisplayRow,
    EnvironmentRow,
    PersonRow,
    ProductRow,
    SegmentRow,
    SurveyRow,
    SurveyTriggerRow,
)
from surveykit.storage.store import UnitOfWork

from tests.factories import T0


@pytest.fixture
def uow(session) -> UnitOfWork:
    session.add(ProductRow(id="prod", created_at=T0, name="Acme", recontact_days=7))
    session.add(EnvironmentRow(id="env", created_at=T0, product_id="prod", type="production"))
    session.flush()
    return UnitOfWork(session)


def _survey(id: str, minutes: int = 0, **fields) -> SurveyRow:
    at = T0 + timedelta(minutes=minutes)
    return SurveyRow(id=id, created_at=at, updated_at=at, name=fields.pop("name", id), environment_id="env", **fields)


# ---------------------------------------------------------------------------
# Surveys
# ---------------------------------------------------------------------------


class TestSurveyRepository:
    def test_list_defaults_to_creation_order(self, uow):
        for i, sid in enumerate(["b", "a", "c"]):
            uow.surveys.save(_survey(sid, minutes=i))
        assert [s.id for s in uow.surveys.list_by_environment("env")] == ["b", "a", "c"]

    def test_filter_and_sort(self, uow):
        uow.surveys.save(_survey("s1", 0, name="Churn", status="inProgress", type="app"))
        uow.surveys.save(_survey("s2", 1, name="NPS", status="paused", type="app"))
        uow.surveys.save(_survey("s3", 2, name="nps followup", status="inProgress", type="link"))

        by_name = uow.surveys.list_by_environment("env", criteria=SurveyFilterCriteria(name="nps"))
        assert {s.id for s in by_name} == {"s2", "s3"}

        by_status = uow.surveys.list_by_environment(
            "env", criteria=SurveyFilterCriteria(status=["inProgress"], sort_by="name")
        )
        assert [s.id for s in by_status] == ["s1", "s3"]

        newest = uow.surveys.list_by_environment("env", criteria=SurveyFilterCriteria(sort_by="createdAt"))
        assert [s.id for s in newest] == ["s3", "s2", "s1"]

    def test_pagination(self, uow):
        for i in range(5):
            uow.surveys.save(_survey(f"s{i}", minutes=i))
        page = uow.surveys.list_by_environment("env", limit=2, offset=2)
        assert [s.id for s in page] == ["s2", "s3"]
        assert uow.surveys.count_by_environment("env") == 5

    def test_list_by_action_class(self, uow):
        uow.action_classes.save(
            ActionClassRow(id="ac1", created_at=T0, updated_at=T0, environment_id="env", name="Checkout")
        )
        triggered = _survey("s1")
        triggered.triggers.append(SurveyTriggerRow(action_class_id="ac1"))
        uow.surveys.save(triggered)
        uow.surveys.save(_survey("s2", 1))
        assert [s.id for s in uow.surveys.list_by_action_class("ac1")] == ["s1"]

    def test_result_share_key(self, uow):
        uow.surveys.save(_survey("s1", result_share_key="share"))
        assert uow.surveys.get_by_result_share_key("share").id == "s1"
        assert uow.surveys.get_by_result_share_key("missing") is None


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


class TestSegmentRepository:
    def _segment(self, id: str, title: str, private: bool = True) -> SegmentRow:
        return SegmentRow(
            id=id, created_at=T0, updated_at=T0, title=title,
            environment_id="env", is_private=private, filters={"type": "and", "children": []},
        )

    def test_delete_detaches_surveys(self, uow):
        segment = self._segment("seg1", "shared", private=False)
        uow.segments.save(segment)
        survey = _survey("s1")
        survey.segment = segment
        uow.surveys.save(survey)

        uow.segments.delete(segment)
        assert uow.segments.get("seg1") is None
        assert uow.surveys.get("s1").segment_id is None

    def test_delete_private_by_title(self, uow):
        uow.segments.save(self._segment("seg1", "s1", private=True))
        uow.segments.save(self._segment("seg2", "s2", private=False))
        assert uow.segments.delete_private_by_title("s1") == 1
        assert uow.segments.delete_private_by_title("s2") == 0
        assert uow.segments.get("seg2") is not None


# ---------------------------------------------------------------------------
# People and displays
# ---------------------------------------------------------------------------


class TestDisplayRepository:
    def test_newest_first(self, uow):
        uow.people.save(PersonRow(id="p1", created_at=T0, environment_id="env", attributes={}))
        uow.surveys.save(_survey("s1"))
        for days in (3, 1, 2):
            uow.displays.save(
                DisplayRow(id=f"d{days}", created_at=T0 - timedelta(days=days), person_id="p1", survey_id="s1")
            )
        assert [d.id for d in uow.displays.list_by_person("p1")] == ["d1", "d2", "d3"]


class TestProductRepository:
    def test_lookup_by_environment(self, uow):
        product = uow.products.get_by_environment_id("env")
        assert product.id == "prod"
        assert product.recontact_days == 7
        assert uow.products.get_by_environment_id("nope") is None
        assert [e.id for e in uow.products.list_environments("prod")] == ["env"]

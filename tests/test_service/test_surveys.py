"""Tests for survey CRUD through SurveyService, including cache coherence."""

from __future__ import annotations

from datetime import timedelta

import pytest

from surveykit import SurveyFilterCriteria, SurveyStatus
from surveykit.exceptions import InvalidInputError, ResourceNotFoundError

from tests.factories import T0, survey_body


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreateSurvey:
    def test_create_and_read(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body(triggers=["New Session"]))
        assert len(survey.id) == 32
        assert survey.created_at == T0
        assert survey.triggers == ["New Session"]
        assert survey.status == SurveyStatus.IN_PROGRESS

        fetched = service.get_survey(survey.id)
        assert fetched == survey

    def test_unknown_survey_is_none(self, service):
        assert service.get_survey("missing") is None

    def test_unknown_trigger(self, service, seeded):
        with pytest.raises(InvalidInputError):
            service.create_survey(seeded.environment_id, survey_body(triggers=["Nope"]))
        assert service.get_survey_count(seeded.environment_id) == 0

    def test_triggers_and_inline_triggers_conflict(self, service, seeded):
        body = survey_body(triggers=["New Session"], inline_triggers={"codeConfig": {"identifier": "x"}})
        with pytest.raises(InvalidInputError):
            service.create_survey(seeded.environment_id, body)

    def test_unknown_environment(self, service):
        with pytest.raises(ResourceNotFoundError):
            service.create_survey("nope", survey_body())

    def test_schema_failure_is_invalid_input(self, service, seeded):
        with pytest.raises(InvalidInputError):
            service.create_survey(seeded.environment_id, survey_body(type="hologram"))

    def test_draft_flags_are_stripped(self, service, seeded):
        body = survey_body(questions=[{"id": "q1", "type": "openText", "isDraft": True}])
        survey = service.create_survey(seeded.environment_id, body)
        assert survey.questions == [{"id": "q1", "type": "openText"}]

    def test_web_survey_drops_thank_you_button(self, service, seeded):
        card = {"enabled": True, "buttonLabel": {"default": "Go"}, "buttonLink": "https://example.com"}
        web = service.create_survey(seeded.environment_id, survey_body(type="web", thank_you_card=card))
        app = service.create_survey(seeded.environment_id, survey_body(type="app", thank_you_card=card))
        assert web.thank_you_card == {"enabled": True}
        assert app.thank_you_card == card

    def test_future_run_date_schedules(self, service, seeded):
        body = survey_body(run_on_date=(T0 + timedelta(days=2)).isoformat())
        assert service.create_survey(seeded.environment_id, body).status == SurveyStatus.SCHEDULED

    def test_languages(self, service, seeded):
        en = service.create_language(seeded.product_id, "en")
        de = service.create_language(seeded.product_id, "de", alias="German")
        body = survey_body(languages=[
            {"language_id": en.id, "default": True},
            {"language_id": de.id},
        ])
        survey = service.create_survey(seeded.environment_id, body)
        assert {lang.language.code: lang.default for lang in survey.languages} == {"en": True, "de": False}

    def test_unknown_language(self, service, seeded):
        with pytest.raises(ResourceNotFoundError):
            service.create_survey(seeded.environment_id, survey_body(languages=[{"language_id": "nope"}]))


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------


class TestListSurveys:
    def test_filters_and_pagination(self, service, seeded, clock):
        for name, status in [("Churn", "inProgress"), ("NPS", "paused"), ("NPS 2", "inProgress")]:
            service.create_survey(seeded.environment_id, survey_body(name=name, status=status))
            clock.advance(minutes=1)

        env = seeded.environment_id
        assert [s.name for s in service.get_surveys(env)] == ["Churn", "NPS", "NPS 2"]
        assert [s.name for s in service.get_surveys(env, limit=1, offset=1)] == ["NPS"]

        criteria = SurveyFilterCriteria(name="nps", status=[SurveyStatus.IN_PROGRESS])
        assert [s.name for s in service.get_surveys(env, filter_criteria=criteria)] == ["NPS 2"]
        assert service.get_survey_count(env) == 3

    def test_list_sees_new_survey(self, service, seeded):
        env = seeded.environment_id
        assert service.get_surveys(env) == []
        assert service.get_survey_count(env) == 0
        service.create_survey(env, survey_body())
        assert len(service.get_surveys(env)) == 1
        assert service.get_survey_count(env) == 1

    def test_by_action_class_sees_new_trigger(self, service, seeded):
        checkout = seeded.action_class_ids["Checkout"]
        assert service.get_surveys_by_action_class_id(checkout) == []
        survey = service.create_survey(seeded.environment_id, survey_body(triggers=["Checkout"]))
        assert [s.id for s in service.get_surveys_by_action_class_id(checkout)] == [survey.id]
        assert [s.id for s in service.get_surveys_by_action_class_id(checkout, page=1)] == [survey.id]
        assert service.get_surveys_by_action_class_id(checkout, page=2) == []

    def test_result_share_key(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        assert service.get_survey_id_by_result_share_key("share-me") is None
        service.update_survey(survey.model_copy(update={"result_share_key": "share-me"}))
        assert service.get_survey_id_by_result_share_key("share-me") == survey.id


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


class TestUpdateSurvey:
    def test_read_after_write(self, service, seeded, clock):
        survey = service.create_survey(seeded.environment_id, survey_body())
        assert service.get_survey(survey.id).name == "NPS"

        clock.advance(hours=1)
        updated = service.update_survey(survey.model_copy(update={"name": "NPS v2"}))
        assert updated.updated_at == T0 + timedelta(hours=1)
        assert service.get_survey(survey.id).name == "NPS v2"
        assert service.get_surveys(seeded.environment_id)[0].name == "NPS v2"

    def test_trigger_diff(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body(triggers=["New Session"]))
        new_session = seeded.action_class_ids["New Session"]
        checkout = seeded.action_class_ids["Checkout"]
        assert len(service.get_surveys_by_action_class_id(new_session)) == 1

        updated = service.update_survey(survey.model_copy(update={"triggers": ["Checkout"]}))
        assert updated.triggers == ["Checkout"]
        assert service.get_surveys_by_action_class_id(new_session) == []
        assert len(service.get_surveys_by_action_class_id(checkout)) == 1

    def test_unknown_trigger_rolls_back(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        with pytest.raises(InvalidInputError):
            service.update_survey(survey.model_copy(update={"name": "X", "triggers": ["Nope"]}))
        assert service.get_survey(survey.id).name == "NPS"

    def test_status_reconciled_with_run_date(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        future = survey.model_copy(update={"run_on_date": T0 + timedelta(days=1)})
        assert service.update_survey(future).status == SurveyStatus.SCHEDULED

        due = future.model_copy(update={"status": SurveyStatus.SCHEDULED, "run_on_date": T0 - timedelta(days=1)})
        assert service.update_survey(due).status == SurveyStatus.IN_PROGRESS

    def test_single_language_drops_bindings(self, service, seeded):
        en = service.create_language(seeded.product_id, "en")
        de = service.create_language(seeded.product_id, "de")
        survey = service.create_survey(seeded.environment_id, survey_body(languages=[
            {"language_id": en.id, "default": True},
            {"language_id": de.id},
        ]))
        only_en = survey.model_copy(update={"languages": survey.languages[:1]})
        assert service.update_survey(only_en).languages == []

    def test_switch_default_language(self, service, seeded):
        en = service.create_language(seeded.product_id, "en")
        de = service.create_language(seeded.product_id, "de")
        survey = service.create_survey(seeded.environment_id, survey_body(languages=[
            {"language_id": en.id, "default": True},
            {"language_id": de.id},
        ]))
        swapped = [
            lang.model_copy(update={"default": lang.language.code == "de"}) for lang in survey.languages
        ]
        updated = service.update_survey(survey.model_copy(update={"languages": swapped}))
        assert {lang.language.code: lang.default for lang in updated.languages} == {"en": False, "de": True}

    def test_unknown_survey(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        with pytest.raises(ResourceNotFoundError):
            service.update_survey(survey.model_copy(update={"id": "missing"}))

    def test_unknown_display_option_rejected(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        with pytest.raises(InvalidInputError):
            service.update_survey({**survey.model_dump(), "display_option": "displaySometimes"})
        assert service.get_survey(survey.id).display_option == "displayOnce"

    def test_unknown_display_option_rejected_on_create(self, service, seeded):
        with pytest.raises(InvalidInputError):
            service.create_survey(seeded.environment_id, survey_body(display_option="displaySometimes"))

    def test_replaced_private_segment_is_deleted(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        private = service.create_segment({
            "environment_id": seeded.environment_id,
            "title": survey.id,
            "survey_id": survey.id,
        })
        shared = service.create_segment({
            "environment_id": seeded.environment_id,
            "title": "Pro users",
            "is_private": False,
        })

        current = service.get_survey(survey.id)
        updated = service.update_survey(current.model_copy(update={"segment": shared}))
        assert updated.segment.id == shared.id
        assert service.get_segment(shared.id).surveys == [survey.id]
        with pytest.raises(ResourceNotFoundError):
            service.get_segment(private.id)

    def test_replaced_shared_segment_is_kept(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        first = service.create_segment({
            "environment_id": seeded.environment_id,
            "title": "Pro users",
            "is_private": False,
            "survey_id": survey.id,
        })
        second = service.create_segment({
            "environment_id": seeded.environment_id,
            "title": "Free users",
            "is_private": False,
        })

        current = service.get_survey(survey.id)
        service.update_survey(current.model_copy(update={"segment": second}))
        assert service.get_segment(first.id).surveys == []
        assert service.get_survey(survey.id).segment.id == second.id


# ---------------------------------------------------------------------------
# Delete and duplicate
# ---------------------------------------------------------------------------


class TestDeleteSurvey:
    def test_delete(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body(triggers=["Checkout"]))
        assert service.get_survey(survey.id) is not None

        deleted = service.delete_survey(survey.id)
        assert deleted.id == survey.id
        assert service.get_survey(survey.id) is None
        assert service.get_surveys_by_action_class_id(seeded.action_class_ids["Checkout"]) == []

    def test_private_segment_deleted(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        segment = service.create_segment({
            "environment_id": seeded.environment_id,
            "title": survey.id,
            "filters": {"attribute": "plan", "op": "equals", "value": "pro"},
            "survey_id": survey.id,
        })
        service.delete_survey(survey.id)
        with pytest.raises(ResourceNotFoundError):
            service.get_segment(segment.id)

    def test_shared_segment_kept(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        segment = service.create_segment({
            "environment_id": seeded.environment_id,
            "title": "Pro users",
            "is_private": False,
            "filters": {"attribute": "plan", "op": "equals", "value": "pro"},
            "survey_id": survey.id,
        })
        assert service.get_segment(segment.id).surveys == [survey.id]
        service.delete_survey(survey.id)
        assert service.get_segment(segment.id).surveys == []

    def test_unknown_survey(self, service):
        with pytest.raises(ResourceNotFoundError):
            service.delete_survey("missing")


class TestDuplicateSurvey:
    def test_copy_is_a_draft(self, service, seeded):
        source = service.create_survey(seeded.environment_id, survey_body(triggers=["Checkout"]))
        service.update_survey(source.model_copy(update={"result_share_key": "shared"}))

        copy = service.duplicate_survey(seeded.environment_id, source.id, user_id="u1")
        assert copy.id != source.id
        assert copy.name == "NPS (copy)"
        assert copy.status == SurveyStatus.DRAFT
        assert copy.created_by == "u1"
        assert copy.result_share_key is None
        assert copy.triggers == ["Checkout"]
        assert copy.questions == source.questions
        assert service.get_survey_count(seeded.environment_id) == 2

    def test_private_segment_is_copied(self, service, seeded):
        source = service.create_survey(seeded.environment_id, survey_body())
        segment = service.create_segment({
            "environment_id": seeded.environment_id,
            "title": source.id,
            "filters": {"attribute": "plan", "op": "equals", "value": "pro"},
            "survey_id": source.id,
        })
        copy = service.duplicate_survey(seeded.environment_id, source.id)
        assert copy.segment.id != segment.id
        assert copy.segment.title == copy.id
        assert copy.segment.is_private
        assert copy.segment.filters == service.get_segment(segment.id).filters

    def test_shared_segment_is_reused(self, service, seeded):
        source = service.create_survey(seeded.environment_id, survey_body())
        segment = service.create_segment({
            "environment_id": seeded.environment_id,
            "title": "Pro users",
            "is_private": False,
            "survey_id": source.id,
        })
        copy = service.duplicate_survey(seeded.environment_id, source.id)
        assert copy.segment.id == segment.id
        assert sorted(service.get_segment(segment.id).surveys) == sorted([source.id, copy.id])

    def test_unknown_survey(self, service, seeded):
        with pytest.raises(ResourceNotFoundError):
            service.duplicate_survey(seeded.environment_id, "missing")


class TestLoadNewSegment:
    def test_switches_segment(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        shared = service.create_segment({
            "environment_id": seeded.environment_id,
            "title": "Pro users",
            "is_private": False,
        })
        assert service.get_segment(shared.id).surveys == []
        assert service.get_surveys_by_segment_id(shared.id) == []

        updated = service.load_new_segment_in_survey(survey.id, shared.id)
        assert updated.segment.id == shared.id
        assert service.get_survey(survey.id).segment.id == shared.id
        assert service.get_segment(shared.id).surveys == [survey.id]
        assert [s.id for s in service.get_surveys_by_segment_id(shared.id)] == [survey.id]

    def test_unknown_segment(self, service, seeded):
        survey = service.create_survey(seeded.environment_id, survey_body())
        with pytest.raises(ResourceNotFoundError):
            service.load_new_segment_in_survey(survey.id, "missing")

"""Survey eligibility pipeline.

Given the candidate surveys of an environment and one person's history,
decide which surveys that person may be shown right now.  Each stage is
a filter over the previous stage's survivors:

1. status -- only ``inProgress`` surveys are candidates;
2. display option -- how often the same survey may be shown;
3. recontact window -- how long since the person last saw a survey;
4. segment -- whether the person matches the survey's targeting rule.

The pipeline stops as soon as no candidates remain.  Survivors keep the
order they were given in.

Everything here is pure: the store reads happen in
``surveykit.operations.sync`` and are passed in.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Sequence

from surveykit.exceptions import ConfigurationError
from surveykit.models.survey import DisplayOption, Survey, SurveyStatus

if TYPE_CHECKING:
    from surveykit.models.person import Display
    from surveykit.segments.evaluator import SegmentContext
    from surveykit.segments.modes import EvaluationMode

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


def diff_in_days(a: datetime, b: datetime) -> int:
    """Whole days between two instants, ignoring direction."""
    if a.tzinfo is None:
        a = a.replace(tzinfo=timezone.utc)
    if b.tzinfo is None:
        b = b.replace(tzinfo=timezone.utc)
    return math.floor(abs((a - b).total_seconds()) / _SECONDS_PER_DAY)


def display_option_of(survey: Survey) -> DisplayOption:
    """Parse a survey's stored display option.

    Raises:
        ConfigurationError: If the stored value is not a known option.
    """
    try:
        return DisplayOption(survey.display_option)
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid display option {survey.display_option!r} on survey {survey.id}"
        ) from exc


def passes_display_option(survey: Survey, displays: Sequence[Display]) -> bool:
    option = display_option_of(survey)
    if option is DisplayOption.RESPOND_MULTIPLE:
        return True
    if option is DisplayOption.DISPLAY_ONCE:
        return not any(d.survey_id == survey.id for d in displays)
    # displayMultiple: shown until the person responds once
    return not any(d.survey_id == survey.id and d.response_id is not None for d in displays)


def passes_recontact(
    survey: Survey,
    displays: Sequence[Display],
    product_recontact_days: int | None,
    now: datetime,
) -> bool:
    """Check the recontact window.

    *displays* must be ordered newest first.  A survey's own
    ``recontact_days`` is measured from the last display of that survey;
    the product default is measured from the last display of any survey.
    """
    if not displays:
        return True
    if survey.recontact_days is not None:
        last_of_survey = next((d for d in displays if d.survey_id == survey.id), None)
        if last_of_survey is None:
            return True
        return diff_in_days(now, last_of_survey.created_at) >= survey.recontact_days
    if product_recontact_days is not None:
        return diff_in_days(now, displays[0].created_at) >= product_recontact_days
    return True


@dataclass(frozen=True)
class EligibilityPipeline:
    """The four eligibility stages bound to one person and one request.

    Args:
        displays: The person's displays, newest first.
        product_recontact_days: Product-wide recontact window, or None.
        mode: Segment evaluation mode for this request.
        load_context: Builds the person's segment context.  Only called
            when a surviving survey carries a segment.
        now: Reference time for recontact windows.
    """

    displays: Sequence[Display]
    product_recontact_days: int | None
    mode: EvaluationMode
    load_context: Callable[[], SegmentContext]
    now: datetime

    def run(self, candidates: Sequence[Survey]) -> list[Survey]:
        surveys = [s for s in candidates if s.status == SurveyStatus.IN_PROGRESS]
        if not surveys:
            return []

        surveys = [s for s in surveys if passes_display_option(s, self.displays)]
        if not surveys:
            return []

        surveys = [
            s
            for s in surveys
            if passes_recontact(s, self.displays, self.product_recontact_days, self.now)
        ]
        if not surveys:
            return []

        if not any(s.segment is not None for s in surveys):
            return surveys

        context = self.load_context()
        eligible = [
            s
            for s in surveys
            if s.segment is None or self.mode.is_eligible(context, s.segment.filters)
        ]
        logger.debug(
            "%d of %d candidate surveys eligible for person %s",
            len(eligible),
            len(candidates),
            context.person_id,
        )
        return eligible

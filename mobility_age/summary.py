from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from .engine import round_half_up
from .errors import MissingFieldError
from .models import AssessmentOutcome, AssessmentRecord


def overall_mobility_age(outcomes: Sequence[AssessmentOutcome]) -> Optional[int]:
    """Mean of the per-pose mobility ages, rounded half-up; None when empty."""
    if not outcomes:
        return None
    return round_half_up(sum(o.mobility_age for o in outcomes) / len(outcomes))


def build_assessment_record(
    outcomes: Sequence[AssessmentOutcome],
    biological_age: int,
    *,
    date: Optional[datetime] = None,
) -> AssessmentRecord:
    """Collapse a finished session into the record kept by the history store.

    A pose scored twice (e.g. after a retake) keeps its latest outcome.
    """
    if not outcomes:
        raise MissingFieldError('Cannot build an assessment record without pose outcomes')
    latest = {o.pose_kind: o for o in outcomes}
    overall = overall_mobility_age(list(latest.values()))
    payload = {
        'biological_age': biological_age,
        'pose_ages': {pose: o.mobility_age for pose, o in latest.items()},
        'overall_mobility_age': overall,
    }
    if date is not None:
        payload['date'] = date
    return AssessmentRecord(**payload)


__all__ = ["overall_mobility_age", "build_assessment_record"]

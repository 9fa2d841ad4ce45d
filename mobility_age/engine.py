"""Mobility age scoring.

``MobilityScoreEngine.parse_report`` converts one generator report plus the
subject's biological age into a bounded mobility age:

1. measurements outside the clinical range add an age penalty (severe 15y,
   moderate 10y), multiplied by the form multiplier (good 1x, poor 2x);
2. poor form adds a flat 10y; the summed penalty is capped at 25y;
3. measurement age = biological age + capped penalty;
4. measurement age and the report's own estimate are blended with weights
   ``0.4 * reliability`` and ``0.6 * confidence``;
5. poor form never scores younger than the biological age; the result is
   rounded half-up and clamped to [18, 100].

The engine keeps no state between calls.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Any, Dict, List, Optional

from .constants import DEFAULT_SCORING_CONFIG, ScoringConfig
from .errors import (
    BlendUndefinedError,
    MalformedSectionWarning,
    MissingFieldError,
    MobilityAgeError,
    ReportParseError,
    RetryableInputError,
)
from .models import AssessmentOutcome, Deficiency, FormQuality, ParsedReport, PoseKind
from .parser import ReportParser, TextReportParser, is_retry_report, retry_reason, states_unreadable
from .poses import resolve_pose

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _validate_age(biological_age: Any) -> int:
    if isinstance(biological_age, bool) or not isinstance(biological_age, (int, float)):
        raise MissingFieldError(f'biological_age must be a positive integer, got {biological_age!r}')
    if isinstance(biological_age, float):
        if not biological_age.is_integer():
            raise MissingFieldError(f'biological_age must be a whole number, got {biological_age!r}')
        biological_age = int(biological_age)
    if biological_age <= 0:
        raise MissingFieldError(f'biological_age must be positive, got {biological_age!r}')
    return biological_age


def _is_empty(parsed: ParsedReport) -> bool:
    return (
        parsed.measurements is None
        and parsed.physiotherapist_estimate is None
        and parsed.confidence is None
        and parsed.form is None
        and not parsed.feedback
        and not parsed.recommendations
        and not parsed.exercises
    )


class MobilityScoreEngine:
    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        parser: Optional[ReportParser] = None,
    ) -> None:
        self.config = config or DEFAULT_SCORING_CONFIG
        self.parser = parser or TextReportParser()

    def parse_report(self, report_text: str, pose_kind: Any, biological_age: Any) -> AssessmentOutcome:
        """Parse a generator report and score it.

        Raises:
            MissingFieldError: report text, pose or biological age missing/invalid.
            RetryableInputError: the generator declined to assess the image.
            ReportParseError: the parser failed unexpectedly.
            BlendUndefinedError: no reliable measurements and zero confidence.
        """
        if not isinstance(report_text, str):
            raise MissingFieldError('report_text is required')
        pose = resolve_pose(pose_kind)
        age = _validate_age(biological_age)

        if is_retry_report(report_text):
            raise RetryableInputError(retry_reason(report_text))

        try:
            parsed = self.parser.parse(report_text)
        except MobilityAgeError:
            raise
        except Exception as exc:
            raise ReportParseError(f'Unexpected failure parsing report: {exc}', report_text) from exc

        if _is_empty(parsed) and states_unreadable(report_text):
            raise RetryableInputError(report_text)

        return self.score(parsed, pose, age)

    def score(self, parsed: ParsedReport, pose_kind: Any, biological_age: Any) -> AssessmentOutcome:
        """Score an already parsed report (no text handling)."""
        cfg = self.config
        pose = resolve_pose(pose_kind)
        age = _validate_age(biological_age)

        notes = self._absorb_issues(parsed, pose)

        estimate = parsed.physiotherapist_estimate if parsed.physiotherapist_estimate is not None else age
        confidence = parsed.confidence if parsed.confidence is not None else cfg.default_confidence
        form = parsed.form or FormQuality.poor
        multiplier = cfg.form_multipliers[form]

        expected = tuple(cfg.expected_measurements.get(pose, ()))
        observed: Dict[str, float] = parsed.measurements.observed() if parsed.measurements is not None else {}

        deficiencies = self._deficiencies(pose, expected, observed, multiplier)
        raw_penalty = sum(d.penalty for d in deficiencies)
        if form is FormQuality.poor:
            raw_penalty += cfg.poor_form_penalty
        total_penalty = min(raw_penalty, cfg.penalty_cap)

        applied = total_penalty * multiplier if cfg.double_form_multiplier else total_penalty
        measurement_age = age + applied

        if parsed.measurements is None or not expected:
            reliability = 0.0
        else:
            reliability = sum(1 for name in expected if name in observed) / len(expected)

        w_measure = cfg.measurement_weight * reliability
        w_estimate = cfg.estimate_weight * confidence
        weight_sum = w_measure + w_estimate
        if weight_sum <= 0:
            raise BlendUndefinedError(
                f'Cannot blend {pose.value}: no pose measurements observed and confidence is {confidence}'
            )
        blended = (w_measure * measurement_age + w_estimate * estimate) / weight_sum

        if form is FormQuality.poor and cfg.age_floor_on_poor_form:
            blended = max(blended, float(age))
        mobility_age = min(cfg.max_age, max(cfg.min_age, round_half_up(blended)))

        logger.debug(
            "Scored %s: bio=%s estimate=%s conf=%.2f reliability=%.2f penalty=%.1f blended=%.2f -> %s",
            pose.value, age, estimate, confidence, reliability, total_penalty, blended, mobility_age,
        )

        return AssessmentOutcome(
            pose_kind=pose,
            biological_age=age,
            mobility_age=mobility_age,
            measurement_reliability=reliability,
            physiotherapist_estimate=estimate,
            confidence=confidence,
            measurement_age=measurement_age,
            total_penalty=total_penalty,
            deficiencies=deficiencies,
            measurements=parsed.measurements,
            feedback=parsed.feedback,
            recommendations=list(parsed.recommendations),
            is_good_form=form is FormQuality.good,
            exercises=list(parsed.exercises),
            warnings=notes,
        )

    def _deficiencies(
        self,
        pose: PoseKind,
        expected: tuple,
        observed: Dict[str, float],
        multiplier: float,
    ) -> List[Deficiency]:
        ranges = self.config.reference_ranges.get(pose, {})
        out: List[Deficiency] = []
        for name in expected:
            value = observed.get(name)
            reference = ranges.get(name)
            if value is None or reference is None:
                continue
            severity = reference.severity(value)
            if severity is None:
                continue
            out.append(Deficiency(
                measurement=name,
                value=value,
                severity=severity,
                penalty=self.config.severity_penalties[severity] * multiplier,
            ))
        return out

    @staticmethod
    def _absorb_issues(parsed: ParsedReport, pose: PoseKind) -> List[str]:
        notes: List[str] = []
        for issue in parsed.issues:
            message = f'{pose.value}: {issue} missing or malformed; using default'
            logger.debug("%s", message)
            warnings.warn(message, MalformedSectionWarning, stacklevel=3)
            notes.append(message)
        return notes


__all__ = ["MobilityScoreEngine", "round_half_up"]

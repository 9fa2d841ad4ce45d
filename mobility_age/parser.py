"""Parsers that turn a report generator's output into a ``ParsedReport``.

The text parser targets the section layout requested by
``poses.build_report_prompt``::

    Measurements:
    - Hip Angle: 90°
    Mobility Assessment:
    Estimated Mobility Age: 40
    Confidence Level: 0.7
    Form: poor
    Assessment: ...
    Recommendations:
    - ...
    Exercise 1:
    Name: ...

Every extraction is optional. A missing or unreadable value is left as ``None``
and its section name is appended to ``ParsedReport.issues``; the engine decides
the defaults.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .errors import ReportParseError
from .models import Exercise, FormQuality, MeasurementSet, ParsedReport

logger = logging.getLogger(__name__)


_RETRY_RE = re.compile(r'^\s*retry\s*:', re.IGNORECASE)
_UNREADABLE_RE = re.compile(
    r"\b(unable|cannot|can't|can not|could not|couldn't|not able)\b[^.\n]{0,40}"
    r"\b(assess|see|analy[sz]e|evaluate|make out)\b",
    re.IGNORECASE,
)
_NUMBER_RE = re.compile(r'-?\d+(?:\.\d+)?')
_RATIO_RE = re.compile(r'(?P<num>\d+(?:\.\d+)?)\s*(?:/|out of)\s*(?P<den>\d+(?:\.\d+)?)', re.IGNORECASE)

_HEADER_RE = re.compile(
    r'^(?P<name>measurements|mobility assessment|assessment|feedback|recommendations|form'
    r'|specific exercises|exercise\s*\d+)\s*:\s*(?P<rest>.*)$',
    re.IGNORECASE,
)
_ESTIMATE_RE = re.compile(r'^\s*(?:estimated\s+)?mobility\s+age\s*:\s*(?P<value>.*)$', re.IGNORECASE | re.MULTILINE)
_LEGACY_AGE_RE = re.compile(r'^\s*age\s*:\s*(?P<value>.*)$', re.IGNORECASE | re.MULTILINE)
_CONFIDENCE_RE = re.compile(r'^\s*confidence(?:\s+level)?\s*:\s*(?P<value>.*)$', re.IGNORECASE | re.MULTILINE)
_FORM_RE = re.compile(r'^\s*form(?:\s+quality)?\s*:\s*(?P<value>.*)$', re.IGNORECASE | re.MULTILINE)

_BULLET_RE = re.compile(r'^(?:[-*•]+|\d+[.)])\s*')
_PAREN_RE = re.compile(r'\([^)]*\)|\[[^\]]*\]')

# Checked in order: "knee to wall distance" must map to wall_distance, not knee_angle.
_MEASUREMENT_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('wall_distance', ('wall',)),
    ('finger_gap', ('finger', 'gap', 'fingertip')),
    ('hip_angle', ('hip',)),
    ('knee_angle', ('knee',)),
    ('ankle_angle', ('ankle', 'dorsiflexion')),
    ('shoulder_angle', ('shoulder',)),
    ('elbow_angle', ('elbow',)),
)
_DISTANCE_FIELDS = {'wall_distance', 'finger_gap'}


def is_retry_report(text: Optional[str]) -> bool:
    return bool(text) and _RETRY_RE.match(text) is not None


def retry_reason(text: str) -> str:
    """Text after the ``RETRY:`` sentinel."""
    return _RETRY_RE.sub('', text, count=1).strip()


def states_unreadable(text: Optional[str]) -> bool:
    """True when free text says the image could not be assessed."""
    return bool(text) and _UNREADABLE_RE.search(text) is not None


def normalise_confidence(raw: Any) -> Optional[float]:
    """Accept 0..1 fractions, ratios ("8/10") or percentages ("70%", 70).

    A bare number between 1 and 10 is ambiguous (a 1-10 scale or a tiny
    percentage) and comes back as None, like any other unreadable value.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        percent = False
    else:
        text = str(raw)
        ratio = _RATIO_RE.search(text)
        if ratio is not None:
            denominator = float(ratio.group('den'))
            if denominator <= 0:
                return None
            value = float(ratio.group('num')) / denominator
            return value if 0.0 <= value <= 1.0 else None
        match = _NUMBER_RE.search(text)
        if match is None:
            return None
        value = float(match.group(0))
        percent = '%' in text
    if value < 0.0:
        return None
    if value > 1.0 and not percent and value < 10.0:
        return None
    if percent or value > 1.0:
        if value > 100.0:
            return None
        value /= 100.0
    return value


def _parse_age(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        match = _NUMBER_RE.search(str(raw))
        if match is None:
            return None
        value = float(match.group(0))
    if value <= 0:
        return None
    return int(value + 0.5)


def _parse_form(raw: Optional[str]) -> Optional[FormQuality]:
    if raw is None:
        return None
    text = raw.strip().lower()
    if 'needs improvement' in text or 'poor' in text or 'bad' in text:
        return FormQuality.poor
    if text.startswith('good') or text.startswith('acceptable'):
        return FormQuality.good
    return None


def _clean_line(line: str) -> str:
    return line.strip().lstrip('#').strip().replace('**', '').replace('__', '')


class ReportParser:
    """Interface for turning raw generator output into a ``ParsedReport``."""

    def parse(self, report_text: str) -> ParsedReport:
        raise NotImplementedError


class TextReportParser(ReportParser):
    """Regex parser for the plain-text section layout."""

    def parse(self, report_text: str) -> ParsedReport:
        sections = self._split_sections(report_text)
        text = '\n'.join(_clean_line(line) for line in report_text.splitlines())
        issues: List[str] = []

        measurements = self._parse_measurements(sections.get('measurements'))
        if measurements is None:
            issues.append('measurements')

        estimate = self._search(text, _ESTIMATE_RE)
        if estimate is None:
            # older prompt layout used a bare "Age:" line
            estimate = self._search(text, _LEGACY_AGE_RE)
        physio_estimate = _parse_age(estimate)
        if physio_estimate is None:
            issues.append('estimated mobility age')

        confidence = normalise_confidence(self._search(text, _CONFIDENCE_RE))
        if confidence is None:
            issues.append('confidence level')

        form = _parse_form(self._search(text, _FORM_RE))
        if form is None:
            issues.append('form')

        feedback_lines = sections.get('assessment') or sections.get('feedback') or []
        feedback = ' '.join(line for line in feedback_lines if line)

        recommendations = [
            _BULLET_RE.sub('', line).strip()
            for line in sections.get('recommendations', [])
            if _BULLET_RE.sub('', line).strip()
        ]

        return ParsedReport(
            measurements=measurements,
            physiotherapist_estimate=physio_estimate,
            confidence=confidence,
            form=form,
            feedback=feedback,
            recommendations=recommendations,
            exercises=self._parse_exercises(sections),
            issues=issues,
        )

    @staticmethod
    def _search(text: str, pattern: re.Pattern) -> Optional[str]:
        match = pattern.search(text)
        if match is None:
            return None
        return match.group('value').replace('**', '').strip()

    @staticmethod
    def _split_sections(text: str) -> Dict[str, List[str]]:
        sections: Dict[str, List[str]] = {}
        current: Optional[str] = None
        for raw in text.splitlines():
            line = _clean_line(raw)
            header = _HEADER_RE.match(line)
            if header is not None:
                current = re.sub(r'\s+', ' ', header.group('name').lower())
                current = re.sub(r'^exercise\s*(\d+)$', r'exercise \1', current)
                sections.setdefault(current, [])
                rest = header.group('rest').strip()
                if rest:
                    sections[current].append(rest)
                continue
            if current is not None and line:
                sections[current].append(line)
        return sections

    @staticmethod
    def _parse_measurements(lines: Optional[List[str]]) -> Optional[MeasurementSet]:
        if lines is None:
            return None
        values: Dict[str, float] = {}
        for line in lines:
            label, sep, raw_value = _BULLET_RE.sub('', line).partition(':')
            if not sep:
                continue
            # "Ankle Angle (knee over toe)": the qualifier does not name the joint
            label = _PAREN_RE.sub('', label).lower()
            key = next(
                (name for name, words in _MEASUREMENT_KEYWORDS if any(w in label for w in words)),
                None,
            )
            if key is None or key in values:
                continue
            number = _NUMBER_RE.search(raw_value)
            if number is None:
                # "not visible", "n/a": not observed
                continue
            value = float(number.group(0))
            if key in _DISTANCE_FIELDS:
                unit = raw_value[number.end():].strip().lower()
                if unit.startswith('mm'):
                    value /= 10.0
                elif unit.startswith('in') or unit.startswith('"'):
                    value *= 2.54
            values[key] = value
        return MeasurementSet(**values)

    @staticmethod
    def _parse_exercises(sections: Dict[str, List[str]]) -> List[Exercise]:
        keys = sorted(
            (k for k in sections if k.startswith('exercise ')),
            key=lambda k: int(k.split()[1]),
        )
        exercises: List[Exercise] = []
        for key in keys:
            fields: Dict[str, str] = {}
            for line in sections[key]:
                label, sep, value = _BULLET_RE.sub('', line).partition(':')
                if sep:
                    fields[label.strip().lower()] = value.strip()
            name = fields.get('name')
            if not name:
                logger.debug("Skipping %s without a name", key)
                continue
            exercises.append(Exercise(
                name=name,
                description=fields.get('description', ''),
                difficulty=fields.get('difficulty', ''),
                sets=fields.get('sets'),
                reps=fields.get('reps'),
                target_muscles=_split_muscles(fields.get('target muscles', '')),
            ))
        return exercises


def _split_muscles(raw: str) -> List[str]:
    parts = re.split(r',|;|/|\band\b', raw)
    return [p.strip() for p in parts if p.strip()]


# -------- Structured (JSON) responses -------- #


class StructuredReport(BaseModel):
    """JSON object a schema-constrained generator returns instead of text."""

    model_config = ConfigDict(extra='ignore')

    measurements: Optional[MeasurementSet] = None
    # "40 years" and "70%" are read by the same helpers as the text layout
    estimated_mobility_age: Optional[Any] = Field(
        None, validation_alias=AliasChoices('estimated_mobility_age', 'estimatedMobilityAge', 'mobilityAge')
    )
    confidence: Optional[Any] = Field(
        None, validation_alias=AliasChoices('confidence', 'confidence_level', 'confidenceLevel')
    )
    form: Optional[str] = None
    is_good_form: Optional[bool] = Field(None, validation_alias=AliasChoices('is_good_form', 'isGoodForm'))
    feedback: str = ''
    recommendations: List[str] = Field(default_factory=list)
    exercises: List[Exercise] = Field(default_factory=list)


def _strip_fences(raw: str) -> str:
    text = raw.strip()
    if text.startswith('```'):
        text = text.strip('`')
        if text.lower().startswith('json'):
            text = text[4:].strip()
    return text


class JsonReportParser(ReportParser):
    """Parser for schema-validated JSON responses."""

    def parse(self, report_text: str) -> ParsedReport:
        payload = self._load(report_text)
        if payload is None:
            return ParsedReport(issues=['measurements', 'estimated mobility age', 'confidence level', 'form'])
        try:
            report = StructuredReport.model_validate(payload)
        except ValidationError as exc:
            raise ReportParseError('Structured report validation failed', report_text) from exc

        if report.form is not None:
            form = _parse_form(report.form)
        elif report.is_good_form is not None:
            form = FormQuality.good if report.is_good_form else FormQuality.poor
        else:
            form = None

        estimate = _parse_age(report.estimated_mobility_age)
        confidence = normalise_confidence(report.confidence)
        issues = [
            name for name, value in (
                ('measurements', report.measurements),
                ('estimated mobility age', estimate),
                ('confidence level', confidence),
                ('form', form),
            ) if value is None
        ]
        return ParsedReport(
            measurements=report.measurements,
            physiotherapist_estimate=estimate,
            confidence=confidence,
            form=form,
            feedback=report.feedback,
            recommendations=report.recommendations,
            exercises=report.exercises,
            issues=issues,
        )

    @staticmethod
    def _load(report_text: str) -> Optional[Dict[str, Any]]:
        text = _strip_fences(report_text)
        try:
            data = json.loads(text)
        except ValueError:
            try:
                start = text.index('{')
                end = text.rindex('}') + 1
                data = json.loads(text[start:end])
            except ValueError:
                logger.debug("Report is not JSON")
                return None
        return data if isinstance(data, dict) else None


__all__ = [
    "ReportParser",
    "TextReportParser",
    "JsonReportParser",
    "StructuredReport",
    "is_retry_report",
    "retry_reason",
    "states_unreadable",
    "normalise_confidence",
]

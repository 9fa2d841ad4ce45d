"""Mobility age scoring.

Turns free-text physiotherapist reports about mobility test photos into a
bounded "mobility age", aggregates per-pose results and keeps assessment
history.

Main interfaces:
- MobilityScoreEngine.parse_report: report text + pose + biological age -> AssessmentOutcome
- TextReportParser / JsonReportParser: replaceable report parsing layer
- build_report_prompt: instruction text for the report generator
- overall_mobility_age / build_assessment_record: session aggregation
- MemoryHistoryStore / FileHistoryStore: assessment history
"""

from .constants import DEFAULT_SCORING_CONFIG, ReferenceRange, ScoringConfig
from .engine import MobilityScoreEngine
from .errors import (
    BlendUndefinedError,
    HistoryStoreError,
    MalformedSectionWarning,
    MissingFieldError,
    MobilityAgeError,
    ReportParseError,
    RetryableInputError,
)
from .history import AssessmentHistoryStore, FileHistoryStore, MemoryHistoryStore
from .models import (
    AssessmentOutcome,
    AssessmentRecord,
    Deficiency,
    Exercise,
    FormQuality,
    MeasurementSet,
    ParsedReport,
    PoseKind,
    Severity,
)
from .parser import JsonReportParser, ReportParser, TextReportParser
from .poses import POSE_SEQUENCE, POSES, build_report_prompt, resolve_pose
from .summary import build_assessment_record, overall_mobility_age

__version__ = "0.1.0"

__all__ = [
    # engine / config
    'MobilityScoreEngine',
    'ScoringConfig',
    'ReferenceRange',
    'DEFAULT_SCORING_CONFIG',

    # parsing
    'ReportParser',
    'TextReportParser',
    'JsonReportParser',

    # data models
    'PoseKind',
    'FormQuality',
    'Severity',
    'MeasurementSet',
    'Exercise',
    'Deficiency',
    'ParsedReport',
    'AssessmentOutcome',
    'AssessmentRecord',

    # poses
    'POSES',
    'POSE_SEQUENCE',
    'resolve_pose',
    'build_report_prompt',

    # aggregation / history
    'overall_mobility_age',
    'build_assessment_record',
    'AssessmentHistoryStore',
    'MemoryHistoryStore',
    'FileHistoryStore',

    # errors
    'MobilityAgeError',
    'RetryableInputError',
    'BlendUndefinedError',
    'MissingFieldError',
    'ReportParseError',
    'HistoryStoreError',
    'MalformedSectionWarning',
]

"""Data models shared by the parser, the scoring engine and the history store."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DIFFICULTIES = ("beginner", "intermediate", "advanced")


class PoseKind(str, Enum):
    deep_squat = "deep_squat"
    forward_fold = "forward_fold"
    apley_scratch_test = "apley_scratch_test"
    knee_to_wall_test = "knee_to_wall_test"


class FormQuality(str, Enum):
    good = "good"
    poor = "poor"


class Severity(str, Enum):
    mild = "mild"
    moderate = "moderate"
    severe = "severe"


class MeasurementSet(BaseModel):
    """Joint angles (degrees) and distances (cm) stated in a report.

    A field is ``None`` when the report did not state it; it is never
    defaulted to zero.
    """

    model_config = ConfigDict(frozen=True)

    hip_angle: Optional[float] = Field(None, description="Hip flexion, degrees.")
    knee_angle: Optional[float] = Field(None, description="Knee flexion, degrees.")
    ankle_angle: Optional[float] = Field(None, description="Ankle dorsiflexion, degrees.")
    shoulder_angle: Optional[float] = Field(None, description="Shoulder flexion, degrees.")
    elbow_angle: Optional[float] = Field(None, description="Elbow flexion, degrees.")
    finger_gap: Optional[float] = Field(
        None, description="Gap between fingertips behind the back, cm."
    )
    wall_distance: Optional[float] = Field(
        None, description="Toe to wall distance with the knee touching the wall, cm."
    )

    def observed(self) -> Dict[str, float]:
        return {k: v for k, v in self.model_dump().items() if v is not None}


class Exercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    difficulty: Literal["beginner", "intermediate", "advanced"] = "beginner"
    sets: Optional[int] = None
    reps: Optional[int] = None
    target_muscles: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("target_muscles", "targetMuscles"),
    )

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalise_difficulty(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return next((d for d in DIFFICULTIES if d in text), "beginner")

    @field_validator("sets", "reps", mode="before")
    @classmethod
    def first_whole_number(cls, value: Any) -> Optional[int]:
        # "8-10 per side" -> 8
        if isinstance(value, str):
            match = re.search(r"\d+", value)
            return int(match.group(0)) if match else None
        return value


class Deficiency(BaseModel):
    """One measurement that fell outside its clinical range."""

    model_config = ConfigDict(frozen=True)

    measurement: str
    value: float
    severity: Severity
    penalty: float = Field(..., description="Years added, form multiplier included.")


class ParsedReport(BaseModel):
    """Fields extracted from a generator report before any scoring.

    Every field is optional; ``issues`` names the sections that were missing or
    could not be read.
    """

    measurements: Optional[MeasurementSet] = None
    physiotherapist_estimate: Optional[int] = None
    confidence: Optional[float] = None
    form: Optional[FormQuality] = None
    feedback: str = ""
    recommendations: List[str] = Field(default_factory=list)
    exercises: List[Exercise] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)


class AssessmentOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    pose_kind: PoseKind
    biological_age: int
    mobility_age: int = Field(..., ge=18, le=100)
    measurement_reliability: float = Field(..., ge=0.0, le=1.0)
    physiotherapist_estimate: int
    confidence: float = Field(..., ge=0.0, le=1.0)
    measurement_age: float
    total_penalty: float = Field(..., description="Summed penalty after the cap.")
    deficiencies: List[Deficiency] = Field(default_factory=list)
    measurements: Optional[MeasurementSet] = None
    feedback: str = ""
    recommendations: List[str] = Field(default_factory=list)
    is_good_form: bool = False
    exercises: List[Exercise] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssessmentRecord(BaseModel):
    """One completed assessment as kept by the history store."""

    model_config = ConfigDict(frozen=True)

    date: datetime = Field(default_factory=_utcnow)
    biological_age: int
    pose_ages: Dict[PoseKind, int] = Field(default_factory=dict)
    overall_mobility_age: int

    @field_validator("date")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


__all__ = [
    "PoseKind",
    "FormQuality",
    "Severity",
    "MeasurementSet",
    "Exercise",
    "Deficiency",
    "ParsedReport",
    "AssessmentOutcome",
    "AssessmentRecord",
]

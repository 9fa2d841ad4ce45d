"""Reference ranges and penalty tables for mobility age scoring.

Tables are read-only; an alternate set can be handed to the engine through
``ScoringConfig`` (e.g. ``dataclasses.replace(DEFAULT_SCORING_CONFIG, ...)``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from .models import FormQuality, PoseKind, Severity


@dataclass(frozen=True)
class ReferenceRange:
    """Two-tier thresholds for one measurement of one pose.

    For ``higher_is_better`` measurements a value under ``clinical_min`` is a
    deficiency, and a severe one when it is also under ``athlete_min``. For
    lower-is-better distances the limits mirror: deficient above
    ``clinical_max``, severe when also above ``athlete_min``.
    """

    athlete_min: float
    athlete_ideal: float
    clinical_min: float
    clinical_max: float
    higher_is_better: bool = True

    def severity(self, value: float) -> Severity | None:
        if self.higher_is_better:
            if value >= self.clinical_min:
                return None
            return Severity.severe if value < self.athlete_min else Severity.moderate
        if value <= self.clinical_max:
            return None
        return Severity.severe if value > self.athlete_min else Severity.moderate


def _freeze(table):
    return MappingProxyType({pose: MappingProxyType(dict(ranges)) for pose, ranges in table.items()})


# ------------------------- Reference ranges -------------------------

_HIP_FLEXION = ReferenceRange(athlete_min=110.0, athlete_ideal=120.0, clinical_min=95.0, clinical_max=125.0)
_ANKLE_DORSIFLEXION = ReferenceRange(athlete_min=40.0, athlete_ideal=45.0, clinical_min=35.0, clinical_max=50.0)

REFERENCE_RANGES: Mapping[PoseKind, Mapping[str, ReferenceRange]] = _freeze({
    PoseKind.deep_squat: {
        'hip_angle': _HIP_FLEXION,
        'knee_angle': ReferenceRange(athlete_min=140.0, athlete_ideal=150.0, clinical_min=120.0, clinical_max=160.0),
        'ankle_angle': _ANKLE_DORSIFLEXION,
    },
    PoseKind.forward_fold: {
        'hip_angle': _HIP_FLEXION,
    },
    PoseKind.apley_scratch_test: {
        # cm between fingertips; 0 means they touch
        'finger_gap': ReferenceRange(athlete_min=2.0, athlete_ideal=0.0, clinical_min=0.0, clinical_max=10.0,
                                     higher_is_better=False),
    },
    PoseKind.knee_to_wall_test: {
        'wall_distance': ReferenceRange(athlete_min=10.0, athlete_ideal=12.0, clinical_min=7.0, clinical_max=15.0),
        'ankle_angle': _ANKLE_DORSIFLEXION,
    },
})

# Fields scored per pose; the count is the reliability denominator.
EXPECTED_MEASUREMENTS: Mapping[PoseKind, Tuple[str, ...]] = MappingProxyType({
    PoseKind.deep_squat: ('hip_angle', 'knee_angle', 'ankle_angle'),
    PoseKind.forward_fold: ('hip_angle',),
    PoseKind.apley_scratch_test: ('finger_gap',),
    PoseKind.knee_to_wall_test: ('wall_distance', 'ankle_angle'),
})


# ------------------------- Penalties / weights -------------------------

SEVERITY_PENALTIES: Mapping[Severity, float] = MappingProxyType({
    Severity.severe: 15.0,
    Severity.moderate: 10.0,
    # not produced by the current range comparison
    Severity.mild: 5.0,
})

FORM_MULTIPLIERS: Mapping[FormQuality, float] = MappingProxyType({
    FormQuality.good: 1.0,
    FormQuality.poor: 2.0,
})

POOR_FORM_PENALTY = 10.0
PENALTY_CAP = 25.0
MEASUREMENT_WEIGHT = 0.4
ESTIMATE_WEIGHT = 0.6
DEFAULT_CONFIDENCE = 0.5
MIN_MOBILITY_AGE = 18
MAX_MOBILITY_AGE = 100


@dataclass(frozen=True)
class ScoringConfig:
    reference_ranges: Mapping[PoseKind, Mapping[str, ReferenceRange]] = field(default_factory=lambda: REFERENCE_RANGES)
    expected_measurements: Mapping[PoseKind, Tuple[str, ...]] = field(default_factory=lambda: EXPECTED_MEASUREMENTS)
    severity_penalties: Mapping[Severity, float] = field(default_factory=lambda: SEVERITY_PENALTIES)
    form_multipliers: Mapping[FormQuality, float] = field(default_factory=lambda: FORM_MULTIPLIERS)
    poor_form_penalty: float = POOR_FORM_PENALTY
    penalty_cap: float = PENALTY_CAP
    measurement_weight: float = MEASUREMENT_WEIGHT
    estimate_weight: float = ESTIMATE_WEIGHT
    default_confidence: float = DEFAULT_CONFIDENCE
    min_age: int = MIN_MOBILITY_AGE
    max_age: int = MAX_MOBILITY_AGE
    # Legacy behaviour: multiply the capped sum by the form multiplier again.
    double_form_multiplier: bool = False
    age_floor_on_poor_form: bool = True


DEFAULT_SCORING_CONFIG = ScoringConfig()


__all__ = [
    "ReferenceRange",
    "REFERENCE_RANGES",
    "EXPECTED_MEASUREMENTS",
    "SEVERITY_PENALTIES",
    "FORM_MULTIPLIERS",
    "POOR_FORM_PENALTY",
    "PENALTY_CAP",
    "MEASUREMENT_WEIGHT",
    "ESTIMATE_WEIGHT",
    "DEFAULT_CONFIDENCE",
    "MIN_MOBILITY_AGE",
    "MAX_MOBILITY_AGE",
    "ScoringConfig",
    "DEFAULT_SCORING_CONFIG",
]

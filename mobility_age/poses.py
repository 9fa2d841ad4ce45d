"""Pose catalogue and the instruction text handed to the report generator."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .constants import EXPECTED_MEASUREMENTS
from .errors import MissingFieldError
from .models import PoseKind


@dataclass(frozen=True)
class PoseSpec:
    kind: PoseKind
    name: str
    description: str
    setup: Tuple[str, ...]
    steps: Tuple[str, ...]
    camera_position: str

    @property
    def expected_measurements(self) -> Tuple[str, ...]:
        return EXPECTED_MEASUREMENTS[self.kind]


POSES: Dict[PoseKind, PoseSpec] = {
    PoseKind.deep_squat: PoseSpec(
        kind=PoseKind.deep_squat,
        name='Deep Squat',
        description='Tests hip, knee and ankle mobility together with trunk control.',
        setup=(
            'Stand with feet shoulder-width apart, toes turned slightly out.',
            'Extend your arms straight in front of you.',
        ),
        steps=(
            'Lower your hips as far as you can while keeping heels on the floor.',
            'Keep your chest up and your back straight.',
            'Hold the lowest position while the photo is taken.',
        ),
        camera_position='Side view, about 2 metres away, camera at hip height.',
    ),
    PoseKind.forward_fold: PoseSpec(
        kind=PoseKind.forward_fold,
        name='Forward Fold',
        description='Tests hamstring and lower back flexibility.',
        setup=(
            'Stand with feet together and knees straight.',
        ),
        steps=(
            'Hinge at the hips and reach towards your toes.',
            'Keep your knees straight without locking them.',
            'Hold the deepest comfortable position while the photo is taken.',
        ),
        camera_position='Side view, about 2 metres away, full body in frame.',
    ),
    PoseKind.apley_scratch_test: PoseSpec(
        kind=PoseKind.apley_scratch_test,
        name='Apley Scratch Test',
        description='Tests shoulder rotation by reaching both hands behind the back.',
        setup=(
            'Stand tall with your back to the camera.',
        ),
        steps=(
            'Reach one hand over your shoulder and down your back.',
            'Reach the other hand behind your lower back and up.',
            'Try to bring your fingertips together and hold.',
        ),
        camera_position='Back view, about 1.5 metres away, camera at shoulder height.',
    ),
    PoseKind.knee_to_wall_test: PoseSpec(
        kind=PoseKind.knee_to_wall_test,
        name='Knee to Wall Test',
        description='Tests ankle dorsiflexion in a half-kneeling lunge against a wall.',
        setup=(
            'Face a wall with one foot forward, toes pointing at the wall.',
            'Place a ruler or tape on the floor from the wall to your toes.',
        ),
        steps=(
            'Bend the front knee towards the wall, keeping the heel down.',
            'Move the foot back until the knee only just touches the wall.',
            'Hold the position while the photo is taken.',
        ),
        camera_position='Side view at floor level so the foot, knee and ruler are visible.',
    ),
}

POSE_SEQUENCE: Tuple[PoseKind, ...] = (
    PoseKind.deep_squat,
    PoseKind.forward_fold,
    PoseKind.apley_scratch_test,
    PoseKind.knee_to_wall_test,
)


def _slug(value: str) -> str:
    return re.sub(r'[^a-z0-9]+', '_', value.strip().lower()).strip('_')


_ALIASES: Dict[str, PoseKind] = {}
for _kind, _spec in POSES.items():
    _ALIASES[_kind.value] = _kind
    _ALIASES[_slug(_spec.name)] = _kind
_ALIASES['apley_scratch'] = PoseKind.apley_scratch_test
_ALIASES['knee_to_wall'] = PoseKind.knee_to_wall_test


def resolve_pose(value: Any) -> PoseKind:
    """Accept a PoseKind, its value or a display name such as ``"Deep Squat"``."""
    if isinstance(value, PoseKind):
        return value
    if isinstance(value, str) and value.strip():
        kind = _ALIASES.get(_slug(value))
        if kind is not None:
            return kind
    raise MissingFieldError(f'Unknown or missing pose: {value!r}')


_MEASUREMENT_LINES = {
    'hip_angle': '- Hip Angle: [degrees]',
    'knee_angle': '- Knee Angle: [degrees]',
    'ankle_angle': '- Ankle Angle: [degrees]',
    'finger_gap': '- Finger Gap: [cm between fingertips, 0 if they touch]',
    'wall_distance': '- Wall Distance: [cm from big toe to wall]',
}


def build_report_prompt(pose: Any, biological_age: int) -> str:
    """Instruction text for a vision model assessing one pose photo.

    The layout matches what ``TextReportParser`` reads back.
    """
    spec = POSES[resolve_pose(pose)]
    measurement_lines = '\n'.join(_MEASUREMENT_LINES[m] for m in spec.expected_measurements)
    return f"""You are an expert physiotherapist analyzing the {spec.name} mobility test. {spec.description}
Consider the person's biological age of {biological_age} years. Be strict and realistic: good form should match the biological age, poor form should be higher.

If the image quality is poor or the pose is not clearly visible, respond with RETRY: followed by specific instructions for better image capture. Otherwise, answer in EXACTLY this format. Only state a measurement you can read unambiguously from the image; leave the line out otherwise.

Measurements:
{measurement_lines}

Mobility Assessment:
Estimated Mobility Age: [whole number]
Confidence Level: [0.0 to 1.0]

Form: [good/poor]

Assessment: [analysis of form quality, joint angles and mobility relative to the biological age]

Recommendations:
- [specific improvement 1]
- [specific improvement 2]
- [specific improvement 3]

Exercise 1:
Name: [exercise name]
Description: [clear description]
Difficulty: [beginner/intermediate/advanced]
Sets: [number]
Reps: [number]
Target Muscles: [comma separated muscles]

Exercise 2:
[same format as Exercise 1]"""


__all__ = [
    "PoseSpec",
    "POSES",
    "POSE_SEQUENCE",
    "resolve_pose",
    "build_report_prompt",
]

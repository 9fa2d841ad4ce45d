"""Shared report fixtures for the mobility age tests."""

import pytest

from mobility_age import MobilityScoreEngine


DEEP_SQUAT_POOR_FORM = """\
Measurements:
- Hip Angle: 90°
- Knee Angle: 145°
- Ankle Angle: 42°

Mobility Assessment:
Estimated Mobility Age: 40
Confidence Level: 0.7

Form: poor

Assessment: Hips stop well short of full depth and the trunk collapses forward.

Recommendations:
- Work on hip flexion before loading the squat
- Keep both heels down through the descent
- Brace the trunk at the bottom position

Exercise 1:
Name: Goblet Squat Hold
Description: Hold a kettlebell at the chest and sit into the bottom of the squat.
Difficulty: beginner
Sets: 3
Reps: 5
Target Muscles: glutes, adductors and quadriceps

Exercise 2:
Name: Ankle Rocks
Description: Half-kneeling, drive the front knee over the toes.
Difficulty: Intermediate
Sets: 2
Reps: 10
Target Muscles: calves
"""


DEEP_SQUAT_NO_CONFIDENCE = """\
Measurements:
- Hip Angle: 115
- Knee Angle: 145
- Ankle Angle: 42

Mobility Assessment:
Estimated Mobility Age: 32

Form: good

Assessment: Controlled squat with full depth.
"""


FORWARD_FOLD_AT_CLINICAL_MIN = """\
Measurements:
- Hip Angle: 95 degrees

Mobility Assessment:
Estimated Mobility Age: 35
Confidence Level: 0.8

Form: good
"""


@pytest.fixture
def engine():
    return MobilityScoreEngine()


@pytest.fixture
def deep_squat_report():
    return DEEP_SQUAT_POOR_FORM


@pytest.fixture
def no_confidence_report():
    return DEEP_SQUAT_NO_CONFIDENCE


@pytest.fixture
def forward_fold_report():
    return FORWARD_FOLD_AT_CLINICAL_MIN

import pytest

from mobility_age import (
    POSE_SEQUENCE,
    POSES,
    MissingFieldError,
    PoseKind,
    build_report_prompt,
    resolve_pose,
)


@pytest.mark.parametrize('value, expected', [
    (PoseKind.forward_fold, PoseKind.forward_fold),
    ('deep_squat', PoseKind.deep_squat),
    ('Deep Squat', PoseKind.deep_squat),
    ('deep-squat', PoseKind.deep_squat),
    ('KNEE TO WALL TEST', PoseKind.knee_to_wall_test),
    ('knee_to_wall', PoseKind.knee_to_wall_test),
    ('Apley Scratch', PoseKind.apley_scratch_test),
])
def test_resolve_pose(value, expected):
    assert resolve_pose(value) is expected


@pytest.mark.parametrize('value', [None, '', '   ', 'plank', 42])
def test_resolve_pose_rejects_unknown(value):
    with pytest.raises(MissingFieldError):
        resolve_pose(value)


def test_sequence_covers_catalogue():
    assert set(POSE_SEQUENCE) == set(POSES) == set(PoseKind)
    assert POSES[PoseKind.knee_to_wall_test].expected_measurements == ('wall_distance', 'ankle_angle')


class TestReportPrompt:

    def test_deep_squat_prompt(self):
        prompt = build_report_prompt('deep_squat', 30)
        assert 'Deep Squat' in prompt
        assert '30 years' in prompt
        assert 'RETRY:' in prompt
        for label in ('Hip Angle', 'Knee Angle', 'Ankle Angle'):
            assert label in prompt
        assert 'Finger Gap' not in prompt
        for section in ('Measurements:', 'Estimated Mobility Age:', 'Confidence Level:', 'Form:',
                        'Assessment:', 'Recommendations:', 'Exercise 1:', 'Exercise 2:'):
            assert section in prompt

    def test_apley_prompt_asks_for_finger_gap_only(self):
        prompt = build_report_prompt(PoseKind.apley_scratch_test, 55)
        assert 'Finger Gap' in prompt
        assert 'Hip Angle' not in prompt

    def test_unknown_pose(self):
        with pytest.raises(MissingFieldError):
            build_report_prompt('plank', 30)

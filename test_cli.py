"""Command line entry point and environment settings."""

import json

import pytest

from mobility_age import JsonReportParser, TextReportParser
from mobility_age import config as config_module
from mobility_age.__main__ import main
from mobility_age.config import _env_flag, build_engine, get_engine, get_settings

_ENV_VARS = (
    'MOBILITY_AGE_HISTORY_PATH',
    'MOBILITY_AGE_LOG_LEVEL',
    'MOBILITY_AGE_DOUBLE_FORM_MULTIPLIER',
    'MOBILITY_AGE_REPORT_FORMAT',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, '_CACHED_ENGINE', None)


@pytest.fixture
def report_file(tmp_path, deep_squat_report):
    path = tmp_path / 'report.txt'
    path.write_text(deep_squat_report, encoding='utf-8')
    return path


class TestSettings:

    def test_defaults(self):
        settings = get_settings()
        assert settings.history_path == 'assessment_history.json'
        assert settings.log_level == 'WARNING'
        assert settings.double_form_multiplier is False
        assert settings.report_format == 'text'

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv('MOBILITY_AGE_HISTORY_PATH', '/tmp/h.json')
        monkeypatch.setenv('MOBILITY_AGE_LOG_LEVEL', 'debug')
        monkeypatch.setenv('MOBILITY_AGE_DOUBLE_FORM_MULTIPLIER', 'yes')
        monkeypatch.setenv('MOBILITY_AGE_REPORT_FORMAT', 'JSON')
        settings = get_settings()
        assert settings.history_path == '/tmp/h.json'
        assert settings.log_level == 'DEBUG'
        assert settings.double_form_multiplier is True
        assert settings.report_format == 'json'

    def test_unknown_report_format_falls_back_to_text(self, monkeypatch):
        monkeypatch.setenv('MOBILITY_AGE_REPORT_FORMAT', 'xml')
        assert get_settings().report_format == 'text'

    @pytest.mark.parametrize('raw, expected', [
        ('1', True), ('on', True), ('FALSE', False), ('off', False), ('maybe', True),
    ])
    def test_env_flag(self, monkeypatch, raw, expected):
        monkeypatch.setenv('MOBILITY_AGE_DOUBLE_FORM_MULTIPLIER', raw)
        assert _env_flag('MOBILITY_AGE_DOUBLE_FORM_MULTIPLIER', True) is expected

    def test_build_engine(self, monkeypatch):
        monkeypatch.setenv('MOBILITY_AGE_REPORT_FORMAT', 'json')
        monkeypatch.setenv('MOBILITY_AGE_DOUBLE_FORM_MULTIPLIER', 'true')
        engine = build_engine(get_settings())
        assert isinstance(engine.parser, JsonReportParser)
        assert engine.config.double_form_multiplier is True

    def test_get_engine_is_cached(self):
        engine = get_engine()
        assert get_engine() is engine
        assert isinstance(engine.parser, TextReportParser)
        assert get_engine(refresh=True) is not engine


class TestScoreCommand:

    def test_prints_outcome(self, report_file, tmp_path, capsys):
        code = main(['--history-path', str(tmp_path / 'h.json'),
                     'score', str(report_file), '--pose', 'Deep Squat', '--age', '30'])
        assert code == 0
        outcome = json.loads(capsys.readouterr().out)
        assert outcome['mobility_age'] == 47
        assert outcome['pose_kind'] == 'deep_squat'
        assert not (tmp_path / 'h.json').exists()

    def test_legacy_multiplier_from_environment(self, report_file, monkeypatch, capsys):
        monkeypatch.setenv('MOBILITY_AGE_DOUBLE_FORM_MULTIPLIER', '1')
        assert main(['score', str(report_file), '--pose', 'deep_squat', '--age', '30']) == 0
        assert json.loads(capsys.readouterr().out)['mobility_age'] == 60

    def test_save_then_history(self, report_file, tmp_path, capsys):
        history = str(tmp_path / 'h.json')
        assert main(['--history-path', history, 'score', str(report_file),
                     '--pose', 'deep_squat', '--age', '30', '--save']) == 0
        capsys.readouterr()

        assert main(['--history-path', history, 'history']) == 0
        records = json.loads(capsys.readouterr().out)
        assert len(records) == 1
        assert records[0]['pose_ages'] == {'deep_squat': 47}
        assert records[0]['overall_mobility_age'] == 47

    def test_retry_exit_code(self, tmp_path, capsys):
        path = tmp_path / 'retry.txt'
        path.write_text('RETRY: image too dark', encoding='utf-8')
        assert main(['score', str(path), '--pose', 'forward_fold', '--age', '30']) == 2
        assert 'image too dark' in capsys.readouterr().err

    def test_unknown_pose_exit_code(self, report_file, capsys):
        assert main(['score', str(report_file), '--pose', 'plank', '--age', '30']) == 1
        assert 'plank' in capsys.readouterr().err

    def test_missing_report_file(self, tmp_path, capsys):
        missing = tmp_path / 'nope.txt'
        assert main(['score', str(missing), '--pose', 'deep_squat', '--age', '30']) == 1
        assert 'Scoring failed' in capsys.readouterr().err

    def test_save_into_corrupt_history(self, report_file, tmp_path, capsys):
        history = tmp_path / 'h.json'
        history.write_text('[{"broken"', encoding='utf-8')
        assert main(['--history-path', str(history), 'score', str(report_file),
                     '--pose', 'deep_squat', '--age', '30', '--save']) == 1
        assert 'Saving failed' in capsys.readouterr().err
        assert history.read_text(encoding='utf-8') == '[{"broken"'

    def test_json_format_flag(self, tmp_path, capsys):
        path = tmp_path / 'report.json'
        path.write_text(json.dumps({
            'measurements': {'hip_angle': 95},
            'estimatedMobilityAge': 35,
            'confidence': 0.8,
            'isGoodForm': True,
        }), encoding='utf-8')
        assert main(['score', str(path), '--pose', 'forward_fold', '--age', '35', '--format', 'json']) == 0
        assert json.loads(capsys.readouterr().out)['mobility_age'] == 35


def test_prompt_command(capsys):
    assert main(['prompt', '--pose', 'Forward Fold', '--age', '40']) == 0
    out = capsys.readouterr().out
    assert 'Forward Fold' in out
    assert 'Hip Angle' in out

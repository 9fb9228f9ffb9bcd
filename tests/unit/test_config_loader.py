"""
Tests for the YAML configuration loader
"""

from pathlib import Path

import pytest

from greenpia.config import loader
from greenpia.config.loader import _interpolate_env_vars, load_config


VALID_YAML = """
database:
  url: ${TEST_DB_URL:-sqlite://}
rotation:
  fiscal_year_start_month: 4
  move_in_grace_months: 12
  schedule_span_years: 8
auth:
  secret_key: ${TEST_SECRET}
"""


@pytest.fixture(autouse=True)
def fresh_cache(monkeypatch):
    """Each test loads from disk; the suite-wide cached config is restored afterwards."""
    monkeypatch.setattr(loader, '_cached_config', None)


@pytest.fixture
def write_config(tmp_path):
    def _write(content):
        path = tmp_path / 'config.yaml'
        path.write_text(content, encoding='utf-8')
        return path

    return _write


class TestInterpolation:

    def test_uses_environment_value(self, monkeypatch):
        monkeypatch.setenv('GP_VALUE', 'abc')
        assert _interpolate_env_vars('x: ${GP_VALUE}') == 'x: abc'

    def test_default_when_missing(self, monkeypatch):
        monkeypatch.delenv('GP_MISSING', raising=False)
        assert _interpolate_env_vars('x: ${GP_MISSING:-fallback}') == 'x: fallback'
        assert _interpolate_env_vars('x: ${GP_MISSING:-}') == 'x: '

    def test_required_variable_missing(self, monkeypatch):
        monkeypatch.delenv('GP_MISSING', raising=False)
        with pytest.raises(ValueError, match='GP_MISSING'):
            _interpolate_env_vars('x: ${GP_MISSING}')


class TestLoadConfig:

    def test_loads_and_reads_dotted_keys(self, monkeypatch, write_config):
        monkeypatch.setenv('TEST_SECRET', 's3cret')
        config = load_config(write_config(VALID_YAML))

        assert config.get('rotation.move_in_grace_months') == 12
        assert config.get('auth.secret_key') == 's3cret'
        assert config.get('rotation.missing', 'default') == 'default'
        assert config.get_required('database.url') == 'sqlite://'

    def test_get_required_raises(self, monkeypatch, write_config):
        monkeypatch.setenv('TEST_SECRET', 's3cret')
        config = load_config(write_config(VALID_YAML))

        with pytest.raises(ValueError):
            config.get_required('notifications.webhook_url')

    def test_result_is_cached(self, monkeypatch, write_config):
        monkeypatch.setenv('TEST_SECRET', 's3cret')
        first = load_config(write_config(VALID_YAML))

        assert load_config() is first

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'nope.yaml')

    def test_rejects_invalid_grace_period(self, monkeypatch, write_config):
        monkeypatch.setenv('TEST_SECRET', 's3cret')
        content = VALID_YAML.replace('move_in_grace_months: 12', 'move_in_grace_months: 0')

        with pytest.raises(ValueError, match='move_in_grace_months'):
            load_config(write_config(content))

    def test_rejects_invalid_fiscal_start(self, monkeypatch, write_config):
        monkeypatch.setenv('TEST_SECRET', 's3cret')
        content = VALID_YAML.replace('fiscal_year_start_month: 4', 'fiscal_year_start_month: 13')

        with pytest.raises(ValueError, match='fiscal_year_start_month'):
            load_config(write_config(content))

    def test_rejects_empty_secret(self, monkeypatch, write_config):
        monkeypatch.setenv('TEST_SECRET', '')

        with pytest.raises(ValueError, match='secret_key'):
            load_config(write_config(VALID_YAML))

    def test_project_config_is_valid(self):
        config = load_config(Path(__file__).parent.parent.parent / 'config' / 'config.yaml')

        assert config.get('rotation.fiscal_year_start_month') == 4
        assert config.get('auth.cookie_name') == 'greenpia_session'

    def test_project_config_loads_with_only_defaults(self, monkeypatch, tmp_path):
        """Every placeholder in the shipped file has a default or is set by the suite"""
        monkeypatch.chdir(tmp_path)
        for name in ('DATABASE_URL', 'API_HOST', 'API_PORT', 'NOTIFY_WEBHOOK_URL', 'NOTIFY_API_KEY', 'VAR'):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv('SESSION_SECRET', 'test-secret')
        path = Path(__file__).parent.parent.parent / 'config' / 'config.yaml'

        config = load_config(path)

        assert config.get('database.url') == 'sqlite:///greenpia.db'
        assert config.get('notifications.webhook_url') in (None, '')

    def test_placeholder_syntax_in_comments_is_interpolated(self, monkeypatch, write_config):
        monkeypatch.setenv('TEST_SECRET', 's3cret')
        monkeypatch.delenv('GP_UNSET', raising=False)

        with pytest.raises(ValueError, match='GP_UNSET'):
            load_config(write_config('# see ${GP_UNSET}\n' + VALID_YAML))

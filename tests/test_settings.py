from __future__ import annotations

from pathlib import Path

import pytest

from devrun.errors import SettingsError
from devrun.settings import DevrunSettings, load_settings


def test_defaults_match_repository_layout(tmp_path):
    settings = DevrunSettings(project_root=tmp_path)
    assert settings.environment_version == 1
    assert settings.stamp_path == tmp_path / ".environment_version"
    assert settings.venv_path == tmp_path / "openstack-dashboard" / ".dashboard-venv"
    assert settings.library_bin == tmp_path / "horizon" / "bin"
    assert settings.lint_failure_threshold == 32


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("DEVRUN_PROJECT_ROOT", str(tmp_path))
    monkeypatch.setenv("DEVRUN_ENVIRONMENT_VERSION", "4")
    monkeypatch.setenv("DEVRUN_SELENIUM_MAX_ATTEMPTS", "10")
    settings = load_settings()
    assert settings.project_root == tmp_path
    assert settings.environment_version == 4
    assert settings.selenium_max_attempts == 10


def test_lint_paths_accept_plain_string(tmp_path):
    settings = DevrunSettings(project_root=tmp_path, lint_paths="a/b, c/d")
    assert settings.lint_paths == ("a/b", "c/d")


def test_absolute_paths_are_kept(tmp_path):
    settings = DevrunSettings(project_root=tmp_path, selenium_log="/var/log/selenium.log")
    assert settings.selenium_log_path == Path("/var/log/selenium.log")


@pytest.mark.parametrize(
    "overrides",
    [{"environment_version": 0}, {"log_level": "chatty"}, {"selenium_max_attempts": 0}],
)
def test_invalid_values_raise_settings_error(overrides):
    with pytest.raises(SettingsError) as exc_info:
        load_settings(**overrides)
    assert exc_info.value.exit_code == 2

"""Typed settings for the orchestration run."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import SettingsError


class DevrunSettings(BaseSettings):
    """Paths, tool arguments and thresholds used by every component.

    Attributes:
        project_root: Repository root that all relative paths resolve against.
        library_dir: Component library checkout built with buildout.
        app_dir: Host application checkout built into a virtualenv.
        venv_dir: Virtualenv directory, relative to ``project_root``.
        host_wrapper: ``with_venv`` script used from the project root.
        app_wrapper: ``with_venv`` script used from inside ``app_dir``.
        python: Interpreter for bootstrap steps that run outside the virtualenv.
        venv_python: Interpreter name resolved on the virtualenv ``PATH`` when
            a command runs under ``host_wrapper``.
        environment_version: Current environment generation; bump it to
            force every checkout to reprovision.
        stamp_file: File holding the installed environment generation.
        lint_failure_threshold: Pylint exit codes at or above this value
            are failures; lower codes only signal message categories.
        selenium_max_attempts: Readiness scans before giving up.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVRUN_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    project_root: Path = Field(default_factory=Path.cwd)
    library_dir: str = "horizon"
    app_dir: str = "openstack-dashboard"
    venv_dir: str = "openstack-dashboard/.dashboard-venv"
    host_wrapper: str = "openstack-dashboard/tools/with_venv.sh"
    app_wrapper: str = "tools/with_venv.sh"
    python: str = Field(default_factory=lambda: sys.executable)
    venv_python: str = "python"

    environment_version: int = Field(default=1, ge=1)
    stamp_file: str = ".environment_version"

    pip_download_cache: str = "/tmp/.pip_download_cache"
    pip_use_mirrors: bool = True
    buildout_cache: str = "/tmp/.buildout_cache"

    settings_module: str = "dashboard.settings"
    docs_source: str = "docs/source"
    docs_build: str = "docs/build/html"

    lint_paths: tuple[str, ...] = ("openstack-dashboard/dashboard", "horizon/horizon")
    pylint_rcfile: str = ".pylintrc"
    pylint_report: str = "pylint.txt"
    lint_failure_threshold: int = Field(default=32, ge=1)
    style_checker: str = "pycodestyle"
    style_exclude: str = "vcsversion.py"
    style_report: str = "pep8.txt"

    selenium_log: str = ".selenium_log"
    selenium_ready_marker: str = "Started SocketListener on 0.0.0.0:4444"
    selenium_poll_interval: float = Field(default=1.0, ge=0.0)
    selenium_max_attempts: int = Field(default=120, ge=1)
    selenium_stop_timeout: float = Field(default=5.0, ge=0.0)

    coverage_omit: str = "/usr*,setup.py,*egg*"
    coverage_html_dir: str = "reports"

    summary_path: str = "artifacts/devrun/last_run.json"
    metrics_textfile: str | None = None
    log_level: str = "INFO"

    @field_validator("lint_paths", mode="before")
    @classmethod
    def _split_paths(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(part for part in value.replace(",", " ").split() if part)
        return value

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level

    def resolve(self, relative: str | Path) -> Path:
        path = Path(relative)
        return path if path.is_absolute() else self.project_root / path

    @property
    def library_path(self) -> Path:
        return self.resolve(self.library_dir)

    @property
    def app_path(self) -> Path:
        return self.resolve(self.app_dir)

    @property
    def venv_path(self) -> Path:
        return self.resolve(self.venv_dir)

    @property
    def stamp_path(self) -> Path:
        return self.resolve(self.stamp_file)

    @property
    def selenium_log_path(self) -> Path:
        return self.resolve(self.selenium_log)

    @property
    def summary_file(self) -> Path:
        return self.resolve(self.summary_path)

    @property
    def library_bin(self) -> Path:
        return self.library_path / "bin"


def load_settings(**overrides: Any) -> DevrunSettings:
    """Build settings from the environment, raising ``SettingsError`` on bad input."""

    try:
        return DevrunSettings(**overrides)
    except ValidationError as exc:
        raise SettingsError(
            "SETTINGS_INVALID",
            f"Invalid devrun configuration: {exc.errors()[0].get('msg', exc)}",
            context={"errors": str(exc)},
        ) from exc

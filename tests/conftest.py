"""Shared fixtures: a throwaway project tree and a recording subprocess double."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator

import pytest

from devrun import shell as shell_mod
from devrun.metrics import RunMetrics, build_run_metrics
from devrun.settings import DevrunSettings
from devrun.shell import CommandRunner

SANITY_SCRIPTS = ("test", "coverage", "seleniumrc")


@dataclass
class FakeResult:
    returncode: int


@dataclass
class Call:
    cmd: list[str]
    cwd: str
    env: dict[str, str]
    stdout: object = None


Responder = Callable[[Call], int]


@dataclass
class FakeRun:
    """Stands in for ``subprocess.run``; ``responder`` picks each exit code."""

    responder: Responder = lambda call: 0
    calls: list[Call] = field(default_factory=list)

    def __call__(self, cmd, *, cwd, stdout, env, check):
        call = Call(cmd=list(cmd), cwd=cwd, env=dict(env), stdout=stdout)
        self.calls.append(call)
        return FakeResult(self.responder(call))

    def commands(self) -> list[list[str]]:
        return [call.cmd for call in self.calls]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    for key in ("PIP_DOWNLOAD_CACHE", "PIP_USE_MIRRORS", "DJANGO_SETTINGS_MODULE"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DEVRUN_CORRELATION_ID", "test-run")
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def settings(tmp_path: Path) -> DevrunSettings:
    project = tmp_path / "project"
    (project / "horizon" / "bin").mkdir(parents=True)
    (project / "openstack-dashboard" / "local").mkdir(parents=True)
    return DevrunSettings(
        project_root=project,
        python="python",
        buildout_cache=str(tmp_path / "buildout-cache"),
        pip_download_cache=str(tmp_path / "pip-cache"),
        selenium_poll_interval=0.0,
        selenium_max_attempts=5,
        selenium_stop_timeout=0.1,
    )


@pytest.fixture
def metrics() -> RunMetrics:
    return build_run_metrics()


@pytest.fixture
def runner(settings: DevrunSettings, metrics: RunMetrics) -> CommandRunner:
    return CommandRunner(settings, metrics)


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> FakeRun:
    fake = FakeRun()
    monkeypatch.setattr(shell_mod.subprocess, "run", fake)
    return fake


def install_sanity_scripts(settings: DevrunSettings, names=SANITY_SCRIPTS) -> None:
    for name in names:
        script = settings.library_bin / name
        script.write_text("#!/bin/sh\n", encoding="utf-8")
        script.chmod(0o755)


def install_local_settings_example(settings: DevrunSettings, content: str = "EXAMPLE = True\n") -> Path:
    example = settings.app_path / "local" / "local_settings.py.example"
    example.write_text(content, encoding="utf-8")
    return example

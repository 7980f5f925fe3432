"""Virtualenv provisioning gated by a persisted environment generation stamp."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Callable

from .fs_atomic import atomic_write_text
from .logging_utils import log_event, log_warning
from .options import RunConfig, VenvMode
from .sanity import SanityChecker
from .settings import DevrunSettings
from .shell import CommandRunner

Prompt = Callable[[str], str]

CREATE_PROMPT = "No virtual environment found...create one? (Y/n) "
UPDATE_PROMPT = "Your environment appears to be out of date. Update? (Y/n) "


def read_stamp(path: Path) -> int | None:
    """Return the recorded environment generation, or ``None`` when unknown."""

    try:
        raw = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    try:
        return int(raw)
    except ValueError:
        log_warning("environment.stamp_invalid", path=str(path), content=raw[:32])
        return None


def write_stamp(path: Path, version: int) -> None:
    atomic_write_text(path, f"{version}\n")


def _default_prompt(question: str) -> str:
    try:
        return input(question)
    except EOFError:
        return ""


class Provisioner:
    """Decides whether to (re)build the environment and performs the build."""

    def __init__(
        self,
        settings: DevrunSettings,
        config: RunConfig,
        runner: CommandRunner,
        *,
        prompt: Prompt | None = None,
        sanity: SanityChecker | None = None,
    ) -> None:
        self.settings = settings
        self.config = config
        self.runner = runner
        self.prompt = prompt or _default_prompt
        self.sanity = sanity or SanityChecker(settings)

    def _confirm(self, question: str) -> bool:
        answer = self.prompt(question).strip()
        return answer in {"", "y", "Y"}

    def _provision_or_ask(self, question: str) -> bool:
        if self.config.quiet or self._confirm(question):
            self.install()
            return True
        log_event("environment.provision_declined")
        return False

    def ensure(self) -> None:
        self.prepare_virtualenv()
        self.check_environment()

    def prepare_virtualenv(self) -> None:
        if self.config.venv_mode is VenvMode.NEVER:
            return
        venv = self.settings.venv_path
        if self.config.force:
            print("Cleaning virtualenv...")
            shutil.rmtree(venv, ignore_errors=True)
        if venv.exists():
            self.runner.use_venv = True
            log_event("environment.venv_reused", path=str(venv))
            return
        if self.config.venv_mode is VenvMode.ALWAYS:
            self.install()
            return
        self._provision_or_ask(CREATE_PROMPT)

    def check_environment(self) -> bool:
        """Return ``True`` when the environment was (re)provisioned."""

        print("Checking environment.")
        current = read_stamp(self.settings.stamp_path)
        if current == self.settings.environment_version:
            print("Environment is up to date.")
            return False
        log_event(
            "environment.stale",
            recorded=current,
            expected=self.settings.environment_version,
        )
        return self._provision_or_ask(UPDATE_PROMPT)

    def install(self) -> None:
        settings = self.settings
        os.environ["PIP_DOWNLOAD_CACHE"] = settings.pip_download_cache
        os.environ["PIP_USE_MIRRORS"] = "true" if settings.pip_use_mirrors else "false"
        log_event("environment.install_start", version=settings.environment_version)

        self.runner.run([settings.python, "tools/install_venv.py"], cwd=settings.app_path, check=True)
        Path(settings.buildout_cache).mkdir(parents=True, exist_ok=True)
        self.runner.run([settings.python, "bootstrap.py"], cwd=settings.library_path, check=True)
        self.runner.run(["bin/buildout"], cwd=settings.library_path, check=True)

        self.runner.use_venv = True
        self.sanity.verify()
        write_stamp(settings.stamp_path, settings.environment_version)
        log_event("environment.install_complete", version=settings.environment_version)

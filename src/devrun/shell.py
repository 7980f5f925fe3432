"""External tool invocation with optional virtualenv wrappers."""

from __future__ import annotations

import os
import subprocess
import time
from pathlib import Path
from typing import IO, Mapping, MutableMapping, Sequence

from .errors import ToolFailedError, ToolNotFoundError
from .logging_utils import correlation_id, log_event
from .metrics import RunMetrics
from .settings import DevrunSettings


def _tool_label(command: Sequence[str]) -> str:
    # Skip the with_venv wrapper and the interpreter so metrics name the real tool.
    for part in command:
        name = Path(part).name
        if name.endswith("with_venv.sh") or name.startswith("python"):
            continue
        return name
    return Path(command[0]).name if command else "unknown"


class CommandRunner:
    """Runs argument-list commands from the project root or the app directory."""

    def __init__(self, settings: DevrunSettings, metrics: RunMetrics, *, use_venv: bool = False) -> None:
        self.settings = settings
        self.metrics = metrics
        self.use_venv = use_venv

    @property
    def interpreter(self) -> str:
        """Python to launch project code with; the wrapper's ``PATH`` picks the venv one."""

        return self.settings.venv_python if self.use_venv else self.settings.python

    def host_command(self, *args: str) -> list[str]:
        prefix = [self.settings.host_wrapper] if self.use_venv else []
        return [*prefix, *args]

    def app_command(self, *args: str) -> list[str]:
        prefix = [self.settings.app_wrapper] if self.use_venv else []
        return [*prefix, *args]

    def _build_env(self, overrides: Mapping[str, str] | None) -> MutableMapping[str, str]:
        env: MutableMapping[str, str] = dict(os.environ)
        env["DEVRUN_CORRELATION_ID"] = correlation_id()
        if overrides:
            env.update(overrides)
        return env

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = False,
        stdout: IO[str] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> int:
        workdir = cwd or self.settings.project_root
        log_event("command.start", cmd=" ".join(command), cwd=str(workdir))
        start = time.perf_counter()
        try:
            completed = subprocess.run(
                list(command),
                cwd=str(workdir),
                stdout=stdout,
                env=self._build_env(env),
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(command) from exc
        duration = time.perf_counter() - start
        returncode = completed.returncode
        self.metrics.record_tool(tool=_tool_label(command), returncode=returncode, duration=duration)
        log_event("command.finish", cmd=" ".join(command), returncode=returncode, duration=round(duration, 3))
        if check and returncode != 0:
            raise ToolFailedError(command, returncode)
        return returncode

    def spawn(self, command: Sequence[str], *, stdout: IO[str]) -> subprocess.Popen[str]:
        workdir = self.settings.project_root
        log_event("command.spawn", cmd=" ".join(command), cwd=str(workdir))
        try:
            return subprocess.Popen(  # noqa: S603 - argument list, no shell
                list(command),
                cwd=str(workdir),
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=subprocess.STDOUT,
                text=True,
                env=self._build_env(None),
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(command) from exc

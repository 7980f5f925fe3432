"""Lifecycle of the Selenium RC server used by the browser-driven suites."""

from __future__ import annotations

import subprocess
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Callable, Iterator

import psutil
from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from .errors import ServiceTimeoutError
from .logging_utils import log_event, log_warning
from .metrics import RunMetrics
from .settings import DevrunSettings
from .shell import CommandRunner

SERVICE_NAME = "selenium"

ChildLookup = Callable[[int], list[psutil.Process]]


class _ServiceExited(Exception):
    """The owned server process ended before reporting readiness."""


def _child_processes(pid: int) -> list[psutil.Process]:
    try:
        return psutil.Process(pid).children(recursive=True)
    except psutil.Error:
        return []


class SeleniumServer:
    """Owns one background server process and its log file for a single run."""

    def __init__(
        self,
        settings: DevrunSettings,
        runner: CommandRunner,
        metrics: RunMetrics,
        *,
        sleep: Callable[[float], None] = time.sleep,
        children_of: ChildLookup = _child_processes,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.metrics = metrics
        self._sleep = sleep
        self._children_of = children_of
        self._process: subprocess.Popen[str] | None = None
        self._log_handle: IO[str] | None = None

    @property
    def log_path(self) -> Path:
        return self.settings.selenium_log_path

    @property
    def process(self) -> subprocess.Popen[str] | None:
        return self._process

    def start(self) -> None:
        print("Starting Selenium server...")
        launcher = str(self.settings.library_bin / "seleniumrc")
        command = self.runner.host_command(launcher)
        self._log_handle = open(self.log_path, "w", encoding="utf-8")
        try:
            self._process = self.runner.spawn(command, stdout=self._log_handle)
        except Exception:
            self._close_log()
            self.log_path.unlink(missing_ok=True)
            raise
        log_event("selenium.spawned", pid=self._process.pid, log=str(self.log_path))

    def is_ready(self) -> bool:
        try:
            content = self.log_path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return False
        return self.settings.selenium_ready_marker.lower() in content.lower()

    def _scan(self) -> bool:
        ready = self.is_ready()
        self.metrics.record_poll(service=SERVICE_NAME, ready=ready)
        if ready:
            return True
        if self._process is not None and self._process.poll() is not None:
            raise _ServiceExited(self._process.returncode)
        print(".", end="", flush=True)
        return False

    def _log_tail(self, limit: int = 1024) -> str:
        try:
            return self.log_path.read_text(encoding="utf-8", errors="replace")[-limit:]
        except FileNotFoundError:
            return ""

    def wait_until_ready(self) -> None:
        attempts = self.settings.selenium_max_attempts
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(self.settings.selenium_poll_interval),
            retry=retry_if_result(lambda ready: not ready),
            sleep=self._sleep,
        )
        try:
            retrying(self._scan)
        except RetryError as exc:
            print()
            raise ServiceTimeoutError(
                "SERVICE_NOT_READY",
                f"Selenium server did not report readiness after {attempts} checks.",
                context={"attempts": attempts, "log_tail": self._log_tail()},
            ) from exc
        except _ServiceExited as exc:
            print()
            raise ServiceTimeoutError(
                "SERVICE_EXITED",
                f"Selenium server exited with code {exc.args[0]} before becoming ready.",
                context={"returncode": exc.args[0], "log_tail": self._log_tail()},
            ) from exc
        print("Selenium server started.")
        log_event("selenium.ready")

    def _terminate(self, process: subprocess.Popen[str]) -> None:
        timeout = self.settings.selenium_stop_timeout
        children = self._children_of(process.pid)
        for child in children:
            try:
                child.terminate()
            except psutil.NoSuchProcess:
                continue
        process.terminate()
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait(timeout=timeout)
        if children:
            _, alive = psutil.wait_procs(children, timeout=timeout)
            for child in alive:
                try:
                    child.kill()
                except psutil.NoSuchProcess:
                    continue

    def _close_log(self) -> None:
        if self._log_handle is not None:
            self._log_handle.close()
            self._log_handle = None

    def stop(self) -> None:
        print("Stopping Selenium server...")
        process = self._process
        try:
            if process is not None and process.poll() is None:
                self._terminate(process)
                print("Selenium process stopped.")
                log_event("selenium.stopped", pid=process.pid)
            else:
                print("Selenium process not found. This may require manual cleanup.")
                log_warning("selenium.not_found", log=str(self.log_path))
        finally:
            self._process = None
            self._close_log()
            self.log_path.unlink(missing_ok=True)

    @contextmanager
    def running(self) -> Iterator["SeleniumServer"]:
        self.start()
        try:
            self.wait_until_ready()
            yield self
        finally:
            self.stop()

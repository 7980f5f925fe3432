"""Error taxonomy for the orchestration run."""

from __future__ import annotations

from typing import Any, Mapping, Sequence


class DevrunError(RuntimeError):
    """Base error surfaced to the operator with a stable code and exit status."""

    exit_code: int = 1

    def __init__(
        self,
        code: str,
        message: str,
        *,
        exit_code: int | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code
        self.context = dict(context or {})


class SettingsError(DevrunError):
    """Raised when configuration is incomplete or invalid."""

    exit_code = 2


class ToolFailedError(DevrunError):
    """Raised when a fail-fast tool invocation exits non-zero."""

    def __init__(self, command: Sequence[str], returncode: int) -> None:
        joined = " ".join(command)
        super().__init__(
            "TOOL_FAILED",
            f"Command failed with exit code {returncode}: {joined}",
            exit_code=returncode,
            context={"command": joined, "returncode": returncode},
        )
        self.command = tuple(command)
        self.returncode = returncode


class ToolNotFoundError(DevrunError):
    """Raised when an executable cannot be located."""

    exit_code = 127

    def __init__(self, command: Sequence[str]) -> None:
        super().__init__(
            "TOOL_NOT_FOUND",
            f"Executable not found: {command[0]}",
            context={"command": " ".join(command)},
        )


class SanityCheckError(DevrunError):
    """Raised when a provisioned build artifact is missing."""


class ServiceTimeoutError(DevrunError):
    """Raised when a background service never reports readiness."""


class LocalSettingsError(DevrunError):
    """Raised when the local settings template cannot be installed."""

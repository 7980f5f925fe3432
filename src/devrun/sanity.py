"""Post-provisioning checks for the buildout artifacts the suites depend on."""

from __future__ import annotations

from pathlib import Path

from .errors import SanityCheckError
from .logging_utils import log_event
from .settings import DevrunSettings

# (label, script name under the library's bin/ directory)
REQUIRED_SCRIPTS: tuple[tuple[str, str], ...] = (
    ("Test", "test"),
    ("Coverage", "coverage"),
    ("Selenium", "seleniumrc"),
)


class SanityChecker:
    def __init__(self, settings: DevrunSettings) -> None:
        self.settings = settings

    def _display(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.settings.project_root))
        except ValueError:
            return str(path)

    def verify(self) -> None:
        bin_dir = self.settings.library_bin
        for label, script in REQUIRED_SCRIPTS:
            path = bin_dir / script
            if not path.is_file():
                shown = self._display(path)
                raise SanityCheckError(
                    "ARTIFACT_MISSING",
                    f"Error: {label} script not found at {shown}. Did buildout succeed?",
                    exit_code=1,
                    context={"artifact": shown},
                )
        log_event("sanity.ok", bin_dir=str(bin_dir))

"""Command line entry point: provision the environment, then run one action."""

from __future__ import annotations

import sys
from typing import Callable, Sequence

from .actions import dispatch
from .environment import Provisioner, Prompt
from .errors import DevrunError
from .logging_utils import configure_logging, log_error, log_event
from .metrics import RunMetrics, build_run_metrics
from .options import parse_options
from .settings import DevrunSettings, load_settings
from .shell import CommandRunner


def _flush_metrics(settings: DevrunSettings, metrics: RunMetrics) -> None:
    if settings.metrics_textfile:
        metrics.write_textfile(settings.resolve(settings.metrics_textfile))


def main(
    argv: Sequence[str] | None = None,
    *,
    settings_factory: Callable[[], DevrunSettings] = load_settings,
    prompt: Prompt | None = None,
) -> int:
    config = parse_options(argv)
    configure_logging()
    try:
        settings = settings_factory()
        level = "WARNING" if config.quiet and settings.log_level == "INFO" else settings.log_level
        configure_logging(level, force=True)
        metrics = build_run_metrics()
        runner = CommandRunner(settings, metrics)
        log_event("devrun.start", action=config.action.value, test_args=list(config.test_args))

        provisioner = Provisioner(settings, config, runner, prompt=prompt)
        try:
            provisioner.ensure()
            exit_code = dispatch(config, settings, runner, metrics)
        finally:
            _flush_metrics(settings, metrics)
    except DevrunError as exc:
        log_error("devrun.error", code=exc.code, exit_code=exc.exit_code, context=exc.context)
        print(exc.message, file=sys.stderr)
        return exc.exit_code

    log_event("devrun.finish", exit_code=exit_code)
    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())

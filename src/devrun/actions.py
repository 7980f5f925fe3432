"""The five terminal actions and the dispatcher that picks exactly one."""

from __future__ import annotations

import shutil
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Callable, Iterator

import orjson

from .errors import LocalSettingsError, ToolNotFoundError
from .fs_atomic import atomic_write_bytes
from .logging_utils import correlation_id, log_event, log_warning
from .metrics import RunMetrics
from .options import ActionKind, RunConfig, SeleniumMode
from .sanity import SanityChecker
from .selenium import SeleniumServer
from .settings import DevrunSettings
from .shell import CommandRunner

ServerFactory = Callable[[], SeleniumServer]

SELENIUM_TEST_FLAGS: tuple[str, ...] = ("--with-selenium", "--with-cherrypyliveserver")


def build_docs(settings: DevrunSettings, runner: CommandRunner) -> int:
    print("Building sphinx...")
    print(f"export DJANGO_SETTINGS_MODULE={settings.settings_module}")
    command = runner.host_command("sphinx-build", "-b", "html", settings.docs_source, settings.docs_build)
    returncode = runner.run(command, env={"DJANGO_SETTINGS_MODULE": settings.settings_module})
    print("Build complete.")
    return returncode


def run_style_check(settings: DevrunSettings, runner: CommandRunner) -> int:
    """Report style violations; neither violations nor a missing checker fail the run."""

    print(f"Running {settings.style_checker} ...")
    report = settings.resolve(settings.style_report)
    report.unlink(missing_ok=True)
    command = runner.host_command(
        settings.style_checker,
        f"--exclude={settings.style_exclude}",
        *settings.lint_paths,
    )
    try:
        with open(report, "w", encoding="utf-8") as handle:
            runner.run(command, stdout=handle)
    except ToolNotFoundError as exc:
        log_warning("style_check.unavailable", code=exc.code, context=exc.context)
        print(exc.message)
        return 0
    lines = report.read_text(encoding="utf-8").splitlines()
    if lines:
        print(f"PEP8 violations found ({len(lines)}):")
        print("\n".join(lines))
        print("Please fix all PEP8 violations before committing.")
    else:
        print("No violations found. Good job!")
    return 0


def _global_evaluation(report: Path) -> list[str]:
    lines = report.read_text(encoding="utf-8").splitlines()
    selected: list[str] = []
    for index, line in enumerate(lines):
        if "Global" in line:
            selected.extend(lines[index : index + 3])
    return selected


def run_pylint(settings: DevrunSettings, runner: CommandRunner) -> int:
    print("Running pylint ...")
    report = settings.resolve(settings.pylint_report)
    command = runner.host_command(
        "pylint",
        f"--rcfile={settings.pylint_rcfile}",
        "--output-format=parseable",
        *settings.lint_paths,
    )
    with open(report, "w", encoding="utf-8") as handle:
        code = runner.run(command, stdout=handle)
    for line in _global_evaluation(report):
        print(line)
    # Pylint exit codes below 32 are a bit mask of message categories found.
    if code < settings.lint_failure_threshold:
        print("Completed successfully.")
        return 0
    print("Completed with problems.")
    return code


def run_server(settings: DevrunSettings, runner: CommandRunner) -> int:
    print("Starting Django development server...")
    manage = f"{settings.app_dir}/dashboard/manage.py"
    returncode = runner.run(runner.host_command(runner.interpreter, manage, "runserver"))
    print("Server stopped.")
    return returncode


@contextmanager
def swapped_local_settings(app_path: Path) -> Iterator[Path]:
    """Install the example local settings, restoring any existing file afterwards."""

    local = app_path / "local" / "local_settings.py"
    backup = local.with_name(local.name + ".bak")
    example = local.with_name(local.name + ".example")
    if not example.is_file():
        raise LocalSettingsError(
            "LOCAL_SETTINGS_TEMPLATE_MISSING",
            f"Local settings template not found at {example}",
            context={"path": str(example)},
        )
    if local.is_file():
        shutil.copyfile(local, backup)
    shutil.copyfile(example, local)
    try:
        yield local
    finally:
        if backup.is_file():
            shutil.copyfile(backup, local)
            backup.unlink()


def _run_library_suite(config: RunConfig, settings: DevrunSettings, runner: CommandRunner) -> int:
    print("Running Horizon application tests")
    runner.run(runner.host_command("coverage", "erase"))
    test_script = f"{settings.library_dir}/bin/test"
    return runner.run(runner.host_command("coverage", "run", test_script, *config.test_args))


def _run_app_suite(config: RunConfig, settings: DevrunSettings, runner: CommandRunner) -> int:
    print("Running openstack-dashboard (Django project) tests")
    flags = SELENIUM_TEST_FLAGS if config.selenium is SeleniumMode.RUN else ()
    command = runner.app_command("coverage", "run", "dashboard/manage.py", "test", *flags, *config.test_args)
    with swapped_local_settings(settings.app_path):
        return runner.run(command, cwd=settings.app_path)


def _coverage_reports(settings: DevrunSettings, runner: CommandRunner) -> None:
    print("Generating coverage reports")
    omit = f"--omit={settings.coverage_omit}"
    runner.run(runner.host_command("coverage", "combine"))
    runner.run(runner.host_command("coverage", "xml", "-i", omit))
    runner.run(runner.host_command("coverage", "html", "-i", omit, "-d", settings.coverage_html_dir))


def _write_summary(settings: DevrunSettings, payload: dict[str, object]) -> None:
    payload["correlation_id"] = correlation_id()
    atomic_write_bytes(settings.summary_file, orjson.dumps(payload, option=orjson.OPT_INDENT_2) + b"\n")


def run_tests(
    config: RunConfig,
    settings: DevrunSettings,
    runner: CommandRunner,
    server_factory: ServerFactory,
) -> int:
    """Run both suites and return 1 if either failed, else 0."""

    SanityChecker(settings).verify()
    with ExitStack() as stack:
        if config.selenium is SeleniumMode.RUN:
            stack.enter_context(server_factory().running())
        library_result = _run_library_suite(config, settings, runner)
        app_result = _run_app_suite(config, settings, runner)

    if config.with_coverage:
        _coverage_reports(settings, runner)

    exit_code = 1 if (library_result or app_result) else 0
    _write_summary(
        settings,
        {
            "action": ActionKind.TESTS.value,
            "library_status": library_result,
            "app_status": app_result,
            "exit_code": exit_code,
            "selenium": config.selenium.value,
            "coverage": config.with_coverage,
        },
    )
    log_event("tests.finished", library_status=library_result, app_status=app_result, exit_code=exit_code)
    return exit_code


def dispatch(
    config: RunConfig,
    settings: DevrunSettings,
    runner: CommandRunner,
    metrics: RunMetrics,
    *,
    server_factory: ServerFactory | None = None,
) -> int:
    action = config.action
    log_event("dispatch.action", action=action.value)
    if action is ActionKind.DOCS:
        return build_docs(settings, runner)
    if action is ActionKind.PEP8:
        return run_style_check(settings, runner)
    if action is ActionKind.PYLINT:
        return run_pylint(settings, runner)
    if action is ActionKind.RUNSERVER:
        return run_server(settings, runner)
    factory = server_factory or (lambda: SeleniumServer(settings, runner, metrics))
    return run_tests(config, settings, runner, factory)

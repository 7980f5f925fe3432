from __future__ import annotations

import pytest

from devrun.cli import main
from devrun.environment import write_stamp
from devrun.errors import SettingsError
from tests.conftest import install_sanity_scripts


def _never_prompt(question: str) -> str:  # pragma: no cover - failing path only
    raise AssertionError(f"unexpected prompt: {question}")


def test_docs_checks_environment_then_builds_docs_only(settings, fake_run, capsys):
    write_stamp(settings.stamp_path, settings.environment_version)

    code = main(["--docs", "-N"], settings_factory=lambda: settings, prompt=_never_prompt)

    assert code == 0
    assert [cmd[0] for cmd in fake_run.commands()] == ["sphinx-build"]
    out = capsys.readouterr().out
    assert out.index("Checking environment.") < out.index("Building sphinx...")


def test_docs_with_stale_environment_provisions_first(settings, fake_run):
    install_sanity_scripts(settings)

    code = main(["--docs", "-N", "-q"], settings_factory=lambda: settings, prompt=_never_prompt)

    assert code == 0
    assert fake_run.commands() == [
        ["python", "tools/install_venv.py"],
        ["python", "bootstrap.py"],
        ["bin/buildout"],
        [settings.host_wrapper, "sphinx-build", "-b", "html", "docs/source", "docs/build/html"],
    ]


def test_pylint_exit_code_is_remapped(settings, fake_run):
    write_stamp(settings.stamp_path, settings.environment_version)
    fake_run.responder = lambda call: 31
    assert main(["-y", "-N"], settings_factory=lambda: settings) == 0
    fake_run.responder = lambda call: 32
    assert main(["-y", "-N"], settings_factory=lambda: settings) == 32


def test_sanity_failure_exits_one(settings, fake_run, capsys):
    write_stamp(settings.stamp_path, settings.environment_version)

    code = main(["-N", "--skip-selenium"], settings_factory=lambda: settings)

    assert code == 1
    assert "Error: Test script not found at horizon/bin/test. Did buildout succeed?" in capsys.readouterr().err
    assert fake_run.calls == []


def test_provisioning_failure_propagates_tool_exit_code(settings, fake_run):
    fake_run.responder = lambda call: 4
    assert main(["-N", "-q", "--docs"], settings_factory=lambda: settings) == 4
    assert len(fake_run.calls) == 1


def test_settings_error_exits_two(fake_run, capsys):
    def broken():
        raise SettingsError("SETTINGS_INVALID", "Invalid devrun configuration: bad")

    assert main(["--docs"], settings_factory=broken) == 2
    assert "Invalid devrun configuration" in capsys.readouterr().err


def test_help_short_circuits_everything(fake_run, capsys):
    def untouched():  # pragma: no cover - failing path only
        raise AssertionError("settings must not load for --help")

    with pytest.raises(SystemExit) as exc_info:
        main(["--help", "--docs"], settings_factory=untouched)

    assert exc_info.value.code == 0
    assert fake_run.calls == []
    assert "usage: devrun" in capsys.readouterr().out


def test_metrics_textfile_written(settings, fake_run):
    write_stamp(settings.stamp_path, settings.environment_version)
    configured = settings.model_copy(update={"metrics_textfile": "artifacts/devrun/metrics.prom"})

    assert main(["--docs", "-N"], settings_factory=lambda: configured) == 0

    content = (settings.project_root / "artifacts" / "devrun" / "metrics.prom").read_text(encoding="utf-8")
    assert 'devrun_tool_invocations_total{tool="sphinx-build",outcome="success"} 1.0' in content

"""Command line flags parsed into one immutable run configuration."""

from __future__ import annotations

import argparse
import enum
import sys
from dataclasses import dataclass
from typing import Sequence


class VenvMode(str, enum.Enum):
    ALWAYS = "always"
    NEVER = "never"
    ASK = "ask"


class SeleniumMode(str, enum.Enum):
    RUN = "run"
    SKIP = "skip"


class ActionKind(str, enum.Enum):
    DOCS = "docs"
    PEP8 = "pep8"
    PYLINT = "pylint"
    RUNSERVER = "runserver"
    TESTS = "tests"


USAGE_NOTE = """\
Note: with no options specified, the script will try to run the tests in
  a virtual environment. If no virtualenv is found, the script will ask
  if you would like to create one. If you prefer to run tests NOT in a
  virtual environment, simply pass the -N option.

Any argument not listed above is forwarded unchanged to the test runners.
"""


@dataclass(frozen=True, slots=True)
class RunConfig:
    venv_mode: VenvMode = VenvMode.ASK
    force: bool = False
    quiet: bool = False
    with_coverage: bool = False
    selenium: SeleniumMode = SeleniumMode.RUN
    just_docs: bool = False
    just_pep8: bool = False
    just_pylint: bool = False
    runserver: bool = False
    test_args: tuple[str, ...] = ()

    @property
    def action(self) -> ActionKind:
        """The single action to run; docs > pep8 > pylint > runserver > tests."""

        if self.just_docs:
            return ActionKind.DOCS
        if self.just_pep8:
            return ActionKind.PEP8
        if self.just_pylint:
            return ActionKind.PYLINT
        if self.runserver:
            return ActionKind.RUNSERVER
        return ActionKind.TESTS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devrun",
        description="Run the dashboard and component library test suite(s)",
        epilog=USAGE_NOTE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument(
        "-V",
        "--virtual-env",
        dest="venv_mode",
        action="store_const",
        const=VenvMode.ALWAYS,
        default=VenvMode.ASK,
        help="Always use virtualenv. Install automatically if not present",
    )
    parser.add_argument(
        "-N",
        "--no-virtual-env",
        dest="venv_mode",
        action="store_const",
        const=VenvMode.NEVER,
        help="Don't use virtualenv. Run tests in local environment",
    )
    parser.add_argument("-c", "--coverage", dest="with_coverage", action="store_true", help="Generate reports using Coverage")
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Force a clean re-build of the virtual environment. Useful when dependencies have been added.",
    )
    parser.add_argument("-p", "--pep8", dest="just_pep8", action="store_true", help="Just run the style checker")
    parser.add_argument("-y", "--pylint", dest="just_pylint", action="store_true", help="Just run pylint")
    parser.add_argument("-q", "--quiet", action="store_true", help="Run non-interactively. (Relatively) quiet.")
    parser.add_argument(
        "--skip-selenium",
        dest="selenium",
        action="store_const",
        const=SeleniumMode.SKIP,
        default=SeleniumMode.RUN,
        help="Run unit tests but skip Selenium tests",
    )
    parser.add_argument(
        "--runserver",
        action="store_true",
        help="Run the Django development server for openstack-dashboard in the virtual environment.",
    )
    parser.add_argument("--docs", dest="just_docs", action="store_true", help="Just build the documentation")
    return parser


def _split_argv(parser: argparse.ArgumentParser, argv: Sequence[str]) -> tuple[list[str], list[str]]:
    # Only whole tokens naming a declared flag reach argparse; "-cx" or "--docs=1" pass through.
    known = {option for action in parser._actions for option in action.option_strings}
    flags: list[str] = []
    passthrough: list[str] = []
    for token in argv:
        (flags if token in known else passthrough).append(token)
    return flags, passthrough


def parse_options(argv: Sequence[str] | None = None) -> RunConfig:
    """Parse ``argv``; unknown tokens become test runner arguments in order.

    ``-h``/``--help`` prints usage and raises ``SystemExit(0)``.
    """

    parser = build_parser()
    flags, passthrough = _split_argv(parser, sys.argv[1:] if argv is None else list(argv))
    namespace = parser.parse_args(flags)
    return RunConfig(
        venv_mode=namespace.venv_mode,
        force=namespace.force,
        quiet=namespace.quiet,
        with_coverage=namespace.with_coverage,
        selenium=namespace.selenium,
        just_docs=namespace.just_docs,
        just_pep8=namespace.just_pep8,
        just_pylint=namespace.just_pylint,
        runserver=namespace.runserver,
        test_args=tuple(passthrough),
    )

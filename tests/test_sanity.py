from __future__ import annotations

import pytest

from devrun.errors import SanityCheckError
from devrun.sanity import SanityChecker
from tests.conftest import install_sanity_scripts


def test_all_artifacts_present(settings):
    install_sanity_scripts(settings)
    SanityChecker(settings).verify()


@pytest.mark.parametrize(
    ("present", "label", "missing"),
    [
        ((), "Test", "test"),
        (("test",), "Coverage", "coverage"),
        (("test", "coverage"), "Selenium", "seleniumrc"),
    ],
)
def test_first_missing_artifact_is_named(settings, present, label, missing):
    install_sanity_scripts(settings, names=present)

    with pytest.raises(SanityCheckError) as exc_info:
        SanityChecker(settings).verify()

    error = exc_info.value
    assert error.exit_code == 1
    assert error.code == "ARTIFACT_MISSING"
    assert error.message == f"Error: {label} script not found at horizon/bin/{missing}. Did buildout succeed?"
    assert error.context["artifact"] == f"horizon/bin/{missing}"

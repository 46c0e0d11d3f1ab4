"""Shared fixtures: isolated resolution contexts."""

import pytest

from regcred.registry.context import ResolutionContext


@pytest.fixture
def home_dir(tmp_path):
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def runtime_dir(tmp_path):
    path = tmp_path / "xdg"
    path.mkdir()
    return path


@pytest.fixture
def context(home_dir, runtime_dir):
    """A Linux context whose files all live under ``tmp_path``."""
    return ResolutionContext(
        runtime_dir=runtime_dir,
        home_dir=home_dir,
        os_name="linux",
        uid=1000,
    )


@pytest.fixture
def auth_path(runtime_dir):
    """Primary auth file for the ``context`` fixture."""
    return runtime_dir / "containers" / "auth.json"

"""Shared fixtures for CLI tests.

Commands are invoked through Click's CliRunner with the fake-backed
``Session`` passed as ``obj``, so the group never builds a real one.
"""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from gitkeys.cli import output


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep Rich from wrapping long temporary paths in captured output."""
    monkeypatch.setattr(output.console, "width", 240)
    monkeypatch.setattr(output.err_console, "width", 240)

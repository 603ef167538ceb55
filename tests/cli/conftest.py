"""Shared fixtures for CLI tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from linkshelf.cli import app

if TYPE_CHECKING:
    from click.testing import Result


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def storage_uri(tmp_path, monkeypatch):
    """Storage URI of a temporary database, with the environment cleared."""
    for name in ("LINKSHELF_STORAGE_URI", "LINKSHELF_BUSY_TIMEOUT_MS", "LINKSHELF_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return f"sqlite:///{tmp_path / 'cli_test.db'}"


@pytest.fixture
def seeded_uri(runner, storage_uri):
    """A database holding one category (id 1) with two links (ids 1 and 2)."""
    invoke(runner, ["create", "Category", '{"title": "Work", "positionIdx": 1}'], storage_uri)
    for idx in range(2):
        payload = {"title": f"link{idx}", "href": f"https://example.com/{idx}", "categoryId": 1}
        invoke(runner, ["create", "Link", json.dumps(payload)], storage_uri)
    return storage_uri


def invoke(runner: CliRunner, args: list[str], storage_uri: str | None = None) -> "Result":
    """Invoke the CLI against the given storage URI."""
    if storage_uri:
        args = ["--storage-uri", storage_uri] + args
    return runner.invoke(app, args, catch_exceptions=False)

"""Tests for error kinds, status mapping and configuration."""

from __future__ import annotations

import pytest

from linkshelf.config import LinkshelfConfig
from linkshelf.errors import (
    ErrorKind,
    LinkshelfError,
    StorageBackendError,
    client_error,
    not_authorized,
    not_found,
    server_error,
    status_code,
)


@pytest.mark.parametrize(
    ("factory", "kind", "code"),
    [
        (client_error, ErrorKind.CLIENT, 400),
        (not_authorized, ErrorKind.NOT_AUTHORIZED, 401),
        (not_found, ErrorKind.NOT_FOUND, 404),
        (server_error, ErrorKind.SERVER, 500),
    ],
)
def test_factories(factory, kind, code) -> None:
    error = factory("message")
    assert isinstance(error, LinkshelfError)
    assert error.kind is kind
    assert error.message == "message"
    assert str(error) == "message"
    assert error.status_code == code
    assert status_code(kind) == code


def test_storage_backend_error_is_a_server_error() -> None:
    error = StorageBackendError("commit", "disk full")
    assert error.kind is ErrorKind.SERVER
    assert error.operation == "commit"
    assert "disk full" in error.message


def test_repr() -> None:
    assert repr(client_error("bad")) == "LinkshelfError(CLIENT, 'bad')"


class TestConfig:
    def test_defaults(self, monkeypatch) -> None:
        for name in ("LINKSHELF_STORAGE_URI", "LINKSHELF_BUSY_TIMEOUT_MS", "LINKSHELF_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        assert LinkshelfConfig.from_env() == LinkshelfConfig()

    def test_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("LINKSHELF_STORAGE_URI", "sqlite:///:memory:")
        monkeypatch.setenv("LINKSHELF_BUSY_TIMEOUT_MS", "250")
        monkeypatch.setenv("LINKSHELF_LOG_LEVEL", "debug")
        assert LinkshelfConfig.from_env() == LinkshelfConfig(
            storage_uri="sqlite:///:memory:", busy_timeout_ms=250, log_level="DEBUG"
        )

"""Structured error types for linkshelf."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Category of a failure, mapped to a transport status at the boundary."""

    CLIENT = "client"
    NOT_FOUND = "not_found"
    NOT_AUTHORIZED = "not_authorized"
    SERVER = "server"


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.CLIENT: 400,
    ErrorKind.NOT_AUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.SERVER: 500,
}


class LinkshelfError(Exception):
    """Error raised by the persistence core, tagged with its ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return status_code(self.kind)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.kind.name}, {self.message!r})"


class StorageBackendError(LinkshelfError):
    """Raised when backend storage operations fail."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(ErrorKind.SERVER, f"Storage backend error during {operation}: {detail}")


def client_error(message: str) -> LinkshelfError:
    return LinkshelfError(ErrorKind.CLIENT, message)


def server_error(message: str) -> LinkshelfError:
    return LinkshelfError(ErrorKind.SERVER, message)


def not_found(message: str) -> LinkshelfError:
    return LinkshelfError(ErrorKind.NOT_FOUND, message)


def not_authorized(message: str) -> LinkshelfError:
    return LinkshelfError(ErrorKind.NOT_AUTHORIZED, message)


def status_code(kind: ErrorKind) -> int:
    """Map an ErrorKind onto the HTTP status code used by the resource layer."""
    return _STATUS_CODES[kind]

"""
Exception hierarchy for infx.

Failures are split by where they arise and whether a retry can help:

- ``TransportError``: the HTTP exchange failed (connection, status code,
  unreadable envelope). Retried up to the configured attempt count.
- ``RpcError``: the server answered with a JSON-RPC error envelope. Never
  retried.
- ``MalformedObject`` / ``TypeMismatch``: a payload or a locally built
  collection violates the typed-object contract.
- ``DanglingReference``: a bare reference points to an id that is not
  defined in the same response. Logged, not raised, unless resolution
  runs in strict mode.
- ``UnknownEndpoint``: an endpoint name missing from the endpoint table.
- ``AuthenticationError``: login was rejected.
"""

from __future__ import annotations

from typing import Any, Optional


class InfxError(Exception):
    """Base class for all infx errors."""


class TransportError(InfxError):
    """An HTTP exchange did not produce a usable JSON-RPC envelope."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RpcError(InfxError):
    """The server rejected a call with a JSON-RPC error envelope."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(f"JSON-RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class MalformedObject(InfxError, ValueError):
    """A JSON value carries a type discriminator of unrecognised shape."""


class TypeMismatch(InfxError, TypeError):
    """Members of a typed collection disagree on their most specific type."""


class DanglingReference(InfxError):
    """A bare reference could not be matched to a definition site."""

    def __init__(self, reference_id: Any, field: Optional[str] = None):
        where = f" in field '{field}'" if field is not None else ""
        super().__init__(f"Unresolved reference to id {reference_id!r}{where}")
        self.reference_id = reference_id
        self.field = field


class UnknownEndpoint(InfxError, ValueError):
    """An endpoint name that is not part of the endpoint table."""


class AuthenticationError(InfxError):
    """Login to openBIS failed."""


__all__ = [
    "InfxError",
    "TransportError",
    "RpcError",
    "MalformedObject",
    "TypeMismatch",
    "DanglingReference",
    "UnknownEndpoint",
    "AuthenticationError",
]

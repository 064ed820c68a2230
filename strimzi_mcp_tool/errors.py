"""Errors raised by the Strimzi operations layer.

Tool functions turn these into ``{"success": False, "error": ...}`` responses;
the message is shown to the user as-is, so it always names the resource.
"""

from typing import Optional


class StrimziToolError(Exception):
    """Base class for every error this package raises on purpose."""


class NotFoundError(StrimziToolError):
    def __init__(self, kind: str, namespace: Optional[str], name: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        where = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} not found: {where}")


class AlreadyExistsError(StrimziToolError):
    def __init__(self, kind: str, namespace: Optional[str], name: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        where = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} already exists: {where}")


class PreconditionFailedError(StrimziToolError):
    """A requested transition is not allowed from the observed state."""

    def __init__(self, message: str, current_state: str, expected_state: Optional[str] = None):
        self.current_state = current_state
        self.expected_state = expected_state
        detail = f"{message}. Current state: {current_state}"
        if expected_state:
            detail += f". Expected: {expected_state}"
        super().__init__(detail)


class CertificateParseError(StrimziToolError):
    """Certificate bytes could not be decoded as PEM or DER X.509."""

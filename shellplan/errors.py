from __future__ import annotations

from typing import Optional


class ShellPlanError(Exception):
    """Base class for every recoverable failure raised by shellplan."""


class ConfigError(ShellPlanError):
    pass


# ----------------------------- transport -----------------------------------

class TransportError(ShellPlanError):
    pass


class MissingCredentialError(TransportError):
    pass


class TransportTimeoutError(TransportError):
    pass


class TransportFailedError(TransportError):
    """The provider could not be reached or answered with a non-2xx status.

    ``body`` is whatever the provider sent back and ``detail`` is the
    client-side reason; both are shown to the user verbatim.
    """

    def __init__(self, status_code: Optional[int], body: str, detail: str) -> None:
        self.status_code = status_code
        self.body = body
        self.detail = detail
        code = status_code if status_code is not None else "unknown"
        super().__init__(f"provider request failed (status={code}): {detail}")


# ----------------------------- extraction ----------------------------------

class ExtractionError(ShellPlanError):
    pass


class FieldNotFoundError(ExtractionError):
    pass


class MalformedFieldError(ExtractionError):
    pass


# ------------------------------- plans -------------------------------------

class PlanSchemaError(ShellPlanError):
    def __init__(self, text: str, detail: str) -> None:
        self.text = text
        self.detail = detail
        super().__init__(f"failed to parse plan JSON: {detail}")


class LaunchFailedError(ShellPlanError):
    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"failed to launch command: {reason}")

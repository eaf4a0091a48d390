from __future__ import annotations

from typing import Iterable, Optional


class InspectionEngineError(Exception):
    """Base for every reported lifecycle failure. `status_code` is a hint for the transport layer."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthorizationDenied(InspectionEngineError):
    status_code = 403


class PreconditionFailed(InspectionEngineError):
    status_code = 409

    def __init__(self, message: str, *, current_status: Optional[str] = None) -> None:
        super().__init__(message)
        self.current_status = current_status


class ValidationFailed(InspectionEngineError):
    status_code = 422

    def __init__(self, errors: Iterable[str], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.errors = list(errors)


class DocumentStructureError(InspectionEngineError):
    """The body is not a well-formed inspection document at all."""

    status_code = 400


class RecordNotFound(InspectionEngineError):
    status_code = 404


class RenderingFailed(InspectionEngineError):
    status_code = 502

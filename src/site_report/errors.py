"""Error types for the report pipeline.

ValidationError   - bad input shape, never retried.
CollaboratorError - an external service (transcription, captioning, narrative
                    generation, mail) failed; wraps the original exception.
AssemblyError     - the PDF sink could not be written.
NotFoundError     - unknown report id.
"""

from typing import Any, Dict, Optional


class SiteReportError(Exception):
    """Base exception for all report pipeline errors."""

    error_type = "SITE_REPORT_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary form for logging and API responses."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(SiteReportError):
    error_type = "VALIDATION_ERROR"


class NotFoundError(SiteReportError):
    error_type = "NOT_FOUND"

    @classmethod
    def report(cls, report_id: str) -> "NotFoundError":
        return cls(f"Report not found: {report_id}", details={"report_id": report_id})


class CollaboratorError(SiteReportError):
    """
    An external collaborator call failed.

    Attributes:
        collaborator: Name of the service ("transcription", "narrative", ...)
        operation: What was being attempted
        original_exception: The exception raised by the service, if any
    """

    error_type = "COLLABORATOR_ERROR"

    def __init__(
        self,
        collaborator: str,
        operation: str,
        original_exception: Optional[BaseException] = None,
        message: Optional[str] = None,
    ):
        self.collaborator = collaborator
        self.operation = operation
        self.original_exception = original_exception
        text = message or f"{collaborator} failed during {operation}"
        if original_exception is not None and message is None:
            text = f"{text}: {original_exception}"
        super().__init__(
            text,
            details={
                "collaborator": collaborator,
                "operation": operation,
                "original_exception": str(original_exception) if original_exception else None,
            },
        )

    @classmethod
    def wrap(cls, collaborator: str, operation: str, error: BaseException) -> "CollaboratorError":
        """Return `error` unchanged if it already is a CollaboratorError, otherwise wrap it."""
        if isinstance(error, CollaboratorError):
            return error
        return cls(collaborator, operation, original_exception=error)


class AssemblyError(SiteReportError):
    error_type = "ASSEMBLY_ERROR"

"""
Settlement Exceptions

Exception classes raised by the settlement operation and its call sites. Each
exception carries a machine-readable ``kind`` and the HTTP status used when it
is returned to a caller, so views can translate errors without re-classifying
them.

Hierarchy:
    SettlementError
    ├── Unauthenticated             (401, "unauthenticated")
    ├── PermissionDenied            (403, "permission-denied")
    ├── InvalidArgument             (400, "invalid-argument")
    ├── NotFoundOrAlreadyProcessed  (404, "not-found")
    ├── TransactionConflict         (409, "conflict", retryable)
    └── InternalFailure             (500, "internal")
"""

from typing import Any, Dict, Optional


class SettlementError(Exception):
    """
    Base exception class for all settlement errors.

    Attributes:
        message (str): Human-readable, caller-safe error message
        kind (str): Machine-readable error kind
        status_code (int): HTTP status code for API responses
        details (Dict[str, Any]): Additional context, logged but not returned
        retryable (bool): Whether the same call may succeed when repeated
    """

    kind = "internal"
    status_code = 500
    retryable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the exception into the error body returned to callers.

        ``details`` are intentionally left out; they may contain identifiers
        that should only end up in server logs.
        """
        return {
            "kind": self.kind,
            "message": self.message,
        }


class Unauthenticated(SettlementError):
    """Raised when no verified identity accompanies the call."""

    kind = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Authentication required.") -> None:
        super().__init__(message)


class PermissionDenied(SettlementError):
    """Raised when the caller is authenticated but lacks the admin role claim."""

    kind = "permission-denied"
    status_code = 403

    def __init__(self, message: str = "Only administrators may perform this action.") -> None:
        super().__init__(message)


class InvalidArgument(SettlementError):
    """
    Raised when identifiers are missing, empty or inconsistent.

    Attributes:
        field (Optional[str]): Name of the offending input field
    """

    kind = "invalid-argument"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message, details={"field": field} if field else None)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class NotFoundOrAlreadyProcessed(SettlementError):
    """
    Raised when the referenced request or user does not exist, or the request
    has already been completed. Settlement performs no writes in that case.
    """

    kind = "not-found"
    status_code = 404

    def __init__(
        self,
        message: str = "Request not found or already processed.",
        resource: Optional[str] = None,
    ) -> None:
        self.resource = resource
        super().__init__(message, details={"resource": resource} if resource else None)


class TransactionConflict(SettlementError):
    """
    The database reported a lock or serialization conflict. The transaction
    body is re-executed by the store; callers only see it as the cause of an
    InternalFailure once attempts are exhausted.
    """

    kind = "conflict"
    status_code = 409
    retryable = True

    def __init__(self, message: str = "Concurrent update detected.", attempt: int = 0) -> None:
        self.attempt = attempt
        super().__init__(message, details={"attempt": attempt})


class InternalFailure(SettlementError):
    """
    Raised for failures the caller cannot fix: exhausted transaction attempts,
    database errors, malformed upstream payloads.
    """

    kind = "internal"
    status_code = 500

    def __init__(
        self,
        message: str = "Server error while processing the request.",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)

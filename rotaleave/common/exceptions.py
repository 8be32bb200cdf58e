"""Custom exceptions with RFC 7807 Problem Detail rendering."""

from __future__ import annotations

from typing import Any, Optional

BASE_ERROR_URI = "https://rotaleave.local/errors"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)

    def to_problem_detail(self, instance: Optional[str] = None) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": f"{BASE_ERROR_URI}/{self.error_type}",
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }
        if instance:
            body["instance"] = instance
        if self.errors:
            body["errors"] = self.errors
        return body


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class UnauthorizedException(AppException):
    """403 — the actor has no approval authority over this request."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="unauthorized",
            title="Unauthorized",
            detail=detail,
        )


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


class InsufficientBalanceException(ValidationException):
    """422 — more days requested than the leave type has available."""

    def __init__(self, leave_type: str, available: int, requested: int) -> None:
        super().__init__(
            {"balance": [
                f"Insufficient {leave_type} balance. "
                f"Available: {available}, Requested: {requested}."
            ]}
        )
        self.error_type = "insufficient-balance"
        self.leave_type = leave_type
        self.available = available
        self.requested = requested


class InvalidStateTransition(AppException):
    """409 — action incompatible with the entity's current status."""

    def __init__(self, entity_type: str, current: str, action: str) -> None:
        super().__init__(
            status_code=409,
            error_type="invalid-state-transition",
            title="Invalid State Transition",
            detail=f"Cannot {action} a {entity_type} that is {current}.",
        )
        self.current = current
        self.action = action

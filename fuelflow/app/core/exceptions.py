"""Typed error hierarchy for the back office.

Services raise these; ``main.py`` registers one handler that turns any
``FuelFlowError`` into a JSON response using the class ``status_code``::

    FuelFlowError
    +-- ValidationError          400
    |   +-- UnbalancedEntryError
    +-- AuthError                401
    |   +-- AccountLockedError   423
    +-- AuthorizationError       403
    +-- NotFoundError            404
    +-- ConflictError            409
    |   +-- InsufficientStockError
    +-- PersistenceError         500
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class FuelFlowError(Exception):
    code: str = "ERROR"
    status_code: int = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class ValidationError(FuelFlowError):
    """Malformed or inconsistent input, detected before any write."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        errors: list[dict[str, str]] | None = None,
        **details: Any,
    ) -> None:
        super().__init__(message, **details)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> ValidationError:
        return cls(message, errors=[{"field": field, "message": message}])

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["errors"] = self.errors
        return body


class UnbalancedEntryError(ValidationError):
    code = "UNBALANCED_ENTRY"

    def __init__(self, total_debit: Decimal, total_credit: Decimal) -> None:
        super().__init__(
            f"Debits ({total_debit}) must equal credits ({total_credit})",
            errors=[{"field": "lines", "message": "entry is not balanced"}],
        )
        self.total_debit = total_debit
        self.total_credit = total_credit


class AuthError(FuelFlowError):
    code = "AUTH_ERROR"
    status_code = 401


class AccountLockedError(AuthError):
    code = "ACCOUNT_LOCKED"
    status_code = 423


class AuthorizationError(FuelFlowError):
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(FuelFlowError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None) -> None:
        super().__init__(f"{resource} not found", resource_id=resource_id)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(FuelFlowError):
    code = "CONFLICT"
    status_code = 409


class InsufficientStockError(ConflictError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, tank_name: str, requested: Decimal) -> None:
        super().__init__(
            f"Insufficient stock in tank '{tank_name}' for {requested}",
            tank=tank_name,
            requested=str(requested),
        )
        self.tank_name = tank_name
        self.requested = requested


class PersistenceError(FuelFlowError):
    code = "PERSISTENCE_ERROR"
    status_code = 500

    def __init__(self, message: str = "Internal server error", **details: Any) -> None:
        super().__init__(message, **details)

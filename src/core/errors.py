"""
Typed errors raised by the service layer.

The API turns every ReliefLedgerError into the ``{"success": false, "error": ...}``
result shape with the error's status code.
"""

from typing import Any, Dict, Optional


class ReliefLedgerError(Exception):
    """Base error for all service failures."""

    status_code: int = 500

    def __init__(self, message: str, *, meta: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.meta = dict(meta or {})

    def to_result(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.message}
        if self.meta:
            payload["meta"] = self.meta
        return payload


class NotFoundError(ReliefLedgerError):
    status_code = 404


class ValidationError(ReliefLedgerError):
    status_code = 400


class ConflictError(ReliefLedgerError):
    status_code = 409


class AllocationError(ValidationError):
    """Raised when a donation cannot be split across the selected leads."""

"""
Core module containing the base service and the error hierarchy.
"""

from src.core.base_service import BaseService
from src.core.errors import (
    AllocationError,
    ConflictError,
    NotFoundError,
    ReliefLedgerError,
    ValidationError,
)

__all__ = [
    "BaseService",
    # Errors
    "ReliefLedgerError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "AllocationError",
]

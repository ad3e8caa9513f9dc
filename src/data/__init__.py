"""
Data module for database models, the session layer and synthetic data generation.
"""

from src.data.database import get_session, init_db
from src.data.synthetic import SyntheticDataGenerator
from src.data.models import (
    ActivityLog,
    Allocation,
    Campaign,
    Donation,
    FundTransfer,
    Lead,
    Organization,
    User,
)

__all__ = [
    "get_session",
    "init_db",
    "SyntheticDataGenerator",
    "ActivityLog",
    "Allocation",
    "Campaign",
    "Donation",
    "FundTransfer",
    "Lead",
    "Organization",
    "User",
]

"""
Domain services. Each wraps one request's database session.
"""

from src.services.activity_log import ActivityLogService
from src.services.allocation import AllocationService
from src.services.app_settings import AppSettingsService
from src.services.campaigns import CampaignService
from src.services.donations import DonationService
from src.services.leads import LeadService
from src.services.organization import OrganizationService
from src.services.public_data import PublicDataService
from src.services.transfers import TransferService
from src.services.users import UserService

__all__ = [
    "ActivityLogService",
    "AllocationService",
    "AppSettingsService",
    "CampaignService",
    "DonationService",
    "LeadService",
    "OrganizationService",
    "PublicDataService",
    "TransferService",
    "UserService",
]

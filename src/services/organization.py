"""
The organization profile. There is a single organization; updates upsert it.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select

from src.core.base_service import BaseService
from src.core.errors import ValidationError
from src.data.models import Organization
from src.services.public_data import PublicDataService

UPDATABLE_FIELDS = {
    "name", "address", "city", "registration_number", "pan_number", "contact_email",
    "contact_phone", "website", "logo_url", "bank_account_name", "bank_account_number",
    "bank_ifsc_code", "upi_id", "qr_code_url", "footer",
}


class OrganizationService(BaseService):
    name = "organization"

    def __init__(self, session):
        super().__init__(session)
        self.public_data = PublicDataService(session)

    async def get_organization(self) -> Optional[Organization]:
        result = await self.session.execute(select(Organization).order_by(Organization.created_at).limit(1))
        return result.scalars().first()

    async def update_organization(self, data: Dict[str, Any]) -> Organization:
        """Create the organization on first save, update it afterwards."""
        unknown = set(data) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        async with self.transaction():
            organization = await self.get_organization()
            if organization is None:
                if not data.get("name"):
                    raise ValidationError("Organization name is required.")
                organization = Organization(**data)
                self.session.add(organization)
            else:
                for key, value in data.items():
                    setattr(organization, key, value)
            await self.session.flush()
            await self.public_data.update_public_organization(organization)

        self._logger.info("organization_saved", organization_id=organization.id)
        return organization

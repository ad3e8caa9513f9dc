"""
Campaigns: time-boxed fundraising goals that leads and donations link to.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from src.core.base_service import BaseService
from src.core.errors import ConflictError, NotFoundError, ValidationError
from src.data.models import Campaign, CampaignStatus, Donation, DonationType, Lead
from src.services.public_data import PublicDataService

UPDATABLE_FIELDS = {
    "name", "description", "goal", "start_date", "end_date", "status", "acceptable_donation_types",
}


def slugify(name: str) -> str:
    """'Ramadan  Relief 2025' -> 'ramadan-relief-2025'"""
    return re.sub(r"\s+", "-", name.strip().lower())


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored dates are naive UTC; convert aware datetimes to match."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CampaignService(BaseService):
    name = "campaigns"

    def __init__(self, session):
        super().__init__(session)
        self.public_data = PublicDataService(session)

    async def get_campaign(self, campaign_id: str) -> Campaign:
        return await self._get_or_404(Campaign, campaign_id, "Campaign")

    async def list_campaigns(self) -> List[Campaign]:
        result = await self.session.execute(select(Campaign).order_by(Campaign.start_date.desc()))
        return list(result.scalars().all())

    async def get_campaign_stats(self, campaign_id: str) -> Dict[str, Any]:
        campaign = await self.get_campaign(campaign_id)
        return await self.public_data.enrich_campaign(campaign)

    @staticmethod
    def _validate(data: Dict[str, Any]) -> None:
        if data.get("goal") is not None and float(data["goal"]) < 0:
            raise ValidationError("Campaign goal cannot be negative.")
        start, end = data.get("start_date"), data.get("end_date")
        if start and end and end < start:
            raise ValidationError("Campaign end date must be after its start date.")
        for value in data.get("acceptable_donation_types") or []:
            try:
                DonationType(value)
            except ValueError:
                raise ValidationError(f"Unknown donation type: {value}")

    async def _link(self, campaign: Campaign, lead_ids: List[str], donation_ids: List[str]) -> None:
        for lead_id in lead_ids:
            lead = await self.session.get(Lead, lead_id)
            if lead is None:
                raise NotFoundError(f"Lead {lead_id} not found.", meta={"lead_id": lead_id})
            lead.campaign_id = campaign.id
            lead.campaign_name = campaign.name
        for donation_id in donation_ids:
            donation = await self.session.get(Donation, donation_id)
            if donation is None:
                raise NotFoundError(f"Donation {donation_id} not found.", meta={"donation_id": donation_id})
            donation.campaign_id = campaign.id
            donation.campaign_name = campaign.name

    async def create_campaign(
        self,
        data: Dict[str, Any],
        lead_ids: Optional[List[str]] = None,
        donation_ids: Optional[List[str]] = None,
    ) -> Campaign:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Campaign name is required.")
        if not data.get("start_date") or not data.get("end_date"):
            raise ValidationError("Campaign start and end dates are required.")
        data = {**data, "start_date": naive_utc(data["start_date"]), "end_date": naive_utc(data["end_date"])}
        self._validate(data)
        campaign_id = data.get("id") or slugify(name)

        async with self.transaction():
            if await self.session.get(Campaign, campaign_id) is not None:
                raise ConflictError(f'A campaign with the name "{name}" already exists.')

            campaign = Campaign(
                id=campaign_id,
                name=name,
                description=data.get("description") or "",
                goal=round(float(data.get("goal") or 0), 2),
                start_date=data["start_date"],
                end_date=data["end_date"],
                status=CampaignStatus(data.get("status") or CampaignStatus.UPCOMING),
                acceptable_donation_types=list(data.get("acceptable_donation_types") or []),
                source=data.get("source") or "Manual Entry",
            )
            self.session.add(campaign)
            await self._link(campaign, lead_ids or [], donation_ids or [])
            await self.public_data.update_public_campaign(campaign)

        self._logger.info("campaign_created", campaign_id=campaign_id, leads=len(lead_ids or []))
        return campaign

    async def update_campaign(self, campaign_id: str, updates: Dict[str, Any]) -> Campaign:
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        updates = dict(updates)
        for key in ("start_date", "end_date"):
            if updates.get(key) is not None:
                updates[key] = naive_utc(updates[key])

        async with self.transaction():
            campaign = await self.get_campaign(campaign_id)
            self._validate({
                "start_date": updates.get("start_date", campaign.start_date),
                "end_date": updates.get("end_date", campaign.end_date),
                "goal": updates.get("goal"),
                "acceptable_donation_types": updates.get("acceptable_donation_types"),
            })
            updates = dict(updates)
            if updates.get("status") is not None:
                updates["status"] = CampaignStatus(updates["status"])
            if updates.get("name") is not None:
                updates["name"] = updates["name"].strip()
                if not updates["name"]:
                    raise ValidationError("Campaign name is required.")

            renamed = updates.get("name") not in (None, campaign.name)
            for key, value in updates.items():
                if value is not None:
                    setattr(campaign, key, value)

            # The id stays fixed; only the denormalised name follows a rename.
            if renamed:
                for model in (Lead, Donation):
                    result = await self.session.execute(select(model).where(model.campaign_id == campaign.id))
                    for row in result.scalars().all():
                        row.campaign_name = campaign.name
            await self.public_data.update_public_campaign(campaign)

        self._logger.info("campaign_updated", campaign_id=campaign_id, renamed=renamed)
        return campaign

    async def bulk_delete_campaigns(self, campaign_ids: List[str]) -> int:
        if not campaign_ids:
            raise ValidationError("No campaigns selected.")

        async with self.transaction():
            for campaign_id in campaign_ids:
                campaign = await self.get_campaign(campaign_id)
                linked = await self.session.scalar(
                    select(func.count(Lead.id)).where(Lead.campaign_id == campaign.id)
                )
                if linked:
                    raise ConflictError(
                        f'Campaign "{campaign.name}" cannot be deleted because it has {linked} lead(s) '
                        "linked to it. Please reassign or remove the leads first."
                    )
                result = await self.session.execute(select(Donation).where(Donation.campaign_id == campaign.id))
                for donation in result.scalars().all():
                    donation.campaign_id = None
                    donation.campaign_name = None
                await self.public_data.remove_public_campaign(campaign.id)
                await self.session.delete(campaign)

        self._logger.info("campaigns_deleted", count=len(campaign_ids))
        return len(campaign_ids)

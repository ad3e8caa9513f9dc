"""
Sanitised, public-facing snapshots of leads, campaigns, the organization
and the headline statistics.

Write paths call into this service after they change the underlying
records; public readers never touch the private tables.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from src.core.base_service import BaseService
from src.data.models import (
    RECEIVED_DONATION_STATUSES,
    Campaign,
    Donation,
    DonationStatus,
    Lead,
    LeadAction,
    LeadStatus,
    LeadVerificationStatus,
    Organization,
    PublicCampaign,
    PublicData,
    PublicLead,
    User,
)

STATS_KEY = "stats"
ORGANIZATION_KEY = "organization"

CLOSED_LEAD_STATUSES = (LeadStatus.CLOSED, LeadStatus.COMPLETE)
OPEN_LEAD_STATUSES = (LeadStatus.OPEN, LeadStatus.PENDING, LeadStatus.PARTIAL)


class PublicDataService(BaseService):
    name = "public_data"

    # Leads

    async def update_public_lead(self, lead: Lead) -> None:
        """Mirror a lead while it is published, drop it otherwise.

        Staged on the caller's session; the caller commits.
        """
        await self.session.flush()
        existing = await self.session.get(PublicLead, lead.id)

        if lead.case_action != LeadAction.PUBLISH:
            if existing is not None:
                await self.session.delete(existing)
            return

        beneficiary = None
        if lead.beneficiary_id:
            beneficiary = await self.session.get(User, lead.beneficiary_id)
        is_anonymous = bool(beneficiary and beneficiary.is_anonymous_as_beneficiary)

        data = {
            "id": lead.id,
            "name": beneficiary.anonymous_beneficiary_id if is_anonymous else lead.name,
            "headline": lead.headline,
            "story": lead.story,
            "purpose": lead.purpose,
            "category": lead.category,
            "help_requested": lead.help_requested,
            "collected_amount": lead.collected_amount,
            "help_given": lead.help_given,
            "pending_amount": lead.pending_amount,
            "date_created": lead.date_created.isoformat() if lead.date_created else None,
            "due_date": lead.due_date.isoformat() if lead.due_date else None,
            "is_anonymous": is_anonymous,
        }
        if existing is None:
            self.session.add(PublicLead(id=lead.id, data=data, date_created=lead.date_created))
        else:
            existing.data = data
            existing.date_created = lead.date_created

    async def remove_public_lead(self, lead_id: str) -> None:
        existing = await self.session.get(PublicLead, lead_id)
        if existing is not None:
            await self.session.delete(existing)

    async def get_public_leads(self) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(PublicLead).order_by(PublicLead.date_created.desc())
        )
        return [row.data for row in result.scalars().all()]

    # Campaigns

    async def enrich_campaign(self, campaign: Campaign) -> Dict[str, Any]:
        """Campaign dict plus raised amount, funding progress and link counts."""
        raised = await self.session.scalar(
            select(func.coalesce(func.sum(Donation.amount), 0.0)).where(
                Donation.campaign_id == campaign.id,
                Donation.status.in_(RECEIVED_DONATION_STATUSES),
            )
        )
        donation_count = await self.session.scalar(
            select(func.count(Donation.id)).where(Donation.campaign_id == campaign.id)
        )
        lead_count = await self.session.scalar(
            select(func.count(Lead.id)).where(Lead.campaign_id == campaign.id)
        )
        raised = round(float(raised or 0.0), 2)
        progress = round(raised / campaign.goal * 100, 2) if campaign.goal > 0 else 0.0

        data = campaign.to_dict()
        data.update({
            "raised_amount": raised,
            "funding_progress": progress,
            "donation_count": int(donation_count or 0),
            "lead_count": int(lead_count or 0),
        })
        return data

    async def update_public_campaign(self, campaign: Campaign) -> Dict[str, Any]:
        await self.session.flush()
        data = await self.enrich_campaign(campaign)
        existing = await self.session.get(PublicCampaign, campaign.id)
        if existing is None:
            self.session.add(PublicCampaign(id=campaign.id, data=data, start_date=campaign.start_date))
        else:
            existing.data = data
            existing.start_date = campaign.start_date
        return data

    async def remove_public_campaign(self, campaign_id: str) -> None:
        existing = await self.session.get(PublicCampaign, campaign_id)
        if existing is not None:
            await self.session.delete(existing)

    async def get_public_campaigns(self) -> List[Dict[str, Any]]:
        result = await self.session.execute(
            select(PublicCampaign).order_by(PublicCampaign.start_date.desc())
        )
        return [row.data for row in result.scalars().all()]

    # Organization

    async def update_public_organization(self, organization: Organization) -> None:
        await self._put(ORGANIZATION_KEY, organization.to_dict())

    async def get_public_organization(self) -> Optional[Dict[str, Any]]:
        row = await self.session.get(PublicData, ORGANIZATION_KEY)
        return row.data if row is not None else None

    # Stats

    async def compute_stats(self) -> Dict[str, Any]:
        total_raised = await self.session.scalar(
            select(func.coalesce(func.sum(Donation.amount), 0.0)).where(
                Donation.status.in_(RECEIVED_DONATION_STATUSES)
            )
        )
        total_distributed = await self.session.scalar(
            select(func.coalesce(func.sum(Lead.help_given), 0.0))
        )
        beneficiaries_helped = await self.session.scalar(
            select(func.count(func.distinct(Lead.beneficiary_id))).where(
                Lead.help_given > 0, Lead.beneficiary_id.is_not(None)
            )
        )
        cases_closed = await self.session.scalar(
            select(func.count(Lead.id)).where(Lead.case_status.in_(CLOSED_LEAD_STATUSES))
        )
        open_cases = await self.session.scalar(
            select(func.count(Lead.id)).where(Lead.case_status.in_(OPEN_LEAD_STATUSES))
        )

        total_raised = round(float(total_raised or 0.0), 2)
        total_distributed = round(float(total_distributed or 0.0), 2)
        return {
            "total_raised": total_raised,
            "total_distributed": total_distributed,
            "beneficiaries_helped": int(beneficiaries_helped or 0),
            "cases_closed": int(cases_closed or 0),
            "open_cases": int(open_cases or 0),
            "funds_in_hand": round(total_raised - total_distributed, 2),
        }

    async def refresh_public_stats(self) -> Dict[str, Any]:
        """Recompute and stage the public stats document."""
        await self.session.flush()
        stats = await self.compute_stats()
        await self._put(STATS_KEY, stats)
        return stats

    async def get_public_stats(self) -> Optional[Dict[str, Any]]:
        row = await self.session.get(PublicData, STATS_KEY)
        return row.data if row is not None else None

    async def dashboard_summary(self) -> Dict[str, Any]:
        """Live figures for the admin dashboard."""
        stats = await self.compute_stats()

        pending_donations = await self.session.scalar(
            select(func.count(Donation.id)).where(
                Donation.status.in_((DonationStatus.PENDING, DonationStatus.PENDING_VERIFICATION))
            )
        )
        pending_verification_leads = await self.session.scalar(
            select(func.count(Lead.id)).where(
                Lead.case_verification == LeadVerificationStatus.PENDING
            )
        )
        ready_to_publish = await self.session.scalar(
            select(func.count(Lead.id)).where(Lead.case_action == LeadAction.READY_FOR_HELP)
        )

        top_donors_result = await self.session.execute(
            select(
                Donation.donor_id,
                Donation.donor_name,
                func.sum(Donation.amount).label("total"),
                func.count(Donation.id).label("count"),
            )
            .where(Donation.status.in_(RECEIVED_DONATION_STATUSES))
            .group_by(Donation.donor_id, Donation.donor_name)
            .order_by(func.sum(Donation.amount).desc())
            .limit(5)
        )
        top_donors = [
            {
                "donor_id": row.donor_id,
                "donor_name": row.donor_name,
                "total": round(float(row.total), 2),
                "count": int(row.count),
            }
            for row in top_donors_result
        ]

        return {
            **stats,
            "pending_donations": int(pending_donations or 0),
            "pending_verification_leads": int(pending_verification_leads or 0),
            "leads_ready_to_publish": int(ready_to_publish or 0),
            "top_donors": top_donors,
        }

    async def _put(self, key: str, data: Dict[str, Any]) -> None:
        row = await self.session.get(PublicData, key)
        if row is None:
            self.session.add(PublicData(key=key, data=data))
        else:
            row.data = data

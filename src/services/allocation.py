"""
Allocation of verified donations to leads.

A donation may be split across several leads. Each allocation is capped
twice: the donation's own unallocated remainder, and the pending amount
of the lead it goes to.
"""

from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

from src.core.base_service import BaseService
from src.core.errors import AllocationError, NotFoundError
from src.data.models import (
    Allocation,
    Campaign,
    Donation,
    DonationStatus,
    Lead,
    LeadStatus,
)
from src.services.activity_log import ActivityLogService
from src.services.public_data import PublicDataService

ALLOCATABLE_STATUSES = (DonationStatus.VERIFIED, DonationStatus.PARTIALLY_ALLOCATED)
CLOSED_LEAD_STATUSES = (LeadStatus.CLOSED, LeadStatus.CANCELLED)


def allocation_status(donation: Donation) -> DonationStatus:
    """Status implied by how much of the donation has been allocated."""
    if not donation.allocations:
        return DonationStatus.VERIFIED
    if donation.unallocated_amount <= 0:
        return DonationStatus.ALLOCATED
    return DonationStatus.PARTIALLY_ALLOCATED


class AllocationService(BaseService):
    name = "allocation"

    def __init__(self, session):
        super().__init__(session)
        self.activity = ActivityLogService(session)
        self.public_data = PublicDataService(session)

    def _validate_selection(self, selection: Sequence[Tuple[str, float]]) -> List[Tuple[str, float]]:
        if not selection:
            raise AllocationError("Please select at least one lead to allocate to.")

        seen = set()
        cleaned = []
        for lead_id, amount in selection:
            if lead_id in seen:
                raise AllocationError("A lead can only be selected once.", meta={"lead_id": lead_id})
            seen.add(lead_id)
            amount = round(float(amount or 0), 2)
            if amount <= 0:
                raise AllocationError(
                    "Allocation amount must be greater than zero.", meta={"lead_id": lead_id}
                )
            cleaned.append((lead_id, amount))
        return cleaned

    async def allocate_donation(
        self,
        donation_id: str,
        selection: Sequence[Tuple[str, float]],
        admin_user_id: str,
    ) -> Donation:
        """Split a donation across one or more leads in a single transaction."""
        admin = await self._require_user(admin_user_id)
        selection = self._validate_selection(selection)

        async with self.transaction():
            donation = await self._get_or_404(Donation, donation_id, "Donation")
            if donation.status not in ALLOCATABLE_STATUSES:
                raise AllocationError(
                    f'Donation cannot be allocated while its status is "{donation.status.value}". '
                    "Only Verified or Partially Allocated donations can be allocated."
                )

            total = round(sum(amount for _, amount in selection), 2)
            remaining = donation.unallocated_amount
            if total > remaining:
                raise AllocationError(
                    f"Total allocation of {total} exceeds the donation's remaining amount of {remaining}.",
                    meta={"total": total, "remaining": remaining},
                )

            leads: List[Tuple[Lead, float]] = []
            for lead_id, amount in selection:
                lead = await self.session.get(Lead, lead_id)
                if lead is None:
                    raise NotFoundError(f"Lead {lead_id} not found.", meta={"lead_id": lead_id})
                if lead.case_status in CLOSED_LEAD_STATUSES:
                    raise AllocationError(
                        f'Lead "{lead.name}" is {lead.case_status.value} and cannot receive allocations.'
                    )
                if amount > lead.pending_amount:
                    raise AllocationError(
                        f'Allocation of {amount} to "{lead.name}" exceeds its pending amount of {lead.pending_amount}.',
                        meta={"lead_id": lead_id, "pending_amount": lead.pending_amount},
                    )
                leads.append((lead, amount))

            now = datetime.utcnow()
            for lead, amount in leads:
                allocation = Allocation(
                    donation_id=donation.id,
                    lead_id=lead.id,
                    amount=amount,
                    allocated_by_user_id=admin.id,
                    allocated_by_user_name=admin.name,
                    allocated_at=now,
                )
                donation.allocations.append(allocation)
                lead.allocations.append(allocation)
                lead.collected_amount = round(lead.collected_amount + amount, 2)
                lead.last_allocated_at = now

                self.activity.log_activity(
                    admin,
                    "Donation Allocated",
                    {
                        "donation_id": donation.id,
                        "lead_id": lead.id,
                        "lead_name": lead.name,
                        "amount": amount,
                    },
                )

            donation.status = allocation_status(donation)

            for lead, _ in leads:
                await self.public_data.update_public_lead(lead)
            await self.public_data.refresh_public_stats()

        self._logger.info(
            "donation_allocated",
            donation_id=donation_id,
            leads=len(leads),
            total=total,
            status=donation.status.value,
        )
        return donation

    async def allocate_to_campaign(self, donation_id: str, campaign_id: str, admin_user_id: str) -> Donation:
        admin = await self._require_user(admin_user_id)

        async with self.transaction():
            donation = await self._get_or_404(Donation, donation_id, "Donation")
            campaign = await self._get_or_404(Campaign, campaign_id, "Campaign")
            donation.campaign_id = campaign.id
            donation.campaign_name = campaign.name

            self.activity.log_activity(
                admin,
                "Donation Allocated",
                {"donation_id": donation.id, "linked_campaign_id": campaign.id, "campaign_name": campaign.name},
            )
            await self.public_data.update_public_campaign(campaign)

        self._logger.info("donation_linked_to_campaign", donation_id=donation_id, campaign_id=campaign_id)
        return donation

    async def get_allocation_summary(self, donation_id: str) -> Dict[str, Any]:
        donation = await self._get_or_404(Donation, donation_id, "Donation")
        return {
            "donation_id": donation.id,
            "amount": donation.amount,
            "status": donation.status.value,
            "allocated": donation.allocated_amount,
            "remaining": donation.unallocated_amount,
            "allocations": [a.to_dict() for a in donation.allocations],
        }

    async def remove_allocation(self, allocation_id: str, admin_user_id: str) -> Donation:
        """Reverse one allocation and recompute the donation's status."""
        admin = await self._require_user(admin_user_id)

        async with self.transaction():
            allocation = await self._get_or_404(Allocation, allocation_id, "Allocation")
            donation = await self._get_or_404(Donation, allocation.donation_id, "Donation")
            lead = await self._get_or_404(Lead, allocation.lead_id, "Lead")

            amount = allocation.amount
            donation.allocations.remove(allocation)
            lead.allocations.remove(allocation)
            lead.collected_amount = round(max(lead.collected_amount - amount, 0.0), 2)
            donation.status = allocation_status(donation)

            self.activity.log_activity(
                admin,
                "Allocation Removed",
                {"donation_id": donation.id, "lead_id": lead.id, "lead_name": lead.name, "amount": amount},
            )
            await self.public_data.update_public_lead(lead)
            await self.public_data.refresh_public_stats()

        self._logger.info("allocation_removed", allocation_id=allocation_id, amount=amount)
        return donation

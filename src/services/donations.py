"""
Donation records: creation, verification, edits with change logging,
and deletion.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from src.core.base_service import BaseService
from src.core.errors import ConflictError, NotFoundError, ValidationError
from src.data.models import Campaign, Donation, DonationStatus, DonationType, Lead, User
from src.services.activity_log import ActivityLogService
from src.services.allocation import allocation_status
from src.services.public_data import PublicDataService

# Fields update_donation may change
UPDATABLE_FIELDS = {
    "amount", "type", "purpose", "category", "status", "is_anonymous",
    "lead_id", "campaign_id", "transaction_id", "utr_number", "payment_method",
    "payment_app", "donor_upi_id", "donor_phone", "donor_bank_account",
    "sender_name", "recipient_name", "notes", "donation_date",
}


def _display(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.date().isoformat() if isinstance(value, datetime) else value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def changed_fields(original: Donation, updates: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Map of field -> {from, to} for values that actually differ."""
    changes: Dict[str, Dict[str, Any]] = {}
    for key, new_value in updates.items():
        old_value = getattr(original, key)
        if _display(old_value) != _display(new_value):
            changes[key] = {"from": _display(old_value) if old_value is not None else "N/A", "to": _display(new_value)}
    return changes


class DonationService(BaseService):
    name = "donations"

    def __init__(self, session):
        super().__init__(session)
        self.activity = ActivityLogService(session)
        self.public_data = PublicDataService(session)

    # Reads

    async def get_donation(self, donation_id: str) -> Donation:
        return await self._get_or_404(Donation, donation_id, "Donation")

    async def list_donations(
        self,
        status: Optional[DonationStatus] = None,
        donor_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
    ) -> List[Donation]:
        stmt = select(Donation).order_by(Donation.donation_date.desc())
        if status is not None:
            stmt = stmt.where(Donation.status == status)
        if donor_id:
            stmt = stmt.where(Donation.donor_id == donor_id)
        if campaign_id:
            stmt = stmt.where(Donation.campaign_id == campaign_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_donations_by_donor(self, donor_id: str) -> List[Donation]:
        result = await self.session.execute(
            select(Donation).where(Donation.donor_id == donor_id).order_by(Donation.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_donation_by_transaction_id(self, transaction_id: str) -> Optional[Donation]:
        if not transaction_id:
            return None
        result = await self.session.execute(
            select(Donation).where(Donation.transaction_id == transaction_id).limit(1)
        )
        return result.scalars().first()

    async def check_transaction_id(self, transaction_id: str) -> Dict[str, Any]:
        existing = await self.get_donation_by_transaction_id(transaction_id)
        if existing is None:
            return {"is_available": True}
        return {"is_available": False, "existing_donation_id": existing.id, "donor_name": existing.donor_name}

    # Writes

    async def _build_donation(self, data: Dict[str, Any], donor: User) -> Donation:
        amount = float(data.get("amount") or 0)
        if amount <= 0:
            raise ValidationError("Donation amount must be greater than zero.")

        transaction_id = (data.get("transaction_id") or "").strip() or None
        if transaction_id and await self.get_donation_by_transaction_id(transaction_id):
            raise ConflictError(f'A donation with Transaction ID "{transaction_id}" already exists.')

        campaign_name = None
        if data.get("campaign_id"):
            campaign = await self.session.get(Campaign, data["campaign_id"])
            if campaign is None:
                raise NotFoundError("Linked campaign not found.", meta={"campaign_id": data["campaign_id"]})
            campaign_name = campaign.name
        if data.get("lead_id") and await self.session.get(Lead, data["lead_id"]) is None:
            raise NotFoundError("Linked lead not found.", meta={"lead_id": data["lead_id"]})

        donation = Donation(
            donor_id=donor.id,
            donor_name=donor.name,
            amount=round(amount, 2),
            type=DonationType(data.get("type") or DonationType.ANY),
            purpose=data.get("purpose"),
            category=data.get("category"),
            status=DonationStatus(data.get("status") or DonationStatus.PENDING_VERIFICATION),
            is_anonymous=bool(data.get("is_anonymous", donor.is_anonymous_as_donor)),
            lead_id=data.get("lead_id"),
            campaign_id=data.get("campaign_id"),
            campaign_name=campaign_name,
            transaction_id=transaction_id,
            utr_number=data.get("utr_number"),
            payment_method=data.get("payment_method"),
            payment_app=data.get("payment_app"),
            donor_upi_id=data.get("donor_upi_id"),
            donor_phone=data.get("donor_phone"),
            donor_bank_account=data.get("donor_bank_account"),
            sender_name=data.get("sender_name"),
            recipient_name=data.get("recipient_name"),
            payment_screenshot_urls=list(data.get("payment_screenshot_urls") or []),
            notes=data.get("notes"),
            donation_date=data.get("donation_date") or datetime.utcnow(),
            source=data.get("source") or "Manual Entry",
            allocations=[],
        )
        if donation.status == DonationStatus.VERIFIED:
            donation.verified_at = datetime.utcnow()
        self.session.add(donation)
        await self.session.flush()
        return donation

    def _log_created(self, admin: User, donation: Donation) -> None:
        self.activity.log_activity(
            admin,
            "Donation Created",
            {
                "donation_id": donation.id,
                "donor_name": donation.donor_name,
                "amount": donation.amount,
                "linked_lead_id": donation.lead_id,
                "linked_campaign_id": donation.campaign_id,
            },
        )

    async def create_donation(self, data: Dict[str, Any], admin_user_id: str) -> Donation:
        """Record a donation. It waits in "Pending verification" unless told otherwise."""
        admin = await self._require_user(admin_user_id)
        donor_id = data.get("donor_id")
        if not donor_id:
            raise ValidationError("Donor ID is missing.")

        async with self.transaction():
            donor = await self.session.get(User, donor_id)
            if donor is None:
                raise NotFoundError("Selected donor user not found.", meta={"donor_id": donor_id})
            donation = await self._build_donation(data, donor)
            self._log_created(admin, donation)
            await self.public_data.refresh_public_stats()

        self._logger.info("donation_created", donation_id=donation.id, amount=donation.amount)
        return donation

    async def record_split_donation(
        self,
        data: Dict[str, Any],
        admin_user_id: str,
        include_pledge: bool = False,
        tip_amount: float = 0.0,
    ) -> List[Donation]:
        """One payment recorded as up to three donations.

        The donor's monthly pledge and a tip for the organization's own use are
        split off the payment first; the rest becomes the main donation. The
        transaction id stays on the main donation only.
        """
        admin = await self._require_user(admin_user_id)
        donor_id = data.get("donor_id")
        if not donor_id:
            raise ValidationError("Donor ID is missing.")
        total = float(data.get("amount") or 0)

        async with self.transaction():
            donor = await self.session.get(User, donor_id)
            if donor is None:
                raise NotFoundError("Selected donor user not found.", meta={"donor_id": donor_id})

            pledge_amount = float(donor.monthly_pledge_amount or 0) if include_pledge else 0.0
            tip_amount = float(tip_amount or 0)
            main_amount = round(total - pledge_amount - tip_amount, 2)
            if main_amount < 0:
                raise ValidationError("Pledge and tip amounts exceed the total payment.")

            reference = data.get("transaction_id") or "manual entry"
            base = {k: v for k, v in data.items() if k not in ("amount", "transaction_id", "type", "purpose", "notes")}
            created: List[Donation] = []

            if pledge_amount > 0:
                created.append(await self._build_donation({
                    **base,
                    "amount": pledge_amount,
                    "type": DonationType.SADAQAH,
                    "purpose": "Monthly Pledge",
                    "notes": f"Monthly pledge fulfillment as part of transaction ID: {reference}",
                }, donor))
            if tip_amount > 0:
                created.append(await self._build_donation({
                    **base,
                    "amount": tip_amount,
                    "type": DonationType.SADAQAH,
                    "purpose": "To Organization Use",
                    "notes": f"Support for organization as part of transaction ID: {reference}",
                }, donor))
            if main_amount > 0:
                created.append(await self._build_donation({**data, "amount": main_amount}, donor))

            if not created:
                raise ValidationError("Donation amount must be greater than zero.")
            for donation in created:
                self._log_created(admin, donation)
            await self.public_data.refresh_public_stats()

        self._logger.info("split_donation_recorded", donor_id=donor_id, parts=len(created), total=total)
        return created

    async def update_donation(self, donation_id: str, updates: Dict[str, Any], admin_user_id: str) -> Donation:
        """Apply changed fields only, logging either the status change or the field list."""
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        admin = await self._require_user(admin_user_id)

        async with self.transaction():
            donation = await self.get_donation(donation_id)
            updates = dict(updates)
            if "status" in updates:
                updates["status"] = DonationStatus(updates["status"])
            if "type" in updates:
                updates["type"] = DonationType(updates["type"])
            if "amount" in updates:
                amount = round(float(updates["amount"]), 2)
                if amount <= 0:
                    raise ValidationError("Donation amount must be greater than zero.")
                if amount < donation.allocated_amount:
                    raise ValidationError(
                        f"Amount cannot be lower than the {donation.allocated_amount} already allocated."
                    )
                updates["amount"] = amount
            if updates.get("transaction_id") and updates["transaction_id"] != donation.transaction_id:
                if await self.get_donation_by_transaction_id(updates["transaction_id"]):
                    raise ConflictError(
                        f'A donation with Transaction ID "{updates["transaction_id"]}" already exists.'
                    )
            if "campaign_id" in updates and updates["campaign_id"] != donation.campaign_id:
                campaign = None
                if updates["campaign_id"]:
                    campaign = await self.session.get(Campaign, updates["campaign_id"])
                    if campaign is None:
                        raise NotFoundError("Linked campaign not found.")
                donation.campaign_name = campaign.name if campaign else None

            changes = changed_fields(donation, updates)
            if not changes:
                return donation

            original_status = donation.status
            for key in changes:
                setattr(donation, key, updates[key])
            if "amount" in changes and "status" not in changes and donation.allocations:
                donation.status = allocation_status(donation)
            if donation.status == DonationStatus.VERIFIED and original_status != DonationStatus.VERIFIED:
                donation.verified_at = datetime.utcnow()

            if "status" in changes:
                self.activity.log_activity(
                    admin,
                    "Status Changed",
                    {"donation_id": donation.id, "from": original_status.value, "to": donation.status.value},
                )
            else:
                self.activity.log_activity(
                    admin,
                    "Donation Updated",
                    {"donation_id": donation.id, "updates": ", ".join(changes)},
                )
            await self.public_data.refresh_public_stats()

        self._logger.info("donation_updated", donation_id=donation_id, fields=list(changes))
        return donation

    async def verify_donation(self, donation_id: str, admin_user_id: str) -> Donation:
        donation = await self.get_donation(donation_id)
        if donation.status in (DonationStatus.PARTIALLY_ALLOCATED, DonationStatus.ALLOCATED):
            raise ValidationError("Donation has already been verified and allocated.")
        return await self.update_donation(donation_id, {"status": DonationStatus.VERIFIED}, admin_user_id)

    async def add_payment_proof(self, donation_id: str, url: str) -> Donation:
        if not url:
            raise ValidationError("No file was uploaded.")
        async with self.transaction():
            donation = await self.get_donation(donation_id)
            donation.payment_screenshot_urls = [*(donation.payment_screenshot_urls or []), url]
        return donation

    async def delete_donation(self, donation_id: str, admin_user_id: str) -> None:
        await self.bulk_delete_donations([donation_id], admin_user_id)

    async def bulk_delete_donations(self, donation_ids: List[str], admin_user_id: str) -> int:
        if not donation_ids:
            raise ValidationError("No donations selected.")
        admin = await self._require_user(admin_user_id)

        async with self.transaction():
            for donation_id in donation_ids:
                donation = await self.get_donation(donation_id)
                if donation.allocations:
                    raise ConflictError(
                        f"Donation {donation_id} cannot be deleted because it has been allocated "
                        f"to {len(donation.allocations)} lead(s). Remove the allocations first."
                    )
                await self.session.delete(donation)
                self.activity.log_activity(
                    admin,
                    "Donation Deleted",
                    {"donation_id": donation_id, "donor_name": donation.donor_name, "amount": donation.amount},
                )
            await self.public_data.refresh_public_stats()

        self._logger.info("donations_deleted", count=len(donation_ids))
        return len(donation_ids)

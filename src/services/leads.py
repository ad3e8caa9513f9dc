"""
Leads: beneficiary help requests and their verification workflow.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from src.core.base_service import BaseService
from src.core.errors import ConflictError, NotFoundError, ValidationError
from src.data.models import (
    Campaign,
    DonationType,
    Lead,
    LeadAction,
    LeadPriority,
    LeadStatus,
    LeadVerificationStatus,
    User,
    Verifier,
)
from src.services.activity_log import ActivityLogService
from src.services.app_settings import AppSettingsService
from src.services.public_data import PublicDataService

UPDATABLE_FIELDS = {
    "name", "campaign_id", "headline", "story", "purpose", "category",
    "donation_type", "acceptable_donation_types", "priority", "case_details",
    "is_loan", "help_requested", "funding_goal", "case_status", "case_action",
    "case_verification", "due_date", "referred_by_user_id", "referred_by_user_name",
}

_ENUM_FIELDS = {
    "case_status": LeadStatus,
    "case_action": LeadAction,
    "case_verification": LeadVerificationStatus,
    "priority": LeadPriority,
    "donation_type": DonationType,
}

BULK_STATUS_KINDS = ("case_status", "verification_status")


class LeadService(BaseService):
    name = "leads"

    def __init__(self, session):
        super().__init__(session)
        self.activity = ActivityLogService(session)
        self.public_data = PublicDataService(session)
        self.app_settings = AppSettingsService(session)

    # Reads

    async def get_lead(self, lead_id: str) -> Lead:
        return await self._get_or_404(Lead, lead_id, "Lead")

    async def list_leads(
        self,
        status: Optional[LeadStatus] = None,
        verification: Optional[LeadVerificationStatus] = None,
        campaign_id: Optional[str] = None,
    ) -> List[Lead]:
        stmt = select(Lead).order_by(Lead.date_created.desc())
        if status is not None:
            stmt = stmt.where(Lead.case_status == status)
        if verification is not None:
            stmt = stmt.where(Lead.case_verification == verification)
        if campaign_id:
            stmt = stmt.where(Lead.campaign_id == campaign_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_leads_by_beneficiary(self, beneficiary_id: str) -> List[Lead]:
        result = await self.session.execute(
            select(Lead).where(Lead.beneficiary_id == beneficiary_id).order_by(Lead.date_created.desc())
        )
        return list(result.scalars().all())

    async def get_leads_by_campaign(self, campaign_id: str) -> List[Lead]:
        return await self.list_leads(campaign_id=campaign_id)

    async def get_open_leads(self) -> List[Lead]:
        """Published leads that still need funds."""
        result = await self.session.execute(
            select(Lead)
            .where(Lead.case_action == LeadAction.PUBLISH)
            .order_by(Lead.date_created.desc())
        )
        return [lead for lead in result.scalars().all() if lead.pending_amount > 0]

    # Writes

    def _coerce(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        coerced = dict(updates)
        for key, enum_cls in _ENUM_FIELDS.items():
            if coerced.get(key) is not None:
                coerced[key] = enum_cls(coerced[key])
        if coerced.get("help_requested") is not None:
            help_requested = round(float(coerced["help_requested"]), 2)
            if help_requested < 0:
                raise ValidationError("Help requested cannot be negative.")
            coerced["help_requested"] = help_requested
        return coerced

    async def _campaign_name(self, campaign_id: Optional[str]) -> Optional[str]:
        if not campaign_id:
            return None
        campaign = await self.session.get(Campaign, campaign_id)
        if campaign is None:
            raise NotFoundError("Linked campaign not found.", meta={"campaign_id": campaign_id})
        return campaign.name

    async def create_lead(self, data: Dict[str, Any], admin_user_id: str) -> Lead:
        admin = await self._require_user(admin_user_id)
        data = self._coerce({k: v for k, v in data.items() if v is not None})

        async with self.transaction():
            beneficiary = None
            if data.get("beneficiary_id"):
                beneficiary = await self.session.get(User, data["beneficiary_id"])
                if beneficiary is None:
                    raise NotFoundError("Beneficiary user not found.", meta={"beneficiary_id": data["beneficiary_id"]})

            name = data.get("name") or (beneficiary.name if beneficiary else None)
            if not name:
                raise ValidationError("A lead needs a name or a linked beneficiary.")

            fields = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}
            fields.update({
                "name": name,
                "case_status": data.get("case_status", LeadStatus.PENDING),
                "case_action": data.get("case_action", LeadAction.PENDING),
                "case_verification": LeadVerificationStatus.PENDING,
                "campaign_name": await self._campaign_name(data.get("campaign_id")),
            })
            lead = Lead(
                beneficiary_id=beneficiary.id if beneficiary else None,
                admin_added_by_id=admin.id,
                admin_added_by_name=admin.name,
                help_given=0.0,
                collected_amount=0.0,
                source=data.get("source") or "Manual Entry",
                date_created=data.get("date_created") or datetime.utcnow(),
                allocations=[],
                verifiers=[],
                fund_transfers=[],
                **fields,
            )
            self.session.add(lead)
            await self.session.flush()

            self.activity.log_activity(
                admin,
                "Lead Created",
                {"lead_id": lead.id, "lead_name": lead.name, "help_requested": lead.help_requested},
            )
            await self.public_data.update_public_lead(lead)
            await self.public_data.refresh_public_stats()

        self._logger.info("lead_created", lead_id=lead.id, help_requested=lead.help_requested)
        return lead

    async def update_lead(self, lead_id: str, updates: Dict[str, Any], admin_user_id: str) -> Lead:
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        admin = await self._require_user(admin_user_id)
        updates = self._coerce(updates)

        async with self.transaction():
            lead = await self.get_lead(lead_id)

            new_status = updates.get("case_status")
            if new_status is not None and not await self.app_settings.can_transition(lead.case_status, new_status):
                raise ValidationError(
                    f'Lead status cannot move from "{lead.case_status.value}" to "{new_status.value}".'
                )
            if updates.get("help_requested") is not None:
                updates["help_requested"] = round(float(updates["help_requested"]), 2)
                floor = max(lead.help_given, lead.collected_amount)
                if updates["help_requested"] < floor:
                    raise ValidationError(
                        f"Help requested cannot be lower than the {floor} already collected or given."
                    )
            if "campaign_id" in updates and updates["campaign_id"] != lead.campaign_id:
                lead.campaign_name = await self._campaign_name(updates["campaign_id"])

            changed = []
            for key, value in updates.items():
                if getattr(lead, key) != value:
                    setattr(lead, key, value)
                    changed.append(key)

            if "case_status" in changed and lead.case_status == LeadStatus.CLOSED:
                lead.closed_at = datetime.utcnow()
            if "case_verification" in changed and lead.case_verification == LeadVerificationStatus.VERIFIED:
                lead.verified_at = datetime.utcnow()

            if changed:
                self.activity.log_activity(
                    admin, "Lead Updated", {"lead_id": lead.id, "updates": ", ".join(changed)}
                )
            await self.public_data.update_public_lead(lead)
            await self.public_data.refresh_public_stats()

        self._logger.info("lead_updated", lead_id=lead_id, fields=changed)
        return lead

    async def verify_lead(
        self,
        lead_id: str,
        admin_user_id: str,
        status: LeadVerificationStatus = LeadVerificationStatus.VERIFIED,
        notes: Optional[str] = None,
    ) -> Lead:
        admin = await self._require_user(admin_user_id)
        status = LeadVerificationStatus(status)

        async with self.transaction():
            lead = await self.get_lead(lead_id)
            now = datetime.utcnow()
            lead.verifiers.append(
                Verifier(verifier_id=admin.id, verifier_name=admin.name, notes=notes, verified_at=now)
            )
            lead.case_verification = status
            if status == LeadVerificationStatus.VERIFIED:
                lead.verified_at = now

            self.activity.log_activity(
                admin,
                "Lead Verified",
                {"lead_id": lead.id, "lead_name": lead.name, "status": status.value, "notes": notes},
            )
            await self.public_data.update_public_lead(lead)

        self._logger.info("lead_verified", lead_id=lead_id, status=status.value)
        return lead

    async def bulk_update_lead_status(
        self,
        lead_ids: List[str],
        kind: str,
        status: str,
        admin_user_id: str,
    ) -> int:
        """Set case or verification status on many leads at once."""
        if not lead_ids:
            raise ValidationError("No leads selected.")
        if kind not in BULK_STATUS_KINDS:
            raise ValidationError(f"Unknown status kind: {kind}")
        admin = await self._require_user(admin_user_id)
        try:
            new_status = LeadStatus(status) if kind == "case_status" else LeadVerificationStatus(status)
        except ValueError as e:
            raise ValidationError(f"Unknown {kind.replace('_', ' ')}: {status}") from e

        async with self.transaction():
            for lead_id in lead_ids:
                lead = await self.get_lead(lead_id)
                if kind == "case_status":
                    previous = lead.case_status
                    if not await self.app_settings.can_transition(previous, new_status):
                        raise ValidationError(
                            f'Lead "{lead.name}" cannot move from "{previous.value}" to "{new_status.value}".'
                        )
                    lead.case_status = new_status
                    if new_status == LeadStatus.CLOSED:
                        lead.closed_at = datetime.utcnow()
                else:
                    previous = lead.case_verification
                    lead.case_verification = new_status
                    if new_status == LeadVerificationStatus.VERIFIED:
                        lead.verified_at = datetime.utcnow()

                self.activity.log_activity(
                    admin,
                    "Bulk Status Change",
                    {
                        "lead_id": lead.id,
                        "lead_name": lead.name,
                        "field": kind,
                        "from": previous.value,
                        "to": new_status.value,
                    },
                )
                await self.public_data.update_public_lead(lead)
            await self.public_data.refresh_public_stats()

        self._logger.info("lead_status_bulk_updated", count=len(lead_ids), kind=kind, status=new_status.value)
        return len(lead_ids)

    async def delete_lead(self, lead_id: str, admin_user_id: str) -> None:
        await self.bulk_delete_leads([lead_id], admin_user_id)

    async def bulk_delete_leads(self, lead_ids: List[str], admin_user_id: str) -> int:
        if not lead_ids:
            raise ValidationError("No leads selected.")
        admin = await self._require_user(admin_user_id)

        async with self.transaction():
            for lead_id in lead_ids:
                lead = await self.get_lead(lead_id)
                if lead.allocations or lead.fund_transfers:
                    raise ConflictError(
                        f'Lead "{lead.name}" cannot be deleted because it has '
                        f"{len(lead.allocations)} allocation(s) and {len(lead.fund_transfers)} transfer(s)."
                    )
                await self.public_data.remove_public_lead(lead.id)
                await self.session.delete(lead)
                self.activity.log_activity(admin, "Lead Deleted", {"lead_id": lead_id, "lead_name": lead.name})
            await self.public_data.refresh_public_stats()

        self._logger.info("leads_deleted", count=len(lead_ids))
        return len(lead_ids)

    async def upload_verification_document(self, lead_id: str, url: str, admin_user_id: str) -> Lead:
        if not url:
            raise ValidationError("No file was uploaded.")
        admin = await self._require_user(admin_user_id)

        async with self.transaction():
            lead = await self.get_lead(lead_id)
            lead.verification_document_url = url
            self.activity.log_activity(
                admin, "Document Uploaded", {"lead_id": lead.id, "lead_name": lead.name, "url": url}
            )

        self._logger.info("verification_document_uploaded", lead_id=lead_id)
        return lead

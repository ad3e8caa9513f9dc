"""
Fund transfers: money actually paid out to a beneficiary against a lead.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from src.core.base_service import BaseService
from src.core.errors import ValidationError
from src.data.models import FundTransfer, Lead
from src.services.activity_log import ActivityLogService
from src.services.public_data import PublicDataService

DETAIL_FIELDS = (
    "notes", "transaction_id", "utr_number", "sender_name", "recipient_name",
    "recipient_upi_id", "recipient_account_number", "payment_app", "payment_method", "status",
)


class TransferService(BaseService):
    name = "transfers"

    def __init__(self, session):
        super().__init__(session)
        self.activity = ActivityLogService(session)
        self.public_data = PublicDataService(session)

    async def record_fund_transfer(self, lead_id: str, data: Dict[str, Any], admin_user_id: str) -> FundTransfer:
        amount = round(float(data.get("amount") or 0), 2)
        if amount <= 0:
            raise ValidationError("Transfer amount must be greater than zero.")
        if not data.get("proof_url"):
            raise ValidationError("A proof of transfer is required.")
        admin = await self._require_user(admin_user_id)

        async with self.transaction():
            lead = await self._get_or_404(Lead, lead_id, "Lead")
            new_total = round(lead.help_given + amount, 2)
            if new_total > lead.help_requested:
                raise ValidationError(
                    f"Transfer of {amount} would bring total help given to {new_total}, "
                    f"more than the {lead.help_requested} requested.",
                    meta={"help_given": lead.help_given, "help_requested": lead.help_requested},
                )

            transfer = FundTransfer(
                amount=amount,
                transferred_by_user_id=admin.id,
                transferred_by_user_name=admin.name,
                proof_url=data["proof_url"],
                transferred_at=data.get("transferred_at") or datetime.utcnow(),
                **{k: data.get(k) for k in DETAIL_FIELDS},
            )
            lead.fund_transfers.append(transfer)
            lead.help_given = new_total
            await self.session.flush()

            self.activity.log_activity(
                admin,
                "Fund Transfer Recorded",
                {"lead_id": lead.id, "lead_name": lead.name, "amount": amount, "transfer_id": transfer.id},
            )
            await self.public_data.update_public_lead(lead)
            await self.public_data.refresh_public_stats()

        self._logger.info("fund_transfer_recorded", lead_id=lead_id, amount=amount, help_given=lead.help_given)
        return transfer

    async def list_transfers(self, lead_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """All transfers, newest first, each with its lead's name."""
        stmt = (
            select(FundTransfer, Lead.name)
            .join(Lead, FundTransfer.lead_id == Lead.id)
            .order_by(FundTransfer.transferred_at.desc())
        )
        if lead_id:
            stmt = stmt.where(FundTransfer.lead_id == lead_id)
        result = await self.session.execute(stmt)
        return [{**transfer.to_dict(), "lead_name": lead_name} for transfer, lead_name in result]

    async def bulk_delete_transfers(self, transfer_ids: List[str]) -> List[str]:
        """Delete transfers and take their amounts back off each lead's help given.

        Returns the ids of the leads that changed.
        """
        if not transfer_ids:
            raise ValidationError("No transfers selected.")

        async with self.transaction():
            by_lead: Dict[str, List[FundTransfer]] = defaultdict(list)
            for transfer_id in dict.fromkeys(transfer_ids):
                transfer = await self.session.get(FundTransfer, transfer_id)
                if transfer is None:
                    self._logger.warning("transfer_not_found", transfer_id=transfer_id)
                    continue
                by_lead[transfer.lead_id].append(transfer)

            for lead_id, transfers in by_lead.items():
                lead = await self._get_or_404(Lead, lead_id, "Lead")
                total = round(sum(t.amount for t in transfers), 2)
                for transfer in transfers:
                    lead.fund_transfers.remove(transfer)
                lead.help_given = round(max(lead.help_given - total, 0.0), 2)
                await self.public_data.update_public_lead(lead)

            await self.public_data.refresh_public_stats()

        self._logger.info("transfers_deleted", count=sum(len(t) for t in by_lead.values()), leads=len(by_lead))
        return list(by_lead)

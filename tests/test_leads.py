"""
Tests for leads and their workflow.
"""

import pytest

from src.core.errors import ConflictError, NotFoundError, ValidationError
from src.data.models import (
    Lead,
    LeadAction,
    LeadStatus,
    LeadVerificationStatus,
)
from src.services import (
    ActivityLogService,
    AllocationService,
    AppSettingsService,
    LeadService,
    PublicDataService,
    TransferService,
    UserService,
)


class TestCreateLead:
    """Tests for creating leads."""

    @pytest.mark.asyncio
    async def test_initial_state(self, make_lead, admin):
        lead = await make_lead(help_requested=7500)
        assert lead.name == "Rizwan Pathan"
        assert lead.help_given == 0
        assert lead.collected_amount == 0
        assert lead.case_status == LeadStatus.PENDING
        assert lead.case_verification == LeadVerificationStatus.PENDING
        assert lead.verifiers == []
        assert lead.allocations == []
        assert lead.fund_transfers == []
        assert lead.admin_added_by_id == admin.id

    @pytest.mark.asyncio
    async def test_logs_creation(self, session, make_lead):
        lead = await make_lead()
        log = await ActivityLogService(session).get_lead_activity(lead.id)
        assert log[0].activity == "Lead Created"

    @pytest.mark.asyncio
    async def test_unknown_beneficiary(self, session, admin):
        with pytest.raises(NotFoundError, match="Beneficiary"):
            await LeadService(session).create_lead({"beneficiary_id": "nobody"}, admin.id)

    @pytest.mark.asyncio
    async def test_unknown_campaign(self, make_lead):
        with pytest.raises(NotFoundError, match="campaign"):
            await make_lead(campaign_id="no-such-campaign")

    @pytest.mark.asyncio
    async def test_campaign_name_copied(self, make_lead, make_campaign):
        campaign = await make_campaign()
        lead = await make_lead(campaign_id=campaign.id)
        assert lead.campaign_name == "Ramadan Relief 2025"

    @pytest.mark.asyncio
    async def test_anonymous_beneficiary_hidden_in_public_copy(self, session, admin, beneficiary, make_lead):
        await UserService(session).update_user(beneficiary.id, {"is_anonymous_as_beneficiary": True})
        await make_lead()
        public = await PublicDataService(session).get_public_leads()
        assert public[0]["name"] == beneficiary.anonymous_beneficiary_id
        assert public[0]["is_anonymous"] is True

    @pytest.mark.asyncio
    async def test_unpublished_lead_not_public(self, session, make_lead):
        await make_lead(case_action=LeadAction.PENDING)
        assert await PublicDataService(session).get_public_leads() == []


class TestLeadQueries:
    """Tests for lead lookups."""

    @pytest.mark.asyncio
    async def test_list_and_filters(self, session, make_lead, beneficiary):
        lead = await make_lead()
        service = LeadService(session)
        assert [l.id for l in await service.list_leads(status=LeadStatus.PENDING)] == [lead.id]
        assert await service.list_leads(status=LeadStatus.OPEN) == []
        assert [l.id for l in await service.get_leads_by_beneficiary(beneficiary.id)] == [lead.id]

    @pytest.mark.asyncio
    async def test_open_leads(self, session, admin, make_lead, make_donation):
        funded = await make_lead(help_requested=1000)
        needy = await make_lead(help_requested=5000)
        await make_lead(help_requested=5000, case_action=LeadAction.PENDING)
        donation = await make_donation(amount=1000)
        await AllocationService(session).allocate_donation(donation.id, [(funded.id, 1000)], admin.id)

        open_leads = await LeadService(session).get_open_leads()
        assert [l.id for l in open_leads] == [needy.id]


class TestUpdateLead:
    """Tests for lead updates and the status workflow."""

    @pytest.mark.asyncio
    async def test_closing_sets_closed_at(self, session, admin, make_lead):
        lead = await make_lead()
        updated = await LeadService(session).update_lead(
            lead.id, {"case_status": "Closed"}, admin.id
        )
        assert updated.case_status == LeadStatus.CLOSED
        assert updated.closed_at is not None

    @pytest.mark.asyncio
    async def test_workflow_blocks_transition(self, session, admin, make_lead):
        await AppSettingsService(session).update_lead_workflow({"Pending": ["Open"]})
        lead = await make_lead()
        with pytest.raises(ValidationError, match="cannot move"):
            await LeadService(session).update_lead(lead.id, {"case_status": "Closed"}, admin.id)

    @pytest.mark.asyncio
    async def test_workflow_allows_transition(self, session, admin, make_lead):
        await AppSettingsService(session).update_lead_workflow({"Pending": ["Open"]})
        lead = await make_lead()
        updated = await LeadService(session).update_lead(lead.id, {"case_status": "Open"}, admin.id)
        assert updated.case_status == LeadStatus.OPEN

    @pytest.mark.asyncio
    async def test_help_requested_not_below_help_given(self, session, admin, make_lead):
        lead = await make_lead(help_requested=1000)
        admin_id, lead_id = admin.id, lead.id
        await TransferService(session).record_fund_transfer(
            lead_id, {"amount": 800, "proof_url": "https://files.example.com/p.png"}, admin_id
        )

        with pytest.raises(ValidationError, match="cannot be lower than the 800"):
            await LeadService(session).update_lead(lead_id, {"help_requested": 100}, admin_id)
        lead = await session.get(Lead, lead_id)
        assert lead.help_requested == 1000

        updated = await LeadService(session).update_lead(lead_id, {"help_requested": 800}, admin_id)
        assert updated.help_requested == 800

    @pytest.mark.asyncio
    async def test_unpublishing_removes_public_copy(self, session, admin, make_lead):
        lead = await make_lead()
        await LeadService(session).update_lead(lead.id, {"case_action": "On Hold"}, admin.id)
        assert await PublicDataService(session).get_public_leads() == []

    @pytest.mark.asyncio
    async def test_verify_lead(self, session, admin, make_lead):
        lead = await make_lead()
        verified = await LeadService(session).verify_lead(lead.id, admin.id, notes="Documents checked")
        assert verified.case_verification == LeadVerificationStatus.VERIFIED
        assert verified.verified_at is not None
        assert verified.verifiers[0].verifier_name == admin.name
        assert verified.verifiers[0].notes == "Documents checked"

    @pytest.mark.asyncio
    async def test_upload_verification_document(self, session, admin, make_lead):
        lead = await make_lead()
        await LeadService(session).upload_verification_document(lead.id, "https://files.example.com/id.pdf", admin.id)
        assert lead.verification_document_url == "https://files.example.com/id.pdf"
        log = await ActivityLogService(session).get_lead_activity(lead.id)
        assert "Document Uploaded" in [e.activity for e in log]


class TestBulkLeadOperations:
    """Tests for bulk status changes and deletion."""

    @pytest.mark.asyncio
    async def test_bulk_case_status(self, session, admin, make_lead):
        first = await make_lead()
        second = await make_lead()
        count = await LeadService(session).bulk_update_lead_status(
            [first.id, second.id], "case_status", "Open", admin.id
        )
        assert count == 2
        assert first.case_status == LeadStatus.OPEN
        assert second.case_status == LeadStatus.OPEN

        log = await ActivityLogService(session).get_lead_activity(first.id)
        bulk = [e for e in log if e.activity == "Bulk Status Change"]
        assert bulk[0].details["from"] == "Pending"
        assert bulk[0].details["to"] == "Open"

    @pytest.mark.asyncio
    async def test_bulk_verification_status(self, session, admin, make_lead):
        lead = await make_lead()
        await LeadService(session).bulk_update_lead_status([lead.id], "verification_status", "Rejected", admin.id)
        assert lead.case_verification == LeadVerificationStatus.REJECTED

    @pytest.mark.asyncio
    async def test_bulk_unknown_kind(self, session, admin, make_lead):
        lead = await make_lead()
        with pytest.raises(ValidationError, match="Unknown status kind"):
            await LeadService(session).bulk_update_lead_status([lead.id], "priority", "High", admin.id)

    @pytest.mark.asyncio
    async def test_bulk_unknown_status(self, session, admin, make_lead):
        lead = await make_lead()
        with pytest.raises(ValidationError, match="Unknown case status"):
            await LeadService(session).bulk_update_lead_status([lead.id], "case_status", "Dormant", admin.id)

    @pytest.mark.asyncio
    async def test_delete_lead(self, session, admin, make_lead):
        lead = await make_lead()
        lead_id = lead.id
        await LeadService(session).delete_lead(lead_id, admin.id)

        assert await session.get(Lead, lead_id) is None
        assert await PublicDataService(session).get_public_leads() == []
        log = await ActivityLogService(session).get_lead_activity(lead_id)
        assert "Lead Deleted" in [e.activity for e in log]

    @pytest.mark.asyncio
    async def test_lead_with_allocations_cannot_be_deleted(self, session, admin, make_lead, make_donation):
        lead = await make_lead()
        donation = await make_donation(amount=500)
        lead_id = lead.id
        await AllocationService(session).allocate_donation(donation.id, [(lead_id, 500)], admin.id)

        with pytest.raises(ConflictError, match="1 allocation"):
            await LeadService(session).bulk_delete_leads([lead_id], admin.id)
        assert await session.get(Lead, lead_id) is not None

    @pytest.mark.asyncio
    async def test_lead_with_transfers_cannot_be_deleted(self, session, admin, make_lead):
        lead = await make_lead()
        lead_id = lead.id
        await TransferService(session).record_fund_transfer(
            lead_id, {"amount": 100, "proof_url": "https://files.example.com/p.png"}, admin.id
        )
        with pytest.raises(ConflictError, match="1 transfer"):
            await LeadService(session).delete_lead(lead_id, admin.id)

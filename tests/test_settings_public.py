"""
Tests for app settings, the organization profile, public data and the dashboard.
"""

import pytest

from src.core.errors import ValidationError
from src.data.models import DonationStatus, LeadStatus
from src.services import (
    ActivityLogService,
    AppSettingsService,
    OrganizationService,
    PublicDataService,
    TransferService,
    UserService,
)
from src.services.app_settings import deep_merge, default_lead_workflow


class TestAppSettings:
    """Tests for the settings document."""

    def test_deep_merge(self):
        base = {"a": {"b": 1, "c": [1, 2]}, "d": 1}
        merged = deep_merge(base, {"a": {"c": [3]}, "e": 2})
        assert merged == {"a": {"b": 1, "c": [3]}, "d": 1, "e": 2}
        assert base["a"]["c"] == [1, 2]

    def test_default_workflow_allows_everything(self):
        workflow = default_lead_workflow()
        assert "Closed" in workflow["Pending"]
        assert "Pending" not in workflow["Pending"]

    @pytest.mark.asyncio
    async def test_defaults_when_empty(self, session):
        settings = await AppSettingsService(session).get_app_settings()
        assert settings["payment_methods"]["upi"]["enabled"] is True
        assert settings["lead_configuration"]["purposes"][0]["name"] == "Education"

    @pytest.mark.asyncio
    async def test_update_section_merges(self, session):
        service = AppSettingsService(session)
        settings = await service.update_app_settings("payment_methods", {"cash": {"enabled": False}})
        assert settings["payment_methods"]["cash"]["enabled"] is False
        assert settings["payment_methods"]["upi"]["enabled"] is True

    @pytest.mark.asyncio
    async def test_unknown_section(self, session):
        with pytest.raises(ValidationError, match="Unknown settings section"):
            await AppSettingsService(session).update_app_settings("colours", {})

    @pytest.mark.asyncio
    async def test_workflow_replaced_wholesale(self, session):
        service = AppSettingsService(session)
        await service.update_lead_configuration(
            {"approval_process_disabled": False, "workflow": {"Pending": ["Open"], "Open": ["Closed"]}}
        )
        settings = await service.get_app_settings()
        assert settings["lead_configuration"]["workflow"] == {"Pending": ["Open"], "Open": ["Closed"]}
        assert settings["lead_configuration"]["approval_process_disabled"] is False
        assert await service.can_transition(LeadStatus.OPEN, LeadStatus.CLOSED)
        assert not await service.can_transition(LeadStatus.CLOSED, LeadStatus.OPEN)

    @pytest.mark.asyncio
    async def test_invalid_workflow(self, session):
        with pytest.raises(ValidationError, match="Unknown lead status"):
            await AppSettingsService(session).update_lead_workflow({"Pending": ["Sleeping"]})

    @pytest.mark.asyncio
    async def test_invalid_workflow_leaves_configuration_untouched(self, session):
        service = AppSettingsService(session)
        with pytest.raises(ValidationError, match="Bogus"):
            await service.update_lead_configuration(
                {"approval_process_disabled": False, "workflow": {"Bogus": []}}
            )
        settings = await service.get_app_settings()
        assert settings["lead_configuration"]["approval_process_disabled"] is True


class TestOrganization:
    """Tests for the organization profile."""

    @pytest.mark.asyncio
    async def test_upsert_and_mirror(self, session):
        service = OrganizationService(session)
        assert await service.get_organization() is None

        created = await service.update_organization({"name": "Relief Trust", "city": "Solapur"})
        updated = await service.update_organization({"contact_phone": "9000000000"})

        assert updated.id == created.id
        assert updated.contact_phone == "9000000000"
        public = await PublicDataService(session).get_public_organization()
        assert public["name"] == "Relief Trust"
        assert public["contact_phone"] == "9000000000"

    @pytest.mark.asyncio
    async def test_name_required_on_create(self, session):
        with pytest.raises(ValidationError, match="name is required"):
            await OrganizationService(session).update_organization({"city": "Pune"})


class TestPublicData:
    """Tests for the headline statistics and the dashboard."""

    @pytest.mark.asyncio
    async def test_stats(self, session, admin, make_donation, make_lead):
        await make_donation(amount=10000)
        await make_donation(amount=500, status=DonationStatus.FAILED)
        lead = await make_lead(help_requested=4000)
        await make_lead(help_requested=2000)
        await TransferService(session).record_fund_transfer(
            lead.id, {"amount": 4000, "proof_url": "https://files.example.com/p.png"}, admin.id
        )

        stats = await PublicDataService(session).compute_stats()
        assert stats["total_raised"] == 10000
        assert stats["total_distributed"] == 4000
        assert stats["funds_in_hand"] == 6000
        assert stats["beneficiaries_helped"] == 1
        assert stats["open_cases"] == 2
        assert stats["cases_closed"] == 0

    @pytest.mark.asyncio
    async def test_dashboard_summary(self, session, admin, make_donation, make_lead):
        await make_donation(amount=3000)
        await make_donation(amount=700, status=DonationStatus.PENDING_VERIFICATION)
        await make_lead()

        summary = await PublicDataService(session).dashboard_summary()
        assert summary["pending_donations"] == 1
        assert summary["pending_verification_leads"] == 1
        assert summary["top_donors"][0]["donor_name"] == "Sana Khan"
        assert summary["top_donors"][0]["total"] == 3000


class TestActivityLog:
    """Tests for the audit trail."""

    @pytest.mark.asyncio
    async def test_actor_and_indexed_keys(self, session, admin, make_donation):
        donation = await make_donation()
        service = ActivityLogService(session)

        entries = await service.get_user_activity(admin.id)
        assert entries[0].activity == "Donation Created"
        assert entries[0].donation_id == donation.id
        assert entries[0].role == "Super Admin"
        assert entries[0].user_name == admin.name

    @pytest.mark.asyncio
    async def test_target_user_activity(self, session, admin):
        user = await UserService(session).create_user(
            {"first_name": "Junaid", "last_name": "Inamdar", "phone": "9000000030"},
            admin_user_id=admin.id,
        )
        entries = await ActivityLogService(session).get_target_user_activity(user.id)
        assert [e.activity for e in entries] == ["User Created"]
        assert len(await ActivityLogService(session).get_all_activity()) == 1

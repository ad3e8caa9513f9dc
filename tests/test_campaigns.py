"""
Tests for campaigns.
"""

from datetime import datetime, timezone

import pytest

from src.core.errors import ConflictError, ValidationError
from src.data.models import Campaign, DonationStatus
from src.services import CampaignService, LeadService, PublicDataService
from src.services.campaigns import slugify


def test_slugify():
    assert slugify("  Ramadan   Relief 2025 ") == "ramadan-relief-2025"


class TestCampaignService:
    """Tests for the campaign service."""

    @pytest.mark.asyncio
    async def test_create_campaign(self, session, make_campaign):
        campaign = await make_campaign()
        assert campaign.id == "ramadan-relief-2025"

        public = await PublicDataService(session).get_public_campaigns()
        assert public[0]["id"] == campaign.id
        assert public[0]["raised_amount"] == 0

    @pytest.mark.asyncio
    async def test_duplicate_name(self, make_campaign):
        await make_campaign()
        with pytest.raises(ConflictError, match="already exists"):
            await make_campaign(name="ramadan relief 2025")

    @pytest.mark.asyncio
    async def test_end_before_start(self, make_campaign):
        with pytest.raises(ValidationError, match="end date"):
            await make_campaign(start_date=datetime(2025, 4, 1), end_date=datetime(2025, 3, 1))

    @pytest.mark.asyncio
    async def test_supplied_id_kept(self, make_campaign):
        campaign = await make_campaign(id="ramadan-2025")
        assert campaign.id == "ramadan-2025"
        assert campaign.name == "Ramadan Relief 2025"

    @pytest.mark.asyncio
    async def test_unknown_donation_type(self, make_campaign):
        with pytest.raises(ValidationError, match="Unknown donation type: Nope"):
            await make_campaign(acceptable_donation_types=["Zakat", "Nope"])

    @pytest.mark.asyncio
    async def test_aware_dates_stored_as_utc(self, session, make_campaign):
        campaign = await make_campaign()
        updated = await CampaignService(session).update_campaign(
            campaign.id, {"end_date": datetime(2025, 4, 30, 5, 30, tzinfo=timezone.utc)}
        )
        assert updated.end_date == datetime(2025, 4, 30, 5, 30)

    @pytest.mark.asyncio
    async def test_links_leads_and_donations(self, session, make_lead, make_donation):
        lead = await make_lead()
        donation = await make_donation(amount=2500)

        campaign = await CampaignService(session).create_campaign(
            {
                "name": "Winter Drive",
                "goal": 10000,
                "start_date": datetime(2025, 12, 1),
                "end_date": datetime(2025, 12, 31),
            },
            lead_ids=[lead.id],
            donation_ids=[donation.id],
        )

        assert lead.campaign_id == campaign.id
        assert lead.campaign_name == "Winter Drive"
        assert donation.campaign_name == "Winter Drive"
        leads = await LeadService(session).get_leads_by_campaign(campaign.id)
        assert [l.id for l in leads] == [lead.id]

    @pytest.mark.asyncio
    async def test_stats(self, session, make_campaign, make_donation, make_lead):
        campaign = await make_campaign(goal=10000)
        await make_donation(amount=2500, campaign_id=campaign.id)
        await make_donation(amount=1000, campaign_id=campaign.id, status=DonationStatus.PENDING_VERIFICATION)
        await make_lead(campaign_id=campaign.id)

        stats = await CampaignService(session).get_campaign_stats(campaign.id)
        assert stats["raised_amount"] == 2500
        assert stats["funding_progress"] == 25
        assert stats["donation_count"] == 2
        assert stats["lead_count"] == 1

    @pytest.mark.asyncio
    async def test_zero_goal_progress(self, session, make_campaign):
        campaign = await make_campaign(goal=0)
        stats = await CampaignService(session).get_campaign_stats(campaign.id)
        assert stats["funding_progress"] == 0

    @pytest.mark.asyncio
    async def test_rename_propagates(self, session, make_campaign, make_lead, make_donation):
        campaign = await make_campaign()
        lead = await make_lead(campaign_id=campaign.id)
        donation = await make_donation(campaign_id=campaign.id)

        updated = await CampaignService(session).update_campaign(campaign.id, {"name": "Ramadan Appeal"})

        assert updated.id == "ramadan-relief-2025"
        assert lead.campaign_name == "Ramadan Appeal"
        assert donation.campaign_name == "Ramadan Appeal"

    @pytest.mark.asyncio
    async def test_list_newest_first(self, session, make_campaign):
        await make_campaign(name="Old", start_date=datetime(2024, 1, 1), end_date=datetime(2024, 2, 1))
        await make_campaign(name="New", start_date=datetime(2025, 1, 1), end_date=datetime(2025, 2, 1))
        campaigns = await CampaignService(session).list_campaigns()
        assert [c.name for c in campaigns] == ["New", "Old"]

    @pytest.mark.asyncio
    async def test_delete_blocked_by_leads(self, session, make_campaign, make_lead):
        campaign = await make_campaign()
        await make_lead(campaign_id=campaign.id)
        with pytest.raises(ConflictError) as excinfo:
            await CampaignService(session).bulk_delete_campaigns(["ramadan-relief-2025"])
        assert excinfo.value.message.startswith(
            'Campaign "Ramadan Relief 2025" cannot be deleted because it has 1 lead(s) linked to it'
        )

    @pytest.mark.asyncio
    async def test_delete_unlinks_donations(self, session, make_campaign, make_donation):
        campaign = await make_campaign()
        donation = await make_donation(campaign_id=campaign.id)

        await CampaignService(session).bulk_delete_campaigns([campaign.id])

        assert await session.get(Campaign, "ramadan-relief-2025") is None
        assert donation.campaign_id is None
        assert await PublicDataService(session).get_public_campaigns() == []

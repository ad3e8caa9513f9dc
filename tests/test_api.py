"""
Tests for the HTTP API.
"""

import pytest

API = "/api/v1"
PROOF = "https://files.example.com/proof.png"


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestErrorShape:
    """Service errors come back as {"success": false, "error": ...}."""

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        response = await client.get(f"{API}/donations/missing")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Donation not found.", "meta": {"id": "missing"}}

    @pytest.mark.asyncio
    async def test_conflict(self, client, donor):
        response = await client.post(
            f"{API}/users",
            json={"first_name": "Copy", "last_name": "Cat", "phone": "9000000002"},
        )
        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert "phone number" in body["error"]

    @pytest.mark.asyncio
    async def test_request_validation(self, client, admin):
        response = await client.post(f"{API}/donations", json={"admin_user_id": admin.id})
        assert response.status_code == 422


class TestDonationFlow:
    """A donation from recording through allocation, over HTTP."""

    @pytest.mark.asyncio
    async def test_record_verify_allocate(self, client, admin, donor, make_lead):
        lead = await make_lead(help_requested=3000)
        admin_id, lead_id = admin.id, lead.id

        response = await client.post(f"{API}/donations", json={
            "admin_user_id": admin_id,
            "donor_id": donor.id,
            "amount": 2000,
            "transaction_id": "UPI-778899",
            "type": "Zakat",
        })
        assert response.status_code == 200
        donation = response.json()["donation"]
        assert donation["status"] == "Pending verification"

        check = await client.get(f"{API}/donations/check-transaction/UPI-778899")
        assert check.json()["is_available"] is False

        blocked = await client.post(f"{API}/donations/{donation['id']}/allocations", json={
            "admin_user_id": admin_id,
            "allocations": [{"lead_id": lead_id, "amount": 500}],
        })
        assert blocked.status_code == 400
        assert blocked.json()["success"] is False

        verified = await client.post(f"{API}/donations/{donation['id']}/verify", json={"admin_user_id": admin_id})
        assert verified.json()["donation"]["status"] == "Verified"

        allocated = await client.post(f"{API}/donations/{donation['id']}/allocations", json={
            "admin_user_id": admin_id,
            "allocations": [{"lead_id": lead_id, "amount": 500}],
        })
        assert allocated.status_code == 200
        assert allocated.json()["donation"]["status"] == "Partially Allocated"

        summary = await client.get(f"{API}/donations/{donation['id']}/allocations")
        assert summary.json()["remaining"] == 1500

        lead_response = await client.get(f"{API}/leads/{lead_id}")
        assert lead_response.json()["lead"]["collected_amount"] == 500
        assert lead_response.json()["lead"]["donations"][0]["amount"] == 500

    @pytest.mark.asyncio
    async def test_split_donation(self, client, admin, donor):
        response = await client.post(f"{API}/donations", json={
            "admin_user_id": admin.id,
            "donor_id": donor.id,
            "amount": 1000,
            "include_pledge": True,
            "tip_amount": 50,
        })
        assert response.status_code == 200
        amounts = sorted(d["amount"] for d in response.json()["donations"])
        assert amounts == [50, 450, 500]

    @pytest.mark.asyncio
    async def test_list_donations_by_status(self, client, make_donation):
        from src.data.models import DonationStatus

        await make_donation(amount=100)
        await make_donation(amount=200, status=DonationStatus.PENDING)
        response = await client.get(f"{API}/donations", params={"status": "Pending"})
        assert [d["amount"] for d in response.json()["donations"]] == [200]


class TestLeadsAndTransfers:

    @pytest.mark.asyncio
    async def test_create_lead_and_transfer(self, client, admin, beneficiary):
        created = await client.post(f"{API}/leads", json={
            "admin_user_id": admin.id,
            "beneficiary_id": beneficiary.id,
            "purpose": "Education",
            "help_requested": 4000,
            "case_action": "Publish",
        })
        assert created.status_code == 200
        lead = created.json()["lead"]
        assert lead["name"] == "Rizwan Pathan"

        open_leads = await client.get(f"{API}/leads/open")
        assert [l["id"] for l in open_leads.json()["leads"]] == [lead["id"]]

        transfer = await client.post(f"{API}/leads/{lead['id']}/transfers", json={
            "admin_user_id": admin.id,
            "amount": 1000,
            "proof_url": PROOF,
        })
        assert transfer.status_code == 200

        transfers = await client.get(f"{API}/transfers")
        assert transfers.json()["transfers"][0]["lead_name"] == "Rizwan Pathan"

        deleted = await client.post(f"{API}/transfers/bulk-delete", json={"ids": [transfer.json()["transfer"]["id"]]})
        assert deleted.json() == {"success": True, "lead_ids": [lead["id"]]}

    @pytest.mark.asyncio
    async def test_bulk_status(self, client, admin, make_lead):
        lead = await make_lead()
        response = await client.post(f"{API}/leads/bulk-status", json={
            "admin_user_id": admin.id,
            "ids": [lead.id],
            "kind": "case_status",
            "status": "Open",
        })
        assert response.json() == {"success": True, "updated": 1}

    @pytest.mark.asyncio
    async def test_empty_transfer_selection(self, client):
        response = await client.post(f"{API}/transfers/bulk-delete", json={"ids": []})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No transfers selected."}


class TestCampaignsAndPublic:

    @pytest.mark.asyncio
    async def test_campaign_lifecycle(self, client):
        created = await client.post(f"{API}/campaigns", json={
            "name": "Eid Gift Packs",
            "goal": 20000,
            "start_date": "2025-03-01T00:00:00",
            "end_date": "2025-04-01T00:00:00",
        })
        assert created.status_code == 200
        assert created.json()["campaign"]["id"] == "eid-gift-packs"

        public = await client.get(f"{API}/public/campaigns")
        assert public.json()["campaigns"][0]["name"] == "Eid Gift Packs"

        deleted = await client.post(f"{API}/campaigns/bulk-delete", json={"ids": ["eid-gift-packs"]})
        assert deleted.json()["deleted"] == 1

    @pytest.mark.asyncio
    async def test_settings_and_organization(self, client):
        settings = await client.put(f"{API}/settings/payment_methods", json={"value": {"cash": {"enabled": False}}})
        assert settings.json()["settings"]["payment_methods"]["cash"]["enabled"] is False

        org = await client.put(f"{API}/organization", json={"name": "Relief Trust", "city": "Solapur"})
        assert org.status_code == 200

        public = await client.get(f"{API}/public/organization")
        assert public.json()["organization"]["name"] == "Relief Trust"

    @pytest.mark.asyncio
    async def test_public_stats_and_dashboard(self, client, make_donation):
        await make_donation(amount=1200)

        stats = await client.get(f"{API}/public/stats")
        assert stats.json()["stats"]["total_raised"] == 1200

        dashboard = await client.get(f"{API}/dashboard")
        assert dashboard.json()["currency"] == "INR"
        assert dashboard.json()["top_donors"][0]["total"] == 1200

    @pytest.mark.asyncio
    async def test_activity(self, client, admin, make_donation):
        await make_donation()
        response = await client.get(f"{API}/activity", params={"user_id": admin.id})
        assert response.json()["activity"][0]["activity"] == "Donation Created"

    @pytest.mark.asyncio
    async def test_campaign_bad_input(self, client):
        rejected = await client.post(f"{API}/campaigns", json={
            "name": "Flood Relief",
            "start_date": "2025-03-01T00:00:00",
            "end_date": "2025-04-01T00:00:00",
            "acceptable_donation_types": ["Nope"],
        })
        assert rejected.status_code == 400
        assert rejected.json() == {"success": False, "error": "Unknown donation type: Nope"}

        created = await client.post(f"{API}/campaigns", json={
            "name": "Flood Relief",
            "start_date": "2025-03-01T00:00:00",
            "end_date": "2025-04-01T00:00:00",
        })
        campaign_id = created.json()["campaign"]["id"]

        updated = await client.patch(f"{API}/campaigns/{campaign_id}", json={"end_date": "2025-04-30T00:00:00Z"})
        assert updated.status_code == 200
        assert updated.json()["campaign"]["end_date"].startswith("2025-04-30T00:00:00")

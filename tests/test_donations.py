"""
Tests for donation recording, editing and deletion.
"""

import pytest

from src.core.errors import ConflictError, NotFoundError, ValidationError
from src.data.models import Donation, DonationStatus, DonationType
from src.services import ActivityLogService, AllocationService, DonationService, PublicDataService


class TestCreateDonation:
    """Tests for recording donations."""

    @pytest.mark.asyncio
    async def test_defaults_to_pending_verification(self, session, admin, donor):
        donation = await DonationService(session).create_donation(
            {"donor_id": donor.id, "amount": 1500}, admin.id
        )
        assert donation.status == DonationStatus.PENDING_VERIFICATION
        assert donation.donor_name == "Sana Khan"
        assert donation.type == DonationType.ANY
        assert donation.allocations == []

    @pytest.mark.asyncio
    async def test_logs_creation(self, session, make_donation):
        donation = await make_donation()
        log = await ActivityLogService(session).get_donation_activity(donation.id)
        assert [entry.activity for entry in log] == ["Donation Created"]

    @pytest.mark.asyncio
    async def test_unknown_donor(self, session, admin):
        with pytest.raises(NotFoundError, match="donor"):
            await DonationService(session).create_donation({"donor_id": "nobody", "amount": 100}, admin.id)

    @pytest.mark.asyncio
    async def test_missing_admin(self, session, donor):
        with pytest.raises(ValidationError, match="administrator"):
            await DonationService(session).create_donation({"donor_id": donor.id, "amount": 100}, "")

    @pytest.mark.asyncio
    async def test_non_positive_amount(self, session, admin, donor):
        with pytest.raises(ValidationError, match="greater than zero"):
            await DonationService(session).create_donation({"donor_id": donor.id, "amount": 0}, admin.id)

    @pytest.mark.asyncio
    async def test_duplicate_transaction_id(self, session, make_donation):
        await make_donation(transaction_id="T1001")
        with pytest.raises(ConflictError, match="T1001"):
            await make_donation(transaction_id="T1001")

    @pytest.mark.asyncio
    async def test_check_transaction_id(self, session, make_donation):
        donation = await make_donation(transaction_id="T2002")
        service = DonationService(session)

        taken = await service.check_transaction_id("T2002")
        assert taken["is_available"] is False
        assert taken["existing_donation_id"] == donation.id
        assert (await service.check_transaction_id("T9999"))["is_available"] is True

    @pytest.mark.asyncio
    async def test_verified_donations_update_public_stats(self, session, make_donation):
        await make_donation(amount=2000)
        await make_donation(amount=300, status=DonationStatus.PENDING_VERIFICATION)
        stats = await PublicDataService(session).get_public_stats()
        assert stats["total_raised"] == 2000


class TestSplitDonation:
    """Tests for splitting one payment into pledge, tip and main donations."""

    @pytest.mark.asyncio
    async def test_pledge_and_tip(self, session, admin, donor):
        donations = await DonationService(session).record_split_donation(
            {"donor_id": donor.id, "amount": 2000, "transaction_id": "UPI123", "type": "Zakat"},
            admin.id,
            include_pledge=True,
            tip_amount=100,
        )
        by_purpose = {d.purpose: d for d in donations}

        assert by_purpose["Monthly Pledge"].amount == 500
        assert by_purpose["Monthly Pledge"].type == DonationType.SADAQAH
        assert by_purpose["To Organization Use"].amount == 100
        main = [d for d in donations if d.purpose not in ("Monthly Pledge", "To Organization Use")][0]
        assert main.amount == 1400
        assert main.type == DonationType.ZAKAT
        assert main.transaction_id == "UPI123"
        assert by_purpose["Monthly Pledge"].transaction_id is None

    @pytest.mark.asyncio
    async def test_parts_exceeding_total(self, session, admin, donor):
        with pytest.raises(ValidationError, match="exceed"):
            await DonationService(session).record_split_donation(
                {"donor_id": donor.id, "amount": 300}, admin.id, include_pledge=True
            )


class TestUpdateDonation:
    """Tests for editing donations."""

    @pytest.mark.asyncio
    async def test_raising_amount_reopens_allocation(self, session, admin, make_donation, make_lead):
        donation = await make_donation(amount=1000)
        lead = await make_lead(help_requested=5000)
        allocation = AllocationService(session)
        await allocation.allocate_donation(donation.id, [(lead.id, 1000)], admin.id)
        assert donation.status == DonationStatus.ALLOCATED

        updated = await DonationService(session).update_donation(donation.id, {"amount": 1500}, admin.id)
        assert updated.status == DonationStatus.PARTIALLY_ALLOCATED
        assert updated.unallocated_amount == 500

        await allocation.allocate_donation(donation.id, [(lead.id, 500)], admin.id)
        assert donation.status == DonationStatus.ALLOCATED

    @pytest.mark.asyncio
    async def test_status_change_logged(self, session, admin, make_donation):
        donation = await make_donation(status=DonationStatus.PENDING_VERIFICATION)
        await DonationService(session).update_donation(
            donation.id, {"status": DonationStatus.VERIFIED}, admin.id
        )

        log = await ActivityLogService(session).get_donation_activity(donation.id)
        status_entry = [e for e in log if e.activity == "Status Changed"][0]
        assert status_entry.details["from"] == "Pending verification"
        assert status_entry.details["to"] == "Verified"
        assert donation.verified_at is not None

    @pytest.mark.asyncio
    async def test_field_change_logged(self, session, admin, make_donation):
        donation = await make_donation(notes="first")
        await DonationService(session).update_donation(
            donation.id, {"notes": "second", "amount": 5000}, admin.id
        )

        log = await ActivityLogService(session).get_donation_activity(donation.id)
        updated = [e for e in log if e.activity == "Donation Updated"]
        assert len(updated) == 1
        assert updated[0].details["updates"] == "notes"

    @pytest.mark.asyncio
    async def test_no_change_logs_nothing(self, session, admin, make_donation):
        donation = await make_donation()
        await DonationService(session).update_donation(donation.id, {"amount": 5000}, admin.id)
        log = await ActivityLogService(session).get_donation_activity(donation.id)
        assert [e.activity for e in log] == ["Donation Created"]

    @pytest.mark.asyncio
    async def test_unknown_field(self, session, admin, make_donation):
        donation = await make_donation()
        with pytest.raises(ValidationError, match="donor_id"):
            await DonationService(session).update_donation(donation.id, {"donor_id": "x"}, admin.id)

    @pytest.mark.asyncio
    async def test_verify_donation(self, session, admin, make_donation):
        donation = await make_donation(status=DonationStatus.PENDING)
        verified = await DonationService(session).verify_donation(donation.id, admin.id)
        assert verified.status == DonationStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_add_payment_proof(self, session, make_donation):
        donation = await make_donation()
        service = DonationService(session)
        await service.add_payment_proof(donation.id, "https://files.example.com/a.png")
        await service.add_payment_proof(donation.id, "https://files.example.com/b.png")
        assert donation.payment_screenshot_urls == [
            "https://files.example.com/a.png",
            "https://files.example.com/b.png",
        ]


class TestDeleteDonation:
    """Tests for deleting donations."""

    @pytest.mark.asyncio
    async def test_bulk_delete(self, session, admin, make_donation):
        first = await make_donation()
        second = await make_donation()
        first_id, second_id = first.id, second.id

        count = await DonationService(session).bulk_delete_donations([first_id, second_id], admin.id)
        assert count == 2
        assert await session.get(Donation, first_id) is None
        assert await session.get(Donation, second_id) is None

    @pytest.mark.asyncio
    async def test_allocated_donation_cannot_be_deleted(self, session, admin, make_donation, make_lead):
        from src.services import AllocationService

        donation = await make_donation(amount=1000)
        lead = await make_lead()
        donation_id = donation.id
        await AllocationService(session).allocate_donation(donation_id, [(lead.id, 400)], admin.id)

        with pytest.raises(ConflictError, match="allocated"):
            await DonationService(session).delete_donation(donation_id, admin.id)
        assert await session.get(Donation, donation_id) is not None

    @pytest.mark.asyncio
    async def test_empty_selection(self, session, admin):
        with pytest.raises(ValidationError, match="No donations selected"):
            await DonationService(session).bulk_delete_donations([], admin.id)

#!/usr/bin/env python3
"""
Seed script for the Relief Ledger platform.
Creates the tables, default settings, the organization and a super admin,
and optionally a batch of synthetic donors, beneficiaries, leads and donations.

Usage:
    python scripts/seed.py              # core records only
    python scripts/seed.py --sample     # plus synthetic sample data
    python scripts/seed.py --erase      # drop everything first
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import get_settings
from src.data.database import build_engine, build_session_factory, create_tables, drop_tables
from src.data.models import DonationStatus, LeadAction, UserRole
from src.data.synthetic import SyntheticDataGenerator
from src.logging_config import configure_logging
from src.services import (
    AllocationService,
    AppSettingsService,
    DonationService,
    LeadService,
    OrganizationService,
    PublicDataService,
    UserService,
)

logger = structlog.get_logger()

SUPER_ADMIN = {
    "user_id": "admin",
    "first_name": "Super",
    "last_name": "Admin",
    "phone": "9999999999",
    "email": "admin@example.com",
    "roles": [UserRole.SUPER_ADMIN.value, UserRole.ADMIN.value, UserRole.DONOR.value],
}

ORGANIZATION = {
    "name": "Relief Ledger Foundation",
    "address": "Main Road",
    "city": "Solapur",
    "registration_number": "MH/2024/0001",
    "contact_email": "contact@example.org",
    "contact_phone": "9999900000",
}


class Colors:
    """ANSI color codes for terminal output."""
    HEADER = '\033[95m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    BOLD = '\033[1m'
    END = '\033[0m'


def print_header(text: str):
    print(f"\n{Colors.BOLD}{Colors.HEADER}{'='*70}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.HEADER}  {text}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.HEADER}{'='*70}{Colors.END}\n")


def print_step(text: str):
    print(f"{Colors.GREEN}> {text}{Colors.END}")


def print_result(label: str, value):
    print(f"  {Colors.YELLOW}{label}:{Colors.END} {value}")


async def seed_core(session) -> str:
    """Settings, organization and the super admin. Returns the admin's id."""
    print_step("Saving default settings")
    settings_service = AppSettingsService(session)
    await settings_service.update_app_settings("features", {})

    print_step("Saving organization profile")
    organization = await OrganizationService(session).get_organization()
    if organization is None:
        organization = await OrganizationService(session).update_organization(ORGANIZATION)
    print_result("Organization", organization.name)

    print_step("Creating super admin")
    users = UserService(session)
    admin = await users.get_user_by_user_id(SUPER_ADMIN["user_id"])
    if admin is None:
        admin = await users.create_user(dict(SUPER_ADMIN))
    print_result("Admin", f"{admin.name} ({admin.user_key})")
    return admin.id


async def seed_sample(session, admin_id: str, seed: int) -> None:
    """Synthetic people, leads and donations, with part of the money allocated."""
    generator = SyntheticDataGenerator(seed=seed)
    dataset = generator.generate_dataset()
    users = UserService(session)

    print_step("Creating donors and beneficiaries")
    donor_ids = [(await users.create_user(d, admin_user_id=admin_id)).id for d in dataset["donors"]]
    beneficiary_ids = [
        (await users.create_user(b, admin_user_id=admin_id)).id for b in dataset["beneficiaries"]
    ]
    print_result("Donors", len(donor_ids))
    print_result("Beneficiaries", len(beneficiary_ids))

    print_step("Creating leads")
    lead_service = LeadService(session)
    leads = []
    for data in dataset["leads"]:
        data = dict(data)
        data["beneficiary_id"] = beneficiary_ids[data.pop("beneficiary_index")]
        data["case_action"] = LeadAction.PUBLISH
        leads.append(await lead_service.create_lead(data, admin_id))
    print_result("Leads", len(leads))

    print_step("Recording donations")
    donation_service = DonationService(session)
    donations = []
    for data in dataset["donations"]:
        data = dict(data)
        data["donor_id"] = donor_ids[data.pop("donor_index")]
        data["status"] = DonationStatus.VERIFIED
        donations.append(await donation_service.create_donation(data, admin_id))
    print_result("Donations", len(donations))

    print_step("Allocating donations to open leads")
    allocation_service = AllocationService(session)
    allocated = 0
    for donation, lead in zip(donations, leads):
        amount = min(donation.amount, lead.pending_amount)
        if amount > 0:
            await allocation_service.allocate_donation(donation.id, [(lead.id, amount)], admin_id)
            allocated += 1
    print_result("Allocated", allocated)


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed the Relief Ledger database.")
    parser.add_argument("--sample", action="store_true", help="also create synthetic sample data")
    parser.add_argument("--erase", action="store_true", help="drop all tables before seeding")
    parser.add_argument("--seed", type=int, default=42, help="random seed for sample data")
    args = parser.parse_args()

    configure_logging()
    settings = get_settings()
    engine = build_engine(settings.database_url, echo=settings.database_echo)

    print_header("RELIEF LEDGER - DATABASE SEED")
    print_result("Database", settings.database_url.split("@")[-1])

    if args.erase:
        print_step("Dropping all tables")
        await drop_tables(engine)
    await create_tables(engine)

    factory = build_session_factory(engine)
    async with factory() as session:
        admin_id = await seed_core(session)
        if args.sample:
            await seed_sample(session, admin_id, args.seed)

        stats = await PublicDataService(session).refresh_public_stats()
        await session.commit()

    print_header("DONE")
    for key, value in stats.items():
        print_result(key, value)

    await engine.dispose()
    logger.info("seed_completed", sample=args.sample, erase=args.erase)


if __name__ == "__main__":
    asyncio.run(main())

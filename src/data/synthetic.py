"""
Synthetic data generator for testing and demonstration.
Generates realistic donors, beneficiaries, leads, campaigns and donations.

Generated records are plain dicts shaped as service inputs, so they can be
fed straight into ``UserService.create_user``, ``LeadService.create_lead``
and friends.
"""

import random
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Set

from src.data.models import DonationType, LeadPriority, UserRole

# Sample data for generation
FIRST_NAMES = [
    "Abdul", "Ayesha", "Imran", "Fatima", "Salman", "Zainab", "Irfan", "Sana",
    "Faisal", "Rukhsar", "Tanveer", "Nazia", "Asif", "Shabana", "Junaid",
    "Mehreen", "Sohail", "Yasmin", "Arif", "Heena", "Rizwan", "Farah",
    "Shoaib", "Nilofer", "Wasim", "Rubina", "Kasim", "Afreen", "Sameer",
]

LAST_NAMES = [
    "Shaikh", "Khan", "Pathan", "Sayyed", "Mulla", "Inamdar", "Bagwan",
    "Attar", "Tamboli", "Mujawar", "Kazi", "Momin", "Ansari", "Qureshi",
]

CITIES = [
    ("Solapur", "Maharashtra", "413001"),
    ("Pune", "Maharashtra", "411001"),
    ("Mumbai", "Maharashtra", "400001"),
    ("Hyderabad", "Telangana", "500001"),
    ("Bijapur", "Karnataka", "586101"),
    ("Aurangabad", "Maharashtra", "431001"),
]

OCCUPATIONS = [
    "Daily wage labourer", "Auto driver", "Tailor", "Vegetable vendor",
    "Domestic worker", "Student", "Unemployed", "Mechanic", "Hawker",
]

# purpose -> (category, headline template)
LEAD_TEMPLATES = {
    "Education": [
        ("School Fees", "Help {name} pay school fees for the year"),
        ("College Fees", "Support {name}'s college admission"),
        ("Books & Uniforms", "Books and uniforms for {name}'s children"),
    ],
    "Medical": [
        ("Hospital Bill", "Help {name} clear a pending hospital bill"),
        ("Medication", "Monthly medicines for {name}"),
        ("Surgical Procedure", "{name} needs surgery urgently"),
    ],
    "Relief Fund": [
        ("Ration Kit", "Ration kit for {name}'s family"),
        ("Utility Bill Payment", "Help {name} keep the electricity on"),
        ("Shelter Assistance", "Help {name} pay this month's rent"),
    ],
    "Deen": [
        ("Madrasa Support", "Support the madrasa {name} teaches at"),
    ],
}

PAYMENT_APPS = ["Google Pay", "PhonePe", "Paytm", "BHIM"]

CAMPAIGN_NAMES = [
    "Ramadan Ration Drive {year}",
    "Winter Blanket Drive {year}",
    "Back To School {year}",
    "Flood Relief {year}",
    "Eid Gift Packs {year}",
]


class SyntheticDataGenerator:
    """Generates synthetic data for testing."""

    def __init__(self, seed: Optional[int] = None):
        """Initialize with optional random seed for reproducibility."""
        if seed is not None:
            random.seed(seed)
        self._used_phones: Set[str] = set()
        self._used_transactions: Set[str] = set()

    def _phone(self) -> str:
        while True:
            phone = f"9{random.randint(100000000, 999999999)}"
            if phone not in self._used_phones:
                self._used_phones.add(phone)
                return phone

    def _transaction_id(self) -> str:
        while True:
            tid = f"T{random.randint(10**11, 10**12 - 1)}"
            if tid not in self._used_transactions:
                self._used_transactions.add(tid)
                return tid

    def _person(self, roles: List[str]) -> Dict[str, Any]:
        first_name = random.choice(FIRST_NAMES)
        last_name = random.choice(LAST_NAMES)
        city, state, pincode = random.choice(CITIES)
        phone = self._phone()
        return {
            "first_name": first_name,
            "last_name": last_name,
            "phone": phone,
            "email": f"{first_name.lower()}.{last_name.lower()}.{phone[-4:]}@example.com",
            "gender": random.choice(["Male", "Female"]),
            "city": city,
            "state": state,
            "pincode": pincode,
            "roles": roles,
        }

    def generate_donor(self, with_pledge: bool = False) -> Dict[str, Any]:
        """Generate a synthetic donor."""
        donor = self._person([UserRole.DONOR.value])
        donor["upi_ids"] = [f"{donor['phone']}@okaxis"]
        donor["is_anonymous_as_donor"] = random.random() > 0.8

        if with_pledge or random.random() > 0.7:
            donor["monthly_pledge_enabled"] = True
            donor["monthly_pledge_amount"] = float(random.choice([500, 1000, 2000, 5000]))

        return donor

    def generate_beneficiary(self) -> Dict[str, Any]:
        """Generate a synthetic beneficiary."""
        beneficiary = self._person([UserRole.BENEFICIARY.value])
        beneficiary.update({
            "beneficiary_type": random.choice(["Adult", "Family", "Kid", "Old Age"]),
            "occupation": random.choice(OCCUPATIONS),
            "family_members": random.randint(1, 8),
            "is_widow": beneficiary["gender"] == "Female" and random.random() > 0.7,
            "is_anonymous_as_beneficiary": random.random() > 0.6,
            "bank_account_number": str(random.randint(10**10, 10**11 - 1)),
            "bank_ifsc_code": f"SBIN000{random.randint(1000, 9999)}",
        })
        return beneficiary

    def generate_lead(
        self,
        beneficiary_id: Optional[str] = None,
        beneficiary_name: str = "",
        purpose: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate a synthetic help request."""
        purpose = purpose or random.choice(list(LEAD_TEMPLATES))
        category, headline = random.choice(LEAD_TEMPLATES[purpose])
        name = beneficiary_name or f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}"

        help_requested = float(random.choice([2000, 5000, 8000, 12000, 20000, 35000, 50000]))
        created = datetime.utcnow() - timedelta(days=random.randint(1, 120))

        return {
            "beneficiary_id": beneficiary_id,
            "name": name,
            "headline": headline.format(name=name.split()[0]),
            "story": f"{name} has asked for help with {category.lower()}.",
            "purpose": purpose,
            "category": category,
            "donation_type": random.choice([DonationType.ZAKAT, DonationType.SADAQAH, DonationType.ANY]).value,
            "priority": random.choice(list(LeadPriority)).value,
            "help_requested": help_requested,
            "date_created": created,
            "due_date": created + timedelta(days=random.choice([15, 30, 60])),
            "is_loan": purpose == "Loan",
        }

    def generate_donation(
        self,
        donor_id: str,
        amount: Optional[float] = None,
        days_ago: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Generate a synthetic donation."""
        if amount is None:
            amount = float(random.choice([100, 250, 500, 1000, 2500, 5000, 10000]))
        if days_ago is None:
            days_ago = random.randint(0, 180)

        return {
            "donor_id": donor_id,
            "amount": amount,
            "type": random.choice([DonationType.ZAKAT, DonationType.SADAQAH, DonationType.LILLAH]).value,
            "purpose": random.choice(["Education", "Medical", "Relief Fund", None]),
            "transaction_id": self._transaction_id(),
            "payment_method": "Online (UPI/Card)",
            "payment_app": random.choice(PAYMENT_APPS),
            "donation_date": datetime.utcnow() - timedelta(days=days_ago),
        }

    def generate_campaign(self, year: Optional[int] = None) -> Dict[str, Any]:
        """Generate a synthetic campaign."""
        year = year or datetime.utcnow().year
        start = datetime(year, random.randint(1, 10), 1)
        return {
            "name": random.choice(CAMPAIGN_NAMES).format(year=year),
            "description": "Community fundraising drive.",
            "goal": float(random.choice([50000, 100000, 250000, 500000])),
            "start_date": start,
            "end_date": start + timedelta(days=random.choice([30, 45, 60])),
            "acceptable_donation_types": [DonationType.ZAKAT.value, DonationType.SADAQAH.value],
        }

    def generate_dataset(
        self,
        num_donors: int = 10,
        num_beneficiaries: int = 6,
        donations_per_donor: int = 2,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Generate people and their leads.

        Donations reference donors by index (``donor_index``) since the user
        ids only exist after the donors are created.
        """
        donors = [self.generate_donor() for _ in range(num_donors)]
        beneficiaries = [self.generate_beneficiary() for _ in range(num_beneficiaries)]

        leads = []
        for index, beneficiary in enumerate(beneficiaries):
            lead = self.generate_lead(beneficiary_name=f"{beneficiary['first_name']} {beneficiary['last_name']}")
            lead["beneficiary_index"] = index
            leads.append(lead)

        donations = []
        for index in range(num_donors):
            for _ in range(max(1, int(random.gauss(donations_per_donor, 1)))):
                donation = self.generate_donation(donor_id="")
                donation["donor_index"] = index
                donations.append(donation)

        return {
            "donors": donors,
            "beneficiaries": beneficiaries,
            "leads": leads,
            "donations": donations,
        }

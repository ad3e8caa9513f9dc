"""
Database models for the Relief Ledger platform.
Uses SQLAlchemy for ORM with async support.

Allocations, verifiers and fund transfers are child tables owned by their
parent row and loaded with it.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    Enum as SQLEnum,
)
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import enum


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models."""
    pass


def _uuid() -> str:
    return str(uuid4())


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _enum_column(enum_cls):
    """Persist enum values ("Pending verification") rather than member names."""
    return SQLEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=40,
    )


# Enums
class UserRole(str, enum.Enum):
    GUEST = "Guest"
    DONOR = "Donor"
    BENEFICIARY = "Beneficiary"
    REFERRAL = "Referral"
    ADMIN = "Admin"
    FINANCE_ADMIN = "Finance Admin"
    SUPER_ADMIN = "Super Admin"
    ORGANIZATION_MEMBER = "Organization Member"


ADMIN_ROLES = (UserRole.ADMIN, UserRole.FINANCE_ADMIN, UserRole.SUPER_ADMIN)


class DonationStatus(str, enum.Enum):
    PENDING = "Pending"
    PENDING_VERIFICATION = "Pending verification"
    VERIFIED = "Verified"
    FAILED = "Failed/Incomplete"
    PARTIALLY_ALLOCATED = "Partially Allocated"
    ALLOCATED = "Allocated"


# Statuses whose money has actually been received.
RECEIVED_DONATION_STATUSES = (
    DonationStatus.VERIFIED,
    DonationStatus.PARTIALLY_ALLOCATED,
    DonationStatus.ALLOCATED,
)


class DonationType(str, enum.Enum):
    ZAKAT = "Zakat"
    SADAQAH = "Sadaqah"
    FITR = "Fitr"
    LILLAH = "Lillah"
    KAFFARAH = "Kaffarah"
    INTEREST = "Interest"
    SPLIT = "Split"
    ANY = "Any"


class LeadStatus(str, enum.Enum):
    OPEN = "Open"
    PENDING = "Pending"
    COMPLETE = "Complete"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"
    CLOSED = "Closed"
    PARTIAL = "Partial"


class LeadAction(str, enum.Enum):
    PENDING = "Pending"
    READY_FOR_HELP = "Ready For Help"
    PUBLISH = "Publish"
    PARTIAL = "Partial"
    COMPLETE = "Complete"
    CLOSED = "Closed"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"


class LeadVerificationStatus(str, enum.Enum):
    PENDING = "Pending"
    VERIFIED = "Verified"
    REJECTED = "Rejected"
    MORE_INFO_REQUIRED = "More Info Required"
    DUPLICATE = "Duplicate"
    OTHER = "Other"


class LeadPriority(str, enum.Enum):
    URGENT = "Urgent"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class CampaignStatus(str, enum.Enum):
    UPCOMING = "Upcoming"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# Models
class User(Base):
    """User model. One record can hold several roles."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_key: Mapped[str] = mapped_column(String(20), index=True)
    user_id: Mapped[str] = mapped_column(String(100), unique=True, index=True)

    name: Mapped[str] = mapped_column(String(255))
    first_name: Mapped[str] = mapped_column(String(100))
    middle_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    father_name: Mapped[Optional[str]] = mapped_column(String(255))

    email: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    phone: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    secondary_phone: Mapped[Optional[str]] = mapped_column(String(20))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    gender: Mapped[str] = mapped_column(String(10), default="Other")

    # Address
    address_line1: Mapped[str] = mapped_column(String(255), default="")
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    country: Mapped[Optional[str]] = mapped_column(String(100))
    pincode: Mapped[str] = mapped_column(String(20), default="")

    # Beneficiary details
    beneficiary_type: Mapped[Optional[str]] = mapped_column(String(20))
    occupation: Mapped[Optional[str]] = mapped_column(String(100))
    family_members: Mapped[Optional[int]] = mapped_column(Integer)
    is_widow: Mapped[bool] = mapped_column(Boolean, default=False)

    # Anonymity
    is_anonymous_as_beneficiary: Mapped[bool] = mapped_column(Boolean, default=False)
    is_anonymous_as_donor: Mapped[bool] = mapped_column(Boolean, default=False)
    anonymous_donor_id: Mapped[Optional[str]] = mapped_column(String(20), index=True)
    anonymous_beneficiary_id: Mapped[Optional[str]] = mapped_column(String(20), index=True)
    anonymous_referral_id: Mapped[Optional[str]] = mapped_column(String(20), index=True)
    anonymous_admin_id: Mapped[Optional[str]] = mapped_column(String(20), index=True)

    # Identity and payment details
    aadhaar_number: Mapped[Optional[str]] = mapped_column(String(20))
    pan_number: Mapped[Optional[str]] = mapped_column(String(20))
    bank_account_name: Mapped[Optional[str]] = mapped_column(String(255))
    bank_name: Mapped[Optional[str]] = mapped_column(String(255))
    bank_account_number: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    bank_ifsc_code: Mapped[Optional[str]] = mapped_column(String(20))
    upi_ids: Mapped[list] = mapped_column(JSON, default=list)
    upi_phone_numbers: Mapped[list] = mapped_column(JSON, default=list)

    # Access
    roles: Mapped[list] = mapped_column(JSON, default=list)
    privileges: Mapped[list] = mapped_column(JSON, default=list)
    groups: Mapped[list] = mapped_column(JSON, default=list)

    # Referral
    referred_by_user_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    referred_by_user_name: Mapped[Optional[str]] = mapped_column(String(255))

    # Pledge
    monthly_pledge_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    monthly_pledge_amount: Mapped[float] = mapped_column(Float, default=0.0)

    source: Mapped[str] = mapped_column(String(20), default="Manual Entry")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def has_role(self, role: UserRole) -> bool:
        return role.value in (self.roles or [])

    @property
    def is_admin(self) -> bool:
        return any(self.has_role(r) for r in ADMIN_ROLES)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_key": self.user_key,
            "user_id": self.user_id,
            "name": self.name,
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
            "father_name": self.father_name,
            "email": self.email,
            "phone": self.phone,
            "secondary_phone": self.secondary_phone,
            "is_active": self.is_active,
            "gender": self.gender,
            "address": {
                "address_line1": self.address_line1,
                "city": self.city,
                "state": self.state,
                "country": self.country,
                "pincode": self.pincode,
            },
            "beneficiary_type": self.beneficiary_type,
            "occupation": self.occupation,
            "family_members": self.family_members,
            "is_widow": self.is_widow,
            "is_anonymous_as_beneficiary": self.is_anonymous_as_beneficiary,
            "is_anonymous_as_donor": self.is_anonymous_as_donor,
            "anonymous_donor_id": self.anonymous_donor_id,
            "anonymous_beneficiary_id": self.anonymous_beneficiary_id,
            "anonymous_referral_id": self.anonymous_referral_id,
            "anonymous_admin_id": self.anonymous_admin_id,
            "bank_account_name": self.bank_account_name,
            "bank_name": self.bank_name,
            "bank_account_number": self.bank_account_number,
            "bank_ifsc_code": self.bank_ifsc_code,
            "upi_ids": list(self.upi_ids or []),
            "upi_phone_numbers": list(self.upi_phone_numbers or []),
            "roles": list(self.roles or []),
            "privileges": list(self.privileges or []),
            "groups": list(self.groups or []),
            "referred_by_user_id": self.referred_by_user_id,
            "referred_by_user_name": self.referred_by_user_name,
            "monthly_pledge_enabled": self.monthly_pledge_enabled,
            "monthly_pledge_amount": self.monthly_pledge_amount,
            "source": self.source,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<User {self.name} ({self.user_key})>"


class Campaign(Base):
    """Campaign model. The id is a slug of the name."""

    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    goal: Mapped[float] = mapped_column(Float, default=0.0)

    start_date: Mapped[datetime] = mapped_column(DateTime)
    end_date: Mapped[datetime] = mapped_column(DateTime)

    status: Mapped[CampaignStatus] = mapped_column(
        _enum_column(CampaignStatus), default=CampaignStatus.UPCOMING
    )
    acceptable_donation_types: Mapped[list] = mapped_column(JSON, default=list)
    source: Mapped[str] = mapped_column(String(20), default="Manual Entry")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "goal": self.goal,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "status": self.status.value,
            "acceptable_donation_types": list(self.acceptable_donation_types or []),
            "source": self.source,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Campaign {self.name[:30]} ({self.id})>"


class Donation(Base):
    """Donation model."""

    __tablename__ = "donations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)

    # Donor
    donor_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    donor_name: Mapped[str] = mapped_column(String(255))
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)

    # Amount and classification
    amount: Mapped[float] = mapped_column(Float)
    type: Mapped[DonationType] = mapped_column(_enum_column(DonationType), default=DonationType.ANY)
    purpose: Mapped[Optional[str]] = mapped_column(String(50))
    category: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[DonationStatus] = mapped_column(
        _enum_column(DonationStatus), default=DonationStatus.PENDING_VERIFICATION, index=True
    )

    # Links
    lead_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    campaign_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    campaign_name: Mapped[Optional[str]] = mapped_column(String(255))

    # Payment details
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100), unique=True, index=True)
    utr_number: Mapped[Optional[str]] = mapped_column(String(100))
    payment_method: Mapped[Optional[str]] = mapped_column(String(50))
    payment_app: Mapped[Optional[str]] = mapped_column(String(50))
    donor_upi_id: Mapped[Optional[str]] = mapped_column(String(100))
    donor_phone: Mapped[Optional[str]] = mapped_column(String(20))
    donor_bank_account: Mapped[Optional[str]] = mapped_column(String(50))
    sender_name: Mapped[Optional[str]] = mapped_column(String(255))
    recipient_name: Mapped[Optional[str]] = mapped_column(String(255))
    payment_screenshot_urls: Mapped[list] = mapped_column(JSON, default=list)

    notes: Mapped[Optional[str]] = mapped_column(Text)
    source: Mapped[str] = mapped_column(String(20), default="Manual Entry")

    # Timestamps
    donation_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    allocations: Mapped[List["Allocation"]] = relationship(
        back_populates="donation", lazy="selectin", cascade="all, delete-orphan"
    )

    @property
    def allocated_amount(self) -> float:
        return round(sum(a.amount for a in self.allocations), 2)

    @property
    def unallocated_amount(self) -> float:
        return round(max(self.amount - self.allocated_amount, 0.0), 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "donor_id": self.donor_id,
            "donor_name": self.donor_name,
            "is_anonymous": self.is_anonymous,
            "amount": self.amount,
            "type": self.type.value,
            "purpose": self.purpose,
            "category": self.category,
            "status": self.status.value,
            "lead_id": self.lead_id,
            "campaign_id": self.campaign_id,
            "campaign_name": self.campaign_name,
            "transaction_id": self.transaction_id,
            "utr_number": self.utr_number,
            "payment_method": self.payment_method,
            "payment_app": self.payment_app,
            "donor_upi_id": self.donor_upi_id,
            "donor_phone": self.donor_phone,
            "donor_bank_account": self.donor_bank_account,
            "sender_name": self.sender_name,
            "recipient_name": self.recipient_name,
            "payment_screenshot_urls": list(self.payment_screenshot_urls or []),
            "notes": self.notes,
            "source": self.source,
            "donation_date": _iso(self.donation_date),
            "verified_at": _iso(self.verified_at),
            "created_at": _iso(self.created_at),
            "allocations": [a.to_dict() for a in self.allocations],
            "allocated_amount": self.allocated_amount,
            "unallocated_amount": self.unallocated_amount,
        }

    def __repr__(self) -> str:
        return f"<Donation {self.amount} from {self.donor_id} ({self.status.value})>"


class Lead(Base):
    """Lead model: a beneficiary's help request."""

    __tablename__ = "leads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255))
    beneficiary_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), index=True)

    # Campaign
    campaign_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    campaign_name: Mapped[Optional[str]] = mapped_column(String(255))

    # Case details
    headline: Mapped[Optional[str]] = mapped_column(String(500))
    story: Mapped[Optional[str]] = mapped_column(Text)
    purpose: Mapped[str] = mapped_column(String(50), default="Other")
    category: Mapped[Optional[str]] = mapped_column(String(100))
    donation_type: Mapped[DonationType] = mapped_column(
        _enum_column(DonationType), default=DonationType.ANY
    )
    acceptable_donation_types: Mapped[list] = mapped_column(JSON, default=list)
    priority: Mapped[LeadPriority] = mapped_column(
        _enum_column(LeadPriority), default=LeadPriority.MEDIUM
    )
    case_details: Mapped[Optional[str]] = mapped_column(Text)
    is_loan: Mapped[bool] = mapped_column(Boolean, default=False)

    # Funding
    help_requested: Mapped[float] = mapped_column(Float, default=0.0)
    collected_amount: Mapped[float] = mapped_column(Float, default=0.0)
    help_given: Mapped[float] = mapped_column(Float, default=0.0)
    funding_goal: Mapped[Optional[float]] = mapped_column(Float)

    # Status
    case_status: Mapped[LeadStatus] = mapped_column(
        _enum_column(LeadStatus), default=LeadStatus.PENDING, index=True
    )
    case_action: Mapped[LeadAction] = mapped_column(
        _enum_column(LeadAction), default=LeadAction.PENDING
    )
    case_verification: Mapped[LeadVerificationStatus] = mapped_column(
        _enum_column(LeadVerificationStatus), default=LeadVerificationStatus.PENDING
    )
    verification_document_url: Mapped[Optional[str]] = mapped_column(String(500))

    # People
    admin_added_by_id: Mapped[str] = mapped_column(String(36))
    admin_added_by_name: Mapped[str] = mapped_column(String(255))
    referred_by_user_id: Mapped[Optional[str]] = mapped_column(String(36))
    referred_by_user_name: Mapped[Optional[str]] = mapped_column(String(255))

    source: Mapped[str] = mapped_column(String(20), default="Manual Entry")

    # Timestamps
    date_created: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    last_allocated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    allocations: Mapped[List["Allocation"]] = relationship(
        back_populates="lead", lazy="selectin", cascade="all, delete-orphan"
    )
    verifiers: Mapped[List["Verifier"]] = relationship(
        back_populates="lead", lazy="selectin", cascade="all, delete-orphan"
    )
    fund_transfers: Mapped[List["FundTransfer"]] = relationship(
        back_populates="lead", lazy="selectin", cascade="all, delete-orphan"
    )

    @property
    def pending_amount(self) -> float:
        """Amount still needed before the request is fully funded."""
        return round(max(self.help_requested - self.collected_amount, 0.0), 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "beneficiary_id": self.beneficiary_id,
            "campaign_id": self.campaign_id,
            "campaign_name": self.campaign_name or "",
            "headline": self.headline,
            "story": self.story,
            "purpose": self.purpose,
            "category": self.category,
            "donation_type": self.donation_type.value,
            "acceptable_donation_types": list(self.acceptable_donation_types or []),
            "priority": self.priority.value,
            "case_details": self.case_details,
            "is_loan": self.is_loan,
            "help_requested": self.help_requested,
            "collected_amount": self.collected_amount,
            "help_given": self.help_given,
            "pending_amount": self.pending_amount,
            "funding_goal": self.funding_goal,
            "case_status": self.case_status.value,
            "case_action": self.case_action.value,
            "case_verification": self.case_verification.value,
            "verification_document_url": self.verification_document_url,
            "admin_added_by": {"id": self.admin_added_by_id, "name": self.admin_added_by_name},
            "referred_by_user_id": self.referred_by_user_id,
            "referred_by_user_name": self.referred_by_user_name,
            "source": self.source,
            "date_created": _iso(self.date_created),
            "due_date": _iso(self.due_date),
            "closed_at": _iso(self.closed_at),
            "verified_at": _iso(self.verified_at),
            "last_allocated_at": _iso(self.last_allocated_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "verifiers": [v.to_dict() for v in self.verifiers],
            "donations": [a.to_dict() for a in self.allocations],
            "fund_transfers": [t.to_dict() for t in self.fund_transfers],
        }

    def __repr__(self) -> str:
        return f"<Lead {self.name} ({self.id})>"


class Allocation(Base):
    """A portion of a donation assigned to a lead."""

    __tablename__ = "allocations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    donation_id: Mapped[str] = mapped_column(String(36), ForeignKey("donations.id"), index=True)
    lead_id: Mapped[str] = mapped_column(String(36), ForeignKey("leads.id"), index=True)

    amount: Mapped[float] = mapped_column(Float)
    allocated_by_user_id: Mapped[str] = mapped_column(String(36))
    allocated_by_user_name: Mapped[str] = mapped_column(String(255))
    allocated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    donation: Mapped["Donation"] = relationship(back_populates="allocations")
    lead: Mapped["Lead"] = relationship(back_populates="allocations")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "donation_id": self.donation_id,
            "lead_id": self.lead_id,
            "amount": self.amount,
            "allocated_by_user_id": self.allocated_by_user_id,
            "allocated_by_user_name": self.allocated_by_user_name,
            "allocated_at": _iso(self.allocated_at),
        }


class Verifier(Base):
    """A verification sign-off on a lead."""

    __tablename__ = "lead_verifiers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    lead_id: Mapped[str] = mapped_column(String(36), ForeignKey("leads.id"), index=True)

    verifier_id: Mapped[str] = mapped_column(String(36))
    verifier_name: Mapped[str] = mapped_column(String(255))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    verified_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    lead: Mapped["Lead"] = relationship(back_populates="verifiers")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verifier_id": self.verifier_id,
            "verifier_name": self.verifier_name,
            "notes": self.notes,
            "verified_at": _iso(self.verified_at),
        }


class FundTransfer(Base):
    """Funds actually disbursed to a beneficiary against a lead."""

    __tablename__ = "fund_transfers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    lead_id: Mapped[str] = mapped_column(String(36), ForeignKey("leads.id"), index=True)

    amount: Mapped[float] = mapped_column(Float)
    transferred_by_user_id: Mapped[str] = mapped_column(String(36))
    transferred_by_user_name: Mapped[str] = mapped_column(String(255))
    proof_url: Mapped[str] = mapped_column(String(500))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Payment details
    transaction_id: Mapped[Optional[str]] = mapped_column(String(100))
    utr_number: Mapped[Optional[str]] = mapped_column(String(100))
    sender_name: Mapped[Optional[str]] = mapped_column(String(255))
    recipient_name: Mapped[Optional[str]] = mapped_column(String(255))
    recipient_upi_id: Mapped[Optional[str]] = mapped_column(String(100))
    recipient_account_number: Mapped[Optional[str]] = mapped_column(String(50))
    payment_app: Mapped[Optional[str]] = mapped_column(String(50))
    payment_method: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[Optional[str]] = mapped_column(String(50))

    transferred_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    lead: Mapped["Lead"] = relationship(back_populates="fund_transfers")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "amount": self.amount,
            "transferred_by_user_id": self.transferred_by_user_id,
            "transferred_by_user_name": self.transferred_by_user_name,
            "proof_url": self.proof_url,
            "notes": self.notes,
            "transaction_id": self.transaction_id,
            "utr_number": self.utr_number,
            "sender_name": self.sender_name,
            "recipient_name": self.recipient_name,
            "recipient_upi_id": self.recipient_upi_id,
            "recipient_account_number": self.recipient_account_number,
            "payment_app": self.payment_app,
            "payment_method": self.payment_method,
            "status": self.status,
            "transferred_at": _iso(self.transferred_at),
        }


class Organization(Base):
    """The organization profile (singleton row)."""

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255))
    address: Mapped[str] = mapped_column(String(500), default="")
    city: Mapped[str] = mapped_column(String(100), default="")
    registration_number: Mapped[str] = mapped_column(String(100), default="")
    pan_number: Mapped[Optional[str]] = mapped_column(String(20))
    contact_email: Mapped[str] = mapped_column(String(255), default="")
    contact_phone: Mapped[str] = mapped_column(String(20), default="")
    website: Mapped[Optional[str]] = mapped_column(String(255))
    logo_url: Mapped[Optional[str]] = mapped_column(String(500))
    bank_account_name: Mapped[Optional[str]] = mapped_column(String(255))
    bank_account_number: Mapped[Optional[str]] = mapped_column(String(50))
    bank_ifsc_code: Mapped[Optional[str]] = mapped_column(String(20))
    upi_id: Mapped[Optional[str]] = mapped_column(String(100))
    qr_code_url: Mapped[Optional[str]] = mapped_column(String(500))
    footer: Mapped[Optional[dict]] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "registration_number": self.registration_number,
            "pan_number": self.pan_number,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "website": self.website,
            "logo_url": self.logo_url,
            "bank_account_name": self.bank_account_name,
            "bank_account_number": self.bank_account_number,
            "bank_ifsc_code": self.bank_ifsc_code,
            "upi_id": self.upi_id,
            "qr_code_url": self.qr_code_url,
            "footer": self.footer,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class AppSettingsRecord(Base):
    """Global application settings, stored as one JSON document."""

    __tablename__ = "app_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default="main")
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class ActivityLog(Base):
    """Audit trail entry."""

    __tablename__ = "activity_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    user_name: Mapped[str] = mapped_column(String(255))
    user_email: Mapped[Optional[str]] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(40), default=UserRole.ADMIN.value)
    activity: Mapped[str] = mapped_column(String(100))
    details: Mapped[dict] = mapped_column(JSON, default=dict)

    # Denormalised keys pulled out of details for lookups
    donation_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    lead_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    campaign_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    target_user_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)

    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_email": self.user_email,
            "role": self.role,
            "activity": self.activity,
            "details": dict(self.details or {}),
            "timestamp": _iso(self.timestamp),
        }


class PublicLead(Base):
    """Sanitised copy of a published lead."""

    __tablename__ = "public_leads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    date_created: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)


class PublicCampaign(Base):
    """Campaign plus its raised amount, for public pages."""

    __tablename__ = "public_campaigns"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    start_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)


class PublicData(Base):
    """Keyed public documents: "stats" and "organization"."""

    __tablename__ = "public_data"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

"""
FastAPI application for the Relief Ledger platform.
Provides RESTful APIs for donations, leads, allocations and administration.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.core.errors import NotFoundError, ReliefLedgerError
from src.data.database import close_db, get_session, init_db
from src.data.models import (
    CampaignStatus,
    DonationStatus,
    DonationType,
    LeadAction,
    LeadPriority,
    LeadStatus,
    LeadVerificationStatus,
)
from src.logging_config import configure_logging
from src.services import (
    ActivityLogService,
    AllocationService,
    AppSettingsService,
    CampaignService,
    DonationService,
    LeadService,
    OrganizationService,
    PublicDataService,
    TransferService,
    UserService,
)

logger = structlog.get_logger()


# Request/Response Models
class AdminAction(BaseModel):
    """Any request made on behalf of an administrator."""
    admin_user_id: str


class UserCreateRequest(BaseModel):
    """Request to create a user."""
    first_name: str
    last_name: str
    middle_name: Optional[str] = None
    father_name: Optional[str] = None
    phone: str
    email: Optional[str] = None
    user_id: Optional[str] = None
    gender: Optional[str] = None
    roles: List[str] = Field(default_factory=lambda: ["Donor"])
    address_line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    beneficiary_type: Optional[str] = None
    occupation: Optional[str] = None
    family_members: Optional[int] = None
    is_widow: Optional[bool] = None
    is_anonymous_as_beneficiary: Optional[bool] = None
    is_anonymous_as_donor: Optional[bool] = None
    bank_account_name: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account_number: Optional[str] = None
    bank_ifsc_code: Optional[str] = None
    upi_ids: Optional[List[str]] = None
    referred_by_user_id: Optional[str] = None
    referred_by_user_name: Optional[str] = None
    monthly_pledge_enabled: Optional[bool] = None
    monthly_pledge_amount: Optional[float] = None
    admin_user_id: Optional[str] = None


class UserUpdateRequest(BaseModel):
    """Partial user update. Only fields that are sent are applied."""
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    father_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: Optional[bool] = None
    roles: Optional[List[str]] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    occupation: Optional[str] = None
    is_anonymous_as_beneficiary: Optional[bool] = None
    is_anonymous_as_donor: Optional[bool] = None
    bank_account_number: Optional[str] = None
    bank_ifsc_code: Optional[str] = None
    upi_ids: Optional[List[str]] = None
    monthly_pledge_enabled: Optional[bool] = None
    monthly_pledge_amount: Optional[float] = None
    admin_user_id: Optional[str] = None


class DonationCreateRequest(AdminAction):
    """Request to record a donation, optionally split into pledge and tip parts."""
    donor_id: str
    amount: float
    type: DonationType = DonationType.ANY
    purpose: Optional[str] = None
    category: Optional[str] = None
    status: Optional[DonationStatus] = None
    is_anonymous: Optional[bool] = None
    lead_id: Optional[str] = None
    campaign_id: Optional[str] = None
    transaction_id: Optional[str] = None
    utr_number: Optional[str] = None
    payment_method: Optional[str] = None
    payment_app: Optional[str] = None
    donor_upi_id: Optional[str] = None
    donor_phone: Optional[str] = None
    donor_bank_account: Optional[str] = None
    sender_name: Optional[str] = None
    recipient_name: Optional[str] = None
    payment_screenshot_urls: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    donation_date: Optional[datetime] = None
    include_pledge: bool = False
    tip_amount: float = 0


class DonationUpdateRequest(AdminAction):
    amount: Optional[float] = None
    type: Optional[DonationType] = None
    purpose: Optional[str] = None
    category: Optional[str] = None
    status: Optional[DonationStatus] = None
    is_anonymous: Optional[bool] = None
    lead_id: Optional[str] = None
    campaign_id: Optional[str] = None
    transaction_id: Optional[str] = None
    utr_number: Optional[str] = None
    payment_method: Optional[str] = None
    payment_app: Optional[str] = None
    notes: Optional[str] = None
    donation_date: Optional[datetime] = None


class UrlRequest(BaseModel):
    url: str
    admin_user_id: Optional[str] = None


class BulkIdsRequest(BaseModel):
    ids: List[str]
    admin_user_id: Optional[str] = None


class AllocationItem(BaseModel):
    lead_id: str
    amount: float


class AllocateRequest(AdminAction):
    """Request to split a donation across leads."""
    allocations: List[AllocationItem]


class CampaignLinkRequest(AdminAction):
    campaign_id: str


class LeadCreateRequest(AdminAction):
    """Request to create a lead."""
    beneficiary_id: Optional[str] = None
    name: Optional[str] = None
    campaign_id: Optional[str] = None
    headline: Optional[str] = None
    story: Optional[str] = None
    purpose: str = "Other"
    category: Optional[str] = None
    donation_type: DonationType = DonationType.ANY
    acceptable_donation_types: List[str] = Field(default_factory=list)
    priority: LeadPriority = LeadPriority.MEDIUM
    case_details: Optional[str] = None
    is_loan: bool = False
    help_requested: float = 0
    funding_goal: Optional[float] = None
    case_action: Optional[LeadAction] = None
    due_date: Optional[datetime] = None
    referred_by_user_id: Optional[str] = None
    referred_by_user_name: Optional[str] = None


class LeadUpdateRequest(AdminAction):
    name: Optional[str] = None
    campaign_id: Optional[str] = None
    headline: Optional[str] = None
    story: Optional[str] = None
    purpose: Optional[str] = None
    category: Optional[str] = None
    donation_type: Optional[DonationType] = None
    priority: Optional[LeadPriority] = None
    case_details: Optional[str] = None
    is_loan: Optional[bool] = None
    help_requested: Optional[float] = None
    funding_goal: Optional[float] = None
    case_status: Optional[LeadStatus] = None
    case_action: Optional[LeadAction] = None
    case_verification: Optional[LeadVerificationStatus] = None
    due_date: Optional[datetime] = None


class LeadVerifyRequest(AdminAction):
    status: LeadVerificationStatus = LeadVerificationStatus.VERIFIED
    notes: Optional[str] = None


class LeadBulkStatusRequest(AdminAction):
    ids: List[str]
    kind: Literal["case_status", "verification_status"]
    status: str


class TransferCreateRequest(AdminAction):
    """Request to record money paid out against a lead."""
    amount: float
    proof_url: str
    notes: Optional[str] = None
    transaction_id: Optional[str] = None
    utr_number: Optional[str] = None
    sender_name: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_upi_id: Optional[str] = None
    recipient_account_number: Optional[str] = None
    payment_app: Optional[str] = None
    payment_method: Optional[str] = None
    status: Optional[str] = None
    transferred_at: Optional[datetime] = None


class CampaignCreateRequest(BaseModel):
    """Request to create a campaign and link existing leads and donations."""
    id: Optional[str] = None
    name: str
    description: str = ""
    goal: float = 0
    start_date: datetime
    end_date: datetime
    status: CampaignStatus = CampaignStatus.UPCOMING
    acceptable_donation_types: List[str] = Field(default_factory=list)
    lead_ids: List[str] = Field(default_factory=list)
    donation_ids: List[str] = Field(default_factory=list)


class CampaignUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    goal: Optional[float] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[CampaignStatus] = None
    acceptable_donation_types: Optional[List[str]] = None


class SettingsSectionRequest(BaseModel):
    value: Dict[str, Any]


class WorkflowRequest(BaseModel):
    workflow: Dict[str, List[str]]


class OrganizationRequest(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    registration_number: Optional[str] = None
    pan_number: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    bank_account_name: Optional[str] = None
    bank_account_number: Optional[str] = None
    bank_ifsc_code: Optional[str] = None
    upi_id: Optional[str] = None
    qr_code_url: Optional[str] = None
    footer: Optional[Dict[str, Any]] = None


def _changes(request: BaseModel) -> Dict[str, Any]:
    """Fields the client actually sent, minus the acting admin."""
    return request.model_dump(exclude_unset=True, exclude={"admin_user_id"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    configure_logging()
    await init_db()
    logger.info("app_started", app_name=settings.app_name, env=settings.app_env)

    yield

    # Shutdown
    await close_db()


async def relief_ledger_error_handler(request: Request, exc: ReliefLedgerError) -> JSONResponse:
    logger.warning(
        "request_failed",
        path=request.url.path,
        error=exc.message,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_result())


router = APIRouter()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Relief Ledger",
        description="Donations, help requests and fund allocation for a community relief organization",
        version="0.1.0",
        debug=settings.debug,
        docs_url=None if settings.is_production else "/docs",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ReliefLedgerError, relief_ledger_error_handler)
    app.include_router(router, prefix=settings.api_v1_prefix)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "app": settings.app_name}

    return app


# ============================================================================
# Users
# ============================================================================

@router.post("/users")
async def create_user(request: UserCreateRequest, session: AsyncSession = Depends(get_session)):
    data = request.model_dump(exclude_none=True, exclude={"admin_user_id"})
    user = await UserService(session).create_user(data, admin_user_id=request.admin_user_id)
    return {"success": True, "user": user.to_dict()}


@router.get("/users")
async def list_users(role: Optional[str] = None, session: AsyncSession = Depends(get_session)):
    users = await UserService(session).list_users(role=role)
    return {"users": [u.to_dict() for u in users]}


@router.get("/users/lookup")
async def lookup_user(
    phone: Optional[str] = None,
    email: Optional[str] = None,
    upi_id: Optional[str] = None,
    bank_account: Optional[str] = None,
    user_id: Optional[str] = None,
    user_key: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """Find one user by a contact or payment detail."""
    service = UserService(session)
    if user_id:
        user = await service.get_user_by_user_id(user_id)
    elif user_key:
        user = await service.get_user_by_user_key(user_key)
    elif email:
        user = await service.get_user_by_email(email)
    else:
        user = await service.find_donor_by_details(phone=phone, upi_id=upi_id, bank_account=bank_account)
    if user is None:
        raise NotFoundError("User not found.")
    return {"user": user.to_dict()}


@router.get("/users/{user_id}")
async def get_user(user_id: str, session: AsyncSession = Depends(get_session)):
    user = await UserService(session).get_user(user_id)
    return {"user": user.to_dict()}


@router.patch("/users/{user_id}")
async def update_user(user_id: str, request: UserUpdateRequest, session: AsyncSession = Depends(get_session)):
    user = await UserService(session).update_user(user_id, _changes(request), admin_user_id=request.admin_user_id)
    return {"success": True, "user": user.to_dict()}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin_user_id: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    await UserService(session).delete_user(user_id, admin_user_id=admin_user_id)
    return {"success": True}


@router.get("/users/{user_id}/referred-beneficiaries")
async def get_referred_beneficiaries(user_id: str, session: AsyncSession = Depends(get_session)):
    users = await UserService(session).get_referred_beneficiaries(user_id)
    return {"users": [u.to_dict() for u in users]}


@router.get("/users/{user_id}/donations")
async def get_donations_by_donor(user_id: str, session: AsyncSession = Depends(get_session)):
    donations = await DonationService(session).get_donations_by_donor(user_id)
    return {"donations": [d.to_dict() for d in donations]}


@router.get("/users/{user_id}/leads")
async def get_leads_by_beneficiary(user_id: str, session: AsyncSession = Depends(get_session)):
    leads = await LeadService(session).get_leads_by_beneficiary(user_id)
    return {"leads": [lead.to_dict() for lead in leads]}


# ============================================================================
# Donations
# ============================================================================

@router.post("/donations")
async def create_donation(request: DonationCreateRequest, session: AsyncSession = Depends(get_session)):
    """Record a donation. A pledge or tip splits it into several records."""
    data = request.model_dump(exclude_none=True, exclude={"admin_user_id", "include_pledge", "tip_amount"})
    service = DonationService(session)

    if request.include_pledge or request.tip_amount > 0:
        donations = await service.record_split_donation(
            data,
            request.admin_user_id,
            include_pledge=request.include_pledge,
            tip_amount=request.tip_amount,
        )
        return {"success": True, "donations": [d.to_dict() for d in donations]}

    donation = await service.create_donation(data, request.admin_user_id)
    return {"success": True, "donation": donation.to_dict()}


@router.get("/donations")
async def list_donations(
    status: Optional[DonationStatus] = None,
    donor_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    donations = await DonationService(session).list_donations(
        status=status, donor_id=donor_id, campaign_id=campaign_id
    )
    return {"donations": [d.to_dict() for d in donations]}


@router.get("/donations/check-transaction/{transaction_id}")
async def check_transaction_id(transaction_id: str, session: AsyncSession = Depends(get_session)):
    return await DonationService(session).check_transaction_id(transaction_id)


@router.post("/donations/bulk-delete")
async def bulk_delete_donations(request: BulkIdsRequest, session: AsyncSession = Depends(get_session)):
    count = await DonationService(session).bulk_delete_donations(request.ids, request.admin_user_id)
    return {"success": True, "deleted": count}


@router.get("/donations/{donation_id}")
async def get_donation(donation_id: str, session: AsyncSession = Depends(get_session)):
    donation = await DonationService(session).get_donation(donation_id)
    return {"donation": donation.to_dict()}


@router.patch("/donations/{donation_id}")
async def update_donation(
    donation_id: str,
    request: DonationUpdateRequest,
    session: AsyncSession = Depends(get_session),
):
    donation = await DonationService(session).update_donation(
        donation_id, _changes(request), request.admin_user_id
    )
    return {"success": True, "donation": donation.to_dict()}


@router.post("/donations/{donation_id}/verify")
async def verify_donation(donation_id: str, request: AdminAction, session: AsyncSession = Depends(get_session)):
    donation = await DonationService(session).verify_donation(donation_id, request.admin_user_id)
    return {"success": True, "donation": donation.to_dict()}


@router.post("/donations/{donation_id}/payment-proof")
async def add_payment_proof(donation_id: str, request: UrlRequest, session: AsyncSession = Depends(get_session)):
    donation = await DonationService(session).add_payment_proof(donation_id, request.url)
    return {"success": True, "donation": donation.to_dict()}


@router.delete("/donations/{donation_id}")
async def delete_donation(
    donation_id: str,
    admin_user_id: str = Query(...),
    session: AsyncSession = Depends(get_session),
):
    await DonationService(session).delete_donation(donation_id, admin_user_id)
    return {"success": True}


@router.get("/donations/{donation_id}/activity")
async def get_donation_activity(donation_id: str, session: AsyncSession = Depends(get_session)):
    entries = await ActivityLogService(session).get_donation_activity(donation_id)
    return {"activity": [e.to_dict() for e in entries]}


# ============================================================================
# Allocations
# ============================================================================

@router.post("/donations/{donation_id}/allocations")
async def allocate_donation(donation_id: str, request: AllocateRequest, session: AsyncSession = Depends(get_session)):
    """Split a verified donation across one or more leads."""
    selection = [(item.lead_id, item.amount) for item in request.allocations]
    service = AllocationService(session)
    donation = await service.allocate_donation(donation_id, selection, request.admin_user_id)
    return {"success": True, "donation": donation.to_dict()}


@router.get("/donations/{donation_id}/allocations")
async def get_allocation_summary(donation_id: str, session: AsyncSession = Depends(get_session)):
    return await AllocationService(session).get_allocation_summary(donation_id)


@router.post("/donations/{donation_id}/campaign")
async def allocate_to_campaign(
    donation_id: str,
    request: CampaignLinkRequest,
    session: AsyncSession = Depends(get_session),
):
    donation = await AllocationService(session).allocate_to_campaign(
        donation_id, request.campaign_id, request.admin_user_id
    )
    return {"success": True, "donation": donation.to_dict()}


@router.delete("/allocations/{allocation_id}")
async def remove_allocation(
    allocation_id: str,
    admin_user_id: str = Query(...),
    session: AsyncSession = Depends(get_session),
):
    donation = await AllocationService(session).remove_allocation(allocation_id, admin_user_id)
    return {"success": True, "donation": donation.to_dict()}


# ============================================================================
# Leads
# ============================================================================

@router.post("/leads")
async def create_lead(request: LeadCreateRequest, session: AsyncSession = Depends(get_session)):
    lead = await LeadService(session).create_lead(_changes(request), request.admin_user_id)
    return {"success": True, "lead": lead.to_dict()}


@router.get("/leads")
async def list_leads(
    status: Optional[LeadStatus] = None,
    verification: Optional[LeadVerificationStatus] = None,
    campaign_id: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    leads = await LeadService(session).list_leads(status=status, verification=verification, campaign_id=campaign_id)
    return {"leads": [lead.to_dict() for lead in leads]}


@router.get("/leads/open")
async def get_open_leads(session: AsyncSession = Depends(get_session)):
    """Published leads that still need funds."""
    leads = await LeadService(session).get_open_leads()
    return {"leads": [lead.to_dict() for lead in leads]}


@router.post("/leads/bulk-status")
async def bulk_update_lead_status(request: LeadBulkStatusRequest, session: AsyncSession = Depends(get_session)):
    count = await LeadService(session).bulk_update_lead_status(
        request.ids, request.kind, request.status, request.admin_user_id
    )
    return {"success": True, "updated": count}


@router.post("/leads/bulk-delete")
async def bulk_delete_leads(request: BulkIdsRequest, session: AsyncSession = Depends(get_session)):
    count = await LeadService(session).bulk_delete_leads(request.ids, request.admin_user_id)
    return {"success": True, "deleted": count}


@router.get("/leads/{lead_id}")
async def get_lead(lead_id: str, session: AsyncSession = Depends(get_session)):
    lead = await LeadService(session).get_lead(lead_id)
    return {"lead": lead.to_dict()}


@router.patch("/leads/{lead_id}")
async def update_lead(lead_id: str, request: LeadUpdateRequest, session: AsyncSession = Depends(get_session)):
    lead = await LeadService(session).update_lead(lead_id, _changes(request), request.admin_user_id)
    return {"success": True, "lead": lead.to_dict()}


@router.post("/leads/{lead_id}/verify")
async def verify_lead(lead_id: str, request: LeadVerifyRequest, session: AsyncSession = Depends(get_session)):
    lead = await LeadService(session).verify_lead(
        lead_id, request.admin_user_id, status=request.status, notes=request.notes
    )
    return {"success": True, "lead": lead.to_dict()}


@router.post("/leads/{lead_id}/verification-document")
async def upload_verification_document(
    lead_id: str,
    request: UrlRequest,
    session: AsyncSession = Depends(get_session),
):
    lead = await LeadService(session).upload_verification_document(lead_id, request.url, request.admin_user_id)
    return {"success": True, "lead": lead.to_dict()}


@router.delete("/leads/{lead_id}")
async def delete_lead(
    lead_id: str,
    admin_user_id: str = Query(...),
    session: AsyncSession = Depends(get_session),
):
    await LeadService(session).delete_lead(lead_id, admin_user_id)
    return {"success": True}


@router.get("/leads/{lead_id}/activity")
async def get_lead_activity(lead_id: str, session: AsyncSession = Depends(get_session)):
    entries = await ActivityLogService(session).get_lead_activity(lead_id)
    return {"activity": [e.to_dict() for e in entries]}


# ============================================================================
# Fund Transfers
# ============================================================================

@router.post("/leads/{lead_id}/transfers")
async def record_fund_transfer(
    lead_id: str,
    request: TransferCreateRequest,
    session: AsyncSession = Depends(get_session),
):
    transfer = await TransferService(session).record_fund_transfer(lead_id, _changes(request), request.admin_user_id)
    return {"success": True, "transfer": transfer.to_dict()}


@router.get("/transfers")
async def list_transfers(lead_id: Optional[str] = None, session: AsyncSession = Depends(get_session)):
    return {"transfers": await TransferService(session).list_transfers(lead_id=lead_id)}


@router.post("/transfers/bulk-delete")
async def bulk_delete_transfers(request: BulkIdsRequest, session: AsyncSession = Depends(get_session)):
    lead_ids = await TransferService(session).bulk_delete_transfers(request.ids)
    return {"success": True, "lead_ids": lead_ids}


# ============================================================================
# Campaigns
# ============================================================================

@router.post("/campaigns")
async def create_campaign(request: CampaignCreateRequest, session: AsyncSession = Depends(get_session)):
    data = request.model_dump(exclude={"lead_ids", "donation_ids"})
    campaign = await CampaignService(session).create_campaign(
        data, lead_ids=request.lead_ids, donation_ids=request.donation_ids
    )
    return {"success": True, "campaign": campaign.to_dict()}


@router.get("/campaigns")
async def list_campaigns(session: AsyncSession = Depends(get_session)):
    campaigns = await CampaignService(session).list_campaigns()
    return {"campaigns": [c.to_dict() for c in campaigns]}


@router.post("/campaigns/bulk-delete")
async def bulk_delete_campaigns(request: BulkIdsRequest, session: AsyncSession = Depends(get_session)):
    count = await CampaignService(session).bulk_delete_campaigns(request.ids)
    return {"success": True, "deleted": count}


@router.get("/campaigns/{campaign_id}")
async def get_campaign(campaign_id: str, session: AsyncSession = Depends(get_session)):
    campaign = await CampaignService(session).get_campaign(campaign_id)
    return {"campaign": campaign.to_dict()}


@router.patch("/campaigns/{campaign_id}")
async def update_campaign(
    campaign_id: str,
    request: CampaignUpdateRequest,
    session: AsyncSession = Depends(get_session),
):
    campaign = await CampaignService(session).update_campaign(campaign_id, _changes(request))
    return {"success": True, "campaign": campaign.to_dict()}


@router.get("/campaigns/{campaign_id}/stats")
async def get_campaign_stats(campaign_id: str, session: AsyncSession = Depends(get_session)):
    return await CampaignService(session).get_campaign_stats(campaign_id)


@router.get("/campaigns/{campaign_id}/leads")
async def get_leads_by_campaign(campaign_id: str, session: AsyncSession = Depends(get_session)):
    leads = await LeadService(session).get_leads_by_campaign(campaign_id)
    return {"leads": [lead.to_dict() for lead in leads]}


@router.get("/campaigns/{campaign_id}/activity")
async def get_campaign_activity(campaign_id: str, session: AsyncSession = Depends(get_session)):
    entries = await ActivityLogService(session).get_campaign_activity(campaign_id)
    return {"activity": [e.to_dict() for e in entries]}


# ============================================================================
# Settings & Organization
# ============================================================================

@router.get("/settings")
async def get_app_settings(session: AsyncSession = Depends(get_session)):
    return await AppSettingsService(session).get_app_settings()


@router.put("/settings/lead_configuration/workflow")
async def update_lead_workflow(request: WorkflowRequest, session: AsyncSession = Depends(get_session)):
    updated = await AppSettingsService(session).update_lead_workflow(request.workflow)
    return {"success": True, "settings": updated}


@router.put("/settings/{section}")
async def update_app_settings(
    section: str,
    request: SettingsSectionRequest,
    session: AsyncSession = Depends(get_session),
):
    service = AppSettingsService(session)
    if section == "lead_configuration":
        updated = await service.update_lead_configuration(request.value)
    else:
        updated = await service.update_app_settings(section, request.value)
    return {"success": True, "settings": updated}


@router.get("/organization")
async def get_organization(session: AsyncSession = Depends(get_session)):
    organization = await OrganizationService(session).get_organization()
    if organization is None:
        raise NotFoundError("Organization not found.")
    return {"organization": organization.to_dict()}


@router.put("/organization")
async def update_organization(request: OrganizationRequest, session: AsyncSession = Depends(get_session)):
    organization = await OrganizationService(session).update_organization(_changes(request))
    return {"success": True, "organization": organization.to_dict()}


# ============================================================================
# Activity Log
# ============================================================================

@router.get("/activity")
async def get_activity(
    user_id: Optional[str] = None,
    target_user_id: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """Activity log, newest first. Filter by actor or by the user acted upon."""
    service = ActivityLogService(session)
    if user_id:
        entries = await service.get_user_activity(user_id)
    elif target_user_id:
        entries = await service.get_target_user_activity(target_user_id)
    else:
        entries = await service.get_all_activity()
    return {"activity": [e.to_dict() for e in entries]}


# ============================================================================
# Public Data & Dashboard
# ============================================================================

@router.get("/public/leads")
async def get_public_leads(session: AsyncSession = Depends(get_session)):
    return {"leads": await PublicDataService(session).get_public_leads()}


@router.get("/public/campaigns")
async def get_public_campaigns(session: AsyncSession = Depends(get_session)):
    return {"campaigns": await PublicDataService(session).get_public_campaigns()}


@router.get("/public/stats")
async def get_public_stats(session: AsyncSession = Depends(get_session)):
    service = PublicDataService(session)
    stats = await service.get_public_stats()
    if stats is None:
        stats = await service.compute_stats()
    return {"stats": stats}


@router.get("/public/organization")
async def get_public_organization(session: AsyncSession = Depends(get_session)):
    organization = await PublicDataService(session).get_public_organization()
    if organization is None:
        raise NotFoundError("Organization not found.")
    return {"organization": organization}


@router.get("/dashboard")
async def dashboard_summary(session: AsyncSession = Depends(get_session)):
    """Live figures for the admin dashboard."""
    summary = await PublicDataService(session).dashboard_summary()
    return {"currency": settings.currency, **summary}


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

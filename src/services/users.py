"""
User management: donors, beneficiaries, referrals and administrators.
"""

import re
import time
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_, select

from src.config import get_settings
from src.core.base_service import BaseService
from src.core.errors import ConflictError, ValidationError
from src.data.models import ADMIN_ROLES, Donation, Lead, User, UserRole
from src.services.activity_log import ActivityLogService

# role -> (prefix, column) for anonymous display ids
ANONYMOUS_ID_FIELDS = {
    UserRole.DONOR: ("DONOR", "anonymous_donor_id"),
    UserRole.BENEFICIARY: ("BENFCRY", "anonymous_beneficiary_id"),
    UserRole.REFERRAL: ("REF", "anonymous_referral_id"),
}
ADMIN_ANONYMOUS_FIELD = ("ADM", "anonymous_admin_id")

# Fields update_user may change directly
UPDATABLE_FIELDS = {
    "first_name", "middle_name", "last_name", "father_name", "email", "phone",
    "secondary_phone", "is_active", "gender", "address_line1", "city", "state",
    "country", "pincode", "beneficiary_type", "occupation", "family_members",
    "is_widow", "is_anonymous_as_beneficiary", "is_anonymous_as_donor",
    "aadhaar_number", "pan_number", "bank_account_name", "bank_name",
    "bank_account_number", "bank_ifsc_code", "upi_ids", "upi_phone_numbers",
    "roles", "privileges", "groups", "referred_by_user_id", "referred_by_user_name",
    "monthly_pledge_enabled", "monthly_pledge_amount", "user_id",
}


def normalize_phone(phone: Optional[str]) -> str:
    """Keep the last 10 digits of a phone number."""
    digits = re.sub(r"\D", "", phone or "")[-10:]
    if len(digits) != 10:
        raise ValidationError("Invalid phone number provided. Must be 10 digits.")
    return digits


def unique_roles(roles: Optional[Iterable[str]]) -> List[str]:
    """De-duplicate roles, keeping order and rejecting unknown names."""
    valid = {r.value for r in UserRole}
    seen: List[str] = []
    for role in roles or []:
        if not role:
            continue
        if role not in valid:
            raise ValidationError(f"Unknown role: {role}")
        if role not in seen:
            seen.append(role)
    return seen


def full_name(first: Optional[str], middle: Optional[str], last: Optional[str]) -> str:
    return re.sub(r"\s+", " ", f"{first or ''} {middle or ''} {last or ''}").strip()


class UserService(BaseService):
    name = "users"

    def __init__(self, session):
        super().__init__(session)
        self.activity = ActivityLogService(session)

    # Lookups

    async def get_user(self, user_id: str) -> User:
        return await self._get_or_404(User, user_id, "User")

    async def _first(self, *criteria) -> Optional[User]:
        result = await self.session.execute(select(User).where(*criteria).limit(1))
        return result.scalars().first()

    async def get_user_by_user_id(self, handle: str) -> Optional[User]:
        if not handle:
            return None
        return await self._first(User.user_id == handle)

    async def get_user_by_user_key(self, user_key: str) -> Optional[User]:
        return await self._first(User.user_key == user_key)

    async def get_user_by_phone(self, phone: str) -> Optional[User]:
        digits = re.sub(r"\D", "", phone or "")[-10:]
        if not digits:
            return None
        return await self._first(User.phone == digits)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return await self._first(func.lower(User.email) == email.strip().lower())

    async def get_user_by_bank_account(self, account_number: str) -> Optional[User]:
        if not account_number:
            return None
        return await self._first(User.bank_account_number == account_number.strip())

    async def get_user_by_upi_id(self, upi_id: str) -> Optional[User]:
        # UPI ids live in a JSON list, so match in memory
        if not upi_id:
            return None
        upi_id = upi_id.strip().lower()
        for user in await self.list_users():
            if upi_id in [u.lower() for u in (user.upi_ids or [])]:
                return user
        return None

    async def list_users(self, role: Optional[str] = None) -> List[User]:
        result = await self.session.execute(select(User).order_by(User.created_at))
        users = list(result.scalars().all())
        if role:
            users = [u for u in users if role in (u.roles or [])]
        return users

    async def get_referred_beneficiaries(self, referrer_id: str) -> List[User]:
        result = await self.session.execute(
            select(User).where(User.referred_by_user_id == referrer_id)
        )
        return [u for u in result.scalars().all() if u.has_role(UserRole.BENEFICIARY)]

    async def find_donor_by_details(
        self,
        phone: Optional[str] = None,
        upi_id: Optional[str] = None,
        bank_account: Optional[str] = None,
    ) -> Optional[User]:
        """Match a payment's sender to an existing user."""
        if upi_id:
            user = await self.get_user_by_upi_id(upi_id)
            if user:
                return user
        if bank_account:
            user = await self.get_user_by_bank_account(bank_account)
            if user:
                return user
        if phone:
            user = await self.get_user_by_phone(phone)
            if user:
                return user
        return None

    # Id generation

    async def _next_anonymous_id(self, prefix: str, column: str) -> str:
        """DONOR05 -> DONOR06. Numbers are zero-padded to two digits."""
        field = getattr(User, column)
        result = await self.session.execute(select(field).where(field.like(f"{prefix}%")))
        last_number = 0
        for (value,) in result:
            suffix = value[len(prefix):]
            if suffix.isdigit():
                last_number = max(last_number, int(suffix))
        return f"{prefix}{last_number + 1:02d}"

    async def _assign_anonymous_ids(self, user: User, roles: List[str]) -> None:
        for role, (prefix, column) in ANONYMOUS_ID_FIELDS.items():
            if role.value in roles and not getattr(user, column):
                setattr(user, column, await self._next_anonymous_id(prefix, column))
                await self.session.flush()
        if any(r.value in roles for r in ADMIN_ROLES) and not user.anonymous_admin_id:
            prefix, column = ADMIN_ANONYMOUS_FIELD
            user.anonymous_admin_id = await self._next_anonymous_id(prefix, column)
            await self.session.flush()

    async def _next_user_key(self) -> str:
        count = await self.session.scalar(select(func.count(User.id)))
        return f"USR{(count or 0) + 1:02d}"

    async def _unique_handle(self, first_name: Optional[str], last_name: Optional[str]) -> str:
        handle = f"{(first_name or 'user').lower()}.{(last_name or str(int(time.time()))).lower()}"
        handle = re.sub(r"\s+", "", handle)
        if await self.get_user_by_user_id(handle):
            handle = f"{handle}{str(int(time.time() * 1000))[-4:]}"
        return handle

    # Writes

    async def _check_unique_contact(self, email: Optional[str], phone: str, exclude_id: Optional[str] = None) -> None:
        if email:
            existing = await self.get_user_by_email(email)
            if existing and existing.id != exclude_id:
                raise ConflictError(
                    f"A user with the email {email} already exists (Name: {existing.name})."
                )
        existing = await self.get_user_by_phone(phone)
        if existing and existing.id != exclude_id:
            raise ConflictError(
                f"A user with the phone number {phone} already exists (Name: {existing.name})."
            )

    async def create_user(self, data: Dict[str, Any], admin_user_id: Optional[str] = None) -> User:
        """Create a user with a user key, a handle and anonymous ids for its roles."""
        if not data.get("first_name") or not data.get("last_name"):
            raise ValidationError("First name and last name are required.")

        phone = normalize_phone(data.get("phone"))
        email = (data.get("email") or "").strip() or None
        roles = unique_roles(data.get("roles") or [UserRole.DONOR.value])
        settings = get_settings()

        admin = await self._require_user(admin_user_id) if admin_user_id else None

        async with self.transaction():
            await self._check_unique_contact(email, phone)

            handle = data.get("user_id") or await self._unique_handle(data["first_name"], data["last_name"])
            if data.get("user_id") and await self.get_user_by_user_id(handle):
                raise ConflictError(f"User ID {handle} is already taken.")

            extra = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
            extra.update({
                "email": email,
                "phone": phone,
                "roles": roles,
                "user_id": handle,
            })
            extra.setdefault("city", settings.default_city)
            extra.setdefault("state", settings.default_state)
            extra.setdefault("country", settings.default_country)

            user = User(
                user_key=await self._next_user_key(),
                name=data.get("name") or full_name(data["first_name"], data.get("middle_name"), data["last_name"]),
                source=data.get("source") or "Manual Entry",
                **extra,
            )
            self.session.add(user)
            await self.session.flush()
            await self._assign_anonymous_ids(user, roles)

            if admin is not None:
                self.activity.log_activity(
                    admin,
                    "User Created",
                    {"target_user_id": user.id, "target_user_name": user.name, "roles": roles},
                )

        self._logger.info("user_created", user_id=user.id, user_key=user.user_key, roles=roles)
        return user

    async def update_user(self, user_id: str, updates: Dict[str, Any], admin_user_id: Optional[str] = None) -> User:
        unknown = set(updates) - UPDATABLE_FIELDS - {"name"}
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        admin = await self._require_user(admin_user_id) if admin_user_id else None

        async with self.transaction():
            user = await self.get_user(user_id)
            updates = dict(updates)

            if "phone" in updates:
                updates["phone"] = normalize_phone(updates["phone"])
            if "email" in updates:
                updates["email"] = (updates["email"] or "").strip() or None
            if "phone" in updates or "email" in updates:
                await self._check_unique_contact(
                    updates.get("email", user.email), updates.get("phone", user.phone), exclude_id=user.id
                )
            if "user_id" in updates and updates["user_id"] != user.user_id:
                if await self.get_user_by_user_id(updates["user_id"]):
                    raise ConflictError(f"User ID {updates['user_id']} is already taken.")
            if "roles" in updates:
                updates["roles"] = unique_roles(updates["roles"])

            changed = []
            for key, value in updates.items():
                if getattr(user, key) != value:
                    setattr(user, key, value)
                    changed.append(key)

            if {"first_name", "middle_name", "last_name"} & set(changed) and "name" not in updates:
                user.name = full_name(user.first_name, user.middle_name, user.last_name)

            if "roles" in changed:
                await self._assign_anonymous_ids(user, user.roles)

            if admin is not None and changed:
                self.activity.log_activity(
                    admin,
                    "User Updated",
                    {"target_user_id": user.id, "updates": ", ".join(sorted(changed))},
                )

        self._logger.info("user_updated", user_id=user.id, fields=changed)
        return user

    async def delete_user(self, user_id: str, admin_user_id: Optional[str] = None) -> None:
        admin = await self._require_user(admin_user_id) if admin_user_id else None

        async with self.transaction():
            user = await self.get_user(user_id)

            donations = await self.session.scalar(
                select(func.count(Donation.id)).where(Donation.donor_id == user.id)
            )
            leads = await self.session.scalar(
                select(func.count(Lead.id)).where(
                    or_(Lead.beneficiary_id == user.id, Lead.admin_added_by_id == user.id)
                )
            )
            if donations or leads:
                raise ConflictError(
                    f"User {user.name} cannot be deleted because they are linked to "
                    f"{donations or 0} donation(s) and {leads or 0} lead(s)."
                )

            await self.session.delete(user)
            if admin is not None:
                self.activity.log_activity(
                    admin, "User Deleted", {"target_user_id": user_id, "target_user_name": user.name}
                )

        self._logger.info("user_deleted", user_id=user_id)


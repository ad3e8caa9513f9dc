"""
Audit trail for administrative actions.

Entries are staged on the caller's session, so an activity is recorded
exactly when the action it describes commits.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select

from src.core.base_service import BaseService
from src.data.models import ActivityLog, User, UserRole

# details key -> indexed column
_INDEXED_KEYS = {
    "donation_id": "donation_id",
    "lead_id": "lead_id",
    "campaign_id": "campaign_id",
    "linked_campaign_id": "campaign_id",
    "target_user_id": "target_user_id",
}


def _role_for(user: User) -> str:
    if user.is_admin:
        for role in (UserRole.SUPER_ADMIN, UserRole.FINANCE_ADMIN, UserRole.ADMIN):
            if user.has_role(role):
                return role.value
    roles = user.roles or []
    return roles[0] if roles else UserRole.GUEST.value


class ActivityLogService(BaseService):
    name = "activity_log"

    def log_activity(
        self,
        user: User,
        activity: str,
        details: Optional[Dict[str, Any]] = None,
        role: Optional[str] = None,
    ) -> ActivityLog:
        """Stage an activity entry. The caller's transaction commits it."""
        details = dict(details or {})
        entry = ActivityLog(
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
            role=role or _role_for(user),
            activity=activity,
            details=details,
        )
        for key, column in _INDEXED_KEYS.items():
            value = details.get(key)
            if value and getattr(entry, column, None) is None:
                setattr(entry, column, str(value))

        self.session.add(entry)
        self._logger.debug("activity_staged", activity=activity, user_id=user.id)
        return entry

    async def _query(self, *criteria) -> List[ActivityLog]:
        stmt = select(ActivityLog).where(*criteria).order_by(ActivityLog.timestamp.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all_activity(self) -> List[ActivityLog]:
        return await self._query()

    async def get_user_activity(self, user_id: str) -> List[ActivityLog]:
        """Activities performed by the user."""
        return await self._query(ActivityLog.user_id == user_id)

    async def get_target_user_activity(self, target_user_id: str) -> List[ActivityLog]:
        """Activities where the user was the subject of the action."""
        return await self._query(ActivityLog.target_user_id == target_user_id)

    async def get_donation_activity(self, donation_id: str) -> List[ActivityLog]:
        return await self._query(ActivityLog.donation_id == donation_id)

    async def get_lead_activity(self, lead_id: str) -> List[ActivityLog]:
        return await self._query(ActivityLog.lead_id == lead_id)

    async def get_campaign_activity(self, campaign_id: str) -> List[ActivityLog]:
        return await self._query(ActivityLog.campaign_id == campaign_id)

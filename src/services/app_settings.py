"""
Global application settings stored as a single JSON document.

Stored values are deep-merged over ``DEFAULT_SETTINGS`` on every read, so
sections added in later releases are always present.
"""

import copy
from typing import Any, Dict, List

from src.core.base_service import BaseService
from src.core.errors import ValidationError
from src.data.models import AppSettingsRecord, LeadStatus, UserRole

MAIN_SETTINGS_ID = "main"

ADMIN_ROLE_NAMES = [UserRole.SUPER_ADMIN.value, UserRole.ADMIN.value, UserRole.FINANCE_ADMIN.value]
ALL_LEAD_STATUSES = [s.value for s in LeadStatus]


def _purpose(pid: str, name: str, categories: List[tuple]) -> Dict[str, Any]:
    return {
        "id": pid,
        "name": name,
        "enabled": True,
        "categories": [{"id": cid, "name": cname, "enabled": True} for cid, cname in categories],
    }


DEFAULT_LEAD_PURPOSES = [
    _purpose("education", "Education", [
        ("school-fees", "School Fees"),
        ("college-fees", "College Fees"),
        ("tuition-fees", "Tuition Fees"),
        ("exam-fees", "Exam Fees"),
        ("hostel-fees", "Hostel Fees"),
        ("books-uniforms", "Books & Uniforms"),
        ("other", "Other"),
    ]),
    _purpose("medical", "Medical", [
        ("hospital-bill", "Hospital Bill"),
        ("medication", "Medication"),
        ("doctor-consultation", "Doctor Consultation"),
        ("surgical-procedure", "Surgical Procedure"),
        ("medical-tests", "Medical Tests"),
        ("other", "Other"),
    ]),
    _purpose("relief-fund", "Relief Fund", [
        ("ration-kit", "Ration Kit"),
        ("financial-aid", "Financial Aid"),
        ("disaster-relief", "Disaster Relief"),
        ("shelter-assistance", "Shelter Assistance"),
        ("utility-bill-payment", "Utility Bill Payment"),
        ("other", "Other"),
    ]),
    _purpose("deen", "Deen", [
        ("masjid-maintenance", "Masjid Maintenance"),
        ("madrasa-support", "Madrasa Support"),
        ("other", "Other"),
    ]),
    _purpose("loan", "Loan", [
        ("business-loan", "Business Loan"),
        ("emergency-loan", "Emergency Loan"),
        ("education-loan", "Education Loan"),
        ("other", "Other"),
    ]),
    _purpose("other", "Other", []),
]


def default_lead_workflow() -> Dict[str, List[str]]:
    """Any status may move to any other status."""
    return {
        status: [s for s in ALL_LEAD_STATUSES if s != status]
        for status in ALL_LEAD_STATUSES
    }


DEFAULT_SETTINGS: Dict[str, Any] = {
    "login_methods": {
        "password": {"enabled": True},
        "otp": {"enabled": False},
        "google": {"enabled": False},
    },
    "features": {
        "direct_payment_to_beneficiary": {"enabled": False},
        "online_payments_enabled": False,
    },
    "payment_methods": {
        "bank_transfer": {"enabled": True},
        "cash": {"enabled": True},
        "upi": {"enabled": True},
        "other": {"enabled": True},
    },
    "donation_configuration": {
        "allow_donor_self_service_donations": True,
    },
    "lead_configuration": {
        "purposes": DEFAULT_LEAD_PURPOSES,
        "workflow": default_lead_workflow(),
        "approval_process_disabled": True,
        "role_based_creation_enabled": False,
        "lead_creator_roles": ADMIN_ROLE_NAMES,
        "allow_beneficiary_requests": True,
    },
    "user_configuration": {
        "Donor": {"is_aadhaar_mandatory": False, "is_pan_mandatory": False},
        "Beneficiary": {"is_aadhaar_mandatory": True, "is_bank_account_mandatory": False},
        "Referral": {"is_aadhaar_mandatory": False},
        "Admin": {"is_aadhaar_mandatory": False},
    },
    "dashboard": {
        "main_metrics": {"visible_to": ADMIN_ROLE_NAMES},
        "funds_in_hand": {"visible_to": ADMIN_ROLE_NAMES},
        "pending_leads": {"visible_to": ADMIN_ROLE_NAMES},
        "pending_donations": {"visible_to": ADMIN_ROLE_NAMES},
        "leads_ready_to_publish": {"visible_to": ADMIN_ROLE_NAMES},
        "top_donors": {"visible_to": ADMIN_ROLE_NAMES},
    },
}


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` updated recursively with ``override``. Lists are replaced."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class AppSettingsService(BaseService):
    name = "app_settings"

    async def _record(self) -> AppSettingsRecord:
        record = await self.session.get(AppSettingsRecord, MAIN_SETTINGS_ID)
        if record is None:
            record = AppSettingsRecord(id=MAIN_SETTINGS_ID, data={})
            self.session.add(record)
        return record

    async def get_app_settings(self) -> Dict[str, Any]:
        record = await self.session.get(AppSettingsRecord, MAIN_SETTINGS_ID)
        stored = record.data if record is not None else {}
        merged = deep_merge(DEFAULT_SETTINGS, stored)

        # A saved workflow is a complete transition table, not a patch.
        stored_workflow = (stored.get("lead_configuration") or {}).get("workflow")
        if stored_workflow is not None:
            merged["lead_configuration"]["workflow"] = copy.deepcopy(stored_workflow)
        return merged

    async def update_app_settings(self, section: str, value: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge a value into one top-level settings section."""
        if section not in DEFAULT_SETTINGS:
            raise ValidationError(f"Unknown settings section: {section}")
        if not isinstance(value, dict):
            raise ValidationError(f"Settings section {section} must be an object.")

        async with self.transaction():
            record = await self._record()
            data = copy.deepcopy(record.data or {})
            data[section] = deep_merge(data.get(section, {}), value)
            record.data = data

        self._logger.info("settings_updated", section=section)
        return await self.get_app_settings()

    async def update_lead_configuration(self, value: Dict[str, Any]) -> Dict[str, Any]:
        """Merge lead settings and replace the workflow, if one is given, in a single write."""
        value = dict(value)
        workflow = value.pop("workflow", None)
        if workflow is not None:
            self._validate_workflow(workflow)

        async with self.transaction():
            record = await self._record()
            data = copy.deepcopy(record.data or {})
            lead_config = deep_merge(data.get("lead_configuration", {}), value)
            if workflow is not None:
                lead_config["workflow"] = {k: list(v) for k, v in workflow.items()}
            data["lead_configuration"] = lead_config
            record.data = data

        self._logger.info("settings_updated", section="lead_configuration", workflow=workflow is not None)
        return await self.get_app_settings()

    async def update_lead_workflow(self, workflow: Dict[str, List[str]]) -> Dict[str, Any]:
        """Replace the whole lead status transition table."""
        self._validate_workflow(workflow)
        async with self.transaction():
            record = await self._record()
            data = copy.deepcopy(record.data or {})
            lead_config = data.setdefault("lead_configuration", {})
            lead_config["workflow"] = {k: list(v) for k, v in workflow.items()}
            record.data = data

        self._logger.info("lead_workflow_updated", statuses=len(workflow))
        return await self.get_app_settings()

    @staticmethod
    def _validate_workflow(workflow: Dict[str, List[str]]) -> None:
        for source, targets in workflow.items():
            if source not in ALL_LEAD_STATUSES:
                raise ValidationError(f"Unknown lead status in workflow: {source}")
            for target in targets:
                if target not in ALL_LEAD_STATUSES:
                    raise ValidationError(f"Unknown lead status in workflow: {target}")

    async def get_lead_workflow(self) -> Dict[str, List[str]]:
        settings = await self.get_app_settings()
        return settings["lead_configuration"].get("workflow") or default_lead_workflow()

    async def can_transition(self, current: LeadStatus, target: LeadStatus) -> bool:
        if current == target:
            return True
        workflow = await self.get_lead_workflow()
        return target.value in workflow.get(current.value, [])

"""
Record schemas for the document store.
Stored records are loosely shaped; these models apply defaults once when a
record is loaded so the rest of the code can rely on field presence.
Unknown fields are kept (extra="allow") and round-trip through model_dump.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


VOLUNTEER_ACTIVE = "Active"
VOLUNTEER_WITHDRAWN = "withdrawal"

ROLE_VOLUNTEER = "Volunteer"
ROLE_ORGANIZATION = "Organization"
USER_ROLES = (ROLE_VOLUNTEER, ROLE_ORGANIZATION)

ORG_ROLE_ADMIN = "Admin"
ORG_ROLE_GENERAL = "General"
ORG_ROLES = (ORG_ROLE_ADMIN, ORG_ROLE_GENERAL)

EVENT_ACTIVE = "active"
EVENT_CANCELED = "canceled"

ATTENDANCE_PENDING = "pending"
ATTENDANCE_APPROVED = "approved"
ATTENDANCE_REJECTED = "rejected"


class Record(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def dump(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class UserRecord(Record):
    first_name: Optional[str] = Field(default=None, alias="First Name")
    last_name: Optional[str] = Field(default=None, alias="Last Name")
    school_home_org_id: Optional[str] = None
    role: Optional[str] = None
    token: Optional[str] = None

    @property
    def username(self) -> str:
        return f"{self.first_name} {self.last_name}"


class OrganizationRecord(Record):
    name: Optional[str] = None
    parent_org: Optional[str] = None


class OrgUserRecord(Record):
    user_id: Optional[str] = None
    organization_id: Optional[str] = None
    user_role_in_Org: Optional[str] = None


class VolunteerRecord(Record):
    user_id: Optional[str] = None
    org_id: Optional[str] = None
    status: str = VOLUNTEER_WITHDRAWN
    org_sign_update_time: Optional[str] = None
    org_withdrawal_date_time: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == VOLUNTEER_ACTIVE


class CauseRecord(Record):
    name: Optional[str] = None


class EventRecord(Record):
    title: Optional[str] = None
    org_id: Optional[str] = None
    cause_id: Optional[str] = None
    org_user_id: Optional[str] = None
    created_by: Optional[str] = None
    start_date: Optional[str] = None
    event_status: str = EVENT_ACTIVE

    @property
    def is_canceled(self) -> bool:
        return self.event_status == EVENT_CANCELED


class ShiftRecord(Record):
    event_id: Optional[str] = None


class SignupRecord(Record):
    volunteer_id: Optional[str] = None
    event_id: Optional[str] = None
    shift_id: Optional[str] = None
    withdrawal: bool = False
    withdrawal_date_time: Optional[str] = None

    @field_validator("withdrawal", mode="before")
    @classmethod
    def _blank_is_false(cls, v):
        return False if v in (None, "") else v


class AttendanceRecord(Record):
    event_id: Optional[str] = None
    user_id: Optional[str] = None
    volunteer_id: Optional[str] = None
    volunteer_name: Optional[str] = None
    volunteer_first_name: Optional[str] = None
    volunteer_last_name: Optional[str] = None
    attendance_status: str = ATTENDANCE_PENDING
    coordinator_name: Optional[str] = None
    coordinator_email: Optional[str] = None
    hours_attended: float = 0
    hours_approved: float = 0
    hours_rejected: float = 0
    approved_by_approver_id: Optional[str] = None
    approved_by_approver_name: Optional[str] = None
    approved_date: Optional[str] = None
    rejected_by_approver_id: Optional[str] = None
    rejected_by_approver_name: Optional[str] = None
    rejected_date: Optional[str] = None
    organization_name: Optional[str] = None
    shift_id: Optional[str] = None
    shift_name: Optional[str] = None
    signup_id: Optional[str] = None
    event_date: Optional[str] = None
    event_name: Optional[str] = None

    @field_validator("hours_attended", "hours_approved", "hours_rejected", mode="before")
    @classmethod
    def _blank_hours_are_zero(cls, v):
        return 0 if v in (None, "") else v

    @field_validator("attendance_status", mode="before")
    @classmethod
    def _blank_status_is_pending(cls, v):
        return v or ATTENDANCE_PENDING


class MessageRecord(Record):
    id: Optional[str] = None
    userId: Optional[str] = None

"""
Attendance check-in and review.
Attendance is created at check-in and then only mutated by approve/reject.
"""
import asyncio
from typing import Any, Dict, Tuple

import structlog

from ..errors import NotFoundError, PartialFailureError, ValidationError
from ..schemas.records import ATTENDANCE_APPROVED, ATTENDANCE_REJECTED, AttendanceRecord
from ..store.collections import ATTENDANCES
from ..store.provider import DocumentStore
from .dates import iso_now, parse_iso

log = structlog.get_logger(__name__)

CHECKIN_TEXT_FIELDS = (
    "volunteer_name",
    "coordinator_name",
    "coordinator_email",
    "approved_by_approver_id",
    "organization_name",
    "shift_id",
    "shift_name",
    "signup_id",
    "event_name",
)


async def check_in(store: DocumentStore, payload: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Create an attendance record; event_date is stored as YYYY-MM-DD."""
    event_id = payload.get("event_id")
    user_id = payload.get("user_id")
    event_date = payload.get("event_date")
    if not event_id or not user_id or not event_date:
        raise ValidationError("event_id, user_id, and event_date are required")
    parsed = parse_iso(event_date)
    if parsed is None:
        raise ValidationError("event_date must be an ISO-8601 date")

    extra = {k: v for k, v in payload.items() if k not in AttendanceRecord.model_fields}
    record = AttendanceRecord(
        **extra,
        event_id=event_id,
        user_id=user_id,
        event_date=parsed.date().isoformat(),
        attendance_status=payload.get("attendance_status"),
        hours_attended=payload.get("hours_attended"),
        hours_approved=payload.get("hours_approved"),
        hours_rejected=payload.get("hours_rejected"),
        volunteer_id=payload.get("volunteer_id"),
        volunteer_first_name=payload.get("volunteer_first_name"),
        volunteer_last_name=payload.get("volunteer_last_name"),
        **{name: payload.get(name) or "" for name in CHECKIN_TEXT_FIELDS},
    )
    data = record.dump()
    attendance_id = await store.add(ATTENDANCES, data)
    log.info("attendance_checked_in", attendance_id=attendance_id, event_id=event_id, user_id=user_id)
    return attendance_id, data


def _review_update(attendance_id: str, decision: Dict[str, Any], reviewed_at: str) -> Dict[str, Any]:
    status = decision.get("attendance_status")
    approver_id = decision.get("approved_by_approver_id")
    if not status or not approver_id:
        raise ValidationError(
            f"Attendance with ID {attendance_id} must have attendance_status and approved_by_approver_id"
        )
    approver_name = decision.get("approved_by_approver_name")
    if status == ATTENDANCE_APPROVED:
        update = {
            "attendance_status": ATTENDANCE_APPROVED,
            "hours_approved": decision.get("hours_approved") or 0,
            "approved_by_approver_id": approver_id,
            "approved_date": reviewed_at,
        }
        if approver_name:
            update["approved_by_approver_name"] = approver_name
        return update
    if status == ATTENDANCE_REJECTED:
        update = {
            "attendance_status": ATTENDANCE_REJECTED,
            "hours_rejected": decision.get("hours_rejected") or 0,
            "rejected_by_approver_id": approver_id,
            "rejected_date": reviewed_at,
        }
        if approver_name:
            update["rejected_by_approver_name"] = approver_name
        return update
    raise ValidationError(
        f"Invalid attendance_status for attendance with ID {attendance_id}. It must be 'approved' or 'rejected'."
    )


async def review_attendances(store: DocumentStore, decisions: Dict[str, Dict[str, Any]]) -> Dict[str, str]:
    """
    Bulk approve/reject keyed by attendance id. Every decision is validated and
    every record checked for existence before the first write.
    """
    if not decisions:
        raise ValidationError("Attendance data is required")

    reviewed_at = iso_now()
    updates = {}
    for attendance_id, decision in decisions.items():
        if not isinstance(decision, dict):
            raise ValidationError(f"Attendance with ID {attendance_id} must be an object")
        updates[attendance_id] = _review_update(attendance_id, decision, reviewed_at)

    existing = await asyncio.gather(*(store.get(ATTENDANCES, aid) for aid in updates))
    for attendance_id, raw in zip(updates, existing):
        if raw is None:
            raise NotFoundError(f"Attendance record with ID {attendance_id} not found")

    ids = list(updates)
    results = await asyncio.gather(
        *(store.update(ATTENDANCES, aid, updates[aid]) for aid in ids),
        return_exceptions=True,
    )
    failed = [aid for aid, res in zip(ids, results) if isinstance(res, Exception)]
    if failed:
        applied = [aid for aid in ids if aid not in failed]
        log.error("attendance_review_failed", failed=failed, applied=applied)
        raise PartialFailureError("Attendance review failed for some records.", applied=applied)

    log.info("attendance_reviewed", count=len(ids))
    return {aid: updates[aid]["attendance_status"] for aid in ids}

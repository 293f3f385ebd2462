from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ..deps import get_store
from ..errors import ValidationError
from ..services.attendance import check_in, review_attendances
from ..services.reports import build_event_attendance_report
from ..store.provider import DocumentStore


router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get("")
async def event_attendance(
    event_id: str = "",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    shift_id: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    if not event_id:
        raise ValidationError("event_id is required")
    return await build_event_attendance_report(store, event_id, start_date, end_date, shift_id)


@router.post("/checkin", status_code=201)
async def attendance_checkin(payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    attendance_id, record = await check_in(store, payload)
    return {"id": attendance_id, **record}


@router.put("/approve")
async def approve_attendance(payload: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    statuses = await review_attendances(store, payload)
    return {"message": "Attendance records updated successfully", "updated": statuses}

from typing import Optional

from fastapi import APIRouter, Depends

from ..config import Settings
from ..deps import get_settings, get_store
from ..errors import ValidationError
from ..services import reports
from ..store.provider import DocumentStore


router = APIRouter(tags=["reports"])


def _required(value: Optional[str], name: str) -> str:
    if not value:
        raise ValidationError(f"{name} is required")
    return value


@router.get("/uservolunteeringreport")
async def user_volunteering_report(
    user_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    return await reports.build_user_report(store, _required(user_id, "user_id"), start_date, end_date)


@router.get("/orgupcomingevents")
async def org_upcoming_events(
    org_user_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    return await reports.build_org_upcoming_report(
        store, _required(org_user_id, "org_user_id"), start_date, end_date
    )


@router.get("/geteventandshiftforapproval")
async def events_for_approval(org_user_id: Optional[str] = None, store: DocumentStore = Depends(get_store)):
    return await reports.build_approval_report(store, _required(org_user_id, "org_user_id"))


@router.get("/myupcomingevents")
async def my_upcoming_events(
    user_id: Optional[str] = None,
    volunteer_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
):
    return await reports.build_my_upcoming_events(
        store, _required(user_id, "user_id"), volunteer_id, start_date, end_date
    )


@router.get("/userinterestevents")
async def user_interest_events(
    userId: Optional[str] = None,
    currentDate: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    return await reports.build_interest_events(
        store,
        _required(userId, "userId"),
        current_date=currentDate,
        window_days=settings.interest_window_days,
        limit=settings.interest_events_limit,
    )

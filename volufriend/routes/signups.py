from fastapi import APIRouter, Depends

from ..deps import get_reconciler, get_reminders, get_store
from ..errors import ServiceError
from ..logging import structlog
from ..schemas.signups import SignupRequest, SignupResponse
from ..services.reminders import ReminderScheduler
from ..services.signups import SignupReconciler, validate_signup_request
from ..store.provider import DocumentStore


router = APIRouter(prefix="/eventsignup", tags=["signups"])
log = structlog.get_logger(__name__)


@router.post("", status_code=201, response_model=SignupResponse)
async def event_signup(
    req: SignupRequest,
    store: DocumentStore = Depends(get_store),
    reconciler: SignupReconciler = Depends(get_reconciler),
    reminders: ReminderScheduler = Depends(get_reminders),
):
    shift_ids = [s.shift_id for s in req.selected_shift_ids]
    event = await validate_signup_request(store, req.user_id, req.org_id, req.event_id, shift_ids)
    result = await reconciler.reconcile(req.user_id, req.org_id, req.event_id, shift_ids)

    if not shift_ids:
        reminders.cancel(req.user_id, req.event_id)
    elif not event.title or not event.start_date:
        log.warning("reminder_skipped_incomplete_event", event_id=req.event_id)
    else:
        try:
            reminders.schedule(req.user_id, event.title, event.start_date, req.event_id)
        except ServiceError as exc:
            log.warning("reminder_schedule_failed", event_id=req.event_id, error=exc.message)

    return SignupResponse(message="Signup processed successfully", volunteer_id=result.volunteer_id)

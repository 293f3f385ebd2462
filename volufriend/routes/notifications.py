from fastapi import APIRouter, Depends

from ..config import Settings
from ..deps import get_dispatcher, get_reminders, get_settings
from ..errors import ValidationError
from ..schemas.notifications import DirectMessageRequest, PushRequest, ReminderRequest
from ..services.notifications import NotificationDispatcher, build_payload
from ..services.reminders import ReminderScheduler


router = APIRouter(tags=["notifications"])


@router.post("/scheduleReminder")
async def schedule_reminder(req: ReminderRequest, reminders: ReminderScheduler = Depends(get_reminders)):
    job = reminders.schedule(req.user_id, req.event_title, req.event_time, req.event_id)
    if job is None:
        return {"message": "Reminder time has already passed", "scheduled": False}
    return {
        "message": "Reminder scheduled successfully",
        "scheduled": True,
        "job_id": job.id,
        "run_at": job.trigger.run_date.isoformat(),
    }


@router.post("/sendNotification")
async def send_notification(
    req: DirectMessageRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    if not all([req.token, req.source, req.message, req.sender, req.receiver]):
        raise ValidationError("Missing required parameters: token, source, message, sender, or receiver")
    title = f"Message from {req.sender}"
    data = build_payload(title, req.message, req.user_id, req.event_id, req.source, req.receiver)
    message_id = await dispatcher.send(req.token, title, req.message, data)
    return {"message": "Notification sent successfully", "response": message_id}


@router.post("/volufriendmsgserver/send-notification", status_code=201)
async def push_to_device(
    req: PushRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    if not req.receiver_token or not req.title or not req.body:
        raise ValidationError("All fields are required: receiverToken, title, and body.")
    data = build_payload(req.title, req.body, None, None, settings.notification_source, None)
    message_id = await dispatcher.send(req.receiver_token, req.title, req.body, data)
    return {"message": "Notification sent successfully", "response": message_id}

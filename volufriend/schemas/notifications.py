from typing import Optional

from pydantic import BaseModel, Field


class ReminderRequest(BaseModel):
    user_id: str = Field(alias="userId")
    event_title: str = Field(alias="eventTitle")
    event_time: str = Field(alias="eventTime")
    event_id: str = Field(alias="eventId")


class DirectMessageRequest(BaseModel):
    token: Optional[str] = None
    source: Optional[str] = None
    message: Optional[str] = None
    sender: Optional[str] = None
    receiver: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    event_id: Optional[str] = Field(default=None, alias="eventId")


class PushRequest(BaseModel):
    receiver_token: Optional[str] = Field(default=None, alias="receiverToken")
    title: Optional[str] = None
    body: Optional[str] = None

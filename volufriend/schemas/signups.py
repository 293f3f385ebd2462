from typing import List

from pydantic import BaseModel


class ShiftSelection(BaseModel):
    shift_id: str


class SignupRequest(BaseModel):
    user_id: str
    org_id: str
    event_id: str
    selected_shift_ids: List[ShiftSelection] = []


class SignupResponse(BaseModel):
    message: str
    volunteer_id: str

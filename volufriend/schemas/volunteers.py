from pydantic import BaseModel


class MembershipRequest(BaseModel):
    user_id: str
    org_id: str

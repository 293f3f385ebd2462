from typing import Optional

from pydantic import BaseModel, Field


class HomeOrgUpdate(BaseModel):
    org_id: Optional[str] = Field(default=None, alias="orgId")
    role: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    org_role: Optional[str] = Field(default=None, alias="orgRole")

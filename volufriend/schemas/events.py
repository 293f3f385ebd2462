from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class EventWrite(BaseModel):
    """Event body; any extra event fields are stored as sent."""
    model_config = ConfigDict(extra="allow")

    org_user_id: str
    org_id: str
    title: Optional[str] = None
    start_date: Optional[str] = None
    parent_org: Optional[str] = None
    org_name: Optional[str] = None
    shifts: Optional[List[Dict[str, Any]]] = None

    def event_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"shifts"}, exclude_none=True)

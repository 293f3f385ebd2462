from fastapi import APIRouter, Depends

from ..auth.security import require_api_key, require_token
from ..deps import get_resolver, get_store
from ..errors import NotFoundError
from ..schemas.volunteers import MembershipRequest
from ..services.volunteers import VolunteerResolver
from ..store.collections import VOLUNTEERS
from ..store.provider import DocumentStore


router = APIRouter(
    prefix="/volunteers",
    tags=["volunteers"],
    dependencies=[Depends(require_api_key), Depends(require_token)],
)

JOIN_MESSAGES = {
    "already_active": "User is already an active volunteer for this organization.",
    "reactivated": "Volunteer status updated to Active successfully",
    "created": "Volunteer entry created successfully",
}


@router.get("")
async def list_volunteers(store: DocumentStore = Depends(get_store)):
    data = await store.all(VOLUNTEERS)
    return {"message": "Volunteers data retrieved successfully", "data": data}


@router.post("/joinorg")
async def join_org(req: MembershipRequest, resolver: VolunteerResolver = Depends(get_resolver)):
    result = await resolver.join_org(req.user_id, req.org_id)
    return {
        "message": JOIN_MESSAGES[result.status],
        "status": result.status,
        "volunteer_id": result.volunteer_id,
    }


@router.post("/withdraw")
async def withdraw(req: MembershipRequest, resolver: VolunteerResolver = Depends(get_resolver)):
    volunteer_id = await resolver.withdraw(req.user_id, req.org_id)
    return {"message": "Volunteer status updated to withdrawal successfully", "volunteer_id": volunteer_id}


@router.get("/{volunteer_id}")
async def get_volunteer(volunteer_id: str, store: DocumentStore = Depends(get_store)):
    data = await store.get(VOLUNTEERS, volunteer_id)
    if data is None:
        raise NotFoundError(f"No volunteer record found for ID: {volunteer_id}")
    return {"message": "Volunteer data found", "data": data}

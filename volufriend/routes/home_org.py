from fastapi import APIRouter, Depends

from ..deps import get_home_org_service, get_store
from ..schemas.home_org import HomeOrgUpdate
from ..services.home_org import HomeOrgService, check_home_org, get_home_org
from ..store.provider import DocumentStore


router = APIRouter(tags=["home-org"])


@router.get("/userhomeorg/{user_id}/check-homeorg")
async def check_user_home_org(user_id: str, store: DocumentStore = Depends(get_store)):
    return await check_home_org(store, user_id)


@router.get("/userhomeorg/{user_id}")
async def user_home_org(user_id: str, store: DocumentStore = Depends(get_store)):
    return await get_home_org(store, user_id)


@router.put("/setuserhomeorg/{user_id}")
async def set_user_home_org(
    user_id: str,
    payload: HomeOrgUpdate,
    service: HomeOrgService = Depends(get_home_org_service),
):
    return await service.update_home_org(
        user_id,
        org_id=payload.org_id,
        role=payload.role,
        created_at=payload.created_at,
        created_by=payload.created_by,
        org_role=payload.org_role,
    )

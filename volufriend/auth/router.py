from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config import Settings
from ..logging import structlog
from ..schemas.auth import LoginRequest, TokenResponse
from .security import create_access_token, get_settings, verify_credentials


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("", response_model=TokenResponse)
def login(req: LoginRequest, settings: Settings = Depends(get_settings)):
    if not verify_credentials(settings, req.username, req.password):
        structlog.get_logger().warning("login_failed", username=req.username)
        return JSONResponse(status_code=401, content={"auth": False, "message": "Invalid credentials"})
    token = create_access_token(settings, settings.auth_subject)
    return TokenResponse(token=token)

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from models.user import AuthUser, LoginRequest
from utils.auth import AuthProvider, get_auth_provider, get_current_user
from utils.errors import ValidationError

router = APIRouter()


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    provider: AuthProvider = Depends(get_auth_provider),
):
    if not body.name or not body.password:
        raise ValidationError("Name and password are required")
    user = provider.login(response, body.name, body.password)
    return {"user": user}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    provider: AuthProvider = Depends(get_auth_provider),
):
    provider.logout(request, response)
    return {"success": True}


@router.get("/me")
async def me(user: Optional[AuthUser] = Depends(get_current_user)):
    """The signed-in user, or null."""
    return {"user": user}

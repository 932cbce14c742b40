from typing import TypedDict
import logging

from fastapi import APIRouter, Request, Response, status

from wishfund.api import serializers
from wishfund.api.deps import UsersDep
from wishfund.core.audit import audit_signin, audit_signin_failed, audit_signup
from wishfund.core.config import settings
from wishfund.core.errors import Unauthorized
from wishfund.core.security import create_access_token
from wishfund.schemas.auth import SignInRequest, SignUpRequest, Token, UserPublic


router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger("wishfund.auth")


class CookieOptions(TypedDict, total=False):
    samesite: str
    secure: bool


def _cookie_options() -> CookieOptions:
    """Lax cookies over plain HTTP locally, cross-site secure cookies elsewhere."""
    environment = (settings.environment or "local").lower()
    if environment == "local":
        return {"samesite": "lax", "secure": False}
    return {"samesite": "none", "secure": True}


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        "access_token",
        token,
        httponly=True,
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
        **_cookie_options(),
    )


@router.post("/signup", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignUpRequest, users: UsersDep, request: Request) -> UserPublic:
    user = await users.register(payload)
    audit_signup(request, user.id, user.username)
    return serializers.user_public(user)


@router.post("/signin", response_model=Token)
async def signin(
    payload: SignInRequest,
    users: UsersDep,
    request: Request,
    response: Response,
) -> Token:
    logger.info(
        "Auth signin request id=%s username=%s ip=%s",
        request.headers.get("X-Request-Id"),
        payload.username,
        request.client.host if request.client else None,
    )
    try:
        user = await users.authenticate(payload.username, payload.password)
    except Unauthorized:
        audit_signin_failed(request, payload.username)
        raise

    token = create_access_token(str(user.id))
    _set_auth_cookie(response, token)
    audit_signin(request, user.id, user.username)
    return Token(access_token=token)

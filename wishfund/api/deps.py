from typing import Annotated
import logging

from fastapi import Cookie, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from wishfund.core.security import decode_access_token
from wishfund.db.session import get_db
from wishfund.models.models import User
from wishfund.services.catalog import WishCatalog
from wishfund.services.ledger import ContributionLedger
from wishfund.services.users import UserDirectory
from wishfund.services.wish_copy import WishCopier
from wishfund.services.wishlists import WishlistAggregator


DbSessionDep = Annotated[AsyncSession, Depends(get_db)]
logger = logging.getLogger("wishfund.auth")


def _extract_token(request: Request, access_token: str | None) -> str | None:
    if access_token:
        return access_token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.removeprefix("Bearer ").strip() or None
    return None


async def get_current_user(
    request: Request,
    db: DbSessionDep,
    access_token: str | None = Cookie(default=None, alias="access_token"),
) -> User:
    token = _extract_token(request, access_token)
    if not token:
        logger.info(
            "Auth token missing path=%s ip=%s",
            request.url.path,
            request.client.host if request.client else None,
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        logger.info("Auth token invalid path=%s", request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        logger.info("Auth token subject invalid path=%s", request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from None

    user = await db.get(User, user_id)
    if not user:
        logger.info("Auth user missing path=%s user_id=%s", request.url.path, user_id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_users(db: DbSessionDep) -> UserDirectory:
    return UserDirectory(db)


def get_ledger(db: DbSessionDep) -> ContributionLedger:
    return ContributionLedger(db)


def get_catalog(
    db: DbSessionDep,
    ledger: Annotated[ContributionLedger, Depends(get_ledger)],
) -> WishCatalog:
    return WishCatalog(db, ledger)


def get_copier(catalog: Annotated[WishCatalog, Depends(get_catalog)]) -> WishCopier:
    return WishCopier(catalog)


def get_wishlists(
    db: DbSessionDep,
    catalog: Annotated[WishCatalog, Depends(get_catalog)],
    ledger: Annotated[ContributionLedger, Depends(get_ledger)],
) -> WishlistAggregator:
    return WishlistAggregator(db, catalog, ledger)


UsersDep = Annotated[UserDirectory, Depends(get_users)]
LedgerDep = Annotated[ContributionLedger, Depends(get_ledger)]
CatalogDep = Annotated[WishCatalog, Depends(get_catalog)]
CopierDep = Annotated[WishCopier, Depends(get_copier)]
WishlistsDep = Annotated[WishlistAggregator, Depends(get_wishlists)]

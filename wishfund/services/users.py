"""User directory: accounts, credentials and public profile lookup."""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wishfund.core.errors import Conflict, NotFound, Unauthorized
from wishfund.core.security import get_password_hash, verify_password
from wishfund.models.models import User

logger = logging.getLogger("wishfund.users")

_PROFILE_FIELDS = ("email", "username", "avatar", "about")
SEARCH_LIMIT = 50


def _as_dict(data: BaseModel | Mapping[str, Any], *, exclude_unset: bool = False) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=exclude_unset)
    return dict(data)


def _search_pattern(raw: str | None) -> str | None:
    trimmed = (raw or "").strip()
    if not trimmed:
        return None
    escaped = trimmed.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class UserDirectory:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(self, data: BaseModel | Mapping[str, Any]) -> User:
        fields = _as_dict(data)
        email = str(fields["email"]).lower()
        username = fields["username"]
        await self._ensure_unique(email=email, username=username)

        user = User(
            email=email,
            username=username,
            hashed_password=get_password_hash(fields["password"]),
            avatar=fields.get("avatar"),
            about=fields.get("about"),
        )
        self.db.add(user)
        await self._commit_unique()
        logger.info("User registered user_id=%s username=%s", user.id, user.username)
        return user

    async def authenticate(self, username: str, password: str) -> User:
        result = await self.db.execute(select(User).where(User.username == username.strip()))
        user = result.scalar_one_or_none()
        if user is None or not verify_password(password, user.hashed_password):
            logger.info("Sign-in rejected username=%s", username)
            raise Unauthorized("Invalid username or password")
        return user

    async def get(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_by_username(self, username: str) -> User:
        result = await self.db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFound("User not found")
        return user

    async def update_profile(self, user_id: int, patch: BaseModel | Mapping[str, Any]) -> User:
        changes = {key: value for key, value in _as_dict(patch, exclude_unset=True).items() if value is not None}
        user = await self.get(user_id)

        if "email" in changes:
            changes["email"] = str(changes["email"]).lower()
        await self._ensure_unique(
            email=changes.get("email") if changes.get("email") != user.email else None,
            username=changes.get("username") if changes.get("username") != user.username else None,
        )

        for key in _PROFILE_FIELDS:
            if key in changes:
                setattr(user, key, changes[key])
        if "password" in changes:
            user.hashed_password = get_password_hash(changes["password"])

        await self._commit_unique()
        logger.info("Profile updated user_id=%s fields=%s", user.id, sorted(changes))
        return user

    async def search(self, query: str) -> list[User]:
        pattern = _search_pattern(query)
        if pattern is None:
            return []
        result = await self.db.execute(
            select(User)
            .where(
                or_(
                    User.username.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
            .order_by(User.username)
            .limit(SEARCH_LIMIT)
        )
        return list(result.scalars().all())

    async def _ensure_unique(self, *, email: str | None = None, username: str | None = None) -> None:
        clauses = []
        if email:
            clauses.append(User.email == email)
        if username:
            clauses.append(User.username == username)
        if not clauses:
            return
        result = await self.db.execute(select(User.id).where(or_(*clauses)).limit(1))
        if result.scalar_one_or_none() is not None:
            raise Conflict("Email or username already in use")

    async def _commit_unique(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise Conflict("Email or username already in use") from None

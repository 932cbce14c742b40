from fastapi import APIRouter

from wishfund.api import serializers
from wishfund.api.deps import CatalogDep, CurrentUserDep, UsersDep
from wishfund.schemas.auth import FindUsersRequest, UserPrivate, UserPublic, UserUpdate
from wishfund.schemas.wish import WishSummaryPublic


router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserPrivate)
async def read_me(current_user: CurrentUserDep) -> UserPrivate:
    return serializers.user_private(current_user)


@router.patch("/me", response_model=UserPrivate)
async def update_me(payload: UserUpdate, current_user: CurrentUserDep, users: UsersDep) -> UserPrivate:
    user = await users.update_profile(current_user.id, payload)
    return serializers.user_private(user)


@router.get("/me/wishes", response_model=list[WishSummaryPublic])
async def read_my_wishes(current_user: CurrentUserDep, catalog: CatalogDep) -> list[WishSummaryPublic]:
    return serializers.wish_summaries(await catalog.list_for_owner(current_user.id))


@router.post("/find", response_model=list[UserPublic])
async def find_users(payload: FindUsersRequest, current_user: CurrentUserDep, users: UsersDep) -> list[UserPublic]:
    return [serializers.user_public(user) for user in await users.search(payload.query)]


@router.get("/{username}", response_model=UserPublic)
async def read_user(username: str, current_user: CurrentUserDep, users: UsersDep) -> UserPublic:
    return serializers.user_public(await users.get_by_username(username))


@router.get("/{username}/wishes", response_model=list[WishSummaryPublic])
async def read_user_wishes(
    username: str,
    current_user: CurrentUserDep,
    users: UsersDep,
    catalog: CatalogDep,
) -> list[WishSummaryPublic]:
    user = await users.get_by_username(username)
    return serializers.wish_summaries(await catalog.list_for_owner(user.id))

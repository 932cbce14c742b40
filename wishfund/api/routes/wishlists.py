from fastapi import APIRouter, Query, Request, status

from wishfund.api import serializers
from wishfund.api.deps import CurrentUserDep, WishlistsDep
from wishfund.core.audit import AuditAction, audit_wishlist_action
from wishfund.schemas.wishlist import WishlistCreate, WishlistPublic, WishlistUpdate


router = APIRouter(prefix="/wishlists", tags=["wishlists"])


@router.get("", response_model=list[WishlistPublic])
async def list_wishlists(
    current_user: CurrentUserDep,
    wishlists: WishlistsDep,
    topic: str | None = Query(default=None, max_length=255),
) -> list[WishlistPublic]:
    return [serializers.wishlist_public(item) for item in await wishlists.render_many(topic)]


@router.post("", response_model=WishlistPublic, status_code=status.HTTP_201_CREATED)
async def create_wishlist(
    payload: WishlistCreate,
    current_user: CurrentUserDep,
    wishlists: WishlistsDep,
    request: Request,
) -> WishlistPublic:
    rendered = await wishlists.create(current_user.id, payload)
    audit_wishlist_action(
        AuditAction.WISHLIST_CREATE,
        request,
        current_user.id,
        rendered.wishlist.id,
        {"items": [item.wish.id for item in rendered.items]},
    )
    return serializers.wishlist_public(rendered)


@router.get("/{wishlist_id}", response_model=WishlistPublic)
async def read_wishlist(wishlist_id: int, current_user: CurrentUserDep, wishlists: WishlistsDep) -> WishlistPublic:
    return serializers.wishlist_public(await wishlists.render(wishlist_id))


@router.patch("/{wishlist_id}", response_model=WishlistPublic)
async def update_wishlist(
    wishlist_id: int,
    payload: WishlistUpdate,
    current_user: CurrentUserDep,
    wishlists: WishlistsDep,
    request: Request,
) -> WishlistPublic:
    rendered = await wishlists.update(wishlist_id, current_user.id, payload)
    audit_wishlist_action(
        AuditAction.WISHLIST_UPDATE,
        request,
        current_user.id,
        wishlist_id,
        {"fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    return serializers.wishlist_public(rendered)


@router.delete("/{wishlist_id}", response_model=WishlistPublic)
async def delete_wishlist(
    wishlist_id: int,
    current_user: CurrentUserDep,
    wishlists: WishlistsDep,
    request: Request,
) -> WishlistPublic:
    snapshot = await wishlists.remove(wishlist_id, current_user.id)
    audit_wishlist_action(AuditAction.WISHLIST_DELETE, request, current_user.id, wishlist_id)
    return serializers.wishlist_public(snapshot)

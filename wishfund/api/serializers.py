"""Mapping of service results to response schemas.

Money leaves the service layer as Decimal and is rendered as a JSON number.
"""

from collections.abc import Iterable

from wishfund.models.models import Offer, User, Wish
from wishfund.schemas.auth import UserPrivate, UserPublic
from wishfund.schemas.offer import OfferPublic
from wishfund.schemas.wish import WishOfferPublic, WishPublic, WishSummaryPublic
from wishfund.schemas.wishlist import WishlistPublic
from wishfund.services.catalog import WishProgress
from wishfund.services.visibility import filter_visible
from wishfund.services.wishlists import RenderedWishlist


def user_public(user: User | None) -> UserPublic | None:
    if user is None:
        return None
    return UserPublic.model_validate(user)


def user_private(user: User) -> UserPrivate:
    return UserPrivate.model_validate(user)


def _summary_fields(wish: Wish, raised) -> dict:
    return {
        "id": wish.id,
        "name": wish.name,
        "link": wish.link,
        "image": wish.image,
        "price": float(wish.price),
        "copied_count": wish.copied_count,
        "description": wish.description,
        "created_at": wish.created_at,
        "updated_at": wish.updated_at,
        "raised": float(raised),
        "owner": user_public(wish.owner),
    }


def wish_summary(progress: WishProgress) -> WishSummaryPublic:
    return WishSummaryPublic(**_summary_fields(progress.wish, progress.raised))


def wish_summaries(items: Iterable[WishProgress]) -> list[WishSummaryPublic]:
    return [wish_summary(item) for item in items]


def wish_offer(offer: Offer) -> WishOfferPublic:
    return WishOfferPublic(
        id=offer.id,
        amount=float(offer.amount),
        hidden=offer.hidden,
        status=offer.status,
        created_at=offer.created_at,
        updated_at=offer.updated_at,
        user=user_public(offer.user),
    )


def wish_detail(progress: WishProgress, viewer_id: int | None) -> WishPublic:
    """Full wish with the offers the viewer may see; the owner sees all of them."""
    wish = progress.wish
    offers = filter_visible(
        wish.offers,
        viewer_id,
        wish_owner_id=wish.owner_id,
        include_hidden=viewer_id == wish.owner_id,
    )
    return WishPublic(
        **_summary_fields(wish, progress.raised),
        offers=[wish_offer(offer) for offer in offers],
    )


def offer_public(offer: Offer, raised=None) -> OfferPublic:
    wish = None
    if offer.wish is not None:
        wish = WishSummaryPublic(**_summary_fields(offer.wish, raised if raised is not None else 0))
    return OfferPublic(
        id=offer.id,
        amount=float(offer.amount),
        hidden=offer.hidden,
        status=offer.status,
        created_at=offer.created_at,
        updated_at=offer.updated_at,
        user=user_public(offer.user),
        wish=wish,
    )


def offers_public(offers: Iterable[Offer], totals: dict) -> list[OfferPublic]:
    return [offer_public(offer, totals.get(offer.wish_id)) for offer in offers]


def wishlist_public(rendered: RenderedWishlist) -> WishlistPublic:
    wishlist = rendered.wishlist
    return WishlistPublic(
        id=wishlist.id,
        name=wishlist.name,
        image=wishlist.image,
        created_at=wishlist.created_at,
        updated_at=wishlist.updated_at,
        owner=user_public(wishlist.owner),
        items=wish_summaries(rendered.items),
    )

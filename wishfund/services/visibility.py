from collections.abc import Iterable

from wishfund.models.models import Offer


def is_visible(offer: Offer, viewer_id: int | None, wish_owner_id: int | None = None) -> bool:
    """Hidden offers are shown only to their contributor and the wish owner.

    ``wish_owner_id`` lets callers that already hold the wish skip the
    ``offer.wish`` relationship.
    """
    if not offer.hidden:
        return True
    if viewer_id is None:
        return False
    if wish_owner_id is None:
        wish_owner_id = offer.wish.owner_id
    return viewer_id == offer.user_id or viewer_id == wish_owner_id


def filter_visible(
    offers: Iterable[Offer],
    viewer_id: int | None,
    *,
    wish_owner_id: int | None = None,
    include_hidden: bool = False,
) -> list[Offer]:
    if include_hidden:
        return list(offers)
    return [offer for offer in offers if is_visible(offer, viewer_id, wish_owner_id)]

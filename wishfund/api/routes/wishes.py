import logging

from fastapi import APIRouter, Request, status

from wishfund.api import serializers
from wishfund.api.deps import CatalogDep, CopierDep, CurrentUserDep, LedgerDep
from wishfund.core.audit import AuditAction, audit_offer_action, audit_wish_action
from wishfund.core.config import settings
from wishfund.schemas.wish import WishCreate, WishOfferCreate, WishPublic, WishSummaryPublic, WishUpdate


router = APIRouter(prefix="/wishes", tags=["wishes"])
logger = logging.getLogger("wishfund.wishes")


@router.get("/last", response_model=list[WishSummaryPublic])
async def last_wishes(catalog: CatalogDep) -> list[WishSummaryPublic]:
    return serializers.wish_summaries(await catalog.recent_summaries(settings.recent_wishes_limit))


@router.get("/top", response_model=list[WishSummaryPublic])
async def top_wishes(catalog: CatalogDep) -> list[WishSummaryPublic]:
    return serializers.wish_summaries(await catalog.top_by_copies(settings.top_wishes_limit))


@router.post("", response_model=WishPublic, status_code=status.HTTP_201_CREATED)
async def create_wish(
    payload: WishCreate,
    current_user: CurrentUserDep,
    catalog: CatalogDep,
    request: Request,
) -> WishPublic:
    wish = await catalog.create(current_user.id, payload)
    audit_wish_action(AuditAction.WISH_CREATE, request, current_user.id, wish.id, {"price": wish.price})
    return serializers.wish_detail(await catalog.get_detail(wish.id), current_user.id)


@router.get("/{wish_id}", response_model=WishPublic)
async def read_wish(wish_id: int, current_user: CurrentUserDep, catalog: CatalogDep) -> WishPublic:
    return serializers.wish_detail(await catalog.get_detail(wish_id), current_user.id)


@router.patch("/{wish_id}", response_model=WishPublic)
async def update_wish(
    wish_id: int,
    payload: WishUpdate,
    current_user: CurrentUserDep,
    catalog: CatalogDep,
    request: Request,
) -> WishPublic:
    await catalog.update(wish_id, current_user.id, payload)
    audit_wish_action(
        AuditAction.WISH_UPDATE,
        request,
        current_user.id,
        wish_id,
        {"fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    return serializers.wish_detail(await catalog.get_detail(wish_id), current_user.id)


@router.delete("/{wish_id}", response_model=WishPublic)
async def delete_wish(
    wish_id: int,
    current_user: CurrentUserDep,
    catalog: CatalogDep,
    request: Request,
) -> WishPublic:
    snapshot = await catalog.remove(wish_id, current_user.id)
    audit_wish_action(AuditAction.WISH_DELETE, request, current_user.id, wish_id)
    return serializers.wish_detail(snapshot, current_user.id)


@router.post("/{wish_id}/copy", response_model=WishPublic, status_code=status.HTTP_201_CREATED)
async def copy_wish(
    wish_id: int,
    current_user: CurrentUserDep,
    copier: CopierDep,
    request: Request,
) -> WishPublic:
    copied = await copier.copy(wish_id, current_user.id)
    audit_wish_action(AuditAction.WISH_COPY, request, current_user.id, copied.wish.id, {"source_id": wish_id})
    return serializers.wish_detail(copied, current_user.id)


@router.post("/{wish_id}/offers", response_model=WishPublic, status_code=status.HTTP_201_CREATED)
async def contribute_to_wish(
    wish_id: int,
    payload: WishOfferCreate,
    current_user: CurrentUserDep,
    ledger: LedgerDep,
    catalog: CatalogDep,
    request: Request,
) -> WishPublic:
    offer = await ledger.create_contribution(current_user.id, wish_id, payload.amount, payload.hidden)
    audit_offer_action(AuditAction.OFFER_CREATE, request, current_user.id, offer.id, wish_id, offer.amount)
    return serializers.wish_detail(await catalog.get_detail(wish_id), current_user.id)

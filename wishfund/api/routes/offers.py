from fastapi import APIRouter, Query, Request, status

from wishfund.api import serializers
from wishfund.api.deps import CurrentUserDep, LedgerDep
from wishfund.core.audit import AuditAction, audit_offer_action
from wishfund.core.errors import Forbidden
from wishfund.models.models import Offer
from wishfund.schemas.offer import OfferCreate, OfferPublic, OfferUpdate
from wishfund.services.ledger import ContributionLedger


router = APIRouter(prefix="/offers", tags=["offers"])


async def _render(ledger: ContributionLedger, offer: Offer) -> OfferPublic:
    return serializers.offer_public(offer, await ledger.raised_amount(offer.wish_id))


@router.get("", response_model=list[OfferPublic])
async def list_offers(
    current_user: CurrentUserDep,
    ledger: LedgerDep,
    wish_id: int | None = Query(default=None, gt=0),
) -> list[OfferPublic]:
    offers = await ledger.list_visible(current_user.id, wish_id)
    totals = await ledger.raised_amounts(offer.wish_id for offer in offers)
    return serializers.offers_public(offers, totals)


@router.post("", response_model=OfferPublic, status_code=status.HTTP_201_CREATED)
async def create_offer(
    payload: OfferCreate,
    current_user: CurrentUserDep,
    ledger: LedgerDep,
    request: Request,
) -> OfferPublic:
    offer = await ledger.create_contribution(current_user.id, payload.wish_id, payload.amount, payload.hidden)
    audit_offer_action(AuditAction.OFFER_CREATE, request, current_user.id, offer.id, offer.wish_id, offer.amount)
    return await _render(ledger, offer)


@router.get("/{offer_id}", response_model=OfferPublic)
async def read_offer(offer_id: int, current_user: CurrentUserDep, ledger: LedgerDep) -> OfferPublic:
    offer = await ledger.get_one_visible(offer_id, current_user.id)
    return await _render(ledger, offer)


@router.patch("/{offer_id}", response_model=OfferPublic)
async def update_offer(
    offer_id: int,
    payload: OfferUpdate,
    current_user: CurrentUserDep,
    ledger: LedgerDep,
    request: Request,
) -> OfferPublic:
    offer = await ledger.revise_contribution(offer_id, current_user.id, payload)
    audit_offer_action(AuditAction.OFFER_REVISE, request, current_user.id, offer.id, offer.wish_id, offer.amount)
    return await _render(ledger, offer)


@router.delete("/{offer_id}")
async def delete_offer(
    offer_id: int,
    current_user: CurrentUserDep,
    ledger: LedgerDep,
    request: Request,
) -> None:
    try:
        await ledger.delete_owned(offer_id, current_user.id)
    except Forbidden:
        audit_offer_action(
            AuditAction.OFFER_DELETE_DENIED,
            request,
            current_user.id,
            offer_id,
            success=False,
        )
        raise

"""Contribution ledger: offer rows and the raised amount derived from them.

Invariant: for every wish, the sum of offers in an eligible status never
exceeds the wish price. Every admission path locks the wish row, decides
with the funding policy against a freshly summed total, and re-sums inside
a savepoint before committing.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from typing import Any, NoReturn

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wishfund.core.errors import ExceedsRemaining, Forbidden, InvalidArgument, NotFound
from wishfund.models.models import ELIGIBLE_OFFER_STATUSES, Offer, OfferStatus, Wish
from wishfund.services import funding
from wishfund.services.visibility import filter_visible, is_visible

logger = logging.getLogger("wishfund.ledger")

_REASSIGN_FIELDS = ("user_id", "wish_id")


def as_money(value: Any) -> Decimal:
    if value is None:
        return funding.ZERO.quantize(funding.CENTS)
    return Decimal(str(value)).quantize(funding.CENTS)


def _hydrated_offers() -> Select:
    return select(Offer).options(
        selectinload(Offer.user),
        selectinload(Offer.wish).selectinload(Wish.owner),
    )


def _patch_dict(patch: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(patch, BaseModel):
        return patch.model_dump(exclude_unset=True)
    return dict(patch)


def _status_value(status: OfferStatus | str) -> str:
    try:
        return OfferStatus(status).value
    except ValueError:
        raise InvalidArgument(f"Unknown offer status: {status}") from None


def build_offer(wish: Wish, contributor_id: int, amount: Decimal, hidden: bool) -> Offer:
    return Offer(
        wish_id=wish.id,
        user_id=contributor_id,
        amount=amount,
        hidden=bool(hidden),
        status=OfferStatus.ACTIVE.value,
    )


class ContributionLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def raised_amount(self, wish_id: int, exclude_offer_id: int | None = None) -> Decimal:
        stmt = select(func.coalesce(func.sum(Offer.amount), 0)).where(
            Offer.wish_id == wish_id,
            Offer.status.in_(ELIGIBLE_OFFER_STATUSES),
        )
        if exclude_offer_id is not None:
            stmt = stmt.where(Offer.id != exclude_offer_id)
        result = await self.db.execute(stmt)
        return as_money(result.scalar_one())

    async def raised_amounts(self, wish_ids: Iterable[int]) -> dict[int, Decimal]:
        """Raised amount for many wishes in one grouped query; wishes without offers map to 0."""
        ids = sorted(set(wish_ids))
        totals = {wish_id: as_money(None) for wish_id in ids}
        if not ids:
            return totals
        result = await self.db.execute(
            select(Offer.wish_id, func.sum(Offer.amount))
            .where(Offer.wish_id.in_(ids), Offer.status.in_(ELIGIBLE_OFFER_STATUSES))
            .group_by(Offer.wish_id)
        )
        for wish_id, total in result.all():
            totals[wish_id] = as_money(total)
        return totals

    async def count_entries(self, wish_id: int) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Offer).where(Offer.wish_id == wish_id)
        )
        return int(result.scalar_one())

    async def get(self, offer_id: int) -> Offer:
        result = await self.db.execute(
            _hydrated_offers()
            .where(Offer.id == offer_id)
            .execution_options(populate_existing=True)
        )
        offer = result.scalar_one_or_none()
        if offer is None:
            raise NotFound("Offer not found")
        return offer

    async def create_contribution(
        self,
        contributor_id: int,
        wish_id: int,
        amount: Any,
        hidden: bool = False,
    ) -> Offer:
        value = funding.parse_amount(amount)
        wish = await self._lock_wish(wish_id)
        funding.ensure_not_self_funding(wish.owner_id, contributor_id)

        current_raised = await self.raised_amount(wish.id)
        remaining_after = funding.admit(wish.price, current_raised, value)

        offer = build_offer(wish, contributor_id, value, hidden)
        await self._commit_within_price(wish, lambda: self.db.add(offer))
        logger.info(
            "Contribution admitted offer_id=%s wish_id=%s user_id=%s amount=%s remaining=%s",
            offer.id,
            wish.id,
            contributor_id,
            value,
            remaining_after,
        )
        return await self.get(offer.id)

    async def revise_contribution(
        self,
        offer_id: int,
        contributor_id: int,
        patch: BaseModel | Mapping[str, Any],
    ) -> Offer:
        changes = _patch_dict(patch)
        new_amount = funding.parse_amount(changes["amount"]) if changes.get("amount") is not None else None
        new_status = _status_value(changes["status"]) if changes.get("status") is not None else None

        offer = await self.get(offer_id)
        if offer.user_id != contributor_id:
            raise Forbidden("Not your offer")
        if any(changes.get(field) is not None for field in _REASSIGN_FIELDS):
            raise Forbidden("Cannot reassign offer owner or wish")

        next_amount = new_amount if new_amount is not None else offer.amount
        next_status = new_status or offer.status
        next_hidden = changes.get("hidden")

        reenters_ledger = not offer.counts_toward_raised
        needs_funding_check = next_status in ELIGIBLE_OFFER_STATUSES and (
            new_amount is not None or reenters_ledger
        )

        def apply() -> None:
            offer.amount = next_amount
            offer.status = next_status
            if next_hidden is not None:
                offer.hidden = bool(next_hidden)

        if needs_funding_check:
            wish = await self._lock_wish(offer.wish_id)
            # Ownership cannot change after creation; asserted again on the funding path.
            funding.ensure_not_self_funding(wish.owner_id, contributor_id)
            other_raised = await self.raised_amount(wish.id, exclude_offer_id=offer.id)
            funding.admit(wish.price, other_raised, next_amount)
            await self._commit_within_price(wish, apply)
        else:
            apply()
            await self.db.commit()

        logger.info(
            "Contribution revised offer_id=%s user_id=%s amount=%s status=%s hidden=%s",
            offer.id,
            contributor_id,
            next_amount,
            next_status,
            offer.hidden,
        )
        return await self.get(offer.id)

    async def list_visible(self, viewer_id: int, wish_id: int | None = None) -> list[Offer]:
        stmt = _hydrated_offers().order_by(Offer.created_at, Offer.id)
        if wish_id is not None:
            stmt = stmt.where(Offer.wish_id == wish_id)
        result = await self.db.execute(stmt)
        return filter_visible(result.scalars().all(), viewer_id)

    async def get_one_visible(self, offer_id: int, viewer_id: int) -> Offer:
        offer = await self.get(offer_id)
        if not is_visible(offer, viewer_id):
            raise Forbidden("Offer is hidden")
        return offer

    async def delete_owned(self, offer_id: int, contributor_id: int) -> NoReturn:
        """Contributions are retracted through their status, never removed."""
        offer = await self.get(offer_id)
        if offer.user_id != contributor_id:
            raise Forbidden("Not your offer")
        raise Forbidden("You cannot delete this offer")

    async def _lock_wish(self, wish_id: int) -> Wish:
        result = await self.db.execute(
            select(Wish)
            .where(Wish.id == wish_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        wish = result.scalar_one_or_none()
        if wish is None:
            raise NotFound("Wish not found")
        return wish

    async def _commit_within_price(self, wish: Wish, apply: Callable[[], None]) -> None:
        async with self.db.begin_nested():
            apply()
            await self.db.flush()
            total = await self.raised_amount(wish.id)
            if total > wish.price:
                logger.warning(
                    "Ledger total over price, rolling back wish_id=%s total=%s price=%s",
                    wish.id,
                    total,
                    wish.price,
                )
                raise ExceedsRemaining("Contribution exceeds remaining amount")
        await self.db.commit()

"""Wish catalog: owner-managed wish records annotated with their raised amount."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pydantic import BaseModel
from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wishfund.core.errors import Forbidden, InvalidArgument, NotFound
from wishfund.models.models import Offer, Wish, wishlist_items
from wishfund.services import funding
from wishfund.services.ledger import ContributionLedger

logger = logging.getLogger("wishfund.catalog")

_EDITABLE_FIELDS = ("name", "link", "image", "price", "description")


@dataclass
class WishProgress:
    wish: Wish
    raised: Decimal

    @property
    def remaining(self) -> Decimal:
        return max(self.wish.price - self.raised, funding.ZERO)


def _as_dict(data: BaseModel | Mapping[str, Any], *, exclude_unset: bool = False) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=exclude_unset)
    return dict(data)


def _with_owner() -> Select:
    return select(Wish).options(selectinload(Wish.owner))


def _with_offers() -> Select:
    return select(Wish).options(
        selectinload(Wish.owner),
        selectinload(Wish.offers).selectinload(Offer.user),
    )


def ensure_media(link: str | None, image: str | None) -> None:
    """A wish is only valid with both a product link and an image."""
    if not link:
        raise InvalidArgument("Link is required")
    if not image:
        raise InvalidArgument("Image is required")


def build_wish(
    owner_id: int,
    *,
    name: str,
    price: Any,
    link: str | None,
    image: str | None,
    description: str | None = None,
) -> Wish:
    if not name or not name.strip():
        raise InvalidArgument("Name is required")
    ensure_media(link, image)
    return Wish(
        owner_id=owner_id,
        name=name.strip(),
        link=link,
        image=image,
        price=funding.parse_amount(price, field="price"),
        description=description,
        copied_count=0,
    )


class WishCatalog:
    def __init__(self, db: AsyncSession, ledger: ContributionLedger):
        self.db = db
        self.ledger = ledger

    async def get(self, wish_id: int) -> Wish:
        result = await self.db.execute(
            _with_owner().where(Wish.id == wish_id).execution_options(populate_existing=True)
        )
        wish = result.scalar_one_or_none()
        if wish is None:
            raise NotFound("Wish not found")
        return wish

    async def get_progress(self, wish_id: int) -> WishProgress:
        wish = await self.get(wish_id)
        return WishProgress(wish, await self.ledger.raised_amount(wish.id))

    async def get_detail(self, wish_id: int) -> WishProgress:
        """Wish with owner and every offer (with contributor) loaded, plus raised."""
        result = await self.db.execute(
            _with_offers()
            .where(Wish.id == wish_id)
            .execution_options(populate_existing=True)
        )
        wish = result.scalar_one_or_none()
        if wish is None:
            raise NotFound("Wish not found")
        return WishProgress(wish, await self.ledger.raised_amount(wish.id))

    async def resolve_many(self, wish_ids: Iterable[int]) -> list[Wish]:
        ids = list(dict.fromkeys(wish_ids))
        if not ids:
            return []
        result = await self.db.execute(_with_owner().where(Wish.id.in_(ids)))
        found = {wish.id: wish for wish in result.scalars().all()}
        missing = [wish_id for wish_id in ids if wish_id not in found]
        if missing:
            raise NotFound("One or more wishes not found")
        return [found[wish_id] for wish_id in ids]

    async def annotate(self, wishes: Iterable[Wish]) -> list[WishProgress]:
        wishes = list(wishes)
        totals = await self.ledger.raised_amounts(wish.id for wish in wishes)
        return [WishProgress(wish, totals[wish.id]) for wish in wishes]

    async def create(self, owner_id: int, data: BaseModel | Mapping[str, Any]) -> Wish:
        fields = _as_dict(data)
        wish = build_wish(
            owner_id,
            name=fields.get("name") or "",
            price=fields.get("price"),
            link=fields.get("link"),
            image=fields.get("image"),
            description=fields.get("description"),
        )
        self.db.add(wish)
        await self.db.commit()
        logger.info("Wish created wish_id=%s owner_id=%s price=%s", wish.id, owner_id, wish.price)
        return await self.get(wish.id)

    async def update(self, wish_id: int, owner_id: int, patch: BaseModel | Mapping[str, Any]) -> Wish:
        changes = {
            key: value
            for key, value in _as_dict(patch, exclude_unset=True).items()
            if key in _EDITABLE_FIELDS and value is not None
        }
        new_price = funding.parse_amount(changes["price"], field="price") if "price" in changes else None

        wish = await self._lock(wish_id)
        if wish.owner_id != owner_id:
            raise Forbidden("You cannot edit this wish")

        if new_price is not None and new_price != wish.price:
            if await self.ledger.count_entries(wish.id) > 0:
                raise Forbidden("Cannot change price after contributions exist")

        next_link = changes.get("link", wish.link)
        next_image = changes.get("image", wish.image)
        ensure_media(next_link, next_image)

        if "name" in changes:
            name = str(changes["name"]).strip()
            if not name:
                raise InvalidArgument("Name is required")
            wish.name = name
        wish.link = next_link
        wish.image = next_image
        if "description" in changes:
            wish.description = changes["description"]
        if new_price is not None:
            wish.price = new_price

        await self.db.commit()
        logger.info("Wish updated wish_id=%s owner_id=%s fields=%s", wish.id, owner_id, sorted(changes))
        return await self.get(wish.id)

    async def remove(self, wish_id: int, owner_id: int) -> WishProgress:
        """Delete an unfunded wish and drop it from every wishlist; returns the last state."""
        snapshot = await self.get_detail(wish_id)
        wish = snapshot.wish
        if wish.owner_id != owner_id:
            raise Forbidden("You cannot delete this wish")
        if await self.ledger.count_entries(wish.id) > 0:
            raise Forbidden("Cannot delete wish with existing offers")

        await self.db.execute(delete(wishlist_items).where(wishlist_items.c.wish_id == wish.id))
        await self.db.delete(wish)
        await self.db.commit()
        logger.info("Wish removed wish_id=%s owner_id=%s", wish_id, owner_id)
        return snapshot

    async def recent_summaries(self, limit: int) -> list[WishProgress]:
        result = await self.db.execute(
            _with_owner().order_by(Wish.created_at.desc(), Wish.id.desc()).limit(limit)
        )
        return await self.annotate(result.scalars().all())

    async def top_by_copies(self, limit: int) -> list[WishProgress]:
        result = await self.db.execute(
            _with_owner().order_by(Wish.copied_count.desc(), Wish.id.asc()).limit(limit)
        )
        return await self.annotate(result.scalars().all())

    async def list_for_owner(self, owner_id: int) -> list[WishProgress]:
        result = await self.db.execute(
            _with_owner().where(Wish.owner_id == owner_id).order_by(Wish.created_at.desc(), Wish.id.desc())
        )
        return await self.annotate(result.scalars().all())

    async def _lock(self, wish_id: int) -> Wish:
        result = await self.db.execute(
            _with_owner()
            .where(Wish.id == wish_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        wish = result.scalar_one_or_none()
        if wish is None:
            raise NotFound("Wish not found")
        return wish

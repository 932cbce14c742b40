import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wishfund.core.errors import Forbidden, InvalidArgument, NotFound
from wishfund.models.models import Wish, Wishlist
from wishfund.services.catalog import WishCatalog, WishProgress
from wishfund.services.ledger import ContributionLedger

logger = logging.getLogger("wishfund.wishlists")


@dataclass
class RenderedWishlist:
    wishlist: Wishlist
    items: list[WishProgress] = field(default_factory=list)


def _as_dict(data: BaseModel | Mapping[str, Any], *, exclude_unset: bool = False) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=exclude_unset)
    return dict(data)


def _hydrated_wishlists() -> Select:
    return select(Wishlist).options(
        selectinload(Wishlist.owner),
        selectinload(Wishlist.items).selectinload(Wish.owner),
    )


def build_wishlist(owner_id: int, *, name: str, image: str | None, items: Iterable[Wish]) -> Wishlist:
    if not name or not name.strip():
        raise InvalidArgument("Name is required")
    return Wishlist(owner_id=owner_id, name=name.strip(), image=image, items=list(items))


class WishlistAggregator:
    def __init__(self, db: AsyncSession, catalog: WishCatalog, ledger: ContributionLedger):
        self.db = db
        self.catalog = catalog
        self.ledger = ledger

    async def get(self, wishlist_id: int) -> Wishlist:
        result = await self.db.execute(
            _hydrated_wishlists()
            .where(Wishlist.id == wishlist_id)
            .execution_options(populate_existing=True)
        )
        wishlist = result.scalar_one_or_none()
        if wishlist is None:
            raise NotFound("Wishlist not found")
        return wishlist

    async def create(self, owner_id: int, data: BaseModel | Mapping[str, Any]) -> RenderedWishlist:
        fields = _as_dict(data)
        items = await self.catalog.resolve_many(fields.get("items_id") or [])
        wishlist = build_wishlist(
            owner_id,
            name=fields.get("name") or "",
            image=fields.get("image"),
            items=items,
        )
        self.db.add(wishlist)
        await self.db.commit()
        logger.info(
            "Wishlist created wishlist_id=%s owner_id=%s items=%s",
            wishlist.id,
            owner_id,
            [item.id for item in items],
        )
        return await self.render(wishlist.id)

    async def update(
        self,
        wishlist_id: int,
        owner_id: int,
        patch: BaseModel | Mapping[str, Any],
    ) -> RenderedWishlist:
        changes = _as_dict(patch, exclude_unset=True)
        wishlist = await self.get(wishlist_id)
        if wishlist.owner_id != owner_id:
            raise Forbidden("You cannot modify this wishlist")

        if changes.get("name") is not None:
            name = str(changes["name"]).strip()
            if not name:
                raise InvalidArgument("Name is required")
            wishlist.name = name
        if "image" in changes:
            wishlist.image = changes["image"]
        if changes.get("items_id") is not None:
            item_ids = changes["items_id"]
            wishlist.items = await self.catalog.resolve_many(item_ids) if item_ids else []

        await self.db.commit()
        logger.info("Wishlist updated wishlist_id=%s owner_id=%s fields=%s", wishlist.id, owner_id, sorted(changes))
        return await self.render(wishlist.id)

    async def remove(self, wishlist_id: int, owner_id: int) -> RenderedWishlist:
        wishlist = await self.get(wishlist_id)
        if wishlist.owner_id != owner_id:
            raise Forbidden("You cannot modify this wishlist")
        snapshot = await self._render(wishlist)
        await self.db.delete(wishlist)
        await self.db.commit()
        logger.info("Wishlist removed wishlist_id=%s owner_id=%s", wishlist_id, owner_id)
        return snapshot

    async def render(self, wishlist_id: int) -> RenderedWishlist:
        return await self._render(await self.get(wishlist_id))

    async def render_many(self, name: str | None = None) -> list[RenderedWishlist]:
        stmt = _hydrated_wishlists().order_by(Wishlist.id).execution_options(populate_existing=True)
        if name:
            stmt = stmt.where(Wishlist.name == name)
        result = await self.db.execute(stmt)
        wishlists = result.scalars().all()

        totals = await self.ledger.raised_amounts(
            item.id for wishlist in wishlists for item in wishlist.items
        )
        return [
            RenderedWishlist(
                wishlist,
                [WishProgress(item, totals[item.id]) for item in wishlist.items],
            )
            for wishlist in wishlists
        ]

    async def _render(self, wishlist: Wishlist) -> RenderedWishlist:
        return RenderedWishlist(wishlist, await self.catalog.annotate(wishlist.items))

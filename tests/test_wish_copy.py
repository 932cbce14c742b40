from decimal import Decimal

import pytest
from sqlalchemy import func, select

from wishfund.core.errors import InvalidArgument, NotFound
from wishfund.models.models import Offer, Wish
from wishfund.services.catalog import WishCatalog
from wishfund.services.ledger import ContributionLedger
from wishfund.services.wish_copy import WishCopier


pytestmark = pytest.mark.anyio


def _copier(db) -> WishCopier:
    return WishCopier(WishCatalog(db, ContributionLedger(db)))


async def test_copy_duplicates_wish_without_offers(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    source = await make_wish(owner, price="80.00", name="Tent")
    copier = _copier(db)
    await copier.catalog.ledger.create_contribution(friend.id, source.id, "20")

    copied = await copier.copy(source.id, friend.id)

    assert copied.wish.id != source.id
    assert copied.wish.owner_id == friend.id
    assert copied.wish.name == "Tent"
    assert copied.wish.price == Decimal("80.00")
    assert copied.wish.link == source.link
    assert copied.wish.copied_count == 0
    assert copied.wish.offers == []
    assert copied.raised == Decimal("0.00")

    refreshed = await copier.catalog.get(source.id)
    assert refreshed.copied_count == 1
    offers = (await db.execute(select(func.count()).select_from(Offer).where(Offer.wish_id == source.id))).scalar_one()
    assert offers == 1


async def test_each_copy_increments_source(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    source = await make_wish(owner)
    copier = _copier(db)

    await copier.copy(source.id, friend.id)
    await copier.copy(source.id, owner.id)

    assert (await copier.catalog.get(source.id)).copied_count == 2
    total = (await db.execute(select(func.count()).select_from(Wish))).scalar_one()
    assert total == 3


async def test_copy_missing_wish(db, make_user):
    friend = await make_user()
    with pytest.raises(NotFound):
        await _copier(db).copy(9999, friend.id)


async def test_copy_requires_media_on_source(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    source = await make_wish(owner)
    await db.execute(Wish.__table__.update().where(Wish.id == source.id).values(image=None))
    await db.commit()

    with pytest.raises(InvalidArgument):
        await _copier(db).copy(source.id, friend.id)
    assert (await _copier(db).catalog.get(source.id)).copied_count == 0


async def test_failed_copy_rolls_back_counter(db, make_user, make_wish, monkeypatch):
    owner = await make_user()
    friend = await make_user()
    source = await make_wish(owner)
    copier = _copier(db)

    async def failing_commit():
        raise RuntimeError("disk full")

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(RuntimeError):
        await copier.copy(source.id, friend.id)
    monkeypatch.undo()

    assert (await copier.catalog.get(source.id)).copied_count == 0
    total = (await db.execute(select(func.count()).select_from(Wish))).scalar_one()
    assert total == 1

"""
Tests for the contribution ledger: admission, raised amounts, revision and retraction.
"""
import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from wishfund.core.errors import AlreadyFunded, ExceedsRemaining, Forbidden, InvalidArgument, NotFound
from wishfund.models.models import Offer
from wishfund.services import funding
from wishfund.services.ledger import ContributionLedger


pytestmark = pytest.mark.anyio


async def test_contribution_updates_raised(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    wish = await make_wish(owner)

    ledger = ContributionLedger(db)
    offer = await ledger.create_contribution(friend.id, wish.id, "30")

    assert offer.amount == Decimal("30.00")
    assert offer.status == "active"
    assert offer.user.id == friend.id
    assert offer.wish.owner.id == owner.id
    assert await ledger.raised_amount(wish.id) == Decimal("30.00")


async def test_owner_cannot_fund_own_wish(db, make_user, make_wish):
    owner = await make_user()
    wish = await make_wish(owner)

    with pytest.raises(Forbidden):
        await ContributionLedger(db).create_contribution(owner.id, wish.id, "10")
    assert await ContributionLedger(db).count_entries(wish.id) == 0


async def test_unknown_wish_is_not_found(db, make_user):
    friend = await make_user()
    with pytest.raises(NotFound):
        await ContributionLedger(db).create_contribution(friend.id, 9999, "10")


async def test_invalid_amount_rejected_before_lookup(db, make_user):
    friend = await make_user()
    with pytest.raises(InvalidArgument):
        await ContributionLedger(db).create_contribution(friend.id, 9999, "-1")


async def test_overshoot_and_fully_funded(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    wish = await make_wish(owner, price="100.00")
    ledger = ContributionLedger(db)

    await ledger.create_contribution(friend.id, wish.id, "70")
    with pytest.raises(ExceedsRemaining):
        await ledger.create_contribution(friend.id, wish.id, "30.01")

    await ledger.create_contribution(friend.id, wish.id, "30")
    with pytest.raises(AlreadyFunded):
        await ledger.create_contribution(friend.id, wish.id, "0.01")

    assert await ledger.raised_amount(wish.id) == Decimal("100.00")


async def test_cancelled_offers_do_not_count(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    wish = await make_wish(owner, price="100.00")
    ledger = ContributionLedger(db)

    await ledger.create_contribution(friend.id, wish.id, "30")
    await ledger.create_contribution(friend.id, wish.id, "40")
    db.add(Offer(wish_id=wish.id, user_id=friend.id, amount=Decimal("1000"), hidden=False, status="cancelled"))
    await db.commit()

    assert await ledger.raised_amount(wish.id) == Decimal("70.00")
    assert await ledger.count_entries(wish.id) == 3
    assert await ledger.raised_amounts([wish.id, 12345]) == {wish.id: Decimal("70.00"), 12345: Decimal("0.00")}


async def test_commit_time_overshoot_is_rolled_back(db, make_user, make_wish, monkeypatch):
    owner = await make_user()
    friend = await make_user()
    wish = await make_wish(owner, price="100.00")
    ledger = ContributionLedger(db)
    offer = await ledger.create_contribution(friend.id, wish.id, "70")

    # Let the up-front check pass so only the re-sum before commit can catch the overshoot.
    monkeypatch.setattr(funding, "admit", lambda price, current_raised, proposed: Decimal("0"))

    with pytest.raises(ExceedsRemaining):
        await ledger.create_contribution(friend.id, wish.id, "50")
    assert await ledger.raised_amount(wish.id) == Decimal("70.00")
    assert await ledger.count_entries(wish.id) == 1
    await db.rollback()

    with pytest.raises(ExceedsRemaining):
        await ledger.revise_contribution(offer.id, friend.id, {"amount": "100.01"})
    assert (await ledger.get(offer.id)).amount == Decimal("70.00")
    assert await ledger.raised_amount(wish.id) == Decimal("70.00")
    await db.rollback()


async def test_revise_excludes_own_amount(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    wish = await make_wish(owner, price="100.00")
    ledger = ContributionLedger(db)
    offer = await ledger.create_contribution(friend.id, wish.id, "60")

    revised = await ledger.revise_contribution(offer.id, friend.id, {"amount": "100"})
    assert revised.amount == Decimal("100.00")

    with pytest.raises((ExceedsRemaining, AlreadyFunded)):
        await ledger.revise_contribution(offer.id, friend.id, {"amount": "100.01"})
    assert await ledger.raised_amount(wish.id) == Decimal("100.00")


async def test_revise_hidden_flag_only(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    wish = await make_wish(owner)
    ledger = ContributionLedger(db)
    offer = await ledger.create_contribution(friend.id, wish.id, "10")

    revised = await ledger.revise_contribution(offer.id, friend.id, {"hidden": True})
    assert revised.hidden is True
    assert revised.amount == Decimal("10.00")


async def test_reactivation_is_funding_checked(db, make_user, make_wish):
    owner = await make_user()
    first = await make_user()
    second = await make_user()
    wish = await make_wish(owner, price="100.00")
    ledger = ContributionLedger(db)

    offer = await ledger.create_contribution(first.id, wish.id, "60")
    await ledger.revise_contribution(offer.id, first.id, {"status": "cancelled"})
    assert await ledger.raised_amount(wish.id) == Decimal("0.00")

    await ledger.create_contribution(second.id, wish.id, "50")
    with pytest.raises(ExceedsRemaining):
        await ledger.revise_contribution(offer.id, first.id, {"status": "active"})
    assert await ledger.raised_amount(wish.id) == Decimal("50.00")


async def test_revise_rules(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    stranger = await make_user()
    wish = await make_wish(owner)
    ledger = ContributionLedger(db)
    offer = await ledger.create_contribution(friend.id, wish.id, "10")

    with pytest.raises(Forbidden):
        await ledger.revise_contribution(offer.id, stranger.id, {"amount": "5"})
    with pytest.raises(Forbidden):
        await ledger.revise_contribution(offer.id, friend.id, {"user_id": stranger.id})
    revised = await ledger.revise_contribution(offer.id, friend.id, {"hidden": True, "user_id": None, "wish_id": None})
    assert revised.hidden is True
    assert revised.user_id == friend.id
    with pytest.raises(InvalidArgument):
        await ledger.revise_contribution(offer.id, friend.id, {"status": "refunded"})
    with pytest.raises(NotFound):
        await ledger.revise_contribution(424242, friend.id, {"amount": "5"})


async def test_offers_are_never_deleted(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    wish = await make_wish(owner)
    ledger = ContributionLedger(db)
    offer = await ledger.create_contribution(friend.id, wish.id, "10")

    with pytest.raises(Forbidden) as exc:
        await ledger.delete_owned(offer.id, friend.id)
    assert exc.value.message == "You cannot delete this offer"
    with pytest.raises(Forbidden) as exc:
        await ledger.delete_owned(offer.id, owner.id)
    assert exc.value.message == "Not your offer"
    with pytest.raises(NotFound):
        await ledger.delete_owned(424242, friend.id)

    assert await ledger.count_entries(wish.id) == 1


async def test_hidden_offers_filtered_from_listing(db, make_user, make_wish):
    owner = await make_user()
    friend = await make_user()
    stranger = await make_user()
    wish = await make_wish(owner)
    ledger = ContributionLedger(db)
    await ledger.create_contribution(friend.id, wish.id, "10")
    secret = await ledger.create_contribution(friend.id, wish.id, "15", hidden=True)

    assert len(await ledger.list_visible(stranger.id, wish.id)) == 1
    assert len(await ledger.list_visible(friend.id, wish.id)) == 2
    assert len(await ledger.list_visible(owner.id, wish.id)) == 2
    assert await ledger.list_visible(stranger.id, 9999) == []

    with pytest.raises(Forbidden):
        await ledger.get_one_visible(secret.id, stranger.id)
    assert (await ledger.get_one_visible(secret.id, owner.id)).id == secret.id


async def test_concurrent_contributions_never_exceed_price(session_factory, make_user, make_wish):
    owner = await make_user()
    contributors = [await make_user() for _ in range(5)]
    wish = await make_wish(owner, price="100.00")

    async def attempt(user_id: int):
        async with session_factory() as session:
            return await ContributionLedger(session).create_contribution(user_id, wish.id, "30")

    results = await asyncio.gather(*(attempt(user.id) for user in contributors), return_exceptions=True)

    admitted = [result for result in results if isinstance(result, Offer)]
    rejected = [result for result in results if isinstance(result, (ExceedsRemaining, AlreadyFunded))]
    assert len(admitted) == 3
    assert len(rejected) == 2

    async with session_factory() as session:
        total = (await session.execute(select(func.sum(Offer.amount)).where(Offer.wish_id == wish.id))).scalar_one()
        assert Decimal(str(total)) == Decimal("90.00")
        assert await ContributionLedger(session).raised_amount(wish.id) <= Decimal("100.00")

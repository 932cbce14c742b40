"""Funding policy: pure admission decisions for contributions toward a wish.

Nothing here touches the database. The ledger computes the current raised
amount and asks this module whether a proposed contribution fits.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from wishfund.core.errors import AlreadyFunded, ExceedsRemaining, Forbidden, InvalidArgument

CENTS = Decimal("0.01")
ZERO = Decimal("0")
# Largest value a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")


class RejectionReason(str, Enum):
    ALREADY_FUNDED = "already_funded"
    EXCEEDS_REMAINING = "exceeds_remaining"


@dataclass(frozen=True)
class FundingDecision:
    price: Decimal
    current_raised: Decimal
    proposed: Decimal
    remaining: Decimal
    rejection: RejectionReason | None = None

    @property
    def admitted(self) -> bool:
        return self.rejection is None


def parse_amount(value: object, field: str = "amount") -> Decimal:
    """Coerce a client-supplied money value to a positive two-place Decimal."""
    if value is None or isinstance(value, bool):
        raise InvalidArgument(f"{field} must be a positive number")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidArgument(f"{field} must be a positive number") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidArgument(f"{field} must be a positive number")
    if amount > MAX_AMOUNT:
        raise InvalidArgument(f"{field} must not exceed {MAX_AMOUNT}")
    try:
        rounded = amount.quantize(CENTS)
    except InvalidOperation:
        raise InvalidArgument(f"{field} must be a positive number") from None
    if amount != rounded:
        raise InvalidArgument(f"{field} must have at most 2 decimal places")
    return rounded


def evaluate(price: Decimal, current_raised: Decimal, proposed: Decimal) -> FundingDecision:
    remaining = Decimal(price) - Decimal(current_raised)
    rejection = None
    if remaining <= ZERO:
        rejection = RejectionReason.ALREADY_FUNDED
    elif proposed > remaining:
        rejection = RejectionReason.EXCEEDS_REMAINING
    return FundingDecision(
        price=Decimal(price),
        current_raised=Decimal(current_raised),
        proposed=proposed,
        remaining=remaining,
        rejection=rejection,
    )


def admit(price: Decimal, current_raised: Decimal, proposed: Decimal) -> Decimal:
    """Raise if the contribution does not fit; return what is left to raise after it."""
    decision = evaluate(price, current_raised, proposed)
    if decision.rejection is RejectionReason.ALREADY_FUNDED:
        raise AlreadyFunded()
    if decision.rejection is RejectionReason.EXCEEDS_REMAINING:
        raise ExceedsRemaining(f"Contribution exceeds remaining amount of {decision.remaining}")
    return decision.remaining - proposed


def ensure_not_self_funding(owner_id: int, contributor_id: int) -> None:
    if owner_id == contributor_id:
        raise Forbidden("You cannot contribute to your own wish")

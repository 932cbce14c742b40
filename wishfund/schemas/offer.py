from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from wishfund.models.models import OfferStatus
from wishfund.schemas.auth import UserPublic
from wishfund.schemas.wish import WishSummaryPublic


class OfferCreate(BaseModel):
    wish_id: int
    amount: Decimal
    hidden: bool = False


class OfferUpdate(BaseModel):
    amount: Decimal | None = None
    hidden: bool | None = None
    status: OfferStatus | None = None
    # Accepted only so that reassignment attempts can be rejected explicitly.
    user_id: int | None = None
    wish_id: int | None = None


class OfferPublic(BaseModel):
    id: int
    amount: float
    hidden: bool
    status: OfferStatus
    created_at: datetime
    updated_at: datetime
    user: UserPublic | None = None
    wish: WishSummaryPublic | None = None

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from wishfund.models.models import OfferStatus
from wishfund.schemas.auth import UserPublic


class WishBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    link: str | None = Field(default=None, max_length=1024)
    image: str | None = Field(default=None, max_length=1024)
    price: Decimal
    description: str | None = Field(default=None, max_length=2048)

    @field_validator("name")
    @classmethod
    def _name_strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("link", "image", "description")
    @classmethod
    def _normalize_optional(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


class WishCreate(WishBase):
    pass


class WishUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    link: str | None = Field(default=None, max_length=1024)
    image: str | None = Field(default=None, max_length=1024)
    price: Decimal | None = None
    description: str | None = Field(default=None, max_length=2048)


class WishOfferCreate(BaseModel):
    amount: Decimal
    hidden: bool = False


class WishSummaryPublic(BaseModel):
    id: int
    name: str
    link: str | None
    image: str | None
    price: float
    copied_count: int
    description: str | None
    created_at: datetime
    updated_at: datetime
    raised: float
    owner: UserPublic | None = None


class WishOfferPublic(BaseModel):
    id: int
    amount: float
    hidden: bool
    status: OfferStatus
    created_at: datetime
    updated_at: datetime
    user: UserPublic | None = None


class WishPublic(WishSummaryPublic):
    offers: list[WishOfferPublic]

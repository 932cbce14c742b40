from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from wishfund.schemas.auth import UserPublic
from wishfund.schemas.wish import WishSummaryPublic


class WishlistCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    image: str | None = Field(default=None, max_length=1024)
    items_id: list[int] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _wishlist_name_strip(cls, value: str) -> str:
        return value.strip()

    @field_validator("items_id")
    @classmethod
    def _positive_ids(cls, value: list[int]) -> list[int]:
        if any(item_id <= 0 for item_id in value):
            raise ValueError("Wish ids must be positive")
        return value


class WishlistUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    image: str | None = Field(default=None, max_length=1024)
    items_id: list[int] | None = None


class WishlistPublic(BaseModel):
    id: int
    name: str
    image: str | None
    created_at: datetime
    updated_at: datetime
    owner: UserPublic | None = None
    items: list[WishSummaryPublic]

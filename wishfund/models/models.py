from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as StrEnumBase

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wishfund.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OfferStatus(str, StrEnumBase):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that count toward the raised amount of a wish.
ELIGIBLE_OFFER_STATUSES = (OfferStatus.ACTIVE.value, OfferStatus.COMPLETED.value)


wishlist_items = Table(
    "wishlist_items",
    Base.metadata,
    Column("wishlist_id", ForeignKey("wishlists.id", ondelete="CASCADE"), primary_key=True),
    Column("wish_id", ForeignKey("wishes.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(255), nullable=True)
    about: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    wishes: Mapped[list["Wish"]] = relationship(back_populates="owner", passive_deletes=True)
    wishlists: Mapped[list["Wishlist"]] = relationship(back_populates="owner", passive_deletes=True)
    offers: Mapped[list["Offer"]] = relationship(back_populates="user", passive_deletes=True)


class Wish(Base):
    __tablename__ = "wishes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    link: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    copied_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    owner: Mapped[User] = relationship(back_populates="wishes")
    offers: Mapped[list["Offer"]] = relationship(
        back_populates="wish",
        passive_deletes=True,
        order_by="Offer.id",
    )

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_wishes_price_positive"),
        CheckConstraint("copied_count >= 0", name="ck_wishes_copied_count_non_negative"),
    )


class Offer(Base):
    __tablename__ = "offers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    wish_id: Mapped[int] = mapped_column(
        ForeignKey("wishes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=OfferStatus.ACTIVE.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    wish: Mapped[Wish] = relationship(back_populates="offers")
    user: Mapped[User] = relationship(back_populates="offers")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_offers_amount_positive"),
        CheckConstraint(
            "status IN ('active', 'cancelled', 'completed')",
            name="ck_offers_status_known",
        ),
    )

    @property
    def counts_toward_raised(self) -> bool:
        return self.status in ELIGIBLE_OFFER_STATUSES


class Wishlist(Base):
    __tablename__ = "wishlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    owner: Mapped[User] = relationship(back_populates="wishlists")
    items: Mapped[list[Wish]] = relationship(secondary=wishlist_items, order_by=Wish.id)

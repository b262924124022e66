"""
Modulo de entidades persistentes (modelos ORM de SQLAlchemy).

Mientras que schemas.py define lo que viaja por HTTP (DTOs de Pydantic),
este archivo define lo que se guarda en la base de datos:

    User ----< Listing >---- Category
                 |  \\
                 |   +----< ListingTag
                 |
    User ----< Transaction ----1 Download
                     |
                     +----1 Review

Campos derivados en Listing (desnormalizados para lecturas rapidas):
- total_sales: se incrementa en el fulfillment de cada pago.
- average_rating / total_reviews: se recalculan al crear cada review.

Los ids son UUID4 en texto:
impredecibles y faciles de pasar por URL.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spreadmarket.database import Base

TRANSACTION_PENDING = "pending"
TRANSACTION_COMPLETED = "completed"


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    # Guardamos fechas UTC "naive": SQLite descarta la zona horaria y asi
    # las comparaciones se comportan igual en SQLite y en PostgreSQL.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    profile_image_url: Mapped[str | None] = mapped_column(String(500))
    # Solo los creadores pueden publicar listings
    is_creator: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    listings: Mapped[list["Listing"]] = relationship(back_populates="creator")


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100))
    slug: Mapped[str] = mapped_column(String(100), unique=True)
    description: Mapped[str | None] = mapped_column(Text)

    listings: Mapped[list["Listing"]] = relationship(back_populates="category")


class Listing(Base):
    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint("price > 0", name="ck_listing_price_positive"),
        CheckConstraint("total_sales >= 0", name="ck_listing_total_sales"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    creator_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    category_id: Mapped[str | None] = mapped_column(ForeignKey("categories.id"))
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    file_url: Mapped[str] = mapped_column(String(1024))
    file_type: Mapped[str] = mapped_column(String(100))
    file_size: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    total_sales: Mapped[int] = mapped_column(Integer, default=0)
    average_rating: Mapped[float] = mapped_column(Float, default=0.0)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    creator: Mapped[User] = relationship(back_populates="listings")
    category: Mapped[Category | None] = relationship(back_populates="listings")
    tags: Mapped[list["ListingTag"]] = relationship(
        back_populates="listing", cascade="all, delete-orphan"
    )

    @property
    def tag_names(self) -> list[str]:
        return [t.tag for t in self.tags]


class ListingTag(Base):
    """Un tag de un listing. Una fila por tag para poder filtrar con OR."""

    __tablename__ = "listing_tags"
    __table_args__ = (UniqueConstraint("listing_id", "tag", name="uq_listing_tag"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    listing_id: Mapped[str] = mapped_column(ForeignKey("listings.id"), index=True)
    tag: Mapped[str] = mapped_column(String(50), index=True)

    listing: Mapped[Listing] = relationship(back_populates="tags")


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    buyer_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    listing_id: Mapped[str] = mapped_column(ForeignKey("listings.id"), index=True)
    # Llave de idempotencia: un PaymentIntent de Stripe produce a lo mucho
    # una Transaction, aunque Stripe reenvie el webhook varias veces.
    stripe_payment_intent_id: Mapped[str] = mapped_column(String(255), unique=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    commission: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    creator_earnings: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    status: Mapped[str] = mapped_column(String(20), default=TRANSACTION_PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    buyer: Mapped[User] = relationship()
    listing: Mapped[Listing] = relationship()
    download: Mapped[Optional["Download"]] = relationship(back_populates="transaction")
    review: Mapped[Optional["Review"]] = relationship(back_populates="transaction")


class Download(Base):
    __tablename__ = "downloads"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    transaction_id: Mapped[str] = mapped_column(ForeignKey("transactions.id"), unique=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    listing_id: Mapped[str] = mapped_column(ForeignKey("listings.id"))
    download_url: Mapped[str] = mapped_column(Text)
    expires_at: Mapped[datetime] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    transaction: Mapped[Transaction] = relationship(back_populates="download")


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # unique: una sola review por compra
    transaction_id: Mapped[str] = mapped_column(ForeignKey("transactions.id"), unique=True)
    buyer_id: Mapped[str] = mapped_column(ForeignKey("users.id"))
    listing_id: Mapped[str] = mapped_column(ForeignKey("listings.id"), index=True)
    rating: Mapped[int] = mapped_column(Integer)
    comment: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    transaction: Mapped[Transaction] = relationship(back_populates="review")
    buyer: Mapped[User] = relationship()

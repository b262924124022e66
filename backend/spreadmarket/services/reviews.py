"""
Modulo de reviews y agregacion de calificaciones.

Un comprador puede dejar UNA review por compra (Transaction completada).
Al crearla, el listing recalcula sus campos derivados:

    average_rating = promedio aritmetico de TODAS sus reviews
    total_reviews  = cantidad de reviews

El recalculo relee todas las reviews del listing (O(n) por escritura); el
volumen esperado de reviews por listing es pequeno. Review y agregados se
guardan en el mismo commit.
"""

import logging
import math
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from spreadmarket.exceptions import DuplicateReviewError, NotFoundError, ValidationError
from spreadmarket.models.entities import TRANSACTION_COMPLETED, Listing, Review, Transaction

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class ReviewPage:
    items: list[Review]
    page: int
    limit: int
    total: int
    pages: int


def recompute_listing_rating(db: Session, listing: Listing) -> None:
    ratings = db.scalars(select(Review.rating).where(Review.listing_id == listing.id)).all()
    listing.total_reviews = len(ratings)
    listing.average_rating = sum(ratings) / len(ratings) if ratings else 0.0


def submit_review(
    db: Session,
    actor_id: str,
    transaction_id: str,
    rating: int,
    comment: str | None = None,
) -> Review:
    # bool es subclase de int en Python: True no es una calificacion
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")

    transaction = db.scalar(
        select(Transaction).where(
            Transaction.id == transaction_id,
            Transaction.buyer_id == actor_id,
            Transaction.status == TRANSACTION_COMPLETED,
        )
    )
    if transaction is None:
        raise NotFoundError("Transaction not found or you cannot review this purchase")

    # Consulta directa: transaction.review puede estar cacheado en la sesion
    existing = db.scalar(select(Review.id).where(Review.transaction_id == transaction.id))
    if existing is not None:
        raise DuplicateReviewError()

    listing = transaction.listing
    review = Review(
        transaction=transaction,
        buyer_id=actor_id,
        listing_id=transaction.listing_id,
        rating=rating,
        comment=comment or None,
    )
    try:
        db.add(review)
        db.flush()
        recompute_listing_rating(db, listing)
        db.commit()
    except IntegrityError:
        # Otra peticion reseno la misma compra entre la consulta y el flush
        db.rollback()
        raise DuplicateReviewError()
    except Exception:
        db.rollback()
        raise
    db.refresh(review)

    logger.info(
        f"Review {review.id} on listing {listing.id}: average {listing.average_rating:.2f} "
        f"over {listing.total_reviews} reviews"
    )
    return review


def list_reviews(db: Session, listing_id: str, page: int, limit: int) -> ReviewPage:
    total = db.scalar(select(func.count()).select_from(Review).where(Review.listing_id == listing_id)) or 0
    items = db.scalars(
        select(Review)
        .where(Review.listing_id == listing_id)
        .order_by(Review.created_at.desc(), Review.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .options(selectinload(Review.buyer))
    ).all()
    return ReviewPage(items=list(items), page=page, limit=limit, total=total, pages=math.ceil(total / limit))

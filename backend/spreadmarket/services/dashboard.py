"""
Estadisticas del panel del creador.

totalEarnings suma creator_earnings de las Transactions completadas de
los listings del creador. averageRating pondera el promedio de cada
listing por su numero de reviews (un listing con 40 reviews pesa mas que
uno con 1).
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from spreadmarket.models.entities import TRANSACTION_COMPLETED, Listing, Transaction


@dataclass
class DashboardStats:
    total_listings: int
    total_earnings: float
    total_sales: int
    average_rating: float


@dataclass
class Dashboard:
    listings: list[Listing]
    stats: DashboardStats


def creator_dashboard(db: Session, user_id: str) -> Dashboard:
    listings = list(
        db.scalars(
            select(Listing)
            .where(Listing.creator_id == user_id)
            .order_by(Listing.created_at.desc(), Listing.id.asc())
        )
    )

    earnings = db.scalar(
        select(func.coalesce(func.sum(Transaction.creator_earnings), 0))
        .join(Listing, Transaction.listing_id == Listing.id)
        .where(Listing.creator_id == user_id, Transaction.status == TRANSACTION_COMPLETED)
    )

    total_reviews = sum(listing.total_reviews for listing in listings)
    ratings_sum = sum((listing.average_rating or 0) * listing.total_reviews for listing in listings)
    average_rating = ratings_sum / total_reviews if total_reviews else 0.0

    stats = DashboardStats(
        total_listings=len(listings),
        total_earnings=float(round(Decimal(str(earnings or 0)), 2)),
        total_sales=sum(listing.total_sales for listing in listings),
        average_rating=round(average_rating, 1),
    )
    return Dashboard(listings=listings, stats=stats)

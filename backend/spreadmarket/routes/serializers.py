"""
Conversion de entidades ORM a schemas de respuesta.

Construimos los DTOs explicitamente (en vez de model_validate sobre el
objeto ORM) porque algunos campos no se copian 1 a 1: el precio Decimal
se expone como numero y los tags son filas de ListingTag.
"""

from spreadmarket.models.entities import Listing, Review, User
from spreadmarket.models.schemas import (
    CategorySummary,
    DashboardListing,
    ListingResponse,
    ReviewResponse,
    UserSummary,
)


def user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_image_url=user.profile_image_url,
    )


def listing_response(listing: Listing) -> ListingResponse:
    category = None
    if listing.category is not None:
        category = CategorySummary(name=listing.category.name, slug=listing.category.slug)

    return ListingResponse(
        id=listing.id,
        title=listing.title,
        description=listing.description,
        price=float(listing.price),
        file_type=listing.file_type,
        file_size=listing.file_size,
        tags=listing.tag_names,
        is_active=listing.is_active,
        total_sales=listing.total_sales,
        average_rating=listing.average_rating,
        total_reviews=listing.total_reviews,
        created_at=listing.created_at,
        creator=user_summary(listing.creator),
        category=category,
    )


def dashboard_listing(listing: Listing) -> DashboardListing:
    return DashboardListing(
        id=listing.id,
        title=listing.title,
        price=float(listing.price),
        total_sales=listing.total_sales,
        average_rating=listing.average_rating,
        total_reviews=listing.total_reviews,
        is_active=listing.is_active,
        created_at=listing.created_at,
    )


def review_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        transaction_id=review.transaction_id,
        listing_id=review.listing_id,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
        buyer=user_summary(review.buyer),
    )

"""
Operaciones de escritura y lectura puntual sobre listings y categorias.

La busqueda vive en search.py; aqui estan la creacion (solo creadores),
el detalle, la activacion/desactivacion por el dueno y el listado de
categorias con su conteo de listings activos.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session, selectinload

from spreadmarket.exceptions import ForbiddenError, NotFoundError, ValidationError
from spreadmarket.models.entities import Category, Listing, ListingTag, User


@dataclass
class CategoryCount:
    category: Category
    listing_count: int


def create_listing(
    db: Session,
    creator: User,
    *,
    title: str,
    description: str,
    price: Decimal,
    file_url: str,
    file_type: str,
    file_size: int | None = None,
    category_id: str | None = None,
    tags: list[str] | None = None,
) -> Listing:
    if not creator.is_creator:
        raise ForbiddenError("Only creators can create listings")

    if category_id is not None and db.get(Category, category_id) is None:
        raise ValidationError(f"Unknown category: {category_id}")

    # dict.fromkeys conserva el orden y elimina duplicados
    unique_tags = list(dict.fromkeys(t.strip() for t in tags or [] if t.strip()))

    listing = Listing(
        creator_id=creator.id,
        category_id=category_id,
        title=title,
        description=description,
        price=price,
        file_url=file_url,
        file_type=file_type,
        file_size=file_size,
        tags=[ListingTag(tag=t) for t in unique_tags],
    )
    db.add(listing)
    db.commit()
    db.refresh(listing)
    return listing


def get_active_listing(db: Session, listing_id: str) -> Listing:
    listing = db.scalar(
        select(Listing)
        .where(Listing.id == listing_id)
        .options(selectinload(Listing.creator), selectinload(Listing.category), selectinload(Listing.tags))
    )
    if listing is None or not listing.is_active:
        raise NotFoundError("Listing not found")
    return listing


def set_listing_active(db: Session, owner_id: str, listing_id: str, is_active: bool) -> Listing:
    listing = db.get(Listing, listing_id)
    if listing is None:
        raise NotFoundError("Listing not found")
    if listing.creator_id != owner_id:
        raise ForbiddenError("Only the owner can change this listing")

    listing.is_active = is_active
    db.commit()
    db.refresh(listing)
    return listing


def list_categories(db: Session) -> list[CategoryCount]:
    # LEFT JOIN para incluir categorias sin listings activos (conteo 0)
    stmt = (
        select(Category, func.count(Listing.id))
        .outerjoin(Listing, and_(Listing.category_id == Category.id, Listing.is_active.is_(True)))
        .group_by(Category.id)
        .order_by(Category.name.asc())
    )
    return [CategoryCount(category=category, listing_count=count) for category, count in db.execute(stmt)]

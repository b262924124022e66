"""
Modulo de busqueda de listings.

Traduce un ListingQuery (texto, categoria, rango de precio, tags, orden y
paginacion) a una consulta de SQLAlchemy.

Semantica de los filtros (se combinan con AND entre tipos):
    - Solo listings activos (is_active = True), siempre.
    - q: coincide, sin distinguir mayusculas, con el titulo O la descripcion.
      Los comodines de LIKE que escriba el usuario (% y _) se escapan.
    - category: por igualdad de slug.
    - min_price / max_price: inclusivos.
    - tags: basta con compartir UN tag (OR entre tags, no subconjunto).

Orden: un solo criterio activo, con Listing.id como desempate estable para
que la paginacion no repita ni salte elementos entre paginas.

Paginacion: page empieza en 1, limit se recorta a [1, 50] (default 12).
total y pages se calculan sobre el conteo filtrado completo, no sobre la
pagina retornada.
"""

import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from spreadmarket.config import settings
from spreadmarket.models.entities import Category, Listing, ListingTag


class SortBy(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    RATING = "rating"
    POPULAR = "popular"


SORT_COLUMNS = {
    SortBy.NEWEST: Listing.created_at.desc(),
    SortBy.OLDEST: Listing.created_at.asc(),
    SortBy.PRICE_ASC: Listing.price.asc(),
    SortBy.PRICE_DESC: Listing.price.desc(),
    SortBy.RATING: Listing.average_rating.desc(),
    SortBy.POPULAR: Listing.total_sales.desc(),
}


@dataclass
class ListingQuery:
    q: str | None = None
    category: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    tags: list[str] = field(default_factory=list)
    sort_by: SortBy = SortBy.NEWEST
    page: int = 1
    limit: int = settings.SEARCH_DEFAULT_LIMIT


@dataclass
class SearchResult:
    items: list[Listing]
    page: int
    limit: int
    total: int
    pages: int


def clamp_pagination(page: int | None, limit: int | None, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Normaliza page >= 1 y limit en [1, max_limit]."""
    page = max(1, page or 1)
    limit = default_limit if limit is None else min(max(1, limit), max_limit)
    return page, limit


def build_filters(query: ListingQuery) -> list:
    filters = [Listing.is_active.is_(True)]

    if query.q:
        filters.append(
            or_(
                Listing.title.icontains(query.q, autoescape=True),
                Listing.description.icontains(query.q, autoescape=True),
            )
        )

    if query.category:
        filters.append(Listing.category.has(Category.slug == query.category))

    if query.min_price is not None:
        filters.append(Listing.price >= query.min_price)
    if query.max_price is not None:
        filters.append(Listing.price <= query.max_price)

    tags = [t.strip() for t in query.tags if t and t.strip()]
    if tags:
        filters.append(Listing.tags.any(ListingTag.tag.in_(tags)))

    return filters


def search_listings(db: Session, query: ListingQuery) -> SearchResult:
    page, limit = clamp_pagination(
        query.page, query.limit, settings.SEARCH_DEFAULT_LIMIT, settings.SEARCH_MAX_LIMIT
    )
    filters = build_filters(query)

    total = db.scalar(select(func.count()).select_from(Listing).where(*filters)) or 0

    stmt = (
        select(Listing)
        .where(*filters)
        .order_by(SORT_COLUMNS[SortBy(query.sort_by)], Listing.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .options(
            selectinload(Listing.creator),
            selectinload(Listing.category),
            selectinload(Listing.tags),
        )
    )
    items = list(db.scalars(stmt))

    return SearchResult(
        items=items,
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit),
    )

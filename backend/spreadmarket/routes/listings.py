"""
Modulo de rutas de listings (hojas de calculo a la venta).

Endpoints:
    GET   /api/listings                  -> busqueda y navegacion (publico)
    POST  /api/listings                  -> crear listing (solo creadores)
    GET   /api/listings/{id}             -> detalle de un listing activo
    PATCH /api/listings/{id}/status      -> activar/desactivar (solo el dueno)
    GET   /api/listings/{id}/preview     -> filas de ejemplo
    GET   /api/listings/{id}/reviews     -> reviews paginadas

Los parametros de busqueda llegan por query string en camelCase:
    /api/listings?q=budget&category=financial-models&minPrice=5&maxPrice=50
                 &tags=excel,finance&sortBy=price_asc&page=2&limit=12
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from starlette.requests import Request

from spreadmarket.auth import get_current_user, require_creator
from spreadmarket.config import settings
from spreadmarket.database import get_db
from spreadmarket.limiter import limiter
from spreadmarket.models.entities import User
from spreadmarket.models.schemas import (
    ListingCreate,
    ListingResponse,
    ListingSearchResponse,
    ListingStatusUpdate,
    PaginationInfo,
    PreviewData,
    PreviewResponse,
    ReviewListResponse,
)
from spreadmarket.routes.serializers import listing_response, review_response
from spreadmarket.services.listings import create_listing, get_active_listing, set_listing_active
from spreadmarket.services.reviews import list_reviews
from spreadmarket.services.search import ListingQuery, SortBy, clamp_pagination, search_listings

router = APIRouter()


@router.get("/api/listings", response_model=ListingSearchResponse)
def search(
    q: str | None = None,
    category: str | None = None,
    min_price: Decimal | None = Query(default=None, alias="minPrice", ge=0),
    max_price: Decimal | None = Query(default=None, alias="maxPrice", ge=0),
    tags: str | None = None,
    sort_by: SortBy = Query(default=SortBy.NEWEST, alias="sortBy"),
    page: int = 1,
    limit: int = settings.SEARCH_DEFAULT_LIMIT,
    db: Session = Depends(get_db),
):
    """
    Busca listings activos.

    `tags` es una lista separada por comas; basta con que el listing tenga
    uno de ellos. `limit` se recorta a [1, 50] en vez de rechazarse.
    Un `sortBy` desconocido responde 400.
    """
    query = ListingQuery(
        q=q or None,
        category=category or None,
        min_price=min_price,
        max_price=max_price,
        tags=tags.split(",") if tags else [],
        sort_by=sort_by,
        page=page,
        limit=limit,
    )
    result = search_listings(db, query)
    return ListingSearchResponse(
        listings=[listing_response(item) for item in result.items],
        pagination=PaginationInfo(
            page=result.page, limit=result.limit, total=result.total, pages=result.pages
        ),
    )


@router.post("/api/listings", response_model=ListingResponse, status_code=201)
@limiter.limit("10/minute")
def create(
    request: Request,
    body: ListingCreate,
    user: User = Depends(require_creator),
    db: Session = Depends(get_db),
):
    listing = create_listing(
        db,
        user,
        title=body.title,
        description=body.description,
        price=body.price,
        file_url=str(body.file_url),
        file_type=body.file_type,
        file_size=body.file_size,
        category_id=body.category_id,
        tags=body.tags,
    )
    return listing_response(listing)


@router.get("/api/listings/{listing_id}", response_model=ListingResponse)
def detail(listing_id: str, db: Session = Depends(get_db)):
    return listing_response(get_active_listing(db, listing_id))


@router.patch("/api/listings/{listing_id}/status", response_model=ListingResponse)
def update_status(
    listing_id: str,
    body: ListingStatusUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    listing = set_listing_active(db, user.id, listing_id, body.is_active)
    return listing_response(listing)


# Datos de ejemplo del preview. Generar previews reales a partir del
# archivo en S3 queda fuera del alcance actual.
SAMPLE_HEADERS = ["Name", "Category", "Value", "Date"]
SAMPLE_ROWS = [
    ["Sample Data 1", "Category A", "100", "2024-01-15"],
    ["Sample Data 2", "Category B", "250", "2024-01-16"],
    ["Sample Data 3", "Category A", "175", "2024-01-17"],
    ["...", "...", "...", "..."],
]
SAMPLE_TOTAL_ROWS = 150
SAMPLE_SHEETS = ["Sheet1", "Summary", "Data"]


@router.get("/api/listings/{listing_id}/preview", response_model=PreviewResponse)
def preview(listing_id: str, db: Session = Depends(get_db)):
    listing = get_active_listing(db, listing_id)
    file_type = listing.file_type.lower()
    return PreviewResponse(
        preview=PreviewData(
            type="csv",
            headers=SAMPLE_HEADERS,
            rows=SAMPLE_ROWS,
            total_rows=SAMPLE_TOTAL_ROWS,
            # Solo los libros de Excel tienen varias hojas
            sheets=SAMPLE_SHEETS if file_type == "xlsx" else None,
        ),
        file_type=listing.file_type,
        file_name=f"{listing.title}.{listing.file_type}",
    )


@router.get("/api/listings/{listing_id}/reviews", response_model=ReviewListResponse)
def reviews(
    listing_id: str,
    page: int = 1,
    limit: int = settings.REVIEWS_DEFAULT_LIMIT,
    db: Session = Depends(get_db),
):
    page, limit = clamp_pagination(page, limit, settings.REVIEWS_DEFAULT_LIMIT, settings.REVIEWS_MAX_LIMIT)
    result = list_reviews(db, listing_id, page, limit)
    return ReviewListResponse(
        reviews=[review_response(r) for r in result.items],
        pagination=PaginationInfo(
            page=result.page, limit=result.limit, total=result.total, pages=result.pages
        ),
    )

"""
Modulo de esquemas (schemas) de datos de la API.

Este archivo define la ESTRUCTURA EXACTA de los datos que entran y salen
de la API, usando Pydantic. Es el "contrato" entre el frontend y el
backend.

Convencion de nombres: en Python usamos snake_case, pero el frontend
(JavaScript) espera camelCase. Todos los schemas heredan de ApiModel, que
genera alias en camelCase automaticamente:

    file_name  <->  "fileName"
    sort_by    <->  "sortBy"

FastAPI serializa las respuestas usando los alias, y gracias a
populate_by_name=True el input se acepta en cualquiera de los dos estilos.

Patron de diseno: Data Transfer Objects (DTOs)
----------------------------------------------
Estos schemas no contienen logica de negocio; solo transportan datos entre
HTTP y los servicios. Las entidades de base de datos viven en entities.py.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import AnyUrl, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Piezas compartidas ----------


class PaginationInfo(ApiModel):
    """
    Metadatos de paginacion.

    Atributos:
        page (int): Pagina actual (empieza en 1).
        limit (int): Elementos por pagina.
        total (int): Total de elementos que cumplen los filtros.
        pages (int): ceil(total / limit).
    """
    page: int
    limit: int
    total: int
    pages: int


class UserSummary(ApiModel):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None


class CategorySummary(ApiModel):
    name: str
    slug: str


# ---------- Categorias ----------


class CategoryResponse(ApiModel):
    """Categoria con el numero de listings ACTIVOS que contiene."""
    id: str
    name: str
    slug: str
    description: str | None = None
    listing_count: int


# ---------- Listings ----------


class ListingCreate(ApiModel):
    """
    Body de POST /api/listings.

    Atributos:
        title (str): 1 a 255 caracteres.
        description (str): No vacia.
        price (Decimal): Entre 0.01 y 999999.
        category_id (str | None): Categoria opcional.
        file_url (AnyUrl): URL del archivo ya subido a S3.
        file_type (str): Tipo del archivo (ej: "xlsx", "csv").
        file_size (int | None): Tamano en bytes, si se conoce.
        tags (list[str]): Maximo 10 tags.
    """
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    price: Decimal = Field(ge=Decimal("0.01"), le=Decimal("999999"), decimal_places=2)
    category_id: str | None = None
    file_url: AnyUrl
    file_type: str = Field(min_length=1)
    file_size: int | None = Field(default=None, gt=0)
    tags: list[str] = Field(default_factory=list, max_length=10)


class ListingStatusUpdate(ApiModel):
    is_active: bool


class ListingResponse(ApiModel):
    id: str
    title: str
    description: str
    price: float
    file_type: str
    file_size: int | None = None
    tags: list[str]
    is_active: bool
    total_sales: int
    average_rating: float
    total_reviews: int
    created_at: datetime
    creator: UserSummary
    category: CategorySummary | None = None


class ListingSearchResponse(ApiModel):
    listings: list[ListingResponse]
    pagination: PaginationInfo


class PreviewData(ApiModel):
    type: str
    headers: list[str]
    rows: list[list[str]]
    total_rows: int
    sheets: list[str] | None = None


class PreviewResponse(ApiModel):
    preview: PreviewData
    file_type: str
    file_name: str


# ---------- Dashboard ----------


class DashboardListing(ApiModel):
    id: str
    title: str
    price: float
    total_sales: int
    average_rating: float
    total_reviews: int
    is_active: bool
    created_at: datetime


class DashboardStatsResponse(ApiModel):
    total_listings: int
    total_earnings: float
    total_sales: int
    average_rating: float


class DashboardResponse(ApiModel):
    listings: list[DashboardListing]
    stats: DashboardStatsResponse


# ---------- Reviews ----------


class ReviewCreate(ApiModel):
    transaction_id: str
    # strict: sin coercion de true, "5" o 4.0 a entero
    rating: int = Field(ge=1, le=5, strict=True)
    comment: str | None = None


class ReviewResponse(ApiModel):
    id: str
    transaction_id: str
    listing_id: str
    rating: int
    comment: str | None = None
    created_at: datetime
    buyer: UserSummary


class ReviewListResponse(ApiModel):
    reviews: list[ReviewResponse]
    pagination: PaginationInfo


# ---------- Pagos ----------


class CheckoutRequest(ApiModel):
    listing_id: str


class CheckoutResponse(ApiModel):
    """
    client_secret y publishable_key los usa Stripe.js en el navegador para
    confirmar el pago.
    """
    client_secret: str
    payment_intent_id: str
    publishable_key: str


class WebhookResponse(ApiModel):
    received: bool


# ---------- Uploads ----------


class PresignedUrlRequest(ApiModel):
    file_name: str = Field(min_length=1)
    file_type: str
    file_size: int


class PresignedUrlResponse(ApiModel):
    """
    Atributos:
        presigned_url (str): URL de PUT firmada (valida 1 hora).
        key (str): Key del objeto en S3: uploads/{usuario}/{timestamp}-{archivo}
    """
    presigned_url: str
    key: str


class ScanSummary(ApiModel):
    safe: bool
    scanned_at: datetime


class FileValidationResponse(ApiModel):
    valid: bool
    file_name: str
    file_size: int
    file_type: str
    detected_type: str
    scan_result: ScanSummary


class ErrorResponse(ApiModel):
    """
    Formato estandar de error de toda la API (lo arman los handlers de
    exceptions.py).

    Atributos:
        detail (str): Mensaje legible para el usuario.
        code (str): Codigo estable para que el frontend decida que mostrar.
        details (dict | None): Contexto adicional (errores por campo,
            amenazas del escaneo, remainingRequests/resetTime, ...).
    """
    detail: str
    code: str
    details: dict[str, Any] | None = None

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

"""
Modulo de ruta de categorias.

GET /api/categories -> todas las categorias ordenadas por nombre, cada una
con el numero de listings ACTIVOS que contiene (las categorias vacias
aparecen con listingCount = 0).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from spreadmarket.database import get_db
from spreadmarket.models.schemas import CategoryResponse
from spreadmarket.services.listings import list_categories

router = APIRouter()


@router.get("/api/categories", response_model=list[CategoryResponse])
def categories(db: Session = Depends(get_db)):
    return [
        CategoryResponse(
            id=item.category.id,
            name=item.category.name,
            slug=item.category.slug,
            description=item.category.description,
            listing_count=item.listing_count,
        )
        for item in list_categories(db)
    ]

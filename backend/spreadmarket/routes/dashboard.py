"""
Modulo de ruta del panel del creador.

GET /api/dashboard (requiere sesion) -> listings del usuario, del mas nuevo
al mas viejo, y sus estadisticas agregadas: numero de listings, ganancias
totales, ventas totales y calificacion promedio ponderada por reviews.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from spreadmarket.auth import get_current_user
from spreadmarket.database import get_db
from spreadmarket.models.entities import User
from spreadmarket.models.schemas import DashboardResponse, DashboardStatsResponse
from spreadmarket.routes.serializers import dashboard_listing
from spreadmarket.services.dashboard import creator_dashboard

router = APIRouter()


@router.get("/api/dashboard", response_model=DashboardResponse)
def dashboard(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = creator_dashboard(db, user.id)
    return DashboardResponse(
        listings=[dashboard_listing(listing) for listing in result.listings],
        stats=DashboardStatsResponse(
            total_listings=result.stats.total_listings,
            total_earnings=result.stats.total_earnings,
            total_sales=result.stats.total_sales,
            average_rating=result.stats.average_rating,
        ),
    )

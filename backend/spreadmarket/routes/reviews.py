"""
Modulo de ruta para crear reviews.

POST /api/reviews (requiere sesion)
    Body: {"transactionId": "...", "rating": 1-5, "comment": "opcional"}

Solo el comprador de una Transaction completada puede reseniarla, y solo
una vez. Al crearse, el listing recalcula su calificacion promedio.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette.requests import Request

from spreadmarket.auth import get_current_user
from spreadmarket.database import get_db
from spreadmarket.limiter import limiter
from spreadmarket.models.entities import User
from spreadmarket.models.schemas import ReviewCreate, ReviewResponse
from spreadmarket.routes.serializers import review_response
from spreadmarket.services.reviews import submit_review

router = APIRouter()


@router.post("/api/reviews", response_model=ReviewResponse, status_code=201)
@limiter.limit("10/minute")
def create_review(
    request: Request,
    body: ReviewCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    review = submit_review(db, user.id, body.transaction_id, body.rating, body.comment)
    return review_response(review)

"""
Modulo de rutas de pagos (Stripe).

Flujo completo de una compra:

    1. POST /api/payments/checkout   -> crea el PaymentIntent   [ESTE ARCHIVO]
    2. El navegador confirma el pago con Stripe.js (client_secret)
    3. POST /api/payments/webhook    -> Stripe avisa que se cobro [ESTE ARCHIVO]
       y registramos la compra + URL de descarga de 24 horas.

El webhook NO usa sesion de usuario: quien llama es Stripe. La
autenticidad se verifica con la firma del header Stripe-Signature. Si la
firma falta o no coincide respondemos 400 y no se procesa nada.

Contrato de entrega de Stripe: cualquier respuesta 2xx significa
"recibido"; un error (4xx/5xx) hace que Stripe reintente con backoff. Por
eso los errores de procesamiento NO se silencian: llegan al handler
generico y responden 500. Reintentar es seguro porque el fulfillment es
idempotente por PaymentIntent.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette.requests import Request

from spreadmarket.auth import get_current_user
from spreadmarket.config import settings
from spreadmarket.database import get_db
from spreadmarket.limiter import limiter
from spreadmarket.models.entities import User
from spreadmarket.models.schemas import CheckoutRequest, CheckoutResponse, WebhookResponse
from spreadmarket.services.fulfillment import handle_webhook, start_checkout
from spreadmarket.services.payments import PaymentService, get_payment_service
from spreadmarket.services.s3 import S3Service, get_storage

router = APIRouter()


@router.post("/api/payments/checkout", response_model=CheckoutResponse)
@limiter.limit("10/minute")
def checkout(
    request: Request,
    body: CheckoutRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    payments: PaymentService = Depends(get_payment_service),
):
    """
    Inicia la compra de un listing.

    Errores:
        404: listing inexistente o inactivo.
        400: el comprador es el creador, o ya compro este listing.
    """
    session = start_checkout(db, payments, body.listing_id, user.id)
    return CheckoutResponse(
        client_secret=session.client_secret,
        payment_intent_id=session.payment_intent_id,
        publishable_key=settings.STRIPE_PUBLISHABLE_KEY,
    )


@router.post("/api/payments/webhook", response_model=WebhookResponse)
async def webhook(
    request: Request,
    db: Session = Depends(get_db),
    payments: PaymentService = Depends(get_payment_service),
    storage: S3Service = Depends(get_storage),
):
    # La firma se calcula sobre el body CRUDO: no podemos dejar que
    # FastAPI lo parsee como JSON antes de verificarla.
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    handle_webhook(db, payments, storage, payload, signature)
    return WebhookResponse(received=True)

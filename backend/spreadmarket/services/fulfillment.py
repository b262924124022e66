"""
Modulo de checkout y fulfillment de compras.

Maquina de estados de un intento de compra:

    Initiated -> AuthorizationRequested -> [Stripe: Authorized] -> Fulfilled
                                        \\-> Rejected (Stripe declina, sin reintento)

1. start_checkout() (POST /api/payments/checkout)
   Valida el listing y al comprador, calcula la comision y crea un
   PaymentIntent en Stripe con todo lo que el fulfillment necesitara
   despues guardado como metadata. Retorna el client_secret.

2. handle_webhook() (POST /api/payments/webhook)
   Stripe llama a este endpoint de forma asincrona cuando el pago se
   confirma. Verificamos la firma y, si el evento es
   "payment_intent.succeeded", ejecutamos fulfill_payment().

3. fulfill_payment()
   - crea la Transaction (status=completed),
   - incrementa Listing.total_sales,
   - firma una URL de descarga valida 24 horas,
   - crea el Download con esa URL y su expiracion.

   Todo ocurre dentro de UNA transaccion de base de datos: o se guardan
   los cuatro cambios, o ninguno. Si algo falla hacemos rollback y
   propagamos el error; el webhook responde 500 y Stripe reintenta.

Idempotencia
------------
Stripe puede entregar el mismo evento mas de una vez. El id del
PaymentIntent funciona como llave de idempotencia (columna unica en
Transaction): si ya existe una Transaction para ese PaymentIntent, el
reenvio no escribe nada y retorna la compra existente.

Ademas, un comprador tiene a lo sumo UNA compra completada por listing. Si
paga dos PaymentIntents del mismo listing (dos checkouts abiertos a la
vez), el segundo pago se registra en el log y no crea otra Transaction.

Los eventos cuyo PaymentIntent no trae la metadata de nuestro checkout
(listingId, buyerId, ...) se confirman sin procesarse: no son compras de
SpreadMarket y reintentarlos no cambiaria nada.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

import stripe
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spreadmarket.config import settings
from spreadmarket.exceptions import (
    AlreadyOwnedError,
    InvalidSignatureError,
    NotFoundError,
    SelfPurchaseError,
    ValidationError,
)
from spreadmarket.models.entities import (
    TRANSACTION_COMPLETED,
    Download,
    Listing,
    Transaction,
    utcnow,
)
from spreadmarket.services.payments import PaymentService, cents_to_decimal, split_commission
from spreadmarket.services.s3 import S3Service
from spreadmarket.services.uploads import request_download_grant

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"


@dataclass
class CheckoutSession:
    client_secret: str
    payment_intent_id: str


@dataclass
class FulfillmentResult:
    transaction: Transaction
    download: Download | None
    created: bool


@dataclass
class WebhookOutcome:
    event_type: str
    processed: bool
    fulfillment: FulfillmentResult | None = None


# ---------- Checkout ----------


def start_checkout(db: Session, payments: PaymentService, listing_id: str, buyer_id: str) -> CheckoutSession:
    listing = db.get(Listing, listing_id)
    if listing is None or not listing.is_active:
        raise NotFoundError("Listing not found or inactive")

    if listing.creator_id == buyer_id:
        raise SelfPurchaseError()

    owned = db.scalar(
        select(Transaction.id).where(
            Transaction.buyer_id == buyer_id,
            Transaction.listing_id == listing_id,
            Transaction.status == TRANSACTION_COMPLETED,
        )
    )
    if owned is not None:
        raise AlreadyOwnedError()

    split = split_commission(listing.price)

    # Stripe guarda la metadata como strings
    intent = payments.create_payment_intent(
        amount=split.amount,
        metadata={
            "listingId": listing.id,
            "buyerId": buyer_id,
            "creatorId": listing.creator_id,
            "platformFee": str(split.platform_fee),
            "creatorEarnings": str(split.creator_earnings),
        },
    )
    logger.info(f"Checkout started for listing {listing.id} by {buyer_id}: {intent['id']} ({split.amount} cents)")
    return CheckoutSession(client_secret=intent["client_secret"], payment_intent_id=intent["id"])


# ---------- Webhook ----------


def handle_webhook(
    db: Session,
    payments: PaymentService,
    storage: S3Service,
    payload: bytes,
    signature: str | None,
) -> WebhookOutcome:
    if not signature:
        raise InvalidSignatureError("Missing signature")

    try:
        event = payments.construct_event(payload, signature)
    except stripe.SignatureVerificationError:
        logger.warning("Webhook signature verification failed")
        raise InvalidSignatureError("Invalid signature")
    except ValueError:
        raise ValidationError("Invalid webhook payload")

    event_type = event["type"]
    logger.info(f"Received webhook event {event['id']} ({event_type})")
    if event_type != PAYMENT_SUCCEEDED:
        logger.info(f"Ignoring webhook event {event['id']} of type {event_type}")
        return WebhookOutcome(event_type=event_type, processed=False)

    payment_intent = event["data"]["object"]
    if checkout_metadata(payment_intent) is None:
        logger.warning(f"Ignoring webhook event {event['id']}: payment {payment_intent['id']} has no checkout metadata")
        return WebhookOutcome(event_type=event_type, processed=False)

    result = fulfill_payment(db, storage, payment_intent)
    return WebhookOutcome(event_type=event_type, processed=True, fulfillment=result)


# ---------- Fulfillment ----------

# Metadata que start_checkout() guarda en cada PaymentIntent
CHECKOUT_METADATA = ("listingId", "buyerId", "platformFee", "creatorEarnings")


def checkout_metadata(payment_intent) -> dict[str, str] | None:
    """
    Extrae la metadata de checkout de un PaymentIntent.

    Retorna None si el PaymentIntent no salio de nuestro checkout (otro
    producto en la misma cuenta de Stripe, un cobro manual desde el
    dashboard, etc.).
    """
    try:
        metadata = payment_intent["metadata"]
        return {key: metadata[key] for key in CHECKOUT_METADATA}
    except (KeyError, TypeError):
        return None


def _fulfillment_of(transaction: Transaction) -> FulfillmentResult:
    return FulfillmentResult(transaction=transaction, download=transaction.download, created=False)


def _existing_fulfillment(db: Session, payment_intent_id: str) -> FulfillmentResult | None:
    transaction = db.scalar(
        select(Transaction).where(Transaction.stripe_payment_intent_id == payment_intent_id)
    )
    if transaction is None:
        return None
    return _fulfillment_of(transaction)


def _owned_purchase(db: Session, buyer_id: str, listing_id: str) -> Transaction | None:
    return db.scalar(
        select(Transaction).where(
            Transaction.buyer_id == buyer_id,
            Transaction.listing_id == listing_id,
            Transaction.status == TRANSACTION_COMPLETED,
        )
    )


def fulfill_payment(db: Session, storage: S3Service, payment_intent) -> FulfillmentResult:
    """
    Registra una compra confirmada por Stripe.

    Parametros:
        db (Session): Sesion de base de datos.
        storage (S3Service): Servicio S3 para firmar la URL de descarga.
        payment_intent: Objeto PaymentIntent del evento (acceso tipo dict:
            id, amount y metadata con listingId, buyerId, platformFee,
            creatorEarnings).

    Retorna:
        FulfillmentResult: created=False si el PaymentIntent ya se habia
            procesado (reenvio del webhook) o si el comprador ya era dueno
            del listing por otra compra completada.
    """
    intent_id = payment_intent["id"]

    existing = _existing_fulfillment(db, intent_id)
    if existing is not None:
        logger.info(f"Payment {intent_id} already fulfilled, skipping duplicate delivery")
        return existing

    metadata = checkout_metadata(payment_intent)
    if metadata is None:
        raise ValidationError(f"Payment {intent_id} has no checkout metadata")
    listing_id = metadata["listingId"]
    buyer_id = metadata["buyerId"]

    # Un comprador es dueno de un listing UNA sola vez: si pago dos
    # PaymentIntents (dos checkouts abiertos), el segundo no crea otra compra.
    owned = _owned_purchase(db, buyer_id, listing_id)
    if owned is not None:
        logger.warning(
            f"Payment {intent_id} for listing {listing_id} by {buyer_id} ignored: "
            f"already owned through transaction {owned.id}"
        )
        return _fulfillment_of(owned)

    try:
        listing = db.get(Listing, listing_id)
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found")

        transaction = Transaction(
            buyer_id=buyer_id,
            listing_id=listing_id,
            stripe_payment_intent_id=intent_id,
            amount=cents_to_decimal(payment_intent["amount"]),
            commission=cents_to_decimal(metadata["platformFee"]),
            creator_earnings=cents_to_decimal(metadata["creatorEarnings"]),
            status=TRANSACTION_COMPLETED,
        )
        db.add(transaction)
        db.flush()

        # Incremento en SQL (total_sales = total_sales + 1) para no perder
        # ventas si dos webhooks del mismo listing llegan a la vez
        db.execute(
            update(Listing)
            .where(Listing.id == listing_id)
            .values(total_sales=Listing.total_sales + 1)
        )

        storage_key = storage.key_from_file_url(listing.file_url)
        download_url = request_download_grant(storage, storage_key, settings.DOWNLOAD_TTL_SECONDS)

        download = Download(
            transaction=transaction,
            user_id=buyer_id,
            listing_id=listing_id,
            download_url=download_url,
            expires_at=utcnow() + timedelta(seconds=settings.DOWNLOAD_TTL_SECONDS),
        )
        db.add(download)
        db.commit()
    except IntegrityError:
        # Otro worker proceso el mismo PaymentIntent entre nuestra
        # verificacion y el commit: la restriccion unica lo detuvo.
        db.rollback()
        existing = _existing_fulfillment(db, intent_id)
        if existing is None:
            raise
        logger.info(f"Payment {intent_id} fulfilled concurrently, using existing transaction")
        return existing
    except Exception:
        db.rollback()
        raise

    db.refresh(listing)
    logger.info(f"Payment completed for listing {listing_id}: transaction {transaction.id}")
    return FulfillmentResult(transaction=transaction, download=download, created=True)

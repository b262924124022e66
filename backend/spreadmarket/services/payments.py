"""
Modulo de servicio para Stripe (procesador de pagos).

Igual que s3.py con boto3, este es el UNICO archivo que habla con el SDK
de Stripe. Expone dos operaciones:

- create_payment_intent(): pide a Stripe una autorizacion de cobro
  (PaymentIntent) y retorna el objeto con su client_secret. El frontend
  usa ese client_secret con Stripe.js para que el comprador pague.
- construct_event(): verifica la firma del webhook (header
  Stripe-Signature) con el secreto compartido y retorna el evento.

Todos los montos viajan en **unidades menores** (centavos): $19.99 -> 1999.
Por eso split_commission() trabaja en centavos y fulfillment.py convierte
de vuelta a decimales al guardar la Transaction.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import stripe

from spreadmarket.config import settings

CENTS = Decimal("100")


@dataclass
class CommissionSplit:
    """
    Reparto de un precio entre la plataforma y el creador, en centavos.

    Atributos:
        amount (int): Monto total a cobrar.
        platform_fee (int): Comision de la plataforma.
        creator_earnings (int): Lo que recibe el creador (amount - platform_fee).
    """
    amount: int
    platform_fee: int
    creator_earnings: int


def _round_cents(value: Decimal) -> int:
    # Redondeo "half up" (2.5 -> 3), el mismo que Math.round para positivos
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def split_commission(price, fee_percent: float | None = None) -> CommissionSplit:
    """
    Calcula el cobro y la comision para un precio en moneda decimal.

        >>> split_commission(Decimal("9.99"))
        CommissionSplit(amount=999, platform_fee=100, creator_earnings=899)
    """
    price = Decimal(str(price))
    fee = Decimal(str(settings.PLATFORM_FEE_PERCENT if fee_percent is None else fee_percent))
    amount = _round_cents(price * CENTS)
    platform_fee = _round_cents(price * fee * CENTS)
    return CommissionSplit(amount=amount, platform_fee=platform_fee, creator_earnings=amount - platform_fee)


def cents_to_decimal(cents: int) -> Decimal:
    return (Decimal(int(cents)) / CENTS).quantize(Decimal("0.01"))


class PaymentService:
    """
    Envoltura del SDK de Stripe.

    Parametros:
        api_key (str | None): Llave secreta; por defecto la de settings.
        webhook_secret (str | None): Secreto de firma de webhooks.
    """

    def __init__(self, api_key: str | None = None, webhook_secret: str | None = None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

    def create_payment_intent(self, amount: int, metadata: dict[str, str]):
        # Pasamos api_key por llamada en vez de mutar stripe.api_key global
        return stripe.PaymentIntent.create(
            amount=amount,
            currency=settings.STRIPE_CURRENCY,
            metadata=metadata,
            api_key=self.api_key,
        )

    def construct_event(self, payload: bytes, signature: str):
        """
        Verifica la firma y construye el evento.

        Lanza stripe.error.SignatureVerificationError si la firma no
        coincide (o el timestamp esta fuera de tolerancia) y ValueError si
        el payload no es JSON valido.
        """
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)


payment_service = PaymentService()


def get_payment_service() -> PaymentService:
    return payment_service

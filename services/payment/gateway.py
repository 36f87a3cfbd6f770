"""
services/payment/gateway.py
Stripe PaymentIntent creation behind a circuit breaker.
Only "create an intent, hand back the client secret" is supported.
"""

import logging
from dataclasses import dataclass

import stripe
from pybreaker import CircuitBreakerError

from config.settings import settings
from shared.exceptions.exceptions import PaymentGatewayError, ServiceUnavailable
from shared.utils.resilience import circuit_breaker_manager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntentResult:
    intent_id: str
    client_secret: str
    amount: int
    currency: str


class StripeGateway:
    """Thin adapter over stripe.PaymentIntent."""

    service_name = "stripe"
    currency = "usd"
    # Rejected input, not an outage
    client_errors = (stripe.InvalidRequestError, stripe.CardError)

    def __init__(self, secret_key: str | None = None):
        self.secret_key = settings.STRIPE_SECRET_KEY if secret_key is None else secret_key

    @property
    def breaker(self):
        return circuit_breaker_manager.get_breaker(self.service_name, exclude=self.client_errors)

    def _create(self, amount: int, metadata: dict) -> stripe.PaymentIntent:
        return stripe.PaymentIntent.create(
            amount=amount,
            currency=self.currency,
            payment_method_types=["card"],
            metadata=metadata,
            api_key=self.secret_key,
        )

    def create_payment_intent(self, amount: int, metadata: dict | None = None) -> PaymentIntentResult:
        if not self.secret_key:
            raise ServiceUnavailable("Payment gateway", "Stripe not configured")

        try:
            intent = self.breaker.call(self._create, amount, metadata or {})
        except CircuitBreakerError:
            logger.warning("Stripe circuit breaker open; refusing payment intent")
            raise ServiceUnavailable("Payment gateway")
        except stripe.StripeError as e:
            logger.warning(f"Stripe rejected payment intent: {e.user_message or e}")
            raise PaymentGatewayError(e.user_message or "Payment gateway error") from e

        return PaymentIntentResult(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            amount=amount,
            currency=self.currency,
        )


def get_payment_gateway() -> StripeGateway:
    return StripeGateway()

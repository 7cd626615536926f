"""
Stripe Payment Service Implementation

Production implementation using the official Stripe Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
    - STRIPE_WEBHOOK_SECRET for webhook verification

Security Notes:
    - Never log client secrets
    - Always verify webhook signatures
"""

import logging
from datetime import datetime
from typing import Optional

import stripe
from stripe import (
    APIConnectionError,
    AuthenticationError,
    InvalidRequestError,
    SignatureVerificationError,
    StripeError,
)

from storefront.core.config import get_settings
from storefront.services.payment.base import BasePaymentService, PaymentResult

logger = logging.getLogger(__name__)


class StripePaymentService(BasePaymentService):
    """
    Production Stripe payment service implementation.

    Configuration:
        Requires STRIPE_SECRET_KEY environment variable.
        Requires STRIPE_WEBHOOK_SECRET to accept webhooks.
    """

    def __init__(self):
        """
        Initialize Stripe with API key from settings.

        Raises:
            ValueError: If STRIPE_SECRET_KEY is not configured
        """
        settings = get_settings()

        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        stripe.api_key = settings.stripe_secret_key
        stripe.api_version = "2024-06-20"  # Pin API version for stability

        self._webhook_secret = settings.stripe_webhook_secret
        self._currency = settings.stripe_currency

        logger.info(
            f"StripePaymentService initialized "
            f"(api_version={stripe.api_version})"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "stripe"

    def _elapsed_ms(self, start_time: datetime) -> float:
        return (datetime.now() - start_time).total_seconds() * 1000

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: Optional[str] = None,
        metadata: Optional[dict] = None,
        description: Optional[str] = None,
        receipt_email: Optional[str] = None,
    ) -> PaymentResult:
        """
        Create a PaymentIntent for client-side confirmation.

        Returns a client_secret that the storefront uses with Stripe.js
        to complete the payment.
        """
        start_time = datetime.now()
        currency = currency or self._currency

        if amount_cents <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency,
                description=description or "Pickup order",
                receipt_email=receipt_email,
                metadata=metadata or {},
                automatic_payment_methods={"enabled": True},
            )

            logger.info(
                f"Stripe: PaymentIntent created - {intent.id} - "
                f"status={intent.status}"
            )

            return PaymentResult(
                success=True,
                payment_intent_id=intent.id,
                client_secret=intent.client_secret,
                amount_cents=intent.amount,
                currency=intent.currency,
                response_time_ms=self._elapsed_ms(start_time),
            )

        except InvalidRequestError as e:
            logger.error(f"Stripe: Invalid request - {e}")
            return PaymentResult(
                success=False,
                error_message=str(e),
                error_code="invalid_request",
                response_time_ms=self._elapsed_ms(start_time),
            )

        except AuthenticationError as e:
            logger.critical(f"Stripe: Authentication failed - {e}")
            return PaymentResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )

        except APIConnectionError as e:
            logger.error(f"Stripe: Connection error - {e}")
            return PaymentResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=self._elapsed_ms(start_time),
            )

        except StripeError as e:
            logger.error(f"Stripe: Failed to create PaymentIntent - {e}")
            return PaymentResult(
                success=False,
                error_message="Payment processing error",
                error_code="stripe_error",
                response_time_ms=self._elapsed_ms(start_time),
            )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """
        Verify and parse a Stripe webhook event.

        Events are rejected outright when no webhook secret is configured.
        """
        if not self._webhook_secret:
            logger.error("Stripe: Webhook secret not configured, rejecting event")
            return None
        if not signature:
            logger.warning("Stripe: Webhook without Stripe-Signature header")
            return None

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self._webhook_secret,
            )
        except SignatureVerificationError as e:
            logger.warning(f"Stripe: Webhook signature invalid - {e}")
            return None
        except ValueError as e:
            logger.warning(f"Stripe: Webhook payload invalid - {e}")
            return None

        logger.debug(f"Stripe: Webhook verified - {event['type']}")
        return event.to_dict()

    async def health_check(self) -> bool:
        """Verify Stripe API connectivity with a lightweight call."""
        try:
            stripe.Account.retrieve()
            logger.debug("Stripe: Health check passed")
            return True

        except StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False

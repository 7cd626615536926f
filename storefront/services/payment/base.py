"""
Payment Service Abstract Base Class

Defines the interface contract for all payment service implementations.
Both MockPaymentService and StripePaymentService implement these methods,
so order flows behave the same regardless of which service is active.

Card orders use client-side confirmation: the server creates a payment
intent, the storefront confirms it with the returned client secret, and the
provider reports the outcome through a webhook.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class PaymentResult:
    """
    Standardized result from payment-intent creation.

    Attributes:
        success: Whether the intent was created
        payment_intent_id: Provider identifier (Stripe format: pi_xxx)
        client_secret: Secret the storefront uses to confirm the payment
        amount_cents: Amount in the smallest currency unit
        currency: Currency code (e.g., "eur")
        error_message: Error description if creation failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the provider
    """
    success: bool
    payment_intent_id: Optional[str] = None
    client_secret: Optional[str] = None
    amount_cents: Optional[int] = None
    currency: str = "eur"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> service = get_payment_service()  # Returns Mock or Stripe
        >>> result = await service.create_payment_intent(
        ...     amount_cents=2450,
        ...     metadata={"order_id": "..."},
        ... )
        >>> if result.success:
        ...     print(result.client_secret)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the payment provider (e.g., "mock", "stripe")."""
        pass

    @abstractmethod
    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: Optional[str] = None,
        metadata: Optional[dict] = None,
        description: Optional[str] = None,
        receipt_email: Optional[str] = None,
    ) -> PaymentResult:
        """
        Create a payment intent for client-side confirmation.

        Args:
            amount_cents: Amount in the smallest currency unit
            currency: Currency code (defaults to the configured currency)
            metadata: Key-value data attached to the intent
            description: Statement description
            receipt_email: Where the provider sends the receipt

        Returns:
            PaymentResult: Contains the client secret on success
        """
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """
        Verify and parse a webhook from the payment provider.

        Returns:
            dict: Parsed webhook event if valid, None if invalid
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the payment service."""
        pass

"""
Mock Payment Service Implementation

Simulates Stripe-like payment intents without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Exercise the card order flow locally
    - Run tests without network access

Behavior:
    - Optional simulated latency and failure rate
    - Generates Stripe-like IDs (pi_mock_xxx) and client secrets
    - Accepts unsigned webhook payloads
"""

import asyncio
import json
import logging
import random
import uuid
from typing import Optional

from storefront.services.payment.base import BasePaymentService, PaymentResult

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Attributes:
        failure_rate: Probability of simulated provider failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> service = MockPaymentService()
        >>> result = await service.create_payment_intent(2450)
        >>> result.payment_intent_id.startswith("pi_mock_")
        True
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        currency: str = "eur",
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.currency = currency
        self.created: list[PaymentResult] = []

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    async def _simulate_latency(self) -> float:
        """Sleep for a random latency; returns it in milliseconds."""
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: Optional[str] = None,
        metadata: Optional[dict] = None,
        description: Optional[str] = None,
        receipt_email: Optional[str] = None,
    ) -> PaymentResult:
        """Simulate PaymentIntent creation."""
        elapsed_ms = await self._simulate_latency()

        if amount_cents <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
                response_time_ms=elapsed_ms,
            )

        if self._should_fail():
            logger.warning("Mock: Simulated payment provider failure")
            return PaymentResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="processing_error",
                response_time_ms=elapsed_ms,
            )

        intent_id = f"pi_mock_{uuid.uuid4().hex[:24]}"
        result = PaymentResult(
            success=True,
            payment_intent_id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
            amount_cents=amount_cents,
            currency=currency or self.currency,
            response_time_ms=elapsed_ms,
        )
        self.created.append(result)

        logger.info(f"Mock: PaymentIntent created - {intent_id} ({amount_cents} cents)")
        return result

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """Parse the payload without signature verification."""
        try:
            event = json.loads(payload)
        except (TypeError, ValueError):
            logger.warning("Mock: Webhook payload is not valid JSON")
            return None
        return event if isinstance(event, dict) and "type" in event else None

    async def health_check(self) -> bool:
        return True

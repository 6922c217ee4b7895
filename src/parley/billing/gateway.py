"""In-process stand-in for the card payment provider.

No network calls are made and every intent confirms successfully.  The
ids it issues look like the real provider's (``cus_``, ``pi_``) with a
``mock`` marker so they are never mistaken for live ones.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


def _stamp() -> str:
    return f"{int(time.time() * 1000)}_{secrets.token_hex(4)}"


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str
    amount_cents: int
    currency: str
    customer_id: str
    status: str = "requires_payment_method"
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def amount(self) -> float:
        return self.amount_cents / 100


class MockPaymentGateway:
    """Issues customer and payment-intent ids; always succeeds."""

    test_mode = True

    async def create_customer(self, email: str, name: str, user_id: str) -> str:
        customer_id = f"cus_mock_{_stamp()}"
        logger.debug("Mock customer %s created for %s", customer_id, user_id)
        return customer_id

    async def create_payment_intent(
        self,
        amount: float,
        customer_id: str,
        *,
        currency: str = "usd",
        metadata: dict[str, Any] | None = None,
    ) -> PaymentIntent:
        stamp = _stamp()
        return PaymentIntent(
            id=f"pi_mock_{stamp}",
            client_secret=f"mock_client_secret_{stamp}",
            amount_cents=round(amount * 100),
            currency=currency,
            customer_id=customer_id,
            metadata=dict(metadata or {}),
        )

    async def confirm_payment_intent(self, payment_intent_id: str) -> str:
        """Return the provider's status for the intent; always ``succeeded``."""
        return "succeeded"

    def quick_ids(self) -> tuple[str, str]:
        """Intent and customer ids for a charge that skips the intent step."""
        stamp = _stamp()
        return f"pi_mock_quick_{stamp}", f"cus_mock_quick_{stamp}"

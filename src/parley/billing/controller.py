"""Subscription purchase flow against the mock payment gateway.

An intent is created first and recorded as a pending ``Payment``;
confirming it marks the payment succeeded and moves the user onto the
purchased plan.  Quick upgrade does both in one step.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from parley.billing.gateway import MockPaymentGateway
from parley.billing.plans import get_plan_price
from parley.billing.schemas import AccountView, PaymentView
from parley.db.crud import payments as payments_crud
from parley.db.crud.users import activate_subscription
from parley.db.models import User
from parley.messaging.errors import NotFoundError, ValidationError
from parley.messaging.schemas import Pagination

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

_INVALID_PLAN = "Invalid plan type or duration"
_NOT_FOUND = "Payment not found"


def _describe(plan_type: str, duration: str) -> str:
    return f"{plan_type.capitalize()} {duration} subscription"


class BillingController:
    """Payment operations for one request's session."""

    def __init__(self, session: AsyncSession, gateway: MockPaymentGateway) -> None:
        self._session = session
        self._gateway = gateway

    def _price(self, plan_type: str, duration: str) -> float:
        amount = get_plan_price(plan_type, duration)
        if not amount or amount <= 0:
            raise ValidationError(_INVALID_PLAN)
        return amount

    async def create_payment_intent(
        self, user: User, plan_type: str = "premium", duration: str = "monthly"
    ) -> dict[str, Any]:
        """Open a payment intent for a paid plan and record it as pending."""
        amount = self._price(plan_type, duration)
        customer_id = await self._gateway.create_customer(user.email, user.name, user.id)
        details = {"userId": user.id, "planType": plan_type, "duration": duration}
        intent = await self._gateway.create_payment_intent(
            amount, customer_id, metadata=details
        )
        await payments_crud.create_payment(
            self._session,
            user.id,
            intent.id,
            customer_id,
            amount,
            plan_type,
            duration,
            status=intent.status,
            description=_describe(plan_type, duration),
            details=details,
        )
        logger.info("Payment intent %s created for %s", intent.id, user.id)
        return {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "amount": intent.amount,
            "currency": intent.currency,
            "status": intent.status,
            "planType": plan_type,
            "duration": duration,
            "testMode": self._gateway.test_mode,
            "message": "MOCK MODE: Use any test card details",
        }

    async def confirm_payment(self, user: User, payment_intent_id: str | None) -> PaymentView:
        """Settle a pending intent and activate the purchased plan.

        Confirming an already-succeeded payment returns it unchanged.
        """
        if not payment_intent_id:
            raise ValidationError("Payment intent ID is required")
        payment = await payments_crud.get_payment_by_intent(
            self._session, payment_intent_id, user.id
        )
        if payment is None:
            raise NotFoundError(_NOT_FOUND)
        if payment.status == "succeeded":
            return PaymentView.from_payment(payment)

        status = await self._gateway.confirm_payment_intent(payment_intent_id)
        await payments_crud.set_payment_status(
            self._session, payment, status, payment_method="card", commit=False
        )
        await activate_subscription(self._session, user.id, payment.plan_type, payment.duration)
        await self._session.refresh(payment)
        logger.info(
            "Payment %s confirmed; %s now on %s", payment_intent_id, user.id, payment.plan_type
        )
        return PaymentView.from_payment(payment)

    async def get_payment_status(self, user: User, payment_intent_id: str) -> dict[str, Any]:
        payment = await payments_crud.get_payment_by_intent(
            self._session, payment_intent_id, user.id
        )
        if payment is None:
            raise NotFoundError(_NOT_FOUND)
        view = PaymentView.from_payment(payment)
        return {
            "paymentIntent": {
                "id": payment.payment_intent_id,
                "status": payment.status,
                "amount": payment.amount,
                "currency": payment.currency,
            },
            "payment": view.dump(),
        }

    async def get_history(
        self, user: User, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> tuple[list[PaymentView], Pagination]:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive integers")
        payments, total = await payments_crud.list_payments(
            self._session, user.id, offset=(page - 1) * limit, limit=limit
        )
        return [PaymentView.from_payment(p) for p in payments], Pagination.compute(page, limit, total)

    async def get_payment(self, user: User, payment_id: int) -> PaymentView:
        payment = await payments_crud.get_payment(self._session, payment_id, user.id)
        if payment is None:
            raise NotFoundError(_NOT_FOUND)
        return PaymentView.from_payment(payment)

    async def quick_upgrade(
        self, user: User, plan_type: str = "premium", duration: str = "monthly"
    ) -> tuple[AccountView, PaymentView]:
        """Record a succeeded charge and switch plans without an intent round trip."""
        amount = self._price(plan_type, duration)
        intent_id, customer_id = self._gateway.quick_ids()
        payment = await payments_crud.create_payment(
            self._session,
            user.id,
            intent_id,
            customer_id,
            amount,
            plan_type,
            duration,
            status="succeeded",
            payment_method="card",
            description=f"{_describe(plan_type, duration)} (Quick Upgrade)",
            commit=False,
        )
        updated = await activate_subscription(self._session, user.id, plan_type, duration)
        await self._session.refresh(payment)
        logger.info("Quick upgrade: %s to %s", user.id, plan_type)
        return AccountView.from_user(updated), PaymentView.from_payment(payment)  # type: ignore[arg-type]

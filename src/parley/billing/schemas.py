"""Client-facing views of payments and account subscription state."""

from __future__ import annotations

from datetime import datetime

from parley.db.models import Payment, User
from parley.messaging.schemas import CamelModel


class PaymentView(CamelModel):
    id: int
    payment_intent_id: str
    customer_id: str
    amount: float
    currency: str
    status: str
    payment_method: str | None = None
    description: str
    plan_type: str
    duration: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_payment(cls, payment: Payment) -> PaymentView:
        return cls(
            id=payment.id,
            payment_intent_id=payment.payment_intent_id,
            customer_id=payment.customer_id,
            amount=payment.amount,
            currency=payment.currency,
            status=payment.status,
            payment_method=payment.payment_method,
            description=payment.description,
            plan_type=payment.plan_type,
            duration=payment.duration,
            created_at=payment.created_at,
            updated_at=payment.updated_at,
        )


class SubscriptionView(CamelModel):
    plan: str
    status: str
    duration: str | None = None
    started_at: datetime | None = None


class AccountView(CamelModel):
    """A user's own profile including subscription and item quota usage."""

    id: str
    name: str
    email: str
    avatar_url: str
    subscription: SubscriptionView
    item_count: int

    @classmethod
    def from_user(cls, user: User) -> AccountView:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            avatar_url=user.avatar_url,
            subscription=SubscriptionView(
                plan=user.subscription_plan,
                status=user.subscription_status,
                duration=user.subscription_duration,
                started_at=user.subscription_started_at,
            ),
            item_count=user.item_count,
        )

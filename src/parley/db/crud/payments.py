"""CRUD operations for Payment entities.

Every function takes ``session: AsyncSession`` as its first parameter.
Lookups are always scoped to the paying user.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from parley.db.models import Payment, utcnow


async def create_payment(
    session: AsyncSession,
    user_id: str,
    payment_intent_id: str,
    customer_id: str,
    amount: float,
    plan_type: str,
    duration: str,
    *,
    currency: str = "usd",
    status: str = "requires_payment_method",
    payment_method: str | None = None,
    description: str = "",
    details: dict | None = None,
    commit: bool = True,
) -> Payment:
    payment = Payment(
        user_id=user_id,
        payment_intent_id=payment_intent_id,
        customer_id=customer_id,
        amount=amount,
        currency=currency,
        status=status,
        payment_method=payment_method,
        description=description,
        plan_type=plan_type,
        duration=duration,
        details=dict(details or {}),
    )
    session.add(payment)
    if commit:
        await session.commit()
        await session.refresh(payment)
    else:
        await session.flush()
    return payment


async def get_payment(session: AsyncSession, payment_id: int, user_id: str) -> Payment | None:
    stmt = select(Payment).where(Payment.id == payment_id, Payment.user_id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_payment_by_intent(
    session: AsyncSession, payment_intent_id: str, user_id: str
) -> Payment | None:
    """Look up a payment by provider intent id, only if *user_id* made it."""
    stmt = select(Payment).where(
        Payment.payment_intent_id == payment_intent_id, Payment.user_id == user_id
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_payments(
    session: AsyncSession, user_id: str, *, offset: int = 0, limit: int = 10
) -> tuple[list[Payment], int]:
    """One page of the user's payments, newest first, plus the total."""
    stmt = (
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())  # type: ignore[union-attr]
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(stmt)
    payments = list(result.scalars().all())

    count = await session.execute(
        select(func.count()).select_from(Payment).where(Payment.user_id == user_id)
    )
    return payments, count.scalar_one()


async def set_payment_status(
    session: AsyncSession,
    payment: Payment,
    status: str,
    *,
    payment_method: str | None = None,
    commit: bool = True,
) -> Payment:
    payment.status = status
    if payment_method is not None:
        payment.payment_method = payment_method
    payment.updated_at = utcnow()
    session.add(payment)
    if commit:
        await session.commit()
        await session.refresh(payment)
    else:
        await session.flush()
    return payment

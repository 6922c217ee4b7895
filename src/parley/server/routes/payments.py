"""Subscription and (mocked) payment endpoints.

GET  /payments/plans                  -- plan catalogue (public)
GET  /payments/test-cards             -- sample card numbers (public)
POST /payments/create-payment-intent  -- open an intent for a paid plan
POST /payments/confirm-payment        -- settle it and activate the plan
GET  /payments/status/{intent_id}     -- one intent's status
GET  /payments/history                -- caller's payments, newest first
POST /payments/quick-upgrade          -- charge and switch plan in one step
GET  /payments/{id}                   -- one payment
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from parley.billing.controller import DEFAULT_PAGE_SIZE, BillingController
from parley.billing.plans import PLANS, TEST_CARDS
from parley.db.models import User
from parley.db.session import get_session
from parley.server.auth import verify_token_http
from parley.server.models import ConfirmPaymentRequest, PlanRequest

router = APIRouter(prefix="/payments", tags=["payments"])


def _controller(request: Request, session: AsyncSession) -> BillingController:
    return BillingController(session, request.app.state.gateway)


@router.get("/plans")
async def list_plans() -> dict[str, Any]:
    return {
        "success": True,
        "data": [plan.to_dict() for plan in PLANS],
        "message": "Subscription plans retrieved successfully",
    }


@router.get("/test-cards")
async def test_cards() -> dict[str, Any]:
    return {
        "success": True,
        "data": list(TEST_CARDS),
        "message": "Use any card details in mock mode. No real payment will be processed.",
    }


@router.post("/create-payment-intent")
async def create_payment_intent(
    body: PlanRequest,
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    data = await _controller(request, session).create_payment_intent(
        user, body.plan_type, body.duration
    )
    return {
        "success": True,
        "data": data,
        "message": "Payment intent created successfully (Mock Mode)",
    }


@router.post("/confirm-payment")
async def confirm_payment(
    body: ConfirmPaymentRequest,
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    payment = await _controller(request, session).confirm_payment(user, body.payment_intent_id)
    return {
        "success": True,
        "data": payment.dump(),
        "message": (
            "Payment confirmed successfully! "
            f"Your account has been upgraded to {payment.plan_type}."
        ),
    }


@router.get("/status/{payment_intent_id}")
async def payment_status(
    payment_intent_id: str,
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    data = await _controller(request, session).get_payment_status(user, payment_intent_id)
    return {"success": True, "data": data}


@router.get("/history")
async def payment_history(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=100),
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    payments, pagination = await _controller(request, session).get_history(user, page, limit)
    return {
        "success": True,
        "data": [payment.dump() for payment in payments],
        "pagination": pagination.model_dump(),
    }


@router.post("/quick-upgrade")
async def quick_upgrade(
    body: PlanRequest,
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    account, payment = await _controller(request, session).quick_upgrade(
        user, body.plan_type, body.duration
    )
    return {
        "success": True,
        "data": {"user": account.dump(), "payment": payment.dump()},
        "message": f"Successfully upgraded to {body.plan_type} plan!",
    }


@router.get("/{payment_id}")
async def get_payment(
    payment_id: int,
    request: Request,
    user: User = Depends(verify_token_http),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    payment = await _controller(request, session).get_payment(user, payment_id)
    return {"success": True, "data": payment.dump()}

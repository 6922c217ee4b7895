"""Subscription plans and the mocked payment flow."""

from parley.billing.controller import BillingController
from parley.billing.gateway import MockPaymentGateway
from parley.billing.plans import PLANS, get_plan_price

__all__ = ["BillingController", "MockPaymentGateway", "PLANS", "get_plan_price"]

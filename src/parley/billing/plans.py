"""Subscription plan catalogue."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DURATIONS = ("monthly", "yearly")


@dataclass(frozen=True)
class Plan:
    type: str
    name: str
    description: str
    monthly: float
    yearly: float
    features: tuple[str, ...] = field(default=())

    def price(self, duration: str) -> float | None:
        if duration not in DURATIONS:
            return None
        return self.monthly if duration == "monthly" else self.yearly

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "price": {"monthly": self.monthly, "yearly": self.yearly},
            "features": list(self.features),
        }


PLANS: tuple[Plan, ...] = (
    Plan(
        "free",
        "Free",
        "Perfect for getting started",
        0,
        0,
        ("Up to 5 items", "Basic messaging", "Standard support", "1GB storage"),
    ),
    Plan(
        "premium",
        "Premium",
        "Best for power users",
        9.99,
        95.88,
        (
            "Unlimited items",
            "Advanced messaging with files",
            "Priority support",
            "10GB storage",
            "Advanced analytics",
            "Custom themes",
        ),
    ),
    Plan(
        "enterprise",
        "Enterprise",
        "For teams and businesses",
        29.99,
        287.88,
        (
            "Everything in Premium",
            "Unlimited storage",
            "Dedicated support",
            "Custom integrations",
            "API access",
            "Team management",
        ),
    ),
)


def get_plan(plan_type: str) -> Plan | None:
    return next((plan for plan in PLANS if plan.type == plan_type), None)


def get_plan_price(plan_type: str, duration: str = "monthly") -> float | None:
    """Price of *plan_type* billed per *duration*, or ``None`` if either is unknown."""
    plan = get_plan(plan_type)
    return plan.price(duration) if plan is not None else None


TEST_CARDS: tuple[dict[str, str], ...] = tuple(
    {"number": number, "expiry": "12/34", "cvc": "123", "description": description}
    for number, description in (
        ("4242424242424242", "Visa (successful payment)"),
        ("4000000000000002", "Visa (payment declined)"),
        ("4000002500003155", "Requires authentication"),
        ("5555555555554444", "Mastercard (successful payment)"),
        ("2223003122003222", "Mastercard (2-series)"),
    )
)

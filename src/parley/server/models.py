"""Pydantic request models for the REST API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(_CamelRequest):
    name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    avatar_url: str = ""


class ProfileUpdateRequest(_CamelRequest):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    avatar_url: str | None = None


class MarkReadRequest(_CamelRequest):
    # Left untyped so the controller reports malformed ids itself.
    message_ids: list | None = None


class TypingRequest(_CamelRequest):
    receiver_id: str | None = None
    is_typing: bool = False


class RemoveImageRequest(_CamelRequest):
    image_url: str | None = None


class PlanRequest(_CamelRequest):
    plan_type: str = "premium"
    duration: str = "monthly"


class ConfirmPaymentRequest(_CamelRequest):
    payment_intent_id: str | None = None

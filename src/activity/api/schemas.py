"""Pydantic request/response models for the activity API.

API schemas are separate from Protean commands (anti-corruption pattern).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class NotificationFilter(str, Enum):
    AUTO = "auto"
    OPENED = "opened"
    UNOPENED = "unopened"


class KeyFilter(str, Enum):
    CONFIGURED = "configured"
    UNCONFIGURED = "unconfigured"


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------
class OpenAllRequest(BaseModel):
    filtered_by_type: str | None = Field(None, examples=["Comment"])
    filtered_by_group_type: str | None = Field(None, examples=["Article"])
    filtered_by_group_id: str | None = None
    filtered_by_key: str | None = Field(None, examples=["comment.create"])


class CreateSubscriptionRequest(BaseModel):
    key: str = Field(..., min_length=1, max_length=255, examples=["comment.create"])
    subscribing: bool | None = None
    subscribing_to_email: bool | None = None
    optional_targets: dict[str, bool] = Field(
        default_factory=dict,
        examples=[{"slack": True}],
        description="Optional target name mapped to its subscription flag",
    )


class SubscribeRequest(BaseModel):
    with_email_subscription: bool = True
    with_optional_targets: bool | None = None


class ProcessCascadesRequest(BaseModel):
    as_of: datetime | None = None


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class CountResponse(BaseModel):
    count: int


class NotificationResponse(BaseModel):
    notification_id: str
    target_type: str
    target_id: str
    notifiable_type: str
    notifiable_id: str
    key: str
    group_type: str | None = None
    group_id: str | None = None
    group_owner_id: str | None = None
    notifier_type: str | None = None
    notifier_id: str | None = None
    parameters: dict = Field(default_factory=dict)
    opened_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    group_member_count: int = 0


class NotificationListResponse(BaseModel):
    count: int
    unopened_count: int
    notifications: list[NotificationResponse]


class SubscriptionResponse(BaseModel):
    subscription_id: str
    target_type: str
    target_id: str
    key: str
    subscribing: bool
    subscribing_to_email: bool
    subscribed_at: datetime | None = None
    unsubscribed_at: datetime | None = None
    subscribed_to_email_at: datetime | None = None
    unsubscribed_to_email_at: datetime | None = None
    optional_targets: dict = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SubscriptionListResponse(BaseModel):
    count: int
    subscriptions: list[SubscriptionResponse]


class NotificationKeysResponse(BaseModel):
    count: int
    keys: list[str]

"""FastAPI routes for the activity domain.

Thin adapters that translate HTTP requests into domain commands (writes)
and store queries (reads). Every route under ``/targets`` acts on behalf
of one target, checked against the current resource.
"""

import json

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from activity.api.dependencies import authorized_target
from activity.api.schemas import (
    CountResponse,
    CreateSubscriptionRequest,
    KeyFilter,
    NotificationFilter,
    NotificationKeysResponse,
    NotificationListResponse,
    NotificationResponse,
    OpenAllRequest,
    ProcessCascadesRequest,
    SubscribeRequest,
    SubscriptionListResponse,
    SubscriptionResponse,
)
from activity.cascade.processing import ProcessDueCascades
from activity.config import get_settings
from activity.errors import NotFoundError
from activity.notification.batch import FlushBatchNotifications
from activity.notification.opening import OpenAllNotifications, OpenNotification
from activity.notification.store import NotificationStore
from activity.subscription.management import (
    CreateSubscription,
    Subscribe,
    SubscribeToEmail,
    SubscribeToOptionalTarget,
    Unsubscribe,
    UnsubscribeToEmail,
    UnsubscribeToOptionalTarget,
)
from activity.subscription.store import SubscriptionStore

router = APIRouter(prefix="/targets/{target_type}/{target_id}", tags=["activity"])
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


def _notification_response(notification, store: NotificationStore) -> NotificationResponse:
    return NotificationResponse(
        notification_id=str(notification.id),
        target_type=notification.target_type,
        target_id=notification.target_id,
        notifiable_type=notification.notifiable_type,
        notifiable_id=notification.notifiable_id,
        key=notification.key,
        group_type=notification.group_type,
        group_id=notification.group_id,
        group_owner_id=str(notification.group_owner_id) if notification.group_owner_id else None,
        notifier_type=notification.notifier_type,
        notifier_id=notification.notifier_id,
        parameters=notification.parameter_dict(),
        opened_at=notification.opened_at,
        created_at=notification.created_at,
        updated_at=notification.updated_at,
        group_member_count=store.group_member_count(notification) if notification.is_group_owner else 0,
    )


def _subscription_response(subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        subscription_id=str(subscription.id),
        target_type=subscription.target_type,
        target_id=subscription.target_id,
        key=subscription.key,
        subscribing=subscription.subscribing,
        subscribing_to_email=subscription.subscribing_to_email,
        subscribed_at=subscription.subscribed_at,
        unsubscribed_at=subscription.unsubscribed_at,
        subscribed_to_email_at=subscription.subscribed_to_email_at,
        unsubscribed_to_email_at=subscription.unsubscribed_to_email_at,
        optional_targets=subscription.optional_target_settings(),
        created_at=subscription.created_at,
        updated_at=subscription.updated_at,
    )


def _subscription_or_404(target, key):
    subscription = SubscriptionStore(get_settings()).find(target, key)
    if subscription is None:
        raise NotFoundError(f"Couldn't find subscription for {key}")
    return subscription


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    filter: NotificationFilter = NotificationFilter.AUTO,
    limit: int | None = None,
    reverse: bool = False,
    with_group_members: bool = False,
    key: str | None = None,
    notifiable_type: str | None = None,
    target=Depends(authorized_target),
) -> NotificationListResponse:
    """List a target's notifications (unopened first for ``auto``)."""
    store = NotificationStore(get_settings())
    options = {
        "limit": limit,
        "reverse": reverse,
        "with_group_members": with_group_members,
        "filtered_by_key": key,
        "filtered_by_type": notifiable_type,
    }
    if filter == NotificationFilter.OPENED:
        notifications = store.opened_notification_index(target, **options)
    elif filter == NotificationFilter.UNOPENED:
        notifications = store.unopened_notification_index(target, **options)
    else:
        notifications = store.notification_index(target, **options)

    return NotificationListResponse(
        count=len(notifications),
        unopened_count=store.unopened_notification_count(target, filtered_by_key=key, filtered_by_type=notifiable_type),
        notifications=[_notification_response(n, store) for n in notifications],
    )


@router.post("/notifications/open_all", response_model=CountResponse)
async def open_all_notifications(body: OpenAllRequest, target=Depends(authorized_target)) -> CountResponse:
    """Open every unopened notification of the target matching the filters."""
    command = OpenAllNotifications(
        target_type=target.target_type,
        target_id=str(target.target_id),
        filtered_by_type=body.filtered_by_type,
        filtered_by_group_type=body.filtered_by_group_type,
        filtered_by_group_id=body.filtered_by_group_id,
        filtered_by_key=body.filtered_by_key,
    )
    count = current_domain.process(command, asynchronous=False)
    return CountResponse(count=count)


@router.post("/notifications/batch/{key}", response_model=CountResponse)
async def flush_batch_notifications(key: str, target=Depends(authorized_target)) -> CountResponse:
    """Send the target's unopened notifications of ``key`` as one batch email."""
    command = FlushBatchNotifications(target_type=target.target_type, target_id=str(target.target_id), key=key)
    count = current_domain.process(command, asynchronous=False)
    return CountResponse(count=count)


@router.get("/notifications/{notification_id}", response_model=NotificationResponse)
async def get_notification(notification_id: str, target=Depends(authorized_target)) -> NotificationResponse:
    store = NotificationStore(get_settings())
    return _notification_response(store.find(target, notification_id), store)


@router.put("/notifications/{notification_id}/open", response_model=CountResponse)
async def open_notification(
    notification_id: str, with_members: bool = True, target=Depends(authorized_target)
) -> CountResponse:
    """Open a notification (and the members of the group it owns)."""
    command = OpenNotification(
        target_type=target.target_type,
        target_id=str(target.target_id),
        notification_id=notification_id,
        with_members=with_members,
    )
    count = current_domain.process(command, asynchronous=False)
    return CountResponse(count=count)


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------
@router.get("/subscriptions", response_model=SubscriptionListResponse)
async def list_subscriptions(
    limit: int | None = None,
    reverse: bool = False,
    key: str | None = None,
    target=Depends(authorized_target),
) -> SubscriptionListResponse:
    subscriptions = SubscriptionStore(get_settings()).subscription_index(
        target, limit=limit, reverse=reverse, filtered_by_key=key
    )
    return SubscriptionListResponse(
        count=len(subscriptions),
        subscriptions=[_subscription_response(s) for s in subscriptions],
    )


@router.post("/subscriptions", status_code=201, response_model=SubscriptionResponse)
async def create_subscription(
    body: CreateSubscriptionRequest, target=Depends(authorized_target)
) -> SubscriptionResponse:
    command = CreateSubscription(
        target_type=target.target_type,
        target_id=str(target.target_id),
        key=body.key,
        subscribing=body.subscribing,
        subscribing_to_email=body.subscribing_to_email,
        optional_targets=json.dumps(body.optional_targets),
    )
    current_domain.process(command, asynchronous=False)
    return _subscription_response(_subscription_or_404(target, body.key))


@router.get("/subscriptions/{key}", response_model=SubscriptionResponse)
async def get_subscription(key: str, target=Depends(authorized_target)) -> SubscriptionResponse:
    return _subscription_response(_subscription_or_404(target, key))


@router.put("/subscriptions/{key}/subscribe", response_model=SubscriptionResponse)
async def subscribe(
    key: str, body: SubscribeRequest | None = None, target=Depends(authorized_target)
) -> SubscriptionResponse:
    body = body or SubscribeRequest()
    command = Subscribe(
        target_type=target.target_type,
        target_id=str(target.target_id),
        key=key,
        with_email_subscription=body.with_email_subscription,
        with_optional_targets=body.with_optional_targets,
    )
    current_domain.process(command, asynchronous=False)
    return _subscription_response(_subscription_or_404(target, key))


@router.put("/subscriptions/{key}/unsubscribe", response_model=SubscriptionResponse)
async def unsubscribe(key: str, target=Depends(authorized_target)) -> SubscriptionResponse:
    command = Unsubscribe(target_type=target.target_type, target_id=str(target.target_id), key=key)
    current_domain.process(command, asynchronous=False)
    return _subscription_response(_subscription_or_404(target, key))


@router.put("/subscriptions/{key}/subscribe_to_email", response_model=SubscriptionResponse)
async def subscribe_to_email(key: str, target=Depends(authorized_target)) -> SubscriptionResponse:
    command = SubscribeToEmail(target_type=target.target_type, target_id=str(target.target_id), key=key)
    current_domain.process(command, asynchronous=False)
    return _subscription_response(_subscription_or_404(target, key))


@router.put("/subscriptions/{key}/unsubscribe_to_email", response_model=SubscriptionResponse)
async def unsubscribe_to_email(key: str, target=Depends(authorized_target)) -> SubscriptionResponse:
    command = UnsubscribeToEmail(target_type=target.target_type, target_id=str(target.target_id), key=key)
    current_domain.process(command, asynchronous=False)
    return _subscription_response(_subscription_or_404(target, key))


@router.put("/subscriptions/{key}/subscribe_to_optional_target/{name}", response_model=SubscriptionResponse)
async def subscribe_to_optional_target(key: str, name: str, target=Depends(authorized_target)) -> SubscriptionResponse:
    command = SubscribeToOptionalTarget(
        target_type=target.target_type,
        target_id=str(target.target_id),
        key=key,
        optional_target_name=name,
    )
    current_domain.process(command, asynchronous=False)
    return _subscription_response(_subscription_or_404(target, key))


@router.put("/subscriptions/{key}/unsubscribe_to_optional_target/{name}", response_model=SubscriptionResponse)
async def unsubscribe_to_optional_target(
    key: str, name: str, target=Depends(authorized_target)
) -> SubscriptionResponse:
    command = UnsubscribeToOptionalTarget(
        target_type=target.target_type,
        target_id=str(target.target_id),
        key=key,
        optional_target_name=name,
    )
    current_domain.process(command, asynchronous=False)
    return _subscription_response(_subscription_or_404(target, key))


# ---------------------------------------------------------------------------
# Notification keys
# ---------------------------------------------------------------------------
@router.get("/notification_keys", response_model=NotificationKeysResponse)
async def list_notification_keys(
    filter: KeyFilter | None = None,
    limit: int | None = None,
    reverse: bool = False,
    target=Depends(authorized_target),
) -> NotificationKeysResponse:
    keys = SubscriptionStore(get_settings()).notification_keys(
        target, filter=filter.value if filter else None, limit=limit, reverse=reverse
    )
    return NotificationKeysResponse(count=len(keys), keys=keys)


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
@maintenance_router.post("/process-cascades", response_model=CountResponse)
async def process_cascades(body: ProcessCascadesRequest | None = None) -> CountResponse:
    """Run every due cascade step (invoked by a scheduler)."""
    command = ProcessDueCascades(as_of=body.as_of if body else None)
    count = current_domain.process(command, asynchronous=False)
    return CountResponse(count=count)

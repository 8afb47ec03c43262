"""Webhook management API router."""

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from orderdesk.common.exceptions import NotFoundError, ValidationError
from orderdesk.common.schemas import PaginatedResponse
from orderdesk.deps import ServiceContainer, get_container
from orderdesk.webhooks.schemas import (
    WebhookDeliveryResponse,
    WebhookSubscriptionCreate,
    WebhookSubscriptionResponse,
    WebhookSubscriptionUpdate,
)

router = APIRouter()


@router.get("/webhooks", response_model=list[WebhookSubscriptionResponse])
async def list_webhook_subscriptions(
    is_active: bool | None = Query(None),
    container: ServiceContainer = Depends(get_container),
):
    async with container.db.get_session() as session:
        subscriptions = await container.webhooks.list_subscriptions(
            session, is_active=is_active,
        )
        return [WebhookSubscriptionResponse.model_validate(s) for s in subscriptions]


@router.post("/webhooks", response_model=WebhookSubscriptionResponse, status_code=201)
async def create_webhook_subscription(
    body: WebhookSubscriptionCreate,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            subscription = await container.webhooks.create_subscription(
                session,
                url=body.url,
                secret=body.secret,
                events=body.events,
                is_active=body.is_active,
            )
            return WebhookSubscriptionResponse.model_validate(subscription)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)


@router.get("/webhooks/{subscription_id}", response_model=WebhookSubscriptionResponse)
async def get_webhook_subscription(
    subscription_id: int,
    container: ServiceContainer = Depends(get_container),
):
    async with container.db.get_session() as session:
        subscription = await container.webhooks.get_subscription(session, subscription_id)
        if subscription is None:
            raise HTTPException(status_code=404, detail="Webhook subscription not found")
        return WebhookSubscriptionResponse.model_validate(subscription)


@router.put("/webhooks/{subscription_id}", response_model=WebhookSubscriptionResponse)
async def update_webhook_subscription(
    subscription_id: int,
    body: WebhookSubscriptionUpdate,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            subscription = await container.webhooks.update_subscription(
                session, subscription_id, **body.model_dump(exclude_none=True)
            )
            return WebhookSubscriptionResponse.model_validate(subscription)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)


@router.delete("/webhooks/{subscription_id}", status_code=204)
async def delete_webhook_subscription(
    subscription_id: int,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            await container.webhooks.delete_subscription(session, subscription_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return Response(status_code=204)


@router.get(
    "/webhooks/{subscription_id}/deliveries",
    response_model=PaginatedResponse[WebhookDeliveryResponse],
)
async def list_subscription_deliveries(
    subscription_id: int,
    order_id: int | None = Query(None),
    event: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            deliveries, total = await container.webhooks.list_deliveries(
                session,
                subscription_id,
                order_id=order_id,
                event=event,
                limit=page_size,
                offset=(page - 1) * page_size,
            )
            return PaginatedResponse[WebhookDeliveryResponse].build(
                [WebhookDeliveryResponse.model_validate(d) for d in deliveries],
                total=total, page=page, page_size=page_size,
            )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post(
    "/webhooks/{subscription_id}/test",
    response_model=WebhookDeliveryResponse,
)
async def test_webhook_subscription(
    subscription_id: int,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            delivery = await container.webhooks.send_test(session, subscription_id)
            return WebhookDeliveryResponse.model_validate(delivery)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post(
    "/webhooks/deliveries/{delivery_id}/retry",
    response_model=WebhookDeliveryResponse,
)
async def retry_webhook_delivery(
    delivery_id: int,
    container: ServiceContainer = Depends(get_container),
):
    try:
        async with container.db.get_session() as session:
            delivery = await container.webhooks.retry_delivery(session, delivery_id)
            return WebhookDeliveryResponse.model_validate(delivery)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

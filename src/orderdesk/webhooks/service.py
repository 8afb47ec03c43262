"""Webhook service: subscriptions, signing, dispatch, fan-out and retry."""

import asyncio
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.common.config import OrderDeskSettings
from orderdesk.common.exceptions import NotFoundError, ValidationError
from orderdesk.orders.transitions import ORDER_STATUS_EVENTS
from orderdesk.webhooks.models import WebhookDeliveryModel, WebhookSubscriptionModel

logger = logging.getLogger(__name__)

VALID_EVENT_TYPES: frozenset[str] = ORDER_STATUS_EVENTS

TEST_EVENT = "test"
TEST_ORDER_ID = 0

SIGNATURE_HEADER = "X-Webhook-Signature"
SIGNATURE_PREFIX = "sha256="


def serialize_payload(payload: dict[str, Any]) -> str:
    """Canonical JSON body for a webhook payload. Key order is preserved."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def sign_payload(payload: dict[str, Any] | str, secret: str) -> str:
    """Compute the HMAC-SHA256 hex digest of a payload.

    A dict is serialized with :func:`serialize_payload` first, so the digest
    always covers exactly the body that goes over the wire.
    """
    payload_json = payload if isinstance(payload, str) else serialize_payload(payload)
    return hmac.new(
        secret.encode("utf-8"),
        payload_json.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(body: str | bytes, signature: str, secret: str) -> bool:
    """Receiver-side check of an ``X-Webhook-Signature`` header value."""
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    if signature.startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX):]
    return hmac.compare_digest(sign_payload(body, secret), signature)


def build_payload(event: str, order_id: int, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "event": event,
        "orderId": order_id,
        "data": data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@dataclass
class DeliveryOutcome:
    """Normalized result of one POST, before it is persisted."""

    status_code: int | None
    response_body: str | None
    success: bool
    delivered_at: datetime


def _validate_url(url: str) -> str:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ValidationError(f"Invalid webhook URL: {url}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ValidationError(f"Invalid webhook URL: {url}")
    return url


def _validate_secret(secret: str) -> str:
    if not secret or not secret.strip():
        raise ValidationError("Webhook secret must not be empty")
    return secret


def _normalize_events(events: list[str] | None) -> list[str]:
    if not events:
        raise ValidationError("At least one event is required")
    unknown = [e for e in events if e not in VALID_EVENT_TYPES]
    if unknown:
        raise ValidationError(
            f"Invalid event type: {unknown[0]}. Valid types: {sorted(VALID_EVENT_TYPES)}"
        )
    return list(dict.fromkeys(events))


def _error_text(exc: Exception) -> str:
    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timed out: {message}"
    return message


class WebhookService:
    """Webhook subscription management and event delivery."""

    def __init__(
        self,
        settings: OrderDeskSettings,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        self._http_client = http_client

    def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy-init httpx.AsyncClient."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.settings.webhook_timeout_seconds,
            )
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ── CRUD ──

    async def create_subscription(
        self,
        session: AsyncSession,
        url: str,
        secret: str,
        events: list[str],
        is_active: bool = True,
    ) -> WebhookSubscriptionModel:
        subscription = WebhookSubscriptionModel(
            url=_validate_url(url),
            secret=_validate_secret(secret),
            events=_normalize_events(events),
            is_active=is_active,
        )
        session.add(subscription)
        await session.flush()
        return subscription

    async def get_subscription(
        self, session: AsyncSession, subscription_id: int,
    ) -> Optional[WebhookSubscriptionModel]:
        return await session.get(WebhookSubscriptionModel, subscription_id)

    async def list_subscriptions(
        self,
        session: AsyncSession,
        is_active: bool | None = None,
    ) -> list[WebhookSubscriptionModel]:
        query = select(WebhookSubscriptionModel)
        if is_active is not None:
            query = query.where(WebhookSubscriptionModel.is_active == is_active)
        query = query.order_by(
            WebhookSubscriptionModel.created_at.desc(),
            WebhookSubscriptionModel.id.desc(),
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    async def update_subscription(
        self,
        session: AsyncSession,
        subscription_id: int,
        **updates: Any,
    ) -> WebhookSubscriptionModel:
        subscription = await self.get_subscription(session, subscription_id)
        if subscription is None:
            raise NotFoundError("Webhook subscription not found")

        validators = {
            "url": _validate_url,
            "secret": _validate_secret,
            "events": _normalize_events,
            "is_active": bool,
        }
        # Validate everything before touching the row so a bad field leaves it intact.
        changes = {
            field: validate(updates[field])
            for field, validate in validators.items()
            if field in updates and updates[field] is not None
        }
        for field, value in changes.items():
            setattr(subscription, field, value)
        await session.flush()
        return subscription

    async def delete_subscription(
        self, session: AsyncSession, subscription_id: int,
    ) -> None:
        subscription = await self.get_subscription(session, subscription_id)
        if subscription is None:
            raise NotFoundError("Webhook subscription not found")
        await session.execute(
            delete(WebhookDeliveryModel).where(
                WebhookDeliveryModel.subscription_id == subscription_id,
            )
        )
        await session.delete(subscription)
        await session.flush()

    # ── Dispatch ──

    async def _post(
        self,
        subscription: WebhookSubscriptionModel,
        payload: dict[str, Any],
    ) -> DeliveryOutcome:
        """POST a signed payload. Never raises for network or HTTP failures."""
        body = serialize_payload(payload)
        headers = {
            "Content-Type": "application/json",
            SIGNATURE_HEADER: f"{SIGNATURE_PREFIX}{sign_payload(body, subscription.secret)}",
        }
        event = payload.get("event", "")

        try:
            resp = await self._get_http_client().post(
                subscription.url,
                content=body.encode("utf-8"),
                headers=headers,
                timeout=self.settings.webhook_timeout_seconds,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = _error_text(e)
            logger.warning(
                "Webhook %s to %s failed: %s", event, subscription.url, error,
            )
            return DeliveryOutcome(
                status_code=None,
                response_body=error,
                success=False,
                delivered_at=datetime.now(timezone.utc),
            )

        success = 200 <= resp.status_code < 300
        if success:
            logger.info(
                "Webhook %s delivered to %s: HTTP %s",
                event, subscription.url, resp.status_code,
            )
        else:
            logger.warning(
                "Webhook %s to %s returned HTTP %s",
                event, subscription.url, resp.status_code,
            )
        return DeliveryOutcome(
            status_code=resp.status_code,
            response_body=resp.text,
            success=success,
            delivered_at=datetime.now(timezone.utc),
        )

    async def _record(
        self,
        session: AsyncSession,
        subscription: WebhookSubscriptionModel,
        payload: dict[str, Any],
        outcome: DeliveryOutcome,
        attempt_number: int,
    ) -> WebhookDeliveryModel:
        delivery = WebhookDeliveryModel(
            subscription_id=subscription.id,
            order_id=payload["orderId"],
            event=payload["event"],
            payload=payload,
            status_code=outcome.status_code,
            response_body=outcome.response_body,
            success=outcome.success,
            attempt_number=attempt_number,
            delivered_at=outcome.delivered_at,
        )
        session.add(delivery)
        await session.flush()
        return delivery

    async def deliver(
        self,
        session: AsyncSession,
        subscription: WebhookSubscriptionModel,
        payload: dict[str, Any],
        attempt_number: int = 1,
    ) -> WebhookDeliveryModel:
        """Send one payload to one subscription and record the attempt."""
        outcome = await self._post(subscription, payload)
        return await self._record(session, subscription, payload, outcome, attempt_number)

    async def find_subscriptions_for_event(
        self, session: AsyncSession, event: str,
    ) -> list[WebhookSubscriptionModel]:
        result = await session.execute(
            select(WebhookSubscriptionModel)
            .where(WebhookSubscriptionModel.is_active.is_(True))
            .order_by(WebhookSubscriptionModel.id.asc())
        )
        return [sub for sub in result.scalars().all() if event in (sub.events or [])]

    async def trigger_webhooks(
        self,
        session: AsyncSession,
        order_id: int,
        event: str,
        data: dict[str, Any],
    ) -> list[WebhookDeliveryModel]:
        """Deliver ``event`` to every active subscriber, concurrently.

        All POSTs run at once and are awaited together; each one settles into
        its own delivery row whatever happened to the others. Rows are written
        afterwards, one at a time, through the caller's session.
        """
        subscriptions = await self.find_subscriptions_for_event(session, event)
        if not subscriptions:
            logger.debug("No active subscriptions for %s", event)
            return []

        payload = build_payload(event, order_id, data)
        outcomes = await asyncio.gather(
            *(self._post(sub, payload) for sub in subscriptions)
        )

        deliveries = []
        for sub, outcome in zip(subscriptions, outcomes):
            deliveries.append(
                await self._record(session, sub, payload, outcome, attempt_number=1)
            )
        logger.info(
            "Fanned out %s for order %s: %d/%d succeeded",
            event, order_id, sum(d.success for d in deliveries), len(deliveries),
        )
        return deliveries

    async def send_test(
        self, session: AsyncSession, subscription_id: int,
    ) -> WebhookDeliveryModel:
        subscription = await self.get_subscription(session, subscription_id)
        if subscription is None:
            raise NotFoundError("Webhook subscription not found")
        payload = build_payload(
            TEST_EVENT, TEST_ORDER_ID, {"message": "Test webhook delivery"},
        )
        return await self.deliver(session, subscription, payload, attempt_number=1)

    # ── Delivery queries ──

    async def get_delivery(
        self, session: AsyncSession, delivery_id: int,
    ) -> Optional[WebhookDeliveryModel]:
        return await session.get(WebhookDeliveryModel, delivery_id)

    async def list_deliveries(
        self,
        session: AsyncSession,
        subscription_id: int,
        order_id: int | None = None,
        event: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[WebhookDeliveryModel], int]:
        """Delivery log for a subscription, newest first. Returns (items, total)."""
        if await self.get_subscription(session, subscription_id) is None:
            raise NotFoundError("Webhook subscription not found")

        filters = [WebhookDeliveryModel.subscription_id == subscription_id]
        if order_id is not None:
            filters.append(WebhookDeliveryModel.order_id == order_id)
        if event is not None:
            filters.append(WebhookDeliveryModel.event == event)

        count_result = await session.execute(
            select(func.count(WebhookDeliveryModel.id)).where(*filters)
        )
        total = count_result.scalar() or 0

        result = await session.execute(
            select(WebhookDeliveryModel)
            .where(*filters)
            .order_by(
                WebhookDeliveryModel.created_at.desc(),
                WebhookDeliveryModel.id.desc(),
            )
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def retry_delivery(
        self, session: AsyncSession, delivery_id: int,
    ) -> WebhookDeliveryModel:
        """Re-send a recorded delivery's stored payload as a new attempt.

        The original row is left as it was; the new row carries
        ``attempt_number + 1``.
        """
        original = await self.get_delivery(session, delivery_id)
        if original is None:
            raise NotFoundError("Webhook delivery not found")

        subscription = await self.get_subscription(session, original.subscription_id)
        if subscription is None:
            raise NotFoundError("Webhook subscription not found for delivery")

        return await self.deliver(
            session,
            subscription,
            dict(original.payload),
            attempt_number=original.attempt_number + 1,
        )

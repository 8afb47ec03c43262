"""Tests for webhook service: signing, CRUD, dispatch, fan-out and retry."""

import asyncio
import hashlib
import hmac
import json

import httpx
import pytest

from orderdesk.common.exceptions import NotFoundError, ValidationError
from orderdesk.webhooks.service import (
    SIGNATURE_HEADER,
    TEST_EVENT,
    VALID_EVENT_TYPES,
    WebhookService,
    build_payload,
    serialize_payload,
    sign_payload,
    verify_signature,
)

SECRET = "whsec-test-secret"
CONFIRMED = "order.status.CONFIRMED"
SHIPPED = "order.status.SHIPPED"


@pytest.fixture
def webhook_svc(settings, http_client):
    return WebhookService(settings, http_client=http_client)


async def subscribe(svc, session, url, events=(CONFIRMED,), **kwargs):
    return await svc.create_subscription(
        session, url=url, secret=kwargs.pop("secret", SECRET), events=list(events), **kwargs
    )


# ── HMAC Signing ──


class TestSignPayload:
    def test_deterministic(self):
        payload = {"event": CONFIRMED, "orderId": 1, "data": {}}
        sig1 = sign_payload(payload, SECRET)
        sig2 = sign_payload(payload, SECRET)
        assert sig1 == sig2
        assert len(sig1) == 64  # SHA-256 hex digest

    def test_different_payloads_different_sigs(self):
        sig1 = sign_payload({"orderId": 1}, SECRET)
        sig2 = sign_payload({"orderId": 2}, SECRET)
        assert sig1 != sig2

    def test_different_secrets_different_sigs(self):
        payload = {"orderId": 1}
        assert sign_payload(payload, "secret-one") != sign_payload(payload, "secret-two")

    def test_matches_manual_hmac(self):
        payload = {"event": CONFIRMED, "orderId": 7}
        expected = hmac.new(
            SECRET.encode("utf-8"),
            b'{"event":"order.status.CONFIRMED","orderId":7}',
            hashlib.sha256,
        ).hexdigest()
        assert sign_payload(payload, SECRET) == expected

    def test_dict_and_serialized_string_agree(self):
        payload = {"b": 1, "a": [1, 2], "note": "café"}
        assert sign_payload(payload, SECRET) == sign_payload(serialize_payload(payload), SECRET)


class TestVerifySignature:
    def test_accepts_prefixed_header(self):
        body = serialize_payload({"orderId": 1})
        header = "sha256=" + sign_payload(body, SECRET)
        assert verify_signature(body, header, SECRET) is True

    def test_accepts_bare_digest_and_bytes(self):
        body = serialize_payload({"orderId": 1})
        assert verify_signature(body.encode(), sign_payload(body, SECRET), SECRET) is True

    def test_rejects_wrong_secret(self):
        body = serialize_payload({"orderId": 1})
        header = "sha256=" + sign_payload(body, "other-secret")
        assert verify_signature(body, header, SECRET) is False

    def test_rejects_tampered_body(self):
        body = serialize_payload({"orderId": 1})
        header = "sha256=" + sign_payload(body, SECRET)
        assert verify_signature(body.replace("1", "2"), header, SECRET) is False


class TestBuildPayload:
    def test_envelope_fields(self):
        payload = build_payload(CONFIRMED, 12, {"newStatus": "CONFIRMED"})
        assert list(payload) == ["event", "orderId", "data", "timestamp"]
        assert payload["event"] == CONFIRMED
        assert payload["orderId"] == 12
        assert payload["data"] == {"newStatus": "CONFIRMED"}
        assert payload["timestamp"].endswith("+00:00")


# ── Subscription CRUD ──


class TestSubscriptionCRUD:
    async def test_create_subscription(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://hooks.example.com/a")
            assert sub.id is not None
            assert sub.events == [CONFIRMED]
            assert sub.is_active is True

    async def test_duplicate_events_collapsed(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(
                webhook_svc, session, "https://hooks.example.com/a",
                events=[SHIPPED, CONFIRMED, SHIPPED],
            )
            assert sub.events == [SHIPPED, CONFIRMED]

    @pytest.mark.parametrize("url", ["not a url", "ftp://example.com/hook", "https://"])
    async def test_rejects_invalid_url(self, db, webhook_svc, url):
        async with db.get_session() as session:
            with pytest.raises(ValidationError):
                await subscribe(webhook_svc, session, url)

    async def test_rejects_unknown_event(self, db, webhook_svc):
        async with db.get_session() as session:
            with pytest.raises(ValidationError, match="Invalid event type"):
                await subscribe(
                    webhook_svc, session, "https://hooks.example.com/a",
                    events=["order.created"],
                )

    async def test_rejects_empty_events(self, db, webhook_svc):
        async with db.get_session() as session:
            with pytest.raises(ValidationError):
                await subscribe(webhook_svc, session, "https://hooks.example.com/a", events=[])

    async def test_rejects_blank_secret(self, db, webhook_svc):
        async with db.get_session() as session:
            with pytest.raises(ValidationError):
                await subscribe(
                    webhook_svc, session, "https://hooks.example.com/a", secret="   ",
                )

    def test_valid_event_types(self):
        assert CONFIRMED in VALID_EVENT_TYPES
        assert "order.status.PENDING" not in VALID_EVENT_TYPES

    async def test_list_filters_by_active(self, db, webhook_svc):
        async with db.get_session() as session:
            await subscribe(webhook_svc, session, "https://a.example.com/hook")
            await subscribe(webhook_svc, session, "https://b.example.com/hook", is_active=False)

            assert len(await webhook_svc.list_subscriptions(session)) == 2
            active = await webhook_svc.list_subscriptions(session, is_active=True)
            assert [s.url for s in active] == ["https://a.example.com/hook"]
            inactive = await webhook_svc.list_subscriptions(session, is_active=False)
            assert [s.url for s in inactive] == ["https://b.example.com/hook"]

    async def test_update_subscription(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://a.example.com/hook")
            updated = await webhook_svc.update_subscription(
                session, sub.id, url="https://b.example.com/hook", is_active=False,
            )
            assert updated.url == "https://b.example.com/hook"
            assert updated.is_active is False
            assert updated.events == [CONFIRMED]

    async def test_update_invalid_field_leaves_row_intact(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://a.example.com/hook")
            with pytest.raises(ValidationError):
                await webhook_svc.update_subscription(
                    session, sub.id, url="https://b.example.com/hook", events=["bogus"],
                )
            assert sub.url == "https://a.example.com/hook"

    async def test_update_nonexistent(self, db, webhook_svc):
        async with db.get_session() as session:
            with pytest.raises(NotFoundError):
                await webhook_svc.update_subscription(session, 999, is_active=False)

    async def test_delete_removes_deliveries(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://a.example.com/hook")
            delivery = await webhook_svc.send_test(session, sub.id)
            sub_id, delivery_id = sub.id, delivery.id

        async with db.get_session() as session:
            await webhook_svc.delete_subscription(session, sub_id)

        async with db.get_session() as session:
            assert await webhook_svc.get_subscription(session, sub_id) is None
            assert await webhook_svc.get_delivery(session, delivery_id) is None

    async def test_delete_nonexistent(self, db, webhook_svc):
        async with db.get_session() as session:
            with pytest.raises(NotFoundError):
                await webhook_svc.delete_subscription(session, 999)


# ── Single delivery ──


class TestDeliver:
    async def test_success_on_2xx(self, db, webhook_svc, receiver):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://ok.example.com/hook")
            payload = build_payload(CONFIRMED, 1, {"newStatus": "CONFIRMED"})
            delivery = await webhook_svc.deliver(session, sub, payload)

            assert delivery.success is True
            assert delivery.status_code == 200
            assert delivery.response_body == "ok"
            assert delivery.attempt_number == 1
            assert delivery.order_id == 1
            assert delivery.event == CONFIRMED
            assert delivery.payload == payload
            assert delivery.delivered_at is not None
        assert len(receiver.requests) == 1

    async def test_signature_header_covers_body(self, db, webhook_svc, receiver):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://ok.example.com/hook")
            payload = build_payload(CONFIRMED, 3, {"note": "ünïcode"})
            await webhook_svc.deliver(session, sub, payload)

        request = receiver.requests[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/json"
        header = request.headers[SIGNATURE_HEADER]
        assert header.startswith("sha256=")
        assert verify_signature(request.content, header, SECRET)
        assert json.loads(request.content) == payload

    async def test_non_2xx_recorded_as_failure(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://error.example.com/hook")
            delivery = await webhook_svc.deliver(session, sub, build_payload(CONFIRMED, 1, {}))

            assert delivery.success is False
            assert delivery.status_code == 500
            assert delivery.response_body == "Internal Server Error"

    async def test_connection_refused_recorded_not_raised(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://down.example.com/hook")
            delivery = await webhook_svc.deliver(session, sub, build_payload(CONFIRMED, 1, {}))

            assert delivery.success is False
            assert delivery.status_code is None
            assert "Connection refused" in delivery.response_body

    async def test_timeout_recorded_not_raised(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://slow.example.com/hook")
            delivery = await webhook_svc.deliver(session, sub, build_payload(CONFIRMED, 1, {}))

            assert delivery.success is False
            assert delivery.status_code is None
            assert delivery.response_body.startswith("Request timed out")

    async def test_send_test_ignores_inactive_flag(self, db, webhook_svc, receiver):
        async with db.get_session() as session:
            sub = await subscribe(
                webhook_svc, session, "https://ok.example.com/hook", is_active=False,
            )
            delivery = await webhook_svc.send_test(session, sub.id)

            assert delivery.event == TEST_EVENT
            assert delivery.order_id == 0
            assert delivery.success is True
        assert len(receiver.requests) == 1

    async def test_send_test_nonexistent(self, db, webhook_svc):
        async with db.get_session() as session:
            with pytest.raises(NotFoundError):
                await webhook_svc.send_test(session, 999)


# ── Fan-out ──


class TestTriggerWebhooks:
    async def test_one_record_per_active_subscriber(self, db, webhook_svc, receiver):
        async with db.get_session() as session:
            for name in ("a", "b", "c"):
                await subscribe(webhook_svc, session, f"https://{name}.example.com/hook")
            await subscribe(
                webhook_svc, session, "https://inactive.example.com/hook", is_active=False,
            )

            deliveries = await webhook_svc.trigger_webhooks(
                session, 42, CONFIRMED, {"newStatus": "CONFIRMED"},
            )

            assert len(deliveries) == 3
            assert all(d.success for d in deliveries)
            assert {d.order_id for d in deliveries} == {42}
            # Every subscriber gets the same payload
            assert len({json.dumps(d.payload, sort_keys=True) for d in deliveries}) == 1
        assert receiver.requests_to("inactive.example.com") == []

    async def test_only_matching_event(self, db, webhook_svc, receiver):
        async with db.get_session() as session:
            await subscribe(webhook_svc, session, "https://a.example.com/hook", events=[CONFIRMED])
            await subscribe(webhook_svc, session, "https://b.example.com/hook", events=[SHIPPED])

            deliveries = await webhook_svc.trigger_webhooks(session, 1, SHIPPED, {})

            assert len(deliveries) == 1
        assert [r.url.host for r in receiver.requests] == ["b.example.com"]

    async def test_no_subscribers_no_records(self, db, webhook_svc, receiver):
        async with db.get_session() as session:
            assert await webhook_svc.trigger_webhooks(session, 1, CONFIRMED, {}) == []
        assert receiver.requests == []

    async def test_one_failure_does_not_block_others(self, db, webhook_svc):
        async with db.get_session() as session:
            slow = await subscribe(webhook_svc, session, "https://slow.example.com/hook")
            ok = await subscribe(webhook_svc, session, "https://ok.example.com/hook")

            deliveries = await webhook_svc.trigger_webhooks(session, 5, CONFIRMED, {})

            by_sub = {d.subscription_id: d for d in deliveries}
            assert len(deliveries) == 2
            assert by_sub[slow.id].success is False
            assert by_sub[slow.id].status_code is None
            assert by_sub[ok.id].success is True
            assert by_sub[ok.id].status_code == 200

    async def test_posts_run_concurrently(self, db, settings):
        # Each endpoint only answers once the other has been reached,
        # so a one-at-a-time dispatcher would stall.
        reached = {"a.example.com": asyncio.Event(), "b.example.com": asyncio.Event()}

        async def handler(request):
            host = request.url.host
            reached[host].set()
            other = "b.example.com" if host == "a.example.com" else "a.example.com"
            await reached[other].wait()
            return httpx.Response(204)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            svc = WebhookService(settings, http_client=client)
            async with db.get_session() as session:
                await subscribe(svc, session, "https://a.example.com/hook")
                await subscribe(svc, session, "https://b.example.com/hook")

                deliveries = await asyncio.wait_for(
                    svc.trigger_webhooks(session, 1, CONFIRMED, {}), timeout=2,
                )

        assert [d.status_code for d in deliveries] == [204, 204]
        assert all(d.success for d in deliveries)


# ── Delivery log and retry ──


class TestDeliveryLog:
    async def test_newest_first_with_total(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://ok.example.com/hook")
            for order_id in (1, 2, 3):
                await webhook_svc.trigger_webhooks(session, order_id, CONFIRMED, {})

            items, total = await webhook_svc.list_deliveries(session, sub.id, limit=2)
            assert total == 3
            assert [d.order_id for d in items] == [3, 2]

            items, _ = await webhook_svc.list_deliveries(session, sub.id, limit=2, offset=2)
            assert [d.order_id for d in items] == [1]

    async def test_filters(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(
                webhook_svc, session, "https://ok.example.com/hook", events=[CONFIRMED, SHIPPED],
            )
            await webhook_svc.trigger_webhooks(session, 1, CONFIRMED, {})
            await webhook_svc.trigger_webhooks(session, 2, CONFIRMED, {})
            await webhook_svc.trigger_webhooks(session, 1, SHIPPED, {})

            items, total = await webhook_svc.list_deliveries(session, sub.id, order_id=1)
            assert total == 2
            items, total = await webhook_svc.list_deliveries(session, sub.id, event=SHIPPED)
            assert total == 1
            assert items[0].order_id == 1

    async def test_nonexistent_subscription(self, db, webhook_svc):
        async with db.get_session() as session:
            with pytest.raises(NotFoundError):
                await webhook_svc.list_deliveries(session, 999)


class TestRetryDelivery:
    async def test_retry_creates_new_attempt(self, db, webhook_svc):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://error.example.com/hook")
            [original] = await webhook_svc.trigger_webhooks(
                session, 9, CONFIRMED, {"newStatus": "CONFIRMED"},
            )
            original_id = original.id
            original_payload = dict(original.payload)

        # Endpoint recovers before the retry
        async with db.get_session() as session:
            await webhook_svc.update_subscription(
                session, sub.id, url="https://ok.example.com/hook",
            )

        async with db.get_session() as session:
            retried = await webhook_svc.retry_delivery(session, original_id)
            retried_id = retried.id

            assert retried.id != original_id
            assert retried.attempt_number == 2
            assert retried.payload == original_payload
            assert retried.success is True
            assert retried.status_code == 200

        async with db.get_session() as session:
            stored = await webhook_svc.get_delivery(session, original_id)
            assert stored.attempt_number == 1
            assert stored.success is False
            assert stored.status_code == 500

            again = await webhook_svc.retry_delivery(session, retried_id)
            assert again.attempt_number == 3

    async def test_retry_nonexistent_creates_nothing(self, db, webhook_svc, receiver):
        async with db.get_session() as session:
            sub = await subscribe(webhook_svc, session, "https://ok.example.com/hook")
            with pytest.raises(NotFoundError, match="delivery not found"):
                await webhook_svc.retry_delivery(session, 12345)

            _, total = await webhook_svc.list_deliveries(session, sub.id)
            assert total == 0
        assert receiver.requests == []

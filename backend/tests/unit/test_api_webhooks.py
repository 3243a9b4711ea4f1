"""Tests for the webhook endpoints, end to end through the app."""

from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

import pytest

from app.core.rate_limiting import limiter
from app.providers.errors import TransientError
from tests.conftest import (
    FOUR_WEEK_TOKEN_FIELD,
    TEST_BUYER_EMAIL,
    build_submission,
)


def _order_body(*titles: str, email: str = TEST_BUYER_EMAIL) -> dict:
    return {
        "id": 5551,
        "email": email,
        "line_items": [{"title": t, "quantity": 1} for t in titles],
    }


def _token_from(email: dict) -> str:
    link = email["text"].rsplit("\n", 1)[-1]
    return parse_qs(urlsplit(link).query)["token"][0]


class TestOrderWebhook:
    """POST /webhook/order."""

    @pytest.mark.asyncio
    async def test_accepts_order(self, client, sent_emails):
        response = await client.post("/webhook/order", json=_order_body("1 Week Plan"))

        assert response.status_code == 200
        assert response.json() == {
            "data": {"status": "accepted", "plan_variant": "one_week"}
        }
        assert len(sent_emails) == 1
        assert sent_emails[0]["to"] == TEST_BUYER_EMAIL

    @pytest.mark.asyncio
    async def test_unknown_product_returns_422(self, client, sent_emails):
        response = await client.post("/webhook/order", json=_order_body("Gift card"))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "UNRECOGNIZED_PLAN"
        assert sent_emails == []

    @pytest.mark.asyncio
    async def test_plan_without_form_returns_422(self, client):
        response = await client.post(
            "/webhook/order", json=_order_body("3 Day Trial")
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "PLAN_NOT_AVAILABLE"

    @pytest.mark.asyncio
    async def test_missing_email_returns_400(self, client):
        response = await client.post(
            "/webhook/order", json={"line_items": [{"title": "1 Week Plan"}]}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_malformed_line_items_return_400(self, client):
        response = await client.post(
            "/webhook/order", json={"email": TEST_BUYER_EMAIL, "line_items": "x"}
        )

        assert response.status_code == 400


class TestFormWebhook:
    """POST /webhook/form/{plan_variant}."""

    @pytest.mark.asyncio
    async def test_order_then_form_delivers_plan(self, client, sent_emails, mock_llm):
        await client.post("/webhook/order", json=_order_body("1 Week Plan"))
        token = _token_from(sent_emails[0])

        response = await client.post(
            "/webhook/form/one_week", json=build_submission(token)
        )

        assert response.status_code == 200
        assert response.json() == {"data": {"status": "sent"}}
        assert len(sent_emails) == 2
        assert sent_emails[1]["attachments"][0]["filename"] == "Plan.pdf"
        assert len(mock_llm.calls) == 1

    @pytest.mark.asyncio
    async def test_four_week_flow(self, client, sent_emails, mock_llm):
        await client.post("/webhook/order", json=_order_body("4 Week Shred"))
        token = _token_from(sent_emails[0])

        response = await client.post(
            "/webhook/form/four_week",
            json=build_submission(token, token_field=FOUR_WEEK_TOKEN_FIELD),
        )

        assert response.json() == {"data": {"status": "sent"}}
        assert len(mock_llm.calls) == 2

    @pytest.mark.asyncio
    async def test_redelivery_returns_duplicate(self, client, sent_emails):
        await client.post("/webhook/order", json=_order_body("1 Week Plan"))
        body = build_submission(_token_from(sent_emails[0]))

        await client.post("/webhook/form/one_week", json=body)
        response = await client.post("/webhook/form/one_week", json=body)

        assert response.status_code == 200
        assert response.json() == {"data": {"status": "duplicate"}}
        assert len(sent_emails) == 2

    @pytest.mark.asyncio
    async def test_reused_token_returns_401(self, client, sent_emails):
        await client.post("/webhook/order", json=_order_body("1 Week Plan"))
        token = _token_from(sent_emails[0])

        await client.post("/webhook/form/one_week", json=build_submission(token))
        response = await client.post(
            "/webhook/form/one_week",
            json=build_submission(token, submission_id="sub-2"),
        )

        assert response.status_code == 401
        assert response.json()["error"] == {
            "code": "INVALID_TOKEN",
            "message": "Invalid token",
            "details": None,
        }

    @pytest.mark.asyncio
    async def test_token_for_other_plan_returns_401(self, client, sent_emails):
        await client.post("/webhook/order", json=_order_body("4 Week Shred"))
        token = _token_from(sent_emails[0])

        response = await client.post(
            "/webhook/form/one_week", json=build_submission(token)
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_token_returns_401(self, client, sent_emails):
        response = await client.post(
            "/webhook/form/one_week", json=build_submission("f" * 64)
        )

        assert response.status_code == 401
        assert sent_emails == []

    @pytest.mark.asyncio
    async def test_unknown_plan_variant_returns_400(self, client):
        response = await client.post(
            "/webhook/form/yearly", json=build_submission("abc")
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_plan_variant_without_form_returns_404(self, client):
        response = await client.post(
            "/webhook/form/trial", json=build_submission("abc")
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_missing_submission_id_returns_400(self, client):
        response = await client.post(
            "/webhook/form/one_week", json={"data": {"fields": []}}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_generation_failure_returns_500_and_allows_retry(
        self, client, sent_emails, mock_llm
    ):
        await client.post("/webhook/order", json=_order_body("1 Week Plan"))
        body = build_submission(_token_from(sent_emails[0]))
        mock_llm.enqueue(TransientError("upstream overloaded"))

        failed = await client.post("/webhook/form/one_week", json=body)
        retried = await client.post("/webhook/form/one_week", json=body)

        assert failed.status_code == 500
        assert failed.json()["error"]["code"] == "INTERNAL_ERROR"
        assert retried.json() == {"data": {"status": "sent"}}


    @pytest.mark.asyncio
    async def test_unrecorded_consume_returns_500(
        self, client, sent_emails, token_store
    ):
        await client.post("/webhook/order", json=_order_body("1 Week Plan"))
        token = _token_from(sent_emails[0])

        with patch(
            "app.services.token_store._atomic_write_json",
            side_effect=OSError("disk full"),
        ):
            response = await client.post(
                "/webhook/form/one_week", json=build_submission(token)
            )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert len(sent_emails) == 2
        assert token_store.lookup(token).consumed is True

        retried = await client.post(
            "/webhook/form/one_week",
            json=build_submission(token, submission_id="sub-2"),
        )
        assert retried.status_code == 401


class TestFormRateLimit:
    @pytest.mark.asyncio
    async def test_form_endpoint_is_throttled_per_client(self, client):
        limiter.reset()
        limiter.enabled = True
        try:
            statuses = [
                (
                    await client.post(
                        "/webhook/form/one_week",
                        json=build_submission("f" * 64, submission_id=f"sub-{i}"),
                    )
                ).status_code
                for i in range(31)
            ]
        finally:
            limiter.enabled = False
            limiter.reset()

        assert statuses[:30] == [401] * 30
        assert statuses[30] == 429

    @pytest.mark.asyncio
    async def test_order_endpoint_is_not_throttled(self, client):
        limiter.reset()
        limiter.enabled = True
        try:
            statuses = [
                (
                    await client.post("/webhook/order", json=_order_body("Gift card"))
                ).status_code
                for _ in range(35)
            ]
        finally:
            limiter.enabled = False
            limiter.reset()

        assert set(statuses) == {422}

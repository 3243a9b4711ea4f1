"""Tests for order webhook handling."""

import json
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from app.core.email import MailDeliveryError, Mailer
from app.core.errors import (
    InternalError,
    PlanNotAvailableError,
    UnrecognizedPlanError,
    ValidationError,
)
from app.schemas.plan import PlanVariant
from app.schemas.webhooks import LineItem, OrderWebhook
from app.services.order_intake import build_form_url, handle_order
from app.services.token_store import TokenPersistenceError
from tests.conftest import TEST_BUYER_EMAIL


def _order(*titles: str, email: str | None = TEST_BUYER_EMAIL) -> OrderWebhook:
    return OrderWebhook(
        id=1001, email=email, line_items=[LineItem(title=t) for t in titles]
    )


class TestBuildFormUrl:
    def test_appends_query(self):
        url = build_form_url("https://tally.so/r/wMq9vX", "abc123", "one_week")
        assert url == "https://tally.so/r/wMq9vX?token=abc123&plan=one_week"

    def test_extends_existing_query(self):
        url = build_form_url("https://tally.so/r/wMq9vX?lang=en", "abc", "one_week")
        assert url == "https://tally.so/r/wMq9vX?lang=en&token=abc&plan=one_week"


class TestHandleOrder:
    """Tests for handle_order."""

    @pytest.mark.asyncio
    async def test_mints_token_and_emails_link(
        self, token_store, mailer, sent_emails, form_schemas
    ):
        accepted = await handle_order(
            _order("4 Week Bulk Plan"),
            store=token_store,
            mailer=mailer,
            schemas=form_schemas,
        )

        assert accepted.status == "accepted"
        assert accepted.plan_variant is PlanVariant.FOUR_WEEK
        assert len(token_store) == 1

        (email,) = sent_emails
        assert email["to"] == TEST_BUYER_EMAIL
        link = email["text"].rsplit("\n", 1)[-1]
        parts = urlsplit(link)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == (
            "https://tally.so/r/wzRD1g"
        )
        query = parse_qs(parts.query)
        assert query["plan"] == ["four_week"]

        record = token_store.lookup(query["token"][0])
        assert record is not None
        assert record.plan_variant is PlanVariant.FOUR_WEEK
        assert record.recipient == TEST_BUYER_EMAIL
        assert record.consumed is False

    @pytest.mark.asyncio
    async def test_token_is_persisted(
        self, token_store, token_file, mailer, form_schemas
    ):
        await handle_order(
            _order("1 Week Plan"),
            store=token_store,
            mailer=mailer,
            schemas=form_schemas,
        )

        saved = json.loads(token_file.read_text())
        assert len(saved) == 1

    @pytest.mark.asyncio
    async def test_each_delivery_mints_a_new_token(
        self, token_store, mailer, sent_emails, form_schemas
    ):
        for _ in range(2):
            await handle_order(
                _order("1 Week Plan"),
                store=token_store,
                mailer=mailer,
                schemas=form_schemas,
            )

        assert len(token_store) == 2
        assert sent_emails[0]["text"] != sent_emails[1]["text"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", [None, "", "   "])
    async def test_missing_email_is_rejected(
        self, email, token_store, mailer, sent_emails, form_schemas
    ):
        with pytest.raises(ValidationError):
            await handle_order(
                _order("1 Week Plan", email=email),
                store=token_store,
                mailer=mailer,
                schemas=form_schemas,
            )

        assert len(token_store) == 0
        assert sent_emails == []

    @pytest.mark.asyncio
    async def test_no_line_items_is_rejected(self, token_store, mailer, form_schemas):
        with pytest.raises(ValidationError):
            await handle_order(
                _order(), store=token_store, mailer=mailer, schemas=form_schemas
            )

    @pytest.mark.asyncio
    async def test_unknown_product_is_unprocessable(
        self, token_store, mailer, sent_emails, form_schemas
    ):
        with pytest.raises(UnrecognizedPlanError) as exc_info:
            await handle_order(
                _order("Gift card"),
                store=token_store,
                mailer=mailer,
                schemas=form_schemas,
            )

        assert exc_info.value.status_code == 422
        assert len(token_store) == 0
        assert sent_emails == []

    @pytest.mark.asyncio
    async def test_plan_without_form_is_unprocessable(
        self, token_store, mailer, sent_emails, form_schemas
    ):
        with pytest.raises(PlanNotAvailableError) as exc_info:
            await handle_order(
                _order("3 Day Trial"),
                store=token_store,
                mailer=mailer,
                schemas=form_schemas,
            )

        assert exc_info.value.code == "PLAN_NOT_AVAILABLE"
        assert len(token_store) == 0
        assert sent_emails == []

    @pytest.mark.asyncio
    async def test_persistence_failure_sends_nothing(
        self, token_store, mailer, sent_emails, form_schemas
    ):
        with (
            patch.object(
                token_store,
                "create",
                AsyncMock(side_effect=TokenPersistenceError("disk full")),
            ),
            pytest.raises(InternalError),
        ):
            await handle_order(
                _order("1 Week Plan"),
                store=token_store,
                mailer=mailer,
                schemas=form_schemas,
            )

        assert sent_emails == []

    @pytest.mark.asyncio
    async def test_mail_failure_propagates(self, token_store, form_schemas):
        failing = Mailer(
            api_key="re_test",  # nosec B106
            email_from="plans@example.com",
            transport=httpx.MockTransport(lambda _req: httpx.Response(503)),
        )

        with pytest.raises(MailDeliveryError):
            await handle_order(
                _order("1 Week Plan"),
                store=token_store,
                mailer=failing,
                schemas=form_schemas,
            )

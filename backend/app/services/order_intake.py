"""Order webhook handling.

Validates a shop order, classifies the purchased plan, mints a single-use
token, and emails the buyer a form link carrying it. Nothing is stored or
sent for a rejected order.

Redelivering the same order mints another token; the buyer then holds two
links and either one works once.
"""

import logging
from urllib.parse import urlencode

from app.core.email import Mailer
from app.core.errors import (
    InternalError,
    PlanNotAvailableError,
    UnrecognizedPlanError,
    ValidationError,
)
from app.core.logging import redact_token
from app.schemas.plan import PlanVariant
from app.schemas.webhooks import OrderAccepted, OrderWebhook
from app.services.form_schema import FormSchema
from app.services.plan_catalog import classify_plan_variant, get_plan
from app.services.token_store import TokenPersistenceError, TokenStore

logger = logging.getLogger(__name__)


def build_form_url(base_url: str, token: str, plan_value: str) -> str:
    """Append the token and plan query parameters to a form link."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token, 'plan': plan_value})}"


async def handle_order(
    order: OrderWebhook,
    *,
    store: TokenStore,
    mailer: Mailer,
    schemas: dict[PlanVariant, FormSchema],
) -> OrderAccepted:
    """Process one order webhook.

    Args:
        order: Parsed order payload.
        store: Token store the new token is written to.
        mailer: Sends the form-link email.
        schemas: Configured form schemas keyed by plan variant.

    Returns:
        OrderAccepted with the classified plan variant.

    Raises:
        ValidationError: Missing email or no line items (400).
        UnrecognizedPlanError: No line item names a known plan (422).
        PlanNotAvailableError: The plan has no form configured (422).
        InternalError: The token could not be persisted (500).
        MailDeliveryError: The form-link email was not accepted (500).
    """
    email = (order.email or "").strip()
    if not email or not order.line_items:
        raise ValidationError(
            "Order must include an email and at least one line item"
        )

    titles = [item.title for item in order.line_items]
    variant = classify_plan_variant(titles)
    if variant is None:
        logger.warning("Order %s has no recognizable plan: %s", order.id, titles)
        raise UnrecognizedPlanError(titles)

    schema = schemas.get(variant)
    if schema is None:
        logger.warning(
            "Order %s is for %s, which has no form configured",
            order.id,
            variant.value,
        )
        raise PlanNotAvailableError(variant.value)

    try:
        token = await store.create(variant, email)
    except TokenPersistenceError as e:
        raise InternalError("Could not record the order") from e

    form_url = build_form_url(schema.base_url, token, variant.value)
    await mailer.send_form_link(
        to_email=email,
        plan_name=get_plan(variant).display_name,
        form_url=form_url,
    )

    logger.info(
        "Order %s accepted: plan %s, token %s sent",
        order.id,
        variant.value,
        redact_token(token),
    )
    return OrderAccepted(plan_variant=variant)

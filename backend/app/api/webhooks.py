"""Webhook API router.

Endpoints:
- POST /webhook/order                 - Shop order: mint token, email form link
- POST /webhook/form/{plan_variant}   - Form submission: generate and email plan
"""

import structlog
from fastapi import APIRouter, Request

from app.api.deps import FormIntake, FormSchemas, MailerDep, Store
from app.core.config import settings
from app.core.errors import NotFoundError
from app.core.rate_limiting import limiter
from app.core.responses import DataResponse
from app.schemas.plan import PlanVariant
from app.schemas.webhooks import (
    FormProcessed,
    FormSubmission,
    OrderAccepted,
    OrderWebhook,
)
from app.services.order_intake import handle_order

logger = structlog.get_logger()

router = APIRouter()


@router.post("/order")
async def order_webhook(
    body: OrderWebhook,
    store: Store,
    mailer: MailerDep,
    schemas: FormSchemas,
) -> DataResponse[OrderAccepted]:
    """Accept a shop order and email the buyer a single-use form link.

    Raises:
        ValidationError: Missing email or line items (400).
        UnprocessableError: Unknown plan, or plan without a form (422).
        APIError: Token persistence or email failure (500).
    """
    accepted = await handle_order(body, store=store, mailer=mailer, schemas=schemas)
    logger.info(
        "order_accepted", order_id=body.id, plan_variant=accepted.plan_variant.value
    )
    return DataResponse(data=accepted)


@router.post("/form/{plan_variant}")
@limiter.limit(settings.rate_limit_forms)
async def form_webhook(
    request: Request,  # noqa: ARG001 - Required by rate limiter
    plan_variant: PlanVariant,
    body: FormSubmission,
    schemas: FormSchemas,
    handler: FormIntake,
) -> DataResponse[FormProcessed]:
    """Process a completed form and email the generated plan.

    Security: Rate limited per client IP; each accepted submission costs
    one or two generation calls.

    Raises:
        NotFoundError: No form configured for this plan variant (404).
        UnauthorizedError: Invalid token (401).
        InternalError: Generation, rendering, or delivery failed (500).
    """
    schema = schemas.get(plan_variant)
    if schema is None:
        raise NotFoundError("Form", plan_variant.value)

    result = await handler.handle(plan_variant, body, schema)
    logger.info(
        "form_processed",
        submission_id=body.submission_id,
        plan_variant=plan_variant.value,
        status=result.status,
    )
    return DataResponse(data=FormProcessed(status=result.status))

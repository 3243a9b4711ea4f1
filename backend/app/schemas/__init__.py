"""Pydantic request/response schemas for the webhook endpoints."""

from app.schemas.plan import PlanVariant
from app.schemas.webhooks import (
    FieldOption,
    FormField,
    FormProcessed,
    FormSubmission,
    LineItem,
    OrderAccepted,
    OrderWebhook,
)

__all__ = [
    # Plans
    "PlanVariant",
    # Order webhook
    "LineItem",
    "OrderAccepted",
    "OrderWebhook",
    # Form webhook
    "FieldOption",
    "FormField",
    "FormProcessed",
    "FormSubmission",
]

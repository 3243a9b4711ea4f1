"""Webhook request/response schemas.

Inbound payloads come from third parties (the shop and the form provider),
so unknown keys are ignored rather than rejected. Required-field rules that
belong to the business flow (empty email, no line items) are enforced by the
intake handlers, not here.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.plan import PlanVariant

# =============================================================================
# Order webhook
# =============================================================================


class LineItem(BaseModel):
    """One purchased product in an order."""

    model_config = ConfigDict(extra="ignore")

    title: str = ""


class OrderWebhook(BaseModel):
    """Request body for POST /webhook/order.

    Attributes:
        id: Shop order id, if sent (logged only).
        email: Buyer contact email.
        line_items: Purchased products.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None
    email: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)


class OrderAccepted(BaseModel):
    """Acknowledgement for an accepted order."""

    status: str = "accepted"
    plan_variant: PlanVariant


# =============================================================================
# Form webhook
# =============================================================================


class FieldOption(BaseModel):
    """Choice offered by a dropdown / multiple-choice field."""

    model_config = ConfigDict(extra="ignore")

    id: str
    text: str = ""


class FormField(BaseModel):
    """One answered form field.

    ``value`` is a string, number, list of option ids, or null depending on
    the field type.
    """

    model_config = ConfigDict(extra="ignore")

    key: str
    label: str = ""
    type: str | None = None
    value: Any = None
    options: list[FieldOption] | None = None


class FormSubmission(BaseModel):
    """Request body for POST /webhook/form/{plan_variant}.

    Accepts the provider's envelope (``{"eventType": ..., "data": {...}}``)
    as well as the bare submission object.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    submission_id: str = Field(..., min_length=1, alias="submissionId")
    fields: list[FormField] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def unwrap_envelope(cls, value: Any) -> Any:
        """Use the ``data`` object when the payload is wrapped."""
        if isinstance(value, dict) and isinstance(value.get("data"), dict):
            return value["data"]
        return value


class FormProcessed(BaseModel):
    """Acknowledgement for a form submission ("sent" or "duplicate")."""

    status: str

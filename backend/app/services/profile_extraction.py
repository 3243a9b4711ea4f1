"""Build the customer profile from a form submission.

The profile exists for one request only and is never persisted.
"""

from dataclasses import dataclass
from typing import Any

from app.core.llm_sanitization import sanitize_llm_input
from app.schemas.webhooks import FormField
from app.services.field_labels import FieldLabeler
from app.services.form_schema import FormSchema

DEFAULT_NAME = "Client"
DEFAULT_ALLERGIES = "None"


@dataclass(frozen=True)
class Profile:
    """Customer details derived from one submission.

    Attributes:
        name: Display name for the cover page and email greeting.
        email: Address the finished plan is sent to.
        allergies: Allergy / intolerance notes ("None" if not given).
        description: One "label: value" line per answered field.
    """

    name: str
    email: str
    allergies: str
    description: str


def format_value(value: Any) -> str:
    """Render a field value as text; lists are joined with ", "."""
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(format_value(v) for v in value)
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value).strip()


def extract_profile(
    fields: list[FormField],
    schema: FormSchema,
    labeler: FieldLabeler,
    recipient: str,
) -> Profile:
    """Extract name, email, allergies, and the profile description.

    Args:
        fields: Submitted fields in submission order.
        schema: Form schema of the plan the submission belongs to.
        labeler: Resolves option ids to readable labels.
        recipient: Email stored with the token, used when the form's own
            email answer is missing or blank.

    Returns:
        Profile for prompt building and delivery.
    """
    values = {f.key: format_value(labeler.label_value(f)) for f in fields}

    def role_value(field: FormField | None) -> str:
        return values.get(field.key, "") if field is not None else ""

    name = role_value(schema.name(fields)) or DEFAULT_NAME
    email = role_value(schema.email(fields)) or recipient
    allergies = role_value(schema.allergies(fields)) or DEFAULT_ALLERGIES

    lines = [
        f"{f.label or f.key}: {values[f.key]}"
        for f in fields
        if f.key != schema.token_field
    ]

    return Profile(
        name=name,
        email=email,
        allergies=sanitize_llm_input(allergies),
        description=sanitize_llm_input("\n".join(lines)),
    )

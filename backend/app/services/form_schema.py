"""Per-plan mapping from form field keys to semantic roles.

The hidden token field must be configured for every plan that has a form.
Name, email, and allergy fields may be pinned by key; when a role is not
pinned, the first field whose label contains the role keyword is used.
"""

from dataclasses import dataclass

from app.core.config import Settings
from app.schemas.plan import PlanVariant
from app.schemas.webhooks import FormField

_NAME_LABEL = "name"
_EMAIL_LABEL = "email"
_ALLERGY_LABEL = "allerg"


@dataclass(frozen=True)
class FormSchema:
    """Field keys for one plan's form.

    Attributes:
        plan_variant: Plan this form belongs to.
        base_url: Public form link (token is appended as a query parameter).
        token_field: Key of the hidden field carrying the token.
        name_field: Key of the name field, or None to match by label.
        email_field: Key of the email field, or None to match by label.
        allergy_field: Key of the allergy field, or None to match by label.
    """

    plan_variant: PlanVariant
    base_url: str
    token_field: str
    name_field: str | None = None
    email_field: str | None = None
    allergy_field: str | None = None

    def token_value(self, fields: list[FormField]) -> str | None:
        """Return the submitted token, or None if absent/blank."""
        field = _by_key(fields, self.token_field)
        if field is None or not isinstance(field.value, str):
            return None
        return field.value.strip() or None

    def name(self, fields: list[FormField]) -> FormField | None:
        """Field holding the customer's name."""
        return self._role(fields, self.name_field, _NAME_LABEL)

    def email(self, fields: list[FormField]) -> FormField | None:
        """Field holding the customer's email."""
        return self._role(fields, self.email_field, _EMAIL_LABEL)

    def allergies(self, fields: list[FormField]) -> FormField | None:
        """Field holding allergy / intolerance notes."""
        return self._role(fields, self.allergy_field, _ALLERGY_LABEL)

    def _role(
        self, fields: list[FormField], key: str | None, label_keyword: str
    ) -> FormField | None:
        if key is not None:
            return _by_key(fields, key)
        for field in fields:
            if field.key == self.token_field:
                continue
            if label_keyword in field.label.lower():
                return field
        return None


def _by_key(fields: list[FormField], key: str) -> FormField | None:
    return next((f for f in fields if f.key == key), None)


def build_form_schemas(settings: Settings) -> dict[PlanVariant, FormSchema]:
    """Build the schema of every configured form.

    Args:
        settings: Application settings (already validated).

    Returns:
        Mapping of plan variant to its form schema.
    """
    return {
        variant: FormSchema(
            plan_variant=variant,
            base_url=base_url,
            token_field=settings.form_token_fields[variant],
            name_field=settings.form_name_fields.get(variant),
            email_field=settings.form_email_fields.get(variant),
            allergy_field=settings.form_allergy_fields.get(variant),
        )
        for variant, base_url in settings.form_base_urls.items()
    }

"""Translate opaque form answer ids into readable labels.

Dropdown answers arrive as option UUIDs. Labels come from a static table for
the fields the prompts depend on, then from the option list the form
provider sends alongside each choice field.
"""

from typing import Any

from app.schemas.webhooks import FormField

# field key -> option id -> label
DROPDOWN_LABELS: dict[str, dict[str, str]] = {
    # Fitness goal
    "question_7KljZA": {
        "15ac77be-80c4-4020-8e06-6cc9058eb826": "Gain muscle mass",
        "aa5e8858-f6e1-4535-9ce1-8b02cc652e28": "Cut (fat loss)",
        "d441804a-2a44-4812-b505-41f63c80d50c": "Recomp (build muscle / lose fat)",
        "e3a2a823-67ae-4f69-a2b0-8bca4effb500": "Strength & power",
        "839e27ce-c311-4a7c-adbb-88ce03488614": "Athletic performance",
        "6b61091e-cecd-4a9b-ad9f-1e871bff8ebd": "Endurance / fitness",
        "2912e3f7-6122-4a82-91e3-2d5c81f7e89f": "Toning & sculpting",
        "bce9ebca-f750-4516-99df-44c1e9dc5a03": "General health & fitness",
    },
    # Equipment access
    "question_6KJ4xB": {
        "68fb3388-c809-4c91-8aa0-edecc63cba67": "Full gym access",
        "67e66192-f0be-4db6-98a8-a8c3f18364bc": "Home dumbbells / bands",
        "0a2111b9-efcd-4e52-9ef0-22f104c7d3ca": "Body-weight only",
    },
}


class FieldLabeler:
    """Resolve answer ids for choice fields.

    Unknown ids and free-text answers pass through unchanged.
    """

    def __init__(self, table: dict[str, dict[str, str]] | None = None) -> None:
        self._table = DROPDOWN_LABELS if table is None else table

    def label_value(self, field: FormField) -> Any:
        """Return the field's value with option ids replaced by labels.

        Args:
            field: Submitted field.

        Returns:
            Same shape as ``field.value`` (scalar or list).
        """
        mapping = dict(self._table.get(field.key, {}))
        if field.options:
            for option in field.options:
                mapping.setdefault(option.id, option.text)

        if not mapping:
            return field.value

        if isinstance(field.value, list):
            return [self._lookup(mapping, v) for v in field.value]
        return self._lookup(mapping, field.value)

    @staticmethod
    def _lookup(mapping: dict[str, str], value: Any) -> Any:
        if isinstance(value, str):
            return mapping.get(value, value)
        return value

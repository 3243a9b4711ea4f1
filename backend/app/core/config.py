"""Application configuration loaded from environment variables.

Settings for the webhook server, token persistence, the generation API, the
mail transport, and the per-plan form wiring. Uses pydantic-settings for
validation and .env file support.

Dict-valued settings are read from JSON, e.g.
``FORM_BASE_URLS='{"one_week": "https://tally.so/r/wMq9vX"}'``.
"""

from pathlib import Path

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.schemas.plan import PlanVariant

# Hidden-field keys and form links of the two live Tally forms
_DEFAULT_FORM_BASE_URLS: dict[PlanVariant, str] = {
    PlanVariant.ONE_WEEK: "https://tally.so/r/wMq9vX",
    PlanVariant.FOUR_WEEK: "https://tally.so/r/wzRD1g",
}
_DEFAULT_FORM_TOKEN_FIELDS: dict[PlanVariant, str] = {
    PlanVariant.ONE_WEEK: "question_xDJv8d_25b0dded-df81-4e6b-870b-9244029e451c",
    PlanVariant.FOUR_WEEK: "question_OX4qD8_279a746e-6a87-47a2-af5f-9015896eda25",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 3000

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Token persistence
    token_store_path: Path = Path("./tokens.json")

    # Submission dedupe window (form providers retry within minutes)
    dedupe_window_minutes: int = 15

    # Generation API
    openai_api_key: SecretStr = SecretStr("")
    llm_model: str = "gpt-4o"
    llm_temperature: float = 0.4
    llm_max_tokens: int = 10000
    llm_timeout_seconds: float = 120.0
    llm_max_retries: int = 3

    # Email (Resend)
    email_from: str = "BulkBot AI <plans@bulkbot.app>"
    resend_api_key: SecretStr = SecretStr("")
    mail_timeout_seconds: float = 30.0

    # Forms: plan variant -> link / hidden token field / semantic field keys
    form_base_urls: dict[PlanVariant, str] = dict(_DEFAULT_FORM_BASE_URLS)
    form_token_fields: dict[PlanVariant, str] = dict(_DEFAULT_FORM_TOKEN_FIELDS)
    form_name_fields: dict[PlanVariant, str] = {}
    form_email_fields: dict[PlanVariant, str] = {}
    form_allergy_fields: dict[PlanVariant, str] = {}

    # PDF assets (optional; built-in fonts and no logo when absent)
    pdf_font_dir: Path = Path("./fonts")
    pdf_logo_path: Path = Path("./assets/logo.jpg")

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_forms: str = "30/minute"  # form webhook triggers LLM calls
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def dedupe_window_seconds(self) -> float:
        """Dedupe window in seconds."""
        return self.dedupe_window_minutes * 60.0

    @property
    def enabled_plan_variants(self) -> frozenset[PlanVariant]:
        """Plan variants that have a form wired up."""
        return frozenset(self.form_base_urls)

    @model_validator(mode="after")
    def check_form_wiring(self) -> "Settings":
        """Validate form wiring and production credentials.

        Checks:
        - Every variant with a form link has a token field, and vice versa
        - Role-field overrides only name variants that have a form
        - Dedupe window is positive
        - Production requires generation and mail credentials
        """
        link_variants = set(self.form_base_urls)
        token_variants = set(self.form_token_fields)
        if link_variants != token_variants:
            missing = sorted(v.value for v in link_variants ^ token_variants)
            msg = (
                "FORM_BASE_URLS and FORM_TOKEN_FIELDS must configure the same "
                f"plan variants. Mismatched: {', '.join(missing)}"
            )
            raise ValueError(msg)

        for name in ("form_name_fields", "form_email_fields", "form_allergy_fields"):
            extra = set(getattr(self, name)) - link_variants
            if extra:
                msg = (
                    f"{name.upper()} names plan variants without a form: "
                    f"{', '.join(sorted(v.value for v in extra))}"
                )
                raise ValueError(msg)

        if self.dedupe_window_minutes <= 0:
            msg = (
                "DEDUPE_WINDOW_MINUTES must be positive. "
                f"Got: {self.dedupe_window_minutes}"
            )
            raise ValueError(msg)

        if self.environment == "production":
            if not self.openai_api_key.get_secret_value():
                msg = "OPENAI_API_KEY must be set in production."
                raise ValueError(msg)
            if not self.resend_api_key.get_secret_value():
                msg = "RESEND_API_KEY must be set in production."
                raise ValueError(msg)

        return self


settings = Settings()

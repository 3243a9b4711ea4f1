"""Shared dependencies for the webhook endpoints.

Each collaborator is a process-wide instance behind a FastAPI dependency,
so tests can swap any of them through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from app.core.config import settings
from app.core.email import Mailer, get_mailer
from app.providers.factory import get_llm_provider
from app.providers.llm.base import LLMProvider
from app.schemas.plan import PlanVariant
from app.services.form_intake import FormIntakeHandler
from app.services.form_schema import FormSchema, build_form_schemas
from app.services.plan_pdf import PlanDocumentRenderer
from app.services.submission_dedup import SubmissionDeduplicator, get_deduplicator
from app.services.token_store import TokenStore, get_token_store

_renderer: PlanDocumentRenderer | None = None
_form_schemas: dict[PlanVariant, FormSchema] | None = None


def get_renderer() -> PlanDocumentRenderer:
    """Get the process-wide PDF renderer."""
    global _renderer
    if _renderer is None:
        _renderer = PlanDocumentRenderer(settings.pdf_font_dir, settings.pdf_logo_path)
    return _renderer


def get_llm() -> LLMProvider:
    """Get the process-wide LLM provider."""
    return get_llm_provider()


def get_form_schemas() -> dict[PlanVariant, FormSchema]:
    """Get the configured form schemas keyed by plan variant."""
    global _form_schemas
    if _form_schemas is None:
        _form_schemas = build_form_schemas(settings)
    return _form_schemas


Store = Annotated[TokenStore, Depends(get_token_store)]
Deduplicator = Annotated[SubmissionDeduplicator, Depends(get_deduplicator)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]
Renderer = Annotated[PlanDocumentRenderer, Depends(get_renderer)]
LLM = Annotated[LLMProvider, Depends(get_llm)]
FormSchemas = Annotated[dict[PlanVariant, FormSchema], Depends(get_form_schemas)]


def get_form_intake_handler(
    store: Store,
    deduplicator: Deduplicator,
    mailer: MailerDep,
    renderer: Renderer,
    llm: LLM,
) -> FormIntakeHandler:
    """Assemble the form pipeline from the injected collaborators."""
    return FormIntakeHandler(
        store=store,
        deduplicator=deduplicator,
        mailer=mailer,
        renderer=renderer,
        provider=llm,
    )


FormIntake = Annotated[FormIntakeHandler, Depends(get_form_intake_handler)]

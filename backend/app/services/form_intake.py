"""Form webhook handling.

Turns one form submission into a delivered plan:

    RECEIVED → DEDUPE_CHECKED → TOKEN_VALIDATED → PROFILE_EXTRACTED →
    TEXT_GENERATED → DOCUMENT_RENDERED → EMAIL_SENT → TOKEN_CONSUMED

The token is reserved while the submission is processed and consumed only
after the email was accepted. When generation, rendering, or delivery fails
the reservation and the submission id are both released, so the form
provider's retry runs the pipeline again.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from app.core.email import MailDeliveryError, Mailer
from app.core.errors import InternalError, UnauthorizedError
from app.core.logging import redact_token
from app.providers.config import ProviderConfig
from app.providers.llm.base import LLMProvider
from app.schemas.plan import PlanVariant
from app.schemas.webhooks import FormSubmission
from app.services.field_labels import FieldLabeler
from app.services.form_schema import FormSchema
from app.services.plan_catalog import get_plan
from app.services.plan_generation import PlanGenerationError, generate_plan_text
from app.services.plan_pdf import CoverDetails, PlanDocumentRenderer
from app.services.profile_extraction import extract_profile
from app.services.submission_dedup import SubmissionDeduplicator
from app.services.token_store import TokenPersistenceError, TokenStore

logger = logging.getLogger(__name__)

PLAN_FILENAME = "Plan.pdf"


class FormIntakeState(Enum):
    """Pipeline states of one submission."""

    RECEIVED = "received"
    DEDUPE_CHECKED = "dedupe_checked"
    TOKEN_VALIDATED = "token_validated"
    PROFILE_EXTRACTED = "profile_extracted"
    TEXT_GENERATED = "text_generated"
    DOCUMENT_RENDERED = "document_rendered"
    EMAIL_SENT = "email_sent"
    TOKEN_CONSUMED = "token_consumed"
    # Terminal failures
    DUPLICATE = "duplicate"
    TOKEN_INVALID = "token_invalid"
    GENERATION_FAILED = "generation_failed"
    DELIVERY_FAILED = "delivery_failed"


@dataclass
class FormIntakeResult:
    """Outcome of a handled submission.

    Attributes:
        state: Last state reached (TOKEN_CONSUMED or DUPLICATE).
        status: Acknowledgement returned to the form provider.
    """

    state: FormIntakeState
    status: str


class FormIntakeHandler:
    """Run the submission pipeline against injected collaborators."""

    def __init__(
        self,
        *,
        store: TokenStore,
        deduplicator: SubmissionDeduplicator,
        mailer: Mailer,
        renderer: PlanDocumentRenderer,
        labeler: FieldLabeler | None = None,
        provider: LLMProvider | None = None,
        provider_config: ProviderConfig | None = None,
    ) -> None:
        self.store = store
        self.deduplicator = deduplicator
        self.mailer = mailer
        self.renderer = renderer
        self.labeler = labeler if labeler is not None else FieldLabeler()
        self.provider = provider
        self.provider_config = provider_config

    async def handle(
        self,
        plan_variant: PlanVariant,
        submission: FormSubmission,
        schema: FormSchema,
    ) -> FormIntakeResult:
        """Process one submission for the plan named by the endpoint.

        Args:
            plan_variant: Plan variant of the endpoint that was called.
            submission: Parsed submission payload.
            schema: Form schema configured for ``plan_variant``.

        Returns:
            FormIntakeResult with status "sent" or "duplicate".

        Raises:
            UnauthorizedError: Token missing, unknown, consumed, in use, or
                issued for another plan (401).
            InternalError: Generation, rendering, or delivery failed, or the
                consumed token could not be persisted after delivery (500).
        """
        submission_id = submission.submission_id
        state = FormIntakeState.RECEIVED

        if self.deduplicator.seen(submission_id):
            return FormIntakeResult(FormIntakeState.DUPLICATE, "duplicate")
        state = FormIntakeState.DEDUPE_CHECKED

        token = schema.token_value(submission.fields)
        record = await self.store.reserve(token, plan_variant) if token else None
        if record is None:
            logger.warning(
                "Submission %s rejected: invalid token %s",
                submission_id,
                redact_token(token),
            )
            raise UnauthorizedError()
        state = FormIntakeState.TOKEN_VALIDATED

        delivered = False
        try:
            profile = extract_profile(
                submission.fields, schema, self.labeler, record.recipient
            )
            state = FormIntakeState.PROFILE_EXTRACTED

            plan = get_plan(plan_variant)
            text = await generate_plan_text(
                plan,
                profile,
                provider=self.provider,
                config=self.provider_config,
            )
            state = FormIntakeState.TEXT_GENERATED

            pdf_bytes = await asyncio.to_thread(
                self.renderer.render,
                text,
                plan.document_title,
                CoverDetails(
                    name=profile.name,
                    email=profile.email,
                    allergies=profile.allergies,
                ),
            )
            state = FormIntakeState.DOCUMENT_RENDERED

            await self.mailer.send_plan_document(
                to_email=profile.email,
                name=profile.name,
                pdf_bytes=pdf_bytes,
                filename=PLAN_FILENAME,
            )
            delivered = True
            state = FormIntakeState.EMAIL_SENT
        except PlanGenerationError as e:
            logger.error(
                "Submission %s failed in %s: %s",
                submission_id,
                FormIntakeState.GENERATION_FAILED.value,
                e.message,
            )
            raise InternalError("Plan could not be generated") from e
        except MailDeliveryError as e:
            logger.error(
                "Submission %s failed in %s: %s",
                submission_id,
                FormIntakeState.DELIVERY_FAILED.value,
                e.message,
            )
            raise InternalError("Plan could not be delivered") from e
        except Exception as e:
            logger.exception(
                "Submission %s failed after %s", submission_id, state.value
            )
            raise InternalError("Plan could not be produced") from e
        finally:
            if not delivered:
                await self.store.release(token)
                self.deduplicator.release(submission_id)

        try:
            consumed = await self.store.mark_consumed(token)
        except TokenPersistenceError as e:
            # Token stays consumed in memory and the submission id stays
            # registered, so redeliveries before a restart are still refused.
            logger.error(
                "Plan sent for submission %s but token %s was not persisted",
                submission_id,
                redact_token(token),
            )
            raise InternalError("Plan was sent but could not be recorded") from e
        if not consumed:
            logger.warning(
                "Token %s was already consumed after delivery", redact_token(token)
            )

        logger.info(
            "Submission %s delivered plan %s to recipient of token %s",
            submission_id,
            plan_variant.value,
            redact_token(token),
        )
        return FormIntakeResult(FormIntakeState.TOKEN_CONSUMED, "sent")

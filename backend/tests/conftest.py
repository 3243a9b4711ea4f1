import json
from collections.abc import AsyncGenerator, Iterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.email import Mailer
from app.core.rate_limiting import limiter
from app.providers import factory
from app.providers.llm.base import TaskType
from app.providers.llm.mock_adapter import MockLLMProvider
from app.schemas.plan import PlanVariant
from app.services.form_schema import FormSchema
from app.services.plan_pdf import PlanDocumentRenderer
from app.services.submission_dedup import SubmissionDeduplicator
from app.services.token_store import TokenStore

# Hidden token field keys of the two live forms
ONE_WEEK_TOKEN_FIELD = "question_xDJv8d_25b0dded-df81-4e6b-870b-9244029e451c"
FOUR_WEEK_TOKEN_FIELD = "question_OX4qD8_279a746e-6a87-47a2-af5f-9015896eda25"

TEST_BUYER_EMAIL = "buyer@example.com"

MOCK_PLAN_TEXT = (
    "Day 1:\n"
    "Workout:\n"
    "- Squat – 4 x 8 • RPE 8 • brace your core\n"
    "Meal:\n"
    "- Breakfast: Oats with berries – 450 kcal / 30P / 60C / 10F"
)


def build_form_fields(
    token: str | None,
    *,
    token_field: str = ONE_WEEK_TOKEN_FIELD,
    name: str = "Alex",
    email: str = "alex@example.com",
    allergies: str = "Peanuts",
) -> list[dict]:
    """Build a realistic list of submitted form fields."""
    fields = [
        {
            "key": "question_name",
            "label": "Full name",
            "type": "INPUT_TEXT",
            "value": name,
        },
        {
            "key": "question_email",
            "label": "Email",
            "type": "INPUT_EMAIL",
            "value": email,
        },
        {
            "key": "question_7KljZA",
            "label": "Fitness goal",
            "type": "DROPDOWN",
            "value": ["15ac77be-80c4-4020-8e06-6cc9058eb826"],
        },
        {
            "key": "question_allergies",
            "label": "Allergies / intolerances",
            "type": "INPUT_TEXT",
            "value": allergies,
        },
    ]
    if token is not None:
        fields.append(
            {
                "key": token_field,
                "label": "token",
                "type": "HIDDEN_FIELDS",
                "value": token,
            }
        )
    return fields


def build_submission(
    token: str | None,
    *,
    submission_id: str = "sub-1",
    token_field: str = ONE_WEEK_TOKEN_FIELD,
) -> dict:
    """Build a form-provider webhook body wrapped in its event envelope."""
    return {
        "eventId": f"evt-{submission_id}",
        "eventType": "FORM_RESPONSE",
        "data": {
            "submissionId": submission_id,
            "fields": build_form_fields(token, token_field=token_field),
        },
    }


@pytest.fixture
def mock_llm() -> Iterator[MockLLMProvider]:
    """Fixture that provides mock LLM and resets after test.

    Injects a MockLLMProvider into the factory singleton, answering plan
    generation calls with MOCK_PLAN_TEXT.

    Yields:
        MockLLMProvider instance.
    """
    mock = MockLLMProvider({TaskType.PLAN_GENERATION: MOCK_PLAN_TEXT})

    # Inject mock into factory singleton
    factory._llm_provider = mock

    yield mock

    # Reset after test
    factory.reset_providers()


@pytest.fixture
def token_file(tmp_path: Path) -> Path:
    """Path of an (initially missing) token file."""
    return tmp_path / "tokens.json"


@pytest.fixture
def token_store(token_file: Path) -> TokenStore:
    """Empty token store backed by a temp file."""
    return TokenStore(token_file)


@pytest.fixture
def deduplicator() -> SubmissionDeduplicator:
    """Deduplicator with the default 15 minute window."""
    return SubmissionDeduplicator()


@pytest.fixture
def sent_emails() -> list[dict]:
    """JSON payloads the mailer posted, in order."""
    return []


@pytest.fixture
def mailer(sent_emails: list[dict]) -> Mailer:
    """Mailer whose Resend calls are answered by an in-process transport."""

    def handler(request: httpx.Request) -> httpx.Response:
        sent_emails.append(json.loads(request.content))
        return httpx.Response(200, json={"id": f"email-{len(sent_emails)}"})

    return Mailer(
        api_key="re_test",  # nosec B106
        email_from="BulkBot AI <plans@example.com>",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def renderer(tmp_path: Path) -> PlanDocumentRenderer:
    """Renderer with no custom fonts or logo (built-in faces)."""
    return PlanDocumentRenderer(tmp_path / "fonts", None)


@pytest.fixture
def form_schemas() -> dict[PlanVariant, FormSchema]:
    """Schemas of the two live forms."""
    return {
        PlanVariant.ONE_WEEK: FormSchema(
            plan_variant=PlanVariant.ONE_WEEK,
            base_url="https://tally.so/r/wMq9vX",
            token_field=ONE_WEEK_TOKEN_FIELD,
        ),
        PlanVariant.FOUR_WEEK: FormSchema(
            plan_variant=PlanVariant.FOUR_WEEK,
            base_url="https://tally.so/r/wzRD1g",
            token_field=FOUR_WEEK_TOKEN_FIELD,
        ),
    }


@pytest_asyncio.fixture
async def client(
    mock_llm: MockLLMProvider,
    token_store: TokenStore,
    deduplicator: SubmissionDeduplicator,
    mailer: Mailer,
    renderer: PlanDocumentRenderer,
    form_schemas: dict[PlanVariant, FormSchema],
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with every collaborator overridden.

    Rate limiting is disabled for the duration of the test.

    Yields:
        AsyncClient bound to the application over an ASGI transport.
    """
    from app.api.deps import get_form_schemas, get_llm, get_renderer
    from app.core.email import get_mailer
    from app.main import app
    from app.services.submission_dedup import get_deduplicator
    from app.services.token_store import get_token_store

    app.dependency_overrides[get_token_store] = lambda: token_store
    app.dependency_overrides[get_deduplicator] = lambda: deduplicator
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_renderer] = lambda: renderer
    app.dependency_overrides[get_llm] = lambda: mock_llm
    app.dependency_overrides[get_form_schemas] = lambda: form_schemas

    original_enabled = limiter.enabled
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.enabled = original_enabled
    app.dependency_overrides.clear()

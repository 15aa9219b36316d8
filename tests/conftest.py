"""Shared test fixtures."""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before the settings module is imported
os.environ["UML_DATABASE_URL"] = "sqlite+aiosqlite:///./data/test-uml.db"
os.environ["UML_LOG_LEVEL"] = "ERROR"  # Reduce log noise
os.environ.pop("UML_OPENAI_API_KEY", None)

from tests.fakes import FakeAssistantBackend, FakeClock, FakeRenderService, RecordingSleep  # noqa: E402
from uml_api import app  # noqa: E402
from uml_api.api import get_gateway, get_library, get_render_client  # noqa: E402
from uml_api.assistant import AssistantGateway  # noqa: E402
from uml_api.config import Settings, get_settings  # noqa: E402
from uml_api.diagrams import DiagramLibrary  # noqa: E402
from uml_api.render import RenderClient  # noqa: E402
from uml_api.storage import SQLiteDiagramStore  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    """Settings with both assistants configured."""
    return Settings(
        code_generator_assistant_id="asst_generator",
        code_examiner_assistant_id="asst_examiner",
        assistant_poll_interval=0.01,
    )


@pytest.fixture
def backend() -> FakeAssistantBackend:
    """Assistant backend that completes at once with a plain reply."""
    return FakeAssistantBackend.replying("Looks good.")


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def gateway(backend: FakeAssistantBackend, sleep: RecordingSleep) -> AssistantGateway:
    return AssistantGateway(backend, poll_interval=0.5, sleep=sleep)


@pytest.fixture
def render_service() -> FakeRenderService:
    return FakeRenderService()


@pytest_asyncio.fixture
async def render_client(render_service: FakeRenderService) -> AsyncGenerator[RenderClient, None]:
    client = RenderClient("http://plantuml.test/plantuml", timeout=5.0, client=render_service.client())
    yield client
    await client.shutdown()


@pytest_asyncio.fixture
async def store(tmp_path) -> AsyncGenerator[SQLiteDiagramStore, None]:
    """File-backed SQLite store in a temporary directory."""
    store = SQLiteDiagramStore(f"sqlite+aiosqlite:///{tmp_path / 'uml.db'}")
    await store.startup()
    yield store
    await store.shutdown()


@pytest.fixture
def library(store: SQLiteDiagramStore) -> DiagramLibrary:
    return DiagramLibrary(store, clock=FakeClock(), transaction_attempts=2)


@pytest_asyncio.fixture
async def client(
    test_settings: Settings,
    gateway: AssistantGateway,
    render_client: RenderClient,
    library: DiagramLibrary,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client with every service replaced through dependency overrides."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_render_client] = lambda: render_client
    app.dependency_overrides[get_library] = lambda: library

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

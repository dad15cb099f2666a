import sys
from pathlib import Path

# Ensure repository root is on sys.path so 'import cleartext' works
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from httpx import ASGITransport, AsyncClient

from cleartext.app.config import Settings
from cleartext.app.main import create_app
from cleartext.app.services.moderation import ModerationService
from cleartext.tests.stubs import StubOpenAI


# Force pytest-anyio to use asyncio backend (avoid requiring 'trio')
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(OPENAI_API_KEY="sk-test", _env_file=None)


@pytest.fixture
def openai_stub() -> StubOpenAI:
    return StubOpenAI()


@pytest.fixture
def app(settings, openai_stub):
    return create_app(settings, ModerationService(settings, client=openai_stub))


@pytest.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from dependency_injector import providers
from httpx import ASGITransport, AsyncClient

# Ensure project's `back` package is importable
tests_dir = Path(__file__).resolve().parent
project_back = str(tests_dir.parent)
if project_back not in sys.path:
    sys.path.insert(0, project_back)

# Set minimal environment variables for testing (до импорта supplychain)
_tmp_dir = tempfile.mkdtemp(prefix="supplychain-tests-")
os.environ["ASYNC_DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir}/app.db"
os.environ["AI_CACHE_PATH"] = f"{_tmp_dir}/ai_cache.json"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_KEY"] = "test-admin-key"
os.environ["PASSWORD_MIN_LENGTH"] = "4"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "60"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("VISION_API_KEY", None)

from supplychain.analytics.backoff import BackoffRetrier
from supplychain.analytics.cache import ResponseCache
from supplychain.analytics.orchestrator import AnalyticsOrchestrator
from supplychain.analytics.rate_limiter import RateLimiter
from supplychain.clients.gemini import GeminiClient
from supplychain.core.security import SecurityManager
from supplychain.db.base import Base
from supplychain.db.session import build_engine, build_session_factory
from supplychain.repo.documents import DocumentStore

FIXED_NOW = datetime(2024, 12, 15, 12, 0, tzinfo=timezone.utc)


class StubLLM:
    """
    Подмена GeminiClient: отдаёт заготовленные ответы по очереди
    (последний повторяется) и считает вызовы.
    Исключение в списке ответов выбрасывается.
    """

    def __init__(self, *responses):
        self.responses = list(responses) or ['{"prediction": 1}']
        self.calls = 0
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        self.prompts.append(prompt)
        idx = min(self.calls - 1, len(self.responses) - 1)
        response = self.responses[idx]
        if isinstance(response, BaseException):
            raise response
        return response


class FakeClock:
    """Монотонные часы, которые двигаются только руками."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordedSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recorded_sleep():
    return RecordedSleep()


@pytest.fixture
def cache(tmp_path):
    return ResponseCache(tmp_path / "ai_cache.json")


@pytest.fixture
def make_orchestrator(cache, fake_clock, recorded_sleep):
    """Собирает оркестратор на заглушках; лимитер и retrier доступны через атрибуты."""

    def _make(llm=None, max_calls: int = 45, cache_fallback: bool = False, image_analyzer=None):
        return AnalyticsOrchestrator(
            llm=llm or StubLLM(),
            cache=cache,
            limiter=RateLimiter(max_calls=max_calls, window_seconds=3600, clock=fake_clock),
            retrier=BackoffRetrier(base_delay=30, max_delay=60, sleep=recorded_sleep),
            image_analyzer=image_analyzer,
            cache_fallback=cache_fallback,
            max_retries=3,
            clock=lambda: FIXED_NOW,
        )

    return _make


@pytest.fixture(scope="function")
async def store(tmp_path):
    """Чистое хранилище на sqlite для каждого теста"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/store.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield DocumentStore(build_session_factory(engine))

    await engine.dispose()


@pytest.fixture
async def client(store, tmp_path):
    """Create test client"""
    from main import create_app

    app = create_app()
    container = app.container
    container.document_store.override(providers.Object(store))
    container.response_cache.override(providers.Object(ResponseCache(tmp_path / "api_cache.json")))
    container.llm_client.override(providers.Object(GeminiClient(api_key=None)))
    container.vision_client.override(providers.Object(None))

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    container.reset_override()
    container.unwire()


def _token(user_id: str, role: str) -> str:
    return SecurityManager.create_access_token(
        user_id,
        email=f"{user_id}@example.com",
        role=role,
        expires_delta=timedelta(minutes=60),
    )


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {_token('admin-1', 'admin')}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {_token('user-1', 'user')}"}


@pytest.fixture
def other_user_headers():
    return {"Authorization": f"Bearer {_token('user-2', 'user')}"}


@pytest.fixture
def sample_user_data():
    """Sample user data for testing"""
    return {
        "email": "test@example.com",
        "name": "Test User",
        "password": "testpassword",
    }

"""
Shared test fixtures for Reelpipe Backend tests.

Provides:
- Test database (SQLite in-memory)
- Test client (httpx AsyncClient over ASGI)
- Authenticated users (JWT tokens issued directly)
- Project, segment and render factories
- Fake OpenAI responses
- Mock Redis for the rate limiter
"""

import json
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, AsyncGenerator, Generator, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-purposes-only-32chars"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["RENDER_API_KEY"] = "test-render-key"
os.environ["FRAME_ANALYSIS_DELAY_MS"] = "0"
os.environ["STORAGE_PUBLIC_URL"] = "https://files.example.com"

# Create a temporary directory for test storage
_test_storage_dir = tempfile.mkdtemp(prefix="reelpipe_test_")
os.environ["STORAGE_PATH"] = _test_storage_dir

from reelpipe.core.database import Base
from reelpipe.core.security import create_access_token
from reelpipe.main import app
from reelpipe.models.status import ProjectStatus, RenderStatus
from reelpipe.models.user import User
from reelpipe.models.video_project import VideoProject
from reelpipe.models.video_render import VideoRender
from reelpipe.models.video_segment import VideoSegment
from reelpipe.services.media_fetch import DownloadedMedia


# =============================================================================
# Test Database Configuration
# =============================================================================

# Create test engine with in-memory SQLite
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)

TestAsyncSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide an async database session for testing.

    Creates all tables before the test and drops them after.
    Each test gets a fresh database.
    """
    # Create all tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestAsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # Drop all tables after test
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    """Override database dependency for testing."""
    async with TestAsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# =============================================================================
# Mock Redis Fixtures
# =============================================================================


@pytest.fixture
def mock_redis() -> Generator[MagicMock, None, None]:
    """Mock Redis connection for tests (every request is under its limit)."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.ttl.return_value = 0
    mock.ping.return_value = True
    mock.pipeline.return_value = MagicMock(
        incr=MagicMock(return_value=mock),
        expire=MagicMock(return_value=mock),
        execute=MagicMock(return_value=[1, True]),
    )

    with patch("reelpipe.core.redis.get_redis_connection", return_value=mock):
        with patch("reelpipe.core.rate_limit.get_redis_connection", return_value=mock):
            yield mock


# =============================================================================
# Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def async_client(
    test_db: AsyncSession,
    mock_redis: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide an async HTTP client for testing the FastAPI application.

    Overrides the database dependency to use the test database.
    """
    from reelpipe.api.deps import get_db
    from reelpipe.core.database import get_async_session

    # Override database dependencies
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_async_session] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Clean up
    app.dependency_overrides.clear()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_user(test_db: AsyncSession) -> User:
    """Create the primary test user."""
    return await create_user_directly(test_db)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Provide authentication headers for the test user."""
    return {"Authorization": f"Bearer {create_access_token(test_user.id)}"}


@pytest_asyncio.fixture
async def second_test_user(test_db: AsyncSession) -> User:
    """Create a second test user for authorization tests."""
    return await create_user_directly(test_db, username=f"seconduser_{uuid.uuid4().hex[:8]}")


@pytest.fixture
def second_auth_headers(second_test_user: User) -> dict:
    """Provide authentication headers for the second test user."""
    return {"Authorization": f"Bearer {create_access_token(second_test_user.id)}"}


# =============================================================================
# Project Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_project(test_db: AsyncSession, test_user: User) -> VideoProject:
    """A freshly uploaded project with a fetchable source video."""
    return await create_project_directly(test_db, test_user)


@pytest_asyncio.fixture
async def ready_project(test_db: AsyncSession, test_user: User) -> VideoProject:
    """A project in segments_ready with three included segments (5s, 4s, 6s)."""
    project = await create_project_directly(
        test_db,
        test_user,
        status=ProjectStatus.SEGMENTS_READY.value,
        frame_analysis=sample_frame_analysis([5, 6, 7]),
    )
    for index, (start, end, text) in enumerate([
        (10000, 15000, "Here is the hook"),
        (2000, 6000, "Some context"),
        (20000, 26000, "And the payoff"),
    ]):
        await create_segment_directly(
            test_db, project, index=index, start_ms=start, end_ms=end, subtitle_text=text
        )
    return project


# =============================================================================
# Storage and External Service Fixtures
# =============================================================================


@pytest.fixture
def test_storage_dir() -> Generator[Path, None, None]:
    """Provide a temporary storage directory for tests."""
    with tempfile.TemporaryDirectory(prefix="reelpipe_test_") as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture(autouse=True)
def setup_test_storage(test_storage_dir: Path) -> Generator[None, None, None]:
    """Point artifact storage at a per-test directory."""
    with patch("reelpipe.core.storage.get_storage_root", return_value=test_storage_dir):
        yield


@pytest.fixture
def mock_submit_render() -> Generator[AsyncMock, None, None]:
    """Render service accepts every job and answers with a fresh id."""
    with patch("reelpipe.services.render_orchestrator.submit_render", new_callable=AsyncMock) as mock:
        mock.side_effect = lambda composition: f"job-{uuid.uuid4().hex[:12]}"
        yield mock


@pytest.fixture
def mock_render_download() -> Generator[AsyncMock, None, None]:
    """Download of finished renders announced by the callback."""
    with patch("reelpipe.services.callback_handler.download_media", new_callable=AsyncMock) as mock:
        mock.return_value = DownloadedMedia(
            data=b"\x00\x00\x00\x18ftypmp42rendered-reel",
            content_type="video/mp4",
            filename="render.mp4",
        )
        yield mock


# =============================================================================
# Helper Functions
# =============================================================================


def sample_frame_analysis(scores: list[float], interval_ms: int = 4000) -> list[dict]:
    """Stored frame judgements with the given scores, one per interval."""
    return [
        {
            "frame_index": i,
            "timestamp_ms": i * interval_ms,
            "score": score,
            "description": f"Frame {i}",
            "tags": ["test"],
            "has_face": score >= 5,
            "has_text": False,
            "energy_level": "high" if score >= 7 else "low",
        }
        for i, score in enumerate(scores)
    ]


def sample_transcription(duration_sec: int = 40) -> dict:
    """verbose_json transcription reply with one word every half second."""
    words = [
        {"word": f" word{i}", "start": i * 0.5, "end": i * 0.5 + 0.4}
        for i in range(duration_sec * 2)
    ]
    return {
        "text": " ".join(w["word"].strip() for w in words),
        "language": "english",
        "words": words,
    }


def make_chat_response(
    content: Optional[str] = None,
    tool_name: Optional[str] = None,
    tool_arguments: Optional[Any] = None,
) -> MagicMock:
    """Fake chat completion carrying either text content or one tool call."""
    message = MagicMock()
    message.content = content
    message.tool_calls = None

    if tool_name is not None:
        call = MagicMock()
        call.function.name = tool_name
        call.function.arguments = (
            tool_arguments if isinstance(tool_arguments, str) else json.dumps(tool_arguments)
        )
        message.tool_calls = [call]

    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def make_openai_client(
    chat_create: Optional[Any] = None,
    transcription_create: Optional[Any] = None,
) -> MagicMock:
    """Fake AsyncOpenAI client; arguments are side effects for the two calls."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=chat_create)
    client.audio.transcriptions.create = AsyncMock(side_effect=transcription_create)
    return client


async def create_user_directly(
    db: AsyncSession,
    username: str = None,
) -> User:
    """Create a user directly in the database."""
    if username is None:
        username = f"testuser_{uuid.uuid4().hex[:8]}"

    user = User(username=username)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_project_directly(
    db: AsyncSession,
    user: User,
    status: str = ProjectStatus.UPLOADED.value,
    source_video_url: Optional[str] = "https://cdn.example.com/source/video.mp4",
    source_duration_ms: Optional[int] = 60000,
    **fields: Any,
) -> VideoProject:
    """Create a project directly in the database."""
    fields.setdefault("frame_analysis", [])
    project = VideoProject(
        user_id=user.id,
        source_video_path=f"uploads/{user.id}/{uuid.uuid4().hex}.mp4",
        source_video_url=source_video_url,
        source_duration_ms=source_duration_ms,
        status=status,
        **fields,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)
    return project


async def create_segment_directly(
    db: AsyncSession,
    project: VideoProject,
    index: int,
    start_ms: int,
    end_ms: int,
    subtitle_text: Optional[str] = "Subtitle",
    is_included: bool = True,
) -> VideoSegment:
    """Create a segment directly in the database."""
    segment = VideoSegment(
        project_id=project.id,
        user_id=project.user_id,
        segment_index=index,
        start_ms=start_ms,
        end_ms=end_ms,
        score=5.0,
        narrative_role="context",
        subtitle_text=subtitle_text,
        is_included=is_included,
    )
    db.add(segment)
    await db.commit()
    await db.refresh(segment)
    return segment


async def create_render_directly(
    db: AsyncSession,
    project: VideoProject,
    external_job_id: str = None,
    status: str = RenderStatus.QUEUED.value,
    track: bool = True,
) -> VideoRender:
    """
    Create a render directly in the database.

    With track=True the project is moved to rendering and linked to the job.
    """
    if external_job_id is None:
        external_job_id = f"job-{uuid.uuid4().hex[:12]}"

    render = VideoRender(
        project_id=project.id,
        user_id=project.user_id,
        external_job_id=external_job_id,
        status=status,
        composition={"timeline": {"tracks": []}, "output": {}, "callback": "https://test"},
    )
    db.add(render)
    if track:
        project.status = ProjectStatus.RENDERING.value
        project.render_job_id = external_job_id
    await db.commit()
    await db.refresh(render)
    return render

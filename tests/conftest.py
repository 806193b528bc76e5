"""
Pytest configuration and shared fixtures for the knowledge tree test suite.
"""

import os
from datetime import datetime, timedelta

import jwt
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment before importing app
os.environ["KT_ENVIRONMENT"] = "test"
os.environ["KT_DB_URL"] = "sqlite+aiosqlite:///:memory:"
# Set test JWT secret for testing
os.environ["KT_JWT_PUBLIC_KEY"] = "test-secret"
os.environ["KT_JWT_ALGORITHM"] = "HS256"  # Use HS256 for testing
# Disable rate limiting for tests
os.environ["KT_RATE_LIMIT_REQUESTS"] = "999999"
# Never reach a real storage service
os.environ["KT_BLOB_STORAGE_BASE"] = "http://mock-storage:54321"

from ktree.clients.blob_storage import get_blob_storage, parse_code_image  # noqa: E402
from ktree.config import get_settings  # noqa: E402
from ktree.db.base import Base, enable_sqlite_foreign_keys  # noqa: E402
from ktree.models import KnowledgeNode, LearningTree, Student  # noqa: E402

settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(settings.db_url, echo=False)
    enable_sqlite_foreign_keys(engine)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def sample_tree(db_session):
    """A small tree:

        Algebra (root)
        +-- Linear equations (sort 1)
        |   +-- One variable (sort 0)
        +-- Quadratics (sort 0)
    """
    tree = LearningTree(title="Algebra I", chapter_desc="Chapter 1")
    db_session.add(tree)
    await db_session.flush()

    root = KnowledgeNode(tree_id=tree.id, parent_id=None, name="Algebra")
    db_session.add(root)
    await db_session.flush()

    linear = KnowledgeNode(
        tree_id=tree.id, parent_id=root.id, name="Linear equations", sort_order=1
    )
    quadratics = KnowledgeNode(
        tree_id=tree.id, parent_id=root.id, name="Quadratics", sort_order=0
    )
    db_session.add_all([linear, quadratics])
    await db_session.flush()

    one_var = KnowledgeNode(
        tree_id=tree.id, parent_id=linear.id, name="One variable", sort_order=0
    )
    db_session.add(one_var)
    await db_session.commit()

    return {
        "tree": tree,
        "root": root,
        "linear": linear,
        "quadratics": quadratics,
        "one_var": one_var,
    }


@pytest_asyncio.fixture
async def sample_student(db_session):
    """A registered student."""
    student = Student(username="ada", name="Ada")
    db_session.add(student)
    await db_session.commit()
    return student


def make_token(user_id, role: str, **overrides) -> str:
    """Sign a test JWT the way the identity provider would."""
    payload = {
        "sub": str(user_id),
        "role": role,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": datetime.utcnow() + timedelta(hours=1),
        "iat": datetime.utcnow(),
    }
    payload.update(overrides)

    return jwt.encode(
        payload,
        "test-secret",  # Must match KT_JWT_PUBLIC_KEY
        algorithm="HS256",  # Must match KT_JWT_ALGORITHM
    )


@pytest.fixture
def instructor_token():
    """JWT for instructor 1."""
    return make_token(1, "instructor")


@pytest.fixture
def student_headers():
    """Build auth headers for a student ID."""

    def _headers(student_id: int):
        return {"Authorization": f"Bearer {make_token(student_id, 'student')}"}

    return _headers


class FakeBlobStorage:
    """In-memory stand-in for the storage service."""

    def __init__(self):
        self.uploaded = []
        self.removed = []

    async def upload_image(self, image_base64, mime_type=None):
        _, ext, _ = parse_code_image(
            image_base64, mime_type, settings.max_code_image_bytes
        )
        url = (
            "http://mock-storage:54321/storage/v1/object/public/code-images/"
            f"student-code/{len(self.uploaded) + 1}.{ext}"
        )
        self.uploaded.append(url)
        return url

    async def remove_image(self, image_url):
        if image_url:
            self.removed.append(image_url)


@pytest.fixture
def fake_blobs():
    return FakeBlobStorage()


@pytest.fixture
def app(fake_blobs):
    """Create test app instance backed by a fresh in-memory database."""
    from ktree.server import create_app

    test_app = create_app()
    test_app.dependency_overrides[get_blob_storage] = lambda: fake_blobs
    return test_app


@pytest.fixture
def client(app):
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_client(client, instructor_token):
    """Client authenticated as an instructor."""
    client.headers = {"Authorization": f"Bearer {instructor_token}"}
    return client


# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@pytest.fixture
def png_base64():
    return PNG_BASE64

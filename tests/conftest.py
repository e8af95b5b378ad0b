"""
Pytest configuration and shared fixtures.

Provides:
- In-memory SQLite database (async SQLAlchemy + aiosqlite), fresh per test
- Seed data: organization, participatory space, proposals component,
  categories and scopes
- Mock Auth0 JWT payloads with permission claims
- Fake geocoder and a filesystem attachment storage under tmp_path
- httpx AsyncClient fixtures with dependency overrides

Async Helper Functions:
- acreate_proposal(): Create a Proposal using AsyncSession
- acreate_photo(): Attach a stored gallery photo to a proposal
- aset_component_settings(): Change the settings of a component
"""

from __future__ import annotations

import base64
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Set test environment variables before importing the app
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUTH0_DOMAIN", "test.local")
os.environ.setdefault("AUTH0_AUDIENCE", "test-audience")
os.environ.setdefault("AUTH0_ALGORITHMS", "RS256")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("OBSERVABILITY_STRUCTURED_LOGS", "false")

import httpx  # noqa: E402 (import after env setup)
import pytest  # noqa: E402 (import after env setup)
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from proposals_admin.core.dependencies import (  # noqa: E402
    get_async_db_session,
    get_current_user,
)
from proposals_admin.core.security import ALL_PERMISSIONS, PROPOSAL_READ  # noqa: E402
from proposals_admin.db.models import (  # noqa: E402
    Attachment,
    Base,
    Category,
    Component,
    Organization,
    ParticipatorySpace,
    Proposal,
    Scope,
    utcnow,
)
from proposals_admin.domain.context import AdminContext  # noqa: E402
from proposals_admin.main import create_app  # noqa: E402
from proposals_admin.services.attachment_storage import (  # noqa: E402
    FilesystemAttachmentStorage,
    UploadedFile,
    get_attachment_storage,
)
from proposals_admin.services.geocoding import get_geocoder  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
PDF_BYTES = b"%PDF-1.4\n%test document\n"

VALID_TITLE = "Repair the sidewalks of the main street"
VALID_BODY = "The sidewalks next to the market are broken and dangerous for everyone."


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def photo_payload(filename: str = "city.png") -> dict[str, str]:
    return {"filename": filename, "content_type": "image/png", "data": b64(PNG_BYTES)}


def document_payload(filename: str = "report.pdf") -> dict[str, str]:
    return {"filename": filename, "content_type": "application/pdf", "data": b64(PDF_BYTES)}


# =============================================================================
# AnyIO Backend Configuration
# =============================================================================
@pytest.fixture
def anyio_backend():
    return "asyncio"


# ============================================================================
# Async SQLAlchemy Fixtures
# ============================================================================


@pytest.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Fresh in-memory SQLite engine with the schema created.

    StaticPool keeps the single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def async_db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Async session that really commits; the database is dropped with the engine."""
    session_maker = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


# ============================================================================
# Seed Data
# ============================================================================


@pytest.fixture
async def organization(async_db_session: AsyncSession) -> Organization:
    org = Organization(name="Decidim City", host="city.example.org")
    async_db_session.add(org)
    await async_db_session.commit()
    return org


@pytest.fixture
async def participatory_space(
    async_db_session: AsyncSession, organization: Organization
) -> ParticipatorySpace:
    space = ParticipatorySpace(
        organization=organization, title="Urban renewal", slug="urban-renewal"
    )
    async_db_session.add(space)
    await async_db_session.commit()
    return space


@pytest.fixture
async def component(
    async_db_session: AsyncSession, participatory_space: ParticipatorySpace
) -> Component:
    component = Component(
        participatory_space=participatory_space,
        manifest_name="proposals",
        name="Proposals",
        settings={},
    )
    async_db_session.add(component)
    await async_db_session.commit()
    return component


@pytest.fixture
async def category(
    async_db_session: AsyncSession, participatory_space: ParticipatorySpace
) -> Category:
    category = Category(participatory_space_id=participatory_space.id, name="Mobility")
    async_db_session.add(category)
    await async_db_session.commit()
    return category


@pytest.fixture
async def other_space_category(
    async_db_session: AsyncSession, organization: Organization
) -> Category:
    """Category belonging to another participatory space of the organization."""
    space = ParticipatorySpace(organization=organization, title="Budgets", slug="budgets")
    async_db_session.add(space)
    await async_db_session.flush()
    category = Category(participatory_space_id=space.id, name="Culture")
    async_db_session.add(category)
    await async_db_session.commit()
    return category


@pytest.fixture
async def scope(async_db_session: AsyncSession, organization: Organization) -> Scope:
    scope = Scope(organization_id=organization.id, name="North district", code="NORTH")
    async_db_session.add(scope)
    await async_db_session.commit()
    return scope


@pytest.fixture
async def other_organization_scope(async_db_session: AsyncSession) -> Scope:
    org = Organization(name="Another City", host="another.example.org")
    async_db_session.add(org)
    await async_db_session.flush()
    scope = Scope(organization_id=org.id, name="Harbour", code="HARBOUR")
    async_db_session.add(scope)
    await async_db_session.commit()
    return scope


async def aset_component_settings(
    session: AsyncSession, component: Component, **values: Any
) -> Component:
    """Merge ``values`` into the component settings and commit."""
    component.settings = {**(component.settings or {}), **values}
    await session.commit()
    return component


async def acreate_proposal(session: AsyncSession, component: Component, **kwargs) -> Proposal:
    """Create a published official proposal using AsyncSession."""
    defaults: dict[str, Any] = {
        "title": VALID_TITLE,
        "body": VALID_BODY,
        "official": True,
        "created_by": "admin-123",
        "published_at": utcnow(),
        "proposal_votes_count": 0,
    }
    defaults.update(kwargs)
    proposal = Proposal(component=component, attachments=[], **defaults)
    session.add(proposal)
    await session.commit()
    return proposal


async def acreate_photo(
    session: AsyncSession,
    proposal: Proposal,
    storage: FilesystemAttachmentStorage,
    filename: str = "existing.png",
) -> Attachment:
    """Store an image file and attach it to the proposal gallery."""
    upload = UploadedFile(filename=filename, content_type="image/png", data=PNG_BYTES)
    photo = Attachment(
        title=filename,
        file_key=storage.store(upload),
        filename=filename,
        content_type=upload.content_type,
        file_size=upload.size,
        weight=len(proposal.attachments),
    )
    proposal.attachments.append(photo)
    await session.commit()
    return photo


@pytest.fixture
async def proposal(async_db_session: AsyncSession, component: Component) -> Proposal:
    return await acreate_proposal(async_db_session, component)


# ============================================================================
# Collaborators
# ============================================================================


class FakeGeocoder:
    """Geocoder returning fixed coordinates, recording the looked up addresses."""

    def __init__(self, result: tuple[float, float] | None = (40.1234, 2.1234)) -> None:
        self.result = result
        self.addresses: list[str] = []

    async def coordinates(self, address: str) -> tuple[float, float] | None:
        self.addresses.append(address)
        return self.result


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def attachment_storage(tmp_path: Path) -> FilesystemAttachmentStorage:
    return FilesystemAttachmentStorage(tmp_path / "attachments")


def stored_files(storage: FilesystemAttachmentStorage) -> list[Path]:
    if not storage.base_dir.exists():
        return []
    return [path for path in storage.base_dir.rglob("*") if path.is_file()]


# ============================================================================
# Mock Authentication Fixtures
# ============================================================================


def create_mock_token(
    sub: str = "test-user", permissions: list[str] | None = None
) -> dict[str, Any]:
    """
    Create a mock JWT token payload for testing.

    Args:
        sub: User subject/ID (e.g., "auth0|123456")
        permissions: Permission claims of the token

    Returns:
        Mock JWT payload dictionary
    """
    return {
        "sub": sub,
        "permissions": list(permissions or []),
        "aud": os.environ["AUTH0_AUDIENCE"],
        "iss": f"https://{os.environ['AUTH0_DOMAIN']}/",
        "exp": 9999999999,
    }


@pytest.fixture
def mock_admin() -> dict[str, Any]:
    """Administrator holding every proposal permission."""
    return create_mock_token(sub="admin-123", permissions=sorted(ALL_PERMISSIONS))


@pytest.fixture
def mock_viewer() -> dict[str, Any]:
    """Administrator who may only read proposals."""
    return create_mock_token(sub="viewer-123", permissions=[PROPOSAL_READ])


@pytest.fixture
def admin_context(
    async_db_session: AsyncSession,
    component: Component,
    mock_admin: dict[str, Any],
    geocoder: FakeGeocoder,
    attachment_storage: FilesystemAttachmentStorage,
) -> AdminContext:
    return AdminContext(
        db=async_db_session,
        component=component,
        user=mock_admin,
        geocoder=geocoder,
        storage=attachment_storage,
    )


# ============================================================================
# HTTP Client Fixtures
# ============================================================================


@asynccontextmanager
async def _create_test_client(
    session: AsyncSession,
    user: dict[str, Any] | None,
    geocoder: FakeGeocoder,
    storage: FilesystemAttachmentStorage,
) -> AsyncGenerator[httpx.AsyncClient]:
    app = create_app()

    async def override_get_async_db():
        yield session

    app.dependency_overrides[get_async_db_session] = override_get_async_db
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    app.dependency_overrides[get_attachment_storage] = lambda: storage

    if user is not None:

        async def override_get_current_user():
            return user

        app.dependency_overrides[get_current_user] = override_get_current_user

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def client(
    async_db_session: AsyncSession,
    geocoder: FakeGeocoder,
    attachment_storage: FilesystemAttachmentStorage,
):
    """AsyncClient without authentication."""
    async with _create_test_client(async_db_session, None, geocoder, attachment_storage) as c:
        yield c


@pytest.fixture
async def admin_client(
    async_db_session: AsyncSession,
    mock_admin: dict[str, Any],
    geocoder: FakeGeocoder,
    attachment_storage: FilesystemAttachmentStorage,
):
    """AsyncClient with every proposal permission."""
    async with _create_test_client(
        async_db_session, mock_admin, geocoder, attachment_storage
    ) as c:
        yield c


@pytest.fixture
async def viewer_client(
    async_db_session: AsyncSession,
    mock_viewer: dict[str, Any],
    geocoder: FakeGeocoder,
    attachment_storage: FilesystemAttachmentStorage,
):
    """AsyncClient with read-only permission."""
    async with _create_test_client(
        async_db_session, mock_viewer, geocoder, attachment_storage
    ) as c:
        yield c


async def acount(session: AsyncSession, model: type[Base]) -> int:
    """Number of rows of ``model``."""
    return await session.scalar(select(func.count()).select_from(model)) or 0


async def alast(session: AsyncSession, model: type[Base]) -> Any:
    """Row of ``model`` with the highest id."""
    return await session.scalar(select(model).order_by(model.id.desc()).limit(1))

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from quoteflow.main import app
from quoteflow.database import Base, get_db
from quoteflow.api.deps import get_business_profile, get_renderer, get_storage_chain
from quoteflow.models.client import Client
from quoteflow.models.project import Project, Requirement
from quoteflow.schemas.quote import BusinessInfo, BusinessProfile
from quoteflow.services.quote_pdf import QuoteRenderer
from quoteflow.services.quote_service import QuoteService
from quoteflow.services.storage import LocalFilesystemStorage, StorageStrategyChain

from tests.factories import ApprovedRequirementFactory, ClientFactory, ProjectFactory, RequirementFactory

ECHO_BACKEND = "tests.render_backends:echo_pdf"


@pytest_asyncio.fixture
async def test_db(tmp_path):
    """Create an isolated test database and tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def profile():
    """Business defaults used by every test quote."""
    return BusinessProfile(
        info=BusinessInfo(
            name="Acme Studio",
            address="1 Market Street",
            phone="050-1234567",
            email="office@acme.test",
            tax_id="515151515",
        ),
        currency_symbol="₪",
        default_vat_rate=17.0,
        hourly_rate=100.0,
    )


@pytest.fixture
def renderer():
    renderer = QuoteRenderer(backend=ECHO_BACKEND, timeout=20.0, max_workers=2)
    yield renderer
    renderer.shutdown()


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / "quotes"


@pytest.fixture
def storage(storage_dir):
    """Local filesystem only; remote storage is exercised in test_storage.py."""
    return StorageStrategyChain([LocalFilesystemStorage(str(storage_dir))])


@pytest.fixture
def quote_service(test_db, profile, renderer, storage):
    return QuoteService(test_db, profile, renderer=renderer, storage=storage, max_upload_bytes=1024)


@pytest_asyncio.fixture
async def sample_client(test_db: AsyncSession):
    """Create a client record."""
    record = Client(**ClientFactory(full_name="Dana Levi", business_name="Levi Bakery"))
    test_db.add(record)
    await test_db.commit()
    await test_db.refresh(record)
    return record


@pytest_asyncio.fixture
async def sample_project(test_db: AsyncSession, sample_client: Client):
    """Project with two approved requirements and one pending one."""
    project = Project(**ProjectFactory(client_id=sample_client.id, name="Bakery website"))
    test_db.add(project)
    test_db.add_all([
        Requirement(**ApprovedRequirementFactory(
            project_id=project.id, position=1, title="Landing page", estimated_hours=10,
        )),
        Requirement(**ApprovedRequirementFactory(
            project_id=project.id, position=2, title="Order form", estimated_hours=None,
        )),
        Requirement(**RequirementFactory(
            project_id=project.id, position=3, title="Loyalty program", estimated_hours=30,
        )),
    ])
    await test_db.commit()
    await test_db.refresh(project)
    return project


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, profile, renderer, storage):
    """Create test client with overridden database and pipeline collaborators."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_business_profile] = lambda: profile
    app.dependency_overrides[get_renderer] = lambda: renderer
    app.dependency_overrides[get_storage_chain] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

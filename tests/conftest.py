import os

# In-memory SQLite for tests, no PostgreSQL needed
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import StaticPool, create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

# Register models with Base.metadata
import hotline.models  # noqa: E402, F401
from hotline.core.database import Base, get_db  # noqa: E402
from hotline.main import app as fastapi_app  # noqa: E402
from hotline.models import (  # noqa: E402
    AudioAsset,
    Hotline,
    HotlineAudioFile,
    Organization,
    PhoneNumber,
)
from hotline.services.storage import AudioUrlSigner, get_audio_url_signer  # noqa: E402

TEST_DATABASE_URL = "sqlite://"
TEST_SIGNING_KEY = "test-signing-key"
TEST_BASE_URL = "https://hotline.test"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Provide a test database session."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def org(db):
    organization = Organization(name="Test Org")
    db.add(organization)
    db.commit()
    db.refresh(organization)
    return organization


@pytest.fixture
def org_id(org) -> uuid.UUID:
    return org.id


@pytest.fixture
def phone_number(db, org):
    """A provisioned number with no hotline bound yet."""
    number = PhoneNumber(org_id=org.id, e164="+15550100", twilio_sid="PN123", region="US")
    db.add(number)
    db.commit()
    db.refresh(number)
    return number


@pytest.fixture
def make_hotline(db, org, phone_number):
    """Factory for hotlines bound to the test number by default."""

    def _make(**kwargs) -> Hotline:
        defaults = {
            "org_id": org.id,
            "phone_number_id": phone_number.id,
            "name": "Support Line",
            "mode": "tts",
            "tts_text": "Hello, welcome",
            "status": "active",
        }
        defaults.update(kwargs)
        hotline = Hotline(**defaults)
        db.add(hotline)
        db.commit()
        db.refresh(hotline)
        return hotline

    return _make


@pytest.fixture
def add_audio(db, org):
    """Factory attaching an uploaded audio asset to a hotline's playlist."""

    def _add(hotline: Hotline, storage_path: str, display_order: int = 0) -> HotlineAudioFile:
        asset = AudioAsset(org_id=org.id, storage_path=storage_path, title=storage_path, source="upload")
        db.add(asset)
        db.flush()
        entry = HotlineAudioFile(
            hotline_id=hotline.id,
            audio_asset_id=asset.id,
            display_order=display_order,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    return _add


@pytest.fixture
def signer() -> AudioUrlSigner:
    return AudioUrlSigner(
        signing_key=TEST_SIGNING_KEY,
        base_url=TEST_BASE_URL,
        bucket="audio-assets",
    )


@pytest.fixture
def client(db, signer):
    """TestClient with overridden DB and signer dependencies."""

    def _override_get_db():
        try:
            yield db
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_audio_url_signer] = lambda: signer
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()

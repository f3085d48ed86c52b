"""Shared test fixtures for the redline test suite."""

import uuid
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import Engine, update
from sqlalchemy.orm import Session, sessionmaker

import redline.models  # noqa: F401  register all models so Base.metadata is populated
from redline.core.database import Base, build_engine
from redline.models.doc_versions import DocumentComparison, DocumentVersion
from redline.modules.doc_versions.service import DocumentVersioningService
from redline.modules.doc_versions.store import VersionStore


@pytest.fixture
def engine(tmp_path) -> Generator[Engine]:
    """File-backed SQLite so worker threads share one database."""
    engine = build_engine(f"sqlite:///{tmp_path / 'redline-test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def store(session_factory: sessionmaker[Session]) -> VersionStore:
    return VersionStore(session_factory)


@pytest.fixture
def service(session_factory: sessionmaker[Session]) -> DocumentVersioningService:
    return DocumentVersioningService(session_factory)


# ── Sample data ───────────────────────────────────────────────────────────────

SAMPLE_DOCUMENT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
OTHER_DOCUMENT_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")

CONTRACT_V1 = (
    "This Agreement starts on the Effective Date. "
    "Payment due within 30 days of invoice. "
    "Either party may terminate with written notice."
)
CONTRACT_V2 = (
    "This Agreement starts on the Effective Date. "
    "Payment due within 15 days of invoice. "
    "Either party may terminate with written notice."
)


def make_metadata(text: str = "", **overrides) -> dict:
    metadata = {
        "page_count": 1,
        "word_count": len(text.split()),
        "language": "en",
        "extracted_text": text,
    }
    metadata.update(overrides)
    return metadata


def backdate_version(
    session_factory: sessionmaker[Session], version_id: uuid.UUID, days: float
) -> None:
    with session_factory.begin() as session:
        session.execute(
            update(DocumentVersion)
            .where(DocumentVersion.id == version_id)
            .values(uploaded_at=datetime.now(timezone.utc) - timedelta(days=days))
        )


def backdate_comparison(
    session_factory: sessionmaker[Session], comparison_id: uuid.UUID, days: float
) -> None:
    with session_factory.begin() as session:
        session.execute(
            update(DocumentComparison)
            .where(DocumentComparison.id == comparison_id)
            .values(compared_at=datetime.now(timezone.utc) - timedelta(days=days))
        )

import os
from typing import Any

# Settings are read at import time.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("PUBLIC_BASE_URL", "https://share.test")

import pytest
from sqlalchemy.orm import sessionmaker

from sharepod.db import Base, build_engine
from sharepod.models import share  # noqa: F401
from sharepod.services.access_gate import AccessGate
from sharepod.services.counters import ShareCounterService
from sharepod.services.credentials import CredentialVerifier
from sharepod.services.links import LinkIssuer
from sharepod.services.object_storage import S3ShareStorage
from sharepod.services.share_access import ShareAccessService
from sharepod.services.shares import NewShareFile, ShareLifecycleService, ShareOptions
from tests.mocks import FakeClock, FakeS3Client


class _JoseDateTimeProxy:
    def utcnow(self):
        from datetime import datetime, timezone

        return datetime.now(timezone.utc)

    def now(self, tz: Any | None = None):
        from datetime import datetime

        return datetime.now(tz)

    def __getattr__(self, name: str) -> Any:
        from datetime import datetime

        return getattr(datetime, name)


@pytest.fixture(autouse=True)
def _patch_jose_datetime(monkeypatch):
    import jose.jwt as jose_jwt

    monkeypatch.setattr(jose_jwt, "datetime", _JoseDateTimeProxy(), raising=False)


@pytest.fixture()
def engine():
    # Fresh in-memory database per test; services commit on their own.
    engine = build_engine("sqlite+pysqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def file_engine(tmp_path):
    """File-backed database for tests that need one connection per thread."""
    engine = build_engine(f"sqlite+pysqlite:///{tmp_path / 'shares.db'}", {"timeout": 30})
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def s3_client():
    return FakeS3Client()


@pytest.fixture()
def storage(s3_client):
    return S3ShareStorage("sharepod-test", client=s3_client)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def verifier():
    return CredentialVerifier(rounds=1000)


@pytest.fixture()
def issuer(storage):
    return LinkIssuer(storage, base_url="https://share.test/", presign_ttl_seconds=300)


@pytest.fixture()
def gate(verifier, clock):
    return AccessGate(verifier, clock=clock)


@pytest.fixture()
def counters():
    return ShareCounterService()


@pytest.fixture()
def lifecycle(storage, verifier, clock):
    return ShareLifecycleService(
        storage,
        verifier,
        access_code_length=6,
        max_files=3,
        max_file_bytes=1024,
        clock=clock,
    )


@pytest.fixture()
def access(gate, counters, issuer):
    return ShareAccessService(gate, counters, issuer)


@pytest.fixture()
def make_share(db_session, lifecycle, s3_client):
    """Create a share whose files already sit in the fake bucket."""

    def _make(
        *,
        owner_id: str = "owner-1",
        title: str = "Quarterly report",
        file_names: tuple[str, ...] = ("report.pdf",),
        **option_values,
    ):
        files = []
        for index, name in enumerate(file_names):
            key = f"shares/{owner_id}/seed/{index:02d}-{name}"
            s3_client.objects[key] = b"content"
            files.append(
                NewShareFile(
                    original_name=name,
                    storage_key=key,
                    size=7,
                    mime_type="application/pdf",
                )
            )
        return lifecycle.create(
            db_session,
            owner_id=owner_id,
            title=title,
            files=files,
            options=ShareOptions(**option_values),
        )

    return _make

import os
import tempfile

os.environ.setdefault("FINANCEFLOW_DATA_DIR", tempfile.mkdtemp(prefix="financeflow-"))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import init_db


@pytest.fixture()
def engine():
    """In-memory SQLite shared across threads so the API tests see the same data."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def session(session_factory):
    session = session_factory()
    yield session
    session.close()

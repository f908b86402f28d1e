"""Shared test fixtures."""
from datetime import datetime, timezone

import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leadflow.database import Base


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite engine with schema created.

    A file (not :memory:) so separate sessions get separate connections and
    concurrent-writer tests behave like a real database.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'leadflow-test.db'}",
        connect_args={'check_same_thread': False},
    )
    import leadflow.models.lead
    import leadflow.models.interaction
    import leadflow.models.task
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """Session for assertions. Rolls back after each test."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(session_factory):
    """Route every repository session to the test database.

    The repository does `from leadflow.database import get_session`, so the
    local binding is what has to be patched. Each call returns a new session
    so close() in production code never invalidates a test session.
    """
    with patch('leadflow.services.repository.get_session', side_effect=lambda: session_factory()):
        yield session_factory


@pytest.fixture(autouse=True)
def no_slack():
    """Notifications are off unless a test turns them on."""
    with patch('leadflow.services.notifications.SLACK_WEBHOOK_URL', None):
        yield


@pytest.fixture
def mock_redis():
    """Mock Redis client whose lock() always acquires."""
    mock = MagicMock()
    lock = MagicMock()
    lock.acquire.return_value = True
    mock.lock.return_value = lock
    with patch('leadflow.extensions.redis_client', mock):
        yield mock


@pytest.fixture
def now():
    """Fixed clock for deterministic due dates."""
    return datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def app():
    """Flask test app."""
    from leadflow import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def make_lead():
    """Factory fixture — a plain stand-in for a Lead row (no database)."""
    def _make(**overrides):
        defaults = dict(
            id='lead-test-001',
            name='Jordan Lee',
            score=50,
            status='Active',
            segment='Standard Follow-up',
            last_interaction_at=None,
        )
        defaults.update(overrides)
        lead = MagicMock()
        for k, v in defaults.items():
            setattr(lead, k, v)
        return lead
    return _make


@pytest.fixture
def make_history():
    """Factory fixture — interaction-like records, newest first."""
    def _make(*entries):
        records = []
        for entry in entries:
            if isinstance(entry, str):
                entry = {'notes': entry}
            record = MagicMock()
            record.notes = entry.get('notes', '')
            record.follow_up_day = entry.get('follow_up_day')
            records.append(record)
        return records
    return _make

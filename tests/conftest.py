import os
import pytest

# In-memory SQLite shared through a StaticPool stands in for PostgreSQL
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"

from fastapi.testclient import TestClient  # noqa: E402

from apps.api.main import app  # noqa: E402
from apps.core.db import Base, SessionLocal, engine, get_db  # noqa: E402
from apps.rankings import models as ranking_models  # noqa: E402,F401
from apps.rankings.services.activity_fanout import ActivityFanout, get_activity_fanout  # noqa: E402
from apps.rankings.services.catalog import get_catalog  # noqa: E402
from apps.rankings.services.comparison_session import ComparisonSessionManager, get_session_manager  # noqa: E402
from apps.rankings.services.insertion import InsertionController  # noqa: E402
from apps.rankings.services.realtime import get_realtime_hub  # noqa: E402
from apps.rankings.services.rerank import RerankController  # noqa: E402
from apps.social import models as social_models  # noqa: E402,F401

from factories import FakeCatalog, RecordingHub, RecordingNotifier  # noqa: E402


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sessions():
    return ComparisonSessionManager(session_ttl=600)


@pytest.fixture
def hub():
    return RecordingHub()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def fanout(hub, notifier):
    return ActivityFanout(hub=hub, notifier=notifier, session_factory=SessionLocal)


@pytest.fixture
def insertion(db_session, sessions, fanout, catalog):
    return InsertionController(db_session, catalog=catalog, sessions=sessions, fanout=fanout)


@pytest.fixture
def rerank(db_session, sessions, fanout):
    return RerankController(db_session, sessions=sessions, fanout=fanout)


@pytest.fixture
def client(db_session, sessions, fanout, catalog, hub):
    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_manager] = lambda: sessions
    app.dependency_overrides[get_activity_fanout] = lambda: fanout
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_realtime_hub] = lambda: hub
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()

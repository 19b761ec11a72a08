import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault("TESTING", "true")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.database import Base
from app.utils import deps as deps_utils
import main
from fastapi.testclient import TestClient
from app.core.config import settings
from tests.helpers.clock import FrozenClock
from tests.helpers.factories import OWNER_ID, STUDENT_ID, OTHER_STUDENT_ID, auth_headers

test_db_url = settings.TEST_DATABASE_URL or "sqlite:///./test.db"

@pytest.fixture(scope="session")
def database_engine():
    if test_db_url.startswith("sqlite"):
        engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(test_db_url)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    if test_db_url.startswith("sqlite") and os.path.exists("./test.db"):
        os.remove("./test.db")

@pytest.fixture(scope="function")
def db_session(database_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture(scope="function")
def clock():
    return FrozenClock()

@pytest.fixture(scope="function")
def client(db_session, clock):
    # Re-initialize the app for each test function to ensure a clean state
    from importlib import reload
    reload(main)

    def _transactional_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = _transactional_db
    main.app.dependency_overrides[deps_utils.get_clock] = lambda: clock
    with TestClient(main.app) as test_client:
        yield test_client

@pytest.fixture
def owner_headers():
    return auth_headers(OWNER_ID)

@pytest.fixture
def student_headers():
    return auth_headers(STUDENT_ID)

@pytest.fixture
def other_student_headers():
    return auth_headers(OTHER_STUDENT_ID)

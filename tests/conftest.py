import pytest
import os
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from churchflow.main import app
from churchflow.database import Base, get_db

load_dotenv()
TEST_DB_URL = os.getenv("TEST_DB_URL", "sqlite://")

# A single shared connection keeps an in-memory SQLite database alive
engine_options = (
    {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    if TEST_DB_URL.startswith("sqlite")
    else {}
)
engine = create_engine(TEST_DB_URL, **engine_options)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Create tables once before the test session
@pytest.fixture(scope="session", autouse=True)
def setup_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


# Provide a fresh database session for each test inside a transaction that is rolled back
@pytest.fixture(scope="function")
def db_session():
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# Override FastAPI dependency to use the test db session fixture
@pytest.fixture(scope="function")
def client(db_session):
    def _get_test_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

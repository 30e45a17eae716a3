import pytest
from datetime import datetime
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from attendance_service.database import Base, get_db
from attendance_service.main import app
from attendance_service.services import cache_service, publish_service
from attendance_service.services.auth_service import create_access_token

TEST_DB_URL = "sqlite:///./test_time_attendance.db"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False, "timeout": 10})
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    cache_service.day_record_cache.clear()
    yield
    publish_service._subscribers.clear()
    cache_service.day_record_cache.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


def local_ts(clock: str, day: str = "2025-01-15") -> str:
    """+07:00 현지 시각 문자열. clock은 HH:MM:SS[.ffffff]."""
    return f"{day}T{clock}+07:00"


def utc(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def auth_headers(role: str = "admin", subject: str = "tester") -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject, role)}"}

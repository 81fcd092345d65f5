import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from counselbook.config import get_settings
from counselbook.db.session import Base
from counselbook.db import models

from factories import create_profile


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    TestingSessionLocal = sessionmaker(
        bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
    )
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def teacher(db_session):
    return create_profile(db_session, "teacher-1", role=models.ProfileRole.teacher, full_name="Dr. Rahman")


@pytest.fixture()
def student(db_session):
    return create_profile(db_session, "student-1", full_name="Ayesha Khan")

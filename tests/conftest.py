import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from scheduler.auth.tokens import hash_password  # noqa: E402
from scheduler.database import Base, get_db  # noqa: E402
from scheduler.main import app  # noqa: E402
from scheduler.models.event import Event  # noqa: E402
from scheduler.models.user import User  # noqa: E402

MONDAY_WINDOWS = '[{"day": "monday", "windows": [{"start": "09:00", "end": "12:00"}]}]'


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    def _make_user(email: str, token: str | None = None, password: str = 'secret', name: str = 'Test User') -> User:
        user = User(name=name, email=email, hashed_password=hash_password(password), token=token)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def host(make_user) -> User:
    return make_user('host@example.com', token='host-token', name='Host')


@pytest.fixture
def host_headers(host) -> dict:
    return {'Authorization': f'Bearer {host.token}'}


@pytest.fixture
def other_user(make_user) -> User:
    return make_user('other@example.com', token='other-token', name='Other')


@pytest.fixture
def other_headers(other_user) -> dict:
    return {'Authorization': f'Bearer {other_user.token}'}


@pytest.fixture
def intro_call(db_session, host) -> Event:
    event = Event(user_id=host.id, name='Intro call', duration=30, color='#00AAFF')
    db_session.add(event)
    db_session.commit()
    db_session.refresh(event)
    return event

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cinelog import auth, models
from cinelog.database import Base, build_engine, get_db
from cinelog.main import app
from cinelog.reconciler import MovieReconciler
from cinelog.tmdb import TMDBClient, get_tmdb_client

TMDB_BASE = "https://tmdb.test/3"
IMAGE_BASE = "https://img.test/t/p"


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else ""

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    """Stands in for requests.Session; responses are scripted per endpoint.

    Each endpoint holds a queue; the last queued item keeps being returned.
    Exceptions in the queue are raised instead of returned.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, endpoint, *responses):
        self.routes.setdefault(endpoint, []).extend(responses)

    def get(self, url, params=None, timeout=None):
        endpoint = url[len(TMDB_BASE):]
        self.calls.append({"endpoint": endpoint, "params": params, "timeout": timeout})
        queue = self.routes.get(endpoint)
        if not queue:
            return FakeResponse(404, {"status_message": "The resource could not be found."})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def calls_to(self, endpoint):
        return [c for c in self.calls if c["endpoint"] == endpoint]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def movie_body(tmdb_id, title=None, release_date="2024-05-17", poster_path="/poster.jpg", genres=None):
    return {
        "id": tmdb_id,
        "title": title or f"Movie {tmdb_id}",
        "release_date": release_date,
        "poster_path": poster_path,
        "genres": genres if genres is not None else [{"id": 18, "name": "Drama"}],
    }


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def tmdb_session():
    return FakeSession()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def tmdb(tmdb_session, clock, sleeps):
    return TMDBClient(
        api_key="test-key",
        base_url=TMDB_BASE,
        image_base_url=IMAGE_BASE,
        timeout=10,
        cache_ttl=300,
        backoff=1,
        session=tmdb_session,
        clock=clock,
        sleep=sleeps.append,
    )


@pytest.fixture
def reconciler(tmdb):
    return MovieReconciler(tmdb)


@pytest.fixture
def add_movie(tmdb_session):
    """Script TMDB details for a title so the reconciler can cache it."""

    def _add(tmdb_id, **kwargs):
        body = movie_body(tmdb_id, **kwargs)
        tmdb_session.add(f"/movie/{tmdb_id}", FakeResponse(200, body))
        return body

    return _add


@pytest.fixture
def client(session_factory, tmdb):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tmdb_client] = lambda: tmdb
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(username, role="user", password="password123"):
        user = models.User(
            username=username,
            email=f"{username}@mail.com",
            password_hash=auth.get_password_hash(password),
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def admin(make_user):
    return make_user("root", role="admin")


def auth_headers(user):
    return {"Authorization": f"Bearer {auth.create_access_token(user)}"}

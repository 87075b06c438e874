import json
from typing import Callable, Dict, List, Tuple
from urllib.parse import urlsplit

import pytest
import requests
from fastapi.testclient import TestClient
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from aisentinel.client.location import Location
from aisentinel.client.notifications import Notifier
from aisentinel.client.session import SessionManager
from aisentinel.client.storage import MemoryStorage
from aisentinel.core.config import ClientSettings
from aisentinel.db.base import Base
from aisentinel.db.session import get_db
from aisentinel.main import app
from aisentinel.models import models  # noqa: F401


# ============================================================================
# Server fixtures
# ============================================================================

@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(db_session_factory):
    session = db_session_factory()
    yield session
    session.close()


@pytest.fixture
def client(db_session_factory):
    def override_get_db():
        session = db_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================================
# Client fixtures
# ============================================================================

Handler = Callable[[requests.PreparedRequest], Tuple[int, object]]


class FakeServer(BaseAdapter):
    """requests transport that answers from registered handlers."""

    def __init__(self):
        super().__init__()
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.calls: List[requests.PreparedRequest] = []

    def route(self, method: str, path: str, handler: Handler):
        self.routes[(method, path)] = handler

    def count(self, method: str, path: str) -> int:
        return sum(
            1 for r in self.calls
            if r.method == method and urlsplit(r.url).path == path
        )

    def send(self, request, **kwargs):
        self.calls.append(request)
        handler = self.routes.get((request.method, urlsplit(request.url).path))
        if handler is None:
            status, body = 404, {"detail": "Not Found"}
        else:
            status, body = handler(request)

        response = requests.Response()
        response.status_code = status
        response._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        response.headers = CaseInsensitiveDict({"content-type": "application/json"})
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        response.reason = "OK" if status < 400 else "Error"
        return response

    def close(self):
        pass


def request_token(request: requests.PreparedRequest):
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[len("Bearer "):]
    cookie = request.headers.get("Cookie", "")
    for part in cookie.split(";"):
        name, _, value = part.strip().partition("=")
        if name == "sessionToken":
            return value
    return None


class IdentityServer(FakeServer):
    """FakeServer with /api/auth/* backed by a token -> user table."""

    def __init__(self):
        super().__init__()
        self.users: Dict[str, dict] = {}
        self.route("GET", "/api/auth/me", self._me)
        self.route("POST", "/api/auth/activate-session", self._activate)
        self.route("POST", "/api/auth/logout", lambda r: (200, {"success": True}))

    def add_user(self, token: str, email: str, role_level: int = 1, **extra) -> dict:
        user = {"id": email.split("@")[0], "email": email, "role": "user", "roleLevel": role_level}
        user.update(extra)
        self.users[token] = user
        return user

    def _me(self, request):
        user = self.users.get(request_token(request))
        if not user:
            return 200, {"authenticated": False, "sessionValid": False, "sessionExists": False, "databaseConnected": True}
        return 200, {"authenticated": True, "user": user, "sessionValid": True, "sessionExists": True, "databaseConnected": True}

    def _activate(self, request):
        token = json.loads(request.body or b"{}").get("sessionToken")
        if token not in self.users:
            return 401, {"detail": "Invalid or expired session token"}
        return 200, {"success": True, "message": "Session activated", "user": self.users[token]}


@pytest.fixture
def server():
    return IdentityServer()


@pytest.fixture
def client_settings():
    return ClientSettings(
        BASE_URL="http://localhost:5000",
        PROFILE_DIR=None,
        UNAUTHORIZED_REDIRECT_DELAY=0,
    )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def make_manager(server, client_settings, storage):
    def factory(url: str = "http://localhost:5000/", storage_override=None):
        http = requests.Session()
        http.mount("http://", server)
        http.mount("https://", server)
        return SessionManager(
            settings=client_settings,
            storage=storage_override or storage,
            location=Location(url),
            http=http,
            notifier=Notifier(),
            schedule=lambda delay, fn: fn(),
        )
    return factory

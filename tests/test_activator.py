import requests

from aisentinel.client.activator import SessionActivator, cookie_domain
from aisentinel.client.api import auth_headers
from aisentinel.client.query_cache import QueryCache

DOMAINS = ["aisentinel.app", "vercel.app"]


def make_activator(base_url):
    cache = QueryCache()
    return SessionActivator(requests.Session(), base_url, cache, production_domains=DOMAINS), cache


def session_cookie(activator):
    return [c for c in activator.http.cookies if c.name == "sessionToken"]


def test_development_cookie_is_not_secure():
    activator, _ = make_activator("http://localhost:5000")
    activator.activate("prod-abc")

    [cookie] = session_cookie(activator)
    assert cookie.secure is False
    assert cookie.expires is None
    assert cookie.domain == "localhost.local"


def test_production_cookie_is_secure_with_expiry():
    activator, _ = make_activator("https://app.aisentinel.app")
    activator.activate("prod-abc")

    [cookie] = session_cookie(activator)
    assert cookie.secure is True
    assert cookie.expires is not None
    assert cookie.get_nonstandard_attr("SameSite") == "Lax"


def test_activate_replaces_previous_cookie_and_bumps_generation():
    activator, cache = make_activator("http://localhost:5000")
    activator.activate("prod-a")
    activator.activate("prod-b")

    assert [c.value for c in session_cookie(activator)] == ["prod-b"]
    assert activator.current_token() == "prod-b"
    assert cache.generation == 2


def test_clear_drops_cookie_and_override():
    activator, cache = make_activator("http://localhost:5000")
    activator.activate("prod-a")

    activator.clear()

    assert activator.current_token() is None
    assert session_cookie(activator) == []
    assert cache.generation == 2


def test_cookie_survives_without_override():
    activator, _ = make_activator("http://localhost:5000")
    activator.http.cookies.set("sessionToken", "prod-from-server", domain="localhost.local", path="/")

    assert activator.header_token is None
    assert activator.current_token() == "prod-from-server"


def test_cookie_domain():
    assert cookie_domain("LOCALHOST") == "localhost.local"
    assert cookie_domain("app.aisentinel.app") == "app.aisentinel.app"


def test_auth_headers_only_for_server_tokens():
    assert auth_headers("prod-abc") == {"Authorization": "Bearer prod-abc", "X-Session-Token": "prod-abc"}
    assert auth_headers("dev-abc") == {}
    assert auth_headers(None) == {}

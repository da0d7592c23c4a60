from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi import HTTPException, Request, Response

import taskmarket.main as taskmarket_main
from taskmarket import app_context
from taskmarket.app.entitlements import Actor, ActorRole
from taskmarket.app.routes import dependencies as route_dependencies


@pytest.fixture
def known_actor(monkeypatch, sessions):
    actor = Actor(id="prov-1", display_name="Pavel", role=ActorRole.PROVIDER)
    sessions.register_actor(actor)
    monkeypatch.setattr(taskmarket_main, "get_marketplace", lambda: SimpleNamespace(sessions=sessions))
    return actor


def test_missing_token_is_unauthorized():
    with pytest.raises(HTTPException) as exc:
        taskmarket_main.get_current_actor(session_token=None, authorization=None)

    assert exc.value.status_code == 401


def test_invalid_token_is_unauthorized(known_actor):
    with pytest.raises(HTTPException):
        taskmarket_main.get_current_actor(session_token="not-a-valid-token")


def test_expired_token_is_unauthorized(known_actor):
    expired = taskmarket_main.create_access_token(subject=known_actor.id, expires_delta=timedelta(minutes=-5))

    assert taskmarket_main.resolve_actor_from_token(expired) is None


def test_cookie_token_resolves_actor(known_actor):
    token = taskmarket_main.create_access_token(subject=known_actor.id)

    assert taskmarket_main.get_current_actor(session_token=token) == known_actor


def test_bearer_header_takes_precedence(known_actor):
    token = taskmarket_main.create_access_token(subject=known_actor.id)

    actor = taskmarket_main.get_current_actor(
        session_token="stale-cookie",
        authorization=f"Bearer {token}",
    )

    assert actor == known_actor


def test_token_for_unknown_actor_is_unauthorized(known_actor):
    token = taskmarket_main.create_access_token(subject="ghost")

    with pytest.raises(HTTPException):
        taskmarket_main.get_current_actor(authorization=f"Bearer {token}")


def test_issue_session_sets_cookie(known_actor):
    response = Response()

    token = taskmarket_main.issue_session(known_actor, response)

    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"{taskmarket_main.CONFIG.session_cookie_name}={token}")
    assert "HttpOnly" in cookie
    assert taskmarket_main.resolve_actor_from_token(token) == known_actor


def test_app_context_is_configured_on_import():
    assert app_context._get_current_actor is taskmarket_main.get_current_actor
    assert app_context.session_cookie_name() == taskmarket_main.CONFIG.session_cookie_name


def test_route_dependency_reads_configured_cookie(monkeypatch):
    seen = {}

    def fake_current_actor(**kwargs):
        seen.update(kwargs)
        return "actor"

    monkeypatch.setattr(app_context, "_get_current_actor", fake_current_actor)
    monkeypatch.setattr(app_context, "_session_cookie_name", "tm_session")
    request = Request({"type": "http", "headers": [(b"cookie", b"session=other; tm_session=abc")]})

    assert route_dependencies.get_current_actor(request, authorization=None) == "actor"
    assert seen == {"session_token": "abc", "authorization": None}

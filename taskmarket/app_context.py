"""Shared application context for reusable dependencies."""
from __future__ import annotations

from typing import Any, Callable, Optional

_get_conn: Optional[Callable[[], Any]] = None
_get_current_actor: Optional[Callable[..., Any]] = None
_issue_session: Optional[Callable[[Any, Any], str]] = None
_session_cookie_name: Optional[str] = None


def configure(
    *,
    get_conn: Callable[[], Any],
    get_current_actor: Callable[..., Any],
    issue_session: Callable[[Any, Any], str],
    session_cookie_name: str,
) -> None:
    """Register application-wide dependencies required by modular routers."""

    global _get_conn
    global _get_current_actor
    global _issue_session
    global _session_cookie_name

    _get_conn = get_conn
    _get_current_actor = get_current_actor
    _issue_session = issue_session
    _session_cookie_name = session_cookie_name


def _require(value: Optional[Any], name: str) -> Any:
    if value is None:
        raise RuntimeError(f"Application context has not been configured yet: {name}")
    return value


def get_conn() -> Any:
    conn_factory = _require(_get_conn, "get_conn")
    return conn_factory()


def get_current_actor(*args: Any, **kwargs: Any) -> Any:
    dependency = _require(_get_current_actor, "get_current_actor")
    return dependency(*args, **kwargs)


def issue_session(actor: Any, response: Any) -> str:
    issuer = _require(_issue_session, "issue_session")
    return issuer(actor, response)


def session_cookie_name() -> str:
    return _require(_session_cookie_name, "session_cookie_name")

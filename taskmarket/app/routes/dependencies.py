"""Request dependencies shared by the marketplace routers."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Header, Request

from ... import app_context
from ..errors import MarketplaceError


def get_current_actor(
    request: Request,
    authorization: Optional[str] = Header(None),
):
    # Cookie name follows MarketConfig.session_cookie_name.
    session_token = request.cookies.get(app_context.session_cookie_name())
    return app_context.get_current_actor(session_token=session_token, authorization=authorization)


@contextmanager
def domain_errors() -> Iterator[None]:
    """Translate marketplace errors raised inside the block into HTTP errors."""

    try:
        yield
    except MarketplaceError as exc:
        raise exc.to_http_exception() from exc

"""API routes for actor registration and token issuance."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ... import app_context
from ..engagements.models import coerce_model
from ..entitlements import Actor
from ..errors import MarketplaceError
from ..schemas.actors import (
    ActorList,
    ActorOut,
    ActorRegisterRequest,
    SessionRequest,
    SessionResponse,
)
from ..services import marketplace as marketplace_service
from .dependencies import domain_errors, get_current_actor

router = APIRouter(prefix="/api", tags=["actors"])


def _issue_session(actor: Actor, response: Response) -> SessionResponse:
    token = app_context.issue_session(actor, response)
    return SessionResponse(actor=ActorOut.from_domain(actor), access_token=token)


@router.post("/actors", response_model=SessionResponse, status_code=201)
def register_actor(payload: ActorRegisterRequest, response: Response) -> SessionResponse:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        actor = coerce_model(
            Actor,
            {"id": payload.id, "display_name": payload.display_name, "role": payload.role},
        )
        market.sessions.register_actor(actor, plan_key=payload.plan_id)
        market.persist()
    return _issue_session(actor, response)


@router.get("/actors", response_model=ActorList)
def list_actors(*, current_actor=Depends(get_current_actor)) -> ActorList:
    if not current_actor.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    market = marketplace_service.get_marketplace()
    return ActorList(actors=[ActorOut.from_domain(actor) for actor in market.sessions.list_actors()])


@router.get("/actors/me", response_model=ActorOut)
def get_me(*, current_actor=Depends(get_current_actor)) -> ActorOut:
    return ActorOut.from_domain(current_actor)


@router.post("/auth/session", response_model=SessionResponse)
def open_session(payload: SessionRequest, response: Response) -> SessionResponse:
    market = marketplace_service.get_marketplace()
    try:
        actor = market.sessions.get_actor(payload.actor_id)
    except MarketplaceError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown actor") from exc
    return _issue_session(actor, response)

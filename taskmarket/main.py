import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import psycopg2
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Response, status
from fastapi.middleware.cors import CORSMiddleware
from jose import JWTError, jwt

from taskmarket import app_context
from taskmarket.app.entitlements import Actor
from taskmarket.app.routes.actors import router as actors_router
from taskmarket.app.routes.bindings import router as bindings_router
from taskmarket.app.routes.entitlements import router as entitlements_router
from taskmarket.app.routes.offers import router as offers_router
from taskmarket.app.routes.work_items import router as work_items_router
from taskmarket.app.services.marketplace import get_marketplace
from taskmarket.config import load_config

load_dotenv()

CONFIG = load_config()

logging.basicConfig(
    level=getattr(logging, CONFIG.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger("marketplace")


def get_conn():
    return psycopg2.connect(**CONFIG.db)


def create_access_token(*, subject: str, expires_delta: Optional[timedelta] = None) -> str:
    payload = {"sub": subject}
    if expires_delta is None:
        expires_delta = timedelta(minutes=CONFIG.jwt_exp_minutes)
    expire = datetime.now(timezone.utc) + expires_delta
    payload["exp"] = expire
    return jwt.encode(payload, CONFIG.jwt_secret_key, algorithm=CONFIG.jwt_algorithm)


def resolve_actor_from_token(token: str) -> Optional[Actor]:
    try:
        payload = jwt.decode(token, CONFIG.jwt_secret_key, algorithms=[CONFIG.jwt_algorithm])
        subject = payload.get("sub")
    except JWTError:
        return None
    if not subject:
        return None
    return get_marketplace().sessions.find_actor(str(subject))


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_actor(
    session_token: Optional[str] = None,
    authorization: Optional[str] = None,
) -> Actor:
    token = _bearer_token(authorization) or session_token
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    actor = resolve_actor_from_token(token)
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return actor


def issue_session(actor: Actor, response: Response) -> str:
    token = create_access_token(subject=actor.id)
    max_age = int(timedelta(minutes=CONFIG.jwt_exp_minutes).total_seconds())
    response.set_cookie(
        key=CONFIG.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=CONFIG.session_cookie_secure,
        max_age=max_age,
        path="/",
    )
    logger.info("Session issued for actor %s", actor.id)
    return token


app_context.configure(
    get_conn=get_conn,
    get_current_actor=get_current_actor,
    issue_session=issue_session,
    session_cookie_name=CONFIG.session_cookie_name,
)

app = FastAPI(title="Task Marketplace API")

# Vite proxy origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(actors_router)
app.include_router(work_items_router)
app.include_router(offers_router)
app.include_router(bindings_router)
app.include_router(entitlements_router)


@app.get("/api/health")
def health():
    return {"ok": True, "storage": CONFIG.storage_backend}

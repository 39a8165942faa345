from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from beatbound.config import settings
from beatbound.errors import register_error_handlers
from beatbound.logging_setup import configure_logging
from beatbound.redis_deps import create_redis, create_vote_limiter
from beatbound.routes.system import router as system_router
from beatbound.routes.auth import router as auth_router
from beatbound.routes.votes import router as votes_router
from beatbound.services.broadcast import RedisBroadcaster
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    redis = create_redis()
    app.state.redis = redis
    app.state.broadcaster = RedisBroadcaster(redis)
    app.state.vote_limiter = create_vote_limiter(redis)
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    yield
    # Shutdown
    await redis.aclose()
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API for beat competition voting and live leaderboards",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include routers
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(votes_router)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    try:
        response: Response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
    response.headers["X-Request-ID"] = rid
    return response

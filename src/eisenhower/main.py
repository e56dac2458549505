"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, database engine).
Middleware, error handlers, and routers are all registered here.

Write observers are decided here, not in the lifespan, so an app built
for tests (which never runs the lifespan) behaves the same as a served one.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError
from starlette.middleware.sessions import SessionMiddleware

from eisenhower import __version__
from eisenhower.api import api_router
from eisenhower.api.auth import router as auth_router
from eisenhower.config import settings
from eisenhower.errors import install_error_handlers
from eisenhower.services.research import ResearchObserver
from eisenhower.web.pages import router as pages_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    """
    logger.info(
        "eisenhower.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from eisenhower.redis import close_redis, init_redis
    try:
        await init_redis()
        logger.info("eisenhower.redis_connected", url=settings.redis_url)
    except (RedisError, OSError) as e:
        # Redis is optional; only rate limiting needs it
        logger.warning("eisenhower.redis_unavailable", error=str(e))

    yield

    logger.info("eisenhower.shutdown")
    await close_redis()

    from eisenhower.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Eisenhower",
        description="Tasks prioritised on an urgency/importance plane",
        version=__version__,
        lifespan=lifespan,
    )

    research = ResearchObserver.from_settings(settings)
    app.state.write_observers = [research] if research else []

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → Session → handler

    from eisenhower.middleware.rate_limit import RateLimitMiddleware
    from eisenhower.middleware.request_id import RequestIdMiddleware
    from eisenhower.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        https_only=settings.environment != "development",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    install_error_handlers(app)

    app.include_router(api_router)
    app.include_router(auth_router, tags=["auth"])
    app.include_router(pages_router, include_in_schema=False)

    return app


# Default app instance (used by uvicorn: eisenhower.main:app)
app = create_app()

"""Health check and the teapot.

Learn: /health verifies the server is running and whether its
dependencies (database, Redis) are reachable. Redis is optional, so a
missing Redis reports "degraded", never an error status code.
"""

from fastapi import APIRouter
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from eisenhower import __version__
from eisenhower.db.engine import engine
from eisenhower.errors import Teapot
from eisenhower.redis import get_redis

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        checks["database"] = f"error: {e}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except RuntimeError:
        checks["redis"] = "unavailable"
    except RedisError as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}


@router.get("/teapot")
async def teapot():
    raise Teapot()

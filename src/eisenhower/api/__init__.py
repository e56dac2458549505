"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: JSON routes live under /api. Auth is applied per route through
the session dependencies rather than at include_router level, because
the rules differ inside a router (anyone may create an account, only
administrators may list them). The identity endpoints (/auth/*) are
mounted by main.py outside /api so the browser flow and API clients
share them.
"""

from fastapi import APIRouter

from eisenhower.api.admin import router as admin_router
from eisenhower.api.health import router as health_router
from eisenhower.api.tasks import router as tasks_router
from eisenhower.api.topics import router as topics_router
from eisenhower.api.users import router as users_router

api_router = APIRouter(prefix="/api")

# Open routes
api_router.include_router(health_router, tags=["health"])

# Session-checked routes
api_router.include_router(users_router, tags=["users"])
api_router.include_router(topics_router, tags=["topics"])
api_router.include_router(tasks_router, tags=["tasks"])
api_router.include_router(admin_router, tags=["admin"])

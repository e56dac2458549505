"""Shared route dependencies — services wired with the app's write observers.

Learn: Observers (research collection) are decided once at startup and
kept on app.state. Every service built for a request gets the same list,
so a route never has to know whether a study is running.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from eisenhower.db.engine import get_db
from eisenhower.db.repository import WriteObserver
from eisenhower.services.task_service import TaskService, TopicService
from eisenhower.services.user_service import UserService


def write_observers(request: Request) -> list[WriteObserver]:
    return list(getattr(request.app.state, "write_observers", ()))


def user_service(
    request: Request, db: AsyncSession = Depends(get_db)
) -> UserService:
    return UserService(db, write_observers(request))


def topic_service(
    request: Request, db: AsyncSession = Depends(get_db)
) -> TopicService:
    return TopicService(db, write_observers(request))


def task_service(
    request: Request, db: AsyncSession = Depends(get_db)
) -> TaskService:
    return TaskService(db, write_observers(request))

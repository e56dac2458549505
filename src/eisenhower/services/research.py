"""Research collection — copy user activity into research_data while a study runs.

Learn: ResearchObserver plugs into Repository as a write observer. After
each flushed write it:

    skip User / ResearchData rows → find the owning user
    → check research_participant → add a ResearchData snapshot

The snapshot is added to the same session before the repository commits,
so the research row and the write it describes land (or roll back)
together. Nothing is recorded unless EISENHOWER_STUDY_NAME is set and
now falls inside the optional start/finish window.
"""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from eisenhower.config import Settings
from eisenhower.db.models import Base, ResearchData, User, utcnow

logger = structlog.get_logger()

# Never recorded: accounts have their own consent flow, and recording
# research rows would recurse.
_IGNORED = (User, ResearchData)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def snapshot(record: Base) -> dict[str, Any]:
    """Column values of a mapped row, JSON-ready."""
    data = {}
    for column in inspect(record).mapper.column_attrs:
        value = getattr(record, column.key)
        if isinstance(value, datetime):
            value = value.isoformat()
        data[column.key] = value
    return data


class ResearchObserver:
    """Write observer that records participants' topic/task activity."""

    def __init__(
        self,
        study: str,
        start: Optional[datetime] = None,
        finish: Optional[datetime] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.study = study
        self.start = _aware(start)
        self.finish = _aware(finish)
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["ResearchObserver"]:
        """None when no study is configured."""
        if not settings.study_name:
            logger.info("research.disabled")
            return None
        logger.info(
            "research.enabled",
            study=settings.study_name,
            start=settings.study_start,
            finish=settings.study_finish,
        )
        return cls(settings.study_name, settings.study_start, settings.study_finish)

    def active(self) -> bool:
        now = self.clock()
        if self.start and now < self.start:
            return False
        if self.finish and now > self.finish:
            return False
        return True

    async def on_after_write(self, db: AsyncSession, record: Base, action: str) -> None:
        if isinstance(record, _IGNORED) or not self.active():
            return

        user_id = getattr(record, "user_id", None)
        user = await db.get(User, user_id) if user_id is not None else None
        if user is None:
            logger.debug("research.skipped", reason="owner unknown")
            return
        if not user.research_participant:
            logger.debug("research.skipped", reason="preferences", user_id=user.id)
            return

        db.add(
            ResearchData(
                study=self.study,
                source_model=type(record).__name__,
                action=action,
                data=json.dumps(snapshot(record)),
                user_id=user.id,
            )
        )

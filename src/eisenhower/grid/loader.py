"""Asynchronous task loading for planes.

Learn: Loads are fire-and-forget. schedule() starts one background task
per source URL and returns immediately; nothing is ever cancelled. The
completion handler is Plane.apply_tasks, which checks the plane's state
when the response arrives, so a plane that was closed or switched mode
while the request was in flight is handled there, not here.
"""

import asyncio
from typing import Any, Optional

import httpx
import structlog

from eisenhower.grid.plane import Marker, Plane

logger = structlog.get_logger()


class PlaneLoader:
    """Fetches task JSON over HTTP and applies it to planes."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self._pending: set[asyncio.Task] = set()

    async def fetch(self, url: str) -> list[dict[str, Any]]:
        resp = await self.client.get(url, headers={"Accept": "application/json"})
        resp.raise_for_status()
        body = resp.json()
        if not isinstance(body, list):
            raise ValueError(f"Expected a list of tasks from {url}")
        return body

    async def load(self, plane: Plane, url: Optional[str] = None) -> list[Marker]:
        """Fetch one source (or all of the plane's sources) and apply."""
        plotted: list[Marker] = []
        for source in (url,) if url else plane.sources:
            tasks = await self.fetch(source)
            plotted.extend(plane.apply_tasks(tasks))
        return plotted

    def schedule(self, plane: Plane) -> list[asyncio.Task]:
        """Start loading every source in the background."""
        tasks = []
        for source in plane.sources:
            task = asyncio.create_task(self._load_logged(plane, source))
            # Keep a reference until done so the task isn't collected.
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    async def _load_logged(self, plane: Plane, url: str) -> list[Marker]:
        try:
            return await self.load(plane, url)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("grid.load_failed", url=url, error=str(e))
            return []

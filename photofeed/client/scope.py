import asyncio
import logging
from typing import Any, Coroutine, Set

logger = logging.getLogger(__name__)


class ViewScope:
    """
    Lifetime of a view. Tasks spawned in the scope are cancelled when it
    closes, and callers check ``closed`` before applying a result.
    """

    def __init__(self, name: str = "view"):
        self.name = name
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        if self._closed:
            coro.close()
            raise RuntimeError(f"Scope {self.name} is closed")

        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.debug(f"Closed scope {self.name}, cancelled {len(pending)} task(s)")

"""
Fetch lifetimes for views.

Each view loads its own data when it is mounted. Two things can go wrong
with naive fetch-on-mount:

1. The view goes away before the fetch resolves, and the request keeps
   running for nothing.
2. The view is mounted again (new parameters, quick navigation) and the
   older fetch resolves last, overwriting the newer state.

`ViewScope` ties fetches to one mount: leaving the scope cancels whatever
is still running. `ViewTaskRegistry` ties fetches to a key: starting a
fetch for a key cancels the previous one, so only the newest can land.

Repository calls are blocking (the warehouse driver is synchronous), so
they run in worker threads via asyncio.to_thread.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from .notifications import Notification, error

logger = logging.getLogger(__name__)


class ViewScope:
    """
    Owns the fetch tasks of a single view mount.

    Usage:
        async with ViewScope("history") as scope:
            entries = await scope.fetch(
                "history", repo.list_history, user_id,
                fallback=list,
                error_message="Could not load your history",
            )
        payload.notifications = scope.notifications

    `fallback` is either a value or a zero-argument factory; it is returned
    when the call fails or times out. Failures are logged and turned into a
    destructive notification, never raised.
    """

    def __init__(self, view: str, timeout_seconds: Optional[float] = None) -> None:
        self.view = view
        self._timeout = timeout_seconds
        self._tasks: set[asyncio.Task] = set()
        self._notifications: list[Notification] = []
        self._closed = False

    async def __aenter__(self) -> "ViewScope":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def notify(self, notification: Notification) -> None:
        # Several failed fetches with the same message collapse to one toast
        if notification not in self._notifications:
            self._notifications.append(notification)

    def spawn(
        self,
        name: str,
        func: Callable[..., Any],
        *args: Any,
        fallback: Any = None,
        error_message: Optional[str] = None,
    ) -> asyncio.Task:
        """Start a fetch without waiting for it."""
        if self._closed:
            raise RuntimeError(f"View scope '{self.view}' is closed")

        task = asyncio.create_task(
            self._run(name, func, args, fallback, error_message),
            name=f"{self.view}:{name}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def fetch(
        self,
        name: str,
        func: Callable[..., Any],
        *args: Any,
        fallback: Any = None,
        error_message: Optional[str] = None,
    ) -> Any:
        """Run one fetch and wait for its result (or fallback)."""
        return await self.spawn(
            name, func, *args, fallback=fallback, error_message=error_message
        )

    async def close(self) -> None:
        """Cancel unfinished fetches and wait for them to unwind."""
        self._closed = True
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.debug(
                "Cancelled pending view fetches",
                extra={"view": self.view, "count": len(tasks)},
            )

    async def _run(
        self,
        name: str,
        func: Callable[..., Any],
        args: tuple,
        fallback: Any,
        error_message: Optional[str],
    ) -> Any:
        try:
            call = asyncio.to_thread(func, *args)
            if self._timeout:
                return await asyncio.wait_for(call, timeout=self._timeout)
            return await call
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "View fetch failed",
                extra={"view": self.view, "fetch": name, "error": str(e)},
            )
            self.notify(error(error_message or str(e)))
            return fallback() if callable(fallback) else fallback


class ViewTaskRegistry:
    """
    At most one live fetch task per key.

    Keys are opaque strings chosen by the caller; the session controller
    uses the view path so that re-mounting a view supersedes its older
    fetch. Must be used from inside a running event loop.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def start(self, key: str, coro: Awaitable[Any]) -> asyncio.Task:
        previous = self._tasks.get(key)
        if previous is not None and not previous.done():
            previous.cancel()
            logger.debug("Superseded view fetch", extra={"key": key})

        task = asyncio.ensure_future(coro)
        self._tasks[key] = task
        task.add_done_callback(lambda done, key=key: self._forget(key, done))
        return task

    def is_current(self, key: str, task: asyncio.Task) -> bool:
        return self._tasks.get(key) is task

    def cancel(self, key: str) -> bool:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_where(self, predicate: Callable[[str], bool]) -> int:
        return sum(1 for key in list(self._tasks) if predicate(key) and self.cancel(key))

    def cancel_all(self) -> int:
        return self.cancel_where(lambda key: True)

    @property
    def active_keys(self) -> list[str]:
        return [key for key, task in self._tasks.items() if not task.done()]

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]


async def gather_named(scope: ViewScope, fetches: Iterable[tuple]) -> list[Any]:
    """
    Start several fetches at once and wait for all of them.

    Each entry is `(name, func, args, fallback, error_message)`. Results come
    back in the same order; failures have already become notifications.
    """
    tasks = [
        scope.spawn(name, func, *args, fallback=fallback, error_message=message)
        for name, func, args, fallback, message in fetches
    ]
    return list(await asyncio.gather(*tasks))

# pgboss_dashboard/client/debounce.py
import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

SEARCH_DELAY = 0.3


class Debouncer:
    """
    Runs ``callback`` once input has been quiet for ``delay`` seconds.

    Each ``trigger`` replaces the pending call, so at most one is ever
    scheduled. Must be used from inside a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[..., Any]):
        self.delay = delay
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._args: tuple = ()
        self.tasks = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args) -> None:
        self.cancel()
        self._args = args
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Run the pending call now."""
        if self._handle is not None:
            self._handle.cancel()
            self._fire()

    def _fire(self) -> None:
        self._handle = None
        result = self.callback(*self._args)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self.tasks.add(task)
            task.add_done_callback(self.tasks.discard)

"""
Cancellable delayed task on the asyncio event loop.
"""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DelayedTask:
    """
    Run a callback once `delay` seconds after the most recent schedule() call.

    Scheduling again before the callback fires cancels the pending run, so a
    burst of schedule() calls collapses into one callback after the burst.
    """

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Cancel any pending run and start the window again.

        Raises:
            RuntimeError: If no loop is given and none is running
        """
        self.cancel()
        loop = loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.callback()

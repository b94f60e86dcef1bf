"""
Gameplay countdown driven by the asyncio event loop.

A single-shot timer rescheduled after every tick, so cancelling it between
ticks is immediate and nothing can fire after cancel().
"""

import asyncio
from typing import Callable


class Countdown:
    """
    Calls `on_tick` every `interval` seconds while it keeps returning True.

    The callback owns the counting; the Countdown only owns the timer handle.
    """

    def __init__(self, on_tick: Callable[[], bool], interval: float = 1.0):
        self.on_tick = on_tick
        self.interval = interval
        self._handle: asyncio.TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> bool:
        """
        (Re)start ticking on the running loop.

        Returns False when no loop is running; the owner then has to call
        its tick method by hand.
        """
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        self._handle = loop.call_later(self.interval, self._fire)
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        if self.on_tick():
            loop = asyncio.get_running_loop()
            self._handle = loop.call_later(self.interval, self._fire)

from __future__ import annotations

import threading
from typing import Callable, List, Protocol, Tuple


class Scheduler(Protocol):
    def call_later(self, delay: float, fn: Callable[[], None]) -> None: ...


class TimerScheduler:
    """Runs continuations on daemon timer threads so no request thread sleeps."""

    def call_later(self, delay: float, fn: Callable[[], None]) -> None:
        timer = threading.Timer(max(0.0, delay), fn)
        timer.daemon = True
        timer.start()


class InlineScheduler:
    """Runs continuations immediately; records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    def call_later(self, delay: float, fn: Callable[[], None]) -> None:
        self.delays.append(delay)
        fn()


class ManualScheduler:
    """Queues continuations until run_pending() is called."""

    def __init__(self) -> None:
        self.pending: List[Tuple[float, Callable[[], None]]] = []

    def call_later(self, delay: float, fn: Callable[[], None]) -> None:
        self.pending.append((delay, fn))

    def run_pending(self) -> int:
        ran = 0
        while self.pending:
            _, fn = self.pending.pop(0)
            fn()
            ran += 1
        return ran

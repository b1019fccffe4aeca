"""
Session Monitor
===============
Lifecycle counters for the session controller.

Tracks:
- Status calls issued and retries scheduled
- Results discarded because a newer cycle superseded them
- Welcome notifications emitted
- Transitions into each ``SessionState``

All updates happen on the controller's event loop, so no locking is
needed; ``snapshot()`` returns a copy that is safe to hand out.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict

logger = logging.getLogger(__name__)


@dataclass
class SessionMetrics:
    """Snapshot of all session metrics at a point in time."""
    status_calls: int = 0
    retries: int = 0
    discarded_results: int = 0
    welcomes: int = 0
    cycles_started: int = 0
    transitions: Dict[str, int] = field(default_factory=dict)
    last_state: str = ""
    elapsed_sec: float = 0.0


class SessionMonitor:
    """
    Counter sink owned by a ``SessionController``.

    Usage::

        monitor = SessionMonitor()
        controller = SessionController(config, monitor=monitor, ...)
        ...
        print(monitor.snapshot().status_calls)
    """

    def __init__(self):
        self._start_time = time.time()
        self._status_calls = 0
        self._retries = 0
        self._discarded = 0
        self._welcomes = 0
        self._cycles = 0
        self._transitions: Counter = Counter()
        self._last_state = ""

    def record_cycle(self) -> None:
        self._cycles += 1

    def record_status_call(self) -> None:
        self._status_calls += 1

    def record_retry(self) -> None:
        self._retries += 1

    def record_discarded(self) -> None:
        self._discarded += 1

    def record_welcome(self) -> None:
        self._welcomes += 1

    def record_transition(self, state: str) -> None:
        self._transitions[state] += 1
        self._last_state = state

    def snapshot(self) -> SessionMetrics:
        return SessionMetrics(
            status_calls=self._status_calls,
            retries=self._retries,
            discarded_results=self._discarded,
            welcomes=self._welcomes,
            cycles_started=self._cycles,
            transitions=dict(self._transitions),
            last_state=self._last_state,
            elapsed_sec=round(time.time() - self._start_time, 2),
        )

    def log_summary(self) -> None:
        m = self.snapshot()
        logger.info("-" * 40)
        logger.info(f"  Status calls:      {m.status_calls}")
        logger.info(f"  Retries:           {m.retries}")
        if m.discarded_results:
            logger.info(f"  Stale discarded:   {m.discarded_results}")
        logger.info(f"  Welcomes:          {m.welcomes}")
        logger.info(f"  Final state:       {m.last_state or 'init'}")
        logger.info("-" * 40)

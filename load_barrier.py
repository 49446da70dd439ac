# load_barrier.py

from __future__ import annotations

import enum
import logging
from typing import Callable, List

logger = logging.getLogger(__name__)


class BarrierState(enum.Enum):
    PENDING = "pending"
    SETTLED = "settled"


class AssetLoadBarrier:
    """
    One-shot barrier over a fixed set of asset loads.

    Every planned asset calls ``register()`` before its load starts and
    ``complete()`` once it resolves, successfully or not. When the last
    registered load resolves the barrier moves from PENDING to SETTLED and
    notifies its listeners. That transition happens once; anything arriving
    afterwards is ignored.
    """

    def __init__(self):
        self._expected = 0
        self._completed = 0
        self._failed = 0
        self._state = BarrierState.PENDING
        self._listeners: List[Callable[[], None]] = []

    @property
    def expected(self) -> int:
        return self._expected

    @property
    def completed(self) -> int:
        return self._completed

    @property
    def failed(self) -> int:
        return self._failed

    @property
    def state(self) -> BarrierState:
        return self._state

    @property
    def settled(self) -> bool:
        return self._state is BarrierState.SETTLED

    @property
    def progress(self) -> float:
        if self._expected <= 0:
            return 0.0
        return self._completed / self._expected

    def register(self) -> None:
        if self.settled:
            logger.warning("register() after the barrier settled; ignoring")
            return
        self._expected += 1

    def complete(self, success: bool = True) -> None:
        if self.settled:
            logger.debug("complete(%s) after settlement ignored", success)
            return
        if self._completed >= self._expected:
            logger.warning(
                "complete(%s) without a matching register() (%d/%d); ignoring",
                success,
                self._completed,
                self._expected,
            )
            return

        self._completed += 1
        if not success:
            self._failed += 1

        if self._completed == self._expected:
            self._settle()

    def on_settled(self, callback: Callable[[], None]) -> None:
        if self.settled:
            callback()
            return
        self._listeners.append(callback)

    def _settle(self):
        self._state = BarrierState.SETTLED
        logger.info(
            "All assets resolved: %d loaded, %d failed",
            self._completed - self._failed,
            self._failed,
        )
        listeners, self._listeners = self._listeners, []
        for callback in listeners:
            callback()

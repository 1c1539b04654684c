"""External status monitor for one action during a delivery cycle."""

import asyncio
from typing import Callable, Optional

from ..logging.config import get_state_logger
from ..persistence.action_store import ActionStore, StatusSubscription
from .models import ActionStatus

logger = get_state_logger(__name__)


class StatusMonitor:
    """
    Watches an action's mirrored status and reports when it settles to IDLE.

    The owner starts it after committing EXECUTING and stops it before
    committing its own final IDLE, so any IDLE observed in between came from
    another path (a reset or an overlapping cycle). on_settled is then called
    once and the monitor terminates.
    """

    def __init__(
        self,
        action_store: ActionStore,
        action_id: int,
        on_settled: Callable[[str], None]
    ):
        self.action_store = action_store
        self.action_id = action_id
        self.on_settled = on_settled
        self._subscription: Optional[StatusSubscription] = None
        self._task: Optional[asyncio.Task] = None
        self.settled = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            return
        self._subscription = self.action_store.watch(self.action_id)
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        try:
            if self.action_store.status(self.action_id) == ActionStatus.IDLE:
                self._settle("already_idle")
                return

            async for status in self._subscription:
                if status == ActionStatus.IDLE:
                    self._settle("observed_idle")
                    return
        finally:
            self._subscription.close()

    def _settle(self, reason: str) -> None:
        self.settled = True
        logger.info("Status settled outside the cycle", action_id=self.action_id, reason=reason)
        self.on_settled(reason)

    def stop(self) -> None:
        """Tear the watch down; safe to call more than once."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._subscription is not None:
            self._subscription.close()

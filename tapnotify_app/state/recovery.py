"""
Startup recovery of checkpoints left behind by a killed process.

Each checkpoint is replayed as if time had kept running while the process
was gone: windows that already elapsed reset straight to IDLE, the others
are restored, waited out and finished with the normal tail. The network
call of an interrupted cycle is never issued again.
"""

import asyncio
from typing import TYPE_CHECKING, Optional

from ..config.defaults import TimingParams
from ..logging.config import get_state_logger
from ..utils.time import Clock, format_epoch_ms, sleep_ms
from .models import ActionStatus, StatusEntry

if TYPE_CHECKING:
    from .runtime import ActionRuntimeManager

logger = get_state_logger(__name__)


class RecoverySupervisor:
    """Restores or expires every durable checkpoint once at startup."""

    def __init__(
        self,
        runtime: "ActionRuntimeManager",
        timing: Optional[TimingParams] = None,
        clock: Optional[Clock] = None
    ):
        self.runtime = runtime
        self.timing = timing or runtime.timing
        self.clock = clock or runtime.clock

    async def restore_pending(self) -> dict[int, str]:
        """
        Process all checkpoints concurrently.

        Returns:
            Mapping of action id to the recovery path taken
        """
        entries = self.runtime.status_store.pending()
        if not entries:
            return {}

        logger.info("Restoring pending action states", count=len(entries))
        tasks = [self._spawn(entry) for entry in entries]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes = {}
        for entry, result in zip(entries, results):
            if isinstance(result, asyncio.CancelledError):
                # A press or reset took the action over mid-restore
                outcomes[entry.action_id] = "superseded"
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes[entry.action_id] = result
        return outcomes

    def _spawn(self, entry: StatusEntry) -> asyncio.Task:
        """Run one restore as a task the runtime can cancel."""
        task = asyncio.create_task(self._restore(entry))
        self.runtime.get_context(entry.action_id).recovery_task = task
        return task

    async def _restore(self, entry: StatusEntry) -> str:
        action_id = entry.action_id
        try:
            if self.runtime.action_store.get(action_id) is None:
                self.runtime.status_store.clear(action_id)
                logger.warning("Dropping checkpoint of unconfigured action", action_id=action_id)
                return "dropped"

            remaining = entry.resume_at_ms - self.clock()
            if remaining <= 0 or entry.status == ActionStatus.IDLE:
                self.runtime.force_reset(action_id, "recovery_expired")
                return "expired"

            logger.info(
                "Restoring action state",
                action_id=action_id,
                status=entry.status.value,
                resume_at=format_epoch_ms(entry.resume_at_ms)
            )
            generation = self.runtime.current_generation(action_id)
            if not await self.runtime.commit(
                action_id, entry.status, entry.resume_at_ms, generation, "recovery_restore"
            ):
                return "superseded"

            await sleep_ms(remaining)

            if entry.status == ActionStatus.EXECUTING:
                hold_ms = self.timing.recovery_hold_ms
                if not await self.runtime.commit(
                    action_id,
                    ActionStatus.SUCCESS,
                    self.clock() + hold_ms,
                    generation,
                    "recovery_assumed_success"
                ):
                    return "superseded"
                await sleep_ms(hold_ms)

            if not await self.runtime.commit(
                action_id, ActionStatus.IDLE, None, generation, "recovery_elapsed"
            ):
                return "superseded"
            return "resumed"

        except Exception as e:
            logger.error("Recovery of action failed", action_id=action_id, error=str(e))
            self.runtime.force_reset(action_id, "recovery_error")
            return "failed"

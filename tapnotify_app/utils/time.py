"""
Wall-clock helpers shared by the state machine, orchestrator and recovery.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], int]


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def elapsed_ms(start_ms: int, now_ms: int) -> int:
    """Milliseconds between two epoch timestamps, zero when start is unset."""
    if start_ms <= 0:
        return 0
    return now_ms - start_ms


async def sleep_ms(duration_ms: int) -> None:
    """Suspend the current task for a number of milliseconds."""
    await asyncio.sleep(max(duration_ms, 0) / 1000)


def format_epoch_ms(epoch_ms: int) -> str:
    """
    Format an epoch timestamp for logging.

    Args:
        epoch_ms: Epoch milliseconds

    Returns:
        ISO8601 formatted string in UTC
    """
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()

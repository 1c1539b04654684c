"""
Core debounce/arming evaluation.

eval_press() is a pure function: it looks at one press, the action's
debounce context and the clock, and says what the runtime must do. The
runtime owns every side effect (status writes, timers, delivery tasks).
"""

from ..config.defaults import TimingParams
from ..logging.config import get_state_logger
from ..utils.time import elapsed_ms
from .models import (
    ActionStatus,
    DebounceContext,
    PressDecision,
    PressEvent,
    PressOutcome,
)

state_logger = get_state_logger(__name__)


def eval_press(
    ctx: DebounceContext,
    event: PressEvent,
    now_ms: int,
    timing: TimingParams
) -> PressDecision:
    """
    Decide the transition for a press, in precedence order.

    Args:
        ctx: Debounce context of the pressed action
        event: The press, carrying the status the surface shows
        now_ms: Wall-clock time of the press
        timing: Ceiling and rapid-click windows

    Returns:
        PressDecision; only IGNORE leaves the last-click time untouched
    """
    status = event.observed_status
    has_payload = event.webhook_active or event.message_active

    # 1) EXECUTING is not re-enterable; only an abort can leave it early
    if status == ActionStatus.EXECUTING:
        clicks = ctx.consecutive_clicks + 1

        if executing_timed_out(ctx, now_ms, timing):
            return PressDecision(PressOutcome.ABORT, "executing_timeout", clicks)

        if is_rapid_abort(ctx, clicks, now_ms, timing):
            return PressDecision(PressOutcome.ABORT, "rapid_clicks", clicks)

        if not has_payload:
            return PressDecision(PressOutcome.ABORT, "no_payload", clicks)

        state_logger.debug(
            "Press ignored while executing",
            action_id=event.action_id,
            consecutive_clicks=clicks
        )
        return PressDecision(PressOutcome.IGNORE, "executing", clicks, record_click=False)

    # 2) Terminal statuses are acknowledged by the next press
    if status in (ActionStatus.SUCCESS, ActionStatus.ERROR):
        return PressDecision(PressOutcome.ACKNOWLEDGE, "acknowledge_terminal")

    # 3) First press arms the action
    if status == ActionStatus.IDLE:
        if not has_payload:
            return PressDecision(PressOutcome.ABORT, "no_payload")
        return PressDecision(PressOutcome.ARM, "first_press")

    # 4) Confirming press fires; webhook wins when both payloads exist
    if status == ActionStatus.FIRST:
        if event.webhook_active:
            return PressDecision(PressOutcome.EXECUTE_WEBHOOK, "confirm_press")
        if event.message_active:
            return PressDecision(PressOutcome.EXECUTE_MESSAGE, "confirm_press")
        return PressDecision(PressOutcome.ABORT, "no_payload")

    return PressDecision(PressOutcome.ABORT, "unknown_status")


def executing_timed_out(ctx: DebounceContext, now_ms: int, timing: TimingParams) -> bool:
    """True when the running delivery cycle has outlived the ceiling."""
    return elapsed_ms(ctx.executing_started_ms, now_ms) > timing.executing_timeout_ms


def is_rapid_abort(
    ctx: DebounceContext,
    clicks: int,
    now_ms: int,
    timing: TimingParams
) -> bool:
    """
    Enough presses since the confirming press, close enough to it.

    The window is anchored to the confirming press: ignored presses do not
    move last_click_ms, so a burst that starts more than the window after
    confirmation never aborts; the executing ceiling covers that case.
    """
    if clicks < timing.rapid_click_count:
        return False
    return now_ms - ctx.last_click_ms < timing.rapid_click_window_ms

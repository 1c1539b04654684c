"""
structlog setup for the TapNotify engine.

State transitions and delivery attempts go through the bound loggers below,
so every audit line carries its subsystem and action id.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger

_SHARED_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.TimeStamper(fmt="iso"),
]


def configure_logging(level: str = "INFO", format_json: bool = False) -> None:
    """
    Route structlog through stdlib logging on stdout.

    Args:
        level: Logging level name from the logging settings section
        format_json: JSON lines instead of the console renderer
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stdout,
        format="%(message)s"
    )

    renderer = (structlog.processors.JSONRenderer() if format_json
                else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    return structlog.get_logger(name)


def get_state_logger(name: str) -> FilteringBoundLogger:
    """Logger for the press state machine, marked as part of the audit trail."""
    return get_logger(name).bind(subsystem="state_machine", audit_trail=True)


def get_delivery_logger(name: str) -> FilteringBoundLogger:
    """Logger for webhook, message and transport calls."""
    return get_logger(name).bind(subsystem="delivery")


def log_state_transition(
    logger: FilteringBoundLogger,
    action_id: int,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Emit the audit line for one status change of an action.

    Args:
        logger: Usually a state logger
        action_id: Action slot that changed
        from_state: Status before the change
        to_state: Status after the change
        trigger: Press outcome, timer or recovery path that caused it
        context: Extra fields such as the checkpoint's resume time
    """
    bound_logger = logger.bind(
        action_id=action_id,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")

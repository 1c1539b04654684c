"""
Error classification for the TapNotify engine.

Input errors are resolved locally into an abort or ERROR transition.
System failures cover transport, persistence and state machine faults;
none of them is fatal to the process.
"""

from .input_errors import (
    InputError,
    InvalidWebhookUrlError,
    MissingPayloadError,
    InvalidConfigurationError,
)
from .system_failures import (
    SystemFailureError,
    TransportError,
    PersistenceError,
    StateTransitionError,
    DeliveryError,
)

__all__ = [
    # Input Errors
    "InputError",
    "InvalidWebhookUrlError",
    "MissingPayloadError",
    "InvalidConfigurationError",
    # System Failures
    "SystemFailureError",
    "TransportError",
    "PersistenceError",
    "StateTransitionError",
    "DeliveryError",
]

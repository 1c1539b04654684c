"""
System failure error classifications.

Transport failures resolve to an ERROR status; persistence failures are
caught by the runtime's force-reset path, which falls back to in-memory
state.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for failures outside the caller's control."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class TransportError(SystemFailureError):
    """Network level failure: timeout, DNS, TLS, connection refused."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url


class PersistenceError(SystemFailureError):
    """Database or file system persistence failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class StateTransitionError(SystemFailureError):
    """Transition could not be evaluated or applied."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.attempted_transition = attempted_transition


class DeliveryError(SystemFailureError):
    """Delivery raised instead of reporting an outcome."""

    def __init__(self, message: str, delivery_method: Optional[str] = None,
                 action_id: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.delivery_method = delivery_method
        self.action_id = action_id

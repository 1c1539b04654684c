"""
Input error classifications for action payloads and configuration.

These errors never leave the engine: the runtime turns them into an abort
to IDLE, the delivery layer into a failed outcome.
"""

from typing import Optional, Dict, Any


class InputError(Exception):
    """Base class for malformed or missing user-supplied input."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class InvalidWebhookUrlError(InputError):
    """Webhook URL does not look like an HTTP(S) URL."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url


class MissingPayloadError(InputError):
    """Neither a webhook nor a message payload is available."""

    def __init__(self, message: str, action_id: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.action_id = action_id


class InvalidConfigurationError(InputError):
    """Configuration document or settings file failed validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []

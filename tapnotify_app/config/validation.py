"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

_TIMING_FIELDS = (
    "executing_timeout_ms",
    "rapid_click_window_ms",
    "grace_delay_ms",
    "success_visibility_ms",
    "error_visibility_ms",
    "crash_visibility_ms",
    "trailing_delay_ms",
    "recovery_hold_ms",
)

_PROVIDERS = ("textbelt", "callmebot", "whapi")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


class ConfigValidator:
    """Validates settings and action definitions."""

    @staticmethod
    def validate_timing_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate timing windows."""
        errors = []

        for name in _TIMING_FIELDS:
            if name in params:
                value = params[name]
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a non-negative integer (milliseconds)",
                        value=value
                    ))

        if "rapid_click_count" in params:
            value = params["rapid_click_count"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                errors.append(ValidationError(
                    field="rapid_click_count",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_phone_number(phone_number: str) -> tuple[bool, str]:
        """
        Validate an international phone number.

        Returns:
            (True, digits without the leading +) when valid, (True, "") for a
            blank number, (False, reason) otherwise.
        """
        trimmed = phone_number.strip()

        if not trimmed:
            return True, ""

        if not trimmed.startswith("+"):
            return False, "Phone number must start with +"

        if not trimmed[1:].isdigit():
            return False, "Phone number must contain only digits after +"

        if len(trimmed) < 8 or len(trimmed) > 16:
            return False, "Phone number must be between 8 and 16 characters"

        return True, trimmed[1:]

    @staticmethod
    def validate_messaging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate message provider settings."""
        errors = []

        if "provider" in params and params["provider"] not in _PROVIDERS:
            errors.append(ValidationError(
                field="provider",
                message=f"Must be one of {', '.join(_PROVIDERS)}",
                value=params["provider"]
            ))

        for number in params.get("phone_numbers") or []:
            valid, reason = ConfigValidator.validate_phone_number(str(number))
            if not valid:
                errors.append(ValidationError(
                    field="phone_numbers",
                    message=reason,
                    value=number
                ))

        return errors

    @staticmethod
    def validate_action(action: dict[str, Any]) -> list[ValidationError]:
        """Validate one action definition from the action document."""
        errors = []

        action_id = action.get("id")
        if isinstance(action_id, bool) or not isinstance(action_id, int) or action_id < 0:
            errors.append(ValidationError(
                field="id",
                message="Must be a non-negative integer",
                value=action_id
            ))

        url = action.get("url", "")
        if action.get("enabled") and not str(url).startswith("http"):
            errors.append(ValidationError(
                field="url",
                message="Enabled webhook needs an http(s) URL",
                value=url
            ))

        header = action.get("header", "") or ""
        for line in header.splitlines():
            if line.strip() and ":" not in line:
                errors.append(ValidationError(
                    field="header",
                    message="Header lines must look like 'key: value'",
                    value=line
                ))

        return errors

    @staticmethod
    def validate_actions(actions: list[dict[str, Any]]) -> list[ValidationError]:
        """Validate a full action document, including id uniqueness."""
        errors = []
        seen: set[int] = set()

        for action in actions:
            errors.extend(ConfigValidator.validate_action(action))
            action_id = action.get("id")
            if action_id in seen:
                errors.append(ValidationError(
                    field="id",
                    message="Duplicate action id",
                    value=action_id
                ))
            seen.add(action_id)

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "timing" in config:
            errors.extend(ConfigValidator.validate_timing_params(config["timing"]))

        if "messaging" in config:
            errors.extend(ConfigValidator.validate_messaging_params(config["messaging"]))

        return errors

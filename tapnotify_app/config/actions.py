"""Action definitions: the configured payload of each trigger slot."""

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Optional

from ..state.models import ActionStatus

LIFECYCLE_EVENTS = ("start", "stop", "pause", "resume", "custom")


@dataclass(frozen=True)
class ActionDefinition:
    """One configured webhook slot and the status mirrored for it."""
    id: int
    name: str = ""
    url: str = ""
    post: str = ""                                   # Body template
    header: str = ""                                 # "key: value" lines
    enabled: bool = False

    # Which lifecycle events fire this action
    action_on_start: bool = False
    action_on_stop: bool = False
    action_on_pause: bool = False
    action_on_resume: bool = False
    action_on_custom: bool = True

    # Substituted for %status% in the body template
    status_text_on_start: str = "start"
    status_text_on_stop: str = "stop"
    status_text_on_pause: str = "pause"
    status_text_on_resume: str = "resume"
    status_text_on_custom: str = "custom"

    only_if_location: bool = False                   # Geofence gate
    status: ActionStatus = ActionStatus.IDLE

    @property
    def webhook_active(self) -> bool:
        return self.enabled and bool(self.url)

    def trigger_for(self, event_type: str) -> tuple[bool, Optional[str]]:
        """Return (should_fire, status_text) for a lifecycle event."""
        if event_type not in LIFECYCLE_EVENTS:
            return False, None
        return (
            getattr(self, f"action_on_{event_type}"),
            getattr(self, f"status_text_on_{event_type}"),
        )

    def with_status(self, status: ActionStatus) -> "ActionDefinition":
        return replace(self, status=status)

    def with_body(self, post: str) -> "ActionDefinition":
        return replace(self, post=post)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionDefinition":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["status"] = ActionStatus.parse(values.get("status", ActionStatus.IDLE.value))
        return cls(**values)

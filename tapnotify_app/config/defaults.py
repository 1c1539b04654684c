"""Default configuration parameters for the TapNotify engine."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TimingParams:
    """State machine and delivery windows, all in milliseconds."""
    # Debounce / arming
    executing_timeout_ms: int = 30_000               # Ceiling for FIRST and EXECUTING
    rapid_click_window_ms: int = 2_000               # Window for abort-by-rapid-clicks
    rapid_click_count: int = 3                       # Presses needed inside the window

    # Delivery cycle
    grace_delay_ms: int = 4_000                      # EXECUTING shown before the call
    success_visibility_ms: int = 4_000               # SUCCESS hold
    error_visibility_ms: int = 5_000                 # ERROR hold (failed outcome)
    crash_visibility_ms: int = 10_000                # ERROR hold (delivery raised)
    trailing_delay_ms: int = 600                     # Extra hold after visibility

    # Recovery
    recovery_hold_ms: int = 5_000                    # SUCCESS hold for recovered EXECUTING


@dataclass(frozen=True)
class GeofenceParams:
    """Geofence gate parameters."""
    radius_m: float = 70.0
    earth_radius_km: float = 6371.0


@dataclass(frozen=True)
class StorageParams:
    """Durable storage locations."""
    status_db_path: str = "tapnotify_status.db"
    actions_path: str = "tapnotify_actions.json"


@dataclass(frozen=True)
class HttpParams:
    """HTTP transport parameters."""
    timeout_seconds: float = 15.0
    user_agent: str = "tapnotify/0.1"


@dataclass(frozen=True)
class MessagingParams:
    """Message provider and lifecycle notification settings."""
    provider: str = "textbelt"                       # textbelt, callmebot, whapi
    api_key: str = ""
    phone_numbers: list[str] = field(default_factory=list)

    start_message: str = ""
    stop_message: str = ""
    pause_message: str = ""
    resume_message: str = ""
    notify_on_start: bool = True
    notify_on_stop: bool = False


@dataclass(frozen=True)
class SensorParams:
    """Static sensor readings used when no live feed is attached."""
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None
    home_lat: Optional[float] = None
    home_lng: Optional[float] = None
    remaining_distance_m: float = 0.0
    distance_units: str = "metric"                   # metric, imperial


@dataclass(frozen=True)
class LoggingParams:
    """Logging output settings."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete application configuration."""
    timing: TimingParams
    geofence: GeofenceParams
    storage: StorageParams
    http: HttpParams
    messaging: MessagingParams
    sensors: SensorParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        timing=TimingParams(),
        geofence=GeofenceParams(),
        storage=StorageParams(),
        http=HttpParams(),
        messaging=MessagingParams(),
        sensors=SensorParams(),
        logging=LoggingParams(),
    )

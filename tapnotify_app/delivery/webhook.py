"""Webhook POST delivery with body/header templating and a geofence gate."""

from typing import Optional
from urllib.parse import urlparse

import orjson

from ..config.actions import ActionDefinition
from ..config.defaults import GeofenceParams
from ..errors import InvalidWebhookUrlError
from ..persistence.action_store import ActionStore
from ..sensors.provider import DistanceUnits, SensorProvider, latest_value
from ..utils.geo import within_radius
from .base import BaseDelivery
from .transport import HttpTransport

DISTANCE_PLACEHOLDER = "#dst#"
STATUS_PLACEHOLDER = "%status%"
DEFAULT_HEADERS = {"Content-Type": "application/json"}


def format_distance(distance_m: Optional[float], units: DistanceUnits) -> str:
    """Human readable remaining distance for the #dst# placeholder."""
    if distance_m is None or distance_m <= 0:
        return "0"
    if units == DistanceUnits.IMPERIAL:
        return f"{int(distance_m / 1609)} mi"
    if distance_m < 1000:
        return f"{int(distance_m)} m"
    return f"{int(distance_m / 1000)} km"


def is_webhook_url(url: str) -> bool:
    """Loose check that url is an HTTP(S) URL with a host."""
    if not url.startswith("http"):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def require_webhook_url(url: str) -> str:
    if not is_webhook_url(url):
        raise InvalidWebhookUrlError(f"Not an HTTP(S) webhook URL: {url!r}", url=url)
    return url


def parse_header_template(template: str) -> dict[str, str]:
    """Parse newline separated 'key: value' lines; malformed lines are skipped."""
    headers = {}
    for line in template.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def build_headers(template: str) -> tuple[dict[str, str], Optional[str]]:
    """
    Merge the header template over the default JSON content type.

    Returns:
        (headers, declared content type in lowercase or None)
    """
    custom = parse_header_template(template) if template.strip() else {}
    declared = next(
        (v.lower() for k, v in custom.items() if k.lower() == "content-type"), None
    )

    headers = {} if declared is not None else dict(DEFAULT_HEADERS)
    headers.update(custom)
    return headers, declared


def build_body(text: str, content_type: Optional[str]) -> Optional[bytes]:
    """Encode the rendered body, reshaping key: value lines when JSON is declared."""
    if not text.strip():
        return None

    if content_type is None or "json" not in content_type:
        return text.encode("utf-8")

    stripped = text.strip()
    if stripped.startswith("{") and stripped.endswith("}"):
        return text.encode("utf-8")

    try:
        document = {}
        for line in text.splitlines():
            key, sep, value = line.partition(":")
            if sep:
                document[key.strip()] = value.strip()
        return orjson.dumps(document)
    except (TypeError, orjson.JSONEncodeError):
        return text.encode("utf-8")


class WebhookDelivery(BaseDelivery):
    """POSTs an action's rendered template to its configured URL."""

    def __init__(
        self,
        transport: HttpTransport,
        action_store: ActionStore,
        sensors: SensorProvider,
        geofence: Optional[GeofenceParams] = None
    ):
        super().__init__("webhook", geofence or GeofenceParams())
        self.transport = transport
        self.action_store = action_store
        self.sensors = sensors
        self.geofence: GeofenceParams = self.config

    async def send(self, action: ActionDefinition, message_text: str = "") -> bool:
        return await self.handle_event("custom", action.id)

    def remaining_distance_text(self) -> str:
        distance = latest_value(self.sensors.remaining_distance, 0.0, "remaining_distance")
        units = latest_value(self.sensors.distance_units, DistanceUnits.METRIC, "distance_units")
        return format_distance(distance, units)

    def location_allowed(self) -> bool:
        """Geofence gate: current fix within the configured radius of home."""
        home = latest_value(self.sensors.home_location, None, "home_location")
        current = latest_value(self.sensors.current_location, None, "current_location")
        if home is None or current is None:
            self.logger.warning("Geofence gate has no location fix")
            return False
        return within_radius(
            current, home, self.geofence.radius_m, self.geofence.earth_radius_km
        )

    async def handle_event(self, event_type: str, action_id: int) -> bool:
        """
        Evaluate a lifecycle event for one action and send when it applies.

        Returns:
            True only when a webhook was sent and answered with 2xx
        """
        try:
            action = self.action_store.get(action_id)
            if action is None:
                self.logger.warning("No action configured", action_id=action_id)
                return False

            should_trigger, status_text = action.trigger_for(event_type)
            if not should_trigger:
                self.logger.debug(
                    "Event does not trigger action",
                    action_id=action_id,
                    event_type=event_type
                )
                return False

            if action.only_if_location and not self.location_allowed():
                self.logger.info(
                    "Webhook suppressed by geofence",
                    action_id=action_id,
                    event_type=event_type
                )
                return False

            rendered = action.with_body(action.post.replace(STATUS_PLACEHOLDER, status_text or ""))
            return await self.send_webhook(rendered)

        except Exception as e:
            self.logger.error(
                "Webhook event handling failed",
                action_id=action_id,
                event_type=event_type,
                error=str(e)
            )
            return False

    async def send_webhook(self, action: ActionDefinition) -> bool:
        """POST the action's template; False on invalid URL, non-2xx or transport error."""
        try:
            require_webhook_url(action.url)
        except InvalidWebhookUrlError as e:
            self.logger.error("Invalid webhook URL", action_id=action.id, url=e.url)
            return False

        try:
            text = action.post.replace(DISTANCE_PLACEHOLDER, self.remaining_distance_text())
            headers, content_type = build_headers(action.header)
            body = build_body(text, content_type)

            self.logger.debug("Sending webhook", action_id=action.id, url=action.url)
            response = await self.transport.apost(action.url, headers, body)

        except Exception as e:
            self.logger.error(
                "Webhook transport failed",
                action_id=action.id,
                url=action.url,
                error=str(e)
            )
            return False

        if response.ok:
            self.logger.info(
                "Webhook delivered",
                action_id=action.id,
                url=action.url,
                status_code=response.status_code
            )
        else:
            self.logger.warning(
                "Webhook rejected",
                action_id=action.id,
                url=action.url,
                status_code=response.status_code,
                response_data=response.body
            )
        return response.ok

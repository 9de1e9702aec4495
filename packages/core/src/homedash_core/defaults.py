"""Per-domain default values applied when a domain has no record yet."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from homedash_core.domains import ConfigDomain

# Placeholder for "the instant the seeder runs".
SEEDING_INSTANT = object()


@dataclass(frozen=True)
class DefaultSet:
    values: Dict[str, Any] = field(default_factory=dict)
    # Pin created/updated to a historical instant (deterministic fixtures).
    fixed_instant: Optional[datetime] = None

    def resolve(self, now: str) -> Dict[str, Any]:
        out = {}
        for name, value in self.values.items():
            if value is SEEDING_INSTANT:
                value = now
            elif isinstance(value, (list, dict)):
                value = _copy(value)
            out[name] = value
        return out


def _copy(value):
    if isinstance(value, list):
        return [_copy(v) for v in value]
    if isinstance(value, dict):
        return {k: _copy(v) for k, v in value.items()}
    return value


_SAMPLE_ENTITIES = [
    {
        "entity_id": "light.den",
        "friendly_name": "Den Light",
        "state": "on",
        "attributes": {"brightness": 255, "color_mode": "rgb", "rgb_color": [255, 255, 255]},
    },
    {
        "entity_id": "switch.kitchen",
        "friendly_name": "Kitchen Switch",
        "state": "off",
        "attributes": {"device_class": "outlet"},
    },
    {
        "entity_id": "sensor.temperature",
        "friendly_name": "Living Room Temperature",
        "state": "22.5",
        "attributes": {"unit_of_measurement": "°C", "device_class": "temperature"},
    },
    {
        "entity_id": "light.bedroom",
        "friendly_name": "Bedroom Light",
        "state": "off",
        "attributes": {"brightness": 0, "color_mode": "brightness"},
    },
    {
        "entity_id": "switch.garage",
        "friendly_name": "Garage Door Switch",
        "state": "on",
        "attributes": {"device_class": "garage_door"},
    },
]

_SAMPLE_EXPOSURE_RULES = [
    {"id": "lights_only", "name": "Lights Only", "pattern": "light.*", "allowed": True,
     "description": "Expose all light entities"},
    {"id": "no_bedroom", "name": "No Bedroom Devices", "pattern": ".*bedroom.*", "allowed": False,
     "description": "Block all bedroom devices for privacy"},
    {"id": "sensors_readonly", "name": "Sensors Read Only", "pattern": "sensor.*", "allowed": True,
     "readonly": True, "description": "Allow reading sensor data but no control"},
    {"id": "critical_switches", "name": "Critical Switches", "pattern": "switch.(garage|security).*",
     "allowed": True, "requireAuth": True, "description": "Critical switches require authentication"},
]

DEFAULT_SETS: Dict[ConfigDomain, DefaultSet] = {
    ConfigDomain.APPEARANCE: DefaultSet({
        "primary_color": "#3b82f6",
        "background_color": "rgb(92, 113, 132)",
        "card_placeholder_color": "#9ca3af",
        "navbar_background_color": "rgb(22, 143, 203)",
        "theme_preset": "default",
        "screen_size": "desktop",
        "width": 1200,
        "height": 800,
        "mode": "auto",
    }),
    ConfigDomain.DATABASE_SETTINGS: DefaultSet({
        "auto_backup": False,
        "query_logging": False,
        "schema_validation": True,
        "performance_monitoring": False,
        "local_path": "/app/data/backups",
        "cloud_path": None,
        "preset": "balanced",
    }),
    ConfigDomain.MCP_CONFIG: DefaultSet({
        "url": "http://homeassistant.local:8123",
        "token": "test_long_lived_access_token_abc123",
        "connected": True,
        "entities": _SAMPLE_ENTITIES,
        "server_port": 8124,
        "exposure_rules": _SAMPLE_EXPOSURE_RULES,
    }, fixed_instant=datetime(2024, 1, 15, tzinfo=timezone.utc)),
    ConfigDomain.MCP_SETTINGS: DefaultSet({
        "url": None,
        "token": None,
        "connected": False,
        "entities": [],
    }),
    ConfigDomain.PIHOLE_CONFIG: DefaultSet({
        "url": "http://192.168.1.100",
        "app_password": "test_password_123",
        "connected": True,
        "last_checked": SEEDING_INSTANT,
    }),
    ConfigDomain.SETTINGS: DefaultSet({
        "mcp_url": None,
        "mcp_token": None,
        "mcp_connected": False,
        "entities": [],
    }, fixed_instant=datetime(2024, 1, 1, tzinfo=timezone.utc)),
    ConfigDomain.WEATHER_SETTINGS: DefaultSet({
        "provider": "openweathermap",
        "api_key": None,
        "latitude": None,
        "longitude": None,
        "units": "metric",
        "city": None,
        "country": None,
        "zip": None,
    }),
}

__all__ = ["DefaultSet", "DEFAULT_SETS", "SEEDING_INSTANT"]

"""Configuration domain identities."""
from __future__ import annotations

from enum import Enum

from homedash_core.errors import NotFoundError


class ConfigDomain(str, Enum):
    APPEARANCE = "appearance"
    DATABASE_SETTINGS = "databaseSettings"
    MCP_CONFIG = "mcpConfig"
    MCP_SETTINGS = "mcpSettings"
    PIHOLE_CONFIG = "piholeConfig"
    SETTINGS = "settings"
    WEATHER_SETTINGS = "weatherSettings"
    BACKUPS = "backups"

    @property
    def is_ledger(self) -> bool:
        return self is ConfigDomain.BACKUPS

    @classmethod
    def parse(cls, value: "str | ConfigDomain") -> "ConfigDomain":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise NotFoundError(f"Unknown configuration domain: {value}") from None


LEDGER_DOMAIN = ConfigDomain.BACKUPS
SINGLETON_DOMAINS = tuple(d for d in ConfigDomain if not d.is_ledger)

__all__ = ["ConfigDomain", "LEDGER_DOMAIN", "SINGLETON_DOMAINS"]

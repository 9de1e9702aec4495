"""ORM models, one table per configuration domain."""
from sqlalchemy import Boolean, Column, Float, Integer, JSON, String
from homedash_core.db import Base
from homedash_core.domains import ConfigDomain


class TimestampMixin:
    created_at = Column(String, nullable=False)  # ISO-8601, UTC
    updated_at = Column(String, nullable=False)


class AppearanceSettings(TimestampMixin, Base):
    __tablename__ = "appearance_settings"
    id = Column(Integer, primary_key=True)
    primary_color = Column(String)
    background_color = Column(String)
    card_placeholder_color = Column(String)
    navbar_background_color = Column(String)
    theme_preset = Column(String)
    screen_size = Column(String)
    width = Column(Integer)
    height = Column(Integer)
    mode = Column(String)


class DatabaseSettings(TimestampMixin, Base):
    __tablename__ = "database_settings"
    id = Column(Integer, primary_key=True)
    auto_backup = Column(Boolean)
    query_logging = Column(Boolean)
    schema_validation = Column(Boolean)
    performance_monitoring = Column(Boolean)
    local_path = Column(String)
    cloud_path = Column(String)
    preset = Column(String)


class McpConfig(TimestampMixin, Base):
    __tablename__ = "mcp_config"
    id = Column(Integer, primary_key=True)
    url = Column(String)
    token = Column(String)
    connected = Column(Boolean)
    entities = Column(JSON)
    server_port = Column(Integer)
    exposure_rules = Column(JSON)


class McpSettings(TimestampMixin, Base):
    __tablename__ = "mcp_settings"
    id = Column(Integer, primary_key=True)
    url = Column(String)
    token = Column(String)
    connected = Column(Boolean)
    entities = Column(JSON)


class PiholeConfig(TimestampMixin, Base):
    __tablename__ = "pihole_config"
    id = Column(Integer, primary_key=True)
    url = Column(String)
    app_password = Column(String)
    connected = Column(Boolean)
    last_checked = Column(String)


class GeneralSettings(TimestampMixin, Base):
    __tablename__ = "settings"
    id = Column(Integer, primary_key=True)
    mcp_url = Column(String)
    mcp_token = Column(String)
    mcp_connected = Column(Boolean)
    entities = Column(JSON)


class WeatherSettings(TimestampMixin, Base):
    __tablename__ = "weather_settings"
    id = Column(Integer, primary_key=True)
    provider = Column(String)
    api_key = Column(String)
    latitude = Column(Float)
    longitude = Column(Float)
    units = Column(String)
    city = Column(String)
    country = Column(String)
    zip = Column(String)


class Backup(Base):
    __tablename__ = "backups"
    id = Column(Integer, primary_key=True)
    created_at = Column(String, nullable=False, index=True)


MODELS = {
    ConfigDomain.APPEARANCE: AppearanceSettings,
    ConfigDomain.DATABASE_SETTINGS: DatabaseSettings,
    ConfigDomain.MCP_CONFIG: McpConfig,
    ConfigDomain.MCP_SETTINGS: McpSettings,
    ConfigDomain.PIHOLE_CONFIG: PiholeConfig,
    ConfigDomain.SETTINGS: GeneralSettings,
    ConfigDomain.WEATHER_SETTINGS: WeatherSettings,
    ConfigDomain.BACKUPS: Backup,
}

__all__ = [
    "AppearanceSettings",
    "DatabaseSettings",
    "McpConfig",
    "McpSettings",
    "PiholeConfig",
    "GeneralSettings",
    "WeatherSettings",
    "Backup",
    "MODELS",
]

"""Pydantic schemas for each configuration domain.

Every field is optional so the same schema validates both partial updates
and full records. Fields are snake_case in Python and camelCase on the
wire (``autoBackup``); both spellings are accepted on input. Unknown keys
are rejected.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from homedash_core.domains import ConfigDomain
from homedash_core.errors import ValidationError

PositiveInt = Annotated[int, Field(strict=True, gt=0)]
Port = Annotated[int, Field(strict=True, ge=1, le=65535)]
Latitude = Annotated[float, Field(strict=True, ge=-90, le=90)]
Longitude = Annotated[float, Field(strict=True, ge=-180, le=180)]

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_FUNC_COLOR = re.compile(r"^(?:rgba?|hsla?)\(\s*[0-9.%+\-]+(?:\s*[,/ ]\s*[0-9.%+\-]+){2,3}\s*\)$", re.IGNORECASE)
_NAMED_COLOR = re.compile(r"^[a-zA-Z]+$")
_HTTP_URL = re.compile(r"^https?://.+", re.IGNORECASE)


def is_css_color(value: str) -> bool:
    v = value.strip()
    return bool(_HEX_COLOR.match(v) or _FUNC_COLOR.match(v) or _NAMED_COLOR.match(v))


def is_iso_instant(value: str) -> bool:
    v = value.strip()
    if v.endswith(("Z", "z")):
        v = v[:-1] + "+00:00"
    try:
        datetime.fromisoformat(v)
    except ValueError:
        return False
    return True


class DomainSchema(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    # Fields that may be omitted but never set to null.
    non_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = [n for n in self.non_nullable if n in self.model_fields_set and getattr(self, n) is None]
        if nulls:
            raise ValueError("must not be null: " + ", ".join(nulls))
        return self


class AppearanceSchema(DomainSchema):
    primary_color: Optional[str] = None
    background_color: Optional[str] = None
    card_placeholder_color: Optional[str] = None
    navbar_background_color: Optional[str] = None
    theme_preset: Optional[Literal["default", "green", "purple", "red", "orange"]] = None
    screen_size: Optional[Literal["mobile", "tablet", "desktop", "tv"]] = None
    width: Optional[PositiveInt] = None
    height: Optional[PositiveInt] = None
    mode: Optional[Literal["auto", "manual"]] = None

    non_nullable = ("background_color", "theme_preset", "screen_size", "width", "height", "mode")

    @field_validator("primary_color", "background_color", "card_placeholder_color", "navbar_background_color")
    @classmethod
    def check_css_color(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_css_color(v):
            raise ValueError(f"not a hex or CSS color: {v!r}")
        return v


class DatabaseSettingsSchema(DomainSchema):
    auto_backup: Optional[StrictBool] = None
    query_logging: Optional[StrictBool] = None
    schema_validation: Optional[StrictBool] = None
    performance_monitoring: Optional[StrictBool] = None
    local_path: Optional[str] = None
    cloud_path: Optional[str] = None
    preset: Optional[Literal["performance", "balanced", "storage", "secure"]] = None

    non_nullable = ("auto_backup", "query_logging", "schema_validation", "performance_monitoring", "local_path", "preset")

    @field_validator("local_path")
    @classmethod
    def check_local_path(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("local path must be a non-empty string")
        return v


def _check_http_url(v: Optional[str]) -> Optional[str]:
    if v and v.strip() and not _HTTP_URL.match(v.strip()):
        raise ValueError("url must start with http:// or https://")
    return v


class McpSettingsSchema(DomainSchema):
    url: Optional[str] = None
    token: Optional[str] = None
    connected: Optional[StrictBool] = None
    entities: Optional[List[Any]] = None

    non_nullable = ("connected",)

    @field_validator("url")
    @classmethod
    def check_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_http_url(v)


class McpConfigSchema(McpSettingsSchema):
    server_port: Optional[Port] = None
    exposure_rules: Optional[List[Dict[str, Any]]] = None


class PiholeConfigSchema(DomainSchema):
    url: Optional[str] = None
    app_password: Optional[str] = None
    connected: Optional[StrictBool] = None
    last_checked: Optional[str] = None

    non_nullable = ("connected",)

    @field_validator("url")
    @classmethod
    def check_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_http_url(v)

    @field_validator("last_checked")
    @classmethod
    def check_last_checked(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_iso_instant(v):
            raise ValueError(f"not an ISO-8601 instant: {v!r}")
        return v


class GeneralSettingsSchema(DomainSchema):
    mcp_url: Optional[str] = None
    mcp_token: Optional[str] = None
    mcp_connected: Optional[StrictBool] = None
    entities: Optional[List[Any]] = None

    non_nullable = ("mcp_connected",)

    @field_validator("mcp_url")
    @classmethod
    def check_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_http_url(v)


class WeatherSettingsSchema(DomainSchema):
    provider: Optional[Literal["openweathermap", "weatherapi", "accuweather"]] = None
    api_key: Optional[str] = None
    latitude: Optional[Latitude] = None
    longitude: Optional[Longitude] = None
    units: Optional[Literal["metric", "imperial"]] = None
    city: Optional[str] = None
    country: Optional[str] = None
    zip: Optional[str] = None

    non_nullable = ("provider", "units")


SCHEMAS: Dict[ConfigDomain, Type[DomainSchema]] = {
    ConfigDomain.APPEARANCE: AppearanceSchema,
    ConfigDomain.DATABASE_SETTINGS: DatabaseSettingsSchema,
    ConfigDomain.MCP_CONFIG: McpConfigSchema,
    ConfigDomain.MCP_SETTINGS: McpSettingsSchema,
    ConfigDomain.PIHOLE_CONFIG: PiholeConfigSchema,
    ConfigDomain.SETTINGS: GeneralSettingsSchema,
    ConfigDomain.WEATHER_SETTINGS: WeatherSettingsSchema,
}


def schema_for(domain: ConfigDomain) -> Type[DomainSchema]:
    try:
        return SCHEMAS[domain]
    except KeyError:
        raise ValidationError(f"{domain.value} has no field schema") from None


def field_names(domain: ConfigDomain) -> List[str]:
    return list(schema_for(domain).model_fields)


def wire_name(domain: ConfigDomain, name: str) -> str:
    info = schema_for(domain).model_fields.get(name)
    return (info.alias if info is not None and info.alias else name)


def _format_errors(exc: PydanticValidationError) -> List[str]:
    out = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        out.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return out


def validate_fields(domain: ConfigDomain, data: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate ``data`` against the domain schema.

    Returns the snake_case mapping of the fields actually supplied (an
    explicit ``None`` is kept, omitted fields are not). Raises
    :class:`ValidationError` listing every problem found.
    """
    schema = schema_for(domain)
    if not isinstance(data, Mapping):
        raise ValidationError(f"{domain.value}: expected an object of fields")
    try:
        model = schema.model_validate(dict(data))
    except PydanticValidationError as exc:
        errors = _format_errors(exc)
        raise ValidationError(f"{domain.value}: " + "; ".join(errors), errors) from None
    return model.model_dump(exclude_unset=True)


__all__ = [
    "SCHEMAS",
    "DomainSchema",
    "schema_for",
    "field_names",
    "wire_name",
    "validate_fields",
    "is_css_color",
    "is_iso_instant",
]

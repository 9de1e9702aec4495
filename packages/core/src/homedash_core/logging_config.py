"""Central logging configuration helper."""
from __future__ import annotations
import logging
import logging.config
import os
from io import StringIO
from pathlib import Path
import re

DEFAULT_CONFIG_PATHS = [
    Path("config/logging.ini"),
]


class RedactionFilter(logging.Filter):
    """Mask credentials that end up in log lines (tokens, api keys, passwords)."""

    TOKEN_PATTERNS = [
        (re.compile(r"(Authorization\s*[:=]\s*Bearer\s+)([A-Za-z0-9._~+\-=/]+)", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"([?&](?:token|appid|api_key|apikey)=)([^&\s]+)", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"([\"']?(?:token|mcp_token|mcpToken|api_key|apiKey|app_password|appPassword|pw)[\"']?\s*[:=]\s*[\"']?)([^\"'\s,}&]+)([\"']?)"), r"\1[REDACTED]\3"),
    ]

    @classmethod
    def redact(cls, s: str) -> str:
        out = s
        for pattern, repl in cls.TOKEN_PATTERNS:
            out = pattern.sub(repl, out)
        return out

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        # If args are present, format first then replace msg/args to avoid double format.
        if record.args:
            record.msg = self.redact(record.getMessage())
            record.args = None
        elif isinstance(record.msg, str):
            record.msg = self.redact(record.msg)
        return True


def _attach(redactor: logging.Filter, logger: logging.Logger, seen: set) -> None:
    for h in logger.handlers:
        if id(h) in seen:
            continue
        h.addFilter(redactor)
        seen.add(id(h))
    # Also attach at logger level to cover future handlers
    logger.addFilter(redactor)


def configure_logging(level: str | None = None, config_file: str | os.PathLike[str] | None = None) -> None:
    """Configure logging using an INI template.

    If the config contains the placeholder __LOG_LEVEL__, it is replaced with
    the effective log level before passing to logging.config.fileConfig.
    Without a config file, falls back to ``basicConfig``.
    """
    lvl = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    cfg_path: Path | None
    if config_file:
        cfg_path = Path(config_file)
    else:
        cfg_path = next((p for p in DEFAULT_CONFIG_PATHS if p.exists()), None)
    if not cfg_path or not cfg_path.exists():
        logging.basicConfig(level=getattr(logging, lvl, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    else:
        text = cfg_path.read_text(encoding="utf-8").replace("__LOG_LEVEL__", lvl)
        logging.config.fileConfig(StringIO(text), disable_existing_loggers=False)

    redactor = RedactionFilter()
    seen: set = set()
    _attach(redactor, logging.getLogger(), seen)  # root
    for name in list(logging.root.manager.loggerDict.keys()):  # type: ignore[attr-defined]
        if name.startswith("homedash"):
            _attach(redactor, logging.getLogger(name), seen)


__all__ = ["configure_logging", "RedactionFilter"]

"""Runtime configuration read from the environment."""
from dataclasses import dataclass, field
from typing import Optional
import os, sys
from pathlib import Path
from dotenv import load_dotenv  # type: ignore


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.getenv(name)
    return val if val not in (None, "") else default


def _env_flag(name: str, default: bool) -> bool:
    val = _env(name)
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    val = _env(name)
    try:
        return float(val) if val is not None else default
    except ValueError:
        return default


@dataclass
class Settings:
    database_url: Optional[str] = field(default_factory=lambda: _env("HOMEDASH_DB_URL") or _env("HOMEDASH_DATABASE_URL"))
    data_dir: str = field(default_factory=lambda: _env("HOMEDASH_DATA_DIR", "data"))
    probe_timeout: float = field(default_factory=lambda: _env_float("HOMEDASH_PROBE_TIMEOUT", 10.0))
    seed_on_startup: bool = field(default_factory=lambda: _env_flag("HOMEDASH_SEED_ON_STARTUP", True))

    def _bundle_base(self) -> Optional[str]:
        base = getattr(sys, "_MEIPASS", None)
        if base and os.path.isdir(base):
            return base
        return None

    def repo_root(self) -> str:
        base = self._bundle_base()
        if base:  # Frozen bundle base (PyInstaller, etc.)
            return base
        cur = os.path.abspath(os.path.dirname(__file__))
        markers = ("pyproject.toml", ".git")
        for _ in range(8):
            if any(os.path.exists(os.path.join(cur, m)) for m in markers) and os.path.isdir(os.path.join(cur, "packages")):
                return cur
            parent = os.path.dirname(cur)
            if parent == cur:
                break
            cur = parent
        # Fallback: 4 levels up from packages/core/src/homedash_core
        return os.path.abspath(os.path.join(os.path.dirname(__file__), "../../../../"))

    def load_backend_env(self) -> None:
        """Load canonical backend env file if present (idempotent)."""
        env_file = Path(self.repo_root()) / "config" / "env" / ".env.backend"
        if env_file.exists():
            load_dotenv(env_file, override=False)

    def debug_print(self) -> None:
        if _env("HOMEDASH_DEBUG_CONFIG", "0") in ("1", "true", "yes"):  # opt-in
            print(f"[config] repo_root={self.repo_root()}")
            print(f"[config] database_url={self.effective_database_url()}")

    def resolve_path(self, p: Optional[str]) -> Optional[str]:
        if not p:
            return None
        if os.path.isabs(p):
            return p
        return os.path.abspath(os.path.join(self.repo_root(), p))

    def effective_data_dir(self) -> str:
        return self.resolve_path(self.data_dir) or os.path.join(self.repo_root(), "data")

    def effective_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{os.path.join(self.effective_data_dir(), 'homedash.db')}"

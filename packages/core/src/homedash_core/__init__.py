"""Core settings store for the Homedash dashboard.

Configuration domains, their schemas and defaults, the record store with
its backup ledger, and the probe adapter for external integrations.
"""

from .config import Settings  # noqa: F401
from .domains import ConfigDomain  # noqa: F401
from .store import BackupEvent, ConfigRecord, ConfigStore  # noqa: F401

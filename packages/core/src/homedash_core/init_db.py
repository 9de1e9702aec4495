"""Database initialization and default seeding.

Creates all tables and populates each configuration domain from its
``DefaultSet`` when the domain has no record yet. Safe to re-run: domains
that already hold a record are left untouched, and the ``backups`` ledger
is never seeded (a fresh system has no backups).
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from homedash_core.defaults import DEFAULT_SETS
from homedash_core.domains import ConfigDomain
from homedash_core.store import ConfigStore, isoformat

logger = logging.getLogger("homedash_core.seed")


class Seeder:
    def __init__(self, store: ConfigStore):
        self.store = store

    def seed(self, domain) -> bool:
        """Populate ``domain`` with its defaults if it has no record.

        Returns True when a record was written, False when the domain was
        already populated (or is the ledger).
        """
        d = ConfigDomain.parse(domain)
        if d.is_ledger:
            logger.info("seed.skip domain=%s reason=ledger_starts_empty", d.value)
            return False
        defaults = DEFAULT_SETS[d]
        now = self.store.now()
        at = isoformat(defaults.fixed_instant) if defaults.fixed_instant else now
        record = self.store.insert_if_absent(d, defaults.resolve(now), at=at)
        if record is None:
            logger.info("seed.skip domain=%s reason=exists", d.value)
            return False
        logger.info("seed.ok domain=%s created_at=%s", d.value, record.created_at)
        return True

    def seed_all(self, domains: Optional[Iterable] = None) -> Dict[ConfigDomain, bool]:
        targets = [ConfigDomain.parse(d) for d in domains] if domains is not None else list(ConfigDomain)
        return {d: self.seed(d) for d in targets}


def init_db(store: Optional[ConfigStore] = None, seed: bool = True) -> ConfigStore:
    """Create tables and optional seed records.

    Parameters
    ----------
    store: ConfigStore | None
        Store to initialize. When omitted one is built from the configured
        database URL (``HOMEDASH_DB_URL``).
    seed: bool
        If True, every domain without a record is populated with its
        defaults.
    """
    store = store or ConfigStore.from_url()
    store.create_tables()
    if seed:
        results = Seeder(store).seed_all()
        logger.info("seed.done created=%s", ",".join(d.value for d, wrote in results.items() if wrote) or "-")
    return store


if __name__ == "__main__":  # pragma: no cover
    from homedash_core.config import Settings
    from homedash_core.logging_config import configure_logging

    Settings().load_backend_env()
    configure_logging()
    init_db()

"""Backup ledger queries and configuration snapshots."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from homedash_core.domains import SINGLETON_DOMAINS, ConfigDomain
from homedash_core.errors import ValidationError
from homedash_core.schemas import validate_fields
from homedash_core.store import ConfigStore

logger = logging.getLogger("homedash_core.backups")

# Keys a snapshot row may carry besides schema fields.
_ROW_META = ("id", "createdAt", "updatedAt", "created_at", "updated_at")


def latest_backup_timestamp(store: ConfigStore) -> Optional[str]:
    """Instant of the most recent backup, or None on a fresh system."""
    event = store.latest()
    return event.created_at if event is not None else None


def export_snapshot(store: ConfigStore) -> Dict[str, Any]:
    """Dump every singleton domain and record the backup in the ledger.

    Each domain maps to a list holding its record, or an empty list when
    the domain was never written.
    """
    tables: Dict[str, List[Dict[str, Any]]] = {}
    for domain in SINGLETON_DOMAINS:
        record = store.get(domain)
        tables[domain.value] = [record.as_dict()] if record is not None else []
    event = store.append()
    logger.info("backup.export domains=%d created_at=%s", len(tables), event.created_at)
    return {"createdAt": event.created_at, "tables": tables}


def _snapshot_rows(payload: Any) -> Dict[ConfigDomain, Dict[str, Any]]:
    if not isinstance(payload, Mapping):
        raise ValidationError("Invalid JSON format")
    tables = payload.get("tables")
    if not isinstance(tables, Mapping):
        raise ValidationError("Missing or invalid tables property")
    rows: Dict[ConfigDomain, Dict[str, Any]] = {}
    errors: List[str] = []
    for name, entries in tables.items():
        try:
            domain = ConfigDomain(name)
        except ValueError:
            errors.append(f"{name}: unknown table")
            continue
        if domain.is_ledger:
            errors.append(f"{name}: the backup ledger cannot be restored")
            continue
        if not isinstance(entries, list):
            errors.append(f"{name}: expected a list of rows")
            continue
        if not entries:
            continue
        if not isinstance(entries[0], Mapping):
            errors.append(f"{name}: expected an object row")
            continue
        fields = {k: v for k, v in entries[0].items() if k not in _ROW_META}
        try:
            rows[domain] = validate_fields(domain, fields)
        except ValidationError as exc:
            errors.extend(exc.errors)
    if errors:
        raise ValidationError("Invalid snapshot: " + "; ".join(errors), errors)
    return rows


def restore_snapshot(store: ConfigStore, payload: Any) -> Dict[str, int]:
    """Upsert every domain found in a snapshot produced by ``export_snapshot``.

    The whole payload is validated before the first write. Domains absent
    from the snapshot, or present with no rows, are left as they are; rows
    are never deleted. All domains are written in a single transaction.
    """
    rows = _snapshot_rows(payload)
    counts = {d.value: 0 for d in SINGLETON_DOMAINS}
    for domain in store.upsert_many(rows):
        counts[domain.value] = 1
    logger.info("backup.restore domains=%s", ",".join(d.value for d in rows) or "-")
    return counts


__all__ = ["latest_backup_timestamp", "export_snapshot", "restore_snapshot"]

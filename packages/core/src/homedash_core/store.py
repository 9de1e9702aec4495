"""Configuration record store.

One table per domain. Singleton domains hold at most one row and are only
ever written through upserts; the ``backups`` ledger is append-only.

The store is an explicit handle built from a session factory; nothing in
here reaches for module-level database state. Writes to a domain are
serialized by a per-domain lock and committed before the call returns.
Reads take no lock and may observe the state either side of a concurrent
write.
"""
from __future__ import annotations

import logging
import threading
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from homedash_core.db import Base, create_db_engine, create_session_factory
from homedash_core.defaults import DEFAULT_SETS
from homedash_core.domains import LEDGER_DOMAIN, ConfigDomain
from homedash_core.errors import NotFoundError, StoreUnavailableError, ValidationError
from homedash_core.models import MODELS, Backup
from homedash_core.schemas import field_names, is_iso_instant, validate_fields, wire_name

logger = logging.getLogger("homedash_core.store")

Instant = Union[str, datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(dt: datetime) -> str:
    """Render ``dt`` in the single instant format used by every column.

    Naive datetimes are taken as UTC. The fixed width keeps stored strings
    ordered the same way as the instants they represent.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def to_instant(value: Instant) -> str:
    if isinstance(value, datetime):
        return isoformat(value)
    if not isinstance(value, str) or not is_iso_instant(value):
        raise ValidationError(f"not an ISO-8601 instant: {value!r}")
    v = value.strip()
    if v.endswith(("Z", "z")):
        v = v[:-1] + "+00:00"
    return isoformat(datetime.fromisoformat(v))


@dataclass(frozen=True)
class ConfigRecord:
    domain: ConfigDomain
    fields: Dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def as_dict(self, exclude: Tuple[str, ...] = ()) -> Dict[str, Any]:
        """camelCase wire form, timestamps included."""
        out = {wire_name(self.domain, k): v for k, v in self.fields.items() if k not in exclude}
        out["createdAt"] = self.created_at
        out["updatedAt"] = self.updated_at
        return out


@dataclass(frozen=True)
class BackupEvent:
    id: int
    created_at: str

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "createdAt": self.created_at}


class ConfigStore:
    def __init__(self, session_factory: sessionmaker, clock: Optional[Callable[[], datetime]] = None):
        self._session_factory = session_factory
        self._clock = clock or utcnow
        self._locks = {d: threading.Lock() for d in ConfigDomain}

    @classmethod
    def from_url(cls, url: Optional[str] = None, **kwargs) -> "ConfigStore":
        return cls(create_session_factory(create_db_engine(url)), **kwargs)

    @property
    def engine(self):
        return self._session_factory.kw["bind"]

    def create_tables(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            logger.error("store.create_tables failed error=%s", exc)
            raise StoreUnavailableError("Configuration store unavailable while creating tables") from exc

    def now(self) -> str:
        return isoformat(self._clock())

    # ---- internals ----

    @contextmanager
    def _session(self, action: str, *domains: ConfigDomain) -> Iterator[Session]:
        session = self._session_factory()
        names = ",".join(d.value for d in domains)
        try:
            yield session
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("store.%s failed domain=%s error=%s", action, names, exc)
            raise StoreUnavailableError(f"Configuration store unavailable during {action} on {names}") from exc
        finally:
            session.close()

    @contextmanager
    def _locked(self, domains: Iterable[ConfigDomain]) -> Iterator[None]:
        # always acquire in enum order so multi-domain writers cannot deadlock
        order = list(ConfigDomain)
        with ExitStack() as stack:
            for d in sorted(set(domains), key=order.index):
                stack.enter_context(self._locks[d])
            yield

    @staticmethod
    def _singleton(domain: Union[str, ConfigDomain]) -> ConfigDomain:
        d = ConfigDomain.parse(domain)
        if d.is_ledger:
            raise ValidationError(f"{d.value} is an append-only ledger, not a singleton domain")
        return d

    @staticmethod
    def _ledger(domain: Union[str, ConfigDomain]) -> ConfigDomain:
        d = ConfigDomain.parse(domain)
        if not d.is_ledger:
            raise ValidationError(f"{d.value} is a singleton domain; append() only applies to {LEDGER_DOMAIN.value}")
        return d

    @staticmethod
    def _to_record(domain: ConfigDomain, row) -> ConfigRecord:
        values = {name: getattr(row, name) for name in field_names(domain)}
        return ConfigRecord(domain=domain, fields=values, created_at=row.created_at, updated_at=row.updated_at)

    def _first_row(self, session: Session, domain: ConfigDomain):
        model = MODELS[domain]
        return session.query(model).order_by(model.id).first()

    def _apply(self, session: Session, domain: ConfigDomain, values: Dict[str, Any], stamp: str,
               only_if_absent: bool = False):
        """Stage ``values`` on the domain's row without committing.

        Returns ``(row, created)``; ``row`` is None when ``only_if_absent``
        found an existing row. A new row starts from the domain defaults so
        columns the caller did not supply still hold valid values.
        """
        row = self._first_row(session, domain)
        created = row is None
        if not created and only_if_absent:
            return None, False
        if created:
            row = MODELS[domain](created_at=stamp)
            session.add(row)
            values = {**DEFAULT_SETS[domain].resolve(stamp), **values}
        for name, value in values.items():
            setattr(row, name, value)
        # a clock stepping backwards must not put updated_at before earlier stamps
        row.updated_at = stamp if created else max(stamp, row.updated_at or row.created_at)
        return row, created

    def _write(self, domain: ConfigDomain, values: Dict[str, Any], stamp: str, only_if_absent: bool) -> Tuple[Optional[ConfigRecord], bool]:
        # caller holds the domain lock
        with self._session("upsert", domain) as session:
            row, created = self._apply(session, domain, values, stamp, only_if_absent)
            if row is None:
                return None, False
            session.commit()
            record = self._to_record(domain, row)
        logger.info("store.upsert domain=%s created=%s fields=%s", domain.value, created, ",".join(sorted(values)))
        return record, created

    # ---- singleton domains ----

    def get(self, domain: Union[str, ConfigDomain]) -> Optional[ConfigRecord]:
        """Return the domain's record, or ``None`` if nothing was written yet."""
        d = self._singleton(domain)
        with self._session("get", d) as session:
            row = self._first_row(session, d)
            return self._to_record(d, row) if row is not None else None

    def require(self, domain: Union[str, ConfigDomain]) -> ConfigRecord:
        record = self.get(domain)
        if record is None:
            raise NotFoundError(f"No {ConfigDomain.parse(domain).value} configuration found")
        return record

    def put(self, domain: Union[str, ConfigDomain], fields: Mapping[str, Any]) -> Tuple[ConfigRecord, bool]:
        """Upsert and also report whether the row was created."""
        d = self._singleton(domain)
        values = validate_fields(d, fields)
        with self._locks[d]:
            record, created = self._write(d, values, self.now(), only_if_absent=False)
        assert record is not None
        return record, created

    def upsert(self, domain: Union[str, ConfigDomain], fields: Mapping[str, Any]) -> ConfigRecord:
        """Merge ``fields`` into the domain's single row, creating it if absent.

        ``updated_at`` is set to now; ``created_at`` too when the row is new,
        in which case unsupplied fields take the domain defaults. Raises
        :class:`ValidationError` before touching storage if any field is
        malformed.
        """
        return self.put(domain, fields)[0]

    def upsert_many(self, updates: Mapping[Union[str, ConfigDomain], Mapping[str, Any]]) -> Dict[ConfigDomain, ConfigRecord]:
        """Upsert several domains in one transaction.

        Every payload is validated first; then all rows are written and
        committed together, so a store failure leaves every domain as it was.
        """
        staged: Dict[ConfigDomain, Dict[str, Any]] = {}
        for domain, fields in updates.items():
            d = self._singleton(domain)
            staged[d] = validate_fields(d, fields)
        if not staged:
            return {}
        records: Dict[ConfigDomain, ConfigRecord] = {}
        with self._locked(staged):
            stamp = self.now()
            with self._session("upsert_many", *staged) as session:
                rows = {d: self._apply(session, d, values, stamp)[0] for d, values in staged.items()}
                session.commit()
                records = {d: self._to_record(d, row) for d, row in rows.items()}
        logger.info("store.upsert_many domains=%s", ",".join(d.value for d in staged))
        return records

    def insert_if_absent(self, domain: Union[str, ConfigDomain], fields: Mapping[str, Any], *, at: Optional[Instant] = None) -> Optional[ConfigRecord]:
        """Create the domain's row from ``fields`` unless one exists.

        The existence check and the insert run under the domain lock, so
        concurrent callers create at most one row. Returns the new record,
        or ``None`` when a row was already present.
        """
        d = self._singleton(domain)
        values = validate_fields(d, fields)
        stamp = to_instant(at) if at is not None else None
        with self._locks[d]:
            record, _ = self._write(d, values, stamp or self.now(), only_if_absent=True)
        return record

    # ---- ledger ----

    def append(self, domain: Union[str, ConfigDomain] = LEDGER_DOMAIN, created_at: Optional[Instant] = None) -> BackupEvent:
        d = self._ledger(domain)
        stamp = to_instant(created_at) if created_at is not None else None
        with self._locks[d]:
            with self._session("append", d) as session:
                row = Backup(created_at=stamp or self.now())
                session.add(row)
                session.commit()
                event = BackupEvent(id=row.id, created_at=row.created_at)
        logger.info("store.append domain=%s id=%s created_at=%s", d.value, event.id, event.created_at)
        return event

    def latest(self, domain: Union[str, ConfigDomain] = LEDGER_DOMAIN) -> Optional[BackupEvent]:
        """Most recent event; on equal instants the later insert wins."""
        d = self._ledger(domain)
        with self._session("latest", d) as session:
            row = session.query(Backup).order_by(Backup.created_at.desc(), Backup.id.desc()).first()
            return BackupEvent(id=row.id, created_at=row.created_at) if row is not None else None

    def events(self, domain: Union[str, ConfigDomain] = LEDGER_DOMAIN) -> List[BackupEvent]:
        d = self._ledger(domain)
        with self._session("events", d) as session:
            rows = session.query(Backup).order_by(Backup.id).all()
            return [BackupEvent(id=r.id, created_at=r.created_at) for r in rows]

    def count(self, domain: Union[str, ConfigDomain]) -> int:
        d = ConfigDomain.parse(domain)
        with self._session("count", d) as session:
            return session.query(MODELS[d]).count()


__all__ = [
    "ConfigStore",
    "ConfigRecord",
    "BackupEvent",
    "utcnow",
    "isoformat",
    "to_instant",
]

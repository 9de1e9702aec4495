import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from homedash_core.domains import ConfigDomain
from homedash_core.errors import NotFoundError, StoreUnavailableError, ValidationError
from homedash_core.store import ConfigStore, isoformat


def test_get_absent_returns_none(store):
    assert store.get(ConfigDomain.APPEARANCE) is None
    with pytest.raises(NotFoundError):
        store.require("appearance")


def test_upsert_creates_then_merges(store, clock):
    created = store.upsert(ConfigDomain.DATABASE_SETTINGS, {"autoBackup": True})
    assert created.created_at == created.updated_at == isoformat(clock())
    assert created["auto_backup"] is True
    assert created["preset"] == "balanced"

    clock.advance(60)
    updated = store.upsert(ConfigDomain.DATABASE_SETTINGS, {"preset": "storage"})
    assert updated["auto_backup"] is True
    assert updated["preset"] == "storage"
    assert updated.created_at == created.created_at
    assert updated.updated_at == isoformat(clock())
    assert store.count(ConfigDomain.DATABASE_SETTINGS) == 1


def test_first_write_fills_unsupplied_fields_from_defaults(store):
    record = store.upsert(ConfigDomain.APPEARANCE, {"width": 500})
    assert record["width"] == 500
    assert record["height"] == 800
    assert record["mode"] == "auto"
    assert record["theme_preset"] == "default"
    assert None not in record.fields.values()


def test_clock_rewind_never_moves_updated_at_backwards(store, clock):
    first = store.upsert(ConfigDomain.APPEARANCE, {"width": 500})
    clock.advance(-3600)
    second = store.upsert(ConfigDomain.APPEARANCE, {"width": 600})
    assert second["width"] == 600
    assert second.created_at == first.created_at
    assert second.updated_at >= second.created_at


def test_upsert_has_no_explicit_timestamp(store):
    with pytest.raises(TypeError):
        store.upsert(ConfigDomain.APPEARANCE, {"width": 500}, at="2020-01-01T00:00:00Z")


def test_upsert_many_writes_all_domains_together(store, clock):
    records = store.upsert_many({
        "databaseSettings": {"preset": "secure"},
        ConfigDomain.APPEARANCE: {"mode": "manual"},
    })
    assert set(records) == {ConfigDomain.APPEARANCE, ConfigDomain.DATABASE_SETTINGS}
    assert store.get(ConfigDomain.DATABASE_SETTINGS)["preset"] == "secure"
    assert store.get(ConfigDomain.APPEARANCE).updated_at == isoformat(clock())
    assert store.upsert_many({}) == {}


def test_upsert_many_rolls_back_every_domain_on_failure(store, monkeypatch):
    original = ConfigStore._apply
    seen = []

    def flaky(self, session, domain, values, stamp, only_if_absent=False):
        seen.append(domain)
        if len(seen) == 2:
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))
        return original(self, session, domain, values, stamp, only_if_absent)

    monkeypatch.setattr(ConfigStore, "_apply", flaky)
    with pytest.raises(StoreUnavailableError):
        store.upsert_many({"appearance": {"width": 700}, "databaseSettings": {"preset": "secure"}})
    monkeypatch.undo()
    assert store.get(ConfigDomain.APPEARANCE) is None
    assert store.get(ConfigDomain.DATABASE_SETTINGS) is None


def test_sequence_of_upserts_keeps_one_row_and_last_timestamp(store, clock):
    for width in (320, 768, 1024, 1920):
        clock.advance(5)
        store.upsert("appearance", {"width": width})
    record = store.get("appearance")
    assert store.count("appearance") == 1
    assert record["width"] == 1920
    assert record.updated_at == isoformat(clock())


def test_put_reports_creation(store):
    _, created = store.put(ConfigDomain.SETTINGS, {"mcpConnected": False})
    assert created is True
    _, created = store.put(ConfigDomain.SETTINGS, {"mcpConnected": True})
    assert created is False


@pytest.mark.parametrize("domain,fields", [
    ("databaseSettings", {"autoBackup": True, "queryLogging": False, "localPath": "/srv/backups",
                          "cloudPath": None, "preset": "secure"}),
    ("appearance", {"primaryColor": "#10b981", "backgroundColor": "hsl(210, 40%, 98%)",
                    "themePreset": "green", "screenSize": "tv", "width": 1920, "height": 1080, "mode": "manual"}),
    ("weatherSettings", {"provider": "openweathermap", "apiKey": "k", "latitude": 52.37,
                         "longitude": 4.89, "units": "imperial", "zip": "1011"}),
    ("mcpSettings", {"url": "http://ha.local:8123", "token": "t", "connected": True,
                     "entities": [{"entity_id": "light.den", "state": "on"}]}),
    ("mcpConfig", {"serverPort": 9000, "exposureRules": [{"id": "r", "pattern": "light.*", "allowed": True}]}),
    ("piholeConfig", {"url": "http://192.168.1.2", "appPassword": "pw", "connected": False,
                      "lastChecked": "2025-01-01T00:00:00Z"}),
])
def test_values_round_trip(store, domain, fields):
    store.upsert(domain, fields)
    record = store.get(domain).as_dict()
    for key, value in fields.items():
        assert record[key] == value


def test_snake_case_keys_are_accepted(store):
    record = store.upsert(ConfigDomain.MCP_CONFIG, {"server_port": 8124})
    assert record.as_dict()["serverPort"] == 8124


@pytest.mark.parametrize("fields", [
    {"width": "wide"},
    {"width": 0},
    {"height": -10},
    {"screenSize": "watch"},
    {"themePreset": "neon"},
    {"primaryColor": "not a color!"},
    {"mode": None},
    {"unknownField": 1},
])
def test_invalid_appearance_fields_are_rejected_without_writing(store, fields):
    with pytest.raises(ValidationError):
        store.upsert(ConfigDomain.APPEARANCE, fields)
    assert store.count(ConfigDomain.APPEARANCE) == 0


def test_validation_error_lists_every_problem(store):
    with pytest.raises(ValidationError) as info:
        store.upsert("databaseSettings", {"autoBackup": "yes", "preset": "turbo"})
    assert len(info.value.errors) == 2


def test_domain_kind_is_enforced(store):
    with pytest.raises(ValidationError):
        store.get(ConfigDomain.BACKUPS)
    with pytest.raises(ValidationError):
        store.upsert("backups", {})
    with pytest.raises(ValidationError):
        store.append(ConfigDomain.APPEARANCE)
    with pytest.raises(NotFoundError):
        store.get("thermostat")


def test_store_unavailable(tmp_path):
    # A directory cannot be opened as a database file.
    broken = ConfigStore.from_url(f"sqlite:///{tmp_path}")
    with pytest.raises(StoreUnavailableError):
        broken.get(ConfigDomain.APPEARANCE)


def test_failed_commit_leaves_previous_state(store, monkeypatch):
    store.upsert(ConfigDomain.APPEARANCE, {"width": 800})

    def boom(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Session, "commit", boom)
    with pytest.raises(StoreUnavailableError):
        store.upsert(ConfigDomain.APPEARANCE, {"width": 1024})
    monkeypatch.undo()
    assert store.get(ConfigDomain.APPEARANCE)["width"] == 800
    assert store.count(ConfigDomain.APPEARANCE) == 1


def test_concurrent_upserts_keep_single_row(store):
    errors = []

    def worker(i):
        try:
            store.upsert(ConfigDomain.APPEARANCE, {"width": 100 + i})
        except Exception as e:  # pragma: no cover - surfaced below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert not errors
    assert store.count(ConfigDomain.APPEARANCE) == 1
    assert 100 <= store.get(ConfigDomain.APPEARANCE)["width"] < 110

import threading

from homedash_core.defaults import DEFAULT_SETS
from homedash_core.domains import ConfigDomain, SINGLETON_DOMAINS
from homedash_core.init_db import Seeder, init_db


def test_init_db_idempotent(store, clock):
    # Run twice to ensure no duplicate rows and no overwritten values.
    init_db(store)
    first = {d: store.get(d) for d in SINGLETON_DOMAINS}
    clock.advance(3600)
    init_db(store)
    for d in SINGLETON_DOMAINS:
        assert store.count(d) == 1
        assert store.get(d) == first[d]
    assert store.count(ConfigDomain.BACKUPS) == 0


def test_seed_reports_whether_it_wrote(store):
    seeder = Seeder(store)
    assert seeder.seed(ConfigDomain.APPEARANCE) is True
    assert seeder.seed(ConfigDomain.APPEARANCE) is False
    assert seeder.seed("backups") is False
    assert store.latest() is None


def test_seeded_values_match_defaults(store, clock):
    Seeder(store).seed_all()
    db = store.get(ConfigDomain.DATABASE_SETTINGS)
    assert db.fields == DEFAULT_SETS[ConfigDomain.DATABASE_SETTINGS].values
    appearance = store.get(ConfigDomain.APPEARANCE)
    assert appearance["width"] == 1200
    assert appearance["background_color"] == "rgb(92, 113, 132)"
    assert appearance.created_at == appearance.updated_at == store.now()


def test_fixed_instants_and_seeding_instant(store):
    Seeder(store).seed_all()
    mcp = store.get(ConfigDomain.MCP_CONFIG)
    assert mcp.created_at == "2024-01-15T00:00:00.000000+00:00"
    assert mcp.updated_at == mcp.created_at
    assert len(mcp["entities"]) == 5
    assert mcp["server_port"] == 8124
    legacy = store.get(ConfigDomain.SETTINGS)
    assert legacy.created_at == "2024-01-01T00:00:00.000000+00:00"
    assert legacy["mcp_connected"] is False
    pihole = store.get(ConfigDomain.PIHOLE_CONFIG)
    assert pihole["last_checked"] == pihole.created_at == store.now()


def test_seed_does_not_overwrite_existing_record(store):
    store.upsert(ConfigDomain.APPEARANCE, {"width": 640, "mode": "manual"})
    assert Seeder(store).seed(ConfigDomain.APPEARANCE) is False
    record = store.get(ConfigDomain.APPEARANCE)
    assert record["width"] == 640
    assert record["mode"] == "manual"


def test_seed_all_subset(store):
    results = Seeder(store).seed_all(["mcpSettings", ConfigDomain.SETTINGS])
    assert results == {ConfigDomain.MCP_SETTINGS: True, ConfigDomain.SETTINGS: True}
    assert store.get(ConfigDomain.APPEARANCE) is None


def test_seeded_defaults_are_not_shared_between_runs(store):
    Seeder(store).seed(ConfigDomain.MCP_CONFIG)
    store.get(ConfigDomain.MCP_CONFIG)["entities"].clear()
    assert len(DEFAULT_SETS[ConfigDomain.MCP_CONFIG].values["entities"]) == 5


def test_concurrent_seeding_creates_single_row(store):
    seeder = Seeder(store)
    results = []
    threads = [threading.Thread(target=lambda: results.append(seeder.seed(ConfigDomain.WEATHER_SETTINGS))) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert store.count(ConfigDomain.WEATHER_SETTINGS) == 1
    assert results.count(True) == 1

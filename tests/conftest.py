import sys, os, tempfile, pytest
from datetime import datetime, timedelta, timezone

# Always force tests to use an isolated SQLite database file under a temp dir.
# Do this before importing any homedash_core modules.
if "HOMEDASH_DB_URL" not in os.environ and "HOMEDASH_DATABASE_URL" not in os.environ:
    _test_db_dir = tempfile.mkdtemp(prefix="homedash_test_db_")
    os.environ["HOMEDASH_DB_URL"] = f"sqlite:///{os.path.join(_test_db_dir, 'test_homedash.db')}"
# Ensure repository root and package src dirs are on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
for _src in (os.path.join(ROOT, 'packages', 'core', 'src'), os.path.join(ROOT, 'apps', 'api', 'src')):
    if _src not in sys.path:
        sys.path.insert(0, _src)

from homedash_core.store import ConfigStore


class FakeClock:
    """Deterministic clock; advances only when told to."""

    def __init__(self, start=datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, seconds: float = 1):
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


class FakeResponse:
    def __init__(self, status_code=200, json_body=None, text=None):
        self.status_code = status_code
        self._json = json_body
        if text is None:
            import json
            text = json.dumps(json_body) if json_body is not None else ""
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("not json")
        return self._json


class FakeSession:
    """Stands in for requests.Session; records calls, replays queued outcomes."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def queue(self, outcome):
        self.outcomes.append(outcome)

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        outcome = self.outcomes.pop(0) if self.outcomes else FakeResponse(200, {})
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock):
    s = ConfigStore.from_url(f"sqlite:///{tmp_path / 'homedash.db'}", clock=clock)
    s.create_tables()
    yield s
    s.engine.dispose()


@pytest.fixture
def fake_http():
    return FakeSession()

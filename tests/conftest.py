import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from grillstand.ledger import LedgerStore  # noqa: E402
from grillstand.persistence import SqliteStatePort  # noqa: E402


class MemoryStatePort:
    """Keeps the last snapshot as JSON text, like the real store would."""

    def __init__(self, raw: str | None = None) -> None:
        self.raw = raw
        self.saves = 0

    def save(self, snapshot):
        self.raw = json.dumps(snapshot, ensure_ascii=False)
        self.saves += 1

    def load(self):
        if self.raw is None:
            return None
        decoded = json.loads(self.raw)
        if not isinstance(decoded, dict):
            raise ValueError("Stored state is not an object")
        return decoded

    @property
    def snapshot(self):
        return None if self.raw is None else json.loads(self.raw)


@pytest.fixture
def memory_port():
    return MemoryStatePort()


@pytest.fixture
def sqlite_port(tmp_path):
    """Each test gets an isolated database file outside the repository."""
    port = SqliteStatePort(tmp_path / "grill.db")
    port.bootstrap_schema()
    return port


@pytest.fixture
def store(memory_port):
    return LedgerStore(port=memory_port)


@pytest.fixture
def stocked_store(store):
    store.set_initial_stock({"kureci": 5000, "veprove": 5000, "camembert": 20, "brambora": 30})
    return store

"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend and give every test a fresh,
in-memory portal so no state leaks between cases.
"""
import sys
from pathlib import Path

import pytest

# Ensure the repository root is importable (backend.* namespace packages).
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

from backend.identity_access.passwords import PasswordHasher  # noqa: E402
from backend.records.fixtures import SEED  # noqa: E402
from backend.records.store import RecordStore  # noqa: E402
from backend.storage.memory import MemoryStorage  # noqa: E402
from backend.web.context import PortalContext  # noqa: E402

# Few rounds keep the hashing cost out of the test runtime.
TEST_HASH_ROUNDS = 1000


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_portal_env(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven toggles so each test starts from dev defaults."""
    for var in (
        "PORTAL_ENV",
        "STORAGE_BACKEND",
        "STORAGE_FILE",
        "STORAGE_TABLE",
        "DATABASE_URL",
        "SEED_FIXTURES",
        "SESSION_IDLE_TTL_SECONDS",
        "PORTAL_TRUST_PROXY",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_HASH_ROUNDS)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def records(storage: MemoryStorage, hasher: PasswordHasher) -> RecordStore:
    """Seeded record store with hashed fixture identities."""

    def _hash(collection: str, record: dict) -> dict:
        return hasher.hash_identity(record) if collection in ("students", "teachers", "admins") else record

    store = RecordStore(storage, SEED, on_seed=_hash)
    store.initialize()
    return store


@pytest.fixture
def portal(hasher: PasswordHasher) -> PortalContext:
    ctx = PortalContext(MemoryStorage(), hasher=hasher)
    ctx.initialize()
    yield ctx
    ctx.dispose()


@pytest.fixture
def app(portal: PortalContext):
    from backend.web.main import create_app

    return create_app(portal)

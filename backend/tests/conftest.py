import asyncio
import os
import sys
from pathlib import Path

import pytest
import sentry_sdk
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Disable outbound Sentry calls during tests
sentry_sdk.init = lambda *args, **kwargs: None  # type: ignore[assignment]
os.environ["SENTRY_DSN"] = ""
os.environ["SEED_ON_STARTUP"] = "false"
os.environ.pop("DATABASE_URL", None)
test_data_dir = ROOT / "artifacts" / "test-data"
test_data_dir.mkdir(parents=True, exist_ok=True)
os.environ["DATA_DIR"] = str(test_data_dir)

from backend.restorany.contracts import VenueCreate, VenueDetails  # noqa: E402
from backend.restorany.db.core import (  # noqa: E402
    build_engine,
    build_sessionmaker,
    drop_db,
    init_db,
)
from backend.restorany.engine import Engine  # noqa: E402
from backend.restorany.main import app  # noqa: E402


def run(coro):
    return asyncio.run(coro)


async def _reset_schema() -> None:
    await drop_db()
    await init_db()


@pytest.fixture()
def engine(tmp_path):
    """An Engine on its own SQLite file, independent of the app singleton."""
    bind = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'restorany-test.db'}")
    run(init_db(bind))
    yield Engine(build_sessionmaker(bind))
    run(bind.dispose())


@pytest.fixture()
def add_venue(engine):
    def _add(vid, lat, lng, name=None, categories=(), address=None, price_tier=None):
        payload = VenueCreate(
            id=vid,
            name=name or vid.replace("-", " ").title(),
            latitude=lat,
            longitude=lng,
            address=address,
            details=VenueDetails(categories=list(categories), price_tier=price_tier),
        )
        return run(engine.catalog.create(payload))

    return _add


@pytest.fixture()
def client() -> TestClient:
    run(_reset_schema())
    with TestClient(app, base_url="http://api.testserver") as test_client:
        yield test_client

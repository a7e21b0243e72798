import os

# Settings are read at import time; keep tests off the real database and webhooks.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ALERT_WEBHOOK_URL"] = ""
os.environ["BRIGHTNESS_API_URL"] = ""

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from services.database import KeyValueStore, init_db  # noqa: E402
from tests.helpers import FakeClock  # noqa: E402


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def store(tmp_path, clock):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}")
    await init_db(engine)
    yield KeyValueStore(async_sessionmaker(engine, expire_on_commit=False), clock=clock)
    await engine.dispose()

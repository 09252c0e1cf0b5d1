import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Ensure project root is on sys.path so `import cardspend` works when running pytest from root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Force test settings before any cardspend imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REFERENCE_TIMEZONE"] = "Asia/Tokyo"
os.environ["WEEK_STARTS_ON"] = "sunday"
os.environ.pop("DISCORD_WEBHOOK_URL", None)

from cardspend.db import base as db_base  # noqa: E402
from cardspend.db import models  # noqa: E402,F401
from cardspend.emails.extractor import CardUsageExtractor  # noqa: E402
from cardspend.reports.models import ReportType  # noqa: E402
from cardspend.reports.thresholds import StaticThresholdProvider  # noqa: E402
from cardspend.stores.memory import (  # noqa: E402
    InMemoryAlertLevelStore,
    InMemoryCardUsageStore,
    InMemoryReportStore,
)
from cardspend.usecases.wiring import Services, set_services  # noqa: E402
from tests.fixtures.doubles import MONTHLY_TABLE, WEEKLY_TABLE, RecordingNotifier  # noqa: E402


@pytest_asyncio.fixture(scope="function")
async def test_db():
    """
    Fresh in-memory schema per test.

    Patches cardspend.db.base so every UnitOfWork opened by the code under
    test uses this engine.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(db_base.Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    original_engine, original_factory = db_base.engine, db_base.AsyncSessionLocal
    db_base.engine = engine
    db_base.AsyncSessionLocal = session_factory
    try:
        yield session_factory
    finally:
        db_base.engine = original_engine
        db_base.AsyncSessionLocal = original_factory
        await engine.dispose()


@pytest.fixture
def threshold_provider():
    return StaticThresholdProvider({ReportType.WEEKLY: WEEKLY_TABLE, ReportType.MONTHLY: MONTHLY_TABLE})


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def memory_services(threshold_provider, notifier):
    """In-memory services, also installed as the global services instance."""
    services = Services(
        extractor=CardUsageExtractor(),
        usage_store=InMemoryCardUsageStore(),
        report_store=InMemoryReportStore(),
        alert_levels=InMemoryAlertLevelStore(),
        threshold_provider=threshold_provider,
        notifier=notifier,
    )
    set_services(services)
    yield services
    set_services(None)

import pytest
from sqlalchemy import create_engine, func, insert, select
from sqlalchemy.pool import StaticPool

from leadhub.db.tables import campaigns, leads, metadata


@pytest.fixture()
def engine():
    # one shared connection so worker threads see the same in-memory database
    engine = create_engine(
        "sqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def seeded_engine(engine):
    with engine.begin() as conn:
        conn.execute(insert(campaigns), [
            {"name": "Spring Promo", "platform": "meta", "country": "AE"},
            {"name": "TikTok Awareness", "platform": "tiktok", "country": "SA"},
        ])
        conn.execute(insert(leads), [
            {"full_name": "Jane Existing", "email": "jane@example.com", "phone": "+971500000001", "source": "meta"},
        ])
    return engine


@pytest.fixture()
def count_rows():
    def _count(engine, table):
        with engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()
    return _count

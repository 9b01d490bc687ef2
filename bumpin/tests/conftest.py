import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

# Point the store at a throwaway SQLite file before the package creates its engine
TEST_DB = Path(tempfile.gettempdir()) / 'bumpin_test.db'
os.environ['DATABASE_URL'] = os.getenv('BUMPIN_TEST_DATABASE_URL', f'sqlite+aiosqlite:///{TEST_DB}')
os.environ.setdefault('JWT_SECRET', 'test-secret')

from bumpin.models import Base, engine, AsyncSessionLocal  # noqa: E402
from bumpin.models.places import Place  # noqa: E402
from bumpin.models.profiles import Profile  # noqa: E402


@pytest_asyncio.fixture
async def db():
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def seed(db):
    async with AsyncSessionLocal() as session:
        session.add_all([
            Profile(id='alice', display_name='Alice Archer', handle='alice_a'),
            Profile(id='bob', display_name='Bob Baker', handle='bob_builder'),
            Profile(id='carol', display_name='Carol Cole', handle='carol_c'),
            Profile(id='dave', display_name='Dave Dunn', handle='alicia_d'),
            Place(id='cafe', name='Corner Cafe', address='1 Main St', lat=52.37, lng=4.89),
            Place(id='park', name='Abbey Park', address='2 Park Ln', lat=52.36, lng=4.88),
            Place(id='bar', name='Blue Bar', address='3 Canal St', lat=52.38, lng=4.90),
        ])
        await session.commit()
    return SimpleNamespace(
        alice='alice', bob='bob', carol='carol', dave='dave',
        cafe='cafe', park='park', bar='bar',
    )

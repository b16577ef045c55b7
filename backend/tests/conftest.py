from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from bethouse.config import get_settings
from bethouse.core.locks import get_lock_manager
from bethouse.models import Base


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_settings.cache_clear()
    get_lock_manager.cache_clear()
    yield
    get_settings.cache_clear()
    get_lock_manager.cache_clear()


@pytest.fixture
def session() -> Iterator[Session]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    with Session(engine) as db:
        yield db
    engine.dispose()

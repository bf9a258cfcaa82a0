from datetime import datetime, UTC

import pytest

from linkshortener.dao.memory import ShortURLMemoryDAO


NOW = datetime(2025, 10, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def memory_dao() -> ShortURLMemoryDAO:
    return ShortURLMemoryDAO()

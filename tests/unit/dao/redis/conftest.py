from unittest.mock import MagicMock

import pytest
import redis


@pytest.fixture
def app_prefix() -> str:
    return 'testapp:test'


@pytest.fixture
def redis_client() -> redis.Redis:
    """Mock a Redis pipeline-compatible client.

    transaction(func, *watches) is emulated the way redis-py runs it: func is
    called with the pipeline, then the queued commands are executed.
    """
    client = MagicMock(spec=redis.client.Pipeline)
    client.connection_pool = MagicMock(
        spec=redis.ConnectionPool,
        connection_kwargs={'host': 'redis.test', 'port': 6379, 'db': 0},
    )
    client.exists.return_value = False
    client.hgetall.return_value = {}
    client.pipeline.return_value = client
    client.__enter__.return_value = client
    client.__exit__.return_value = None

    def transaction(func, *watches, value_from_callable=False, **kwargs):
        client.watch(*watches)
        func_value = func(client)
        exec_value = client.execute()
        return func_value if value_from_callable else exec_value

    client.transaction.side_effect = transaction
    return client

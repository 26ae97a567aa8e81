"""
Root conftest.py — sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without database connections or Azure credentials. Every repository,
queue and blob store used by the tests is an in-memory fake from
tests/fakes.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'core', 'services', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables to prevent config crashes.

    get_config() requires the PostgreSQL host and database; nothing
    connects to them.
    """
    defaults = {
        "POSTGRES_HOST": "localhost",
        "POSTGRES_DATABASE": "testdb",
        "POSTGRES_USER": "tester",
        "POSTGRES_PASSWORD": "not-a-secret",
        "APP_SCHEMA": "floorplan",
        "ServiceBusConnection__fullyQualifiedNamespace": "test.servicebus.windows.net",
        "STORAGE_ACCOUNT_NAME": "teststorage",
        "ENVIRONMENT": "dev",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


@pytest.fixture
def repositories():
    """Fresh in-memory repository set, keyed like RepositoryFactory.create_repositories()."""
    from tests.fakes.repositories import make_repositories
    return make_repositories()


@pytest.fixture
def fake_queue():
    from tests.fakes.queue import FakeQueueRepository
    return FakeQueueRepository()


@pytest.fixture
def fake_blobs():
    from tests.fakes.blob import FakeBlobRepository
    return FakeBlobRepository()


@pytest.fixture
def queue_config():
    """Queue settings with a short retry budget."""
    from config import QueueConfig
    return QueueConfig(retry_count=3, retry_delay_seconds=0.5, max_batch_size=2)


@pytest.fixture
def sleeps():
    """Records backoff sleeps instead of sleeping."""
    return []


@pytest.fixture
def relay(fake_queue, queue_config, sleeps):
    from services import CustomizationEventRelay
    return CustomizationEventRelay(fake_queue, config=queue_config, sleep=sleeps.append)

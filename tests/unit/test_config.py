"""
Configuration loading from app settings.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from config import QueueConfig, StorageConfig, debug_config, get_config, reset_config
from config.database_config import DatabaseConfig


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


class TestFromEnvironment:

    def test_defaults(self):
        config = get_config()
        assert config.app_schema == "floorplan"
        assert config.queues.events_queue == "customization-events"
        assert config.queues.rejected_queue == "customization-events-rejected"
        assert config.storage.file_drop_container == "legacy-drops"
        assert config.storage.incoming_prefix == "incoming/"

    def test_singleton(self):
        assert get_config() is get_config()

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("SERVICE_BUS_EVENTS_QUEUE", "events-qa")
        monkeypatch.setenv("QUEUE_MAX_DELIVERY_COUNT", "8")
        monkeypatch.setenv("FILE_DROP_PROCESSED_PREFIX", "/done")
        monkeypatch.setenv("DEBUG_MODE", "TRUE")

        config = get_config()
        assert config.queues.events_queue == "events-qa"
        assert config.queues.max_delivery_count == 8
        assert config.storage.processed_prefix == "done/"
        assert config.debug_mode

    def test_missing_database_host(self, monkeypatch):
        monkeypatch.delenv("POSTGRES_HOST")
        with pytest.raises(KeyError):
            get_config()


class TestValidation:

    def test_retry_count_bounded(self):
        with pytest.raises(PydanticValidationError):
            QueueConfig(retry_count=50)

    def test_scan_limit_positive(self):
        with pytest.raises(PydanticValidationError):
            StorageConfig(max_files_per_scan=0)

    def test_password_auth_needs_user(self):
        config = DatabaseConfig(host="db", database="plans")
        with pytest.raises(ValueError, match="POSTGRES_USER"):
            config.connection_string

    def test_managed_identity_string_has_no_password(self):
        config = DatabaseConfig(host="db", database="plans", use_managed_identity=True)
        assert "password" not in config.connection_string


class TestDebugConfig:

    def test_secrets_masked(self):
        info = debug_config()
        assert info["database"]["password"] == "***MASKED***"
        assert info["queues"]["events_queue"] == "customization-events"

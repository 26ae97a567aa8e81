"""
Configuration Defaults - Single source of truth for all default values.

Organization:
    - AzureDefaults: MUST be overridden - uses invalid placeholders (fail-fast)
    - DatabaseDefaults, QueueDefaults, FileDropDefaults, AppDefaults:
      safe universal defaults that work for any deployment

Usage:
    from config.defaults import DatabaseDefaults, QueueDefaults

    # In Pydantic Field definitions:
    port: int = Field(default=DatabaseDefaults.PORT, ...)
"""


# =============================================================================
# AZURE RESOURCE DEFAULTS (MUST override for new tenant)
# =============================================================================

class AzureDefaults:
    """
    Defaults that MUST be overridden for a new Azure tenant deployment.

    These are intentionally invalid so a missing environment variable fails
    loudly at the first connection instead of silently hitting the wrong
    resource.
    """

    # Override: DB_ADMIN_MANAGED_IDENTITY_NAME
    MANAGED_IDENTITY_NAME = "your-managed-identity-name"

    # Override: STORAGE_ACCOUNT_NAME (only when no connection string is set)
    STORAGE_ACCOUNT_NAME = "your-storage-account-name"


# =============================================================================
# DATABASE DEFAULTS
# =============================================================================

class DatabaseDefaults:
    """PostgreSQL connection defaults."""

    PORT = 5432
    APP_SCHEMA = "floorplan"
    CONNECTION_TIMEOUT_SECONDS = 30
    DEFAULT_PAGE_SIZE = 100
    MAX_PAGE_SIZE = 1000


# =============================================================================
# QUEUE DEFAULTS
# =============================================================================

class QueueDefaults:
    """
    Service Bus queue defaults.

    MAX_DELIVERY_COUNT must match the MaxDeliveryCount configured on the
    events queue in Azure. The consumer only uses it to recognise the final
    attempt; Service Bus itself moves the message to the dead-letter
    sub-queue.
    """

    EVENTS_QUEUE = "customization-events"
    REJECTED_QUEUE = "customization-events-rejected"
    MAX_DELIVERY_COUNT = 5
    MAX_BATCH_SIZE = 100
    RETRY_COUNT = 3
    RETRY_DELAY_SECONDS = 1.0
    MESSAGE_TTL_HOURS = 24
    PEEK_LIMIT = 50
    # Service Bus limit for one send_messages call
    MAX_MESSAGES_PER_SEND = 100


# =============================================================================
# FILE DROP DEFAULTS
# =============================================================================

class FileDropDefaults:
    """Blob container layout for legacy batch drops."""

    CONTAINER = "legacy-drops"
    INCOMING_PREFIX = "incoming/"
    PROCESSED_PREFIX = "processed/"
    FAILED_PREFIX = "failed/"
    MAX_FILE_BYTES = 50 * 1024 * 1024  # 50 MB
    MAX_FILES_PER_SCAN = 20
    IMPORTER = "file-drop-watcher"
    SUPPORTED_EXTENSIONS = (".csv", ".json")
    UNKNOWN_SYSTEM_ID = "unknown"


# =============================================================================
# APPLICATION DEFAULTS
# =============================================================================

class AppDefaults:
    """Core application settings."""

    DEBUG_MODE = False
    ENVIRONMENT = "dev"
    LOG_LEVEL = "INFO"

"""
Azure Blob Storage Configuration.

Covers the legacy file-drop container:

    <container>/
    ├── incoming/<legacy_system_id>/<file>.csv|.json   # dropped by legacy tools
    ├── processed/<legacy_system_id>/<file>            # imported (success/partial)
    └── failed/<legacy_system_id>/<file>               # could not be imported

Exports:
    StorageConfig: Storage and file-drop configuration
"""

import os
from typing import Optional, Tuple
from pydantic import BaseModel, Field, field_validator

from .defaults import AzureDefaults, FileDropDefaults


class StorageConfig(BaseModel):
    """
    Blob storage connection plus file-drop layout.

    Either a connection string (local development, Azurite) or an account
    name (managed identity via DefaultAzureCredential) must be set.
    """

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Storage connection string (AzureWebJobsStorage or STORAGE_CONNECTION_STRING)"
    )

    account_name: str = Field(
        default=AzureDefaults.STORAGE_ACCOUNT_NAME,
        description="Storage account name for managed identity access"
    )

    file_drop_container: str = Field(
        default=FileDropDefaults.CONTAINER,
        description="Container legacy systems drop batch files into"
    )

    incoming_prefix: str = Field(default=FileDropDefaults.INCOMING_PREFIX)
    processed_prefix: str = Field(default=FileDropDefaults.PROCESSED_PREFIX)
    failed_prefix: str = Field(default=FileDropDefaults.FAILED_PREFIX)

    max_file_bytes: int = Field(
        default=FileDropDefaults.MAX_FILE_BYTES,
        ge=1,
        description="Files larger than this are rejected without parsing"
    )

    max_files_per_scan: int = Field(
        default=FileDropDefaults.MAX_FILES_PER_SCAN,
        ge=1,
        description="Upper bound on files handled by one watcher run"
    )

    default_importer: str = Field(
        default=FileDropDefaults.IMPORTER,
        description="imported_by value when blob metadata does not name one"
    )

    supported_extensions: Tuple[str, ...] = Field(default=FileDropDefaults.SUPPORTED_EXTENSIONS)

    @field_validator('incoming_prefix', 'processed_prefix', 'failed_prefix')
    @classmethod
    def _ensure_trailing_slash(cls, v: str) -> str:
        v = v.lstrip('/')
        return v if v.endswith('/') else f"{v}/"

    @property
    def account_url(self) -> str:
        return f"https://{self.account_name}.blob.core.windows.net"

    def debug_dict(self) -> dict:
        return {
            "account_name": self.account_name,
            "connection": "***MASKED***" if self.connection_string else None,
            "file_drop_container": self.file_drop_container,
            "incoming_prefix": self.incoming_prefix,
            "processed_prefix": self.processed_prefix,
            "failed_prefix": self.failed_prefix,
            "max_file_bytes": self.max_file_bytes,
            "max_files_per_scan": self.max_files_per_scan,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            connection_string=os.environ.get("STORAGE_CONNECTION_STRING") or os.environ.get("AzureWebJobsStorage"),
            account_name=os.environ.get("STORAGE_ACCOUNT_NAME", AzureDefaults.STORAGE_ACCOUNT_NAME),
            file_drop_container=os.environ.get("FILE_DROP_CONTAINER", FileDropDefaults.CONTAINER),
            incoming_prefix=os.environ.get("FILE_DROP_INCOMING_PREFIX", FileDropDefaults.INCOMING_PREFIX),
            processed_prefix=os.environ.get("FILE_DROP_PROCESSED_PREFIX", FileDropDefaults.PROCESSED_PREFIX),
            failed_prefix=os.environ.get("FILE_DROP_FAILED_PREFIX", FileDropDefaults.FAILED_PREFIX),
            max_file_bytes=int(os.environ.get("FILE_DROP_MAX_FILE_BYTES", str(FileDropDefaults.MAX_FILE_BYTES))),
            max_files_per_scan=int(os.environ.get("FILE_DROP_MAX_FILES_PER_SCAN", str(FileDropDefaults.MAX_FILES_PER_SCAN))),
            default_importer=os.environ.get("FILE_DROP_IMPORTER", FileDropDefaults.IMPORTER),
        )

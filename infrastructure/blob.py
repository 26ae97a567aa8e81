"""
Blob Storage Repository - Central Authentication Point

Centralized blob storage repository used by the file-drop watcher to list,
read and move legacy batch files.

Key Features:
- Connection string (AzureWebJobsStorage / STORAGE_CONNECTION_STRING) or
  DefaultAzureCredential against STORAGE_ACCOUNT_NAME
- Singleton pattern ensures connection reuse
- Cached container clients
- Missing blobs surface as exceptions.ResourceNotFoundError

Authentication Hierarchy (DefaultAzureCredential):
1. Environment variables (AZURE_CLIENT_ID, etc.)
2. Managed Identity (in Azure)
3. Azure CLI (local development)

Usage:
    from infrastructure import RepositoryFactory

    blob_repo = RepositoryFactory.create_blob_repository()
    data = blob_repo.read_blob('legacy-drops', 'incoming/crm/batch.csv')
"""

import time
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional

from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings
from azure.identity import DefaultAzureCredential
from azure.core.exceptions import AzureError, ResourceNotFoundError as AzureResourceNotFoundError

from config import StorageConfig, get_config
from exceptions import ConfigurationError, ResourceNotFoundError, StorageError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "BlobRepository")


# ============================================================================
# BLOB REPOSITORY INTERFACE
# ============================================================================

class IBlobRepository(ABC):
    """
    Blob operations used by the file-drop watcher.

    Implemented by BlobRepository (Azure) and by the in-memory fake used in tests.
    """

    @abstractmethod
    def list_blobs(self, container: str, prefix: str = "", limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """List blobs as dicts with name, size, last_modified, content_type, metadata"""
        pass

    @abstractmethod
    def read_blob(self, container: str, blob_path: str) -> bytes:
        pass

    @abstractmethod
    def write_blob(self, container: str, blob_path: str, data: bytes,
                   overwrite: bool = True, content_type: str = "application/octet-stream",
                   metadata: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        pass

    @abstractmethod
    def get_blob_properties(self, container: str, blob_path: str) -> Dict[str, Any]:
        """Size, content type and user metadata of one blob"""
        pass

    @abstractmethod
    def blob_exists(self, container: str, blob_path: str) -> bool:
        pass

    @abstractmethod
    def delete_blob(self, container: str, blob_path: str) -> bool:
        pass

    @abstractmethod
    def move_blob(self, container: str, source_path: str, dest_path: str) -> Dict[str, Any]:
        """Move a blob within a container, keeping content type and metadata"""
        pass


# ============================================================================
# AZURE IMPLEMENTATION
# ============================================================================

class BlobRepository(IBlobRepository):
    """
    Blob storage repository with managed authentication.

    Usage:
        blob_repo = BlobRepository.instance()
    """

    _instance: Optional['BlobRepository'] = None
    _initialized: bool = False

    # Same-account copies normally finish synchronously
    COPY_POLL_SECONDS = 0.5
    COPY_TIMEOUT_SECONDS = 60

    def __new__(cls, config: Optional[StorageConfig] = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config: Optional[StorageConfig] = None):
        """
        Initialize once per process.

        Raises:
            ConfigurationError: Neither a connection string nor an account name is set
        """
        if self._initialized:
            return

        self.config = config or get_config().storage

        if self.config.connection_string:
            logger.info("Initializing BlobRepository with connection string")
            self.blob_service = BlobServiceClient.from_connection_string(self.config.connection_string)
        elif self.config.account_name:
            logger.info(f"Initializing BlobRepository with DefaultAzureCredential for account: {self.config.account_name}")
            self.credential = DefaultAzureCredential()
            self.blob_service = BlobServiceClient(
                account_url=self.config.account_url,
                credential=self.credential
            )
        else:
            raise ConfigurationError(
                "Set AzureWebJobsStorage, STORAGE_CONNECTION_STRING or STORAGE_ACCOUNT_NAME"
            )

        self.storage_account = self.blob_service.account_name
        self._container_clients: Dict[str, ContainerClient] = {}

        BlobRepository._initialized = True
        logger.info(f"✅ BlobRepository initialized for account: {self.storage_account}")

    @classmethod
    def instance(cls, config: Optional[StorageConfig] = None) -> 'BlobRepository':
        """Get singleton instance."""
        if cls._instance is None or not cls._initialized:
            cls._instance = cls(config)
        return cls._instance

    def _get_container_client(self, container: str) -> ContainerClient:
        """Get or create cached container client."""
        if container not in self._container_clients:
            self._container_clients[container] = self.blob_service.get_container_client(container)
            logger.debug(f"Created new container client for: {container}")
        return self._container_clients[container]

    # ========================================================================
    # CORE BLOB OPERATIONS
    # ========================================================================

    def list_blobs(self, container: str, prefix: str = "", limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        List blobs with metadata, in name order.

        Args:
            container: Container name
            prefix: Optional path prefix filter
            limit: Maximum number of blobs to return
        """
        container_client = self._get_container_client(container)
        blobs = []

        logger.debug(f"Listing blobs in {container} with prefix='{prefix}', limit={limit}")
        try:
            for blob in container_client.list_blobs(name_starts_with=prefix, include=['metadata']):
                blobs.append({
                    'name': blob.name,
                    'size': blob.size,
                    'last_modified': blob.last_modified.isoformat() if blob.last_modified else None,
                    'content_type': blob.content_settings.content_type if blob.content_settings else None,
                    'etag': blob.etag,
                    'metadata': dict(blob.metadata or {})
                })
                if limit and len(blobs) >= limit:
                    break
        except AzureResourceNotFoundError as e:
            raise ResourceNotFoundError(f"Container not found: {container}") from e

        logger.debug(f"Found {len(blobs)} blobs in {container} with prefix '{prefix}'")
        return blobs

    def read_blob(self, container: str, blob_path: str) -> bytes:
        """
        Read entire blob to memory.

        Raises:
            ResourceNotFoundError: Blob does not exist
        """
        blob_client = self._get_container_client(container).get_blob_client(blob_path)
        try:
            data = blob_client.download_blob().readall()
        except AzureResourceNotFoundError as e:
            raise ResourceNotFoundError(f"Blob not found: {container}/{blob_path}") from e

        logger.debug(f"Read blob: {container}/{blob_path} ({len(data)} bytes)")
        return data

    def write_blob(self, container: str, blob_path: str, data: bytes,
                   overwrite: bool = True, content_type: str = "application/octet-stream",
                   metadata: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Write blob from bytes.

        Returns:
            Dict with container, blob_path, size, etag, last_modified
        """
        blob_client = self._get_container_client(container).get_blob_client(blob_path)

        logger.debug(f"Writing blob: {container}/{blob_path} (overwrite={overwrite})")
        response = blob_client.upload_blob(
            data,
            overwrite=overwrite,
            content_settings=ContentSettings(content_type=content_type),
            metadata=metadata or {}
        )
        last_modified = response.get('last_modified')

        logger.info(f"✅ Wrote blob: {container}/{blob_path} ({len(data)} bytes)")
        return {
            'container': container,
            'blob_path': blob_path,
            'size': len(data),
            'etag': response.get('etag'),
            'last_modified': last_modified.isoformat() if last_modified else None
        }

    def get_blob_properties(self, container: str, blob_path: str) -> Dict[str, Any]:
        """
        Raises:
            ResourceNotFoundError: Blob does not exist
        """
        blob_client = self._get_container_client(container).get_blob_client(blob_path)
        try:
            props = blob_client.get_blob_properties()
        except AzureResourceNotFoundError as e:
            raise ResourceNotFoundError(f"Blob not found: {container}/{blob_path}") from e

        return {
            'name': blob_path,
            'size': props.size,
            'content_type': props.content_settings.content_type if props.content_settings else None,
            'last_modified': props.last_modified.isoformat() if props.last_modified else None,
            'etag': props.etag,
            'metadata': dict(props.metadata or {})
        }

    def blob_exists(self, container: str, blob_path: str) -> bool:
        blob_client = self._get_container_client(container).get_blob_client(blob_path)
        return blob_client.exists()

    def delete_blob(self, container: str, blob_path: str) -> bool:
        """
        Delete a blob.

        Returns:
            True if deleted, False if not found
        """
        blob_client = self._get_container_client(container).get_blob_client(blob_path)
        try:
            blob_client.delete_blob()
        except AzureResourceNotFoundError:
            logger.warning(f"Blob not found for deletion: {container}/{blob_path}")
            return False

        logger.info(f"Deleted blob: {container}/{blob_path}")
        return True

    def move_blob(self, container: str, source_path: str, dest_path: str) -> Dict[str, Any]:
        """
        Server-side copy within the container, then delete the source.

        No blob content passes through the function host, so an oversized
        drop file moves to failed/ without being downloaded. Content type
        and metadata travel with the copy.

        Raises:
            ResourceNotFoundError: Source blob does not exist
            StorageError: Copy failed, timed out, or storage is unreachable
        """
        container_client = self._get_container_client(container)
        source_client = container_client.get_blob_client(source_path)
        dest_client = container_client.get_blob_client(dest_path)

        logger.debug(f"Copying blob: {container}/{source_path} → {dest_path}")
        try:
            copy = dest_client.start_copy_from_url(source_client.url)
            status = copy.get('copy_status')
            deadline = time.monotonic() + self.COPY_TIMEOUT_SECONDS
            while status == 'pending':
                if time.monotonic() > deadline:
                    dest_client.abort_copy(copy.get('copy_id'))
                    raise StorageError(f"Copy of {container}/{source_path} timed out")
                time.sleep(self.COPY_POLL_SECONDS)
                status = dest_client.get_blob_properties().copy.status
        except AzureResourceNotFoundError as e:
            raise ResourceNotFoundError(f"Blob not found: {container}/{source_path}") from e
        except AzureError as e:
            raise StorageError(f"Copy of {container}/{source_path} failed: {e}") from e

        if status != 'success':
            raise StorageError(f"Copy of {container}/{source_path} ended with status {status}")

        self.delete_blob(container, source_path)
        logger.info(f"📦 Moved blob: {container}/{source_path} → {dest_path}")
        return {
            'container': container,
            'source': source_path,
            'destination': dest_path,
            'copy_id': copy.get('copy_id'),
        }

    def check_health(self, container: str) -> Dict[str, Any]:
        """Container reachability for the health endpoint."""
        try:
            exists = self._get_container_client(container).exists()
        except AzureError as e:
            return {'status': 'unhealthy', 'container': container, 'error': str(e)}
        return {
            'status': 'healthy' if exists else 'unhealthy',
            'container': container,
            'container_exists': exists,
            'account': self.storage_account
        }

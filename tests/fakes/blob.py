"""
In-memory IBlobRepository for the file-drop watcher.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from exceptions import ResourceNotFoundError
from infrastructure.blob import IBlobRepository


class FakeBlobRepository(IBlobRepository):
    def __init__(self):
        self.containers: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.healthy = True

    def _container(self, container: str) -> Dict[str, Dict[str, Any]]:
        return self.containers.setdefault(container, {})

    def _get(self, container: str, blob_path: str) -> Dict[str, Any]:
        blob = self._container(container).get(blob_path)
        if blob is None:
            raise ResourceNotFoundError(f"Blob not found: {container}/{blob_path}")
        return blob

    def names(self, container: str) -> List[str]:
        return sorted(self._container(container))

    def list_blobs(self, container: str, prefix: str = "", limit: Optional[int] = None) -> List[Dict[str, Any]]:
        blobs = [
            {
                "name": name,
                "size": len(blob["data"]),
                "last_modified": blob["last_modified"],
                "content_type": blob["content_type"],
                "metadata": dict(blob["metadata"]),
            }
            for name, blob in sorted(self._container(container).items())
            if name.startswith(prefix)
        ]
        return blobs[:limit] if limit else blobs

    def read_blob(self, container: str, blob_path: str) -> bytes:
        return self._get(container, blob_path)["data"]

    def write_blob(self, container: str, blob_path: str, data: bytes,
                   overwrite: bool = True, content_type: str = "application/octet-stream",
                   metadata: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        blobs = self._container(container)
        if blob_path in blobs and not overwrite:
            raise ValueError(f"Blob already exists: {container}/{blob_path}")
        blobs[blob_path] = {
            "data": data,
            "content_type": content_type,
            "metadata": dict(metadata or {}),
            "last_modified": datetime.now(timezone.utc),
        }
        return {"container": container, "blob_path": blob_path, "size": len(data)}

    def get_blob_properties(self, container: str, blob_path: str) -> Dict[str, Any]:
        blob = self._get(container, blob_path)
        return {
            "name": blob_path,
            "size": len(blob["data"]),
            "content_type": blob["content_type"],
            "metadata": dict(blob["metadata"]),
        }

    def blob_exists(self, container: str, blob_path: str) -> bool:
        return blob_path in self._container(container)

    def delete_blob(self, container: str, blob_path: str) -> bool:
        return self._container(container).pop(blob_path, None) is not None

    def move_blob(self, container: str, source_path: str, dest_path: str) -> Dict[str, Any]:
        blob = self._get(container, source_path)
        self._container(container)[dest_path] = blob
        self.delete_blob(container, source_path)
        return {"container": container, "source": source_path, "destination": dest_path}

    def check_health(self, container: str) -> Dict[str, Any]:
        return {"status": "healthy" if self.healthy else "unhealthy", "container": container}

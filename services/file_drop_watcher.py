"""
Legacy File-Drop Watcher.

Polls the file-drop container for batch files left by legacy systems and
feeds them into the customization pipeline:

    incoming/<legacy_system_id>/batch.csv
        -> parse -> publish events -> audit row
        -> processed/<legacy_system_id>/batch.csv   (success, partial)
        -> failed/<legacy_system_id>/batch.csv      (failed)

A file that already has an audit row is only moved; this covers a crash
between recording the audit and moving the blob. Events carry
deterministic ids, so a file re-published after a crash before the audit
write is dropped by the queue's duplicate detection.

A file whose system id, importer or name does not fit the audit table
is audited as FAILED with the values cut to size, and moved to failed/
without being parsed. Moves never overwrite: if the target already
exists the new name gets a UTC timestamp before its extension.

Exports:
    FileDropWatcher
"""

import posixpath
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Tuple

from config import StorageConfig, get_config
from config.defaults import FileDropDefaults
from core.logic import determine_import_status
from core.models import ImportStatus
from core.models.audit import MAX_IMPORTER_LENGTH, MAX_SOURCE_FILE_LENGTH, MAX_SYSTEM_ID_LENGTH
from exceptions import (
    BatchImportError,
    DatabaseError,
    ResourceNotFoundError,
    ServiceBusError,
    StorageError,
    ValidationError,
)
from infrastructure.blob import IBlobRepository
from util_logger import LoggerFactory, ComponentType, LogContext

from .audit_recorder import AuditRecorder
from .batch_parser import BatchFileParser
from .event_relay import CustomizationEventRelay

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "FileDropWatcher")


class FileDropWatcher:
    """
    One scan of the file-drop container.

    Usage:
        watcher = FileDropWatcher(blob_repo, relay, AuditRecorder(audit_repo))
        summary = watcher.scan()
    """

    def __init__(
        self,
        blob_repo: IBlobRepository,
        relay: CustomizationEventRelay,
        audit_recorder: AuditRecorder,
        parser: Optional[BatchFileParser] = None,
        storage_config: Optional[StorageConfig] = None
    ):
        self.blobs = blob_repo
        self.relay = relay
        self.audit = audit_recorder
        self.parser = parser or BatchFileParser()
        self.config = storage_config or get_config().storage

    @property
    def container(self) -> str:
        return self.config.file_drop_container

    def _relative_path(self, blob_name: str) -> str:
        return blob_name[len(self.config.incoming_prefix):]

    def _legacy_system_id(self, blob: Dict[str, Any]) -> str:
        metadata = blob.get("metadata") or {}
        from_metadata = (metadata.get("legacy_system_id") or "").strip()
        if from_metadata:
            return from_metadata
        relative = self._relative_path(blob["name"])
        if "/" in relative:
            return relative.split("/", 1)[0] or FileDropDefaults.UNKNOWN_SYSTEM_ID
        return FileDropDefaults.UNKNOWN_SYSTEM_ID

    def _importer(self, blob: Dict[str, Any]) -> str:
        metadata = blob.get("metadata") or {}
        return (metadata.get("imported_by") or "").strip() or self.config.default_importer

    def _audit_identity(self, blob: Dict[str, Any]) -> Tuple[Dict[str, str], List[str]]:
        """
        Audit values derived from the blob, cut to the audit column widths.

        Returns:
            (values, problems) - one problem line per value that was too long
        """
        candidates = {
            "legacy_system_id": (self._legacy_system_id(blob), MAX_SYSTEM_ID_LENGTH),
            "imported_by": (self._importer(blob), MAX_IMPORTER_LENGTH),
            "source_file_name": (blob["name"], MAX_SOURCE_FILE_LENGTH),
        }
        values: Dict[str, str] = {}
        problems: List[str] = []
        for field, (value, limit) in candidates.items():
            if len(value) > limit:
                problems.append(f"{field} is {len(value)} characters, limit is {limit}")
                value = value[:limit]
            values[field] = value
        return values, problems

    def _destination(self, prefix: str, relative: str) -> str:
        """Target path under prefix; a timestamp suffix keeps an existing blob there intact."""
        destination = prefix + relative
        if not self.blobs.blob_exists(self.container, destination):
            return destination
        root, extension = posixpath.splitext(relative)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        return f"{prefix}{root}.{stamp}{extension}"

    def _is_supported(self, blob_name: str) -> bool:
        return blob_name.lower().endswith(tuple(self.config.supported_extensions))

    def scan(self) -> Dict[str, Any]:
        """
        Process every eligible file under the incoming prefix.

        Returns:
            Summary with files_found, files_processed, files_failed,
            files_skipped, files_deferred, events_published,
            rows_rejected and per-file results
        """
        scan_id = str(uuid.uuid4())[:8]
        logger.info(f"[{scan_id}] 🔍 Scanning {self.container}/{self.config.incoming_prefix}")

        blobs = [
            b for b in self.blobs.list_blobs(self.container, prefix=self.config.incoming_prefix)
            if not b["name"].endswith("/")
        ]

        summary: Dict[str, Any] = {
            "scan_id": scan_id,
            "container": self.container,
            "files_found": len(blobs),
            "files_processed": 0,
            "files_failed": 0,
            "files_skipped": 0,
            "files_deferred": 0,
            "events_published": 0,
            "rows_rejected": 0,
            "results": [],
        }
        results: List[Dict[str, Any]] = summary["results"]

        candidates = []
        for blob in blobs:
            if self._is_supported(blob["name"]):
                candidates.append(blob)
            else:
                summary["files_skipped"] += 1
                results.append({"file": blob["name"], "status": "skipped", "reason": "unsupported file type"})

        if len(candidates) > self.config.max_files_per_scan:
            summary["files_deferred"] = len(candidates) - self.config.max_files_per_scan
            logger.info(f"[{scan_id}] ⏳ Deferring {summary['files_deferred']} files to the next scan")
            candidates = candidates[:self.config.max_files_per_scan]

        for blob in candidates:
            try:
                result = self.process_file(blob)
            except BatchImportError as e:
                logger.warning(f"[{scan_id}] ⚠️ {e}")
                result = {"file": blob["name"], "status": "error", "error": str(e)}
            except Exception as e:
                logger.error(f"[{scan_id}] ❌ {blob['name']}: {type(e).__name__}: {e}")
                result = {"file": blob["name"], "status": "error", "error": f"{type(e).__name__}: {e}"}

            results.append(result)
            summary["events_published"] += result.get("events_published", 0)
            summary["rows_rejected"] += result.get("rows_rejected", 0)
            if result["status"] == "processed":
                summary["files_processed"] += 1
            elif result["status"] == "already_imported":
                summary["files_skipped"] += 1
            else:
                summary["files_failed"] += 1

        logger.info(
            f"[{scan_id}] ✅ Scan complete: {summary['files_processed']} processed, "
            f"{summary['files_failed']} failed, {summary['files_skipped']} skipped, "
            f"{summary['events_published']} events published"
        )
        return summary

    def process_file(self, blob: Dict[str, Any]) -> Dict[str, Any]:
        """
        Import one blob and move it out of the incoming prefix.

        Args:
            blob: Listing entry (name, size, metadata)

        Raises:
            BatchImportError: Audit, blob or queue access failed; the blob
                stays in incoming (or is re-moved on the next scan)
        """
        try:
            return self._import_file(blob)
        except (DatabaseError, ServiceBusError, StorageError, ResourceNotFoundError) as e:
            raise BatchImportError(f"Could not import {blob['name']}: {e}") from e

    def _import_file(self, blob: Dict[str, Any]) -> Dict[str, Any]:
        name = blob["name"]
        relative = self._relative_path(name)
        identity, problems = self._audit_identity(blob)

        if self.audit.was_imported(identity["source_file_name"]):
            destination = self._destination(self.config.processed_prefix, relative)
            logger.warning(
                f"⚠️ {name} already has an audit record; contents are not re-imported, "
                f"moving to {destination}"
            )
            self.blobs.move_blob(self.container, name, destination)
            return {"file": name, "status": "already_imported", "destination": destination}

        data_type = self.parser.detect_data_type(name)

        published = 0
        rejected = 0
        status: Optional[ImportStatus] = None
        error_details: Optional[str] = None

        size = blob.get("size") or 0
        if problems:
            status = ImportStatus.FAILED
            error_details = "Cannot audit file: " + "; ".join(problems)
        elif size > self.config.max_file_bytes:
            status = ImportStatus.FAILED
            error_details = f"File is {size} bytes, limit is {self.config.max_file_bytes}"
        else:
            try:
                parsed = self.parser.parse(
                    self.blobs.read_blob(self.container, name), name, identity["imported_by"], data_type
                )
            except ValidationError as e:
                status = ImportStatus.FAILED
                error_details = str(e)
            else:
                rejected = parsed.rejected_count
                error_details = parsed.error_summary()
                if not parsed.events:
                    status = ImportStatus.FAILED
                    error_details = error_details or "File contains no rows"
                else:
                    batch = self.relay.publish_batch(parsed.events)
                    published = batch.messages_sent
                    if not batch.success:
                        status = ImportStatus.FAILED
                        error_details = "\n".join(filter(None, [error_details, *batch.errors]))
                    else:
                        status = determine_import_status(published, rejected)

        record = self.audit.record_import(
            legacy_system_id=identity["legacy_system_id"],
            data_type=data_type,
            source_file_name=identity["source_file_name"],
            imported_by=identity["imported_by"],
            record_count=published,
            rejected_count=rejected,
            status=status,
            error_details=error_details,
        )

        prefix = self.config.failed_prefix if status == ImportStatus.FAILED else self.config.processed_prefix
        destination = self._destination(prefix, relative)
        self.blobs.move_blob(self.container, name, destination)

        dimensions = {'custom_dimensions': LogContext(source_file=name).to_dict()}
        if status == ImportStatus.FAILED:
            logger.warning(f"⚠️ {name} failed to import: {error_details}", extra=dimensions)
        else:
            logger.info(f"📥 {name}: {status.value}, {published} events published", extra=dimensions)
        return {
            "file": name,
            "status": "failed" if status == ImportStatus.FAILED else "processed",
            "import_status": status.value,
            "audit_id": record.audit_id,
            "legacy_system_id": identity["legacy_system_id"],
            "events_published": published,
            "rows_rejected": rejected,
            "destination": destination,
        }

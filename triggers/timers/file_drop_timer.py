# ============================================================================
# FILE DROP TIMER HANDLER
# ============================================================================
# STATUS: Trigger layer - Timer trigger handler for legacy file drops
# SCHEDULE: Every 5 minutes
# ============================================================================
"""
File Drop Timer Handler.

Runs one FileDropWatcher scan per tick. Files that fail stay visible in
the summary; the scan itself only fails when the container cannot be
listed.

Exports:
    FileDropTimerHandler: Handler class
    file_drop_timer_handler: Singleton instance
"""

from typing import Dict, Any

from triggers.timer_base import TimerHandlerBase


class FileDropTimerHandler(TimerHandlerBase):
    name = "FileDropWatcher"

    def __init__(self, watcher=None):
        super().__init__()
        self._watcher = watcher

    @property
    def watcher(self):
        if self._watcher is None:
            from infrastructure import RepositoryFactory
            from services import AuditRecorder, CustomizationEventRelay, FileDropWatcher

            repos = RepositoryFactory.create_repositories()
            self._watcher = FileDropWatcher(
                RepositoryFactory.create_blob_repository(),
                CustomizationEventRelay(RepositoryFactory.create_service_bus_repository()),
                AuditRecorder(repos['audit_repo']),
            )
        return self._watcher

    def execute(self) -> Dict[str, Any]:
        scan = self.watcher.scan()
        return {
            "success": True,
            "health_status": "ISSUES_DETECTED" if scan["files_failed"] else "HEALTHY",
            "summary": {
                key: scan[key]
                for key in (
                    "files_found", "files_processed", "files_failed", "files_skipped",
                    "files_deferred", "events_published", "rows_rejected",
                )
            },
            "results": scan["results"],
        }


file_drop_timer_handler = FileDropTimerHandler()

# ============================================================================
# DEAD-LETTER MONITOR TIMER HANDLER
# ============================================================================
# STATUS: Trigger layer - Timer trigger handler for failed events
# SCHEDULE: Every 15 minutes
# ============================================================================
"""
Dead-Letter Monitor Timer Handler.

Reports the events queue DLQ depth and the rejected-events backlog. A
non-empty DLQ or rejected queue logs a warning (ISSUES_DETECTED) for the
alert rules; nothing is replayed automatically.

Exports:
    DeadLetterMonitorHandler: Handler class
    dead_letter_monitor_handler: Singleton instance
"""

from typing import Dict, Any

from triggers.timer_base import TimerHandlerBase


class DeadLetterMonitorHandler(TimerHandlerBase):
    name = "DeadLetterMonitor"

    def __init__(self, service=None):
        super().__init__()
        self._service = service

    @property
    def service(self):
        if self._service is None:
            from infrastructure import RepositoryFactory
            from services import DeadLetterService
            self._service = DeadLetterService(RepositoryFactory.create_service_bus_repository())
        return self._service

    def execute(self) -> Dict[str, Any]:
        return self.service.monitor()


dead_letter_monitor_handler = DeadLetterMonitorHandler()

"""
Service Layer - Customization Pipeline.

Business services sit between the triggers and the repositories. They
depend on repository interfaces only, so tests run them against
in-memory fakes.

Pipeline:
    HTTP ingress ──► CustomizationIngestService ──┐
                                                  ├─► CustomizationEventRelay ──► events queue
    file drop ─► FileDropWatcher ─► BatchFileParser┘                                   │
                      │                                                                 ▼
                      └─► AuditRecorder                          CustomizationEventProcessor
                                                                   │            │
                                                             database    rejected queue

Exports:
    CustomizationEventRelay, BatchResult
    CustomizationIngestService
    CustomizationEventProcessor
    BatchFileParser, ParseResult
    AuditRecorder
    FileDropWatcher
    DeadLetterService
"""

from .event_relay import CustomizationEventRelay, BatchResult
from .customization_ingest import CustomizationIngestService
from .customization_consumer import CustomizationEventProcessor
from .batch_parser import BatchFileParser, ParseResult
from .audit_recorder import AuditRecorder
from .file_drop_watcher import FileDropWatcher
from .dead_letter_service import DeadLetterService

__all__ = [
    'CustomizationEventRelay',
    'BatchResult',
    'CustomizationIngestService',
    'CustomizationEventProcessor',
    'BatchFileParser',
    'ParseResult',
    'AuditRecorder',
    'FileDropWatcher',
    'DeadLetterService',
]

"""
Structured Logging for the Floor Plan Customization Functions.

Every module gets its logger from LoggerFactory. Records go to stdout as
one JSON object per line, which the Functions host forwards to
Application Insights. Component type and name ride along as custom
dimensions, so one query can isolate every REPOSITORY record, or every
record from the FileDropWatcher.

Correlation:
    The ingress gives each event a correlation_id. Queue handlers and
    services prefix messages with it ("[ab12cd34] ...") and attach
    LogContext dimensions, so a query on customDimensions.event_id
    follows an event from the HTTP request to the row it wrote, and
    customDimensions.source_file follows a legacy batch file.

Levels:
    INFO by default; DEBUG for every layer when DEBUG_LOGGING=true.
    SCHEMA always logs at DEBUG so each DDL statement of a deploy is kept.

Exports:
    ComponentType: Application layer of the logging module
    LogContext: Event and batch-file correlation dimensions
    ComponentConfig: Per-layer logger level
    JSONFormatter: One JSON object per record
    LoggerFactory: Creates configured loggers
    log_exceptions: Log-and-re-raise decorator

Dependencies:
    Standard library only (logging, dataclasses, json)
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
import logging
import sys
import os
import json
import traceback
from functools import wraps


# ============================================================================
# COMPONENT TYPES
# ============================================================================

class ComponentType(Enum):
    """Layer a logger belongs to; becomes customDimensions.component_type."""
    TRIGGER = "trigger"        # HTTP routes, queue and timer handlers
    SERVICE = "service"        # Ingest, consumer, relay, watcher, parser, audit
    REPOSITORY = "repository"  # PostgreSQL, Service Bus, Blob Storage
    FACTORY = "factory"        # Repository wiring
    SCHEMA = "schema"          # DDL generation and deployment


# ============================================================================
# LOG CONTEXT - Event and batch correlation
# ============================================================================

@dataclass
class LogContext:
    """
    Correlation dimensions for one customization event or batch file.

    Usage:
        logger.info(
            f"[{correlation_id}] 📨 Processing {event_id}",
            extra={'custom_dimensions': LogContext(event_id=event_id,
                                                   correlation_id=correlation_id).to_dict()}
        )
    """
    event_id: Optional[str] = None
    event_type: Optional[str] = None
    floor_plan_id: Optional[int] = None
    correlation_id: Optional[str] = None
    message_id: Optional[str] = None
    source_file: Optional[str] = None
    user_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Set fields only, ready for custom_dimensions."""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ComponentConfig:
    """Logger settings for one component layer."""
    component_type: ComponentType
    log_level: int = logging.INFO


def debug_logging_enabled() -> bool:
    return os.getenv('DEBUG_LOGGING', '').lower() == 'true'


# ============================================================================
# JSON FORMATTER
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Application Insights lifts customDimensions out of the line. The
    exception block keeps type and message beside the traceback so failed
    deliveries can be searched by exception type.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        dimensions = getattr(record, 'custom_dimensions', None)
        if dimensions:
            log_obj['customDimensions'] = dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY
# ============================================================================

class LoggerFactory:
    """
    Creates loggers named "<component_type>.<name>".

    Example:
        logger = LoggerFactory.create_logger(ComponentType.SERVICE, "FileDropWatcher")
        logger.info(f"[{scan_id}] 🔍 Scanning legacy-drops/incoming/")
    """

    # Layers whose level ignores DEBUG_LOGGING
    FIXED_LEVELS = {
        ComponentType.SCHEMA: logging.DEBUG,
    }

    @classmethod
    def config_for(cls, component_type: ComponentType) -> ComponentConfig:
        level = cls.FIXED_LEVELS.get(component_type)
        if level is None:
            level = logging.DEBUG if debug_logging_enabled() else logging.INFO
        return ComponentConfig(component_type=component_type, log_level=level)

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        config: Optional[ComponentConfig] = None
    ) -> logging.Logger:
        """
        Create or reconfigure the logger for one component.

        Args:
            component_type: Layer of the calling module
            name: Component name (e.g., "CustomizationEventProcessor")
            config: Level override; defaults from config_for()

        Returns:
            Logger writing JSON to stdout and propagating to the host's root logger
        """
        config = config or cls.config_for(component_type)

        logger = logging.getLogger(f"{component_type.value}.{name}")
        logger.setLevel(config.log_level)

        if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(config.log_level)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)

        logger.propagate = True

        if not getattr(logger, '_dimensions_wrapped', False):
            cls._inject_dimensions(logger, component_type, name)

        return logger

    @staticmethod
    def _inject_dimensions(logger: logging.Logger, component_type: ComponentType, name: str) -> None:
        """
        Route every record's extra fields into custom_dimensions.

        Plain extra keys (checkpoint, message_id, ...) are folded in beside
        an explicit custom_dimensions dict, so callers may use either form.
        """
        original_log = logger._log

        def log_with_dimensions(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
            fields = dict(extra or {})
            dimensions = {
                'component_type': component_type.value,
                'component_name': name,
            }
            explicit = fields.pop('custom_dimensions', None) or {}
            dimensions.update(fields)
            dimensions.update(explicit)

            # +1 so record.funcName points at the caller, not this wrapper
            original_log(level, msg, args, exc_info=exc_info,
                         extra={'custom_dimensions': dimensions},
                         stack_info=stack_info, stacklevel=stacklevel + 1)

        logger._log = log_with_dimensions
        logger._dimensions_wrapped = True


# ============================================================================
# EXCEPTION DECORATOR
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Log any exception escaping the wrapped function, then re-raise it.

    The queue handler is wrapped with it: a transient failure must still
    propagate so the Functions host abandons the message, but the record
    keeps the arguments and traceback for the dead-letter investigation.

    Forms:
        @log_exceptions(logger=logger)
        @log_exceptions(ComponentType.TRIGGER, "CustomizationEventHandler")
        @log_exceptions()   - SERVICE logger named after the module
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if logger:
                log = logger
            elif component_type and component_name:
                log = LoggerFactory.create_logger(component_type, component_name)
            else:
                log = LoggerFactory.create_logger(ComponentType.SERVICE, func.__module__ or "unknown")

            try:
                return func(*args, **kwargs)
            except Exception as e:
                log.error(
                    f"Exception in {func.__name__}: {type(e).__name__}: {e}",
                    exc_info=True,
                    extra={
                        'custom_dimensions': {
                            'function_name': func.__name__,
                            'function_module': func.__module__,
                            'exception_type': type(e).__name__,
                            'exception_message': str(e),
                            'function_args': str(args)[:500],
                            'function_kwargs': str(kwargs)[:500],
                            'traceback': traceback.format_exc()
                        }
                    }
                )
                raise
        return wrapper
    return decorator

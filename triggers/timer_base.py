# ============================================================================
# TIMER HANDLER BASE CLASS
# ============================================================================
# STATUS: Trigger layer - Base class for timer trigger handlers
# PURPOSE: Common past-due, timing and result logging for timers
# ============================================================================
"""
Timer Handler Base Class.

Provides consistent patterns for all timer trigger handlers:
- Past due detection and logging
- Standard execution flow with timing
- Result interpretation and logging
- Exception handling with traceback

Usage:
    class MyTimerHandler(TimerHandlerBase):
        name = "MyHandler"

        def execute(self) -> Dict[str, Any]:
            return {"success": True, "summary": {"files": 3}}

    @bp.timer_trigger(schedule="0 */5 * * * *", arg_name="timer", run_on_startup=False)
    def my_timer(timer: func.TimerRequest) -> None:
        my_handler.handle(timer)

Exports:
    TimerHandlerBase: Abstract base class for timer handlers
"""

import traceback
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Any

import azure.functions as func

from util_logger import LoggerFactory, ComponentType


class TimerHandlerBase(ABC):
    """
    Abstract base class for timer trigger handlers.

    A failing run is logged and reported, never raised: the next tick is
    the retry.

    Subclasses must:
    - Set `name` class attribute
    - Implement `execute()` method returning dict with 'success' key
    """

    name: str = "UnnamedTimer"

    def __init__(self):
        self._logger = None

    @property
    def logger(self):
        """Lazy-load logger to avoid import issues at module load."""
        if self._logger is None:
            self._logger = LoggerFactory.create_logger(ComponentType.TRIGGER, self.name)
        return self._logger

    def handle(self, timer: func.TimerRequest) -> Dict[str, Any]:
        """
        Standard timer handling with logging and error handling.

        Returns:
            Result dict from execute() or error dict on failure
        """
        trigger_time = datetime.now(timezone.utc)

        if timer.past_due:
            self.logger.warning(f"⏰ {self.name}: Timer is past due - running immediately")

        self.logger.info(f"⏰ {self.name}: Triggered at {trigger_time.isoformat()}")

        try:
            start_time = datetime.now(timezone.utc)
            result = self.execute()
            end_time = datetime.now(timezone.utc)

            if "duration_seconds" not in result:
                result["duration_seconds"] = round((end_time - start_time).total_seconds(), 2)

            self._log_result(result)
            return result

        except Exception as e:
            self.logger.error(f"❌ {self.name}: Unhandled exception: {type(e).__name__}: {e}")
            self.logger.error(traceback.format_exc())
            return {
                "success": False,
                "error": str(e),
                "error_type": type(e).__name__,
            }

    @abstractmethod
    def execute(self) -> Dict[str, Any]:
        """
        Execute the timer's work.

        Returns:
            Dict with at least 'success' key (bool).
            Optional keys:
            - 'health_status': "HEALTHY" or "ISSUES_DETECTED"
            - 'summary': dict with metrics
            - 'error': str if success=False
        """
        raise NotImplementedError("Subclass must implement execute()")

    def _log_result(self, result: Dict[str, Any]) -> None:
        success = result.get("success", False)
        health_status = result.get("health_status", "UNKNOWN")
        duration = result.get("duration_seconds", 0)

        if not success:
            error = result.get("error", "Unknown error")
            self.logger.error(f"❌ {self.name}: Failed - {error}")
            return

        summary_str = self._format_summary(result.get("summary", {}))

        if health_status == "HEALTHY":
            self.logger.info(f"✅ {self.name}: Complete - {health_status} ({duration}s){summary_str}")
        elif health_status == "ISSUES_DETECTED":
            self.logger.warning(f"⚠️ {self.name}: Complete - {health_status} ({duration}s){summary_str}")
        else:
            self.logger.info(f"⏰ {self.name}: Complete - status={health_status} ({duration}s){summary_str}")

    def _format_summary(self, summary: Dict[str, Any]) -> str:
        """Format summary dict for logging."""
        parts = [
            f"{key}={value}"
            for key, value in (summary or {}).items()
            if isinstance(value, (int, float, str, bool))
        ]
        return " | " + ", ".join(parts) if parts else ""


__all__ = ['TimerHandlerBase']

# ============================================================================
# TIMER TRIGGERS BLUEPRINT
# ============================================================================
# STATUS: Trigger layer - Timer-based scheduled triggers
# PURPOSE: Azure Functions Blueprint with all timer triggers
# ============================================================================
"""
Timer Triggers Blueprint.

Timer Schedule Overview:
    - file_drop_timer: Every 5 minutes (legacy batch files -> events queue)
    - dead_letter_monitor_timer: Every 15 minutes (DLQ and rejected backlog)

Usage:
    from triggers.timers import timer_bp
    app.register_blueprint(timer_bp)
"""

import azure.functions as func

from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "TimerBlueprint")

bp = func.Blueprint()


@bp.timer_trigger(
    schedule="0 */5 * * * *",
    arg_name="timer",
    run_on_startup=False
)
def file_drop_timer(timer: func.TimerRequest) -> None:
    """
    Import legacy CSV/JSON files dropped under incoming/.

    Each file ends up in processed/ or failed/ with one audit record.
    """
    from triggers.timers.file_drop_timer import file_drop_timer_handler
    file_drop_timer_handler.handle(timer)


@bp.timer_trigger(
    schedule="0 */15 * * * *",
    arg_name="timer",
    run_on_startup=False
)
def dead_letter_monitor_timer(timer: func.TimerRequest) -> None:
    """Log the dead-lettered and rejected event counts."""
    from triggers.timers.dead_letter_monitor import dead_letter_monitor_handler
    dead_letter_monitor_handler.handle(timer)

# ============================================================================
# TIMER TRIGGERS MODULE
# ============================================================================
# STATUS: Trigger layer - Timer-based scheduled triggers
# PURPOSE: Timer triggers using Azure Functions Blueprint
# ============================================================================
"""
Timer Triggers Module.

Provides a Blueprint with the scheduled triggers:
- file_drop_timer: legacy file-drop watcher
- dead_letter_monitor_timer: dead-letter and rejected backlog monitor

Usage in function_app.py:
    from triggers.timers import timer_bp
    app.register_blueprint(timer_bp)

Exports:
    timer_bp: Azure Functions Blueprint with all timer triggers
"""

from .timer_bp import bp as timer_bp

__all__ = ['timer_bp']

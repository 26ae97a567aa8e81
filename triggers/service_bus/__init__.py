# ============================================================================
# SERVICE BUS HANDLERS MODULE
# ============================================================================
# STATUS: Trigger layer - Service Bus message handling
# PURPOSE: Handlers for Service Bus queue triggers
# ============================================================================
"""
Service Bus Handlers Module.

Provides the handler for the customization events queue trigger:
- handle_customization_event: Apply one event through CustomizationEventProcessor

Usage in function_app.py:
    from triggers.service_bus import handle_customization_event

    @app.service_bus_queue_trigger(
        arg_name="msg",
        queue_name="%SERVICE_BUS_EVENTS_QUEUE%",
        connection="ServiceBusConnection"
    )
    def process_customization_event(msg: func.ServiceBusMessage) -> None:
        handle_customization_event(msg)

Exports:
    handle_customization_event: Events queue handler
"""

from .event_handler import handle_customization_event

__all__ = [
    'handle_customization_event',
]

"""
Triggers Package.

Azure Functions HTTP, Service Bus and Timer trigger implementations.

HTTP Endpoints:
    /api/users, /api/projects, /api/floorplans, /api/customizations: CRUD
    /api/customizations/events: Asynchronous ingress
    /api/audit/imports: Legacy import audit
    /api/health, /api/admin/*: Operations

Exports:
    Base classes for HTTP triggers
"""

# Only import base classes to avoid initialization at import time
# Trigger instances should be imported directly from their modules
from .http_base import BaseHttpTrigger, CrudTrigger, PipelineTrigger, SystemMonitoringTrigger

__all__ = [
    'BaseHttpTrigger',
    'CrudTrigger',
    'PipelineTrigger',
    'SystemMonitoringTrigger',
]

"""
Core Domain Components.

Structure:
    models/: Pure data structures (no business logic)
    logic/: Business rules that operate on models
    schema/: DDL generation, deployment, queue and update contracts
"""

from . import models
from . import logic
from . import schema

__all__ = [
    'models',
    'logic',
    'schema'
]

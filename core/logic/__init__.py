"""
Core Business Logic Package.

Contains business logic that operates on pure data models.
Separated from models to maintain clean architecture.

Exports:
    classify_failure, is_final_attempt: Queue failure policy
    determine_import_status: Legacy import outcome
"""

from .failure import classify_failure, is_final_attempt, PERMANENT_ERRORS
from .imports import determine_import_status

__all__ = [
    'classify_failure',
    'is_final_attempt',
    'PERMANENT_ERRORS',
    'determine_import_status',
]

"""
Utilities Package.

Cross-cutting utilities used throughout the application.

Exports:
    enforce_contract: Contract validation decorator
"""

from .contract_validator import enforce_contract

__all__ = [
    'enforce_contract',
]

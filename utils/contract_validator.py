"""
Contract Validator - Runtime Type Enforcement

Decorator for enforcing type contracts at repository and service boundaries.
A caller that passes a raw dict where a record model is expected, or a
repository that returns the wrong type, fails immediately with a
ContractViolationError instead of deep inside SQL composition.

Key Features:
- Parameter type validation before method execution
- Return type validation after method execution
- Support for Union/Optional types and tuples of types
- bool is never accepted where int is expected
- Can be disabled via CONTRACT_ENFORCEMENT_ENABLED=false

Usage:
    @enforce_contract(
        params={'floor_plan_id': int},
        returns=Optional[FloorPlanRecord]
    )
    def get_floor_plan(self, floor_plan_id):
        ...
"""

import os
import inspect
import logging
from functools import wraps
from typing import Type, Any, Dict, Optional, Union, get_origin, get_args

from exceptions import ContractViolationError

logger = logging.getLogger(__name__)

CONTRACT_ENFORCEMENT_ENABLED = os.getenv('CONTRACT_ENFORCEMENT_ENABLED', 'true').lower() == 'true'


def enforce_contract(
    params: Optional[Dict[str, Type]] = None,
    returns: Optional[Type] = None
):
    """
    Decorator to enforce type contracts on method parameters and return values.

    Args:
        params: Dictionary mapping parameter names to expected types
                e.g., {'record': CustomizationRecord, 'limit': int}
        returns: Expected return type, e.g. Optional[UserRecord]

    Raises:
        ContractViolationError: When a parameter or the return value
            does not match its declared type
    """
    def decorator(func):
        if not CONTRACT_ENFORCEMENT_ENABLED:
            return func

        func_name = getattr(func, '__qualname__', func.__name__)
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs):
            if params:
                try:
                    _validate_params(signature, args, kwargs, params, func_name)
                except ContractViolationError as e:
                    logger.error(f"CONTRACT VIOLATION in {func_name}: {e}")
                    raise

            result = func(*args, **kwargs)

            if returns is not None:
                try:
                    _validate_return(result, returns, func_name)
                except ContractViolationError as e:
                    logger.error(f"CONTRACT VIOLATION in {func_name}: {e}")
                    raise

            return result

        # Contract info for introspection
        wrapper._contract_params = params
        wrapper._contract_returns = returns

        return wrapper
    return decorator


def _validate_params(signature, args, kwargs, expected_params, func_name):
    # Let Python raise its own TypeError for a bad call shape
    bound = signature.bind(*args, **kwargs)
    bound.apply_defaults()

    for param_name, expected_type in expected_params.items():
        if param_name not in bound.arguments:
            continue

        value = bound.arguments[param_name]

        if value is None:
            if not _is_none_allowed(expected_type):
                raise ContractViolationError(
                    f"{func_name}() parameter '{param_name}' cannot be None. "
                    f"Expected {_format_type(expected_type)}."
                )
            continue

        if not _check_type(value, expected_type):
            raise ContractViolationError(
                f"{func_name}() parameter '{param_name}' expected {_format_type(expected_type)}, "
                f"got {type(value).__name__}."
            )


def _validate_return(value, expected_type, func_name):
    if value is None:
        if not _is_none_allowed(expected_type):
            raise ContractViolationError(
                f"{func_name}() should return {_format_type(expected_type)}, returned None."
            )
        return

    if not _check_type(value, expected_type):
        raise ContractViolationError(
            f"{func_name}() should return {_format_type(expected_type)}, "
            f"returned {type(value).__name__}."
        )


def _check_type(value: Any, expected_type: Type) -> bool:
    """
    Check if a value matches the expected type.

    Generic aliases (List[X], Tuple[X, bool]) are checked on their origin only.
    """
    origin = get_origin(expected_type)
    if origin is Union:
        return any(_check_type(value, t) for t in get_args(expected_type))

    if isinstance(expected_type, tuple):
        return any(_check_type(value, t) for t in expected_type)

    if origin is not None:
        return isinstance(value, origin)

    if expected_type is int and isinstance(value, bool):
        return False

    try:
        return isinstance(value, expected_type)
    except TypeError:
        return type(value) == expected_type


def _is_none_allowed(expected_type: Type) -> bool:
    if isinstance(expected_type, tuple):
        return type(None) in expected_type

    if get_origin(expected_type) is Union:
        return type(None) in get_args(expected_type)

    return expected_type is type(None)


def _format_type(type_spec: Type) -> str:
    """Human-readable type string for error messages."""
    if type_spec is type(None):
        return "None"

    if isinstance(type_spec, tuple):
        return " | ".join(_format_type(t) for t in type_spec)

    origin = get_origin(type_spec)
    if origin is Union:
        type_args = get_args(type_spec)
        if type(None) in type_args and len(type_args) == 2:
            other_type = [t for t in type_args if t is not type(None)][0]
            return f"Optional[{_format_type(other_type)}]"
        return f"Union[{', '.join(_format_type(t) for t in type_args)}]"

    if origin is not None:
        type_args = get_args(type_spec)
        if type_args:
            return f"{origin.__name__}[{', '.join(_format_type(t) for t in type_args)}]"
        return origin.__name__

    if hasattr(type_spec, '__name__'):
        return type_spec.__name__

    return str(type_spec)

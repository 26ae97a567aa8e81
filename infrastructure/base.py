"""
Base Repository - Pure Abstract Class.

Abstract base repository class that all storage-specific repositories inherit from.
Contains NO storage implementation details, only common error handling
and logging infrastructure.

Architecture:
    BaseRepository (this file - pure abstract)
        |
    Storage-specific bases (PostgreSQLRepository)
        |
    Domain-specific repositories (PostgreSQLUserRepository, PostgreSQLAuditRepository, ...)

Exports:
    BaseRepository: Abstract base class for repositories
"""

from abc import ABC
from contextlib import contextmanager
from typing import Optional, Dict, Any, Union
import logging

from util_logger import LoggerFactory, ComponentType
from exceptions import ContractViolationError, BusinessLogicError


# ============================================================================
# PURE BASE REPOSITORY - No storage dependencies
# ============================================================================

class BaseRepository(ABC):
    """
    Pure abstract base repository.

    Responsibilities:
    ----------------
    - Error handling with consistent patterns
    - Logging setup and configuration

    NOT Responsible For:
    -------------------
    - Connection management (handled by storage-specific subclasses)
    - Query execution (handled by storage-specific subclasses)

    Usage Example:
    -------------
    ```python
    class PostgreSQLUserRepository(PostgreSQLRepository, IUserRepository):
        def delete_user(self, user_id):
            with self._error_context("user deletion", user_id):
                ...
    ```
    """

    def __init__(self):
        """
        Initialize base repository logging.

        Subclasses MUST call super().__init__() before any storage setup.
        """
        self.logger = self._setup_logger()
        self.logger.debug(f"🏛️ {self.__class__.__name__} base initialized")

    def _setup_logger(self) -> logging.Logger:
        return LoggerFactory.create_logger(
            ComponentType.REPOSITORY,
            self.__class__.__name__
        )

    @contextmanager
    def _error_context(self, operation: str, entity_id: Optional[Union[str, int]] = None):
        """
        Context manager for consistent error handling across all operations.

        Every exception is logged with the operation and entity id, then
        re-raised unchanged so callers can classify it.

        Parameters:
        ----------
        operation : str
            Human-readable description, e.g. "user creation"
        entity_id : Optional[str | int]
            ID of the entity being operated on

        Logging Format:
        --------------
        Contract violation: "❌ Contract violation during {operation}: {error}"
        Expected failure:   "⚠️ {operation} failed for {entity_id}: {error}"
        Unexpected failure: "❌ {operation} failed for {entity_id}: {error}"
        """
        try:
            yield

        except ContractViolationError as e:
            self.logger.error(f"❌ Contract violation during {operation}: {e}")
            raise

        except BusinessLogicError as e:
            suffix = f" for {entity_id}" if entity_id is not None else ""
            self.logger.warning(f"⚠️ {operation} failed{suffix}: {e}")
            raise

        except Exception as e:
            suffix = f" for {entity_id}" if entity_id is not None else ""
            self.logger.error(f"❌ {operation} failed{suffix}: {e}")
            raise

    def _log_operation_result(
        self,
        success: bool,
        operation: str,
        entity_id: Union[str, int, None],
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log operation results with consistent formatting.

        Success: "✅ {operation}: {entity_id} | {details}"  (INFO)
        Failure: "⚠️ {operation} failed: {entity_id} | {details}"  (WARNING)
        """
        if success:
            msg = f"✅ {operation}: {entity_id}"
        else:
            msg = f"⚠️ {operation} failed: {entity_id}"

        if details:
            msg += f" | {details}"

        if success:
            self.logger.info(msg)
        else:
            self.logger.warning(msg)

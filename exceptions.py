"""
Custom Exception Hierarchy.

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Business Logic Failures (expected runtime issues)

The split also drives the queue consumer's failure policy: a business
failure is either permanent (reject the event, never retry) or transient
(re-raise so Service Bus redelivers). See core.logic.failure.

Exports:
    ContractViolationError: Programming bug at a component boundary
    BusinessLogicError: Base for expected runtime failures
    ServiceBusError: Queue communication failures
    StorageError: Blob storage operation failures
    DatabaseError: Database operation failures
    ConstraintViolationError: Unique/foreign key violations
    ResourceNotFoundError: Entity does not exist
    ValidationError: Business rule validation failure
    BatchImportError: File-drop batch could not be imported
    ConfigurationError: Misconfiguration
"""


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These indicate:
    - Wrong types passed to repository methods
    - Missing required fields
    - Enum type mismatches

    These should NEVER be caught and handled - they indicate bugs
    that need to be fixed in the code.

    Examples:
        - Repository receives dict instead of UserRecord
        - Update receives raw dict instead of an UpdateModel
    """
    pass


class BusinessLogicError(Exception):
    """
    Base class for expected runtime business logic failures.

    These are normal failures that occur during system operation
    and should be handled gracefully without crashing.
    """
    pass


class ServiceBusError(BusinessLogicError):
    """
    Service Bus communication failures.

    Examples:
        - Service Bus unavailable
        - Queue not found
        - Message size exceeded
        - Authentication failure
    """
    pass


class StorageError(BusinessLogicError):
    """
    Blob storage operation failures.

    Examples:
        - Server-side copy failed or timed out
        - Storage account unreachable
    """
    pass


class DatabaseError(BusinessLogicError):
    """
    Database operation failures.

    Examples:
        - Connection lost
        - Deadlock detected
        - Query timeout
    """
    pass


class ConstraintViolationError(DatabaseError):
    """
    Unique or foreign key constraint rejected the write.

    Retrying will not help: the same row will be rejected again.

    Examples:
        - Duplicate user email
        - Project owner_id references a deleted user
    """

    def __init__(self, message: str, constraint_name: str = None):
        super().__init__(message)
        self.constraint_name = constraint_name


class ResourceNotFoundError(BusinessLogicError):
    """
    Requested resource does not exist.

    Examples:
        - Floor plan ID not in database
        - Customization deleted before update event arrived
        - Blob removed from the drop container mid-scan
    """
    pass


class ValidationError(BusinessLogicError):
    """
    Business validation failed.

    Note: This is different from ContractViolationError.
    This is for business rule validation, not type contracts.

    Examples:
        - Customization belongs to a different floor plan
        - Batch file has no recognizable rows
        - Project created for a user that does not exist
    """
    pass


class BatchImportError(BusinessLogicError):
    """
    A dropped batch file could not be imported.

    Raised by the file-drop watcher for one file; the scan moves on.
    """
    pass


class ConfigurationError(Exception):
    """
    System configuration error.

    These are typically fatal and indicate misconfiguration
    that prevents the system from operating.

    Examples:
        - Missing required environment variables
        - Neither Service Bus connection string nor namespace set
    """
    pass

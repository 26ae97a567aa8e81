"""
Repository Abstract Base Classes - Single Point of Truth.

Enforces exact method signatures across all repository implementations,
preventing parameter name mismatches. All parameter names, return types,
and method signatures are defined here and nowhere else.

Philosophy: "Define once, enforce everywhere"

The PostgreSQL repositories and the in-memory fakes used by the test
suite both implement these interfaces.

Exports:
    IUserRepository: User repository interface
    IProjectRepository: Project repository interface
    IFloorPlanRepository: Floor plan repository interface
    ICustomizationRepository: Customization repository interface
    IAuditRepository: Legacy import audit interface
    ParamNames: Canonical parameter name constants
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple, Final

from core.models import (
    UserRecord,
    ProjectRecord,
    FloorPlanRecord,
    CustomizationRecord,
    LegacyDataAuditRecord,
    ImportStatus,
)
from core.schema.updates import (
    UserUpdateModel,
    ProjectUpdateModel,
    FloorPlanUpdateModel,
    CustomizationUpdateModel,
)


# ============================================================================
# CANONICAL PARAMETER NAMES - Single source of truth
# ============================================================================

class ParamNames:
    """
    Parameter and key names shared by repositories, services and triggers.
    """

    USER_ID: Final[str] = "user_id"
    OWNER_ID: Final[str] = "owner_id"
    PROJECT_ID: Final[str] = "project_id"
    FLOOR_PLAN_ID: Final[str] = "floor_plan_id"
    CUSTOMIZATION_ID: Final[str] = "customization_id"
    AUDIT_ID: Final[str] = "audit_id"
    SOURCE_EVENT_ID: Final[str] = "source_event_id"
    LEGACY_SYSTEM_ID: Final[str] = "legacy_system_id"

    # Paging
    LIMIT: Final[str] = "limit"
    OFFSET: Final[str] = "offset"


# ============================================================================
# ABSTRACT BASE CLASSES - Enforce exact signatures
# ============================================================================

class IUserRepository(ABC):
    """
    User repository interface with EXACT method signatures.
    """

    @abstractmethod
    def create_user(self, user: UserRecord) -> UserRecord:
        """Insert a user, returning it with user_id and timestamps set"""
        pass

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[UserRecord]:
        """Get user by ID - parameter MUST be named 'user_id'"""
        pass

    @abstractmethod
    def list_users(self, limit: int = 100, offset: int = 0) -> List[UserRecord]:
        """List users ordered by user_id"""
        pass

    @abstractmethod
    def update_user(self, user_id: int, updates: UserUpdateModel) -> Optional[UserRecord]:
        """Apply a partial update; None if the user does not exist"""
        pass

    @abstractmethod
    def delete_user(self, user_id: int) -> bool:
        """Delete a user and everything it owns"""
        pass


class IProjectRepository(ABC):
    """
    Project repository interface with EXACT method signatures.
    """

    @abstractmethod
    def create_project(self, project: ProjectRecord) -> ProjectRecord:
        pass

    @abstractmethod
    def get_project(self, project_id: int) -> Optional[ProjectRecord]:
        pass

    @abstractmethod
    def list_projects(
        self,
        owner_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[ProjectRecord]:
        """List projects, optionally for one owner"""
        pass

    @abstractmethod
    def update_project(self, project_id: int, updates: ProjectUpdateModel) -> Optional[ProjectRecord]:
        pass

    @abstractmethod
    def delete_project(self, project_id: int) -> bool:
        pass


class IFloorPlanRepository(ABC):
    """
    Floor plan repository interface with EXACT method signatures.
    """

    @abstractmethod
    def create_floor_plan(self, floor_plan: FloorPlanRecord) -> FloorPlanRecord:
        pass

    @abstractmethod
    def get_floor_plan(self, floor_plan_id: int) -> Optional[FloorPlanRecord]:
        pass

    @abstractmethod
    def list_floor_plans(
        self,
        project_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[FloorPlanRecord]:
        pass

    @abstractmethod
    def update_floor_plan(self, floor_plan_id: int, updates: FloorPlanUpdateModel) -> Optional[FloorPlanRecord]:
        pass

    @abstractmethod
    def delete_floor_plan(self, floor_plan_id: int) -> bool:
        pass


class ICustomizationRepository(ABC):
    """
    Customization repository interface with EXACT method signatures.

    create_customization_from_event is the queue consumer's entry point:
    it records each applied event so a redelivered event is a no-op, even
    after the customization it created has been deleted.
    """

    @abstractmethod
    def create_customization(self, customization: CustomizationRecord) -> CustomizationRecord:
        pass

    @abstractmethod
    def create_customization_from_event(
        self,
        customization: CustomizationRecord
    ) -> Tuple[Optional[CustomizationRecord], bool]:
        """
        Insert a customization produced by a queue event.

        Returns:
            (record, created) - created is False when the event was applied
            before; record is the existing row, or None if it was deleted
        """
        pass

    @abstractmethod
    def get_customization(self, customization_id: int) -> Optional[CustomizationRecord]:
        pass

    @abstractmethod
    def list_customizations(
        self,
        floor_plan_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[CustomizationRecord]:
        pass

    @abstractmethod
    def update_customization(
        self,
        customization_id: int,
        updates: CustomizationUpdateModel
    ) -> Optional[CustomizationRecord]:
        pass

    @abstractmethod
    def delete_customization(self, customization_id: int) -> bool:
        pass


class IAuditRepository(ABC):
    """
    Legacy data audit interface.

    Append-only: there is no update or delete.
    """

    @abstractmethod
    def record_import(self, record: LegacyDataAuditRecord) -> LegacyDataAuditRecord:
        pass

    @abstractmethod
    def get_import(self, audit_id: str) -> Optional[LegacyDataAuditRecord]:
        pass

    @abstractmethod
    def list_imports(
        self,
        status: Optional[ImportStatus] = None,
        legacy_system_id: Optional[str] = None,
        limit: int = 100
    ) -> List[LegacyDataAuditRecord]:
        """Newest first"""
        pass

    @abstractmethod
    def find_by_source_file(self, source_file_name: str) -> Optional[LegacyDataAuditRecord]:
        """Most recent audit record for a file, if any"""
        pass

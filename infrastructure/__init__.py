"""
Infrastructure Package - Lazy Loading Implementation.

Provides all repository implementations with lazy loading to prevent
premature initialization of singletons, loggers, and environment variable reads.

Why Lazy Loading is Essential in Azure Functions:

    Cold Start -> Import Modules -> Runtime Init -> Ready for Triggers
         |              |                |               |
      ~500ms      NO ENV VARS!     ENV VARS SET    NOW SAFE TO USE

function_app.py is imported on every cold start, before app settings and
managed identity tokens are guaranteed to be available. Importing a
repository module here would read configuration and may create Azure
clients too early. __getattr__ defers each import until the name is first
used, which is normally inside a trigger invocation.
"""

from typing import TYPE_CHECKING

# For type checking only - doesn't actually import at runtime
if TYPE_CHECKING:
    from .factory import RepositoryFactory as _RepositoryFactory
    from .base import BaseRepository as _BaseRepository
    from .postgresql import PostgreSQLRepository as _PostgreSQLRepository
    from .audit_repository import PostgreSQLAuditRepository as _PostgreSQLAuditRepository
    from .service_bus import ServiceBusRepository as _ServiceBusRepository
    from .blob import BlobRepository as _BlobRepository, IBlobRepository as _IBlobRepository


_LAZY_IMPORTS = {
    # Factory - most common import
    "RepositoryFactory": (".factory", "RepositoryFactory"),

    # PostgreSQL repositories
    "BaseRepository": (".base", "BaseRepository"),
    "PostgreSQLRepository": (".postgresql", "PostgreSQLRepository"),
    "PostgreSQLUserRepository": (".postgresql", "PostgreSQLUserRepository"),
    "PostgreSQLProjectRepository": (".postgresql", "PostgreSQLProjectRepository"),
    "PostgreSQLFloorPlanRepository": (".postgresql", "PostgreSQLFloorPlanRepository"),
    "PostgreSQLCustomizationRepository": (".postgresql", "PostgreSQLCustomizationRepository"),
    "PostgreSQLAuditRepository": (".audit_repository", "PostgreSQLAuditRepository"),

    # Azure messaging and storage
    "ServiceBusRepository": (".service_bus", "ServiceBusRepository"),
    "BlobRepository": (".blob", "BlobRepository"),

    # Interfaces
    "IBlobRepository": (".blob", "IBlobRepository"),
    "IUserRepository": (".interface_repository", "IUserRepository"),
    "IProjectRepository": (".interface_repository", "IProjectRepository"),
    "IFloorPlanRepository": (".interface_repository", "IFloorPlanRepository"),
    "ICustomizationRepository": (".interface_repository", "ICustomizationRepository"),
    "IAuditRepository": (".interface_repository", "IAuditRepository"),
}


def __getattr__(name: str):
    """
    Lazy import mechanism - only imports when actually accessed.
    """
    if name not in _LAZY_IMPORTS:
        raise AttributeError(f"module 'infrastructure' has no attribute '{name}'")

    from importlib import import_module
    module_name, attr = _LAZY_IMPORTS[name]
    return getattr(import_module(module_name, __name__), attr)


__all__ = list(_LAZY_IMPORTS)

from .sqlalchemy_assignment_repository import SqlalchemyAssignmentRepository
from .sqlalchemy_direct_privilege_repository import SqlalchemyDirectPrivilegeRepository
from .sqlalchemy_native_server_repository import SqlalchemyNativeServerRepository
from .sqlalchemy_privilege_repository import SqlalchemyPrivilegeRepository
from .sqlalchemy_role_repository import SqlalchemyRoleRepository
from .sqlalchemy_user_repository import SqlalchemyDatabaseUserRepository

__all__ = [
    "SqlalchemyAssignmentRepository",
    "SqlalchemyDatabaseUserRepository",
    "SqlalchemyDirectPrivilegeRepository",
    "SqlalchemyNativeServerRepository",
    "SqlalchemyPrivilegeRepository",
    "SqlalchemyRoleRepository",
]

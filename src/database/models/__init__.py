from .association import RolePrivilege
from .database_user_role import DatabaseUserRole, ScopeType
from .privilege import Privilege, PrivilegeType
from .role import Role
from .user import DatabaseUser
from .user_specific_privilege import UserSpecificPrivilege

__all__ = [
    "DatabaseUser",
    "DatabaseUserRole",
    "Privilege",
    "PrivilegeType",
    "Role",
    "RolePrivilege",
    "ScopeType",
    "UserSpecificPrivilege",
]

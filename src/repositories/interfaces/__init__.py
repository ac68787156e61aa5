from .assignment import IAssignmentRepository
from .direct_privilege import IDirectPrivilegeRepository
from .native_server import INativeServerRepository
from .privilege import IPrivilegeRepository
from .role import IRoleRepository
from .user import IDatabaseUserRepository

__all__ = [
    "IAssignmentRepository",
    "IDatabaseUserRepository",
    "IDirectPrivilegeRepository",
    "INativeServerRepository",
    "IPrivilegeRepository",
    "IRoleRepository",
]

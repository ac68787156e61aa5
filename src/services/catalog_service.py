from typing import Any, Dict, List, Optional

from src.database import models
from src.database.models import PrivilegeType
from src.repositories.interfaces import IDatabaseUserRepository, IPrivilegeRepository, IRoleRepository
from src.services.cache_service import CacheService
from src.services.exceptions import (
    PrivilegeAlreadyExistsError, PrivilegeNotFoundError, RoleAlreadyExistsError, RoleNotFoundError
)
from src.services.privilege_resolver import is_global_only, map_privilege_keyword
from src.utils.sql_quoting import is_valid_keyword
from src.utils.structlog_config import get_logger

logger = get_logger(__name__)

ROLES_PREFIX = "roles"
PRIVILEGES_PREFIX = "privileges"
STATS_KEY = "stats"


def _isoformat(value):
    return value.isoformat() if value is not None else None


def role_to_dict(role: models.Role) -> Dict[str, Any]:
    return {
        "id": role.id,
        "name": role.name,
        "description": role.description,
        "is_database_role": role.is_database_role,
        "created_at": _isoformat(role.created_at),
    }


def privilege_to_dict(privilege: models.Privilege) -> Dict[str, Any]:
    return {
        "id": privilege.id,
        "name": privilege.name,
        "description": privilege.description,
        "privilege_type": privilege.privilege_type,
        "target_database": privilege.target_database,
        "target_table": privilege.target_table,
        "mysql_privilege": privilege.mysql_privilege,
        "is_global": privilege.is_global,
        "created_at": _isoformat(privilege.created_at),
    }


class CatalogService:
    """역할과 권한 템플릿, 그리고 둘 사이의 연결을 관리합니다. 목록 조회는 캐시를 거칩니다."""

    def __init__(self, role_repo: IRoleRepository, privilege_repo: IPrivilegeRepository, user_repo: IDatabaseUserRepository, cache: CacheService):
        self.role_repo = role_repo
        self.privilege_repo = privilege_repo
        self.user_repo = user_repo
        self.cache = cache

    # --- Roles ---

    def create_role(self, name: str, description: str = "", is_database_role: bool = True) -> Dict[str, Any]:
        """
        새로운 역할을 생성합니다.

        Raises:
            ValueError: 이름이 비었을 때.
            RoleAlreadyExistsError: 동일한 이름의 역할이 이미 존재할 때.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Role name is required.")
        if self.role_repo.find_by_name(name):
            raise RoleAlreadyExistsError(f"Role with name '{name}' already exists.")
        role = self.role_repo.create(models.Role(name=name, description=description or "", is_database_role=is_database_role))
        self._invalidate_roles()
        logger.info("role_created", role=name, role_id=role.id)
        return role_to_dict(role)

    def list_roles(self) -> List[Dict[str, Any]]:
        """모든 역할의 목록을 조회합니다."""
        return self.cache.get_or_load(
            CacheService.make_key(f"{ROLES_PREFIX}:list"),
            lambda: [role_to_dict(r) for r in self.role_repo.list_all()],
        )

    def get_role(self, role_id: int) -> Dict[str, Any]:
        """
        ID로 특정 역할을 조회합니다.

        Raises:
            RoleNotFoundError: 해당 ID의 역할을 찾을 수 없을 때.
        """
        return role_to_dict(self._get_role(role_id))

    def update_role(self, role_id: int, name: Optional[str] = None, description: Optional[str] = None) -> Dict[str, Any]:
        role = self._get_role(role_id)
        if name is not None and name != role.name:
            if self.role_repo.find_by_name(name):
                raise RoleAlreadyExistsError(f"Role with name '{name}' already exists.")
            role.name = name
        if description is not None:
            role.description = description
        role = self.role_repo.save(role)
        self._invalidate_roles()
        return role_to_dict(role)

    def delete_role(self, role_id: int) -> bool:
        """
        역할을 삭제합니다. 역할의 권한 연결과 할당 기록도 함께 삭제됩니다.
        이미 부여된 서버 권한은 회수하지 않으므로, 필요하면 apply-privileges로 재동기화합니다.
        """
        role = self._get_role(role_id)
        self.role_repo.delete(role)
        self._invalidate_roles()
        self.cache.invalidate(PRIVILEGES_PREFIX)
        logger.info("role_deleted", role_id=role_id)
        return True

    def list_role_privileges(self, role_id: int) -> List[Dict[str, Any]]:
        self._get_role(role_id)
        return self.cache.get_or_load(
            CacheService.make_key(f"{ROLES_PREFIX}:privileges", role_id=role_id),
            lambda: [privilege_to_dict(p) for p in self.role_repo.list_privileges(role_id)],
        )

    def add_privilege_to_role(self, role_id: int, privilege_id: int) -> bool:
        """역할에 권한을 연결합니다. 이미 연결되어 있으면 아무 일도 하지 않습니다."""
        role = self._get_role(role_id)
        privilege = self._get_privilege(privilege_id)
        self.role_repo.add_privilege(role, privilege)
        self._invalidate_links()
        return True

    def remove_privilege_from_role(self, role_id: int, privilege_id: int) -> bool:
        self._get_role(role_id)
        removed = self.role_repo.remove_privilege(role_id, privilege_id)
        self._invalidate_links()
        return removed

    def set_role_privileges(self, role_id: int, privilege_ids: List[int]) -> List[Dict[str, Any]]:
        """
        역할의 권한 연결을 주어진 목록으로 교체합니다.

        Raises:
            RoleNotFoundError: 역할이 없을 때.
            PrivilegeNotFoundError: 목록의 권한 중 하나라도 없을 때. (연결은 바뀌지 않음)
        """
        self._get_role(role_id)
        for privilege_id in privilege_ids:
            self._get_privilege(privilege_id)
        self.role_repo.replace_privileges(role_id, privilege_ids)
        self._invalidate_links()
        return [privilege_to_dict(p) for p in self.role_repo.list_privileges(role_id)]

    # --- Privileges ---

    def create_privilege(
        self,
        name: str,
        mysql_privilege: Optional[str] = None,
        description: str = "",
        privilege_type: str = PrivilegeType.DATABASE.value,
        target_database: Optional[str] = None,
        target_table: Optional[str] = None,
        is_global: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        새로운 권한 템플릿을 생성합니다.
        mysql_privilege를 생략하면 이름을 별칭 규칙에 따라 키워드로 사용합니다.

        Raises:
            ValueError: 이름이 비었거나, 권한 유형/키워드가 올바르지 않을 때.
            PrivilegeAlreadyExistsError: 동일한 이름의 권한이 이미 존재할 때.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Privilege name is required.")
        try:
            privilege_type = PrivilegeType(str(privilege_type).upper()).value
        except ValueError:
            raise ValueError(f"Unknown privilege type '{privilege_type}'.")

        keyword = map_privilege_keyword(mysql_privilege or name)
        if not is_valid_keyword(keyword):
            raise ValueError(f"Invalid privilege keyword '{keyword}'.")

        if self.privilege_repo.find_by_name(name):
            raise PrivilegeAlreadyExistsError(f"Privilege with name '{name}' already exists.")

        privilege = self.privilege_repo.create(models.Privilege(
            name=name,
            description=description or "",
            privilege_type=privilege_type,
            target_database=target_database,
            target_table=target_table,
            mysql_privilege=keyword,
            is_global=is_global_only(keyword) if is_global is None else is_global,
        ))
        self.cache.invalidate(PRIVILEGES_PREFIX)
        self.cache.invalidate(STATS_KEY)
        logger.info("privilege_created", privilege=name, mysql_privilege=keyword)
        return privilege_to_dict(privilege)

    def list_privileges(self) -> List[Dict[str, Any]]:
        """모든 권한 템플릿의 목록을 조회합니다."""
        return self.cache.get_or_load(
            CacheService.make_key(f"{PRIVILEGES_PREFIX}:list"),
            lambda: [privilege_to_dict(p) for p in self.privilege_repo.list_all()],
        )

    def get_privilege(self, privilege_id: int) -> Dict[str, Any]:
        return privilege_to_dict(self._get_privilege(privilege_id))

    def update_privilege(self, privilege_id: int, description: Optional[str] = None, mysql_privilege: Optional[str] = None) -> Dict[str, Any]:
        privilege = self._get_privilege(privilege_id)
        if description is not None:
            privilege.description = description
        if mysql_privilege is not None:
            keyword = map_privilege_keyword(mysql_privilege)
            if not is_valid_keyword(keyword):
                raise ValueError(f"Invalid privilege keyword '{keyword}'.")
            privilege.mysql_privilege = keyword
            privilege.is_global = is_global_only(keyword)
        privilege = self.privilege_repo.save(privilege)
        self._invalidate_links()
        return privilege_to_dict(privilege)

    def delete_privilege(self, privilege_id: int) -> bool:
        privilege = self._get_privilege(privilege_id)
        self.privilege_repo.delete(privilege)
        self._invalidate_links()
        self.cache.invalidate(STATS_KEY)
        return True

    def list_privilege_roles(self, privilege_id: int) -> List[Dict[str, Any]]:
        self._get_privilege(privilege_id)
        return [role_to_dict(r) for r in self.privilege_repo.list_roles(privilege_id)]

    # --- Stats ---

    def stats(self) -> Dict[str, int]:
        return self.cache.get_or_load(
            CacheService.make_key(STATS_KEY),
            lambda: {
                "database_users": self.user_repo.count(),
                "roles": self.role_repo.count(),
                "privileges": self.privilege_repo.count(),
            },
        )

    def invalidate_user_stats(self):
        """추적 계정이 생성/삭제된 뒤 호출합니다."""
        self.cache.invalidate(STATS_KEY)

    # ------------------------------------------------------------------

    def _get_role(self, role_id: int) -> models.Role:
        role = self.role_repo.find_by_id(role_id)
        if not role:
            raise RoleNotFoundError(f"Role with id '{role_id}' not found.")
        return role

    def _get_privilege(self, privilege_id: int) -> models.Privilege:
        privilege = self.privilege_repo.find_by_id(privilege_id)
        if not privilege:
            raise PrivilegeNotFoundError(f"Privilege with id '{privilege_id}' not found.")
        return privilege

    def _invalidate_roles(self):
        self.cache.invalidate(ROLES_PREFIX)
        self.cache.invalidate(STATS_KEY)

    def _invalidate_links(self):
        self.cache.invalidate(ROLES_PREFIX)
        self.cache.invalidate(PRIVILEGES_PREFIX)

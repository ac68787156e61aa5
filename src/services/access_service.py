from typing import Any, Dict, List, Optional, Tuple

from src.database import models
from src.database.models import ScopeType
from src.repositories.interfaces import (
    IAssignmentRepository, IDatabaseUserRepository, IDirectPrivilegeRepository,
    INativeServerRepository, IRoleRepository
)
from src.services.exceptions import (
    AssignmentNotFoundError, DatabaseUserNotFoundError, DirectPrivilegeNotFoundError,
    InvalidScopeError, NotFoundError, NativeStatementError, RoleNotFoundError
)
from src.services.grant_synchronizer import GrantSynchronizer, SyncReport
from src.services.privilege_resolver import (
    PrivilegeResolver, map_privilege_keyword, resolve_object_specifier, validate_scope
)
from src.utils.sql_quoting import build_grant, build_revoke, is_valid_keyword
from src.utils.structlog_config import get_logger

logger = get_logger(__name__)


def _isoformat(value):
    return value.isoformat() if value is not None else None


def assignment_to_dict(assignment: models.DatabaseUserRole) -> Dict[str, Any]:
    return {
        "id": assignment.id,
        "db_user_id": assignment.db_user_id,
        "role_id": assignment.role_id,
        "role_name": assignment.role.name if assignment.role is not None else None,
        "scope_type": assignment.scope_type,
        "target_database": assignment.target_database,
        "target_table": assignment.target_table,
        "is_active": assignment.is_active,
        "assigned_at": _isoformat(assignment.assigned_at),
        "assigned_by": assignment.assigned_by,
    }


def direct_privilege_to_dict(direct: models.UserSpecificPrivilege) -> Dict[str, Any]:
    return {
        "id": direct.id,
        "db_user_id": direct.db_user_id,
        "privilege_type": direct.privilege_type,
        "target_database": direct.target_database,
        "target_table": direct.target_table,
        "granted_at": _isoformat(direct.granted_at),
        "granted_by": direct.granted_by,
    }


class AccessService:
    """범위 역할 할당, 직접 권한 부여, 유효 권한 조회 등 계정 접근 관리 서비스를 제공합니다."""

    def __init__(
        self,
        user_repo: IDatabaseUserRepository,
        role_repo: IRoleRepository,
        assignment_repo: IAssignmentRepository,
        direct_privilege_repo: IDirectPrivilegeRepository,
        native_repo: INativeServerRepository,
        synchronizer: GrantSynchronizer,
        resolver: PrivilegeResolver,
    ):
        """
        AccessService를 초기화합니다.

        Args:
            user_repo: 추적 계정 데이터에 접근하기 위한 리포지토리.
            role_repo: 역할 데이터에 접근하기 위한 리포지토리.
            assignment_repo: 범위 역할 할당 데이터에 접근하기 위한 리포지토리.
            direct_privilege_repo: 직접 부여 권한 데이터에 접근하기 위한 리포지토리.
            native_repo: 직접 권한의 GRANT/REVOKE를 실행할 네이티브 서버 리포지토리.
            synchronizer: 역할 권한을 서버에 반영하는 동기화기.
            resolver: 유효 권한 계산기.
        """
        self.user_repo = user_repo
        self.role_repo = role_repo
        self.assignment_repo = assignment_repo
        self.direct_privilege_repo = direct_privilege_repo
        self.native_repo = native_repo
        self.synchronizer = synchronizer
        self.resolver = resolver

    # --- Scoped role assignment ---

    def assign_scoped_role(
        self,
        user_id: int,
        role_id: int,
        scope_type: str,
        target_database: Optional[str] = None,
        target_table: Optional[str] = None,
        assigned_by: str = "admin",
    ) -> Tuple[Dict[str, Any], Optional[SyncReport]]:
        """
        계정에 역할을 범위와 함께 할당하고, 그 범위로 역할의 권한을 GRANT 합니다.

        같은 (계정, 역할, 범위, 대상)의 할당이 이미 있으면 새로 만들지 않고
        기존 할당을 그대로 반환하며, GRANT도 다시 실행하지 않습니다.

        Returns:
            (할당 정보 딕셔너리, 동기화 결과). 기존 할당을 반환한 경우 동기화 결과는 None.

        Raises:
            InvalidScopeError: 범위에 필요한 대상 DB/테이블이 없을 때.
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
            RoleNotFoundError: 해당 ID의 역할을 찾을 수 없을 때.
        """
        scope = validate_scope(scope_type, target_database, target_table)
        target_database, target_table = self._normalize_targets(scope, target_database, target_table)

        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")

        role = self.role_repo.find_by_id(role_id)
        if not role:
            raise RoleNotFoundError(f"Role with id '{role_id}' not found.")

        existing = self.assignment_repo.find_matching(user_id, role_id, scope.value, target_database, target_table)
        if existing:
            logger.info("scoped_role_already_assigned", user_id=user_id, role=role.name, assignment_id=existing.id)
            return assignment_to_dict(existing), None

        assignment = self.assignment_repo.create(models.DatabaseUserRole(
            db_user_id=user_id,
            role_id=role_id,
            scope_type=scope.value,
            target_database=target_database,
            target_table=target_table,
            is_active=True,
            assigned_by=assigned_by or "admin",
        ))
        if assignment is None:
            # 동시에 들어온 같은 할당이 먼저 저장됨
            existing = self.assignment_repo.find_matching(user_id, role_id, scope.value, target_database, target_table)
            logger.info("scoped_role_assignment_race", user_id=user_id, role=role.name)
            return assignment_to_dict(existing), None

        logger.info(
            "scoped_role_assigned",
            user_id=user_id, role=role.name, scope=scope.value,
            target_database=target_database, target_table=target_table, assignment_id=assignment.id,
        )
        report = self.synchronizer.apply_role_privileges(user_id, role_id, scope.value, target_database, target_table)
        return assignment_to_dict(assignment), report

    def assign_scoped_role_to_tables(self, user_id: int, role_id: int, target_database: str, target_tables: List[str], assigned_by: str = "admin") -> Dict[str, Any]:
        """
        같은 역할을 한 데이터베이스의 여러 테이블에 TABLE 범위로 할당합니다.
        테이블별 실패는 모아서 반환하고 나머지 테이블을 계속 처리합니다.

        Raises:
            InvalidScopeError: 대상 DB가 없거나 테이블 목록이 비었을 때.
        """
        if not target_database or not target_tables:
            raise InvalidScopeError("Target database and tables array are required for TABLE scope bulk assignment.")

        assignments, errors = [], []
        for table in target_tables:
            try:
                assignment, _ = self.assign_scoped_role(user_id, role_id, ScopeType.TABLE.value, target_database, table, assigned_by)
                assignments.append(assignment)
            except (NotFoundError, InvalidScopeError) as e:
                logger.error("table_assignment_failed", user_id=user_id, role_id=role_id, table=table, error=str(e))
                errors.append({"table": table, "error": str(e)})

        return {
            "assignments": assignments,
            "errors": errors,
            "total_requested": len(target_tables),
            "successful_assignments": len(assignments),
            "failed_assignments": len(errors),
        }

    def revoke_scoped_role(self, user_id: int, assignment_id: int) -> SyncReport:
        """
        범위 역할 할당을 회수합니다. 네이티브 REVOKE를 먼저 시도한 뒤에만 할당 기록을 삭제합니다.
        REVOKE 단계에서 예외가 나면 기록은 그대로 남습니다.

        Raises:
            AssignmentNotFoundError: 할당이 없거나 해당 계정의 할당이 아닐 때.
        """
        assignment = self.assignment_repo.find_by_id(assignment_id)
        if not assignment or assignment.db_user_id != user_id:
            raise AssignmentNotFoundError(f"Role assignment '{assignment_id}' not found for database user '{user_id}'.")

        report = self.synchronizer.revoke_role_privileges(
            user_id, assignment.role_id, assignment.scope_type, assignment.target_database, assignment.target_table
        )
        self.assignment_repo.delete(assignment)
        logger.info("scoped_role_revoked", user_id=user_id, assignment_id=assignment_id)
        return report

    def list_scoped_roles(self, user_id: int) -> List[Dict[str, Any]]:
        """
        계정의 활성 범위 역할 할당 목록을 조회합니다.

        Raises:
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
        """
        if not self.user_repo.find_by_id(user_id):
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")
        return [assignment_to_dict(a) for a in self.assignment_repo.list_by_user(user_id)]

    def replace_roles(self, user_id: int, role_ids: List[int], assigned_by: str = "admin") -> SyncReport:
        """
        계정의 모든 할당을 주어진 역할들의 GLOBAL 할당으로 교체하고, 전체 재동기화 경로로 권한을 다시 적용합니다.

        Raises:
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
            RoleNotFoundError: 목록의 역할 중 하나라도 없을 때. (할당은 바뀌지 않음)
        """
        if not self.user_repo.find_by_id(user_id):
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")

        unique_role_ids = list(dict.fromkeys(role_ids or []))
        for role_id in unique_role_ids:
            if not self.role_repo.find_by_id(role_id):
                raise RoleNotFoundError(f"Role with id '{role_id}' not found.")

        self.assignment_repo.replace_for_user(user_id, [
            models.DatabaseUserRole(
                db_user_id=user_id, role_id=role_id, scope_type=ScopeType.GLOBAL.value,
                is_active=True, assigned_by=assigned_by or "admin",
            )
            for role_id in unique_role_ids
        ])
        logger.info("roles_replaced", user_id=user_id, role_ids=unique_role_ids)
        return self.synchronizer.apply_privileges_to_database_user(user_id)

    # --- Direct privilege grants ---

    def grant_direct_privilege(
        self,
        user_id: int,
        privilege_keyword: str,
        target_database: str,
        target_table: Optional[str] = None,
        granted_by: str = "admin",
    ) -> Dict[str, Any]:
        """
        역할을 거치지 않고 권한 하나를 (DB[, 테이블])에 직접 GRANT 합니다.

        같은 (계정, 권한, DB, 테이블) 기록이 이미 있으면 GRANT 없이 기존 기록을 반환합니다.
        GRANT가 성공한 뒤에만 기록을 저장합니다.

        Raises:
            ValueError: 권한 키워드가 올바르지 않을 때.
            InvalidScopeError: 대상 DB가 없을 때.
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
            NativeStatementError: GRANT가 실패했을 때. (기록은 저장되지 않음)
        """
        keyword = map_privilege_keyword(privilege_keyword or "")
        if not is_valid_keyword(keyword):
            raise ValueError(f"Invalid privilege keyword '{privilege_keyword}'.")

        target_table = target_table or None
        scope = ScopeType.TABLE if target_table else ScopeType.DATABASE
        validate_scope(scope, target_database, target_table)

        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")

        existing = self.direct_privilege_repo.find_matching(user_id, keyword, target_database, target_table)
        if existing:
            logger.info("direct_privilege_already_granted", user_id=user_id, privilege=keyword, direct_privilege_id=existing.id)
            return direct_privilege_to_dict(existing)

        object_spec = resolve_object_specifier(keyword, scope, target_database, target_table)
        self.native_repo.execute(build_grant(keyword, object_spec, user.username, user.host))
        self.native_repo.flush_privileges()

        direct = self.direct_privilege_repo.create(models.UserSpecificPrivilege(
            db_user_id=user_id,
            privilege_type=keyword,
            target_database=target_database,
            target_table=target_table,
            granted_by=granted_by or "admin",
        ))
        if direct is None:
            direct = self.direct_privilege_repo.find_matching(user_id, keyword, target_database, target_table)
            logger.info("direct_privilege_grant_race", user_id=user_id, privilege=keyword)

        logger.info("direct_privilege_granted", user_id=user_id, privilege=keyword, object=object_spec)
        return direct_privilege_to_dict(direct)

    def revoke_direct_privilege(self, user_id: int, direct_privilege_id: int) -> bool:
        """
        직접 부여한 권한을 REVOKE 하고 기록을 삭제합니다.

        Raises:
            DirectPrivilegeNotFoundError: 기록이 없거나 해당 계정의 기록이 아닐 때.
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
            NativeStatementError: REVOKE가 실패했을 때. (기록은 남음)
        """
        direct = self.direct_privilege_repo.find_by_id(direct_privilege_id)
        if not direct or direct.db_user_id != user_id:
            raise DirectPrivilegeNotFoundError(f"Privilege '{direct_privilege_id}' not found for database user '{user_id}'.")

        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")

        scope = ScopeType.TABLE if direct.target_table else ScopeType.DATABASE
        object_spec = resolve_object_specifier(direct.privilege_type, scope, direct.target_database, direct.target_table)
        statement = build_revoke(direct.privilege_type, object_spec, user.username, user.host)
        try:
            self.native_repo.execute(statement)
        except NativeStatementError:
            logger.error("direct_privilege_revoke_failed", user_id=user_id, statement=statement)
            raise
        self.native_repo.flush_privileges()

        self.direct_privilege_repo.delete(direct)
        logger.info("direct_privilege_revoked", user_id=user_id, direct_privilege_id=direct_privilege_id)
        return True

    def list_direct_privileges(self, user_id: int) -> List[Dict[str, Any]]:
        """계정에 직접 부여된 권한 목록을 조회합니다."""
        if not self.user_repo.find_by_id(user_id):
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")
        return [direct_privilege_to_dict(d) for d in self.direct_privilege_repo.list_by_user(user_id)]

    # --- Effective privileges / apply ---

    def resolve_effective_privileges(self, user_id: int) -> Dict[str, List[Dict[str, Any]]]:
        """계정의 유효 권한(역할 경유 + 직접)을 조회합니다."""
        return self.resolver.resolve_effective_privileges(user_id)

    def apply_privileges_to_user(self, user_id: int, database_name: str = "*") -> SyncReport:
        """계정의 모든 역할 권한을 처음부터 다시 적용합니다."""
        return self.synchronizer.apply_privileges_to_database_user(user_id, database_name or "*")

    @staticmethod
    def _normalize_targets(scope: ScopeType, target_database: Optional[str], target_table: Optional[str]):
        # 범위에 쓰이지 않는 대상은 저장하지 않아야 중복 판정이 일관됩니다.
        if scope == ScopeType.GLOBAL:
            return None, None
        if scope == ScopeType.DATABASE:
            return target_database, None
        return target_database, target_table

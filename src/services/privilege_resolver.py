from typing import Any, Dict, List, Optional

from src.database import models
from src.database.models import ScopeType
from src.repositories.interfaces import (
    IAssignmentRepository, IDatabaseUserRepository, IDirectPrivilegeRepository
)
from src.services.exceptions import DatabaseUserNotFoundError, InvalidScopeError
from src.utils.sql_quoting import normalize_keyword, quote_identifier
from src.utils.structlog_config import get_logger

logger = get_logger(__name__)

# 서버 전체(*.*)에만 부여할 수 있는 권한 키워드
GLOBAL_ONLY_PRIVILEGES = frozenset({
    "CREATE USER",
    "DROP USER",
    "RELOAD",
    "PROCESS",
    "SUPER",
    "SHUTDOWN",
    "REPLICATION SLAVE",
    "REPLICATION CLIENT",
    "FILE",
})

# 권한 이름 → 네이티브 키워드 별칭. 여기에 없는 이름은 그대로 키워드로 씁니다.
# DROP USER는 계정 관리 권한이므로 테이블 수준의 DROP으로 바꾸지 않습니다.
PRIVILEGE_ALIASES = {
    "ALL PRIVILEGES": "ALL PRIVILEGES",
    "SHOW DATABASES": "SHOW DATABASES",
    "CREATE USER": "CREATE USER",
    "DROP USER": "DROP USER",
    "GRANT OPTION": "GRANT OPTION",
}

GLOBAL_OBJECT = "*.*"


def map_privilege_keyword(name: str) -> str:
    """권한 이름을 GRANT 문에 쓸 네이티브 키워드로 바꿉니다."""
    keyword = normalize_keyword(name)
    return PRIVILEGE_ALIASES.get(keyword, keyword)


def is_global_only(keyword: str) -> bool:
    return normalize_keyword(keyword) in GLOBAL_ONLY_PRIVILEGES


def _is_blank(value: Optional[str]) -> bool:
    # 화면에서 넘어온 문자열 "null"도 값이 없는 것으로 취급합니다.
    return value is None or value.strip() == "" or value.strip().lower() == "null"


def parse_scope_type(scope_type: Any) -> ScopeType:
    if isinstance(scope_type, ScopeType):
        return scope_type
    try:
        return ScopeType(str(scope_type).upper())
    except ValueError:
        raise InvalidScopeError(f"Unknown scope type '{scope_type}'.")


def validate_scope(scope_type: Any, target_database: Optional[str], target_table: Optional[str]) -> ScopeType:
    """
    API 경계에서 (범위, 대상 DB, 대상 테이블) 조합을 검증합니다.

    Raises:
        InvalidScopeError: 범위에 필요한 대상이 빠졌거나 알 수 없는 범위일 때.
    """
    scope = parse_scope_type(scope_type)
    if scope == ScopeType.DATABASE and _is_blank(target_database):
        raise InvalidScopeError("Target database is required for DATABASE scope.")
    if scope == ScopeType.TABLE and (_is_blank(target_database) or _is_blank(target_table)):
        raise InvalidScopeError("Target database and table are required for TABLE scope.")
    return scope


def resolve_object_specifier(
    privilege_keyword: str,
    scope_type: Any,
    target_database: Optional[str] = None,
    target_table: Optional[str] = None,
) -> str:
    """
    권한 키워드와 범위를 GRANT/REVOKE 문의 객체 지정자로 바꿉니다.

    - 전역 전용 키워드는 요청한 범위와 관계없이 항상 *.* 입니다. (DATABASE/TABLE 요청은 넓혀서 적용)
    - GLOBAL → *.*
    - DATABASE → `db`.*
    - TABLE → `db`.`table`

    Raises:
        InvalidScopeError: 범위에 필요한 대상 DB/테이블이 없을 때.
    """
    scope = parse_scope_type(scope_type)
    if is_global_only(privilege_keyword):
        if scope != ScopeType.GLOBAL:
            logger.info(
                "global_only_privilege_widened",
                privilege=privilege_keyword,
                requested_scope=scope.value,
                target_database=target_database,
                target_table=target_table,
            )
        return GLOBAL_OBJECT

    if scope == ScopeType.GLOBAL:
        return GLOBAL_OBJECT
    if scope == ScopeType.DATABASE and not _is_blank(target_database):
        return f"{quote_identifier(target_database)}.*"
    if scope == ScopeType.TABLE and not _is_blank(target_database) and not _is_blank(target_table):
        return f"{quote_identifier(target_database)}.{quote_identifier(target_table)}"

    raise InvalidScopeError(
        f"Cannot resolve {scope.value} scope with database={target_database!r}, table={target_table!r}."
    )


def native_keyword_for(privilege: models.Privilege) -> Optional[str]:
    """권한 템플릿에 설정된 네이티브 키워드를 반환합니다. 설정되지 않았으면 None."""
    if _is_blank(privilege.mysql_privilege):
        return None
    return map_privilege_keyword(privilege.mysql_privilege)


def _isoformat(value):
    return value.isoformat() if value is not None else None


class PrivilegeResolver:
    """계정의 범위 역할 할당과 직접 권한으로부터 필요한 네이티브 권한을 계산합니다."""

    def __init__(self, user_repo: IDatabaseUserRepository, assignment_repo: IAssignmentRepository, direct_privilege_repo: IDirectPrivilegeRepository):
        self.user_repo = user_repo
        self.assignment_repo = assignment_repo
        self.direct_privilege_repo = direct_privilege_repo

    def resolve_effective_privileges(self, user_id: int) -> Dict[str, List[Dict[str, Any]]]:
        """
        계정의 유효 권한을 역할 경유 권한과 직접 권한으로 나누어 반환합니다.
        두 집합은 회수 방식과 출처가 다르므로 합치지 않습니다.

        Returns:
            {"role_privileges": [...], "direct_privileges": [...]}.
            역할 경유 권한은 (권한, 범위, 대상) 단위로 중복을 제거하며, 같은 권한을 준 역할 이름을 모두 담습니다.

        Raises:
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
        """
        if not self.user_repo.find_by_id(user_id):
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")

        role_privileges: Dict[tuple, Dict[str, Any]] = {}
        for assignment, role, privilege in self.assignment_repo.list_role_privileges_for_user(user_id):
            key = (privilege.id, assignment.scope_type, assignment.target_database, assignment.target_table)
            entry = role_privileges.get(key)
            if entry:
                if role.name not in entry["roles"]:
                    entry["roles"].append(role.name)
                entry["assignment_ids"].append(assignment.id)
                continue

            keyword = native_keyword_for(privilege)
            object_spec = None
            if keyword:
                try:
                    object_spec = resolve_object_specifier(keyword, assignment.scope_type, assignment.target_database, assignment.target_table)
                except InvalidScopeError:
                    object_spec = None
            role_privileges[key] = {
                "privilege_id": privilege.id,
                "privilege_name": privilege.name,
                "mysql_privilege": keyword,
                "roles": [role.name],
                "assignment_ids": [assignment.id],
                "scope_type": assignment.scope_type,
                "target_database": assignment.target_database,
                "target_table": assignment.target_table,
                "object_spec": object_spec,
            }

        direct_privileges = []
        for direct in self.direct_privilege_repo.list_by_user(user_id):
            scope = ScopeType.TABLE if direct.target_table else ScopeType.DATABASE
            try:
                object_spec = resolve_object_specifier(direct.privilege_type, scope, direct.target_database, direct.target_table)
            except InvalidScopeError:
                object_spec = None
            direct_privileges.append({
                "id": direct.id,
                "privilege_type": direct.privilege_type,
                "target_database": direct.target_database,
                "target_table": direct.target_table,
                "object_spec": object_spec,
                "granted_at": _isoformat(direct.granted_at),
                "granted_by": direct.granted_by,
            })

        return {"role_privileges": list(role_privileges.values()), "direct_privileges": direct_privileges}

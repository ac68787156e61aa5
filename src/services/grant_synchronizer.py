import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from src.database import models
from src.repositories.interfaces import (
    IAssignmentRepository, IDatabaseUserRepository, INativeServerRepository, IRoleRepository
)
from src.services.exceptions import (
    DatabaseUserNotFoundError, InvalidScopeError, NativeConnectionError,
    NativeStatementError, NotFoundError, RoleNotFoundError
)
from src.services.privilege_resolver import (
    GLOBAL_OBJECT, is_global_only, map_privilege_keyword, native_keyword_for,
    parse_scope_type, resolve_object_specifier
)
from src.utils.sql_quoting import build_grant, build_revoke, is_valid_keyword, quote_identifier
from src.utils.structlog_config import get_logger

logger = get_logger(__name__)

_SUPERUSER_GRANT = re.compile(r"^GRANT ALL PRIVILEGES ON \*\.\* TO ", re.IGNORECASE)


@dataclass
class SyncReport:
    """GRANT/REVOKE 일괄 실행 결과. 문장 하나의 실패가 전체를 중단시키지 않으므로 항목별로 기록합니다."""
    account: str
    granted: List[str] = field(default_factory=list)
    revoked: List[str] = field(default_factory=list)
    skipped: List[Dict[str, str]] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)
    flushed: bool = False
    skipped_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class GrantSynchronizer:
    """역할/권한 카탈로그를 실제 서버의 GRANT/REVOKE 상태로 반영합니다."""

    def __init__(self, user_repo: IDatabaseUserRepository, role_repo: IRoleRepository, assignment_repo: IAssignmentRepository, native_repo: INativeServerRepository):
        self.user_repo = user_repo
        self.role_repo = role_repo
        self.assignment_repo = assignment_repo
        self.native_repo = native_repo

    def apply_role_privileges(self, user_id: int, role_id: int, scope_type: str, target_database: Optional[str] = None, target_table: Optional[str] = None) -> SyncReport:
        """
        역할 하나의 권한을 주어진 범위로 계정에 GRANT 합니다.

        이미 ALL PRIVILEGES ON *.* 를 가진 계정은 아무 것도 하지 않습니다.
        개별 GRANT 실패는 기록만 하고 나머지 권한을 계속 처리합니다.

        Raises:
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
            RoleNotFoundError: 해당 ID의 역할을 찾을 수 없을 때.
            NativeConnectionError: 서버에 연결할 수 없을 때.
        """
        user = self._get_user(user_id)
        role = self._get_role(role_id)
        scope = parse_scope_type(scope_type)
        report = SyncReport(account=self._account_name(user))

        if self._has_global_all_privileges(user):
            report.skipped_reason = "superuser"
            logger.info("apply_skipped_superuser", account=report.account, role=role.name)
            return report

        for privilege in self.role_repo.list_privileges(role.id):
            self._run_privilege(report, "GRANT", privilege, scope, target_database, target_table, user)

        self._flush(report)
        logger.info(
            "role_privileges_applied",
            account=report.account, role=role.name, scope=scope.value,
            granted=len(report.granted), skipped=len(report.skipped), failed=len(report.failed),
        )
        return report

    def revoke_role_privileges(self, user_id: int, role_id: int, scope_type: str, target_database: Optional[str] = None, target_table: Optional[str] = None) -> SyncReport:
        """
        apply_role_privileges의 반대로, 역할 하나의 권한을 주어진 범위에서 REVOKE 합니다.
        할당 기록을 지우기 전에 반드시 먼저 호출되어야 합니다.

        Raises:
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
            RoleNotFoundError: 해당 ID의 역할을 찾을 수 없을 때.
            NativeConnectionError: 서버에 연결할 수 없을 때.
        """
        user = self._get_user(user_id)
        role = self._get_role(role_id)
        scope = parse_scope_type(scope_type)
        report = SyncReport(account=self._account_name(user))

        for privilege in self.role_repo.list_privileges(role.id):
            self._run_privilege(report, "REVOKE", privilege, scope, target_database, target_table, user)

        self._flush(report)
        logger.info(
            "role_privileges_revoked",
            account=report.account, role=role.name, scope=scope.value,
            revoked=len(report.revoked), skipped=len(report.skipped), failed=len(report.failed),
        )
        return report

    def apply_privileges_to_database_user(self, user_id: int, database_name: str = "*") -> SyncReport:
        """
        계정의 권한을 처음부터 다시 적용합니다. (전체 재동기화 경로)

        1. REVOKE ALL PRIVILEGES ON *.* 로 기존 권한을 모두 지웁니다. (실패해도 계속)
        2. 활성 할당의 모든 역할이 가진 권한 이름을 하나의 집합으로 합칩니다. (범위는 무시)
        3. ALL PRIVILEGES는 database_name.*, 전역 전용 권한은 *.*, 나머지는 database_name.* 에 GRANT 합니다.

        Args:
            user_id: 추적 계정 ID.
            database_name: 권한을 적용할 데이터베이스. '*'이면 서버 전체.

        Raises:
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
            NativeConnectionError: 서버에 연결할 수 없을 때.
        """
        user = self._get_user(user_id)
        report = SyncReport(account=self._account_name(user))

        revoke_all = build_revoke("ALL PRIVILEGES", GLOBAL_OBJECT, user.username, user.host)
        try:
            self.native_repo.execute(revoke_all)
            report.revoked.append(revoke_all)
        except NativeStatementError as e:
            # 네이티브 계정이 아직 없거나 회수할 권한이 없는 경우
            logger.info("clean_slate_revoke_skipped", account=report.account, error=e.message)

        keywords = self._collect_role_keywords(user_id)
        database_object = GLOBAL_OBJECT if database_name in (None, "", "*") else f"{quote_identifier(database_name)}.*"

        for keyword in keywords:
            if not is_valid_keyword(keyword):
                report.skipped.append({"privilege": keyword, "reason": "invalid privilege keyword"})
                logger.warning("privilege_skipped", account=report.account, privilege=keyword, reason="invalid privilege keyword")
                continue
            if keyword == "ALL PRIVILEGES":
                object_spec = database_object
            elif is_global_only(keyword):
                object_spec = GLOBAL_OBJECT
            else:
                object_spec = database_object
            self._execute_tolerant(report, report.granted, build_grant(keyword, object_spec, user.username, user.host))

        self._flush(report)
        if keywords:
            logger.info("privileges_reapplied", account=report.account, privileges=keywords, database=database_name)
        else:
            logger.info("no_privileges_to_apply", account=report.account)
        return report

    def apply_privileges_to_all_users(self, database_name: str = "*") -> Dict[str, Any]:
        """
        활성 할당이 있는 모든 계정에 apply_privileges_to_database_user를 실행합니다.
        계정별 오류는 모아서 반환하고 나머지 계정을 계속 처리합니다.
        """
        reports = []
        errors = []
        for user_id in self.assignment_repo.list_user_ids_with_active_assignments():
            try:
                reports.append(self.apply_privileges_to_database_user(user_id, database_name))
            except NotFoundError as e:
                logger.error("reapply_failed", user_id=user_id, error=str(e))
                errors.append({"user_id": user_id, "error": str(e)})
        return {"reports": reports, "errors": errors}

    def get_native_grants(self, user_id: int) -> List[str]:
        """
        계정의 실제 서버 권한(SHOW GRANTS)을 조회합니다.

        Raises:
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
            NativeStatementError: 서버에 해당 계정이 없을 때.
        """
        user = self._get_user(user_id)
        return self.native_repo.show_grants(user.username, user.host)

    # ------------------------------------------------------------------

    def _get_user(self, user_id: int) -> models.DatabaseUser:
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")
        return user

    def _get_role(self, role_id: int) -> models.Role:
        role = self.role_repo.find_by_id(role_id)
        if not role:
            raise RoleNotFoundError(f"Role with id '{role_id}' not found.")
        return role

    @staticmethod
    def _account_name(user: models.DatabaseUser) -> str:
        return f"{user.username}@{user.host}"

    def _has_global_all_privileges(self, user: models.DatabaseUser) -> bool:
        try:
            grants = self.native_repo.show_grants(user.username, user.host)
        except (NativeStatementError, NativeConnectionError) as e:
            # 권한 조회 실패가 적용 자체를 막지는 않습니다.
            logger.warning("grant_inspection_failed", account=self._account_name(user), error=str(e))
            return False
        return any(_SUPERUSER_GRANT.match(grant) for grant in grants)

    def _collect_role_keywords(self, user_id: int) -> List[str]:
        keywords: Dict[str, None] = {}
        role_ids = dict.fromkeys(a.role_id for a in self.assignment_repo.list_by_user(user_id, active_only=True))
        for role_id in role_ids:
            for privilege in self.role_repo.list_privileges(role_id):
                keywords[map_privilege_keyword(privilege.mysql_privilege or privilege.name)] = None
        return list(keywords)

    def _run_privilege(self, report: SyncReport, action: str, privilege: models.Privilege, scope, target_database, target_table, user: models.DatabaseUser):
        keyword = native_keyword_for(privilege)
        if keyword is None:
            self._skip(report, privilege.name, "no native privilege configured")
            return
        if not is_valid_keyword(keyword):
            self._skip(report, privilege.name, f"invalid privilege keyword '{keyword}'")
            return
        try:
            object_spec = resolve_object_specifier(keyword, scope, target_database, target_table)
        except InvalidScopeError as e:
            self._skip(report, privilege.name, str(e))
            return

        if action == "GRANT":
            self._execute_tolerant(report, report.granted, build_grant(keyword, object_spec, user.username, user.host))
        else:
            self._execute_tolerant(report, report.revoked, build_revoke(keyword, object_spec, user.username, user.host))

    def _skip(self, report: SyncReport, privilege_name: str, reason: str):
        report.skipped.append({"privilege": privilege_name, "reason": reason})
        logger.warning("privilege_skipped", account=report.account, privilege=privilege_name, reason=reason)

    def _execute_tolerant(self, report: SyncReport, succeeded: List[str], statement: str):
        try:
            self.native_repo.execute(statement)
        except NativeStatementError as e:
            report.failed.append({"statement": statement, "error": e.message})
            logger.error("native_statement_failed", account=report.account, statement=statement, error=e.message)
            return
        succeeded.append(statement)

    def _flush(self, report: SyncReport):
        try:
            self.native_repo.flush_privileges()
            report.flushed = True
        except NativeStatementError as e:
            report.failed.append({"statement": "FLUSH PRIVILEGES", "error": e.message})
            logger.error("flush_privileges_failed", account=report.account, error=e.message)

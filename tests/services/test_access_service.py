# tests/services/test_access_service.py
import pytest
from unittest.mock import MagicMock, ANY

from src.services.access_service import AccessService
from src.services.grant_synchronizer import GrantSynchronizer, SyncReport
from src.services.privilege_resolver import PrivilegeResolver
from src.services.exceptions import *
from src.repositories.interfaces import (
    IAssignmentRepository, IDatabaseUserRepository, IDirectPrivilegeRepository,
    INativeServerRepository, IRoleRepository
)
from src.database import models

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def user() -> models.DatabaseUser:
    return models.DatabaseUser(id=1, username="U", host="%")

@pytest.fixture
def mock_user_repo(user) -> MagicMock:
    repo = MagicMock(spec=IDatabaseUserRepository)
    repo.find_by_id.return_value = user
    return repo

@pytest.fixture
def mock_role_repo() -> MagicMock:
    repo = MagicMock(spec=IRoleRepository)
    repo.find_by_id.return_value = models.Role(id=3, name="Analyst")
    return repo

@pytest.fixture
def mock_assignment_repo() -> MagicMock:
    repo = MagicMock(spec=IAssignmentRepository)
    repo.find_matching.return_value = None
    return repo

@pytest.fixture
def mock_direct_privilege_repo() -> MagicMock:
    repo = MagicMock(spec=IDirectPrivilegeRepository)
    repo.find_matching.return_value = None
    return repo

@pytest.fixture
def mock_native_repo() -> MagicMock:
    return MagicMock(spec=INativeServerRepository)

@pytest.fixture
def mock_synchronizer() -> MagicMock:
    sync = MagicMock(spec=GrantSynchronizer)
    sync.apply_role_privileges.return_value = SyncReport(account="U@%")
    sync.revoke_role_privileges.return_value = SyncReport(account="U@%")
    sync.apply_privileges_to_database_user.return_value = SyncReport(account="U@%")
    return sync

@pytest.fixture
def mock_resolver() -> MagicMock:
    return MagicMock(spec=PrivilegeResolver)

@pytest.fixture
def access_service(
    mock_user_repo, mock_role_repo, mock_assignment_repo, mock_direct_privilege_repo,
    mock_native_repo, mock_synchronizer, mock_resolver
) -> AccessService:
    """테스트에 사용될 AccessService 인스턴스를 생성하고, 의존성을 주입합니다."""
    return AccessService(
        mock_user_repo, mock_role_repo, mock_assignment_repo, mock_direct_privilege_repo,
        mock_native_repo, mock_synchronizer, mock_resolver
    )

def _saved(model, new_id: int):
    model.id = new_id
    return model

# ===================================================================
#  범위 역할 할당 테스트
# ===================================================================
class TestAssignScopedRole:
    def test_assign_creates_and_applies(self, access_service: AccessService, mock_assignment_repo: MagicMock, mock_synchronizer: MagicMock):
        # === Arrange ===
        mock_assignment_repo.create.side_effect = lambda a: _saved(a, 50)

        # === Act ===
        assignment, report = access_service.assign_scoped_role(1, 3, "database", "shop", "ignored")

        # === Assert ===
        assert assignment["id"] == 50
        assert assignment["scope_type"] == "DATABASE"
        # 검증: DATABASE 범위에서는 테이블 값이 저장되지 않음
        assert assignment["target_table"] is None
        mock_assignment_repo.find_matching.assert_called_once_with(1, 3, "DATABASE", "shop", None)
        mock_synchronizer.apply_role_privileges.assert_called_once_with(1, 3, "DATABASE", "shop", None)
        assert isinstance(report, SyncReport)

    def test_assign_is_idempotent(self, access_service: AccessService, mock_assignment_repo: MagicMock, mock_synchronizer: MagicMock):
        """같은 할당이 이미 있으면 기존 행을 반환하고 GRANT를 다시 실행하지 않습니다."""
        # === Arrange ===
        existing = models.DatabaseUserRole(id=7, db_user_id=1, role_id=3, scope_type="GLOBAL", is_active=True)
        mock_assignment_repo.find_matching.return_value = existing

        # === Act ===
        assignment, report = access_service.assign_scoped_role(1, 3, "GLOBAL")

        # === Assert ===
        assert assignment["id"] == 7
        assert report is None
        mock_assignment_repo.create.assert_not_called()
        mock_synchronizer.apply_role_privileges.assert_not_called()

    def test_assign_race_returns_winner(self, access_service: AccessService, mock_assignment_repo: MagicMock, mock_synchronizer: MagicMock):
        # === Arrange ===
        winner = models.DatabaseUserRole(id=8, db_user_id=1, role_id=3, scope_type="GLOBAL")
        # 시나리오: 확인 시점에는 없었지만 INSERT 시 고유 제약 위반
        mock_assignment_repo.find_matching.side_effect = [None, winner]
        mock_assignment_repo.create.return_value = None

        # === Act ===
        assignment, report = access_service.assign_scoped_role(1, 3, "GLOBAL")

        # === Assert ===
        assert assignment["id"] == 8
        assert report is None
        mock_synchronizer.apply_role_privileges.assert_not_called()

    def test_invalid_scope_rejected_before_lookup(self, access_service: AccessService, mock_user_repo: MagicMock):
        with pytest.raises(InvalidScopeError):
            access_service.assign_scoped_role(1, 3, "TABLE", "shop", None)
        mock_user_repo.find_by_id.assert_not_called()

    def test_unknown_role(self, access_service: AccessService, mock_role_repo: MagicMock, mock_assignment_repo: MagicMock):
        mock_role_repo.find_by_id.return_value = None
        with pytest.raises(RoleNotFoundError):
            access_service.assign_scoped_role(1, 99, "GLOBAL")
        mock_assignment_repo.create.assert_not_called()

    def test_unknown_user(self, access_service: AccessService, mock_user_repo: MagicMock, mock_assignment_repo: MagicMock):
        mock_user_repo.find_by_id.return_value = None
        with pytest.raises(DatabaseUserNotFoundError):
            access_service.assign_scoped_role(99, 3, "GLOBAL")
        mock_assignment_repo.create.assert_not_called()

    def test_bulk_table_assignment_collects_errors(self, access_service: AccessService, mock_assignment_repo: MagicMock):
        # === Arrange ===
        mock_assignment_repo.create.side_effect = lambda a: _saved(a, 60)

        # === Act ===
        result = access_service.assign_scoped_role_to_tables(1, 3, "shop", ["orders", "null", "items"])

        # === Assert ===
        assert result["total_requested"] == 3
        assert result["successful_assignments"] == 2
        assert result["failed_assignments"] == 1
        assert result["errors"][0]["table"] == "null"

    def test_bulk_requires_tables(self, access_service: AccessService):
        with pytest.raises(InvalidScopeError):
            access_service.assign_scoped_role_to_tables(1, 3, "shop", [])

# ===================================================================
#  범위 역할 회수 테스트
# ===================================================================
class TestRevokeScopedRole:
    def test_revoke_before_delete(self, access_service: AccessService, mock_assignment_repo: MagicMock, mock_synchronizer: MagicMock):
        """네이티브 REVOKE를 먼저 실행한 뒤 할당 행을 삭제합니다."""
        # === Arrange ===
        assignment = models.DatabaseUserRole(id=7, db_user_id=1, role_id=3, scope_type="TABLE", target_database="shop", target_table="orders")
        mock_assignment_repo.find_by_id.return_value = assignment
        order = []
        mock_synchronizer.revoke_role_privileges.side_effect = lambda *a: order.append("revoke") or SyncReport(account="U@%")
        mock_assignment_repo.delete.side_effect = lambda a: order.append("delete") or True

        # === Act ===
        access_service.revoke_scoped_role(1, 7)

        # === Assert ===
        assert order == ["revoke", "delete"]
        mock_synchronizer.revoke_role_privileges.assert_called_once_with(1, 3, "TABLE", "shop", "orders")

    def test_row_kept_when_revoke_raises(self, access_service: AccessService, mock_assignment_repo: MagicMock, mock_synchronizer: MagicMock):
        # === Arrange ===
        mock_assignment_repo.find_by_id.return_value = models.DatabaseUserRole(id=7, db_user_id=1, role_id=3, scope_type="GLOBAL")
        mock_synchronizer.revoke_role_privileges.side_effect = NativeConnectionError("(2003) Can't connect")

        # === Act & Assert ===
        with pytest.raises(NativeConnectionError):
            access_service.revoke_scoped_role(1, 7)
        mock_assignment_repo.delete.assert_not_called()

    def test_foreign_assignment_not_found(self, access_service: AccessService, mock_assignment_repo: MagicMock, mock_synchronizer: MagicMock):
        # === Arrange ===
        mock_assignment_repo.find_by_id.return_value = models.DatabaseUserRole(id=7, db_user_id=2, role_id=3, scope_type="GLOBAL")

        # === Act & Assert ===
        with pytest.raises(AssignmentNotFoundError):
            access_service.revoke_scoped_role(1, 7)
        mock_synchronizer.revoke_role_privileges.assert_not_called()

    def test_replace_roles_runs_bulk_path(self, access_service: AccessService, mock_assignment_repo: MagicMock, mock_synchronizer: MagicMock):
        # === Act ===
        access_service.replace_roles(1, [3, 4, 3], assigned_by="ops")

        # === Assert ===
        replaced = mock_assignment_repo.replace_for_user.call_args[0][1]
        assert [a.role_id for a in replaced] == [3, 4]
        assert all(a.scope_type == "GLOBAL" and a.assigned_by == "ops" for a in replaced)
        mock_synchronizer.apply_privileges_to_database_user.assert_called_once_with(1)

    def test_replace_roles_unknown_role_changes_nothing(self, access_service: AccessService, mock_role_repo: MagicMock, mock_assignment_repo: MagicMock):
        mock_role_repo.find_by_id.side_effect = lambda role_id: models.Role(id=3, name="Analyst") if role_id == 3 else None
        with pytest.raises(RoleNotFoundError):
            access_service.replace_roles(1, [3, 99])
        mock_assignment_repo.replace_for_user.assert_not_called()

# ===================================================================
#  직접 권한 테스트
# ===================================================================
class TestDirectPrivileges:
    def test_grant_twice_issues_one_statement(self, access_service: AccessService, mock_direct_privilege_repo: MagicMock, mock_native_repo: MagicMock):
        """같은 직접 권한을 두 번 부여하면 행 하나, GRANT 한 번만 남습니다."""
        # === Arrange ===
        rows = []

        def find_matching(*args):
            return rows[0] if rows else None

        def create(direct):
            rows.append(_saved(direct, 70))
            return direct
        mock_direct_privilege_repo.find_matching.side_effect = find_matching
        mock_direct_privilege_repo.create.side_effect = create

        # === Act ===
        first = access_service.grant_direct_privilege(1, "select", "shop", "orders")
        second = access_service.grant_direct_privilege(1, "SELECT", "shop", "orders")

        # === Assert ===
        assert first["id"] == second["id"] == 70
        assert len(rows) == 1
        mock_native_repo.execute.assert_called_once_with("GRANT SELECT ON `shop`.`orders` TO 'U'@'%'")
        mock_native_repo.flush_privileges.assert_called_once()

    def test_failed_grant_writes_no_row(self, access_service: AccessService, mock_direct_privilege_repo: MagicMock, mock_native_repo: MagicMock):
        # === Arrange ===
        mock_native_repo.execute.side_effect = NativeStatementError("GRANT SELECT ON `shop`.* TO 'U'@'%'", "(1044) Access denied")

        # === Act & Assert ===
        with pytest.raises(NativeStatementError):
            access_service.grant_direct_privilege(1, "SELECT", "shop")
        mock_direct_privilege_repo.create.assert_not_called()

    def test_grant_requires_database(self, access_service: AccessService, mock_native_repo: MagicMock):
        with pytest.raises(InvalidScopeError):
            access_service.grant_direct_privilege(1, "SELECT", "")
        mock_native_repo.execute.assert_not_called()

    def test_grant_rejects_invalid_keyword(self, access_service: AccessService):
        with pytest.raises(ValueError):
            access_service.grant_direct_privilege(1, "SELECT; DROP DATABASE shop", "shop")

    def test_grant_to_unknown_user(self, access_service: AccessService, mock_user_repo: MagicMock, mock_native_repo: MagicMock):
        mock_user_repo.find_by_id.return_value = None
        with pytest.raises(DatabaseUserNotFoundError):
            access_service.grant_direct_privilege(99, "SELECT", "shop")
        mock_native_repo.execute.assert_not_called()

    def test_revoke_for_unknown_user_keeps_row(self, access_service: AccessService, mock_user_repo: MagicMock, mock_direct_privilege_repo: MagicMock, mock_native_repo: MagicMock):
        mock_direct_privilege_repo.find_by_id.return_value = models.UserSpecificPrivilege(
            id=70, db_user_id=1, privilege_type="SELECT", target_database="shop"
        )
        mock_user_repo.find_by_id.return_value = None
        with pytest.raises(DatabaseUserNotFoundError):
            access_service.revoke_direct_privilege(1, 70)
        mock_native_repo.execute.assert_not_called()
        mock_direct_privilege_repo.delete.assert_not_called()

    def test_revoke_direct_privilege(self, access_service: AccessService, mock_direct_privilege_repo: MagicMock, mock_native_repo: MagicMock):
        # === Arrange ===
        direct = models.UserSpecificPrivilege(id=70, db_user_id=1, privilege_type="SELECT", target_database="shop", target_table=None)
        mock_direct_privilege_repo.find_by_id.return_value = direct

        # === Act ===
        assert access_service.revoke_direct_privilege(1, 70) is True

        # === Assert ===
        mock_native_repo.execute.assert_called_once_with("REVOKE SELECT ON `shop`.* FROM 'U'@'%'")
        mock_direct_privilege_repo.delete.assert_called_once_with(direct)

    def test_revoke_failure_keeps_row(self, access_service: AccessService, mock_direct_privilege_repo: MagicMock, mock_native_repo: MagicMock):
        # === Arrange ===
        mock_direct_privilege_repo.find_by_id.return_value = models.UserSpecificPrivilege(
            id=70, db_user_id=1, privilege_type="SELECT", target_database="shop"
        )
        mock_native_repo.execute.side_effect = NativeStatementError("REVOKE ...", "(1141) There is no such grant")

        # === Act & Assert ===
        with pytest.raises(NativeStatementError):
            access_service.revoke_direct_privilege(1, 70)
        mock_direct_privilege_repo.delete.assert_not_called()

    def test_revoke_unknown_direct_privilege(self, access_service: AccessService, mock_direct_privilege_repo: MagicMock):
        mock_direct_privilege_repo.find_by_id.return_value = None
        with pytest.raises(DirectPrivilegeNotFoundError):
            access_service.revoke_direct_privilege(1, 404)

    def test_effective_privileges_delegates(self, access_service: AccessService, mock_resolver: MagicMock):
        mock_resolver.resolve_effective_privileges.return_value = {"role_privileges": [], "direct_privileges": []}
        assert access_service.resolve_effective_privileges(1) == {"role_privileges": [], "direct_privileges": []}
        mock_resolver.resolve_effective_privileges.assert_called_once_with(1)

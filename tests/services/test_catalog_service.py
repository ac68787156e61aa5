# tests/services/test_catalog_service.py
import pytest
from unittest.mock import MagicMock, ANY

from src.services.cache_service import CacheService
from src.services.catalog_service import CatalogService
from src.services.exceptions import *
from src.repositories.interfaces import IDatabaseUserRepository, IPrivilegeRepository, IRoleRepository
from src.database import models

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_role_repo() -> MagicMock:
    repo = MagicMock(spec=IRoleRepository)
    repo.create.side_effect = lambda role: role
    repo.save.side_effect = lambda role: role
    return repo

@pytest.fixture
def mock_privilege_repo() -> MagicMock:
    repo = MagicMock(spec=IPrivilegeRepository)
    repo.create.side_effect = lambda privilege: privilege
    repo.save.side_effect = lambda privilege: privilege
    return repo

@pytest.fixture
def mock_user_repo() -> MagicMock:
    return MagicMock(spec=IDatabaseUserRepository)

@pytest.fixture
def catalog_service(mock_role_repo, mock_privilege_repo, mock_user_repo) -> CatalogService:
    return CatalogService(mock_role_repo, mock_privilege_repo, mock_user_repo, CacheService(ttl_seconds=300))

# ===================================================================
#  역할(Role) 관리 테스트
# ===================================================================
class TestRoleCatalog:
    def test_create_role(self, catalog_service: CatalogService, mock_role_repo: MagicMock):
        # === Arrange ===
        mock_role_repo.find_by_name.return_value = None

        # === Act ===
        role = catalog_service.create_role("Auditor", "read audit tables")

        # === Assert ===
        assert role["name"] == "Auditor"
        mock_role_repo.create.assert_called_once_with(ANY)

    def test_create_duplicate_role(self, catalog_service: CatalogService, mock_role_repo: MagicMock):
        mock_role_repo.find_by_name.return_value = models.Role(id=1, name="Analyst")
        with pytest.raises(RoleAlreadyExistsError):
            catalog_service.create_role("Analyst")
        mock_role_repo.create.assert_not_called()

    def test_list_roles_is_cached_until_write(self, catalog_service: CatalogService, mock_role_repo: MagicMock):
        """목록은 캐시되고, 역할을 생성하면 캐시가 무효화됩니다."""
        # === Arrange ===
        mock_role_repo.list_all.return_value = [models.Role(id=1, name="Analyst")]
        mock_role_repo.find_by_name.return_value = None

        # === Act ===
        catalog_service.list_roles()
        catalog_service.list_roles()
        catalog_service.create_role("Auditor")
        catalog_service.list_roles()

        # === Assert ===
        assert mock_role_repo.list_all.call_count == 2

    def test_get_unknown_role(self, catalog_service: CatalogService, mock_role_repo: MagicMock):
        mock_role_repo.find_by_id.return_value = None
        with pytest.raises(RoleNotFoundError):
            catalog_service.get_role(9)

    def test_set_role_privileges_validates_all_ids(self, catalog_service: CatalogService, mock_role_repo: MagicMock, mock_privilege_repo: MagicMock):
        """목록의 권한 중 하나라도 없으면 연결을 바꾸지 않습니다."""
        # === Arrange ===
        mock_role_repo.find_by_id.return_value = models.Role(id=1, name="Analyst")
        mock_privilege_repo.find_by_id.side_effect = lambda pid: models.Privilege(id=pid, name="SELECT") if pid == 10 else None

        # === Act & Assert ===
        with pytest.raises(PrivilegeNotFoundError):
            catalog_service.set_role_privileges(1, [10, 11])
        mock_role_repo.replace_privileges.assert_not_called()

    def test_add_privilege_invalidates_role_privileges(self, catalog_service: CatalogService, mock_role_repo: MagicMock, mock_privilege_repo: MagicMock):
        # === Arrange ===
        role = models.Role(id=1, name="Analyst")
        privilege = models.Privilege(id=10, name="SELECT", mysql_privilege="SELECT")
        mock_role_repo.find_by_id.return_value = role
        mock_privilege_repo.find_by_id.return_value = privilege
        mock_role_repo.list_privileges.return_value = []

        # === Act ===
        catalog_service.list_role_privileges(1)
        catalog_service.add_privilege_to_role(1, 10)
        mock_role_repo.list_privileges.return_value = [privilege]
        result = catalog_service.list_role_privileges(1)

        # === Assert ===
        mock_role_repo.add_privilege.assert_called_once_with(role, privilege)
        assert [p["name"] for p in result] == ["SELECT"]

# ===================================================================
#  권한(Privilege) 관리 테스트
# ===================================================================
class TestPrivilegeCatalog:
    def test_create_privilege_defaults_keyword_to_name(self, catalog_service: CatalogService, mock_privilege_repo: MagicMock):
        # === Arrange ===
        mock_privilege_repo.find_by_name.return_value = None

        # === Act ===
        privilege = catalog_service.create_privilege("create user")

        # === Assert ===
        assert privilege["mysql_privilege"] == "CREATE USER"
        assert privilege["is_global"] is True
        assert privilege["privilege_type"] == "DATABASE"

    def test_create_privilege_rejects_bad_keyword(self, catalog_service: CatalogService, mock_privilege_repo: MagicMock):
        with pytest.raises(ValueError):
            catalog_service.create_privilege("Reader", mysql_privilege="SELECT, INSERT")
        mock_privilege_repo.create.assert_not_called()

    def test_create_privilege_rejects_bad_type(self, catalog_service: CatalogService):
        with pytest.raises(ValueError):
            catalog_service.create_privilege("SELECT", privilege_type="SCHEMA")

    def test_create_duplicate_privilege(self, catalog_service: CatalogService, mock_privilege_repo: MagicMock):
        mock_privilege_repo.find_by_name.return_value = models.Privilege(id=1, name="SELECT")
        with pytest.raises(PrivilegeAlreadyExistsError):
            catalog_service.create_privilege("SELECT")

    def test_stats(self, catalog_service: CatalogService, mock_role_repo: MagicMock, mock_privilege_repo: MagicMock, mock_user_repo: MagicMock):
        # === Arrange ===
        mock_user_repo.count.return_value = 4
        mock_role_repo.count.return_value = 3
        mock_privilege_repo.count.return_value = 13

        # === Act & Assert ===
        assert catalog_service.stats() == {"database_users": 4, "roles": 3, "privileges": 13}
        catalog_service.stats()
        mock_user_repo.count.assert_called_once()
        catalog_service.invalidate_user_stats()
        catalog_service.stats()
        assert mock_user_repo.count.call_count == 2

from typing import Any, Dict, List, Optional

from src.database import models
from src.repositories.interfaces import IDatabaseUserRepository, INativeServerRepository
from src.services.exceptions import (
    DatabaseUserAlreadyExistsError, DatabaseUserNotFoundError, NativeStatementError
)
from src.utils.sql_quoting import quote_account, quote_string
from src.utils.structlog_config import get_logger

logger = get_logger(__name__)

MAX_USERNAME_LENGTH = 32


def _to_dict(user: models.DatabaseUser) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "host": user.host,
        "description": user.description,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


class AccountService:
    """추적 계정(DatabaseUser)과 실제 서버 계정을 함께 생성/삭제/동기화합니다."""

    def __init__(self, user_repo: IDatabaseUserRepository, native_repo: INativeServerRepository):
        """
        AccountService를 초기화합니다.

        Args:
            user_repo: 추적 계정 데이터에 접근하기 위한 리포지토리.
            native_repo: CREATE USER/DROP USER를 실행할 네이티브 서버 리포지토리.
        """
        self.user_repo = user_repo
        self.native_repo = native_repo

    def create_account(self, username: str, host: str = "%", description: str = "", password: Optional[str] = None) -> Dict[str, Any]:
        """
        추적 계정을 만들고, 비밀번호가 주어지면 실제 서버 계정도 CREATE USER 합니다.

        추적 행은 flush만 한 상태에서 CREATE USER를 실행하고, 성공하면 커밋합니다.
        CREATE USER는 서버에서 자동 커밋되므로, 그 뒤 커밋이 실패하면
        서버 계정만 남을 수 있습니다. 이 경우 sync_accounts가 복구 경로입니다.

        Raises:
            ValueError: 사용자 이름이 비었거나 32자를 넘을 때.
            DatabaseUserAlreadyExistsError: 같은 'username'@'host' 추적 계정이 이미 있을 때.
            NativeStatementError: CREATE USER가 실패했을 때. (추적 행은 롤백됨)
        """
        username = (username or "").strip()
        host = (host or "%").strip() or "%"
        if not username:
            raise ValueError("Username is required.")
        if len(username) > MAX_USERNAME_LENGTH:
            raise ValueError(f"Username cannot exceed {MAX_USERNAME_LENGTH} characters.")

        if self.user_repo.find_by_account(username, host):
            raise DatabaseUserAlreadyExistsError(f"Database user {username}@{host} already exists.")

        try:
            user = self.user_repo.add(models.DatabaseUser(username=username, host=host, description=description or ""))
            if password:
                account = quote_account(username, host)
                self.native_repo.execute(
                    f"CREATE USER {account} IDENTIFIED BY {quote_string(password)}",
                    masked=f"CREATE USER {account} IDENTIFIED BY '***'",
                )
                logger.info("native_account_created", account=f"{username}@{host}")
            self.user_repo.commit()
        except Exception:
            self.user_repo.rollback()
            logger.error("create_account_failed", account=f"{username}@{host}")
            raise

        logger.info("account_created", account=f"{username}@{host}", user_id=user.id)
        return _to_dict(user)

    def delete_account(self, user_id: int) -> bool:
        """
        실제 서버 계정을 DROP USER 하고 추적 계정을 삭제합니다.
        서버 계정이 없어서 DROP USER가 실패하는 것은 경고로만 남깁니다.

        Returns:
            삭제했으면 True, 추적 계정이 없었으면 False.
        """
        user = self.user_repo.find_by_id(user_id)
        if not user:
            return False

        account_name = f"{user.username}@{user.host}"
        try:
            try:
                self.native_repo.execute(f"DROP USER {quote_account(user.username, user.host)}")
                logger.info("native_account_dropped", account=account_name)
            except NativeStatementError as e:
                logger.warning("native_account_drop_failed", account=account_name, error=e.message)
            self.user_repo.remove(user)
            self.user_repo.commit()
        except Exception:
            self.user_repo.rollback()
            logger.error("delete_account_failed", account=account_name)
            raise

        logger.info("account_deleted", account=account_name, user_id=user_id)
        return True

    def sync_accounts(self, default_password: str) -> Dict[str, List[str]]:
        """
        서버에 없는 추적 계정을 기본 비밀번호로 CREATE USER 합니다.
        이미 있는 계정은 건드리지 않으며, 계정별 실패는 모아서 반환합니다.

        Returns:
            {"created": [...], "skipped": [...], "failed": [{"account", "error"}]}
        """
        existing = self.native_repo.list_accounts()
        result = {"created": [], "skipped": [], "failed": []}

        for user in self.user_repo.list_all():
            account_name = f"{user.username}@{user.host}"
            if (user.username, user.host) in existing:
                result["skipped"].append(account_name)
                continue

            account = quote_account(user.username, user.host)
            try:
                self.native_repo.execute(
                    f"CREATE USER {account} IDENTIFIED BY {quote_string(default_password)}",
                    masked=f"CREATE USER {account} IDENTIFIED BY '***'",
                )
            except NativeStatementError as e:
                logger.error("sync_create_user_failed", account=account_name, error=e.message)
                result["failed"].append({"account": account_name, "error": e.message})
                continue
            result["created"].append(account_name)

        try:
            self.native_repo.flush_privileges()
        except NativeStatementError as e:
            logger.error("flush_privileges_failed", error=e.message)

        logger.info("accounts_synced", created=len(result["created"]), skipped=len(result["skipped"]), failed=len(result["failed"]))
        return result

    def list_accounts(self) -> List[Dict[str, Any]]:
        """모든 추적 계정의 목록을 조회합니다."""
        return [_to_dict(u) for u in self.user_repo.list_all()]

    def get_account(self, user_id: int) -> Dict[str, Any]:
        """
        ID로 특정 추적 계정을 조회합니다.

        Raises:
            DatabaseUserNotFoundError: 해당 ID의 추적 계정을 찾을 수 없을 때.
        """
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")
        return _to_dict(user)

    def update_account(self, user_id: int, description: str) -> Dict[str, Any]:
        """추적 계정의 설명을 변경합니다. 서버 계정 이름 변경은 지원하지 않습니다."""
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")
        user.description = description or ""
        return _to_dict(self.user_repo.save(user))

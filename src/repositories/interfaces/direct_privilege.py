from abc import ABC, abstractmethod
from typing import List, Optional
from src.database import models

class IDirectPrivilegeRepository(ABC):
    @abstractmethod
    def find_by_id(self, direct_privilege_id: int) -> Optional[models.UserSpecificPrivilege]:
        """고유 ID로 직접 부여된 권한 기록을 조회합니다."""
        pass

    @abstractmethod
    def find_matching(
        self,
        user_id: int,
        privilege_type: str,
        target_database: str,
        target_table: Optional[str],
    ) -> Optional[models.UserSpecificPrivilege]:
        """(계정, 권한 키워드, 대상 DB, 대상 테이블)이 완전히 같은 기록을 조회합니다."""
        pass

    @abstractmethod
    def list_by_user(self, user_id: int) -> List[models.UserSpecificPrivilege]:
        """계정에 직접 부여된 모든 권한 기록을 조회합니다."""
        pass

    @abstractmethod
    def create(self, direct_privilege: models.UserSpecificPrivilege) -> Optional[models.UserSpecificPrivilege]:
        """
        새 기록을 생성하고 커밋합니다.

        Returns:
            생성된 기록. 고유 제약 위반이면 None.
        """
        pass

    @abstractmethod
    def delete(self, direct_privilege: models.UserSpecificPrivilege) -> bool:
        """직접 부여된 권한 기록을 삭제합니다."""
        pass

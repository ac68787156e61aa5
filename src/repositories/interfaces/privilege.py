from abc import ABC, abstractmethod
from typing import List, Optional
from src.database import models

class IPrivilegeRepository(ABC):
    @abstractmethod
    def create(self, privilege_model: models.Privilege) -> models.Privilege:
        """새로운 권한 템플릿을 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, privilege_id: int) -> Optional[models.Privilege]:
        """고유 ID로 특정 권한을 조회합니다."""
        pass

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[models.Privilege]:
        """이름으로 특정 권한을 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.Privilege]:
        """모든 권한의 목록을 조회합니다."""
        pass

    @abstractmethod
    def save(self, privilege: models.Privilege) -> models.Privilege:
        """변경된 권한을 커밋합니다."""
        pass

    @abstractmethod
    def delete(self, privilege: models.Privilege) -> bool:
        """권한과 그 권한의 역할 연결을 함께 삭제합니다."""
        pass

    @abstractmethod
    def list_roles(self, privilege_id: int) -> List[models.Role]:
        """권한이 연결된 모든 역할을 조회합니다."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

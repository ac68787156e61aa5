from abc import ABC, abstractmethod
from typing import List, Optional
from src.database import models

class IRoleRepository(ABC):
    @abstractmethod
    def create(self, role_model: models.Role) -> models.Role:
        """새로운 역할을 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, role_id: int) -> Optional[models.Role]:
        """고유 ID로 특정 역할을 조회합니다."""
        pass

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[models.Role]:
        """이름으로 특정 역할을 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.Role]:
        """모든 역할의 목록을 조회합니다."""
        pass

    @abstractmethod
    def save(self, role: models.Role) -> models.Role:
        """변경된 역할을 커밋합니다."""
        pass

    @abstractmethod
    def delete(self, role: models.Role) -> bool:
        """역할과 그 역할의 권한 연결, 할당 기록을 함께 삭제합니다."""
        pass

    @abstractmethod
    def list_privileges(self, role_id: int) -> List[models.Privilege]:
        """역할에 연결된 모든 권한을 조회합니다."""
        pass

    @abstractmethod
    def add_privilege(self, role: models.Role, privilege: models.Privilege):
        """역할에 권한을 연결합니다. 이미 연결되어 있으면 무시합니다."""
        pass

    @abstractmethod
    def remove_privilege(self, role_id: int, privilege_id: int) -> bool:
        """역할과 권한의 연결을 끊습니다. 연결이 없었으면 False."""
        pass

    @abstractmethod
    def replace_privileges(self, role_id: int, privilege_ids: List[int]):
        """역할의 권한 연결을 주어진 목록으로 한 트랜잭션 안에서 교체합니다."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

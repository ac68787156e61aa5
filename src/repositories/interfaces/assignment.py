from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from src.database import models

class IAssignmentRepository(ABC):
    @abstractmethod
    def find_by_id(self, assignment_id: int) -> Optional[models.DatabaseUserRole]:
        """고유 ID로 특정 범위 역할 할당을 조회합니다."""
        pass

    @abstractmethod
    def find_matching(
        self,
        user_id: int,
        role_id: int,
        scope_type: str,
        target_database: Optional[str],
        target_table: Optional[str],
    ) -> Optional[models.DatabaseUserRole]:
        """(계정, 역할, 범위, 대상 DB, 대상 테이블)이 완전히 같은 할당을 조회합니다."""
        pass

    @abstractmethod
    def list_by_user(self, user_id: int, active_only: bool = True) -> List[models.DatabaseUserRole]:
        """계정의 범위 역할 할당 목록을 조회합니다."""
        pass

    @abstractmethod
    def create(self, assignment: models.DatabaseUserRole) -> Optional[models.DatabaseUserRole]:
        """
        새 할당을 생성하고 커밋합니다.

        Returns:
            생성된 할당. 고유 제약 위반(동시에 같은 할당이 먼저 저장된 경우)이면 None.
        """
        pass

    @abstractmethod
    def delete(self, assignment: models.DatabaseUserRole) -> bool:
        """할당 기록을 삭제합니다."""
        pass

    @abstractmethod
    def replace_for_user(self, user_id: int, assignments: List[models.DatabaseUserRole]) -> List[models.DatabaseUserRole]:
        """계정의 모든 할당을 지우고 주어진 할당으로 한 트랜잭션 안에서 교체합니다."""
        pass

    @abstractmethod
    def list_role_privileges_for_user(
        self, user_id: int
    ) -> List[Tuple[models.DatabaseUserRole, models.Role, models.Privilege]]:
        """
        계정의 활성 할당 → 역할 → 권한을 조인한 결과를 조회합니다.

        Returns:
            (할당, 역할, 권한) 튜플의 리스트. 할당 ID, 권한 ID 순으로 정렬됩니다.
        """
        pass

    @abstractmethod
    def list_user_ids_with_active_assignments(self) -> List[int]:
        """활성 할당이 하나 이상 있는 계정 ID 목록을 조회합니다."""
        pass

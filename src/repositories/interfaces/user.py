from abc import ABC, abstractmethod
from typing import List, Optional
from src.database import models

class IDatabaseUserRepository(ABC):
    @abstractmethod
    def create(self, user_model: models.DatabaseUser) -> models.DatabaseUser:
        """새로운 추적 계정을 데이터베이스에 생성하고 커밋합니다."""
        pass

    @abstractmethod
    def add(self, user_model: models.DatabaseUser) -> models.DatabaseUser:
        """
        추적 계정을 세션에 추가하고 flush만 합니다. (id는 할당되지만 커밋되지 않음)
        네이티브 CREATE USER와 한 흐름으로 묶을 때 사용하며, 호출자가 commit/rollback 합니다.
        """
        pass

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[models.DatabaseUser]:
        """고유 ID로 특정 추적 계정을 조회합니다."""
        pass

    @abstractmethod
    def find_by_account(self, username: str, host: str) -> Optional[models.DatabaseUser]:
        """(username, host) 쌍으로 추적 계정을 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.DatabaseUser]:
        """모든 추적 계정의 목록을 조회합니다."""
        pass

    @abstractmethod
    def save(self, user: models.DatabaseUser) -> models.DatabaseUser:
        """변경된 추적 계정을 커밋합니다."""
        pass

    @abstractmethod
    def remove(self, user: models.DatabaseUser) -> bool:
        """추적 계정 삭제를 세션에 반영하고 flush만 합니다. 호출자가 commit/rollback 합니다."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @abstractmethod
    def commit(self):
        pass

    @abstractmethod
    def rollback(self):
        pass

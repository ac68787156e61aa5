from abc import ABC, abstractmethod
from typing import List, Optional, Set, Tuple

class INativeServerRepository(ABC):
    """
    실제 MariaDB/MySQL 서버에 계정/권한 문장을 실행하는 인터페이스입니다.
    GRANT/REVOKE/CREATE USER/DROP USER는 파라미터 바인딩이 되지 않으므로
    호출자가 식별자를 이스케이프한 완성된 문장을 넘깁니다.
    """

    @abstractmethod
    def execute(self, statement: str, masked: Optional[str] = None):
        """
        완성된 문장 하나를 실행합니다. masked가 있으면 로그와 예외 메시지에는 그 문장을 씁니다.

        Raises:
            NativeStatementError: 서버가 문장을 거부했을 때.
            NativeConnectionError: 서버에 연결할 수 없을 때.
        """
        pass

    @abstractmethod
    def show_grants(self, username: str, host: str) -> List[str]:
        """SHOW GRANTS FOR 'username'@'host' 결과를 GRANT 문 문자열 리스트로 반환합니다."""
        pass

    @abstractmethod
    def list_accounts(self) -> Set[Tuple[str, str]]:
        """서버에 존재하는 모든 계정의 (User, Host) 집합을 반환합니다."""
        pass

    @abstractmethod
    def flush_privileges(self):
        """권한 캐시를 비워 변경 사항이 즉시 반영되도록 합니다."""
        pass

    @abstractmethod
    def ping(self) -> bool:
        """서버 연결 가능 여부를 확인합니다."""
        pass

# src/database/db_connector.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

from src.config import settings

_native_engine = None


def get_native_engine() -> Engine:
    """
    GRANT/REVOKE/CREATE USER가 실행될 MariaDB/MySQL 서버용 엔진을 반환합니다.
    요청 핸들러들이 공유하는 커넥션 풀이며, 처음 호출될 때 한 번만 생성됩니다.
    """
    global _native_engine
    if _native_engine is None:
        _native_engine = create_engine(
            settings.NATIVE_DATABASE_URL,
            pool_size=settings.NATIVE_POOL_SIZE,
            pool_recycle=settings.NATIVE_POOL_RECYCLE,
            pool_pre_ping=True,
            # 계정/권한 DDL은 서버에서 암묵적으로 커밋되므로 드라이버 트랜잭션을 쓰지 않습니다.
            isolation_level="AUTOCOMMIT",
        )
    return _native_engine


class NativeDBConnector:
    """네이티브 서버 커넥션을 풀에서 빌려오고 반납하는 Context Manager"""
    def __init__(self, engine: Engine = None):
        self.engine = engine
        self.conn = None

    def __enter__(self) -> Connection:
        # with 블록 시작 시 풀에서 연결을 빌려옴
        self.conn = (self.engine or get_native_engine()).connect()
        return self.conn

    def __exit__(self, exc_type, exc_val, exc_tb):
        # with 블록 종료 시 풀에 반납
        if self.conn:
            self.conn.close()
            self.conn = None

# 사용 예시:
# with NativeDBConnector() as conn:
#     rows = conn.execute(text("SELECT User, Host FROM mysql.user")).all()

# src/config.py
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """환경 변수(.env)에서 읽어오는 애플리케이션 설정."""

    # 카탈로그(역할/권한/추적 계정) 저장소
    CATALOG_DATABASE_URL: str = "sqlite:///rbac_catalog.db"

    # 실제 GRANT/REVOKE가 실행되는 MariaDB/MySQL 서버
    NATIVE_DATABASE_URL: str = "mysql+pymysql://root:@localhost:3306/mysql"
    NATIVE_POOL_SIZE: int = 5
    NATIVE_POOL_RECYCLE: int = 1800

    # sync-accounts 시 네이티브 계정이 없는 추적 계정에 부여할 기본 비밀번호
    DEFAULT_SYNC_PASSWORD: str = "temp123"

    # 카탈로그 목록 조회 캐시 TTL (초)
    CATALOG_CACHE_TTL_SECONDS: int = 300

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    SERVER_HOST: str = ""
    SERVER_PORT: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()

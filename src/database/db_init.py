from .database import engine, SessionLocal, Base
from .models import *
from src.services.privilege_resolver import is_global_only
from src.utils.structlog_config import get_logger

logger = get_logger(__name__)

# (이름, 설명, 권한 유형)
DEFAULT_PRIVILEGES = [
    ("SELECT", "데이터 조회", PrivilegeType.TABLE),
    ("INSERT", "데이터 삽입", PrivilegeType.TABLE),
    ("UPDATE", "데이터 수정", PrivilegeType.TABLE),
    ("DELETE", "데이터 삭제", PrivilegeType.TABLE),
    ("CREATE", "데이터베이스/테이블 생성", PrivilegeType.DATABASE),
    ("DROP", "데이터베이스/테이블 삭제", PrivilegeType.DATABASE),
    ("ALTER", "테이블 구조 변경", PrivilegeType.TABLE),
    ("INDEX", "인덱스 생성/삭제", PrivilegeType.TABLE),
    ("ALL PRIVILEGES", "모든 권한", PrivilegeType.DATABASE),
    ("CREATE USER", "계정 생성", PrivilegeType.DATABASE),
    ("RELOAD", "FLUSH 실행", PrivilegeType.DATABASE),
    ("PROCESS", "프로세스 목록 조회", PrivilegeType.DATABASE),
    ("SHOW DATABASES", "데이터베이스 목록 조회", PrivilegeType.DATABASE),
]

DEFAULT_ROLES = {
    "Analyst": ("읽기 전용 분석 역할", ["SELECT"]),
    "Developer": ("애플리케이션 개발 역할", ["SELECT", "INSERT", "UPDATE", "DELETE", "CREATE", "ALTER", "INDEX"]),
    "DBA": ("데이터베이스 관리자 역할", ["ALL PRIVILEGES", "CREATE USER", "RELOAD", "PROCESS", "SHOW DATABASES"]),
}


def initialize_db(bind=None):
    """
    카탈로그 테이블을 생성하고, 기본 권한 템플릿과 역할을 삽입합니다.
    이미 권한 템플릿이 있으면 기본 데이터 삽입은 건너뜁니다.
    """
    bind = bind or engine
    logger.info("catalog_init_started")

    # 모든 테이블을 생성합니다. (이미 존재하면 생성하지 않음)
    Base.metadata.create_all(bind=bind)
    logger.info("catalog_tables_created")

    db = SessionLocal(bind=bind)
    try:
        if db.query(Privilege).first():
            logger.info("catalog_seed_skipped", reason="already seeded")
            return

        privileges = {}
        for name, description, privilege_type in DEFAULT_PRIVILEGES:
            privilege = Privilege(
                name=name,
                description=description,
                privilege_type=privilege_type.value,
                mysql_privilege=name,
                is_global=is_global_only(name),
            )
            db.add(privilege)
            privileges[name] = privilege

        for role_name, (description, privilege_names) in DEFAULT_ROLES.items():
            role = Role(name=role_name, description=description, is_database_role=True)
            role.privilege_links = [RolePrivilege(privilege=privileges[p]) for p in privilege_names]
            db.add(role)

        db.commit()
        logger.info("catalog_seeded", privileges=len(privileges), roles=len(DEFAULT_ROLES))
    except Exception:
        db.rollback()
        logger.exception("catalog_init_failed")
        raise
    finally:
        db.close()


if __name__ == '__main__':
    initialize_db()

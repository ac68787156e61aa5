import enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship
from ..database import Base


class PrivilegeType(str, enum.Enum):
    DATABASE = "DATABASE"
    TABLE = "TABLE"
    COLUMN = "COLUMN"
    ROUTINE = "ROUTINE"


class Privilege(Base):
    """
    네이티브 권한 하나를 가리키는 템플릿입니다. (예: SELECT, CREATE USER).
    mysql_privilege는 GRANT 문에 그대로 들어가는 키워드이며,
    필요하면 target_database/target_table로 대상을 미리 고정해 둘 수 있습니다.
    """
    __tablename__ = "privileges"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(255), nullable=False, default="")
    privilege_type = Column(String(16), nullable=False, default=PrivilegeType.DATABASE.value)
    target_database = Column(String(64), nullable=True)
    target_table = Column(String(64), nullable=True)
    mysql_privilege = Column(String(64), nullable=True)
    is_global = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())

    role_links = relationship("RolePrivilege", back_populates="privilege", cascade="all, delete-orphan")

import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from ..database import Base
from .target_column import TargetName


class ScopeType(str, enum.Enum):
    GLOBAL = "GLOBAL"
    DATABASE = "DATABASE"
    TABLE = "TABLE"


class DatabaseUserRole(Base):
    """
    추적 계정에 역할을 범위(scope)와 함께 할당한 기록입니다.
    GLOBAL은 서버 전체, DATABASE는 target_database 하나,
    TABLE은 target_database.target_table 하나에 역할의 권한이 적용됩니다.
    """
    __tablename__ = "database_user_roles"
    __table_args__ = (
        UniqueConstraint(
            "db_user_id", "role_id", "scope_type", "target_database", "target_table",
            name="uq_database_user_roles_scope",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    db_user_id = Column(Integer, ForeignKey("database_users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    scope_type = Column(String(16), nullable=False, default=ScopeType.GLOBAL.value)
    target_database = Column(TargetName, nullable=False, default="", server_default="")
    target_table = Column(TargetName, nullable=False, default="", server_default="")
    is_active = Column(Boolean, nullable=False, default=True)
    assigned_at = Column(DateTime, server_default=func.now())
    assigned_by = Column(String(100), nullable=False, default="admin")

    user = relationship("DatabaseUser", back_populates="role_assignments")
    role = relationship("Role", back_populates="assignments")

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship
from ..database import Base

class Role(Base):
    """
    권한(Privilege)을 묶어두는 컨테이너입니다. (예: 'Analyst', 'Developer').
    역할 사이의 계층이나 상속은 없습니다.
    RBAC(역할 기반 접근 제어)의 핵심 요소입니다.
    """
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(255), nullable=False, default="")
    is_database_role = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())

    privilege_links = relationship("RolePrivilege", back_populates="role", cascade="all, delete-orphan")
    assignments = relationship("DatabaseUserRole", back_populates="role", cascade="all, delete-orphan")

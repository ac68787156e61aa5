from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from ..database import Base

class DatabaseUser(Base):
    """
    애플리케이션이 관리하는 MariaDB/MySQL 계정의 기록(추적 계정)입니다.
    실제 서버 계정('username'@'host')은 존재할 수도, 아직 없을 수도 있습니다.
    """
    __tablename__ = "database_users"
    __table_args__ = (UniqueConstraint("username", "host", name="uq_database_users_account"),)

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(32), nullable=False, index=True)
    host = Column(String(255), nullable=False, default="%")
    description = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime, server_default=func.now())

    role_assignments = relationship("DatabaseUserRole", back_populates="user", cascade="all, delete-orphan")
    direct_privileges = relationship("UserSpecificPrivilege", back_populates="user", cascade="all, delete-orphan")

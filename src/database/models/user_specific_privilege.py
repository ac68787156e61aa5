from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from ..database import Base
from .target_column import TargetName

class UserSpecificPrivilege(Base):
    """
    역할을 거치지 않고 계정에 직접 부여한 단일 권한입니다.
    (예: shop.orders 테이블에 대한 SELECT)
    """
    __tablename__ = "user_specific_privileges"
    __table_args__ = (
        UniqueConstraint(
            "db_user_id", "privilege_type", "target_database", "target_table",
            name="uq_user_specific_privileges_target",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    db_user_id = Column(Integer, ForeignKey("database_users.id", ondelete="CASCADE"), nullable=False, index=True)
    privilege_type = Column(String(64), nullable=False)
    target_database = Column(String(64), nullable=False)
    target_table = Column(TargetName, nullable=False, default="", server_default="")
    granted_at = Column(DateTime, server_default=func.now())
    granted_by = Column(String(100), nullable=False, default="admin")

    user = relationship("DatabaseUser", back_populates="direct_privileges")

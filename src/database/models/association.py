from sqlalchemy import Column, DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import relationship
from ..database import Base

class RolePrivilege(Base):
    """
    역할(Role)과 권한(Privilege) 사이의 다대다(many-to-many) 관계를
    연결하는 연관 테이블(Association Table) 모델입니다.
    (role_id, privilege_id)가 기본키이므로 같은 쌍은 한 번만 존재합니다.
    """
    __tablename__ = 'role_privileges'
    role_id = Column(Integer, ForeignKey('roles.id', ondelete="CASCADE"), primary_key=True)
    privilege_id = Column(Integer, ForeignKey('privileges.id', ondelete="CASCADE"), primary_key=True)
    assigned_at = Column(DateTime, server_default=func.now())

    role = relationship("Role", back_populates="privilege_links")
    privilege = relationship("Privilege", back_populates="role_links")

from typing import List, Optional
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import IRoleRepository

class SqlalchemyRoleRepository(IRoleRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, role_model: models.Role) -> models.Role:
        self.db.add(role_model)
        self.db.commit()
        self.db.refresh(role_model)
        return role_model

    def find_by_id(self, role_id: int) -> Optional[models.Role]:
        return self.db.query(models.Role).filter(models.Role.id == role_id).first()

    def find_by_name(self, name: str) -> Optional[models.Role]:
        return self.db.query(models.Role).filter(models.Role.name == name).first()

    def list_all(self) -> List[models.Role]:
        return self.db.query(models.Role).order_by(models.Role.name.asc()).all()

    def save(self, role: models.Role) -> models.Role:
        self.db.commit()
        self.db.refresh(role)
        return role

    def delete(self, role: models.Role) -> bool:
        if role:
            self.db.delete(role)
            self.db.commit()
            return True
        return False

    def list_privileges(self, role_id: int) -> List[models.Privilege]:
        return self.db.query(models.Privilege).join(
            models.RolePrivilege, models.RolePrivilege.privilege_id == models.Privilege.id
        ).filter(models.RolePrivilege.role_id == role_id).order_by(models.Privilege.id.asc()).all()

    def add_privilege(self, role: models.Role, privilege: models.Privilege):
        link = models.RolePrivilege(role_id=role.id, privilege_id=privilege.id)
        self.db.merge(link) # INSERT OR IGNORE와 유사한 동작
        self.db.commit()

    def remove_privilege(self, role_id: int, privilege_id: int) -> bool:
        link = self.db.query(models.RolePrivilege).filter(
            models.RolePrivilege.role_id == role_id,
            models.RolePrivilege.privilege_id == privilege_id
        ).first()
        if link:
            self.db.delete(link)
            self.db.commit()
            return True
        return False

    def replace_privileges(self, role_id: int, privilege_ids: List[int]):
        try:
            for link in self.db.query(models.RolePrivilege).filter(models.RolePrivilege.role_id == role_id).all():
                self.db.delete(link)
            # 같은 (role_id, privilege_id)를 다시 넣기 전에 삭제를 먼저 반영합니다.
            self.db.flush()
            for privilege_id in dict.fromkeys(privilege_ids):
                self.db.add(models.RolePrivilege(role_id=role_id, privilege_id=privilege_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def count(self) -> int:
        return self.db.query(models.Role).count()

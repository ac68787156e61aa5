from typing import List, Optional
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import IPrivilegeRepository

class SqlalchemyPrivilegeRepository(IPrivilegeRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, privilege_model: models.Privilege) -> models.Privilege:
        self.db.add(privilege_model)
        self.db.commit()
        self.db.refresh(privilege_model)
        return privilege_model

    def find_by_id(self, privilege_id: int) -> Optional[models.Privilege]:
        return self.db.query(models.Privilege).filter(models.Privilege.id == privilege_id).first()

    def find_by_name(self, name: str) -> Optional[models.Privilege]:
        return self.db.query(models.Privilege).filter(models.Privilege.name == name).first()

    def list_all(self) -> List[models.Privilege]:
        return self.db.query(models.Privilege).order_by(models.Privilege.name.asc()).all()

    def save(self, privilege: models.Privilege) -> models.Privilege:
        self.db.commit()
        self.db.refresh(privilege)
        return privilege

    def delete(self, privilege: models.Privilege) -> bool:
        if privilege:
            self.db.delete(privilege)
            self.db.commit()
            return True
        return False

    def list_roles(self, privilege_id: int) -> List[models.Role]:
        return self.db.query(models.Role).join(
            models.RolePrivilege, models.RolePrivilege.role_id == models.Role.id
        ).filter(models.RolePrivilege.privilege_id == privilege_id).order_by(models.Role.name.asc()).all()

    def count(self) -> int:
        return self.db.query(models.Privilege).count()

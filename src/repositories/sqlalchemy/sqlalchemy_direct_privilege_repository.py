from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import IDirectPrivilegeRepository

class SqlalchemyDirectPrivilegeRepository(IDirectPrivilegeRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_id(self, direct_privilege_id: int) -> Optional[models.UserSpecificPrivilege]:
        return self.db.query(models.UserSpecificPrivilege).filter(models.UserSpecificPrivilege.id == direct_privilege_id).first()

    def find_matching(self, user_id: int, privilege_type: str, target_database: str, target_table: Optional[str]) -> Optional[models.UserSpecificPrivilege]:
        return self.db.query(models.UserSpecificPrivilege).filter(
            models.UserSpecificPrivilege.db_user_id == user_id,
            models.UserSpecificPrivilege.privilege_type == privilege_type,
            models.UserSpecificPrivilege.target_database == target_database,
            models.UserSpecificPrivilege.target_table == (target_table or ""),
        ).first()

    def list_by_user(self, user_id: int) -> List[models.UserSpecificPrivilege]:
        return self.db.query(models.UserSpecificPrivilege).filter(
            models.UserSpecificPrivilege.db_user_id == user_id
        ).order_by(models.UserSpecificPrivilege.granted_at.desc(), models.UserSpecificPrivilege.id.desc()).all()

    def create(self, direct_privilege: models.UserSpecificPrivilege) -> Optional[models.UserSpecificPrivilege]:
        self.db.add(direct_privilege)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return None
        self.db.refresh(direct_privilege)
        return direct_privilege

    def delete(self, direct_privilege: models.UserSpecificPrivilege) -> bool:
        if direct_privilege:
            self.db.delete(direct_privilege)
            self.db.commit()
            return True
        return False

from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import IAssignmentRepository

class SqlalchemyAssignmentRepository(IAssignmentRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_id(self, assignment_id: int) -> Optional[models.DatabaseUserRole]:
        return self.db.query(models.DatabaseUserRole).filter(models.DatabaseUserRole.id == assignment_id).first()

    def find_matching(self, user_id: int, role_id: int, scope_type: str, target_database: Optional[str], target_table: Optional[str]) -> Optional[models.DatabaseUserRole]:
        # 대상이 없으면 빈 문자열로 저장되어 있으므로 그대로 = 비교합니다.
        return self.db.query(models.DatabaseUserRole).filter(
            models.DatabaseUserRole.db_user_id == user_id,
            models.DatabaseUserRole.role_id == role_id,
            models.DatabaseUserRole.scope_type == scope_type,
            models.DatabaseUserRole.target_database == (target_database or ""),
            models.DatabaseUserRole.target_table == (target_table or ""),
        ).first()

    def list_by_user(self, user_id: int, active_only: bool = True) -> List[models.DatabaseUserRole]:
        query = self.db.query(models.DatabaseUserRole).filter(models.DatabaseUserRole.db_user_id == user_id)
        if active_only:
            query = query.filter(models.DatabaseUserRole.is_active.is_(True))
        return query.order_by(models.DatabaseUserRole.id.asc()).all()

    def create(self, assignment: models.DatabaseUserRole) -> Optional[models.DatabaseUserRole]:
        self.db.add(assignment)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return None
        self.db.refresh(assignment)
        return assignment

    def delete(self, assignment: models.DatabaseUserRole) -> bool:
        if assignment:
            self.db.delete(assignment)
            self.db.commit()
            return True
        return False

    def replace_for_user(self, user_id: int, assignments: List[models.DatabaseUserRole]) -> List[models.DatabaseUserRole]:
        try:
            for existing in self.db.query(models.DatabaseUserRole).filter(models.DatabaseUserRole.db_user_id == user_id).all():
                self.db.delete(existing)
            self.db.flush()
            self.db.add_all(assignments)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        for assignment in assignments:
            self.db.refresh(assignment)
        return assignments

    def list_role_privileges_for_user(self, user_id: int) -> List[Tuple[models.DatabaseUserRole, models.Role, models.Privilege]]:
        rows = self.db.query(models.DatabaseUserRole, models.Role, models.Privilege).join(
            models.Role, models.Role.id == models.DatabaseUserRole.role_id
        ).join(
            models.RolePrivilege, models.RolePrivilege.role_id == models.Role.id
        ).join(
            models.Privilege, models.Privilege.id == models.RolePrivilege.privilege_id
        ).filter(
            models.DatabaseUserRole.db_user_id == user_id,
            models.DatabaseUserRole.is_active.is_(True)
        ).order_by(models.DatabaseUserRole.id.asc(), models.Privilege.id.asc()).all()
        return [tuple(row) for row in rows]

    def list_user_ids_with_active_assignments(self) -> List[int]:
        rows = self.db.query(models.DatabaseUserRole.db_user_id).filter(
            models.DatabaseUserRole.is_active.is_(True)
        ).distinct().order_by(models.DatabaseUserRole.db_user_id.asc()).all()
        return [row[0] for row in rows]

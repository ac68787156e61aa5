from typing import List, Optional
from sqlalchemy.orm import Session
from src.database import models
from src.repositories.interfaces import IDatabaseUserRepository

class SqlalchemyDatabaseUserRepository(IDatabaseUserRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, user_model: models.DatabaseUser) -> models.DatabaseUser:
        self.db.add(user_model)
        self.db.commit()
        self.db.refresh(user_model)
        return user_model

    def add(self, user_model: models.DatabaseUser) -> models.DatabaseUser:
        self.db.add(user_model)
        self.db.flush()
        return user_model

    def find_by_id(self, user_id: int) -> Optional[models.DatabaseUser]:
        return self.db.query(models.DatabaseUser).filter(models.DatabaseUser.id == user_id).first()

    def find_by_account(self, username: str, host: str) -> Optional[models.DatabaseUser]:
        return self.db.query(models.DatabaseUser).filter(
            models.DatabaseUser.username == username,
            models.DatabaseUser.host == host
        ).first()

    def list_all(self) -> List[models.DatabaseUser]:
        return self.db.query(models.DatabaseUser).order_by(models.DatabaseUser.username.asc(), models.DatabaseUser.host.asc()).all()

    def save(self, user: models.DatabaseUser) -> models.DatabaseUser:
        self.db.commit()
        self.db.refresh(user)
        return user

    def remove(self, user: models.DatabaseUser) -> bool:
        if user:
            self.db.delete(user)
            self.db.flush()
            return True
        return False

    def count(self) -> int:
        return self.db.query(models.DatabaseUser).count()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

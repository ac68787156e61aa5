# tests/database/test_db_init.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.database import models
from src.database.db_init import DEFAULT_PRIVILEGES, DEFAULT_ROLES, initialize_db
from src.repositories.sqlalchemy import SqlalchemyRoleRepository


def test_initialize_db_seeds_catalog_once():
    """
    Test that initialize_db creates the tables, seeds default privileges and roles, and is safe to run twice.
    """
    # 1. 준비 (Arrange)
    engine = create_engine("sqlite://")

    # 2. 실행 (Act)
    initialize_db(bind=engine)
    initialize_db(bind=engine)

    # 3. 단언 (Assert)
    session = sessionmaker(bind=engine)()
    try:
        assert session.query(models.Privilege).count() == len(DEFAULT_PRIVILEGES)
        assert session.query(models.Role).count() == len(DEFAULT_ROLES)

        create_user = session.query(models.Privilege).filter(models.Privilege.name == "CREATE USER").one()
        assert create_user.is_global is True
        assert create_user.mysql_privilege == "CREATE USER"

        role_repo = SqlalchemyRoleRepository(session)
        dba = role_repo.find_by_name("DBA")
        assert {p.name for p in role_repo.list_privileges(dba.id)} == {
            "ALL PRIVILEGES", "CREATE USER", "RELOAD", "PROCESS", "SHOW DATABASES"
        }
        analyst = role_repo.find_by_name("Analyst")
        assert [p.name for p in role_repo.list_privileges(analyst.id)] == ["SELECT"]
    finally:
        session.close()
        engine.dispose()

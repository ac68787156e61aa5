from typing import List, Optional, Set, Tuple
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, InterfaceError
from src.database.db_connector import NativeDBConnector
from src.repositories.interfaces import INativeServerRepository
from src.services.exceptions import NativeConnectionError, NativeStatementError
from src.utils.structlog_config import get_logger

logger = get_logger(__name__)

# 2002/2003: 연결 불가, 2005: 알 수 없는 호스트, 2006/2013: 연결 끊김
CONNECTION_ERROR_CODES = {2002, 2003, 2005, 2006, 2013}


def _error_code(exc: DBAPIError) -> Optional[int]:
    args = getattr(exc.orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _is_connection_error(exc: DBAPIError) -> bool:
    return isinstance(exc, InterfaceError) or exc.connection_invalidated or _error_code(exc) in CONNECTION_ERROR_CODES


def _error_message(exc: DBAPIError) -> str:
    args = getattr(exc.orig, "args", ())
    if len(args) >= 2:
        return f"({args[0]}) {args[1]}"
    return str(exc.orig)


class SqlalchemyNativeServerRepository(INativeServerRepository):
    def __init__(self, engine: Engine):
        self.engine = engine

    def execute(self, statement: str, masked: Optional[str] = None):
        shown = masked or statement
        try:
            with NativeDBConnector(self.engine) as conn:
                # 파라미터 없이 보내야 '%' 호스트가 포맷 문자로 해석되지 않습니다.
                conn.execution_options(no_parameters=True).exec_driver_sql(statement)
        except DBAPIError as e:
            if _is_connection_error(e):
                logger.error("native_connection_failed", statement=shown, error=_error_message(e))
                raise NativeConnectionError(_error_message(e)) from e
            raise NativeStatementError(shown, _error_message(e)) from e
        logger.debug("native_statement_executed", statement=shown)

    def show_grants(self, username: str, host: str) -> List[str]:
        statement = "SHOW GRANTS FOR %s@%s"
        try:
            with NativeDBConnector(self.engine) as conn:
                rows = conn.exec_driver_sql(statement, (username, host)).all()
        except DBAPIError as e:
            if _is_connection_error(e):
                raise NativeConnectionError(_error_message(e)) from e
            raise NativeStatementError(f"SHOW GRANTS FOR '{username}'@'{host}'", _error_message(e)) from e
        return [row[0] for row in rows]

    def list_accounts(self) -> Set[Tuple[str, str]]:
        statement = "SELECT User, Host FROM mysql.user"
        try:
            with NativeDBConnector(self.engine) as conn:
                rows = conn.execution_options(no_parameters=True).exec_driver_sql(statement).all()
        except DBAPIError as e:
            if _is_connection_error(e):
                raise NativeConnectionError(_error_message(e)) from e
            raise NativeStatementError(statement, _error_message(e)) from e
        return {(row[0], row[1]) for row in rows}

    def flush_privileges(self):
        self.execute("FLUSH PRIVILEGES")

    def ping(self) -> bool:
        try:
            with NativeDBConnector(self.engine) as conn:
                conn.exec_driver_sql("SELECT 1")
            return True
        except DBAPIError as e:
            logger.warning("native_ping_failed", error=_error_message(e))
            return False

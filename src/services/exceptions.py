# src/services/exceptions.py

# --- Base Exceptions ---
class NotFoundError(Exception):
    """카탈로그에서 참조한 대상을 찾을 수 없을 때"""
    pass

class AlreadyExistsError(Exception):
    """고유해야 하는 대상이 이미 존재할 때"""
    pass

# --- Not Found Exceptions ---
class DatabaseUserNotFoundError(NotFoundError):
    """추적 계정을 찾을 수 없을 때"""
    pass

class RoleNotFoundError(NotFoundError):
    """역할을 찾을 수 없을 때"""
    pass

class PrivilegeNotFoundError(NotFoundError):
    """권한 템플릿을 찾을 수 없을 때"""
    pass

class AssignmentNotFoundError(NotFoundError):
    """범위 역할 할당을 찾을 수 없거나 해당 계정의 할당이 아닐 때"""
    pass

class DirectPrivilegeNotFoundError(NotFoundError):
    """직접 부여된 권한 기록을 찾을 수 없거나 해당 계정의 기록이 아닐 때"""
    pass

# --- Creation/Validation Exceptions ---
class DatabaseUserAlreadyExistsError(AlreadyExistsError):
    """같은 'username'@'host' 추적 계정이 이미 존재할 때"""
    pass

class RoleAlreadyExistsError(AlreadyExistsError):
    """역할 이름이 이미 존재할 때"""
    pass

class PrivilegeAlreadyExistsError(AlreadyExistsError):
    """권한 이름이 이미 존재할 때"""
    pass

class InvalidScopeError(ValueError):
    """(범위, 대상 DB, 대상 테이블) 조합을 네이티브 객체 지정자로 바꿀 수 없을 때"""
    pass

# --- Native Server Exceptions ---
class NativeStatementError(Exception):
    """GRANT/REVOKE/CREATE USER/DROP USER 문장이 서버에서 실패했을 때"""
    def __init__(self, statement: str, message: str):
        super().__init__(f"{message} (statement: {statement})")
        self.statement = statement
        self.message = message

class NativeConnectionError(Exception):
    """네이티브 서버에 연결할 수 없을 때"""
    pass

# src/app.py
from wsgiref.simple_server import make_server
import json
import re

# SQLAlchemy 및 의존성 임포트
from src.config import settings
from src.database.database import SessionLocal
from src.database.db_connector import get_native_engine
from src.repositories.sqlalchemy import (
    SqlalchemyAssignmentRepository, SqlalchemyDatabaseUserRepository, SqlalchemyDirectPrivilegeRepository,
    SqlalchemyNativeServerRepository, SqlalchemyPrivilegeRepository, SqlalchemyRoleRepository
)
from src.services.access_service import AccessService
from src.services.account_service import AccountService
from src.services.cache_service import CacheService
from src.services.catalog_service import CatalogService
from src.services.grant_synchronizer import GrantSynchronizer
from src.services.privilege_resolver import PrivilegeResolver
from src.services.exceptions import *
from src.utils.structlog_config import configure_logging, get_logger

logger = get_logger(__name__)

# 카탈로그 목록 캐시는 요청 사이에 공유됩니다.
catalog_cache = CacheService(ttl_seconds=settings.CATALOG_CACHE_TTL_SECONDS)

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        return json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else {}
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid or missing JSON body.")

def handle_exception(e):
    error_map = {
        NotFoundError: "404 Not Found",
        AlreadyExistsError: "409 Conflict",
        InvalidScopeError: "400 Bad Request",
        ValueError: "400 Bad Request",
        NativeStatementError: "502 Bad Gateway",
        NativeConnectionError: "503 Service Unavailable",
    }
    # 하위 예외 클래스도 부모의 상태 코드를 따릅니다.
    status = next((error_map[cls] for cls in type(e).__mro__ if cls in error_map), "500 Internal Server Error")
    if status.startswith("500"):
        logger.exception("unhandled_request_error")
    return status, json.dumps({"error": str(e)})

def build_services(db_session):
    """요청 하나에서 사용할 리포지토리와 서비스들을 조립합니다."""
    user_repo = SqlalchemyDatabaseUserRepository(db_session)
    role_repo = SqlalchemyRoleRepository(db_session)
    privilege_repo = SqlalchemyPrivilegeRepository(db_session)
    assignment_repo = SqlalchemyAssignmentRepository(db_session)
    direct_privilege_repo = SqlalchemyDirectPrivilegeRepository(db_session)
    native_repo = SqlalchemyNativeServerRepository(get_native_engine())

    synchronizer = GrantSynchronizer(user_repo, role_repo, assignment_repo, native_repo)
    resolver = PrivilegeResolver(user_repo, assignment_repo, direct_privilege_repo)

    return {
        'accounts': AccountService(user_repo, native_repo),
        'access': AccessService(user_repo, role_repo, assignment_repo, direct_privilege_repo, native_repo, synchronizer, resolver),
        'catalog': CatalogService(role_repo, privilege_repo, user_repo, catalog_cache),
        'synchronizer': synchronizer,
        'native': native_repo,
    }

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

def application(environ, start_response):
    db_session = SessionLocal()
    try:
        # 1. 의존성 생성 후 environ을 통해 핸들러에 전달
        environ['services'] = build_services(db_session)

        # 2. 라우팅 및 핸들러 실행
        path = environ.get("PATH_INFO", "")
        method = environ.get("REQUEST_METHOD", "")

        handler, path_args = None, []
        for route_method, pattern, route_handler in ROUTES:
            if method == route_method and (match := re.match(pattern, path)):
                handler, path_args = route_handler, match.groups()
                break

        if handler:
            status, response_body = handler(environ, *path_args)
        else:
            status, response_body = '404 Not Found', json.dumps({'error': 'Not Found'})

    except Exception as e:
        status, response_body = handle_exception(e)
    finally:
        db_session.close()

    start_response(status, [("Content-Type", "application/json")])
    return [response_body.encode("utf-8")]

# --------------------------------------------------------------------------
## 핸들러 함수: 추적 계정
# --------------------------------------------------------------------------

def list_users_handler(environ, *args):
    users = environ['services']['accounts'].list_accounts()
    return '200 OK', json.dumps({"users": users})

def create_user_handler(environ, *args):
    data = get_request_data(environ)
    user = environ['services']['accounts'].create_account(
        username=data.get('username'),
        host=data.get('host', '%'),
        description=data.get('description', ''),
        password=data.get('password'),
    )
    environ['services']['catalog'].invalidate_user_stats()
    return '201 Created', json.dumps(user)

def get_user_handler(environ, user_id):
    user = environ['services']['accounts'].get_account(int(user_id))
    return '200 OK', json.dumps(user)

def update_user_handler(environ, user_id):
    data = get_request_data(environ)
    user = environ['services']['accounts'].update_account(int(user_id), data.get('description', ''))
    return '200 OK', json.dumps(user)

def delete_user_handler(environ, user_id):
    if not environ['services']['accounts'].delete_account(int(user_id)):
        raise DatabaseUserNotFoundError(f"Database user with id '{user_id}' not found.")
    environ['services']['catalog'].invalidate_user_stats()
    return '204 No Content', ''

def sync_accounts_handler(environ, *args):
    data = get_request_data(environ)
    result = environ['services']['accounts'].sync_accounts(data.get('default_password') or settings.DEFAULT_SYNC_PASSWORD)
    return '200 OK', json.dumps(result)

# --------------------------------------------------------------------------
## 핸들러 함수: 범위 역할 할당 / 직접 권한
# --------------------------------------------------------------------------

def list_scoped_roles_handler(environ, user_id):
    assignments = environ['services']['access'].list_scoped_roles(int(user_id))
    return '200 OK', json.dumps({"assignments": assignments})

def assign_scoped_role_handler(environ, user_id):
    data = get_request_data(environ)
    assignment, report = environ['services']['access'].assign_scoped_role(
        int(user_id),
        data.get('role_id'),
        data.get('scope_type', 'GLOBAL'),
        data.get('target_database'),
        data.get('target_table'),
        data.get('assigned_by', 'admin'),
    )
    if report is None:
        return '200 OK', json.dumps({"assignment": assignment, "created": False})
    return '201 Created', json.dumps({"assignment": assignment, "created": True, "sync": report.to_dict()})

def assign_scoped_role_bulk_handler(environ, user_id):
    data = get_request_data(environ)
    result = environ['services']['access'].assign_scoped_role_to_tables(
        int(user_id),
        data.get('role_id'),
        data.get('target_database'),
        data.get('target_tables') or [],
        data.get('assigned_by', 'admin'),
    )
    return '201 Created', json.dumps(result)

def revoke_scoped_role_handler(environ, user_id, assignment_id):
    report = environ['services']['access'].revoke_scoped_role(int(user_id), int(assignment_id))
    return '200 OK', json.dumps({"sync": report.to_dict()})

def replace_roles_handler(environ, user_id):
    data = get_request_data(environ)
    report = environ['services']['access'].replace_roles(int(user_id), data.get('role_ids') or [], data.get('assigned_by', 'admin'))
    return '200 OK', json.dumps({"sync": report.to_dict()})

def list_direct_privileges_handler(environ, user_id):
    privileges = environ['services']['access'].list_direct_privileges(int(user_id))
    return '200 OK', json.dumps({"privileges": privileges})

def grant_direct_privilege_handler(environ, user_id):
    data = get_request_data(environ)
    privilege = environ['services']['access'].grant_direct_privilege(
        int(user_id),
        data.get('privilege_type'),
        data.get('target_database'),
        data.get('target_table'),
        data.get('granted_by', 'admin'),
    )
    return '201 Created', json.dumps(privilege)

def revoke_direct_privilege_handler(environ, user_id, privilege_id):
    environ['services']['access'].revoke_direct_privilege(int(user_id), int(privilege_id))
    return '204 No Content', ''

def effective_privileges_handler(environ, user_id):
    result = environ['services']['access'].resolve_effective_privileges(int(user_id))
    return '200 OK', json.dumps(result)

def native_grants_handler(environ, user_id):
    grants = environ['services']['synchronizer'].get_native_grants(int(user_id))
    return '200 OK', json.dumps({"grants": grants})

def apply_privileges_handler(environ, user_id):
    data = get_request_data(environ)
    report = environ['services']['access'].apply_privileges_to_user(int(user_id), data.get('database_name', '*'))
    return '200 OK', json.dumps({"sync": report.to_dict()})

# --------------------------------------------------------------------------
## 핸들러 함수: 역할 / 권한 카탈로그
# --------------------------------------------------------------------------

def list_roles_handler(environ, *args):
    roles = environ['services']['catalog'].list_roles()
    return '200 OK', json.dumps({"roles": roles})

def create_role_handler(environ, *args):
    data = get_request_data(environ)
    role = environ['services']['catalog'].create_role(
        data.get('name'), data.get('description', ''), data.get('is_database_role', True)
    )
    return '201 Created', json.dumps(role)

def get_role_handler(environ, role_id):
    role = environ['services']['catalog'].get_role(int(role_id))
    return '200 OK', json.dumps(role)

def update_role_handler(environ, role_id):
    data = get_request_data(environ)
    role = environ['services']['catalog'].update_role(int(role_id), data.get('name'), data.get('description'))
    return '200 OK', json.dumps(role)

def delete_role_handler(environ, role_id):
    environ['services']['catalog'].delete_role(int(role_id))
    return '204 No Content', ''

def list_role_privileges_handler(environ, role_id):
    privileges = environ['services']['catalog'].list_role_privileges(int(role_id))
    return '200 OK', json.dumps({"privileges": privileges})

def set_role_privileges_handler(environ, role_id):
    data = get_request_data(environ)
    privileges = environ['services']['catalog'].set_role_privileges(int(role_id), data.get('privilege_ids') or [])
    return '200 OK', json.dumps({"privileges": privileges})

def add_role_privilege_handler(environ, role_id, privilege_id):
    environ['services']['catalog'].add_privilege_to_role(int(role_id), int(privilege_id))
    return '204 No Content', ''

def remove_role_privilege_handler(environ, role_id, privilege_id):
    environ['services']['catalog'].remove_privilege_from_role(int(role_id), int(privilege_id))
    return '204 No Content', ''

def list_privileges_handler(environ, *args):
    privileges = environ['services']['catalog'].list_privileges()
    return '200 OK', json.dumps({"privileges": privileges})

def create_privilege_handler(environ, *args):
    data = get_request_data(environ)
    privilege = environ['services']['catalog'].create_privilege(
        name=data.get('name'),
        mysql_privilege=data.get('mysql_privilege'),
        description=data.get('description', ''),
        privilege_type=data.get('privilege_type', 'DATABASE'),
        target_database=data.get('target_database'),
        target_table=data.get('target_table'),
    )
    return '201 Created', json.dumps(privilege)

def get_privilege_handler(environ, privilege_id):
    privilege = environ['services']['catalog'].get_privilege(int(privilege_id))
    return '200 OK', json.dumps(privilege)

def update_privilege_handler(environ, privilege_id):
    data = get_request_data(environ)
    privilege = environ['services']['catalog'].update_privilege(
        int(privilege_id), data.get('description'), data.get('mysql_privilege')
    )
    return '200 OK', json.dumps(privilege)

def delete_privilege_handler(environ, privilege_id):
    environ['services']['catalog'].delete_privilege(int(privilege_id))
    return '204 No Content', ''

def stats_handler(environ, *args):
    return '200 OK', json.dumps(environ['services']['catalog'].stats())

def health_handler(environ, *args):
    if environ['services']['native'].ping():
        return '200 OK', json.dumps({"status": "ok", "native_server": "reachable"})
    return '503 Service Unavailable', json.dumps({"status": "degraded", "native_server": "unreachable"})


ROUTES = [
    ('GET', r'^/v1/health$', health_handler),
    ('GET', r'^/v1/stats$', stats_handler),
    ('POST', r'^/v1/actions/sync-accounts$', sync_accounts_handler),
    ('GET', r'^/v1/users$', list_users_handler),
    ('POST', r'^/v1/users$', create_user_handler),
    ('GET', r'^/v1/users/([0-9]+)$', get_user_handler),
    ('PATCH', r'^/v1/users/([0-9]+)$', update_user_handler),
    ('DELETE', r'^/v1/users/([0-9]+)$', delete_user_handler),
    ('GET', r'^/v1/users/([0-9]+)/scoped-roles$', list_scoped_roles_handler),
    ('POST', r'^/v1/users/([0-9]+)/scoped-roles$', assign_scoped_role_handler),
    ('POST', r'^/v1/users/([0-9]+)/scoped-roles/bulk$', assign_scoped_role_bulk_handler),
    ('DELETE', r'^/v1/users/([0-9]+)/scoped-roles/([0-9]+)$', revoke_scoped_role_handler),
    ('PUT', r'^/v1/users/([0-9]+)/roles$', replace_roles_handler),
    ('GET', r'^/v1/users/([0-9]+)/privileges$', list_direct_privileges_handler),
    ('POST', r'^/v1/users/([0-9]+)/privileges$', grant_direct_privilege_handler),
    ('DELETE', r'^/v1/users/([0-9]+)/privileges/([0-9]+)$', revoke_direct_privilege_handler),
    ('GET', r'^/v1/users/([0-9]+)/effective-privileges$', effective_privileges_handler),
    ('GET', r'^/v1/users/([0-9]+)/mysql-grants$', native_grants_handler),
    ('POST', r'^/v1/users/([0-9]+)/apply-privileges$', apply_privileges_handler),
    ('GET', r'^/v1/roles$', list_roles_handler),
    ('POST', r'^/v1/roles$', create_role_handler),
    ('GET', r'^/v1/roles/([0-9]+)$', get_role_handler),
    ('PATCH', r'^/v1/roles/([0-9]+)$', update_role_handler),
    ('DELETE', r'^/v1/roles/([0-9]+)$', delete_role_handler),
    ('GET', r'^/v1/roles/([0-9]+)/privileges$', list_role_privileges_handler),
    ('PUT', r'^/v1/roles/([0-9]+)/privileges$', set_role_privileges_handler),
    ('PUT', r'^/v1/roles/([0-9]+)/privileges/([0-9]+)$', add_role_privilege_handler),
    ('DELETE', r'^/v1/roles/([0-9]+)/privileges/([0-9]+)$', remove_role_privilege_handler),
    ('GET', r'^/v1/privileges$', list_privileges_handler),
    ('POST', r'^/v1/privileges$', create_privilege_handler),
    ('GET', r'^/v1/privileges/([0-9]+)$', get_privilege_handler),
    ('PATCH', r'^/v1/privileges/([0-9]+)$', update_privilege_handler),
    ('DELETE', r'^/v1/privileges/([0-9]+)$', delete_privilege_handler),
]

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

if __name__ == "__main__":
    configure_logging()
    try:
        with make_server(settings.SERVER_HOST, settings.SERVER_PORT, application) as httpd:
            logger.info("server_started", host=settings.SERVER_HOST or "0.0.0.0", port=settings.SERVER_PORT)
            httpd.serve_forever()
    except Exception:
        logger.exception("server_start_failed")
        raise

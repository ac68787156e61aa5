# src/utils/sql_quoting.py
import re

# GRANT/REVOKE/CREATE USER 문은 파라미터 바인딩이 되지 않으므로,
# 식별자와 문자열은 여기서 이스케이프한 뒤 문장에 끼워 넣습니다.

_KEYWORD_PATTERN = re.compile(r"^[A-Z][A-Z ]*[A-Z]$|^[A-Z]$")


def quote_identifier(name: str) -> str:
    """데이터베이스/테이블 이름을 백틱으로 감쌉니다. 내부 백틱은 두 번 써서 이스케이프합니다."""
    if name is None or name == "":
        raise ValueError("Identifier must not be empty.")
    return "`" + name.replace("`", "``") + "`"


def quote_string(value: str) -> str:
    """문자열 리터럴을 작은따옴표로 감쌉니다. (계정 이름, 호스트, 비밀번호)"""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def quote_account(username: str, host: str) -> str:
    """'username'@'host' 형태의 계정 지정자를 만듭니다."""
    return f"{quote_string(username)}@{quote_string(host)}"


def normalize_keyword(keyword: str) -> str:
    """권한 키워드를 대문자로 바꾸고 연속된 공백을 하나로 줄입니다."""
    return " ".join(keyword.split()).upper()


def is_valid_keyword(keyword: str) -> bool:
    """
    GRANT 문에 끼워 넣어도 되는 권한 키워드인지 확인합니다.
    영문 대문자와 단어 사이 공백만 허용합니다. (예: 'SELECT', 'REPLICATION CLIENT')
    """
    return bool(keyword) and bool(_KEYWORD_PATTERN.match(keyword))


def build_grant(keyword: str, object_spec: str, username: str, host: str) -> str:
    return f"GRANT {keyword} ON {object_spec} TO {quote_account(username, host)}"


def build_revoke(keyword: str, object_spec: str, username: str, host: str) -> str:
    return f"REVOKE {keyword} ON {object_spec} FROM {quote_account(username, host)}"

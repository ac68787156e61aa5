from sqlalchemy import String
from sqlalchemy.types import TypeDecorator


class TargetName(TypeDecorator):
    """
    대상 DB/테이블 이름 컬럼 타입입니다.
    대상이 없으면 NULL 대신 빈 문자열로 저장하고, 읽을 때 다시 None으로 돌려줍니다.
    NULL은 고유 제약에서 서로 다른 값으로 취급되므로 GLOBAL/DATABASE 범위의 중복을 막을 수 없기 때문입니다.
    """
    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return value or ""

    def process_result_value(self, value, dialect):
        return value or None

import time
from typing import Any, Callable, Optional

from cachetools import TTLCache


class CacheService:
    """
    카탈로그 목록 조회용 TTL 캐시입니다. 만료 처리는 cachetools.TTLCache에 맡기고,
    여기서는 키 생성과 접두사 단위 무효화만 제공합니다.
    시계(clock)를 주입받으므로 테스트에서 시간을 직접 움직일 수 있습니다.
    권한 계산/동기화 경로에서는 사용하지 않습니다. (항상 최신 데이터를 읽어야 함)
    """

    def __init__(self, ttl_seconds: float = 300, maxsize: int = 1024, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=clock)

    @staticmethod
    def make_key(operation: str, **params) -> str:
        """연산 이름과 파라미터로 캐시 키를 만듭니다. (예: 'roles:list', 'roles:get:id=3')"""
        if not params:
            return operation
        suffix = ",".join(f"{name}={params[name]}" for name in sorted(params))
        return f"{operation}:{suffix}"

    def get(self, key: str) -> Optional[Any]:
        return self._cache.get(key)

    def set(self, key: str, value: Any):
        self._cache[key] = value

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """캐시에 값이 있으면 반환하고, 없거나 만료됐으면 loader 결과를 저장한 뒤 반환합니다."""
        value = self.get(key)
        if value is None:
            value = loader()
            self.set(key, value)
        return value

    def invalidate(self, prefix: str = ""):
        """prefix로 시작하는 키를 모두 지웁니다. 빈 문자열이면 전체를 비웁니다."""
        if not prefix:
            self._cache.clear()
            return
        for key in [k for k in self._cache.keys() if k.startswith(prefix)]:
            self._cache.pop(key, None)

    def __len__(self) -> int:
        self._cache.expire()
        return len(self._cache)

# src/utils/structlog_config.py
"""structlog 기반 구조화 로깅 설정."""
import logging
import sys

import structlog

from src.config import settings

_configured = False


def configure_logging(level: str = None, json_output: bool = None) -> None:
    """
    structlog 처리기 체인을 설정합니다. 여러 번 호출해도 한 번만 적용됩니다.

    Args:
        level: 최소 로그 레벨 이름 (예: 'INFO'). 생략하면 settings.LOG_LEVEL.
        json_output: True면 JSON 한 줄, False면 사람이 읽기 쉬운 콘솔 출력.
    """
    global _configured
    if _configured:
        return

    level_name = (level or settings.LOG_LEVEL).upper()
    use_json = settings.LOG_JSON if json_output is None else json_output

    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level_name)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str):
    """모듈 이름으로 지연(lazy) 로거를 반환합니다."""
    return structlog.get_logger(name)

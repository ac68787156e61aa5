# tests/utils/test_structlog_config.py
from structlog.testing import capture_logs

from src.utils.structlog_config import get_logger


def test_get_logger_emits_structured_events():
    """
    Test that a module logger can be created at import time and emits key/value events.
    """
    # 1. 준비 (Arrange)
    logger = get_logger("src.services.grant_synchronizer")

    # 2. 실행 (Act)
    with capture_logs() as logs:
        logger.warning("grant_failed", statement="GRANT SELECT ON *.* TO 'app'@'%'")

    # 3. 단언 (Assert)
    assert len(logs) == 1
    assert logs[0]["event"] == "grant_failed"
    assert logs[0]["log_level"] == "warning"
    assert logs[0]["statement"] == "GRANT SELECT ON *.* TO 'app'@'%'"

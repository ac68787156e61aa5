# tests/utils/test_sql_quoting.py
import pytest
from src.utils.sql_quoting import (
    build_grant, build_revoke, is_valid_keyword, normalize_keyword, quote_account, quote_identifier
)

def test_build_grant_and_revoke_statements():
    """
    Test that GRANT/REVOKE statements are assembled with a quoted account specifier.
    """
    # 1. 준비 (Arrange)
    keyword = "SELECT"
    object_spec = "`shop`.`orders`"

    # 2. 실행 (Act)
    grant = build_grant(keyword, object_spec, "app", "10.0.%")
    revoke = build_revoke(keyword, object_spec, "app", "10.0.%")

    # 3. 단언 (Assert)
    assert grant == "GRANT SELECT ON `shop`.`orders` TO 'app'@'10.0.%'"
    assert revoke == "REVOKE SELECT ON `shop`.`orders` FROM 'app'@'10.0.%'"

def test_quoting_escapes_embedded_quotes():
    assert quote_identifier("we`ird") == "`we``ird`"
    assert quote_account("o'neil", "%") == "'o\\'neil'@'%'"
    assert quote_account("back\\slash", "localhost") == "'back\\\\slash'@'localhost'"

def test_quote_identifier_rejects_empty():
    with pytest.raises(ValueError):
        quote_identifier("")

@pytest.mark.parametrize("keyword, expected", [
    ("SELECT", True),
    ("REPLICATION CLIENT", True),
    ("ALL PRIVILEGES", True),
    ("select", False),
    ("SELECT;", False),
    ("SELECT ", False),
    ("", False),
])
def test_is_valid_keyword(keyword, expected):
    assert is_valid_keyword(keyword) is expected

def test_normalize_keyword():
    assert normalize_keyword("  show   databases ") == "SHOW DATABASES"

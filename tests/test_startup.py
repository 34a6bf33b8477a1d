from welfund.common.db import engine
from welfund.common.startup import display_value


def test_database_url_keeps_host_but_hides_password():
    shown = display_value("DATABASE_URL", "postgresql+psycopg2://welfund:s3cret@db:5432/welfund")
    assert "s3cret" not in shown
    assert "db:5432/welfund" in shown


def test_credentials_are_redacted():
    assert display_value("MPESA_PASSKEY", "bfb279f9aa9bdbcf") == "<redacted>"
    assert display_value("MPESA_CONSUMER_KEY", "ck") == "<redacted>"


def test_plain_and_missing_values():
    assert display_value("MPESA_SHORTCODE", "174379") == "174379"
    assert display_value("MPESA_TIMEOUT_SECONDS", 10.0) == "10.0"
    assert display_value("SUPER_ADMIN_EMAIL", "") == "<unset>"


def test_sqlite_connections_enforce_foreign_keys():
    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

"""Startup log line showing which configuration a service process came up with."""

from sqlalchemy.engine import make_url

from welfund.common.config import settings
from welfund.common.logging import logger

SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN", "PASSKEY")


def display_value(name: str, value) -> str:
    """Render one setting for the log; credentials never appear in clear."""

    if value is None or value == "":
        return "<unset>"
    if name == "DATABASE_URL":
        return make_url(value).render_as_string(hide_password=True)
    if any(marker in name for marker in SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def log_startup_config(service_name: str, keys: list[str]) -> None:
    values = settings.model_dump()
    config = {"service": service_name}
    for key in keys:
        config[key] = display_value(key, values.get(key.lower()))
    logger.info("startup_config=%s", config)

"""Runtime settings for the sales domain.

Each setting is read from the environment first and then from the
``[custom]`` section of the domain configuration.
"""

import os

from sales.domain import sales

_TRUTHY = {"1", "true", "yes", "on"}


def _lookup(key: str, default):
    value = os.getenv(key)
    if value is not None:
        return value
    custom = sales.config.get("custom") or {}
    return custom.get(key, default)


def database_uri() -> str:
    return _lookup("SALES_DATABASE_URI", "sqlite://")


def default_currency() -> str:
    return str(_lookup("SALES_DEFAULT_CURRENCY", "USD")).upper()


def close_requires_shipped() -> bool:
    """Whether closing an order is refused while lines still have open quantity."""
    value = _lookup("SALES_CLOSE_REQUIRES_SHIPPED", False)
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY

"""
Runtime configuration - DynamoDB config table with Django settings fallback.

Operators can rotate credentials and change defaults from the admin config
table without a deploy. Rows look like ``{pk: "CONFIG", sk: <KEY>, value}``;
any key missing from the table falls back to the Django setting of the same
name (populated from the environment).
"""

import functools
import logging
import time
from collections.abc import Callable
from typing import Any

from django.conf import settings

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

CONFIG_PARTITION = "CONFIG"
CACHE_TTL_SECONDS = 300


class RuntimeConfig:
    """Config values from the config table, cached for a short TTL."""

    def __init__(
        self,
        table: Any | None,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._table = table
        self._ttl = ttl_seconds
        self._clock = clock
        self._cache: dict[str, Any] | None = None
        self._loaded_at = 0.0

    def _load(self) -> dict[str, Any]:
        if self._table is None:
            return {}

        values: dict[str, Any] = {}
        kwargs: dict[str, Any] = {"FilterExpression": Attr("pk").eq(CONFIG_PARTITION)}
        try:
            while True:
                response = self._table.scan(**kwargs)
                for item in response.get("Items", []):
                    values[item["sk"]] = item.get("value")
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to load config table, using settings only: %s", e)
            return {}

        logger.info("Loaded config keys from table: %s", ", ".join(sorted(values)))
        return values

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value: table first, then Django settings, then default."""
        now = self._clock()
        if self._cache is None or now - self._loaded_at > self._ttl:
            self._cache = self._load()
            self._loaded_at = now

        value = self._cache.get(key)
        if value not in (None, ""):
            return value

        value = getattr(settings, key, None)
        if value not in (None, ""):
            return value
        return default

    def clear(self) -> None:
        """Drop cached values so the next read reloads the table."""
        self._cache = None
        self._loaded_at = 0.0


@functools.lru_cache(maxsize=1)
def get_runtime_config() -> RuntimeConfig:
    """Process-wide config reader (the cache lives as long as the worker)."""
    from apps.web.dispatch.store import get_table  # noqa: PLC0415

    table_name = settings.DISPATCH_CONFIG_TABLE
    return RuntimeConfig(get_table(table_name) if table_name else None)

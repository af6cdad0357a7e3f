#!/usr/bin/env python3
"""
Settings Module
-------------
Handles configuration parameters for PostgreSQL to Redis synchronization.

Values come from an optional ``env.conf`` file (dotenv format) and the
process environment, the latter taking precedence.
"""

import logging
import os
import re
import ssl
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

from dotenv import load_dotenv

from ..core.backoff import BackoffPolicy
from ..core.cursor import CursorDescriptor, describe
from ..core.exceptions import ConfigurationError
from ..core.templates import compile_template

logger = logging.getLogger("pg-redis-sync")

# Default configuration path
DEFAULT_CONFIG_PATH = "/app/env.conf"

DEFAULT_SELECT_QUERY = (
    "SELECT MAX(id) as id, partition_key FROM sample_table "
    "WHERE id > $1 GROUP BY partition_key"
)
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LIMIT_PATTERN = re.compile(r"\bLIMIT\s+\d+", re.IGNORECASE)

SUPPORTED_DRIVERS = ("postgres", "postgresql")


# Utility function to get environment variable with default
def get_env(key: str, default: Any) -> Any:
    return os.environ.get(key, default)


# Utility function to get boolean environment variable
def get_bool_env(key: str, default: bool) -> bool:
    val = str(get_env(key, str(default))).lower()
    return val in ("true", "1", "t", "y", "yes")


# Utility function to get integer environment variable
def get_int_env(key: str, default: int) -> int:
    try:
        return int(get_env(key, str(default)))
    except ValueError:
        logger.warning(f"Invalid integer for {key}, using default {default}")
        return default


# Utility function to get float environment variable
def get_float_env(key: str, default: float) -> float:
    try:
        return float(get_env(key, str(default)))
    except ValueError:
        logger.warning(f"Invalid number for {key}, using default {default}")
        return default


@dataclass
class CursorSettings:
    column: str = "id"
    type: str = "int64"
    default: str = "-1"

    def descriptor(self) -> CursorDescriptor:
        return describe(self.type, self.default, column=self.column)


@dataclass
class DBSettings:
    """PostgreSQL connection and query settings."""

    connection_string: str = ""
    driver_name: str = "postgres"
    select_query: str = DEFAULT_SELECT_QUERY
    cursor: CursorSettings = field(default_factory=CursorSettings)
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = "postgres"
    dbname: str = "postgres"
    tls_mode: str = "disable"
    tls_root_cert: str = ""
    pool_size: int = 5
    query_timeout: float = 30.0

    def build_dsn(self) -> str:
        """
        Connection string handed to asyncpg.

        An explicit connection string is used as is. Otherwise a
        ``postgresql://`` URI is built from the individual settings.

        Raises:
            ConfigurationError: If the driver is not PostgreSQL
        """
        if self.connection_string:
            return self.connection_string

        if self.driver_name not in SUPPORTED_DRIVERS:
            raise ConfigurationError(
                f"unsupported driver to build the connection string: {self.driver_name}"
            )

        params = {"sslmode": self.tls_mode}
        if self.tls_root_cert:
            params["sslrootcert"] = self.tls_root_cert

        return (
            f"postgresql://{quote(self.user, safe='')}:{quote(self.password, safe='')}"
            f"@{self.host}:{self.port}/{quote(self.dbname, safe='')}?{urlencode(params)}"
        )


@dataclass
class RedisSettings:
    """Redis connection settings and key layout."""

    url: str = ""
    host: str = "localhost"
    port: int = 6379
    user: str = ""
    password: str = ""
    tls_insecure_skip_verify: bool = False
    key: str = "my-worker:${partition_key}:key"
    value: str = "${id}"
    cursor_key: str = "my-worker:latest"

    def client_kwargs(self) -> Dict[str, Any]:
        """
        Keyword arguments for ``redis.asyncio.Redis`` when no URL is set.
        """
        kwargs: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "username": self.user or None,
            "password": self.password or None,
            "decode_responses": True,
        }
        if self.tls_insecure_skip_verify:
            kwargs["ssl"] = True
            kwargs["ssl_cert_reqs"] = ssl.CERT_NONE
            kwargs["ssl_check_hostname"] = False
        return kwargs


@dataclass
class WorkerSettings:
    """All settings of the sync worker."""

    db: DBSettings = field(default_factory=DBSettings)
    redis: RedisSettings = field(default_factory=RedisSettings)
    poll_delay: float = 2.0
    debug: bool = False
    batch_size: int = 200
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    connect_max_retries: int = 5
    log_level: str = "INFO"
    log_format: str = DEFAULT_LOG_FORMAT

    def as_dict(self) -> Dict[str, Any]:
        """Settings with secrets masked, suitable for logging."""
        return {
            "db_host": self.db.host,
            "db_port": self.db.port,
            "db_name": self.db.dbname,
            "db_connection_string": "***" if self.db.connection_string else "",
            "select_query": self.db.select_query,
            "cursor_column": self.db.cursor.column,
            "cursor_type": self.db.cursor.type,
            "cursor_default": self.db.cursor.default,
            "redis_url": "***" if self.redis.url else "",
            "redis_host": self.redis.host,
            "redis_port": self.redis.port,
            "redis_key": self.redis.key,
            "redis_value": self.redis.value,
            "redis_cursor_key": self.redis.cursor_key,
            "poll_delay": self.poll_delay,
            "batch_size": self.batch_size,
            "debug": self.debug,
        }


def settings_from_env() -> WorkerSettings:
    """Build settings from the current process environment."""
    cursor = CursorSettings(
        column=get_env("WORKER_DB_CURSOR_COLUMN", "id"),
        type=get_env("WORKER_DB_CURSOR_TYPE", "int64"),
        default=get_env("WORKER_DB_CURSOR_DEFAULT", "-1"),
    )
    db = DBSettings(
        connection_string=get_env("WORKER_DB_CONNECTION_STRING", ""),
        driver_name=get_env("WORKER_DB_DRIVER_NAME", "postgres"),
        select_query=get_env("WORKER_DB_SELECT_QUERY", DEFAULT_SELECT_QUERY),
        cursor=cursor,
        host=get_env("WORKER_DB_HOST", "localhost"),
        port=get_int_env("WORKER_DB_PORT", 5432),
        user=get_env("WORKER_DB_USER", "postgres"),
        password=get_env("WORKER_DB_PASSWORD", "postgres"),
        dbname=get_env("WORKER_DB_DBNAME", "postgres"),
        tls_mode=get_env("WORKER_DB_TLS_MODE", "disable"),
        tls_root_cert=get_env("WORKER_DB_TLS_ROOTCERT", ""),
        pool_size=get_int_env("WORKER_DB_POOL_SIZE", 5),
        query_timeout=get_float_env("WORKER_DB_QUERY_TIMEOUT", 30.0),
    )
    redis = RedisSettings(
        url=get_env("WORKER_REDIS_URL", ""),
        host=get_env("WORKER_REDIS_HOST", "localhost"),
        port=get_int_env("WORKER_REDIS_PORT", 6379),
        user=get_env("WORKER_REDIS_USER", ""),
        password=get_env("WORKER_REDIS_PASSWORD", ""),
        tls_insecure_skip_verify=get_bool_env(
            "WORKER_REDIS_TLS_INSECURE_SKIP_VERIFY", False
        ),
        key=get_env("WORKER_REDIS_KEY", "my-worker:${partition_key}:key"),
        value=get_env("WORKER_REDIS_VALUE", "${id}"),
        cursor_key=get_env("WORKER_REDIS_CURSOR_KEY", "my-worker:latest"),
    )
    backoff = BackoffPolicy(
        initial_delay=get_float_env("WORKER_BACKOFF_INITIAL", 0.5),
        multiplier=get_float_env("WORKER_BACKOFF_MULTIPLIER", 1.5),
        max_delay=get_float_env("WORKER_BACKOFF_MAX", 60.0),
        max_retries=get_int_env("WORKER_BACKOFF_MAX_RETRIES", 20),
    )
    return WorkerSettings(
        db=db,
        redis=redis,
        poll_delay=get_float_env("WORKER_POLL_DELAY", 2.0),
        debug=get_bool_env("WORKER_DEBUG", False),
        batch_size=get_int_env("WORKER_BATCH_SIZE", 200),
        backoff=backoff,
        connect_max_retries=get_int_env("WORKER_CONNECT_MAX_RETRIES", 5),
        log_level=get_env("LOG_LEVEL", "INFO").upper(),
        log_format=get_env("LOG_FORMAT", DEFAULT_LOG_FORMAT),
    )


def validate_settings(settings: WorkerSettings) -> WorkerSettings:
    """
    Check the settings and append the batch LIMIT to the select query.

    Args:
        settings: Settings as read from file/environment

    Returns:
        A copy of the settings whose select query ends with ``LIMIT <batch_size>``

    Raises:
        ConfigurationError: If any setting is invalid
    """
    if LIMIT_PATTERN.search(settings.db.select_query):
        raise ConfigurationError("select query should not contain LIMIT")

    if settings.batch_size <= 0:
        raise ConfigurationError("batch size should be greater than 0")

    if settings.poll_delay < 0:
        raise ConfigurationError("poll delay should not be negative")

    if not settings.redis.cursor_key:
        raise ConfigurationError("redis cursor key should not be empty")

    # Fail at startup rather than on the first iteration
    settings.db.cursor.descriptor()
    compile_template(settings.redis.key)
    compile_template(settings.redis.value)

    db = replace(
        settings.db,
        select_query=f"{settings.db.select_query.rstrip().rstrip(';')} LIMIT {settings.batch_size}",
    )
    return replace(settings, db=db)


def load_settings(config_path: Optional[str] = None) -> WorkerSettings:
    """
    Load configuration from the specified path or use environment variables.

    Args:
        config_path: Path to the configuration file. If None, uses DEFAULT_CONFIG_PATH.

    Returns:
        Validated WorkerSettings

    Raises:
        ConfigurationError: If the configuration is not valid
    """
    # Load environment variables from config file if it exists
    if config_path:
        config_file = Path(config_path)
        if config_file.exists():
            load_dotenv(config_file, interpolate=False)
            logger.info(f"Loaded configuration from {config_path}")
        else:
            logger.warning(
                f"Configuration file {config_path} not found, using environment variables"
            )
    else:
        load_dotenv(DEFAULT_CONFIG_PATH, interpolate=False)

    return validate_settings(settings_from_env())

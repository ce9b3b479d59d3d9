"""
Configuration for the trench state store.

Everything is read from environment variables:
  TRENCH_DB_PATH             database file (default: $XDG_DATA_HOME/trench/trench.db)
  TRENCH_LOG_RETENTION_DAYS  prune log lines of events older than this (0 = keep forever)
  TRENCH_BUSY_TIMEOUT        seconds SQLite waits on a locked database
"""

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from trench.exceptions import ConfigError
from trench.paths import default_db_path

logger = logging.getLogger(__name__)

DEFAULT_LOG_RETENTION_DAYS = 30
DEFAULT_BUSY_TIMEOUT = 30.0


class TrenchConfig(BaseModel):
    """Resolved store configuration.

    >>> TrenchConfig(db_path=":memory:").log_retention_days
    30
    """

    db_path: str = Field(default_factory=default_db_path)
    log_retention_days: int = DEFAULT_LOG_RETENTION_DAYS
    busy_timeout: float = DEFAULT_BUSY_TIMEOUT

    @field_validator("db_path")
    @classmethod
    def _db_path_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("db_path cannot be empty")
        return v

    @field_validator("log_retention_days")
    @classmethod
    def _retention_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("log_retention_days must be >= 0")
        return v

    @field_validator("busy_timeout")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("busy_timeout must be > 0")
        return v

    @property
    def retention_enabled(self) -> bool:
        return self.log_retention_days > 0

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "TrenchConfig":
        """Build config from environment variables.

        Raises:
            ConfigError: if a variable is set to an invalid value

        >>> TrenchConfig.from_env({"TRENCH_DB_PATH": "/tmp/t.db"}).db_path
        '/tmp/t.db'
        """
        env = os.environ if environ is None else environ
        values = {}
        if env.get("TRENCH_DB_PATH"):
            values["db_path"] = env["TRENCH_DB_PATH"]
        if env.get("TRENCH_LOG_RETENTION_DAYS"):
            values["log_retention_days"] = env["TRENCH_LOG_RETENTION_DAYS"]
        if env.get("TRENCH_BUSY_TIMEOUT"):
            values["busy_timeout"] = env["TRENCH_BUSY_TIMEOUT"]

        try:
            config = cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid trench configuration: {e}") from e

        logger.debug("Loaded config: db_path=%s retention=%sd", config.db_path, config.log_retention_days)
        return config

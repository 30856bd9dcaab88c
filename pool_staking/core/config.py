"""Global ledger configuration and environment settings."""
import os
import sys
from pathlib import Path
from typing import Optional, Union
import yaml
from loguru import logger
from pydantic import BaseModel, ValidationError, field_validator

from .errors import InvalidConfigError
from .models import ExcessPolicy

DEFAULT_TREASURY = "treasury"
DEFAULT_LEDGER_ACCOUNT = "ledger"


def get_ledger_home() -> Path:
    """Get the directory holding persisted ledger state."""
    return Path(os.getenv(
        "POOL_STAKING_HOME",
        os.path.join(os.path.expanduser("~"), ".pool-staking")
    ))


def configure_logging(level: Optional[str] = None) -> None:
    """Route loguru output to stderr at ``level`` (or POOL_STAKING_LOG_LEVEL)."""
    level = level or os.getenv("POOL_STAKING_LOG_LEVEL", "INFO")
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


class LedgerConfig(BaseModel):
    """Global, manager-tunable ledger parameters."""
    minimum_stake_amount: int = 1
    minimum_stake_duration: int = 0
    treasury: str = DEFAULT_TREASURY
    ledger_account: str = DEFAULT_LEDGER_ACCOUNT
    excess_policy: ExcessPolicy = ExcessPolicy.RETAIN

    model_config = {"validate_assignment": True}

    @field_validator("minimum_stake_amount", "minimum_stake_duration")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("treasury", "ledger_account")
    @classmethod
    def _non_empty_principal(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("principal must not be empty")
        return value

    def update(self, field: str, value) -> object:
        """Set ``field`` to ``value`` with validation, returning the old value."""
        if field not in type(self).model_fields:
            raise InvalidConfigError(f"Unknown config field: {field}")
        old = getattr(self, field)
        try:
            setattr(self, field, value)
        except ValidationError as e:
            raise InvalidConfigError(f"Invalid value for {field}: {e.errors()[0]['msg']}") from e
        return old

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerConfig":
        try:
            return cls(**(data or {}))
        except ValidationError as e:
            raise InvalidConfigError(f"Invalid ledger config: {e}") from e

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "LedgerConfig":
        """Load configuration from a YAML file.

        The file may hold the fields at top level or under a ``ledger`` key.
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidConfigError(f"Failed to parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise InvalidConfigError(f"Expected a mapping in {path}")
        config = cls.from_dict(data.get("ledger", data))
        logger.debug(f"Loaded ledger config from {path}")
        return config

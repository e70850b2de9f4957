"""
Runtime configuration for admission and deadline handling.
"""

import pathlib
from dataclasses import dataclass

from floodgate.env import Env
from floodgate.errors import ConfigurationError


@dataclass(slots=True)
class FloodgateConfig:
    """Configuration values for the gate, deadlines and logging."""

    capacity: int
    default_timeout_ms: float
    log_level: str
    log_output: str
    logs_directory: str | None
    log_filename: str | None

    def validate(self):
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int):
            raise ConfigurationError(
                f"capacity must be an integer, got {type(self.capacity).__name__}"
            )

        if self.capacity < 1:
            raise ConfigurationError(
                f"capacity must be at least 1, got {self.capacity}"
            )

        if self.default_timeout_ms <= 0:
            raise ConfigurationError(
                f"default_timeout_ms must be positive, got {self.default_timeout_ms}"
            )

        if self.log_filename and pathlib.Path(self.log_filename).suffix != ".json":
            raise ConfigurationError(
                f"log_filename must be a .json file, got {self.log_filename}"
            )

        return self


def create_floodgate_config_from_env(env: Env):
    """Create floodgate configuration from environment settings."""
    return FloodgateConfig(
        capacity=env.FLOODGATE_CAPACITY,
        default_timeout_ms=float(env.FLOODGATE_DEFAULT_TIMEOUT_MS),
        log_level=env.FLOODGATE_LOG_LEVEL,
        log_output=env.FLOODGATE_LOG_OUTPUT,
        logs_directory=env.FLOODGATE_LOGS_DIRECTORY,
        log_filename=env.FLOODGATE_LOG_FILENAME,
    ).validate()

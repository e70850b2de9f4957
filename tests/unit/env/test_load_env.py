"""
Tests for environment loading, configuration and the coordinator factory.
"""

import os

import pytest

from floodgate import create_coordinator
from floodgate.config import FloodgateConfig, create_floodgate_config_from_env
from floodgate.env import Env, load_env
from floodgate.errors import ConfigurationError
from floodgate.logging import Logger


@pytest.fixture
def clean_environment(monkeypatch: pytest.MonkeyPatch, tmp_path):
    for envar_name in Env.types_map():
        monkeypatch.delenv(envar_name, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestLoadEnv:
    """Loading Env from the process environment and .env files."""

    def test_defaults(self, clean_environment):
        """Without any settings the defaults apply."""
        env = load_env(Env)

        assert env.FLOODGATE_CAPACITY == 3
        assert env.FLOODGATE_DEFAULT_TIMEOUT_MS == 30000
        assert env.FLOODGATE_LOG_LEVEL == "info"
        assert env.FLOODGATE_LOG_OUTPUT == "stderr"
        assert env.FLOODGATE_LOGS_DIRECTORY is None

    def test_process_environment(self, clean_environment, monkeypatch: pytest.MonkeyPatch):
        """Process environment values are converted with types_map()."""
        monkeypatch.setenv("FLOODGATE_CAPACITY", "8")
        monkeypatch.setenv("FLOODGATE_DEFAULT_TIMEOUT_MS", "1500")
        monkeypatch.setenv("FLOODGATE_LOG_LEVEL", "debug")

        env = load_env(Env)

        assert env.FLOODGATE_CAPACITY == 8
        assert env.FLOODGATE_DEFAULT_TIMEOUT_MS == 1500.0
        assert env.FLOODGATE_LOG_LEVEL == "debug"

    def test_env_file(self, clean_environment):
        """Values from a .env file are loaded."""
        env_file = clean_environment / "floodgate.env"
        env_file.write_text(
            "FLOODGATE_CAPACITY=5\nFLOODGATE_LOG_OUTPUT=stdout\n"
        )

        env = load_env(Env, env_file=str(env_file))

        assert env.FLOODGATE_CAPACITY == 5
        assert env.FLOODGATE_LOG_OUTPUT == "stdout"

    def test_default_env_file_in_working_directory(self, clean_environment):
        """A .env file in the working directory is picked up by default."""
        (clean_environment / ".env").write_text("FLOODGATE_CAPACITY=4\n")

        env = load_env(Env)

        assert env.FLOODGATE_CAPACITY == 4

    def test_override_wins(self, clean_environment, monkeypatch: pytest.MonkeyPatch):
        """Explicitly set override fields take precedence."""
        monkeypatch.setenv("FLOODGATE_CAPACITY", "8")
        monkeypatch.setenv("FLOODGATE_LOG_LEVEL", "warn")

        env = load_env(Env, override=Env(FLOODGATE_CAPACITY=2))

        assert env.FLOODGATE_CAPACITY == 2
        assert env.FLOODGATE_LOG_LEVEL == "warn"

    def test_malformed_number_raises_configuration_error(
        self,
        clean_environment,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """Values that cannot be converted fail as ConfigurationError."""
        monkeypatch.setenv("FLOODGATE_CAPACITY", "abc")

        with pytest.raises(ConfigurationError) as exc_info:
            load_env(Env)

        assert "FLOODGATE_CAPACITY" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_malformed_env_file_value_raises_configuration_error(self, clean_environment):
        """Bad .env file values fail the same way."""
        (clean_environment / ".env").write_text("FLOODGATE_DEFAULT_TIMEOUT_MS=soon\n")

        with pytest.raises(ConfigurationError):
            load_env(Env)

    def test_unknown_log_level_raises_configuration_error(
        self,
        clean_environment,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """Values the Env model rejects fail as ConfigurationError."""
        monkeypatch.setenv("FLOODGATE_LOG_LEVEL", "verbose")

        with pytest.raises(ConfigurationError):
            load_env(Env)


class TestFloodgateConfig:
    """Config creation and validation."""

    def test_config_from_env(self):
        """Config mirrors the env fields."""
        config = create_floodgate_config_from_env(
            Env(
                FLOODGATE_CAPACITY=6,
                FLOODGATE_DEFAULT_TIMEOUT_MS=2500,
            )
        )

        assert isinstance(config, FloodgateConfig)
        assert config.capacity == 6
        assert config.default_timeout_ms == 2500.0

    @pytest.mark.parametrize("capacity", [0, -3])
    def test_invalid_capacity_raises(self, capacity: int):
        """Non-positive capacity fails when the config is created."""
        with pytest.raises(ConfigurationError):
            create_floodgate_config_from_env(Env(FLOODGATE_CAPACITY=capacity))

    def test_invalid_timeout_raises(self):
        """Non-positive default timeout fails when the config is created."""
        with pytest.raises(ConfigurationError):
            create_floodgate_config_from_env(Env(FLOODGATE_DEFAULT_TIMEOUT_MS=0))

    @pytest.mark.parametrize("log_filename", ["floodgate.log", "floodgate", "floodgate.json.txt"])
    def test_non_json_log_filename_raises(self, log_filename: str):
        """Log files must be JSON files, checked before anything is built."""
        with pytest.raises(ConfigurationError):
            create_floodgate_config_from_env(Env(FLOODGATE_LOG_FILENAME=log_filename))

    def test_non_json_log_filename_rejected_by_factory(self):
        """create_coordinator fails synchronously on a non-JSON log file."""
        with pytest.raises(ConfigurationError):
            create_coordinator(env=Env(FLOODGATE_LOG_FILENAME="floodgate.log"))


class TestCreateCoordinator:
    """Factory wiring."""

    @pytest.mark.asyncio
    async def test_builds_independent_coordinators(self):
        """Each call builds its own gate from the env settings."""
        env = Env(FLOODGATE_CAPACITY=2, FLOODGATE_DEFAULT_TIMEOUT_MS=750)

        first = create_coordinator(env=env)
        second = create_coordinator(env=env)

        assert first.gate is not second.gate
        assert first.status().to_dict() == {"running": 0, "queued": 0, "capacity": 2}
        assert first.default_timeout_ms == 750.0

        async def operation():
            return "done"

        assert await first.run(operation) == "done"

    @pytest.mark.asyncio
    async def test_log_file_configured(self, temp_log_directory: str):
        """A log filename routes coordinator logs to a JSON file."""
        env = Env(
            FLOODGATE_LOGS_DIRECTORY=temp_log_directory,
            FLOODGATE_LOG_FILENAME="floodgate.json",
            FLOODGATE_LOG_LEVEL="debug",
        )

        coordinator = create_coordinator(env=env)

        async def operation():
            return 1

        assert await coordinator.run(operation, timeout_ms=500) == 1

        await coordinator.gate.wait_idle()
        await coordinator.close()

        logfile = os.path.join(temp_log_directory, "floodgate.json")
        with open(logfile) as logs:
            contents = logs.read()

        assert "Admitted operation" in contents
        assert "Released slot" in contents

    @pytest.mark.asyncio
    async def test_shared_logger_is_exposed(self, logger: Logger):
        """The logger passed to the factory is the one the coordinator closes."""
        coordinator = create_coordinator(
            env=Env(FLOODGATE_CAPACITY=1),
            logger=logger,
        )

        assert coordinator.logger is logger
        assert coordinator.gate.status().capacity == 1

        await coordinator.close()

        assert logger.pending == 0

    @pytest.mark.asyncio
    async def test_unusable_log_directory_does_not_fail_operations(
        self,
        capsys: pytest.CaptureFixture,
        temp_log_directory: str,
    ):
        """Log write failures go to stderr; the operation still answers."""
        blocker = os.path.join(temp_log_directory, "file")
        with open(blocker, "w") as blocking_file:
            blocking_file.write("not a directory")

        coordinator = create_coordinator(
            env=Env(
                FLOODGATE_LOGS_DIRECTORY=os.path.join(blocker, "sub"),
                FLOODGATE_LOG_FILENAME="floodgate.json",
                FLOODGATE_LOG_LEVEL="debug",
            )
        )

        async def operation():
            return 1

        assert await coordinator.run(operation, timeout_ms=500) == 1

        await coordinator.gate.wait_idle()
        await coordinator.close()

        assert capsys.readouterr().err != ""
        assert coordinator.logger.pending == 0

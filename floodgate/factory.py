import os

from floodgate.admission import AdmissionGate
from floodgate.config import create_floodgate_config_from_env
from floodgate.coordinator import Coordinator
from floodgate.deadlines import DeadlineSupervisor, ErrorHandler
from floodgate.env import Env, load_env
from floodgate.logging import Logger, LoggingConfig


def create_coordinator(
    env: Env | None = None,
    logger: Logger | None = None,
    error_handler: ErrorHandler | None = None,
    name: str = "default",
):
    """
    Build a gate, deadline supervisor and coordinator from environment
    settings. Each call returns an independent gate; share the returned
    coordinator (or its ``gate``) with every collaborator that needs
    admission to the same resource.
    """
    if env is None:
        env = load_env(Env)

    config = create_floodgate_config_from_env(env)

    logging_config = LoggingConfig()
    logging_config.update(
        log_directory=config.logs_directory,
        log_level=config.log_level,
        log_output=config.log_output,
    )

    if logger is None:
        logger = Logger()

    if config.log_filename:
        logger.configure(
            name="floodgate",
            path=os.path.join(
                config.logs_directory or os.getcwd(),
                config.log_filename,
            ),
        )

    gate = AdmissionGate(
        config.capacity,
        name=name,
        logger=logger,
    )

    supervisor = DeadlineSupervisor(
        logger=logger,
        error_handler=error_handler,
    )

    return Coordinator(
        gate,
        supervisor=supervisor,
        default_timeout_ms=config.default_timeout_ms,
        logger=logger,
    )

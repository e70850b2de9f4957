from .errors import (
    ConfigurationError as ConfigurationError,
    FloodgateError as FloodgateError,
    OperationError as OperationError,
    OperationTimeoutError as OperationTimeoutError,
)

from __future__ import annotations
from pydantic import BaseModel, StrictStr, StrictInt, StrictFloat
from typing import Callable, Dict, Literal, Union

PrimaryType = Union[str, int, float, bytes, bool]


class Env(BaseModel):
    FLOODGATE_CAPACITY: StrictInt = 3
    FLOODGATE_DEFAULT_TIMEOUT_MS: StrictFloat | StrictInt = 30000
    FLOODGATE_LOG_LEVEL: Literal[
        "trace", "debug", "info", "warn", "error", "critical", "fatal"
    ] = "info"
    FLOODGATE_LOG_OUTPUT: Literal["stdout", "stderr"] = "stderr"
    FLOODGATE_LOGS_DIRECTORY: StrictStr | None = None
    FLOODGATE_LOG_FILENAME: StrictStr | None = None

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "FLOODGATE_CAPACITY": int,
            "FLOODGATE_DEFAULT_TIMEOUT_MS": float,
            "FLOODGATE_LOG_LEVEL": str,
            "FLOODGATE_LOG_OUTPUT": str,
            "FLOODGATE_LOGS_DIRECTORY": str,
            "FLOODGATE_LOG_FILENAME": str,
        }

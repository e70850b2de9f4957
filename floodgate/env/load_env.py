import os
from pydantic import BaseModel, ValidationError
from typing import Callable, Dict, TypeVar, Union

from dotenv import dotenv_values

from floodgate.errors import ConfigurationError

from .env import Env

T = TypeVar("T", bound=BaseModel)

PrimaryType = Union[str, int, bool, float, bytes]


def _convert(
    envar_name: str,
    envar_type: Callable[[str], PrimaryType],
    envar_value: str,
) -> PrimaryType:
    try:
        return envar_type(envar_value)

    except ValueError as err:
        raise ConfigurationError(
            f"{envar_name}={envar_value!r} is not a valid {envar_type.__name__}"
        ) from err


def load_env(default: type[Env], env_file: str | None = None, override: T | None = None) -> T:
    envars = default.types_map()

    if env_file is None:
        env_file = ".env"

    values: Dict[str, PrimaryType] = {}
    for envar_name, envar_type in envars.items():
        envar_value = os.getenv(envar_name)
        if envar_value:
            values[envar_name] = _convert(envar_name, envar_type, envar_value)

    if env_file and os.path.exists(env_file):
        env_file_values = dotenv_values(dotenv_path=env_file)

        for envar_name, envar_value in env_file_values.items():
            envar_type = envars.get(envar_name)
            if envar_type and envar_value:
                values[envar_name] = _convert(envar_name, envar_type, envar_value)

    env_type = default

    if override:
        values.update(**override.model_dump(exclude_none=True, exclude_unset=True))
        env_type = type(override)

    try:
        return env_type(
            **{name: value for name, value in values.items() if value is not None}
        )

    except ValidationError as err:
        raise ConfigurationError(str(err)) from err

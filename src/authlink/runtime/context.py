"""Process-wide configuration held in a context variable.

Services read settings through ``get_config()`` at call time, so a test (or a
CLI invocation) can swap in a partial override with ``with_context`` without
rebuilding anything.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from src.authlink.runtime.config.config_data import ConfigData
from src.authlink.runtime.config.config_template import load_config
from src.authlink.runtime.config.settings import EnvironmentVariables


@dataclass
class AppContext:
    config: ConfigData


def _load_default_config() -> ConfigData:
    """Load config.yaml and apply the primitive environment overrides on top."""
    env = EnvironmentVariables()
    config = load_config(Path(env.config_path))
    if env.database_url:
        config.database.url = env.database_url
    if env.log_level:
        config.logging.level = env.log_level
    return config


_app_context: ContextVar[AppContext] = ContextVar(
    "authlink_context", default=AppContext(config=_load_default_config())
)


def get_context() -> AppContext:
    return _app_context.get()


def set_context(context: AppContext) -> Token[AppContext]:
    return _app_context.set(context)


def get_config() -> ConfigData:
    return get_context().config


def set_config(config: ConfigData) -> None:
    """Replace the whole configuration of the current context."""
    set_context(replace(get_context(), config=config))


def _set_fields(model: BaseModel) -> dict[str, Any]:
    """Values assigned on ``model`` or any nested section, leaving defaults out."""
    assigned: dict[str, Any] = {}
    for name in type(model).model_fields:
        value = getattr(model, name)
        if isinstance(value, BaseModel):
            nested = _set_fields(value)
            if nested:
                assigned[name] = nested
            elif name in model.model_fields_set:
                assigned[name] = value.model_dump()
        elif name in model.model_fields_set:
            assigned[name] = value
    return assigned


def _overlay(base: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _overlay(merged[key], value)
        else:
            merged[key] = value
    return merged


@contextmanager
def with_context(config_override: ConfigData | None = None) -> Iterator[None]:
    """Temporarily overlay ``config_override`` on the current configuration.

    Only fields explicitly assigned on the override (at any depth) take
    effect; everything else is inherited from the enclosing context::

        override = ConfigData()
        override.credentials.protect_last_credential = True
        with with_context(override):
            ...
    """
    if config_override is None:
        yield
        return
    if not isinstance(config_override, ConfigData):
        raise ValueError(
            f"config_override must be ConfigData or None, got {type(config_override)}"
        )

    merged = ConfigData.model_validate(
        _overlay(get_config().model_dump(), _set_fields(config_override))
    )
    token = set_context(replace(get_context(), config=merged))
    try:
        yield
    finally:
        _app_context.reset(token)

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Callable, TypeVar

from dotenv import load_dotenv

log = logging.getLogger(__name__)

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
DEFAULT_LOG_LEVEL = "WARNING"

N = TypeVar("N", int, float)

__all__ = [
    "TRUE_VALUES",
    "RuntimeConfig",
    "clean_env",
    "env_float",
    "env_int",
    "load_runtime_config",
    "parse_bool",
    "parse_float",
    "parse_int",
]


def _parse_number(
    raw: str | None,
    cast: Callable[[str], N],
    *,
    default: N,
    minimum: N | None,
    name: str,
) -> N:
    text = (raw or "").strip()
    if not text:
        return default
    try:
        value = cast(text)
    except ValueError:
        log.warning("Ignoring %s=%r; using %s", name, raw, default)
        return default
    if math.isnan(value):
        log.warning("Ignoring %s=%r; using %s", name, raw, default)
        return default
    if minimum is not None and value < minimum:
        log.warning("%s=%s is below the minimum; using %s", name, value, minimum)
        return minimum
    return value


def parse_int(raw: str | None, *, default: int, minimum: int | None = None, name: str = "value") -> int:
    return _parse_number(raw, int, default=default, minimum=minimum, name=name)


def parse_float(
    raw: str | None,
    *,
    default: float,
    minimum: float | None = None,
    name: str = "value",
) -> float:
    return _parse_number(raw, float, default=default, minimum=minimum, name=name)


def parse_bool(raw: str | None, *, default: bool) -> bool:
    if not raw:
        return default
    return raw.strip().lower() in TRUE_VALUES


def clean_env(*names: str) -> str | None:
    """Return the first non-blank environment value among ``names``."""

    values = (os.getenv(name, "").strip() for name in names)
    return next((value for value in values if value), None)


def env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    return parse_int(os.getenv(name), default=default, minimum=minimum, name=name)


def env_float(name: str, default: float, *, minimum: float | None = None) -> float:
    return parse_float(os.getenv(name), default=default, minimum=minimum, name=name)


@dataclass(slots=True, frozen=True)
class RuntimeConfig:
    log_level: str = DEFAULT_LOG_LEVEL


def load_runtime_config() -> RuntimeConfig:
    load_dotenv()
    level = clean_env("LOG_LEVEL")
    return RuntimeConfig(log_level=level.upper() if level else DEFAULT_LOG_LEVEL)

from __future__ import annotations

from dataclasses import dataclass, fields, replace
import os
from pathlib import Path
import tomllib
from typing import Any, Mapping

from pipeplot.errors import ConfigError


DEFAULT_EXECUTABLE = "gnuplot"
DEFAULT_CLOSE_DELAY_S = 1.0
DEFAULT_CONFIG_FILENAME = "pipeplot.toml"

ENV_EXECUTABLE = "PIPEPLOT_GNUPLOT"
ENV_PERSIST = "PIPEPLOT_PERSIST"
ENV_CLOSE_DELAY = "PIPEPLOT_CLOSE_DELAY"


@dataclass(frozen=True)
class SessionConfig:
    executable: str = DEFAULT_EXECUTABLE
    persist: bool = True
    close_delay_s: float = DEFAULT_CLOSE_DELAY_S
    encoding: str = "utf8"
    minus_sign: bool = True
    inline_data: bool = True
    fill_style: str = "solid 0.5"

    def __post_init__(self) -> None:
        if not self.executable:
            raise ConfigError("executable must not be empty")
        if self.close_delay_s < 0:
            raise ConfigError("close_delay_s must be >= 0")


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> SessionConfig:
    """Build a session config from an optional TOML file plus environment overrides.

    The file holds a ``[session]`` table whose keys mirror ``SessionConfig``
    fields. A missing explicit path is an error; when ``path`` is None the
    current directory's ``pipeplot.toml`` is used if present.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"config file not found: {config_path}")
        raw = _read_session_table(config_path)
    else:
        default_path = Path.cwd() / DEFAULT_CONFIG_FILENAME
        if default_path.exists():
            raw = _read_session_table(default_path)

    config = _from_mapping(raw)
    return apply_env_overrides(config, os.environ if environ is None else environ)


def apply_env_overrides(config: SessionConfig, environ: Mapping[str, str]) -> SessionConfig:
    updates: dict[str, Any] = {}
    executable = environ.get(ENV_EXECUTABLE, "").strip()
    if executable:
        updates["executable"] = executable
    persist = environ.get(ENV_PERSIST, "").strip()
    if persist:
        updates["persist"] = _parse_bool(persist, ENV_PERSIST)
    delay = environ.get(ENV_CLOSE_DELAY, "").strip()
    if delay:
        try:
            updates["close_delay_s"] = float(delay)
        except ValueError as exc:
            raise ConfigError(f"{ENV_CLOSE_DELAY} must be a number: {delay!r}") from exc
    if not updates:
        return config
    return replace(config, **updates)


def _read_session_table(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid config file {path}: {exc}") from exc
    table = raw.get("session", {})
    if not isinstance(table, dict):
        raise ConfigError("[session] must be a table")
    return table


def _from_mapping(raw: Mapping[str, Any]) -> SessionConfig:
    known = {f.name: f for f in fields(SessionConfig)}
    kwargs: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            raise ConfigError(f"unknown session config key: {key}")
        kwargs[key] = _coerce_field(key, value)
    return SessionConfig(**kwargs)


def _coerce_field(key: str, value: Any) -> Any:
    if key in {"persist", "minus_sign", "inline_data"}:
        if not isinstance(value, bool):
            raise ConfigError(f"{key} must be a boolean")
        return value
    if key == "close_delay_s":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError("close_delay_s must be a number")
        return float(value)
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string")
    return value


def _parse_bool(value: str, name: str) -> bool:
    lowered = value.lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{name} must be a boolean flag: {value!r}")

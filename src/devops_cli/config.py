from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from loguru import logger

from .errors import ConfigError

CONFIG_DIR_NAME = "dcli"
HOME_CONFIG_DIR_NAME = ".dcli"

_TRUE_VALUES = frozenset({"yes", "true", "1", "on", "enable", "enabled"})
_FALSE_VALUES = frozenset({"no", "false", "0", "off", "disable", "disabled"})


def find_config_dir() -> Path:
    xdg_dir = _existing_dir(os.environ.get("XDG_CONFIG_HOME"), CONFIG_DIR_NAME)
    home_dir = _existing_dir(os.environ.get("HOME"), HOME_CONFIG_DIR_NAME)

    match (xdg_dir, home_dir):
        case (Path(), Path()):
            raise ConfigError(
                f"found configurations in both {xdg_dir} and {home_dir}. "
                "Please merge configurations in one location"
            )
        case (Path(), None):
            logger.info("Using XDG_CONFIG_HOME={path}", path=xdg_dir)
            return xdg_dir
        case (None, Path()):
            logger.info("Using HOME={path}", path=home_dir)
            return home_dir
        case _:
            raise ConfigError(
                "Unable to find configuration in either $HOME/.dcli or $XDG_CONFIG_HOME/dcli. "
                "Please create one of them and try again."
            )


def load_env_files(app_name: str, profile: str | None = None) -> Path:
    """Load `<profile>.env` (or `default.env`), `<app_name>.env` and `global.env`.

    Variables already present in the environment are never overridden, so
    earlier files win over later ones.
    """
    config_dir = find_config_dir()

    if profile:
        _load_file(config_dir / f"{profile}.env")
    else:
        _load_file_opt(config_dir / "default.env")

    _load_file_opt(config_dir / f"{app_name}.env")
    _load_file_opt(config_dir / "global.env")
    return config_dir


def get(name: str) -> str:
    value = get_opt(name)
    if value is None:
        raise _mandatory_error(name)
    return value


def get_opt(name: str) -> str | None:
    return os.environ.get(name) or None


def get_bool(name: str) -> bool:
    value = get_bool_opt(name)
    if value is None:
        raise _mandatory_error(name)
    return value


def get_bool_opt(name: str) -> bool | None:
    value = get_opt(name)
    if value is None:
        return None
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean value for {name}: `{value}`")


def get_json(name: str) -> Any:
    value = get_json_opt(name)
    if value is None:
        raise _mandatory_error(name)
    return value


def get_json_opt(name: str) -> Any:
    value = get_opt(name)
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON for {name}: `{value}`") from exc


def _existing_dir(base: str | None, name: str) -> Path | None:
    if not base:
        return None
    path = Path(base) / name
    return path if path.exists() else None


def _load_file(path: Path) -> None:
    logger.debug("loading mandatory file {file}", file=path)
    if not path.is_file():
        raise ConfigError(f"Unable to load configuration file for profile: {path} is required")
    load_dotenv(path, override=False)


def _load_file_opt(path: Path) -> None:
    logger.debug("loading optional file {file}", file=path)
    if not path.is_file():
        logger.debug("file {file} does not exist, ignoring", file=path)
        return
    load_dotenv(path, override=False)


def _mandatory_error(name: str) -> ConfigError:
    return ConfigError(f"{name} is not set, but it is required")

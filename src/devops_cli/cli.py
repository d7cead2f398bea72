from __future__ import annotations

import argparse
import sys
from collections.abc import Callable

from loguru import logger

from . import config
from .errors import ConfigError, DevopsCliError

DEFAULT_LOG_LEVEL = "WARNING"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-p", "--profile", help="The configuration profile to load")


def log_env_name(tool: str) -> str:
    return f"{tool.replace('-', '_').upper()}_LOG"


def init(tool: str, profile: str | None = None) -> None:
    """Load the tool's configuration files, then configure logging from `<TOOL>_LOG`."""
    # loguru starts with a DEBUG stderr sink
    logger.remove()
    config.load_env_files(tool, profile)
    configure_logging(config.get_opt(log_env_name(tool)) or DEFAULT_LOG_LEVEL)


def configure_logging(level: str) -> None:
    logger.remove()
    try:
        logger.add(sys.stderr, level=level.upper(), format=CONSOLE_FORMAT)
    except ValueError as exc:
        raise ConfigError(f"Invalid log level `{level}`") from exc


def run(main: Callable[[], int | None]) -> None:
    """Run a command body, reporting expected errors without a traceback."""
    try:
        code = main()
    except KeyboardInterrupt:
        sys.exit(130)
    except DevopsCliError as exc:
        print(f"error: {exc}", file=sys.stderr)
        if exc.__cause__ is not None:
            print(f"caused by: {exc.__cause__}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code or 0)

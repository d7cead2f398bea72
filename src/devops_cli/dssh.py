"""Connect to AWS EC2 instances via SSH.

Usage: dssh [options] [query ...] [:: command template ...]
"""

from __future__ import annotations

import argparse
import os
import shlex
import subprocess
import sys
from collections.abc import Sequence

from loguru import logger

from . import cli, config, tunnelblick
from .aws_api import AwsEc2Service, MockEc2Service
from .errors import ConfigError, DevopsCliError, NoResultsError, TunnelblickError
from .models import InstanceRecord
from .select_app import select_items
from .selection import InstanceLister, SelectOptions, add_select_arguments, list_instances
from .templates import DEFAULT_COMMAND_TEMPLATE, DEFAULT_DISPLAY_TEMPLATE, InstanceRenderer

TOOL_NAME = "dssh"
COMMAND_SEPARATOR = "::"

DSSH_TUNNELBLICK_CONNECTION = "DSSH_TUNNELBLICK_CONNECTION"
DSSH_TEMPLATE_DISPLAY = "DSSH_TEMPLATE_DISPLAY"
DSSH_TEMPLATE_COMMAND = "DSSH_TEMPLATE_COMMAND"
DSSH_TEMPLATE_MULTICOMMAND = "DSSH_TEMPLATE_MULTICOMMAND"


def split_command(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    args = list(argv)
    if COMMAND_SEPARATOR not in args:
        return args, []
    index = args.index(COMMAND_SEPARATOR)
    return args[:index], args[index + 1 :]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=TOOL_NAME,
        description="Connect to AWS EC2 instances via SSH",
        epilog=f"Arguments after `{COMMAND_SEPARATOR}` are used as the command template.",
    )
    cli.add_config_arguments(parser)
    parser.add_argument("-T", "--template", help="Template to use to display instances in the selection dialog")
    parser.add_argument("-m", "--multi", action="store_true", help="Allow multiple instances to be selected")
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Do not execute the command, just print it",
    )
    parser.add_argument("--mock", action="store_true", help="Use a built-in demo fleet instead of AWS")
    add_select_arguments(parser)
    return parser.parse_args(argv)


def ensure_vpn_connected(connection: str) -> None:
    status = tunnelblick.get_status()
    wanted = next((vpn for vpn in status if vpn.name == connection), None)
    if wanted is None:
        raise TunnelblickError(f"Tunnelblick connection {connection} not found")
    if wanted.state is not tunnelblick.VpnState.CONNECTED:
        raise TunnelblickError(f"VPN {connection} is not connected")


def load_command_template(name: str) -> list[str] | None:
    configured = config.get_json_opt(name)
    if configured is None:
        return None
    if not isinstance(configured, list) or not configured or not all(isinstance(part, str) for part in configured):
        raise ConfigError(f"{name} must be a non-empty JSON list of strings")
    return configured


def choose_command_template(
    cli_command: Sequence[str],
    selected_count: int,
    *,
    single: Sequence[str] | None = None,
    multi: Sequence[str] | None = None,
) -> list[str]:
    if cli_command:
        return list(cli_command)
    configured = single if selected_count == 1 else multi
    return list(configured or DEFAULT_COMMAND_TEMPLATE)


def select_instances(instances: list[InstanceRecord], display: list[str], *, multi: bool) -> list[InstanceRecord]:
    if len(instances) == 1:
        return instances
    return [instances[index] for index in select_items(display, multi=multi)]


def run_commands(commands: list[list[str]]) -> None:
    if len(commands) == 1:
        command = commands[0]
        logger.debug("exec {command}", command=shlex.join(command))
        try:
            os.execvp(command[0], command)
        except OSError as exc:
            raise DevopsCliError(f"Unable to run `{command[0]}`") from exc
        return

    for command in commands:
        logger.debug("spawn {command}", command=shlex.join(command))
        try:
            subprocess.Popen(command)
        except OSError as exc:
            raise DevopsCliError(f"Unable to run `{command[0]}`") from exc


def build_lister(args: argparse.Namespace) -> InstanceLister:
    if args.mock:
        return MockEc2Service()
    return AwsEc2Service()


def run(argv: Sequence[str]) -> None:
    own_args, cli_command = split_command(argv)
    args = parse_args(own_args)
    cli.init(TOOL_NAME, args.profile)

    display_template = args.template or config.get_opt(DSSH_TEMPLATE_DISPLAY) or DEFAULT_DISPLAY_TEMPLATE
    single_template = load_command_template(DSSH_TEMPLATE_COMMAND)
    multi_template = load_command_template(DSSH_TEMPLATE_MULTICOMMAND)

    connection = config.get_opt(DSSH_TUNNELBLICK_CONNECTION)
    if connection:
        ensure_vpn_connected(connection)

    instances = list_instances(SelectOptions.from_args(args), build_lister(args))
    if not instances:
        raise NoResultsError("search returned no results")

    renderer = InstanceRenderer()
    display = renderer.render_all(display_template, instances)

    selected = select_instances(instances, display, multi=args.multi)
    if not selected:
        raise NoResultsError("no instances selected")
    for instance in selected:
        logger.debug("selected {instance}", instance=instance.to_short_string())

    template = choose_command_template(cli_command, len(selected), single=single_template, multi=multi_template)
    commands = [renderer.render_command(template, instance) for instance in selected]

    if args.dry_run:
        for command in commands:
            print(shlex.join(command))
        return

    run_commands(commands)


def main(argv: Sequence[str] | None = None) -> None:
    cli.run(lambda: run(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    main()

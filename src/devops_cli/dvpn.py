"""Connect the configured Tunnelblick VPN, disconnecting the others first."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable, Sequence
from typing import TextIO

from loguru import logger

from . import cli, config, tunnelblick
from .errors import NothingToDoError, TunnelblickError
from .select_app import confirm_async
from .tunnelblick import Vpn, VpnState
from .wait import PollFailure, PollOutcome, PollStatus

TOOL_NAME = "dvpn"

DVPN_TUNNELBLICK_CONNECTION = "DVPN_TUNNELBLICK_CONNECTION"

POLL_INTERVAL = 1.0
DISCONNECT_RETRIES = 60
CONNECT_RETRIES = 300


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=TOOL_NAME, description=__doc__)
    cli.add_config_arguments(parser)
    parser.add_argument("-d", "--disconnect", action="store_true", help="Disconnect all VPN connections")
    return parser.parse_args(argv)


def all_exiting(vpns: list[Vpn]) -> bool:
    if not vpns:
        raise PollFailure("No connections to wait for to disconnect")
    return all(vpn.state is VpnState.EXITING for vpn in vpns)


def connected(connection: str, progress: TextIO) -> Callable[[list[Vpn]], bool]:
    def check(vpns: list[Vpn]) -> bool:
        vpn = next((v for v in vpns if v.name == connection), None)
        if vpn is None:
            raise PollFailure(f"No connection named {connection}")
        progress.write(".")
        progress.flush()
        return vpn.state is VpnState.CONNECTED

    return check


async def connect_vpn(
    connection: str,
    *,
    confirm_disconnect: Callable[[], Awaitable[bool]],
    progress: TextIO | None = None,
    interval: float = POLL_INTERVAL,
) -> PollOutcome[list[Vpn]]:
    progress = progress or sys.stderr
    status = await asyncio.to_thread(tunnelblick.get_status)

    target = next((vpn for vpn in status if vpn.name == connection), None)
    if target is None:
        raise TunnelblickError(f"Tunnelblick connection {connection} not found")
    if target.state is VpnState.CONNECTED:
        raise NothingToDoError(f"{connection} is already connected. Nothing to do.")

    if any(vpn.state is not VpnState.EXITING and vpn.name != connection for vpn in status):
        if not await confirm_disconnect():
            raise NothingToDoError("user said no.")
        await asyncio.to_thread(tunnelblick.disconnect_all)

        logger.info("waiting for all connections to exit")
        exited = await tunnelblick.wait_for_state(interval, DISCONNECT_RETRIES, all_exiting)
        if exited.status is PollStatus.FAILED:
            raise TunnelblickError(exited.cause or "disconnect failed")
        if exited.status is PollStatus.TIMED_OUT:
            logger.warning("connections did not exit after {attempts} attempts", attempts=exited.attempts)

    changed = (await asyncio.to_thread(tunnelblick.connect, connection)).changed
    if not changed:
        raise NothingToDoError(f"`{connection}` is already connected. Nothing to do.")

    progress.write("Waiting for connection (Duo?)...")
    progress.flush()
    return await tunnelblick.wait_for_state(interval, CONNECT_RETRIES, connected(connection, progress))


def report(connection: str, outcome: PollOutcome[list[Vpn]], out: TextIO | None = None) -> int:
    out = out or sys.stderr
    match outcome.status:
        case PollStatus.SUCCEEDED:
            out.write("connected!\n")
            return 0
        case PollStatus.TIMED_OUT:
            out.write(f"\n{connection} did not connect after {outcome.attempts} attempts\n")
        case PollStatus.FAILED:
            out.write(f"\nconnecting {connection} failed: {outcome.cause}\n")
        case PollStatus.CANCELLED:
            out.write("\ncancelled\n")
    return 1


def run(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    cli.init(TOOL_NAME, args.profile)

    if args.disconnect:
        logger.info("Disconnecting all VPN connections")
        result = tunnelblick.disconnect_all()
        logger.debug("{count} connections disconnected", count=result.count)
        return 0

    connection = config.get(DVPN_TUNNELBLICK_CONNECTION)
    outcome = asyncio.run(
        connect_vpn(
            connection,
            confirm_disconnect=lambda: confirm_async("Disconnect other VPN connections?"),
        )
    )
    return report(connection, outcome)


def main(argv: Sequence[str] | None = None) -> None:
    cli.run(lambda: run(argv))


if __name__ == "__main__":
    main()

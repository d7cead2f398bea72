from __future__ import annotations

import asyncio
import json
import subprocess
import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from loguru import logger

from .errors import (
    ScriptExecutionError,
    ScriptNotCompatibleError,
    ScriptResponseError,
    UnsupportedPlatformError,
)
from .wait import PollOutcome, poll_until

STATUS_SCRIPT = """
var tblk = Application('Tunnelblick')
var configs = []

var cfg = tblk.configurations().length
for (let i = 0; i < cfg; i++) {
  let c = tblk.configurations[i];
  configs.push({name: c.name(), state: c.state()})
}
return configs
"""

CONNECT_SCRIPT = "var changed = Application('Tunnelblick').connect($params); return {changed: changed};"
DISCONNECT_SCRIPT = "var changed = Application('Tunnelblick').disconnect($params); return {changed: changed};"
DISCONNECT_ALL_SCRIPT = "var count = Application('Tunnelblick').disconnectAll(); return {count: count};"


class VpnState(Enum):
    CONNECTED = "CONNECTED"
    AUTH = "AUTH"
    GET_CONFIG = "GET_CONFIG"
    EXITING = "EXITING"
    DISCONNECTING = "DISCONNECTING"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> VpnState:
        return cls.UNKNOWN


@dataclass(slots=True, frozen=True)
class Vpn:
    name: str
    state: VpnState


@dataclass(slots=True, frozen=True)
class ChangeResult:
    changed: bool


@dataclass(slots=True, frozen=True)
class DisconnectResult:
    count: int


def get_status() -> list[Vpn]:
    result = _run_script(STATUS_SCRIPT)
    try:
        return [Vpn(name=str(item["name"]), state=VpnState(item["state"])) for item in result]
    except (KeyError, TypeError) as exc:
        raise ScriptResponseError() from exc


def connect(vpn_name: str) -> ChangeResult:
    return ChangeResult(changed=bool(_field(_run_script(CONNECT_SCRIPT, vpn_name), "changed")))


def disconnect(vpn_name: str) -> ChangeResult:
    return ChangeResult(changed=bool(_field(_run_script(DISCONNECT_SCRIPT, vpn_name), "changed")))


def disconnect_all() -> DisconnectResult:
    return DisconnectResult(count=int(_field(_run_script(DISCONNECT_ALL_SCRIPT), "count")))


async def wait_for_state(
    interval: float,
    retries: int,
    check: Callable[[list[Vpn]], bool],
    *,
    cancel: asyncio.Event | None = None,
) -> PollOutcome[list[Vpn]]:
    return await poll_until(
        lambda: asyncio.to_thread(get_status),
        check,
        interval=interval,
        max_attempts=retries,
        cancel=cancel,
    )


def _run_script(body: str, params: Any = None) -> Any:
    if sys.platform != "darwin":
        raise UnsupportedPlatformError()

    script = _wrap_script(body, params)
    try:
        completed = subprocess.run(
            ["osascript", "-l", "JavaScript", "-e", script],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise ScriptExecutionError() from exc

    if completed.returncode != 0:
        logger.debug("osascript failed: {stderr}", stderr=completed.stderr.strip())
        raise ScriptNotCompatibleError(completed.stderr.strip())

    try:
        return json.loads(completed.stdout)
    except json.JSONDecodeError as exc:
        raise ScriptResponseError() from exc


def _wrap_script(body: str, params: Any) -> str:
    # osascript prints the script result; JSON.stringify keeps it parseable
    return f"var $params = {json.dumps(params)};\nJSON.stringify((function() {{\n{body}\n}})())"


def _field(result: Any, name: str) -> Any:
    try:
        return result[name]
    except (KeyError, TypeError) as exc:
        raise ScriptResponseError() from exc

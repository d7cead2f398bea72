import json
import subprocess

import pytest

from devops_cli import tunnelblick
from devops_cli.errors import (
    ScriptExecutionError,
    ScriptNotCompatibleError,
    ScriptResponseError,
    UnsupportedPlatformError,
)
from devops_cli.tunnelblick import Vpn, VpnState
from devops_cli.wait import PollStatus


class FakeOsascript:
    def __init__(self, outputs, returncode=0, stderr=""):
        self.outputs = list(outputs)
        self.returncode = returncode
        self.stderr = stderr
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append(args)
        stdout = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        return subprocess.CompletedProcess(args, self.returncode, stdout=stdout, stderr=self.stderr)


@pytest.fixture
def macos(monkeypatch):
    monkeypatch.setattr(tunnelblick.sys, "platform", "darwin")


def install(monkeypatch, fake):
    monkeypatch.setattr(tunnelblick.subprocess, "run", fake)
    return fake


def test_unsupported_platform(monkeypatch):
    monkeypatch.setattr(tunnelblick.sys, "platform", "linux")
    with pytest.raises(UnsupportedPlatformError):
        tunnelblick.get_status()
    with pytest.raises(UnsupportedPlatformError):
        tunnelblick.connect("work")


def test_get_status_parses_states(macos, monkeypatch):
    payload = json.dumps(
        [
            {"name": "work", "state": "CONNECTED"},
            {"name": "home", "state": "EXITING"},
            {"name": "lab", "state": "SLEEP"},
        ]
    )
    fake = install(monkeypatch, FakeOsascript([payload]))
    assert tunnelblick.get_status() == [
        Vpn("work", VpnState.CONNECTED),
        Vpn("home", VpnState.EXITING),
        Vpn("lab", VpnState.UNKNOWN),
    ]
    assert fake.calls[0][:4] == ["osascript", "-l", "JavaScript", "-e"]


def test_connect_passes_the_name_as_json(macos, monkeypatch):
    fake = install(monkeypatch, FakeOsascript(['{"changed": true}']))
    assert tunnelblick.connect('it"s').changed is True
    assert 'var $params = "it\\"s";' in fake.calls[0][4]


def test_disconnect_and_disconnect_all(macos, monkeypatch):
    install(monkeypatch, FakeOsascript(['{"changed": false}', '{"count": 2}']))
    assert tunnelblick.disconnect("work").changed is False
    assert tunnelblick.disconnect_all().count == 2


def test_unparsable_output(macos, monkeypatch):
    install(monkeypatch, FakeOsascript(["not json"]))
    with pytest.raises(ScriptResponseError):
        tunnelblick.get_status()


def test_unexpected_shape(macos, monkeypatch):
    install(monkeypatch, FakeOsascript(['{"unexpected": 1}']))
    with pytest.raises(ScriptResponseError):
        tunnelblick.disconnect_all()


def test_script_failure(macos, monkeypatch):
    install(monkeypatch, FakeOsascript([""], returncode=1, stderr="execution error: -1728"))
    with pytest.raises(ScriptNotCompatibleError, match="-1728"):
        tunnelblick.get_status()


def test_osascript_missing(macos, monkeypatch):
    def missing(args, **kwargs):
        raise FileNotFoundError("osascript")

    install(monkeypatch, missing)
    with pytest.raises(ScriptExecutionError):
        tunnelblick.get_status()


@pytest.mark.asyncio
async def test_wait_for_state_polls_status(macos, monkeypatch):
    states = iter(["AUTH", "GET_CONFIG", "CONNECTED"])
    monkeypatch.setattr(
        tunnelblick,
        "get_status",
        lambda: [Vpn("work", VpnState(next(states)))],
    )
    outcome = await tunnelblick.wait_for_state(
        0, 5, lambda vpns: vpns[0].state is VpnState.CONNECTED
    )
    assert outcome.status is PollStatus.SUCCEEDED
    assert outcome.attempts == 3

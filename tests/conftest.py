from datetime import datetime, timezone

import pytest

from devops_cli.models import InstanceRecord, InstanceState


@pytest.fixture
def make_record():
    def factory(instance_id="i-0001", name=None, launch=0, **overrides):
        values = {
            "instance_id": instance_id,
            "state": InstanceState.RUNNING,
            "availability_zone": "eu-west-1a",
            "private_ip": "10.0.0.1",
            "launch_time": datetime.fromtimestamp(launch, tz=timezone.utc),
            "tags": {"Name": name} if name is not None else {},
        }
        values.update(overrides)
        return InstanceRecord(**values)

    return factory


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """A `$HOME/.dcli` config dir with no XDG dir and a clean environment."""
    home = tmp_path / "home"
    config_dir = home / ".dcli"
    config_dir.mkdir(parents=True)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    for name in (
        "DSSH_LOG",
        "DVPN_LOG",
        "DSSH_TUNNELBLICK_CONNECTION",
        "DSSH_TEMPLATE_DISPLAY",
        "DSSH_TEMPLATE_COMMAND",
        "DSSH_TEMPLATE_MULTICOMMAND",
        "DVPN_TUNNELBLICK_CONNECTION",
    ):
        # setenv first so the variable is removed again after the test
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return config_dir

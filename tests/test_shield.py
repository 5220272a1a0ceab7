from types import SimpleNamespace

import psutil
import pytest

from frick import shield as shield_module
from frick.errors import ShieldError
from frick.shield import ProcessShield, kill_processes


class FakeProcess:
    def __init__(self, name, pid, error=None):
        self.info = {"name": name}
        self.pid = pid
        self.error = error
        self.killed = False

    def kill(self):
        if self.error:
            raise self.error
        self.killed = True


@pytest.fixture
def processes(monkeypatch):
    procs = [
        FakeProcess("steam", 1),
        FakeProcess("bash", 2),
        FakeProcess("discord", 3),
        FakeProcess("spotify", 4, error=psutil.AccessDenied(4)),
        FakeProcess("slack", 5, error=psutil.NoSuchProcess(5)),
    ]
    monkeypatch.setattr(
        shield_module, "psutil", SimpleNamespace(
            process_iter=lambda attrs: iter(procs),
            AccessDenied=psutil.AccessDenied,
            NoSuchProcess=psutil.NoSuchProcess,
        )
    )
    monkeypatch.setattr(shield_module, "send_notification", lambda summary, body: None)
    return {p.info["name"]: p for p in procs}


def test_kill_processes_only_targets(processes):
    killed, denied = kill_processes(["steam", "discord", "slack"])

    assert killed == {"steam", "discord"}
    assert denied == set()
    assert not processes["bash"].killed


def test_kill_processes_reports_denied(processes):
    killed, denied = kill_processes(["spotify"])
    assert killed == set()
    assert denied == {"spotify"}


def test_apply_resolves_categories(processes):
    shield = ProcessShield(category_apps={"games": ["steam"]})

    shield.apply(frozenset({"discord"}), frozenset({"games", "unknown"}), True)

    assert shield.targets == frozenset({"discord", "steam"})
    assert processes["steam"].killed
    assert processes["discord"].killed


def test_apply_denied_raises_shield_error(processes):
    shield = ProcessShield(category_apps={})
    with pytest.raises(ShieldError):
        shield.apply(frozenset({"spotify"}), frozenset(), True)


def test_clear_ignores_targets(processes):
    shield = ProcessShield(category_apps={})
    shield.apply(frozenset({"steam"}), frozenset(), True)

    shield.apply(frozenset({"discord"}), frozenset(), False)

    assert shield.targets == frozenset()
    assert not processes["discord"].killed

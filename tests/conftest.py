"""
Pytest configuration and shared fixtures for host-tuner tests.

Nothing here touches the real host: commands go through FakeRunner and
sysfs/config files live under tmp_path.
"""
import pytest

from host_tuner.core.config import TunerConfig
from host_tuner.core.models import Profile, Source
from host_tuner.core.tunables import tunables_for

IP_ROUTE = "default via 10.0.0.1 dev eth0 proto dhcp src 10.0.0.5 metric 100"

COALESCE_TUNED = """Coalesce parameters for eth0:
Adaptive RX: off  TX: off
stats-block-usecs: n/a
sample-interval: n/a
pkt-rate-low: n/a

rx-usecs: 0
rx-frames: n/a
rx-usecs-irq: n/a

tx-usecs: 0
tx-frames: n/a
"""

COALESCE_DEFAULT = """Coalesce parameters for eth0:
Adaptive RX: on  TX: on
rx-usecs: 64
tx-usecs: 64
"""

FEATURES_TUNED = """Features for eth0:
rx-checksumming: on [fixed]
tx-checksumming: on
tcp-segmentation-offload: off
\ttx-tcp-segmentation: off
generic-segmentation-offload: off
generic-receive-offload: off
large-receive-offload: off [fixed]
"""

FEATURES_DEFAULT = """Features for eth0:
tcp-segmentation-offload: on
generic-segmentation-offload: on
generic-receive-offload: on
"""

RINGS_AT_MAX = """Ring parameters for eth0:
Pre-set maximums:
RX:\t\t4096
RX Mini:\tn/a
RX Jumbo:\tn/a
TX:\t\t4096
Current hardware settings:
RX:\t\t4096
RX Mini:\tn/a
RX Jumbo:\tn/a
TX:\t\t4096
"""

RINGS_DEFAULT = """Ring parameters for eth0:
Pre-set maximums:
RX:\t\t4096
TX:\t\t4096
Current hardware settings:
RX:\t\t256
TX:\t\t256
"""

PING_OK = """--- clob.polymarket.com ping statistics ---
5 packets transmitted, 5 received, 0% packet loss, time 4005ms
rtt min/avg/max/mdev = 10.112/12.504/15.870/1.902 ms"""


class FakeRunner:
    """
    Stand-in for helpers.unix.run_cmd.

    responses maps the space-joined command to (rc, stdout, stderr);
    anything unknown behaves like a missing binary (rc 127).
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def __call__(self, cmd, timeout_s=10):
        key = " ".join(cmd)
        self.calls.append(key)
        return self.responses.get(key, (127, "", f"command not found: {cmd[0]}"))

    def count(self, prefix):
        return sum(1 for c in self.calls if c.startswith(prefix))


def optimal_responses(profile=Profile.HFT, iface="eth0"):
    responses = {
        "ip -o -4 route show to default": (0, IP_ROUTE, ""),
        f"ethtool -c {iface}": (0, COALESCE_TUNED, ""),
        f"ethtool -k {iface}": (0, FEATURES_TUNED, ""),
        f"ethtool -g {iface}": (0, RINGS_AT_MAX, ""),
        "systemctl is-active irqbalance": (3, "inactive", ""),
        "systemctl is-enabled host-tuner.service": (0, "enabled", ""),
        "ping -c 5 -W 2 clob.polymarket.com": (0, PING_OK, ""),
    }
    for spec in tunables_for(profile):
        if spec.source is Source.SYSCTL:
            # the kernel reports multi-value parameters tab separated
            responses[f"sysctl -n {spec.key}"] = (0, spec.target.replace(" ", "\t"), "")
    return responses


def make_sysfs(root, cpus=2, governor="performance", cstate_disable="1", states=3):
    for cpu in range(cpus):
        base = root / "devices" / "system" / "cpu" / f"cpu{cpu}"
        freq = base / "cpufreq"
        freq.mkdir(parents=True)
        (freq / "scaling_governor").write_text(governor + "\n")
        for state in range(states):
            idle = base / "cpuidle" / f"state{state}"
            idle.mkdir(parents=True)
            (idle / "disable").write_text(("0" if state == 0 else cstate_disable) + "\n")
    return root


@pytest.fixture
def sysfs(tmp_path):
    return make_sysfs(tmp_path / "sys")


@pytest.fixture
def config(tmp_path, sysfs):
    return TunerConfig(
        profile=Profile.STANDARD,
        sysctl_conf=str(tmp_path / "sysctl.conf"),
        unit_dir=str(tmp_path / "systemd"),
        sysfs_root=str(sysfs),
        procfs_root=str(tmp_path / "proc"),
    )


@pytest.fixture(autouse=True)
def quiet_host(monkeypatch):
    """Keep psutil host inventory out of the reports under test."""
    monkeypatch.setattr("host_tuner.core.apply.get_system_info", lambda: {"hostname": "test"})
    monkeypatch.setattr("host_tuner.core.verify.get_system_info", lambda: {"hostname": "test"})
    monkeypatch.setattr("host_tuner.core.apply.get_interface_stats", lambda iface: None)
    monkeypatch.setattr("host_tuner.core.verify.get_interface_stats", lambda iface: None)
    monkeypatch.setattr("host_tuner.core.apply.is_root", lambda: True)

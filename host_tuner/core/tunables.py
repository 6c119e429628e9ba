"""
Static tunable table.

Each profile is data over the same TunableSpec shape: the hft profile is
the standard table plus busy polling and C-state disabling.
"""
from __future__ import annotations

from host_tuner.core.config import UNIT_NAME
from host_tuner.core.models import Profile, Source, TunableSpec


def ring_at_maximum(observed: str) -> bool:
    """Probe reports rings as "<current>/<maximum>"."""
    current, _, maximum = observed.partition("/")
    return bool(maximum) and current == maximum


def not_running(observed: str) -> bool:
    # "inactive", "unknown", "failed": anything but a live irqbalance is fine
    return observed != "active"


_NIC = (
    TunableSpec("adaptive_rx", "Adaptive RX", Source.ETHTOOL_COALESCE, "adaptive-rx", "off"),
    TunableSpec("adaptive_tx", "Adaptive TX", Source.ETHTOOL_COALESCE, "adaptive-tx", "off"),
    TunableSpec("rx_usecs", "rx-usecs", Source.ETHTOOL_COALESCE, "rx-usecs", "0"),
    TunableSpec("tx_usecs", "tx-usecs", Source.ETHTOOL_COALESCE, "tx-usecs", "0"),
    TunableSpec("ring_rx", "RX ring buffer", Source.ETHTOOL_RING, "RX", ring_at_maximum,
                expected_text="pre-set maximum"),
    TunableSpec("ring_tx", "TX ring buffer", Source.ETHTOOL_RING, "TX", ring_at_maximum,
                expected_text="pre-set maximum"),
    TunableSpec("tso", "TSO", Source.ETHTOOL_FEATURES, "tcp-segmentation-offload", "off"),
    TunableSpec("gso", "GSO", Source.ETHTOOL_FEATURES, "generic-segmentation-offload", "off"),
    TunableSpec("gro", "GRO", Source.ETHTOOL_FEATURES, "generic-receive-offload", "off"),
)


def _sysctl(name: str, label: str, key: str, value: str, severity: str = "warn") -> TunableSpec:
    return TunableSpec(name, label, Source.SYSCTL, key, value, severity, target=value)


_TCP = (
    _sysctl("default_qdisc", "Default qdisc", "net.core.default_qdisc", "fq"),
    _sysctl("congestion_control", "Congestion control", "net.ipv4.tcp_congestion_control", "bbr", "fail"),
    _sysctl("tcp_fastopen", "TCP Fast Open", "net.ipv4.tcp_fastopen", "3"),
    _sysctl("slow_start_after_idle", "Slow start after idle", "net.ipv4.tcp_slow_start_after_idle", "0"),
    _sysctl("keepalive_time", "TCP keepalive time", "net.ipv4.tcp_keepalive_time", "60"),
    _sysctl("keepalive_intvl", "TCP keepalive interval", "net.ipv4.tcp_keepalive_intvl", "10"),
    _sysctl("keepalive_probes", "TCP keepalive probes", "net.ipv4.tcp_keepalive_probes", "6"),
    _sysctl("tw_reuse", "TIME_WAIT reuse", "net.ipv4.tcp_tw_reuse", "1"),
    _sysctl("fin_timeout", "FIN timeout", "net.ipv4.tcp_fin_timeout", "15"),
    _sysctl("rmem_max", "rmem_max", "net.core.rmem_max", "16777216"),
    _sysctl("wmem_max", "wmem_max", "net.core.wmem_max", "16777216"),
    _sysctl("tcp_rmem", "tcp_rmem", "net.ipv4.tcp_rmem", "4096 87380 16777216"),
    _sysctl("tcp_wmem", "tcp_wmem", "net.ipv4.tcp_wmem", "4096 65536 16777216"),
    _sysctl("netdev_max_backlog", "netdev_max_backlog", "net.core.netdev_max_backlog", "5000"),
    _sysctl("somaxconn", "somaxconn", "net.core.somaxconn", "4096"),
    _sysctl("syn_retries", "SYN retries", "net.ipv4.tcp_syn_retries", "2"),
    _sysctl("synack_retries", "SYN-ACK retries", "net.ipv4.tcp_synack_retries", "2"),
)

_CPU = (
    TunableSpec("cpu_governor", "CPU governor", Source.CPU_GOVERNOR, "scaling_governor", "performance"),
)

_SERVICES = (
    TunableSpec("irqbalance", "irqbalance", Source.SERVICE_ACTIVE, "irqbalance", not_running,
                expected_text="not running"),
    TunableSpec("boot_service", UNIT_NAME, Source.SERVICE_ENABLED, UNIT_NAME, "enabled"),
)

_HFT = (
    _sysctl("busy_poll", "Busy poll (usecs)", "net.core.busy_poll", "50", "fail"),
    _sysctl("busy_read", "Busy read (usecs)", "net.core.busy_read", "50", "fail"),
    TunableSpec("cstates", "Deep C-states", Source.CPU_CSTATES, "disable", "disabled"),
)

SECTIONS = {
    "nic": "Network interface",
    "tcp": "TCP/IP stack",
    "cpu": "CPU",
    "services": "Services",
}


def tunables_for(profile: Profile) -> tuple[TunableSpec, ...]:
    tunables = _NIC + _TCP + _CPU + _SERVICES
    if profile is Profile.HFT:
        tunables += _HFT
    return tunables


def section_of(spec: TunableSpec) -> str:
    if spec.source in (Source.ETHTOOL_COALESCE, Source.ETHTOOL_FEATURES, Source.ETHTOOL_RING):
        return "nic"
    if spec.source is Source.SYSCTL:
        return "tcp"
    if spec.source in (Source.CPU_GOVERNOR, Source.CPU_CSTATES):
        return "cpu"
    return "services"


def sysctl_targets(profile: Profile) -> dict[str, str]:
    """key -> value for the persisted sysctl.conf block, in table order."""
    return {t.key: t.target for t in tunables_for(profile) if t.source is Source.SYSCTL and t.target}


def tunable(name: str) -> TunableSpec:
    """Look a spec up by name across every profile."""
    for spec in tunables_for(Profile.HFT):
        if spec.name == name:
            return spec
    raise KeyError(name)

"""
SettingsProbe: read one tunable from the host.

Every reader returns (value or None, evidence). None means the setting
could not be read on this host (tool missing, NIC driver does not expose
it, no cpufreq...), which is reported separately from a mismatch.
"""
from __future__ import annotations

import logging
from typing import Any, Callable

from host_tuner.collectors.linux.linux_cpu import read_cstates, read_governors
from host_tuner.collectors.linux.linux_kernel import normalise, read_sysctl
from host_tuner.collectors.linux.linux_network import parse_coalesce, parse_features, parse_rings
from host_tuner.collectors.linux.linux_services import systemctl_query
from host_tuner.core.models import ProbeResult, Source, Status, TunableSpec
from host_tuner.helpers.unix import Runner, get_evidence, run_cmd

logger = logging.getLogger(__name__)

Reading = tuple[str | None, dict[str, Any]]

# ethtool flag -> parser for its output
_ETHTOOL_PARSERS: dict[Source, tuple[str, Callable[[str], dict]]] = {
    Source.ETHTOOL_COALESCE: ("-c", parse_coalesce),
    Source.ETHTOOL_FEATURES: ("-k", parse_features),
    Source.ETHTOOL_RING: ("-g", parse_rings),
}


class SettingsProbe:
    def __init__(
        self,
        interface: str | None,
        runner: Runner = run_cmd,
        sysfs_root: str = "/sys",
        procfs_root: str = "/proc",
    ):
        self.interface = interface
        self.runner = runner
        self.sysfs_root = sysfs_root
        self.procfs_root = procfs_root
        # ethtool output is shared by several tunables; read each flag once
        self._ethtool_cache: dict[str, tuple[dict, dict[str, Any]]] = {}

    def read(self, spec: TunableSpec) -> str | None:
        return self.read_with_evidence(spec)[0]

    def read_with_evidence(self, spec: TunableSpec) -> Reading:
        reader = {
            Source.SYSCTL: self._read_sysctl,
            Source.ETHTOOL_COALESCE: self._read_ethtool_value,
            Source.ETHTOOL_FEATURES: self._read_ethtool_value,
            Source.ETHTOOL_RING: self._read_ring,
            Source.CPU_GOVERNOR: self._read_governor,
            Source.CPU_CSTATES: self._read_cstates,
            Source.SERVICE_ACTIVE: self._read_service,
            Source.SERVICE_ENABLED: self._read_service,
        }[spec.source]
        try:
            return reader(spec)
        except (OSError, ValueError) as e:
            # parsers and sysfs reads are best effort; an odd host is "absent"
            logger.debug("probe %s failed: %s", spec.name, e)
            return None, {"error": f"{type(e).__name__}: {e}"}

    def probe(self, spec: TunableSpec) -> ProbeResult:
        observed, evidence = self.read_with_evidence(spec)
        matched, status = classify(spec, observed)
        return ProbeResult(
            name=spec.name,
            label=spec.label,
            observed=observed,
            matched=matched,
            severity=spec.severity,
            status=status,
            expected=spec.describe_expected(),
            evidence=evidence,
        )

    # -- readers --

    def _read_sysctl(self, spec: TunableSpec) -> Reading:
        return read_sysctl(spec.key, self.runner, self.procfs_root)

    def _ethtool(self, source: Source) -> tuple[dict, dict[str, Any]] | None:
        if not self.interface:
            return None
        flag, parser = _ETHTOOL_PARSERS[source]
        if flag not in self._ethtool_cache:
            cmd = ["ethtool", flag, self.interface]
            rc, stdout, stderr = self.runner(cmd)
            evidence = get_evidence(cmd, rc, stdout, stderr)
            parsed = parser(stdout) if rc == 0 else {}
            self._ethtool_cache[flag] = (parsed, evidence)
        return self._ethtool_cache[flag]

    def _read_ethtool_value(self, spec: TunableSpec) -> Reading:
        cached = self._ethtool(spec.source)
        if cached is None:
            return None, {"error": "no network interface"}
        parsed, evidence = cached
        value = parsed.get(spec.key)
        return (normalise(value) if value else None), evidence

    def _read_ring(self, spec: TunableSpec) -> Reading:
        cached = self._ethtool(spec.source)
        if cached is None:
            return None, {"error": "no network interface"}
        rings, evidence = cached
        current = rings.get("current", {}).get(spec.key)
        maximum = rings.get("maximum", {}).get(spec.key)
        if current is None or maximum is None:
            return None, evidence
        return f"{current}/{maximum}", evidence

    def _read_governor(self, spec: TunableSpec) -> Reading:
        return read_governors(self.sysfs_root)

    def _read_cstates(self, spec: TunableSpec) -> Reading:
        return read_cstates(self.sysfs_root)

    def _read_service(self, spec: TunableSpec) -> Reading:
        verb = "is-active" if spec.source is Source.SERVICE_ACTIVE else "is-enabled"
        return systemctl_query(verb, spec.key, self.runner)


def matches(spec: TunableSpec, observed: str) -> bool:
    if callable(spec.expected):
        return bool(spec.expected(observed))
    return observed == spec.expected


def classify(spec: TunableSpec, observed: str | None) -> tuple[bool, Status]:
    """
    PASS when the value was read and matches.
    Otherwise the tunable's severity decides: a "warn" tunable that is
    absent or off-target is WARN, a "fail" tunable is FAIL.
    """
    matched = observed is not None and matches(spec, observed)
    if matched:
        return True, "PASS"
    return False, "FAIL" if spec.severity == "fail" else "WARN"

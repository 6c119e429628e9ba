"""
Verify: re-read every tunable, score it, probe connectivity.

Start -> ReadTunables -> ClassifyEach -> ProbeConnectivity -> Summarize.
The scan never stops early; the exit code is decided by the final tally
alone, and the latency probe is informational.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import reduce
from typing import Iterable

from host_tuner.collectors.linux.linux_network import get_linux_default_route, ping_host
from host_tuner.core.config import TOOL_NAME, TOOL_VERSION, TunerConfig
from host_tuner.core.models import LatencyProbe, LatencyTier, ProbeResult, ReportTally, VerifyReport
from host_tuner.core.probe import SettingsProbe
from host_tuner.core.tunables import tunables_for
from host_tuner.helpers.unix import Runner, run_cmd
from host_tuner.shared.network import get_interface_stats
from host_tuner.shared.system import get_system_info

logger = logging.getLogger(__name__)

EXCELLENT_MS = 30
GOOD_MS = 50


def run_verify(config: TunerConfig, runner: Runner = run_cmd, probe_latency: bool = True) -> VerifyReport:
    route = get_linux_default_route(runner)
    interface = route["interface"]
    if interface is None:
        logger.warning("no network interface detected; NIC checks will be reported as unreadable")

    probe = SettingsProbe(interface, runner, config.sysfs_root, config.procfs_root)
    checks = [probe.probe(spec) for spec in tunables_for(config.profile)]
    tally = fold_tally(checks)

    latency = check_latency(config, runner) if probe_latency else None

    return VerifyReport(
        meta={
            "tool": TOOL_NAME,
            "version": TOOL_VERSION,
            "operation": "verify",
            "profile": config.profile.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        host={**get_system_info(), "interface": get_interface_stats(interface)},
        interface=interface,
        checks=checks,
        tally=tally,
        latency=latency,
    )


def fold_tally(results: Iterable[ProbeResult]) -> ReportTally:
    return reduce(lambda tally, result: tally.add(result), results, ReportTally())


def latency_tier(avg_ms: float | None) -> LatencyTier:
    if avg_ms is None:
        return "unreachable"
    if avg_ms < EXCELLENT_MS:
        return "excellent"
    if avg_ms < GOOD_MS:
        return "good"
    return "high"


def check_latency(config: TunerConfig, runner: Runner = run_cmd) -> LatencyProbe:
    result = ping_host(config.ping_host, config.ping_count, config.ping_timeout_s, runner)
    avg_ms = result["avg_ms"]
    if not result["reachable"]:
        tier = "unreachable"
    elif avg_ms is None:
        tier = "unknown"
    else:
        tier = latency_tier(avg_ms)
    logger.debug("ping %s: reachable=%s avg=%s", config.ping_host, result["reachable"], avg_ms)
    return LatencyProbe(
        host=config.ping_host,
        reachable=result["reachable"],
        avg_ms=avg_ms,
        tier=tier,
        evidence=result["evidence"],
    )

"""
Apply: push the host towards the tunable table.

Every mutation is recorded as an ApplyStep and the run always continues;
only a host without a detectable network interface aborts (FatalError).

reapply_runtime() is the single entry point for the non-persistent
settings (NIC, CPU, irqbalance). `apply` calls it directly and the boot
unit calls it through `host-tuner apply --boot`, so both paths run the
same code.
"""
from __future__ import annotations

import logging
import os
import shutil
import sys
from datetime import datetime, timezone

from host_tuner.collectors.linux.linux_cpu import deep_cstate_paths, governor_paths
from host_tuner.collectors.linux.linux_kernel import merge_sysctl_block, render_sysctl_block
from host_tuner.collectors.linux.linux_network import get_linux_default_route
from host_tuner.core.config import TOOL_NAME, TOOL_VERSION, TunerConfig
from host_tuner.core.errors import FatalError
from host_tuner.core.models import ApplyReport, ApplyStep, Profile
from host_tuner.core.probe import SettingsProbe, matches
from host_tuner.core.tunables import sysctl_targets, tunable
from host_tuner.helpers.unix import RC_NOT_FOUND, Runner, get_evidence, is_root, run_cmd, write_text
from host_tuner.shared.network import get_interface_stats
from host_tuner.shared.system import get_system_info

logger = logging.getLogger(__name__)

# ethtool exits 80 when the requested values are already in place
ETHTOOL_RC_UNCHANGED = 80


def run_apply(config: TunerConfig, runner: Runner = run_cmd, boot: bool = False) -> ApplyReport:
    if not is_root():
        logger.warning("not running as root; most changes will fail (re-run with sudo)")

    interface = detect_interface(runner)
    logger.info("detected interface: %s", interface)

    steps = reapply_runtime(config, interface, runner)
    if not boot:
        steps += persist_sysctls(config, runner)
        steps += install_boot_unit(config, runner)

    return ApplyReport(
        meta={
            "tool": TOOL_NAME,
            "version": TOOL_VERSION,
            "operation": "apply",
            "profile": config.profile.value,
            "boot": boot,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        host={**get_system_info(), "interface": get_interface_stats(interface)},
        interface=interface,
        steps=steps,
    )


def detect_interface(runner: Runner = run_cmd) -> str:
    route = get_linux_default_route(runner)
    if not route["interface"]:
        raise FatalError(f"no network interface found: {route['error']}")
    return route["interface"]


# -----------------------------
# Runtime (re-applied on every boot)
# -----------------------------
def reapply_runtime(config: TunerConfig, interface: str, runner: Runner = run_cmd) -> list[ApplyStep]:
    """
    Read each setting through SettingsProbe and only change what is off
    target, so a tuned host sees no mutations at all.
    """
    probe = SettingsProbe(interface, runner, config.sysfs_root, config.procfs_root)
    steps: list[ApplyStep] = []
    _ethtool_step(steps, probe, "coalescing_adaptive", ("adaptive_rx", "adaptive_tx"),
                  ["ethtool", "-C", interface, "adaptive-rx", "off", "adaptive-tx", "off"],
                  "adaptive coalescing disabled")
    _ethtool_step(steps, probe, "coalescing_usecs", ("rx_usecs", "tx_usecs"),
                  ["ethtool", "-C", interface, "rx-usecs", "0", "tx-usecs", "0"],
                  "interrupt coalescing set to 0 (immediate interrupts)")
    _ethtool_step(steps, probe, "offloads", ("tso", "gso", "gro"),
                  ["ethtool", "-K", interface, "tso", "off", "gso", "off", "gro", "off"],
                  "TSO/GSO/GRO disabled")
    _record(steps, maximise_rings(probe))
    _record(steps, set_governor(probe))
    if config.profile is Profile.HFT:
        _record(steps, disable_cstates(probe))
    for step in stop_irqbalance(probe):
        _record(steps, step)
    return steps


def _at_target(probe: SettingsProbe, name: str) -> bool:
    spec = tunable(name)
    observed = probe.read(spec)
    return observed is not None and matches(spec, observed)


def _ethtool_step(steps, probe, name, tunables, cmd, detail) -> None:
    if all(_at_target(probe, t) for t in tunables):
        _record(steps, ApplyStep(name, "SKIPPED", "already set"))
        return

    rc, stdout, stderr = probe.runner(cmd)
    evidence = get_evidence(cmd, rc, stdout, stderr)
    if rc == 0:
        step = ApplyStep(name, "OK", detail, evidence)
    elif rc == ETHTOOL_RC_UNCHANGED:
        step = ApplyStep(name, "SKIPPED", "already set", evidence)
    else:
        step = ApplyStep(name, "UNSUPPORTED", stderr or "not supported on this NIC", evidence)
    _record(steps, step)


def maximise_rings(probe: SettingsProbe) -> ApplyStep:
    readings = {}
    for name in ("ring_rx", "ring_tx"):
        spec = tunable(name)
        observed, evidence = probe.read_with_evidence(spec)
        if observed is None:
            return ApplyStep("ring_buffers", "UNSUPPORTED", "could not detect ring buffer limits", evidence)
        readings[name] = (spec, observed)

    max_rx = readings["ring_rx"][1].partition("/")[2]
    max_tx = readings["ring_tx"][1].partition("/")[2]
    if all(matches(spec, observed) for spec, observed in readings.values()):
        return ApplyStep("ring_buffers", "SKIPPED", f"already at maximum (RX {max_rx}, TX {max_tx})", evidence)

    cmd = ["ethtool", "-G", probe.interface, "rx", max_rx, "tx", max_tx]
    rc, stdout, stderr = probe.runner(cmd)
    evidence = get_evidence(cmd, rc, stdout, stderr)
    if rc == 0:
        return ApplyStep("ring_buffers", "OK", f"set RX {max_rx}, TX {max_tx}", evidence)
    return ApplyStep("ring_buffers", "UNSUPPORTED", stderr or "ring resize rejected", evidence)


def set_governor(probe: SettingsProbe) -> ApplyStep:
    if _at_target(probe, "cpu_governor"):
        return ApplyStep("cpu_governor", "SKIPPED", "already performance on every core")

    cmd = ["cpupower", "frequency-set", "-g", "performance"]
    rc, stdout, stderr = probe.runner(cmd)
    if rc == 0:
        return ApplyStep("cpu_governor", "OK", "performance (cpupower)", get_evidence(cmd, rc, stdout, stderr))

    # cpupower missing or refused: write the sysfs knobs directly
    logger.debug("cpupower rc=%s, falling back to sysfs", rc)
    paths = governor_paths(probe.sysfs_root)
    if not paths:
        detail = "cpupower not installed" if rc == RC_NOT_FOUND else (stderr or "cpupower failed")
        return ApplyStep("cpu_governor", "UNSUPPORTED", f"{detail}; cpufreq not exposed", {"cpupower_rc": rc})
    return _write_all("cpu_governor", paths, "performance", "performance (sysfs)")


def disable_cstates(probe: SettingsProbe) -> ApplyStep:
    paths = deep_cstate_paths(probe.sysfs_root)
    if not paths:
        return ApplyStep("cstates", "UNSUPPORTED", "cpuidle states not exposed", {})
    if _at_target(probe, "cstates"):
        return ApplyStep("cstates", "SKIPPED", f"already disabled on {len(paths)} entries")
    return _write_all("cstates", paths, "1", "deep C-states disabled")


def _write_all(name: str, paths: list[str], value: str, detail: str) -> ApplyStep:
    failed: list[str] = []
    for path in paths:
        try:
            write_text(path, value)
        except OSError as e:
            logger.debug("write %s failed: %s", path, e)
            failed.append(path)
    evidence = {"paths": len(paths), "failed": failed}
    if not failed:
        return ApplyStep(name, "OK", f"{detail} on {len(paths)} entries", evidence)
    if len(failed) < len(paths):
        return ApplyStep(name, "ERROR", f"{detail} on {len(paths) - len(failed)}/{len(paths)} entries", evidence)
    return ApplyStep(name, "ERROR", f"could not write {value!r} to any of {len(paths)} entries", evidence)


def stop_irqbalance(probe: SettingsProbe) -> list[ApplyStep]:
    spec = tunable("irqbalance")
    state, evidence = probe.read_with_evidence(spec)
    if state is None:
        return [ApplyStep("irqbalance", "UNSUPPORTED", "systemctl not available", evidence)]
    if matches(spec, state):
        return [ApplyStep("irqbalance", "SKIPPED", "already disabled or not present", evidence)]

    steps = []
    for verb in ("stop", "disable"):
        cmd = ["systemctl", verb, "irqbalance"]
        rc, stdout, stderr = probe.runner(cmd)
        status = "OK" if rc == 0 else "ERROR"
        steps.append(ApplyStep(f"irqbalance_{verb}", status, stderr or f"irqbalance {verb}",
                               get_evidence(cmd, rc, stdout, stderr)))
    return steps


# -----------------------------
# Persistent kernel parameters
# -----------------------------
def persist_sysctls(config: TunerConfig, runner: Runner = run_cmd, now: datetime | None = None) -> list[ApplyStep]:
    steps: list[ApplyStep] = []
    path = config.sysctl_conf
    block = render_sysctl_block(sysctl_targets(config.profile), config.profile.value)

    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            existing = f.read()
    except FileNotFoundError:
        existing = ""
    except OSError as e:
        _record(steps, ApplyStep("sysctl_conf", "ERROR", f"cannot read {path}: {e}"))
        return steps

    merged = merge_sysctl_block(existing, block)
    if merged == existing:
        _record(steps, ApplyStep("sysctl_conf", "SKIPPED", f"{path} already up to date"))
    else:
        try:
            backup = backup_file(path, now)
            with open(path, "w", encoding="utf-8") as f:
                f.write(merged)
        except OSError as e:
            _record(steps, ApplyStep("sysctl_conf", "ERROR", f"cannot write {path}: {e}"))
            return steps
        _record(steps, ApplyStep("sysctl_conf", "OK", f"parameters written to {path}", {"backup": backup}))

    # BBR is usually a module; without it the congestion_control line is rejected
    cmd = ["modprobe", "tcp_bbr"]
    rc, stdout, stderr = runner(cmd)
    if rc != 0:
        _record(steps, ApplyStep("tcp_bbr_module", "UNSUPPORTED", stderr or "modprobe tcp_bbr failed",
                                 get_evidence(cmd, rc, stdout, stderr)))

    cmd = ["sysctl", "-p", path]
    rc, stdout, stderr = runner(cmd)
    status = "OK" if rc == 0 else "ERROR"
    _record(steps, ApplyStep("sysctl_activate", status, stderr or "kernel parameters activated",
                             get_evidence(cmd, rc, stdout, stderr)))
    return steps


def backup_file(path: str, now: datetime | None = None) -> str | None:
    """
    Copy `path` aside before it is rewritten. An existing backup is never
    overwritten: a second change within the same second gets `.1`, `.2`...
    """
    if not os.path.exists(path):
        return None
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    backup = f"{path}.backup.{stamp}"
    n = 0
    while os.path.exists(backup):
        n += 1
        backup = f"{path}.backup.{stamp}.{n}"
    shutil.copy2(path, backup)
    return backup


# -----------------------------
# Boot unit
# -----------------------------
def entry_point_command(profile: Profile) -> str:
    exe = shutil.which(TOOL_NAME)
    base = exe if exe else f"{sys.executable} -m host_tuner.main"
    return f"{base} apply --boot --profile {profile.value}"


def render_unit(config: TunerConfig, exec_start: str | None = None) -> str:
    exec_start = exec_start or entry_point_command(config.profile)
    return (
        "[Unit]\n"
        "Description=Low-latency host tuning (NIC, CPU, irqbalance)\n"
        "After=network.target\n"
        "\n"
        "[Service]\n"
        "Type=oneshot\n"
        f"ExecStart={exec_start}\n"
        "RemainAfterExit=yes\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )


def install_boot_unit(config: TunerConfig, runner: Runner = run_cmd, exec_start: str | None = None) -> list[ApplyStep]:
    steps: list[ApplyStep] = []
    path = config.unit_path
    content = render_unit(config, exec_start)

    try:
        with open(path, "r", encoding="utf-8") as f:
            current = f.read()
    except OSError:
        current = None

    if current == content:
        _record(steps, ApplyStep("boot_unit", "SKIPPED", f"{path} already installed"))
    else:
        try:
            os.makedirs(config.unit_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            _record(steps, ApplyStep("boot_unit", "ERROR", f"cannot write {path}: {e}"))
            return steps
        _record(steps, ApplyStep("boot_unit", "OK", f"{path} written"))
        _systemctl_step(steps, runner, "daemon_reload", ["systemctl", "daemon-reload"])

    _systemctl_step(steps, runner, "boot_unit_enable", ["systemctl", "enable", config.unit_name])
    return steps


def _systemctl_step(steps, runner, name, cmd) -> None:
    rc, stdout, stderr = runner(cmd)
    evidence = get_evidence(cmd, rc, stdout, stderr)
    if rc == RC_NOT_FOUND:
        step = ApplyStep(name, "UNSUPPORTED", "systemctl not available", evidence)
    else:
        step = ApplyStep(name, "OK" if rc == 0 else "ERROR", stderr or " ".join(cmd[1:]), evidence)
    _record(steps, step)


def _record(steps: list[ApplyStep], step: ApplyStep) -> None:
    if step.status in ("OK", "SKIPPED"):
        logger.info("%s: %s (%s)", step.name, step.status.lower(), step.detail)
    else:
        logger.warning("%s: %s (%s)", step.name, step.status.lower(), step.detail)
    steps.append(step)

import os
import re
from typing import Any

from host_tuner.helpers.unix import read_text, sysfs_glob

GOVERNOR_GLOB = "devices/system/cpu/cpu[0-9]*/cpufreq/scaling_governor"
CSTATE_GLOB = "devices/system/cpu/cpu[0-9]*/cpuidle/state[0-9]*/disable"

_STATE_RE = re.compile(r"state(\d+)$")


def governor_paths(sysfs_root: str) -> list[str]:
    return sysfs_glob(sysfs_root, GOVERNOR_GLOB)


def read_governors(sysfs_root: str = "/sys") -> tuple[str | None, dict[str, Any]]:
    """
    Governors in use across all cores, sorted and de-duplicated.

    "performance" means every core is on it; "performance powersave" means
    the cores disagree. None when cpufreq is not exposed (common on VMs).
    """
    paths = governor_paths(sysfs_root)
    found = {p: read_text(p) for p in paths}
    values = sorted({v for v in found.values() if v})
    evidence = {"paths": len(paths), "governors": values}
    if not values:
        return None, evidence
    return " ".join(values), evidence


def deep_cstate_paths(sysfs_root: str) -> list[str]:
    """
    `disable` files for every idle state deeper than state0 (POLL).
    state0 is the polling loop itself and is never disabled.
    """
    paths = []
    for path in sysfs_glob(sysfs_root, CSTATE_GLOB):
        m = _STATE_RE.search(os.path.basename(os.path.dirname(path)))
        if m and int(m.group(1)) >= 1:
            paths.append(path)
    return paths


def read_cstates(sysfs_root: str = "/sys") -> tuple[str | None, dict[str, Any]]:
    """
    "disabled" when every deep C-state on every core is disabled,
    "enabled" when at least one is still usable, None without cpuidle.
    """
    paths = deep_cstate_paths(sysfs_root)
    values = [read_text(p) for p in paths]
    readable = [v for v in values if v is not None]
    enabled = sum(1 for v in readable if v != "1")
    evidence = {"states": len(paths), "enabled": enabled}
    if not readable:
        return None, evidence
    return ("enabled" if enabled else "disabled"), evidence

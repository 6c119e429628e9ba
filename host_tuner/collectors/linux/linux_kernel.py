import os
from typing import Any

from host_tuner.helpers.unix import Runner, get_evidence, read_text, run_cmd

# -----------------------------
# 1) sysctl reads
# -----------------------------
def read_sysctl(key: str, runner: Runner = run_cmd, procfs_root: str = "/proc") -> tuple[str | None, dict[str, Any]]:
    """
    Current value of a kernel parameter.

    Primary:  sysctl -n net.ipv4.tcp_congestion_control
    Fallback: /proc/sys/net/ipv4/tcp_congestion_control

    Multi-value parameters come back tab separated ("4096\t87380\t16777216");
    they are normalised to single spaces so they compare against the
    sysctl.conf spelling.
    """
    cmd = ["sysctl", "-n", key]
    rc, stdout, stderr = runner(cmd)
    evidence = get_evidence(cmd, rc, stdout, stderr)
    if rc == 0 and stdout:
        return normalise(stdout), evidence

    path = os.path.join(procfs_root, "sys", *key.split("."))
    text = read_text(path)
    evidence = {"primary": evidence, "fallback_path": path}
    if text:
        return normalise(text), evidence
    return None, evidence


def normalise(value: str) -> str:
    return " ".join(value.split())


# -----------------------------
# 2) sysctl.conf block
# -----------------------------
BLOCK_BEGIN = "# BEGIN host-tuner"
BLOCK_END = "# END host-tuner"


def render_sysctl_block(settings: dict[str, str], profile: str) -> str:
    lines = [
        f"{BLOCK_BEGIN} (profile: {profile})",
        "# Low-latency trading optimizations; managed by host-tuner, edits are overwritten",
    ]
    lines += [f"{key} = {value}" for key, value in settings.items()]
    lines.append(BLOCK_END)
    return "\n".join(lines) + "\n"


def merge_sysctl_block(existing: str, block: str) -> str:
    """
    Replace the managed block in `existing` with `block`, or append it.

    Only the first BEGIN..END pair is replaced; any later pairs (left by a
    hand edit) are dropped so the file ends up with exactly one block.
    A BEGIN marker with no matching END is not ours to remove: it and
    every line after it are kept as they are.
    """
    kept: list[str] = []
    pending: list[str] | None = None
    inserted = False
    for line in existing.splitlines(keepends=True):
        stripped = line.strip()
        if stripped.startswith(BLOCK_BEGIN):
            if pending is not None:
                # the previous BEGIN never closed
                kept += pending
            pending = [line]
            continue
        if pending is None:
            kept.append(line)
            continue
        pending.append(line)
        if stripped == BLOCK_END:
            if not inserted:
                kept.append(block)
                inserted = True
            pending = None
    if pending is not None:
        kept += pending

    merged = "".join(kept)
    if inserted:
        return merged
    if merged and not merged.endswith("\n"):
        merged += "\n"
    if merged:
        merged += "\n"
    return merged + block

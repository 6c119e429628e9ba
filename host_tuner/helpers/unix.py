import glob
import os
import subprocess
from typing import Callable

# Signature shared by run_cmd and the fakes used in tests.
Runner = Callable[..., tuple[int, str, str]]

RC_NOT_FOUND = 127
RC_TIMEOUT = 124
RC_CANNOT_EXECUTE = 126


def run_cmd(cmd: list[str], timeout_s: int = 10) -> tuple[int, str, str]:
    """
    Run a command and return:
      - return code (rc)
      - stdout (string)
      - stderr (string)

    Never raises for a missing binary or a hung command: those come back as
    rc 127 / rc 124, and a binary that cannot be executed (permissions,
    bad format) as rc 126, so callers can treat them as "unsupported on
    this host".
    """
    try:
        p = subprocess.run(
            cmd,
            text=True,              # decode output to str instead of bytes
            capture_output=True,    # capture stdout/stderr
            timeout=timeout_s
        )
    except FileNotFoundError:
        return RC_NOT_FOUND, "", f"command not found: {cmd[0]}"
    except subprocess.TimeoutExpired:
        return RC_TIMEOUT, "", f"timed out after {timeout_s}s: {' '.join(cmd)}"
    except OSError as e:
        return RC_CANNOT_EXECUTE, "", f"cannot execute {cmd[0]}: {e}"

    # Normalise None → "" and strip whitespace
    return p.returncode, (p.stdout or "").strip(), (p.stderr or "").strip()


def get_evidence(cmd, rc, stdout, stderr):

    return {
        "cmd": " ".join(cmd) if isinstance(cmd, list) else cmd,
        "rc": rc,
        "stdout": stdout,
        "stderr": stderr
    }


def read_text(path: str) -> str | None:
    """Read a sysfs/procfs file; None when it is missing or unreadable."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read().strip()
    except OSError:
        return None


def write_text(path: str, value: str) -> None:
    """Write a single value into a sysfs file. OSError propagates."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(value)


def sysfs_glob(root: str, pattern: str) -> list[str]:
    # sorted so cpu10 ordering is stable between runs
    return sorted(glob.glob(os.path.join(root, pattern)))


def is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0

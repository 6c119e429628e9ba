from typing import Any

from host_tuner.helpers.unix import RC_NOT_FOUND, RC_TIMEOUT, Runner, get_evidence, run_cmd


def systemctl_query(verb: str, unit: str, runner: Runner = run_cmd) -> tuple[str | None, dict[str, Any]]:
    """
    `systemctl is-active|is-enabled <unit>`.

    systemctl answers on stdout and signals "no" through the exit code
    (is-active prints "inactive" with rc 3), so stdout is the value
    whatever the rc. None only when systemctl itself is missing or hung.
    """
    cmd = ["systemctl", verb, unit]
    rc, stdout, stderr = runner(cmd)
    evidence = get_evidence(cmd, rc, stdout, stderr)
    if rc in (RC_NOT_FOUND, RC_TIMEOUT) or not stdout:
        return None, evidence
    return stdout.splitlines()[0].strip(), evidence

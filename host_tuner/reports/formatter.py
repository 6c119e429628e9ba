"""
    Report formatting functions
"""
from host_tuner.core.models import ApplyReport, VerifyReport
from host_tuner.core.tunables import SECTIONS, section_of, tunables_for
from host_tuner.core.config import TOOL_NAME

RULE = "=" * 63

_MARK = {"PASS": "[PASS]", "WARN": "[WARN]", "FAIL": "[FAIL]"}

_LATENCY_TEXT = {
    "excellent": "Excellent latency (<30ms avg)",
    "good": "Good latency (30-50ms avg)",
    "high": "Higher latency (>50ms avg) - consider VPS relocation",
    "unknown": "Reachable, but the average RTT could not be parsed",
    "unreachable": "Host unreachable",
}

SUMMARY = {
    "optimal": [
        "Perfect! All optimizations are active.",
    ],
    "core": [
        "Good! Core optimizations are active.",
        "Some optional features aren't available on this system.",
    ],
    "failed": [
        "Some critical optimizations failed.",
        "",
        "Recommended actions:",
        f"  1. Re-run: sudo {TOOL_NAME} apply",
        "  2. Reboot: sudo reboot",
        "  3. Verify again after reboot",
    ],
}


def _heading(lines, title):
    lines += ["", RULE, title, RULE, ""]


def format_verify_report(report: VerifyReport, profile) -> str:
    lines: list[str] = []
    specs = {s.name: s for s in tunables_for(profile)}

    for section, title in SECTIONS.items():
        if section == "nic":
            title = f"{title}: {report.interface or 'not detected'}"
        _heading(lines, title)
        for check in report.checks:
            spec = specs.get(check.name)
            if spec is None or section_of(spec) != section:
                continue
            observed = "unreadable" if check.unsupported else check.observed
            line = f"  {_MARK[check.status]} {check.label}: {observed}"
            if not check.matched:
                line += f" (should be {check.expected})"
            lines.append(line)

    if report.latency is not None:
        _heading(lines, "Connectivity")
        lat = report.latency
        avg = f"{lat.avg_ms:.1f}ms avg" if lat.avg_ms is not None else "no rtt"
        lines.append(f"  {lat.host}: {avg}")
        lines.append(f"  {_LATENCY_TEXT[lat.tier]}")

    tally = report.tally
    _heading(lines, "Verification summary")
    lines += [
        f"  Passed:   {tally.passed} checks",
        f"  Warnings: {tally.warned} checks",
        f"  Failed:   {tally.failed} checks",
        "",
    ]
    lines += SUMMARY[tally.verdict]
    return "\n".join(lines) + "\n"


def format_apply_report(report: ApplyReport) -> str:
    lines: list[str] = []
    _heading(lines, f"Apply summary ({report.meta['profile']}) on {report.interface}")
    for step in report.steps:
        lines.append(f"  {step.status:<11} {step.name}: {step.detail}")
    lines += [
        "",
        f"  {report.count('OK')} applied, {report.count('SKIPPED')} already in place, "
        f"{report.count('UNSUPPORTED')} unsupported, {report.count('ERROR')} errors",
    ]
    if not report.meta.get("boot"):
        lines += [
            "",
            "Next steps:",
            "  1. Reboot to ensure all changes take effect: sudo reboot",
            f"  2. After reboot, verify: sudo {TOOL_NAME} verify",
        ]
    return "\n".join(lines) + "\n"


def print_verify_report(report: VerifyReport, profile) -> None:
    print(format_verify_report(report, profile), end="")


def print_apply_report(report: ApplyReport) -> None:
    print(format_apply_report(report), end="")

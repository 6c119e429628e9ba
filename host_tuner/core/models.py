# core/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Literal, Union

Status = Literal["PASS", "WARN", "FAIL"]
StepStatus = Literal["OK", "SKIPPED", "UNSUPPORTED", "ERROR"]
Severity = Literal["warn", "fail"]
LatencyTier = Literal["excellent", "good", "high", "unknown", "unreachable"]
Verdict = Literal["optimal", "core", "failed"]

# A literal target string, or a predicate over the observed value.
Expected = Union[str, Callable[[str], bool]]


class Profile(str, Enum):
    STANDARD = "standard"
    HFT = "hft"


class Source(str, Enum):
    """Read mechanism used by SettingsProbe for a tunable."""
    SYSCTL = "sysctl"
    ETHTOOL_COALESCE = "ethtool_coalesce"
    ETHTOOL_FEATURES = "ethtool_features"
    ETHTOOL_RING = "ethtool_ring"
    CPU_GOVERNOR = "cpu_governor"
    CPU_CSTATES = "cpu_cstates"
    SERVICE_ACTIVE = "service_active"
    SERVICE_ENABLED = "service_enabled"


@dataclass(frozen=True)
class TunableSpec:
    name: str
    label: str
    source: Source
    key: str
    expected: Expected
    severity: Severity = "warn"
    # Value written by apply; only sysctl tunables carry one.
    target: str | None = None
    # Shown in reports when `expected` is a predicate.
    expected_text: str | None = None

    def describe_expected(self) -> str:
        if self.expected_text:
            return self.expected_text
        if callable(self.expected):
            return getattr(self.expected, "__name__", "predicate")
        return self.expected


@dataclass(frozen=True)
class ProbeResult:
    name: str
    label: str
    observed: str | None
    matched: bool
    severity: Severity
    status: Status
    expected: str
    evidence: dict[str, Any] = field(default_factory=dict)

    @property
    def unsupported(self) -> bool:
        return self.observed is None


@dataclass(frozen=True)
class ReportTally:
    passed: int = 0
    warned: int = 0
    failed: int = 0

    def add(self, result: ProbeResult) -> ReportTally:
        if result.status == "PASS":
            return ReportTally(self.passed + 1, self.warned, self.failed)
        if result.status == "WARN":
            return ReportTally(self.passed, self.warned + 1, self.failed)
        return ReportTally(self.passed, self.warned, self.failed + 1)

    @property
    def exit_code(self) -> int:
        return 0 if self.failed == 0 else 1

    @property
    def verdict(self) -> Verdict:
        if self.failed:
            return "failed"
        if self.warned:
            return "core"
        return "optimal"


@dataclass(frozen=True)
class LatencyProbe:
    host: str
    reachable: bool
    avg_ms: float | None
    tier: LatencyTier
    evidence: dict[str, Any] = field(default_factory=dict)


@dataclass
class ApplyStep:
    name: str
    status: StepStatus
    detail: str
    evidence: dict[str, Any] = field(default_factory=dict)


@dataclass
class ApplyReport:
    meta: dict[str, Any]
    host: dict[str, Any]
    interface: str
    steps: list[ApplyStep]

    def count(self, status: StepStatus) -> int:
        return sum(1 for s in self.steps if s.status == status)


@dataclass
class VerifyReport:
    meta: dict[str, Any]
    host: dict[str, Any]
    interface: str | None
    checks: list[ProbeResult]
    tally: ReportTally
    latency: LatencyProbe | None

    @property
    def exit_code(self) -> int:
        return self.tally.exit_code

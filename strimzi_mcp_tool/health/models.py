"""Health check scope, findings and the report accumulator."""

import enum
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from strimzi_mcp_tool.certificates import DEFAULT_WARNING_DAYS
from strimzi_mcp_tool.store import ResourceStore


REPORT_TITLE = "Strimzi Health Check Report"
RULE = "═" * 60


class Severity(str, enum.Enum):
    OK = "OK"
    WARNING = "WARNING"
    ERROR = "ERROR"

    @property
    def sort_order(self) -> int:
        return {Severity.ERROR: 0, Severity.WARNING: 1, Severity.OK: 2}[self]


@dataclass(frozen=True)
class HealthFinding:
    resource_kind: str
    namespace: str
    name: str
    severity: Severity
    summary: str

    @property
    def resource(self) -> str:
        return f"{self.resource_kind}/{self.namespace}/{self.name}"

    def render(self) -> str:
        return f"{self.resource}: {self.severity.value} — {self.summary}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.resource_kind,
            "namespace": self.namespace,
            "name": self.name,
            "severity": self.severity.value,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class CheckerFailure:
    """A checker that could not scan its resource kind at all."""

    checker: str
    error: str


@dataclass(frozen=True)
class HealthCheckContext:
    """Read-only scope shared by every checker in one health check.

    Args:
        store: Resource store for the target cluster.
        namespace_filter: Only scan this namespace; ``None`` scans all.
        cluster_filter: Only scan resources of this Kafka cluster.
        warning_days: Certificate expiry warning threshold.
    """

    store: ResourceStore
    namespace_filter: Optional[str] = None
    cluster_filter: Optional[str] = None
    warning_days: int = DEFAULT_WARNING_DAYS

    @property
    def has_cluster_filter(self) -> bool:
        return bool(self.cluster_filter)


@dataclass
class HealthCheckResult:
    """Append-only accumulator of findings, rendered once at the end."""

    findings: List[HealthFinding] = field(default_factory=list)
    failures: List[CheckerFailure] = field(default_factory=list)

    def append(self, finding: HealthFinding) -> None:
        self.findings.append(finding)

    def add(self, kind: str, namespace: str, name: str, severity: Severity, summary: str) -> HealthFinding:
        finding = HealthFinding(kind, namespace, name, severity, summary)
        self.append(finding)
        return finding

    def record_failure(self, checker: str, error: str) -> None:
        self.failures.append(CheckerFailure(checker, error))

    def count(self, severity: Severity) -> int:
        return sum(1 for f in self.findings if f.severity == severity)

    @property
    def counts(self) -> Dict[str, int]:
        return {s.value: self.count(s) for s in Severity}

    @property
    def has_issues(self) -> bool:
        return any(f.severity != Severity.OK for f in self.findings)

    @property
    def worst_severity(self) -> Severity:
        if not self.findings:
            return Severity.OK
        return min(self.findings, key=lambda f: f.severity.sort_order).severity

    def by_kind(self) -> "OrderedDict[str, List[HealthFinding]]":
        grouped: "OrderedDict[str, List[HealthFinding]]" = OrderedDict()
        for finding in self.findings:
            grouped.setdefault(finding.resource_kind, []).append(finding)
        return grouped

    def format(self) -> str:
        lines = [REPORT_TITLE, RULE, ""]
        counts = self.counts
        lines.append("SUMMARY")
        lines.append(
            f"  {Severity.ERROR.value}: {counts[Severity.ERROR.value]}  "
            f"{Severity.WARNING.value}: {counts[Severity.WARNING.value]}  "
            f"{Severity.OK.value}: {counts[Severity.OK.value]}"
        )
        if not self.has_issues:
            lines.append("  No issues found.")
        lines.append("")

        for kind, findings in self.by_kind().items():
            lines.append(kind.upper())
            lines.append("─" * 40)
            for finding in findings:
                lines.append(f"  {finding.render()}")
            lines.append("")

        if self.failures:
            lines.append("INCOMPLETE CHECKS")
            lines.append("─" * 40)
            for failure in self.failures:
                lines.append(f"  {failure.checker}: {failure.error}")
            lines.append("")

        lines.append(RULE)
        if self.has_issues:
            lines.append("Use the describe_* tools to investigate specific resources.")
        return "\n".join(lines) + "\n"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallHealth": self.worst_severity.value,
            "counts": self.counts,
            "findings": [f.to_dict() for f in self.findings],
            "incompleteChecks": [
                {"checker": f.checker, "error": f.error} for f in self.failures
            ],
        }

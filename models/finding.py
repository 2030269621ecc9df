from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from models.enums import Severity


@dataclass(frozen=True)
class Finding:
    """A single located observation: vulnerability, bottleneck, smell or debt item."""
    type: str
    severity: Severity
    location: str  # "path:line", a path, or "project"
    description: str
    remediation: Optional[str] = None
    cwe: Optional[str] = None
    snippet: Optional[str] = None

    def sort_key(self):
        return (-self.severity.rank, self.location, self.type, self.description)


SEVERITY_PENALTY: Dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
}


def penalty_score(findings: Iterable[Finding], start: int = 100) -> int:
    """Start at ``start`` and subtract a severity-weighted penalty per finding, floored at 0."""
    return max(0, start - sum(SEVERITY_PENALTY[f.severity] for f in findings))

"""Code quality heuristics over source artifacts.

Complexity is estimated from decision-point keywords per function, duplication
from repeated substantial lines across the scanned files. Neither is an AST
measurement; both are stable for a given snapshot.
"""
from collections import Counter
from typing import Dict, List, Mapping, Sequence, Tuple

from analyzers.base import BaseAnalyzer
from core.analyzer_registry import AnalyzerRegistry, without_technologies
from core.context import AnalysisContext
from core.strategy import ArtifactUnavailable, Strategy
from detectors.lines import count_matches, scan_lines
from detectors.paths import is_source
from models.artifact import Artifact
from models.enums import Severity
from models.finding import Finding
from models.reports import CodeQualityReport, CodeSmell, SubReport

DECISION_PATTERN = r"\b(?:if|elif|for|while|case|catch|except|and|or)\b|&&|\|\|"
FUNCTION_PATTERN = (
    r"^\s*(?:async\s+)?def\s+\w+"
    r"|\bfunction\b"
    r"|=>"
    r"|^\s*func\s+"
    r"|^\s*(?:pub(?:\([^)]*\))?\s+)?(?:async\s+)?fn\s+\w+"
    r"|^\s*(?:public|private|protected)\s+(?:static\s+)?[\w<>\[\],\s]+\s+\w+\s*\("
)

COMPLEXITY_THRESHOLD = 10
SUBSTANTIAL_LINE = 20
LONG_LINE = 120
LARGE_FILE_LINES = 500
HUGE_FILE_LINES = 1000
NESTING_INDENT = 24
MAX_EXAMPLES = 5
# Lines per KiB of source assumed by the tree-only estimate
ESTIMATED_LINES_PER_KB = 30


def file_complexity(content: str) -> float:
    decisions = count_matches(DECISION_PATTERN, content)
    functions = count_matches(FUNCTION_PATTERN, content, multiline=True)
    return 1 + decisions / max(1, functions)


def duplication_level(artifacts: Sequence[Artifact]) -> int:
    """Percentage of substantial lines that repeat an earlier one."""
    counts: Counter = Counter()
    for artifact in artifacts:
        for line in artifact.content.splitlines():
            stripped = line.strip()
            if len(stripped) > SUBSTANTIAL_LINE:
                counts[stripped] += 1
    substantial = sum(counts.values())
    if not substantial:
        return 0
    repeated = sum(n - 1 for n in counts.values() if n > 1)
    return min(100, round(100 * repeated / substantial))


def structural_smells(artifacts: Sequence[Artifact]) -> List[Finding]:
    findings: List[Finding] = []
    for artifact in artifacts:
        lines = artifact.content.splitlines()
        if len(lines) > LARGE_FILE_LINES:
            findings.append(
                Finding(
                    type="large-file",
                    severity=Severity.HIGH if len(lines) > HUGE_FILE_LINES else Severity.MEDIUM,
                    location=artifact.path,
                    description="Files with many lines are hard to read and review",
                    remediation="Split the file into smaller modules",
                )
            )
        for lineno, line in enumerate(lines, start=1):
            if len(line) > LONG_LINE:
                findings.append(
                    Finding(
                        type="long-line",
                        severity=Severity.LOW,
                        location=f"{artifact.path}:{lineno}",
                        description=f"Lines longer than {LONG_LINE} characters",
                        remediation="Wrap long lines or extract variables",
                    )
                )
            stripped = line.lstrip(" \t")
            indent = len(line[: len(line) - len(stripped)].expandtabs(4))
            if stripped and indent >= NESTING_INDENT:
                findings.append(
                    Finding(
                        type="deep-nesting",
                        severity=Severity.MEDIUM,
                        location=f"{artifact.path}:{lineno}",
                        description="Deeply nested blocks",
                        remediation="Use early returns or extract nested blocks into functions",
                    )
                )
    return findings


def group_smells(findings: Sequence[Finding]) -> Tuple[CodeSmell, ...]:
    """Collapse per-line findings into one CodeSmell per type."""
    grouped: Dict[str, List[Finding]] = {}
    for finding in findings:
        grouped.setdefault(finding.type, []).append(finding)
    smells = []
    for smell_type, items in grouped.items():
        items.sort(key=Finding.sort_key)
        smells.append(
            CodeSmell(
                type=smell_type,
                severity=max((f.severity for f in items), key=lambda s: s.rank),
                count=len(items),
                description=items[0].description,
                examples=tuple(f.location for f in items[:MAX_EXAMPLES]),
                remediation=items[0].remediation,
            )
        )
    smells.sort(key=lambda s: (-s.severity.rank, -s.count, s.type))
    return tuple(smells)


@AnalyzerRegistry.register("code_quality", without_technologies)
class CodeQualityAnalyzer(BaseAnalyzer):
    name = "code_quality"
    report_type = CodeQualityReport

    def strategies(self) -> List[Tuple[str, Strategy]]:
        return [("source-scan", self.build), ("tree-estimate", self.estimate_from_tree)]

    def build(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> CodeQualityReport:
        sources = context.source_artifacts()
        if not sources:
            raise ArtifactUnavailable("no source content")

        per_file = {a.path: file_complexity(a.content) for a in sources}
        findings: List[Finding] = []
        for artifact in sources:
            findings.extend(scan_lines(artifact.path, artifact.content, self.rules.code_smells))
        findings.extend(structural_smells(sources))

        complexity = round(sum(per_file.values()) / len(per_file), 1)
        smells = group_smells(findings)
        self.logger.debug(
            f"CodeQualityAnalyzer: {len(sources)} files, complexity {complexity}, {len(smells)} smell types"
        )
        return CodeQualityReport(
            files_analyzed=len(sources),
            total_lines=sum(len(a.content.splitlines()) for a in sources),
            cyclomatic_complexity=complexity,
            files_above_threshold=tuple(sorted(p for p, c in per_file.items() if c > COMPLEXITY_THRESHOLD)),
            duplication_level=duplication_level(sources),
            code_smells=smells,
        )

    def estimate_from_tree(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> CodeQualityReport:
        """Size-only estimate when the tree lists source files but none were fetched."""
        sources = [e for e in context.files if is_source(e.path)]
        if not sources:
            raise ArtifactUnavailable("no source files in tree")
        total_lines = sum(e.size for e in sources) * ESTIMATED_LINES_PER_KB // 1024
        self.logger.debug(f"CodeQualityAnalyzer: estimating from {len(sources)} tree entries")
        return CodeQualityReport(
            files_analyzed=0,
            total_lines=total_lines,
            notes=("Estimated from file sizes; no source content was available",),
        )

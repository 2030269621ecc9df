from collections import Counter
from typing import Dict, List, Mapping, Sequence, Tuple

from analyzers.base import BaseAnalyzer
from core.analyzer_registry import AnalyzerRegistry, without_technologies
from core.context import AnalysisContext
from core.strategy import ArtifactUnavailable
from detectors.imports import imported_modules
from detectors.lines import scan_lines
from detectors.paths import is_source
from models.artifact import Artifact
from models.enums import Severity
from models.finding import Finding, penalty_score
from models.reports import PerformanceReport, SubReport

LARGE_FILE_BYTES = 50_000
HEAVY_IMPORT_THRESHOLD = 5


def heavy_imports(artifacts: Sequence[Artifact]) -> List[Finding]:
    """Modules imported more than HEAVY_IMPORT_THRESHOLD times across the codebase."""
    counts: Counter = Counter()
    for artifact in artifacts:
        counts.update(imported_modules(artifact.content))
    return [
        Finding(
            type="heavy-import",
            severity=Severity.LOW,
            location="project",
            description=f"'{module}' is imported {n} times; consider lazy loading or a shared entry point",
            remediation="Import heavy modules once or load them lazily",
        )
        for module, n in sorted(counts.items())
        if n > HEAVY_IMPORT_THRESHOLD
    ]


def file_sizes(context: AnalysisContext) -> Dict[str, int]:
    sizes = {e.path: e.size for e in context.files if is_source(e.path)}
    for artifact in context.source_artifacts():
        sizes[artifact.path] = max(sizes.get(artifact.path, 0), len(artifact.content.encode("utf-8")))
    return sizes


def recommendations(bottlenecks: Sequence[Finding]) -> Tuple[str, ...]:
    seen: List[str] = []
    for finding in bottlenecks:
        if finding.remediation and finding.remediation not in seen:
            seen.append(finding.remediation)
    return tuple(seen)


@AnalyzerRegistry.register("performance", without_technologies)
class PerformanceAnalyzer(BaseAnalyzer):
    name = "performance"
    report_type = PerformanceReport

    def build(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> PerformanceReport:
        sources = context.source_artifacts()
        sizes = file_sizes(context)
        if not sources and not sizes:
            raise ArtifactUnavailable("no source files")

        findings: List[Finding] = []
        for artifact in sources:
            findings.extend(scan_lines(artifact.path, artifact.content, self.rules.performance_patterns))
        findings.extend(heavy_imports(sources))

        large = sorted(p for p, size in sizes.items() if size > LARGE_FILE_BYTES)
        for path in large:
            findings.append(
                Finding(
                    type="large-file",
                    severity=Severity.LOW,
                    location=path,
                    description=f"Source file larger than {LARGE_FILE_BYTES // 1000} KB",
                    remediation="Split or code-split large source files",
                )
            )
        findings.sort(key=Finding.sort_key)

        self.logger.debug(f"PerformanceAnalyzer: {len(sources)} files scanned, {len(findings)} bottlenecks")
        return PerformanceReport(
            score=penalty_score(findings),
            files_scanned=len(sources),
            bottlenecks=tuple(findings),
            large_files=tuple(large),
            recommendations=recommendations(findings),
        )

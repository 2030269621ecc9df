"""Technical debt: categorize findings already produced by the primary analyzers.

No new scanning happens here. Each category appears only when it has at least
one item; the overall level and maintenance score depend on the categories
alone.
"""
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from analyzers.base import BaseAnalyzer
from core.analyzer_registry import AnalyzerRegistry, without_technologies
from core.context import AnalysisContext
from core.strategy import ArtifactUnavailable
from models.enums import DebtCategory, DebtLevel, Difficulty, QualityTier, RefactoringKind, ReportStatus, Severity
from models.finding import Finding
from models.reports import (
    CodeQualityReport,
    CodeStructureReport,
    DebtCategoryReport,
    DependencyReport,
    PerformanceReport,
    ReadmeReport,
    RefactoringOpportunity,
    SecurityReport,
    SubReport,
    TechnicalDebtReport,
)

MAINTENANCE_PENALTY: Dict[Severity, int] = {
    Severity.CRITICAL: 30,
    Severity.HIGH: 20,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
}

MAX_EXAMPLES = 5
MAX_PRIORITIZED = 20
DUPLICATION_THRESHOLD = 10
COMPONENT_EXTENSIONS = (".jsx", ".tsx", ".vue", ".svelte")


def overall_debt_level(categories: Sequence[DebtCategoryReport]) -> DebtLevel:
    critical = sum(1 for c in categories if c.severity == Severity.CRITICAL)
    high = sum(1 for c in categories if c.severity == Severity.HIGH)
    if critical > 0:
        return DebtLevel.CRITICAL
    if high > 2:
        return DebtLevel.HIGH
    if len(categories) > 3:
        return DebtLevel.MEDIUM
    return DebtLevel.LOW


def maintenance_score(categories: Sequence[DebtCategoryReport]) -> int:
    score = 100
    for category in categories:
        score -= MAINTENANCE_PENALTY[category.severity]
    return max(0, score)


def count_severity(count: int, medium_at: int, high_at: int) -> Severity:
    if count >= high_at:
        return Severity.HIGH
    if count >= medium_at:
        return Severity.MEDIUM
    return Severity.LOW


def highest(findings: Sequence[Finding]) -> Severity:
    return max((f.severity for f in findings), key=lambda s: s.rank)


def _complete(prior: Mapping[str, SubReport], kind: str) -> Optional[SubReport]:
    report = prior.get(kind)
    if report is None or report.status != ReportStatus.COMPLETE:
        return None
    return report


def _location_path(location: str) -> str:
    return location.split(":", 1)[0]


def code_smell_category(quality: Optional[CodeQualityReport]) -> Optional[DebtCategoryReport]:
    if quality is None or not quality.code_smells:
        return None
    total = sum(s.count for s in quality.code_smells)
    severity = count_severity(total, medium_at=10, high_at=50)
    return DebtCategoryReport(
        category=DebtCategory.CODE_SMELLS,
        severity=severity,
        count=total,
        examples=tuple(f"{s.type} ({s.count})" for s in quality.code_smells[:MAX_EXAMPLES]),
    )


def outdated_category(deps: Optional[DependencyReport]) -> Optional[DebtCategoryReport]:
    if deps is None or not deps.outdated:
        return None
    return DebtCategoryReport(
        category=DebtCategory.OUTDATED_DEPENDENCIES,
        severity=count_severity(len(deps.outdated), medium_at=3, high_at=10),
        count=len(deps.outdated),
        examples=deps.outdated[:MAX_EXAMPLES],
    )


def missing_tests_category(structure: Optional[CodeStructureReport]) -> Optional[DebtCategoryReport]:
    if structure is None:
        return None
    coverage = structure.test_coverage
    if coverage.quality == QualityTier.MISSING:
        return DebtCategoryReport(DebtCategory.MISSING_TESTS, Severity.HIGH, 1, ("No test files found",))
    if coverage.quality == QualityTier.POOR:
        return DebtCategoryReport(
            DebtCategory.MISSING_TESTS,
            Severity.MEDIUM,
            1,
            (f"Only {coverage.test_files} test files (estimated coverage {coverage.estimated_coverage}%)",),
        )
    return None


def documentation_category(
    readme: Optional[SubReport], structure: Optional[CodeStructureReport]
) -> Optional[DebtCategoryReport]:
    if not isinstance(readme, ReadmeReport) or readme.status == ReportStatus.SKIPPED:
        return None
    examples: List[str] = []
    severity = Severity.LOW
    if readme.status != ReportStatus.COMPLETE:
        examples.append("No README")
        severity = Severity.HIGH
    elif readme.quality == QualityTier.POOR:
        examples.append(f"README quality is poor ({readme.quality_score}/100)")
        severity = Severity.MEDIUM
    elif readme.quality == QualityTier.BASIC:
        examples.append(f"README covers only the basics ({readme.quality_score}/100)")
    if structure is not None and not structure.has_docs_directory and examples:
        examples.append("No docs directory")
    if not examples:
        return None
    return DebtCategoryReport(DebtCategory.DOCUMENTATION, severity, len(examples), tuple(examples))


def findings_category(category: DebtCategory, findings: Sequence[Finding]) -> Optional[DebtCategoryReport]:
    if not findings:
        return None
    ordered = sorted(findings, key=Finding.sort_key)
    return DebtCategoryReport(
        category=category,
        severity=highest(ordered),
        count=len(ordered),
        examples=tuple(f"{f.type} at {f.location}" for f in ordered[:MAX_EXAMPLES]),
    )


def security_findings(security: Optional[SecurityReport], deps: Optional[DependencyReport]) -> List[Finding]:
    found: List[Finding] = []
    if security is not None:
        found.extend(security.vulnerabilities)
    if deps is not None:
        found.extend(deps.vulnerable)
        found.extend(deps.scripts.security_issues)
    return found


def refactoring_opportunities(quality: Optional[CodeQualityReport]) -> Tuple[RefactoringOpportunity, ...]:
    if quality is None:
        return ()
    found: List[RefactoringOpportunity] = []
    if quality.files_above_threshold:
        found.append(
            RefactoringOpportunity(
                type=RefactoringKind.SIMPLIFY_CONDITIONAL,
                description="Functions with many decision points could be simplified",
                files=quality.files_above_threshold[:MAX_EXAMPLES],
                impact=Severity.HIGH,
                difficulty=Difficulty.MEDIUM,
            )
        )
    if quality.duplication_level > DUPLICATION_THRESHOLD:
        found.append(
            RefactoringOpportunity(
                type=RefactoringKind.REMOVE_DUPLICATION,
                description=f"{quality.duplication_level}% of substantial lines are repeated",
                files=(),
                impact=Severity.HIGH if quality.duplication_level > 25 else Severity.MEDIUM,
                difficulty=Difficulty.MEDIUM,
            )
        )
    smells = {s.type: s for s in quality.code_smells}
    if "large-file" in smells:
        files = tuple(sorted({_location_path(e) for e in smells["large-file"].examples}))
        components = tuple(f for f in files if f.endswith(COMPONENT_EXTENSIONS))
        others = tuple(f for f in files if not f.endswith(COMPONENT_EXTENSIONS))
        if components:
            found.append(
                RefactoringOpportunity(
                    type=RefactoringKind.EXTRACT_COMPONENT,
                    description="Large components could be split into smaller ones",
                    files=components,
                    impact=Severity.MEDIUM,
                    difficulty=Difficulty.EASY,
                )
            )
        if others:
            found.append(
                RefactoringOpportunity(
                    type=RefactoringKind.EXTRACT_FUNCTION,
                    description="Large modules could be split into smaller functions",
                    files=others,
                    impact=Severity.MEDIUM,
                    difficulty=Difficulty.MEDIUM,
                )
            )
    if "deep-nesting" in smells:
        found.append(
            RefactoringOpportunity(
                type=RefactoringKind.SIMPLIFY_CONDITIONAL,
                description="Deeply nested blocks could use early returns",
                files=tuple(sorted({_location_path(e) for e in smells["deep-nesting"].examples})),
                impact=Severity.LOW,
                difficulty=Difficulty.EASY,
            )
        )
    return tuple(found)


def prioritized_issues(categories: Sequence[DebtCategoryReport], findings: Sequence[Finding]) -> Tuple[Finding, ...]:
    issues = list(findings)
    for category in categories:
        if category.category in (DebtCategory.SECURITY, DebtCategory.PERFORMANCE):
            continue
        for example in category.examples:
            issues.append(
                Finding(
                    type=category.category.value,
                    severity=category.severity,
                    location="project",
                    description=example,
                )
            )
    issues.sort(key=Finding.sort_key)
    return tuple(issues[:MAX_PRIORITIZED])


@AnalyzerRegistry.register("technical_debt", without_technologies, stage="derived")
class TechnicalDebtAnalyzer(BaseAnalyzer):
    name = "technical_debt"
    report_type = TechnicalDebtReport

    def build(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> TechnicalDebtReport:
        if context.is_empty():
            raise ArtifactUnavailable("nothing was analyzed")

        quality = _complete(prior, "code_quality")
        deps = _complete(prior, "dependencies")
        structure = _complete(prior, "code_structure")
        security = _complete(prior, "security")
        performance = _complete(prior, "performance")

        sec_findings = security_findings(security, deps)
        perf_findings = list(performance.bottlenecks) if performance is not None else []
        candidates = (
            code_smell_category(quality),
            outdated_category(deps),
            missing_tests_category(structure),
            documentation_category(prior.get("readme"), structure),
            findings_category(DebtCategory.SECURITY, sec_findings),
            findings_category(DebtCategory.PERFORMANCE, perf_findings),
        )
        categories = tuple(c for c in candidates if c is not None)

        self.logger.debug(f"TechnicalDebtAnalyzer: {len(categories)} debt categories")
        return TechnicalDebtReport(
            overall_level=overall_debt_level(categories),
            maintenance_score=maintenance_score(categories),
            categories=categories,
            prioritized_issues=prioritized_issues(categories, sec_findings + perf_findings),
            refactoring=refactoring_opportunities(quality),
        )

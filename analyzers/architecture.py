"""Architecture insights composed from the primary reports. Nothing is rescanned."""
from typing import List, Mapping, Optional, Sequence, Tuple

from analyzers.base import BaseAnalyzer
from core.analyzer_registry import AnalyzerRegistry, without_technologies
from core.context import AnalysisContext
from core.strategy import ArtifactUnavailable
from models.enums import Appropriateness, ReportStatus, Severity, TechCategory
from models.reports import (
    AntiPattern,
    ArchitectureInsights,
    ArchitecturePattern,
    CodeQualityReport,
    CodeStructureReport,
    DesignPattern,
    PerformanceReport,
    ScalabilityAssessment,
    SecurityAssessment,
    SecurityReport,
    SubReport,
    TechStackReport,
)
from models.rules import ArchitectureRules

CONTAINER_TECHNOLOGIES = {"Docker"}
ORCHESTRATION_TECHNOLOGIES = {"Kubernetes", "Helm", "Docker Compose"}
DUPLICATION_THRESHOLD = 10
WELL_ORGANIZED = 70

APPROPRIATENESS_TIERS = (
    (80, Appropriateness.EXCELLENT),
    (60, Appropriateness.GOOD),
    (40, Appropriateness.QUESTIONABLE),
)


def architecture_style(tech_names: Sequence[str], rules: ArchitectureRules) -> str:
    """First precedence tier with a detected technology wins."""
    present = set(tech_names)
    for tier in rules.styles:
        matched = [t for t in tier.technologies if t in present]
        if matched:
            return f"{tier.label} ({matched[0]})"
    return rules.default_style


def _complete(prior: Mapping[str, SubReport], kind: str) -> Optional[SubReport]:
    report = prior.get(kind)
    if report is None or report.status != ReportStatus.COMPLETE:
        return None
    return report


def assess_scalability(
    tech: Optional[TechStackReport],
    structure: Optional[CodeStructureReport],
    performance: Optional[PerformanceReport],
) -> ScalabilityAssessment:
    names = set(tech.names) if tech else set()
    categories = {item.category for item in tech.items} if tech else set()
    containerized = bool(names & CONTAINER_TECHNOLOGIES)
    orchestrated = bool(names & ORCHESTRATION_TECHNOLOGIES)

    horizontal = 40
    horizontal += 30 if containerized else 0
    horizontal += 20 if orchestrated else 0
    horizontal += 10 if TechCategory.SERVICE in categories else 0

    vertical = 50
    vertical += 20 if TechCategory.DATABASE in categories else 0
    vertical += 15 if structure is not None and structure.organization_score >= WELL_ORGANIZED else 0

    bottlenecks: List[str] = []
    recommendations: List[str] = []
    if performance is not None:
        blocking = sorted({f.type for f in performance.bottlenecks if f.severity.rank >= Severity.HIGH.rank})
        if blocking:
            vertical -= 20
            bottlenecks.extend(f"High-impact {t} findings" for t in blocking)
            recommendations.append("Resolve high-impact performance findings before scaling up")
    if not containerized:
        bottlenecks.append("No container image definition")
        recommendations.append("Containerize the application with Docker")
    elif not orchestrated:
        recommendations.append("Describe multi-instance deployment with Compose or Kubernetes")

    return ScalabilityAssessment(
        horizontal=max(0, min(100, horizontal)),
        vertical=max(0, min(100, vertical)),
        bottlenecks=tuple(bottlenecks),
        recommendations=tuple(recommendations),
    )


def assess_security(security: Optional[SecurityReport]) -> SecurityAssessment:
    if security is None:
        return SecurityAssessment()
    return SecurityAssessment(
        overall_score=security.score,
        vulnerability_count=len(security.vulnerabilities),
        best_practices=security.best_practices,
        recommendations=security.recommendations,
    )


def appropriateness(confidence: int) -> Appropriateness:
    for threshold, tier in APPROPRIATENESS_TIERS:
        if confidence >= threshold:
            return tier
    return Appropriateness.POOR


def design_patterns(patterns: Sequence[ArchitecturePattern]) -> Tuple[DesignPattern, ...]:
    return tuple(
        DesignPattern(pattern=p.name.value, usage=p.evidence, appropriateness=appropriateness(p.confidence))
        for p in patterns
    )


def anti_patterns(quality: Optional[CodeQualityReport]) -> Tuple[AntiPattern, ...]:
    if quality is None:
        return ()
    found = [
        AntiPattern(
            pattern=smell.type,
            occurrences=smell.examples,
            impact=smell.severity,
            solution=smell.remediation or "",
        )
        for smell in quality.code_smells
        if smell.severity.rank >= Severity.MEDIUM.rank
    ]
    if quality.duplication_level > DUPLICATION_THRESHOLD:
        found.append(
            AntiPattern(
                pattern="copy-paste-code",
                occurrences=(f"{quality.duplication_level}% repeated lines",),
                impact=Severity.HIGH if quality.duplication_level > 25 else Severity.MEDIUM,
                solution="Extract repeated code into shared functions or modules",
            )
        )
    return tuple(sorted(found, key=lambda a: (-a.impact.rank, a.pattern)))


@AnalyzerRegistry.register("architecture", without_technologies, stage="derived")
class ArchitectureAnalyzer(BaseAnalyzer):
    name = "architecture"
    report_type = ArchitectureInsights

    def build(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> ArchitectureInsights:
        if context.is_empty():
            raise ArtifactUnavailable("nothing was analyzed")

        tech = _complete(prior, "tech_stack")
        structure = _complete(prior, "code_structure")
        performance = _complete(prior, "performance")
        style = architecture_style(tech.names if tech else (), self.rules.architecture)

        self.logger.debug(f"ArchitectureAnalyzer: style {style!r}")
        return ArchitectureInsights(
            style=style,
            scalability=assess_scalability(tech, structure, performance),
            security=assess_security(_complete(prior, "security")),
            performance_bottlenecks=performance.bottlenecks if performance else (),
            design_patterns=design_patterns(structure.patterns if structure else ()),
            anti_patterns=anti_patterns(_complete(prior, "code_quality")),
        )

"""Composite quality scores.

Every composite is a fixed-weight linear combination of sub-report signals.
The weights are part of the output contract: changing one changes every
stored score, so they live here as named constants and nowhere else.
"""
import logging
import math
from typing import Dict, Mapping

from core.errors import ResultAssemblyError
from models.reports import (
    REPORT_TYPES,
    CategoryScore,
    CodeQualityReport,
    CodeStructureReport,
    QualityMetrics,
    ReadmeReport,
    SubReport,
    TechnicalDebtReport,
)

logger = logging.getLogger(__name__)

OVERALL_WEIGHTS: Dict[str, float] = {
    "maintainability": 0.25,
    "complexity": 0.20,
    "duplication": 0.15,
    "documentation": 0.15,
    "tests": 0.15,
    "codeSmells": 0.10,
}

MAINTAINABILITY_WEIGHTS: Dict[str, float] = {
    "maintenanceScore": 0.4,
    "organizationScore": 0.3,
    "duplication": 0.15,
    "complexity": 0.15,
}

README_WEIGHT = 0.8
DOCS_DIRECTORY_BONUS = 20


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values, as the stored scores always have been."""
    return math.floor(value + 0.5)


def clamp_score(value: float, name: str = "score") -> int:
    """Round and bound to [0, 100]. A value outside the range is a defect and is logged."""
    rounded = round_half_up(value)
    if rounded < 0 or rounded > 100:
        logger.error(f"{name} computed outside [0, 100]: {value}; clamping")
        return max(0, min(100, rounded))
    return rounded


def complexity_penalty(cyclomatic_complexity: float) -> float:
    return min(100.0, cyclomatic_complexity * 10)


def code_smell_penalty(smell_count: int) -> float:
    return min(100.0, smell_count * 10.0)


def _weighted(name: str, inputs: Mapping[str, float], weights: Mapping[str, float]) -> CategoryScore:
    components = {key: weights[key] * inputs[key] for key in weights}
    return CategoryScore(value=clamp_score(sum(components.values()), name), components=components)


def maintainability_index(
    debt: TechnicalDebtReport, structure: CodeStructureReport, quality: CodeQualityReport
) -> CategoryScore:
    return _weighted(
        "maintainabilityIndex",
        {
            "maintenanceScore": debt.maintenance_score,
            "organizationScore": structure.organization_score,
            "duplication": 100 - quality.duplication_level,
            "complexity": 100 - complexity_penalty(quality.cyclomatic_complexity),
        },
        MAINTAINABILITY_WEIGHTS,
    )


def documentation_coverage(readme: ReadmeReport, structure: CodeStructureReport) -> CategoryScore:
    components = {
        "readme": README_WEIGHT * readme.quality_score,
        "docsDirectory": DOCS_DIRECTORY_BONUS if structure.has_docs_directory else 0,
    }
    return CategoryScore(value=clamp_score(sum(components.values()), "documentationCoverage"), components=components)


def coverage_score(structure: CodeStructureReport) -> CategoryScore:
    estimated = structure.test_coverage.estimated_coverage
    return CategoryScore(value=clamp_score(estimated, "testCoverage"), components={"estimatedCoverage": estimated})


def overall_score(
    maintainability: CategoryScore,
    documentation: CategoryScore,
    tests: CategoryScore,
    quality: CodeQualityReport,
) -> CategoryScore:
    return _weighted(
        "overallScore",
        {
            "maintainability": maintainability.value,
            "complexity": 100 - complexity_penalty(quality.cyclomatic_complexity),
            "duplication": 100 - quality.duplication_level,
            "documentation": documentation.value,
            "tests": tests.value,
            "codeSmells": 100 - code_smell_penalty(quality.smell_count),
        },
        OVERALL_WEIGHTS,
    )


def _report(reports: Mapping[str, SubReport], kind: str):
    report = reports.get(kind)
    expected = REPORT_TYPES[kind]
    if not isinstance(report, expected):
        raise ResultAssemblyError(f"expected {expected.__name__} for {kind}, got {type(report).__name__}")
    return report


def aggregate(reports: Mapping[str, SubReport]) -> QualityMetrics:
    """Combine the settled sub-reports into the composite quality metrics.

    Args:
        reports: One report per kind in REPORT_TYPES (degraded defaults included)

    Raises:
        ResultAssemblyError: a kind is absent or has the wrong report type
    """
    for kind in REPORT_TYPES:
        _report(reports, kind)

    structure = reports["code_structure"]
    quality = reports["code_quality"]
    security = reports["security"]
    performance = reports["performance"]

    maintainability = maintainability_index(reports["technical_debt"], structure, quality)
    documentation = documentation_coverage(reports["readme"], structure)
    tests = coverage_score(structure)
    overall = overall_score(maintainability, documentation, tests, quality)

    logger.debug(
        f"Scores: overall {overall.value}, maintainability {maintainability.value}, "
        f"documentation {documentation.value}, tests {tests.value}"
    )
    return QualityMetrics(
        overall_score=overall,
        maintainability_index=maintainability,
        documentation_coverage=documentation,
        test_coverage=tests,
        security_score=_single("securityScore", security.score),
        performance_score=_single("performanceScore", performance.score),
        cyclomatic_complexity=quality.cyclomatic_complexity,
        duplication_level=clamp_score(quality.duplication_level, "duplicationLevel"),
        code_smell_count=quality.smell_count,
    )


def _single(name: str, value: float) -> CategoryScore:
    return CategoryScore(value=clamp_score(value, name), components={name: value})

"""Boundary checks on a finished AnalysisResult.

Scores are already clamped when they are computed; these checks catch a
defect that slipped past that, log it loudly, and fail the assembly so an
out-of-range value never reaches a caller.
"""
import logging
from dataclasses import fields, is_dataclass
from typing import Any, Iterator, List, Tuple

from core.errors import ResultAssemblyError
from models.detection import Detection
from models.reports import REPORT_TYPES, AnalysisResult, CategoryScore, DependencyReport

logger = logging.getLogger(__name__)

# Integer fields whose documented range is [0, 100]
BOUNDED_FIELDS = {
    "score",
    "quality_score",
    "organization_score",
    "maintenance_score",
    "estimated_coverage",
    "duplication_level",
    "automation_level",
    "seo_score",
    "discoverability_score",
    "modularity",
    "reusability",
    "consistency",
    "horizontal",
    "vertical",
    "overall_score",
    "confidence",
}


def _walk(node: Any, path: str) -> Iterator[Tuple[str, str, Any, Any]]:
    """Yield (parent path, field name, value, owning dataclass) for every nested field."""
    if is_dataclass(node) and not isinstance(node, type):
        for f in fields(node):
            yield from _walk(getattr(node, f.name), f"{path}.{f.name}" if path else f.name)
            yield path, f.name, getattr(node, f.name), node
    elif isinstance(node, tuple):
        for i, item in enumerate(node):
            yield from _walk(item, f"{path}[{i}]")


def range_violations(result: AnalysisResult) -> List[str]:
    problems: List[str] = []
    for path, name, value, owner in _walk(result, ""):
        location = f"{path}.{name}" if path else name
        if isinstance(value, CategoryScore) and not 0 <= value.value <= 100:
            problems.append(f"{location} = {value.value}")
        elif isinstance(owner, Detection):
            # Detection confidence is a probability, not a percentage
            if name == "confidence" and not 0.0 <= value <= 1.0:
                problems.append(f"{location} = {value}")
        elif name in BOUNDED_FIELDS and isinstance(value, (int, float)) and not isinstance(value, bool):
            if not 0 <= value <= 100:
                problems.append(f"{location} = {value}")
    return problems


def count_violations(dependencies: DependencyReport) -> List[str]:
    problems: List[str] = []
    expected = dependencies.production + dependencies.development + dependencies.optional
    if dependencies.total != expected:
        problems.append(f"dependencies.total = {dependencies.total}, expected {expected}")
    if len(dependencies.records) != dependencies.total:
        problems.append(f"dependencies.records has {len(dependencies.records)} entries for total {dependencies.total}")
    return problems


def duplicate_technologies(result: AnalysisResult) -> List[str]:
    seen = set()
    problems: List[str] = []
    for item in result.tech_stack.items:
        key = (item.name, item.category)
        if key in seen:
            problems.append(f"tech_stack has duplicate {item.name} ({item.category.value})")
        seen.add(key)
    return problems


def validate_result(result: AnalysisResult) -> AnalysisResult:
    """Raise ResultAssemblyError if any documented invariant does not hold."""
    problems: List[str] = []
    for kind, expected in REPORT_TYPES.items():
        report = getattr(result, kind, None)
        if not isinstance(report, expected):
            problems.append(f"{kind} is {type(report).__name__}, expected {expected.__name__}")
    if not problems:
        problems.extend(range_violations(result))
        problems.extend(count_violations(result.dependencies))
        problems.extend(duplicate_technologies(result))

    if problems:
        for problem in problems:
            logger.error(f"Result invariant violated: {problem}")
        raise ResultAssemblyError(f"{len(problems)} invariant violations, first: {problems[0]}")
    return result

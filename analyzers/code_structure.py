"""Code structure: file layout, organization score, architecture patterns, test coverage estimate."""
from collections import Counter
from typing import List, Mapping, Sequence, Tuple

from analyzers.base import BaseAnalyzer
from analyzers.tech_stack import shared_detections, tech_evidence_rules
from core.analyzer_registry import AnalyzerRegistry
from core.context import AnalysisContext
from core.strategy import ArtifactUnavailable
from detectors.lines import search
from detectors.paths import basename, directory_purpose, is_test_path
from detectors.structure import detect_conventions, detect_patterns
from models.enums import QualityTier
from models.reports import (
    CodeOrganization,
    CodeStructureReport,
    CoverageEstimate,
    DirectoryInfo,
    FileStructure,
    SubReport,
)

ORGANIZATION_BASE = 50
SOURCE_DIR_NAMES = {"src", "source"}
TEST_DIR_NAMES = {"test", "tests", "__tests__"}
DOCS_DIR_NAMES = {"docs", "documentation"}
MAX_LISTED_DEPTH = 2

# File name pattern -> test framework
TEST_FRAMEWORK_MARKERS: Tuple[Tuple[str, str], ...] = (
    (r"(?:^|/)jest\.config\.\w+$", "Jest"),
    (r"(?:^|/)vitest\.config\.\w+$", "Vitest"),
    (r"(?:^|/)(?:cypress\.config\.\w+|cypress\.json)$|(?:^|/)cypress/", "Cypress"),
    (r"(?:^|/)playwright\.config\.\w+$", "Playwright"),
    (r"(?:^|/)(?:pytest\.ini|conftest\.py)$", "pytest"),
    (r"_test\.go$", "Go testing"),
    (r"(?:^|/)phpunit\.xml(?:\.dist)?$", "PHPUnit"),
    (r"(?:^|/)(?:\.rspec|spec_helper\.rb)$", "RSpec"),
    (r"(?:^|/)src/test/java/", "JUnit"),
)

COVERAGE_TIERS = (
    (80, QualityTier.EXCELLENT),
    (60, QualityTier.GOOD),
    (30, QualityTier.BASIC),
)


def organization_score(directories: Sequence[str], root_files: int) -> int:
    names = {basename(d).lower() for d in directories}
    score = ORGANIZATION_BASE
    if names & SOURCE_DIR_NAMES:
        score += 20
    if names & TEST_DIR_NAMES:
        score += 15
    if names & DOCS_DIR_NAMES:
        score += 10
    if root_files < 10:
        score += 5
    return min(100, score)


def code_organization(directories: Sequence[DirectoryInfo], files: Sequence[str], consistency: int) -> CodeOrganization:
    purposes = {d.purpose for d in directories}
    modularity = 50
    if "source-code" in purposes:
        modularity += 25
    if "utilities" in purposes:
        modularity += 15
    modularity = min(100, modularity)

    reusable_dirs = {d.path for d in directories if d.purpose in ("ui-components", "utilities")}
    reusable_files = [f for f in files if any(f.startswith(d + "/") for d in reusable_dirs)]
    reusability = min(100, len(reusable_files) * 10)

    issues: List[str] = []
    strengths: List[str] = []
    for label, value in (("Modularity", modularity), ("Reusability", reusability), ("Consistency", consistency)):
        if value < 60:
            issues.append(f"{label} is low ({value}/100)")
        elif value >= 80:
            strengths.append(f"{label} is high ({value}/100)")
    return CodeOrganization(
        modularity=modularity,
        reusability=reusability,
        consistency=consistency,
        issues=tuple(issues),
        strengths=tuple(strengths),
    )


def coverage_signal(paths: Sequence[str]) -> CoverageEstimate:
    tests = [p for p in paths if is_test_path(p)]
    frameworks = sorted({name for pattern, name in TEST_FRAMEWORK_MARKERS if any(search(pattern, p) for p in paths)})
    estimated = min(80, len(tests) * 10)

    quality = QualityTier.MISSING
    if tests:
        quality = QualityTier.POOR
        for threshold, tier in COVERAGE_TIERS:
            if estimated >= threshold:
                quality = tier
                break

    lowered = [p.lower() for p in tests]
    return CoverageEstimate(
        test_files=len(tests),
        frameworks=tuple(frameworks),
        estimated_coverage=estimated,
        unit=bool(tests),
        integration=any("integration" in p for p in lowered),
        e2e=any(marker in p for p in lowered for marker in ("e2e", "cypress", "playwright")),
        performance=any(marker in p for p in lowered for marker in ("perf", "benchmark", "load")),
        quality=quality,
    )


@AnalyzerRegistry.register("code_structure", tech_evidence_rules)
class CodeStructureAnalyzer(BaseAnalyzer):
    name = "code_structure"
    report_type = CodeStructureReport

    def build(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> CodeStructureReport:
        files = [e.path for e in context.files]
        if not files:
            raise ArtifactUnavailable("empty file tree")
        directories = context.directories()

        per_dir = Counter(f.rsplit("/", 1)[0] for f in files if "/" in f)
        listed = tuple(
            DirectoryInfo(path=d, purpose=directory_purpose(d), file_count=per_dir.get(d, 0))
            for d in directories
            if d.count("/") < MAX_LISTED_DEPTH
        )
        root_files = sum(1 for f in files if "/" not in f)
        all_paths = sorted(set(files) | set(directories))

        structure = FileStructure(
            total_files=len(files),
            total_directories=len(directories),
            root_files=root_files,
            max_depth=max(f.count("/") for f in files),
            directories=listed,
            conventions=detect_conventions(all_paths, self.rules.architecture.conventions),
        )
        score = organization_score(directories, root_files)
        tech_names = [d.name for d in shared_detections(context, self.rules.technologies)]
        patterns = detect_patterns(all_paths, tech_names, self.rules.architecture.patterns)

        self.logger.debug(
            f"CodeStructureAnalyzer: {len(files)} files, {len(directories)} directories, "
            f"organization {score}, {len(patterns)} patterns"
        )
        return CodeStructureReport(
            file_structure=structure,
            organization_score=score,
            has_docs_directory=any(basename(d).lower() in DOCS_DIR_NAMES for d in directories),
            patterns=patterns,
            organization=code_organization(listed, files, score),
            test_coverage=coverage_signal(files),
        )

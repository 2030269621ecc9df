"""Result model: one frozen sub-report type per analyzer plus the root AnalysisResult.

Every sub-report has a usable default for every field, so ``missing()`` always
yields a well-formed degraded report. Collections are tuples so a finished
result never shares mutable state with the analyzers that built it.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import ClassVar, Dict, Mapping, Optional, Tuple

from models.detection import Detection
from models.enums import (
    Appropriateness,
    ArchitecturePatternName,
    Complexity,
    DebtCategory,
    DebtLevel,
    Difficulty,
    QualityTier,
    RefactoringKind,
    ReportStatus,
    ScriptType,
    Severity,
)
from models.finding import Finding

STANDARD_SCRIPTS: Tuple[str, ...] = ("build", "test", "dev", "start", "lint", "format")

README_ELEMENTS: Tuple[str, ...] = (
    "Installation instructions",
    "Usage examples",
    "API documentation",
    "Contributing guidelines",
    "License information",
    "Status badges",
)


@dataclass(frozen=True)
class SubReport:
    kind: ClassVar[str] = ""

    status: ReportStatus = ReportStatus.COMPLETE
    notes: Tuple[str, ...] = ()

    @classmethod
    def missing(cls, status: ReportStatus = ReportStatus.MISSING, reason: Optional[str] = None):
        """Return the documented degraded report for this kind."""
        return cls(status=status, notes=(reason,) if reason else ())


# --- tech stack -----------------------------------------------------------

@dataclass(frozen=True)
class LanguageShare:
    name: str
    files: int


@dataclass(frozen=True)
class TechStackReport(SubReport):
    kind: ClassVar[str] = "tech_stack"

    items: Tuple[Detection, ...] = ()
    languages: Tuple[LanguageShare, ...] = ()

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(item.name for item in self.items)


# --- dependencies ---------------------------------------------------------

@dataclass(frozen=True)
class DependencyRecord:
    name: str
    version: str
    is_dev: bool = False
    is_optional: bool = False
    description: str = ""


@dataclass(frozen=True)
class DuplicateDependency:
    name: str
    scopes: Tuple[str, ...]
    versions: Tuple[str, ...]


@dataclass(frozen=True)
class HeavyDependency:
    name: str
    version: str
    size_kb: int
    impact: Severity
    alternatives: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScriptInfo:
    name: str
    command: str
    type: ScriptType
    complexity: int


@dataclass(frozen=True)
class ScriptReport:
    scripts: Tuple[ScriptInfo, ...] = ()
    missing_standard: Tuple[str, ...] = STANDARD_SCRIPTS
    complexity: Complexity = Complexity.SIMPLE
    automation_level: int = 0
    security_issues: Tuple[Finding, ...] = ()


@dataclass(frozen=True)
class MetadataReport:
    name: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    license: Optional[str] = None
    keywords: Tuple[str, ...] = ()
    has_repository: bool = False
    has_homepage: bool = False
    has_author: bool = False
    engines: Tuple[Tuple[str, str], ...] = ()
    engines_compatible: Optional[bool] = None
    seo_score: int = 0
    discoverability_score: int = 0


@dataclass(frozen=True)
class DependencyReport(SubReport):
    kind: ClassVar[str] = "dependencies"

    manifest: Optional[str] = None
    ecosystem: Optional[str] = None
    total: int = 0
    production: int = 0
    development: int = 0
    optional: int = 0
    records: Tuple[DependencyRecord, ...] = ()
    duplicates: Tuple[DuplicateDependency, ...] = ()
    outdated: Tuple[str, ...] = ()
    unused: Tuple[str, ...] = ()
    heavy: Tuple[HeavyDependency, ...] = ()
    vulnerable: Tuple[Finding, ...] = ()
    scripts: ScriptReport = field(default_factory=ScriptReport)
    metadata: MetadataReport = field(default_factory=MetadataReport)
    optimizations: Tuple[Finding, ...] = ()


# --- readme ---------------------------------------------------------------

@dataclass(frozen=True)
class ReadmeSections:
    installation: bool = False
    usage: bool = False
    examples: bool = False
    api: bool = False
    contributing: bool = False
    license: bool = False
    badges: bool = False
    screenshots: bool = False

    @property
    def count(self) -> int:
        return sum(1 for value in vars(self).values() if value)


@dataclass(frozen=True)
class ReadmeContent:
    word_count: int = 0
    code_blocks: int = 0
    links: int = 0
    images: int = 0
    headings: int = 0
    list_items: int = 0
    structure_score: int = 0


@dataclass(frozen=True)
class ReadmeReport(SubReport):
    kind: ClassVar[str] = "readme"

    path: Optional[str] = None
    sections: ReadmeSections = field(default_factory=ReadmeSections)
    content: ReadmeContent = field(default_factory=ReadmeContent)
    quality_score: int = 0
    quality: QualityTier = QualityTier.MISSING
    missing_elements: Tuple[str, ...] = README_ELEMENTS
    recommendations: Tuple[str, ...] = ("Add a README describing the project",)


# --- code structure -------------------------------------------------------

@dataclass(frozen=True)
class DirectoryInfo:
    path: str
    purpose: str
    file_count: int


@dataclass(frozen=True)
class Convention:
    name: str
    description: str
    evidence: str


@dataclass(frozen=True)
class FileStructure:
    total_files: int = 0
    total_directories: int = 0
    root_files: int = 0
    max_depth: int = 0
    directories: Tuple[DirectoryInfo, ...] = ()
    conventions: Tuple[Convention, ...] = ()


@dataclass(frozen=True)
class ArchitecturePattern:
    name: ArchitecturePatternName
    confidence: int
    evidence: Tuple[str, ...]


@dataclass(frozen=True)
class CodeOrganization:
    modularity: int = 0
    reusability: int = 0
    consistency: int = 0
    issues: Tuple[str, ...] = ()
    strengths: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CoverageEstimate:
    test_files: int = 0
    frameworks: Tuple[str, ...] = ()
    estimated_coverage: int = 0
    unit: bool = False
    integration: bool = False
    e2e: bool = False
    performance: bool = False
    quality: QualityTier = QualityTier.MISSING


@dataclass(frozen=True)
class CodeStructureReport(SubReport):
    kind: ClassVar[str] = "code_structure"

    file_structure: FileStructure = field(default_factory=FileStructure)
    organization_score: int = 0
    has_docs_directory: bool = False
    patterns: Tuple[ArchitecturePattern, ...] = ()
    organization: CodeOrganization = field(default_factory=CodeOrganization)
    test_coverage: CoverageEstimate = field(default_factory=CoverageEstimate)


# --- code quality ---------------------------------------------------------

@dataclass(frozen=True)
class CodeSmell:
    type: str
    severity: Severity
    count: int
    description: str
    examples: Tuple[str, ...] = ()
    remediation: Optional[str] = None


@dataclass(frozen=True)
class CodeQualityReport(SubReport):
    kind: ClassVar[str] = "code_quality"

    files_analyzed: int = 0
    total_lines: int = 0
    cyclomatic_complexity: float = 0.0
    files_above_threshold: Tuple[str, ...] = ()
    duplication_level: int = 0
    code_smells: Tuple[CodeSmell, ...] = ()

    @property
    def smell_count(self) -> int:
        return len(self.code_smells)


# --- security / performance -----------------------------------------------

@dataclass(frozen=True)
class PracticeCheck:
    practice: str
    implemented: bool
    importance: Severity


@dataclass(frozen=True)
class SecurityReport(SubReport):
    kind: ClassVar[str] = "security"

    score: int = 100
    files_scanned: int = 0
    vulnerabilities: Tuple[Finding, ...] = ()
    best_practices: Tuple[PracticeCheck, ...] = ()
    recommendations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PerformanceReport(SubReport):
    kind: ClassVar[str] = "performance"

    score: int = 100
    files_scanned: int = 0
    bottlenecks: Tuple[Finding, ...] = ()
    large_files: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()


# --- technical debt -------------------------------------------------------

@dataclass(frozen=True)
class DebtCategoryReport:
    category: DebtCategory
    severity: Severity
    count: int
    examples: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RefactoringOpportunity:
    type: RefactoringKind
    description: str
    files: Tuple[str, ...]
    impact: Severity
    difficulty: Difficulty


@dataclass(frozen=True)
class TechnicalDebtReport(SubReport):
    kind: ClassVar[str] = "technical_debt"

    overall_level: DebtLevel = DebtLevel.LOW
    maintenance_score: int = 100
    categories: Tuple[DebtCategoryReport, ...] = ()
    prioritized_issues: Tuple[Finding, ...] = ()
    refactoring: Tuple[RefactoringOpportunity, ...] = ()


# --- architecture ---------------------------------------------------------

@dataclass(frozen=True)
class ScalabilityAssessment:
    horizontal: int = 0
    vertical: int = 0
    bottlenecks: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SecurityAssessment:
    overall_score: int = 100
    vulnerability_count: int = 0
    best_practices: Tuple[PracticeCheck, ...] = ()
    recommendations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DesignPattern:
    pattern: str
    usage: Tuple[str, ...]
    appropriateness: Appropriateness


@dataclass(frozen=True)
class AntiPattern:
    pattern: str
    occurrences: Tuple[str, ...]
    impact: Severity
    solution: str


@dataclass(frozen=True)
class ArchitectureInsights(SubReport):
    kind: ClassVar[str] = "architecture"

    style: str = "Unknown"
    scalability: ScalabilityAssessment = field(default_factory=ScalabilityAssessment)
    security: SecurityAssessment = field(default_factory=SecurityAssessment)
    performance_bottlenecks: Tuple[Finding, ...] = ()
    design_patterns: Tuple[DesignPattern, ...] = ()
    anti_patterns: Tuple[AntiPattern, ...] = ()


# --- composite scores and root --------------------------------------------

@dataclass(frozen=True)
class CategoryScore:
    """A bounded 0-100 score together with the contribution of each input."""
    value: int
    components: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "components", MappingProxyType(dict(self.components)))


@dataclass(frozen=True)
class QualityMetrics:
    overall_score: CategoryScore
    maintainability_index: CategoryScore
    documentation_coverage: CategoryScore
    test_coverage: CategoryScore
    security_score: CategoryScore
    performance_score: CategoryScore
    cyclomatic_complexity: float
    duplication_level: int
    code_smell_count: int


REPORT_TYPES: Dict[str, type] = {
    cls.kind: cls
    for cls in (
        TechStackReport,
        DependencyReport,
        ReadmeReport,
        CodeStructureReport,
        CodeQualityReport,
        SecurityReport,
        PerformanceReport,
        TechnicalDebtReport,
        ArchitectureInsights,
    )
}


@dataclass(frozen=True)
class AnalysisResult:
    """Root aggregate handed to downstream consumers. Built once, never updated."""
    analysis_id: str
    created_at: str
    assessable: bool
    tech_stack: TechStackReport
    dependencies: DependencyReport
    readme: ReadmeReport
    code_structure: CodeStructureReport
    code_quality: CodeQualityReport
    security: SecurityReport
    performance: PerformanceReport
    technical_debt: TechnicalDebtReport
    architecture: ArchitectureInsights
    quality: QualityMetrics

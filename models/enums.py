"""Canonical enumerations shared by every sub-report.

These string values are the wire contract of the serialized result; presentation
layers translate them, the pipeline never emits anything else.
"""
from enum import Enum


class TechCategory(str, Enum):
    FRAMEWORK = "framework"
    LIBRARY = "library"
    LANGUAGE = "language"
    TOOL = "tool"
    DATABASE = "database"
    SERVICE = "service"
    BUILD = "build"
    TESTING = "testing"
    STYLING = "styling"
    INFRASTRUCTURE = "infrastructure"
    CICD = "cicd"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class ReportStatus(str, Enum):
    """How a sub-report was produced."""
    COMPLETE = "complete"
    MISSING = "missing"    # required artifact absent or malformed
    FAILED = "failed"      # every strategy raised; default report substituted
    SKIPPED = "skipped"    # analyzer excluded by configuration


class ArtifactKind(str, Enum):
    MANIFEST = "manifest"
    README = "readme"
    SOURCE = "source"
    TREE_ENTRY = "tree-entry"
    OTHER = "other"


class EntryType(str, Enum):
    FILE = "file"
    DIR = "dir"


class QualityTier(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    BASIC = "basic"
    POOR = "poor"
    MISSING = "missing"


class DebtLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DebtCategory(str, Enum):
    CODE_SMELLS = "code-smells"
    OUTDATED_DEPENDENCIES = "outdated-dependencies"
    MISSING_TESTS = "missing-tests"
    DOCUMENTATION = "documentation"
    SECURITY = "security"
    PERFORMANCE = "performance"


class ScriptType(str, Enum):
    BUILD = "build"
    TEST = "test"
    DEV = "dev"
    DEPLOY = "deploy"
    LINT = "lint"
    FORMAT = "format"
    CUSTOM = "custom"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class ArchitecturePatternName(str, Enum):
    MVC = "MVC"
    MVP = "MVP"
    MVVM = "MVVM"
    COMPONENT_BASED = "Component-Based"
    LAYERED = "Layered"
    MICROSERVICES = "Microservices"
    MONOLITH = "Monolith"
    JAMSTACK = "JAMstack"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Appropriateness(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    QUESTIONABLE = "questionable"
    POOR = "poor"


class RefactoringKind(str, Enum):
    EXTRACT_FUNCTION = "extract-function"
    EXTRACT_COMPONENT = "extract-component"
    REMOVE_DUPLICATION = "remove-duplication"
    SIMPLIFY_CONDITIONAL = "simplify-conditional"
    IMPROVE_NAMING = "improve-naming"

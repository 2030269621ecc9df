"""Immutable rule tables. Loaded once from YAML and passed into analyzers."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from models.enums import ArchitecturePatternName, Severity
from models.technology import Technology


@dataclass(frozen=True)
class LinePattern:
    """A line-oriented regex that yields a Finding when it matches."""
    type: str
    pattern: str
    severity: Severity
    description: str
    remediation: Optional[str] = None
    cwe: Optional[str] = None
    exclude: Optional[str] = None  # Lines matching this are ignored
    extensions: Tuple[str, ...] = ()  # Empty means every source file
    ignore_case: bool = False


@dataclass(frozen=True)
class ConventionRule:
    name: str
    description: str
    files: Tuple[str, ...] = ()  # Basenames present anywhere in the tree
    path_pattern: Optional[str] = None  # Regex searched in every path


@dataclass(frozen=True)
class PatternSignal:
    label: str
    path_pattern: Optional[str] = None
    technology: Optional[str] = None  # Regex over detected technology names


@dataclass(frozen=True)
class ArchitecturePatternRule:
    name: ArchitecturePatternName
    confidence: int
    signals: Tuple[PatternSignal, ...]
    min_signals: int = 1


@dataclass(frozen=True)
class StyleTier:
    label: str
    technologies: Tuple[str, ...]


@dataclass(frozen=True)
class ArchitectureRules:
    conventions: Tuple[ConventionRule, ...] = ()
    patterns: Tuple[ArchitecturePatternRule, ...] = ()
    styles: Tuple[StyleTier, ...] = ()
    default_style: str = "Modern Web Application"


@dataclass(frozen=True)
class HeavyPackage:
    """A package known to add significant install or bundle weight."""
    name: str
    size_kb: int
    impact: Severity
    alternatives: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RuleBook:
    technologies: Tuple[Technology, ...] = ()
    readme_sections: Mapping[str, str] = field(default_factory=dict)
    security_patterns: Tuple[LinePattern, ...] = ()
    performance_patterns: Tuple[LinePattern, ...] = ()
    code_smells: Tuple[LinePattern, ...] = ()
    architecture: ArchitectureRules = field(default_factory=ArchitectureRules)
    package_descriptions: Mapping[str, str] = field(default_factory=dict)
    heavy_packages: Mapping[str, HeavyPackage] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "readme_sections", MappingProxyType(dict(self.readme_sections)))
        object.__setattr__(self, "package_descriptions", MappingProxyType(dict(self.package_descriptions)))
        object.__setattr__(self, "heavy_packages", MappingProxyType(dict(self.heavy_packages)))

    def describe(self, package: str) -> str:
        return self.package_descriptions.get(package, "")

from dataclasses import dataclass, field
from typing import Tuple, Optional

from models.enums import TechCategory


@dataclass(frozen=True)
class EvidenceRule:
    """Defines one trigger condition for detecting a technology."""
    type: str  # e.g. 'npm_dependency', 'file', 'dockerfile'
    name: Optional[str] = None  # Optional label shown in evidence
    value: Optional[str] = None  # Exact key to look up (dependency name, file path)
    pattern: Optional[str] = None  # Regex matched against keys, paths or content
    confidence: float = 0.5  # Confidence emitted when this rule fires
    usage: Optional[str] = None  # Template such as "{count} workflows"


@dataclass(frozen=True)
class Technology:
    """A rule-table row: a technology and the evidence that detects it."""
    name: str
    category: TechCategory
    description: str = ""
    evidence_rules: Tuple[EvidenceRule, ...] = field(default_factory=tuple)

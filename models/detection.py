from dataclasses import dataclass
from typing import Optional

from models.enums import TechCategory


@dataclass(frozen=True)
class Evidence:
    """Represents a piece of evidence for a technology detection."""
    type: str
    name: Optional[str] = None
    pattern: Optional[str] = None
    value: Optional[str] = None
    source: Optional[str] = None  # Artifact path the evidence came from


@dataclass(frozen=True)
class Detection:
    """A detected technology (one TechStackItem in the final result)."""
    name: str
    category: TechCategory
    confidence: float
    evidence: Evidence
    version: Optional[str] = None
    description: str = ""
    usage: Optional[str] = None

"""Error taxonomy for the analysis pipeline.

Missing or malformed artifacts are not errors: analyzers degrade instead of
raising. Only collaborator failures and programming defects surface here.
"""
from typing import Optional

PHASES = ("fetch", "analyze", "summarize")


class AnalysisError(Exception):
    """A failure the caller can act on, tagged with the phase it happened in."""

    def __init__(self, message: str, phase: str, analyzer: Optional[str] = None):
        if phase not in PHASES:
            raise ValueError(f"phase must be one of {PHASES}, got {phase}")
        super().__init__(message)
        self.phase = phase
        self.analyzer = analyzer

    def __str__(self) -> str:
        prefix = f"[{self.phase}]"
        if self.analyzer:
            prefix = f"[{self.phase}:{self.analyzer}]"
        return f"{prefix} {super().__str__()}"


class RuleLoadError(Exception):
    """A rule table could not be read or has the wrong shape."""


class ResultAssemblyError(Exception):
    """A sub-report is missing or has the wrong type when the result is assembled."""

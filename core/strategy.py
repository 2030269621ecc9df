"""Ordered fallback strategies with a uniform Outcome contract."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from core.context import AnalysisContext
from core.errors import AnalysisError
from models.reports import SubReport

logger = logging.getLogger(__name__)

Strategy = Callable[[AnalysisContext, Mapping[str, SubReport]], SubReport]


class ArtifactUnavailable(Exception):
    """Raised by a strategy whose input is absent or malformed; the next one is tried."""


@dataclass(frozen=True)
class Outcome:
    """Either a report, an error, or neither (no strategy had its input)."""
    report: Optional[SubReport] = None
    error: Optional[AnalysisError] = None
    strategy: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.report is not None


def run_strategies(
    analyzer: str,
    strategies: Sequence[Tuple[str, Strategy]],
    context: AnalysisContext,
    prior: Mapping[str, SubReport],
) -> Outcome:
    """Try each strategy in order until one produces a report.

    A strategy that raises ArtifactUnavailable is skipped quietly. Any other
    exception is logged and remembered; if no strategy succeeds the last such
    error is returned so the caller can substitute the degraded report.
    """
    errors: List[AnalysisError] = []
    for name, strategy in strategies:
        try:
            report = strategy(context, prior)
        except ArtifactUnavailable as e:
            logger.debug(f"{analyzer}: strategy {name} unavailable ({e})")
            continue
        except Exception as e:
            logger.error(f"Error in {analyzer} analyzer, strategy {name}: {e}", exc_info=True)
            errors.append(AnalysisError(f"strategy {name} failed: {e}", phase="analyze", analyzer=analyzer))
            continue
        logger.debug(f"{analyzer}: produced report with strategy {name}")
        return Outcome(report=report, strategy=name)
    return Outcome(error=errors[-1] if errors else None)

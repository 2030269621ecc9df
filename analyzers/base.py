import logging
from typing import List, Mapping, Optional, Tuple, Type

from core.context import AnalysisContext
from core.providers import Providers
from core.strategy import Outcome, Strategy, run_strategies
from models.enums import ReportStatus
from models.reports import SubReport
from models.rules import RuleBook


class BaseAnalyzer:
    """Common shape of a category analyzer.

    Subclasses set ``report_type`` and implement ``build``; analyzers with a
    fallback chain override ``strategies`` instead.
    """
    name: str = ""
    report_type: Type[SubReport] = SubReport

    def __init__(self, rules: RuleBook, providers: Optional[Providers] = None):
        self.rules = rules
        self.providers = providers or Providers()
        self.logger = logging.getLogger(type(self).__module__)

    def strategies(self) -> List[Tuple[str, Strategy]]:
        return [("default", self.build)]

    def build(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> SubReport:
        raise NotImplementedError

    def attempt(self, context: AnalysisContext, prior: Optional[Mapping[str, SubReport]] = None) -> Outcome:
        return run_strategies(self.name or type(self).__name__, self.strategies(), context, prior or {})

    async def analyze(self, context: AnalysisContext, prior: Optional[Mapping[str, SubReport]] = None) -> SubReport:
        """Run the strategy chain and always return a report of ``report_type``."""
        outcome = self.attempt(context, prior)
        if outcome.ok:
            return outcome.report
        if outcome.error is not None:
            return self.report_type.missing(ReportStatus.FAILED, str(outcome.error))
        return self.report_type.missing(ReportStatus.MISSING)

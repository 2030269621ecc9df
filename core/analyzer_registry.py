"""Dynamic analyzer registration system."""
import dataclasses
import logging
from typing import Callable, Dict, List, Optional, Set, Type

from core.providers import Providers
from models.rules import RuleBook

logger = logging.getLogger(__name__)

STAGES = ("primary", "derived")


class AnalyzerRegistry:
    """Registry for dynamically discovering and instantiating analyzers."""

    _analyzers: Dict[str, Type] = {}
    _rule_filters: Dict[str, Callable[[RuleBook], RuleBook]] = {}
    _order: List[str] = []  # Preserve registration order
    _stages: Dict[str, str] = {}  # Maps analyzer name to "primary" or "derived"

    @classmethod
    def register(cls, name: str, rule_filter: Callable[[RuleBook], RuleBook] = None, stage: str = "primary"):
        """Decorator to register an analyzer class.

        Args:
            name: Unique identifier for the analyzer; also the report field it fills
            rule_filter: Optional function to narrow the rule book for this analyzer
            stage: "primary" (reads only the artifact snapshot) or "derived"
                (also reads the settled primary reports)

        Example:
            @AnalyzerRegistry.register("readme")
            class ReadmeAnalyzer(BaseAnalyzer):
                report_type = ReadmeReport

                def build(self, context, prior) -> ReadmeReport:
                    ...
        """
        if stage not in STAGES:
            raise ValueError(f"stage must be 'primary' or 'derived', got {stage}")

        def decorator(analyzer_class: Type):
            if name in cls._analyzers:
                logger.warning(f"Analyzer '{name}' already registered, overwriting")
            else:
                cls._order.append(name)

            cls._analyzers[name] = analyzer_class
            cls._stages[name] = stage
            if rule_filter:
                cls._rule_filters[name] = rule_filter

            logger.debug(f"Registered analyzer: {name} ({stage}) -> {analyzer_class.__name__}")
            return analyzer_class
        return decorator

    @classmethod
    def get_all_names(cls) -> List[str]:
        """Get names of all registered analyzers in registration order."""
        return cls._order.copy()


    @classmethod
    def get_analyzers_by_stage(cls, stage: str) -> List[str]:
        """Get all analyzer names of a specific stage."""
        return [name for name in cls._order if cls._stages.get(name, "primary") == stage]

    @classmethod
    def instantiate_all(
        cls,
        rules: RuleBook,
        providers: Optional[Providers] = None,
        exclude: Set[str] = None,
    ) -> Dict[str, object]:
        """Instantiate registered analyzers with filtered rules.

        Args:
            rules: The full rule book
            providers: External signal providers handed to every analyzer
            exclude: Set of analyzer names to exclude from instantiation

        Returns:
            Dictionary mapping analyzer name to instantiated analyzer object
        """
        exclude = exclude or set()
        providers = providers or Providers()
        instances = {}

        for name in cls._order:
            if name in exclude:
                logger.info(f"Skipping excluded analyzer: {name}")
                continue

            analyzer_class = cls._analyzers[name]

            filtered_rules = rules
            if name in cls._rule_filters:
                filtered_rules = cls._rule_filters[name](rules)
                logger.debug(f"Filtered rules for {name}: {len(filtered_rules.technologies)} technologies")

            instances[name] = analyzer_class(filtered_rules, providers)
            logger.debug(f"Instantiated analyzer: {name}")

        return instances


def filter_by_rule_types(rules: RuleBook, allowed_types: Set[str]) -> RuleBook:
    """Narrow a rule book to technologies with evidence rules of the allowed types.

    Args:
        rules: The full rule book
        allowed_types: Set of evidence types to keep (e.g., {"npm_dependency", "file"})

    Returns:
        A new RuleBook whose technologies contain only matching evidence rules
    """
    filtered = []
    for tech in rules.technologies:
        matching_rules = tuple(r for r in tech.evidence_rules if r.type in allowed_types)
        if matching_rules:
            filtered.append(dataclasses.replace(tech, evidence_rules=matching_rules))
    return dataclasses.replace(rules, technologies=tuple(filtered))


def without_technologies(rules: RuleBook) -> RuleBook:
    """Rule filter for analyzers that never look at technology rows."""
    return dataclasses.replace(rules, technologies=())

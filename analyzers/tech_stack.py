from collections import Counter
from typing import List, Mapping, Sequence, Tuple

from analyzers.base import BaseAnalyzer
from core.analyzer_registry import AnalyzerRegistry, filter_by_rule_types
from core.context import AnalysisContext
from core.detection_aggregator import DetectionAggregator
from core.strategy import ArtifactUnavailable
from detectors.manifests import parse_manifest
from detectors.paths import basename, is_vendored, language_of
from detectors.technologies import (
    ECOSYSTEM_EVIDENCE,
    match_content_rules,
    match_dependency_rules,
    match_file_rules,
)
from models.detection import Detection
from models.enums import ArtifactKind
from models.reports import LanguageShare, SubReport, TechStackReport
from models.rules import RuleBook
from models.technology import Technology

TECH_EVIDENCE_TYPES = set(ECOSYSTEM_EVIDENCE.values()) | {"file", "dockerfile"}


def tech_evidence_rules(rules: RuleBook) -> RuleBook:
    """Rule filter for analyzers that consume technology detections."""
    return filter_by_rule_types(rules, TECH_EVIDENCE_TYPES)


def collect_detections(context: AnalysisContext, technologies: Sequence[Technology]) -> List[Detection]:
    """Run every technology detector over the snapshot and merge the results.

    Each ecosystem contributes independently; the merge is commutative so the
    order in which manifests are visited does not matter.
    """
    detections: List[Detection] = []
    for artifact in context.of_kind(ArtifactKind.MANIFEST):
        detections.extend(match_dependency_rules(parse_manifest(artifact.path, artifact.content), technologies))
        if basename(artifact.path).startswith("Dockerfile"):
            detections.extend(match_content_rules(artifact.path, artifact.content, technologies))

    paths = set(context.paths) | {p for p, a in context.artifacts.items() if a.present and not is_vendored(p)}
    detections.extend(match_file_rules(paths, technologies))
    return DetectionAggregator.aggregate(detections)


def shared_detections(context: AnalysisContext, technologies: Sequence[Technology]) -> Tuple[Detection, ...]:
    """Detections for this snapshot, computed once and reused by every analyzer that asks."""
    technologies = tuple(technologies)
    return context.memoized(
        ("detections", technologies), lambda: tuple(collect_detections(context, technologies))
    )


def language_shares(paths: Sequence[str]) -> List[LanguageShare]:
    counts = Counter(lang for lang in (language_of(p) for p in paths) if lang)
    return [LanguageShare(name=name, files=n) for name, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))]


@AnalyzerRegistry.register("tech_stack", tech_evidence_rules)
class TechStackAnalyzer(BaseAnalyzer):
    name = "tech_stack"
    report_type = TechStackReport

    def build(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> TechStackReport:
        if context.is_empty():
            raise ArtifactUnavailable("no artifacts and no tree")

        items = shared_detections(context, self.rules.technologies)
        languages = language_shares([e.path for e in context.files])
        self.logger.debug(f"TechStackAnalyzer: {len(items)} technologies, {len(languages)} languages")
        return TechStackReport(items=items, languages=tuple(languages))

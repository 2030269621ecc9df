import math
from typing import Mapping

from analyzers.base import BaseAnalyzer
from core.analyzer_registry import AnalyzerRegistry, without_technologies
from core.context import AnalysisContext
from core.strategy import ArtifactUnavailable
from detectors.readme import (
    content_metrics,
    detect_sections,
    missing_elements,
    quality_score,
    quality_tier,
    recommendations,
)
from models.reports import ReadmeReport, SubReport


@AnalyzerRegistry.register("readme", without_technologies)
class ReadmeAnalyzer(BaseAnalyzer):
    name = "readme"
    report_type = ReadmeReport

    def build(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> ReadmeReport:
        found = context.readme()
        if found is None:
            raise ArtifactUnavailable("no README at the repository root")
        path, text = found

        sections = detect_sections(text, self.rules.readme_sections)
        content = content_metrics(text)
        score = quality_score(sections, content)
        self.logger.debug(
            f"ReadmeAnalyzer: {path} has {sections.count} sections, {content.word_count} words, score {score:.1f}"
        )
        return ReadmeReport(
            path=path,
            sections=sections,
            content=content,
            quality_score=min(100, math.floor(score + 0.5)),
            quality=quality_tier(score),
            missing_elements=missing_elements(sections),
            recommendations=recommendations(sections, content),
        )

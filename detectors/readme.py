"""README signal detectors: canonical sections, content metrics and quality tier."""
from typing import List, Mapping, Optional, Tuple

from detectors.lines import count_matches, search
from models.enums import QualityTier
from models.reports import ReadmeContent, ReadmeSections

CODE_BLOCK = r"```[\s\S]*?```"
LINK = r"\[.*?\]\(.*?\)"
IMAGE = r"!\[.*?\]\(.*?\)"
HEADING = r"^#+\s+"
LIST_ITEM = r"^[ \t]*[*+-][ \t]+"

QUALITY_TIERS = (
    (80, QualityTier.EXCELLENT),
    (60, QualityTier.GOOD),
    (30, QualityTier.BASIC),
)


def detect_sections(text: Optional[str], patterns: Mapping[str, str]) -> ReadmeSections:
    """Which canonical sections the README has. Unknown section names are ignored."""
    if not text:
        return ReadmeSections()
    known = ReadmeSections.__dataclass_fields__
    found = {
        name: search(pattern, text, ignore_case=True) is not None
        for name, pattern in patterns.items()
        if name in known
    }
    return ReadmeSections(**found)


def structure_score(headings: int, list_items: int, code_blocks: int) -> int:
    return min(100, headings * 10 + list_items * 2 + code_blocks * 5)


def content_metrics(text: Optional[str]) -> ReadmeContent:
    if not text:
        return ReadmeContent()
    headings = count_matches(HEADING, text, multiline=True)
    list_items = count_matches(LIST_ITEM, text, multiline=True)
    code_blocks = count_matches(CODE_BLOCK, text)
    return ReadmeContent(
        word_count=len(text.split()),
        code_blocks=code_blocks,
        links=count_matches(LINK, text),
        images=count_matches(IMAGE, text),
        headings=headings,
        list_items=list_items,
        structure_score=structure_score(headings, list_items, code_blocks),
    )


def quality_score(sections: ReadmeSections, content: ReadmeContent) -> float:
    """Weighted blend: 20 per section, word score (words/10, max 100) x0.5, structure x0.3."""
    word_score = min(100.0, content.word_count / 10)
    return sections.count * 20 + word_score * 0.5 + content.structure_score * 0.3


def quality_tier(score: float) -> QualityTier:
    for threshold, tier in QUALITY_TIERS:
        if score >= threshold:
            return tier
    return QualityTier.POOR


def missing_elements(sections: ReadmeSections) -> Tuple[str, ...]:
    checks = (
        (sections.installation, "Installation instructions"),
        (sections.usage, "Usage examples"),
        (sections.api, "API documentation"),
        (sections.contributing, "Contributing guidelines"),
        (sections.license, "License information"),
        (sections.badges, "Status badges"),
    )
    return tuple(label for present, label in checks if not present)


def recommendations(sections: ReadmeSections, content: ReadmeContent) -> Tuple[str, ...]:
    advice: List[str] = []
    if content.word_count < 200:
        advice.append("Expand the README with a fuller project description")
    if content.code_blocks < 2:
        advice.append("Add code examples showing typical usage")
    if not sections.installation:
        advice.append("Document installation steps")
    if not sections.usage:
        advice.append("Add a usage section")
    if not sections.badges:
        advice.append("Add status badges (build, coverage, version)")
    if content.images == 0:
        advice.append("Add screenshots or diagrams")
    return tuple(advice)

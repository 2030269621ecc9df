"""
Rule-table matchers for technology detection.

Each matcher returns the subset of rules that fire for one input, as Detections
carrying the rule's confidence. Results are sorted, so they never depend on the
order of the rule table or of the input mapping.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from core.version_utils import docker_image_tag, normalize_version
from detectors.lines import search
from detectors.manifests import DEVELOPMENT, OPTIONAL, ParsedManifest
from detectors.paths import basename
from models.detection import Detection, Evidence
from models.technology import EvidenceRule, Technology

logger = logging.getLogger(__name__)

ECOSYSTEM_EVIDENCE = {
    "npm": "npm_dependency",
    "pypi": "pypi_requirement",
    "cargo": "cargo_crate",
    "go": "go_module",
    "maven": "maven_artifact",
    "gradle": "maven_artifact",
    "composer": "composer_package",
    "rubygems": "gem",
}

_SCOPE_USAGE = {
    DEVELOPMENT: "development dependency",
    OPTIONAL: "optional dependency",
}


def canonical_name(name: str, evidence_type: str) -> str:
    """Registry-specific name normalization (PyPI names are case/separator-insensitive)."""
    if evidence_type == "pypi_requirement":
        return re.sub(r"[-_.]+", "-", name).lower()
    return name


def _key_matches(rule: EvidenceRule, key: str) -> bool:
    if rule.value is not None:
        return canonical_name(key, rule.type) == canonical_name(rule.value, rule.type)
    return rule.pattern is not None and search(rule.pattern, key) is not None


def _best(candidates: Iterable[Detection]) -> List[Detection]:
    """Keep one detection per technology: highest confidence, then by evidence for ties."""
    best: Dict[Tuple[str, str], Detection] = {}
    for det in candidates:
        key = (det.name, det.category.value)
        prev = best.get(key)
        if prev is None or (det.confidence, str(det.evidence)) > (prev.confidence, str(prev.evidence)):
            best[key] = det
    return sorted(best.values(), key=lambda d: (d.name, d.category.value))


def match_dependency_rules(manifest: Optional[ParsedManifest], technologies: Sequence[Technology]) -> List[Detection]:
    """Rules whose dependency key appears in any scope of ``manifest``."""
    if manifest is None:
        return []
    evidence_type = ECOSYSTEM_EVIDENCE.get(manifest.ecosystem)
    if evidence_type is None:
        return []

    scoped: List[Tuple[str, str, str]] = []
    for scope, deps in manifest.scopes:
        for name in sorted(deps):
            scoped.append((name, deps[name], scope))

    candidates: List[Detection] = []
    for tech in technologies:
        for rule in tech.evidence_rules:
            if rule.type != evidence_type:
                continue
            for name, spec, scope in scoped:
                if not _key_matches(rule, name):
                    continue
                candidates.append(
                    Detection(
                        name=tech.name,
                        category=tech.category,
                        confidence=rule.confidence,
                        evidence=Evidence(
                            type=rule.type,
                            name=name,
                            value=spec,
                            pattern=rule.pattern,
                            source=manifest.path,
                        ),
                        version=normalize_version(spec),
                        description=tech.description,
                        usage=_SCOPE_USAGE.get(scope, "production dependency"),
                    )
                )
                break
    return _best(candidates)


def match_file_rules(paths: Iterable[str], technologies: Sequence[Technology]) -> List[Detection]:
    """Rules whose file name or path pattern matches an entry of the tree."""
    paths = sorted(set(paths))
    candidates: List[Detection] = []
    for tech in technologies:
        for rule in tech.evidence_rules:
            if rule.type != "file":
                continue
            if rule.value is not None:
                hits = [p for p in paths if basename(p) == rule.value or p == rule.value]
            else:
                hits = [p for p in paths if search(rule.pattern, p) is not None]
            if not hits:
                continue
            usage = rule.usage.format(count=len(hits)) if rule.usage else None
            candidates.append(
                Detection(
                    name=tech.name,
                    category=tech.category,
                    confidence=rule.confidence,
                    evidence=Evidence(
                        type="file",
                        name=basename(hits[0]),
                        value=hits[0],
                        pattern=rule.pattern,
                        source=hits[0],
                    ),
                    description=tech.description,
                    usage=usage,
                )
            )
    return _best(candidates)


def match_content_rules(
    path: str,
    content: Optional[str],
    technologies: Sequence[Technology],
    rule_type: str = "dockerfile",
) -> List[Detection]:
    """Rules of ``rule_type`` whose pattern matches a line of ``content``."""
    if not content:
        return []
    candidates: List[Detection] = []
    for tech in technologies:
        for rule in tech.evidence_rules:
            if rule.type != rule_type or not rule.pattern:
                continue
            match = search(rule.pattern, content, ignore_case=True, multiline=True)
            if match is None:
                continue
            line = content[match.start():].split("\n", 1)[0]
            candidates.append(
                Detection(
                    name=tech.name,
                    category=tech.category,
                    confidence=rule.confidence,
                    evidence=Evidence(
                        type=rule_type,
                        value=line.strip(),
                        pattern=rule.pattern,
                        source=path,
                    ),
                    version=docker_image_tag(line) if rule_type == "dockerfile" else None,
                    description=tech.description,
                )
            )
    return _best(candidates)

"""Directory-convention and architecture-pattern detectors over the file tree."""
from typing import Iterable, List, Sequence, Tuple

from detectors.lines import search
from detectors.paths import basename
from models.reports import ArchitecturePattern, Convention
from models.rules import ArchitecturePatternRule, ConventionRule, PatternSignal


def detect_conventions(paths: Sequence[str], rules: Iterable[ConventionRule]) -> Tuple[Convention, ...]:
    """Conventions whose marker files or path pattern occur in ``paths``."""
    paths = sorted(paths)
    found: List[Convention] = []
    for rule in rules:
        evidence = None
        if rule.files:
            evidence = next((p for p in paths if basename(p) in rule.files), None)
        if evidence is None and rule.path_pattern:
            evidence = next((p for p in paths if search(rule.path_pattern, p) is not None), None)
        if evidence is not None:
            found.append(Convention(name=rule.name, description=rule.description, evidence=evidence))
    return tuple(sorted(found, key=lambda c: c.name))


def _signal_fires(signal: PatternSignal, paths: Sequence[str], technologies: Sequence[str]) -> bool:
    if signal.path_pattern and any(search(signal.path_pattern, p) is not None for p in paths):
        return True
    if signal.technology and any(search(signal.technology, t) is not None for t in technologies):
        return True
    return False


def detect_patterns(
    paths: Sequence[str],
    technologies: Sequence[str],
    rules: Iterable[ArchitecturePatternRule],
) -> Tuple[ArchitecturePattern, ...]:
    """Architecture patterns with enough directory/technology evidence.

    Confidence is the rule's base confidence scaled by the share of its
    signals that fired, so it always stays within [0, 100].
    """
    found: List[ArchitecturePattern] = []
    for rule in rules:
        fired = [s.label for s in rule.signals if _signal_fires(s, paths, technologies)]
        if len(fired) < max(1, rule.min_signals):
            continue
        confidence = round(rule.confidence * len(fired) / len(rule.signals))
        found.append(ArchitecturePattern(name=rule.name, confidence=confidence, evidence=tuple(fired)))
    return tuple(sorted(found, key=lambda p: (-p.confidence, p.name.value)))

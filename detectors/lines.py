"""Line-oriented pattern scanning with per-pattern timeouts."""
import logging
from functools import lru_cache
from typing import Iterable, List, Optional

import regex

from detectors.paths import extension
from models.finding import Finding
from models.rules import LinePattern

logger = logging.getLogger(__name__)

# Hard timeout to prevent catastrophic regex backtracking (seconds)
REGEX_TIMEOUT_SECONDS = 0.25
# Minified or generated lines are not worth scanning
MAX_LINE_LENGTH = 2000
SNIPPET_LENGTH = 120


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str, ignore_case: bool = False, multiline: bool = False):
    """Compile a rule-table regex once. Returns None (and logs) when it is invalid."""
    flags = 0
    if ignore_case:
        flags |= regex.IGNORECASE
    if multiline:
        flags |= regex.MULTILINE
    try:
        return regex.compile(pattern, flags)
    except regex.error as e:
        logger.warning(f"Invalid pattern {pattern[:50]!r}: {e}")
        return None


def search(pattern: str, text: str, ignore_case: bool = False, multiline: bool = False):
    """Search with timeout protection. Invalid patterns and timeouts yield None."""
    compiled = compile_pattern(pattern, ignore_case, multiline)
    if compiled is None:
        return None
    try:
        return compiled.search(text, timeout=REGEX_TIMEOUT_SECONDS)
    except TimeoutError:
        logger.warning(f"Pattern timeout for {pattern[:50]}...")
        return None


def count_matches(pattern: str, text: str, ignore_case: bool = False, multiline: bool = False) -> int:
    compiled = compile_pattern(pattern, ignore_case, multiline)
    if compiled is None:
        return 0
    try:
        return len(compiled.findall(text, timeout=REGEX_TIMEOUT_SECONDS))
    except TimeoutError:
        logger.warning(f"Pattern timeout for {pattern[:50]}...")
        return 0


def applies_to(pattern: LinePattern, path: str) -> bool:
    return not pattern.extensions or extension(path) in pattern.extensions


def _scan_pattern(path: str, lines: List[str], pattern: LinePattern) -> List[Finding]:
    compiled = compile_pattern(pattern.pattern, pattern.ignore_case)
    if compiled is None:
        return []
    excluded = compile_pattern(pattern.exclude, pattern.ignore_case) if pattern.exclude else None

    findings: List[Finding] = []
    for lineno, line in enumerate(lines, start=1):
        if len(line) > MAX_LINE_LENGTH:
            continue
        try:
            if not compiled.search(line, timeout=REGEX_TIMEOUT_SECONDS):
                continue
            if excluded is not None and excluded.search(line, timeout=REGEX_TIMEOUT_SECONDS):
                continue
        except TimeoutError:
            logger.warning(f"Pattern {pattern.type} timed out on {path}:{lineno}")
            continue
        findings.append(
            Finding(
                type=pattern.type,
                severity=pattern.severity,
                location=f"{path}:{lineno}",
                description=pattern.description,
                remediation=pattern.remediation,
                cwe=pattern.cwe,
                snippet=line.strip()[:SNIPPET_LENGTH],
            )
        )
    return findings


def scan_lines(path: str, content: Optional[str], patterns: Iterable[LinePattern]) -> List[Finding]:
    """Emit one Finding per (pattern, matching line). Absent content yields nothing."""
    if not content:
        return []
    lines = content.splitlines()
    findings: List[Finding] = []
    for pattern in patterns:
        if applies_to(pattern, path):
            findings.extend(_scan_pattern(path, lines, pattern))
    return findings

import os
import logging
import yaml
from typing import List, Dict, Any, Optional

from core.errors import RuleLoadError
from models.enums import ArchitecturePatternName, Severity, TechCategory
from models.rules import (
    ArchitecturePatternRule,
    ArchitectureRules,
    ConventionRule,
    HeavyPackage,
    LinePattern,
    PatternSignal,
    RuleBook,
    StyleTier,
)
from models.technology import Technology, EvidenceRule

logger = logging.getLogger(__name__)

RULES_DIR = os.path.dirname(os.path.abspath(__file__))

EVIDENCE_TYPES = {
    "npm_dependency",
    "pypi_requirement",
    "cargo_crate",
    "go_module",
    "maven_artifact",
    "composer_package",
    "gem",
    "dockerfile",
    "file",
}


def _read_yaml(filepath: str) -> Any:
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError:
        return None
    except (OSError, yaml.YAMLError) as e:
        raise RuleLoadError(f"Cannot read rule table {filepath}: {e}") from e


def _parse_evidence(item: Dict[str, Any]) -> Optional[EvidenceRule]:
    if not isinstance(item, dict) or item.get("type") not in EVIDENCE_TYPES:
        return None
    if not item.get("value") and not item.get("pattern"):
        return None
    try:
        confidence = float(item.get("confidence", 0.5))
    except (TypeError, ValueError):
        return None
    if not 0.0 <= confidence <= 1.0:
        return None
    return EvidenceRule(
        type=item["type"],
        name=item.get("name"),
        pattern=item.get("pattern"),
        value=item.get("value"),
        confidence=confidence,
        usage=item.get("usage"),
    )


def load_rules(rules_dir: Optional[str] = None) -> List[Technology]:
    """
    Loads technology detection rules from all .yaml files in ``<rules_dir>/technologies``.

    Rows with an unknown category, no usable evidence or a confidence outside
    [0, 1] are skipped and logged.
    """
    tech_dir = os.path.join(rules_dir or RULES_DIR, "technologies")
    technologies: List[Technology] = []
    if not os.path.isdir(tech_dir):
        logger.warning(f"Technology rules directory not found: {tech_dir}")
        return technologies

    for filename in sorted(os.listdir(tech_dir)):
        if not (filename.endswith(".yaml") or filename.endswith(".yml")):
            continue
        rules_data = _read_yaml(os.path.join(tech_dir, filename))
        if not rules_data:
            continue
        if not isinstance(rules_data, list):
            raise RuleLoadError(f"{filename}: expected a list of technologies")

        for rule_data in rules_data:
            # Basic validation
            if not isinstance(rule_data, dict) or not all(k in rule_data for k in ["name", "category", "evidence"]):
                logger.warning(f"Skipping invalid rule in {filename}: {rule_data}")
                continue
            try:
                category = TechCategory(rule_data["category"])
            except ValueError:
                logger.warning(f"Skipping {rule_data['name']} in {filename}: unknown category {rule_data['category']!r}")
                continue

            evidence_rules = []
            for evidence_item in rule_data["evidence"] or []:
                evidence = _parse_evidence(evidence_item)
                if evidence is None:
                    logger.warning(f"Skipping invalid evidence for {rule_data['name']} in {filename}: {evidence_item}")
                    continue
                evidence_rules.append(evidence)

            if not evidence_rules:
                continue
            technologies.append(
                Technology(
                    name=rule_data["name"],
                    category=category,
                    description=rule_data.get("description", ""),
                    evidence_rules=tuple(evidence_rules),
                )
            )
    return technologies


def _load_line_patterns(filepath: str) -> List[LinePattern]:
    patterns: List[LinePattern] = []
    for row in _read_yaml(filepath) or []:
        if not isinstance(row, dict) or not all(k in row for k in ["type", "pattern", "severity", "description"]):
            logger.warning(f"Skipping invalid pattern in {os.path.basename(filepath)}: {row}")
            continue
        try:
            severity = Severity(row["severity"])
        except ValueError:
            logger.warning(f"Skipping {row['type']}: unknown severity {row['severity']!r}")
            continue
        patterns.append(
            LinePattern(
                type=row["type"],
                pattern=row["pattern"],
                severity=severity,
                description=row["description"],
                remediation=row.get("remediation"),
                cwe=row.get("cwe"),
                exclude=row.get("exclude"),
                extensions=tuple(row.get("extensions") or ()),
                ignore_case=bool(row.get("ignore_case", False)),
            )
        )
    return patterns


def _int_field(row: Dict[str, Any], key: str, default: int) -> Optional[int]:
    try:
        return int(row.get(key, default))
    except (TypeError, ValueError):
        return None


def _load_architecture(filepath: str) -> ArchitectureRules:
    data = _read_yaml(filepath) or {}
    if not isinstance(data, dict):
        raise RuleLoadError(f"{os.path.basename(filepath)}: expected a mapping of architecture tables")

    conventions = []
    for row in data.get("conventions") or []:
        if not isinstance(row, dict) or not row.get("name"):
            logger.warning(f"Skipping invalid convention: {row}")
            continue
        conventions.append(
            ConventionRule(
                name=str(row["name"]),
                description=row.get("description", ""),
                files=tuple(row.get("files") or ()),
                path_pattern=row.get("path_pattern"),
            )
        )

    patterns = []
    for row in data.get("patterns") or []:
        if not isinstance(row, dict):
            logger.warning(f"Skipping invalid architecture pattern: {row}")
            continue
        try:
            name = ArchitecturePatternName(row.get("name"))
        except ValueError:
            logger.warning(f"Skipping unknown architecture pattern: {row}")
            continue
        signals = tuple(
            PatternSignal(
                label=str(s["label"]),
                path_pattern=s.get("path_pattern"),
                technology=s.get("technology"),
            )
            for s in row.get("signals") or []
            if isinstance(s, dict) and s.get("label")
        )
        confidence = _int_field(row, "confidence", 50)
        min_signals = _int_field(row, "min_signals", 1)
        if not signals or confidence is None or min_signals is None:
            logger.warning(f"Skipping architecture pattern {name.value}: no signals or a non-numeric threshold")
            continue
        patterns.append(
            ArchitecturePatternRule(
                name=name,
                confidence=max(0, min(100, confidence)),
                signals=signals,
                min_signals=min_signals,
            )
        )

    styles = []
    for row in data.get("styles") or []:
        if not isinstance(row, dict) or not row.get("label"):
            logger.warning(f"Skipping invalid architecture style: {row}")
            continue
        styles.append(StyleTier(label=str(row["label"]), technologies=tuple(row.get("technologies") or ())))

    return ArchitectureRules(
        conventions=tuple(conventions),
        patterns=tuple(patterns),
        styles=tuple(styles),
        default_style=data.get("default_style", "Modern Web Application"),
    )


def _load_heavy_packages(filepath: str) -> Dict[str, HeavyPackage]:
    packages: Dict[str, HeavyPackage] = {}
    for row in _read_yaml(filepath) or []:
        if not isinstance(row, dict) or not row.get("name"):
            logger.warning(f"Skipping invalid heavy package in {os.path.basename(filepath)}: {row}")
            continue
        size_kb = _int_field(row, "size_kb", 0)
        try:
            impact = Severity(row.get("impact", "medium"))
        except ValueError:
            impact = None
        if size_kb is None or size_kb < 0 or impact is None:
            logger.warning(f"Skipping heavy package {row['name']}: bad size_kb or impact")
            continue
        name = str(row["name"])
        packages[name] = HeavyPackage(
            name=name,
            size_kb=size_kb,
            impact=impact,
            alternatives=tuple(str(a) for a in row.get("alternatives") or ()),
        )
    return packages


def load_rule_book(rules_dir: Optional[str] = None) -> RuleBook:
    """Load every rule table under ``rules_dir`` (default: the packaged tables)."""
    rules_dir = rules_dir or RULES_DIR
    sections = _read_yaml(os.path.join(rules_dir, "readme_sections.yaml")) or {}
    descriptions = _read_yaml(os.path.join(rules_dir, "package_descriptions.yaml")) or {}

    book = RuleBook(
        technologies=tuple(load_rules(rules_dir)),
        readme_sections={str(k): str(v) for k, v in sections.items()},
        security_patterns=tuple(_load_line_patterns(os.path.join(rules_dir, "security_patterns.yaml"))),
        performance_patterns=tuple(_load_line_patterns(os.path.join(rules_dir, "performance_patterns.yaml"))),
        code_smells=tuple(_load_line_patterns(os.path.join(rules_dir, "code_smells.yaml"))),
        architecture=_load_architecture(os.path.join(rules_dir, "architecture.yaml")),
        package_descriptions={str(k): str(v) for k, v in descriptions.items()},
        heavy_packages=_load_heavy_packages(os.path.join(rules_dir, "heavy_dependencies.yaml")),
    )
    logger.debug(
        f"Loaded rule book from {rules_dir}: {len(book.technologies)} technologies, "
        f"{len(book.security_patterns)} security, {len(book.performance_patterns)} performance, "
        f"{len(book.code_smells)} smell patterns, {len(book.heavy_packages)} heavy packages"
    )
    return book


# Example usage (for testing)
if __name__ == "__main__":
    loaded = load_rule_book()
    print(f"Loaded {len(loaded.technologies)} technologies.")
    for tech in loaded.technologies:
        print(f"  - {tech.name} ({tech.category.value})")
        for rule in tech.evidence_rules:
            print(f"    - Evidence: type={rule.type}, pattern={rule.pattern}, value={rule.value}, confidence={rule.confidence}")

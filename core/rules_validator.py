"""
Utility functions to validate technology rule tables for duplications and overlaps.
"""
import os
from collections import defaultdict
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from models.technology import Technology
from rules.rules_loader import RULES_DIR


class CheckCombination(Enum):
    """Available combinations for checking duplicates."""
    NAME_ONLY = frozenset({'name'})
    NAME_CATEGORY = frozenset({'name', 'category'})
    NAME_TYPE = frozenset({'name', 'evidence_type'})
    NAME_CATEGORY_TYPE = frozenset({'name', 'category', 'evidence_type'})

    def __str__(self) -> str:
        """Return human-readable combination name."""
        names = {
            'name': 'Name',
            'category': 'Category',
            'evidence_type': 'Evidence Type'
        }
        return ' + '.join(names[f] for f in sorted(self.value))


# Evidence types whose ``value`` is an identifying key (package name, file path)
KEYED_EVIDENCE = (
    "npm_dependency",
    "pypi_requirement",
    "cargo_crate",
    "go_module",
    "maven_artifact",
    "composer_package",
    "gem",
    "file",
)


def load_raw_rules(rules_dir: Optional[str] = None, specific_file: Optional[str] = None) -> List[Dict[str, Any]]:
    """Load raw technology rows from YAML, tracking the file each row came from."""
    tech_dir = os.path.join(rules_dir or RULES_DIR, "technologies")
    filenames = [specific_file] if specific_file else sorted(os.listdir(tech_dir))
    all_rules: List[Dict[str, Any]] = []
    for filename in filenames:
        if not filename.endswith('.yaml'):
            continue
        filepath = os.path.join(tech_dir, filename)
        if not os.path.exists(filepath):
            continue
        with open(filepath, 'r', encoding='utf-8') as f:
            rows = yaml.safe_load(f)
        if isinstance(rows, list):
            for row in rows:
                if isinstance(row, dict):
                    all_rules.append(dict(row, __file__=filename))
    return all_rules


def detect_duplicates_by_combination(
    rules: List[Dict[str, Any]],
    combination: CheckCombination = CheckCombination.NAME_CATEGORY_TYPE,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Detect duplicate rows by the selected combination of attributes.

    Args:
        rules: Raw rule rows (see load_raw_rules)
        combination: What combination of attributes makes two rows duplicates

    Returns:
        Mapping of combination key to the rows sharing it (only keys with 2+ rows)
    """
    seen: Dict[Tuple, List[Dict[str, Any]]] = defaultdict(list)

    for rule in rules:
        key_parts = []
        if 'name' in combination.value:
            key_parts.append(('name', rule.get('name', 'Unknown')))
        if 'category' in combination.value:
            key_parts.append(('category', rule.get('category', 'Unknown')))
        if 'evidence_type' in combination.value:
            evidence_types = frozenset(ev.get('type') for ev in rule.get('evidence') or [] if isinstance(ev, dict))
            key_parts.append(('evidence_type', tuple(sorted(t for t in evidence_types if t))))

        combo_key = tuple(v for _, v in sorted(key_parts))
        seen[combo_key].append(rule)

    return {str(key): rows for key, rows in seen.items() if len(rows) > 1}


def detect_key_overlaps(rules: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Detect identifying keys (dependency names, file paths) claimed by more than one technology.

    Returns:
        Mapping of ``"<evidence type>:<value>"`` to the technologies that use it
    """
    keys_map: Dict[str, List[str]] = defaultdict(list)

    for rule in rules:
        technology = rule.get('name', 'Unknown')
        for ev in rule.get('evidence') or []:
            if not isinstance(ev, dict) or ev.get('type') not in KEYED_EVIDENCE or not ev.get('value'):
                continue
            key = f"{ev['type']}:{ev['value']}"
            if technology not in keys_map[key]:
                keys_map[key].append(technology)

    return {key: names for key, names in keys_map.items() if len(names) > 1}


def validate_rules(technologies: Sequence[Technology]) -> List[str]:
    """Problems in a loaded rule set: duplicate (name, category, evidence type) rows.

    Returns:
        Human-readable problem descriptions; empty when the rules are clean
    """
    problems: List[str] = []
    seen: Dict[Tuple[str, str, str], int] = defaultdict(int)
    for tech in technologies:
        for evidence_type in sorted({r.type for r in tech.evidence_rules}):
            seen[(tech.name, tech.category.value, evidence_type)] += 1
    for (name, category, evidence_type), count in sorted(seen.items()):
        if count > 1:
            problems.append(f"{name} ({category}) has {count} rows with {evidence_type} evidence")
    return problems


def validation_report(
    rules: List[Dict[str, Any]],
    combination: CheckCombination = CheckCombination.NAME_CATEGORY_TYPE,
    show_files: bool = True,
) -> str:
    """
    Build a text report of rule duplicates and overlaps.

    Args:
        rules: Raw rule rows (see load_raw_rules)
        combination: What combination to check for duplicates
        show_files: Whether to show which file each row came from
    """
    lines = ["=" * 70, "RULES VALIDATION REPORT", "=" * 70]
    lines.append(f"Check Combination: {combination}")
    lines.append(f"Total Rules: {len(rules)}")

    duplicates = detect_duplicates_by_combination(rules, combination)
    if duplicates:
        lines.append(f"DUPLICATE RULES (by {combination}): {len(duplicates)}")
        for combo_key, rows in sorted(duplicates.items()):
            lines.append(f"  {combo_key}")
            for row in rows:
                file_info = f" [{row.get('__file__', 'unknown')}]" if show_files else ""
                lines.append(
                    f"    - {row.get('name')} {row.get('category', 'Unknown')} "
                    f"({len(row.get('evidence') or [])} evidences){file_info}"
                )
    else:
        lines.append(f"No duplicate rules by {combination}")

    overlaps = detect_key_overlaps(rules)
    if overlaps:
        lines.append(f"KEY OVERLAPS: {len(overlaps)}")
        for key, names in sorted(overlaps.items()):
            lines.append(f"  '{key}' -> {', '.join(names)}")
    else:
        lines.append("No key overlaps")

    total_evidence = sum(len(row.get('evidence') or []) for row in rules)
    technologies = len({row.get('name') for row in rules})
    lines.append("Statistics:")
    lines.append(f"  - Unique Technologies: {technologies}")
    lines.append(f"  - Total Evidence Items: {total_evidence}")
    if technologies:
        lines.append(f"  - Avg Evidence per Technology: {total_evidence / technologies:.1f}")
    lines.append("=" * 70)
    return "\n".join(lines)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Validate technology rule tables for duplications and overlaps")
    parser.add_argument(
        '--combination',
        default='name_category_type',
        choices=['name_only', 'name_category', 'name_type', 'name_category_type'],
        help='Combination of attributes to check for duplicates (default: name_category_type)'
    )
    parser.add_argument('--rules-dir', default=None, help='Rules directory (default: packaged rules)')
    parser.add_argument('--no-files', action='store_false', dest='show_files', help='Do not show file information')
    args = parser.parse_args()

    print(validation_report(
        load_raw_rules(args.rules_dir),
        combination=CheckCombination[args.combination.upper()],
        show_files=args.show_files,
    ))

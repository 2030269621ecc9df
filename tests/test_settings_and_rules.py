import os

import pytest

from core.cache import MISSING, ArtifactCache
from core.errors import RuleLoadError
from core.rules_validator import (
    CheckCombination,
    detect_duplicates_by_combination,
    detect_key_overlaps,
    load_raw_rules,
    validate_rules,
    validation_report,
)
from core.settings import Settings, load_config, load_settings
from models.enums import Severity, TechCategory
from models.technology import EvidenceRule, Technology
from rules.rules_loader import load_rule_book, load_rules


def _write(path, text):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


# --- settings -------------------------------------------------------------

def test_defaults_without_config_file(tmp_path):
    settings = load_settings(str(tmp_path / "absent.yaml"), environ={})
    assert settings == Settings()
    assert settings.fetch_timeout == 15.0
    assert settings.max_source_files == 200


def test_config_file_env_and_overrides(tmp_path, caplog):
    config = tmp_path / "repo-analyser.yaml"
    config.write_text("fetch-timeout: 5\nmax_source_files: 20\nexclude: [performance]\nunknown_key: 1\n")

    settings = load_settings(
        str(config),
        environ={"GITHUB_TOKEN": "ghp_test", "NARRATIVE_API_KEY": ""},
        max_source_files=None,
        narrative_model="local-model",
    )
    assert settings.fetch_timeout == 5
    assert settings.max_source_files == 20
    assert settings.exclude == frozenset({"performance"})
    assert settings.github_token == "ghp_test"
    assert settings.narrative_api_key is None
    assert settings.narrative_model == "local-model"
    assert "unknown_key" in caplog.text
    # Secrets stay out of the repr
    assert "ghp_test" not in repr(settings)


def test_config_must_be_a_mapping(tmp_path):
    config = tmp_path / "bad.yaml"
    config.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_config(str(config))


# --- cache ----------------------------------------------------------------

def test_cache_distinguishes_cached_none():
    cache = ArtifactCache()
    assert cache.get("repo@main:README.md") is MISSING
    cache.set("repo@main:README.md", None)
    assert cache.get("repo@main:README.md") is None
    assert cache.size() == 1
    cache.invalidate("repo@main:README.md")
    assert cache.get("repo@main:README.md") is MISSING


def test_cache_expiry():
    cache = ArtifactCache(default_ttl_seconds=0)
    cache.set("k", "v", ttl_seconds=-1)
    assert cache.get("k") is MISSING
    cache.set("k2", "v2", ttl_seconds=60)
    cache.clear()
    assert cache.size() == 0


# --- rule loading ---------------------------------------------------------

def test_packaged_rule_book_loads():
    book = load_rule_book()
    names = {t.name for t in book.technologies}
    assert {"React", "Next.js", "Jest", "Django", "Docker"} <= names
    assert set(book.readme_sections) >= {"installation", "usage", "license", "badges"}
    assert book.security_patterns
    assert book.performance_patterns
    assert book.code_smells
    assert book.architecture.styles
    assert book.architecture.default_style == "Modern Web Application"


def test_invalid_rows_are_skipped(tmp_path):
    _write(
        str(tmp_path / "technologies" / "custom.yaml"),
        """
- name: Good
  category: framework
  evidence:
    - type: npm_dependency
      value: good
      confidence: 0.7
- name: BadCategory
  category: spaceship
  evidence:
    - type: file
      value: x
- name: BadConfidence
  category: tool
  evidence:
    - type: file
      value: y
      confidence: 1.5
- name: UnknownEvidence
  category: tool
  evidence:
    - type: header
      value: z
- just a string
""",
    )
    technologies = load_rules(str(tmp_path))
    assert [t.name for t in technologies] == ["Good"]
    assert technologies[0].category == TechCategory.FRAMEWORK
    assert technologies[0].evidence_rules[0].confidence == 0.7


def test_unreadable_rule_table_raises(tmp_path):
    _write(str(tmp_path / "technologies" / "broken.yaml"), "- name: [unclosed\n")
    with pytest.raises(RuleLoadError):
        load_rules(str(tmp_path))

    _write(str(tmp_path / "technologies" / "broken.yaml"), "name: not-a-list\n")
    with pytest.raises(RuleLoadError):
        load_rules(str(tmp_path))


def test_missing_rules_directory_yields_empty_book(tmp_path):
    book = load_rule_book(str(tmp_path))
    assert book.technologies == ()
    assert book.security_patterns == ()
    assert dict(book.readme_sections) == {}


# --- rule validation ------------------------------------------------------

def test_validate_rules_reports_duplicates():
    technologies = [
        Technology("React", TechCategory.FRAMEWORK, evidence_rules=(EvidenceRule(type="npm_dependency", value="react"),)),
        Technology("React", TechCategory.FRAMEWORK, evidence_rules=(EvidenceRule(type="npm_dependency", value="react-dom"),)),
        Technology("React", TechCategory.FRAMEWORK, evidence_rules=(EvidenceRule(type="file", value="x.jsx"),)),
    ]
    assert validate_rules(technologies) == ["React (framework) has 2 rows with npm_dependency evidence"]
    assert validate_rules(technologies[:1]) == []


def test_raw_rule_checks(tmp_path):
    _write(
        str(tmp_path / "technologies" / "a.yaml"),
        """
- name: Redis
  category: database
  evidence:
    - type: npm_dependency
      value: redis
- name: Redis
  category: database
  evidence:
    - type: npm_dependency
      value: ioredis
- name: Cache Layer
  category: library
  evidence:
    - type: npm_dependency
      value: redis
""",
    )
    rows = load_raw_rules(str(tmp_path))
    assert {row["__file__"] for row in rows} == {"a.yaml"}

    duplicates = detect_duplicates_by_combination(rows, CheckCombination.NAME_CATEGORY)
    assert len(duplicates) == 1
    assert detect_duplicates_by_combination(rows, CheckCombination.NAME_ONLY)
    assert detect_key_overlaps(rows) == {"npm_dependency:redis": ["Redis", "Cache Layer"]}

    report = validation_report(rows, CheckCombination.NAME_CATEGORY)
    assert "KEY OVERLAPS: 1" in report
    assert "Unique Technologies: 2" in report
    assert str(CheckCombination.NAME_CATEGORY_TYPE) == "Category + Evidence Type + Name"


def test_architecture_rows_with_bad_shapes_are_skipped(tmp_path, caplog):
    _write(
        str(tmp_path / "architecture.yaml"),
        """
conventions:
  - description: no name
  - name: Node.js
    files: [package.json]
  - just a string
patterns:
  - name: MVC
    confidence: high
    signals:
      - label: controllers
        path_pattern: controllers
  - name: MVC
    confidence: 70
    signals:
      - label: controllers
        path_pattern: controllers
      - path_pattern: no-label
  - name: [1, 2]
  - 42
styles:
  - label: Containerized
    technologies: [Docker]
  - technologies: [React]
""",
    )
    architecture = load_rule_book(str(tmp_path)).architecture
    assert [c.name for c in architecture.conventions] == ["Node.js"]
    assert len(architecture.patterns) == 1
    assert architecture.patterns[0].confidence == 70
    assert [s.label for s in architecture.patterns[0].signals] == ["controllers"]
    assert [s.label for s in architecture.styles] == ["Containerized"]
    assert "Skipping invalid convention" in caplog.text


def test_architecture_table_must_be_a_mapping(tmp_path):
    _write(str(tmp_path / "architecture.yaml"), "- conventions\n")
    with pytest.raises(RuleLoadError):
        load_rule_book(str(tmp_path))


def test_heavy_package_table(tmp_path):
    packaged = load_rule_book().heavy_packages
    assert packaged["moment"].impact == Severity.HIGH
    assert "dayjs" in packaged["moment"].alternatives

    _write(
        str(tmp_path / "heavy_dependencies.yaml"),
        """
- name: big-lib
  size_kb: 900
  impact: high
  alternatives: [small-lib]
- name: odd-size
  size_kb: lots
- name: odd-impact
  size_kb: 10
  impact: enormous
- size_kb: 5
""",
    )
    heavy = load_rule_book(str(tmp_path)).heavy_packages
    assert list(heavy) == ["big-lib"]
    assert heavy["big-lib"].size_kb == 900
    assert heavy["big-lib"].alternatives == ("small-lib",)

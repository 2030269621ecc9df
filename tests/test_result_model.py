"""Tests for result validation and JSON serialization."""
import dataclasses
import json

import pytest

from core.errors import AnalysisError, ResultAssemblyError
from core.scoring import aggregate
from core.serialization import camel_case, to_dict, to_json
from core.validation import count_violations, duplicate_technologies, range_violations, validate_result
from models.detection import Detection, Evidence
from models.enums import ReportStatus, Severity, TechCategory
from models.finding import Finding, penalty_score
from models.reports import (
    REPORT_TYPES,
    AnalysisResult,
    CategoryScore,
    DependencyRecord,
    DependencyReport,
    SecurityReport,
    TechStackReport,
)


def _result(**overrides):
    reports = {kind: cls.missing() for kind, cls in REPORT_TYPES.items()}
    reports.update(overrides)
    return AnalysisResult(
        analysis_id="abc123",
        created_at="2024-01-01T00:00:00+00:00",
        assessable=True,
        quality=aggregate(reports),
        **reports,
    )


def _detection(name, confidence=0.9):
    return Detection(name=name, category=TechCategory.FRAMEWORK, confidence=confidence, evidence=Evidence(type="file"))


# --- findings -------------------------------------------------------------

def test_penalty_score():
    findings = [
        Finding("a", Severity.CRITICAL, "x", "d"),
        Finding("b", Severity.HIGH, "x", "d"),
        Finding("c", Severity.LOW, "x", "d"),
    ]
    assert penalty_score(findings) == 55
    assert penalty_score(findings * 3) == 0


def test_analysis_error_phase():
    error = AnalysisError("listing failed", phase="fetch")
    assert str(error) == "[fetch] listing failed"
    assert str(AnalysisError("x", phase="analyze", analyzer="security")) == "[analyze:security] x"
    with pytest.raises(ValueError):
        AnalysisError("x", phase="render")


# --- validation -----------------------------------------------------------

def test_valid_result_passes():
    result = _result()
    assert validate_result(result) is result


def test_out_of_range_score_is_rejected(caplog):
    result = _result(security=SecurityReport(score=140))
    assert range_violations(result) == ["security.score = 140"]
    with pytest.raises(ResultAssemblyError):
        validate_result(result)
    assert "invariant violated" in caplog.text


def test_out_of_range_category_score_is_rejected():
    result = _result()
    bad_quality = dataclasses.replace(result.quality, overall_score=CategoryScore(value=-1))
    result = dataclasses.replace(result, quality=bad_quality)
    assert range_violations(result) == ["quality.overall_score = -1"]


def test_detection_confidence_bounds():
    result = _result(tech_stack=TechStackReport(items=(_detection("React", 1.5),)))
    assert range_violations(result) == ["tech_stack.items[0].confidence = 1.5"]


def test_dependency_count_invariant():
    report = DependencyReport(
        total=3,
        production=2,
        development=0,
        records=(DependencyRecord("react", "^18"), DependencyRecord("next", "^13")),
    )
    problems = count_violations(report)
    assert problems == [
        "dependencies.total = 3, expected 2",
        "dependencies.records has 2 entries for total 3",
    ]


def test_duplicate_technologies():
    result = _result(tech_stack=TechStackReport(items=(_detection("React"), _detection("React"))))
    assert duplicate_technologies(result) == ["tech_stack has duplicate React (framework)"]


# --- serialization --------------------------------------------------------

def test_camel_case():
    assert camel_case("maintainability_index") == "maintainabilityIndex"
    assert camel_case("score") == "score"
    assert camel_case("is_dev") == "isDev"


def test_to_dict_keys_and_values():
    result = _result(security=SecurityReport.missing(ReportStatus.FAILED, "boom"))
    data = to_dict(result)

    assert data["analysisId"] == "abc123"
    assert data["security"]["status"] == "failed"
    assert data["security"]["notes"] == ["boom"]
    assert data["quality"]["overallScore"]["value"] == 63
    # Score component names are kept verbatim
    assert "maintenanceScore" in data["quality"]["maintainabilityIndex"]["components"]
    assert "codeSmells" in data["quality"]["overallScore"]["components"]
    assert data["dependencies"]["scripts"]["missingStandard"] == ["build", "test", "dev", "start", "lint", "format"]


def test_to_json_truncates_long_values():
    finding = Finding("xss", Severity.MEDIUM, "a.js:1", "d", snippet="x" * 50)
    data = json.loads(to_json(finding, indent=None, value_max_length=10))
    assert data["snippet"] == "x" * 10 + "..."
    assert data["severity"] == "medium"
    assert json.loads(to_json(finding))["snippet"] == "x" * 50


def test_to_json_is_deterministic():
    result = _result()
    assert to_json(result) == to_json(result)

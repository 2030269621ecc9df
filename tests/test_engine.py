import asyncio
import dataclasses
import json
import random

import pytest

from analyzers import tech_stack
from conftest import PACKAGE_JSON, README
from core.analyzer_registry import AnalyzerRegistry
from core.engine import Engine, run_analysis, select_paths
from core.errors import AnalysisError
from core.serialization import to_dict
from core.settings import Settings
from core.validation import range_violations
from fetch.content_source import InMemoryContentSource
from models.artifact import TreeEntry
from models.enums import ArchitecturePatternName, EntryType, ReportStatus
from models.reports import REPORT_TYPES, AnalysisResult, CategoryScore

SNAPSHOT = {
    "package.json": PACKAGE_JSON,
    "README.md": README,
    "src/pages/index.jsx": "export default function Home() {\n  return <main>Hello</main>;\n}\n",
    "src/api/users.js": "const rows = db.query(baseQuery + req.params.id);\n",
    "src/__tests__/index.test.jsx": "test('home', () => {});\n",
}


def _stable(result: AnalysisResult) -> dict:
    data = to_dict(result)
    data.pop("analysisId")
    data.pop("createdAt")
    return data


def test_run_analysis_produces_every_report(rule_book):
    result = run_analysis(SNAPSHOT, rules=rule_book)

    assert result.assessable is True
    for kind in REPORT_TYPES:
        assert getattr(result, kind).status in (ReportStatus.COMPLETE, ReportStatus.MISSING)
    assert {"React", "Next.js", "Jest"} <= set(result.tech_stack.names)
    assert result.dependencies.total == 3
    assert result.readme.sections.installation
    assert [f.type for f in result.security.vulnerabilities] == ["sql-injection"]
    assert result.technical_debt.status == ReportStatus.COMPLETE
    assert 0 <= result.quality.overall_score.value <= 100
    assert len(result.analysis_id) == 32


def test_analysis_is_deterministic(rule_book):
    first = run_analysis(SNAPSHOT, rules=rule_book)
    second = run_analysis(SNAPSHOT, rules=rule_book)
    assert first.analysis_id != second.analysis_id
    assert _stable(first) == _stable(second)


def test_analyzer_order_does_not_change_the_result(rule_book, monkeypatch):
    baseline = _stable(run_analysis(SNAPSHOT, rules=rule_book))
    monkeypatch.setattr(AnalyzerRegistry, "_order", list(reversed(AnalyzerRegistry._order)))
    assert _stable(run_analysis(SNAPSHOT, rules=rule_book)) == baseline


def test_empty_input_is_well_formed(rule_book):
    result = run_analysis({}, rules=rule_book)
    assert result.assessable is False
    assert result.quality.overall_score.value == 63
    assert result.tech_stack.status == ReportStatus.MISSING
    assert result.technical_debt.status == ReportStatus.MISSING
    assert result.dependencies.total == 0


def test_excluded_analyzers_are_skipped(rule_book):
    result = run_analysis(SNAPSHOT, rules=rule_book, exclude_analyzers={"security", "architecture"})
    assert result.security.status == ReportStatus.SKIPPED
    assert result.security.score == 100
    assert result.architecture.status == ReportStatus.SKIPPED
    assert result.tech_stack.status == ReportStatus.COMPLETE


def test_unknown_exclusion_is_rejected(rule_book):
    with pytest.raises(ValueError):
        Engine(rules=rule_book, exclude_analyzers={"headers"})


def test_select_paths():
    tree = [
        TreeEntry("package.json", size=300),
        TreeEntry("README.md", size=900),
        TreeEntry("docs/README.md", size=100),
        TreeEntry(".env", size=20),
        TreeEntry("src", type=EntryType.DIR),
        TreeEntry("src/a.js", size=100),
        TreeEntry("src/big.js", size=10_000_000),
        TreeEntry("src/deep/b.py", size=100),
        TreeEntry("node_modules/left-pad/index.js", size=10),
        TreeEntry("node_modules/left-pad/package.json", size=10),
    ]
    assert select_paths(tree, Settings(max_source_files=1)) == [".env", "README.md", "package.json", "src/a.js"]
    assert "src/deep/b.py" in select_paths(tree, Settings())
    assert "src/big.js" not in select_paths(tree, Settings())


@pytest.mark.asyncio
async def test_collect_from_in_memory_source(rule_book):
    engine = Engine(rules=rule_book)
    source = InMemoryContentSource({"package.json": PACKAGE_JSON, "notes.txt": "hello", "README.md": README})
    context = await engine.collect(source)

    assert context.content("package.json") == PACKAGE_JSON
    # Only selected paths are fetched
    assert context.content("notes.txt") is None
    result = await engine.analyze_context(context)
    assert result.dependencies.total == 3


class FailingSource(InMemoryContentSource):
    async def get_artifact(self, path):
        if path == "README.md":
            raise ConnectionError("reset by peer")
        return await super().get_artifact(path)


@pytest.mark.asyncio
async def test_fetch_failure_is_a_fetch_phase_error(rule_book):
    engine = Engine(rules=rule_book)
    with pytest.raises(AnalysisError) as excinfo:
        await engine.run(FailingSource({"package.json": PACKAGE_JSON, "README.md": README}))
    assert excinfo.value.phase == "fetch"
    assert "README.md" in str(excinfo.value)


class HangingSource(InMemoryContentSource):
    async def list_tree(self):
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_listing_timeout_is_a_fetch_phase_error(rule_book):
    engine = Engine(rules=rule_book, settings=Settings(fetch_timeout=0.05))
    with pytest.raises(AnalysisError) as excinfo:
        await engine.collect(HangingSource({}))
    assert excinfo.value.phase == "fetch"


@pytest.mark.asyncio
async def test_cancellation_propagates(rule_book):
    engine = Engine(rules=rule_book)
    task = asyncio.ensure_future(engine.run(HangingSource({})))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


def test_deeply_nested_manifest_does_not_fail_siblings(rule_book):
    result = run_analysis({"package.json": "[" * 100000, "src/a.py": "x = 1\n"}, rules=rule_book)
    assert result.tech_stack.status == ReportStatus.COMPLETE
    assert result.code_structure.status == ReportStatus.COMPLETE
    assert result.dependencies.status == ReportStatus.MISSING
    assert result.dependencies.total == 0
    assert "Python" in [share.name for share in result.tech_stack.languages]


def test_type_confused_metadata_keeps_the_dependency_report(rule_book):
    result = run_analysis(
        {"package.json": '{"description": 12345, "engines": {"node": "18+x"}, "dependencies": {"react": "^18.2.0"}}'},
        rules=rule_book,
    )
    assert result.dependencies.status == ReportStatus.COMPLETE
    assert result.dependencies.total == 1
    assert result.dependencies.metadata.description == "12345"
    assert result.dependencies.metadata.engines_compatible is True

    cargo = run_analysis({"Cargo.toml": '[package]\nname = "c"\ndescription = 5\nkeywords = 5\n'}, rules=rule_book)
    assert cargo.dependencies.status == ReportStatus.COMPLETE
    assert cargo.dependencies.metadata.keywords == ()


def test_vendored_manifests_are_ignored(rule_book):
    result = run_analysis(
        {"node_modules/lodash/package.json": '{"name": "lodash", "dependencies": {"react": "^18.2.0"}}'},
        rules=rule_book,
    )
    assert result.dependencies.total == 0
    assert result.dependencies.status == ReportStatus.MISSING
    assert "React" not in result.tech_stack.names


def test_tech_stack_and_code_structure_share_one_detection_pass(rule_book, monkeypatch):
    calls = []
    original = tech_stack.collect_detections

    def counting(context, technologies):
        calls.append(len(technologies))
        return original(context, technologies)

    monkeypatch.setattr(tech_stack, "collect_detections", counting)
    result = run_analysis(SNAPSHOT, rules=rule_book)
    assert len(calls) == 1
    assert ArchitecturePatternName.JAMSTACK in [p.name for p in result.code_structure.patterns]


def _generated_snapshot(seed: int) -> dict:
    """A random but reproducible mix of manifests, READMEs and source files."""
    rng = random.Random(seed)
    files = {}
    if rng.random() < 0.7:
        deps = {f"pkg-{i}": rng.choice(["^1.0.0", "*", "latest", "~2.3"]) for i in range(rng.randint(0, 80))}
        deps.update(rng.sample([{"react": "^18.0.0"}, {"moment": "^2.29.0"}, {"next": "^13.0.0"}], 1)[0])
        files["package.json"] = json.dumps(
            {
                "name": rng.choice(["demo", 7, None]),
                "description": rng.choice(["x" * rng.randint(0, 120), 12345, ["a"]]),
                "keywords": rng.choice([["a", "b", "c"], "solo", None]),
                "dependencies": deps,
                "devDependencies": {f"dev-{i}": "^1.0.0" for i in range(rng.randint(0, 10))},
                "engines": {"node": rng.choice([">=18", "12", "18+x", 20])},
                "scripts": {s: "rm -rf dist && sudo x" for s in rng.sample(["build", "test", "lint", "dev"], rng.randint(0, 4))},
            }
        )
    if rng.random() < 0.6:
        sections = rng.sample(["Installation", "Usage", "API", "Contributing", "License", "Examples"], rng.randint(0, 6))
        body = "".join(f"## {s}\n\n" + "word " * rng.randint(0, 200) + "\n```sh\nrun\n```\n" for s in sections)
        files["README.md"] = "# Project\n\n" + body
    lines = [
        "const rows = db.query(baseQuery + req.params.id);",
        "eval(userInput);",
        "const data = fs.readFileSync('a');",
        "for (let i = 0; i < arr.length; i++) { if (a) { if (b) { while (c) {} } } }",
        "console.log('debug');",
        "// TODO: fix this",
        "password = 'hunter2'",
        "import React from 'react'",
    ]
    for i in range(rng.randint(0, 25)):
        ext = rng.choice(["js", "jsx", "py", "ts"])
        folder = rng.choice(["src", "src/components", "lib", "tests", "src/utils", "app/controllers"])
        content = "\n".join(rng.choice(lines) for _ in range(rng.randint(0, 300)))
        files[f"{folder}/f{i}.{ext}"] = content
    if rng.random() < 0.3:
        files[".env"] = "SECRET=1\n"
    return files


@pytest.mark.parametrize("seed", range(40))
def test_scores_stay_in_bounds_for_generated_inputs(rule_book, seed):
    result = run_analysis(_generated_snapshot(seed), rules=rule_book)
    assert range_violations(result) == []
    quality = result.quality
    for field in dataclasses.fields(quality):
        value = getattr(quality, field.name)
        if isinstance(value, CategoryScore):
            assert 0 <= value.value <= 100
    for kind in REPORT_TYPES:
        assert getattr(result, kind).status != ReportStatus.FAILED

import json

import pytest

import main as main_module
from core.errors import ResultAssemblyError
from main import main


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep a stray repo-analyser.yaml in the working directory out of the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("NARRATIVE_API_KEY", raising=False)


def test_list_analyzers(capsys):
    assert main(["--list-analyzers"]) == 0
    out = capsys.readouterr().out
    assert "  - tech_stack" in out
    assert out.index("Derived Analyzers") < out.index("  - technical_debt")


def test_validate_packaged_rules(capsys):
    assert main(["--validate-rules"]) == 0
    assert "No duplicate rules found" in capsys.readouterr().out


def test_validate_rules_reports_duplicates(tmp_path, capsys):
    tech_dir = tmp_path / "rules" / "technologies"
    tech_dir.mkdir(parents=True)
    (tech_dir / "dup.yaml").write_text(
        "- name: Vue.js\n  category: framework\n  evidence:\n    - type: npm_dependency\n      value: vue\n"
        "- name: Vue.js\n  category: framework\n  evidence:\n    - type: npm_dependency\n      value: nuxt\n"
    )
    assert main(["--validate-rules", "--rules-dir", str(tmp_path / "rules")]) == 1
    assert "Vue.js (framework) has 2 rows with npm_dependency evidence" in capsys.readouterr().out


def test_unreadable_rules_exit_code(tmp_path):
    tech_dir = tmp_path / "rules" / "technologies"
    tech_dir.mkdir(parents=True)
    (tech_dir / "bad.yaml").write_text("a: mapping\n")
    assert main(["--validate-rules", "--rules-dir", str(tmp_path / "rules")]) == 2


def test_analyze_local_checkout(tmp_path, capsys):
    repo = tmp_path / "repo"
    (repo / "src").mkdir(parents=True)
    (repo / "package.json").write_text('{"name": "cli-demo", "dependencies": {"express": "^4.18.0"}}')
    (repo / "src" / "server.js").write_text("const express = require('express');\nconst app = express();\n")

    assert main(["--local", str(repo), "--compact", "--log-level", "ERROR"]) == 0
    data = json.loads(capsys.readouterr().out)
    analysis = data["analysis"]
    assert analysis["assessable"] is True
    assert analysis["dependencies"]["total"] == 1
    assert analysis["readme"]["status"] == "missing"
    assert "narrative" not in data


def test_local_path_must_exist(tmp_path):
    assert main(["--local", str(tmp_path / "absent"), "--log-level", "ERROR"]) == 1


def test_unknown_exclusion_exit_code(tmp_path):
    assert main(["--local", str(tmp_path), "--exclude", "headers", "--log-level", "ERROR"]) == 2


def test_repository_argument_is_required():
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2


def test_config_file_is_read(tmp_path, capsys):
    (tmp_path / "repo-analyser.yaml").write_text("exclude: [performance]\n")
    (tmp_path / "app.py").write_text("print('hi')\n")
    assert main(["--local", str(tmp_path), "--log-level", "ERROR"]) == 0
    assert json.loads(capsys.readouterr().out)["analysis"]["performance"]["status"] == "skipped"


def test_unreadable_rules_during_analysis_exit_code(tmp_path):
    tech_dir = tmp_path / "rules" / "technologies"
    tech_dir.mkdir(parents=True)
    (tech_dir / "bad.yaml").write_text("a: mapping\n")
    (tmp_path / "app.py").write_text("print('hi')\n")
    assert main(["--local", str(tmp_path), "--rules-dir", str(tmp_path / "rules"), "--log-level", "ERROR"]) == 2


class RejectingEngine:
    def __init__(self, **kwargs):
        pass

    async def run(self, source):
        raise ResultAssemblyError("No report produced for: security")


def test_result_assembly_failure_exit_code(tmp_path, monkeypatch, caplog, capsys):
    monkeypatch.setattr(main_module, "Engine", RejectingEngine)
    assert main(["--local", str(tmp_path), "--log-level", "ERROR"]) == 1
    assert "No report produced for: security" in caplog.text
    assert capsys.readouterr().out == ""

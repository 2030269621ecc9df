from typing import List, Mapping, Sequence, Set, Tuple

from analyzers.base import BaseAnalyzer
from core.analyzer_registry import AnalyzerRegistry, without_technologies
from core.context import AnalysisContext
from core.strategy import ArtifactUnavailable
from detectors.lines import scan_lines
from detectors.paths import basename, extension, is_source, is_vendored
from models.artifact import Artifact
from models.enums import Severity
from models.finding import Finding, penalty_score
from models.reports import PracticeCheck, SecurityReport, SubReport

CONFIG_EXTENSIONS = {".json", ".yaml", ".yml", ".toml", ".ini", ".cfg", ".xml", ".properties", ".env"}

LOCKFILES = {
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
    "poetry.lock",
    "Pipfile.lock",
    "uv.lock",
    "Cargo.lock",
    "go.sum",
    "composer.lock",
    "Gemfile.lock",
}

UPDATE_BOT_FILES = {
    ".github/dependabot.yml",
    ".github/dependabot.yaml",
    "renovate.json",
    ".github/renovate.json",
    ".renovaterc",
    ".renovaterc.json",
}

# .env.example and friends are templates, not secrets
ENV_TEMPLATE_SUFFIXES = (".example", ".sample", ".template", ".dist")


def scannable(artifact: Artifact) -> bool:
    if not artifact.present or is_vendored(artifact.path):
        return False
    name = basename(artifact.path)
    if name in LOCKFILES:
        return False
    return is_source(artifact.path) or extension(artifact.path) in CONFIG_EXTENSIONS or name.startswith(".env")


def committed_env_files(paths: Sequence[str]) -> List[str]:
    return sorted(
        p for p in paths
        if basename(p).startswith(".env") and not basename(p).endswith(ENV_TEMPLATE_SUFFIXES)
    )


def best_practices(paths: Sequence[str]) -> Tuple[PracticeCheck, ...]:
    names: Set[str] = {basename(p) for p in paths}
    path_set = set(paths)
    return (
        PracticeCheck("Dependency lockfile committed", bool(names & LOCKFILES), Severity.HIGH),
        PracticeCheck(".gitignore present", ".gitignore" in names, Severity.MEDIUM),
        PracticeCheck(
            "Security policy (SECURITY.md)",
            any(n.lower() == "security.md" for n in names),
            Severity.MEDIUM,
        ),
        PracticeCheck("No committed .env files", not committed_env_files(paths), Severity.CRITICAL),
        PracticeCheck("Automated dependency updates", bool(path_set & UPDATE_BOT_FILES), Severity.MEDIUM),
    )


def recommendations(vulnerabilities: Sequence[Finding], practices: Sequence[PracticeCheck]) -> Tuple[str, ...]:
    seen: List[str] = []
    for finding in vulnerabilities:
        if finding.remediation and finding.remediation not in seen:
            seen.append(finding.remediation)
    for check in sorted(practices, key=lambda c: -c.importance.rank):
        if not check.implemented:
            seen.append(f"Adopt practice: {check.practice}")
    return tuple(seen)


@AnalyzerRegistry.register("security", without_technologies)
class SecurityAnalyzer(BaseAnalyzer):
    name = "security"
    report_type = SecurityReport

    def build(self, context: AnalysisContext, prior: Mapping[str, SubReport]) -> SecurityReport:
        targets = [a for _, a in sorted(context.artifacts.items()) if scannable(a)]
        paths = sorted(set(context.paths) | {a.path for a in context.artifacts.values() if a.present})
        if not targets and not paths:
            raise ArtifactUnavailable("nothing to scan")

        findings: List[Finding] = []
        for artifact in targets:
            findings.extend(scan_lines(artifact.path, artifact.content, self.rules.security_patterns))
        for env_path in committed_env_files(paths):
            findings.append(
                Finding(
                    type="committed-env-file",
                    severity=Severity.HIGH,
                    location=env_path,
                    description="Environment file committed to the repository",
                    remediation="Remove the file, rotate its secrets and add it to .gitignore",
                    cwe="CWE-538",
                )
            )
        findings.sort(key=Finding.sort_key)
        practices = best_practices(paths)

        self.logger.debug(f"SecurityAnalyzer: scanned {len(targets)} files, {len(findings)} findings")
        return SecurityReport(
            score=penalty_score(findings),
            files_scanned=len(targets),
            vulnerabilities=tuple(findings),
            best_practices=practices,
            recommendations=recommendations(findings, practices),
        )

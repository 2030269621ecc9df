import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from analyzers.base import BaseAnalyzer
from core.analyzer_registry import AnalyzerRegistry, without_technologies
from core.context import AnalysisContext
from core.strategy import ArtifactUnavailable, Strategy
from core.version_utils import major_version
from detectors.imports import USAGE_PATTERNS, imported_modules, normalize_package, package_root
from detectors.manifests import DEVELOPMENT, OPTIONAL, ParsedManifest, parse_manifest
from detectors.paths import extension
from models.artifact import Artifact
from models.enums import Complexity, ScriptType, Severity
from models.finding import Finding
from models.reports import (
    STANDARD_SCRIPTS,
    DependencyRecord,
    DependencyReport,
    DuplicateDependency,
    HeavyDependency,
    MetadataReport,
    ScriptInfo,
    ScriptReport,
    SubReport,
)
from models.rules import HeavyPackage

# Order is the fallback policy: the first manifest present and parseable wins
MANIFEST_ORDER = (
    "package.json",
    "composer.json",
    "pyproject.toml",
    "Pipfile",
    "requirements.txt",
    "Cargo.toml",
    "go.mod",
    "pom.xml",
    "build.gradle",
    "build.gradle.kts",
    "Gemfile",
)

AUTOMATION_KEYS = ("build", "test", "dev", "lint", "format", "deploy")
MAX_DEPENDENCIES = 50
MIN_NODE_MAJOR = 14

# Source extensions whose imports name packages of each ecosystem
USAGE_EXTENSIONS = {
    "npm": {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".vue", ".svelte"},
    "pypi": {".py"},
}
# Packages used without an import statement (JSX runtime)
IMPLICIT_USAGE = {"react": {".jsx", ".tsx"}}

_PIPE = re.compile(r"(?<!\|)\|(?!\|)")
_OPERATOR = re.compile(r"&&|\|\||;|(?<!&)&(?!&)")
_SHELL_KEYWORD = re.compile(r"\b(?:if|then|else|fi)\b")


def categorize_script(name: str, command: str = "") -> ScriptType:
    lowered = name.lower()
    if "build" in lowered:
        return ScriptType.BUILD
    if "test" in lowered:
        return ScriptType.TEST
    if "dev" in lowered or "start" in lowered:
        return ScriptType.DEV
    if "deploy" in lowered:
        return ScriptType.DEPLOY
    if "lint" in lowered:
        return ScriptType.LINT
    if "format" in lowered or "prettier" in lowered or "prettier" in command.lower():
        return ScriptType.FORMAT
    return ScriptType.CUSTOM


def script_complexity(command: str) -> int:
    """1 + pipes + chaining operators + shell conditionals + length/50, capped at 10."""
    score = 1
    score += len(_PIPE.findall(command))
    score += len(_OPERATOR.findall(command))
    score += len(_SHELL_KEYWORD.findall(command))
    score += len(command) // 50
    return min(10, score)


def overall_complexity(values: List[int]) -> Complexity:
    if not values:
        return Complexity.SIMPLE
    average = sum(values) / len(values)
    if average >= 7:
        return Complexity.COMPLEX
    if average >= 4:
        return Complexity.MODERATE
    return Complexity.SIMPLE


def script_security_issues(path: str, scripts: Mapping[str, str]) -> Tuple[Finding, ...]:
    issues: List[Finding] = []
    for name in sorted(scripts):
        command = scripts[name]
        location = f"{path}#scripts.{name}"
        if "rm -rf" in command or re.search(r"\bsudo\b", command):
            issues.append(
                Finding(
                    type="dangerous-command",
                    severity=Severity.HIGH,
                    location=location,
                    description=f"Script '{name}' runs a destructive or privileged command",
                    remediation="Avoid rm -rf and sudo in package scripts",
                    snippet=command[:120],
                )
            )
        if "curl" in command and re.search(r"\|\s*(?:ba|z)?sh\b", command):
            issues.append(
                Finding(
                    type="remote-script-execution",
                    severity=Severity.MEDIUM,
                    location=location,
                    description=f"Script '{name}' pipes a downloaded script into a shell",
                    remediation="Download, verify and pin remote scripts before running them",
                    snippet=command[:120],
                )
            )
    return tuple(issues)


def analyze_scripts(manifest: ParsedManifest) -> ScriptReport:
    scripts = manifest.scripts
    infos = tuple(
        ScriptInfo(
            name=name,
            command=scripts[name],
            type=categorize_script(name, scripts[name]),
            complexity=script_complexity(scripts[name]),
        )
        for name in sorted(scripts)
    )
    automated = sum(1 for key in AUTOMATION_KEYS if any(key in name.lower() for name in scripts))
    return ScriptReport(
        scripts=infos,
        missing_standard=tuple(s for s in STANDARD_SCRIPTS if s not in scripts),
        complexity=overall_complexity([i.complexity for i in infos]),
        automation_level=round(automated / len(AUTOMATION_KEYS) * 100),
        security_issues=script_security_issues(manifest.path, scripts),
    )


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    return str(value) or None


def analyze_metadata(metadata: Mapping) -> MetadataReport:
    description = _as_text(metadata.get("description"))
    raw_keywords = metadata.get("keywords")
    keywords = tuple(str(k) for k in raw_keywords) if isinstance(raw_keywords, (list, tuple)) else ()
    has_repository = bool(metadata.get("repository"))
    has_homepage = bool(metadata.get("homepage"))
    has_author = bool(metadata.get("author"))
    license_name = _as_text(metadata.get("license"))

    seo = 0
    seo += 30 if description else 0
    seo += 25 if keywords else 0
    seo += 20 if has_repository else 0
    seo += 15 if has_homepage else 0
    seo += 10 if has_author else 0

    discoverability = 0
    discoverability += 40 if len(keywords) >= 3 else 0
    discoverability += 30 if description and len(description) > 50 else 0
    discoverability += 20 if has_repository else 0
    discoverability += 10 if license_name else 0

    engines = metadata.get("engines")
    if not isinstance(engines, Mapping):
        engines = {}
    engines_compatible: Optional[bool] = None
    if "node" in engines:
        major = major_version(_as_text(engines["node"]))
        engines_compatible = major is not None and major >= MIN_NODE_MAJOR

    return MetadataReport(
        name=_as_text(metadata.get("name")),
        version=_as_text(metadata.get("version")),
        description=description,
        license=license_name,
        keywords=keywords,
        has_repository=has_repository,
        has_homepage=has_homepage,
        has_author=has_author,
        engines=tuple(sorted((str(k), str(v)) for k, v in engines.items() if v)),
        engines_compatible=engines_compatible,
        seo_score=seo,
        discoverability_score=discoverability,
    )


def find_duplicates(manifest: ParsedManifest) -> Tuple[DuplicateDependency, ...]:
    """Names declared in more than one scope with different version ranges."""
    seen: Dict[str, List[Tuple[str, str]]] = {}
    for scope, deps in manifest.scopes:
        for name, version in deps.items():
            seen.setdefault(name, []).append((scope, version))
    duplicates = []
    for name in sorted(seen):
        entries = seen[name]
        if len(entries) > 1 and len({v for _, v in entries}) > 1:
            duplicates.append(
                DuplicateDependency(
                    name=name,
                    scopes=tuple(s for s, _ in entries),
                    versions=tuple(v for _, v in entries),
                )
            )
    return tuple(duplicates)


def heavy_dependencies(manifest: ParsedManifest, known: Mapping[str, HeavyPackage]) -> Tuple[HeavyDependency, ...]:
    """Runtime dependencies listed in the heavy-package table."""
    found = []
    for scope, deps in manifest.scopes:
        if scope == DEVELOPMENT:
            continue
        for name in sorted(deps):
            package = known.get(name)
            if package is not None:
                found.append(
                    HeavyDependency(
                        name=name,
                        version=deps[name],
                        size_kb=package.size_kb,
                        impact=package.impact,
                        alternatives=package.alternatives,
                    )
                )
    return tuple(found)


def unused_dependencies(manifest: ParsedManifest, sources: Sequence[Artifact]) -> Tuple[str, ...]:
    """Production dependencies that no fetched source file imports and no script runs.

    Only npm and PyPI manifests are checked, and only when at least one source
    file of that ecosystem was fetched; otherwise nothing can be concluded.
    """
    extensions = USAGE_EXTENSIONS.get(manifest.ecosystem)
    if not extensions:
        return ()
    scanned = [a for a in sources if extension(a.path) in extensions]
    if not scanned:
        return ()

    used = set()
    for artifact in scanned:
        for module in imported_modules(artifact.content, USAGE_PATTERNS):
            root = package_root(module)
            if root:
                used.add(normalize_package(root))
    present = {extension(a.path) for a in scanned}
    for name, implied_by in IMPLICIT_USAGE.items():
        if present & implied_by:
            used.add(name)
    commands = " ".join(manifest.scripts.values())

    unused = []
    for name in sorted(manifest.production):
        if normalize_package(name) in used or name.startswith("@types/"):
            continue
        if re.search(rf"(?<![\w@/.-]){re.escape(name)}(?![\w/.-])", commands):
            continue
        unused.append(name)
    return tuple(unused)


@AnalyzerRegistry.register("dependencies", without_technologies)
class DependencyAnalyzer(BaseAnalyzer):
    name = "dependencies"
    report_type = DependencyReport

    def strategies(self) -> List[Tuple[str, Strategy]]:
        return [(manifest, self._from_manifest(manifest)) for manifest in MANIFEST_ORDER]

    def _from_manifest(self, filename: str) -> Strategy:
        def strategy(context: AnalysisContext, prior: Mapping[str, SubReport]) -> DependencyReport:
            found = context.find_content(filename)
            if found is None:
                raise ArtifactUnavailable(f"{filename} not present")
            manifest = parse_manifest(*found)
            if manifest is None:
                raise ArtifactUnavailable(f"{filename} is malformed")
            return self.build_from(manifest, context.source_artifacts())
        return strategy

    def _records(self, manifest: ParsedManifest) -> Tuple[DependencyRecord, ...]:
        records = []
        for scope, deps in manifest.scopes:
            for name in sorted(deps):
                records.append(
                    DependencyRecord(
                        name=name,
                        version=deps[name],
                        is_dev=scope == DEVELOPMENT,
                        is_optional=scope == OPTIONAL,
                        description=self.rules.describe(name),
                    )
                )
        return tuple(records)

    def _optimizations(self, manifest: ParsedManifest, total: int) -> Tuple[Finding, ...]:
        found = []
        if total > MAX_DEPENDENCIES:
            found.append(
                Finding(
                    type="bundle-size",
                    severity=Severity.HIGH,
                    location=manifest.path,
                    description=f"{total} dependencies declared; large dependency trees slow installs and builds",
                    remediation="Audit dependencies and remove unused packages",
                )
            )
        if manifest.ecosystem == "npm" and "build" not in manifest.scripts:
            found.append(
                Finding(
                    type="build-speed",
                    severity=Severity.MEDIUM,
                    location=manifest.path,
                    description="No build script defined",
                    remediation="Add a build script so builds are reproducible",
                )
            )
        return tuple(found)

    def build_from(self, manifest: ParsedManifest, sources: Sequence[Artifact] = ()) -> DependencyReport:
        production = len(manifest.production)
        development = len(manifest.development)
        optional = len(manifest.optional)
        total = production + development + optional
        signals = self.providers.dependency_signals

        self.logger.debug(f"DependencyAnalyzer: {manifest.path} has {total} dependencies")
        return DependencyReport(
            manifest=manifest.path,
            ecosystem=manifest.ecosystem,
            total=total,
            production=production,
            development=development,
            optional=optional,
            records=self._records(manifest),
            duplicates=find_duplicates(manifest),
            outdated=tuple(sorted(signals.outdated(manifest))),
            unused=unused_dependencies(manifest, sources),
            heavy=heavy_dependencies(manifest, self.rules.heavy_packages),
            vulnerable=tuple(sorted(signals.vulnerable(manifest), key=Finding.sort_key)),
            scripts=analyze_scripts(manifest),
            metadata=analyze_metadata(manifest.metadata),
            optimizations=self._optimizations(manifest, total),
        )

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from core.analyzer_registry import AnalyzerRegistry
from core.context import AnalysisContext
from core.errors import AnalysisError, ResultAssemblyError
from core.providers import Providers
from core.scoring import aggregate
from core.settings import Settings
from core.validation import validate_result
from detectors.paths import basename, is_manifest, is_readme, is_source, is_vendored
from fetch.content_source import ContentSource
from models.artifact import TreeEntry
from models.enums import ReportStatus
from models.reports import REPORT_TYPES, AnalysisResult, SubReport
from models.rules import RuleBook
from rules.rules_loader import load_rule_book

# Import all analyzers to trigger @AnalyzerRegistry.register decorators
import analyzers.tech_stack
import analyzers.dependencies
import analyzers.readme
import analyzers.code_structure
import analyzers.code_quality
import analyzers.security
import analyzers.performance
# Derived analyzers (read the settled primary reports)
import analyzers.technical_debt
import analyzers.architecture


def select_paths(tree: Sequence[TreeEntry], settings: Settings) -> List[str]:
    """Which listed files to fetch: manifests, root READMEs, env files, then sources up to the limit."""
    files = [e for e in tree if not e.is_dir and not is_vendored(e.path)]
    always = [
        e.path for e in files
        if is_manifest(e.path) or (is_readme(e.path) and "/" not in e.path) or basename(e.path).startswith(".env")
    ]
    sources = sorted(
        (e for e in files if is_source(e.path) and e.size <= settings.max_file_size),
        key=lambda e: (e.depth, e.path),
    )
    chosen = set(always)
    for entry in sources[: settings.max_source_files]:
        chosen.add(entry.path)
    return sorted(chosen)


class Engine:
    def __init__(
        self,
        rules: Optional[RuleBook] = None,
        exclude_analyzers: Set[str] = None,
        providers: Optional[Providers] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the engine with the analyzer registry.

        Args:
            rules: Rule book to inject (default: the packaged rule tables)
            exclude_analyzers: Set of analyzer names to exclude (e.g., {'security', 'performance'})
            providers: External signal providers (default: report nothing)
            settings: Fetch limits and timeouts (default: Settings())
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings or Settings()
        self.rules = rules if rules is not None else load_rule_book(self.settings.rules_dir)
        self.logger.info(f"Loaded {len(self.rules.technologies)} technology rules")

        self.excluded = set(exclude_analyzers or ())
        unknown = self.excluded - set(AnalyzerRegistry.get_all_names())
        if unknown:
            raise ValueError(f"Unknown analyzers: {', '.join(sorted(unknown))}")

        # Instantiate all registered analyzers dynamically
        self.analyzers = AnalyzerRegistry.instantiate_all(self.rules, providers, exclude=self.excluded)
        self.logger.info(f"Initialized {len(self.analyzers)} analyzers")

        if self.excluded:
            self.logger.info(f"Excluded analyzers: {', '.join(sorted(self.excluded))}")

    async def collect(self, source: ContentSource) -> AnalysisContext:
        """Fetch the listing and the selected artifacts from a content source.

        Raises:
            AnalysisError: phase "fetch" if the listing or any artifact fetch fails or times out
        """
        timeout = self.settings.fetch_timeout
        try:
            tree = await asyncio.wait_for(source.list_tree(), timeout=timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Listing the repository failed: {e}")
            raise AnalysisError(f"listing failed: {e}", phase="fetch") from e

        paths = select_paths(tree, self.settings)
        self.logger.info(f"Fetching {len(paths)} of {len(tree)} listed entries")
        semaphore = asyncio.Semaphore(self.settings.fetch_concurrency)

        async def fetch_one(path: str) -> Tuple[str, Optional[str]]:
            async with semaphore:
                try:
                    return path, await asyncio.wait_for(source.get_artifact(path), timeout=timeout)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self.logger.error(f"Fetching {path} failed: {e}")
                    raise AnalysisError(f"fetching {path} failed: {e}", phase="fetch") from e

        fetched = await asyncio.gather(*(fetch_one(p) for p in paths))
        artifacts = dict(fetched)
        self.logger.debug(f"Fetched {sum(1 for c in artifacts.values() if c is not None)} artifacts")
        return AnalysisContext.build(artifacts, tree)

    async def _run_stage(
        self, stage: str, context: AnalysisContext, prior: Mapping[str, SubReport]
    ) -> Dict[str, SubReport]:
        names = [n for n in AnalyzerRegistry.get_analyzers_by_stage(stage) if n in self.analyzers]

        async def run_analyzer(name: str) -> Tuple[str, SubReport]:
            self.logger.info(f"Running {name} analyzer")
            report = await self.analyzers[name].analyze(context, prior)
            self.logger.debug(f"{name} analyzer finished with status {report.status.value}")
            return name, report

        # Join: every analyzer of the stage settles before the next stage starts
        results = await asyncio.gather(*(run_analyzer(name) for name in names))
        return dict(results)

    async def analyze_context(self, context: AnalysisContext) -> AnalysisResult:
        """Run every analyzer over the snapshot and assemble one AnalysisResult.

        Cancellation propagates; no partial result is ever returned.
        """
        reports: Dict[str, SubReport] = {}
        reports.update(await self._run_stage("primary", context, {}))
        primary = dict(reports)
        reports.update(await self._run_stage("derived", context, primary))

        for name in self.excluded:
            reports[name] = REPORT_TYPES[name].missing(ReportStatus.SKIPPED)

        missing = set(REPORT_TYPES) - set(reports)
        if missing:
            raise ResultAssemblyError(f"No report produced for: {', '.join(sorted(missing))}")

        quality = aggregate(reports)
        result = AnalysisResult(
            analysis_id=uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc).isoformat(),
            assessable=not context.is_empty(),
            quality=quality,
            **{kind: reports[kind] for kind in REPORT_TYPES},
        )
        self.logger.info(f"Analysis {result.analysis_id} complete, overall score {quality.overall_score.value}")
        return validate_result(result)

    async def run(self, source: ContentSource) -> AnalysisResult:
        """Fetch phase followed by analysis."""
        context = await self.collect(source)
        return await self.analyze_context(context)


def run_analysis(
    artifacts: Optional[Mapping[str, Optional[str]]] = None,
    tree: Optional[Iterable[TreeEntry]] = None,
    rules: Optional[RuleBook] = None,
    exclude_analyzers: Set[str] = None,
    providers: Optional[Providers] = None,
) -> AnalysisResult:
    """Synchronous entry point over an in-memory snapshot.

    Args:
        artifacts: ``path -> content`` (None content means "absent")
        tree: Optional file listing; derived from the artifact paths when omitted
        rules: Rule book to inject (default: the packaged rule tables)
    """
    engine = Engine(rules=rules, exclude_analyzers=exclude_analyzers, providers=providers)
    context = AnalysisContext.build(artifacts, tree)
    return asyncio.run(engine.analyze_context(context))


# Example usage (for testing)
async def main():
    engine = Engine()
    context = AnalysisContext.build(
        {
            "package.json": '{"dependencies": {"react": "^18.2.0", "next": "^13.5.0"}, "devDependencies": {"jest": "^29.6.0"}}',
            "README.md": "# Demo\n\n## Installation\n\n```\nnpm install\n```\n",
        }
    )
    result = await engine.analyze_context(context)
    print(f"Analysis: {result.analysis_id} at {result.created_at}")
    print(f"Technologies: {', '.join(result.tech_stack.names)}")
    print(f"Dependencies: {result.dependencies.total}")
    print(f"Overall score: {result.quality.overall_score.value}")

if __name__ == "__main__":
    asyncio.run(main())

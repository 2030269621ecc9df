import asyncio
import argparse
import logging
import sys

from core.analyzer_registry import AnalyzerRegistry
from core.engine import Engine
from core.errors import AnalysisError, ResultAssemblyError, RuleLoadError
from core.rules_validator import validate_rules
from core.serialization import to_dict, to_json
from core.settings import DEFAULT_CONFIG_FILE, load_settings
from fetch.github_source import GitHubContentSource, parse_repo_reference
from fetch.local_source import LocalContentSource
from fetch.narrative_client import ChatCompletionsNarrativeGenerator, generate_narrative
from rules.rules_loader import load_rules


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Repository analysis CLI")
    parser.add_argument("repository", nargs="?", help="GitHub repository (owner/repo or https://github.com/owner/repo)")
    parser.add_argument("--local", type=str, metavar="PATH", help="Analyze a local checkout instead of GitHub")
    parser.add_argument("--ref", type=str, help="Branch, tag or commit to analyze (default: the default branch)")
    parser.add_argument("--config", type=str, default=DEFAULT_CONFIG_FILE, help=f"Settings file (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument("--rules-dir", type=str, help="Directory with rule tables (default: packaged rules)")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity level (default: INFO)")
    parser.add_argument("--exclude", type=str, nargs="+", help="Exclude specific analyzers (e.g., --exclude security performance)")
    parser.add_argument("--list-analyzers", action="store_true", help="List all available analyzers and exit")
    parser.add_argument("--validate-rules", action="store_true", help="Check technology rules for duplicates and exit")
    parser.add_argument("--narrative", action="store_true", help="Also generate a narrative report with a language model")
    parser.add_argument("--value-max-length", type=int, default=0, help="Maximum length for string values such as snippets (default: 0, unlimited)")
    parser.add_argument("--compact", action="store_true", help="Print JSON on a single line")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, args.log_level),
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)

    # List analyzers if requested
    if args.list_analyzers:
        print("Available analyzers:")
        print("\nPrimary Analyzers (read the repository snapshot):")
        for name in AnalyzerRegistry.get_analyzers_by_stage("primary"):
            print(f"  - {name}")
        print("\nDerived Analyzers (compose the primary reports):")
        for name in AnalyzerRegistry.get_analyzers_by_stage("derived"):
            print(f"  - {name}")
        return 0

    try:
        settings = load_settings(args.config, rules_dir=args.rules_dir, exclude=args.exclude)
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Invalid settings in {args.config}: {e}")
        return 2

    if args.validate_rules:
        try:
            problems = validate_rules(load_rules(settings.rules_dir))
        except RuleLoadError as e:
            logger.error(str(e))
            return 2
        for problem in problems:
            print(f"  - {problem}")
        print(f"{len(problems)} problems found" if problems else "No duplicate rules found")
        return 1 if problems else 0

    if not args.repository and not args.local:
        parser.error("a repository or --local PATH is required unless using --list-analyzers or --validate-rules")

    available_analyzers = set(AnalyzerRegistry.get_all_names())
    invalid_excludes = settings.exclude - available_analyzers
    if invalid_excludes:
        logger.error(f"Invalid analyzer names: {', '.join(sorted(invalid_excludes))}")
        logger.info(f"Available analyzers: {', '.join(sorted(available_analyzers))}")
        return 2

    async def run() -> dict:
        engine = Engine(exclude_analyzers=set(settings.exclude), settings=settings)
        logger.info("Initialized analysis engine")

        if args.local:
            logger.info(f"Analyzing local checkout {args.local}")
            result = await engine.run(LocalContentSource(args.local))
        else:
            owner, repo, ref = parse_repo_reference(args.repository)
            logger.info(f"Analyzing {owner}/{repo}")
            async with GitHubContentSource(
                owner,
                repo,
                ref=args.ref or ref,
                token=settings.github_token,
                api_url=settings.github_api_url,
                timeout=settings.fetch_timeout,
            ) as source:
                result = await engine.run(source)

        max_len = args.value_max_length or None
        output = {"analysis": to_dict(result, max_len)}
        if args.narrative:
            generator = ChatCompletionsNarrativeGenerator(
                api_key=settings.narrative_api_key,
                base_url=settings.narrative_base_url,
                model=settings.narrative_model,
                timeout=settings.narrative_timeout,
            )
            try:
                output["narrative"] = await generate_narrative(generator, result, settings.narrative_timeout)
            except AnalysisError as e:
                # The analysis itself is complete; report the narrative failure alongside it
                logger.error(str(e))
                output["narrativeError"] = str(e)
            finally:
                await generator.aclose()
        return output

    try:
        output = asyncio.run(run())
    except (ValueError, RuleLoadError) as e:
        logger.error(str(e))
        return 2
    except ResultAssemblyError as e:
        logger.error(f"Analysis result failed validation: {e}")
        return 1
    except (AnalysisError, NotADirectoryError) as e:
        logger.error(str(e))
        return 1

    logger.info("Serializing analysis to JSON")
    print(to_json(output, indent=None if args.compact else 2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

# SPDX-License-Identifier: MIT
"""Command-line interface for the reference credibility checker."""

import asyncio
import functools
import json
import sys
import traceback
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from . import __version__
from .config import AppConfig, get_config_manager
from .constants import DEFAULT_MATCHER_BASE_URL, DEFAULT_MATCHER_MODEL, OPENALEX_BASE_URL
from .enums import WatchlistCategory
from .exceptions import ProviderUnavailableError
from .logging_config import get_status_logger, setup_logging
from .matcher import LLMNameMatcher
from .openalex import OpenAlexClient
from .orchestrator import BatchOrchestrator
from .output_formatter import output_formatter
from .registries import CrossrefRegistry, PubMedRegistry
from .retraction_resolver import RetractionResolver
from .scorer import PredatoryScorer
from .storage import AnalysisStore, SQLiteWatchlistStore


F = TypeVar("F", bound=Callable[..., Any])


def handle_cli_errors(func: F) -> F:
    """Decorator to handle common CLI error patterns.

    Logs the error (with a traceback in verbose mode) and exits with status 1.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        status_logger = get_status_logger()
        verbose = kwargs.get("verbose", False)

        try:
            return func(*args, **kwargs)
        except (ValueError, OSError, KeyError, RuntimeError) as e:
            if verbose:
                status_logger.error(f"Error in {func.__name__}: {e}")
                traceback.print_exc()
            else:
                status_logger.error(f"Error: {e}")
            sys.exit(1)

    return wrapper  # type: ignore


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit if requested."""
    if value:
        # Ensure logging is set up before using it (--version is eager)
        setup_logging()
        status_logger = get_status_logger()
        status_logger.info(f"PredCheck version {__version__}")
        ctx.exit(0)


def build_orchestrator(
    config: AppConfig, provider: OpenAlexClient | None = None
) -> BatchOrchestrator:
    """Wire the pipeline collaborators from configuration."""
    crossref = config.service("crossref")
    pubmed = config.service("pubmed")
    matcher = config.service("matcher")

    resolver = RetractionResolver(
        CrossrefRegistry(
            email=crossref.email, timeout=crossref.timeout, base_url=crossref.base_url
        )
        if crossref.enabled
        else None,
        PubMedRegistry(email=pubmed.email, timeout=pubmed.timeout, base_url=pubmed.base_url)
        if pubmed.enabled
        else None,
    )

    # A disabled matcher has no key, so every candidate stays unconfirmed
    name_matcher = LLMNameMatcher(
        api_key=matcher.api_key if matcher.enabled else None,
        model=matcher.model or DEFAULT_MATCHER_MODEL,
        base_url=matcher.base_url or DEFAULT_MATCHER_BASE_URL,
        timeout=matcher.timeout,
    )
    scorer = PredatoryScorer(
        SQLiteWatchlistStore(config.storage.db_path),
        name_matcher,
        match_threshold=config.analysis.match_threshold,
        top_n=config.analysis.prefilter_top_n,
        matcher_timeout=matcher.timeout,
        watchlist_timeout=config.storage.lookup_timeout,
    )

    return BatchOrchestrator(
        resolver,
        scorer,
        result_sink=AnalysisStore(config.storage.db_path),
        provider=provider,
        batch_size=config.analysis.batch_size,
        batch_delay=config.analysis.batch_delay_seconds,
    )


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version information and exit",
)
def main() -> None:
    """PredCheck - Assess the credibility of a paper's references."""
    detail_logger, status_logger = setup_logging()
    detail_logger.debug("CLI initialized")


@main.command()
@click.argument("work_id")
@click.option("--verbose", "-v", is_flag=True, help="Show every reference in detail")
@click.option(
    "--format",
    "output_format",
    default=None,
    type=click.Choice(["text", "json"]),
    help="Output format (default from config)",
)
@click.option(
    "--deadline",
    type=float,
    default=None,
    help="Stop starting new batches after this many seconds",
)
def analyze(
    work_id: str, verbose: bool, output_format: str | None, deadline: float | None
) -> None:
    """Analyze the references of a paper.

    WORK_ID: DOI or OpenAlex ID of the citing paper
    """
    asyncio.run(_async_analyze(work_id, verbose, output_format, deadline))


async def _async_analyze(
    work_id: str, verbose: bool, output_format: str | None, deadline: float | None
) -> None:
    status_logger = get_status_logger()
    config = get_config_manager().load_config()
    output_format = output_format or config.output.format
    verbose = verbose or config.output.verbose
    if deadline is None:
        deadline = config.analysis.deadline_seconds

    openalex = config.service("openalex")

    try:
        async with OpenAlexClient(
            email=openalex.email,
            timeout=openalex.timeout,
            base_url=openalex.base_url or OPENALEX_BASE_URL,
        ) as provider:
            orchestrator = build_orchestrator(config, provider=provider)
            aggregate = await orchestrator.analyze_work(work_id, deadline=deadline)
    except ProviderUnavailableError as e:
        status_logger.error(f"Error: {e}")
        sys.exit(1)
    except (OSError, RuntimeError, ValueError) as e:
        if verbose:
            status_logger.error(f"Unexpected error: {e}")
            traceback.print_exc()
        else:
            status_logger.error("An unexpected error occurred. Use -v for details.")
        sys.exit(1)

    if not aggregate.persisted and aggregate.persistence_error:
        status_logger.warning(f"Result not saved: {aggregate.persistence_error}")

    if output_format == "json":
        print(output_formatter.format_json_output(aggregate))
    else:
        print(output_formatter.format_text_output(aggregate, verbose))

    sys.exit(BatchOrchestrator.get_exit_code(aggregate))


@main.command()
@click.argument("analysis_id")
@click.option("--verbose", "-v", is_flag=True, help="Show every reference in detail")
@click.option(
    "--format",
    "output_format",
    default="text",
    type=click.Choice(["text", "json"]),
    help="Output format",
)
@handle_cli_errors
def show(analysis_id: str, verbose: bool, output_format: str) -> None:
    """Show a stored analysis.

    ANALYSIS_ID: Identifier printed when the analysis was saved
    """
    config = get_config_manager().load_config()
    aggregate = AnalysisStore(config.storage.db_path).get_analysis(analysis_id)
    if aggregate is None:
        raise ValueError(f"No analysis found with ID {analysis_id}")

    if output_format == "json":
        print(output_formatter.format_json_output(aggregate))
    else:
        print(output_formatter.format_text_output(aggregate, verbose))


@main.command()
@click.option("--limit", default=20, show_default=True, help="Number of analyses")
@handle_cli_errors
def history(limit: int) -> None:
    """List recently stored analyses."""
    config = get_config_manager().load_config()
    analyses = AnalysisStore(config.storage.db_path).list_analyses(limit)
    if not analyses:
        print("No stored analyses.")
        return

    for analysis in analyses:
        partial = " (partial)" if analysis["is_partial"] else ""
        print(
            f"{analysis['analysis_id']}  {analysis['created_at']}  "
            f"{analysis['input_id']}  {analysis['total_references']} refs, "
            f"{analysis['high_risk_count']} high risk, "
            f"{analysis['retracted_count']} retracted{partial}"
        )


@main.command()
@click.argument("query")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@handle_cli_errors
def search(query: str, as_json: bool) -> None:
    """Search OpenAlex for papers by title or DOI.

    QUERY: Title words or a DOI
    """
    openalex = get_config_manager().load_config().service("openalex")

    async def _search() -> list[Any]:
        async with OpenAlexClient(
            email=openalex.email,
            timeout=openalex.timeout,
            base_url=openalex.base_url or OPENALEX_BASE_URL,
        ) as client:
            return await client.search_works(query)

    works = asyncio.run(_search())
    if as_json:
        print(json.dumps([work.model_dump() for work in works], indent=2))
    else:
        print(output_formatter.format_search_results(works))


@main.command(name="import-watchlist")
@click.argument(
    "category", type=click.Choice([category.value for category in WatchlistCategory])
)
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--source", default=None, help="List name recorded on each entry")
@handle_cli_errors
def import_watchlist(category: str, file_path: str, source: str | None) -> None:
    """Import a watchlist CSV into the local database.

    CATEGORY: Watchlist category to fill
    FILE_PATH: CSV file with a header row
    """
    config = get_config_manager().load_config()
    store = SQLiteWatchlistStore(config.storage.db_path)
    inserted = store.import_csv(WatchlistCategory(category), Path(file_path), source)
    print(f"Imported {inserted} entries into {category}")


@main.command()
@handle_cli_errors
def status() -> None:
    """Show watchlist entry counts per category."""
    config = get_config_manager().load_config()
    counts = SQLiteWatchlistStore(config.storage.db_path).count_entries()

    print(f"Database: {config.storage.db_path}")
    print("Watchlists:")
    for category, count in counts.items():
        print(f"  {category}: {count}")
    if not any(counts.values()):
        print("No watchlists loaded. Use 'predcheck import-watchlist' to add some.")


@main.command()
@click.option(
    "--init",
    "init_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write a default configuration file to this path instead",
)
@handle_cli_errors
def config(init_path: str | None) -> None:
    """Show the complete current configuration."""
    manager = get_config_manager()
    if init_path:
        manager.create_default_config(Path(init_path))
        print(f"Default configuration written to {init_path}")
        return
    print(manager.show_config())


if __name__ == "__main__":
    main()

"""Command line interface for dsearch."""

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from functools import partial
from importlib.metadata import PackageNotFoundError, version

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from dsearch.client import DevDocsClient
from dsearch.config import Settings, migrate_data_dir
from dsearch.content import ContentLoader, ContentResolver
from dsearch.docset import Docset, discover
from dsearch.errors import DsearchError, SearchError, StoreError
from dsearch.installer import DevDocsInstaller, InstallReport, parse_doc_slug
from dsearch.models import SearchResult
from dsearch.render import ContentRenderer, RenderFormat
from dsearch.search import CandidateSource, IndexSource, SearchEngine
from dsearch.store import DocumentStore

logger = logging.getLogger(__name__)

try:
    __version__ = version("dsearch")
except PackageNotFoundError:
    __version__ = "dev"

COMMANDS = ("search", "list", "available", "install", "uninstall", "version")
AVAILABLE_QUERY_LIMIT = 50


@dataclass
class AppContext:
    """Objects shared by the commands of one invocation."""

    settings: Settings
    store: DocumentStore
    console: Console
    err_console: Console


def format_bytes(size: int) -> str:
    """Format a byte count using binary units, e.g. ``1.5 MiB``."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    value = float(size)
    for prefix in "KMGTPE":
        value /= unit
        if value < unit:
            break
    return f"{value:.1f} {prefix}iB"


def configure_logging(level: str, console: Console) -> None:
    """Route log records to stderr through rich.

    Args:
        level: Logging level name.
        console: Console writing to stderr.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _split_docs(values: list[str] | None) -> list[str]:
    """Flatten repeated and comma-separated ``--doc`` values into slugs."""
    slugs = []
    for value in values or []:
        slugs.extend(parse_doc_slug(part.strip()) for part in value.split(",") if part.strip())
    return slugs


def load_search_engine(
    store: DocumentStore,
    docsets: list[Docset],
    doc_filter: list[str],
    limit: int,
) -> tuple[SearchEngine, ContentResolver]:
    """Load installed docs into a search engine and matching content resolver.

    Only the filtered docs are loaded when a filter is given.

    Args:
        store: Store of installed DevDocs docs.
        docsets: Discovered Dash docsets.
        doc_filter: Slugs to restrict loading to; empty loads everything.
        limit: Maximum number of results per search.

    Returns:
        Tuple of search engine and content resolver.

    Raises:
        DsearchError: If nothing is installed or nothing could be loaded.
    """
    installed = store.list_installed()
    if not installed and not docsets:
        msg = "no documentation installed. Run 'dsearch install <doc>' to install documentation"
        raise DsearchError(msg)

    wanted = set(doc_filter)
    sources: list[CandidateSource] = []
    loaders: dict[str, ContentLoader] = {}

    for slug in installed:
        if wanted and slug not in wanted:
            continue
        try:
            index = store.load_index(slug)
        except StoreError as e:
            logger.warning("Failed to load index for %s: %s", slug, e)
            continue
        sources.append(IndexSource(slug, index))
        loaders[slug] = partial(store.load_content, slug)

    for docset in docsets:
        if wanted and docset.source_id not in wanted:
            continue
        if docset.source_id in loaders:
            logger.warning("Skipping docset %s: an installed doc uses the same name", docset.path.name)
            continue
        sources.append(docset)
        loaders[docset.source_id] = docset.load_content

    for slug in doc_filter:
        if slug not in loaders:
            logger.warning("doc '%s' is not installed", slug)

    if not sources and not wanted:
        msg = "no documentation could be loaded"
        raise DsearchError(msg)

    return SearchEngine(sources, limit=limit), ContentResolver(loaders)


def print_result_list(console: Console, results: list[SearchResult]) -> None:
    """Print results as a numbered table without content.

    Args:
        console: Output console.
        results: Ranked results.
    """
    console.print(f"Found {len(results)} result(s):\n")
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("NAME")
    table.add_column("TYPE")
    table.add_column("DOC")
    table.add_column("SCORE", justify="right")
    for position, result in enumerate(results, start=1):
        table.add_row(str(position), result.name, result.type, result.source_id, f"{result.score:.2f}")
    console.print(table)


def cmd_search(args: argparse.Namespace, context: AppContext) -> int:
    """Search installed docs and show the best match."""
    settings = context.settings
    console = context.console
    doc_filter = _split_docs(args.doc)
    limit = args.limit if args.limit is not None else settings.limit
    output_format = RenderFormat(args.format) if args.format else settings.format

    engine, resolver = load_search_engine(context.store, discover(settings.docsets_dir), doc_filter, limit)
    results, warning = engine.search(args.query, doc_filter or None)

    if warning and not args.json:
        context.err_console.print(f"[yellow]Warning:[/yellow] {escape(warning)}\n", soft_wrap=True)

    if args.json:
        sys.stdout.write(json.dumps([result.to_dict() for result in results], indent=2) + "\n")
        return 0

    if args.list:
        print_result_list(console, results)
        return 0

    if not results:
        console.print("No results found.")
        return 0

    result = results[0]
    console.print(f"\n[bold]{escape(result.name)}[/bold] {escape(f'[{result.type}]')}", highlight=False)
    console.print(f"  Doc: {result.source_id}", markup=False, highlight=False)
    console.print(f"  Score: {result.score:.2f}", markup=False, highlight=False)
    console.print(f"  Path: {result.path}", markup=False, highlight=False)
    console.print("\n--- Content ---")

    rendered = ContentRenderer(output_format).render(resolver.resolve(result))
    if not args.full and len(rendered) > settings.max_content_length:
        rendered = rendered[: settings.max_content_length] + "\n\n... (truncated)"

    console.print(rendered, markup=False, highlight=False, soft_wrap=True)
    return 0


def cmd_list(args: argparse.Namespace, context: AppContext) -> int:
    """List installed documentation."""
    store = context.store
    console = context.console
    slugs = store.list_installed()
    docsets = discover(context.settings.docsets_dir)

    if not slugs and not docsets:
        console.print("No documentation installed.")
        console.print(f"\nDocs directory: {store.docs_dir}", markup=False)
        console.print("\nTo install documentation, run:\n  dsearch install <doc-name>")
        console.print("\nTo see available documentation:\n  dsearch available")
        return 0

    manifest = {doc.slug: doc for doc in store.load_manifest() or []}

    if slugs:
        table = Table(box=box.SIMPLE, header_style="bold")
        for column in ("NAME", "SLUG", "VERSION", "ENTRIES", "SIZE"):
            table.add_column(column)
        for slug in slugs:
            try:
                index = store.load_index(slug)
            except StoreError as e:
                logger.warning("%s", e)
                continue
            meta = store.load_meta(slug)
            doc = manifest.get(slug)
            table.add_row(
                doc.name if doc else slug,
                slug,
                (doc.display_version if doc else "") or "unknown",
                str(len(index.entries)),
                format_bytes(meta.db_size) if meta else "-",
            )
        console.print(table)
        console.print(f"{len(slugs)} documentation set(s) installed in {store.docs_dir}", markup=False)

    if docsets:
        table = Table(title="Dash docsets", box=box.SIMPLE, header_style="bold")
        for column in ("NAME", "ID", "VERSION", "ENTRIES", "INDEX"):
            table.add_column(column)
        for docset in docsets:
            table.add_row(
                docset.name, docset.source_id, docset.version, str(docset.entry_count), docset.schema.value
            )
        console.print(table)

    return 0


def _make_installer(context: AppContext) -> DevDocsInstaller:
    """Build an installer talking to the configured DevDocs endpoints.

    Args:
        context: Application context.

    Returns:
        DevDocsInstaller instance.
    """
    settings = context.settings
    client = DevDocsClient(
        manifest_url=settings.manifest_url,
        content_url=settings.content_url,
        timeout=settings.request_timeout,
        user_agent=f"dsearch/{__version__}",
    )
    return DevDocsInstaller(client, context.store)


def cmd_available(args: argparse.Namespace, context: AppContext) -> int:
    """List documentation available from DevDocs."""
    console = context.console
    manifest = _make_installer(context).get_manifest(refresh=args.refresh)
    if not manifest:
        console.print("No documentation available.")
        return 0

    query = (args.query or "").lower()
    console.print(f"Available documentation ({len(manifest)} total):")

    current_letter = ""
    shown = 0
    for doc in sorted(manifest, key=lambda item: item.name.lower()):
        if query and query not in doc.name.lower() and query not in doc.slug.lower():
            continue
        letter = doc.name[:1].upper()
        if letter and letter != current_letter:
            current_letter = letter
            console.print(escape(f"\n[{letter}]"))
        alias = f"[{doc.alias}]" if doc.alias else ""
        console.print(
            f"  {doc.name:<30} {doc.slug:<20} {doc.display_version:<15} {format_bytes(doc.db_size):>10} {alias}",
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
        shown += 1
        if query and shown >= AVAILABLE_QUERY_LIMIT:
            console.print(f"\n... (showing first {AVAILABLE_QUERY_LIMIT} matches)")
            break

    if not query:
        console.print("\nTo install documentation, run:")
        console.print("  dsearch install <doc-name>              # Install latest version", markup=False)
        console.print("  dsearch install <doc-name>@<version>    # Install specific version (e.g., react@18)", markup=False)
    return 0


def _report_failures(context: AppContext, report: InstallReport, action: str) -> int:
    """Print the failures of an install or uninstall run.

    Args:
        context: Application context.
        report: Outcome of the run.
        action: Verb used in the summary line.

    Returns:
        Exit status: 0 if nothing failed, 1 otherwise.
    """
    if report.ok:
        return 0
    err_console = context.err_console
    err_console.print(f"\n{len(report.failures)} {action}(s) failed:")
    for failure in report.failures:
        err_console.print(f"  - {failure}", markup=False, soft_wrap=True)
    return 1


def cmd_install(args: argparse.Namespace, context: AppContext) -> int:
    """Install documentation from DevDocs."""
    report = _make_installer(context).install(args.docs, force=args.force)
    for slug in report.installed:
        context.console.print(f"Successfully installed {slug}", markup=False)
    for slug in report.skipped:
        context.console.print(f"{slug} is already up to date (use --force to reinstall)", markup=False)
    return _report_failures(context, report, "installation")


def cmd_uninstall(args: argparse.Namespace, context: AppContext) -> int:
    """Remove installed documentation."""
    report = _make_installer(context).uninstall(args.docs)
    for slug in report.removed:
        context.console.print(f"Successfully uninstalled {slug}", markup=False)
    return _report_failures(context, report, "uninstallation")


def cmd_version(args: argparse.Namespace, context: AppContext) -> int:
    """Print the program version."""
    context.console.print(f"dsearch {__version__}", highlight=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all sub-commands."""
    # Sub-command -v must not reset a -v given before the command.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="enable debug logging")

    parser = argparse.ArgumentParser(
        prog="dsearch",
        description="Search API documentation offline.",
        epilog=(
            "examples:\n"
            "  dsearch useState              search all installed docs\n"
            "  dsearch useState -d react     search only the React docs\n"
            "  dsearch useState --format md  show content as markdown\n"
            "  dsearch useState --json       print results as JSON"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    search = subparsers.add_parser("search", parents=[common], help="search installed documentation (default)")
    search.add_argument("query", help="fuzzy query matched against entry names")
    search.add_argument("-d", "--doc", action="append", help="filter to specific doc(s); repeatable or comma-separated")
    search.add_argument("-f", "--format", choices=[fmt.value for fmt in RenderFormat], help="output format")
    search.add_argument("-l", "--limit", type=int, help="maximum number of results")
    search.add_argument("--list", action="store_true", help="list results only, don't show content")
    search.add_argument("--full", action="store_true", help="show full content without truncation")
    search.add_argument("--json", action="store_true", help="output results as JSON")
    search.set_defaults(handler=cmd_search)

    list_parser = subparsers.add_parser("list", parents=[common], help="list installed documentation")
    list_parser.set_defaults(handler=cmd_list)

    available = subparsers.add_parser("available", parents=[common], help="list documentation available from DevDocs")
    available.add_argument("query", nargs="?", help="only show docs whose name contains this text")
    available.add_argument("--refresh", action="store_true", help="fetch the catalog again instead of the cached copy")
    available.set_defaults(handler=cmd_available)

    install = subparsers.add_parser("install", parents=[common], help="install documentation from DevDocs")
    install.add_argument("docs", nargs="+", metavar="DOC", help="doc name, optionally name@version")
    install.add_argument("--force", action="store_true", help="reinstall docs that are already up to date")
    install.set_defaults(handler=cmd_install)

    uninstall = subparsers.add_parser("uninstall", parents=[common], help="remove installed documentation")
    uninstall.add_argument("docs", nargs="+", metavar="DOC", help="doc name, optionally name@version")
    uninstall.set_defaults(handler=cmd_uninstall)

    version_parser = subparsers.add_parser("version", parents=[common], help="print version information")
    version_parser.set_defaults(handler=cmd_version)

    return parser


def _normalise_argv(argv: list[str]) -> list[str]:
    """Run ``search`` when the first positional argument is not a command."""
    if argv[:1] in (["-h"], ["--help"]):
        return argv
    first = next((arg for arg in argv if not arg.startswith("-")), None)
    if first is None or first in COMMANDS:
        return argv
    return ["search", *argv]


def main(argv: list[str] | None = None) -> int:
    """Run the command line interface.

    Args:
        argv: Arguments without the program name; defaults to ``sys.argv[1:]``.

    Returns:
        Process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(_normalise_argv(list(sys.argv[1:] if argv is None else argv)))
    if getattr(args, "handler", None) is None:
        parser.print_help()
        return 0

    settings = Settings()
    console = Console()
    err_console = Console(stderr=True)
    configure_logging("DEBUG" if args.verbose else settings.log_level, err_console)

    try:
        settings.ensure_dirs()
    except OSError as e:
        logger.warning("Could not create directories: %s", e)
    migrate_data_dir(settings.data_dir)

    context = AppContext(
        settings=settings,
        store=DocumentStore(settings.docs_dir, settings.cache_dir),
        console=console,
        err_console=err_console,
    )

    try:
        return args.handler(args, context)
    except SearchError as e:
        err_console.print(str(e), markup=False, soft_wrap=True)
        return 1
    except DsearchError as e:
        err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", soft_wrap=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())

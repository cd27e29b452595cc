"""CLI for newsgraph."""

import asyncio
import json
import logging
from pathlib import Path

import click

from .graph.memory_storage import InMemoryStorage, load_snapshot_file
from .graph.neo4j_storage import Neo4jStorage
from .retrieval import listing, pipeline
from .retrieval.errors import RetrievalError
from .settings import load_settings


snapshot_option = click.option(
    "--snapshot",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Query a JSON/YAML snapshot in memory instead of Neo4j",
)
uri_option = click.option("--uri", default=None, help="Neo4j URI (overrides settings)")


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML configuration file (defaults to $NEWSGRAPH_CONFIG)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str):
    """News Graph - related-article discovery over a property graph."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings, config = load_settings(config_path)
    ctx.obj = {"settings": settings, "config": config}


def _open_storage(ctx: click.Context, snapshot: Path | None, uri: str | None):
    if snapshot is not None:
        return InMemoryStorage.from_file(snapshot)
    settings = ctx.obj["settings"].with_uri(uri)
    click.echo(f"Connecting to Neo4j: {settings.uri}", err=True)
    return Neo4jStorage.from_settings(settings)


def _emit(result) -> None:
    click.echo(json.dumps(result, indent=2, ensure_ascii=False, default=str))


@cli.command("import-graph")
@click.argument(
    "snapshot_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@uri_option
@click.option(
    "--apply",
    is_flag=True,
    help="Actually import. Without this flag, only show what would happen.",
)
@click.option(
    "--clear-first/--no-clear-first",
    default=False,
    help="Clear current graph before import",
)
@click.pass_context
def import_graph(
    ctx: click.Context,
    snapshot_file: Path,
    uri: str | None,
    apply: bool,
    clear_first: bool,
):
    """Import a node/edge snapshot (JSON or YAML) into Neo4j."""
    try:
        snapshot = load_snapshot_file(snapshot_file)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    node_count = len(snapshot.get("nodes", []))
    edge_count = len(snapshot.get("edges", []))
    click.echo(f"Snapshot {snapshot_file}: nodes={node_count} edges={edge_count}")

    if not apply:
        click.echo("Dry run only. Re-run with --apply to import.")
        return

    if clear_first:
        typed = click.prompt(
            "This will DELETE ALL current graph data. Type IMPORT to continue",
            default="",
        )
        if typed != "IMPORT":
            click.echo("Aborted import.")
            raise SystemExit(1)

    storage = _open_storage(ctx, None, uri)
    try:
        result = storage.import_snapshot(snapshot, clear_first=clear_first)
    finally:
        storage.close()

    click.echo(f"Imported nodes={result['nodes']} edges={result['edges']}")


@cli.command()
@click.argument("article_key", type=str)
@click.option("--depth", "-d", type=int, default=1, help="Traversal depth")
@click.option("--edge-type", "-e", required=True, help="Similarity edge type")
@click.option("--threshold", "-t", type=float, required=True, help="Strict sim_value bound")
@click.option("--redact/--full", default=False, help="Strip identifying fields")
@snapshot_option
@uri_option
@click.pass_context
def similar(
    ctx: click.Context,
    article_key: str,
    depth: int,
    edge_type: str,
    threshold: float,
    redact: bool,
    snapshot: Path | None,
    uri: str | None,
):
    """Articles reached over similarity edges under a threshold."""
    operation = (
        pipeline.get_crlr_related_articles_unset
        if redact
        else pipeline.get_crlr_related_articles
    )
    storage = _open_storage(ctx, snapshot, uri)
    try:
        _emit(
            operation(
                article_key,
                depth,
                edge_type,
                threshold,
                storage=storage,
                config=ctx.obj["config"],
            )
        )
    except RetrievalError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        storage.close()


@cli.command("path-rank")
@click.argument("article_key", type=str)
@click.option("--depth", "-d", type=int, default=2, help="Traversal depth")
@click.option("--category", "-c", required=True, help="Required category")
@click.option("--window", "-w", type=float, required=True, help="Window half-width (seconds)")
@click.option("--limit", "-n", type=int, default=10, help="Number of results")
@click.option("--origin", "origins", multiple=True, help="Accepted edge origin (repeatable)")
@snapshot_option
@uri_option
@click.pass_context
def path_rank(
    ctx: click.Context,
    article_key: str,
    depth: int,
    category: str,
    window: float,
    limit: int,
    origins: tuple[str, ...],
    snapshot: Path | None,
    uri: str | None,
):
    """Articles ranked by the number of qualifying paths reaching them."""
    storage = _open_storage(ctx, snapshot, uri)
    try:
        ranked = pipeline.get_path_related_articles(
            depth,
            category,
            article_key,
            window,
            limit,
            list(origins) or None,
            storage=storage,
            config=ctx.obj["config"],
        )
    except RetrievalError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        storage.close()

    for item in ranked:
        title = (item.get("default") or {}).get("title", "")
        click.echo(f"{item['no_of_paths']:>4}  {item['_key']}  {title}")


@cli.command("related-docs")
@click.argument("query_article_id", type=str)
@click.option("--depth", "-d", type=int, default=2, help="Traversal depth")
@click.option("--edge-type", "-e", required=True, help="Edge type to follow")
@click.option("--limit", "-n", type=int, default=10, help="Number of results")
@snapshot_option
@uri_option
@click.pass_context
def related_docs(
    ctx: click.Context,
    query_article_id: str,
    depth: int,
    edge_type: str,
    limit: int,
    snapshot: Path | None,
    uri: str | None,
):
    """Articles ranked by paths grouped on their third vertex."""
    storage = _open_storage(ctx, snapshot, uri)
    try:
        _emit(
            pipeline.get_path_related_docs(
                query_article_id,
                depth,
                edge_type,
                limit,
                storage=storage,
                config=ctx.obj["config"],
            )
        )
    except RetrievalError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        storage.close()


@cli.command()
@click.argument("key", type=str)
@click.option(
    "--detail",
    type=click.Choice(["minimal", "summary", "full"]),
    default="full",
    help="Projection detail level",
)
@snapshot_option
@uri_option
@click.pass_context
def inspect(
    ctx: click.Context,
    key: str,
    detail: str,
    snapshot: Path | None,
    uri: str | None,
):
    """Show an article and the categories it carries."""
    storage = _open_storage(ctx, snapshot, uri)
    try:
        article = listing.article_by_key(
            key, detail, storage=storage, config=ctx.obj["config"]
        )
        if article is None:
            click.echo(f"Article not found: {key}")
            return
        _emit(article)
        categories = listing.list_categories(
            key, storage=storage, config=ctx.obj["config"]
        )
        click.echo(f"Categories: {', '.join(categories['categories']) or '-'}")
        click.echo(f"Subcategories: {', '.join(categories['subcategories']) or '-'}")
    except RetrievalError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        storage.close()


@cli.command("mcp-server")
@uri_option
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse"]),
    default="stdio",
    help="MCP transport type",
)
@click.pass_context
def mcp_server(ctx: click.Context, uri: str | None, transport: str):
    """Run the News Graph MCP server.

    Exposes related-article discovery and listing operations as MCP tools.
    """
    from .mcp.server import init_server, mcp

    settings = ctx.obj["settings"].with_uri(uri)
    click.echo(f"Connecting to Neo4j: {settings.uri}", err=True)

    init_server(settings, ctx.obj["config"])

    click.echo(f"Starting MCP server ({transport} transport)...", err=True)

    if transport == "stdio":
        asyncio.run(mcp.run_stdio_async())
    else:
        asyncio.run(mcp.run_sse_async())


if __name__ == "__main__":
    cli()

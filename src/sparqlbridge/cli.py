"""Command line interface for :mod:`sparqlbridge`."""

import json
from typing import Optional

import click

from .backend.config import DEFAULT_DATABASE_PATH
from .cache_store import OntologyCacheStore
from .database import Database
from .errors import GatewayError
from .gateway import QueryGateway
from .models import CacheProgress, SearchOptions
from .registry import InMemoryBackendRegistry, InMemoryCredentialStore, load_backends_file
from .version import VERSION

__all__ = [
    "main",
]


def _gateway(ctx: click.Context) -> QueryGateway:
    """Build the gateway on first use and close it with the context."""
    obj = ctx.ensure_object(dict)
    if "gateway" not in obj:
        registry = InMemoryBackendRegistry()
        credentials = InMemoryCredentialStore()
        if obj.get("backends_file"):
            try:
                load_backends_file(obj["backends_file"], registry, credentials)
            except GatewayError as e:
                _fail(e)
        store = OntologyCacheStore(Database(obj["db_path"]))
        gateway = QueryGateway(registry, credentials, store)
        ctx.call_on_close(gateway.close)
        obj["gateway"] = gateway
    return obj["gateway"]


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    raise click.Abort()


@click.group()
@click.version_option(VERSION)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--backends",
    "backends_file",
    envvar="BACKENDS_FILE",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file describing the backends",
)
@click.option(
    "--db",
    "db_path",
    envvar="DATABASE_PATH",
    default=DEFAULT_DATABASE_PATH,
    show_default=True,
    help="SQLite database holding the ontology caches",
)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    backends_file: Optional[str],
    db_path: str,
) -> None:
    r"""sparqlbridge - one query contract for many SPARQL backends.

    Run queries against SPARQL 1.1 endpoints, GraphDB, Graph Studio and
    Mobi, and keep a searchable cache of each backend's ontology.


    Typical workflow: backends > validate > query, cache refresh > cache search
    """
    import logging

    # Ensure context object exists
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["backends_file"] = backends_file
    ctx.obj["db_path"] = db_path

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )
        # Also set the sparqlbridge logger specifically
        logging.getLogger("sparqlbridge").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s", force=True)


@main.command()
@click.pass_context
def backends(ctx: click.Context) -> None:
    """List the configured backends."""
    gateway = _gateway(ctx)
    items = gateway.registry.list_backends()
    if not items:
        click.echo("No backends configured (use --backends FILE)")
        return
    for backend in items:
        cache = "cache on" if backend.cache_config and backend.cache_config.enabled else "cache off"
        click.echo(f"{backend.id}  [{backend.kind.value}, {cache}]  {backend.endpoint}")


@main.command()
@click.argument("backend_id")
@click.pass_context
def validate(ctx: click.Context, backend_id: str) -> None:
    """Test connectivity to a backend."""
    result = _gateway(ctx).validate_backend(backend_id)
    if result.valid:
        click.echo(f"OK {backend_id} is reachable")
    else:
        _fail(Exception(result.error))


@main.command()
@click.argument("backend_id")
@click.argument("query_text", required=False)
@click.option(
    "--file",
    "-f",
    "query_file",
    type=click.File("r"),
    help="Read the query from a file ('-' for stdin)",
)
@click.pass_context
def query(
    ctx: click.Context,
    backend_id: str,
    query_text: Optional[str],
    query_file,
) -> None:
    """Run a SPARQL query against a backend.

    SELECT and ASK results are printed as JSON, CONSTRUCT and DESCRIBE
    results as Turtle.


    Example:
      sparqlbridge --backends backends.yaml query dbpedia "ASK { ?s ?p ?o }"
    """
    if query_file is not None:
        query_text = query_file.read()
    if not query_text:
        raise click.UsageError("Provide a query argument or --file")

    try:
        result = _gateway(ctx).execute_query(query_text, backend_id)
    except GatewayError as e:
        _fail(e)
        return

    if isinstance(result.data, str):
        click.echo(result.data)
    else:
        _echo_json(result.data)


# ── cache commands ────────────────────────────────────────────────


@main.group()
def cache() -> None:
    """Manage ontology caches."""


@cache.command("refresh")
@click.argument("backend_id")
@click.pass_context
def cache_refresh(ctx: click.Context, backend_id: str) -> None:
    """Fetch and store the ontology cache of a backend."""

    def report(progress: CacheProgress) -> None:
        if ctx.obj.get("verbose") and progress.current_type:
            click.echo(
                f"  {progress.status}: {progress.current_type} "
                f"({progress.fetched_count} elements so far)"
            )

    click.echo(f"Refreshing ontology cache for: {backend_id}")
    try:
        result = _gateway(ctx).refresh_cache(backend_id, report)
    except GatewayError as e:
        _fail(e)
        return

    stats = result.metadata.stats
    click.echo(
        f"OK {stats.class_count} classes, {stats.property_count} properties, "
        f"{stats.individual_count} individuals, {stats.namespace_count} namespaces"
    )


@cache.command("refresh-stale")
@click.pass_context
def cache_refresh_stale(ctx: click.Context) -> None:
    """Refresh every stale cache of a cache-enabled backend."""
    refreshed = _gateway(ctx).refresh_stale_caches(wait=True)
    if refreshed:
        click.echo(f"Refreshed: {', '.join(refreshed)}")
    else:
        click.echo("No stale caches")


@cache.command("status")
@click.argument("backend_id")
@click.pass_context
def cache_status(ctx: click.Context, backend_id: str) -> None:
    """Show whether a backend's cache exists and is fresh."""
    gateway = _gateway(ctx)
    validation = gateway.validate_cache_freshness(backend_id)
    if not validation.exists:
        click.echo(f"No cache for {backend_id}")
        return

    state = "valid" if validation.valid else "stale"
    click.echo(f"Cache for {backend_id}: {state}")
    click.echo(f"  Age: {validation.age // 1000}s (TTL {validation.ttl // 1000}s)")
    stats = gateway.store.get_stats(backend_id)
    if stats is not None:
        click.echo(
            f"  Elements: {stats.total_count} "
            f"({stats.class_count} classes, {stats.property_count} properties, "
            f"{stats.individual_count} individuals)"
        )
        if stats.size_bytes is not None:
            click.echo(f"  Size: {stats.size_bytes} bytes")


@cache.command("search")
@click.argument("backend_id")
@click.argument("text")
@click.option(
    "--type",
    "types",
    multiple=True,
    type=click.Choice(["class", "property", "individual"]),
    help="Restrict to element kind(s)",
)
@click.option("--limit", type=int, default=50, show_default=True)
@click.option("--case-sensitive", is_flag=True)
@click.option("--prefix-only", is_flag=True, help="Match prefixes only")
@click.pass_context
def cache_search(
    ctx: click.Context,
    backend_id: str,
    text: str,
    types: tuple[str, ...],
    limit: int,
    case_sensitive: bool,
    prefix_only: bool,
) -> None:
    """Search the cached elements of a backend."""
    options = SearchOptions(
        query=text,
        types=list(types) or None,
        limit=limit,
        case_sensitive=case_sensitive,
        prefix_only=prefix_only,
    )
    results = _gateway(ctx).search_cached_elements(backend_id, options)
    if not results:
        click.echo("No matches")
        return
    for r in results:
        label = f"  ({r.element.label})" if r.element.label else ""
        click.echo(f"{r.score:.1f}  {r.element.type:<10}  {r.element.iri}{label}")


@cache.command("get")
@click.argument("backend_id")
@click.argument("iri")
@click.option("--type", "element_type", type=click.Choice(["class", "property", "individual"]))
@click.pass_context
def cache_get(
    ctx: click.Context,
    backend_id: str,
    iri: str,
    element_type: Optional[str],
) -> None:
    """Show one cached element as JSON."""
    element = _gateway(ctx).get_cached_element(backend_id, iri, element_type)
    if element is None:
        _fail(Exception(f"Element not found: {iri}"))
        return
    _echo_json(element.model_dump(by_alias=True, mode="json"))


@cache.command("clear")
@click.argument("backend_id", required=False)
@click.option("--all", "clear_all", is_flag=True, help="Clear every cache")
@click.pass_context
def cache_clear(ctx: click.Context, backend_id: Optional[str], clear_all: bool) -> None:
    """Delete one cache, or all of them with --all."""
    gateway = _gateway(ctx)
    if clear_all:
        gateway.clear_all_caches()
        click.echo("Cleared all caches")
    elif backend_id:
        if gateway.invalidate_cache(backend_id):
            click.echo(f"Cleared cache for {backend_id}")
        else:
            click.echo(f"No cache for {backend_id}")
    else:
        raise click.UsageError("Give a BACKEND_ID or --all")


@cache.command("list")
@click.pass_context
def cache_list(ctx: click.Context) -> None:
    """List backends that have a stored cache."""
    for backend_id in _gateway(ctx).list_cached_backend_ids():
        click.echo(backend_id)


@cache.command("test-query")
@click.argument("backend_id")
@click.argument("query_text")
@click.pass_context
def cache_test_query(ctx: click.Context, backend_id: str, query_text: str) -> None:
    """Check an edited discovery query and count its results."""
    result = _gateway(ctx).test_cache_query(backend_id, query_text)
    if not result.valid:
        _fail(Exception(result.error))
        return
    click.echo(f"OK {result.result_count} results")


if __name__ == "__main__":
    main()

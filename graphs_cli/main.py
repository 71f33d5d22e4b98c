from __future__ import annotations

import json
from typing import Any, Optional

import click

from graphs_api.app.errors import GraphException
from graphs_api.app.schemas import GraphRequest
from graphs_api.app.services.cache import build_graph_key, graph_namespace, request_hash

from .config import ClientConfigError, get_settings
from .http_client import APIClient
from .options import build_graph_params, graph_options


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _client(ctx: click.Context) -> APIClient:
    try:
        settings = get_settings(base_url=ctx.obj["base_url"], token=ctx.obj["token"])
    except ClientConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    return APIClient(settings=settings)


@click.group()
@click.option("--base-url", envvar="GRAPHS_API_BASE_URL", help="API base URL (env: GRAPHS_API_BASE_URL)")
@click.option("--token", envvar="GRAPHS_API_TOKEN", help="API token for Authorization header")
@click.pass_context
def cli(ctx: click.Context, base_url: Optional[str], token: Optional[str]) -> None:
    """Graphs API command line wrapper."""

    ctx.obj = {"base_url": base_url, "token": token}


@cli.command()
@graph_options
@click.option("--no-cache", is_flag=True, help="Bypass the server-side result cache.")
@click.pass_context
def graph(ctx: click.Context, no_cache: bool, **params: Any) -> None:
    """Fetch a rendered graph."""

    query = build_graph_params(**params)
    if no_cache:
        query["no_cache"] = "true"
    _echo_json(_client(ctx).get("/api/v1/graphs", params=query))


@cli.command()
@click.pass_context
def types(ctx: click.Context) -> None:
    """List registered graph types."""

    _echo_json(_client(ctx).get("/api/v1/graphs/types"))


@cli.command("cache-key")
@graph_options
def cache_key(**params: Any) -> None:
    """Print the cache key a graph request would be stored under."""

    graph_type = params.pop("graph_type")
    technical_period = params.pop("technical_period")
    try:
        request = GraphRequest.from_query(
            graph_type,
            technical_period=str(technical_period) if technical_period is not None else None,
            **params,
        )
    except GraphException as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(build_graph_key(graph_namespace(request.graph_type), request_hash(request)))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

"""
Click CLI for awsimporter.
"""

import json
import sys
from typing import Optional

import click
import yaml

from .config import Settings, configure_logging, load_settings
from .engine import Outcome, ReconciliationEngine
from .errors import ImporterError
from .filters import TagPredicate, implicit_predicates
from .gateway import Ambiguous, Found, TagIndexGateway, new_tagging_client
from .input import Strategy
from .resources import Resource
from .tags import parse_tag_filters


def build_engine(settings: Settings) -> ReconciliationEngine:
    gateway = TagIndexGateway(new_tagging_client(settings), identity_tag=settings.external_name_tag)
    return ReconciliationEngine(gateway, settings)


@click.group()
@click.option("--debug", "-d", is_flag=True, help="Emit debug logs in addition to info logs.")
@click.option("--region", help="AWS region (defaults to AWS_REGION)")
@click.pass_context
def main(ctx, debug: bool, region: Optional[str]):
    """
    awsimporter - adopt pre-existing AWS resources into compositions by their tags.
    """
    try:
        settings = load_settings()
    except ValueError as e:
        raise click.UsageError(str(e))
    if debug:
        settings.debug = True
    if region:
        settings.region = region
    configure_logging(settings.debug)
    ctx.obj = settings


@main.command()
@click.argument("request_file", type=click.File("r"))
@click.pass_obj
def run(settings: Settings, request_file):
    """
    Run one reconciliation pass for a RunFunctionRequest (JSON or YAML, '-' for stdin).

    Prints the RunFunctionResponse as JSON. Exits 1 when the pass failed.
    """
    try:
        req = yaml.safe_load(request_file)
    except yaml.YAMLError as e:
        click.echo(f"Cannot parse request: {e}", err=True)
        sys.exit(2)
    if not isinstance(req, dict):
        click.echo("Cannot parse request: expected an object", err=True)
        sys.exit(2)

    result = build_engine(settings).run_function(req)
    click.echo(json.dumps(result.response.to_dict(), indent=2))
    if result.outcome is Outcome.FAILED:
        sys.exit(1)


@main.command()
@click.option("--filter", "filter_strings", multiple=True, help="Tag filter 'key=value' (repeatable)")
@click.option("--name", help="Resource metadata.name, matched against the crossplane-name tag")
@click.option("--group-kind", help="Lower-cased Kind.group, matched against the crossplane-kind tag")
@click.pass_obj
def lookup(settings: Settings, filter_strings: tuple, name: Optional[str], group_kind: Optional[str]):
    """
    Query the tag index directly and print the match.
    """
    try:
        filters = parse_tag_filters(list(filter_strings))
    except ImporterError as e:
        raise click.BadParameter(str(e), param_hint="--filter")
    if any(tf.strategy is Strategy.VALUE_PATH for tf in filters):
        raise click.BadParameter("'@path' values need a composite resource; use 'run'", param_hint="--filter")

    predicates = [TagPredicate(tf.key, (tf.value,)) for tf in filters]
    if name or group_kind:
        target = Resource(composition_name="", platform_name=name or "", group_kind=group_kind or "")
        predicates.extend(p for p in implicit_predicates(target) if p.values[0])
    if not predicates:
        raise click.UsageError("at least one of --filter, --name or --group-kind is required")

    gateway = TagIndexGateway(new_tagging_client(settings), identity_tag=settings.external_name_tag)
    try:
        result = gateway.query(predicates)
    except ImporterError as e:
        click.echo(json.dumps({"error": str(e)}))
        sys.exit(1)

    if isinstance(result, Found):
        click.echo(json.dumps({"result": "found", "identity": result.identity, "arn": result.resource_arn}))
    elif isinstance(result, Ambiguous):
        click.echo(json.dumps({"result": "ambiguous", "candidates": result.candidates}))
        sys.exit(1)
    else:
        click.echo(json.dumps({"result": "not_found"}))


@main.command()
@click.option("--host", help="Host to bind to (defaults to IMPORTER_HOST)")
@click.option("--port", type=int, help="Port to bind to (defaults to IMPORTER_PORT)")
@click.pass_obj
def serve(settings: Settings, host: Optional[str], port: Optional[int]):
    """
    Start the HTTP server.
    """
    import uvicorn
    from .api import app

    host = host or settings.host
    port = port or settings.port
    click.echo(f"Starting awsimporter on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="debug" if settings.debug else "info")


if __name__ == "__main__":
    main()

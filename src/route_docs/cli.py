"""CLI entry point for route-docs."""

import json
import logging
from pathlib import Path

import click
import yaml

from route_docs.config import get_settings, load_rules
from route_docs.exceptions import RouteDocsError
from route_docs.generator.assembler import EndpointAssembler
from route_docs.parser.base import EndpointDescriptor
from route_docs.reflection import InspectParameterSourceResolver, SimpleRoute, import_string
from route_docs.responses.resolver import ResponseResolver


def _load_routes(factory_path: str) -> list:
    """Call ``module:callable`` and accept routes or ``(uri, methods, handler)`` tuples."""
    factory = import_string(factory_path)
    routes = []
    for item in factory():
        if isinstance(item, tuple):
            uri, methods, handler = item
            item = SimpleRoute(uri, list(methods), handler)
        routes.append(item)
    return routes


def _dump(descriptors: list[EndpointDescriptor], fmt: str) -> str:
    data = [d.model_dump(mode="json") for d in descriptors]
    if fmt == "json":
        return json.dumps(data, indent=2, ensure_ascii=False)
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


@click.group()
def main():
    """Route Docs — extract endpoint documentation from route handlers."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("routes_factory")
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the endpoint descriptors.")
@click.option("--rules", "rules_path", default=None, type=click.Path(exists=True, path_type=Path), help="YAML file with bindings, headers and response_calls.")
@click.option("--dispatcher", default=None, help="module:callable returning the dispatcher used for response calls.")
@click.option("--input-base", "input_bases", multiple=True, help="module:Class of a structured-input base type.")
@click.option("--seed", type=int, default=None, help="Seed for example values.")
@click.option("--format", "fmt", default="yaml", type=click.Choice(["yaml", "json"]), help="Output format.")
def extract(
    routes_factory: str,
    output: Path,
    rules_path: Path | None,
    dispatcher: str | None,
    input_bases: tuple[str, ...],
    seed: int | None,
    fmt: str,
):
    """Document the routes returned by ROUTES_FACTORY (module:callable)."""
    settings = get_settings()
    if seed is not None:
        settings = settings.model_copy(update={"faker_seed": seed})

    try:
        rules = load_rules(rules_path) if rules_path else {}
        routes = _load_routes(routes_factory)
        dispatcher_obj = import_string(dispatcher)() if dispatcher else None
        bases = tuple(import_string(path) for path in input_bases)
    except RouteDocsError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Found {len(routes)} routes.")
    assembler = EndpointAssembler(
        settings=settings,
        resolver=ResponseResolver.default(settings, dispatcher=dispatcher_obj),
        source_resolver=InspectParameterSourceResolver(bases),
    )
    descriptors = assembler.assemble_all(routes, rules)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(_dump(descriptors, fmt), encoding="utf-8")
    click.echo(f"Endpoint descriptors saved to {output}")

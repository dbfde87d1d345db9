"""Capibara CLI - validate and inspect capability registry documents.

Commands:
    capibara validate   Validate a registry document
    capibara hash       Print the fingerprint of a capability set
    capibara lineage    Show the lineage containing a capability
    capibara export     Print the introspection export as JSON
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import yaml
from pydantic import ValidationError

from capibara.config import get_config
from capibara.errors import DeclarationError, IntrospectionDisabledError
from capibara.fingerprint import CapabilitySet
from capibara.graph.builder import build
from capibara.graph.model import CapabilityGraph
from capibara.negotiation.negotiator import CapabilityNegotiator
from capibara.registry.loader import RegistryLoader


def _load_graph(path: str) -> CapabilityGraph:
    """Load and build, exiting with every offender listed on failure."""
    try:
        document = RegistryLoader().load(Path(path))
    except (FileNotFoundError, TypeError, yaml.YAMLError, ValidationError) as exc:
        click.echo(f"Error: could not load registry {path}: {exc}", err=True)
        sys.exit(1)

    try:
        return build(document.capabilities)
    except DeclarationError as exc:
        click.echo(f"Invalid registry ({exc.kind.value}):", err=True)
        for offender in exc.offenders:
            click.echo(f"  - {offender}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(package_name="capibara")
@click.option("--log-level", type=click.Choice(["debug", "info", "warning", "error"]), default=None)
def main(log_level: Optional[str]):
    """Capibara - capability graph and negotiation engine."""
    level = log_level or get_config().log_level
    logging.basicConfig(level=level.upper(), format="%(levelname)s %(name)s: %(message)s")


@main.command("validate")
@click.argument("path", type=click.Path())
def validate_cmd(path: str):
    """Validate a registry document.

    Exits with status 1 and lists every offending capability when the
    document is invalid.

    Example:
        capibara validate capabilities.yaml
    """
    graph = _load_graph(path)
    click.echo(
        f"OK: {len(graph)} capabilities, {len(graph.roots())} features, "
        f"fingerprint {graph.fingerprint().encode()}"
    )


@main.command("hash")
@click.argument("path", type=click.Path())
@click.option("--only", "only", multiple=True, help="Hash only these capabilities (repeatable)")
@click.option("--headers", is_flag=True, help="Print the outbound negotiation fields")
def hash_cmd(path: str, only: Tuple[str, ...], headers: bool):
    """Print the fingerprint of the registry's active capability set.

    Example:
        capibara hash capabilities.yaml --only feed.cursor.v2
    """
    graph = _load_graph(path)
    try:
        negotiator = CapabilityNegotiator(graph, active=only or None)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if headers:
        for name, value in negotiator.outbound_headers().items():
            click.echo(f"{name}: {value}")
    else:
        click.echo(negotiator.get_capability_hash())


@main.command("lineage")
@click.argument("path", type=click.Path())
@click.argument("name")
def lineage_cmd(path: str, name: str):
    """Show the full lineage containing NAME, oldest first."""
    graph = _load_graph(path)
    if name not in graph:
        click.echo(f"Error: unknown capability '{name}'", err=True)
        sys.exit(1)

    for member in graph.chain(name):
        record = graph.get(member)
        marker = "*" if member == name else " "
        click.echo(f"{marker} {member}  ({record.introduced_in}, {record.status.value})")


@main.command("export")
@click.argument("path", type=click.Path())
@click.option("--active", multiple=True, help="Locally active capabilities (repeatable)")
def export_cmd(path: str, active: Tuple[str, ...]):
    """Print the introspection export as JSON."""
    graph = _load_graph(path)
    try:
        payload = CapabilityNegotiator(graph, active=active or None).export()
    except IntrospectionDisabledError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    click.echo(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
CLI for recorded API contracts

Commands:
    openapi   - Convert a recorded interchange document to OpenAPI 3
    summary   - Show examples and coverage per recorded operation

Usage:
    contract-recorder openapi build/api-spec/operations.json -o build/openapi/openapi3.json
    contract-recorder openapi build/api-spec/operations.json --format yaml --title "Cart API"
    contract-recorder summary build/api-spec/operations.json
"""

import json
import logging
import sys

import click

from . import __version__
from .config import OUTPUT_FORMATS, RecorderConfig
from .recording.emitter import SpecDocument
from .recording.openapi import render_openapi, to_openapi


def _load(cache_path: str) -> SpecDocument:
    try:
        return SpecDocument.load(cache_path)
    except ValueError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="contract-recorder")
@click.option("--log-level", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def cli(log_level):
    """Contract recorder CLI - turn recorded API exchanges into documentation inputs."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("openapi")
@click.argument("cache_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to file instead of stdout")
@click.option("--format", "fmt", type=click.Choice(OUTPUT_FORMATS), help="Output format (default: OPENAPI_FORMAT or json)")
@click.option("--title", help="API title (default: OPENAPI_TITLE)")
@click.option("--version", "api_version", help="API version (default: OPENAPI_VERSION)")
@click.option("--description", help="API description")
@click.option("--server", "servers", multiple=True, help="Server URL (repeatable)")
def openapi(cache_path, output, fmt, title, api_version, description, servers):
    """
    Convert a recorded interchange document to OpenAPI 3.

    CACHE_PATH: JSON document written by the recorder (--api-spec-out)
    """
    settings = RecorderConfig.from_env().openapi
    if fmt:
        settings.format = fmt
    if title:
        settings.title = title
    if api_version:
        settings.version = api_version
    if description:
        settings.description = description
    if servers:
        settings.servers = list(servers)

    document = _load(cache_path)
    if not len(document):
        click.secho("Warning: no operations recorded", fg="yellow", err=True)

    text = render_openapi(to_openapi(document, settings), settings.format)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Wrote {len(document)} operation(s) to {output}")
    else:
        click.echo(text, nl=False)


@cli.command("summary")
@click.argument("cache_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def summary(cache_path, output_json):
    """
    Show examples and coverage per recorded operation.

    CACHE_PATH: JSON document written by the recorder
    """
    document = _load(cache_path)

    rows = []
    for operation_id, op in document.to_dict().items():
        described = op.get("parameters", []) + op.get("requestFields", []) \
            + op.get("responseFields", []) + op.get("links", [])
        rows.append({
            "operationId": operation_id,
            "method": op["method"],
            "path": op["path"],
            "examples": op.get("coverage", {}).get("exampleCount", len(op.get("examples", []))),
            "observed": sum(1 for d in described if d.get("observed")),
            "declared": len(described),
            "undocumented": op.get("coverage", {}).get("undocumentedFields", []),
        })

    if output_json:
        click.echo(json.dumps(rows, indent=2))
        return

    click.echo("=" * 60)
    click.secho("RECORDED OPERATIONS", fg="cyan", bold=True)
    click.echo("=" * 60)
    for row in rows:
        complete = row["observed"] == row["declared"]
        click.echo(
            f"  {row['operationId']}: {row['method']} {row['path']} "
            f"examples={row['examples']} "
            + click.style(f"coverage={row['observed']}/{row['declared']}", fg="green" if complete else "yellow")
        )
        if row["undocumented"]:
            click.secho(f"    undocumented: {', '.join(row['undocumented'])}", fg="magenta")
    click.echo()
    click.echo(f"Total: {len(rows)} operation(s)")


def main():
    cli()


if __name__ == "__main__":
    main()

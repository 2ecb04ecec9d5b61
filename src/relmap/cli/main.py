"""
relmap CLI

Command-line interface for building function relationship maps.

Usage::

    relmap build inputs.json                 # Console report
    relmap build inputs.json -f json         # Full result as JSON
    relmap schema                            # Relationship vocabulary
    relmap health                            # Version and active settings
"""

import logging
import time
from pathlib import Path

import click

from relmap.core.config import RelationshipSchema, RelmapConfig
from relmap.core.formatting import ResultFormatter
from relmap.exceptions import ConfigError, InputFormatError


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(config: RelmapConfig, verbose: bool) -> None:
    """Set up logging for the CLI session."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="relmap")
@click.pass_context
def cli(ctx: click.Context):
    """relmap: infer how the functions of an API relate to each other."""
    ctx.ensure_object(dict)


# ---------------------------------------------------------------------------
# relmap build
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("input_file", metavar="INPUT", type=click.Path(exists=True, dir_okay=False))
@click.option("-f", "--format", "fmt",
              type=click.Choice(["console", "json", "compact"]),
              default="console", help="Output format.")
@click.option("-n", "--max-relationships", type=int, default=None,
              help="Relationships kept per function (default: $RELMAP_MAX_RELATIONSHIPS or 10).")
@click.option("--word-boundary", is_flag=True,
              help="Match function names only at identifier boundaries.")
@click.option("--progress", is_flag=True, help="Show a progress bar.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def build(input_file: str, fmt: str, max_relationships: int | None,
          word_boundary: bool, progress: bool, verbose: bool):
    """Build relationship maps from a JSON INPUT document.

    INPUT holds {"functions": [...], "corpus": [...]}.
    """
    config = RelmapConfig.from_env()
    if max_relationships is not None:
        config.max_relationships = max_relationships
    if word_boundary:
        config.word_boundary_matching = True
    _configure_logging(config, verbose)

    try:
        config.validate()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    # Lazy import so help text is instant
    from relmap.client import RelationshipEngine  # noqa: E402

    engine = RelationshipEngine(config=config)
    start_time = time.time()
    try:
        result = engine.build_from_file(Path(input_file), show_progress=progress)
    except (InputFormatError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    elapsed_time = time.time() - start_time

    formatter = ResultFormatter()
    if fmt == "json":
        click.echo(formatter.format_json(result))
        if not result.success:
            raise SystemExit(1)
        return

    if not result.success:
        click.echo(f"Error: {result.error.message}", err=True)
        for suggestion in result.error.suggestions:
            click.echo(f"  - {suggestion}", err=True)
        raise SystemExit(1)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    if fmt == "compact":
        click.echo(formatter.format_compact(result.data))
    else:
        click.echo(formatter.format_console(result.data, elapsed_time=elapsed_time))


# ---------------------------------------------------------------------------
# relmap schema
# ---------------------------------------------------------------------------

@cli.command()
def schema():
    """Describe relationship types, strength factors and categories."""
    click.echo(RelationshipSchema.format_for_console())


# ---------------------------------------------------------------------------
# relmap health
# ---------------------------------------------------------------------------

@cli.command()
def health():
    """Show the package version and active settings."""
    from relmap import health as relmap_health

    status = relmap_health()
    click.echo("─" * 50)
    click.echo("  RELMAP — Health")
    click.echo("─" * 50)
    for key, value in status.items():
        click.echo(f"  {key:<24} {value}")
    click.echo("─" * 50)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()

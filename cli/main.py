"""
Lot Trace CLI - Main Entry Point

Command-line interface for the lot traceability engine.
Built with Click for robust argument parsing and help generation.
"""

import sys
import logging
from pathlib import Path
from typing import Optional

import click

from core.exceptions import TraceabilityError

# Configure logging for CLI
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ltrace")


class LtraceContext:
    """Context object for passing global options to subcommands."""

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        config_path: Optional[Path] = None,
    ):
        self.verbose = verbose
        self.quiet = quiet
        self.config_path = config_path
        self._config = None

        # Engine modules log under "core.*"; keep them at the same level.
        root = logging.getLogger()
        if quiet:
            level = logging.WARNING
        elif verbose:
            level = logging.DEBUG
        else:
            level = logging.INFO
        logger.setLevel(level)
        root.setLevel(level)

    @property
    def config(self):
        """Lazy load configuration from file."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self):
        """Load configuration from file or defaults."""
        from core.trace import load_config

        if self.config_path:
            return load_config(self.config_path)

        # Check for default config locations
        default_paths = [
            Path.cwd() / ".ltrace.yaml",
            Path.cwd() / "ltrace.yaml",
            Path.home() / ".ltrace" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                if self.verbose:
                    logger.debug(f"Loading config from {path}")
                return load_config(path)

        return load_config(None)


class LtraceGroup(click.Group):
    """Custom Click group with improved help formatting."""

    def format_help(self, ctx, formatter):
        """Format help with custom banner and examples."""
        formatter.write_paragraph()
        formatter.write_text("Lot Trace - Input Provenance for Shipped Lots")
        formatter.write_paragraph()

        super().format_help(ctx, formatter)

        formatter.write_paragraph()
        formatter.write_text("Examples:")
        formatter.indent()

        examples = [
            "# Load a lineage document into a SQLite store",
            "ltrace load --document lineage.yaml --db lineage.db",
            "",
            "# Resolve the provenance of a shipment lot detail",
            "ltrace trace S1 --db lineage.db --format json --output S1.json",
            "",
            "# Check a geofence before registering it",
            "ltrace validate-geometry plot.geojson",
        ]

        for line in examples:
            formatter.write_text(line)

        formatter.dedent()


pass_context = click.make_pass_decorator(LtraceContext, ensure=True)


@click.group(cls=LtraceGroup)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose output (debug logging).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Quiet mode (only warnings and errors).",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file.",
)
@click.version_option(
    version="0.1.0",
    prog_name="ltrace",
    message="%(prog)s version %(version)s - Lot Trace CLI",
)
@click.pass_context
def app(ctx, verbose: bool, quiet: bool, config_path: Optional[Path]):
    """
    Lot Trace CLI - Input Provenance

    Reconstructs which inputs, applied at which geofenced locations,
    went into a shipped lot.
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet")

    ctx.obj = LtraceContext(
        verbose=verbose,
        quiet=quiet,
        config_path=config_path,
    )


def register_commands():
    """Register all subcommands."""
    from cli.commands import geometry, load, trace

    app.add_command(trace.trace)
    app.add_command(load.load)
    app.add_command(geometry.validate_geometry)


@app.command("info")
@pass_context
def info(ctx):
    """Display system information and configuration."""
    import platform
    import importlib.metadata

    click.echo("\n=== Lot Trace System Info ===\n")

    click.echo(f"Python: {platform.python_version()}")
    click.echo(f"Platform: {platform.system()} {platform.release()}")

    click.echo("\n--- Package Versions ---")
    for pkg in ["numpy", "click", "pyyaml"]:
        try:
            version = importlib.metadata.version(pkg)
            click.echo(f"  {pkg}: {version}")
        except importlib.metadata.PackageNotFoundError:
            click.echo(f"  {pkg}: not installed")

    click.echo("\n--- Configuration ---")
    config = ctx.config
    click.echo(f"  Max depth: {config.traversal.max_depth}")
    click.echo(f"  Validate inputs: {config.traversal.validate_inputs}")
    click.echo(f"  Require UUID: {config.require_uuid}")
    lon = config.geometry.valid_longitude_range
    lat = config.geometry.valid_latitude_range
    click.echo(f"  Longitude range: [{lon[0]}, {lon[1]}]")
    click.echo(f"  Latitude range: [{lat[0]}, {lat[1]}]")

    click.echo()


register_commands()


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except TraceabilityError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}")
        if "--verbose" in sys.argv or "-v" in sys.argv:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

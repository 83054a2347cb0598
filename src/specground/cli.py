"""
specground CLI.

Commands:
- ground: Write a test driver for an abstract test suite
- analyse: Show what a driver for a suite would depend on
- groundings: List the available groundings
"""

from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from specground._version import __version__
from specground.core.errors import SpecgroundError

logger = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    help="Ground abstract state-machine test suites into executable Python test drivers",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        typer.echo(f"specground {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """specground CLI main callback for global options."""
    pass


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _report(error: SpecgroundError) -> None:
    """Print the error message and its trace, then exit with status 1."""
    typer.echo(f"Error: {error.message}", err=True)
    typer.echo("".join(traceback.format_exception(error)), err=True)
    raise typer.Exit(code=1)


@app.command()
def ground(
    suite_file: Path = typer.Argument(  # noqa: B008
        ...,
        help="Abstract test suite, as JSON",
    ),
    grounding: str | None = typer.Option(
        None,
        "--grounding",
        "-g",
        help="Grounding to use: in-process, rpc or rest (overrides config and suite)",
    ),
    meta_check: bool | None = typer.Option(
        None,
        "--meta-check/--no-meta-check",
        help="Also check the reported scenario and state after each verified step",
    ),
    endpoint: str | None = typer.Option(
        None,
        "--endpoint",
        "-e",
        help="Service URI (rpc and rest groundings)",
    ),
    target_package: str | None = typer.Option(
        None,
        "--target-package",
        "-t",
        help="Package to write the driver into",
    ),
    source_packages: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--source-package",
        "-s",
        help="Package to import the system under test from (repeatable)",
    ),
    output: Path | None = typer.Option(  # noqa: B008
        None,
        "--output",
        "-o",
        help="Output directory (overrides specground.toml config)",
    ),
    config_file: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        "-c",
        help="Configuration file (default: ./specground.toml)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log analysis and resolution details",
    ),
) -> None:
    """
    Write a test driver for an abstract test suite.

    Examples:
        specground ground account.json
        specground ground cart.json -g rest -e http://localhost:8000/cart
        specground ground store.json -g rpc --no-meta-check -o tests/generated
    """
    from specground.core.config import CONFIG_FILE, load_grounding_config
    from specground.core.ir import load_test_suite
    from specground.ground.runner import GroundingRunner

    _configure_logging(verbose)
    project_root = Path(".").resolve()

    try:
        suite = load_test_suite(suite_file)
        config = load_grounding_config(config_file or project_root / CONFIG_FILE)
        config = config.merged(
            grounding=grounding,
            meta_check=meta_check,
            endpoint=endpoint,
            target_package=target_package,
            source_packages=source_packages,
            output_dir=str(output) if output else None,
        )
        logger.debug(f"Resolved configuration: {config}")
        result = GroundingRunner(suite, project_root, config).run()
    except SpecgroundError as e:
        _report(e)

    console.print(f"[green]✓[/green] Wrote {result.driver_path}")
    console.print(
        f"[dim]{result.test_count} test(s), grounding {result.grounding}, "
        f"package {result.target_package or '(default)'}[/dim]"
    )


@app.command()
def analyse(
    suite_file: Path = typer.Argument(  # noqa: B008
        ...,
        help="Abstract test suite, as JSON",
    ),
    target_package: str = typer.Option(
        "",
        "--target-package",
        "-t",
        help="Package the driver would be written into",
    ),
    source_packages: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--source-package",
        "-s",
        help="Package the system under test would be imported from (repeatable)",
    ),
) -> None:
    """Show the dependency analysis of a suite."""
    from specground.core.ir import load_test_suite
    from specground.ground.dependency import DependencyAnalyzer

    try:
        suite = load_test_suite(suite_file)
        analyzer = DependencyAnalyzer()
        analyzer.use_target_package(target_package)
        for package in source_packages or []:
            analyzer.use_source_package(package)
        record = analyzer.analyse(suite)
    except SpecgroundError as e:
        _report(e)

    table = Table(title=f"Dependencies of {suite.driver}")
    table.add_column("Property")
    table.add_column("Value")
    table.add_row("needs factory", _yes_no(record.needs_factory))
    table.add_row("factory inputs", _yes_no(record.factory_inputs))
    table.add_row("factory outputs", _yes_no(record.factory_outputs))
    table.add_row("generic inputs", _yes_no(record.generic_inputs))
    table.add_row("generic outputs", _yes_no(record.generic_outputs))
    table.add_row("target package", record.target_package or "[dim](default)[/dim]")
    for location in record.imports:
        table.add_row("import", location)
    console.print(table)


def _yes_no(value: bool) -> str:
    return "[green]yes[/green]" if value else "no"


@app.command()
def groundings() -> None:
    """List the available groundings."""
    from specground.ground.backends import BackendRegistry

    table = Table(title="Groundings")
    table.add_column("Name")
    table.add_column("Package suffix", style="dim")
    table.add_column("Default endpoint")
    table.add_column("Description")
    for name, backend in BackendRegistry.items():
        table.add_row(name, backend.extension, backend.default_endpoint or "", backend.description)
    console.print(table)


def main(argv: list[str] | None = None) -> None:
    app(args=argv, standalone_mode=True)


if __name__ == "__main__":
    main(sys.argv[1:])

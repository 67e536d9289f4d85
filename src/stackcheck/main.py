"""CLI main entry point."""

import json

import click

from . import __version__
from .commands import create, delete, run
from .commands._common import load_or_exit
from .shared import configure_logging


@click.group()
@click.option("-c", "--config", type=click.Path(), help="Config file path")
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.option("--log-file", type=click.Path(), help="Write logs to a file instead of stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    config: str | None,
    verbose: int,
    json_output: bool,
    json_logs: bool,
    log_file: str | None,
) -> None:
    """End-to-end lifecycle checks for multi-service stacks."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["json_output"] = json_output

    configure_logging(
        level="debug" if verbose else "info",
        log_file=log_file,
        json_output=json_logs,
    )


cli.add_command(run)
cli.add_command(create)
cli.add_command(delete)


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"stackcheck version {__version__}")


@cli.group()
def config() -> None:
    """Inspect configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show the effective configuration and where each value came from."""
    loaded = load_or_exit(ctx)
    values = loaded.values()

    if ctx.obj["json_output"]:
        data = {
            "values": values,
            "sources": {key: loaded.get_source(key) for key in values},
        }
        click.echo(json.dumps(data, indent=2, default=str))
        return

    click.echo("stackcheck configuration\n")
    width = max(len(key) for key in values)
    for key, value in values.items():
        shown = "-" if value is None else value
        click.echo(f"  {key.ljust(width)}  {shown}  ({loaded.get_source(key)})")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()

"""Main CLI entry point using Typer."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..adapters.base import AdapterError
from ..adapters.registry import build_adapters, select_resource_types
from ..aws.client import create_session
from ..enforce.graph import CycleError
from ..enforce.orchestrator import Orchestrator
from ..models.enforcement_record import EnforcementRecord, EnforcementRun, RecordStatus
from ..models.resource import ResourceType
from ..utils.logging import setup_logging
from .config import Config, ConfigError, load_config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="nuker",
    help="AWS resource enforcement - find non-compliant resources and stop or delete them",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None

DEFAULT_REGIONS = ["us-east-1"]

_STATUS_STYLES = {
    RecordStatus.SUCCEEDED: "green",
    RecordStatus.FAILED: "bold red",
    RecordStatus.DRY_RUN: "yellow",
    RecordStatus.SKIPPED: "dim",
}


@app.callback()
def main(
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """AWS resource enforcement - find non-compliant resources and stop or delete them."""
    global config

    # Load configuration
    config = Config.load()

    # Disable colors if requested
    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"aws-resource-nuker version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


@app.command("resource-types")
def resource_types():
    """List the resource types that can be targeted."""
    table = Table(show_header=True, title="Resource Types")
    table.add_column("Name", style="cyan")
    table.add_column("Description")

    descriptions = {
        ResourceType.RDS_INSTANCE: "RDS DB instances (non-Aurora)",
        ResourceType.RDS_CLUSTER: "Aurora DB clusters and their member instances",
        ResourceType.RS_CLUSTER: "Redshift clusters",
        ResourceType.EC2_SUBNET: "EC2 subnets (delete only)",
    }

    for resource_type in ResourceType.actionable():
        table.add_row(resource_type.value, descriptions.get(resource_type, ""))

    console.print(table)


def parse_resource_types(names: Optional[List[str]]) -> List[ResourceType]:
    """Parse resource type names given on the command line.

    Raises:
        typer.BadParameter: If a name is not a known resource type
    """
    try:
        return [ResourceType.from_name(name) for name in names or []]
    except ValueError as e:
        raise typer.BadParameter(str(e))


@app.command()
def run(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-C", help="Rule configuration file (default: $NUKER_CONFIG or ./nuker.yaml)"
    ),
    region: Optional[List[str]] = typer.Option(
        None, "--region", "-r", help="Region to enforce (can specify multiple, default: us-east-1)"
    ),
    target: Optional[List[str]] = typer.Option(
        None, "--target", "-t", help="Only enforce these resource types (can specify multiple)"
    ),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", "-e", help="Enforce every resource type except these (can specify multiple)"
    ),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    no_dry_run: bool = typer.Option(False, "--no-dry-run", help="Actually stop and delete resources"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity (-v info, -vv debug, -vvv with AWS SDK logs)"
    ),
    dot: Optional[Path] = typer.Option(None, "--dot", help="Write the dependency graph in DOT format to this file"),
):
    """Scan resources, decide their fate and enforce it.

    Runs in dry-run mode unless --no-dry-run is given.
    """
    settings = config or Config.load()

    log_level = {0: settings.log_level, 1: "INFO"}.get(verbose, "DEBUG")
    try:
        setup_logging(level=log_level, verbose=verbose >= 3)
    except ValueError as e:
        console.print(f"✗ Configuration error: {e}", style="bold red")
        raise typer.Exit(code=1)

    if target and exclude:
        console.print("✗ --target and --exclude are mutually exclusive", style="bold red")
        raise typer.Exit(code=1)

    dry_run = not no_dry_run
    regions = list(region) if region else DEFAULT_REGIONS

    try:
        rule_config = load_config(config_file or settings.config_path)
    except ConfigError as e:
        console.print(f"✗ Configuration error: {e}", style="bold red")
        raise typer.Exit(code=1)

    selected = select_resource_types(parse_resource_types(target), parse_resource_types(exclude))
    if not selected:
        console.print("No resource types selected.", style="yellow")
        return

    if not dry_run and not force:
        console.print(
            f"[bold red]This will stop or delete non-compliant "
            f"{', '.join(t.value for t in selected)} resources in {', '.join(regions)}.[/bold red]"
        )
        if not typer.confirm("Continue?", default=False):
            console.print("Aborted.", style="yellow")
            raise typer.Exit(code=0)

    session = create_session(profile_name=profile or settings.aws_profile)
    adapters = build_adapters(session, regions, rule_config, selected)
    orchestrator = Orchestrator(adapters, dry_run=dry_run)

    mode = "[yellow]DRY RUN[/yellow]" if dry_run else "[bold red]LIVE[/bold red]"
    console.print(f"\n{mode} enforcing {len(selected)} resource type(s) in {', '.join(regions)}\n")

    try:
        report = orchestrator.run()
    except CycleError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)
    except AdapterError as e:
        console.print(f"✗ AWS error: {e}", style="bold red")
        raise typer.Exit(code=1)

    if dot and orchestrator.graph is not None:
        dot_source = orchestrator.graph.to_dot()
        if dot_source is not None:
            dot.write_text(dot_source)
            console.print(f"Dependency graph written to {dot}", style="dim")

    display_report(report)

    if report.failed_count > 0:
        raise typer.Exit(code=1)


def display_report(report: EnforcementRun) -> None:
    """Render a run report as a Rich table plus summary."""
    if not report.records:
        console.print("No resources found.", style="yellow")
        return

    table = Table(show_header=True, title=f"Enforcement Plan ({report.run_id})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Region", style="cyan")
    table.add_column("Type", style="cyan")
    table.add_column("Resource ID")
    table.add_column("Action")
    table.add_column("Reason")
    table.add_column("Status")

    for position, record in enumerate(report.records, start=1):
        style = _STATUS_STYLES[record.status]
        table.add_row(
            str(position),
            record.region,
            record.resource_type,
            record.resource_id,
            record.action.description,
            _reason_text(record),
            f"[{style}]{record.status.value}[/{style}]",
        )

    console.print(table)

    for record in report.records:
        if record.status == RecordStatus.FAILED:
            console.print(f"✗ {record.resource_id}: {record.error_message}", style="bold red")

    if report.lookup_failure_count:
        console.print(
            f"\n[yellow]⚠ {report.lookup_failure_count} resource(s) decided with failed lookups; "
            f"those rules were not applied.[/yellow]"
        )

    if report.dry_run:
        console.print(
            f"\n[yellow]Dry run:[/yellow] {report.planned_count} action(s) planned, "
            f"{report.skipped_count} skipped. Re-run with --no-dry-run to enforce."
        )
    else:
        console.print(
            f"\n[bold]Run {report.status.value}:[/bold] {report.succeeded_count} succeeded, "
            f"{report.failed_count} failed, {report.skipped_count} skipped"
        )


def _reason_text(record: EnforcementRecord) -> str:
    text = record.reason.value if record.reason else ""
    if record.lookup_failures:
        failed = ", ".join(reason.value for reason in record.lookup_failures)
        text = f"{text} (lookup failed: {failed})".strip()
    return text


if __name__ == "__main__":
    app()

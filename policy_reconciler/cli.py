"""
Command Line Interface for the policy reconciler.

Provides commands to check a host against a baseline, enforce it,
inspect and change single policies, and write compliance reports.
The process exit code is the reconciliation exit code.
"""

import json
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .catalog.loader import build_catalog
from .core.config import load_config
from .core.engine import compute_exit_code
from .core.models import (
    ComplianceStatus, ExitCode, Platform, PolicyScope, RemediationAction, ReportSummary
)
from .core.orchestrator import PolicyReconciler
from .core.values import parse_text
from .exceptions import (
    BaselineInvalidError, CatalogError, PolicyReconcilerError, ProviderError,
    UnknownPolicyError
)
from .utils.os_detection import is_admin


console = Console()
logger = logging.getLogger("policy_reconciler")

PLATFORM_CHOICE = click.Choice([p.value for p in Platform])
SCOPE_CHOICE = click.Choice([s.value for s in PolicyScope])

STATUS_COLORS = {
    ComplianceStatus.COMPLIANT: "green",
    ComplianceStatus.NON_COMPLIANT: "red",
    ComplianceStatus.MISSING: "yellow",
}

ACTION_COLORS = {
    RemediationAction.REMEDIATED: "green",
    RemediationAction.ATTEMPTED_FAILED: "red",
    RemediationAction.ERROR: "red bold",
    RemediationAction.SKIPPED: "dim",
}

SEVERITY_COLORS = {
    "critical": "red bold",
    "high": "red",
    "medium": "yellow",
    "low": "blue",
}


def setup_logging(level: str, verbose: bool) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, str(level).upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def fail(message: str, code: ExitCode = ExitCode.CRITICAL_ERROR) -> None:
    """Print an error and exit with the given code."""
    console.print(f"[red]{escape(message)}[/red]")
    sys.exit(int(code))


def fail_unloaded(error: Exception, enforce: bool) -> None:
    """Exit for a run that stopped before its baseline was loaded."""
    fail(f"Critical error: {error}", compute_exit_code(ReportSummary(), enforce, baseline_loaded=False))


def build_reconciler(ctx, platform: Optional[str]) -> PolicyReconciler:
    """Create the reconciler for this invocation."""
    try:
        return PolicyReconciler(
            config=ctx.obj['config'],
            platform=Platform(platform) if platform else None,
        )
    except PolicyReconcilerError as e:
        fail(f"Failed to initialize policy reconciler: {e}")


@click.group()
@click.version_option(version=__version__)
@click.option('--config', '-c', 'config_path', help="Path to configuration file")
@click.option('--verbose', '-v', is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """
    Policy Baseline Reconciler

    Compares Windows Registry and macOS preference policies against a
    declarative baseline and optionally enforces it.
    """
    ctx.ensure_object(dict)
    config = load_config(config_path)
    setup_logging(config["logging"].get("level", "INFO"), verbose)
    ctx.obj['config'] = config
    ctx.obj['verbose'] = verbose


def _reconcile(ctx, baseline: str, enforce: bool, platform: Optional[str],
               scope: Optional[str], output: Optional[str], format: str) -> None:
    """Shared body of the check and enforce commands."""
    reconciler = build_reconciler(ctx, platform)
    run_scope = PolicyScope(scope) if scope else reconciler.scope

    if format != 'json':
        console.print(Panel(
            f"[bold]{'Enforcing' if enforce else 'Checking'} baseline[/bold] {baseline}\n"
            f"Platform: {reconciler.platform.value}\n"
            f"Scope: {run_scope.value}",
            title="Policy Reconciliation"
        ))

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
            disable=format == 'json',
        ) as progress:
            progress.add_task("Reconciling policies...", total=None)
            report = reconciler.reconcile(baseline, enforce=enforce, scope=run_scope)
    except (BaselineInvalidError, CatalogError) as e:
        fail_unloaded(e, enforce)
    except OSError as e:
        fail(f"Failed to write run log: {e}")

    if format == 'json':
        click.echo(json.dumps(report.to_dict(), indent=2))
    elif format == 'summary':
        _display_summary(report)
    else:
        _display_table(report)

    if output:
        try:
            path = reconciler.generate_report(report, format="json", output_path=output)
        except OSError as e:
            fail(f"Failed to write report: {e}")
        if format != 'json':
            console.print(f"\n[green]Report saved to: {path}[/green]")

    sys.exit(int(report.exit_code))


@cli.command()
@click.argument('baseline', type=click.Path(dir_okay=False))
@click.option('--platform', '-p', type=PLATFORM_CHOICE, help="Target platform (detected if omitted)")
@click.option('--scope', '-s', type=SCOPE_CHOICE, help="Policy scope (Windows only)")
@click.option('--output', '-o', help="Write the JSON report to this file")
@click.option('--format', type=click.Choice(['table', 'summary', 'json']),
              default='table', help="Output format")
@click.pass_context
def check(ctx, baseline: str, platform: Optional[str], scope: Optional[str],
          output: Optional[str], format: str):
    """
    Check host compliance against a baseline.

    Read-only: reports drift without changing any setting.
    """
    _reconcile(ctx, baseline, False, platform, scope, output, format)


@cli.command()
@click.argument('baseline', type=click.Path(dir_okay=False))
@click.option('--platform', '-p', type=PLATFORM_CHOICE, help="Target platform (detected if omitted)")
@click.option('--scope', '-s', type=SCOPE_CHOICE, help="Policy scope (Windows only)")
@click.option('--output', '-o', help="Write the JSON report to this file")
@click.option('--format', type=click.Choice(['table', 'summary', 'json']),
              default='table', help="Output format")
@click.option('--yes', '-y', is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def enforce(ctx, baseline: str, platform: Optional[str], scope: Optional[str],
            output: Optional[str], format: str, yes: bool):
    """
    Enforce a baseline on this host.

    Writes the expected value of every drifted policy that allows
    automatic remediation.
    """
    if not is_admin():
        logger.warning("Not running with administrative privileges; machine policies may fail to apply")

    if not yes:
        console.print("[yellow]Warning: This will change policy settings on this host![/yellow]")
        if not click.confirm("Do you want to continue?"):
            console.print("Operation cancelled.")
            return

    _reconcile(ctx, baseline, True, platform, scope, output, format)


@cli.command()
@click.argument('baseline', type=click.Path(dir_okay=False))
@click.option('--output', '-o', required=True, help="Output file path")
@click.option('--format', type=click.Choice(['json', 'html']), default='json', help="Report format")
@click.option('--template', help="Custom jinja2 template for HTML reports")
@click.option('--platform', '-p', type=PLATFORM_CHOICE, help="Target platform (detected if omitted)")
@click.option('--scope', '-s', type=SCOPE_CHOICE, help="Policy scope (Windows only)")
@click.option('--enforce', 'enforce_policies', is_flag=True, help="Enforce before reporting")
@click.pass_context
def report(ctx, baseline: str, output: str, format: str, template: Optional[str],
           platform: Optional[str], scope: Optional[str], enforce_policies: bool):
    """Generate a compliance report file."""
    reconciler = build_reconciler(ctx, platform)

    try:
        result = reconciler.reconcile(
            baseline, enforce=enforce_policies,
            scope=PolicyScope(scope) if scope else None
        )
    except (BaselineInvalidError, CatalogError) as e:
        fail_unloaded(e, enforce_policies)
    except OSError as e:
        fail(f"Failed to write run log: {e}")

    try:
        path = reconciler.generate_report(result, format=format, output_path=output,
                                          template_path=template)
    except OSError as e:
        fail(f"Failed to write report: {e}")
    console.print(f"[green]Report generated: {path}[/green]")
    sys.exit(int(result.exit_code))


@cli.group()
def policies():
    """Inspect and change individual policies."""
    pass


@policies.command('list')
@click.option('--platform', '-p', type=PLATFORM_CHOICE, help="Filter by platform")
@click.pass_context
def list_policies(ctx, platform: Optional[str]):
    """List policies available in the catalog."""
    try:
        catalog = build_catalog(ctx.obj['config']["catalog"].get("extra_definitions") or [])
    except CatalogError as e:
        fail(f"Failed to load catalog: {e}")

    definitions = catalog.list(Platform(platform) if platform else None)

    table = Table(title="Available Policies")
    table.add_column("Name", style="bold")
    table.add_column("Platform")
    table.add_column("Type")
    table.add_column("Default")
    table.add_column("Native Key", style="dim")
    table.add_column("Description", max_width=40)

    for definition in definitions:
        table.add_row(
            definition.friendly_name,
            definition.platform.value,
            definition.value_type.value,
            repr(definition.default_value),
            definition.native_key,
            definition.description,
        )

    console.print(table)


@policies.command('get')
@click.argument('name')
@click.option('--platform', '-p', type=PLATFORM_CHOICE, help="Target platform (detected if omitted)")
@click.option('--scope', '-s', type=SCOPE_CHOICE, default='machine', help="Policy scope (Windows only)")
@click.pass_context
def get_policy(ctx, name: str, platform: Optional[str], scope: str):
    """Show the current value of a policy."""
    reconciler = build_reconciler(ctx, platform)

    try:
        setting = reconciler.router.get_policy(reconciler.platform, name, PolicyScope(scope))
    except UnknownPolicyError as e:
        fail(str(e))
    except ProviderError as e:
        fail(f"Failed to read {name}: {e}", ExitCode.NON_COMPLIANCE)

    value = repr(setting.value) if setting.present else "[yellow]not configured[/yellow]"
    console.print(Panel(
        f"[bold]{setting.friendly_name}[/bold]\n\n"
        f"[dim]Description:[/dim] {setting.description}\n"
        f"[dim]Native key:[/dim] {setting.native_key}\n"
        f"[dim]Type:[/dim] {setting.value_type.value}\n"
        f"[dim]Scope:[/dim] {setting.scope.value}\n"
        f"[dim]Value:[/dim] {value}",
        title="Policy"
    ))


@policies.command('set')
@click.argument('name')
@click.argument('value')
@click.option('--platform', '-p', type=PLATFORM_CHOICE, help="Target platform (detected if omitted)")
@click.option('--scope', '-s', type=SCOPE_CHOICE, default='machine', help="Policy scope (Windows only)")
@click.pass_context
def set_policy(ctx, name: str, value: str, platform: Optional[str], scope: str):
    """Set a policy; VALUE is parsed according to the policy's type."""
    reconciler = build_reconciler(ctx, platform)

    try:
        definition = reconciler.catalog.get(reconciler.platform, name)
        typed_value = parse_text(definition.value_type, value)
        applied = reconciler.router.set_policy(
            reconciler.platform, name, typed_value, PolicyScope(scope),
            verify=reconciler.config["engine"].get("verify_writes", True)
        )
    except UnknownPolicyError as e:
        fail(str(e))
    except ProviderError as e:
        fail(f"Failed to set {name}: {e}", ExitCode.REMEDIATION_FAILURES)

    if not applied:
        fail(f"{name} did not keep the value {typed_value!r}", ExitCode.REMEDIATION_FAILURES)
    console.print(f"[green]{name} set to {typed_value!r}[/green]")


def _display_summary(report):
    """Display a summary of a reconciliation run."""
    summary = report.summary

    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Total Policies", str(summary.total_policies))
    table.add_row("Compliant", f"[green]{summary.compliant_policies}[/green]")
    table.add_row("Non-Compliant", f"[red]{summary.non_compliant_policies}[/red]"
                  if summary.non_compliant_policies else "0")
    table.add_row("Missing", f"[yellow]{summary.missing_policies}[/yellow]"
                  if summary.missing_policies else "0")

    if report.metadata.enforcement_mode:
        table.add_row("Remediation Attempts", str(summary.remediation_attempts))
        table.add_row("Remediated", f"[green]{summary.remediation_successes}[/green]")
        table.add_row("Failed", f"[red]{summary.remediation_failures}[/red]"
                      if summary.remediation_failures else "0")
        table.add_row("Skipped", str(summary.remediation_skipped))

    table.add_row("Exit Code", str(int(report.exit_code)))
    console.print(table)


def _display_table(report):
    """Display detailed results in table format."""
    table = Table(title=f"Compliance - {report.metadata.baseline_name} {report.metadata.baseline_version}")
    table.add_column("Policy", style="bold")
    table.add_column("Severity")
    table.add_column("Status")
    table.add_column("Current")
    table.add_column("Expected")
    table.add_column("Message", max_width=40)

    for result in report.compliance_results:
        status_color = STATUS_COLORS.get(result.status, "white")
        severity_color = SEVERITY_COLORS.get(result.severity.value, "white")
        table.add_row(
            result.policy_name,
            f"[{severity_color}]{result.severity.value.upper()}[/{severity_color}]",
            f"[{status_color}]{result.status.value}[/{status_color}]",
            "-" if result.status == ComplianceStatus.MISSING else repr(result.current_value),
            repr(result.expected_value),
            result.message or "",
        )

    console.print(table)

    if report.remediation_outcomes:
        outcomes = Table(title="Remediation")
        outcomes.add_column("Policy", style="bold")
        outcomes.add_column("Action")
        outcomes.add_column("Message", max_width=60)

        for outcome in report.remediation_outcomes:
            color = ACTION_COLORS.get(outcome.action, "white")
            outcomes.add_row(
                outcome.policy_name,
                f"[{color}]{outcome.action.value}[/{color}]",
                outcome.message,
            )

        console.print(outcomes)

    _display_summary(report)


def main():
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()

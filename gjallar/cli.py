# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                              ᛒᛁᚠᚱᛟᛊᛏ • BIFRÖST
#                     The Rainbow Bridge Between Realms
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   Command-line entry point. Resolves the profile, session and identity,
#   builds the scan configuration and hands everything to the scanner.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.table import Table

from gjallar import __version__, cli_utils
from gjallar.aws_utils import (
    CredentialsCache,
    RegionAvailability,
    build_aws_path,
    get_aws_profiles,
    get_enabled_regions,
    load_or_create_run_data,
    resolve_identity,
)
from gjallar.cache import TTLCache
from gjallar.cli_utils import (
    CSV_OUTPUT_FILE,
    JSON_OUTPUT_FILE,
    ExitCode,
    build_findings_table,
    module_tag,
    print_banner,
    set_console_theme,
    setup_logging,
)
from gjallar.errors import ConfigurationError
from gjallar.exporters import CSVExporter, JSONExporter
from gjallar.models import ALL_COLUMNS, Finding
from gjallar.progress import ProgressReporter
from gjallar.scanner import (
    DEFAULT_CONCURRENCY,
    DEFAULT_OUTPUT_DIRECTORY,
    ResourceTrustsScanner,
    ScanConfig,
    validate_scan_options,
)

# ᛗᛁᛗᛁᚱ • Mimir's Well of Wisdom - Logger
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(__version__, prog_name='gjallar')
def main():
    """
    📯 GJALLAR - AWS Resource Trust Scanner

    Finds resource policies that make AWS resources public or trust
    principals outside your account.

    \b
    Quick Start:
      gjallar resource-trusts --profile prod
      gjallar resource-trusts --profile prod -r us-east-1 -r eu-west-1 --include-kms
      gjallar aws profiles
    """


def write_outputs(findings: List[Finding], output_location: str, columns: List[str], account_id: str) -> Tuple[Path, Path]:
    """Write the CSV and JSON result files and return their paths."""
    out_dir = Path(output_location)
    out_dir.mkdir(parents=True, exist_ok=True)
    csv_path = out_dir / CSV_OUTPUT_FILE
    json_path = out_dir / JSON_OUTPUT_FILE
    CSVExporter.save(findings, str(csv_path), columns=columns)
    JSONExporter.save(findings, str(json_path), account_id=account_id)
    return csv_path, json_path


@main.command('resource-trusts')
@click.option('--profile', '-p', default=None, help='AWS profile name to use (default credential chain if omitted)')
@click.option('--region', '-r', 'regions', multiple=True, help='Region to scan (repeatable, default: all enabled regions)')
@click.option('--concurrency', '-g', default=DEFAULT_CONCURRENCY, show_default=True, type=int,
              help='Maximum number of concurrent AWS operations')
@click.option('--include-kms', is_flag=True, help='Also scan KMS key policies (slower)')
@click.option('--output-dir', '-o', default=DEFAULT_OUTPUT_DIRECTORY, show_default=True,
              help='Directory for result files, logs and cached run data')
@click.option('--output', 'output_type', type=click.Choice(['brief', 'wide']), default='brief', show_default=True,
              help='Table layout (wide adds the Account column)')
@click.option('--cols', 'table_cols', default=None,
              help=f"Comma separated columns to show ({', '.join(ALL_COLUMNS)})")
@click.option('--verbose', '-v', is_flag=True, help='Print debug logs to the console')
@click.option('--no-color', is_flag=True, help='Disable colored output (useful for CI/CD logs)')
def resource_trusts(
    profile: Optional[str],
    regions: Tuple[str, ...],
    concurrency: int,
    include_kms: bool,
    output_dir: str,
    output_type: str,
    table_cols: Optional[str],
    verbose: bool,
    no_color: bool,
) -> None:
    """
    Enumerate resource policies and flag public or cross-account trust.

    Covers SNS, SQS, ECR, CodeBuild, Lambda, EFS, Secrets Manager, Glue,
    API Gateway, VPC endpoints, OpenSearch and S3, plus KMS with
    --include-kms.
    """
    set_console_theme(no_color=no_color)
    console = cli_utils.get_console()

    try:
        log_path = setup_logging(output_dir, verbose=verbose)
    except OSError as e:
        console.print(f"[red]✗ Cannot write to output directory {output_dir}: {e}[/red]")
        sys.exit(ExitCode.ERROR)

    try:
        validate_scan_options(concurrency, table_cols, output_type)
    except ConfigurationError as e:
        logger.error("Invalid option: %s", e)
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(ExitCode.ERROR)

    print_banner()
    credentials = CredentialsCache()
    cache = TTLCache()

    try:
        session = credentials.get_or_load(profile)
        identity = None
        if profile:
            run_data = load_or_create_run_data(profile, output_dir, lambda: resolve_identity(session))
            account_id = run_data.account_id
            output_location = run_data.output_location
            prefix = profile
        else:
            identity = resolve_identity(session)
            account_id = identity.account
            prefix = build_aws_path(identity)
            output_location = str(Path(output_dir) / 'gjallar-output' / 'aws' / prefix)

        scan_regions = list(regions) or get_enabled_regions(session, cache)
        config = ScanConfig(
            regions=scan_regions,
            concurrency=concurrency,
            include_kms=include_kms,
            table_cols=table_cols,
            output_type=output_type,
            output_directory=output_dir,
        )
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        console.print(f"[red]✗ {e}[/red]")
        console.print("\n[dim]Available profiles:[/dim]")
        console.print("  gjallar aws profiles\n")
        sys.exit(ExitCode.AWS_ERROR)

    tag = module_tag(prefix)
    console.print(
        f"[dim]{tag} Enumerating resource policies for account[/dim] {account_id} "
        f"[dim]across {len(config.regions)} regions[/dim]"
    )
    if include_kms:
        console.print(f"[dim]{tag} Including KMS key policies[/dim]")

    scanner = ResourceTrustsScanner(
        session=session,
        account_id=account_id,
        config=config,
        oracle=RegionAvailability(session),
        cache=cache,
        reporter_factory=lambda counters: ProgressReporter(counters, str(log_path), console=console),
    )
    findings = scanner.run()

    if not findings:
        console.print(f"[yellow]{tag} No resource policies found, skipping the creation of an output file.[/yellow]")
        sys.exit(ExitCode.SUCCESS)

    console.print(build_findings_table(findings, config.columns))

    try:
        csv_path, json_path = write_outputs(findings, output_location, config.columns, account_id)
    except OSError as e:
        logger.error("Could not write output files: %s", e)
        console.print(f"[red]✗ Could not write output files: {e}[/red]")
        sys.exit(ExitCode.ERROR)

    public_count = sum(1 for f in findings if f.public)
    console.print(
        f"\n[bold cyan]{tag}[/bold cyan] {len(findings)} resource policies found "
        f"([bold red]{public_count} public[/bold red])"
    )
    console.print(f"[dim]Output written to {csv_path} and {json_path}[/dim]")


@main.group()
def aws():
    """AWS configuration and utility commands."""


@aws.command()
def profiles():
    """
    List available AWS profiles from ~/.aws/credentials and ~/.aws/config

    Example:
        gjallar aws profiles
    """
    console = cli_utils.get_console()
    profiles_list = get_aws_profiles()

    if not profiles_list:
        console.print("[yellow]⚠️  No AWS profiles found[/yellow]")
        console.print("\n[dim]Configure AWS credentials:[/dim]")
        console.print("  aws configure")
        return

    console.print(f"\n[bold cyan]📋 Available AWS Profiles:[/bold cyan] [dim]({len(profiles_list)} found)[/dim]\n")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Profile", style="green")
    table.add_column("Region", style="yellow")

    for profile in profiles_list:
        table.add_row(profile['name'], profile.get('region') or '[dim]not configured[/dim]')

    console.print(table)
    console.print("\n[dim]💡 Usage:[/dim] gjallar resource-trusts --profile <name>")
    console.print()


if __name__ == '__main__':
    main()

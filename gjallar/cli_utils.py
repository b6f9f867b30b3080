# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#                            ᚱᚢᚾᛁᚱ • THE RUNES
#                 Console, Logging and Exit Codes for the CLI
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
#   "When Gjallarhorn sounds, it is heard in all the worlds."
#
#   Shared helpers for every gjallar command: the rich console, the
#   log file setup and the findings table.
#
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from gjallar.models import COLUMN_INTERESTING, COLUMN_PUBLIC, COLUMN_SUMMARY, Finding

# ᚢᚱᚢᛉ • Uruz - Constants
LOG_DIRECTORY = 'logs'
ERROR_LOG_FILE = 'gjallar-error.log'
CSV_OUTPUT_FILE = 'resource-trusts.csv'
JSON_OUTPUT_FILE = 'resource-trusts.json'
MODULE_NAME = 'resource-trusts'


# ᛏᛁᚹᚨᛉ • Tiwaz - Exit Codes for CI/CD Integration
class ExitCode:
    """
    Standardized exit codes for CI/CD integration.

    CI/CD Example:
        gjallar resource-trusts --profile prod
        if [ $? -eq 10 ]; then echo "Credentials problem"; fi
    """
    SUCCESS = 0              # Scan completed
    ERROR = 1                # General error (invalid args, unwritable output, etc.)
    AWS_ERROR = 10           # AWS profile/credential/identity error


# ═══════════════════════════════════════════════════════════════════════════════
# Console Configuration
# ═══════════════════════════════════════════════════════════════════════════════
console = Console()


def set_console_theme(*, no_color: bool = False) -> None:
    """
    Configure global console instance with theme settings.

    Args:
        no_color: If True, disable all colored/styled output (useful for CI/CD)
    """
    global console
    console = Console(force_terminal=not no_color, no_color=no_color)


def get_console() -> Console:
    return console


# ═══════════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════════
def setup_logging(output_directory: str, *, verbose: bool = False) -> Path:
    """
    Send gjallar's log records to ``<output_directory>/logs/gjallar-error.log``.

    With ``verbose`` a RichHandler also prints DEBUG records to the console.

    Returns:
        Path of the log file
    """
    log_dir = Path(output_directory) / LOG_DIRECTORY
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / ERROR_LOG_FILE

    root = logging.getLogger('gjallar')
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False

    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    root.addHandler(file_handler)

    if verbose:
        rich_handler = RichHandler(console=Console(stderr=True), show_path=False)
        rich_handler.setLevel(logging.DEBUG)
        root.addHandler(rich_handler)

    return log_path


# ═══════════════════════════════════════════════════════════════════════════════
# Findings Table
# ═══════════════════════════════════════════════════════════════════════════════
def yes_no_markup(value: str) -> str:
    return "[bold red]Yes[/bold red]" if value == "Yes" else "[green]No[/green]"


def build_findings_table(findings: Sequence[Finding], columns: List[str]) -> Table:
    table = Table(show_header=True, header_style="bold cyan", show_lines=True)
    for column in columns:
        if column == COLUMN_SUMMARY:
            table.add_column(column, overflow="fold")
        elif column in (COLUMN_PUBLIC, COLUMN_INTERESTING):
            table.add_column(column, justify="center")
        else:
            table.add_column(column, style="dim" if column == "Account" else None, overflow="fold")

    for finding in findings:
        row = []
        for column, value in zip(columns, finding.to_row(columns)):
            if column in (COLUMN_PUBLIC, COLUMN_INTERESTING):
                value = yes_no_markup(value)
            else:
                value = escape(value)
            row.append(value)
        table.add_row(*row)
    return table


# ᚨᛊᚲᛁᛁ • ASCII Art Banner
GJALLAR_BANNER_SMALL = "[bold cyan]📯 GJALLAR[/bold cyan] [dim]• Resource Trust Scanner[/dim]"


def print_banner() -> None:
    console.print(GJALLAR_BANNER_SMALL)


def module_tag(prefix: str) -> str:
    """``[resource-trusts][<prefix>]`` with the brackets escaped for rich markup."""
    return escape(f"[{MODULE_NAME}][{prefix}]")

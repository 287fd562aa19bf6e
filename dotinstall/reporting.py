"""Human-readable rendering of an installation report."""

from rich.console import Console
from rich.table import Table

from dotinstall.logging import console as default_console
from dotinstall.models import InstallationReport, LinkAction

ACTION_STYLES = {
    LinkAction.LINKED: 'green',
    LinkAction.BACKED_UP_AND_LINKED: 'yellow',
    LinkAction.SKIPPED_MISSING_SOURCE: 'yellow',
    LinkAction.ALREADY_CORRECT: 'dim',
    LinkAction.BACKUP_CONFLICT: 'red',
    LinkAction.CREATED_DIRECTORY: 'green',
    LinkAction.MADE_EXECUTABLE: 'green',
    LinkAction.ALREADY_EXECUTABLE: 'dim',
}


def build_results_table(report: InstallationReport) -> Table:
    """Build a table with one row per recorded result."""
    table = Table(title='Installed entries', show_lines=False)
    table.add_column('Phase')
    table.add_column('Action')
    table.add_column('Target')
    table.add_column('Backup')
    for result in report.results:
        style = ACTION_STYLES.get(result.action, 'white')
        table.add_row(
            result.phase.value,
            f'[{style}]{result.action.value}[/{style}]',
            str(result.target),
            str(result.backup) if result.backup else '',
        )
    return table


def build_checks_table(report: InstallationReport) -> Table:
    """Build a table with one row per validation check."""
    table = Table(title='Validation')
    table.add_column('Check')
    table.add_column('Result')
    table.add_column('Path')
    for check in report.checks:
        result = '[green]passed[/green]' if check.passed else '[red]failed[/red]'
        table.add_row(check.name, result, check.detail)
    return table


def render_report(report: InstallationReport, console: Console | None = None) -> None:
    """Print the report tables and the final status line."""
    console = console or default_console
    if report.results:
        console.print(build_results_table(report))
    console.print(build_checks_table(report))

    for warning in report.warnings:
        console.print(f'[yellow][WARNING][/yellow] {warning}')

    console.print()
    if report.passed:
        console.print('[bold green]Installation completed successfully![/bold green]')
        console.print('Next steps:')
        console.print('  1. Reload your shell or source your profile')
        console.print('  2. In new projects, run the installed commands to set up assistant context')
        console.print('  3. Use the prompts in ~/.dotfiles/claude/prompts/ for consistent interactions')
    else:
        failed = ', '.join(check.name for check in report.failed_checks())
        console.print(f'[bold red]Installation completed with errors:[/bold red] {failed}')
        console.print('Please review the errors above and fix them manually')

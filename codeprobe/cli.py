#!/usr/bin/env python
"""
codeprobe CLI
Run the test execution engine over a source file from the command line
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from tabulate import tabulate

from codeprobe.engine.facade import get_service
from codeprobe.exceptions import CodeProbeError
from codeprobe.schemas import Language, Role

EXTENSION_LANGUAGES = {
    '.py': 'python',
    '.js': 'javascript',
    '.mjs': 'javascript',
    '.cjs': 'javascript',
    '.ts': 'typescript',
    '.java': 'java',
    '.cs': 'csharp',
    '.cpp': 'cpp',
    '.cc': 'cpp',
    '.cxx': 'cpp',
    '.hpp': 'cpp',
}

STATUS_STYLES = {
    'passed': ('✓', 'green'),
    'failed': ('✗', 'red'),
    'error': ('!', 'red'),
    'warning': ('~', 'yellow'),
    'info': ('i', 'blue'),
}


def infer_language(path: Path) -> str:
    """Language name for a file extension; unrecognized extensions pass through."""
    ext = path.suffix.lower()
    return EXTENSION_LANGUAGES.get(ext, ext.lstrip('.') or 'unknown')


# ============================================================================
# Main CLI
# ============================================================================

@click.group()
def cli():
    """codeprobe - heuristic test execution and bug detection for source files"""
    pass


@cli.command(name='run')
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--language', '-l', default=None,
              help='Language of the file (inferred from the extension if not specified)')
@click.option('--role', '-r', type=click.Choice([r.value for r in Role]), default=Role.DEVELOPER.value,
              help='Requester role; decides which outcomes are marked high priority')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw JSON report')
@click.option('--strict', is_flag=True, help='Exit with status 1 when any test failed or errored')
def run(file_path: str, language: Optional[str], role: str, as_json: bool, strict: bool):
    """Run the tests for FILE_PATH and print the report.

    Usage:
        codeprobe run calculator.py
        codeprobe run legacy.bf --language brainfuck --json
    """
    source_path = Path(file_path)
    try:
        code = source_path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        click.echo(click.style(f'[-] Could not read {file_path}: {e}', fg='red'), err=True)
        sys.exit(1)

    if not code.strip():
        click.echo(click.style(f'[-] {file_path} is empty', fg='red'), err=True)
        sys.exit(1)

    language = language or infer_language(source_path)

    try:
        report = get_service().execute_tests(code, language, role)
    except CodeProbeError as e:
        click.echo(f"Error: {str(e)}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _print_report(source_path.name, report)

    if strict and (report.failed or report.errors):
        sys.exit(1)


def _print_report(name: str, report):
    click.echo(f"Analyzing {name} ({report.language}, strategy: {report.strategy})...\n")

    rows = []
    for outcome in report.test_cases:
        icon, colour = STATUS_STYLES.get(outcome.status.value, ('?', None))
        rows.append([
            click.style(icon, fg=colour),
            outcome.name,
            outcome.type,
            '*' if outcome.priority.value == 'high' else '',
            outcome.message,
        ])
    click.echo(tabulate(rows, headers=['', 'Test', 'Type', 'Focus', 'Message'], tablefmt='simple'))
    click.echo()

    if report.failed == 0 and report.errors == 0 and report.passed > 0:
        click.echo(click.style(f'[+] All tests passed! ({report.passed}/{report.total_tests})', fg='green'))
    elif report.total_tests:
        click.echo(click.style(
            f'[-] {report.passed} passed, {report.failed} failed, {report.errors} errors', fg='red'
        ))
    click.echo(report.summary)

    if report.quality:
        metrics = report.quality.metrics
        click.echo(f"\nQuality grade: {report.quality.grade.value} - {report.quality.description}")
        click.echo(tabulate(
            [[metrics.complexity, metrics.maintainability, metrics.reliability, metrics.testability, metrics.overall]],
            headers=['Complexity', 'Maintainability', 'Reliability', 'Testability', 'Overall'],
            tablefmt='simple'
        ))


@cli.command(name='languages')
def languages():
    """List supported languages and the strategy each one uses"""
    service = get_service()
    rows = [[language.value, service.strategy_for(language).name] for language in Language]
    click.echo(tabulate(rows, headers=['Language', 'Strategy'], tablefmt='simple'))


if __name__ == '__main__':
    cli()

"""CLI interface for a11y-scan-history."""

import logging
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from a11y_history.comparison import (
    calculate_quality_score,
    compare_quality_scores,
    compare_scan_records,
    format_percentage_change,
    get_comparison_summary,
    get_most_significant_change,
    get_trend_indicator,
    is_improvement,
    is_regression,
    validate_comparison,
)
from a11y_history.consts import DEFAULT_DATA_DIR, SCAN_SERVICE_URL, SCAN_TIMEOUT
from a11y_history.models.model_scan import SEVERITY_ORDER, HistoryFilter, ScanMode, ScanRecord
from a11y_history.models.model_storage import StorageResult
from a11y_history.storage import FileBackend, ScanHistoryStore
from a11y_history.utils import format_duration, format_full_date, format_relative_time, truncate_url

app = typer.Typer(
    name="a11y-history",
    help="a11y-history - Record, browse and compare accessibility scan reports",
)

console = Console()

SEVERITY_STYLES = {
    "critical": "red",
    "serious": "orange1",
    "moderate": "yellow",
    "minor": "dim",
}

DATA_DIR_OPTION = typer.Option(None, "--data-dir", help="History directory (default: ./data)")


def _configure_logging(level: int = logging.WARNING) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _get_store(data_dir: Path | None) -> ScanHistoryStore:
    return ScanHistoryStore(FileBackend(data_dir or DEFAULT_DATA_DIR))


def _get_score_color(score: float) -> str:
    """Get color for score display."""
    if score >= 90:
        return "green"
    elif score >= 50:
        return "yellow"
    else:
        return "red"


def _unwrap(result: StorageResult):
    """Exit on failure, print any warning, return the data."""
    if not result.success:
        console.print(f"[red]Error:[/red] {result.error}")
        raise typer.Exit(1)
    if result.warning:
        console.print(f"[yellow]Warning:[/yellow] {result.warning}")
    return result.data


def _resolve_scan(store: ScanHistoryStore, scan_id: str) -> ScanRecord:
    """Find a scan by full ID or unique ID prefix."""
    result = store.get_by_id(scan_id)
    if result.success:
        return result.data

    scans = _unwrap(store.get_all())
    matches = [s for s in scans if s.id.startswith(scan_id)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        console.print(f"[red]Error:[/red] ID prefix '{scan_id}' matches {len(matches)} scans")
    else:
        console.print(f"[red]Error:[/red] Scan with ID {scan_id} not found")
    raise typer.Exit(1)


def _print_recorded(scan: ScanRecord) -> None:
    meta = scan.metadata
    console.print(f"\n[bold green]Scan recorded![/bold green] ID: {scan.id}")
    console.print(f"Total violations: {meta.total_violations}")
    for severity in SEVERITY_ORDER:
        style = SEVERITY_STYLES[severity.value]
        count = meta.violations_by_severity.count(severity)
        console.print(f"  [{style}]{severity.value.capitalize()}: {count}[/{style}]")


@app.command()
def scan(
    url: str = typer.Argument(..., help="URL to scan"),
    mode: ScanMode = typer.Option(ScanMode.SINGLE, "--mode", "-m", help="Scan mode"),
    label: str = typer.Option(None, "--label", "-l", help="Label for the scan"),
    service_url: str = typer.Option(SCAN_SERVICE_URL, "--service-url", help="Scanning service URL"),
    timeout: int = typer.Option(SCAN_TIMEOUT, "--timeout", help="Scan timeout (seconds)"),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """Scan a URL through the scanning service and record the report."""
    from a11y_history.pipeline import run_scan_pipeline
    from a11y_history.providers import HttpReportProvider, ReportProviderError

    _configure_logging(logging.INFO)

    provider = HttpReportProvider(base_url=service_url, timeout=timeout)
    store = _get_store(data_dir)

    console.print(f"\n[bold]Scanning {url} ({mode.value})...[/bold]\n")
    try:
        result = run_scan_pipeline(provider, store, url, mode, label=label)
    except (ValueError, ReportProviderError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _print_recorded(_unwrap(result))


@app.command()
def add(
    url: str = typer.Argument(..., help="URL the report was produced for"),
    report_file: Path = typer.Option(..., "--report-file", "-r", help="Markdown report file"),
    mode: ScanMode = typer.Option(ScanMode.SINGLE, "--mode", "-m", help="Scan mode"),
    label: str = typer.Option(None, "--label", "-l", help="Label for the scan"),
    discovered_url: list[str] = typer.Option(
        None, "--discovered-url", help="Page found during exploration (repeatable)"
    ),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """Record an existing markdown report."""
    _configure_logging()

    if not report_file.exists():
        console.print(f"[red]Error:[/red] Report file not found: {report_file}")
        raise typer.Exit(1)

    report = report_file.read_text(encoding="utf-8")
    store = _get_store(data_dir)
    scan_record = _unwrap(
        store.add(url, mode, report, label=label, discovered_urls=discovered_url or None)
    )
    _print_recorded(scan_record)


@app.command("list")
def list_scans(
    url: str = typer.Option(None, "--url", "-u", help="Filter by URL (substring)"),
    mode: ScanMode = typer.Option(None, "--mode", "-m", help="Filter by scan mode"),
    since: datetime = typer.Option(None, "--since", help="Only scans at or after this date"),
    until: datetime = typer.Option(None, "--until", help="Only scans at or before this date"),
    min_violations: int = typer.Option(None, "--min-violations", help="Minimum violations"),
    max_violations: int = typer.Option(None, "--max-violations", help="Maximum violations"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of results"),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """List recorded scans, most recent first."""
    _configure_logging()

    store = _get_store(data_dir)
    criteria = HistoryFilter(
        url=url,
        mode=mode,
        date_from=since,
        date_to=until,
        min_violations=min_violations,
        max_violations=max_violations,
    )
    scans = _unwrap(store.filter(criteria))

    if not scans:
        console.print("[yellow]No scans found.[/yellow]")
        return

    table = Table(title=f"Scan History ({len(scans)} scans)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("When", style="dim")
    table.add_column("URL", style="blue")
    table.add_column("Mode")
    table.add_column("Violations", justify="right", style="magenta")
    table.add_column("Score", justify="right")
    table.add_column("Label", style="dim")

    for record in scans[:limit]:
        score = calculate_quality_score(record)
        color = _get_score_color(score)
        table.add_row(
            record.id[:8],
            format_relative_time(record.timestamp),
            truncate_url(record.url, 40),
            record.mode.value,
            str(record.metadata.total_violations),
            f"[{color}]{score}[/{color}]",
            record.label or "",
        )

    console.print(table)
    if len(scans) > limit:
        console.print(f"[dim]... and {len(scans) - limit} more[/dim]")


@app.command()
def show(
    scan_id: str = typer.Argument(..., help="Scan ID (or unique prefix)"),
    report: bool = typer.Option(False, "--report", help="Render the full markdown report"),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """Show details of a single scan."""
    _configure_logging()

    record = _resolve_scan(_get_store(data_dir), scan_id)
    meta = record.metadata

    table = Table(title=f"Scan {record.id}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("URL", record.url)
    table.add_row("Mode", record.mode.value)
    table.add_row("Date", format_full_date(record.timestamp))
    table.add_row("Label", record.label or "-")
    table.add_row("Pages", str(meta.page_count))
    table.add_row("WCAG level", meta.wcag_level.value if meta.wcag_level else "-")
    if meta.scan_duration is not None:
        table.add_row("Duration", format_duration(meta.scan_duration))
    table.add_row("Total violations", str(meta.total_violations))
    for severity in SEVERITY_ORDER:
        style = SEVERITY_STYLES[severity.value]
        count = meta.violations_by_severity.count(severity)
        table.add_row(f"  {severity.value.capitalize()}", f"[{style}]{count}[/{style}]")
    table.add_row("Quality score", str(calculate_quality_score(record)))
    console.print(table)

    if record.discovered_urls:
        console.print(f"\n[bold]Discovered pages ({len(record.discovered_urls)}):[/bold]")
        for discovered in record.discovered_urls:
            console.print(f"  {discovered}")

    if report:
        console.print()
        console.print(Markdown(record.report))


@app.command()
def compare(
    baseline_id: str = typer.Argument(..., help="Earlier scan ID (or unique prefix)"),
    current_id: str = typer.Argument(..., help="Later scan ID (or unique prefix)"),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """Compare two scans and show fixed and new violations."""
    _configure_logging()

    store = _get_store(data_dir)
    baseline = _resolve_scan(store, baseline_id)
    current = _resolve_scan(store, current_id)

    validation = validate_comparison(baseline, current)
    if not validation.valid:
        console.print(f"[red]Error:[/red] {validation.warning}")
        raise typer.Exit(1)
    if validation.warning:
        console.print(f"[yellow]Warning:[/yellow] {validation.warning}")

    comparison = compare_scan_records(baseline, current)
    overall = comparison.overall

    table = Table(title="Violations by Severity")
    table.add_column("Severity", style="cyan")
    table.add_column("Baseline", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Fixed", justify="right", style="green")
    table.add_column("New", justify="right", style="red")

    for severity in SEVERITY_ORDER:
        delta = comparison.by_severity[severity]
        style = SEVERITY_STYLES[severity.value]
        table.add_row(
            f"[{style}]{severity.value.capitalize()}[/{style}]",
            str(delta.baseline_count),
            str(delta.current_count),
            str(delta.fixed),
            str(delta.new),
        )
    table.add_row(
        "[bold]Total[/bold]",
        str(overall.baseline_total),
        str(overall.current_total),
        str(overall.fixed),
        str(overall.new),
    )
    console.print(table)

    if is_improvement(comparison):
        color = "green"
    elif is_regression(comparison):
        color = "red"
    else:
        color = "white"
    trend = get_trend_indicator(overall.percentage_change)
    console.print(
        f"\n[{color}]{trend} {format_percentage_change(overall.percentage_change)}[/{color}] "
        f"{get_comparison_summary(comparison)}"
    )

    significant = get_most_significant_change(comparison)
    if significant is not None:
        console.print(f"Most significant change: {significant.value}")

    score_delta = compare_quality_scores(baseline, current)
    console.print(
        f"Quality score: {calculate_quality_score(baseline)} -> "
        f"{calculate_quality_score(current)} ({score_delta:+d})"
    )


@app.command()
def label(
    scan_id: str = typer.Argument(..., help="Scan ID (or unique prefix)"),
    text: str = typer.Argument(..., help="New label; empty string clears it"),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """Set or clear a scan's label."""
    _configure_logging()

    store = _get_store(data_dir)
    record = _resolve_scan(store, scan_id)
    updated = _unwrap(store.update_label(record.id, text))
    if updated.label:
        console.print(f"[green]Label set:[/green] {updated.label}")
    else:
        console.print("[green]Label cleared[/green]")


@app.command()
def delete(
    scan_id: str = typer.Argument(..., help="Scan ID (or unique prefix)"),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """Delete a scan from history."""
    _configure_logging()

    store = _get_store(data_dir)
    record = _resolve_scan(store, scan_id)
    _unwrap(store.delete(record.id))
    console.print(f"[green]Deleted scan {record.id}[/green]")


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """Delete all scans."""
    _configure_logging()

    if not yes and not typer.confirm("Delete all scan history?"):
        console.print("Aborted.")
        raise typer.Exit(1)

    _unwrap(_get_store(data_dir).clear())
    console.print("[green]Scan history cleared[/green]")


@app.command()
def export(
    output: str = typer.Option("-", "--output", "-o", help="Output file ('-' for stdout)"),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """Export the full history as JSON."""
    _configure_logging()

    payload = _unwrap(_get_store(data_dir).export_as_json())
    if output == "-":
        typer.echo(payload)
        return

    output_path = Path(output)
    output_path.write_text(payload, encoding="utf-8")
    console.print(f"[green]Exported history to {output_path}[/green]")


@app.command("import")
def import_history(
    path: Path = typer.Argument(..., help="JSON file produced by 'export'"),
    data_dir: Path = DATA_DIR_OPTION,
) -> None:
    """Replace the history with an exported JSON file."""
    _configure_logging()

    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)

    store = _get_store(data_dir)
    _unwrap(store.import_from_json(path.read_text(encoding="utf-8")))
    quota = _unwrap(store.get_quota())
    console.print(f"[green]Imported {quota.scan_count} scans[/green]")


@app.command()
def quota(data_dir: Path = DATA_DIR_OPTION) -> None:
    """Show storage usage."""
    _configure_logging()

    usage = _unwrap(_get_store(data_dir).get_quota())
    if usage.needs_pruning:
        color = "red"
    elif usage.near_capacity:
        color = "yellow"
    else:
        color = "green"

    table = Table(title="Storage Usage")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Scans", str(usage.scan_count))
    table.add_row("Used", f"{usage.used / 1024:.1f} KB")
    table.add_row("Limit", f"{usage.limit / 1024 / 1024:.0f} MB")
    table.add_row("Usage", f"[{color}]{usage.percentage_used:.1f}%[/{color}]")
    console.print(table)

    if usage.needs_pruning:
        console.print("[red]Storage is almost full; oldest scans may be pruned on the next write.[/red]")
    elif usage.near_capacity:
        console.print("[yellow]Storage is near capacity.[/yellow]")


if __name__ == "__main__":
    app()

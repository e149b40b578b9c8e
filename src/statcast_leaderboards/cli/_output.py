import json
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.table import Table

from statcast_leaderboards.metrics.deployed import DeployedMetric
from statcast_leaderboards.metrics.library import MetricDefinition
from statcast_leaderboards.report.builder import CompiledReport

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def print_error(message: str) -> None:
    err_console.print(f"[red bold]Error:[/red bold] {message}")


def _cell(value: Any) -> str:
    if value is None:
        return "—"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def print_records(records: Sequence[dict[str, Any]], *, title: str | None = None, as_json: bool = False) -> None:
    if as_json:
        console.print(json.dumps(list(records), default=str), soft_wrap=True, markup=False, emoji=False)
        return
    if not records:
        console.print("No rows found.")
        return
    columns = list(dict.fromkeys(key for record in records for key in record))
    table = Table(title=title, show_edge=False, pad_edge=False)
    for column in columns:
        table.add_column(column, justify="left" if isinstance(records[0].get(column), str) else "right")
    for record in records:
        table.add_row(*(_cell(record.get(c)) for c in columns))
    console.print(table)


def print_metric_library(definitions: Sequence[MetricDefinition]) -> None:
    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Metric")
    table.add_column("Label")
    table.add_column("Family")
    table.add_column("Domain")
    table.add_column("Precision", justify="right")
    table.add_column("Columns")
    for d in definitions:
        table.add_row(
            d.name,
            d.label,
            d.family.value,
            d.domain.value,
            "—" if d.precision is None else str(d.precision),
            ", ".join(sorted(d.required_columns)) or "—",
        )
    console.print(table)


def print_deployed_metrics(metrics: Sequence[DeployedMetric]) -> None:
    if not metrics:
        console.print("No deployed metrics.")
        return
    table = Table(title="Deployed metrics", show_edge=False, pad_edge=False)
    table.add_column("Column")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Reports", justify="center")
    for m in metrics:
        table.add_row(
            m.column_name,
            m.name,
            m.deploy_config.category or "Custom Models",
            "yes" if m.deploy_config.reports_builder else "no",
        )
    console.print(table)


def print_compiled_report(report: CompiledReport) -> None:
    console.print(f"[bold]Metrics:[/bold] {', '.join(report.metrics)}")
    console.print(f"[bold]Group by:[/bold] {', '.join(report.group_by) or '(none)'}")
    if report.dropped_filters:
        dropped = ", ".join(f"{f.column} {f.op}" for f in report.dropped_filters)
        console.print(f"[yellow]Dropped filters:[/yellow] {dropped}")
    console.print(f"[bold]SQL:[/bold] {report.sql}")

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated, Any

import typer

from statcast_leaderboards.cli._input import load_name_lookup, load_rows, write_rows
from statcast_leaderboards.cli._logging import configure_logging
from statcast_leaderboards.cli._output import (
    console,
    print_compiled_report,
    print_deployed_metrics,
    print_error,
    print_metric_library,
    print_records,
)
from statcast_leaderboards.config import EngineSettings, InvalidSettingsError, load_settings
from statcast_leaderboards.db.connection import create_connection, load_events
from statcast_leaderboards.db.executor import QueryExecutionError, SqliteQueryExecutor
from statcast_leaderboards.domain.report import ReportSpec
from statcast_leaderboards.domain.result import Err, Ok
from statcast_leaderboards.enrich.trajectory import DERIVED_FIELDS, TrajectoryEnricher
from statcast_leaderboards.leaderboard.deception import CategoryStandardizer
from statcast_leaderboards.leaderboard.pivot import (
    DECEPTION_LEADERBOARD,
    LEADERBOARDS,
    CategoryAggregateRow,
    LeaderboardPivotAggregator,
    LeaderboardQuery,
)
from statcast_leaderboards.metrics.deployed import HttpDeployedMetricSource, get_deployed_metric_cache
from statcast_leaderboards.metrics.library import DEFAULT_LIBRARY
from statcast_leaderboards.query.render import Dialect
from statcast_leaderboards.report.builder import ReportQueryBuilder

app = typer.Typer(name="slb", help="Statcast leaderboards: metric library, ad-hoc reports and leaderboards")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable DEBUG logging")] = False,
) -> None:
    """Statcast leaderboards: metric library, ad-hoc reports and leaderboards."""
    configure_logging(verbose=verbose)
    if ctx.invoked_subcommand is None:
        raise typer.Exit()


_JsonOpt = Annotated[bool, typer.Option("--json", help="Print rows as JSON instead of a table")]
_RowsArg = Annotated[Path, typer.Argument(help="CSV, Parquet, JSON or JSON-lines file of rows", exists=True)]
_GameYearOpt = Annotated[int | None, typer.Option("--game-year", help="Season to include")]
_MinPitchesOpt = Annotated[int | None, typer.Option("--min-pitches", help="Minimum total pitches per pitcher")]
_SortByOpt = Annotated[str | None, typer.Option("--sort-by", help="Column to sort by")]
_SortDirOpt = Annotated[str, typer.Option("--sort-dir", help="ASC or DESC")]
_LimitOpt = Annotated[int | None, typer.Option("--limit", help="Maximum rows returned")]
_OffsetOpt = Annotated[int, typer.Option("--offset", help="Rows to skip before the first returned row")]


def _settings() -> EngineSettings:
    try:
        return load_settings()
    except InvalidSettingsError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc


def _body(**values: Any) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _for_year(rows: Iterable[dict[str, Any]], game_year: int | None) -> list[dict[str, Any]]:
    if game_year is None:
        return list(rows)
    return [r for r in rows if r.get("game_year") is None or int(r["game_year"]) == game_year]


def _parse_filter(text: str) -> dict[str, Any]:
    parts = text.split(":", 2)
    if len(parts) != 3:
        raise typer.BadParameter(f"expected column:op:value, got {text!r}", param_hint="--filter")
    column, op, value = parts
    if op in ("in", "between"):
        return {"column": column, "op": op, "value": value.split(",")}
    return {"column": column, "op": op, "value": value}


@app.command()
def metrics(
    deployed: Annotated[bool, typer.Option("--deployed", help="Also list deployed custom metrics")] = False,
) -> None:
    """List the metric library."""
    print_metric_library(DEFAULT_LIBRARY.definitions)
    if deployed:
        settings = _settings()
        source = HttpDeployedMetricSource(settings.deployed_base_url, timeout=settings.deployed_timeout_seconds)
        cache = get_deployed_metric_cache(source, ttl_seconds=settings.deployed_ttl_seconds)
        print_deployed_metrics(cache.get())


@app.command()
def report(
    metric: Annotated[list[str] | None, typer.Option("--metric", "-m", help="Metric name (repeatable)")] = None,
    group_by: Annotated[list[str] | None, typer.Option("--group-by", "-g", help="Dimension (repeatable)")] = None,
    filter_: Annotated[
        list[str] | None,
        typer.Option("--filter", "-f", help="column:op:value; comma-separate values for in/between"),
    ] = None,
    sort_by: _SortByOpt = None,
    sort_dir: _SortDirOpt = "DESC",
    limit: _LimitOpt = None,
    min_pitches: _MinPitchesOpt = None,
    spec_file: Annotated[Path | None, typer.Option("--spec", help="JSON report request body", exists=True)] = None,
    rows: Annotated[
        Path | None,
        typer.Option("--rows", help="Event rows to run the report against", exists=True),
    ] = None,
    dialect: Annotated[str, typer.Option("--dialect", help="postgres or sqlite")] = "postgres",
    as_json: _JsonOpt = False,
) -> None:
    """Compile a report to SQL, and run it against local event rows when --rows is given.

    Example:
        slb report -m pitches -m whiff_pct -g pitch_type -f game_year:eq:2025 --rows pitches.csv
    """
    settings = _settings()
    body: dict[str, Any] = json.loads(spec_file.read_text()) if spec_file is not None else {}
    body.update(
        _body(
            metrics=metric or None,
            groupBy=group_by or None,
            filters=[_parse_filter(f) for f in filter_] if filter_ else None,
            sortBy=sort_by,
            sortDir=sort_dir,
            limit=limit,
            minPitches=min_pitches,
        )
    )
    spec = ReportSpec.from_dict(
        body,
        default_limit=settings.report_default_limit,
        default_min_sample=settings.report_default_min_pitches,
    )
    try:
        target = Dialect.SQLITE if rows is not None else Dialect(dialect.lower())
    except ValueError as exc:
        print_error(f"Unknown dialect: {dialect}")
        raise typer.Exit(code=1) from exc
    builder = ReportQueryBuilder(DEFAULT_LIBRARY, dialect=target, max_limit=settings.report_max_limit)

    match builder.build(spec):
        case Ok(built):
            compiled = built
        case Err(e):
            print_error(e.message)
            raise typer.Exit(code=1)
    if rows is None:
        if as_json:
            print_records([compiled.to_dict()], as_json=True)
        else:
            print_compiled_report(compiled)
        return
    if not as_json:
        print_compiled_report(compiled)
    conn = create_connection(":memory:")
    try:
        load_events(conn, load_rows(rows))
        results = SqliteQueryExecutor(conn).run_query(compiled.sql)
    except QueryExecutionError as exc:
        print_error(f"Query failed: {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        conn.close()
    print_records(results, as_json=as_json)


@app.command()
def enrich(
    rows: _RowsArg,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Write enriched rows to this file")] = None,
    batter_names: Annotated[
        Path | None,
        typer.Option("--batter-names", help="Lookup file with id and name columns", exists=True),
    ] = None,
    preview: Annotated[int, typer.Option("--preview", help="Rows to print when not writing a file")] = 20,
    as_json: _JsonOpt = False,
) -> None:
    """Add approach angles, movement in inches, batting team and location fields to pitch rows."""
    settings = _settings()
    lookup = load_name_lookup(batter_names) if batter_names is not None else None
    enricher = TrajectoryEnricher(settings.plate_distance_ft, batter_names=lookup)
    enriched = enricher.enrich(load_rows(rows))
    if output is not None:
        write_rows(enriched, output)
        console.print(f"[bold green]Enriched[/bold green] {len(enriched)} rows → {output}")
        return
    shown = [{k: r.get(k) for k in ("pitcher", "pitch_type", *DERIVED_FIELDS)} for r in enriched[:preview]]
    print_records(shown, as_json=as_json)


def _leaderboard_query(
    settings: EngineSettings,
    game_year: int | None,
    min_pitches: int | None,
    sort_by: str | None,
    sort_dir: str,
    limit: int | None,
    offset: int,
) -> LeaderboardQuery:
    body = _body(
        gameYear=game_year,
        minPitches=min_pitches,
        sortBy=sort_by,
        sortDir=sort_dir,
        limit=limit,
        offset=offset,
    )
    return LeaderboardQuery.from_dict(
        body,
        default_game_year=settings.leaderboard_game_year,
        default_min_weight=settings.leaderboard_min_pitches,
        max_limit=settings.leaderboard_max_limit,
    )


@app.command()
def leaderboard(
    name: Annotated[str, typer.Argument(help=f"Leaderboard: {', '.join(LEADERBOARDS)}")],
    rows: _RowsArg,
    game_year: _GameYearOpt = None,
    min_pitches: _MinPitchesOpt = None,
    sort_by: _SortByOpt = None,
    sort_dir: _SortDirOpt = "DESC",
    limit: _LimitOpt = None,
    offset: _OffsetOpt = 0,
    as_json: _JsonOpt = False,
) -> None:
    """Pivot per-pitch-type aggregate rows into one leaderboard row per pitcher."""
    spec = LEADERBOARDS.get(name)
    if spec is None:
        print_error(f"Unknown leaderboard: {name} (expected one of {', '.join(LEADERBOARDS)})")
        raise typer.Exit(code=1)
    settings = _settings()
    query = _leaderboard_query(settings, game_year, min_pitches, sort_by, sort_dir, limit, offset)
    category_rows = [CategoryAggregateRow.from_record(r, spec) for r in _for_year(load_rows(rows), query.game_year)]
    records = LeaderboardPivotAggregator(spec).run(category_rows, query)
    print_records(records, title=f"{spec.name.title()} leaderboard", as_json=as_json)


@app.command()
def deception(
    rows: _RowsArg,
    game_year: _GameYearOpt = None,
    min_category_pitches: Annotated[
        int, typer.Option("--min-category-pitches", help="Minimum pitches per pitcher and pitch type")
    ] = 100,
    categories: Annotated[bool, typer.Option("--categories", help="Print per-pitch-type rows only")] = False,
    min_pitches: _MinPitchesOpt = None,
    sort_by: _SortByOpt = None,
    sort_dir: _SortDirOpt = "DESC",
    limit: _LimitOpt = None,
    offset: _OffsetOpt = 0,
    as_json: _JsonOpt = False,
) -> None:
    """Standardize pitch traits from raw pitch rows and build the deception leaderboard."""
    settings = _settings()
    query = _leaderboard_query(settings, game_year, min_pitches, sort_by, sort_dir, limit, offset)
    pitches = _for_year(load_rows(rows), query.game_year)
    enriched = TrajectoryEnricher(settings.plate_distance_ft).enrich(pitches)
    category_rows = CategoryStandardizer(min_category_pitches).standardize(enriched)
    if categories:
        records = [
            {
                "pitcher": r.entity_id,
                "player_name": r.entity_name,
                "pitch_type": r.category,
                "pitches": r.weight,
                **r.values,
            }
            for r in category_rows
        ]
        print_records(records, title="Deception by pitch type", as_json=as_json)
        return
    records = LeaderboardPivotAggregator(DECEPTION_LEADERBOARD).run(category_rows, query)
    print_records(records, title="Deception leaderboard", as_json=as_json)

"""Key Result commands: compute metrics, list, import legacy records."""

import json
import sqlite3
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cli.utils import format_status, get_db_path
from shared_types import KRType, ThresholdDirection

console = Console()


@click.group()
def kr():
    """Inspect and import Key Results."""
    pass


@kr.command("compute")
@click.option("-t", "--type", "kr_type", required=True,
              type=click.Choice([t.value for t in KRType]), help="KR type")
@click.option("--target", type=float, help="Target value (AUMENTO/REDUCAO)")
@click.option("--baseline", type=float, help="Baseline value (AUMENTO/REDUCAO)")
@click.option("--threshold", type=float, help="Threshold value (LIMIAR)")
@click.option("--direction", type=click.Choice([d.value for d in ThresholdDirection]),
              help="Threshold direction (LIMIAR)")
@click.option("--current", type=float, help="Current value")
@click.option("--checklist", "checklist_file", type=click.Path(exists=True, path_type=Path),
              help="JSON file with checklist items (ENTREGAVEL)")
def kr_compute(kr_type, target, baseline, threshold, direction, current, checklist_file):
    """Compute progress/status for ad-hoc KR values."""
    from keyresults import compute_kr_metrics, sanitize_by_type

    checklist = None
    if checklist_file:
        try:
            checklist = json.loads(checklist_file.read_text())
        except ValueError as e:
            console.print(f"[red]Invalid checklist JSON:[/] {e}")
            sys.exit(1)

    record = sanitize_by_type({
        "type": kr_type,
        "target_value": target,
        "baseline_value": baseline,
        "threshold_value": threshold,
        "threshold_direction": direction,
        "current_value": current,
        "checklist_json": checklist,
    })
    result = compute_kr_metrics(record)

    table = Table(show_header=True)
    table.add_column("Type")
    table.add_column("Progress", justify="right")
    table.add_column("Achieved")
    table.add_column("Status")
    table.add_row(
        kr_type,
        f"{result.progress:.2f}%",
        "yes" if result.is_achieved else "no",
        format_status(result.status_computed),
    )
    console.print(table)


@kr.command("list")
@click.argument("tenant_id")
@click.option("--objective", "objective_id", help="Only KRs of this objective")
def kr_list(tenant_id: str, objective_id: str | None):
    """List a tenant's KRs with computed metrics."""
    from web.kr_store import list_key_results

    key_results = list_key_results(tenant_id, objective_id=objective_id, db_path=get_db_path())
    if not key_results:
        console.print("[yellow]No key results found.[/]")
        return

    table = Table(title=f"Key Results: {tenant_id}", show_header=True)
    table.add_column("Objective", style="dim")
    table.add_column("Title")
    table.add_column("Type", style="cyan")
    table.add_column("Progress", justify="right")
    table.add_column("Status")
    for item in key_results:
        computed = item["computed"]
        table.add_row(
            item["objective"]["title"][:30],
            item["title"][:45],
            item["type"],
            f"{computed['progress']:.0f}%",
            format_status(computed["status_computed"]),
        )
    console.print(table)


@kr.command("import-legacy")
@click.argument("tenant_id")
@click.argument("objective_id")
@click.argument("source", type=click.Path(exists=True, path_type=Path))
@click.option("--dry-run", is_flag=True, help="Show the inferred types without writing")
def kr_import_legacy(tenant_id: str, objective_id: str, source: Path, dry_run: bool):
    """Import untyped legacy KRs from a JSON list, inferring each KR's type.

    Every record is validated against the schema of its inferred type before
    anything is written; if any record is invalid, nothing is imported.
    """
    from keyresults.migrate import migrate_record
    from keyresults.validation import validate_key_result
    from observability import log_run_summary, metrics
    from web.kr_store import create_key_results, get_objective

    try:
        records = json.loads(source.read_text())
    except ValueError as e:
        console.print(f"[red]Invalid JSON:[/] {e}")
        sys.exit(1)
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        console.print("[red]Expected a JSON list of key result objects[/]")
        sys.exit(1)

    path = get_db_path()
    if not dry_run and not get_objective(objective_id, tenant_id, db_path=path):
        console.print(f"[red]Objective not found:[/] {objective_id}")
        sys.exit(1)

    table = Table(title="Legacy import", show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Type", style="cyan")
    table.add_column("Unit", style="dim")
    table.add_column("Result")

    valid, invalid = [], 0
    with metrics.timer("kr.import_legacy"):
        for i, record in enumerate(records, 1):
            data = migrate_record(record)
            data.update(
                objective_id=objective_id,
                title=record.get("title") or "Untitled KR",
                description=record.get("description"),
                due_date=record.get("due_date") or record.get("end_date"),
            )
            metrics.counter("kr.import_legacy.inferred", label=data["type"])
            try:
                payload = validate_key_result(data)
            except ValueError as e:
                invalid += 1
                metrics.counter("kr.import_legacy.invalid", label=data["type"])
                table.add_row(
                    str(i),
                    escape(str(data["title"])[:45]),
                    data["type"],
                    "-",
                    f"[red]invalid:[/] {escape(str(e))}",
                )
                continue
            valid.append(payload.model_dump(mode="json"))
            table.add_row(str(i), escape(payload.title[:45]), data["type"], data.get("unit") or "-", "[green]ok[/]")

    console.print(table)
    if invalid:
        console.print(f"[red]{invalid} of {len(records)} records are invalid; nothing imported[/]")
        log_run_summary("kr.import_legacy.summary")
        sys.exit(1)

    if not dry_run:
        try:
            create_key_results(tenant_id, valid, db_path=path)
        except sqlite3.IntegrityError as e:
            console.print(f"[red]Import failed, nothing imported:[/] {escape(str(e))}")
            sys.exit(1)

    verb = "Would import" if dry_run else "Imported"
    console.print(f"{verb} {len(valid)} key results")
    log_run_summary("kr.import_legacy.summary")

"""
Command line interface for Daybook.

Thin wrapper over DaybookService: every command opens the store, runs one
operation and prints the result.
"""

import asyncio
import json
import logging
import os
import shutil
import sqlite3
import sys
from datetime import date
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from daybook.config import LOG_DIR, LOG_FILE, LOG_FORMAT, get_db_path, get_log_level
from daybook.db.connection import ConnectionManager
from daybook.db.schema import SCHEMA_VERSION, SchemaMigrator, get_user_version, quote
from daybook.exceptions import DaybookError
from daybook.services.daybook import DaybookService

logger = logging.getLogger(__name__)

console = Console()


def configure_logging():
    """Configure root logging from LOG_LEVEL / DAYBOOK_LOG_FILE."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if os.getenv("DAYBOOK_LOG_FILE"):
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(LOG_DIR / LOG_FILE))
    logging.basicConfig(
        level=get_log_level(), format=LOG_FORMAT, handlers=handlers, force=True
    )


def run_service(db_path: Path, operation):
    """Run ``operation(service)`` against a fresh service and close it."""

    async def _run():
        async with DaybookService(db_path) as service:
            return await operation(service)

    try:
        return asyncio.run(_run())
    except DaybookError as e:
        logger.error(f"{type(e).__name__}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@click.group()
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Store file (default: $DAYBOOK_DB_PATH or data/daybook.db).",
)
@click.pass_context
def cli(ctx: click.Context, db_path: Path) -> None:
    """Local diary and expense store."""
    load_dotenv()
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path or get_db_path()


# =========================================================================
# Store maintenance
# =========================================================================


@cli.command("migrate")
@click.option("--no-backup", is_flag=True, default=False, help="Skip the .backup copy.")
@click.pass_context
def migrate(ctx: click.Context, no_backup: bool) -> None:
    """Upgrade the store to the latest schema version."""
    db_path: Path = ctx.obj["db_path"]

    if db_path.exists() and not no_backup:
        backup_path = db_path.with_name(db_path.name + ".backup")
        shutil.copy2(db_path, backup_path)
        console.print(f"Backup created: {backup_path}")

    async def _migrate():
        manager = ConnectionManager(db_path, SchemaMigrator())
        connection = await manager.open()
        version = connection.schema_version
        await manager.close()
        return version

    try:
        version = asyncio.run(_migrate())
    except DaybookError as e:
        console.print(f"[red]Migration failed:[/red] {e}")
        sys.exit(1)
    console.print(f"Store {db_path} is at schema version {version} (latest: {SCHEMA_VERSION})")


@cli.command("info")
@click.option("--json", "as_json", is_flag=True, default=False)
@click.pass_context
def info(ctx: click.Context, as_json: bool) -> None:
    """Show store path, schema version and collection sizes."""
    db_path: Path = ctx.obj["db_path"]

    if not db_path.exists():
        if as_json:
            click.echo(json.dumps({"exists": False, "path": str(db_path)}))
        else:
            console.print(f"Store does not exist yet: {db_path}")
        return

    conn = sqlite3.connect(str(db_path))
    try:
        version = get_user_version(conn)
        collections = {}
        for schema in SchemaMigrator().collections():
            try:
                row = conn.execute(f"SELECT COUNT(*) FROM {quote(schema.name)}").fetchone()
                collections[schema.name] = row[0]
            except sqlite3.OperationalError:
                collections[schema.name] = -1  # not created yet
    except sqlite3.DatabaseError as e:
        logger.error(f"Failed to read store {db_path}: {e}")
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        conn.close()

    if as_json:
        click.echo(
            json.dumps(
                {
                    "exists": True,
                    "path": str(db_path),
                    "schema_version": version,
                    "latest_version": SCHEMA_VERSION,
                    "collections": collections,
                },
                indent=2,
            )
        )
        return

    console.print(f"[bold]Store[/bold]: {db_path}")
    console.print(f"Schema version: {version} (latest: {SCHEMA_VERSION})")
    for name, count in collections.items():
        status = f"{count}" if count >= 0 else "[red]missing[/red]"
        console.print(f"  {name:<20} {status}")


# =========================================================================
# Diary
# =========================================================================


@cli.group("diary")
def diary() -> None:
    """Diary entries."""


@diary.command("save")
@click.argument("category")
@click.argument("text")
@click.option("--date", "day", default=None, help="YYYY-MM-DD (default: today).")
@click.pass_context
def diary_save(ctx: click.Context, category: str, text: str, day: str) -> None:
    """Save TEXT under CATEGORY, replacing that day's entry for it."""
    entry = run_service(
        ctx.obj["db_path"],
        lambda s: s.save_diary_entry(day or date.today(), category, text),
    )
    console.print(f"Saved {entry.date} [cyan]{entry.category}[/cyan]")


@diary.command("show")
@click.option("--date", "day", default=None, help="YYYY-MM-DD (default: today).")
@click.pass_context
def diary_show(ctx: click.Context, day: str) -> None:
    """Show the entries of one day."""
    day = day or date.today().isoformat()
    entries = run_service(ctx.obj["db_path"], lambda s: s.load_diary_entries(day))
    if not entries:
        console.print(f"No entries for {day}")
        return
    for entry in sorted(entries, key=lambda e: e.category):
        console.print(
            f"[bold]# {entry.date} {entry.category}[/bold] "
            f"[dim]{entry.timestamp.strftime('%H:%M:%S')}[/dim]"
        )
        console.print(entry.text, markup=False, highlight=False)
        console.print()


# =========================================================================
# Finance
# =========================================================================


@cli.group("finance")
def finance() -> None:
    """Finance records and categories."""


@finance.command("add")
@click.argument("category")
@click.argument("amount")
@click.option("--note", default="", help="Optional note.")
@click.option("--date", "day", default=None, help="YYYY-MM-DD (default: today).")
@click.pass_context
def finance_add(ctx: click.Context, category: str, amount: str, note: str, day: str) -> None:
    """Record AMOUNT under CATEGORY."""
    record = run_service(
        ctx.obj["db_path"],
        lambda s: s.save_finance_record(category, amount, note, date=day),
    )
    console.print(f"Saved record #{record.id}: {record.amount:,.2f} ({record.category})")


@finance.command("show")
@click.option("--date", "day", default=None, help="YYYY-MM-DD (default: today).")
@click.pass_context
def finance_show(ctx: click.Context, day: str) -> None:
    """Show the finance records of one day."""
    day = day or date.today().isoformat()
    records = run_service(ctx.obj["db_path"], lambda s: s.load_finance_records(day))
    if not records:
        console.print(f"No records for {day}")
        return

    table = Table(title=f"Finance records {day}")
    table.add_column("ID", justify="right")
    table.add_column("Category")
    table.add_column("Amount", justify="right")
    table.add_column("Note")
    for record in sorted(records, key=lambda r: r.id):
        table.add_row(str(record.id), record.category, f"{record.amount:,.2f}", record.note)
    console.print(table)


@finance.command("categories")
@click.pass_context
def finance_categories(ctx: click.Context) -> None:
    """List finance categories."""
    categories = run_service(ctx.obj["db_path"], lambda s: s.list_finance_categories())
    for category in categories:
        console.print(f"{category.id:>4}  {category.name}")


@finance.command("add-category")
@click.argument("name")
@click.pass_context
def finance_add_category(ctx: click.Context, name: str) -> None:
    """Add a finance category."""
    category = run_service(ctx.obj["db_path"], lambda s: s.add_finance_category(name))
    console.print(f"Added category #{category.id}: {category.name}")


@finance.command("delete-category")
@click.argument("category_id", type=int)
@click.pass_context
def finance_delete_category(ctx: click.Context, category_id: int) -> None:
    """Delete a finance category by id (records keep their category name)."""
    deleted = run_service(
        ctx.obj["db_path"], lambda s: s.delete_finance_category(category_id)
    )
    if deleted:
        console.print(f"Deleted category #{category_id}")
    else:
        console.print(f"No category #{category_id}")


# =========================================================================
# Stats
# =========================================================================


@cli.command("stats")
@click.option("--today", "day", default=None, help="Reference day (default: today).")
@click.option("--json", "as_json", is_flag=True, default=False)
@click.pass_context
def stats(ctx: click.Context, day: str, as_json: bool) -> None:
    """Show daily, weekly and monthly totals."""
    result = run_service(ctx.obj["db_path"], lambda s: s.compute_stats(day))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    console.print(f"[bold]Stats for {result.today}[/bold]")
    console.print(f"  Today:       {result.daily_total:,.2f}")
    console.print(f"  This week:   {result.weekly_total:,.2f}")
    console.print(f"  This month:  {result.monthly_total:,.2f}")
    console.print("  Last 7 days:")
    for point in result.recent_series:
        console.print(f"    {point.date.isoformat()}  {point.total:,.2f}")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()

"""CLI for the ``transfer_matching`` package.

Command handlers (``cmd_match``, ``cmd_commit``, ...) return a process exit
code and print errors to stderr; the Typer commands below wrap them. The root
callback loads a local ``.env`` (``DATABASE_URL`` and friends) with
``python-dotenv`` and configures package logging before any command runs.
Business logic lives in ``transfer_matching.api`` and related modules.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path

import typer
from db.client import session_scope
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError
from typer.models import OptionInfo

from .commit import commit_matches
from .config import load_settings
from .errors import TransferMatchError
from .logging_setup import configure_logging
from .matching import match_accounts, resolve_transfer_account, scan_account_pairs
from .models import CommitPair, CommitResult, DateRange
from .preview import preview_to_dict, render_preview, select_pairs
from .unmerge import list_merges, unmerge_transfers

# Minimum score for unattended commits. Stricter than the preview threshold.
DEFAULT_COMMIT_MIN_SCORE = 65

_DATE_FORMATS = ["%Y-%m-%d"]


# ---- Small module-level helpers used by CLI commands -------------------------


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _date_range(start: datetime | None, end: datetime | None) -> DateRange | None:
    if start is None and end is None:
        return None
    return DateRange(
        start=start.date() if start is not None else None,
        end=end.date() if end is not None else None,
    )


def parse_account_pair(text: str) -> tuple[str, str]:
    """Split ``"A:B"`` into two non-empty account references."""

    a_ref, sep, b_ref = text.partition(":")
    a_ref, b_ref = a_ref.strip(), b_ref.strip()
    if not sep or not a_ref or not b_ref:
        raise ValueError(f"invalid account pair {text!r}; expected ACCOUNT_A:ACCOUNT_B")
    return a_ref, b_ref


def _print_result(console: Console, verb: str, result: CommitResult) -> None:
    console.print(f"{verb}: {result.merged}  skipped: {result.skipped}")
    for message in result.errors:
        console.print(f"  [red]-[/red] {escape(message)}")


# ---- Command handlers ---------------------------------------------------------


def cmd_match(
    account_a: str,
    account_b: str,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    as_json: bool = False,
    database_url: str | None = None,
    config: Path | None = None,
    console: Console | None = None,
) -> int:
    """Preview matches between two real accounts without changing anything."""

    console = console or Console()
    try:
        settings = load_settings(config)
        date_range = _date_range(start, end)
        with session_scope(database_url=database_url) as session:
            acc_a = resolve_transfer_account(session, account_a)
            acc_b = resolve_transfer_account(session, account_b)
            preview = match_accounts(session, acc_a.id, acc_b.id, date_range, settings=settings)
    except (TransferMatchError, ValueError, OSError, SQLAlchemyError, RuntimeError) as e:
        return _error(str(e))

    if as_json:
        payload = {
            "account_a": {"id": acc_a.id, "name": acc_a.name},
            "account_b": {"id": acc_b.id, "name": acc_b.name},
            **preview_to_dict(preview),
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        render_preview(preview, console, title=f"{acc_a.name} <-> {acc_b.name}")
    return 0


def cmd_scan(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    database_url: str | None = None,
    config: Path | None = None,
    console: Console | None = None,
) -> int:
    """Preview every pair of active real accounts that has at least one match."""

    console = console or Console()
    try:
        settings = load_settings(config)
        with session_scope(database_url=database_url) as session:
            found = scan_account_pairs(
                session, settings=settings, date_range=_date_range(start, end)
            )
    except (ValueError, OSError, SQLAlchemyError, RuntimeError) as e:
        return _error(str(e))

    if not found:
        console.print("No transfer matches found between any account pair.")
        return 0
    for pair in found:
        render_preview(
            pair.preview,
            console,
            title=f"{pair.account_a_name} (#{pair.account_a_id}) <-> "
            f"{pair.account_b_name} (#{pair.account_b_id})",
        )
    console.print(f"{len(found)} account pair(s) with matches")
    return 0


def cmd_commit(
    pair_refs: list[str],
    *,
    min_score: int = DEFAULT_COMMIT_MIN_SCORE,
    dry_run: bool = False,
    start: datetime | None = None,
    end: datetime | None = None,
    database_url: str | None = None,
    config: Path | None = None,
    console: Console | None = None,
) -> int:
    """Commit high-confidence matches for account pairs in priority order.

    Detection re-runs for each account pair right before it is committed, so
    transactions merged by an earlier pair are no longer candidates for a
    later one. ``dry_run`` stops short of the commit call.
    """

    console = console or Console()
    if not pair_refs:
        return _error("at least one --pair is required")
    try:
        parsed = [parse_account_pair(s) for s in pair_refs]
        settings = load_settings(config)
        date_range = _date_range(start, end)
    except (ValueError, OSError) as e:
        return _error(str(e))

    total = CommitResult()
    selected_total = 0
    failed_pairs = 0
    for a_ref, b_ref in parsed:
        try:
            with session_scope(database_url=database_url) as session:
                acc_a = resolve_transfer_account(session, a_ref)
                acc_b = resolve_transfer_account(session, b_ref)
                preview = match_accounts(
                    session, acc_a.id, acc_b.id, date_range, settings=settings
                )
        except (TransferMatchError, SQLAlchemyError, RuntimeError) as e:
            # Account pairs are independent; report and move on to the next one.
            failed_pairs += 1
            message = f"{a_ref}:{b_ref}: {type(e).__name__}: {e}"
            total.skipped += 1
            total.errors.append(message)
            console.print(f"[yellow]SKIP[/yellow] {escape(message)}")
            continue

        selected: list[CommitPair] = select_pairs(preview.matches, min_score=min_score)
        selected_total += len(selected)
        console.print(
            f"[bold]{escape(acc_a.name)} <-> {escape(acc_b.name)}[/bold]: "
            f"{len(selected)} of {len(preview.matches)} match(es) at score >= {min_score}"
        )
        if dry_run:
            for p in selected:
                console.print(
                    f"  would merge transaction {p.candidate_b_id} into {p.candidate_a_id}"
                )
            continue
        if not selected:
            continue
        result = commit_matches(selected, database_url=database_url)
        total.merged += result.merged
        total.skipped += result.skipped
        total.errors.extend(result.errors)

    if dry_run:
        console.print(
            f"Dry run: {selected_total} pair(s) would be merged. Nothing was changed."
        )
    else:
        _print_result(console, "merged", total)
    if failed_pairs:
        return _error(f"{failed_pairs} account pair(s) could not be processed")
    return 0


def cmd_unmerge(
    merge_ids: list[int],
    *,
    all_merges: bool = False,
    dry_run: bool = False,
    database_url: str | None = None,
    console: Console | None = None,
) -> int:
    """Reverse merges by record id, or every unreversed merge with ``all_merges``."""

    console = console or Console()
    if not merge_ids and not all_merges:
        return _error("pass --merge-id (repeatable) or --all")
    ids = list(merge_ids)
    if all_merges:
        try:
            with session_scope(database_url=database_url) as session:
                ids.extend(m.id for m in list_merges(session) if m.id not in ids)
        except (SQLAlchemyError, RuntimeError) as e:
            return _error(str(e))

    if not ids:
        console.print("No merges to reverse.")
        return 0
    if dry_run:
        for merge_id in ids:
            console.print(f"  would reverse merge {merge_id}")
        console.print(f"Dry run: {len(ids)} merge(s) would be reversed. Nothing was changed.")
        return 0

    result = unmerge_transfers(ids, database_url=database_url)
    _print_result(console, "reversed", result)
    return 0


def cmd_merges(
    *,
    include_reversed: bool = False,
    database_url: str | None = None,
    console: Console | None = None,
) -> int:
    console = console or Console()
    try:
        with session_scope(database_url=database_url) as session:
            records = list_merges(session, include_reversed=include_reversed)
    except (SQLAlchemyError, RuntimeError) as e:
        return _error(str(e))

    if not records:
        console.print("No merges recorded.")
        return 0
    table = Table(title="Transfer merges")
    for col in ("Id", "Merged at", "Survivor", "Absorbed", "Amount", "Payee", "Reversed at"):
        table.add_column(col)
    for m in records:
        table.add_row(
            str(m.id),
            m.merged_at.isoformat(timespec="seconds"),
            str(m.surviving_transaction_id),
            str(m.absorbed_transaction_id),
            f"{m.absorbed_amount:.2f}",
            escape(m.absorbed_payee),
            m.reversed_at.isoformat(timespec="seconds") if m.reversed_at else "",
        )
    console.print(table)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Find, commit and reverse inter-account transfer matches in the ledger. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects these when used as default values below.
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
CONFIG_OPTION: OptionInfo = typer.Option(
    None,
    "--config",
    help="JSON matching settings file (falls back to TM_MATCHING_CONFIG).",
    dir_okay=False,
)
START_OPTION: OptionInfo = typer.Option(
    None, "--start", formats=_DATE_FORMATS, help="Earliest date (YYYY-MM-DD)."
)
END_OPTION: OptionInfo = typer.Option(
    None, "--end", formats=_DATE_FORMATS, help="Latest date (YYYY-MM-DD)."
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("match")
def match_cmd(
    account_a: str = typer.Option(..., "--account-a", help="First account (name or id)."),
    account_b: str = typer.Option(..., "--account-b", help="Second account (name or id)."),
    start: datetime | None = START_OPTION,
    end: datetime | None = END_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the preview as JSON."),
    database_url: str | None = DATABASE_URL_OPTION,
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Preview transfer matches between two accounts."""

    _exit(
        cmd_match(
            account_a,
            account_b,
            start=start,
            end=end,
            as_json=as_json,
            database_url=database_url,
            config=config,
        )
    )


@app.command("scan")
def scan_cmd(
    start: datetime | None = START_OPTION,
    end: datetime | None = END_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Preview matches for every pair of active real accounts."""

    _exit(cmd_scan(start=start, end=end, database_url=database_url, config=config))


@app.command("commit")
def commit_cmd(
    pair: list[str] = typer.Option(
        ..., "--pair", help="Account pair as A:B (names or ids); repeat in priority order."
    ),
    min_score: int = typer.Option(
        DEFAULT_COMMIT_MIN_SCORE, "--min-score", min=0, max=100, help="Minimum score to merge."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be merged."),
    start: datetime | None = START_OPTION,
    end: datetime | None = END_OPTION,
    database_url: str | None = DATABASE_URL_OPTION,
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Merge high-confidence matches for the given account pairs."""

    _exit(
        cmd_commit(
            pair,
            min_score=min_score,
            dry_run=dry_run,
            start=start,
            end=end,
            database_url=database_url,
            config=config,
        )
    )


@app.command("unmerge")
def unmerge_cmd(
    merge_id: list[int] | None = typer.Option(
        None, "--merge-id", help="Merge record id to reverse; repeatable."
    ),
    all_merges: bool = typer.Option(False, "--all", help="Reverse every unreversed merge."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be reversed."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Reverse committed merges."""

    _exit(
        cmd_unmerge(
            merge_id or [],
            all_merges=all_merges,
            dry_run=dry_run,
            database_url=database_url,
        )
    )


@app.command("merges")
def merges_cmd(
    include_reversed: bool = typer.Option(
        False, "--include-reversed", help="Also list merges that were reversed."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """List merge provenance records."""

    _exit(cmd_merges(include_reversed=include_reversed, database_url=database_url))


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level (falls back to TRANSFER_MATCHING_LOG_LEVEL)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    try:
        configure_logging(log_level)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e


if __name__ == "__main__":  # pragma: no cover
    app()

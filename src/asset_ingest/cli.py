"""asset_ingest.cli

CLI entrypoint for bulk asset uploads.

Modes (--mode):
  bulk_upload  parse an asset CSV, reconcile rows and insert them (default)
  template     print (or write) the upload template CSV

Usage (bulk_upload):
    python -m asset_ingest.cli \\
        --mode bulk_upload \\
        --db-dsn "$ASSET_INGEST_DB_DSN" \\
        --csv-path "uploads/assets_2024_q1.csv" \\
        --config-path config/ingest.yml \\
        --rejects-path "artifacts/rejects/assets_2024_q1_rejects.csv"

Usage (template):
    python -m asset_ingest.cli --mode template --output-path asset-upload-template.csv
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

import click

from asset_ingest.bulk_upload import (
    RequestError,
    ingest_assets,
    template_csv,
    validate_request,
)
from asset_ingest.config import IngestConfigValidationError, load_ingest_config
from asset_ingest.csv_text import read_csv_file
from asset_ingest.shared import RejectWriter, RunCounters, write_run_report
from asset_ingest.store import PostgresRecordStore


@click.command()
@click.option(
    "--mode",
    default="bulk_upload",
    type=click.Choice(["bulk_upload", "template"]),
    show_default=True,
    help="Run mode",
)
@click.option("--db-dsn", default=None, envvar="ASSET_INGEST_DB_DSN", help="PostgreSQL DSN")
@click.option("--csv-path", default=None, type=click.Path(), help="[bulk_upload] Input CSV")
@click.option("--config-path", default=None, type=click.Path(), help="[bulk_upload] Ingest YAML config")
@click.option(
    "--rejects-path",
    default="./artifacts/rejects/asset_rejects.csv",
    show_default=True,
    help="[bulk_upload] CSV receiving every rejected row",
)
@click.option("--output-path", default=None, type=click.Path(), help="[template] Write template here instead of stdout")
@click.option("--dry-run", is_flag=True, default=False, help="[bulk_upload] Reconcile only; insert nothing")
@click.option("--run-id", default=None, help="Override UUID for log correlation")
@click.option("--verbose", is_flag=True, default=False, help="Enable INFO logging")
def main(
    mode: str,
    db_dsn: str | None,
    csv_path: str | None,
    config_path: str | None,
    rejects_path: str,
    output_path: str | None,
    dry_run: bool,
    run_id: str | None,
    verbose: bool,
) -> None:
    """Bulk asset upload CLI."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_id = run_id or str(uuid.uuid4())

    if mode == "template":
        _run_template(output_path, run_id)
        return

    _validate_bulk_upload_flags(db_dsn, csv_path, run_id)
    _run_bulk_upload(
        run_id,
        db_dsn=db_dsn,  # type: ignore[arg-type]
        csv_path=csv_path,  # type: ignore[arg-type]
        config_path=config_path,
        rejects_path=rejects_path,
        dry_run=dry_run,
    )


def _validate_bulk_upload_flags(
    db_dsn: str | None,
    csv_path: str | None,
    run_id: str,
) -> None:
    required = {
        "--db-dsn": db_dsn,
        "--csv-path": csv_path,
    }
    missing = [k for k, v in required.items() if not v]
    if missing:
        click.echo(
            f"[{run_id}] FATAL: bulk_upload mode requires: {', '.join(missing)}",
            err=True,
        )
        sys.exit(1)


# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------

def _run_template(output_path: str | None, run_id: str) -> None:
    if output_path is None:
        click.echo(template_csv())
        return
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(template_csv() + "\n", encoding="utf-8")
    click.echo(f"[{run_id}] Template written: {out}")


# ---------------------------------------------------------------------------
# Bulk upload
# ---------------------------------------------------------------------------

def _run_bulk_upload(
    run_id: str,
    db_dsn: str,
    csv_path: str,
    config_path: str | None,
    rejects_path: str,
    dry_run: bool,
) -> None:
    started_at = datetime.now(timezone.utc).isoformat()
    click.echo(f"[{run_id}] Starting bulk_upload run (dry_run={dry_run})")

    try:
        config = load_ingest_config(Path(config_path) if config_path else None)
    except (IngestConfigValidationError, FileNotFoundError) as exc:
        click.echo(f"[{run_id}] FATAL: invalid config: {exc}", err=True)
        sys.exit(1)

    csv_file = Path(csv_path)
    if not csv_file.is_file():
        click.echo(f"[{run_id}] FATAL: CSV not found: {csv_file}", err=True)
        sys.exit(1)

    rows = read_csv_file(csv_file)
    click.echo(f"[{run_id}] Parsed {len(rows)} data rows from {csv_file}")

    counters = RunCounters()
    rejects = RejectWriter(Path(rejects_path))
    store = PostgresRecordStore(db_dsn)
    try:
        summary = ingest_assets(
            validate_request({"assets": rows}),
            store,
            config,
            counters=counters,
            rejects=rejects,
            dry_run=dry_run,
        )
    except RequestError as exc:
        click.echo(f"[{run_id}] FATAL: {exc} (is the file empty or header-only?)", err=True)
        sys.exit(1)
    finally:
        rejects.close()

    if rejects.count:
        click.echo(f"[{run_id}] {rejects.count} rejected rows written to {rejects.path}")

    summary_dict = summary.to_dict()
    report_path = write_run_report(
        run_id, started_at, "bulk_upload", dry_run,
        {"csv_path": str(csv_file), "rejects_path": rejects_path},
        counters,
        summary=summary_dict,
    )
    click.echo(f"[{run_id}] Run report: {report_path}")
    click.echo(json.dumps(summary_dict, indent=2, default=str))

    if summary.insert_errors:
        click.echo(
            f"[{run_id}] {len(summary.insert_errors)} batches failed, exiting non-zero",
            err=True,
        )
        sys.exit(1)
    click.echo(f"[{run_id}] Done.")


if __name__ == "__main__":
    main()

"""asset_ingest.bulk_upload

Bulk asset upload: reconcile every uploaded row, then write the valid ones to
the assets table in fixed-size batches.

Failure handling is layered:
  - A malformed request (no 'assets' list, or an empty one) raises
    RequestError before any store access.
  - A reference table that cannot be read becomes an empty vocabulary (see
    asset_ingest.vocabulary); the upload still returns a summary.
  - A row whose site is missing or unknown becomes a row error; the rest of
    the upload continues.
  - A batch the store rejects becomes an insert error naming the batch;
    later batches are still attempted.

Batches are written one after another so inserted counts and insert errors
always line up with a batch number.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Sequence

from asset_ingest.config import IngestConfig
from asset_ingest.reconcile import RowAccepted, reconcile_row
from asset_ingest.shared import RejectWriter, RunCounters
from asset_ingest.store import RecordStore, StoreError
from asset_ingest.vocabulary import load_vocabularies

log = logging.getLogger(__name__)

ASSETS_TABLE = "assets"

# Header occupies line 1 of the uploaded file; data rows start at line 2.
FIRST_DATA_ROW = 2

TEMPLATE_CSV = (
    "site_id,asset_type,manufacturer,model,serial_number,hostname,ip_address,"
    "category,custodian_name,purchase_date,purchase_value,warranty_expiration,"
    "status,condition,specifications,notes\n"
    "MM,Laptop,Dell,Latitude 5540,SN-001,MM-LPT-001,10.0.1.10,Hardware,"
    'John Smith,2024-01-15,1450,2027-01-15,active,good,"16GB RAM, 512GB SSD",Floor 2\n'
    "ATL,Desktop,HP,EliteDesk 800 G9,SN-002,ATL-DT-001,10.1.1.20,Hardware,"
    'Jane Doe,2024-03-01,1890,2027-03-01,active,new,"32GB RAM, 1TB SSD",'
)
TEMPLATE_FILENAME = "asset-upload-template.csv"


# ---------------------------------------------------------------------------
# Exceptions and result types
# ---------------------------------------------------------------------------

class RequestError(ValueError):
    """Raised when an upload request is malformed; nothing was processed."""


@dataclass(frozen=True)
class RowError:
    row: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "message": self.message}


@dataclass
class IngestionSummary:
    total_rows: int = 0
    inserted: int = 0
    skipped: int = 0
    row_errors: list[RowError] = field(default_factory=list)
    insert_errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "total_rows": self.total_rows,
            "inserted": self.inserted,
            "skipped": self.skipped,
            "row_errors": [e.to_dict() for e in self.row_errors],
            "insert_errors": list(self.insert_errors),
        }


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------

def validate_request(body: Any) -> list[Any]:
    """Return the uploaded rows, or raise RequestError."""
    assets = body.get("assets") if isinstance(body, Mapping) else None
    if not isinstance(assets, list) or not assets:
        raise RequestError("No assets provided")
    return assets


def chunked(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def ingest_assets(
    rows: Sequence[Any],
    store: RecordStore,
    config: IngestConfig | None = None,
    counters: RunCounters | None = None,
    rejects: RejectWriter | None = None,
    dry_run: bool = False,
) -> IngestionSummary:
    """Reconcile rows and insert the valid ones; return the upload summary.

    rows must already have passed validate_request.  Every row error goes to
    rejects (when given); only the first row_error_cap are kept on the
    summary.  With dry_run, nothing is written and inserted stays 0.
    """
    config = config or IngestConfig()
    counters = counters or RunCounters()

    vocab = load_vocabularies(store, max_workers=config.preload_workers)

    summary = IngestionSummary(total_rows=len(rows))
    valid_records: list[dict[str, Any]] = []

    for idx, row in enumerate(rows):
        counters.rows_read += 1
        row_map = row if isinstance(row, Mapping) else {}
        outcome = reconcile_row(row_map, vocab)
        if isinstance(outcome, RowAccepted):
            valid_records.append(outcome.asset.to_record())
            continue

        counters.rows_rejected += 1
        summary.skipped += 1
        row_number = idx + FIRST_DATA_ROW
        if len(summary.row_errors) < config.row_error_cap:
            summary.row_errors.append(RowError(row_number, outcome.message))
        if rejects is not None:
            rejects.write(dict(row_map), f"{outcome.reason}: {outcome.message}")

    counters.rows_valid = len(valid_records)
    log.info(
        "Reconciled %d rows: %d valid, %d rejected",
        summary.total_rows, len(valid_records), summary.skipped,
    )

    if dry_run:
        return summary

    for batch_no, batch in enumerate(chunked(valid_records, config.batch_size), start=1):
        counters.batches_attempted += 1
        try:
            returned = store.insert(ASSETS_TABLE, batch)
        except StoreError as exc:
            counters.batches_failed += 1
            summary.insert_errors.append(f"Batch {batch_no}: {exc}")
            log.warning("Batch %d (%d records) failed: %s", batch_no, len(batch), exc)
            continue
        summary.inserted += len(returned)
        counters.assets_inserted += len(returned)
        if len(returned) < len(batch):
            counters.warnings.append(
                f"batch {batch_no}: store confirmed {len(returned)} of {len(batch)} records"
            )

    return summary


def handle_bulk_request(
    body: Any,
    store: RecordStore,
    config: IngestConfig | None = None,
) -> tuple[int, dict[str, Any]]:
    """Request/response wrapper around ingest_assets.

    Returns (status, payload): 200 with the summary, 400 for a malformed
    request, 500 for anything unexpected.
    """
    try:
        rows = validate_request(body)
        summary = ingest_assets(rows, store, config)
    except RequestError as exc:
        return 400, {"error": str(exc)}
    except Exception as exc:
        log.exception("Bulk upload failed")
        return 500, {"error": str(exc) or "Server error"}
    return 200, summary.to_dict()


def template_csv() -> str:
    """The upload template: header plus two example rows."""
    return TEMPLATE_CSV

"""asset_ingest.reconcile

Per-row reconciliation: one raw CSV row plus the reference vocabularies in,
exactly one of RowAccepted / RowRejected out.

Only the site decides rejection.  Everything else (reference lookups, dates,
money, status, condition) degrades to None or a default so that imperfect
spreadsheets still load.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Union

from asset_ingest.normalize import (
    normalize_condition,
    normalize_site_code,
    normalize_status,
    parse_asset_date,
    parse_purchase_value,
)
from asset_ingest.vocabulary import ReferenceVocabularies

# ---------------------------------------------------------------------------
# Column synonyms: first non-empty column wins (whitespace counts)
# ---------------------------------------------------------------------------

SITE_COLUMNS = ("site_id", "site")
ASSET_TYPE_COLUMNS = ("asset_type", "type")
MANUFACTURER_COLUMNS = ("manufacturer",)
CATEGORY_COLUMNS = ("category",)
PURCHASE_VALUE_COLUMNS = ("purchase_value", "value", "price")
PURCHASE_DATE_COLUMNS = ("purchase_date",)
WARRANTY_COLUMNS = ("warranty_expiration", "warranty")
SERIAL_COLUMNS = ("serial_number", "serial")
CUSTODIAN_COLUMNS = ("custodian_name", "custodian", "assigned_to")
IP_ADDRESS_COLUMNS = ("ip_address", "ip")
SPECIFICATIONS_COLUMNS = ("specifications", "specs")

# Rejection reasons
MISSING_SITE = "missing_site"
UNKNOWN_SITE = "unknown_site"


@dataclass(frozen=True)
class NormalizedAsset:
    site_id: str
    serial_number: str | None = None
    hostname: str | None = None
    ip_address: str | None = None
    model: str | None = None
    specifications: str | None = None
    manufacturer_id: int | None = None
    asset_type_id: int | None = None
    category_id: int | None = None
    custodian_name: str | None = None
    purchase_date: str | None = None
    purchase_value: Decimal = Decimal(0)
    warranty_expiration: str | None = None
    status: str = "active"
    condition: str = "good"
    notes: str | None = None

    def to_record(self) -> dict[str, Any]:
        """Column → value dict for the assets table."""
        return dict(self.__dict__)


@dataclass(frozen=True)
class RowAccepted:
    asset: NormalizedAsset


@dataclass(frozen=True)
class RowRejected:
    reason: str
    message: str


RowOutcome = Union[RowAccepted, RowRejected]


def pick(row: Mapping[str, Any], columns: tuple[str, ...]) -> Any:
    """Return the first truthy value among the synonym columns, else None.

    Whitespace-only text counts as present: a blank site_id is picked (and
    later rejected) rather than falling through to the site column.
    """
    for col in columns:
        value = row.get(col)
        if value:
            return value
    return None


def text_or_none(value: Any) -> str | None:
    """Free text passes through unchanged; empty becomes None."""
    return str(value) if value else None


def reconcile_row(row: Mapping[str, Any], vocab: ReferenceVocabularies) -> RowOutcome:
    site_id = normalize_site_code(pick(row, SITE_COLUMNS))
    if site_id is None:
        return RowRejected(MISSING_SITE, "Missing site_id")
    if not vocab.has_site(site_id):
        return RowRejected(
            UNKNOWN_SITE, f"Invalid site: {site_id}. Valid: {vocab.site_list()}"
        )

    asset = NormalizedAsset(
        site_id=site_id,
        serial_number=text_or_none(pick(row, SERIAL_COLUMNS)),
        hostname=text_or_none(row.get("hostname")),
        ip_address=text_or_none(pick(row, IP_ADDRESS_COLUMNS)),
        model=text_or_none(row.get("model")),
        specifications=text_or_none(pick(row, SPECIFICATIONS_COLUMNS)),
        manufacturer_id=vocab.manufacturers.resolve(pick(row, MANUFACTURER_COLUMNS)),
        asset_type_id=vocab.asset_types.resolve(pick(row, ASSET_TYPE_COLUMNS)),
        category_id=vocab.categories.resolve(pick(row, CATEGORY_COLUMNS)),
        custodian_name=text_or_none(pick(row, CUSTODIAN_COLUMNS)),
        purchase_date=parse_asset_date(pick(row, PURCHASE_DATE_COLUMNS)),
        purchase_value=parse_purchase_value(pick(row, PURCHASE_VALUE_COLUMNS)),
        warranty_expiration=parse_asset_date(pick(row, WARRANTY_COLUMNS)),
        status=normalize_status(row.get("status")),
        condition=normalize_condition(row.get("condition")),
        notes=text_or_none(row.get("notes")),
    )
    return RowAccepted(asset)

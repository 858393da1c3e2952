"""Unit tests for asset_ingest.reconcile."""

from decimal import Decimal

import pytest

from asset_ingest.reconcile import (
    MISSING_SITE,
    UNKNOWN_SITE,
    RowAccepted,
    RowRejected,
    pick,
    reconcile_row,
)
from asset_ingest.vocabulary import NameVocabulary, ReferenceVocabularies


@pytest.fixture
def vocab():
    return ReferenceVocabularies(
        sites=("MM", "ATL"),
        asset_types=NameVocabulary.from_mapping({"laptop": 1, "desktop": 2}),
        manufacturers=NameVocabulary.from_mapping({"dell": 3, "hp": 4}),
        categories=NameVocabulary.from_mapping({"hardware": 7}),
    )


# ---------------------------------------------------------------------------
# pick
# ---------------------------------------------------------------------------

class TestPick:
    def test_first_column_wins(self):
        assert pick({"site_id": "MM", "site": "ATL"}, ("site_id", "site")) == "MM"

    def test_empty_first_falls_through(self):
        assert pick({"site_id": "", "site": "ATL"}, ("site_id", "site")) == "ATL"

    def test_whitespace_first_is_picked(self):
        assert pick({"site_id": "  ", "site": "ATL"}, ("site_id", "site")) == "  "

    def test_none_when_all_missing(self):
        assert pick({"other": "x"}, ("site_id", "site")) is None


# ---------------------------------------------------------------------------
# site rejection
# ---------------------------------------------------------------------------

class TestSiteRejection:
    def test_missing_site(self, vocab):
        outcome = reconcile_row({"asset_type": "Laptop"}, vocab)
        assert outcome == RowRejected(MISSING_SITE, "Missing site_id")

    def test_blank_site(self, vocab):
        outcome = reconcile_row({"site_id": "   "}, vocab)
        assert isinstance(outcome, RowRejected)
        assert outcome.reason == MISSING_SITE

    def test_blank_site_id_does_not_fall_back_to_site(self, vocab):
        outcome = reconcile_row({"site_id": "   ", "site": "MM"}, vocab)
        assert outcome == RowRejected(MISSING_SITE, "Missing site_id")

    def test_unknown_site_lists_valid_codes(self, vocab):
        outcome = reconcile_row({"site_id": "xyz"}, vocab)
        assert outcome == RowRejected(UNKNOWN_SITE, "Invalid site: XYZ. Valid: MM, ATL")

    def test_site_synonym_column(self, vocab):
        outcome = reconcile_row({"site": "atl"}, vocab)
        assert isinstance(outcome, RowAccepted)
        assert outcome.asset.site_id == "ATL"


# ---------------------------------------------------------------------------
# accepted rows
# ---------------------------------------------------------------------------

class TestAcceptedRow:
    def test_full_row(self, vocab):
        row = {
            "site_id": "mm",
            "asset_type": "Laptop",
            "manufacturer": "Dell",
            "model": "Latitude 5540",
            "serial_number": "SN-001",
            "hostname": "MM-LPT-001",
            "ip_address": "10.0.1.10",
            "category": "Hardware",
            "custodian_name": "John Smith",
            "purchase_date": "2024-01-15",
            "purchase_value": "$1,450.00",
            "warranty_expiration": "2027-01-15",
            "status": "In_Repair",
            "condition": "NEW",
            "specifications": "16GB RAM, 512GB SSD",
            "notes": "Floor 2",
        }
        outcome = reconcile_row(row, vocab)
        assert isinstance(outcome, RowAccepted)
        asset = outcome.asset
        assert asset.site_id == "MM"
        assert asset.asset_type_id == 1
        assert asset.manufacturer_id == 3
        assert asset.category_id == 7
        assert asset.model == "Latitude 5540"
        assert asset.serial_number == "SN-001"
        assert asset.hostname == "MM-LPT-001"
        assert asset.ip_address == "10.0.1.10"
        assert asset.custodian_name == "John Smith"
        assert asset.purchase_date == "2024-01-15"
        assert asset.purchase_value == Decimal("1450.00")
        assert asset.warranty_expiration == "2027-01-15"
        assert asset.status == "in_repair"
        assert asset.condition == "new"
        assert asset.specifications == "16GB RAM, 512GB SSD"
        assert asset.notes == "Floor 2"

    def test_minimal_row_gets_defaults(self, vocab):
        outcome = reconcile_row({"site_id": "MM"}, vocab)
        asset = outcome.asset
        assert asset.asset_type_id is None
        assert asset.manufacturer_id is None
        assert asset.category_id is None
        assert asset.purchase_value == Decimal(0)
        assert asset.purchase_date is None
        assert asset.status == "active"
        assert asset.condition == "good"

    def test_synonym_columns(self, vocab):
        row = {
            "site": "MM",
            "type": "Desktop",
            "serial": "S1",
            "assigned_to": "Jane Doe",
            "price": "900",
            "warranty": "March 5, 2027",
            "ip": "10.1.1.20",
            "specs": "32GB RAM",
        }
        asset = reconcile_row(row, vocab).asset
        assert asset.asset_type_id == 2
        assert asset.serial_number == "S1"
        assert asset.custodian_name == "Jane Doe"
        assert asset.purchase_value == Decimal("900")
        assert asset.warranty_expiration == "2027-03-05"
        assert asset.ip_address == "10.1.1.20"
        assert asset.specifications == "32GB RAM"

    def test_custodian_synonym_order(self, vocab):
        row = {"site_id": "MM", "custodian": "A", "assigned_to": "B"}
        assert reconcile_row(row, vocab).asset.custodian_name == "A"

    def test_free_text_passes_through_unchanged(self, vocab):
        row = {"site_id": "MM", "hostname": " mm-lpt-001 ", "notes": "  ", "model": ""}
        asset = reconcile_row(row, vocab).asset
        assert asset.hostname == " mm-lpt-001 "
        assert asset.notes == "  "
        assert asset.model is None

    def test_whitespace_custodian_does_not_fall_back(self, vocab):
        row = {"site_id": "MM", "custodian_name": " ", "assigned_to": "B"}
        assert reconcile_row(row, vocab).asset.custodian_name == " "

    def test_numeric_free_text_stringified(self, vocab):
        asset = reconcile_row({"site_id": "MM", "serial_number": 12345}, vocab).asset
        assert asset.serial_number == "12345"

    def test_unknown_reference_is_none_not_rejected(self, vocab):
        outcome = reconcile_row({"site_id": "MM", "manufacturer": "Apple"}, vocab)
        assert isinstance(outcome, RowAccepted)
        assert outcome.asset.manufacturer_id is None

    def test_fuzzy_manufacturer(self, vocab):
        asset = reconcile_row({"site_id": "MM", "manufacturer": "Dell Inc."}, vocab).asset
        assert asset.manufacturer_id == 3

    def test_record_has_all_asset_columns(self, vocab):
        record = reconcile_row({"site_id": "MM"}, vocab).asset.to_record()
        assert record["site_id"] == "MM"
        assert set(record) == {
            "site_id", "serial_number", "hostname", "ip_address", "model",
            "specifications", "manufacturer_id", "asset_type_id", "category_id",
            "custodian_name", "purchase_date", "purchase_value",
            "warranty_expiration", "status", "condition", "notes",
        }

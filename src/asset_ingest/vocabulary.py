"""asset_ingest.vocabulary

Reference vocabularies used to reconcile free-text asset fields.

Vocabularies are rebuilt for every ingestion call and never mutated after
construction.  Name vocabularies keep their entries in load order (ascending
id from the store), and the fuzzy fallback walks that order, so when two
entries both overlap the input the one created first wins.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable

from asset_ingest.normalize import normalize_lookup_key, normalize_site_code
from asset_ingest.store import RecordStore, StoreError

log = logging.getLogger(__name__)

SITES_TABLE = "sites"
ASSET_TYPES_TABLE = "asset_types"
MANUFACTURERS_TABLE = "manufacturers"
CATEGORIES_TABLE = "asset_categories"


# ---------------------------------------------------------------------------
# NameVocabulary
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NameVocabulary:
    """Ordered (lowercase name, id) pairs for one reference table."""

    entries: tuple[tuple[str, int], ...] = ()

    @classmethod
    def from_rows(cls, rows: Iterable[dict[str, Any]]) -> "NameVocabulary":
        seen: set[str] = set()
        entries: list[tuple[str, int]] = []
        for row in rows:
            name = normalize_lookup_key(row.get("name"))
            if name is None or name in seen:
                continue
            seen.add(name)
            entries.append((name, row["id"]))
        return cls(tuple(entries))

    @classmethod
    def from_mapping(cls, mapping: dict[str, int]) -> "NameVocabulary":
        return cls.from_rows({"name": k, "id": v} for k, v in mapping.items())

    def exact(self, key: str) -> int | None:
        for name, ident in self.entries:
            if name == key:
                return ident
        return None

    def contains_match(self, key: str) -> int | None:
        """First entry whose name is inside key, or key inside name."""
        for name, ident in self.entries:
            if name in key or key in name:
                return ident
        return None

    def resolve(self, value: Any) -> int | None:
        """Resolve free text to an id: exact match first, then substring.

        Empty input and misses both return None.
        """
        key = normalize_lookup_key(value)
        if key is None:
            return None
        ident = self.exact(key)
        if ident is not None:
            return ident
        return self.contains_match(key)

    def __len__(self) -> int:
        return len(self.entries)


# ---------------------------------------------------------------------------
# ReferenceVocabularies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReferenceVocabularies:
    sites: tuple[str, ...]
    asset_types: NameVocabulary
    manufacturers: NameVocabulary
    categories: NameVocabulary

    def has_site(self, site_code: str) -> bool:
        return site_code in self.sites

    def site_list(self) -> str:
        return ", ".join(self.sites)


def _site_codes(rows: Iterable[dict[str, Any]]) -> tuple[str, ...]:
    codes: list[str] = []
    for row in rows:
        code = normalize_site_code(row.get("id"))
        if code and code not in codes:
            codes.append(code)
    return tuple(codes)


def _rows_or_empty(future: Future, table: str) -> list[dict[str, Any]]:
    try:
        return future.result()
    except StoreError as exc:
        log.warning("Could not read %s, using an empty vocabulary: %s", table, exc)
        return []


def load_vocabularies(store: RecordStore, max_workers: int = 4) -> ReferenceVocabularies:
    """Read the four reference tables concurrently and build vocabularies.

    All reads finish before this returns.  A table whose read fails yields an
    empty vocabulary, so its rows are rejected (sites) or resolve to None
    (everything else) and the upload still produces a summary.
    """
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        sites_f = executor.submit(store.select, SITES_TABLE, ["id"], (), "id")
        types_f = executor.submit(store.select, ASSET_TYPES_TABLE, ["id", "name"], (), "id")
        mfg_f = executor.submit(store.select, MANUFACTURERS_TABLE, ["id", "name"], (), "id")
        cat_f = executor.submit(store.select, CATEGORIES_TABLE, ["id", "name"], (), "id")

        vocab = ReferenceVocabularies(
            sites=_site_codes(_rows_or_empty(sites_f, SITES_TABLE)),
            asset_types=NameVocabulary.from_rows(_rows_or_empty(types_f, ASSET_TYPES_TABLE)),
            manufacturers=NameVocabulary.from_rows(_rows_or_empty(mfg_f, MANUFACTURERS_TABLE)),
            categories=NameVocabulary.from_rows(_rows_or_empty(cat_f, CATEGORIES_TABLE)),
        )

    log.info(
        "Loaded vocabularies: %d sites, %d asset types, %d manufacturers, %d categories",
        len(vocab.sites), len(vocab.asset_types),
        len(vocab.manufacturers), len(vocab.categories),
    )
    return vocab

"""Excel export of normalized records."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import pandas as pd

from zp_agency.models import FIELDS, NormalizedRecord
from zp_agency.storage import Sink

logger = logging.getLogger(__name__)

SHEET_NAME = "Propiedades"


def records_to_frame(records: Iterable[NormalizedRecord]) -> pd.DataFrame:
    """One row per record, columns in record field order."""
    return pd.DataFrame([r.as_dict() for r in records], columns=list(FIELDS))


def export_records(records: Iterable[NormalizedRecord], path: str | Path) -> int:
    """Write records to an xlsx workbook. Returns the number of rows."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = records_to_frame(records)
    df.to_excel(path, sheet_name=SHEET_NAME, index=False, engine="openpyxl")
    logger.info("Saved %d rows to %s", len(df), path)
    return len(df)


def read_records(path: str | Path) -> list[NormalizedRecord]:
    """Load records from a workbook written by export_records."""
    df = pd.read_excel(
        path, sheet_name=SHEET_NAME, dtype=str, keep_default_na=False, engine="openpyxl"
    )
    return [NormalizedRecord.from_mapping(row) for row in df.to_dict(orient="records")]


class SpreadsheetSink(Sink):
    """Collect records in memory and write the workbook on close.

    Rows of an existing workbook at path are kept, so repeated runs only
    add listings that are not there yet.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._records: dict[str, NormalizedRecord] = {}
        self._dirty = False
        if self.path.exists():
            for record in read_records(self.path):
                self._records[record.id or record.url] = record
            logger.info("Loaded %d existing rows from %s", len(self._records), self.path)

    def exists(self, listing_id: str) -> bool:
        return bool(listing_id) and listing_id in self._records

    def save(self, record: NormalizedRecord) -> bool:
        self._records[record.id or record.url] = record
        self._dirty = True
        return True

    @property
    def records(self) -> list[NormalizedRecord]:
        return list(self._records.values())

    def close(self) -> None:
        if not self._dirty:
            return
        export_records(self.records, self.path)
        self._dirty = False

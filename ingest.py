# ingest.py
import json
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Iterator, List, NamedTuple

import pandas as pd

from errors import ParseError, PersistenceError, ValidationError
from models import Lead, LeadCreate

logger = logging.getLogger(__name__)

LEAD_COLUMNS = ["name", "role", "company", "industry", "location", "linkedin_bio"]


class ParsedLeads(NamedTuple):
    leads: List[LeadCreate]
    errors: List[str]
    row_count: int


class IngestResult(NamedTuple):
    leads: List[Lead]
    errors: List[str]


@contextmanager
def spooled_upload(stream: BinaryIO) -> Iterator[str]:
    """Copy an upload stream to a temp file and always remove it afterwards."""
    fd, path = tempfile.mkstemp(suffix=".csv")
    try:
        with os.fdopen(fd, "wb") as out:
            shutil.copyfileobj(stream, out)
        yield path
    finally:
        os.unlink(path)


def _clean(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def rows_to_leads(rows) -> ParsedLeads:
    """Validate row mappings into leads; rows without a name become errors."""
    leads, errors, count = [], [], 0
    for row_number, row in enumerate(rows, start=1):
        count += 1
        values = {key: _clean(row.get(key)) for key in LEAD_COLUMNS}
        if not values["name"]:
            raw = {k: _clean(v) for k, v in row.items()}
            errors.append(f"Skipped row {row_number} with missing name: {json.dumps(raw)}")
            continue
        leads.append(LeadCreate(**{k: (v or None) for k, v in values.items()}))
    return ParsedLeads(leads, errors, count)


def parse_leads(stream: BinaryIO) -> ParsedLeads:
    """Read a CSV upload into leads.

    The stream is consumed once. Raises ParseError if the CSV itself can't
    be read; per-row problems are reported in ParsedLeads.errors.
    """
    with spooled_upload(stream) as path:
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        except pd.errors.EmptyDataError:
            return ParsedLeads([], [], 0)
        except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
            raise ParseError("Failed to parse CSV file", details=str(e)) from e
    df.columns = [str(c).strip().lower() for c in df.columns]
    return rows_to_leads(df.to_dict(orient="records"))


def ingest_leads(store, stream: BinaryIO) -> IngestResult:
    """Parse an upload and persist its valid leads in one batch."""
    parsed = parse_leads(stream)
    if parsed.row_count == 0:
        raise ValidationError("CSV file contains no rows")
    if not parsed.leads:
        raise ValidationError("No valid leads found in CSV", errors=parsed.errors)

    try:
        saved = store.insert_leads(parsed.leads)
    except PersistenceError:
        raise
    except Exception as e:
        logger.exception("Lead batch insert failed")
        raise PersistenceError("Failed to insert leads", details=str(e)) from e
    logger.info("Imported %d leads (%d rows skipped)", len(saved), len(parsed.errors))
    return IngestResult(saved, parsed.errors)

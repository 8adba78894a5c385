"""
Reads GEM ownership exports (one CSV per tracker ownership sheet) into
OwnershipRecords.

Column names differ between trackers, so each field has a list of
candidate headers and the first one present in the file is used.
"""

import csv
import logging
import re
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Union

from gem_ownership.models import NodeKind, OwnershipRecord
from gem_ownership.services.path_parser import parse_path

logger = logging.getLogger(__name__)

COLUMNS: Dict[str, List[str]] = {
    "subject_id": ["GEM unit ID", "GEM Mine ID", "GEM Asset ID", "GEM Plant ID", "ProjectID", "Subject Entity ID"],
    "subject_name": ["Unit Name", "Unit name", "Project", "Subject Entity Name", "Name"],
    "owner_id": ["Interested Party ID", "Owner GEM Entity ID"],
    "owner_name": ["Interested Party Name", "Owner"],
    "share_pct": ["% Share of Ownership", "Share"],
    "imputed": ["Share Imputed?"],
    "ownership_path": ["Ownership Path"],
    "status": ["Status"],
    "category": ["Tracker"],
    "country": ["Country/Area", "Country"],
    "capacity_mw": ["Capacity (MW)", "Capacity"],
}

_TRUE_VALUES = {"true", "yes", "y", "1"}
_ENTITY_ID_RE = re.compile(r"^E\d+$")


def _float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        return float(value.strip().rstrip("%"))
    except ValueError:
        return None


def _pick(row: Mapping[str, str], field: str) -> Optional[str]:
    for column in COLUMNS[field]:
        value = row.get(column)
        if value is not None and value.strip():
            return value.strip()
    return None


def row_to_record(row: Mapping[str, str], tracker: Optional[str] = None) -> Optional[OwnershipRecord]:
    """
    Map one CSV row to an OwnershipRecord, or None if it has no subject id.

    Unknown columns are kept in record.extra.
    """
    subject_id = _pick(row, "subject_id")
    if subject_id is None:
        return None

    path = _pick(row, "ownership_path")
    owner_name = _pick(row, "owner_name")
    if owner_name is None and path:
        segments = parse_path(path)
        if len(segments) >= 2:
            owner_name = segments[-2].name

    known = {column for columns in COLUMNS.values() for column in columns}
    share = _float(_pick(row, "share_pct"))

    return OwnershipRecord(
        subject_id=subject_id,
        subject_name=_pick(row, "subject_name") or "",
        subject_kind=NodeKind.ENTITY if _ENTITY_ID_RE.match(subject_id) else NodeKind.ASSET,
        owner_id=_pick(row, "owner_id"),
        owner_name=owner_name or "",
        share_pct=share if share is None or share >= 0 else None,
        ownership_path=path,
        imputed=(_pick(row, "imputed") or "").lower() in _TRUE_VALUES,
        status=_pick(row, "status"),
        category=_pick(row, "category") or tracker,
        country=_pick(row, "country"),
        capacity_mw=_float(_pick(row, "capacity_mw")),
        extra={k: v for k, v in row.items() if k and k not in known and v not in (None, "")},
    )


def read_ownership_csv(path: Union[str, Path], tracker: Optional[str] = None) -> Iterator[OwnershipRecord]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            record = row_to_record(row, tracker=tracker)
            if record is None:
                logger.warning(f"{path}:{line_no}: no subject id, skipping")
                continue
            yield record

"""
Cypher for the ownership relation.

Graph shape:
    (:Entity {gem_id, name})-[:OWNS {share_pct, imputed, ownership_path}]->(:Entity|:Asset)
    (:Asset {gem_id, name, status, tracker, country, capacity_mw})
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from gem_ownership.db.neo4j_client import DATABASE, get_driver
from gem_ownership.models import IdKind, NodeKind, OwnershipRecord
from gem_ownership.services.identity import IdentityResolver

logger = logging.getLogger(__name__)

_RETURN_ROW = """
RETURN s.gem_id AS subject_id,
       s.name AS subject_name,
       CASE WHEN s:Asset THEN 'asset' ELSE 'entity' END AS subject_kind,
       o.gem_id AS owner_id,
       o.name AS owner_name,
       r.share_pct AS share_pct,
       r.imputed AS imputed,
       r.ownership_path AS ownership_path,
       s.status AS status,
       s.tracker AS category,
       s.country AS country,
       s.capacity_mw AS capacity_mw
"""

OWNERS_OF_SUBJECTS = "MATCH (o)-[r:OWNS]->(s) WHERE s.gem_id IN $ids" + _RETURN_ROW
HOLDINGS_OF_OWNERS = "MATCH (o)-[r:OWNS]->(s) WHERE o.gem_id IN $ids" + _RETURN_ROW

CONSTRAINTS = [
    "CREATE CONSTRAINT entity_gem_id IF NOT EXISTS FOR (n:Entity) REQUIRE n.gem_id IS UNIQUE",
    "CREATE CONSTRAINT asset_gem_id IF NOT EXISTS FOR (n:Asset) REQUIRE n.gem_id IS UNIQUE",
]

# Labels can't be parameters, so there is one merge query per subject label.
_MERGE_OWNERSHIP = """
UNWIND $rows AS row
MERGE (o:Entity {{gem_id: row.owner_id}})
  ON CREATE SET o.name = row.owner_name
MERGE (s:{label} {{gem_id: row.subject_id}})
SET s.name = coalesce(row.subject_name, s.name),
    s.status = coalesce(row.status, s.status),
    s.tracker = coalesce(row.category, s.tracker),
    s.country = coalesce(row.country, s.country),
    s.capacity_mw = coalesce(row.capacity_mw, s.capacity_mw)
MERGE (o)-[r:OWNS]->(s)
SET r.share_pct = row.share_pct,
    r.imputed = row.imputed,
    r.ownership_path = row.ownership_path,
    r.updated_at = datetime()
"""
MERGE_QUERIES = {
    NodeKind.ENTITY: _MERGE_OWNERSHIP.format(label="Entity"),
    NodeKind.ASSET: _MERGE_OWNERSHIP.format(label="Asset"),
}


def _to_record(row: Dict[str, Any]) -> OwnershipRecord:
    return OwnershipRecord(
        subject_id=row["subject_id"],
        subject_name=row.get("subject_name") or "",
        subject_kind=row.get("subject_kind"),
        owner_id=row.get("owner_id"),
        owner_name=row.get("owner_name") or "",
        share_pct=row.get("share_pct"),
        imputed=bool(row.get("imputed")),
        ownership_path=row.get("ownership_path"),
        status=row.get("status"),
        category=row.get("category"),
        country=row.get("country"),
        capacity_mw=row.get("capacity_mw"),
    )


def _run_rows(query: str, ids: Sequence[str]) -> List[OwnershipRecord]:
    ids = list(dict.fromkeys(ids))
    if not ids:
        return []

    driver = get_driver()
    with driver.session(database=DATABASE) as session:
        result = session.run(query, ids=ids)
        return [_to_record(dict(record)) for record in result]


class Neo4jOwnershipRelation:
    """OwnershipRelation backed by OWNS relationships in Neo4j."""

    def records_for_subject(self, subject_id: str) -> List[OwnershipRecord]:
        return _run_rows(OWNERS_OF_SUBJECTS, [subject_id])

    def records_for_owner(self, owner_id: str) -> List[OwnershipRecord]:
        return _run_rows(HOLDINGS_OF_OWNERS, [owner_id])

    def records_for_subjects(self, subject_ids: Sequence[str]) -> List[OwnershipRecord]:
        return _run_rows(OWNERS_OF_SUBJECTS, subject_ids)

    def records_for_owners(self, owner_ids: Sequence[str]) -> List[OwnershipRecord]:
        return _run_rows(HOLDINGS_OF_OWNERS, owner_ids)


def ensure_constraints() -> None:
    driver = get_driver()
    with driver.session(database=DATABASE) as session:
        for statement in CONSTRAINTS:
            session.run(statement)


def _subject_kind(record: OwnershipRecord, resolver: IdentityResolver) -> NodeKind:
    if record.subject_kind is not None:
        return record.subject_kind
    if resolver.classify(record.subject_id) == IdKind.GEM_ASSET:
        return NodeKind.ASSET
    return NodeKind.ENTITY


def _merge_row(record: OwnershipRecord, owner_id: str) -> Dict[str, Any]:
    return {
        "owner_id": owner_id,
        "owner_name": record.owner_name or None,
        "subject_id": record.subject_id,
        "subject_name": record.subject_name or None,
        "status": record.status,
        "category": record.category,
        "country": record.country,
        "capacity_mw": record.capacity_mw,
        "share_pct": record.share_pct,
        "imputed": record.imputed,
        "ownership_path": record.ownership_path,
    }


def add_ownerships(
    records: Iterable[OwnershipRecord],
    resolver: Optional[IdentityResolver] = None,
    batch_size: int = 1000,
) -> int:
    """
    MERGE owner, subject and the OWNS edge for each record.

    Owners without a GEM id get a derived id from their name. Rows with
    neither are skipped. Returns the number of rows written.
    """
    resolver = resolver or IdentityResolver()
    pending: Dict[NodeKind, List[Dict[str, Any]]] = {NodeKind.ENTITY: [], NodeKind.ASSET: []}
    written = 0

    driver = get_driver()
    with driver.session(database=DATABASE) as session:

        def flush(kind: NodeKind) -> int:
            rows = pending[kind]
            if not rows:
                return 0
            session.run(MERGE_QUERIES[kind], rows=rows)
            pending[kind] = []
            return len(rows)

        for record in records:
            owner_id = resolver.resolve(record.owner_name, record.owner_id)
            if owner_id is None:
                logger.warning(f"Skipping ownership of {record.subject_id}: owner has neither id nor name")
                continue
            kind = _subject_kind(record, resolver)
            pending[kind].append(_merge_row(record, owner_id))
            if len(pending[kind]) >= batch_size:
                written += flush(kind)

        written += flush(NodeKind.ENTITY)
        written += flush(NodeKind.ASSET)

    return written


def add_ownership(record: OwnershipRecord, resolver: Optional[IdentityResolver] = None) -> bool:
    """Write a single ownership row. False if it was skipped."""
    return add_ownerships([record], resolver=resolver) == 1

from typing import List, Optional

from fastapi import APIRouter, Query

from gem_ownership.models import (
    AnomalyFinding,
    AssetDetail,
    ChainItem,
    OwnershipGraph,
    OwnershipRecord,
    TraversalResult,
)
from gem_ownership.dependencies import ApiKeyDep, RelationDep, ResolverDep, TraversalDep
from gem_ownership.services.anomalies import detect_asset_anomalies, sort_by_severity
from gem_ownership.services.graph_builder import build_ownership_graph
from gem_ownership.services.identity import IdentityResolver
from gem_ownership.services.path_parser import extract_chain_with_ids, parse_path
from gem_ownership.services.relation import OwnershipRelation

router = APIRouter()


def _asset_owners(asset_id: str, relation: OwnershipRelation, resolver: IdentityResolver) -> tuple[str, List[OwnershipRecord]]:
    """Accepts G-ids and legacy E..._G... composites."""
    resolved = resolver.parse_reference(asset_id).primary_id
    return resolved, relation.records_for_subject(resolved)


def _asset_name(asset_id: str, records: List[OwnershipRecord]) -> str:
    for record in records:
        if record.subject_name:
            return record.subject_name
    for record in records:
        if record.ownership_path:
            return parse_path(record.ownership_path)[-1].name
    return asset_id


@router.get("/{asset_id}/owners", response_model=List[OwnershipRecord])
def get_asset_owners(asset_id: str, relation: RelationDep, resolver: ResolverDep, api_key: ApiKeyDep):
    """Direct owners of an asset."""
    _, records = _asset_owners(asset_id, relation, resolver)
    return records


@router.get("/{asset_id}/graph", response_model=OwnershipGraph)
def get_asset_graph(asset_id: str, relation: RelationDep, resolver: ResolverDep, api_key: ApiKeyDep):
    """Ownership graph assembled from the asset's ownership path strings."""
    resolved, records = _asset_owners(asset_id, relation, resolver)
    return build_ownership_graph(records, resolved, _asset_name(resolved, records), resolver=resolver)


@router.get("/{asset_id}/graph/up", response_model=TraversalResult)
def get_asset_graph_up(
    asset_id: str,
    traversal: TraversalDep,
    resolver: ResolverDep,
    api_key: ApiKeyDep,
    max_depth: Optional[int] = Query(None, ge=1, le=50),
):
    """Walk the live relation from the asset up to its ultimate owners."""
    if max_depth is not None:
        traversal.max_depth = max_depth
    return traversal.traverse_up(resolver.parse_reference(asset_id).primary_id)


@router.get("/{asset_id}/chain", response_model=List[ChainItem])
def get_asset_chain(asset_id: str, relation: RelationDep, resolver: ResolverDep, api_key: ApiKeyDep):
    resolved, records = _asset_owners(asset_id, relation, resolver)
    return extract_chain_with_ids(records, resolver, resolved, _asset_name(resolved, records))


@router.get("/{asset_id}/anomalies", response_model=List[AnomalyFinding])
def get_asset_anomalies(asset_id: str, relation: RelationDep, resolver: ResolverDep, api_key: ApiKeyDep):
    resolved, records = _asset_owners(asset_id, relation, resolver)
    chain = extract_chain_with_ids(records, resolver, resolved, _asset_name(resolved, records))
    asset = records[0] if records else None
    return sort_by_severity(detect_asset_anomalies(records, asset=asset, chain=chain))


def _first(records: List[OwnershipRecord], field: str):
    return next((getattr(r, field) for r in records if getattr(r, field)), None)


@router.get("/{asset_id}", response_model=AssetDetail)
def get_asset(asset_id: str, relation: RelationDep, resolver: ResolverDep, api_key: ApiKeyDep):
    """
    Asset metadata from its ownership rows.

    Rows for the same asset can disagree when trackers overlap; the first
    non-empty value of each field is used.
    """
    resolved, records = _asset_owners(asset_id, relation, resolver)
    return AssetDetail(
        id=resolved,
        name=_first(records, "subject_name"),
        tracker=_first(records, "category"),
        status=_first(records, "status"),
        country=_first(records, "country"),
        capacity_mw=_first(records, "capacity_mw"),
        owner_count=len(records),
    )

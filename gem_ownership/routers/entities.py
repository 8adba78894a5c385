from typing import Dict, List, Optional

from fastapi import APIRouter, Query

from gem_ownership.models import (
    CoInvestmentSummary,
    EntityAnalysisResponse,
    EntityDetail,
    OwnershipRecord,
    PortfolioResponse,
    TraversalResult,
)
from gem_ownership.dependencies import ApiKeyDep, RelationDep, ResolverDep, SettingsDep, TraversalDep
from gem_ownership.services.anomalies import detect_entity_anomalies, sort_by_severity
from gem_ownership.services.concentration import analyze_co_investment, analyze_portfolio, interpret_gini, interpret_hhi
from gem_ownership.services.portfolio import build_portfolio, summarize_portfolio

router = APIRouter()


def _with_depth(traversal, max_depth: Optional[int]):
    if max_depth is not None:
        traversal.max_depth = max_depth
    return traversal


@router.get("/{entity_id}/owners", response_model=List[OwnershipRecord])
def get_entity_owners(entity_id: str, relation: RelationDep, api_key: ApiKeyDep):
    """Who owns this entity (one level up)."""
    return relation.records_for_subject(entity_id)


@router.get("/{entity_id}/owned", response_model=List[OwnershipRecord])
def get_entity_owned(entity_id: str, relation: RelationDep, api_key: ApiKeyDep):
    """What this entity owns directly (one level down)."""
    return relation.records_for_owner(entity_id)


@router.get("/{entity_id}/graph/up", response_model=TraversalResult)
def get_entity_graph_up(
    entity_id: str,
    traversal: TraversalDep,
    api_key: ApiKeyDep,
    max_depth: Optional[int] = Query(None, ge=1, le=50),
):
    return _with_depth(traversal, max_depth).traverse_up(entity_id)


@router.get("/{entity_id}/graph/down", response_model=TraversalResult)
def get_entity_graph_down(
    entity_id: str,
    traversal: TraversalDep,
    api_key: ApiKeyDep,
    max_depth: Optional[int] = Query(None, ge=1, le=50),
):
    return _with_depth(traversal, max_depth).traverse_down(entity_id)


@router.get("/{entity_id}/portfolio", response_model=PortfolioResponse)
def get_entity_portfolio(entity_id: str, traversal: TraversalDep, api_key: ApiKeyDep):
    """Assets held directly and through each subsidiary."""
    result = traversal.traverse_down(entity_id)
    portfolio = build_portfolio(result)
    return PortfolioResponse(
        portfolio=portfolio,
        summary=summarize_portfolio(portfolio),
        truncated=result.truncated,
        failed_batches=result.failed_batches,
    )


@router.get("/{entity_id}/analysis", response_model=EntityAnalysisResponse)
def get_entity_analysis(entity_id: str, traversal: TraversalDep, settings: SettingsDep, api_key: ApiKeyDep):
    assets = build_portfolio(traversal.traverse_down(entity_id)).assets
    analysis = analyze_portfolio(assets, zscore_threshold=settings.zscore_threshold)
    return EntityAnalysisResponse(
        entity_id=entity_id,
        analysis=analysis,
        capacity_concentration=interpret_hhi(
            analysis.capacity_hhi, moderate=settings.hhi_moderate, concentrated=settings.hhi_concentrated
        ),
        capacity_inequality=interpret_gini(analysis.capacity_gini, bands=settings.gini_bands),
        anomalies=sort_by_severity(detect_entity_anomalies(assets, total_capacity_mw=analysis.capacity.total)),
    )


@router.get("/{entity_id}/co-investment", response_model=CoInvestmentSummary)
def get_entity_co_investment(
    entity_id: str,
    traversal: TraversalDep,
    relation: RelationDep,
    resolver: ResolverDep,
    settings: SettingsDep,
    api_key: ApiKeyDep,
):
    """Which owners show up together on this entity's assets."""
    asset_ids = [asset.id for asset in build_portfolio(traversal.traverse_down(entity_id)).assets]

    owners_by_asset: Dict[str, List[str]] = {asset_id: [] for asset_id in asset_ids}
    for record in relation.records_for_subjects(asset_ids):
        owner_id = resolver.resolve(record.owner_name, record.owner_id)
        if owner_id and record.subject_id in owners_by_asset:
            owners_by_asset[record.subject_id].append(owner_id)

    return analyze_co_investment(owners_by_asset, top_n=settings.co_investment_top_n)


@router.get("/{entity_id}", response_model=EntityDetail)
def get_entity(entity_id: str, relation: RelationDep, api_key: ApiKeyDep):
    holdings = relation.records_for_owner(entity_id)
    owners = relation.records_for_subject(entity_id)
    names = [r.owner_name for r in holdings] + [r.subject_name for r in owners]
    return EntityDetail(
        id=entity_id,
        name=next((name for name in names if name), None),
        holding_count=len(holdings),
        owner_count=len(owners),
    )

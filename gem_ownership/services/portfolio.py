"""
Turns a downward traversal into a Portfolio: which assets the root entity
holds directly and which it holds through each subsidiary.
"""

import logging
from typing import Dict, List

from gem_ownership.models import (
    AssetRef,
    Direction,
    GraphNode,
    NodeKind,
    Portfolio,
    PortfolioSummary,
    TraversalEdge,
    TraversalResult,
)
from gem_ownership.services.concentration import breakdown, capacity_stats

logger = logging.getLogger(__name__)


def _inbound_edges(edges: List[TraversalEdge]) -> Dict[str, TraversalEdge]:
    """Shallowest edge into each node; the first one seen wins ties."""
    inbound: Dict[str, TraversalEdge] = {}
    for edge in edges:
        current = inbound.get(edge.target)
        if current is None or edge.depth < current.depth:
            inbound[edge.target] = edge
    return inbound


def build_portfolio(result: TraversalResult) -> Portfolio:
    """
    Partition the assets reached by a downward traversal by immediate owner.

    Every asset lands in exactly one place: directly_owned if the root holds
    it, else subsidiaries[owner_id] for the entity on its inbound edge.
    """
    if result.direction != Direction.DOWN:
        logger.warning(f"build_portfolio called with an {result.direction.value} traversal for {result.root_id}")

    root = result.nodes.get(result.root_id) or GraphNode(id=result.root_id, display_name=result.root_id)
    inbound = _inbound_edges(result.edges)
    portfolio = Portfolio(root=root)

    for node_id, node in result.nodes.items():
        if node_id == result.root_id:
            continue

        edge = inbound.get(node_id)
        if node.kind == NodeKind.ENTITY:
            portfolio.entity_map[node_id] = node
            portfolio.edge_shares[node_id] = edge.share_pct if edge else None
            continue

        if edge is None:
            logger.warning(f"Asset {node_id} has no inbound edge under {result.root_id}; dropping it")
            continue

        record = edge.record
        asset = AssetRef(
            id=node_id,
            name=node.display_name,
            owner_id=edge.source,
            tracker=record.category if record else None,
            status=record.status if record else None,
            country=record.country if record else None,
            capacity_mw=record.capacity_mw if record else None,
            share_pct=edge.share_pct,
            imputed=edge.imputed,
        )
        if edge.source == result.root_id:
            portfolio.directly_owned.append(asset)
        else:
            portfolio.subsidiaries.setdefault(edge.source, []).append(asset)

    return portfolio


def asset_class_name(assets: List[AssetRef]) -> str:
    trackers = {a.tracker for a in assets if a.tracker and a.tracker != "Unknown"}
    if len(trackers) == 1:
        return next(iter(trackers))
    if trackers:
        return f"assets ({len(trackers)} types)"
    return "assets"


def summarize_portfolio(portfolio: Portfolio) -> PortfolioSummary:
    assets = portfolio.assets
    countries: Dict[str, int] = {}
    for asset in assets:
        country = asset.country or "Unknown"
        countries[country] = countries.get(country, 0) + 1

    return PortfolioSummary(
        asset_count=len(assets),
        directly_owned_count=len(portfolio.directly_owned),
        subsidiary_count=len(portfolio.subsidiaries),
        capacity=capacity_stats(a.capacity_mw for a in assets),
        country_counts=countries,
        status_breakdown=breakdown(a.status for a in assets),
        tracker_breakdown=breakdown(a.tracker for a in assets),
        asset_class_name=asset_class_name(assets),
    )

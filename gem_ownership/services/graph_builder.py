"""
Builds an OwnershipGraph for one asset from the ownership path strings
carried on its records.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from gem_ownership.models import GraphEdge, GraphNode, NodeKind, OwnershipGraph, OwnershipRecord
from gem_ownership.services.identity import IdentityResolver
from gem_ownership.services.path_parser import parse_path

logger = logging.getLogger(__name__)


def build_ownership_graph(
    records: Iterable[OwnershipRecord],
    target_asset_id: str,
    target_asset_name: str,
    resolver: Optional[IdentityResolver] = None,
) -> OwnershipGraph:
    """
    Turn every record's ownership path into nodes and edges.

    Each consecutive pair of segments becomes an edge owner -> owned. The
    edge's share is the percentage written on the owned segment. A segment
    whose name equals the target asset name maps onto target_asset_id, so all
    paths end on the same node.

    Duplicate (source, target) pairs keep their first position and depth; the
    last known percentage wins.
    """
    resolver = resolver or IdentityResolver()

    nodes: Dict[str, GraphNode] = {
        target_asset_id: GraphNode(id=target_asset_id, display_name=target_asset_name, kind=NodeKind.ASSET)
    }
    edges: Dict[Tuple[str, str], GraphEdge] = {}

    for record in records:
        if not record.ownership_path:
            logger.debug(f"Skipping record for {record.subject_id}: no ownership path")
            continue

        segments = parse_path(record.ownership_path)
        if len(segments) < 2:
            logger.warning(f"Skipping single-segment ownership path: {record.ownership_path!r}")
            continue

        ids: List[str] = []
        for seg in segments:
            if seg.name == target_asset_name:
                ids.append(target_asset_id)
                continue
            node_id = resolver.derive(seg.name)
            ids.append(node_id)
            if node_id not in nodes:
                nodes[node_id] = GraphNode(id=node_id, display_name=seg.name)

        for i in range(len(segments) - 1):
            key = (ids[i], ids[i + 1])
            share = segments[i + 1].percentage
            existing = edges.get(key)
            if existing is None:
                edges[key] = GraphEdge(
                    source=key[0],
                    target=key[1],
                    share_pct=share,
                    depth=len(segments) - 2 - i,
                    imputed=record.imputed,
                )
            elif share is not None:
                existing.share_pct = share

    return OwnershipGraph(root_id=target_asset_id, nodes=nodes, edges=list(edges.values()))

"""
Breadth-first walks over the live ownership relation.

Upward: asset -> its owners -> their owners ...
Downward: entity -> its holdings -> their holdings ...

Each hop looks up the whole frontier with "ids in set" queries. Large
frontiers are split into batches that are fetched concurrently; rows are
merged back on the calling thread, so branch state is never shared between
workers.

The cycle guard is per branch: a node already on the branch's own path is
recorded as an edge but not expanded. Shared ancestors reached from
different branches are still explored.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence, Tuple

from gem_ownership.models import (
    Direction,
    GraphNode,
    IdKind,
    NodeKind,
    OwnershipRecord,
    TraversalEdge,
    TraversalResult,
)
from gem_ownership.services.identity import IdentityResolver
from gem_ownership.services.relation import OwnershipRelation, RelationCache

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 20
DEFAULT_BATCH_SIZE = 500
DEFAULT_MAX_WORKERS = 4

Branch = Tuple[str, Tuple[str, ...]]


class OwnershipTraversal:
    def __init__(
        self,
        relation: OwnershipRelation,
        resolver: Optional[IdentityResolver] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_workers: int = DEFAULT_MAX_WORKERS,
        cache: Optional[RelationCache] = None,
    ):
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.relation = relation
        self.resolver = resolver or IdentityResolver()
        self.max_depth = max_depth
        self.batch_size = batch_size
        self.max_workers = max(1, max_workers)
        self.cache = cache

    def traverse_up(self, asset_id: str, cancel_event: Optional[threading.Event] = None) -> TraversalResult:
        """Walk from an asset (or an owned entity, for E-ids) toward its ultimate owners."""
        kind = NodeKind.ENTITY if self.resolver.classify(asset_id) == IdKind.GEM_ENTITY else NodeKind.ASSET
        return self._traverse(asset_id, Direction.UP, kind, cancel_event)

    def traverse_down(self, entity_id: str, cancel_event: Optional[threading.Event] = None) -> TraversalResult:
        """Walk from an entity toward everything it holds."""
        return self._traverse(entity_id, Direction.DOWN, NodeKind.ENTITY, cancel_event)

    # ------------------------------------------------------------------ #

    def _traverse(
        self,
        root_id: str,
        direction: Direction,
        root_kind: NodeKind,
        cancel_event: Optional[threading.Event],
    ) -> TraversalResult:
        result = TraversalResult(root_id=root_id, direction=direction)
        result.nodes[root_id] = GraphNode(id=root_id, display_name=root_id, kind=root_kind)

        edges: Dict[Tuple[str, str], TraversalEdge] = {}
        frontier: List[Branch] = [(root_id, (root_id,))]
        hop = 0

        while frontier:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Traversal {direction.value} from {root_id} cancelled at hop {hop}")
                result.cancelled = True
                break
            if hop >= self.max_depth:
                logger.warning(
                    f"Traversal {direction.value} from {root_id} hit depth cap {self.max_depth}; "
                    f"{len(frontier)} branches left unexpanded"
                )
                result.truncated = True
                result.terminal_paths.extend(list(path) for _, path in frontier)
                break

            unique_ids = list(dict.fromkeys(node_id for node_id, _ in frontier))
            rows_by_id = self._fetch(direction, unique_ids, result)

            next_frontier: List[Branch] = []
            for node_id, path in frontier:
                extended = False
                for record in rows_by_id.get(node_id, []):
                    other_id = self._neighbour(record, direction)
                    if other_id is None:
                        continue
                    self._note_nodes(result, record, node_id, other_id, direction)

                    key = (other_id, node_id) if direction == Direction.UP else (node_id, other_id)
                    if key not in edges:
                        edges[key] = TraversalEdge(
                            source=key[0],
                            target=key[1],
                            share_pct=record.share_pct,
                            depth=hop,
                            imputed=record.imputed,
                            record=record,
                        )

                    if other_id in path:
                        logger.debug(f"Cycle at {other_id} via {' -> '.join(path)}")
                        result.cycles_detected += 1
                        continue
                    next_frontier.append((other_id, path + (other_id,)))
                    extended = True

                if not extended and len(path) > 1:
                    result.terminal_paths.append(list(path))

            if next_frontier:
                result.max_depth_reached = hop + 1
            frontier = next_frontier
            hop += 1

        result.edges = list(edges.values())
        return result

    def _neighbour(self, record: OwnershipRecord, direction: Direction) -> Optional[str]:
        if direction == Direction.UP:
            other_id = self.resolver.resolve(record.owner_name, record.owner_id)
        else:
            other_id = self.resolver.resolve(record.subject_name, record.subject_id)
        if other_id is None:
            logger.warning(f"Skipping ownership row with neither id nor name: {record!r}")
        return other_id

    def _subject_kind(self, record: OwnershipRecord, subject_id: str) -> NodeKind:
        if record.subject_kind is not None:
            return record.subject_kind
        if self.resolver.classify(subject_id) == IdKind.GEM_ASSET:
            return NodeKind.ASSET
        return NodeKind.ENTITY

    def _note_nodes(
        self,
        result: TraversalResult,
        record: OwnershipRecord,
        node_id: str,
        other_id: str,
        direction: Direction,
    ) -> None:
        if direction == Direction.UP:
            owner_id, owner_name = other_id, record.owner_name
            subject_id, subject_name = node_id, record.subject_name
        else:
            owner_id, owner_name = node_id, record.owner_name
            subject_id, subject_name = other_id, record.subject_name

        _upsert(result, owner_id, owner_name, NodeKind.ENTITY)
        _upsert(
            result,
            subject_id,
            subject_name,
            self._subject_kind(record, subject_id),
            override_kind=record.subject_kind is not None,
        )

    def _fetch(self, direction: Direction, ids: List[str], result: TraversalResult) -> Dict[str, List[OwnershipRecord]]:
        if self.cache is not None:
            rows_by_id, missing = self.cache.split(direction, ids)
        else:
            rows_by_id, missing = {}, list(ids)

        chunks = [missing[i : i + self.batch_size] for i in range(0, len(missing), self.batch_size)]
        if not chunks:
            return rows_by_id

        workers = min(self.max_workers, len(chunks))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self._load, direction, chunk): chunk for chunk in chunks}
            for future in as_completed(futures):
                chunk = futures[future]
                try:
                    rows = future.result()
                except Exception as e:
                    logger.warning(
                        f"Ownership lookup failed for {len(chunk)} ids ({direction.value}): {e}",
                        exc_info=True,
                    )
                    result.failed_batches += 1
                    continue

                grouped = _group(rows, chunk, direction)
                if self.cache is not None:
                    self.cache.store(direction, grouped)
                rows_by_id.update(grouped)

        return rows_by_id

    def _load(self, direction: Direction, ids: Sequence[str]) -> List[OwnershipRecord]:
        if direction == Direction.UP:
            return self.relation.records_for_subjects(ids)
        return self.relation.records_for_owners(ids)


def _group(rows: List[OwnershipRecord], ids: Sequence[str], direction: Direction) -> Dict[str, List[OwnershipRecord]]:
    grouped: Dict[str, List[OwnershipRecord]] = {node_id: [] for node_id in ids}
    for record in rows:
        key = record.subject_id if direction == Direction.UP else record.owner_id
        if key in grouped:
            grouped[key].append(record)
    return grouped


def _upsert(result: TraversalResult, node_id: str, name: str, kind: NodeKind, override_kind: bool = False) -> None:
    node = result.nodes.get(node_id)
    if node is None:
        result.nodes[node_id] = GraphNode(id=node_id, display_name=name or node_id, kind=kind)
        return
    if name and node.display_name == node_id:
        node.display_name = name
    if override_kind:
        node.kind = kind

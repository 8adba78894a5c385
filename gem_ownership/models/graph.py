from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from .records import NodeKind, OwnershipRecord


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


class Segment(BaseModel):
    """One token of an ownership path, e.g. "BlackRock Inc [5.07%]"."""

    name: str
    percentage: Optional[float] = None  # None = unknown, distinct from 0


class ChainItem(BaseModel):
    """Flat chain entry (0 = asset, higher = further up the chain)"""

    id: str
    name: str
    share: Optional[float] = None
    depth: int


class GraphNode(BaseModel):
    id: str
    display_name: str
    kind: NodeKind = NodeKind.ENTITY


class GraphEdge(BaseModel):
    """Edge from owner (source) to owned (target)"""

    source: str
    target: str
    share_pct: Optional[float] = None
    depth: int = 0  # 0 = edge into the terminal asset / traversal root
    imputed: bool = False


class OwnershipGraph(BaseModel):
    root_id: str
    nodes: dict[str, GraphNode] = Field(default_factory=dict)
    edges: list[GraphEdge] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.edges


class TraversalEdge(GraphEdge):
    record: Optional[OwnershipRecord] = Field(None, exclude=True)


class TraversalResult(BaseModel):
    """Everything one upward or downward walk discovered."""

    root_id: str
    direction: Direction
    nodes: dict[str, GraphNode] = Field(default_factory=dict)
    edges: list[TraversalEdge] = Field(default_factory=list)
    terminal_paths: list[list[str]] = Field(default_factory=list)
    max_depth_reached: int = 0
    cycles_detected: int = 0
    failed_batches: int = 0
    truncated: bool = False
    cancelled: bool = False

    @property
    def node_ids(self) -> set[str]:
        touched = {self.root_id}
        for edge in self.edges:
            touched.add(edge.source)
            touched.add(edge.target)
        return touched

    def to_graph(self) -> OwnershipGraph:
        return OwnershipGraph(
            root_id=self.root_id,
            nodes=dict(self.nodes),
            edges=[GraphEdge(**edge.model_dump()) for edge in self.edges],
        )

from pydantic import BaseModel, Field
from typing import Optional

from .graph import GraphNode


class AssetRef(BaseModel):
    """Asset as it appears in an entity's portfolio"""

    id: str
    name: str
    owner_id: str
    tracker: Optional[str] = None
    status: Optional[str] = None
    country: Optional[str] = None
    capacity_mw: Optional[float] = None
    share_pct: Optional[float] = None
    imputed: bool = False


class Portfolio(BaseModel):
    """Downstream holdings of one entity, split by immediate owner."""

    root: GraphNode
    directly_owned: list[AssetRef] = Field(default_factory=list)
    subsidiaries: dict[str, list[AssetRef]] = Field(default_factory=dict)
    edge_shares: dict[str, Optional[float]] = Field(default_factory=dict)
    entity_map: dict[str, GraphNode] = Field(default_factory=dict)

    @property
    def assets(self) -> list[AssetRef]:
        collected = list(self.directly_owned)
        for held in self.subsidiaries.values():
            collected.extend(held)
        return collected


class BreakdownItem(BaseModel):
    label: str
    count: int
    percentage: float


class CapacityStats(BaseModel):
    total: float = 0.0
    mean: float = 0.0
    median: float = 0.0
    max: float = 0.0
    min: float = 0.0


class PortfolioSummary(BaseModel):
    """GET /entities/{id}/portfolio roll-up"""

    asset_count: int
    directly_owned_count: int
    subsidiary_count: int
    capacity: CapacityStats
    country_counts: dict[str, int] = Field(default_factory=dict)
    status_breakdown: list[BreakdownItem] = Field(default_factory=list)
    tracker_breakdown: list[BreakdownItem] = Field(default_factory=list)
    asset_class_name: str = "assets"

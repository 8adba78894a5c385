from pydantic import BaseModel, Field
from typing import Optional

from .analytics import AnomalyFinding, Band, PortfolioAnalysis
from .portfolio import Portfolio, PortfolioSummary


class PortfolioResponse(BaseModel):
    portfolio: Portfolio
    summary: PortfolioSummary
    truncated: bool = False
    failed_batches: int = 0


class EntityAnalysisResponse(BaseModel):
    """Portfolio statistics plus advisory findings for one entity"""

    entity_id: str
    analysis: PortfolioAnalysis
    capacity_concentration: Band
    capacity_inequality: Band
    anomalies: list[AnomalyFinding] = Field(default_factory=list)


class AssetDetail(BaseModel):
    """GET /assets/{id}; only the id is set for an unknown asset"""

    id: str
    name: Optional[str] = None
    tracker: Optional[str] = None
    status: Optional[str] = None
    country: Optional[str] = None
    capacity_mw: Optional[float] = None
    owner_count: int = 0


class EntityDetail(BaseModel):
    id: str
    name: Optional[str] = None
    holding_count: int = 0
    owner_count: int = 0

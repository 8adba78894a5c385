from pydantic import BaseModel, Field
from typing import Any, Optional
from enum import Enum

from .portfolio import CapacityStats


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


SEVERITY_WEIGHT = {Severity.CRITICAL: 3, Severity.WARNING: 2, Severity.INFO: 1}


class AnomalyFinding(BaseModel):
    """Advisory finding; never blocks rendering"""

    kind: str
    severity: Severity
    title: str = ""
    message: str
    evidence: dict[str, Any] = Field(default_factory=dict)


class Band(BaseModel):
    level: str
    description: str


class Outlier(BaseModel):
    item: Any
    value: float
    z_score: float
    direction: str  # "high" | "low"


class CountryShare(BaseModel):
    country: str
    count: int
    percentage: float


class GeographicConcentration(BaseModel):
    total_countries: int = 0
    top_country: Optional[CountryShare] = None
    top3_percentage: float = 0.0
    hhi: float = 0.0
    level: str = "no data"
    interpretation: str = "No geographic data"


class CoInvestmentPair(BaseModel):
    owners: tuple[str, str]
    count: int


class CoInvestmentSummary(BaseModel):
    total_shared_assets: int = 0
    average_co_owners: float = 0.0
    max_co_owners: int = 0
    most_connected_asset: Optional[str] = None
    frequent_pairs: list[CoInvestmentPair] = Field(default_factory=list)
    interpretation: str = "No co-owned assets found"


class PortfolioAnalysis(BaseModel):
    asset_count: int
    capacity: CapacityStats
    geographic_concentration: GeographicConcentration
    capacity_hhi: float = 0.0
    capacity_gini: float = 0.0
    capacity_outliers: list[Outlier] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)

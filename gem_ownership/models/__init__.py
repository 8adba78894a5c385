from .records import (
    NodeKind,
    OwnershipRecord,
)
from .graph import (
    Direction,
    Segment,
    ChainItem,
    GraphNode,
    GraphEdge,
    OwnershipGraph,
    TraversalEdge,
    TraversalResult,
)
from .identity import (
    IdKind,
    IdReference,
)
from .portfolio import (
    AssetRef,
    Portfolio,
    BreakdownItem,
    CapacityStats,
    PortfolioSummary,
)
from .analytics import (
    Severity,
    SEVERITY_WEIGHT,
    AnomalyFinding,
    Band,
    Outlier,
    CountryShare,
    GeographicConcentration,
    CoInvestmentPair,
    CoInvestmentSummary,
    PortfolioAnalysis,
)
from .responses import (
    AssetDetail,
    EntityDetail,
    PortfolioResponse,
    EntityAnalysisResponse,
)

__all__ = [
    "NodeKind",
    "OwnershipRecord",
    "Direction",
    "Segment",
    "ChainItem",
    "GraphNode",
    "GraphEdge",
    "OwnershipGraph",
    "TraversalEdge",
    "TraversalResult",
    "IdKind",
    "IdReference",
    "AssetRef",
    "Portfolio",
    "BreakdownItem",
    "CapacityStats",
    "PortfolioSummary",
    "Severity",
    "SEVERITY_WEIGHT",
    "AnomalyFinding",
    "Band",
    "Outlier",
    "CountryShare",
    "GeographicConcentration",
    "CoInvestmentPair",
    "CoInvestmentSummary",
    "PortfolioAnalysis",
    "AssetDetail",
    "EntityDetail",
    "PortfolioResponse",
    "EntityAnalysisResponse",
]

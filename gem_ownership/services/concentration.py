"""
Concentration and pattern statistics for ownership portfolios.

- HHI: sum of squared percentage shares, 0-10,000. Bands follow the DOJ
  horizontal merger guidelines (<1,500 / 1,500-2,500 / >2,500).
- Gini: 0 (equal) to 1 (one holder has everything).
- Z-scores for capacity outliers.

Every function is total: empty, all-zero or single-element input returns a
zero/empty result instead of raising.
"""

from collections import Counter
from itertools import combinations
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from gem_ownership.models import (
    AssetRef,
    Band,
    BreakdownItem,
    CapacityStats,
    CoInvestmentPair,
    CoInvestmentSummary,
    CountryShare,
    GeographicConcentration,
    Outlier,
    PortfolioAnalysis,
)

DEFAULT_GINI_BANDS = (0.2, 0.4, 0.6)
UNKNOWN_LABEL = "Unknown"


def _as_array(values: Iterable[Optional[float]]) -> np.ndarray:
    return np.array([v or 0.0 for v in values], dtype=float)


# --------------------------------------------------------------------------- #
# Concentration measures
# --------------------------------------------------------------------------- #


def calculate_hhi(shares: Iterable[Optional[float]]) -> float:
    """HHI of shares after normalising them to sum to 100. calculate_hhi([50, 30, 20]) == 3800."""
    arr = _as_array(shares)
    if arr.size == 0:
        return 0.0
    total = arr.sum()
    if total == 0:
        return 0.0
    normalized = arr / total * 100
    return float(np.sum(normalized**2))


def interpret_hhi(hhi: float, moderate: float = 1500, concentrated: float = 2500) -> Band:
    if hhi < moderate:
        return Band(level="unconcentrated", description=f"Unconcentrated ownership (HHI < {moderate:,.0f})")
    if hhi < concentrated:
        return Band(
            level="moderate",
            description=f"Moderately concentrated ownership (HHI {moderate:,.0f}-{concentrated:,.0f})",
        )
    return Band(level="concentrated", description=f"Highly concentrated ownership (HHI > {concentrated:,.0f})")


def calculate_gini(values: Iterable[Optional[float]]) -> float:
    """Relative mean absolute difference: sum|xi - xj| / (2 * n^2 * mean)."""
    arr = np.sort(_as_array(values))
    n = arr.size
    if n <= 1:
        return 0.0
    mean = arr.mean()
    if mean == 0:
        return 0.0
    # sum over all ordered pairs of |xi - xj|, from the sorted values
    ranks = np.arange(n)
    sum_diff = 2 * np.sum((2 * ranks - n + 1) * arr)
    return float(sum_diff / (2 * n * n * mean))


def interpret_gini(gini: float, bands: Sequence[float] = DEFAULT_GINI_BANDS) -> Band:
    low, mid, high = bands
    if gini < low:
        return Band(level="equal", description="Relatively equal distribution")
    if gini < mid:
        return Band(level="moderate", description="Moderate inequality")
    if gini < high:
        return Band(level="unequal", description="Significant inequality")
    return Band(level="highly_unequal", description="Highly unequal distribution")


# --------------------------------------------------------------------------- #
# Outliers
# --------------------------------------------------------------------------- #


def calculate_z_score(value: float, dataset: Iterable[Optional[float]]) -> Optional[float]:
    """Population z-score of value against dataset; None with <2 points or zero spread."""
    arr = _as_array(dataset)
    if arr.size < 2:
        return None
    std = arr.std()
    if std == 0:
        return None
    return float((value - arr.mean()) / std)


def find_outliers(pairs: Iterable[Tuple[Any, Optional[float]]], threshold: float = 2.0) -> List[Outlier]:
    """
    Flag (item, value) pairs whose |z| >= threshold.

    Only positive values take part. Needs at least three of them. Sorted by
    |z|, largest first.
    """
    positive = [(item, float(value)) for item, value in pairs if value and value > 0]
    if len(positive) < 3:
        return []

    values = np.array([value for _, value in positive])
    mean = values.mean()
    std = values.std()
    if std == 0:
        return []

    outliers = []
    for item, value in positive:
        z = float((value - mean) / std)
        if abs(z) >= threshold:
            outliers.append(Outlier(item=item, value=value, z_score=z, direction="high" if z > 0 else "low"))

    outliers.sort(key=lambda o: abs(o.z_score), reverse=True)
    return outliers


# --------------------------------------------------------------------------- #
# Geography
# --------------------------------------------------------------------------- #


def calculate_geographic_concentration(
    country_counts: Union[Mapping[str, int], Iterable[Tuple[str, int]]],
) -> GeographicConcentration:
    items = list(country_counts.items() if isinstance(country_counts, Mapping) else country_counts)
    if not items:
        return GeographicConcentration()

    ranked = sorted(items, key=lambda pair: pair[1], reverse=True)
    total = sum(count for _, count in ranked)
    if total == 0:
        return GeographicConcentration(total_countries=len(ranked), interpretation="No asset counts")

    top_name, top_count = ranked[0]
    top3_pct = sum(count for _, count in ranked[:3]) / total * 100
    hhi = calculate_hhi([count / total * 100 for _, count in ranked])

    if top3_pct > 80:
        level = "highly concentrated"
    elif top3_pct > 50:
        level = "moderately concentrated"
    else:
        level = "diversified"

    if len(ranked) == 1:
        interpretation = f"All assets in {top_name}"
    elif level == "highly concentrated":
        interpretation = f"Highly concentrated: {top3_pct:.0f}% in top 3 countries"
    elif level == "moderately concentrated":
        interpretation = f"Moderately concentrated: {top3_pct:.0f}% in top 3 countries"
    else:
        interpretation = f"Geographically diversified across {len(ranked)} countries"

    return GeographicConcentration(
        total_countries=len(ranked),
        top_country=CountryShare(country=top_name, count=top_count, percentage=top_count / total * 100),
        top3_percentage=top3_pct,
        hhi=hhi,
        level=level,
        interpretation=interpretation,
    )


# --------------------------------------------------------------------------- #
# Co-investment
# --------------------------------------------------------------------------- #


def _distinct_owners(owner_ids: Iterable[str]) -> List[str]:
    return sorted({o.strip() for o in owner_ids if o and o.strip()})


def co_investment_pairs(assets: Mapping[str, Sequence[str]], top_n: int = 5) -> List[CoInvestmentPair]:
    """
    Count how often each unordered pair of owners holds the same asset.

    assets maps asset id -> owner ids. Returns the top_n pairs, most frequent
    first, ties in pair order.
    """
    counts: Counter = Counter()
    for owner_ids in assets.values():
        counts.update(combinations(_distinct_owners(owner_ids), 2))

    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [CoInvestmentPair(owners=pair, count=count) for pair, count in ranked[:top_n]]


def analyze_co_investment(assets: Mapping[str, Sequence[str]], top_n: int = 5) -> CoInvestmentSummary:
    shared = {asset_id: _distinct_owners(owners) for asset_id, owners in assets.items()}
    shared = {asset_id: owners for asset_id, owners in shared.items() if len(owners) > 1}
    if not shared:
        return CoInvestmentSummary()

    owner_counts = {asset_id: len(owners) for asset_id, owners in shared.items()}
    average = sum(owner_counts.values()) / len(owner_counts)
    most_connected = max(owner_counts, key=owner_counts.get)

    if average > 3:
        interpretation = f"Significant co-investment: average of {average:.1f} co-owners per shared asset"
    elif len(shared) > 10:
        interpretation = f"Moderate co-investment: {len(shared)} shared assets found"
    else:
        plural = "" if len(shared) == 1 else "s"
        interpretation = f"Limited co-investment: {len(shared)} shared asset{plural}"

    return CoInvestmentSummary(
        total_shared_assets=len(shared),
        average_co_owners=average,
        max_co_owners=owner_counts[most_connected],
        most_connected_asset=most_connected,
        frequent_pairs=co_investment_pairs(shared, top_n=top_n),
        interpretation=interpretation,
    )


# --------------------------------------------------------------------------- #
# Portfolio roll-ups
# --------------------------------------------------------------------------- #


def capacity_stats(capacities: Iterable[Optional[float]]) -> CapacityStats:
    arr = _as_array(capacities)
    arr = arr[arr > 0]
    if arr.size == 0:
        return CapacityStats()
    return CapacityStats(
        total=float(arr.sum()),
        mean=float(arr.mean()),
        median=float(np.median(arr)),
        max=float(arr.max()),
        min=float(arr.min()),
    )


def breakdown(labels: Iterable[Optional[str]]) -> List[BreakdownItem]:
    """Count labels (missing -> "Unknown"), most common first."""
    counts = Counter(label or UNKNOWN_LABEL for label in labels)
    total = sum(counts.values())
    return [
        BreakdownItem(label=label, count=count, percentage=count / total * 100)
        for label, count in counts.most_common()
    ]


def analyze_portfolio(
    assets: Sequence[AssetRef],
    zscore_threshold: float = 2.0,
    max_outliers: int = 5,
) -> PortfolioAnalysis:
    """Capacity stats, geography, capacity outliers and plain-language insights."""
    capacities = [a.capacity_mw for a in assets]
    statuses = breakdown(a.status for a in assets)
    countries = Counter(a.country or UNKNOWN_LABEL for a in assets)
    geo = calculate_geographic_concentration(countries)
    outliers = find_outliers([(a, a.capacity_mw) for a in assets], threshold=zscore_threshold)[:max_outliers]

    insights = []
    if statuses and statuses[0].label.lower() == "proposed":
        insights.append(f"{statuses[0].percentage:.0f}% of portfolio is proposed/planned assets")
    if geo.top_country and geo.top_country.percentage > 50:
        insights.append(
            f"Concentrated in {geo.top_country.country} ({geo.top_country.percentage:.0f}% of assets)"
        )
    if outliers:
        plural = "" if len(outliers) == 1 else "s"
        insights.append(f"{len(outliers)} asset{plural} with unusually {outliers[0].direction} capacity")
    operating = next((s.percentage for s in statuses if s.label.lower() == "operating"), 0)
    if operating > 80:
        insights.append(f"Mature portfolio: {operating:.0f}% operating assets")

    positive = [c for c in capacities if c and c > 0]
    return PortfolioAnalysis(
        asset_count=len(assets),
        capacity=capacity_stats(capacities),
        geographic_concentration=geo,
        capacity_hhi=calculate_hhi(positive),
        capacity_gini=calculate_gini(positive),
        capacity_outliers=outliers,
        insights=insights,
    )

"""
Advisory anomaly rules for assets and entity portfolios.

The things an analyst would flag on first look: shares that don't add up,
very deep or fragmented chains, estimated values, missing fields. Each rule
is independent and returns a finding or None. Findings never block anything.
"""

from collections import Counter
from typing import Any, Callable, List, Optional, Sequence

from gem_ownership.models import SEVERITY_WEIGHT, AnomalyFinding, AssetRef, ChainItem, OwnershipRecord, Severity

INCOMPLETE_BELOW = 95.0
OVERLAPPING_ABOVE = 105.0
DEEP_CHAIN_DEPTH = 5
FRAGMENTED_PARENTS = 3
LIMBO_STATUSES = ("shelved", "mothballed")
LEGACY_STATUSES = ("retired", "cancelled")
MEGA_CAPACITY_MW = 10000


def _total_share(owners: Sequence[OwnershipRecord]) -> float:
    return sum(o.share_pct or 0.0 for o in owners)


# --------------------------------------------------------------------------- #
# Asset rules
# --------------------------------------------------------------------------- #


def incomplete_ownership(owners: Sequence[OwnershipRecord]) -> Optional[AnomalyFinding]:
    total = _total_share(owners)
    if not 0 < total < INCOMPLETE_BELOW:
        return None
    return AnomalyFinding(
        kind="incomplete_ownership",
        severity=Severity.WARNING,
        title="Incomplete ownership data",
        message=f"Known ownership sums to {total:.1f}%. The remaining {100 - total:.1f}% is unattributed.",
        evidence={"total_ownership": total},
    )


def overlapping_ownership(owners: Sequence[OwnershipRecord]) -> Optional[AnomalyFinding]:
    total = _total_share(owners)
    if total <= OVERLAPPING_ABOVE:
        return None
    return AnomalyFinding(
        kind="overlapping_ownership",
        severity=Severity.WARNING,
        title="Overlapping ownership claims",
        message=f"Ownership sums to {total:.1f}%, suggesting overlapping or double-counted stakes.",
        evidence={"total_ownership": total},
    )


def _max_depth(chain: Sequence[ChainItem]) -> int:
    return max((item.depth for item in chain), default=0)


def deep_chain(chain: Sequence[ChainItem]) -> Optional[AnomalyFinding]:
    depth = _max_depth(chain)
    if depth < DEEP_CHAIN_DEPTH:
        return None
    return AnomalyFinding(
        kind="deep_chain",
        severity=Severity.INFO,
        title="Complex ownership structure",
        message=f"Ownership chain has {depth} levels between ultimate parent and asset.",
        evidence={"depth": depth},
    )


def fragmented_ownership(chain: Sequence[ChainItem]) -> Optional[AnomalyFinding]:
    depth = _max_depth(chain)
    parents = [item for item in chain if item.depth == depth]
    if len(parents) <= FRAGMENTED_PARENTS:
        return None
    return AnomalyFinding(
        kind="fragmented_ownership",
        severity=Severity.INFO,
        title="Highly fragmented ownership",
        message=f"{len(parents)} distinct ultimate parents identified.",
        evidence={"parent_count": len(parents), "parents": [p.name for p in parents[:5]]},
    )


def imputed_values(owners: Sequence[OwnershipRecord]) -> Optional[AnomalyFinding]:
    imputed = sum(1 for o in owners if o.imputed)
    if not imputed:
        return None
    return AnomalyFinding(
        kind="imputed_values",
        severity=Severity.INFO,
        title="Estimated ownership values",
        message=f"{imputed} of {len(owners)} ownership records have imputed (estimated) values.",
        evidence={"imputed_count": imputed, "total_count": len(owners)},
    )


def missing_data(asset: Any) -> Optional[AnomalyFinding]:
    """asset: anything with status, capacity_mw and country attributes."""
    missing = []
    if not asset.status:
        missing.append("Status")
    if not asset.capacity_mw:
        missing.append("Capacity")
    if not asset.country:
        missing.append("Country")
    if not missing:
        return None
    return AnomalyFinding(
        kind="missing_data",
        severity=Severity.WARNING if len(missing) > 1 else Severity.INFO,
        title="Incomplete asset data",
        message=f"Missing: {', '.join(missing)}",
        evidence={"missing_fields": missing},
    )


def unusual_status(asset: Any) -> Optional[AnomalyFinding]:
    status = (asset.status or "").lower()
    if not any(word in status for word in LIMBO_STATUSES):
        return None
    return AnomalyFinding(
        kind="unusual_status",
        severity=Severity.INFO,
        title="Asset in limbo",
        message=f'Status "{asset.status}" indicates uncertain operational future.',
        evidence={"status": asset.status},
    )


def detect_asset_anomalies(
    owners: Sequence[OwnershipRecord],
    asset: Any = None,
    chain: Sequence[ChainItem] = (),
) -> List[AnomalyFinding]:
    """Run every asset rule. Rules that need asset metadata are skipped when asset is None."""
    checks: List[Callable[[], Optional[AnomalyFinding]]] = [
        lambda: incomplete_ownership(owners),
        lambda: overlapping_ownership(owners),
        lambda: deep_chain(chain),
        lambda: fragmented_ownership(chain),
        lambda: imputed_values(owners),
    ]
    if asset is not None:
        checks.append(lambda: missing_data(asset))
        checks.append(lambda: unusual_status(asset))
    return [finding for finding in (check() for check in checks) if finding is not None]


# --------------------------------------------------------------------------- #
# Entity rules
# --------------------------------------------------------------------------- #


def single_sector(assets: Sequence[AssetRef]) -> Optional[AnomalyFinding]:
    trackers = {a.tracker for a in assets if a.tracker}
    if len(trackers) != 1 or len(assets) <= 10:
        return None
    tracker = next(iter(trackers))
    return AnomalyFinding(
        kind="single_sector",
        severity=Severity.INFO,
        title="Single-sector focus",
        message=f"All {len(assets)} assets are {tracker}. No diversification.",
        evidence={"tracker": tracker, "asset_count": len(assets)},
    )


def legacy_portfolio(assets: Sequence[AssetRef]) -> Optional[AnomalyFinding]:
    retired = sum(1 for a in assets if any(word in (a.status or "").lower() for word in LEGACY_STATUSES))
    if retired <= len(assets) * 0.5 or len(assets) <= 5:
        return None
    pct = retired / len(assets) * 100
    return AnomalyFinding(
        kind="legacy_portfolio",
        severity=Severity.INFO,
        title="Legacy-heavy portfolio",
        message=f"{pct:.0f}% of assets are retired or cancelled ({retired} of {len(assets)}).",
        evidence={"retired_count": retired, "total_count": len(assets), "percentage": pct},
    )


def geographic_concentration(assets: Sequence[AssetRef]) -> Optional[AnomalyFinding]:
    if len(assets) <= 10:
        return None
    country, count = Counter(a.country or "Unknown" for a in assets).most_common(1)[0]
    if count <= len(assets) * 0.8:
        return None
    return AnomalyFinding(
        kind="geographic_concentration",
        severity=Severity.INFO,
        title="Geographic concentration",
        message=f"{count / len(assets) * 100:.0f}% of assets in {country}.",
        evidence={"country": country, "count": count, "total": len(assets)},
    )


def mega_assets(assets: Sequence[AssetRef], total_capacity_mw: Optional[float] = None) -> Optional[AnomalyFinding]:
    if total_capacity_mw is None:
        total_capacity_mw = sum(a.capacity_mw or 0.0 for a in assets)
    if not assets or total_capacity_mw <= MEGA_CAPACITY_MW or len(assets) >= 5:
        return None
    average = total_capacity_mw / len(assets)
    return AnomalyFinding(
        kind="mega_assets",
        severity=Severity.INFO,
        title="Concentrated in mega-assets",
        message=f"{len(assets)} assets averaging {average:,.0f} MW each.",
        evidence={"average_capacity_mw": average, "asset_count": len(assets)},
    )


def all_imputed(assets: Sequence[AssetRef]) -> Optional[AnomalyFinding]:
    if not assets or not all(a.imputed for a in assets):
        return None
    return AnomalyFinding(
        kind="all_imputed",
        severity=Severity.WARNING,
        title="All ownership estimated",
        message="Every ownership stake in this portfolio is an estimated value.",
        evidence={"count": len(assets)},
    )


def detect_entity_anomalies(
    assets: Sequence[AssetRef],
    total_capacity_mw: Optional[float] = None,
) -> List[AnomalyFinding]:
    findings = [
        single_sector(assets),
        legacy_portfolio(assets),
        geographic_concentration(assets),
        mega_assets(assets, total_capacity_mw),
        all_imputed(assets),
    ]
    return [f for f in findings if f is not None]


def sort_by_severity(findings: Sequence[AnomalyFinding]) -> List[AnomalyFinding]:
    """Critical first, then warning, then info; stable within a level."""
    return sorted(findings, key=lambda f: SEVERITY_WEIGHT.get(f.severity, 0), reverse=True)

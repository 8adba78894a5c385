from gem_ownership.models import AnomalyFinding, AssetRef, ChainItem, OwnershipRecord, Severity
from gem_ownership.services.anomalies import (
    all_imputed,
    deep_chain,
    detect_asset_anomalies,
    detect_entity_anomalies,
    fragmented_ownership,
    geographic_concentration,
    imputed_values,
    incomplete_ownership,
    legacy_portfolio,
    mega_assets,
    missing_data,
    overlapping_ownership,
    single_sector,
    sort_by_severity,
    unusual_status,
)


def owners(*shares, imputed=False):
    return [
        OwnershipRecord(subject_id="G1", owner_id=f"E{i}", share_pct=share, imputed=imputed)
        for i, share in enumerate(shares)
    ]


def chain(*depths):
    return [ChainItem(id=f"N{i}", name=f"Node {i}", depth=d) for i, d in enumerate(depths)]


def asset(i=0, **kwargs):
    fields = dict(tracker="Coal Plant", status="operating", country="India", capacity_mw=100.0)
    fields.update(kwargs)
    return AssetRef(id=f"G{i}", name=f"Plant {i}", owner_id="E1", **fields)


class TestAssetRules:
    def test_incomplete(self):
        finding = incomplete_ownership(owners(40, 30))
        assert finding.kind == "incomplete_ownership"
        assert finding.severity == Severity.WARNING
        assert finding.evidence["total_ownership"] == 70
        assert "30.0% is unattributed" in finding.message

    def test_complete_and_unknown_shares_not_flagged(self):
        assert incomplete_ownership(owners(60, 40)) is None
        assert incomplete_ownership(owners(None, None)) is None
        assert incomplete_ownership([]) is None

    def test_overlapping(self):
        assert overlapping_ownership(owners(60, 50)).kind == "overlapping_ownership"
        assert overlapping_ownership(owners(60, 45)) is None

    def test_deep_chain(self):
        assert deep_chain(chain(0, 1, 2, 3, 4, 5)).evidence == {"depth": 5}
        assert deep_chain(chain(0, 1, 2, 3, 4)) is None
        assert deep_chain([]) is None

    def test_fragmented(self):
        finding = fragmented_ownership(chain(0, 1, 2, 2, 2, 2))
        assert finding.evidence["parent_count"] == 4
        assert fragmented_ownership(chain(0, 1, 2, 2, 2)) is None

    def test_imputed(self):
        finding = imputed_values(owners(50, 50, imputed=True))
        assert finding.severity == Severity.INFO
        assert finding.evidence == {"imputed_count": 2, "total_count": 2}
        assert imputed_values(owners(50, 50)) is None

    def test_missing_data_severity(self):
        one_missing = asset(country=None)
        two_missing = asset(country=None, status=None)
        assert missing_data(one_missing).severity == Severity.INFO
        assert missing_data(two_missing).severity == Severity.WARNING
        assert missing_data(two_missing).evidence["missing_fields"] == ["Status", "Country"]
        assert missing_data(asset()) is None

    def test_unusual_status(self):
        assert unusual_status(asset(status="Mothballed")).kind == "unusual_status"
        assert unusual_status(asset(status="shelved - inferred 2 y")) is not None
        assert unusual_status(asset(status="operating")) is None
        assert unusual_status(asset(status=None)) is None

    def test_detect_all(self):
        records = owners(40, imputed=True)
        findings = detect_asset_anomalies(records, asset=asset(status="shelved"), chain=chain(0, 5))
        assert {f.kind for f in findings} == {"incomplete_ownership", "deep_chain", "imputed_values", "unusual_status"}

    def test_detect_without_asset_metadata(self):
        findings = detect_asset_anomalies(owners(100))
        assert findings == []


class TestEntityRules:
    def test_single_sector(self):
        assets = [asset(i) for i in range(11)]
        assert single_sector(assets).evidence == {"tracker": "Coal Plant", "asset_count": 11}
        assert single_sector(assets[:10]) is None
        assert single_sector(assets + [asset(99, tracker="Gas Plant")]) is None

    def test_legacy_portfolio(self):
        assets = [asset(i, status="retired") for i in range(4)] + [asset(i, status="cancelled") for i in range(4, 6)]
        assets.append(asset(9))
        finding = legacy_portfolio(assets)
        assert finding.evidence["retired_count"] == 6
        assert legacy_portfolio(assets[:5]) is None

    def test_geographic_concentration(self):
        assets = [asset(i) for i in range(10)] + [asset(10, country="Chile")]
        finding = geographic_concentration(assets)
        assert finding.evidence["country"] == "India"
        assert geographic_concentration(assets[:10]) is None

    def test_mega_assets(self):
        assets = [asset(i, capacity_mw=6000.0) for i in range(2)]
        finding = mega_assets(assets)
        assert finding.evidence["average_capacity_mw"] == 6000.0
        assert mega_assets(assets * 3) is None
        assert mega_assets([]) is None

    def test_all_imputed(self):
        assert all_imputed([asset(i, imputed=True) for i in range(3)]).severity == Severity.WARNING
        assert all_imputed([asset(0, imputed=True), asset(1)]) is None
        assert all_imputed([]) is None

    def test_detect_entity(self):
        assets = [asset(i, imputed=True) for i in range(12)]
        kinds = {f.kind for f in detect_entity_anomalies(assets)}
        assert kinds == {"single_sector", "geographic_concentration", "all_imputed"}


def test_sort_by_severity_is_stable():
    findings = [
        AnomalyFinding(kind="a", severity=Severity.INFO, message=""),
        AnomalyFinding(kind="b", severity=Severity.WARNING, message=""),
        AnomalyFinding(kind="c", severity=Severity.CRITICAL, message=""),
        AnomalyFinding(kind="d", severity=Severity.WARNING, message=""),
    ]
    assert [f.kind for f in sort_by_severity(findings)] == ["c", "b", "d", "a"]

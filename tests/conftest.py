import pytest
from fastapi.testclient import TestClient

from gem_ownership.dependencies import get_relation
from gem_ownership.main import app
from gem_ownership.models import NodeKind, OwnershipRecord
from gem_ownership.services.relation import InMemoryOwnershipRelation

NAMES = {
    "E1": "Parent Holdings",
    "E2": "Sub One",
    "E3": "Partner Co",
    "E4": "Cross Holder A",
    "E5": "Cross Holder B",
    "G1": "Alpha Plant",
    "G2": "Beta Plant",
    "G3": "Gamma Mine",
    "G4": "Delta Plant",
}

ASSETS = {
    "G1": dict(category="Coal Plant", status="operating", country="India", capacity_mw=1200.0),
    "G2": dict(category="Coal Plant", status="operating", country="India", capacity_mw=600.0),
    "G3": dict(category="Coal Mine", status="mothballed", country="Indonesia", capacity_mw=None),
    "G4": dict(category="Gas Plant", status="construction", country="Chile", capacity_mw=300.0),
}


def own(owner_id, subject_id, share, path=None, imputed=False):
    kind = NodeKind.ASSET if subject_id.startswith("G") else NodeKind.ENTITY
    return OwnershipRecord(
        subject_id=subject_id,
        subject_name=NAMES[subject_id],
        subject_kind=kind,
        owner_id=owner_id,
        owner_name=NAMES[owner_id],
        share_pct=share,
        ownership_path=path,
        imputed=imputed,
        **ASSETS.get(subject_id, {}),
    )


def sample_records():
    """
    E1 -> E2 (100%), E1 -> G1 (50%), E3 -> G1 (50%)
    E2 -> G2 (60%),  E3 -> G2 (40%), E2 -> G3 (100%, imputed)
    E4 <-> E5 cross holding, E5 -> G4
    """
    return [
        own("E1", "E2", 100.0),
        own("E1", "G1", 50.0, "Parent Holdings [100%] -> Alpha Plant [50%]"),
        own("E3", "G1", 50.0, "Partner Co [100%] -> Alpha Plant [50%]"),
        own("E2", "G2", 60.0, "Parent Holdings [100%] -> Sub One [100%] -> Beta Plant [60%]"),
        own("E3", "G2", 40.0, "Partner Co [100%] -> Beta Plant [40%]"),
        own("E2", "G3", 100.0, "Parent Holdings [100%] -> Sub One [100%] -> Gamma Mine [100%]", imputed=True),
        own("E4", "E5", 30.0),
        own("E5", "E4", 20.0),
        own("E5", "G4", 100.0),
    ]


@pytest.fixture
def records():
    return sample_records()


@pytest.fixture
def relation(records):
    return InMemoryOwnershipRelation(records)


@pytest.fixture
def client(relation):
    app.dependency_overrides[get_relation] = lambda: relation
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

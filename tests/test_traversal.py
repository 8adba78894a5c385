import threading

import pytest

from gem_ownership.models import Direction, NodeKind, OwnershipRecord
from gem_ownership.services.identity import IdentityResolver
from gem_ownership.services.relation import InMemoryOwnershipRelation, RelationCache
from gem_ownership.services.traversal import OwnershipTraversal


def own(owner_id, subject_id, share=None, owner_name=""):
    return OwnershipRecord(subject_id=subject_id, owner_id=owner_id, owner_name=owner_name, share_pct=share)


class CountingRelation(InMemoryOwnershipRelation):
    """Records every batch lookup it serves."""

    def __init__(self, records=(), fail_on=()):
        super().__init__(records)
        self.calls = []
        self.fail_on = set(fail_on)
        self._lock = threading.Lock()

    def _log(self, ids):
        with self._lock:
            self.calls.append(list(ids))
        if self.fail_on.intersection(ids):
            raise ConnectionError("relation unavailable")

    def records_for_subjects(self, subject_ids):
        self._log(subject_ids)
        return super().records_for_subjects(subject_ids)

    def records_for_owners(self, owner_ids):
        self._log(owner_ids)
        return super().records_for_owners(owner_ids)


def edge_map(result):
    return {(e.source, e.target): e for e in result.edges}


class TestTraverseDown:
    def test_two_cycle_terminates(self):
        relation = InMemoryOwnershipRelation([own("A", "B", 50.0), own("B", "A", 20.0)])
        result = OwnershipTraversal(relation).traverse_down("A")

        assert result.edges
        assert set(edge_map(result)) == {("A", "B"), ("B", "A")}
        assert result.cycles_detected == 1
        assert not result.truncated
        assert result.node_ids == {"A", "B"}

    def test_holdings_and_depths(self, relation):
        result = OwnershipTraversal(relation).traverse_down("E1")
        edges = edge_map(result)

        assert set(edges) == {("E1", "E2"), ("E1", "G1"), ("E2", "G2"), ("E2", "G3")}
        assert edges[("E1", "G1")].depth == 0
        assert edges[("E2", "G3")].depth == 1
        assert result.max_depth_reached == 2
        assert result.nodes["E1"].display_name == "Parent Holdings"
        assert result.nodes["G2"].kind == NodeKind.ASSET
        assert result.nodes["E2"].kind == NodeKind.ENTITY

    def test_terminal_paths(self, relation):
        result = OwnershipTraversal(relation).traverse_down("E1")
        assert sorted(result.terminal_paths) == [["E1", "E2", "G2"], ["E1", "E2", "G3"], ["E1", "G1"]]

    def test_unknown_root_is_empty(self, relation):
        result = OwnershipTraversal(relation).traverse_down("E999")
        assert result.edges == []
        assert list(result.nodes) == ["E999"]
        assert result.to_graph().is_empty

    def test_kind_from_gem_id_when_no_hint(self):
        relation = InMemoryOwnershipRelation([own("E1", "G100"), own("E1", "E200")])
        result = OwnershipTraversal(relation).traverse_down("E1")
        assert result.nodes["G100"].kind == NodeKind.ASSET
        assert result.nodes["E200"].kind == NodeKind.ENTITY


class TestTraverseUp:
    def test_shared_ancestor_explored_on_each_branch(self):
        relation = InMemoryOwnershipRelation([own("X", "G1"), own("Y", "G1"), own("Z", "X"), own("Z", "Y")])
        result = OwnershipTraversal(relation).traverse_up("G1")

        assert set(edge_map(result)) == {("X", "G1"), ("Y", "G1"), ("Z", "X"), ("Z", "Y")}
        assert sorted(result.terminal_paths) == [["G1", "X", "Z"], ["G1", "Y", "Z"]]
        assert result.cycles_detected == 0
        assert result.nodes["G1"].kind == NodeKind.ASSET
        assert result.direction == Direction.UP

    def test_depth_is_hop_count(self, relation):
        result = OwnershipTraversal(relation).traverse_up("G2")
        edges = edge_map(result)
        assert edges[("E2", "G2")].depth == 0
        assert edges[("E3", "G2")].depth == 0
        assert edges[("E1", "E2")].depth == 1

    def test_cross_holding_cycle(self, relation):
        result = OwnershipTraversal(relation).traverse_up("G4")
        assert set(edge_map(result)) == {("E5", "G4"), ("E4", "E5"), ("E5", "E4")}
        assert result.cycles_detected == 1

    def test_owner_without_id_gets_derived_id(self):
        resolver = IdentityResolver()
        relation = InMemoryOwnershipRelation(
            [own(None, "G1", 40.0, owner_name="Some Fund"), own(None, "G1", 10.0)]
        )
        result = OwnershipTraversal(relation, resolver=resolver).traverse_up("G1")

        derived = resolver.derive("Some Fund")
        assert set(edge_map(result)) == {(derived, "G1")}
        assert result.nodes[derived].display_name == "Some Fund"

    def test_depth_cap(self):
        chain = [own("E1", "G1"), own("E2", "E1"), own("E3", "E2"), own("E4", "E3")]
        result = OwnershipTraversal(InMemoryOwnershipRelation(chain), max_depth=2).traverse_up("G1")

        assert result.truncated
        assert set(edge_map(result)) == {("E1", "G1"), ("E2", "E1")}
        assert result.max_depth_reached == 2
        assert ["G1", "E1", "E2"] in result.terminal_paths

    def test_invalid_settings(self, relation):
        with pytest.raises(ValueError):
            OwnershipTraversal(relation, max_depth=0)
        with pytest.raises(ValueError):
            OwnershipTraversal(relation, batch_size=0)


class TestBatching:
    def test_frontier_split_into_batches(self):
        records = [own(f"E{i}", "G1") for i in range(5)] + [own("TOP", f"E{i}") for i in range(5)]
        relation = CountingRelation(records)
        result = OwnershipTraversal(relation, batch_size=2, max_workers=3).traverse_up("G1")

        assert len(result.edges) == 10
        # hop 0: [G1]; hop 1: five owners in three batches; hop 2: [TOP]
        assert len(relation.calls) == 5
        assert sorted(len(call) for call in relation.calls) == [1, 1, 1, 2, 2]
        assert result.failed_batches == 0

    def test_failed_batch_keeps_partial_result(self):
        records = [own("E1", "G1"), own("E2", "G1"), own("E9", "E1"), own("E8", "E2")]
        relation = CountingRelation(records, fail_on={"E2"})
        result = OwnershipTraversal(relation, batch_size=1).traverse_up("G1")

        assert result.failed_batches == 1
        assert set(edge_map(result)) == {("E1", "G1"), ("E2", "G1"), ("E9", "E1")}

    def test_failure_on_root_returns_empty(self):
        relation = CountingRelation([own("E1", "G1")], fail_on={"G1"})
        result = OwnershipTraversal(relation).traverse_up("G1")
        assert result.failed_batches == 1
        assert result.edges == []


class TestCancellation:
    def test_cancelled_before_start(self, relation):
        event = threading.Event()
        event.set()
        result = OwnershipTraversal(relation).traverse_down("E1", cancel_event=event)
        assert result.cancelled
        assert result.edges == []

    def test_cancelled_between_hops(self, records):
        event = threading.Event()

        class CancellingRelation(InMemoryOwnershipRelation):
            def records_for_owners(self, owner_ids):
                event.set()
                return super().records_for_owners(owner_ids)

        result = OwnershipTraversal(CancellingRelation(records)).traverse_down("E1", cancel_event=event)
        assert result.cancelled
        assert set(edge_map(result)) == {("E1", "E2"), ("E1", "G1")}


class TestCache:
    def test_second_walk_served_from_cache(self, records):
        relation = CountingRelation(records)
        cache = RelationCache()

        first = OwnershipTraversal(relation, cache=cache).traverse_down("E1")
        calls = len(relation.calls)
        second = OwnershipTraversal(relation, cache=cache).traverse_down("E1")

        assert len(relation.calls) == calls
        assert set(edge_map(first)) == set(edge_map(second))
        assert cache.hits > 0

    def test_directions_cached_separately(self, records):
        cache = RelationCache()
        relation = InMemoryOwnershipRelation(records)
        OwnershipTraversal(relation, cache=cache).traverse_down("E2")
        up = OwnershipTraversal(relation, cache=cache).traverse_up("E2")
        assert ("E1", "E2") in edge_map(up)

    def test_failed_batches_not_cached(self):
        relation = CountingRelation([own("E1", "G1")], fail_on={"G1"})
        cache = RelationCache()
        OwnershipTraversal(relation, cache=cache).traverse_up("G1")
        assert len(cache) == 0

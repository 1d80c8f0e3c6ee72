"""Tests for checkpoint / restore round-trips (JSON and msgpack)."""

import sys
import os

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from plastic_foundation import NetworkState
from plastic_network import PlasticNetwork


@pytest.fixture
def trained():
    net = PlasticNetwork([2, 4, 3, 2], 0.8, seed=3)
    net.activate_engram_detection(True)
    net.activate_predictive_mode(True)
    net.activate_resource_competition(True)
    net.train([1.0, 0.4], [1.0, -0.5], 5)
    net.process([0.7, 1.0])
    return net


def assert_same_network(a: PlasticNetwork, b: PlasticNetwork) -> None:
    assert a.topology == b.topology
    assert a.connection_density == b.connection_density
    assert a.global_clock == b.global_clock
    assert a.state is b.state
    assert a.predictive_mode == b.predictive_mode
    assert a.engram_detection == b.engram_detection
    assert a.resource_competition == b.resource_competition
    assert sorted(a.neurons) == sorted(b.neurons)
    for nid, n in a.neurons.items():
        m = b.neurons[nid]
        assert m.role is n.role
        assert m.stored_value == n.stored_value
        assert m.active == n.active
        assert m.assigned_resources == n.assigned_resources
        assert m.survival_factor == n.survival_factor
        assert m.temporal_facilitation == n.temporal_facilitation
        assert m.activation_count == n.activation_count
        assert m.neighbors == n.neighbors
    assert sorted(a.synapses) == sorted(b.synapses)
    for sid, s in a.synapses.items():
        t = b.synapses[sid]
        assert t.pre_id == s.pre_id
        assert t.post_ids == s.post_ids
        assert t.weight == s.weight
        assert t.feedback == s.feedback
        assert t.assigned_resources == s.assigned_resources
        assert t.co_activation_count == s.co_activation_count
    assert a.engrams.keys() == b.engrams.keys()
    for eid, e in a.engrams.items():
        assert b.engrams[eid] == e
    for i, p in a.get_predictions().items():
        np.testing.assert_array_equal(b.get_predictions()[i], p)
    np.testing.assert_array_equal(a.get_prediction_errors(), b.get_prediction_errors())


class TestJsonCheckpoint:
    """JSON checkpoints restore every field and identical behaviour."""

    def test_round_trip(self, trained, tmp_path):
        path = str(tmp_path / "net.json")
        trained.checkpoint(path)
        restored = PlasticNetwork.from_checkpoint(path)
        assert_same_network(trained, restored)

    def test_restored_network_behaves_identically(self, trained, tmp_path):
        path = str(tmp_path / "net.json")
        trained.checkpoint(path)
        restored = PlasticNetwork.from_checkpoint(path)
        for x in ([1.0, 0.4], [0.0, 0.9], [0.3, 0.3]):
            assert restored.process(x) == trained.process(x)
        assert restored.train([1.0, 0.4], [1.0, -0.5], 2) == \
            trained.train([1.0, 0.4], [1.0, -0.5], 2)

    def test_restore_into_existing_instance(self, trained, tmp_path):
        path = str(tmp_path / "net.json")
        trained.checkpoint(path)
        other = PlasticNetwork([1, 1], 0.5, seed=0)
        seen = []
        other.register_event_handler("trained", lambda **kw: seen.append(kw))
        other.restore(path)
        assert_same_network(trained, other)
        other.train([1.0, 0.4], [1.0, -0.5], 1)
        assert len(seen) == 1

    def test_consolidation_state_preserved(self, trained, tmp_path):
        path = str(tmp_path / "net.json")
        trained.start_consolidation()
        trained.checkpoint(path)
        restored = PlasticNetwork.from_checkpoint(path)
        assert restored.state is NetworkState.CONSOLIDATING
        restored.consolidate()
        restored.end_consolidation()

    def test_config_preserved(self, tmp_path):
        net = PlasticNetwork([2, 2], 0.5, seed=1, config={"network": {"feedback_rate": 0.3}})
        path = str(tmp_path / "net.json")
        net.checkpoint(path)
        restored = PlasticNetwork.from_checkpoint(path)
        assert restored.config.network.feedback_rate == pytest.approx(0.3)

    def test_pruned_synapses_stay_pruned(self, tmp_path):
        net = PlasticNetwork([2, 3, 1], 1.0, seed=2)
        for s in net.synapses.values():
            s.weight = 0.5
        victim = next(iter(net.synapses))
        net.synapses[victim].weight = 0.0
        net.prune_elements()
        path = str(tmp_path / "net.json")
        net.checkpoint(path)
        restored = PlasticNetwork.from_checkpoint(path)
        assert victim not in restored.synapses
        assert restored.get_telemetry().total_pruned == 1


class TestMsgpackCheckpoint:
    """msgpack checkpoints round-trip like JSON ones."""

    def test_round_trip(self, trained, tmp_path):
        pytest.importorskip("msgpack")
        path = str(tmp_path / "net.msgpack")
        trained.checkpoint(path)
        restored = PlasticNetwork.from_checkpoint(path)
        assert_same_network(trained, restored)
        assert restored.process([1.0, 1.0]) == trained.process([1.0, 1.0])

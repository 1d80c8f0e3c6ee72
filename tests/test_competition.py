"""Tests for resource competition, disuse degradation and pruning."""

import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from plastic_managers import CompetitionManager
from plastic_network import PlasticNetwork


def drained_network(seed: int = 0) -> PlasticNetwork:
    net = PlasticNetwork([2, 2, 1], 1.0, seed=seed)
    for n in net.neurons.values():
        n.assigned_resources = 0.5
    for s in net.synapses.values():
        s.assigned_resources = 0.5
    return net


class TestCompetition:
    """Used neurons and synapses gain resources, idle ones lose them."""

    def test_noop_when_disabled(self):
        net = drained_network()
        net.advance_time(50)
        net.compete_for_resources()
        assert all(n.assigned_resources == 0.5 for n in net.neurons.values())
        assert all(s.assigned_resources == 0.5 for s in net.synapses.values())

    def test_idle_elements_lose_resources(self):
        net = drained_network()
        net.activate_resource_competition(True)
        net.advance_time(50)
        net.compete_for_resources()
        for n in net.sensory_layer + net.motor_layer:
            assert n.assigned_resources == pytest.approx(0.48)
        for n in net.inter_layers[0]:
            assert n.assigned_resources == pytest.approx(0.475)
        for s in net.synapses.values():
            assert s.assigned_resources == pytest.approx(0.47)

    def test_recently_used_elements_gain(self):
        net = drained_network()
        net.activate_resource_competition(True)
        net.advance_time(50)
        neuron = net.inter_layers[0][0]
        neuron.last_activation_time = 45
        syn = next(iter(net.synapses.values()))
        syn.last_activation_time = 45
        net.compete_for_resources()
        assert neuron.assigned_resources == pytest.approx(0.53)
        assert syn.assigned_resources == pytest.approx(0.525)

    def test_disuse_degrades_survival(self):
        net = drained_network()
        net.activate_resource_competition(True)
        net.advance_time(150)
        net.compete_for_resources()
        for n in net.neurons.values():
            assert n.survival_factor == pytest.approx(0.95)

    def test_toggle_records_competition_time(self):
        net = drained_network()
        net.advance_time(12)
        net.activate_resource_competition(True)
        assert net.competition_manager.last_competition == 12
        net.activate_resource_competition(False)
        assert not net.resource_competition


class TestPruning:
    """Pruning removes dead synapses everywhere and only reports exhausted neurons."""

    def test_prunes_weak_synapse(self):
        net = PlasticNetwork([2, 2, 1], 1.0, seed=1)
        for s in net.synapses.values():
            s.weight = 0.5
        victim = next(iter(net.synapses.values()))
        victim.weight = 0.01
        assert net.prune_elements() == 1
        assert victim.synapse_id not in net.synapses
        assert victim not in net.outgoing_synapses(victim.pre_id)
        for pid in victim.post_ids:
            assert victim not in net.incoming_synapses(pid)

    def test_prunes_exhausted_synapse(self):
        net = PlasticNetwork([2, 2, 1], 1.0, seed=2)
        for s in net.synapses.values():
            s.weight = 0.5
        victim = list(net.synapses.values())[-1]
        victim.assigned_resources = 0.05
        before = net.total_synapses
        assert net.prune_elements() == 1
        assert net.total_synapses == before - 1

    def test_manager_selects_without_removing(self):
        net = PlasticNetwork([2, 2, 1], 1.0, seed=5)
        for s in net.synapses.values():
            s.weight = 0.5
        victim = next(iter(net.synapses.values()))
        victim.weight = 0.01
        before = net.total_synapses
        assert CompetitionManager.prunable_synapses(net) == [victim.synapse_id]
        assert net.total_synapses == before
        assert victim in net.outgoing_synapses(victim.pre_id)
        net.prune_elements()
        assert CompetitionManager.prunable_synapses(net) == []

    def test_pruned_ids_leave_engrams(self):
        net = PlasticNetwork([2, 2, 1], 1.0, seed=3)
        for s in net.synapses.values():
            s.weight = 0.5
        engram = net.form_engram("trace", [n.neuron_id for n in net.neurons.values()])
        victim_id = next(iter(engram.synapse_ids))
        net.synapses[victim_id].weight = 0.0
        net.prune_elements()
        assert victim_id not in net.engrams["trace"].synapse_ids

    def test_pruned_event_and_telemetry(self):
        net = PlasticNetwork([2, 2, 1], 1.0, seed=4)
        for s in net.synapses.values():
            s.weight = 0.5
        seen = []
        net.register_event_handler("pruned", lambda **kw: seen.append(kw["count"]))
        list(net.synapses.values())[0].weight = 0.02
        list(net.synapses.values())[1].weight = -0.03
        net.prune_elements()
        assert seen == [2]
        assert net.get_telemetry().total_pruned == 2

    def test_nothing_to_prune(self):
        net = PlasticNetwork([2, 2, 1], 1.0, seed=5)
        for s in net.synapses.values():
            s.weight = 0.5
        seen = []
        net.register_event_handler("pruned", lambda **kw: seen.append(kw))
        assert net.prune_elements() == 0
        assert seen == []

    def test_exhausted_neurons_reported_not_removed(self):
        net = PlasticNetwork([2, 2, 1], 1.0, seed=6)
        for s in net.synapses.values():
            s.weight = 0.5
        net.inter_layers[0][0].assigned_resources = 0.0
        net.prune_elements()
        assert net.total_neurons == 5
        assert net.get_telemetry().neurons_eligible_for_removal == 1

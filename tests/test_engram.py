"""Tests for Engram membership, consolidation, degradation and recall."""

import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from plastic_foundation import Engram, Neuron, NeuronRole, Synapse


def make_neurons(count: int):
    return {i: Neuron(i, NeuronRole.INTER) for i in range(count)}


class TestConsolidateDegrade:
    """Consolidation strengthens a trace; degradation weakens it down to the weight floor."""

    def test_consolidate_strengthens_trace_and_synapses(self):
        synapses = {0: Synapse(0, 0, [1], weight=0.5)}
        e = Engram("e", neuron_ids={0, 1}, synapse_ids={0})
        e.consolidate(0.05, synapses)
        assert e.strength == pytest.approx(0.55)
        assert synapses[0].weight == pytest.approx(0.525)

    def test_strength_capped(self):
        e = Engram("e", strength=0.98)
        e.consolidate(0.05, {})
        assert e.strength == 1.0

    def test_degrade_above_cutoff_leaves_weights(self):
        synapses = {0: Synapse(0, 0, [1], weight=0.5)}
        e = Engram("e", synapse_ids={0})
        e.degrade(0.05, synapses)
        assert e.strength == pytest.approx(0.45)
        assert synapses[0].weight == pytest.approx(0.5)

    def test_weak_engram_erodes_weights_down_to_floor(self):
        synapses = {
            0: Synapse(0, 0, [1], weight=0.5),
            1: Synapse(1, 0, [2], weight=0.12),
            2: Synapse(2, 0, [3], weight=0.05),
            3: Synapse(3, 0, [4], weight=-0.4),
        }
        e = Engram("e", synapse_ids={0, 1, 2, 3}, strength=0.2)
        e.degrade(0.05, synapses)
        assert e.strength == pytest.approx(0.15)
        assert synapses[0].weight == pytest.approx(0.485)
        assert synapses[1].weight == pytest.approx(0.105)
        # Weights already at or under the floor are untouched.
        assert synapses[2].weight == pytest.approx(0.05)
        assert synapses[3].weight == pytest.approx(-0.4)

    def test_repeated_degrade_never_below_floor(self):
        synapses = {0: Synapse(0, 0, [1], weight=0.3)}
        e = Engram("e", synapse_ids={0}, strength=0.1)
        for _ in range(50):
            e.degrade(0.05, synapses)
        assert synapses[0].weight == pytest.approx(0.1)

    def test_missing_synapse_ids_skipped(self):
        e = Engram("e", synapse_ids={42}, strength=0.1)
        e.degrade(0.05, {})
        e.consolidate(0.05, {})

    def test_relevance_clamped(self):
        e = Engram("e", relevance=1.9)
        e.adjust_relevance(1.1)
        assert e.relevance == 2.0
        e.adjust_relevance(0.0)
        assert e.relevance == 0.0


class TestActivity:
    """Activity is the fraction of members currently firing."""

    def test_active_fraction(self):
        neurons = make_neurons(4)
        neurons[0].activate(0)
        e = Engram("e", neuron_ids={0, 1, 2, 3})
        assert e.active_fraction(neurons) == pytest.approx(0.25)
        assert not e.is_active(neurons)
        neurons[1].activate(0)
        assert e.is_active(neurons)

    def test_empty_engram_never_active(self):
        assert not Engram("e").is_active(make_neurons(2))

    def test_complete_pattern_facilitates_inactive_members(self):
        neurons = make_neurons(3)
        neurons[0].activate(0)
        e = Engram("e", neuron_ids={0, 1, 2}, strength=1.0)
        assert e.complete_pattern(9, neurons)
        assert e.last_activation_time == 9
        assert neurons[1].temporal_facilitation == pytest.approx(0.3)
        assert neurons[2].temporal_facilitation == pytest.approx(0.3)
        assert neurons[0].temporal_facilitation == 0.0

    def test_complete_pattern_requires_activity(self):
        neurons = make_neurons(4)
        e = Engram("e", neuron_ids={0, 1, 2, 3})
        assert not e.complete_pattern(5, neurons)
        assert e.last_activation_time == 0

    def test_activate_facilitates_every_member(self):
        neurons = make_neurons(2)
        e = Engram("e", neuron_ids={0, 1})
        e.activate(3, neurons)
        assert e.activation_count == 1
        assert e.last_activation_time == 3
        for n in neurons.values():
            assert n.temporal_facilitation == pytest.approx(0.15)

    def test_contains_neurons_overlap(self):
        e = Engram("e", neuron_ids={0, 1, 2})
        assert e.contains_neurons([0, 1, 5], 0.6)
        assert not e.contains_neurons([0, 5, 6], 0.5)
        assert not e.contains_neurons([], 0.1)

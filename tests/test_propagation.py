"""Tests for signal propagation: sensory input, forward pass, feedback, outputs."""

import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from plastic_foundation import Potential
from plastic_network import PlasticNetwork


def forward_synapses(net, pre_ids):
    return [s for s in net.synapses.values() if not s.feedback and s.pre_id in pre_ids]


def set_forward_weights(net, layer, weight):
    ids = {n.neuron_id for n in layer}
    for s in forward_synapses(net, ids):
        s.weight = weight


def chain(weight_in: float = 0.5, weight_out: float = 0.5, sensory: int = 1):
    """Fully connected ``[sensory, 1, 1]`` network with fixed forward weights."""
    net = PlasticNetwork([sensory, 1, 1], 1.0, seed=0)
    set_forward_weights(net, net.sensory_layer, weight_in)
    set_forward_weights(net, net.inter_layers[0], weight_out)
    return net


class TestSensoryInput:
    """Sensory neurons follow their input and fire above the input threshold."""

    def test_strong_input_activates(self):
        net = PlasticNetwork([2, 1], 0.0, seed=1)
        net.process([0.05, 0.5])
        s0, s1 = net.sensory_layer
        assert not s0.active
        assert s1.active
        assert s1.potential is Potential.SPIKE

    def test_stored_value_follows_input(self):
        net = PlasticNetwork([2, 1], 0.0, seed=2)
        net.process([0.05, -0.8])
        assert net.sensory_layer[0].stored_value == pytest.approx(0.05)
        assert net.sensory_layer[1].stored_value == pytest.approx(-0.8)

    def test_negative_input_above_magnitude_activates(self):
        net = PlasticNetwork([1, 1], 0.0, seed=3)
        net.process([-0.6])
        assert net.sensory_layer[0].active


class TestForwardPass:
    """One call carries the signal layer by layer from sensory to motor."""

    def test_signal_reaches_motor_in_one_call(self):
        net = chain()
        outputs = net.process([1.0])
        assert net.inter_layers[0][0].active
        assert net.motor_layer[0].active
        assert outputs == [pytest.approx(1.0)]

    def test_inhibition_blocks_downstream(self):
        # Two inhibitory inputs: 2 * (-1.0 * 40) = -80 < -55
        net = chain(weight_in=-1.0, sensory=2)
        motor = net.motor_layer[0]
        outputs = net.process([1.0, 1.0])
        assert not net.inter_layers[0][0].active
        assert not motor.active
        assert outputs == [pytest.approx(motor.stored_value)]

    def test_quiet_input_leaves_network_resting(self):
        net = chain()
        net.process([0.0])
        assert not net.inter_layers[0][0].active
        assert not net.motor_layer[0].active

    def test_fired_ids_reported(self):
        net = chain()
        net.propagator.establish_inputs(net, [1.0], 0)
        fired = net.propagator.propagate_forward(net, 0)
        assert fired == [net.inter_layers[0][0].neuron_id, net.motor_layer[0].neuron_id]

    def test_activity_persists_between_calls(self):
        net = chain()
        net.process([1.0])
        net.process([0.0])
        # Sensory neuron is not reset by a quiet input.
        assert net.sensory_layer[0].active


class TestFeedback:
    """Active later layers drive earlier ones and nudge their stored values."""

    def test_feedback_nudges_stored_value(self):
        net = chain()
        inter = net.inter_layers[0][0]
        inter.stored_value = 0.0
        fb = [s for s in net.synapses.values() if s.feedback]
        assert len(fb) == 1
        fb[0].weight = 0.01
        net.process([1.0])
        # 0.01 * 40 * 0.1
        assert inter.stored_value == pytest.approx(0.04)

    def test_feedback_idle_when_motor_rests(self):
        net = chain()
        inter = net.inter_layers[0][0]
        inter.stored_value = 0.2
        net.process([0.0])
        assert inter.stored_value == pytest.approx(0.2)

    def test_feedback_rate_from_config(self):
        net = PlasticNetwork([1, 1, 1], 1.0, seed=0,
                             config={"network": {"feedback_rate": 0.2}})
        set_forward_weights(net, net.sensory_layer, 0.5)
        set_forward_weights(net, net.inter_layers[0], 0.5)
        inter = net.inter_layers[0][0]
        inter.stored_value = 0.0
        [s for s in net.synapses.values() if s.feedback][0].weight = 0.01
        net.process([1.0])
        assert inter.stored_value == pytest.approx(0.08)

    def test_active_motor_inhibits_inter(self):
        net = chain(weight_in=-1.0, weight_out=0.5)
        [s for s in net.synapses.values() if s.feedback][0].weight = -1.0
        inter = net.inter_layers[0][0]
        motor = net.motor_layer[0]
        net.process([1.0])
        assert inter.active
        assert motor.active
        # Second call: -40 from the sensory neuron plus -40 from the motor neuron
        net.process([1.0])
        assert not inter.active
        assert not motor.active

    def test_active_motor_excites_inter(self):
        # Two inhibitory inputs alone (-80) keep the inter neuron silent.
        net = chain(weight_in=-1.0, sensory=2)
        [s for s in net.synapses.values() if s.feedback][0].weight = 1.0
        net.motor_layer[0].activate(0)
        net.process([1.0, 1.0])
        assert net.inter_layers[0][0].active

    def test_reset_removes_feedback_drive(self):
        net = chain(weight_in=-1.0, weight_out=0.5)
        [s for s in net.synapses.values() if s.feedback][0].weight = -1.0
        net.process([1.0])
        net.reset_transient()
        net.process([1.0])
        assert net.inter_layers[0][0].active


class TestOutputs:
    """Resting motor neurons report their stored value."""

    def test_resting_motor_reports_stored_value(self):
        net = PlasticNetwork([2, 2], 0.0, seed=4)
        net.motor_layer[0].stored_value = 0.25
        net.motor_layer[1].stored_value = -0.75
        assert net.process([1.0, 1.0]) == [pytest.approx(0.25), pytest.approx(-0.75)]

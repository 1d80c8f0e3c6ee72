"""
PlasticNet Managers — the five subsystems driven by the network.

Each manager is a small strategy object in the style of a pluggable
plasticity rule: it owns only its own bookkeeping and receives the
network (the neuron/synapse arena) plus the explicit clock value on every
call.  None of them reads a global clock.

    - SignalPropagator:   sensory input, forward pass, feedback pass, outputs
    - HebbianTrainer:     co-activation plasticity and error modulation
    - CompetitionManager: resource competition and synapse pruning
    - EngramManager:      engram detection, formation and consolidation
    - PredictionManager:  per-layer predictions and prediction errors
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from plastic_config import (
    CompetitionConfig,
    EngramConfig,
    NetworkConfig,
    PlasticityConfig,
    PredictionConfig,
)
from plastic_foundation import (
    Engram,
    EngramNotFoundError,
    InvalidArgumentError,
    Neuron,
    Potential,
    clamp,
)

if TYPE_CHECKING:
    from plastic_network import PlasticNetwork

logger = logging.getLogger("plasticnet.managers")


# ---------------------------------------------------------------------------
# Signal propagation
# ---------------------------------------------------------------------------

class SignalPropagator:
    """Drives one forward and one feedback pass per processing step.

    Forward pass: layers are visited in topological order.  Every synapse
    with an active presynaptic neuron delivers ``weight × presynaptic
    potential`` to its targets in the current layer, then each neuron of the
    layer evaluates its accumulated input.  Feedback synapses take part too:
    a later layer still active from the previous step excites or inhibits
    the earlier layer it projects back to.  Sensory neurons are never
    evaluated; they are driven by ``establish_inputs``.

    Feedback pass: feedback synapses with an active presynaptic neuron also
    nudge the stored value of their targets.
    """

    def __init__(self, config: Optional[NetworkConfig] = None):
        self.config = config or NetworkConfig()

    def establish_inputs(
        self,
        network: "PlasticNetwork",
        inputs: Sequence[float],
        timestamp: int,
    ) -> None:
        threshold = self.config.input_activation_threshold
        for neuron, value in zip(network.sensory_layer, inputs):
            neuron.stored_value = value
            if abs(value) > threshold:
                neuron.activate(timestamp)

    def propagate_forward(self, network: "PlasticNetwork", timestamp: int) -> List[int]:
        """Run the forward pass.

        Returns:
            Ids of the non-sensory neurons that fired.
        """
        fired: List[int] = []
        neurons = network.neurons
        for layer in network.processing_layers:
            layer_ids = {n.neuron_id for n in layer}
            for neuron in layer:
                neuron.clear_input()
            for syn in network.synapses.values():
                pre = neurons[syn.pre_id]
                if not pre.active:
                    continue
                signal = syn.weight * pre.potential_value
                for post_id in syn.post_ids:
                    if post_id in layer_ids:
                        neurons[post_id].receive_signal(signal)
            for neuron in layer:
                if neuron.evaluate(timestamp):
                    fired.append(neuron.neuron_id)
        return fired

    def propagate_feedback(self, network: "PlasticNetwork") -> None:
        rate = self.config.feedback_rate
        neurons = network.neurons
        for syn in network.synapses.values():
            if not syn.feedback:
                continue
            pre = neurons[syn.pre_id]
            if not pre.active:
                continue
            nudge = syn.weight * pre.potential_value * rate
            for post_id in syn.post_ids:
                post = neurons[post_id]
                post.stored_value = post.stored_value + nudge

    def extract_outputs(self, network: "PlasticNetwork") -> List[float]:
        """Motor outputs.

        Active neurons report their normalized potential (in [0, 1]);
        resting neurons report their stored value (in [-1, 1]).
        """
        return [neuron.output_value() for neuron in network.motor_layer]


# ---------------------------------------------------------------------------
# Hebbian training
# ---------------------------------------------------------------------------

class HebbianTrainer:
    """Co-activation plasticity plus a weakly supervised error signal."""

    def __init__(self, config: Optional[PlasticityConfig] = None):
        self.config = config or PlasticityConfig()

    def apply_global_plasticity(self, network: "PlasticNetwork", now: int) -> None:
        window = self.config.temporal_window
        neurons = network.neurons
        for syn in network.synapses.values():
            syn.apply_hebbian_plasticity(
                neurons[syn.pre_id],
                [neurons[pid] for pid in syn.post_ids],
                now,
                window,
            )

    def modulate_by_error(self, network: "PlasticNetwork", errors: Sequence[float]) -> None:
        """Weakly supervised step driven by ``target - output`` per motor neuron.

        This is the only rule that may push a weight below zero.
        """
        lr = self.config.learning_rate
        neurons = network.neurons
        motor = network.motor_layer

        for i, neuron in enumerate(motor):
            err = errors[i]
            neuron.stored_value = neuron.stored_value + err * lr
            if not neuron.active:
                continue
            for syn in network.incoming_synapses(neuron.neuron_id):
                if not syn.feedback and neurons[syn.pre_id].active:
                    syn.weight = syn.weight + err * lr * self.config.weight_factor

        if not network.inter_layers:
            return

        motor_index = {n.neuron_id: i for i, n in enumerate(motor)}
        for neuron in network.inter_layers[-1]:
            if not neuron.active:
                continue
            accumulated = 0.0
            count = 0
            for syn in network.outgoing_synapses(neuron.neuron_id):
                for post_id in syn.post_ids:
                    j = motor_index.get(post_id)
                    if j is None:
                        continue
                    accumulated += errors[j] * syn.weight
                    count += 1
            if count == 0:
                continue
            err = accumulated / count
            neuron.stored_value = neuron.stored_value + err * lr * self.config.hidden_value_factor
            for syn in network.incoming_synapses(neuron.neuron_id):
                if not syn.feedback and neurons[syn.pre_id].active:
                    syn.weight = syn.weight + err * lr * self.config.hidden_weight_factor


# ---------------------------------------------------------------------------
# Resource competition
# ---------------------------------------------------------------------------

class CompetitionManager:
    """Survival of the most useful.

    Recently used neurons and synapses gain resources, idle ones lose them.
    Synapses that run dry (or whose weight vanished) are pruned.  Neurons
    are only ever flagged as eligible for removal; layers keep them.
    """

    def __init__(self, config: Optional[CompetitionConfig] = None):
        self.config = config or CompetitionConfig()
        self.active = False
        self.last_competition = 0

    def activate(self, on: bool, now: int) -> None:
        self.active = on
        if on:
            self.last_competition = now

    def compete(self, network: "PlasticNetwork", now: int) -> None:
        if not self.active:
            return
        cfg = self.config
        self._compete_neurons(network.sensory_layer, now, cfg.neuron_gain, cfg.neuron_loss)
        for layer in network.inter_layers:
            self._compete_neurons(layer, now, cfg.neuron_gain, cfg.inter_neuron_loss)
        self._compete_neurons(network.motor_layer, now, cfg.neuron_gain, cfg.neuron_loss)

        for syn in network.synapses.values():
            if now - syn.last_activation_time < cfg.window:
                syn.assigned_resources = syn.assigned_resources + cfg.synapse_gain
            else:
                syn.assigned_resources = syn.assigned_resources - cfg.synapse_loss

        self.last_competition = now

    def _compete_neurons(
        self,
        layer: Iterable[Neuron],
        now: int,
        gain: float,
        loss: float,
    ) -> None:
        for neuron in layer:
            if now - neuron.last_activation_time < self.config.window:
                neuron.assigned_resources = neuron.assigned_resources + gain
            else:
                neuron.assigned_resources = neuron.assigned_resources - loss
            neuron.degrade_from_disuse(now, self.config.disuse_window)

    @staticmethod
    def prunable_synapses(network: "PlasticNetwork") -> List[int]:
        """Ids of every synapse whose weight vanished or whose resources ran dry."""
        return [
            sid for sid, syn in network.synapses.items()
            if syn.should_be_pruned()
        ]

    @staticmethod
    def removal_candidates(network: "PlasticNetwork") -> List[int]:
        return [
            nid for nid, neuron in network.neurons.items()
            if neuron.should_be_removed()
        ]


# ---------------------------------------------------------------------------
# Engrams
# ---------------------------------------------------------------------------

class EngramManager:
    """Detects recurring activation patterns and keeps them as engrams.

    Detection runs a global check over all inter layers and a local check
    per inter layer on every call, so one pattern may feed a global engram
    and several local ones at the same time.
    """

    def __init__(
        self,
        config: Optional[EngramConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config or EngramConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.detection_active = False
        self.engrams: Dict[str, Engram] = {}
        self._counter = 0

    def activate_detection(self, on: bool) -> None:
        self.detection_active = on

    def activation_threshold(self) -> float:
        """Overlap fraction for ``Engram.is_active``, with optional jitter."""
        base = self.config.activation_threshold
        jitter = self.config.threshold_jitter
        if jitter > 0.0:
            base += float(self.rng.uniform(-jitter, jitter))
        return clamp(base, 0.0, 1.0)

    # -- membership -------------------------------------------------------

    def form_engram(
        self,
        network: "PlasticNetwork",
        engram_id: str,
        neuron_ids: Sequence[int],
        timestamp: int,
    ) -> Engram:
        """Create (or replace) an engram over ``neuron_ids``.

        Synapses whose presynaptic neuron and at least one target are both
        members join the engram as well.
        """
        if not engram_id:
            raise InvalidArgumentError("Engram id must be a non-empty string")
        if not neuron_ids:
            raise InvalidArgumentError("An engram needs at least one neuron")
        for nid in neuron_ids:
            if nid not in network.neurons:
                raise InvalidArgumentError(f"Neuron {nid} not found")

        members = set(neuron_ids)
        engram = Engram(
            engram_id=engram_id,
            creation_time=timestamp,
            last_activation_time=timestamp,
            activation_threshold=self.config.activation_threshold,
        )
        for nid in members:
            engram.add_neuron(nid)
            for syn in network.outgoing_synapses(nid):
                if any(pid in members for pid in syn.post_ids):
                    engram.add_synapse(syn.synapse_id)

        if engram_id in self.engrams:
            logger.debug("Replacing engram %s", engram_id)
        self.engrams[engram_id] = engram
        logger.debug("Formed engram %s with %d neurons", engram_id, len(members))
        return engram

    def remove_engram(self, engram_id: str) -> Engram:
        engram = self.engrams.pop(engram_id, None)
        if engram is None:
            raise EngramNotFoundError(engram_id)
        return engram

    def activate_engram(
        self,
        engram_id: str,
        network: "PlasticNetwork",
        timestamp: int,
    ) -> Engram:
        engram = self.engrams.get(engram_id)
        if engram is None:
            raise EngramNotFoundError(engram_id)
        engram.activate(timestamp, network.neurons)
        return engram

    def forget_synapses(self, synapse_ids: Iterable[int]) -> None:
        removed = set(synapse_ids)
        for engram in self.engrams.values():
            engram.discard_synapses(removed)

    # -- detection --------------------------------------------------------

    def _next_id(self, prefix: str) -> str:
        engram_id = f"{prefix}{self._counter}"
        self._counter += 1
        return engram_id

    def _match_or_form(
        self,
        network: "PlasticNetwork",
        active_ids: List[int],
        overlap: float,
        prefix: str,
        now: int,
    ) -> Tuple[Optional[str], Optional[str]]:
        for engram in self.engrams.values():
            if engram.contains_neurons(active_ids, overlap):
                engram.activate(now, network.neurons)
                return None, engram.engram_id
        engram_id = self._next_id(prefix)
        self.form_engram(network, engram_id, active_ids, now)
        return engram_id, None

    def detect_and_form(
        self,
        network: "PlasticNetwork",
        now: int,
    ) -> Tuple[List[str], List[str]]:
        """Reinforce matching engrams or form new ones from current activity.

        Returns:
            (formed engram ids, reinforced engram ids)
        """
        formed: List[str] = []
        reinforced: List[str] = []
        if not self.detection_active:
            return formed, reinforced

        cfg = self.config
        active_all = [
            n.neuron_id
            for layer in network.inter_layers
            for n in layer
            if n.active
        ]
        if len(active_all) >= cfg.min_global_active:
            new_id, hit_id = self._match_or_form(
                network, active_all, cfg.global_overlap, "auto_", now
            )
            if new_id:
                formed.append(new_id)
            if hit_id:
                reinforced.append(hit_id)

        for i, layer in enumerate(network.inter_layers):
            active_local = [n.neuron_id for n in layer if n.active]
            if len(active_local) < cfg.min_local_active:
                continue
            new_id, hit_id = self._match_or_form(
                network, active_local, cfg.local_overlap, f"local_layer{i}_", now
            )
            if new_id:
                formed.append(new_id)
            if hit_id:
                reinforced.append(hit_id)

        return formed, reinforced

    def complete_patterns(self, network: "PlasticNetwork", now: int) -> int:
        """Facilitate inactive members of every partially active engram."""
        completed = 0
        for engram in self.engrams.values():
            if engram.complete_pattern(now, network.neurons, self.activation_threshold()):
                completed += 1
        return completed

    # -- consolidation ----------------------------------------------------

    def consolidate(self, network: "PlasticNetwork", now: int) -> List[str]:
        """One consolidation pass over every engram.

        Recently used engrams gain relevance and strength; stale ones lose
        both.  Engrams whose relevance falls under the removal threshold are
        removed after the pass.

        Returns:
            Ids of removed engrams.
        """
        cfg = self.config
        to_remove: List[str] = []
        for engram_id, engram in self.engrams.items():
            if now - engram.last_activation_time < cfg.recent_window:
                engram.adjust_relevance(cfg.relevance_boost)
                engram.consolidate(cfg.consolidation_factor, network.synapses)
                engram.activation_count += 1
            else:
                engram.adjust_relevance(cfg.relevance_decay)
                engram.degrade(cfg.degrade_factor, network.synapses)
                if engram.relevance < cfg.removal_threshold:
                    to_remove.append(engram_id)

        for engram_id in to_remove:
            del self.engrams[engram_id]
            logger.debug("Removed irrelevant engram %s", engram_id)
        return to_remove


# ---------------------------------------------------------------------------
# Predictive coding
# ---------------------------------------------------------------------------

class PredictionManager:
    """Per-layer activation forecasts and motor prediction errors.

    Layer index ``i`` addresses inter layer ``i``; the last index is the
    motor layer.  Predictions are computed and compared against actual
    activity but never subtracted from the propagated signal.
    """

    def __init__(
        self,
        motor_size: int,
        config: Optional[PredictionConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config or PredictionConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.active = False
        self.predictions: Dict[int, np.ndarray] = {}
        self.errors = np.zeros(motor_size)

    @property
    def layer_count(self) -> int:
        return len(self.predictions)

    def activate(self, on: bool, network: "PlasticNetwork") -> None:
        self.active = on
        if on:
            self.initialize_predictions(network)
        else:
            self.predictions.clear()

    def initialize_predictions(self, network: "PlasticNetwork") -> None:
        noise = self.config.init_noise
        self.predictions = {
            i: self.rng.uniform(-1.0, 1.0, size=len(layer)) * noise
            for i, layer in enumerate(network.processing_layers)
        }

    def calculate_predictions(self, network: "PlasticNetwork") -> None:
        """Forecast each non-sensory neuron from its active inputs."""
        neurons = network.neurons
        for i, layer in enumerate(network.processing_layers):
            forecast = np.zeros(len(layer))
            for j, neuron in enumerate(layer):
                total = 0.0
                count = 0
                for syn in network.incoming_synapses(neuron.neuron_id):
                    pre = neurons[syn.pre_id]
                    if pre.active:
                        total += syn.weight * pre.potential_value / Potential.SPIKE.value
                        count += 1
                forecast[j] = total / count if count else 0.0
            self.predictions[i] = np.clip(forecast, -1.0, 1.0)

    @staticmethod
    def _actual(layer: Sequence[Neuron]) -> np.ndarray:
        return np.array([n.output_value() for n in layer], dtype=float)

    def calculate_prediction_errors(self, network: "PlasticNetwork") -> np.ndarray:
        motor_index = len(network.inter_layers)
        prediction = self.predictions.get(motor_index)
        if prediction is not None:
            self.errors = self._actual(network.motor_layer) - prediction
        return self.errors.copy()

    def adjust_predictive_model(self, network: "PlasticNetwork") -> None:
        rate = self.config.learning_rate
        layers = network.processing_layers
        for i, prediction in self.predictions.items():
            actual = self._actual(layers[i])
            n = min(len(prediction), len(actual))
            prediction[:n] += (actual[:n] - prediction[:n]) * rate
            np.clip(prediction, -1.0, 1.0, out=prediction)

"""
PlasticNet Foundation - Core data model for the plastic network.

Defines the three stateful building blocks of the biologically-inspired
network and the error taxonomy shared by every other module:

    - Neuron:  three-level potential, persistent stored value, resource and
               survival metrics, temporal facilitation for pattern completion
    - Synapse: one presynaptic neuron, one to three postsynaptic neurons
               (dyadic/triadic), signed weight, Hebbian reinforcement history
    - Engram:  named set of neurons and synapses forming a memory trace

Design principles:
    - Arena + index: neurons and synapses are owned by the network in
      id-keyed dicts; synapse endpoints, engram membership and neighbor
      lists are plain integer ids resolved at use time
    - No back-references: neurons and synapses never know which engrams
      they belong to
    - Clamped state: every mutable numeric field is clamped to its range
      on every write
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class PlasticNetworkError(Exception):
    """Base class for every error raised by the plastic network."""


class InvalidArgumentError(PlasticNetworkError, ValueError):
    """Malformed vectors, bad topology, empty engram definitions."""


class InvalidStateError(PlasticNetworkError, RuntimeError):
    """Operation not allowed in the current network state."""


class EngramNotFoundError(PlasticNetworkError, KeyError):
    """Unknown engram id."""


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class NeuronRole(Enum):
    """Topological role of a neuron; fixed at construction."""
    SENSORY = auto()
    INTER = auto()
    MOTOR = auto()


class Potential(Enum):
    """Three-level membrane potential (mV).

    The level is discrete on purpose: a neuron is either resting, sitting
    at threshold, or spiking.  ``.value`` is the numeric potential used in
    signal arithmetic.
    """
    REST = -70.0
    THRESHOLD = -55.0
    SPIKE = 40.0


class SynapseKind(Enum):
    """Synapse transmission kind."""
    CHEMICAL = auto()
    ELECTRIC = auto()


class NetworkState(Enum):
    """Network-level state machine."""
    ACTIVE = auto()
    CONSOLIDATING = auto()


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Neuron
# ---------------------------------------------------------------------------

class Neuron:
    """Smallest stateful unit of the network.

    Transient state (``potential``, ``active`` and the input buffer) is
    short-term memory and is cleared by :meth:`reset_transient`.
    ``stored_value``, ``assigned_resources`` and ``survival_factor`` are
    long-term state and persist across resets.

    Args:
        neuron_id: Unique, immutable integer id.
        role: SENSORY, INTER or MOTOR.
        stored_value: Persistent "belief" in [-1, 1].
    """

    base_threshold: float = Potential.THRESHOLD.value

    def __init__(
        self,
        neuron_id: int,
        role: NeuronRole,
        stored_value: float = 0.0,
        potential: Potential = Potential.REST,
    ):
        self._neuron_id = neuron_id
        self._role = role
        self._stored_value = clamp(stored_value, -1.0, 1.0)
        self.potential = potential
        self.active = potential is Potential.SPIKE
        self._assigned_resources = 1.0
        self._survival_factor = 1.0
        self.last_activation_time = 0
        self.activation_count = 0
        self._temporal_facilitation = 0.0
        # Ids of connected neurons, for lookups only.
        self.neighbors: List[int] = []
        self._input_buffer: List[float] = []

    def __repr__(self) -> str:
        return (
            f"Neuron(id={self._neuron_id}, role={self._role.name}, "
            f"active={self.active}, stored_value={self._stored_value:.3f})"
        )

    # -- identity ---------------------------------------------------------

    @property
    def neuron_id(self) -> int:
        return self._neuron_id

    @property
    def role(self) -> NeuronRole:
        return self._role

    # -- clamped state ----------------------------------------------------

    @property
    def stored_value(self) -> float:
        return self._stored_value

    @stored_value.setter
    def stored_value(self, value: float) -> None:
        self._stored_value = clamp(value, -1.0, 1.0)

    @property
    def assigned_resources(self) -> float:
        return self._assigned_resources

    @assigned_resources.setter
    def assigned_resources(self, value: float) -> None:
        self._assigned_resources = clamp(value, 0.0, 1.0)

    @property
    def survival_factor(self) -> float:
        return self._survival_factor

    @survival_factor.setter
    def survival_factor(self, value: float) -> None:
        self._survival_factor = clamp(value, 0.0, 1.0)

    @property
    def temporal_facilitation(self) -> float:
        return self._temporal_facilitation

    @temporal_facilitation.setter
    def temporal_facilitation(self, value: float) -> None:
        self._temporal_facilitation = clamp(value, 0.0, 0.5)

    @property
    def potential_value(self) -> float:
        return self.potential.value

    def output_value(self) -> float:
        """Normalized activation if spiking, otherwise the stored value."""
        if self.active:
            return self.potential.value / Potential.SPIKE.value
        return self._stored_value

    # -- dynamics ---------------------------------------------------------

    def activate(self, timestamp: int) -> None:
        """Fire: potential jumps to SPIKE and usage is recorded."""
        self.potential = Potential.SPIKE
        self.active = True
        self.last_activation_time = timestamp
        self.activation_count += 1
        self.survival_factor = self._survival_factor + 0.01

    def reset_transient(self) -> None:
        """Return to rest.  Long-term state is left untouched."""
        self.active = False
        self.potential = Potential.REST

    def receive_signal(self, signal: float) -> None:
        """Accumulate one weighted presynaptic signal for the next evaluation."""
        self._input_buffer.append(signal)

    @property
    def pending_input(self) -> float:
        return sum(self._input_buffer)

    def clear_input(self) -> None:
        self._input_buffer.clear()

    def evaluate(self, timestamp: int) -> bool:
        """Evaluate the accumulated input against the facilitated threshold.

        The buffer is consumed by the call.  With no active input at all the
        neuron rests and its facilitation decays.

        Returns:
            True if the neuron fired.
        """
        if not self._input_buffer:
            self.temporal_facilitation = self._temporal_facilitation - 0.1
            self.reset_transient()
            return False

        total = sum(self._input_buffer)
        self._input_buffer.clear()

        adjusted = self.base_threshold * (1.0 - self._temporal_facilitation)
        if total >= adjusted:
            self.activate(timestamp)
            self._temporal_facilitation = 0.0
            return True

        self.temporal_facilitation = self._temporal_facilitation - 0.1
        self.reset_transient()
        return False

    def facilitate_activation(self, factor: float) -> None:
        """Lower the effective threshold for pattern completion (max 50%)."""
        self.temporal_facilitation = min(0.5, factor * 0.3)

    def degrade_from_disuse(self, now: int, window: int) -> None:
        """Penalize survival, and then resources, when idle beyond ``window``."""
        if now - self.last_activation_time > window:
            self.survival_factor = self._survival_factor - 0.05
            if self._survival_factor < 0.3:
                self.assigned_resources = self._assigned_resources - 0.1

    def should_be_removed(self) -> bool:
        return self._assigned_resources <= 0.0 or self._survival_factor <= 0.0


# ---------------------------------------------------------------------------
# Synapse
# ---------------------------------------------------------------------------

DEFAULT_REINFORCEMENT_RATE = 0.02
MAX_POSTSYNAPTIC = 3


class Synapse:
    """Link from one presynaptic neuron to one, two or three postsynaptic ones.

    A dyadic or triadic synapse is a single object with one weight and one
    reinforcement history shared by all of its targets.

    Hebbian plasticity only ever moves the weight within [0, 1]; negative
    (inhibitory) weights come from random initialization or from the
    error-modulated rule in the trainer.

    Args:
        synapse_id: Unique integer id.
        pre_id: Presynaptic neuron id.
        post_ids: One to three distinct postsynaptic neuron ids.
        weight: Initial weight, clamped to [-1, 1].
        kind: CHEMICAL or ELECTRIC.
        feedback: True for backward (motor→inter, inter→earlier inter) edges.
    """

    def __init__(
        self,
        synapse_id: int,
        pre_id: int,
        post_ids: Sequence[int],
        weight: float = 0.0,
        kind: SynapseKind = SynapseKind.CHEMICAL,
        feedback: bool = False,
        reinforcement_rate: float = DEFAULT_REINFORCEMENT_RATE,
    ):
        posts = tuple(post_ids)
        if not posts:
            raise InvalidArgumentError("A synapse needs at least one postsynaptic neuron")
        if len(posts) > MAX_POSTSYNAPTIC:
            raise InvalidArgumentError(
                f"A synapse supports at most {MAX_POSTSYNAPTIC} postsynaptic neurons"
            )
        if len(set(posts)) != len(posts):
            raise InvalidArgumentError("Postsynaptic neurons must be distinct")

        self._synapse_id = synapse_id
        self._pre_id = pre_id
        self._post_ids: Tuple[int, ...] = posts
        self._weight = clamp(weight, -1.0, 1.0)
        self.kind = kind
        self.feedback = feedback
        self._assigned_resources = 1.0
        self.last_activation_time = 0
        self.co_activation_count = 0
        self.reinforcement_rate = reinforcement_rate

    def __repr__(self) -> str:
        return (
            f"Synapse(id={self._synapse_id}, {self._pre_id}->{list(self._post_ids)}, "
            f"weight={self._weight:.3f}, feedback={self.feedback})"
        )

    @property
    def synapse_id(self) -> int:
        return self._synapse_id

    @property
    def pre_id(self) -> int:
        return self._pre_id

    @property
    def post_ids(self) -> Tuple[int, ...]:
        return self._post_ids

    @property
    def weight(self) -> float:
        return self._weight

    @weight.setter
    def weight(self, value: float) -> None:
        self._weight = clamp(value, -1.0, 1.0)

    @property
    def assigned_resources(self) -> float:
        return self._assigned_resources

    @assigned_resources.setter
    def assigned_resources(self, value: float) -> None:
        self._assigned_resources = clamp(value, 0.0, 1.0)

    @property
    def is_inhibitory(self) -> bool:
        return self._weight < 0.0

    def apply_hebbian_plasticity(
        self,
        pre: Neuron,
        posts: Iterable[Neuron],
        now: int,
        window: int,
    ) -> None:
        """Fire together, wire together.

        Co-activation potentiates (LTP) and feeds resources.  Otherwise, once
        the synapse has been idle longer than ``window``, the weight is
        depressed towards zero (LTD, floor 0) and resources drain.
        """
        if pre.active and any(p.active for p in posts):
            self._weight = min(1.0, self._weight + self.reinforcement_rate)
            self.co_activation_count += 1
            self.last_activation_time = now
            self.assigned_resources = self._assigned_resources + 0.005
        elif now - self.last_activation_time > window:
            self._weight = max(0.0, self._weight - self.reinforcement_rate * 0.5)
            self.assigned_resources = self._assigned_resources - 0.01

    def should_be_pruned(self) -> bool:
        return abs(self._weight) <= 0.05 or self._assigned_resources <= 0.1


# ---------------------------------------------------------------------------
# Engram
# ---------------------------------------------------------------------------

ENGRAM_WEIGHT_FLOOR = 0.1


@dataclass
class Engram:
    """Memory trace: a named set of participant neurons and synapses.

    Membership is stored as ids only.  Methods that need neuron or synapse
    state take the owning arena mappings; ids that no longer resolve
    (pruned synapses) are skipped.

    Attributes:
        engram_id: Unique string id.
        neuron_ids: Participant neuron ids.
        synapse_ids: Participant synapse ids.
        strength: Consolidation level [0, 1].
        relevance: Recency-driven importance [0, 2]; removed when too low.
        activation_threshold: Fraction of active members that counts as
            the engram being active.
    """

    engram_id: str
    neuron_ids: Set[int] = field(default_factory=set)
    synapse_ids: Set[int] = field(default_factory=set)
    strength: float = 0.5
    relevance: float = 1.0
    activation_count: int = 0
    creation_time: int = 0
    last_activation_time: int = 0
    activation_threshold: float = 0.3

    def add_neuron(self, neuron_id: int) -> None:
        self.neuron_ids.add(neuron_id)

    def add_synapse(self, synapse_id: int) -> None:
        self.synapse_ids.add(synapse_id)

    def discard_synapses(self, synapse_ids: Iterable[int]) -> None:
        self.synapse_ids.difference_update(synapse_ids)

    def consolidate(self, factor: float, synapses: Mapping[int, Synapse]) -> None:
        """Strengthen the trace and every participant synapse."""
        self.strength = clamp(self.strength + factor, 0.0, 1.0)
        for sid in self.synapse_ids:
            syn = synapses.get(sid)
            if syn is None:
                continue
            syn.weight = syn.weight + factor * 0.5

    def degrade(self, factor: float, synapses: Mapping[int, Synapse]) -> None:
        """Weaken the trace.

        Once strength drops below 0.2 participant weights are eroded too, but
        never below ``ENGRAM_WEIGHT_FLOOR``: a memory is weakened, not erased.
        Weights already at or under the floor are left alone.
        """
        self.strength = clamp(self.strength - factor, 0.0, 1.0)
        if self.strength >= 0.2:
            return
        for sid in self.synapse_ids:
            syn = synapses.get(sid)
            if syn is None or syn.weight <= ENGRAM_WEIGHT_FLOOR:
                continue
            syn.weight = max(ENGRAM_WEIGHT_FLOOR, syn.weight - factor * 0.3)

    def adjust_relevance(self, multiplier: float) -> None:
        self.relevance = clamp(self.relevance * multiplier, 0.0, 2.0)

    def active_fraction(self, neurons: Mapping[int, Neuron]) -> float:
        if not self.neuron_ids:
            return 0.0
        active = sum(
            1 for nid in self.neuron_ids
            if nid in neurons and neurons[nid].active
        )
        return active / len(self.neuron_ids)

    def is_active(
        self,
        neurons: Mapping[int, Neuron],
        threshold: Optional[float] = None,
    ) -> bool:
        if not self.neuron_ids:
            return False
        limit = self.activation_threshold if threshold is None else threshold
        return self.active_fraction(neurons) >= limit

    def complete_pattern(
        self,
        timestamp: int,
        neurons: Mapping[int, Neuron],
        threshold: Optional[float] = None,
    ) -> bool:
        """Facilitate the inactive members of a partially active engram.

        Returns:
            True if the engram was active enough to complete.
        """
        if not self.is_active(neurons, threshold):
            return False
        self.last_activation_time = timestamp
        for nid in self.neuron_ids:
            neuron = neurons.get(nid)
            if neuron is not None and not neuron.active:
                neuron.facilitate_activation(self.strength)
        return True

    def activate(self, timestamp: int, neurons: Mapping[int, Neuron]) -> None:
        """Explicit recall: facilitate every member, active or not."""
        self.last_activation_time = timestamp
        self.activation_count += 1
        for nid in self.neuron_ids:
            neuron = neurons.get(nid)
            if neuron is not None:
                neuron.facilitate_activation(self.strength)

    def contains_neurons(self, candidate_ids: Iterable[int], overlap_threshold: float) -> bool:
        candidates = set(candidate_ids)
        if not candidates:
            return False
        overlap = len(candidates & self.neuron_ids) / len(candidates)
        return overlap >= overlap_threshold


# ---------------------------------------------------------------------------
# Telemetry
# ---------------------------------------------------------------------------

@dataclass
class Telemetry:
    """Network statistics snapshot.

    Attributes:
        global_clock: Current network time.
        state: ACTIVE or CONSOLIDATING (enum name).
        topology: Per-layer neuron counts.
        connection_density: Wiring density used at construction.
        total_neurons: Number of neurons.
        total_synapses: Number of surviving synapses.
        total_engrams: Number of engrams.
        inhibitory_synapses: Synapses with negative weight.
        mean_weight: Mean synapse weight.
        std_weight: Standard deviation of synapse weights.
        mean_neuron_resources: Mean neuron resources.
        mean_synapse_resources: Mean synapse resources.
        predictive_mode: Prediction manager enabled.
        engram_detection: Engram detection enabled.
        resource_competition: Competition manager enabled.
        neurons_eligible_for_removal: Neurons whose resources or survival hit 0.
        total_pruned: Cumulative synapses pruned.
    """

    global_clock: int = 0
    state: str = NetworkState.ACTIVE.name
    topology: List[int] = field(default_factory=list)
    connection_density: float = 0.0
    total_neurons: int = 0
    total_synapses: int = 0
    total_engrams: int = 0
    inhibitory_synapses: int = 0
    mean_weight: float = 0.0
    std_weight: float = 0.0
    mean_neuron_resources: float = 0.0
    mean_synapse_resources: float = 0.0
    predictive_mode: bool = False
    engram_detection: bool = False
    resource_competition: bool = False
    neurons_eligible_for_removal: int = 0
    total_pruned: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "global_clock": self.global_clock,
            "state": self.state,
            "topology": list(self.topology),
            "connection_density": self.connection_density,
            "total_neurons": self.total_neurons,
            "total_synapses": self.total_synapses,
            "total_engrams": self.total_engrams,
            "inhibitory_synapses": self.inhibitory_synapses,
            "mean_weight": self.mean_weight,
            "std_weight": self.std_weight,
            "mean_neuron_resources": self.mean_neuron_resources,
            "mean_synapse_resources": self.mean_synapse_resources,
            "predictive_mode": self.predictive_mode,
            "engram_detection": self.engram_detection,
            "resource_competition": self.resource_competition,
            "neurons_eligible_for_removal": self.neurons_eligible_for_removal,
            "total_pruned": self.total_pruned,
        }

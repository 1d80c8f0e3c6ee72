"""
PlasticNet Network — orchestrator for the biologically-inspired network.

Owns every neuron and synapse (id-keyed arenas), the inter-layer wiring,
the global clock and the ACTIVE/CONSOLIDATING state machine, and composes
the five managers on every ``process`` / ``train`` / ``consolidate`` call.

Three levels of memory:

1. Short-term: neuron activity and potentials.  Kept between ``process``
   calls of the same task; cleared only by ``reset_transient()``.
2. Medium-term: engrams formed from recent activation patterns.
3. Long-term: stored values, synaptic weights and consolidated engrams.

Ordering within one processing step: forward propagation, then feedback,
then engram detection, then prediction-error computation.

The network is not thread-safe; a single instance must be owned by one
worker at a time.
"""

from __future__ import annotations

import json
import logging
import math
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Union,
)

import numpy as np

try:
    import msgpack
except ImportError:
    msgpack = None

from plastic_config import PlasticConfig, load_plastic_config
from plastic_foundation import (
    Engram,
    InvalidArgumentError,
    InvalidStateError,
    NetworkState,
    Neuron,
    NeuronRole,
    Potential,
    Synapse,
    SynapseKind,
    Telemetry,
)
from plastic_managers import (
    CompetitionManager,
    EngramManager,
    HebbianTrainer,
    PredictionManager,
    SignalPropagator,
)

logger = logging.getLogger("plasticnet.network")

CHECKPOINT_VERSION = "1.0"

ConfigLike = Union[PlasticConfig, Dict[str, Any], None]


def _resolve_config(config: ConfigLike) -> PlasticConfig:
    if isinstance(config, PlasticConfig):
        return config
    return load_plastic_config(overrides=config)


class PlasticNetwork:
    """Layered plastic network with Hebbian learning, engrams and prediction.

    Args:
        topology: Neurons per layer ``[sensory, inter_1, ..., motor]``;
            at least two layers, every size positive.
        density: Probability of wiring each pre/post pair, in [0, 1].
        config: ``PlasticConfig`` or a nested override dict.
        seed: Random seed for wiring and initial values (falls back to
            ``config.network.seed``).

    Raises:
        InvalidArgumentError: Bad topology or density.
    """

    def __init__(
        self,
        topology: Sequence[int],
        density: float = 1.0,
        config: ConfigLike = None,
        seed: Optional[int] = None,
    ):
        sizes = self._validate_topology(topology)
        density = self._validate_density(density)

        self.config = _resolve_config(config)
        if seed is None:
            seed = self.config.network.seed
        self._setup(sizes, density, seed)
        self._build_layers()
        self._wire()

        logger.info(
            "Built plastic network topology=%s density=%.2f: %d neurons, %d synapses",
            self._topology, density, len(self.neurons), len(self.synapses),
        )

    # -----------------------------------------------------------------------
    # Construction
    # -----------------------------------------------------------------------

    @staticmethod
    def _validate_topology(topology: Sequence[int]) -> List[int]:
        try:
            sizes = list(topology)
        except TypeError:
            raise InvalidArgumentError(f"Topology must be a sequence of layer sizes, got {topology!r}")
        if len(sizes) < 2:
            raise InvalidArgumentError(
                "Topology needs at least 2 layers (sensory and motor)"
            )
        for size in sizes:
            if isinstance(size, bool) or not isinstance(size, (int, np.integer)) or size <= 0:
                raise InvalidArgumentError(
                    f"Every layer needs a positive integer size, got {size!r}"
                )
        return [int(s) for s in sizes]

    @staticmethod
    def _validate_density(density: float) -> float:
        try:
            value = float(density)
        except (TypeError, ValueError):
            raise InvalidArgumentError(f"Density must be a number, got {density!r}")
        if math.isnan(value) or not 0.0 <= value <= 1.0:
            raise InvalidArgumentError(f"Density must be in [0, 1], got {density!r}")
        return value

    def _setup(self, sizes: List[int], density: float, seed: Optional[int]) -> None:
        """Empty arenas, clock, state and managers."""
        self._topology = list(sizes)
        self.connection_density = density
        self._seed = seed
        self._rng = np.random.default_rng(seed)

        # --- Arenas ---
        self.neurons: Dict[int, Neuron] = {}
        self.synapses: Dict[int, Synapse] = {}

        # --- Layers (neuron ids) ---
        self._sensory_ids: List[int] = []
        self._inter_ids: List[List[int]] = []
        self._motor_ids: List[int] = []

        # --- Adjacency indices: neuron_id → synapse_ids ---
        self._incoming: Dict[int, List[int]] = {}
        self._outgoing: Dict[int, List[int]] = {}

        self._next_neuron_id = 0
        self._next_synapse_id = 0

        # --- Clock and state ---
        self.global_clock: int = 0
        self.state = NetworkState.ACTIVE

        # --- Managers ---
        cfg = self.config
        self.propagator = SignalPropagator(cfg.network)
        self.trainer = HebbianTrainer(cfg.plasticity)
        self.competition_manager = CompetitionManager(cfg.competition)
        self.engram_manager = EngramManager(cfg.engrams, self._rng)
        self.prediction_manager = PredictionManager(sizes[-1], cfg.prediction, self._rng)

        # --- Events / telemetry ---
        if not hasattr(self, "_event_handlers"):
            self._event_handlers: Dict[str, List[Callable]] = {}
        self._total_pruned = 0

    def _random_value(self) -> float:
        return float(self._rng.uniform(-1.0, 1.0))

    def _create_neuron(self, role: NeuronRole) -> int:
        nid = self._next_neuron_id
        self._next_neuron_id += 1
        self.neurons[nid] = Neuron(nid, role, self._random_value(), Potential.REST)
        self._incoming[nid] = []
        self._outgoing[nid] = []
        return nid

    def _build_layers(self) -> None:
        sizes = self._topology
        self._sensory_ids = [self._create_neuron(NeuronRole.SENSORY) for _ in range(sizes[0])]
        self._inter_ids = [
            [self._create_neuron(NeuronRole.INTER) for _ in range(size)]
            for size in sizes[1:-1]
        ]
        self._motor_ids = [self._create_neuron(NeuronRole.MOTOR) for _ in range(sizes[-1])]

    def _wire(self) -> None:
        """Random topology-respecting wiring, feed-forward then feedback."""
        chain = [self._sensory_ids] + self._inter_ids + [self._motor_ids]
        for origin, dest in zip(chain, chain[1:]):
            self._connect_layers(origin, dest, allow_multi=True, feedback=False)

        if self._inter_ids:
            self._connect_layers(
                self._motor_ids, self._inter_ids[-1], allow_multi=False, feedback=True
            )
        for i in range(len(self._inter_ids) - 1, 0, -1):
            self._connect_layers(
                self._inter_ids[i], self._inter_ids[i - 1], allow_multi=False, feedback=True
            )

    def _connect_layers(
        self,
        origin: List[int],
        dest: List[int],
        allow_multi: bool,
        feedback: bool,
    ) -> None:
        cfg = self.config.network
        for pre_id in origin:
            for post_id in dest:
                if self._rng.random() >= self.connection_density:
                    continue
                weight = self._random_value()
                posts = [post_id]
                if allow_multi and len(dest) > 1 and self._rng.random() < cfg.multi_post_probability:
                    others = [d for d in dest if d != post_id]
                    extra = 1
                    if len(others) >= 2 and self._rng.random() < cfg.triadic_probability:
                        extra = 2
                    chosen = self._rng.choice(len(others), size=extra, replace=False)
                    posts.extend(others[int(k)] for k in chosen)
                self._create_synapse(pre_id, posts, weight, feedback=feedback)

    def _create_synapse(
        self,
        pre_id: int,
        post_ids: Sequence[int],
        weight: float,
        feedback: bool = False,
        kind: SynapseKind = SynapseKind.CHEMICAL,
    ) -> Synapse:
        sid = self._next_synapse_id
        self._next_synapse_id += 1
        syn = Synapse(
            sid,
            pre_id,
            post_ids,
            weight=weight,
            kind=kind,
            feedback=feedback,
            reinforcement_rate=self.config.plasticity.reinforcement_rate,
        )
        self.synapses[sid] = syn
        self._outgoing[pre_id].append(sid)
        pre = self.neurons[pre_id]
        for pid in syn.post_ids:
            self._incoming[pid].append(sid)
            if pid not in pre.neighbors:
                pre.neighbors.append(pid)
            post = self.neurons[pid]
            if pre_id not in post.neighbors:
                post.neighbors.append(pre_id)
        return syn

    def _remove_synapse_internal(self, synapse_id: int) -> None:
        """Remove a synapse, its index entries and its engram memberships."""
        syn = self.synapses.pop(synapse_id, None)
        if syn is None:
            return
        outgoing = self._outgoing.get(syn.pre_id, [])
        if synapse_id in outgoing:
            outgoing.remove(synapse_id)
        for pid in syn.post_ids:
            incoming = self._incoming.get(pid, [])
            if synapse_id in incoming:
                incoming.remove(synapse_id)
        self.engram_manager.forget_synapses((synapse_id,))

    # -----------------------------------------------------------------------
    # Arena access
    # -----------------------------------------------------------------------

    @property
    def topology(self) -> List[int]:
        return list(self._topology)

    @property
    def sensory_layer(self) -> List[Neuron]:
        return [self.neurons[nid] for nid in self._sensory_ids]

    @property
    def inter_layers(self) -> List[List[Neuron]]:
        return [[self.neurons[nid] for nid in layer] for layer in self._inter_ids]

    @property
    def motor_layer(self) -> List[Neuron]:
        return [self.neurons[nid] for nid in self._motor_ids]

    @property
    def processing_layers(self) -> List[List[Neuron]]:
        """Every non-sensory layer in topological order (motor last)."""
        return self.inter_layers + [self.motor_layer]

    def incoming_synapses(self, neuron_id: int) -> List[Synapse]:
        return [self.synapses[sid] for sid in self._incoming.get(neuron_id, [])]

    def outgoing_synapses(self, neuron_id: int) -> List[Synapse]:
        return [self.synapses[sid] for sid in self._outgoing.get(neuron_id, [])]

    @property
    def total_neurons(self) -> int:
        return len(self.neurons)

    @property
    def total_synapses(self) -> int:
        return len(self.synapses)

    @property
    def engrams(self) -> Dict[str, Engram]:
        return dict(self.engram_manager.engrams)

    @property
    def predictive_mode(self) -> bool:
        return self.prediction_manager.active

    @property
    def engram_detection(self) -> bool:
        return self.engram_manager.detection_active

    @property
    def resource_competition(self) -> bool:
        return self.competition_manager.active

    # -----------------------------------------------------------------------
    # Validation helpers
    # -----------------------------------------------------------------------

    def _require_state(self, expected: NetworkState, operation: str) -> None:
        if self.state is not expected:
            raise InvalidStateError(
                f"Cannot {operation} while network is {self.state.name}"
            )

    @staticmethod
    def _validate_vector(values: Sequence[float], size: int, name: str) -> np.ndarray:
        if values is None:
            raise InvalidArgumentError(f"{name} is required")
        try:
            vec = np.asarray(values, dtype=float)
        except (TypeError, ValueError):
            raise InvalidArgumentError(f"{name} must be a numeric vector")
        if vec.ndim != 1 or vec.shape[0] != size:
            raise InvalidArgumentError(
                f"{name} must have length {size}, got shape {vec.shape}"
            )
        if not np.all(np.isfinite(vec)):
            raise InvalidArgumentError(f"{name} must contain only finite values")
        return vec

    @staticmethod
    def _validate_count(value: int, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 0:
            raise InvalidArgumentError(f"{name} must be a non-negative integer, got {value!r}")
        return int(value)

    # -----------------------------------------------------------------------
    # Processing and training
    # -----------------------------------------------------------------------

    def _run_step(self, inputs: np.ndarray) -> List[float]:
        now = self.global_clock
        if self.prediction_manager.active:
            self.prediction_manager.calculate_predictions(self)

        self.propagator.establish_inputs(self, inputs.tolist(), now)
        self.propagator.propagate_forward(self, now)
        self.propagator.propagate_feedback(self)

        if self.engram_manager.detection_active:
            formed, reinforced = self.engram_manager.detect_and_form(self, now)
            for engram_id in formed:
                self._emit("engram_formed", engram_id=engram_id, timestep=now)
            for engram_id in reinforced:
                self._emit("engram_reinforced", engram_id=engram_id, timestep=now)
            self.engram_manager.complete_patterns(self, now)

        if self.prediction_manager.active:
            self.prediction_manager.calculate_prediction_errors(self)
            self.prediction_manager.adjust_predictive_model(self)

        return self.propagator.extract_outputs(self)

    def process(self, inputs: Sequence[float]) -> List[float]:
        """Propagate one input vector and return the motor outputs.

        Activity is not reset first: neurons keep their state between calls
        of the same task, so repeated identical calls may differ.

        Raises:
            InvalidStateError: While consolidating.
            InvalidArgumentError: Wrong input length.
        """
        self._require_state(NetworkState.ACTIVE, "process input")
        vec = self._validate_vector(inputs, len(self._sensory_ids), "inputs")
        outputs = self._run_step(vec)
        self.global_clock += self.config.network.process_clock_step
        return outputs

    def train(
        self,
        inputs: Sequence[float],
        targets: Sequence[float],
        iterations: int = 1,
    ) -> List[float]:
        """Weakly supervised training on one input/target pair.

        Each iteration processes the input, applies global Hebbian
        plasticity, modulates by ``target - output`` and, when enabled, runs
        a resource competition round.

        Returns:
            Mean absolute error of each iteration (before its update).
        """
        self._require_state(NetworkState.ACTIVE, "train")
        x = self._validate_vector(inputs, len(self._sensory_ids), "inputs")
        y = self._validate_vector(targets, len(self._motor_ids), "targets")
        iterations = self._validate_count(iterations, "iterations")

        history: List[float] = []
        for _ in range(iterations):
            outputs = np.asarray(self._run_step(x))
            errors = y - outputs
            now = self.global_clock
            self.trainer.apply_global_plasticity(self, now)
            self.trainer.modulate_by_error(self, errors)
            if self.competition_manager.active:
                self.competition_manager.compete(self, now)
            self.global_clock += self.config.network.train_clock_step
            history.append(float(np.mean(np.abs(errors))))

        if history:
            self._emit("trained", iterations=iterations, final_error=history[-1],
                       timestep=self.global_clock)
        return history

    def reset_transient(self) -> None:
        """Clear short-term activity; learned state is kept."""
        for neuron in self.neurons.values():
            neuron.reset_transient()
            neuron.clear_input()

    def advance_time(self, delta: int) -> None:
        self.global_clock += self._validate_count(delta, "delta")

    # -----------------------------------------------------------------------
    # Manager toggles
    # -----------------------------------------------------------------------

    def activate_predictive_mode(self, on: bool) -> None:
        self.prediction_manager.activate(bool(on), self)
        logger.debug("Predictive mode %s", "on" if on else "off")

    def activate_engram_detection(self, on: bool) -> None:
        self.engram_manager.activate_detection(bool(on))
        logger.debug("Engram detection %s", "on" if on else "off")

    def activate_resource_competition(self, on: bool) -> None:
        self.competition_manager.activate(bool(on), self.global_clock)
        logger.debug("Resource competition %s", "on" if on else "off")

    # -----------------------------------------------------------------------
    # Competition
    # -----------------------------------------------------------------------

    def compete_for_resources(self) -> None:
        """One competition round (no-op unless competition is enabled)."""
        self.competition_manager.compete(self, self.global_clock)

    def prune_elements(self) -> int:
        """Prune exhausted synapses.

        Neurons eligible for removal are only reported; they stay in their
        layers.

        Returns:
            Number of synapses removed.
        """
        to_prune = CompetitionManager.prunable_synapses(self)
        for sid in to_prune:
            self._remove_synapse_internal(sid)
        pruned = len(to_prune)
        self._total_pruned += pruned
        candidates = CompetitionManager.removal_candidates(self)
        if pruned or candidates:
            logger.info(
                "Pruned %d synapses at t=%d (%d neurons eligible for removal)",
                pruned, self.global_clock, len(candidates),
            )
        if pruned:
            self._emit("pruned", count=pruned, timestep=self.global_clock)
        return pruned

    # -----------------------------------------------------------------------
    # Engrams
    # -----------------------------------------------------------------------

    def form_engram(self, engram_id: str, neuron_ids: Iterable[int]) -> Engram:
        """Create an engram over explicit neuron ids.

        Raises:
            InvalidArgumentError: Empty id, empty or unknown neurons.
        """
        if not isinstance(engram_id, str):
            raise InvalidArgumentError("Engram id must be a string")
        if neuron_ids is None:
            raise InvalidArgumentError("An engram needs at least one neuron")
        members = list(neuron_ids)
        engram = self.engram_manager.form_engram(self, engram_id, members, self.global_clock)
        self._emit("engram_formed", engram_id=engram_id, timestep=self.global_clock)
        return engram

    def activate_engram(self, engram_id: str) -> None:
        """Recall an engram: facilitates every member neuron.

        Raises:
            EngramNotFoundError: Unknown id.
        """
        self.engram_manager.activate_engram(engram_id, self, self.global_clock)

    def remove_engram(self, engram_id: str) -> None:
        self.engram_manager.remove_engram(engram_id)
        self._emit("engram_removed", engram_id=engram_id, timestep=self.global_clock)

    # -----------------------------------------------------------------------
    # Consolidation state machine
    # -----------------------------------------------------------------------

    def start_consolidation(self) -> None:
        self._require_state(NetworkState.ACTIVE, "start consolidation")
        self.state = NetworkState.CONSOLIDATING
        logger.info("Consolidation started at t=%d", self.global_clock)

    def consolidate(self) -> List[str]:
        """One consolidation pass: engram review plus synaptic boost/decay.

        Returns:
            Ids of engrams removed as irrelevant.

        Raises:
            InvalidStateError: Unless consolidation has been started.
        """
        self._require_state(NetworkState.CONSOLIDATING, "consolidate")
        now = self.global_clock
        removed = self.engram_manager.consolidate(self, now)
        self._consolidate_synapses(now)
        for engram_id in removed:
            self._emit("engram_removed", engram_id=engram_id, timestep=now)
        self._emit("consolidated", removed=list(removed), timestep=now)
        logger.info(
            "Consolidation pass at t=%d: %d engrams kept, %d removed",
            now, len(self.engram_manager.engrams), len(removed),
        )
        return removed

    def _consolidate_synapses(self, now: int) -> None:
        """Recently co-active synapses grow in magnitude, idle ones shrink."""
        cfg = self.config.consolidation
        for syn in self.synapses.values():
            recent = (
                syn.co_activation_count > 0
                and now - syn.last_activation_time < cfg.recent_window
            )
            w = syn.weight
            if recent:
                syn.weight = w + cfg.weight_boost if w >= 0.0 else w - cfg.weight_boost
            elif w > 0.0:
                syn.weight = max(0.0, w - cfg.weight_decay)
            elif w < 0.0:
                syn.weight = min(0.0, w + cfg.weight_decay)

    def end_consolidation(self) -> None:
        self._require_state(NetworkState.CONSOLIDATING, "end consolidation")
        self.state = NetworkState.ACTIVE
        logger.info("Consolidation finished at t=%d", self.global_clock)

    # -----------------------------------------------------------------------
    # Prediction access
    # -----------------------------------------------------------------------

    def get_prediction_errors(self) -> np.ndarray:
        return self.prediction_manager.errors.copy()

    def get_predictions(self) -> Dict[int, np.ndarray]:
        return {i: p.copy() for i, p in self.prediction_manager.predictions.items()}

    # -----------------------------------------------------------------------
    # Telemetry
    # -----------------------------------------------------------------------

    def get_telemetry(self) -> Telemetry:
        weights = np.array([s.weight for s in self.synapses.values()], dtype=float)
        syn_res = np.array([s.assigned_resources for s in self.synapses.values()], dtype=float)
        neu_res = np.array([n.assigned_resources for n in self.neurons.values()], dtype=float)
        return Telemetry(
            global_clock=self.global_clock,
            state=self.state.name,
            topology=self.topology,
            connection_density=self.connection_density,
            total_neurons=len(self.neurons),
            total_synapses=len(self.synapses),
            total_engrams=len(self.engram_manager.engrams),
            inhibitory_synapses=int(np.sum(weights < 0.0)) if weights.size else 0,
            mean_weight=float(np.mean(weights)) if weights.size else 0.0,
            std_weight=float(np.std(weights)) if weights.size else 0.0,
            mean_neuron_resources=float(np.mean(neu_res)) if neu_res.size else 0.0,
            mean_synapse_resources=float(np.mean(syn_res)) if syn_res.size else 0.0,
            predictive_mode=self.prediction_manager.active,
            engram_detection=self.engram_manager.detection_active,
            resource_competition=self.competition_manager.active,
            neurons_eligible_for_removal=len(CompetitionManager.removal_candidates(self)),
            total_pruned=self._total_pruned,
        )

    # -----------------------------------------------------------------------
    # Event System
    # -----------------------------------------------------------------------

    def register_event_handler(self, event_type: str, callback: Callable) -> None:
        """Subscribe to events: engram_formed, engram_reinforced,
        engram_removed, pruned, consolidated, trained."""
        self._event_handlers.setdefault(event_type, []).append(callback)

    def _emit(self, event_type: str, **kwargs: Any) -> None:
        for cb in self._event_handlers.get(event_type, []):
            cb(**kwargs)

    def __repr__(self) -> str:
        return (
            f"PlasticNetwork(topology={self._topology}, neurons={len(self.neurons)}, "
            f"synapses={len(self.synapses)}, density={self.connection_density:.2f}, "
            f"state={self.state.name}, clock={self.global_clock}, "
            f"engrams={len(self.engram_manager.engrams)})"
        )

    # -----------------------------------------------------------------------
    # Persistence
    # -----------------------------------------------------------------------

    def checkpoint(self, path: str) -> None:
        """Save the full graph (extension selects .json or .msgpack)."""
        data = self._serialize_full()
        if str(path).endswith(".msgpack"):
            if msgpack is None:
                raise ImportError("msgpack required for .msgpack serialization")
            with open(path, "wb") as f:
                msgpack.pack(data, f, use_bin_type=True)
        else:
            with open(path, "w") as f:
                json.dump(data, f, indent=2)
        logger.info(
            "Checkpoint written to %s (%d neurons, %d synapses, %d engrams)",
            path, len(self.neurons), len(self.synapses), len(self.engram_manager.engrams),
        )

    @staticmethod
    def _read_checkpoint(path: str) -> Dict[str, Any]:
        if str(path).endswith(".msgpack"):
            if msgpack is None:
                raise ImportError("msgpack required for .msgpack deserialization")
            with open(path, "rb") as f:
                return msgpack.unpack(f, raw=False)
        with open(path, "r") as f:
            return json.load(f)

    def restore(self, path: str) -> None:
        """Replace this network's state with a checkpoint."""
        self._deserialize(self._read_checkpoint(path))

    @classmethod
    def from_checkpoint(cls, path: str) -> "PlasticNetwork":
        net = cls.__new__(cls)
        net._deserialize(cls._read_checkpoint(path))
        return net

    @staticmethod
    def _serialize_neuron(neuron: Neuron) -> Dict[str, Any]:
        return {
            "neuron_id": neuron.neuron_id,
            "role": neuron.role.name,
            "stored_value": neuron.stored_value,
            "potential": neuron.potential.name,
            "active": neuron.active,
            "assigned_resources": neuron.assigned_resources,
            "survival_factor": neuron.survival_factor,
            "last_activation_time": neuron.last_activation_time,
            "activation_count": neuron.activation_count,
            "temporal_facilitation": neuron.temporal_facilitation,
            "neighbors": list(neuron.neighbors),
        }

    @staticmethod
    def _serialize_synapse(syn: Synapse) -> Dict[str, Any]:
        return {
            "synapse_id": syn.synapse_id,
            "pre_id": syn.pre_id,
            "post_ids": list(syn.post_ids),
            "weight": syn.weight,
            "kind": syn.kind.name,
            "feedback": syn.feedback,
            "assigned_resources": syn.assigned_resources,
            "last_activation_time": syn.last_activation_time,
            "co_activation_count": syn.co_activation_count,
            "reinforcement_rate": syn.reinforcement_rate,
        }

    @staticmethod
    def _serialize_engram(engram: Engram) -> Dict[str, Any]:
        return {
            "engram_id": engram.engram_id,
            "neuron_ids": sorted(engram.neuron_ids),
            "synapse_ids": sorted(engram.synapse_ids),
            "strength": engram.strength,
            "relevance": engram.relevance,
            "activation_count": engram.activation_count,
            "creation_time": engram.creation_time,
            "last_activation_time": engram.last_activation_time,
            "activation_threshold": engram.activation_threshold,
        }

    def _serialize_full(self) -> Dict[str, Any]:
        pm = self.prediction_manager
        return {
            "version": CHECKPOINT_VERSION,
            "topology": list(self._topology),
            "connection_density": self.connection_density,
            "seed": self._seed,
            "global_clock": self.global_clock,
            "state": self.state.name,
            "config": self.config.to_dict(),
            "next_neuron_id": self._next_neuron_id,
            "next_synapse_id": self._next_synapse_id,
            "layers": {
                "sensory": list(self._sensory_ids),
                "inter": [list(layer) for layer in self._inter_ids],
                "motor": list(self._motor_ids),
            },
            "neurons": [self._serialize_neuron(n) for n in self.neurons.values()],
            "synapses": [self._serialize_synapse(s) for s in self.synapses.values()],
            "engrams": [self._serialize_engram(e) for e in self.engram_manager.engrams.values()],
            "managers": {
                "predictive_mode": pm.active,
                "predictions": {str(i): p.tolist() for i, p in pm.predictions.items()},
                "prediction_errors": pm.errors.tolist(),
                "engram_detection": self.engram_manager.detection_active,
                "engram_counter": self.engram_manager._counter,
                "resource_competition": self.competition_manager.active,
                "last_competition": self.competition_manager.last_competition,
            },
            "telemetry": {"total_pruned": self._total_pruned},
        }

    def _deserialize(self, data: Dict[str, Any]) -> None:
        """Restore full network state from serialized data."""
        self.config = load_plastic_config(overrides=data.get("config", {}))
        self._setup(
            list(data["topology"]),
            float(data["connection_density"]),
            data.get("seed"),
        )
        self.global_clock = int(data.get("global_clock", 0))
        self.state = NetworkState[data.get("state", NetworkState.ACTIVE.name)]
        self._next_neuron_id = int(data.get("next_neuron_id", 0))
        self._next_synapse_id = int(data.get("next_synapse_id", 0))

        layers = data["layers"]
        self._sensory_ids = [int(i) for i in layers["sensory"]]
        self._inter_ids = [[int(i) for i in layer] for layer in layers["inter"]]
        self._motor_ids = [int(i) for i in layers["motor"]]

        # Restore neurons
        for nd in data.get("neurons", []):
            nid = int(nd["neuron_id"])
            neuron = Neuron(
                nid,
                NeuronRole[nd["role"]],
                nd["stored_value"],
                Potential[nd.get("potential", Potential.REST.name)],
            )
            neuron.active = bool(nd.get("active", False))
            neuron.assigned_resources = nd.get("assigned_resources", 1.0)
            neuron.survival_factor = nd.get("survival_factor", 1.0)
            neuron.last_activation_time = int(nd.get("last_activation_time", 0))
            neuron.activation_count = int(nd.get("activation_count", 0))
            neuron.temporal_facilitation = nd.get("temporal_facilitation", 0.0)
            neuron.neighbors = [int(i) for i in nd.get("neighbors", [])]
            self.neurons[nid] = neuron
            self._incoming[nid] = []
            self._outgoing[nid] = []

        # Restore synapses
        for sd in data.get("synapses", []):
            syn = Synapse(
                int(sd["synapse_id"]),
                int(sd["pre_id"]),
                [int(i) for i in sd["post_ids"]],
                weight=sd["weight"],
                kind=SynapseKind[sd.get("kind", SynapseKind.CHEMICAL.name)],
                feedback=bool(sd.get("feedback", False)),
                reinforcement_rate=sd.get(
                    "reinforcement_rate", self.config.plasticity.reinforcement_rate
                ),
            )
            syn.assigned_resources = sd.get("assigned_resources", 1.0)
            syn.last_activation_time = int(sd.get("last_activation_time", 0))
            syn.co_activation_count = int(sd.get("co_activation_count", 0))
            self.synapses[syn.synapse_id] = syn
            self._outgoing.setdefault(syn.pre_id, []).append(syn.synapse_id)
            for pid in syn.post_ids:
                self._incoming.setdefault(pid, []).append(syn.synapse_id)

        # Restore engrams
        for ed in data.get("engrams", []):
            engram = Engram(
                engram_id=ed["engram_id"],
                neuron_ids={int(i) for i in ed.get("neuron_ids", [])},
                synapse_ids={int(i) for i in ed.get("synapse_ids", [])},
                strength=ed.get("strength", 0.5),
                relevance=ed.get("relevance", 1.0),
                activation_count=int(ed.get("activation_count", 0)),
                creation_time=int(ed.get("creation_time", 0)),
                last_activation_time=int(ed.get("last_activation_time", 0)),
                activation_threshold=ed.get(
                    "activation_threshold", self.config.engrams.activation_threshold
                ),
            )
            self.engram_manager.engrams[engram.engram_id] = engram

        # Restore manager state
        mgr = data.get("managers", {})
        pm = self.prediction_manager
        pm.active = bool(mgr.get("predictive_mode", False))
        pm.predictions = {
            int(k): np.asarray(v, dtype=float)
            for k, v in mgr.get("predictions", {}).items()
        }
        if "prediction_errors" in mgr:
            pm.errors = np.asarray(mgr["prediction_errors"], dtype=float)
        self.engram_manager.detection_active = bool(mgr.get("engram_detection", False))
        self.engram_manager._counter = int(mgr.get("engram_counter", 0))
        self.competition_manager.active = bool(mgr.get("resource_competition", False))
        self.competition_manager.last_competition = int(mgr.get("last_competition", 0))

        self._total_pruned = int(data.get("telemetry", {}).get("total_pruned", 0))
        logger.info(
            "Restored network topology=%s at t=%d (%d synapses, %d engrams)",
            self._topology, self.global_clock, len(self.synapses),
            len(self.engram_manager.engrams),
        )

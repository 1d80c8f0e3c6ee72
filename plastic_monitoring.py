"""
PlasticNet Monitoring — Health context, text reports and rotating event log.

Two monitoring layers:

1. Text helpers — ``health_context()`` returns a one-line status string;
   ``resource_report()``, ``engram_report()`` and ``activation_map()``
   return multi-line reports for operators.
2. ``PlasticEventLogger`` — Rotating JSON-lines file logger to
   ``~/.plasticnet/logs/events.log`` fed by a network's event bus.

Usage::

    from plastic_monitoring import PlasticEventLogger, health_context
    events = PlasticEventLogger(net.config)
    events.attach(net)
    print(health_context(net))
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Sequence

import numpy as np

from plastic_config import PlasticConfig
from plastic_foundation import Neuron

if TYPE_CHECKING:
    from plastic_network import PlasticNetwork

logger = logging.getLogger("plasticnet.monitoring")

EVENT_TYPES = (
    "engram_formed",
    "engram_reinforced",
    "engram_removed",
    "pruned",
    "consolidated",
    "trained",
)


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


# ── Text helpers (Layer 1) ─────────────────────────────────────────────


def health_context(network: "PlasticNetwork") -> str:
    """Natural language status summary.

    Returns:
        e.g. ``"PlasticNet: 7 neurons, 12 synapses, 2 engrams, t=40, ACTIVE,
        engram detection on"``.
    """
    telemetry = network.get_telemetry()
    parts = [
        f"PlasticNet: {telemetry.total_neurons:,} neurons",
        f"{telemetry.total_synapses:,} synapses",
        f"{telemetry.total_engrams:,} engrams",
        f"t={telemetry.global_clock}",
        telemetry.state,
    ]
    if telemetry.predictive_mode:
        parts.append("predictive mode on")
    if telemetry.engram_detection:
        parts.append("engram detection on")
    if telemetry.resource_competition:
        parts.append("resource competition on")
    if telemetry.total_pruned:
        parts.append(f"{telemetry.total_pruned} synapses pruned")
    return ", ".join(parts)


def _layer_rows(network: "PlasticNetwork") -> List[tuple]:
    rows = [("Sensory layer", network.sensory_layer)]
    for i, layer in enumerate(network.inter_layers):
        rows.append((f"Inter layer {i}", layer))
    rows.append(("Motor layer", network.motor_layer))
    return rows


def resource_report(network: "PlasticNetwork") -> str:
    """Average neuron resources per layer plus synapse resources and weights."""
    lines = [f"Resources report (t={network.global_clock})"]
    for label, layer in _layer_rows(network):
        lines.append(
            f"  {label}: {len(layer)} neurons, average resources "
            f"{_mean([n.assigned_resources for n in layer]):.3f}, average survival "
            f"{_mean([n.survival_factor for n in layer]):.3f}"
        )
    synapses = list(network.synapses.values())
    lines.append(
        f"  Synapses: {len(synapses)}, average resources "
        f"{_mean([s.assigned_resources for s in synapses]):.3f}, average |weight| "
        f"{_mean([abs(s.weight) for s in synapses]):.3f}"
    )
    return "\n".join(lines)


def engram_report(network: "PlasticNetwork") -> str:
    """Strength, relevance and membership of every engram, most relevant first."""
    engrams = sorted(
        network.engrams.values(), key=lambda e: e.relevance, reverse=True
    )
    lines = [f"Engram report: Total {len(engrams)} engrams"]
    for e in engrams:
        lines.append(
            f"  {e.engram_id}: strength {e.strength:.2f}, relevance {e.relevance:.2f}, "
            f"{len(e.neuron_ids)} neurons, {len(e.synapse_ids)} synapses, "
            f"activations {e.activation_count}, last t={e.last_activation_time}"
        )
    return "\n".join(lines)


def _activity_row(layer: Sequence[Neuron]) -> str:
    return "".join("#" if n.active else "." for n in layer)


def activation_map(network: "PlasticNetwork") -> str:
    """One line per layer; ``#`` marks an active neuron, ``.`` a resting one."""
    lines = []
    for label, layer in _layer_rows(network):
        active = sum(1 for n in layer if n.active)
        lines.append(f"{label:<14} [{_activity_row(layer)}] {active}/{len(layer)} active")
    return "\n".join(lines)


# ── Rotating event log (Layer 2) ───────────────────────────────────────


class PlasticEventLogger:
    """Rotating file logger for network events.

    Writes structured JSON-line events to ``events.log`` with automatic
    rotation based on file size.

    Args:
        config: ``PlasticConfig`` with monitoring parameters.
    """

    def __init__(self, config: PlasticConfig) -> None:
        self._cfg = config.monitoring
        self._logger = logging.getLogger("plasticnet.events")
        self.log_path = Path(self._cfg.log_dir).expanduser() / "events.log"
        self._handler = self._setup_handler()

    def _setup_handler(self) -> logging.Handler:
        """Configure rotating file handler."""
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            str(self.log_path),
            maxBytes=self._cfg.max_log_size_mb * 1024 * 1024,
            backupCount=self._cfg.backup_count,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        self._logger.addHandler(handler)
        self._logger.setLevel(logging.INFO)
        return handler

    def log_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """Write a structured event to the log."""
        event = {
            "timestamp": time.time(),
            "event": event_type,
            "data": data,
        }
        self._logger.info(json.dumps(event, default=str))

    def attach(self, network: "PlasticNetwork") -> None:
        """Subscribe to every event the network emits."""
        for event_type in EVENT_TYPES:
            network.register_event_handler(event_type, self._handler_for(event_type))
        logger.debug("Event logger attached, writing to %s", self.log_path)

    def _handler_for(self, event_type: str):
        def _on_event(**data: Any) -> None:
            self.log_event(event_type, data)
        return _on_event

    def close(self) -> None:
        self._logger.removeHandler(self._handler)
        self._handler.close()

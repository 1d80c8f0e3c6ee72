"""
PlasticNet Configuration — Centralized tunables for the plastic network.

Provides a single ``PlasticConfig`` dataclass grouping every tunable of the
network, its five managers and the monitoring helpers.  Configuration can
be loaded from a dict of overrides, a JSON file, or left at defaults.

Usage::

    from plastic_config import PlasticConfig, load_plastic_config

    # Defaults
    cfg = load_plastic_config()

    # With overrides
    cfg = load_plastic_config({"engrams": {"activation_threshold": 0.4}})

    # From JSON file
    cfg = load_plastic_config(config_path="~/.plasticnet/config.json")
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("plasticnet.config")

SECTIONS = (
    "network",
    "plasticity",
    "competition",
    "engrams",
    "prediction",
    "consolidation",
    "monitoring",
)


# ── Section dataclasses ────────────────────────────────────────────────


@dataclass
class NetworkConfig:
    """Construction and propagation parameters."""

    seed: Optional[int] = None
    input_activation_threshold: float = 0.1
    feedback_rate: float = 0.1
    multi_post_probability: float = 0.66
    triadic_probability: float = 0.25
    process_clock_step: int = 1
    train_clock_step: int = 10


@dataclass
class PlasticityConfig:
    """Hebbian and error-modulated learning parameters."""

    reinforcement_rate: float = 0.02
    temporal_window: int = 100
    learning_rate: float = 0.5
    weight_factor: float = 0.8
    hidden_value_factor: float = 0.5
    hidden_weight_factor: float = 0.6


@dataclass
class CompetitionConfig:
    """Resource competition parameters."""

    window: int = 20
    neuron_gain: float = 0.03
    neuron_loss: float = 0.02
    inter_neuron_loss: float = 0.025
    synapse_gain: float = 0.025
    synapse_loss: float = 0.03
    disuse_window: int = 100


@dataclass
class EngramConfig:
    """Engram detection and consolidation parameters."""

    activation_threshold: float = 0.3
    threshold_jitter: float = 0.0
    global_overlap: float = 0.5
    local_overlap: float = 0.6
    min_global_active: int = 2
    min_local_active: int = 3
    recent_window: int = 30
    relevance_boost: float = 1.1
    relevance_decay: float = 0.8
    removal_threshold: float = 0.15
    consolidation_factor: float = 0.05
    degrade_factor: float = 0.05


@dataclass
class PredictionConfig:
    """Predictive coding parameters."""

    learning_rate: float = 0.15
    init_noise: float = 0.1


@dataclass
class ConsolidationConfig:
    """Synaptic boost/decay applied on every consolidation pass."""

    weight_boost: float = 0.01
    weight_decay: float = 0.005
    recent_window: int = 30


@dataclass
class MonitoringConfig:
    """Event log parameters."""

    log_dir: str = "~/.plasticnet/logs/"
    max_log_size_mb: int = 10
    backup_count: int = 5


# ── Top-level config ───────────────────────────────────────────────────


@dataclass
class PlasticConfig:
    """Top-level plastic network configuration.

    Use ``load_plastic_config()`` to create an instance with user
    overrides applied.
    """

    network: NetworkConfig = field(default_factory=NetworkConfig)
    plasticity: PlasticityConfig = field(default_factory=PlasticityConfig)
    competition: CompetitionConfig = field(default_factory=CompetitionConfig)
    engrams: EngramConfig = field(default_factory=EngramConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    consolidation: ConsolidationConfig = field(default_factory=ConsolidationConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ── Factory ────────────────────────────────────────────────────────────


def _apply_overrides(obj: Any, overrides: Dict[str, Any]) -> None:
    """Apply a dict of overrides to a dataclass instance (in-place)."""
    for key, value in overrides.items():
        if hasattr(obj, key):
            setattr(obj, key, value)
        else:
            logger.warning("Ignoring unknown config key %s.%s", type(obj).__name__, key)


def _apply_sections(cfg: PlasticConfig, data: Dict[str, Any]) -> None:
    for section in SECTIONS:
        if section in data:
            _apply_overrides(getattr(cfg, section), data[section])


def load_plastic_config(
    overrides: Optional[Dict[str, Any]] = None,
    config_path: Optional[str] = None,
) -> PlasticConfig:
    """Create a ``PlasticConfig`` with defaults, optionally overridden.

    Override precedence (highest wins):
        1. ``overrides`` dict argument
        2. ``config_path`` JSON file
        3. Built-in defaults

    Args:
        overrides: Dict keyed by section name whose values are dicts of
            field→value pairs.
        config_path: Path to a JSON file with the same structure as
            ``overrides``.

    Returns:
        Fully populated ``PlasticConfig``.
    """
    cfg = PlasticConfig()

    # Layer 1: JSON file
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            try:
                with open(p) as f:
                    file_data = json.load(f)
                _apply_sections(cfg, file_data)
            except (OSError, ValueError) as exc:
                logger.warning("Failed to load plastic config from %s: %s", p, exc)

    # Layer 2: dict overrides (win over file)
    if overrides is not None:
        _apply_sections(cfg, overrides)

    return cfg

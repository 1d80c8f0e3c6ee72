"""Simple usage example for PlasticNet.

Demonstrates building a small network, training it on one pattern, letting
engrams form, running a consolidation cycle and checkpointing the result.
"""

import os
import sys
import tempfile

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from plastic_monitoring import activation_map, engram_report, health_context, resource_report
from plastic_network import PlasticNetwork


def main():
    # Two sensory neurons, four interneurons, one motor neuron
    net = PlasticNetwork([2, 4, 1], density=0.8, seed=42)
    print("=== Initial State ===")
    print(net)

    net.reset_transient()
    before = net.process([1.0, 1.0])
    print(f"Output before training: {before[0]:.3f}")

    # Weakly supervised training on a single pattern
    print("\n=== Training (100 iterations) ===")
    net.activate_engram_detection(True)
    net.activate_predictive_mode(True)
    history = net.train([1.0, 1.0], [1.0], iterations=100)
    print(f"Error: first {history[0]:.3f}, last {history[-1]:.3f}")

    net.reset_transient()
    after = net.process([1.0, 1.0])
    print(f"Output after training: {after[0]:.3f}")
    print(activation_map(net))
    print(f"Prediction errors: {net.get_prediction_errors()}")

    # Offline consolidation keeps the engrams that were just used
    print("\n=== Consolidation ===")
    net.start_consolidation()
    for _ in range(3):
        removed = net.consolidate()
        if removed:
            print(f"Removed engrams: {removed}")
    net.end_consolidation()
    print(engram_report(net))

    # Competition and pruning
    print("\n=== Competition ===")
    net.activate_resource_competition(True)
    net.advance_time(150)
    net.compete_for_resources()
    print(f"Pruned synapses: {net.prune_elements()}")
    print(resource_report(net))

    # Persistence
    print("\n=== Checkpoint ===")
    path = os.path.join(tempfile.mkdtemp(), "plasticnet.json")
    net.checkpoint(path)
    restored = PlasticNetwork.from_checkpoint(path)
    print(f"Restored: {restored}")
    print(health_context(restored))


if __name__ == "__main__":
    main()

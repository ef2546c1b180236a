"""Example: controlled Hadamard and a control table on pixel-qpu."""
import logging
import sys
sys.path.insert(0, 'src')

from pixel_qpu import ControlMask, Renderer, Surface, NO_CONTROLS
from pixel_qpu.logging_config import setup_logging
from pixel_qpu.shaders import (
    apply_qubit_operation,
    build_mask,
    control_combination_probabilities,
    fill_classical_state,
)
from pixel_qpu.visualization import SurfaceVisualizer

setup_logging(logging.INFO)

print("=" * 50)
print("pixel-qpu: Controlled Hadamard Example")
print("=" * 50)

r = Renderer()
state, spare, ctrl = Surface(4, 2), Surface(4, 2), Surface(4, 2)
h = [[2 ** -0.5, 2 ** -0.5], [2 ** -0.5, -(2 ** -0.5)]]

# |000> -> H on q0 -> H on q1 controlled by q0
fill_classical_state(r, state, 0)
build_mask(r, ctrl, NO_CONTROLS)
apply_qubit_operation(r, spare, state, h, 0, ctrl)
build_mask(r, ctrl, ControlMask(0b001, 0b001))
apply_qubit_operation(r, state, spare, h, 1, ctrl)

print()
print(SurfaceVisualizer.amplitudes_ascii(state))

q0_on = ControlMask(0b001, 0b001)
table = Surface(2, 2)
control_combination_probabilities(r, table, Surface(4, 2), Surface(4, 2), q0_on, state)
print()
print(SurfaceVisualizer.conditional_summary_ascii(table, q0_on, num_qubits=3))

print(f"\nKernel dispatches: {r.total_dispatches()}")

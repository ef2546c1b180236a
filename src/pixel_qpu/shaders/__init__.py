"""Per-cell quantum kernels and the operations that dispatch them."""

from pixel_qpu.shaders.elementary import (
    decode_bytes_to_floats,
    encode_floats_to_bytes,
    fill_classical_state,
    fill_uniform,
    linear_overlay,
    overlay,
    upload_floats,
)
from pixel_qpu.shaders.masks import (
    DoubleBuffer,
    add_bit_constraint,
    build_mask,
    build_single_bit_mask,
    select_double_buffer,
)
from pixel_qpu.shaders.unitary import apply_qubit_operation, apply_swap
from pixel_qpu.shaders.reduction import (
    conditional_probability_step,
    control_combination_probabilities,
    finalize_conditional_probabilities,
    probabilities_from_amplitudes,
    scale,
)
from pixel_qpu.shaders.density import reduce_to_density_matrix

__all__ = [
    "fill_uniform",
    "fill_classical_state",
    "upload_floats",
    "encode_floats_to_bytes",
    "decode_bytes_to_floats",
    "overlay",
    "linear_overlay",
    "build_single_bit_mask",
    "add_bit_constraint",
    "build_mask",
    "select_double_buffer",
    "DoubleBuffer",
    "apply_qubit_operation",
    "apply_swap",
    "conditional_probability_step",
    "finalize_conditional_probabilities",
    "probabilities_from_amplitudes",
    "control_combination_probabilities",
    "scale",
    "reduce_to_density_matrix",
]

"""
Control-gated unitary kernels.

Amplitudes live in channels 0 (real) and 1 (imaginary). Both kernels leave
cells whose control is off exactly as they were in the source.
"""

from __future__ import annotations

import numpy as np
from numpy import ndarray

from pixel_qpu.addressing import bit_of, with_bit
from pixel_qpu.errors import ShapeMismatch
from pixel_qpu.kernel_registry import register_kernel
from pixel_qpu.renderer import Renderer
from pixel_qpu.surface import Surface, SurfaceFormat

F = SurfaceFormat.FLOAT


def _check_qubit(qubit: int, coords) -> int:
    qubit = int(qubit)
    n = coords.cell_count.bit_length() - 1
    if not 0 <= qubit < n:
        raise ShapeMismatch(
            f"Qubit {qubit} outside a {coords.width}x{coords.height} surface ({n} qubits)"
        )
    return qubit


def _complex(cells: ndarray) -> ndarray:
    return cells[:, 0].astype(np.float64) + 1j * cells[:, 1].astype(np.float64)


@register_kernel(
    "qubit_operation",
    inputs={"source": F, "control": F},
    matching=("source", "control"),
)
def _qubit_operation(coords, inputs, params) -> ndarray:
    matrix = np.asarray(params["matrix"], dtype=np.complex128)
    if matrix.shape != (2, 2):
        raise ShapeMismatch(f"Qubit operation needs a 2x2 matrix, got {matrix.shape}")
    target = _check_qubit(params["qubit"], coords)

    src = inputs["source"].cells
    a = coords.address
    a0 = with_bit(a, target, 0)
    a1 = with_bit(a, target, 1)
    admitted = inputs["control"].cells[a0, 0] != 0

    amps = _complex(src)
    high = bit_of(a, target).astype(bool)
    row0 = matrix[0, 0] * amps[a0] + matrix[0, 1] * amps[a1]
    row1 = matrix[1, 0] * amps[a0] + matrix[1, 1] * amps[a1]
    result = np.where(high, row1, row0)

    out = src.astype(np.float64)
    out[admitted] = 0.0
    out[admitted, 0] = result.real[admitted]
    out[admitted, 1] = result.imag[admitted]
    return out


@register_kernel(
    "swap",
    inputs={"source": F, "control": F},
    matching=("source", "control"),
)
def _swap(coords, inputs, params) -> ndarray:
    qa = _check_qubit(params["qubit_a"], coords)
    qb = _check_qubit(params["qubit_b"], coords)
    a = coords.address
    differs = bit_of(a, qa) != bit_of(a, qb)
    admitted = inputs["control"].cells[:, 0] != 0
    partner = np.where(differs & admitted, a ^ ((1 << qa) | (1 << qb)), a)
    return inputs["source"].cells[partner]


def apply_qubit_operation(
    renderer: Renderer,
    dst: Surface,
    src: Surface,
    matrix,
    target_qubit: int,
    control_surface: Surface,
) -> Surface:
    """
    Apply a 2x2 complex matrix to ``target_qubit`` where the control allows.

    Parameters
    ----------
    renderer : Renderer
    dst : Surface
        Output amplitudes.
    src : Surface
        Input amplitudes; same shape as ``dst``.
    matrix : array-like
        2x2 complex matrix, row-major. Need not be unitary: a zero matrix
        clears the admitted amplitudes.
    target_qubit : int
        Address bit the matrix acts on.
    control_surface : Surface
        Control surface; the pair ``(a0, a1)`` is transformed iff
        ``control_surface[a0]`` is non-zero.

    Example
    -------
    >>> from pixel_qpu import Renderer, Surface, NO_CONTROLS
    >>> from pixel_qpu.shaders import build_mask, fill_classical_state
    >>> r = Renderer()
    >>> state, out, ctrl = Surface(2, 1), Surface(2, 1), Surface(2, 1)
    >>> _ = fill_classical_state(r, state, 0)
    >>> _ = build_mask(r, ctrl, NO_CONTROLS)
    >>> _ = apply_qubit_operation(r, out, state, [[0, 1], [1, 0]], 0, ctrl)
    >>> out.read_amplitudes()
    array([0.+0.j, 1.+0.j])
    """
    return renderer.execute(
        "qubit_operation",
        dst,
        inputs={"source": src, "control": control_surface},
        params={"matrix": matrix, "qubit": target_qubit},
    )


def apply_swap(
    renderer: Renderer,
    dst: Surface,
    src: Surface,
    qubit_a: int,
    qubit_b: int,
    control_surface: Surface,
) -> Surface:
    """Exchange the ``|..1..0..>`` and ``|..0..1..>`` amplitudes of two qubits where admitted."""
    return renderer.execute(
        "swap",
        dst,
        inputs={"source": src, "control": control_surface},
        params={"qubit_a": qubit_a, "qubit_b": qubit_b},
    )

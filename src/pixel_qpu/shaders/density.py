"""
Density matrices from ensembles of amplitude vectors.

The input surface's address bits are split into *kept* qubits, which index a
position inside each state vector, and *margined* qubits, which index the
member of the ensemble. Summing outer products over the margined index gives
either the density matrix of a pure state (no margined qubits) or the partial
trace over the margined qubits.
"""

from __future__ import annotations

import numpy as np
from numpy import ndarray

from pixel_qpu.addressing import scatter_bits
from pixel_qpu.control import NO_CONTROLS, ControlMask
from pixel_qpu.errors import ShapeMismatch
from pixel_qpu.kernel_registry import register_kernel
from pixel_qpu.renderer import Renderer
from pixel_qpu.surface import Surface, SurfaceFormat


def _check_qubits(kept, margined, n: int) -> tuple[list[int], list[int]]:
    kept = [int(q) for q in kept]
    margined = [int(q) for q in margined]
    every = kept + margined
    if len(set(every)) != len(every):
        raise ShapeMismatch(f"Kept {kept} and margined {margined} qubits overlap")
    bad = [q for q in every if not 0 <= q < n]
    if bad:
        raise ShapeMismatch(f"Qubits {bad} outside the input's {n} address bits")
    return kept, margined


@register_kernel("superposition_to_density_matrix", inputs={"amplitudes": SurfaceFormat.FLOAT})
def _density_matrix(coords, inputs, params) -> ndarray:
    source = inputs["amplitudes"]
    kept, margined = _check_qubits(params["kept"], params["margined"], source.qubit_count)
    dim = 1 << len(kept)
    if coords.cell_count != dim * dim:
        raise ShapeMismatch(
            f"A {dim}x{dim} density matrix needs {dim * dim} cells,"
            f" output has {coords.cell_count}"
        )
    control = ControlMask(int(params["mask"]), int(params["value"]))

    cells = source.cells.astype(np.float64)
    amps = cells[:, 0] + 1j * cells[:, 1]
    i = scatter_bits(coords.address // dim, kept)
    j = scatter_bits(coords.address % dim, kept)

    total = np.zeros(coords.cell_count, dtype=np.complex128)
    for k in range(1 << len(margined)):
        member = scatter_bits(k, margined)
        row, col = i | member, j | member
        admitted = control.admits(row) & control.admits(col)
        total += np.where(admitted, amps[row] * np.conj(amps[col]), 0)

    out = np.zeros((coords.cell_count, 4))
    out[:, 0] = total.real
    out[:, 1] = total.imag
    return out


def reduce_to_density_matrix(
    renderer: Renderer,
    dst: Surface,
    amplitude_ensemble: Surface,
    kept_qubits,
    margined_qubits,
    control_mask: ControlMask = NO_CONTROLS,
) -> Surface:
    """
    Sum of ``v_k v_k^dagger`` over the ensemble members admitted by the mask.

    Parameters
    ----------
    renderer : Renderer
    dst : Surface
        Output with ``N*N`` cells, ``N = 2^len(kept_qubits)``. Entry
        ``(i, j)`` is stored at address ``i*N + j``; read it back with
        :meth:`Surface.read_matrix`.
    amplitude_ensemble : Surface
        Amplitudes in channels 0-1.
    kept_qubits : sequence of int
        Address bits forming the matrix index, least significant first.
    margined_qubits : sequence of int
        Address bits enumerating ensemble members. Address bits in neither
        list are held at 0.
    control_mask : ControlMask
        Member ``k`` contributes to entry ``(i, j)`` only if both input
        addresses are admitted.

    Returns
    -------
    Surface
        ``dst``, holding a Hermitian matrix whose diagonal is the marginal
        probability of each kept-qubit state.
    """
    return renderer.execute(
        "superposition_to_density_matrix",
        dst,
        inputs={"amplitudes": amplitude_ensemble},
        params={
            "kept": list(kept_qubits),
            "margined": list(margined_qubits),
            "mask": control_mask.mask,
            "value": control_mask.value,
        },
    )

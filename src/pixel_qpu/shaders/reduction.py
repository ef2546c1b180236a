"""
Probability reductions over amplitude surfaces.

The conditional-probability pipeline reduces one address bit per pass. A pass
over bit ``b`` writes the pairwise sum into the bit-0 cell of every pair and
an individual value into the bit-1 cell, chosen by ``keep_odd``. After one
pass per bit, cell ``x`` holds the probability mass of every state whose bits
set in ``x`` match their pass's ``keep_odd``, with the bits clear in ``x``
summed out. Any conditional probability over those bits is then a ratio of
two cells, read off by :func:`finalize_conditional_probabilities`.
"""

from __future__ import annotations

import logging

import numpy as np
from numpy import ndarray

from pixel_qpu.addressing import bit_of
from pixel_qpu.control import ControlMask
from pixel_qpu.errors import ShapeMismatch
from pixel_qpu.kernel_registry import register_kernel
from pixel_qpu.renderer import Renderer
from pixel_qpu.shaders.masks import DoubleBuffer
from pixel_qpu.surface import Surface, SurfaceFormat

log = logging.getLogger(__name__)

F = SurfaceFormat.FLOAT


# ---------------------------------------------------------------------------
# Kernels
# ---------------------------------------------------------------------------

@register_kernel("probabilities_from_amplitudes", inputs={"amplitudes": F}, matching=("amplitudes",))
def _probabilities(coords, inputs, params) -> ndarray:
    cells = inputs["amplitudes"].cells.astype(np.float64)
    out = np.zeros_like(cells)
    out[:, 0] = np.sum(cells * cells, axis=1)
    return out


@register_kernel("scaled", inputs={"source": F}, matching=("source",))
def _scaled(coords, inputs, params) -> ndarray:
    return inputs["source"].cells.astype(np.float64) * float(params["factor"])


@register_kernel("conditional_probability_step", inputs={"source": F}, matching=("source",))
def _conditional_step(coords, inputs, params) -> ndarray:
    bit = int(params["bit"])
    if bit < 0:
        raise ShapeMismatch(f"Negative bit index {bit}")
    step = 1 << bit
    src = inputs["source"].cells[:, 0].astype(np.float64)
    a = coords.address
    high = bit_of(a, bit).astype(bool)
    low_partner = np.where(high, a - step, a)
    high_partner = np.minimum(low_partner + step, coords.cell_count - 1)

    pair_sum = src[low_partner] + np.where(
        low_partner + step < coords.cell_count, src[high_partner], 0.0
    )
    kept = src if params["keep_odd"] else src[low_partner]

    out = np.zeros((coords.cell_count, 4))
    out[:, 0] = np.where(high, kept, pair_sum)
    return out


@register_kernel("conditional_probability_finalize", inputs={"source": F})
def _conditional_finalize(coords, inputs, params) -> ndarray:
    source = inputs["source"]
    n = source.qubit_count
    condition = int(params["condition_bits"])
    if condition < 0 or condition >= source.cell_count:
        raise ShapeMismatch(f"Condition bits {condition:#x} exceed {n} qubit(s)")
    if coords.cell_count < n:
        raise ShapeMismatch(
            f"Summary needs {n} cells (one per qubit), output has {coords.cell_count}"
        )

    v = source.cells[:, 0].astype(np.float64)
    k = coords.address[coords.address < n]
    out = np.zeros((coords.cell_count, 4))
    out[k, 0] = v[0]
    out[k, 1] = v[1 << k]
    out[k, 2] = v[condition]
    out[k, 3] = v[condition ^ (1 << k)]
    return out


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def probabilities_from_amplitudes(renderer: Renderer, dst: Surface, amplitudes: Surface) -> Surface:
    """
    Squared magnitude of each cell into channel 0.

    All four channels are squared and summed, so a cell packing two complex
    numbers yields their combined probability.
    """
    return renderer.execute("probabilities_from_amplitudes", dst, inputs={"amplitudes": amplitudes})


def scale(renderer: Renderer, dst: Surface, src: Surface, factor: float) -> Surface:
    """Every channel of ``src`` multiplied by ``factor``."""
    return renderer.execute("scaled", dst, inputs={"source": src}, params={"factor": factor})


def conditional_probability_step(
    renderer: Renderer, dst: Surface, src: Surface, bit_index: int, keep_odd: bool
) -> Surface:
    """
    One pass of the conditional-probability pipeline.

    For each pair of addresses differing only in ``bit_index``, the bit-0
    cell receives ``low + high``. The bit-1 cell receives ``high`` when
    ``keep_odd`` is true, or ``low`` when it is false.
    """
    return renderer.execute(
        "conditional_probability_step",
        dst,
        inputs={"source": src},
        params={"bit": bit_index, "keep_odd": bool(keep_odd)},
    )


def finalize_conditional_probabilities(
    renderer: Renderer, dst: Surface, src: Surface, bit_mask_of_interest: int
) -> Surface:
    """
    Summarise a fully reduced pipeline surface, one cell per qubit.

    With ``v`` the channel-0 values of ``src`` and ``c`` the mask of
    interest, cell ``k`` holds::

        [v[0], v[1 << k], v[c], v[c ^ (1 << k)]]

    that is: total mass, mass with qubit ``k`` at its requested value, mass
    satisfying the condition, and mass satisfying the condition with qubit
    ``k``'s own constraint toggled. Cells past the qubit count are zero.
    """
    return renderer.execute(
        "conditional_probability_finalize",
        dst,
        inputs={"source": src},
        params={"condition_bits": bit_mask_of_interest},
    )


def control_combination_probabilities(
    renderer: Renderer,
    dst: Surface,
    scratch_a: Surface,
    scratch_b: Surface,
    control_mask: ControlMask,
    amplitudes: Surface,
) -> Surface:
    """
    Per-qubit probability table conditioned on ``control_mask``.

    Computes probabilities into ``scratch_a``, runs one pipeline pass per
    qubit (``keep_odd`` taken from the mask's value bit), alternating between
    the scratch surfaces, then finalizes into ``dst`` with the mask's
    constrained bits as the condition. Cell ``k`` of ``dst`` holds::

        [total, P(q_k = v_k), P(controls satisfied),
         P(controls satisfied with q_k's requirement toggled)]

    where ``v_k`` is bit ``k`` of ``control_mask.value``.
    """
    for s in (scratch_a, scratch_b):
        if not s.same_shape_as(amplitudes):
            raise ShapeMismatch(f"Scratch {s!r} does not match amplitudes {amplitudes!r}")

    n = amplitudes.qubit_count
    log.debug("Control combination table for %s over %d qubit(s)", control_mask, n)

    buf = DoubleBuffer(probabilities_from_amplitudes(renderer, scratch_a, amplitudes), scratch_b)
    for bit in range(n):
        keep_odd = bool((control_mask.value >> bit) & 1)
        conditional_probability_step(renderer, buf.spare, buf.result, bit, keep_odd)
        buf = buf.swapped()
    return finalize_conditional_probabilities(renderer, dst, buf.result, control_mask.mask)

"""
Control surfaces: a ControlMask materialised as 1.0 / 0.0 per address.

A control surface can be built in closed form (:func:`build_mask`) or one
bit at a time (:func:`build_single_bit_mask` then :func:`add_bit_constraint`),
and both give identical cells. :func:`select_double_buffer` builds incrementally
across two scratch surfaces without ever reading the surface being written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy import ndarray

from pixel_qpu.addressing import bit_of
from pixel_qpu.control import NO_CONTROLS, ControlMask
from pixel_qpu.errors import ShapeMismatch
from pixel_qpu.kernel_registry import register_kernel
from pixel_qpu.renderer import Renderer
from pixel_qpu.surface import Surface, SurfaceFormat

log = logging.getLogger(__name__)


def _mask_cells(admitted: ndarray) -> ndarray:
    out = np.zeros((admitted.size, 4), dtype=np.float32)
    out[:, 0] = admitted
    return out


def _check_bit(bit: int) -> int:
    bit = int(bit)
    if bit < 0:
        raise ShapeMismatch(f"Negative bit index {bit}")
    return bit


# ---------------------------------------------------------------------------
# Kernels
# ---------------------------------------------------------------------------

@register_kernel("single_bit_constraint")
def _single_bit_constraint(coords, inputs, params) -> ndarray:
    bit = _check_bit(params["bit"])
    return _mask_cells(bit_of(coords.address, bit) == int(bool(params["value"])))


@register_kernel(
    "add_bit_constraint",
    inputs={"base": SurfaceFormat.FLOAT},
    matching=("base",),
)
def _add_bit_constraint(coords, inputs, params) -> ndarray:
    bit = _check_bit(params["bit"])
    base = inputs["base"].cells[:, 0] != 0
    return _mask_cells(base & (bit_of(coords.address, bit) == int(bool(params["value"]))))


@register_kernel("control_mask")
def _control_mask(coords, inputs, params) -> ndarray:
    return _mask_cells((coords.address & int(params["mask"])) == int(params["value"]))


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def build_single_bit_mask(
    renderer: Renderer, dst: Surface, bit_index: int, desired_value: bool
) -> Surface:
    """1 where address bit ``bit_index`` equals ``desired_value``, else 0."""
    return renderer.execute(
        "single_bit_constraint", dst, params={"bit": bit_index, "value": desired_value}
    )


def add_bit_constraint(
    renderer: Renderer, dst: Surface, base: Surface, bit_index: int, desired_value: bool
) -> Surface:
    """
    Narrow the control surface ``base`` by one more bit.

    An address excluded by ``base`` stays excluded whatever the new bit says.
    """
    return renderer.execute(
        "add_bit_constraint",
        dst,
        inputs={"base": base},
        params={"bit": bit_index, "value": desired_value},
    )


def build_mask(renderer: Renderer, dst: Surface, control_mask: ControlMask) -> Surface:
    """1 where ``(address & mask) == value``, else 0."""
    return renderer.execute(
        "control_mask",
        dst,
        params={"mask": control_mask.mask, "value": control_mask.value},
    )


@dataclass(frozen=True)
class DoubleBuffer:
    """
    Which of two scratch surfaces holds fresh data.

    Attributes
    ----------
    result : Surface
        Surface holding the output of the last pass.
    spare : Surface
        The other surface; free to be overwritten.
    """

    result: Surface
    spare: Surface

    def swapped(self) -> DoubleBuffer:
        return DoubleBuffer(self.spare, self.result)


def select_double_buffer(
    renderer: Renderer,
    buffer_a: Surface,
    buffer_b: Surface,
    control_mask: ControlMask,
) -> DoubleBuffer:
    """
    Build ``control_mask``'s control surface using two scratch surfaces.

    The first constrained bit is written into ``buffer_a``; each further bit
    reads the fresh surface and writes the spare one. The returned
    :class:`DoubleBuffer` names the surface holding the finished mask.

    Raises
    ------
    ShapeMismatch
        If the two buffers differ in shape.
    """
    if not buffer_a.same_shape_as(buffer_b):
        raise ShapeMismatch(f"Double buffers differ: {buffer_a!r} vs {buffer_b!r}")

    bits = control_mask.constrained_bits()
    log.debug("Building control surface %s in %d pass(es)", control_mask, max(len(bits), 1))

    if control_mask == NO_CONTROLS:
        # Bit beyond the surface reads as 0 everywhere, so this admits all.
        build_single_bit_mask(renderer, buffer_a, buffer_a.qubit_count, False)
        return DoubleBuffer(buffer_a, buffer_b)

    first, rest = bits[0], bits[1:]
    buf = DoubleBuffer(
        build_single_bit_mask(renderer, buffer_a, first, control_mask.desired_value_for(first)),
        buffer_b,
    )
    for bit in rest:
        add_bit_constraint(renderer, buf.spare, buf.result, bit, control_mask.desired_value_for(bit))
        buf = buf.swapped()
    return buf

"""
Bit-level addressing between linear qubit addresses and surface coordinates.

A surface of width ``W = 2^w`` and height ``H = 2^h`` stores ``2^(w+h)``
amplitudes. The cell at ``(col, row)`` holds the amplitude of basis state
``row*W + col``: address bits ``0..w-1`` come from the column and bits
``w..w+h-1`` from the row.

All functions work on plain ints and on numpy integer arrays alike, which is
how kernels evaluate them for every cell at once.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from pixel_qpu.errors import ShapeMismatch


def is_power_of_two(n: int) -> bool:
    """True for 1, 2, 4, 8, ..."""
    return n > 0 and (n & (n - 1)) == 0


def qubit_count(width: int, height: int) -> int:
    """
    Number of address bits spanned by a ``width x height`` grid.

    Raises
    ------
    ShapeMismatch
        If either dimension is not a power of two.
    """
    if not (is_power_of_two(width) and is_power_of_two(height)):
        raise ShapeMismatch(
            f"Surface dimensions must be powers of two, got {width}x{height}"
        )
    return (width * height).bit_length() - 1


def to_address(col, row, width: int):
    """Linear address of the cell at ``(col, row)``."""
    return row * width + col


def from_address(address, width: int):
    """Inverse of :func:`to_address`: returns ``(col, row)``."""
    return address % width, address // width


def bit_of(address, i: int):
    """Value (0 or 1) of address bit ``i``."""
    return (address >> i) & 1


def with_bit(address, i: int, v):
    """``address`` with bit ``i`` forced to ``v``."""
    if isinstance(v, np.ndarray):
        return (address & ~(1 << i)) | (v.astype(np.int64) << i)
    return (address & ~(1 << i)) | (int(bool(v)) << i)


def scatter_bits(index, positions: Sequence[int]):
    """
    Spread the low bits of ``index`` onto the given address-bit positions.

    Bit ``t`` of ``index`` lands on address bit ``positions[t]``.

    >>> scatter_bits(0b11, [1, 3])
    10
    """
    result = index * 0
    for t, p in enumerate(positions):
        result = result | (bit_of(index, t) << p)
    return result

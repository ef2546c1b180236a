"""
Surfaces: fixed-size grids of 4-channel cells.

Float surfaces hold float32 channels and carry amplitudes, masks and
probabilities. Byte surfaces hold uint8 channels and are only written by the
float-to-byte packing kernel, for hosts that can only read back bytes.

Surfaces are caller-allocated and only ever written through a
:class:`~pixel_qpu.renderer.Renderer`.
"""

from __future__ import annotations

from enum import Enum

import numpy as np
from numpy import ndarray

from pixel_qpu.addressing import qubit_count
from pixel_qpu.errors import ShapeMismatch, UnsupportedSurfaceFormat


class SurfaceFormat(Enum):
    """Storage type of a surface's channels."""

    FLOAT = "float"
    BYTE = "byte"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(np.float32) if self is SurfaceFormat.FLOAT else np.dtype(np.uint8)


class Surface:
    """
    A ``width x height`` grid of 4-channel cells.

    Parameters
    ----------
    width, height : int
        Powers of two.
    fmt : SurfaceFormat
        Channel storage type. Defaults to float.

    Example
    -------
    >>> s = Surface(4, 2)
    >>> s.cell_count, s.qubit_count
    (8, 3)
    """

    def __init__(
        self, width: int, height: int, fmt: SurfaceFormat = SurfaceFormat.FLOAT
    ) -> None:
        self.width = int(width)
        self.height = int(height)
        self.fmt = fmt
        self.qubit_count = qubit_count(self.width, self.height)
        self._data = np.zeros((self.height, self.width, 4), dtype=fmt.dtype)

    @classmethod
    def like(cls, other: Surface, fmt: SurfaceFormat | None = None) -> Surface:
        """New zeroed surface with the same shape as ``other``."""
        return cls(other.width, other.height, fmt or other.fmt)

    @property
    def cell_count(self) -> int:
        return self.width * self.height

    @property
    def shape(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def cells(self) -> ndarray:
        """Read-only ``(cell_count, 4)`` view indexed by linear address."""
        view = self._data.reshape(self.cell_count, 4)
        view.flags.writeable = False
        return view

    def same_shape_as(self, other: Surface) -> bool:
        return self.shape == other.shape

    # -- Readback -----------------------------------------------------------

    def read_floats(self) -> ndarray:
        """Flat float32 copy of every channel, ``width*height*4`` entries."""
        if self.fmt is not SurfaceFormat.FLOAT:
            raise UnsupportedSurfaceFormat(
                f"read_floats() on a {self.fmt.value} surface; use read_bytes()"
            )
        return self._data.reshape(-1).copy()

    def read_bytes(self) -> ndarray:
        """Flat uint8 copy of every channel of a byte surface."""
        if self.fmt is not SurfaceFormat.BYTE:
            raise UnsupportedSurfaceFormat(
                f"read_bytes() on a {self.fmt.value} surface; use read_floats()"
            )
        return self._data.reshape(-1).copy()

    def read_amplitudes(self) -> ndarray:
        """Channels 0 and 1 of every cell as complex128, indexed by address."""
        cells = self.read_floats().reshape(-1, 4).astype(np.float64)
        return cells[:, 0] + 1j * cells[:, 1]

    def read_matrix(self) -> ndarray:
        """
        Amplitudes reshaped into a square matrix.

        Density-matrix outputs store entry ``(i, j)`` at address ``i*N + j``.
        """
        n = int(round(self.cell_count ** 0.5))
        if n * n != self.cell_count:
            raise ShapeMismatch(
                f"{self.width}x{self.height} surface does not hold a square matrix"
            )
        return self.read_amplitudes().reshape(n, n)

    # -- Renderer access ----------------------------------------------------

    def _store(self, cells: ndarray) -> None:
        """Overwrite every cell. Only the renderer calls this."""
        self._data = np.array(cells, dtype=self.fmt.dtype).reshape(
            self.height, self.width, 4
        )

    def __repr__(self) -> str:
        return f"Surface({self.width}x{self.height}, {self.fmt.value})"

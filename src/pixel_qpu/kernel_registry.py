"""
Kernel declarations and the registry the renderer looks them up in.

A kernel is a plain function ``(coords, inputs, params) -> cells`` evaluated
once per output cell. ``coords`` carries the column, row and linear address of
every output cell as arrays, so one call computes the whole surface; the
function returns an array of shape ``(cell_count, 4)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import numpy as np
from numpy import ndarray

from pixel_qpu.addressing import from_address
from pixel_qpu.errors import KernelCompileError
from pixel_qpu.surface import Surface, SurfaceFormat


@dataclass(frozen=True)
class Coordinates:
    """Per-cell coordinates of an output surface, flattened by address."""

    width: int
    height: int
    col: ndarray
    row: ndarray
    address: ndarray

    @classmethod
    def of(cls, surface: Surface) -> Coordinates:
        address = np.arange(surface.cell_count, dtype=np.int64)
        col, row = from_address(address, surface.width)
        return cls(surface.width, surface.height, col, row, address)

    @property
    def cell_count(self) -> int:
        return self.width * self.height


KernelFn = Callable[[Coordinates, Mapping[str, Surface], Mapping[str, Any]], ndarray]


@dataclass(frozen=True)
class KernelSpec:
    """
    A registered kernel.

    Attributes
    ----------
    name : str
        Kernel id used with ``Renderer.execute``.
    fn : KernelFn
        Per-cell map.
    inputs : dict[str, SurfaceFormat]
        Named input surfaces and the format each must have.
    matching : tuple[str, ...]
        Inputs that must have the same shape as the output.
    output_format : SurfaceFormat
        Format the output surface must have.
    """

    name: str
    fn: KernelFn
    inputs: dict[str, SurfaceFormat] = field(default_factory=dict)
    matching: tuple[str, ...] = ()
    output_format: SurfaceFormat = SurfaceFormat.FLOAT


_KERNELS: dict[str, KernelSpec] = {}


def register_kernel(
    name: str,
    inputs: Mapping[str, SurfaceFormat] | None = None,
    matching: tuple[str, ...] = (),
    output_format: SurfaceFormat = SurfaceFormat.FLOAT,
) -> Callable[[KernelFn], KernelFn]:
    """Decorator adding a per-cell kernel to the registry under ``name``."""

    def decorator(fn: KernelFn) -> KernelFn:
        if name in _KERNELS:
            raise KernelCompileError("Kernel registered twice", name)
        _KERNELS[name] = KernelSpec(
            name=name,
            fn=fn,
            inputs=dict(inputs or {}),
            matching=tuple(matching),
            output_format=output_format,
        )
        return fn

    return decorator


def get_kernel(name: str) -> KernelSpec:
    try:
        return _KERNELS[name]
    except KeyError:
        raise KernelCompileError(
            f"Unknown kernel. Available: {sorted(_KERNELS)}", name
        ) from None


def kernel_names() -> list[str]:
    return sorted(_KERNELS)

"""
Renderer: executes registered kernels against surfaces.

The renderer validates a dispatch (kernel id, bound inputs, formats, shapes,
aliasing), evaluates the kernel's per-cell map over every output cell in one
vectorised pass, and stores the result. Either the whole output is written or
an error is raised and nothing is.
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from pixel_qpu.errors import (
    KernelCompileError,
    ShapeMismatch,
    SurfaceAliasing,
    UnsupportedSurfaceFormat,
)
from pixel_qpu.kernel_registry import Coordinates, get_kernel
from pixel_qpu.surface import Surface

log = logging.getLogger(__name__)


def _env_flag(name: str, default: bool) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class RendererConfig:
    """
    Renderer options.

    Attributes
    ----------
    forbid_aliasing : bool
        Reject dispatches whose output is also bound as an input.
    trace : bool
        Log every dispatch at INFO rather than DEBUG.
    """

    forbid_aliasing: bool = True
    trace: bool = False

    @classmethod
    def from_env(cls) -> RendererConfig:
        """Read ``PIXEL_QPU_FORBID_ALIASING`` and ``PIXEL_QPU_TRACE``."""
        return cls(
            forbid_aliasing=_env_flag("PIXEL_QPU_FORBID_ALIASING", True),
            trace=_env_flag("PIXEL_QPU_TRACE", False),
        )


class Renderer:
    """
    Runs kernels by id.

    Parameters
    ----------
    config : RendererConfig, optional
        Defaults to ``RendererConfig()``.

    Example
    -------
    >>> from pixel_qpu import Renderer, Surface
    >>> r = Renderer()
    >>> s = Surface(2, 2)
    >>> _ = r.execute("uniform_color", s, params={"color": (1, 0, 0, 0)})
    >>> s.read_floats()[:4]
    array([1., 0., 0., 0.], dtype=float32)
    """

    def __init__(self, config: RendererConfig | None = None) -> None:
        self.config = config or RendererConfig()
        self.dispatch_counts: Counter[str] = Counter()

    def execute(
        self,
        kernel_id: str,
        output: Surface,
        inputs: Mapping[str, Surface] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Surface:
        """
        Run ``kernel_id`` and fully overwrite ``output``.

        Raises
        ------
        KernelCompileError
            Unknown kernel, inputs missing/unexpected for it, or a parameter
            the kernel reads was not passed.
        UnsupportedSurfaceFormat
            An input or the output has the wrong storage format.
        ShapeMismatch
            A matching input differs in shape from the output, or the kernel
            rejects the surfaces' dimensions.
        SurfaceAliasing
            ``output`` is also one of the inputs.
        """
        inputs = dict(inputs or {})
        params = dict(params or {})
        try:
            spec = get_kernel(kernel_id)
            self._validate(spec, output, inputs)
            try:
                cells = spec.fn(Coordinates.of(output), inputs, params)
            except KeyError as e:
                raise KernelCompileError(f"Missing parameter {e.args[0]!r}", kernel_id) from e
        except (KernelCompileError, ShapeMismatch, UnsupportedSurfaceFormat, SurfaceAliasing) as e:
            log.warning("Rejected dispatch of %r: %s", kernel_id, e)
            raise

        cells = np.asarray(cells)
        if cells.shape != (output.cell_count, 4):
            raise KernelCompileError(
                f"Kernel produced shape {cells.shape}, expected ({output.cell_count}, 4)",
                kernel_id,
            )
        output._store(cells)
        self.dispatch_counts[kernel_id] += 1

        level = logging.INFO if self.config.trace else logging.DEBUG
        log.log(level, "Ran %s -> %r (inputs: %s)", kernel_id, output, sorted(inputs))
        return output

    def _validate(self, spec, output: Surface, inputs: dict[str, Surface]) -> None:
        missing = set(spec.inputs) - set(inputs)
        unexpected = set(inputs) - set(spec.inputs)
        if missing or unexpected:
            raise KernelCompileError(
                f"Bad input bindings (missing={sorted(missing)}, unexpected={sorted(unexpected)})",
                spec.name,
            )

        if output.fmt is not spec.output_format:
            raise UnsupportedSurfaceFormat(
                f"{spec.name} writes {spec.output_format.value} surfaces, got {output!r}"
            )
        for name, fmt in spec.inputs.items():
            if inputs[name].fmt is not fmt:
                raise UnsupportedSurfaceFormat(
                    f"{spec.name} input {name!r} must be {fmt.value}, got {inputs[name]!r}"
                )

        for name in spec.matching:
            if not inputs[name].same_shape_as(output):
                raise ShapeMismatch(
                    f"{spec.name} input {name!r} is {inputs[name].width}x{inputs[name].height}"
                    f" but output is {output.width}x{output.height}"
                )

        if self.config.forbid_aliasing and any(s is output for s in inputs.values()):
            raise SurfaceAliasing(f"{spec.name} output is also bound as an input")

    def total_dispatches(self) -> int:
        return sum(self.dispatch_counts.values())

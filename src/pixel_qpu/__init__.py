"""
pixel-qpu: quantum register simulation as per-cell surface kernels.

A register's amplitudes live in a power-of-two grid of 4-channel cells.
Every circuit step is a kernel run over all cells by a Renderer:

- Control masks materialised as control surfaces
- Control-gated single-qubit operations and swaps
- Probabilities, conditional-probability pipelines, control tables
- Density matrices and partial traces from amplitude ensembles
- Lossless float <-> byte packing for byte-only readback

Quick Start:
    >>> from pixel_qpu import Renderer, Surface, NO_CONTROLS, shaders
    >>> r = Renderer()
    >>> state, out, ctrl = Surface(2, 2), Surface(2, 2), Surface(2, 2)
    >>> _ = shaders.fill_classical_state(r, state, 0)
    >>> _ = shaders.build_mask(r, ctrl, NO_CONTROLS)
    >>> h = [[2 ** -0.5, 2 ** -0.5], [2 ** -0.5, -(2 ** -0.5)]]
    >>> _ = shaders.apply_qubit_operation(r, out, state, h, 0, ctrl)
"""
import logging

__version__ = "0.1.0"

from .errors import (
    PixelQpuError,
    ShapeMismatch,
    InvalidControlMask,
    UnsupportedSurfaceFormat,
    KernelCompileError,
    SurfaceAliasing,
)
from .control import ControlMask, NO_CONTROLS
from .surface import Surface, SurfaceFormat
from .renderer import Renderer, RendererConfig

# Registers every kernel with the renderer's registry
from . import shaders
from .shaders import DoubleBuffer

from .visualization import SurfaceVisualizer, show_surface

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Errors
    'PixelQpuError',
    'ShapeMismatch',
    'InvalidControlMask',
    'UnsupportedSurfaceFormat',
    'KernelCompileError',
    'SurfaceAliasing',
    # Core
    'ControlMask',
    'NO_CONTROLS',
    'Surface',
    'SurfaceFormat',
    'Renderer',
    'RendererConfig',
    'DoubleBuffer',
    # Submodules
    'shaders',
    # Visualization
    'SurfaceVisualizer',
    'show_surface',
]

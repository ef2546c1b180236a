"""
Error types raised by pixel-qpu.

Every error is raised synchronously, before a kernel writes anything, so a
failed dispatch never leaves a half-written surface behind.
"""

from __future__ import annotations


class PixelQpuError(Exception):
    """Base class for all pixel-qpu errors."""


class ShapeMismatch(PixelQpuError, ValueError):
    """Surface dimensions are incompatible with a kernel or with a peer surface."""


class InvalidControlMask(PixelQpuError, ValueError):
    """A control mask requires bits that it does not constrain."""

    def __init__(self, message: str, mask: int = 0, value: int = 0) -> None:
        super().__init__(message)
        self.mask = mask
        self.value = value


class UnsupportedSurfaceFormat(PixelQpuError, TypeError):
    """A byte surface was given to a float kernel, or vice versa."""


class KernelCompileError(PixelQpuError):
    """The requested kernel does not exist or was bound with the wrong inputs."""

    def __init__(self, message: str, kernel_id: str = "") -> None:
        super().__init__(f"[{kernel_id}] {message}" if kernel_id else message)
        self.kernel_id = kernel_id


class SurfaceAliasing(PixelQpuError):
    """A kernel was asked to read the surface it is writing."""

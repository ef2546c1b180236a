"""
Elementary kernels: filling, uploading, byte packing and compositing.

These move data into and out of surfaces without any quantum semantics:

    - fill_uniform            constant value in every cell
    - fill_classical_state    one-hot basis state
    - upload_floats           raw float data, bit-exact
    - encode/decode bytes     lossless float32 <-> 4 bytes packing
    - overlay                 rectangular tile compositing
    - linear_overlay          row-major splice compositing
"""

from __future__ import annotations

import numpy as np
from numpy import ndarray

from pixel_qpu.errors import ShapeMismatch
from pixel_qpu.kernel_registry import register_kernel
from pixel_qpu.renderer import Renderer
from pixel_qpu.surface import Surface, SurfaceFormat

F = SurfaceFormat.FLOAT
B = SurfaceFormat.BYTE


# ---------------------------------------------------------------------------
# Kernels
# ---------------------------------------------------------------------------

@register_kernel("uniform_color")
def _uniform_color(coords, inputs, params) -> ndarray:
    color = np.asarray(params["color"], dtype=np.float32)
    if color.shape != (4,):
        raise ShapeMismatch(f"Uniform color needs 4 channels, got shape {color.shape}")
    return np.broadcast_to(color, (coords.cell_count, 4))


@register_kernel("classical_state")
def _classical_state(coords, inputs, params) -> ndarray:
    state = int(params["state"])
    if not 0 <= state < coords.cell_count:
        raise ShapeMismatch(
            f"Basis state {state} outside a {coords.width}x{coords.height} surface"
        )
    out = np.zeros((coords.cell_count, 4), dtype=np.float32)
    out[:, 0] = coords.address == state
    return out


@register_kernel("pixel_data")
def _pixel_data(coords, inputs, params) -> ndarray:
    data = np.asarray(params["data"], dtype=np.float32).reshape(-1)
    if data.size != coords.cell_count * 4:
        raise ShapeMismatch(
            f"Got {data.size} floats for a {coords.width}x{coords.height} surface"
            f" ({coords.cell_count * 4} expected)"
        )
    return data.reshape(coords.cell_count, 4)


@register_kernel("floats_to_bytes", inputs={"source": F}, output_format=B)
def _floats_to_bytes(coords, inputs, params) -> ndarray:
    source = inputs["source"]
    if coords.cell_count != source.cell_count * 4:
        raise ShapeMismatch(
            f"Byte surface needs {source.cell_count * 4} cells to hold"
            f" {source.width}x{source.height} floats, got {coords.cell_count}"
        )
    # One float per output cell, its little-endian bytes spread over 4 channels.
    packed = source.read_floats().astype("<f4", copy=False).view(np.uint8).reshape(-1, 4)
    return packed[coords.address]


@register_kernel("overlay", inputs={"fore": F, "back": F}, matching=("back",))
def _overlay(coords, inputs, params) -> ndarray:
    fore, back = inputs["fore"], inputs["back"]
    dx, dy = int(params["offset_col"]), int(params["offset_row"])
    if dx < 0 or dy < 0 or dx + fore.width > back.width or dy + fore.height > back.height:
        raise ShapeMismatch(
            f"{fore.width}x{fore.height} tile at ({dx}, {dy}) does not fit in"
            f" {back.width}x{back.height}"
        )
    out = back.cells.copy()
    inside = (
        (coords.col >= dx) & (coords.col < dx + fore.width)
        & (coords.row >= dy) & (coords.row < dy + fore.height)
    )
    fore_address = (coords.row[inside] - dy) * fore.width + (coords.col[inside] - dx)
    out[inside] = fore.cells[fore_address]
    return out


@register_kernel("linear_overlay", inputs={"fore": F, "back": F}, matching=("back",))
def _linear_overlay(coords, inputs, params) -> ndarray:
    fore, back = inputs["fore"], inputs["back"]
    offset = int(params["offset"])
    if offset < 0:
        raise ShapeMismatch(f"Negative linear offset {offset}")
    out = back.cells.copy()
    inside = (coords.address >= offset) & (coords.address < offset + fore.cell_count)
    out[inside] = fore.cells[coords.address[inside] - offset]
    return out


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def fill_uniform(
    renderer: Renderer, dst: Surface, c0: float, c1: float, c2: float, c3: float
) -> Surface:
    """Write ``(c0, c1, c2, c3)`` into every cell of ``dst``."""
    return renderer.execute("uniform_color", dst, params={"color": (c0, c1, c2, c3)})


def fill_classical_state(renderer: Renderer, dst: Surface, address: int) -> Surface:
    """Computational basis state ``|address>``: 1 in channel 0 of that cell, 0 elsewhere."""
    return renderer.execute("classical_state", dst, params={"state": address})


def upload_floats(renderer: Renderer, dst: Surface, data) -> Surface:
    """
    Copy a flat sequence of ``4*width*height`` floats into ``dst``.

    Values are stored as float32 without clamping; NaN and infinities read
    back unchanged.

    Raises
    ------
    ShapeMismatch
        If ``len(data) != dst.cell_count * 4``.
    """
    return renderer.execute("pixel_data", dst, params={"data": data})


def encode_floats_to_bytes(renderer: Renderer, dst: Surface, src: Surface) -> Surface:
    """
    Pack every float of ``src`` into one cell of the byte surface ``dst``.

    ``dst`` must have four times as many cells as ``src``. The packing keeps
    sign, exponent and mantissa bit-for-bit; see :func:`decode_bytes_to_floats`.
    """
    return renderer.execute("floats_to_bytes", dst, inputs={"source": src})


def decode_bytes_to_floats(data, width: int, height: int) -> ndarray:
    """
    Inverse of :func:`encode_floats_to_bytes`.

    Parameters
    ----------
    data : array-like of uint8
        Bytes read back from the packed surface.
    width, height : int
        Dimensions of the original float surface.

    Returns
    -------
    ndarray
        Flat float32 array of ``width*height*4`` values.
    """
    raw = np.asarray(data, dtype=np.uint8).reshape(-1)
    expected = width * height * 4 * 4
    if raw.size != expected:
        raise ShapeMismatch(
            f"Got {raw.size} bytes, a {width}x{height} float surface packs to {expected}"
        )
    return np.frombuffer(raw.tobytes(), dtype="<f4").astype(np.float32)


def overlay(
    renderer: Renderer,
    dst: Surface,
    offset_col: int,
    offset_row: int,
    fore: Surface,
    back: Surface,
) -> Surface:
    """``back`` with the whole of ``fore`` pasted at ``(offset_col, offset_row)``."""
    return renderer.execute(
        "overlay",
        dst,
        inputs={"fore": fore, "back": back},
        params={"offset_col": offset_col, "offset_row": offset_row},
    )


def linear_overlay(
    renderer: Renderer, dst: Surface, linear_offset: int, fore: Surface, back: Surface
) -> Surface:
    """
    ``back`` with ``fore``'s cells spliced in at consecutive addresses.

    Cells wrap across ``back``'s rows; any that would land past the last
    address are dropped.
    """
    return renderer.execute(
        "linear_overlay",
        dst,
        inputs={"fore": fore, "back": back},
        params={"offset": linear_offset},
    )

"""Tests for surfaces, the kernel registry and the renderer."""

import logging

import numpy as np
import pytest

from pixel_qpu import (
    KernelCompileError,
    Renderer,
    RendererConfig,
    ShapeMismatch,
    Surface,
    SurfaceAliasing,
    SurfaceFormat,
    UnsupportedSurfaceFormat,
)
from pixel_qpu.kernel_registry import Coordinates, get_kernel, kernel_names
from pixel_qpu.logging_config import get_logger, setup_logging
from pixel_qpu.shaders import fill_uniform, upload_floats


@pytest.fixture
def renderer():
    return Renderer()


# ---------------------------------------------------------------------------
# Surface
# ---------------------------------------------------------------------------

def test_new_surface_is_zero():
    s = Surface(4, 2)
    assert s.cell_count == 8
    assert s.qubit_count == 3
    np.testing.assert_array_equal(s.read_floats(), np.zeros(32, dtype=np.float32))


def test_surface_dimensions_must_be_powers_of_two():
    with pytest.raises(ShapeMismatch):
        Surface(3, 2)
    with pytest.raises(ShapeMismatch):
        Surface(4, 0)


def test_readback_format_checked():
    with pytest.raises(UnsupportedSurfaceFormat):
        Surface(2, 2).read_bytes()
    with pytest.raises(UnsupportedSurfaceFormat):
        Surface(2, 2, SurfaceFormat.BYTE).read_floats()
    assert Surface(2, 2, SurfaceFormat.BYTE).read_bytes().dtype == np.uint8


def test_readback_is_a_copy(renderer):
    s = Surface(2, 1)
    upload_floats(renderer, s, np.arange(8, dtype=np.float32))
    floats = s.read_floats()
    floats[:] = -1
    np.testing.assert_array_equal(s.read_floats(), np.arange(8, dtype=np.float32))


def test_upload_does_not_alias_caller_array(renderer):
    data = np.arange(8, dtype=np.float32)
    s = Surface(2, 1)
    upload_floats(renderer, s, data)
    data[0] = 99
    assert s.read_floats()[0] == 0


def test_read_amplitudes_and_matrix(renderer):
    s = Surface(2, 2)
    upload_floats(renderer, s, [1, 2, 0, 0, 3, 4, 0, 0, 5, 6, 0, 0, 7, 8, 0, 0])
    np.testing.assert_array_equal(s.read_amplitudes(), [1 + 2j, 3 + 4j, 5 + 6j, 7 + 8j])
    np.testing.assert_array_equal(s.read_matrix(), [[1 + 2j, 3 + 4j], [5 + 6j, 7 + 8j]])
    with pytest.raises(ShapeMismatch):
        Surface(2, 1).read_matrix()


def test_like_and_same_shape():
    s = Surface(4, 2)
    t = Surface.like(s)
    assert t.same_shape_as(s) and t is not s
    assert Surface.like(s, SurfaceFormat.BYTE).fmt is SurfaceFormat.BYTE
    assert not Surface(2, 4).same_shape_as(s)


def test_cells_view_is_read_only():
    s = Surface(2, 2)
    with pytest.raises(ValueError):
        s.cells[0, 0] = 1.0


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def test_all_kernels_registered():
    expected = {
        "uniform_color", "classical_state", "pixel_data", "floats_to_bytes",
        "overlay", "linear_overlay", "single_bit_constraint",
        "add_bit_constraint", "control_mask", "qubit_operation", "swap",
        "probabilities_from_amplitudes", "scaled",
        "conditional_probability_step", "conditional_probability_finalize",
        "superposition_to_density_matrix",
    }
    assert expected <= set(kernel_names())


def test_unknown_kernel():
    with pytest.raises(KernelCompileError, match="Unknown kernel"):
        get_kernel("no_such_kernel")


def test_coordinates():
    c = Coordinates.of(Surface(4, 2))
    np.testing.assert_array_equal(c.address, np.arange(8))
    np.testing.assert_array_equal(c.col, [0, 1, 2, 3, 0, 1, 2, 3])
    np.testing.assert_array_equal(c.row, [0, 0, 0, 0, 1, 1, 1, 1])
    assert c.cell_count == 8


# ---------------------------------------------------------------------------
# Dispatch validation
# ---------------------------------------------------------------------------

def test_execute_unknown_kernel(renderer):
    with pytest.raises(KernelCompileError):
        renderer.execute("nope", Surface(2, 2))


def test_execute_missing_and_unexpected_inputs(renderer):
    with pytest.raises(KernelCompileError, match="missing"):
        renderer.execute("scaled", Surface(2, 2), params={"factor": 2})
    with pytest.raises(KernelCompileError, match="unexpected"):
        renderer.execute(
            "uniform_color", Surface(2, 2),
            inputs={"source": Surface(2, 2)}, params={"color": (0, 0, 0, 0)},
        )


def test_execute_missing_parameter(renderer, caplog):
    dst = Surface(4, 4)
    with caplog.at_level(logging.WARNING, logger="pixel_qpu"):
        with pytest.raises(KernelCompileError, match="Missing parameter 'offset_col'"):
            renderer.execute(
                "overlay", dst, inputs={"fore": Surface(2, 2), "back": Surface(4, 4)}
            )
    assert any("Rejected" in r.getMessage() for r in caplog.records)
    assert renderer.dispatch_counts["overlay"] == 0


def test_execute_shape_mismatch(renderer):
    with pytest.raises(ShapeMismatch):
        renderer.execute("scaled", Surface(2, 2), inputs={"source": Surface(4, 2)}, params={"factor": 1})


def test_execute_wrong_formats(renderer):
    with pytest.raises(UnsupportedSurfaceFormat):
        fill_uniform(renderer, Surface(2, 2, SurfaceFormat.BYTE), 1, 2, 3, 4)
    with pytest.raises(UnsupportedSurfaceFormat):
        renderer.execute(
            "scaled", Surface(2, 2),
            inputs={"source": Surface(2, 2, SurfaceFormat.BYTE)}, params={"factor": 1},
        )


def test_failed_dispatch_leaves_output_untouched(renderer):
    s = Surface(2, 2)
    fill_uniform(renderer, s, 1, 2, 3, 4)
    with pytest.raises(ShapeMismatch):
        upload_floats(renderer, s, [0.0] * 3)
    np.testing.assert_array_equal(s.read_floats(), [1, 2, 3, 4] * 4)


def test_aliasing_rejected(renderer):
    s = Surface(2, 2)
    with pytest.raises(SurfaceAliasing):
        renderer.execute("scaled", s, inputs={"source": s}, params={"factor": 2})


def test_aliasing_allowed_when_configured():
    r = Renderer(RendererConfig(forbid_aliasing=False))
    s = Surface(2, 1)
    upload_floats(r, s, np.arange(8))
    r.execute("scaled", s, inputs={"source": s}, params={"factor": 2})
    np.testing.assert_array_equal(s.read_floats(), np.arange(8) * 2)


def test_dispatch_counts(renderer):
    s = Surface(2, 2)
    fill_uniform(renderer, s, 0, 0, 0, 0)
    fill_uniform(renderer, s, 1, 1, 1, 1)
    assert renderer.dispatch_counts["uniform_color"] == 2
    assert renderer.total_dispatches() == 2


# ---------------------------------------------------------------------------
# Configuration and logging
# ---------------------------------------------------------------------------

def test_config_from_env(monkeypatch):
    monkeypatch.setenv("PIXEL_QPU_FORBID_ALIASING", "0")
    monkeypatch.setenv("PIXEL_QPU_TRACE", "true")
    config = RendererConfig.from_env()
    assert config.forbid_aliasing is False
    assert config.trace is True


def test_config_defaults(monkeypatch):
    monkeypatch.delenv("PIXEL_QPU_FORBID_ALIASING", raising=False)
    monkeypatch.delenv("PIXEL_QPU_TRACE", raising=False)
    assert RendererConfig.from_env() == RendererConfig()


def test_dispatch_logged(renderer, caplog):
    with caplog.at_level(logging.DEBUG, logger="pixel_qpu"):
        fill_uniform(renderer, Surface(2, 2), 0, 0, 0, 0)
    assert any("uniform_color" in r.getMessage() for r in caplog.records)


def test_trace_logs_at_info(caplog):
    r = Renderer(RendererConfig(trace=True))
    with caplog.at_level(logging.INFO, logger="pixel_qpu"):
        fill_uniform(r, Surface(2, 2), 0, 0, 0, 0)
    assert any(rec.levelno == logging.INFO for rec in caplog.records)


def test_rejected_dispatch_logged(renderer, caplog):
    with caplog.at_level(logging.WARNING, logger="pixel_qpu"):
        with pytest.raises(KernelCompileError):
            renderer.execute("nope", Surface(2, 2))
    assert any("Rejected" in r.getMessage() for r in caplog.records)


def test_setup_logging(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    logger = setup_logging(level=logging.DEBUG, log_file=log_file)
    try:
        assert logger.name == "pixel_qpu"
        get_logger("shaders").debug("hello")
        for h in logger.handlers:
            h.flush()
        assert "hello" in log_file.read_text()
    finally:
        for h in list(logger.handlers):
            if not isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
                h.close()
        logger.setLevel(logging.NOTSET)


def test_setup_logging_closes_replaced_handlers(tmp_path):
    logger = setup_logging(level=logging.INFO, log_file=tmp_path / "a.log")
    try:
        first = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(first) == 1

        setup_logging(level=logging.INFO, log_file=tmp_path / "b.log")
        assert first[0] not in logger.handlers
        assert first[0].stream is None
        files = [h.baseFilename for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert files == [str((tmp_path / "b.log").resolve())]
    finally:
        for h in list(logger.handlers):
            if not isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
                h.close()
        logger.setLevel(logging.NOTSET)


def test_get_logger_names():
    assert get_logger("shaders").name == "pixel_qpu.shaders"
    assert get_logger("pixel_qpu.renderer").name == "pixel_qpu.renderer"

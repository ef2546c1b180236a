"""
Tests for the text views.
"""
import numpy as np

from pixel_qpu import NO_CONTROLS, ControlMask, Renderer, Surface, show_surface
from pixel_qpu.shaders import (
    control_combination_probabilities,
    fill_classical_state,
    upload_floats,
)
from pixel_qpu.visualization import SurfaceVisualizer


def _surface(data, width, height):
    s = Surface(width, height)
    upload_floats(Renderer(), s, data)
    return s


class TestAmplitudes:
    def test_classical_state(self):
        s = Surface(2, 2)
        fill_classical_state(Renderer(), s, 2)
        text = SurfaceVisualizer.amplitudes_ascii(s)
        assert text.startswith("Amplitudes:")
        assert "|10⟩" in text
        assert "|00⟩" not in text
        assert "100.0%" in text

    def test_phase_marks(self):
        h = 1 / np.sqrt(2)
        s = _surface([h, 0, 0, 0, -h, 0, 0, 0], 2, 1)
        lines = SurfaceVisualizer.amplitudes_ascii(s).splitlines()
        assert "(π)" not in lines[2]
        assert "(π)" in lines[3]

    def test_threshold_hides_small_entries(self):
        s = _surface([1, 0, 0, 0, 0.05, 0, 0, 0], 2, 1)
        assert "|1⟩" not in SurfaceVisualizer.amplitudes_ascii(s)
        assert "|1⟩" in SurfaceVisualizer.amplitudes_ascii(s, threshold=0)

    def test_show_surface(self, capsys):
        s = Surface(2, 1)
        fill_classical_state(Renderer(), s, 1)
        show_surface(s)
        assert "|1⟩" in capsys.readouterr().out


class TestProbabilities:
    def test_channel_zero(self):
        s = _surface([0.25, 9, 9, 9, 0.75, 9, 9, 9], 2, 1)
        text = SurfaceVisualizer.probabilities_ascii(s)
        assert text.startswith("Probabilities:")
        assert " 25.0%" in text
        assert " 75.0%" in text


class TestConditionalSummary:
    # probabilities 1, 4, 9, ..., 64 over three qubits, total 204
    AMPLITUDES = [
        0, 1, 0, 0,
        2, 0, 0, 0,
        3, 0, 0, 0,
        4, 0, 0, 0,
        5, 0, 0, 0,
        6, 0, 0, 0,
        7, 0, 0, 0,
        8, 0, 0, 0,
    ]

    def _table(self, control_mask):
        r = Renderer()
        table = Surface(2, 2)
        control_combination_probabilities(
            r, table, Surface(4, 2), Surface(4, 2), control_mask,
            _surface(self.AMPLITUDES, 4, 2),
        )
        text = SurfaceVisualizer.conditional_summary_ascii(table, control_mask, num_qubits=3)
        return [line.split() for line in text.splitlines()[2:]]

    def test_no_controls(self):
        rows = self._table(NO_CONTROLS)
        assert rows == [
            ["q0", "58.8%", "58.8%"],
            ["q1", "67.6%", "67.6%"],
            ["q2", "85.3%", "85.3%"],
        ]

    def test_with_controls(self):
        # q0 = 1 and q1 = 0; q2 is free
        rows = self._table(ControlMask(0b011, 0b001))
        assert rows == [
            ["q0", "58.8%", "60.6%"],
            ["q1", "67.6%", "66.7%"],
            ["q2", "85.3%", "90.0%"],
        ]

    def test_percentages_in_range(self):
        rng = np.random.default_rng(7)
        amps = np.zeros((8, 4))
        amps[:, :2] = rng.random((8, 2)) - 0.5
        for mask in (NO_CONTROLS, ControlMask(0b100, 0b100), ControlMask(0b111, 0b010)):
            r = Renderer()
            table = Surface(2, 2)
            control_combination_probabilities(
                r, table, Surface(4, 2), Surface(4, 2), mask, _surface(amps.ravel(), 4, 2)
            )
            text = SurfaceVisualizer.conditional_summary_ascii(table, mask, num_qubits=3)
            for line in text.splitlines()[2:]:
                for cell in line.split()[1:]:
                    assert 0.0 <= float(cell.rstrip('%')) <= 100.0

    def test_zero_total_is_nan(self):
        s = _surface([0] * 4, 1, 1)
        lines = SurfaceVisualizer.conditional_summary_ascii(s).splitlines()
        assert "nan" in lines[2]

"""
Text views of surfaces.

Features:
- Amplitude bar charts with phase (no dependencies)
- Probability bar charts
- Per-qubit conditional probability tables
"""
import numpy as np
from typing import Optional

from pixel_qpu.control import NO_CONTROLS, ControlMask
from pixel_qpu.surface import Surface


class SurfaceVisualizer:
    """
    Render amplitude and probability surfaces as ASCII.
    """

    @staticmethod
    def amplitudes_ascii(surface: Surface, threshold: float = 0.01) -> str:
        """
        Display the amplitudes held in channels 0-1 as a bar chart.
        """
        amps = surface.read_amplitudes()
        n = surface.qubit_count
        lines = []
        lines.append("Amplitudes:")
        lines.append("─" * 50)

        for i, amp in enumerate(amps):
            prob = np.abs(amp) ** 2
            if prob < threshold:
                continue

            bitstring = format(i, f'0{n}b') if n else '0'
            magnitude = np.abs(amp)
            phase = np.angle(amp)

            bar = '█' * int(min(prob, 1.0) * 40)

            if abs(phase) < 0.01:
                phase_str = ''
            elif abs(abs(phase) - np.pi) < 0.01:
                phase_str = ' (π)'
            else:
                phase_str = f' ({phase:.2f})'

            lines.append(f"|{bitstring}⟩: {bar:40s} {magnitude:.3f}{phase_str} ({prob*100:.1f}%)")

        return '\n'.join(lines)

    @staticmethod
    def probabilities_ascii(surface: Surface, threshold: float = 0.01) -> str:
        """Display channel 0 of a probability surface."""
        probs = surface.read_floats().reshape(-1, 4)[:, 0]
        n = surface.qubit_count
        lines = []
        lines.append("Probabilities:")
        lines.append("─" * 50)

        for i, prob in enumerate(probs):
            if prob < threshold:
                continue
            bitstring = format(i, f'0{n}b') if n else '0'
            bar = '█' * int(min(prob, 1.0) * 40)
            lines.append(f"|{bitstring}⟩: {bar:40s} {prob*100:5.1f}%")

        return '\n'.join(lines)

    @staticmethod
    def conditional_summary_ascii(
        summary: Surface,
        control_mask: ControlMask = NO_CONTROLS,
        num_qubits: Optional[int] = None,
    ) -> str:
        """
        Display a control combination table, one line per qubit.

        ``summary`` is the output of ``control_combination_probabilities``
        for ``control_mask``; cell ``k`` is ``[total, kept, condition,
        toggled]``. Both columns give the probability that qubit ``k`` is 1:
        unconditionally, and given the controls on the other qubits.
        """
        cells = summary.read_floats().reshape(-1, 4).astype(np.float64)
        if num_qubits is None:
            num_qubits = summary.cell_count
        lines = []
        lines.append("Qubit   P(1)       P(1 | controls)")
        lines.append("─" * 50)
        for k in range(num_qubits):
            total, kept, condition, toggled = cells[k]
            wanted = control_mask.desired_value_for(k)
            p = kept / total if total else float('nan')
            if wanted is None:
                # toggled adds q_k = 0 to the controls
                c = toggled / condition if condition else float('nan')
            else:
                # toggled drops q_k's own control
                c = condition / toggled if toggled else float('nan')
            if not wanted:
                p, c = 1 - p, 1 - c
            lines.append(f"q{k:<5d} {p*100:8.1f}%   {c*100:8.1f}%")
        return '\n'.join(lines)


def show_surface(surface: Surface, threshold: float = 0.01) -> None:
    """Print the amplitudes of a surface."""
    print(SurfaceVisualizer.amplitudes_ascii(surface, threshold))

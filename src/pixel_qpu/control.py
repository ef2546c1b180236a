"""
Control masks: which addresses an operation is allowed to touch.

A ``ControlMask(mask, value)`` admits address ``a`` iff ``(a & mask) == value``.
Each set bit of ``mask`` is a control qubit; the matching bit of ``value`` is
the state that control must be in.
"""

from __future__ import annotations

from dataclasses import dataclass

from pixel_qpu.errors import InvalidControlMask


@dataclass(frozen=True)
class ControlMask:
    """
    Immutable ``(mask, value)`` pair.

    Attributes
    ----------
    mask : int
        Bits that are constrained.
    value : int
        Required values for the constrained bits. Must not set bits outside
        ``mask``.

    Example
    -------
    >>> m = ControlMask(0b101, 0b100)
    >>> m.admits(0b110), m.admits(0b111)
    (True, False)
    """

    mask: int
    value: int

    def __post_init__(self) -> None:
        if self.mask < 0 or self.value < 0:
            raise InvalidControlMask(
                f"Control mask fields must be non-negative, got ({self.mask}, {self.value})",
                self.mask,
                self.value,
            )
        if self.value & ~self.mask:
            raise InvalidControlMask(
                f"Value {self.value:#x} sets bits outside mask {self.mask:#x}",
                self.mask,
                self.value,
            )

    def admits(self, address):
        """Whether ``address`` (int or integer array) satisfies the mask."""
        return (address & self.mask) == self.value

    def includes(self, bit: int) -> bool:
        """Whether ``bit`` is one of the constrained bits."""
        return bool((self.mask >> bit) & 1)

    def desired_value_for(self, bit: int) -> bool | None:
        """Required value of ``bit``, or None if it is unconstrained."""
        if not self.includes(bit):
            return None
        return bool((self.value >> bit) & 1)

    def with_constraint(self, bit: int, desired_value: bool) -> ControlMask:
        """Mask with one more constrained bit."""
        return self.combine(ControlMask(1 << bit, int(bool(desired_value)) << bit))

    def combine(self, other: ControlMask) -> ControlMask:
        """
        Mask admitting only addresses admitted by both masks.

        Raises
        ------
        InvalidControlMask
            If the two masks require opposite values for a shared bit.
        """
        overlap = self.mask & other.mask
        if (self.value & overlap) != (other.value & overlap):
            raise InvalidControlMask(
                f"Conflicting control requirements: {self} vs {other}",
                self.mask | other.mask,
                self.value | other.value,
            )
        return ControlMask(self.mask | other.mask, self.value | other.value)

    def constrained_bits(self) -> list[int]:
        """Indices of the constrained bits, lowest first."""
        return [i for i in range(self.mask.bit_length()) if self.includes(i)]

    def __str__(self) -> str:
        if self.mask == 0:
            return "No Controls"
        n = self.mask.bit_length()
        chars = []
        for i in range(n):
            v = self.desired_value_for(i)
            chars.append("_" if v is None else str(int(v)))
        return "".join(chars)


NO_CONTROLS = ControlMask(0, 0)
"""The identity mask: admits every address."""

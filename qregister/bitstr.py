# qregister/bitstr.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BitStr:
    """
    Fixed-length bit string literal.

    The leftmost character is the highest qubit, so ``bit("100")`` has value 4
    and sets qubit 2.

    Attributes
    ----------
    value : int
        Integer value of the configuration.
    length : int
        Number of bits, including leading zeros.
    """

    value: int
    length: int

    def __post_init__(self):
        if self.length < 0:
            raise ValueError("BitStr length must be non-negative")
        if not 0 <= self.value < (1 << self.length):
            raise ValueError(f"value {self.value} does not fit in {self.length} bits")

    @classmethod
    def parse(cls, text: str) -> BitStr:
        """Parse a literal such as ``"1011"`` (underscores are ignored)."""
        digits = text.replace("_", "")
        if any(ch not in "01" for ch in digits):
            raise ValueError(f"invalid bit string literal: {text!r}")
        return cls(int(digits, 2) if digits else 0, len(digits))

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __len__(self) -> int:
        return self.length

    def __getitem__(self, qubit: int) -> int:
        """Bit of qubit `qubit` (0 is the rightmost character)."""
        if not 0 <= qubit < self.length:
            raise IndexError(f"qubit {qubit} out of range [0, {self.length})")
        return (self.value >> qubit) & 1

    def __str__(self) -> str:
        return format(self.value, f"0{self.length}b") if self.length else ""

    def __repr__(self) -> str:
        return f'bit"{self}"'


def bit(text: str) -> BitStr:
    """Shorthand for :meth:`BitStr.parse`."""
    return BitStr.parse(text)

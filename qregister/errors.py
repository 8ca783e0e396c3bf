# qregister/errors.py
from __future__ import annotations


class RegisterError(Exception):
    """Base class for every error raised by the register layer."""


class UnimplementedCapability(RegisterError, NotImplementedError):
    """A backend does not provide a primitive of the register contract."""

    def __init__(self, operation: str, backend: str):
        self.operation = operation
        self.backend = backend
        super().__init__(f"{backend} does not implement capability '{operation}'")


class InvalidPartition(RegisterError, ValueError):
    """Malformed qubit locations, or a target active count out of range."""


class ShapeMismatch(RegisterError, ValueError):
    """Registers with incompatible qubit or batch counts were combined."""


class DimensionOverflow(RegisterError, ValueError):
    """A bit configuration needs more bits than there are active qubits."""

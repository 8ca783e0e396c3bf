# qregister/selection.py
"""
Function forms of selection, collapse and partial trace.

Each function optionally takes qubit locations. With `locs` the operation
runs on those qubits through :func:`~qregister.partition.focused`, so the
caller's partition is restored afterwards (minus the qubits that were
removed, for :func:`select`).
"""
from __future__ import annotations

from typing import Any, Sequence

from qregister.bitstr import BitStr
from qregister.partition import as_locs, check_locs, focused
from qregister.register import AbstractRegister


def select(reg: AbstractRegister, bits: Any, locs: Sequence[int] = ()) -> AbstractRegister:
    """
    Keep only the branch where the active qubits (or `locs`) read `bits`, and drop them.

    With `locs`, the other qubits keep their active/inactive status.
    """
    locs = check_locs(as_locs(locs), reg.nqubits)
    if not locs:
        return reg.select(bits)
    with focused(reg, *locs):
        reg.select(bits)
    return reg


def selected(reg: AbstractRegister, bits: Any, locs: Sequence[int] = ()) -> AbstractRegister:
    """Non-mutating :func:`select`."""
    return select(reg.copy(), bits, locs)


def collapseto(reg: AbstractRegister, config: int | BitStr = 0, locs: Sequence[int] = ()) -> AbstractRegister:
    """Force the active qubits (or `locs`) into basis state `config`."""
    locs = as_locs(locs)
    if not locs:
        return reg.collapseto(config)
    with focused(reg, *locs):
        reg.collapseto(config)
    return reg


def partial_tr(reg: AbstractRegister, *locs: int) -> AbstractRegister:
    """Trace out the qubits at `locs`; returns a new register."""
    return reg.partial_tr(*locs)


def nremain(reg: AbstractRegister) -> int:
    return reg.nremain


def invorder(reg: AbstractRegister) -> AbstractRegister:
    """Reverse the active qubits of `reg` in place."""
    return reg.invorder()


def basis(reg: AbstractRegister) -> range:
    return reg.basis()

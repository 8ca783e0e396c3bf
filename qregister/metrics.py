# qregister/metrics.py
"""
State metrics over the active qubits of two registers.

Both metrics work on reduced density matrices, so they apply equally to pure
and mixed backends. A register with ``nbatch == 1`` is broadcast against a
batched one.
"""
from __future__ import annotations

import numpy as np

from qregister.errors import ShapeMismatch
from qregister.register import AbstractRegister


def density_matrix(reg: AbstractRegister) -> np.ndarray:
    """Reduced density matrices of the active qubits, shape ``(nbatch, D, D)``."""
    return reg.density_matrix()


rho = density_matrix


def probs(reg: AbstractRegister) -> np.ndarray:
    """Active-qubit probabilities, shape ``(nbatch, 2**nactive)``."""
    return reg.probs()


def _paired(r1: AbstractRegister, r2: AbstractRegister) -> tuple[np.ndarray, np.ndarray]:
    if r1.nqubits != r2.nqubits or r1.nactive != r2.nactive:
        raise ShapeMismatch(
            f"registers differ in shape: {r1.nactive}/{r1.nqubits} vs {r2.nactive}/{r2.nqubits} active qubits"
        )
    if r1.nbatch != r2.nbatch and 1 not in (r1.nbatch, r2.nbatch):
        raise ShapeMismatch(f"cannot pair batch sizes {r1.nbatch} and {r2.nbatch}")
    a = np.asarray(r1.density_matrix(), dtype=np.complex128)
    b = np.asarray(r2.density_matrix(), dtype=np.complex128)
    return np.broadcast_arrays(a, b)


def _psd_sqrt(m: np.ndarray) -> np.ndarray:
    w, v = np.linalg.eigh(m)
    return (v * np.sqrt(np.clip(w, 0.0, None))) @ v.conj().T


def _fidelity(r: np.ndarray, s: np.ndarray) -> float:
    if r.shape == (2, 2):
        # closed form for a single qubit
        tr = np.trace(r @ s).real
        det = (np.linalg.det(r) * np.linalg.det(s)).real
        return float(np.sqrt(max(tr + 2 * np.sqrt(max(det, 0.0)), 0.0)))
    sr = _psd_sqrt(r)
    m = sr @ s @ sr
    ev = np.linalg.eigvalsh((m + m.conj().T) / 2)
    return float(np.sum(np.sqrt(np.clip(ev, 0.0, None))))


def fidelity(r1: AbstractRegister, r2: AbstractRegister) -> np.ndarray:
    """
    Uhlmann fidelity ``tr sqrt(sqrt(rho) sigma sqrt(rho))`` per batch.

    For pure states this is ``|<psi|phi>|``.

    Raises
    ------
    ShapeMismatch
        If the registers differ in ``nqubits`` or ``nactive``, or in
        ``nbatch`` with neither side equal to 1.
    """
    a, b = _paired(r1, r2)
    return np.array([_fidelity(x, y) for x, y in zip(a, b)])


def tracedist(r1: AbstractRegister, r2: AbstractRegister) -> np.ndarray:
    """Trace distance ``0.5 * sum |eig(rho1 - rho2)|`` per batch."""
    a, b = _paired(r1, r2)
    diff = a - b
    ev = np.linalg.eigvalsh((diff + np.conj(np.swapaxes(diff, -1, -2))) / 2)
    return 0.5 * np.sum(np.abs(ev), axis=-1)

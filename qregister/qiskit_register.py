# qregister/qiskit_register.py
from __future__ import annotations

from typing import Sequence

import numpy as np
from qiskit import QuantumCircuit
from qiskit.quantum_info import DensityMatrix, Operator, partial_trace

from qregister.bitstr import BitStr
from qregister.errors import ShapeMismatch
from qregister.partition import check_nactive, invperm, move_ahead
from qregister.register import AbstractRegister, RegisterBackend, joined_order


def permute_density(data: np.ndarray, order: Sequence[int]) -> np.ndarray:
    """
    Reorder the qubits of a ``(2**n, 2**n)`` density matrix.

    New qubit k is old qubit ``order[k]``. Qiskit is little-endian as well, so
    qubit q is bit q of a row or column index.
    """
    n = len(order)
    tensor = np.asarray(data).reshape((2,) * (2 * n))
    # row axis n-1-q and column axis 2n-1-q hold qubit q
    rows = [n - 1 - order[n - 1 - a] for a in range(n)]
    return tensor.transpose(rows + [n + a for a in rows]).reshape(1 << n, 1 << n)


def _num_qubits(rho: DensityMatrix) -> int:
    return rho.dim.bit_length() - 1


class DensityMatrixRegister(AbstractRegister):
    """
    Batched mixed states, one :class:`qiskit.quantum_info.DensityMatrix` per batch.

    The ``DensityMatrix`` objects are never modified in place; every mutation
    builds a new one and rebinds the batch slot. Consequently a register
    returned by :meth:`viewbatch` shares its parent's state only until either
    side is mutated, and mutations never propagate between them.

    ``collapseto`` applies a reset channel to the active qubits: the inactive
    qubits keep their reduced state.
    """

    def __init__(self, states: Sequence[DensityMatrix | np.ndarray], nactive: int | None = None):
        if not states:
            raise ShapeMismatch("a register needs at least one batch")
        self._states = [s if isinstance(s, DensityMatrix) else DensityMatrix(np.asarray(s)) for s in states]
        dims = {s.dim for s in self._states}
        if len(dims) != 1:
            raise ShapeMismatch(f"all batches must have the same dimension, got {sorted(dims)}")
        n = _num_qubits(self._states[0])
        if self._states[0].dim != 1 << n:
            raise ShapeMismatch(f"dimension {self._states[0].dim} is not a power of two")
        self._nqubits = n
        self._nactive = n if nactive is None else check_nactive(nactive, n)

    @property
    def states(self) -> list[DensityMatrix]:
        return list(self._states)

    # ---------- properties ----------

    @property
    def nqubits(self) -> int:
        return self._nqubits

    @property
    def nactive(self) -> int:
        return self._nactive

    @property
    def nbatch(self) -> int:
        return len(self._states)

    @property
    def datatype(self) -> type:
        return self._states[0].data.dtype.type

    # ---------- internal helpers ----------

    def _blocks(self, rho: DensityMatrix) -> np.ndarray:
        """Density matrix as ``(R, A, R, A)`` with R = 2**nremain, A = 2**nactive."""
        r, a = 1 << self.nremain, 1 << self._nactive
        return rho.data.reshape(r, a, r, a)

    def _rebuild(self, blocks: np.ndarray) -> DensityMatrix:
        dim = blocks.shape[0] * blocks.shape[1]
        data = blocks.reshape(dim, dim)
        tr = np.trace(data).real
        return DensityMatrix(data / tr if tr > 0 else data)

    def _permute_all(self, order: Sequence[int]) -> None:
        self._states = [DensityMatrix(permute_density(rho.data, order)) for rho in self._states]

    # ---------- partition ----------

    def _focus(self, locs):
        self._permute_all(move_ahead(self._nqubits, locs))
        self._nactive = len(locs)

    def _relax(self, locs, to_nactive):
        self._permute_all(invperm(move_ahead(self._nqubits, locs)))
        self._nactive = to_nactive

    def _reorder(self, orders):
        self._permute_all(list(orders) + list(range(self._nactive, self._nqubits)))

    def _insert_qubits(self, loc, n):
        if n == 0:
            return
        nq = self._nqubits
        zeros = DensityMatrix.from_label("0" * n)
        # expand() puts the new qubits above the existing ones
        self._states = [rho.expand(zeros) for rho in self._states]
        self._nqubits += n
        self._permute_all(list(range(loc)) + list(range(nq, nq + n)) + list(range(loc, nq)))
        self._nactive += n

    def _addbits(self, n):
        self._insert_qubits(self._nactive, n)

    # ---------- selection & collapse ----------

    def _select(self, configs):
        self._states = [self._rebuild(self._blocks(rho)[:, c, :, c][:, None, :, None]) for rho, c in zip(self._states, configs)]
        self._nqubits = self.nremain
        self._nactive = 0

    def _project(self, outcomes, targets):
        out = []
        for rho, s, t in zip(self._states, outcomes, targets):
            blocks = self._blocks(rho)
            new = np.zeros_like(blocks)
            new[:, t, :, t] = blocks[:, s, :, s]
            out.append(self._rebuild(new))
        self._states = out

    def _collapseto(self, config):
        out = []
        for rho in self._states:
            blocks = self._blocks(rho)
            new = np.zeros_like(blocks)
            new[:, config, :, config] = np.einsum("rasa->rs", blocks)
            out.append(self._rebuild(new))
        self._states = out

    def _apply_matrix(self, matrix):
        if self._nactive == 0:
            scale = abs(matrix[0, 0]) ** 2
            self._states = [DensityMatrix(rho.data * scale) for rho in self._states]
            return
        op = Operator(matrix)
        qargs = list(range(self._nactive))
        self._states = [rho.evolve(op, qargs=qargs) for rho in self._states]

    def _normalize(self):
        self._states = [DensityMatrix(rho.data / np.trace(rho.data).real) for rho in self._states]

    def _partial_tr(self, locs):
        if not locs:
            return self.copy()
        if len(locs) == self._nqubits:
            states = [DensityMatrix(np.array([[np.trace(rho.data)]])) for rho in self._states]
        else:
            states = [partial_trace(rho, list(locs)) for rho in self._states]
        nactive = self._nactive - sum(1 for q in locs if q < self._nactive)
        return DensityMatrixRegister(states, nactive=nactive)

    # ---------- batch ----------

    def _repeat(self, n):
        return DensityMatrixRegister(self._states * n, self._nactive)

    def _viewbatch(self, i):
        return DensityMatrixRegister([self._states[i]], self._nactive)

    def _join(self, regs):
        states = []
        for b in range(self.nbatch):
            full = regs[0]._states[b]
            for r in regs[1:]:
                # earlier registers occupy the low qubits
                full = full.expand(r._states[b])
            states.append(full)
        out = DensityMatrixRegister(states)
        out._permute_all(joined_order(regs))
        out._nactive = sum(r.nactive for r in regs)
        return out

    # ---------- read-out ----------

    def probs(self) -> np.ndarray:
        if self._nactive == 0:
            return np.array([[np.trace(rho.data).real] for rho in self._states])
        qargs = list(range(self._nactive))
        return np.array([rho.probabilities(qargs=qargs) for rho in self._states])

    def density_matrix(self) -> np.ndarray:
        if self._nactive == 0:
            return np.array([[[np.trace(rho.data)]] for rho in self._states])
        if self._nactive == self._nqubits:
            return np.array([rho.data for rho in self._states])
        rest = list(range(self._nactive, self._nqubits))
        return np.array([partial_trace(rho, rest).data for rho in self._states])

    def copy(self) -> DensityMatrixRegister:
        return DensityMatrixRegister([rho.copy() for rho in self._states], self._nactive)


class QiskitBackend(RegisterBackend):
    """Factory for :class:`DensityMatrixRegister` states built with Qiskit."""

    name = "qiskit"

    def zero_state(self, nqubits: int, nbatch: int = 1) -> DensityMatrixRegister:
        return self.product_state(0, nqubits, nbatch)

    def product_state(self, config: int | BitStr, nqubits: int | None = None, nbatch: int = 1) -> DensityMatrixRegister:
        value, n = self.resolve_config(config, nqubits)
        rho = DensityMatrix.from_int(value, 1 << n)
        return DensityMatrixRegister([rho] * nbatch)

    def uniform_state(self, nqubits: int, nbatch: int = 1) -> DensityMatrixRegister:
        if nqubits == 0:
            return self.zero_state(0, nbatch)
        return DensityMatrixRegister([DensityMatrix.from_label("+" * nqubits)] * nbatch)

    def ghz_state(self, nqubits: int, nbatch: int = 1) -> DensityMatrixRegister:
        if nqubits < 1:
            raise ValueError("GHZ state needs at least one qubit")
        qc = QuantumCircuit(nqubits)
        qc.h(0)
        for k in range(1, nqubits):
            qc.cx(0, k)
        return DensityMatrixRegister([DensityMatrix(qc)] * nbatch)

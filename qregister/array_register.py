# qregister/array_register.py
from __future__ import annotations

from typing import Sequence

import numpy as np

from qregister.bitstr import BitStr
from qregister.errors import ShapeMismatch
from qregister.partition import check_nactive, invperm, move_ahead
from qregister.register import AbstractRegister, RegisterBackend, joined_order


def permute_qubits(state: np.ndarray, order: Sequence[int]) -> np.ndarray:
    """
    Reorder the qubits of a ``(2**n, nbatch)`` state array.

    New qubit k is old qubit ``order[k]``.
    """
    n = len(order)
    nbatch = state.shape[-1]
    tensor = state.reshape((2,) * n + (nbatch,))
    # tensor axis n-1-q holds qubit q
    axes = [n - 1 - order[n - 1 - a] for a in range(n)] + [n]
    return tensor.transpose(axes).reshape(1 << n, nbatch)


def _normalized_columns(state: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(state, axis=0)
    return state / np.where(norms == 0, 1.0, norms)


class ArrayRegister(AbstractRegister):
    """
    Dense batched state vectors stored in a NumPy array.

    ``state`` has shape ``(2**nqubits, nbatch)``; row index bit q is qubit q.

    Views returned by :meth:`viewbatch` are NumPy views of one column.
    In-place amplitude updates (``project``, ``collapseto``, ``normalize``,
    ``apply_matrix``) write through to the parent register. Operations that
    change the qubit layout (``focus``, ``relax``, ``reorder``, ``select``,
    ``addbits``, ``insert_qubits``) give the view its own buffer and detach it.

    ``collapseto`` keeps the marginal populations of the inactive qubits and
    drops their relative phases.
    """

    def __init__(self, state, nactive: int | None = None):
        state = np.asarray(state)
        if state.ndim == 1:
            state = state.reshape(-1, 1)
        if state.ndim != 2:
            raise ShapeMismatch(f"state must be 1-D or 2-D, got shape {state.shape}")
        dim = state.shape[0]
        n = dim.bit_length() - 1
        if dim != 1 << n:
            raise ShapeMismatch(f"state dimension {dim} is not a power of two")
        if not np.iscomplexobj(state):
            state = state.astype(np.complex128)
        self.state = state
        self._nactive = n if nactive is None else check_nactive(nactive, n)

    # ---------- properties ----------

    @property
    def nqubits(self) -> int:
        return self.state.shape[0].bit_length() - 1

    @property
    def nactive(self) -> int:
        return self._nactive

    @property
    def nbatch(self) -> int:
        return self.state.shape[1]

    @property
    def datatype(self) -> type:
        return self.state.dtype.type

    # ---------- internal helpers ----------

    def _blocks(self) -> np.ndarray:
        """State as ``(2**nremain, 2**nactive, nbatch)``."""
        return self.state.reshape(1 << self.nremain, 1 << self._nactive, self.nbatch)

    def _write(self, blocks: np.ndarray) -> None:
        # assign in place so batch views stay aliased
        self.state[...] = blocks.reshape(self.state.shape)

    # ---------- partition ----------

    def _focus(self, locs):
        self.state = permute_qubits(self.state, move_ahead(self.nqubits, locs))
        self._nactive = len(locs)

    def _relax(self, locs, to_nactive):
        self.state = permute_qubits(self.state, invperm(move_ahead(self.nqubits, locs)))
        self._nactive = to_nactive

    def _reorder(self, orders):
        order = list(orders) + list(range(self._nactive, self.nqubits))
        self.state = permute_qubits(self.state, order)

    def _insert_qubits(self, loc, n):
        nq, nb = self.nqubits, self.nbatch
        low = self.state.reshape(1 << (nq - loc), 1 << loc, nb)
        new = np.zeros((1 << (nq - loc), 1 << n, 1 << loc, nb), dtype=self.state.dtype)
        new[:, 0] = low
        self.state = new.reshape(-1, nb)
        self._nactive += n

    def _addbits(self, n):
        self._insert_qubits(self._nactive, n)

    # ---------- selection & collapse ----------

    def _select(self, configs):
        cols = np.arange(self.nbatch)
        kept = self._blocks()[:, configs, cols]
        self.state = _normalized_columns(kept)
        self._nactive = 0

    def _project(self, outcomes, targets):
        cols = np.arange(self.nbatch)
        blocks = self._blocks()
        new = np.zeros_like(blocks)
        new[:, targets, cols] = blocks[:, outcomes, cols]
        norms = np.linalg.norm(new.reshape(-1, self.nbatch), axis=0)
        self._write(new / np.where(norms == 0, 1.0, norms))

    def _collapseto(self, config):
        blocks = self._blocks()
        marginal = np.sqrt(np.sum(np.abs(blocks) ** 2, axis=1))
        new = np.zeros_like(blocks)
        new[:, config, :] = marginal
        norms = np.linalg.norm(new.reshape(-1, self.nbatch), axis=0)
        self._write(new / np.where(norms == 0, 1.0, norms))

    def _apply_matrix(self, matrix):
        self._write(np.einsum("ij,rjb->rib", matrix, self._blocks()))

    def _normalize(self):
        self.state[...] = _normalized_columns(self.state)

    def _partial_tr(self, locs):
        from qregister.qiskit_register import DensityMatrixRegister

        traced = set(locs)
        kept = [q for q in range(self.nqubits) if q not in traced]
        moved = permute_qubits(self.state, kept + list(locs))
        blocks = moved.reshape(1 << len(locs), 1 << len(kept), self.nbatch)
        rhos = np.einsum("tib,tjb->bij", blocks, blocks.conj())
        nactive = self._nactive - sum(1 for q in locs if q < self._nactive)
        return DensityMatrixRegister(list(rhos), nactive=nactive)

    # ---------- batch ----------

    def _repeat(self, n):
        return ArrayRegister(np.tile(self.state, (1, n)), self._nactive)

    def _viewbatch(self, i):
        return ArrayRegister(self.state[:, i : i + 1], self._nactive)

    def _join(self, regs):
        nb = self.nbatch
        full = regs[0].state
        for r in regs[1:]:
            # earlier registers occupy the low bits
            full = np.einsum("ib,jb->jib", full, r.state).reshape(-1, nb)
        out = ArrayRegister(permute_qubits(full, joined_order(regs)))
        out._nactive = sum(r.nactive for r in regs)
        return out

    # ---------- read-out ----------

    def probs(self) -> np.ndarray:
        p = np.sum(np.abs(self._blocks()) ** 2, axis=0)
        return np.ascontiguousarray(p.T)

    def density_matrix(self) -> np.ndarray:
        blocks = self._blocks()
        return np.einsum("rib,rjb->bij", blocks, blocks.conj())

    def copy(self) -> ArrayRegister:
        return ArrayRegister(self.state.copy(), self._nactive)


class NumpyBackend(RegisterBackend):
    """Factory for dense :class:`ArrayRegister` states."""

    name = "numpy"

    def __init__(self, dtype=np.complex128):
        self.dtype = dtype

    def zero_state(self, nqubits: int, nbatch: int = 1) -> ArrayRegister:
        return self.product_state(0, nqubits, nbatch)

    def product_state(self, config: int | BitStr, nqubits: int | None = None, nbatch: int = 1) -> ArrayRegister:
        value, n = self.resolve_config(config, nqubits)
        state = np.zeros((1 << n, nbatch), dtype=self.dtype)
        state[value, :] = 1
        return ArrayRegister(state)

    def uniform_state(self, nqubits: int, nbatch: int = 1) -> ArrayRegister:
        state = np.full((1 << nqubits, nbatch), 1 / np.sqrt(1 << nqubits), dtype=self.dtype)
        return ArrayRegister(state)

    def ghz_state(self, nqubits: int, nbatch: int = 1) -> ArrayRegister:
        if nqubits < 1:
            raise ValueError("GHZ state needs at least one qubit")
        state = np.zeros((1 << nqubits, nbatch), dtype=self.dtype)
        state[0, :] = state[-1, :] = 1 / np.sqrt(2)
        return ArrayRegister(state)

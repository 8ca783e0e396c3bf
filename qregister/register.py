# qregister/register.py
from __future__ import annotations

import logging
import operator
from abc import ABC, abstractmethod
from typing import Any, Iterator, Sequence

import numpy as np

from qregister.bitstr import BitStr
from qregister.errors import DimensionOverflow, InvalidPartition, ShapeMismatch, UnimplementedCapability
from qregister.partition import as_locs, check_locs, check_nactive

log = logging.getLogger(__name__)


class AbstractRegister(ABC):
    """
    Backend-agnostic quantum register holding `nbatch` states over `nqubits` qubits.

    Public methods validate their arguments and then call a backend hook
    (``_focus``, ``_select``, ...). A backend overrides the hooks it supports;
    every hook left alone raises :class:`UnimplementedCapability`.

    Mutating methods return the register itself so calls can be chained.
    Qubit 0 is the least significant bit of a basis index, and the active
    qubits are always the leading ``nactive`` qubits of the coordinate space.
    """

    def _unimplemented(self, operation: str) -> UnimplementedCapability:
        return UnimplementedCapability(operation, type(self).__name__)

    # ---------- properties ----------

    @property
    def nqubits(self) -> int:
        """Total number of qubits."""
        raise self._unimplemented("nqubits")

    @property
    def nactive(self) -> int:
        """Number of active qubits. Operators always apply on active qubits."""
        raise self._unimplemented("nactive")

    @property
    def nbatch(self) -> int:
        """Number of independent states held by the register."""
        raise self._unimplemented("nbatch")

    @property
    def datatype(self) -> type:
        """Numeric scalar type of the amplitudes."""
        raise self._unimplemented("datatype")

    @property
    def nremain(self) -> int:
        """Number of inactive qubits."""
        return self.nqubits - self.nactive

    def basis(self) -> range:
        """All basis indices of the register's Hilbert space."""
        return range(1 << self.nqubits)

    # ---------- partition ----------

    def focus(self, *locs: int) -> AbstractRegister:
        """
        Make the qubits at `locs` the leading active qubits, in the given order.

        Accepts ``reg.focus(0, 2)`` as well as ``reg.focus([0, 2])``.
        """
        locs = check_locs(as_locs(locs), self.nqubits)
        log.debug("focus %s on %s", locs, type(self).__name__)
        self._focus(locs)
        return self

    def relax(self, *locs: int, to_nactive: int | None = None) -> AbstractRegister:
        """
        Inverse of :meth:`focus`. `to_nactive` defaults to all qubits.
        """
        locs = check_locs(as_locs(locs), self.nqubits)
        if to_nactive is None:
            to_nactive = self.nqubits
        to_nactive = check_nactive(operator.index(to_nactive), self.nqubits)
        log.debug("relax %s on %s to %d active", locs, type(self).__name__, to_nactive)
        self._relax(locs, to_nactive)
        return self

    def reorder(self, orders: Sequence[int]) -> AbstractRegister:
        """Permute active qubits: new active qubit k is old active qubit ``orders[k]``."""
        orders = check_locs(tuple(orders), self.nactive)
        if len(orders) != self.nactive:
            raise InvalidPartition(f"reorder needs a permutation of {self.nactive} active qubits, got {orders}")
        self._reorder(orders)
        return self

    def invorder(self) -> AbstractRegister:
        """Reverse the order of the active qubits."""
        return self.reorder(tuple(reversed(range(self.nactive))))

    # ---------- growing / shrinking ----------

    def addbits(self, n: int) -> AbstractRegister:
        """
        Add `n` active qubits in |0>, placed right after the current active ones.
        """
        n = operator.index(n)
        if n < 0:
            raise ValueError("cannot add a negative number of qubits")
        self._addbits(n)
        return self

    def insert_qubits(self, loc: int, n: int = 1) -> AbstractRegister:
        """Insert `n` active qubits in |0> at position `loc` (``0 <= loc <= nactive``)."""
        loc, n = operator.index(loc), operator.index(n)
        if n < 0:
            raise ValueError("cannot insert a negative number of qubits")
        if not 0 <= loc <= self.nactive:
            raise InvalidPartition(f"insert location {loc} outside active range [0, {self.nactive}]")
        self._insert_qubits(loc, n)
        return self

    # ---------- selection & collapse ----------

    def select(self, bits: Any) -> AbstractRegister:
        """
        Project the active qubits onto a fixed configuration and drop them.

        Parameters
        ----------
        bits : int | BitStr | Sequence[int]
            One configuration shared by all batches, or one per batch.

        Notes
        -----
        Afterwards ``nactive == 0`` and the former inactive qubits are all that
        is left. Renormalising the surviving amplitudes is the backend's job;
        call :meth:`normalize` when a backend documents that it does not.
        """
        self._select(self.batch_configs(bits))
        return self

    def selected(self, bits: Any) -> AbstractRegister:
        """Non-mutating :meth:`select`, applied to a copy."""
        return self.copy().select(bits)

    def collapseto(self, config: int | BitStr = 0) -> AbstractRegister:
        """Force the active qubits into basis state `config` in every batch."""
        self._collapseto(self.check_config(config))
        return self

    def project(self, outcomes: Any, to: Any = None) -> AbstractRegister:
        """
        Project batch b's active qubits onto ``outcomes[b]`` and renormalise.

        If `to` is given, the surviving amplitudes are moved to basis index
        ``to[b]`` instead, which forces the active qubits into that state.
        """
        outs = self.batch_configs(outcomes)
        targets = outs if to is None else self.batch_configs(to)
        self._project(outs, targets)
        return self

    def apply_matrix(self, matrix: Any) -> AbstractRegister:
        """Left-multiply the active subspace of every batch by `matrix`."""
        matrix = np.asarray(matrix)
        dim = 1 << self.nactive
        if matrix.shape != (dim, dim):
            raise ShapeMismatch(f"expected a {dim}x{dim} matrix for {self.nactive} active qubits, got {matrix.shape}")
        self._apply_matrix(matrix)
        return self

    def normalize(self) -> AbstractRegister:
        """Renormalise every batch."""
        self._normalize()
        return self

    def partial_tr(self, *locs: int) -> AbstractRegister:
        """New register with the qubits at `locs` traced out."""
        locs = check_locs(as_locs(locs), self.nqubits)
        return self._partial_tr(locs)

    # ---------- batch ----------

    def repeat(self, n: int) -> AbstractRegister:
        """New register with the batch repeated `n` times."""
        n = operator.index(n)
        if n < 1:
            raise ValueError("repeat count must be positive")
        return self._repeat(n)

    def viewbatch(self, i: int) -> AbstractRegister:
        """Single-batch register aliasing the i-th batch slice."""
        i = operator.index(i)
        if not 0 <= i < self.nbatch:
            raise IndexError(f"batch index {i} out of range [0, {self.nbatch})")
        return self._viewbatch(i)

    def __iter__(self) -> Iterator[AbstractRegister]:
        for i in range(self.nbatch):
            yield self.viewbatch(i)

    def __len__(self) -> int:
        return self.nbatch

    # ---------- read-out ----------

    def probs(self) -> np.ndarray:
        """Probabilities of the active basis states, shape ``(nbatch, 2**nactive)``."""
        raise self._unimplemented("probs")

    def density_matrix(self) -> np.ndarray:
        """Reduced density matrices of the active qubits, shape ``(nbatch, D, D)``."""
        raise self._unimplemented("density_matrix")

    def copy(self) -> AbstractRegister:
        raise self._unimplemented("copy")

    def summary(self) -> str:
        return f"{type(self).__name__}(nbatch={self.nbatch}, datatype={np.dtype(self.datatype).name})"

    def __str__(self) -> str:
        return f"{self.summary()}\n    active qubits: {self.nactive}/{self.nqubits}"

    # ---------- configurations ----------

    def check_config(self, config: int | BitStr) -> int:
        if isinstance(config, BitStr):
            if config.length > self.nactive:
                raise DimensionOverflow(f"bit string {config} is longer than {self.nactive} active qubits")
            value = config.value
        else:
            value = operator.index(config)
        if value < 0:
            raise ValueError(f"configuration must be non-negative, got {value}")
        if value >> self.nactive:
            raise DimensionOverflow(f"configuration {value} does not fit in {self.nactive} active qubits")
        return value

    def batch_configs(self, bits: Any) -> list[int]:
        if isinstance(bits, BitStr) or np.ndim(bits) == 0:
            return [self.check_config(bits)] * self.nbatch
        seq = list(bits)
        if len(seq) != self.nbatch:
            raise ShapeMismatch(f"got {len(seq)} configurations for {self.nbatch} batches")
        return [self.check_config(b) for b in seq]

    # ---------- backend hooks ----------

    def _focus(self, locs: tuple[int, ...]) -> None:
        raise self._unimplemented("focus")

    def _relax(self, locs: tuple[int, ...], to_nactive: int) -> None:
        raise self._unimplemented("relax")

    def _reorder(self, orders: tuple[int, ...]) -> None:
        raise self._unimplemented("reorder")

    def _addbits(self, n: int) -> None:
        raise self._unimplemented("addbits")

    def _insert_qubits(self, loc: int, n: int) -> None:
        raise self._unimplemented("insert_qubits")

    def _select(self, configs: list[int]) -> None:
        raise self._unimplemented("select")

    def _collapseto(self, config: int) -> None:
        raise self._unimplemented("collapseto")

    def _project(self, outcomes: list[int], targets: list[int]) -> None:
        raise self._unimplemented("project")

    def _apply_matrix(self, matrix: np.ndarray) -> None:
        raise self._unimplemented("apply_matrix")

    def _normalize(self) -> None:
        raise self._unimplemented("normalize")

    def _partial_tr(self, locs: tuple[int, ...]) -> AbstractRegister:
        raise self._unimplemented("partial_tr")

    def _repeat(self, n: int) -> AbstractRegister:
        raise self._unimplemented("repeat")

    def _viewbatch(self, i: int) -> AbstractRegister:
        raise self._unimplemented("viewbatch")

    def _join(self, regs: list[AbstractRegister]) -> AbstractRegister:
        raise self._unimplemented("join")


def join(*regs: AbstractRegister) -> AbstractRegister:
    """
    Tensor product of registers.

    Qubits of the first register come first (lowest indices). The active
    qubits of all registers lead the result, followed by the inactive ones,
    each group keeping the argument order.

    Raises
    ------
    ShapeMismatch
        If the registers disagree on batch size.
    TypeError
        If the registers come from different backends.
    """
    if not regs:
        raise ValueError("join needs at least one register")
    first = regs[0]
    for r in regs[1:]:
        if type(r) is not type(first):
            raise TypeError(f"cannot join {type(first).__name__} with {type(r).__name__}")
        if r.nbatch != first.nbatch:
            raise ShapeMismatch(f"cannot join registers with nbatch {first.nbatch} and {r.nbatch}")
    return first._join(list(regs))


def joined_order(regs: Sequence[AbstractRegister]) -> list[int]:
    """Qubit order that moves every register's active qubits ahead after a plain concatenation."""
    active: list[int] = []
    rest: list[int] = []
    offset = 0
    for r in regs:
        active.extend(range(offset, offset + r.nactive))
        rest.extend(range(offset + r.nactive, offset + r.nqubits))
        offset += r.nqubits
    return active + rest


class RegisterBackend(ABC):
    """Factory that creates registers of one concrete type."""

    name: str = ""

    @abstractmethod
    def zero_state(self, nqubits: int, nbatch: int = 1) -> AbstractRegister:
        """Fully active register in |0...0>."""
        ...

    @abstractmethod
    def product_state(self, config: int | BitStr, nqubits: int | None = None, nbatch: int = 1) -> AbstractRegister:
        """
        Fully active register in basis state `config`.

        `nqubits` may be omitted when `config` is a :class:`BitStr`.
        """
        ...

    @abstractmethod
    def uniform_state(self, nqubits: int, nbatch: int = 1) -> AbstractRegister:
        """Equal superposition of all basis states (H on every qubit)."""
        ...

    @abstractmethod
    def ghz_state(self, nqubits: int, nbatch: int = 1) -> AbstractRegister:
        """(|0...0> + |1...1>) / sqrt(2)."""
        ...

    @staticmethod
    def resolve_config(config: int | BitStr, nqubits: int | None) -> tuple[int, int]:
        """Return ``(value, nqubits)`` for a product-state request."""
        if isinstance(config, BitStr):
            n = config.length if nqubits is None else nqubits
            value = config.value
        else:
            if nqubits is None:
                raise ValueError("nqubits is required for an integer configuration")
            n, value = nqubits, operator.index(config)
        if value < 0 or value >> n:
            raise DimensionOverflow(f"configuration {value} does not fit in {n} qubits")
        return value, n

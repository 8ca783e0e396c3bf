# qregister/measure.py
"""
Measurement dispatch.

The four public measurement functions share one routine, parametrised by a
:class:`PostAction`, which runs through three layers:

1. locations: explicit qubit locations are focused, the rest of the call
   runs on all active qubits, and the register is relaxed afterwards;
2. observable: an :class:`Eigen` observable rotates the active subspace into
   its eigenbasis, so the measurement reduces to a computational-basis one;
3. kernel: one basis index per batch is drawn from ``probs()`` and the
   post-action is applied (keep, collapse, remove or collapse to a config).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterator, Union

import numpy as np

from qregister.bitstr import BitStr
from qregister.errors import ShapeMismatch
from qregister.partition import as_locs, check_locs, focused
from qregister.register import AbstractRegister
from qregister.settings import get_settings

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComputationalBasis:
    """Measure in the computational basis."""


@dataclass(frozen=True)
class AllLocs:
    """All currently active qubits."""


@dataclass(frozen=True, eq=False)
class Eigen:
    """
    Eigendecomposition of a Hermitian observable on the measured qubits.

    ``vectors`` is the unitary whose columns are eigenvectors, so that
    ``matrix == vectors @ diag(values) @ vectors.conj().T``. Unpacks like the
    tuple returned by :func:`numpy.linalg.eigh`.
    """

    values: np.ndarray
    vectors: np.ndarray

    def __post_init__(self):
        values = np.asarray(self.values)
        vectors = np.asarray(self.vectors)
        if vectors.ndim != 2 or vectors.shape[0] != vectors.shape[1] or values.shape != vectors.shape[:1]:
            raise ShapeMismatch(f"eigen pair shapes do not match: {values.shape} and {vectors.shape}")
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "vectors", vectors)

    @classmethod
    def from_hermitian(cls, matrix: Any) -> Eigen:
        values, vectors = np.linalg.eigh(np.asarray(matrix))
        return cls(values, vectors)

    def __iter__(self) -> Iterator[np.ndarray]:
        yield self.values
        yield self.vectors


Observable = Union[ComputationalBasis, Eigen]


class PostAction(Enum):
    """What happens to the measured qubits after sampling."""

    KEEP = auto()
    COLLAPSE = auto()
    REMOVE = auto()
    COLLAPSETO = auto()


_rng: np.random.Generator | None = None


def default_rng() -> np.random.Generator:
    """Module generator, seeded from ``settings.SEED`` on first use."""
    global _rng
    if _rng is None:
        _rng = np.random.default_rng(get_settings().SEED)
    return _rng


def seed(value: int | None) -> None:
    """Re-seed the module generator."""
    global _rng
    _rng = np.random.default_rng(value)


def _as_observable(op: Any) -> Observable:
    if op is None:
        return ComputationalBasis()
    if isinstance(op, (ComputationalBasis, Eigen)):
        return op
    if isinstance(op, tuple) and len(op) == 2:
        return Eigen(*op)
    raise TypeError(f"unsupported observable: {op!r}")


def sample(reg: AbstractRegister, rng: np.random.Generator, nshots: int | None = None) -> np.ndarray:
    """
    Draw basis indices of the active qubits from ``reg.probs()``.

    Returns shape ``(nbatch,)``, or ``(nshots, nbatch)`` when `nshots` is given.
    """
    p = np.asarray(reg.probs(), dtype=float)
    atol = get_settings().ATOL
    if (p < -atol).any():
        raise ValueError("register reported negative probabilities")
    p = np.clip(p, 0.0, None)
    totals = p.sum(axis=1)
    if (totals <= atol).any():
        raise ValueError("cannot measure a batch with zero norm")
    p /= totals[:, None]
    size = 1 if nshots is None else nshots
    draws = np.stack([rng.choice(p.shape[1], size=size, p=row) for row in p], axis=-1)
    return draws[0] if nshots is None else draws


def _kernel(reg, action, *, rng, config, nshots):
    # validate before sampling so a bad config never touches the state
    target = reg.batch_configs(config) if action is PostAction.COLLAPSETO else None
    if action is PostAction.KEEP:
        return sample(reg, rng, nshots)

    outcome = sample(reg, rng)
    log.debug("%s: sampled %s on %d active qubits", action.name, outcome, reg.nactive)
    if action is PostAction.COLLAPSE:
        reg.project(outcome)
    elif action is PostAction.REMOVE:
        reg.select(outcome)
        reg.normalize()
    else:
        reg.project(outcome, to=target)
    return outcome


def _in_eigenbasis(reg, op, action, **kwargs):
    if isinstance(op, ComputationalBasis):
        return _kernel(reg, action, **kwargs)

    nbit = reg.nactive
    reg.apply_matrix(op.vectors.conj().T)
    try:
        outcome = _kernel(reg, action, **kwargs)
    except Exception:
        if reg.nactive == nbit:
            reg.apply_matrix(op.vectors)
        raise
    # removed or forced qubits have no eigenbasis state left to restore
    if action in (PostAction.KEEP, PostAction.COLLAPSE):
        reg.apply_matrix(op.vectors)
    return op.values[outcome]


def _measure(reg, locs, op, action, *, rng=None, config=0, nshots=None):
    op = _as_observable(op)
    kwargs = dict(rng=rng or default_rng(), config=config, nshots=nshots)
    locs = as_locs(locs)
    if not locs or locs == (AllLocs(),):
        return _in_eigenbasis(reg, op, action, **kwargs)

    locs = check_locs(locs, reg.nqubits)
    # REMOVE shrinks the register; focused() drops the removed qubits from the partition
    with focused(reg, *locs):
        return _in_eigenbasis(reg, op, action, **kwargs)


def measure(
    reg: AbstractRegister,
    *locs: int,
    op: Observable | None = None,
    rng: np.random.Generator | None = None,
    nshots: int | None = None,
) -> np.ndarray:
    """
    Measure the active qubits (or `locs`) without changing the register.

    Parameters
    ----------
    reg : AbstractRegister
        Register to measure.
    *locs : int
        Qubit locations; all active qubits when omitted.
    op : ComputationalBasis | Eigen, optional
        Observable. With an :class:`Eigen` the eigenvalues are returned.
    rng : numpy.random.Generator, optional
        Source of randomness, :func:`default_rng` by default.
    nshots : int, optional
        Number of samples; adds a leading axis of that length.

    Returns
    -------
    numpy.ndarray
        One basis index (or eigenvalue) per batch.
    """
    return _measure(reg, locs, op, PostAction.KEEP, rng=rng, nshots=nshots)


def measure_collapse(
    reg: AbstractRegister,
    *locs: int,
    op: Observable | None = None,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Measure and collapse the register onto the observed outcome."""
    return _measure(reg, locs, op, PostAction.COLLAPSE, rng=rng)


def measure_remove(
    reg: AbstractRegister,
    *locs: int,
    op: Observable | None = None,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Measure, collapse and drop the measured qubits."""
    return _measure(reg, locs, op, PostAction.REMOVE, rng=rng)


def measure_collapseto(
    reg: AbstractRegister,
    *locs: int,
    config: int | BitStr = 0,
    op: Observable | None = None,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Measure, then force the measured qubits into `config`. Returns the sampled outcome."""
    return _measure(reg, locs, op, PostAction.COLLAPSETO, rng=rng, config=config)

# qregister/partition.py
"""
Active/inactive qubit partitioning.

``focus`` moves the named qubits to the front of the register's coordinate
space and makes exactly those qubits active; ``relax`` undoes the move. The
helpers here compute the permutations, validate locations and provide the
scoped forms that always restore the partition.
"""
from __future__ import annotations

import logging
import operator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Sequence

from qregister.errors import InvalidPartition, RegisterError

if TYPE_CHECKING:
    from qregister.register import AbstractRegister

log = logging.getLogger(__name__)


def as_locs(locs: Sequence[Any]) -> tuple[Any, ...]:
    """Accept both ``f(0, 2)`` and ``f([0, 2])`` call styles."""
    if len(locs) == 1 and isinstance(locs[0], Iterable) and not isinstance(locs[0], (str, bytes)):
        return tuple(locs[0])
    return tuple(locs)


def check_locs(locs: Iterable[Any], nqubits: int) -> tuple[int, ...]:
    """
    Validate qubit locations against a register of `nqubits` qubits.

    Returns
    -------
    tuple[int, ...]
        The locations as plain ints, in the given order.

    Raises
    ------
    InvalidPartition
        On non-integer, out-of-range or duplicate locations.
    """
    out: list[int] = []
    for loc in locs:
        try:
            q = operator.index(loc)
        except TypeError:
            raise InvalidPartition(f"qubit location must be an integer, got {loc!r}") from None
        if not 0 <= q < nqubits:
            raise InvalidPartition(f"qubit location {q} out of range [0, {nqubits})")
        out.append(q)
    if len(set(out)) != len(out):
        raise InvalidPartition(f"duplicate qubit locations in {tuple(out)}")
    return tuple(out)


def check_nactive(to_nactive: int, nqubits: int) -> int:
    """Validate a target active-qubit count."""
    if not 0 <= to_nactive <= nqubits:
        raise InvalidPartition(f"to_nactive={to_nactive} outside [0, {nqubits}]")
    return to_nactive


def move_ahead(n: int, locs: Sequence[int]) -> list[int]:
    """Qubit order with `locs` first and the remaining qubits in ascending order."""
    chosen = set(locs)
    return list(locs) + [q for q in range(n) if q not in chosen]


def invperm(order: Sequence[int]) -> list[int]:
    """Inverse of a permutation."""
    inv = [0] * len(order)
    for k, q in enumerate(order):
        inv[q] = k
    return inv


def restore_partition(reg: AbstractRegister, locs: Sequence[int], nactive: int, nqubits: int) -> AbstractRegister:
    """
    Undo ``reg.focus(*locs)`` on a register that had `nactive` of `nqubits` qubits active.

    Whatever ran in between may have changed the qubit count:

    - unchanged: a plain ``relax(*locs, to_nactive=nactive)``;
    - shrunk by k: the k leading focused qubits are gone (as after ``select``).
      The survivors return to their original relative order and only the
      removed qubits that were active reduce the active count;
    - grown by m: the m new qubits follow the focused ones (as after
      ``addbits``). They are placed right after the original active qubits
      and count as active.

    Raises
    ------
    InvalidPartition
        If more qubits were removed than were focused.
    """
    locs = tuple(locs)
    now = reg.nqubits
    if now == nqubits:
        return reg.relax(*locs, to_nactive=nactive)

    focused_block = len(locs)
    rest = move_ahead(nqubits, locs)[focused_block:]
    if now < nqubits:
        removed = nqubits - now
        if removed > focused_block:
            raise InvalidPartition(
                f"cannot restore partition: {removed} qubits removed but only {focused_block} were focused"
            )
        survivors = list(locs[removed:]) + rest
        order = [survivors.index(q) for q in sorted(survivors)]
        to_nactive = sum(1 for q in survivors if q < nactive)
    else:
        added = now - nqubits
        order = [0] * now
        for pos, q in enumerate(locs):
            order[q if q < nactive else q + added] = pos
        for pos, q in enumerate(rest, start=focused_block + added):
            order[q if q < nactive else q + added] = pos
        for i in range(added):
            order[nactive + i] = focused_block + i
        to_nactive = nactive + added
    log.debug("restore partition: %d -> %d qubits, %d active", nqubits, now, to_nactive)
    return reg.focus(*order).relax(to_nactive=to_nactive)


@contextmanager
def focused(reg: AbstractRegister, *locs: int) -> Iterator[AbstractRegister]:
    """
    Focus `reg` on `locs` for the duration of a ``with`` block.

    On exit the partition is restored with :func:`restore_partition`, also
    when the body raises. In that case the body's exception is the one that
    propagates, even if restoring fails as well.

    Example
    -------
    >>> with focused(reg, 0, 3) as r:
    ...     r.nactive
    2
    """
    locs = as_locs(locs)
    nbit, nq = reg.nactive, reg.nqubits
    reg.focus(*locs)
    try:
        yield reg
    except BaseException:
        try:
            restore_partition(reg, locs, nbit, nq)
        except RegisterError:
            log.warning("could not restore partition of %s after a failure", type(reg).__name__, exc_info=True)
        raise
    restore_partition(reg, locs, nbit, nq)


def focus_apply(f: Callable[[AbstractRegister], Any], reg: AbstractRegister, *locs: int) -> Any:
    """
    Call `f` on `reg` focused at `locs`, then restore the partition.

    If `f` returns a register other than `reg`, that register is restored the
    same way and returned. A ``None`` result returns `reg`; any other value is
    passed through.
    """
    locs = as_locs(locs)
    nbit, nq = reg.nactive, reg.nqubits
    with focused(reg, *locs):
        result = f(reg)
    if result is None:
        return reg
    if result is not reg and hasattr(result, "relax"):
        return restore_partition(result, locs, nbit, nq)
    return result

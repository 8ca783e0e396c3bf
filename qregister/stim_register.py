# qregister/stim_register.py
from __future__ import annotations

from typing import Sequence

import numpy as np
import stim

from qregister.bitstr import BitStr
from qregister.errors import UnimplementedCapability
from qregister.partition import check_nactive, invperm, move_ahead
from qregister.register import AbstractRegister, RegisterBackend, joined_order


class StimRegister(AbstractRegister):
    """
    Single stabilizer state held by a ``stim.TableauSimulator``.

    Logical qubits map to simulator qubits through ``qubits``; partitioning
    only permutes that map and never touches the tableau. Dropped simulator
    qubits are reset to |0>. Unused qubits at the top of the simulator are
    dropped, free ones below the highest used qubit are reused by
    ``addbits``/``insert_qubits``. ``probs`` still expands the whole simulator
    state, so it costs ``2**sim.num_qubits``.

    The tableau cannot represent arbitrary unitaries, mixed states or
    batches, so ``apply_matrix``, ``partial_tr`` and ``repeat`` are not
    implemented. ``nbatch`` is always 1 and ``viewbatch(0)`` is the register
    itself. ``collapseto`` resets the active qubits, which measures them and
    may collapse entangled inactive qubits.
    """

    def __init__(
        self,
        sim: stim.TableauSimulator | None = None,
        qubits: Sequence[int] | None = None,
        nactive: int | None = None,
    ):
        self.sim = sim if sim is not None else stim.TableauSimulator()
        self.qubits: list[int] = list(range(self.sim.num_qubits)) if qubits is None else list(qubits)
        n = len(self.qubits)
        self._nactive = n if nactive is None else check_nactive(nactive, n)

    # ---------- properties ----------

    @property
    def nqubits(self) -> int:
        return len(self.qubits)

    @property
    def nactive(self) -> int:
        return self._nactive

    @property
    def nbatch(self) -> int:
        return 1

    @property
    def datatype(self) -> type:
        return np.complex64

    # ---------- internal helpers ----------

    def _active_targets(self) -> list[int]:
        return self.qubits[: self._nactive]

    def _allocate(self, n: int) -> list[int]:
        """Return `n` simulator qubits in |0> that no logical qubit uses."""
        used = set(self.qubits)
        free = [q for q in range(self.sim.num_qubits) if q not in used][:n]
        missing = n - len(free)
        if missing > 0:
            start = self.sim.num_qubits
            self.sim.set_num_qubits(start + missing)
            free.extend(range(start, start + missing))
        return free

    def _trim(self) -> None:
        """Drop unused simulator qubits above the highest logical one."""
        top = max(self.qubits) + 1 if self.qubits else 0
        if top < self.sim.num_qubits:
            self.sim.set_num_qubits(top)

    def _logical_vector(self) -> np.ndarray:
        """Amplitudes over the logical qubits, bit k of the index is logical qubit k."""
        total = self.sim.num_qubits
        vec = np.asarray(self.sim.state_vector(endian="little"))
        tensor = vec.reshape((2,) * total)
        used = set(self.qubits)
        # axis total-1-p holds simulator qubit p; unused qubits are |0>
        index = tuple(slice(None) if (total - 1 - a) in used else 0 for a in range(total))
        sub = tensor[index]
        remaining = [total - 1 - a for a in range(total) if (total - 1 - a) in used]
        n = self.nqubits
        axes = [remaining.index(self.qubits[n - 1 - j]) for j in range(n)]
        return sub.transpose(axes).reshape(1 << n)

    def _postselect(self, config: int) -> None:
        for k, q in enumerate(self._active_targets()):
            self.sim.postselect_z(q, desired_value=bool((config >> k) & 1))

    def _flip(self, mask: int) -> None:
        flips = [q for k, q in enumerate(self._active_targets()) if (mask >> k) & 1]
        if flips:
            self.sim.x(*flips)

    # ---------- partition ----------

    def _focus(self, locs):
        self.qubits = [self.qubits[q] for q in move_ahead(self.nqubits, locs)]
        self._nactive = len(locs)

    def _relax(self, locs, to_nactive):
        self.qubits = [self.qubits[q] for q in invperm(move_ahead(self.nqubits, locs))]
        self._nactive = to_nactive

    def _reorder(self, orders):
        order = list(orders) + list(range(self._nactive, self.nqubits))
        self.qubits = [self.qubits[q] for q in order]

    def _insert_qubits(self, loc, n):
        self.qubits[loc:loc] = self._allocate(n)
        self._nactive += n

    def _addbits(self, n):
        self._insert_qubits(self._nactive, n)

    # ---------- selection & collapse ----------

    def _select(self, configs):
        (config,) = configs
        self._postselect(config)
        dropped = self._active_targets()
        if dropped:
            self.sim.reset(*dropped)
        self.qubits = self.qubits[self._nactive :]
        self._nactive = 0
        self._trim()

    def _project(self, outcomes, targets):
        (outcome,), (target,) = outcomes, targets
        self._postselect(outcome)
        self._flip(outcome ^ target)

    def _collapseto(self, config):
        targets = self._active_targets()
        if targets:
            self.sim.reset(*targets)
        self._flip(config)

    def _normalize(self):
        # tableau states are always normalised
        pass

    # ---------- batch ----------

    def _viewbatch(self, i):
        return self

    def _join(self, regs):
        inverse = None
        qubits: list[int] = []
        offset = 0
        for r in regs:
            t = r.sim.current_inverse_tableau()
            if len(t) < r.sim.num_qubits:
                t = t + stim.Tableau(r.sim.num_qubits - len(t))
            inverse = t if inverse is None else inverse + t
            qubits.extend(offset + q for q in r.qubits)
            offset += len(t)
        sim = stim.TableauSimulator()
        if inverse is not None and len(inverse):
            sim.set_inverse_tableau(inverse)
        order = joined_order(regs)
        return StimRegister(sim, [qubits[k] for k in order], nactive=sum(r.nactive for r in regs))

    # ---------- read-out ----------

    def probs(self) -> np.ndarray:
        blocks = self._logical_vector().reshape(1 << self.nremain, 1 << self._nactive)
        return np.sum(np.abs(blocks) ** 2, axis=0)[None, :]

    def density_matrix(self) -> np.ndarray:
        blocks = self._logical_vector().reshape(1 << self.nremain, 1 << self._nactive).astype(np.complex128)
        return np.einsum("ri,rj->ij", blocks, blocks.conj())[None, :, :]

    def copy(self) -> StimRegister:
        return StimRegister(self.sim.copy(), list(self.qubits), self._nactive)


class StimBackend(RegisterBackend):
    """Factory for single-batch :class:`StimRegister` stabilizer states."""

    name = "stim"

    def _new(self, nqubits: int, nbatch: int) -> stim.TableauSimulator:
        if nbatch != 1:
            raise UnimplementedCapability("batched states", type(self).__name__)
        sim = stim.TableauSimulator()
        sim.set_num_qubits(nqubits)
        return sim

    def zero_state(self, nqubits: int, nbatch: int = 1) -> StimRegister:
        return StimRegister(self._new(nqubits, nbatch))

    def product_state(self, config: int | BitStr, nqubits: int | None = None, nbatch: int = 1) -> StimRegister:
        value, n = self.resolve_config(config, nqubits)
        sim = self._new(n, nbatch)
        flips = [q for q in range(n) if (value >> q) & 1]
        if flips:
            sim.x(*flips)
        return StimRegister(sim)

    def uniform_state(self, nqubits: int, nbatch: int = 1) -> StimRegister:
        sim = self._new(nqubits, nbatch)
        if nqubits:
            sim.h(*range(nqubits))
        return StimRegister(sim)

    def ghz_state(self, nqubits: int, nbatch: int = 1) -> StimRegister:
        if nqubits < 1:
            raise ValueError("GHZ state needs at least one qubit")
        sim = self._new(nqubits, nbatch)
        sim.h(0)
        for k in range(1, nqubits):
            sim.cx(0, k)
        return StimRegister(sim)

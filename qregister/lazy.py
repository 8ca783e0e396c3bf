# qregister/lazy.py
"""
Deferred register operations.

Each function here returns a :class:`RegisterTransform` that applies the
operation once it is given a register::

    reg | focus(0, 2) >> addbits(1)
    (focus(0, 2) >> select(0))(reg)

Transforms mutate the register they are applied to and return the result of
the last step.
"""
from __future__ import annotations

from typing import Any, Callable

from qregister.register import AbstractRegister

Step = Callable[[AbstractRegister], AbstractRegister]


class RegisterTransform:
    """A register operation waiting for its register."""

    def __init__(self, fn: Step, text: str):
        self.fn = fn
        self.text = text

    def __call__(self, reg: AbstractRegister) -> AbstractRegister:
        return self.fn(reg)

    def __ror__(self, reg: AbstractRegister) -> AbstractRegister:
        return self.fn(reg)

    def __rshift__(self, other: RegisterTransform) -> RegisterTransform:
        if not isinstance(other, RegisterTransform):
            return NotImplemented
        first, then = self.fn, other.fn
        return RegisterTransform(lambda reg: then(first(reg)), f"{self.text} >> {other.text}")

    def __repr__(self) -> str:
        return self.text


def _args(*args: Any, **kwargs: Any) -> str:
    parts = [repr(a) for a in args] + [f"{k}={v!r}" for k, v in kwargs.items()]
    return ", ".join(parts)


def addbits(n: int) -> RegisterTransform:
    return RegisterTransform(lambda reg: reg.addbits(n), f"addbits({n!r})")


def insert_qubits(loc: int, n: int = 1) -> RegisterTransform:
    return RegisterTransform(lambda reg: reg.insert_qubits(loc, n), f"insert_qubits({_args(loc, n=n)})")


def focus(*locs: int) -> RegisterTransform:
    return RegisterTransform(lambda reg: reg.focus(*locs), f"focus({_args(*locs)})")


def relax(*locs: int, to_nactive: int | None = None) -> RegisterTransform:
    """`to_nactive` defaults to the register's qubit count when applied."""
    text = _args(*locs, to_nactive=to_nactive) if to_nactive is not None else _args(*locs)
    return RegisterTransform(lambda reg: reg.relax(*locs, to_nactive=to_nactive), f"relax({text})")


def select(*bits: Any) -> RegisterTransform:
    """One configuration for every batch, or one per batch."""
    value = bits[0] if len(bits) == 1 else bits
    return RegisterTransform(lambda reg: reg.select(value), f"select({_args(*bits)})")

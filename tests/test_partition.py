# tests/test_partition.py
import numpy as np
import pytest

from qregister.array_register import NumpyBackend
from qregister.bitstr import bit
from qregister.errors import InvalidPartition
from qregister.partition import focus_apply, focused, invperm, move_ahead
from qregister.qiskit_register import QiskitBackend
from qregister.register import RegisterBackend
from qregister.stim_register import StimBackend

ALL = [NumpyBackend, QiskitBackend, StimBackend]


def basis_index(reg) -> int:
    """Index of the single populated basis state of a product register."""
    p = reg.probs()[0]
    k = int(np.argmax(p))
    assert p[k] == pytest.approx(1.0, abs=1e-6)
    return k


def test_move_ahead_and_invperm():
    order = move_ahead(5, [3, 1])
    assert order == [3, 1, 0, 2, 4]
    inv = invperm(order)
    assert [order[i] for i in inv] == list(range(5))


@pytest.mark.parametrize("Backend", ALL)
def test_focus_orders_active_qubits(Backend: type[RegisterBackend]):
    """Focused qubits lead the register in the given order."""
    reg = Backend().product_state(bit("101100"))
    reg.focus(2, 0, 5)
    assert reg.nactive == 3
    # q2=1, q0=0, q5=1 read as active bits 0, 1, 2
    assert basis_index(reg) == 0b101


@pytest.mark.parametrize("Backend", ALL)
def test_focus_apply_select_drops_focused_qubit(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("110"))
    focus_apply(lambda r: r.select(0), reg, 0)
    assert (reg.nqubits, reg.nactive) == (2, 2)
    assert basis_index(reg) == 0b11


@pytest.mark.parametrize("Backend", ALL)
def test_focus_apply_addbits_keeps_qubit_order(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("110"))
    focus_apply(lambda r: r.addbits(1), reg, 2)
    assert (reg.nqubits, reg.nactive) == (4, 4)
    # the new qubit follows the old ones
    assert basis_index(reg) == 0b0110


@pytest.mark.parametrize("Backend", ALL)
def test_focus_apply_addbits_in_partial_partition(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("110")).focus(0)
    focus_apply(lambda r: r.addbits(1), reg, 1)
    # new qubit sits right after the active q0 and counts as active
    assert (reg.nqubits, reg.nactive) == (4, 2)
    reg.relax()
    assert basis_index(reg) == 0b1100


@pytest.mark.parametrize("Backend", ALL)
def test_focus_apply_restores_returned_register(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("110"))
    out = focus_apply(lambda r: r.selected(1), reg, 2)
    assert out is not reg
    assert (out.nqubits, out.nactive) == (2, 2)
    assert basis_index(out) == 0b10
    assert (reg.nqubits, reg.nactive) == (3, 3)
    assert basis_index(reg) == 0b110


@pytest.mark.parametrize("Backend", ALL)
def test_focused_error_after_select_restores(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("110"))
    with pytest.raises(RuntimeError, match="boom"):
        with focused(reg, 0):
            reg.select(0)
            raise RuntimeError("boom")
    assert (reg.nqubits, reg.nactive) == (2, 2)
    assert basis_index(reg) == 0b11


@pytest.mark.parametrize("Backend", ALL)
def test_focused_keeps_body_error_when_restore_fails(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("110"))
    with pytest.raises(RuntimeError, match="boom"):
        with focused(reg, 0):
            # drops q1 as well, which was never focused
            reg.relax().focus(0, 1).select(0b10)
            raise RuntimeError("boom")
    assert reg.nqubits == 1


@pytest.mark.parametrize("Backend", ALL)
def test_focused_rejects_removing_unfocused_qubits(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("110"))
    with pytest.raises(InvalidPartition):
        with focused(reg, 0):
            reg.relax().focus(0, 1).select(0b10)


@pytest.mark.parametrize("Backend", ALL)
def test_focus_relax_roundtrip(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("101100"))
    reg.focus(2, 0, 5).relax(2, 0, 5)
    assert (reg.nactive, reg.nqubits) == (6, 6)
    assert basis_index(reg) == 0b101100


@pytest.mark.parametrize("Backend", ALL)
def test_relax_to_nactive(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("0110"))
    reg.focus(3, 1).relax(3, 1, to_nactive=2)
    assert reg.nactive == 2
    assert basis_index(reg) == 0b0110
    reg.relax()
    assert reg.nactive == 4


@pytest.mark.parametrize("Backend", ALL)
def test_list_and_varargs_locations(Backend: type[RegisterBackend]):
    a = Backend().product_state(bit("1100")).focus(3, 0)
    b = Backend().product_state(bit("1100")).focus([3, 0])
    assert a.nactive == b.nactive == 2
    assert basis_index(a) == basis_index(b)


@pytest.mark.parametrize("Backend", ALL)
@pytest.mark.parametrize("locs", [(0, 0), (4,), (-1,), (1.5,)])
def test_focus_invalid_locations(Backend: type[RegisterBackend], locs):
    reg = Backend().zero_state(4)
    with pytest.raises(InvalidPartition):
        reg.focus(*locs)
    assert reg.nactive == 4


@pytest.mark.parametrize("Backend", ALL)
def test_relax_invalid_to_nactive(Backend: type[RegisterBackend]):
    reg = Backend().zero_state(3).focus(0)
    with pytest.raises(InvalidPartition):
        reg.relax(0, to_nactive=4)
    with pytest.raises(InvalidPartition):
        reg.relax(0, to_nactive=-1)


@pytest.mark.parametrize("Backend", ALL)
def test_focused_restores_after_error(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("0110")).focus(0, 1, 2)
    with pytest.raises(RuntimeError):
        with focused(reg, 3, 1):
            assert reg.nactive == 2
            raise RuntimeError("boom")
    assert reg.nactive == 3
    reg.relax()
    assert basis_index(reg) == 0b0110


@pytest.mark.parametrize("Backend", ALL)
def test_focus_apply(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("001"))
    out = focus_apply(lambda r: r.collapseto(1), reg, 2)
    assert out is reg
    assert reg.nactive == 3
    assert basis_index(reg) == 0b101


@pytest.mark.parametrize("Backend", ALL)
def test_invorder(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("101100"))
    reg.invorder()
    assert basis_index(reg) == 13


@pytest.mark.parametrize("Backend", ALL)
def test_reorder(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("011"))
    reg.reorder([2, 0, 1])
    # new q0 = old q2 (0), new q1 = old q0 (1), new q2 = old q1 (1)
    assert basis_index(reg) == 0b110
    with pytest.raises(InvalidPartition):
        reg.reorder([0, 1])


@pytest.mark.parametrize("Backend", ALL)
def test_addbits_after_active(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("11")).focus(0)
    reg.addbits(1)
    assert (reg.nactive, reg.nqubits) == (2, 3)
    reg.relax()
    assert basis_index(reg) == 0b101


@pytest.mark.parametrize("Backend", ALL)
def test_insert_qubits(Backend: type[RegisterBackend]):
    reg = Backend().product_state(bit("11"))
    reg.insert_qubits(1, n=2)
    assert (reg.nactive, reg.nqubits) == (4, 4)
    assert basis_index(reg) == 0b1001
    with pytest.raises(InvalidPartition):
        reg.insert_qubits(5)


@pytest.mark.parametrize("Backend", ALL)
def test_derived_counts(Backend: type[RegisterBackend]):
    reg = Backend().zero_state(4).focus(1)
    assert reg.nremain == 3
    assert reg.basis() == range(16)

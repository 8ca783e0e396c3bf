# tests/test_batch.py
import numpy as np
import pytest

from qregister.array_register import NumpyBackend
from qregister.qiskit_register import QiskitBackend
from qregister.register import RegisterBackend
from qregister.stim_register import StimBackend

DENSE = [NumpyBackend, QiskitBackend]


@pytest.mark.parametrize("Backend", DENSE)
def test_iteration_yields_single_batch_views(Backend: type[RegisterBackend]):
    reg = Backend().uniform_state(2, nbatch=3)
    views = list(reg)
    assert len(views) == len(reg) == 3
    assert all(v.nbatch == 1 and v.nqubits == 2 for v in views)
    # iteration can be restarted
    assert len(list(reg)) == 3


@pytest.mark.parametrize("Backend", DENSE)
@pytest.mark.parametrize("i", [-1, 2, 5])
def test_viewbatch_out_of_range(Backend: type[RegisterBackend], i):
    reg = Backend().zero_state(1, nbatch=2)
    with pytest.raises(IndexError):
        reg.viewbatch(i)


@pytest.mark.parametrize("Backend", DENSE)
def test_view_keeps_partition(Backend: type[RegisterBackend]):
    reg = Backend().zero_state(3, nbatch=2).focus(2)
    view = reg.viewbatch(1)
    assert (view.nqubits, view.nactive) == (3, 1)


def test_array_view_writes_through():
    reg = NumpyBackend().uniform_state(1, nbatch=2)
    view = reg.viewbatch(1)
    view.collapseto(1)
    np.testing.assert_allclose(reg.probs(), [[0.5, 0.5], [0, 1]], atol=1e-12)


def test_array_view_detaches_on_layout_change():
    reg = NumpyBackend().zero_state(2, nbatch=2)
    view = reg.viewbatch(0)
    view.focus(1).collapseto(1)
    # the permuted view owns a new buffer
    np.testing.assert_allclose(reg.probs(), [[1, 0, 0, 0], [1, 0, 0, 0]], atol=1e-12)


def test_density_view_is_copy_on_write():
    reg = QiskitBackend().uniform_state(1, nbatch=2)
    view = reg.viewbatch(1)
    assert view.states[0] is reg.states[1]
    view.collapseto(1)
    assert view.states[0] is not reg.states[1]
    assert len(reg.states) == 2
    np.testing.assert_allclose(view.probs(), [[0, 1]], atol=1e-12)
    np.testing.assert_allclose(reg.probs(), [[0.5, 0.5], [0.5, 0.5]], atol=1e-12)


def test_stim_has_one_batch():
    reg = StimBackend().uniform_state(2)
    assert len(reg) == 1
    assert reg.viewbatch(0) is reg
    assert list(reg) == [reg]
    with pytest.raises(IndexError):
        reg.viewbatch(1)


@pytest.mark.parametrize("Backend", DENSE)
def test_iteration_matches_indexed_views(Backend: type[RegisterBackend]):
    reg = Backend().ghz_state(2, nbatch=3)
    reg.viewbatch(2).collapseto(1)
    for i, view in enumerate(reg):
        np.testing.assert_allclose(view.probs(), reg.viewbatch(i).probs())

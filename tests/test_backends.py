# tests/test_backends.py
import numpy as np
import pytest

from qregister.array_register import NumpyBackend
from qregister.backends import get_backend
from qregister.bitstr import bit
from qregister.errors import DimensionOverflow, UnimplementedCapability
from qregister.qiskit_register import QiskitBackend
from qregister.register import RegisterBackend
from qregister.settings import get_settings
from qregister.stim_register import StimBackend

ALL = [NumpyBackend, QiskitBackend, StimBackend]


@pytest.mark.parametrize("Backend", ALL)
def test_zero_state(Backend: type[RegisterBackend]):
    reg = Backend().zero_state(3)
    assert (reg.nqubits, reg.nactive, reg.nbatch) == (3, 3, 1)
    expected = np.zeros((1, 8))
    expected[0, 0] = 1
    np.testing.assert_allclose(reg.probs(), expected, atol=1e-6)


@pytest.mark.parametrize("Backend", ALL)
def test_product_state_from_bitstr(Backend: type[RegisterBackend]):
    """The bit string fixes both the width and the basis index."""
    reg = Backend().product_state(bit("0110"))
    assert reg.nqubits == 4
    assert np.argmax(reg.probs()[0]) == 6
    assert reg.probs()[0, 6] == pytest.approx(1.0, abs=1e-6)


@pytest.mark.parametrize("Backend", ALL)
def test_product_state_int_needs_width(Backend: type[RegisterBackend]):
    with pytest.raises(ValueError):
        Backend().product_state(3)
    reg = Backend().product_state(3, 2)
    assert reg.probs()[0, 3] == pytest.approx(1.0, abs=1e-6)


@pytest.mark.parametrize("Backend", ALL)
def test_product_state_overflow(Backend: type[RegisterBackend]):
    with pytest.raises(DimensionOverflow):
        Backend().product_state(4, 2)


@pytest.mark.parametrize("Backend", ALL)
def test_uniform_state(Backend: type[RegisterBackend]):
    reg = Backend().uniform_state(2)
    np.testing.assert_allclose(reg.probs(), np.full((1, 4), 0.25), atol=1e-6)


@pytest.mark.parametrize("Backend", ALL)
def test_ghz_state(Backend: type[RegisterBackend]):
    reg = Backend().ghz_state(3)
    np.testing.assert_allclose(reg.probs()[0], [0.5, 0, 0, 0, 0, 0, 0, 0.5], atol=1e-6)
    with pytest.raises(ValueError):
        Backend().ghz_state(0)


@pytest.mark.parametrize("Backend", [NumpyBackend, QiskitBackend])
def test_batched_factories(Backend: type[RegisterBackend]):
    reg = Backend().uniform_state(2, nbatch=3)
    assert reg.nbatch == 3
    assert reg.probs().shape == (3, 4)


def test_stim_rejects_batches():
    with pytest.raises(UnimplementedCapability):
        StimBackend().zero_state(2, nbatch=2)


@pytest.mark.parametrize("Backend", ALL)
def test_str_shows_active_qubits(Backend: type[RegisterBackend]):
    reg = Backend().zero_state(3).focus(0, 1)
    text = str(reg)
    assert text.splitlines()[0].startswith(type(reg).__name__)
    assert "active qubits: 2/3" in text


def test_get_backend_by_name():
    assert isinstance(get_backend("numpy"), NumpyBackend)
    assert isinstance(get_backend(" Qiskit "), QiskitBackend)
    assert isinstance(get_backend("stim"), StimBackend)
    with pytest.raises(ValueError):
        get_backend("cirq")


def test_get_backend_from_settings(monkeypatch):
    monkeypatch.setenv("QREG_BACKEND", "stim")
    get_settings.cache_clear()
    try:
        assert isinstance(get_backend(), StimBackend)
    finally:
        get_settings.cache_clear()


def test_stim_drops_unused_simulator_qubits():
    reg = StimBackend().product_state(bit("11"))
    for _ in range(10):
        reg.addbits(2)
        reg.focus(2, 3).select(0)
        reg.relax()
    assert reg.sim.num_qubits == 2
    assert reg.probs()[0, 0b11] == pytest.approx(1.0, abs=1e-6)

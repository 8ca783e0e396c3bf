# qregister/backends.py
from __future__ import annotations

from qregister.array_register import NumpyBackend
from qregister.qiskit_register import QiskitBackend
from qregister.register import RegisterBackend
from qregister.settings import get_settings
from qregister.stim_register import StimBackend

BACKENDS: dict[str, type[RegisterBackend]] = {
    NumpyBackend.name: NumpyBackend,
    QiskitBackend.name: QiskitBackend,
    StimBackend.name: StimBackend,
}


def get_backend(name: str | None = None) -> RegisterBackend:
    """
    Instantiate a backend by name.

    Uses ``settings.BACKEND`` when `name` is omitted.

    Raises
    ------
    ValueError
        For an unknown backend name.
    """
    chosen = (name or get_settings().BACKEND).strip().lower()
    try:
        cls = BACKENDS[chosen]
    except KeyError:
        raise ValueError(f"Invalid backend {chosen!r}, choose one of {', '.join(BACKENDS)}") from None
    return cls()

import importlib.metadata

from .bitstr import BitStr, bit
from .errors import (
    DimensionOverflow, InvalidPartition, RegisterError, ShapeMismatch, UnimplementedCapability
)
from .register import AbstractRegister, RegisterBackend, join
from .partition import focus_apply, focused
from .measure import (
    AllLocs, ComputationalBasis, Eigen, PostAction,
    measure, measure_collapse, measure_collapseto, measure_remove,
)
from .metrics import density_matrix, fidelity, probs, rho, tracedist
from .array_register import ArrayRegister, NumpyBackend
from .qiskit_register import DensityMatrixRegister, QiskitBackend
from .stim_register import StimBackend, StimRegister
from .backends import get_backend

__version__ = importlib.metadata.version("qregister")

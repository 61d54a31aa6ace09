# qstate/state.py
"""
The quantum state contract.

QuantumStateBase fixes what every backend (host, partitioned host, device)
must provide. Composition algorithms in qstate.composition only use the
methods declared here. Operations fall into groups:

    initialization    set_zero_state, set_zero_norm_state,
                      set_computational_basis, set_Haar_random_state
    measurement       get_zero_probability, get_marginal_probability,
                      get_entropy, sampling
    norm              get_squared_norm[_single_thread],
                      normalize[_single_thread]
    duplication       allocate_buffer, copy, load
    raw access        data, data_c, data_cpp, duplicate_data_c,
                      duplicate_data_cpp, get_vector
    algebra           add_state, add_state_with_coef[_single_thread],
                      multiply_coef, multiply_elementwise_function
    classical bits    get_classical_value, set_classical_value,
                      get_classical_register
    serialization     to_dict, to_string

Basis index bit k is the value of qubit k (little-endian).
"""
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .errors import ClassicalRegisterIndexError, ShapeMismatchError
from .layout import Layout, SingleNode, layout_to_dict, split_qubits

# probabilities at or below this are skipped by get_entropy
ENTROPY_EPS = 1e-15

# marker in get_marginal_probability patterns for "not measured"
NOT_MEASURED = 2


class QuantumStateBase(ABC):

    def __init__(self, qubit_count: int, is_state_vector: bool = True,
                 layout: Optional[Layout] = None):
        if int(qubit_count) < 1:
            raise ValueError(f"qubit_count must be positive, got {qubit_count}")
        self._qubit_count = int(qubit_count)
        self._dim = 1 << self._qubit_count
        self._is_state_vector = bool(is_state_vector)
        self._layout = layout if layout is not None else SingleNode()
        self._inner_qc, self._outer_qc = split_qubits(self._qubit_count, self._layout)
        self._classical_register: List[int] = []

    # ---------- shape ----------

    @property
    def qubit_count(self) -> int:
        return self._qubit_count

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def inner_qc(self) -> int:
        """Qubits whose amplitudes are resident in one node partition."""
        return self._inner_qc

    @property
    def outer_qc(self) -> int:
        """Qubits selecting the node that owns an amplitude."""
        return self._outer_qc

    @property
    def layout(self) -> Layout:
        return self._layout

    @property
    def device_number(self) -> int:
        return getattr(self._layout, "device_id", 0)

    def is_state_vector(self) -> bool:
        return self._is_state_vector

    # ---------- initialization ----------

    @abstractmethod
    def set_zero_state(self):
        """Set |0...0>."""

    @abstractmethod
    def set_zero_norm_state(self):
        """Set every amplitude to zero (norm 0, used as an accumulator)."""

    @abstractmethod
    def set_computational_basis(self, comp_basis: int):
        """Set the basis state |comp_basis>; BasisIndexError if out of range."""

    @abstractmethod
    def set_Haar_random_state(self, seed: Optional[int] = None):
        """
        Set a Haar-random state. With a seed the result depends only on the
        seed and qubit count, not on the layout or backend; without one it is
        not reproducible.
        """

    # ---------- measurement ----------

    @abstractmethod
    def get_zero_probability(self, target_qubit_index: int) -> float:
        """Probability of measuring 0 on the target qubit. The state is unchanged."""

    @abstractmethod
    def get_marginal_probability(self, measured_values: Sequence[int]) -> float:
        """
        Joint probability of a partial measurement outcome.

        `measured_values` has one entry per qubit: 0 or 1 for a measured qubit,
        NOT_MEASURED (2) for a qubit that is summed over.
        """

    @abstractmethod
    def get_entropy(self) -> float:
        """Shannon entropy (bits) of the computational-basis distribution."""

    @abstractmethod
    def sampling(self, sampling_count: int, random_seed: Optional[int] = None) -> List[int]:
        """Draw basis indices from |amp|^2. With a seed the generator is reseeded first."""

    # ---------- norm ----------

    @abstractmethod
    def get_squared_norm(self) -> float:
        pass

    @abstractmethod
    def get_squared_norm_single_thread(self) -> float:
        pass

    @abstractmethod
    def normalize(self, squared_norm: float):
        """Divide every amplitude by sqrt(squared_norm)."""

    @abstractmethod
    def normalize_single_thread(self, squared_norm: float):
        pass

    # ---------- duplication ----------

    @abstractmethod
    def allocate_buffer(self) -> "QuantumStateBase":
        """A new state with the same shape and placement; content unspecified."""

    @abstractmethod
    def copy(self) -> "QuantumStateBase":
        """Deep copy of amplitudes and classical register."""

    @abstractmethod
    def load(self, source):
        """
        Overwrite amplitudes from another state (classical register included),
        a sequence of `dim` complex values, or a buffer-protocol object holding
        `dim` complex128 values.
        """

    # ---------- raw access ----------

    @abstractmethod
    def get_device_name(self) -> str:
        pass

    @abstractmethod
    def data(self):
        """Backend-native amplitude buffer, by reference."""

    def data_c(self):
        return self.data()

    @abstractmethod
    def data_cpp(self) -> np.ndarray:
        """Host ndarray of amplitudes, by reference."""

    @abstractmethod
    def duplicate_data_c(self):
        """A fresh backend-native copy of the amplitudes, owned by the caller."""

    @abstractmethod
    def duplicate_data_cpp(self) -> np.ndarray:
        """A fresh host copy of the amplitudes, owned by the caller."""

    @abstractmethod
    def get_vector(self) -> np.ndarray:
        """Host view of the full logical buffer; treat as read-only."""

    def get_cuda_stream(self):
        return None

    # ---------- algebra ----------

    @abstractmethod
    def add_state(self, state: "QuantumStateBase"):
        pass

    @abstractmethod
    def add_state_with_coef(self, coef: complex, state: "QuantumStateBase"):
        pass

    @abstractmethod
    def add_state_with_coef_single_thread(self, coef: complex, state: "QuantumStateBase"):
        pass

    @abstractmethod
    def multiply_coef(self, coef: complex):
        pass

    @abstractmethod
    def multiply_elementwise_function(self, func: Callable[[int], complex]):
        """amp[i] *= func(i) for every basis index i."""

    # ---------- classical register ----------

    def get_classical_value(self, index: int) -> int:
        index = self._check_register_index(index)
        if index >= len(self._classical_register):
            self._classical_register.extend([0] * (index + 1 - len(self._classical_register)))
        return self._classical_register[index]

    def set_classical_value(self, index: int, val: int):
        index = self._check_register_index(index)
        if int(val) < 0:
            raise ValueError(f"classical value must be non-negative, got {val}")
        if index >= len(self._classical_register):
            self._classical_register.extend([0] * (index + 1 - len(self._classical_register)))
        self._classical_register[index] = int(val)

    def get_classical_register(self) -> List[int]:
        return list(self._classical_register)

    @property
    def classical_register(self) -> List[int]:
        return self.get_classical_register()

    @staticmethod
    def _check_register_index(index) -> int:
        index = int(index)
        if index < 0:
            raise ClassicalRegisterIndexError(f"classical register index {index} is negative")
        return index

    # ---------- serialization ----------

    def to_dict(self) -> dict:
        """Structured tree of this state."""
        psi = self.get_vector()
        return {
            "name": type(self).__name__,
            "qubit_count": self._qubit_count,
            "is_state_vector": self._is_state_vector,
            "layout": layout_to_dict(self._layout),
            "classical_register": self.get_classical_register(),
            "state_vector": [[float(a.real), float(a.imag)] for a in psi],
        }

    def to_string(self) -> str:
        lines = [
            " *** Quantum State ***",
            f" * Qubit Count : {self._qubit_count}",
            f" * Dimension   : {self._dim}",
            f" * Device      : {self.get_device_name()}",
        ]
        if self._outer_qc:
            lines.append(f" * Inner/Outer : {self._inner_qc}/{self._outer_qc}")
        lines.append(" * Classical Register : " + " ".join(str(v) for v in self._classical_register))
        lines.append(" * State vector : ")
        lines.extend(f"({a.real},{a.imag})" for a in self.get_vector())
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(qubit_count={self._qubit_count}, "
                f"device={self.get_device_name()!r})")

    # ---------- lifetime ----------

    def close(self):
        """Release device resources. Host states own nothing beyond the buffer."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ---------- helpers for backends ----------

    def _marginal_mask(self, measured_values: Sequence[int]) -> Tuple[int, int]:
        """(mask, value) such that index i is consistent iff (i & mask) == value."""
        if len(measured_values) != self._qubit_count:
            raise ShapeMismatchError(
                f"measured_values has length {len(measured_values)}, "
                f"expected {self._qubit_count}"
            )
        mask = 0
        value = 0
        for k, v in enumerate(measured_values):
            v = int(v)
            if v == NOT_MEASURED:
                continue
            if v not in (0, 1):
                raise ValueError(f"measured_values[{k}]={v}; expected 0, 1 or {NOT_MEASURED}")
            mask |= 1 << k
            value |= v << k
        return mask, value

    def _load_source(self, source) -> Optional[np.ndarray]:
        """
        Validate a load() source. Returns a host complex128 array for raw
        sources, or None when `source` is a state (checked for qubit count).
        """
        if isinstance(source, QuantumStateBase):
            if source.qubit_count != self._qubit_count:
                raise ShapeMismatchError(
                    f"cannot load a {source.qubit_count}-qubit state into a "
                    f"{self._qubit_count}-qubit state"
                )
            return None
        if isinstance(source, (bytes, bytearray, memoryview)):
            arr = np.frombuffer(source, dtype=np.complex128)
        else:
            arr = np.asarray(source, dtype=np.complex128)
        if arr.ndim != 1 or arr.shape[0] != self._dim:
            raise ShapeMismatchError(f"expected {self._dim} amplitudes, got shape {arr.shape}")
        return arr

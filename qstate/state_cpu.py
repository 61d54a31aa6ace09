# qstate/state_cpu.py
"""
Host backend.

The amplitudes live in one contiguous complex128 buffer. With a MultiNode
layout that buffer is viewed as 2^outer_qc node partitions of 2^inner_qc
amplitudes each; partition r holds global indices [r << inner_qc,
(r + 1) << inner_qc). Every kernel runs partition by partition, and global
quantities are combined from per-partition partials in rank order, the way
an all-reduce over nodes would combine them.
"""
from typing import Callable, List, Optional, Sequence

import numpy as np

from . import ops_numba, ops_serial
from .errors import BasisIndexError, check_qubit_index, check_same_qubit_count
from .layout import Layout, MultiNode, SingleNode
from .log import get_logger
from .state import ENTROPY_EPS, QuantumStateBase

log = get_logger("state_cpu")


class QuantumStateCpu(QuantumStateBase):

    def __init__(self, qubit_count: int, is_state_vector: bool = True,
                 layout: Optional[Layout] = None):
        layout = layout if layout is not None else SingleNode()
        if not isinstance(layout, (SingleNode, MultiNode)):
            raise TypeError(f"QuantumStateCpu cannot be placed on {layout!r}")
        if not is_state_vector:
            raise ValueError("QuantumStateCpu only stores state vectors")
        super().__init__(qubit_count, is_state_vector, layout)

        self._psi = np.zeros(self._dim, dtype=np.complex128)
        self._parts = self._psi.reshape(1 << self._outer_qc, 1 << self._inner_qc)
        self._random = np.random.default_rng()

        if isinstance(layout, MultiNode) and layout.node_count > 1 and self._outer_qc == 0:
            log.debug("%d qubits too few for %d nodes; using one partition",
                      self._qubit_count, layout.node_count)
        log.debug("allocated %d-qubit state (%d partition(s))",
                  self._qubit_count, self.node_count)
        self.set_zero_state()

    @property
    def node_count(self) -> int:
        return self._parts.shape[0]

    def local_data(self, rank: int) -> np.ndarray:
        """Partition owned by node `rank`, by reference."""
        if not (0 <= rank < self.node_count):
            raise IndexError(f"rank {rank} out of range [0, {self.node_count})")
        return self._parts[rank]

    @staticmethod
    def _ops(single_thread: bool):
        return ops_serial if single_thread else ops_numba

    # ---------- initialization ----------

    def set_zero_state(self):
        self._psi[:] = 0
        self._psi[0] = 1.0

    def set_zero_norm_state(self):
        self._psi[:] = 0

    def set_computational_basis(self, comp_basis: int):
        comp_basis = int(comp_basis)
        if not (0 <= comp_basis < self._dim):
            raise BasisIndexError(f"basis index {comp_basis} out of range [0, {self._dim})")
        self._psi[:] = 0
        self._psi[comp_basis] = 1.0

    def set_Haar_random_state(self, seed: Optional[int] = None):
        # one stream over the whole buffer in basis order, so the partition
        # layout never changes which state a seed produces
        g = self._random if seed is None else np.random.default_rng(seed)
        self._psi.real = g.standard_normal(self._dim)
        self._psi.imag = g.standard_normal(self._dim)
        norm = ops_serial.squared_norm(self._psi)
        for part in self._parts:
            ops_serial.normalize(part, norm)

    # ---------- measurement ----------

    def get_zero_probability(self, target_qubit_index: int) -> float:
        check_qubit_index(target_qubit_index, self._qubit_count)
        k = int(target_qubit_index)
        if k < self._inner_qc:
            return float(sum(ops_numba.zero_probability(part, k) for part in self._parts))
        bit = k - self._inner_qc
        return float(sum(ops_numba.squared_norm(part)
                         for rank, part in enumerate(self._parts) if (rank >> bit) & 1 == 0))

    def get_marginal_probability(self, measured_values: Sequence[int]) -> float:
        mask, value = self._marginal_mask(measured_values)
        local_mask = (1 << self._inner_qc) - 1
        inner_mask, inner_value = mask & local_mask, value & local_mask
        outer_mask, outer_value = mask >> self._inner_qc, value >> self._inner_qc
        return float(sum(ops_numba.marginal_probability(part, inner_mask, inner_value)
                         for rank, part in enumerate(self._parts)
                         if (rank & outer_mask) == outer_value))

    def get_entropy(self) -> float:
        return float(sum(ops_numba.entropy(part, ENTROPY_EPS) for part in self._parts))

    def sampling(self, sampling_count: int, random_seed: Optional[int] = None) -> List[int]:
        if sampling_count < 0:
            raise ValueError(f"sampling_count must be non-negative, got {sampling_count}")
        if random_seed is not None:
            self._random = np.random.default_rng(random_seed)
        if sampling_count == 0:
            return []
        # per-partition cumulative sums, shifted by the totals of lower ranks
        cum = np.empty(self._dim, dtype=np.float64)
        offset = 0.0
        for part, out in zip(self._parts, cum.reshape(self._parts.shape)):
            np.cumsum(part.real * part.real + part.imag * part.imag, out=out)
            out += offset
            offset = out[-1]
        if offset <= 0.0:
            raise ValueError("cannot sample from a state with zero norm")
        r = self._random.random(sampling_count) * offset
        idx = np.searchsorted(cum, r, side="right")
        return np.minimum(idx, self._dim - 1).tolist()

    # ---------- norm ----------

    def _squared_norm(self, single_thread: bool) -> float:
        ops = self._ops(single_thread)
        return float(sum(ops.squared_norm(part) for part in self._parts))

    def get_squared_norm(self) -> float:
        return self._squared_norm(False)

    def get_squared_norm_single_thread(self) -> float:
        return self._squared_norm(True)

    def _normalize(self, squared_norm: float, single_thread: bool):
        if not squared_norm > 0.0:
            raise ValueError(f"squared_norm must be positive, got {squared_norm}")
        ops = self._ops(single_thread)
        for part in self._parts:
            ops.normalize(part, float(squared_norm))

    def normalize(self, squared_norm: float):
        self._normalize(squared_norm, False)

    def normalize_single_thread(self, squared_norm: float):
        self._normalize(squared_norm, True)

    # ---------- duplication ----------

    def allocate_buffer(self) -> "QuantumStateCpu":
        return QuantumStateCpu(self._qubit_count, layout=self._layout)

    def copy(self) -> "QuantumStateCpu":
        new = QuantumStateCpu(self._qubit_count, layout=self._layout)
        new._psi[:] = self._psi
        new._classical_register = list(self._classical_register)
        return new

    def load(self, source):
        arr = self._load_source(source)
        if arr is None:
            self._psi[:] = source.get_vector()
            self._classical_register = source.get_classical_register()
        else:
            self._psi[:] = arr

    # ---------- raw access ----------

    def get_device_name(self) -> str:
        return "multi-cpu" if self._outer_qc else "cpu"

    def data(self) -> np.ndarray:
        return self._psi

    def data_cpp(self) -> np.ndarray:
        return self._psi

    def duplicate_data_c(self) -> np.ndarray:
        return self._psi.copy()

    def duplicate_data_cpp(self) -> np.ndarray:
        return self._psi.copy()

    def get_vector(self) -> np.ndarray:
        v = self._psi.view()
        v.flags.writeable = False
        return v

    # ---------- algebra ----------

    def _add_with_coef(self, coef: complex, state: QuantumStateBase, single_thread: bool):
        check_same_qubit_count(self, state)
        src = np.ascontiguousarray(state.get_vector()).reshape(self._parts.shape)
        ops = self._ops(single_thread)
        for dst_part, src_part in zip(self._parts, src):
            ops.add_with_coef(dst_part, src_part, complex(coef))

    def add_state(self, state: QuantumStateBase):
        self._add_with_coef(1.0, state, False)

    def add_state_with_coef(self, coef: complex, state: QuantumStateBase):
        self._add_with_coef(coef, state, False)

    def add_state_with_coef_single_thread(self, coef: complex, state: QuantumStateBase):
        self._add_with_coef(coef, state, True)

    def multiply_coef(self, coef: complex):
        for part in self._parts:
            ops_numba.multiply_coef(part, complex(coef))

    def multiply_elementwise_function(self, func: Callable[[int], complex]):
        # evaluate every factor first so a failing func leaves the state untouched
        factors = np.fromiter((func(i) for i in range(self._dim)),
                              dtype=np.complex128, count=self._dim)
        self._psi *= factors

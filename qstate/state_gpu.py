# qstate/state_gpu.py
"""
Accelerator backend (CuPy).

A QuantumStateGpu owns its device buffer and a DeviceContext (device handle
plus a non-blocking stream). The context is released exactly once: on
close(), on leaving a `with` block, or when the state is garbage collected.
Random numbers are drawn on the host with the same generator layout as
QuantumStateCpu, so a seeded Haar-random state is identical on both backends.
"""
import weakref
from contextlib import contextmanager
from typing import Callable, List, Optional, Sequence

import cupy as cp
import numpy as np

from . import ops_cupy, ops_serial
from .config import get_settings
from .errors import BasisIndexError, check_qubit_index, check_same_qubit_count
from .layout import Device, Layout
from .log import get_logger
from .state import ENTROPY_EPS, QuantumStateBase

log = get_logger("state_gpu")


class DeviceContext:
    """Opaque handle for a device and the stream a state's kernels run on."""

    def __init__(self, device_id: int):
        self.device_id = device_id
        self.device = cp.cuda.Device(device_id)
        with self.device:
            self.stream = cp.cuda.Stream(non_blocking=True)
        log.debug("acquired stream on device %d", device_id)

    @property
    def released(self) -> bool:
        return self.stream is None

    @contextmanager
    def activate(self):
        if self.released:
            raise RuntimeError(f"device context for device {self.device_id} was released")
        with self.device, self.stream:
            yield

    def wait_for(self, other: "DeviceContext"):
        """Order work queued later on this stream after everything queued so far on `other`."""
        if other is self:
            return
        with self.device:
            self.stream.wait_event(other.stream.record())

    def release(self):
        if self.released:
            return
        with self.device:
            self.stream.synchronize()
        self.stream = None
        log.debug("released stream on device %d", self.device_id)


class QuantumStateGpu(QuantumStateBase):

    def __init__(self, qubit_count: int, is_state_vector: bool = True,
                 layout: Optional[Layout] = None):
        layout = layout if layout is not None else Device(get_settings().DEVICE_ID)
        if not isinstance(layout, Device):
            raise TypeError(f"QuantumStateGpu needs a Device layout, got {layout!r}")
        if not is_state_vector:
            raise ValueError("QuantumStateGpu only stores state vectors")
        super().__init__(qubit_count, is_state_vector, layout)

        self._ctx = DeviceContext(layout.device_id)
        self._finalizer = weakref.finalize(self, self._ctx.release)
        try:
            with self._ctx.activate():
                self._psi = cp.zeros(self._dim, dtype=cp.complex128)
        except Exception:
            self._finalizer()
            raise
        self._random = np.random.default_rng()
        log.debug("allocated %d-qubit state on device %d", self._qubit_count, layout.device_id)
        self.set_zero_state()

    def close(self):
        self._finalizer()
        self._psi = None

    def get_cuda_stream(self):
        return self._ctx.stream

    def _source_on_device(self, state: QuantumStateBase) -> cp.ndarray:
        if isinstance(state, QuantumStateGpu) and state.device_number == self.device_number:
            self._ctx.wait_for(state._ctx)
            return state.data()
        return ops_cupy.to_device(state.get_vector())

    def _release_source(self, state: QuantumStateBase):
        # the source must not overwrite its buffer before our read has run
        if isinstance(state, QuantumStateGpu) and state.device_number == self.device_number:
            state._ctx.wait_for(self._ctx)

    # ---------- initialization ----------

    def set_zero_state(self):
        with self._ctx.activate():
            self._psi.fill(0)
            self._psi[0] = 1.0

    def set_zero_norm_state(self):
        with self._ctx.activate():
            self._psi.fill(0)

    def set_computational_basis(self, comp_basis: int):
        comp_basis = int(comp_basis)
        if not (0 <= comp_basis < self._dim):
            raise BasisIndexError(f"basis index {comp_basis} out of range [0, {self._dim})")
        with self._ctx.activate():
            self._psi.fill(0)
            self._psi[comp_basis] = 1.0

    def set_Haar_random_state(self, seed: Optional[int] = None):
        g = self._random if seed is None else np.random.default_rng(seed)
        host = np.empty(self._dim, dtype=np.complex128)
        host.real = g.standard_normal(self._dim)
        host.imag = g.standard_normal(self._dim)
        ops_serial.normalize(host, ops_serial.squared_norm(host))
        with self._ctx.activate():
            self._psi[:] = ops_cupy.to_device(host)

    # ---------- measurement ----------

    def get_zero_probability(self, target_qubit_index: int) -> float:
        check_qubit_index(target_qubit_index, self._qubit_count)
        with self._ctx.activate():
            return ops_cupy.zero_probability(self._psi, int(target_qubit_index), self._qubit_count)

    def get_marginal_probability(self, measured_values: Sequence[int]) -> float:
        mask, value = self._marginal_mask(measured_values)
        with self._ctx.activate():
            return ops_cupy.marginal_probability(self._psi, mask, value)

    def get_entropy(self) -> float:
        with self._ctx.activate():
            return ops_cupy.entropy(self._psi, ENTROPY_EPS)

    def sampling(self, sampling_count: int, random_seed: Optional[int] = None) -> List[int]:
        if sampling_count < 0:
            raise ValueError(f"sampling_count must be non-negative, got {sampling_count}")
        if random_seed is not None:
            self._random = np.random.default_rng(random_seed)
        if sampling_count == 0:
            return []
        with self._ctx.activate():
            cum = ops_cupy.cumulative_probabilities(self._psi)
        total = cum[-1]
        if total <= 0.0:
            raise ValueError("cannot sample from a state with zero norm")
        r = self._random.random(sampling_count) * total
        idx = np.searchsorted(cum, r, side="right")
        return np.minimum(idx, self._dim - 1).tolist()

    # ---------- norm ----------
    # a device reduction is already independent of host threads, so the
    # _single_thread variants share the device kernels

    def get_squared_norm(self) -> float:
        with self._ctx.activate():
            return ops_cupy.squared_norm(self._psi)

    def get_squared_norm_single_thread(self) -> float:
        return self.get_squared_norm()

    def normalize(self, squared_norm: float):
        if not squared_norm > 0.0:
            raise ValueError(f"squared_norm must be positive, got {squared_norm}")
        with self._ctx.activate():
            ops_cupy.normalize(self._psi, float(squared_norm))

    def normalize_single_thread(self, squared_norm: float):
        self.normalize(squared_norm)

    # ---------- duplication ----------

    def allocate_buffer(self) -> "QuantumStateGpu":
        return QuantumStateGpu(self._qubit_count, layout=self._layout)

    def copy(self) -> "QuantumStateGpu":
        new = QuantumStateGpu(self._qubit_count, layout=self._layout)
        # new buffer is zero-filled on its own stream
        self._ctx.wait_for(new._ctx)
        with self._ctx.activate():
            new._psi[:] = self._psi
            self._ctx.stream.synchronize()
        new._classical_register = list(self._classical_register)
        return new

    def load(self, source):
        arr = self._load_source(source)
        with self._ctx.activate():
            if arr is None:
                self._psi[:] = self._source_on_device(source)
            else:
                self._psi[:] = ops_cupy.to_device(arr)
        if arr is None:
            self._release_source(source)
            self._classical_register = source.get_classical_register()

    # ---------- raw access ----------

    def get_device_name(self) -> str:
        return "gpu"

    def data(self) -> cp.ndarray:
        return self._psi

    def data_cpp(self) -> np.ndarray:
        raise NotImplementedError("device amplitudes have no host reference; use duplicate_data_cpp()")

    def duplicate_data_c(self) -> cp.ndarray:
        with self._ctx.activate():
            return self._psi.copy()

    def duplicate_data_cpp(self) -> np.ndarray:
        with self._ctx.activate():
            return ops_cupy.to_host(self._psi)

    def get_vector(self) -> np.ndarray:
        return self.duplicate_data_cpp()

    # ---------- algebra ----------

    def add_state(self, state: QuantumStateBase):
        self.add_state_with_coef(1.0, state)

    def add_state_with_coef(self, coef: complex, state: QuantumStateBase):
        check_same_qubit_count(self, state)
        with self._ctx.activate():
            ops_cupy.add_with_coef(self._psi, self._source_on_device(state), coef)
        self._release_source(state)

    def add_state_with_coef_single_thread(self, coef: complex, state: QuantumStateBase):
        self.add_state_with_coef(coef, state)

    def multiply_coef(self, coef: complex):
        with self._ctx.activate():
            ops_cupy.multiply_coef(self._psi, coef)

    def multiply_elementwise_function(self, func: Callable[[int], complex]):
        factors = np.fromiter((func(i) for i in range(self._dim)),
                              dtype=np.complex128, count=self._dim)
        with self._ctx.activate():
            self._psi *= ops_cupy.to_device(factors)

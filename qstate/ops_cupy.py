# qstate/ops_cupy.py
"""
Device amplitude kernels (CuPy).

All kernels take a 1-D complex128 cupy array and run on the current device
and stream; callers enter the owning state's device context first.
Reductions return host Python floats, so they synchronize with the stream.
"""
import math

import cupy as cp
import numpy as np

# ----------------------------- utils -----------------------------

def to_device(host: np.ndarray) -> cp.ndarray:
    return cp.asarray(np.ascontiguousarray(host, dtype=np.complex128))


def to_host(psi: cp.ndarray) -> np.ndarray:
    return cp.asnumpy(psi)


def _probs(psi: cp.ndarray) -> cp.ndarray:
    return psi.real * psi.real + psi.imag * psi.imag

# -------------------------- core kernels --------------------------

def squared_norm(psi: cp.ndarray) -> float:
    return float(_probs(psi).sum())


def normalize(psi: cp.ndarray, squared_norm: float):
    psi *= math.sqrt(1.0 / squared_norm)


def add_with_coef(dst: cp.ndarray, src: cp.ndarray, coef: complex):
    dst += complex(coef) * src


def multiply_coef(psi: cp.ndarray, coef: complex):
    psi *= complex(coef)


def zero_probability(psi: cp.ndarray, k: int, qubit_count: int) -> float:
    """
    View psi as (right, 2, left) where the middle axis is qubit k and sum the
    bit-0 slice.
    """
    left = 1 << k
    right = 1 << (qubit_count - k - 1)
    psi3 = psi.reshape(right, 2, left)
    return float(_probs(psi3[:, 0, :]).sum())


def marginal_probability(psi: cp.ndarray, mask: int, value: int) -> float:
    idx = cp.arange(psi.shape[0], dtype=cp.int64)
    keep = (idx & mask) == value
    return float(_probs(psi)[keep].sum())


def entropy(psi: cp.ndarray, eps: float) -> float:
    p = _probs(psi)
    p = p[p > eps]
    return float(-(p * cp.log2(p)).sum())


def cumulative_probabilities(psi: cp.ndarray) -> np.ndarray:
    return cp.asnumpy(cp.cumsum(_probs(psi)))

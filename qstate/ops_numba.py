# qstate/ops_numba.py
import math

from numba import get_num_threads, njit, prange, set_num_threads

from .config import get_settings

# ---------- low-level kernels (Numba JIT, parallel) ----------

@njit(parallel=True, fastmath=True)
def squared_norm(psi):
    s = 0.0
    for i in prange(psi.shape[0]):
        a = psi[i]
        s += a.real * a.real + a.imag * a.imag
    return s


@njit(parallel=True, fastmath=True)
def normalize(psi, squared_norm):
    factor = math.sqrt(1.0 / squared_norm)
    for i in prange(psi.shape[0]):
        psi[i] = psi[i] * factor


@njit(parallel=True, fastmath=True)
def add_with_coef(dst, src, coef):
    for i in prange(dst.shape[0]):
        dst[i] = dst[i] + coef * src[i]


@njit(parallel=True, fastmath=True)
def multiply_coef(psi, coef):
    for i in prange(psi.shape[0]):
        psi[i] = psi[i] * coef


@njit(parallel=True, fastmath=True)
def zero_probability(psi, k):
    # blocks of 2^(k+1): the lower half of each block has bit k == 0
    step = 1 << k
    block = step << 1
    nblocks = psi.shape[0] // block
    s = 0.0
    for b in prange(nblocks):
        base = b * block
        for off in range(step):
            a = psi[base + off]
            s += a.real * a.real + a.imag * a.imag
    return s


@njit(parallel=True, fastmath=True)
def marginal_probability(psi, mask, value):
    s = 0.0
    for i in prange(psi.shape[0]):
        if (i & mask) == value:
            a = psi[i]
            s += a.real * a.real + a.imag * a.imag
    return s


@njit(parallel=True, fastmath=True)
def entropy(psi, eps):
    s = 0.0
    for i in prange(psi.shape[0]):
        a = psi[i]
        p = a.real * a.real + a.imag * a.imag
        if p > eps:
            s -= p * math.log2(p)
    return s

# ---------- thread pool ----------

def set_threads(n: int):
    set_num_threads(n)


def get_threads() -> int:
    return get_num_threads()


def _apply_settings():
    n = get_settings().NUM_THREADS
    if n:
        set_threads(int(n))


_apply_settings()

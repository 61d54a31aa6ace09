# qstate/ops_serial.py
"""
Single-thread amplitude kernels.

Every kernel is a plain ascending sweep over the basis indices of one
contiguous buffer (little-endian: qubit k is bit k). No prange and no
fastmath, so reductions accumulate in index order and are reproducible
regardless of the machine's thread count. These are the `_single_thread`
code paths of the host backend and the baseline the parallel kernels are
tested against.
"""
import math

from numba import njit


@njit
def squared_norm(psi):
    s = 0.0
    for i in range(psi.shape[0]):
        a = psi[i]
        s += a.real * a.real + a.imag * a.imag
    return s


@njit
def normalize(psi, squared_norm):
    factor = math.sqrt(1.0 / squared_norm)
    for i in range(psi.shape[0]):
        psi[i] = psi[i] * factor


@njit
def add_with_coef(dst, src, coef):
    for i in range(dst.shape[0]):
        dst[i] = dst[i] + coef * src[i]


@njit
def multiply_coef(psi, coef):
    for i in range(psi.shape[0]):
        psi[i] = psi[i] * coef


@njit
def zero_probability(psi, k):
    """Probability mass on local indices whose bit k is 0."""
    s = 0.0
    for i in range(psi.shape[0]):
        if ((i >> k) & 1) == 0:
            a = psi[i]
            s += a.real * a.real + a.imag * a.imag
    return s


@njit
def marginal_probability(psi, mask, value):
    """Probability mass on local indices i with (i & mask) == value."""
    s = 0.0
    for i in range(psi.shape[0]):
        if (i & mask) == value:
            a = psi[i]
            s += a.real * a.real + a.imag * a.imag
    return s


@njit
def entropy(psi, eps):
    """Sum of -p*log2(p) over local amplitudes with p > eps."""
    s = 0.0
    for i in range(psi.shape[0]):
        a = psi[i]
        p = a.real * a.real + a.imag * a.imag
        if p > eps:
            s -= p * math.log2(p)
    return s

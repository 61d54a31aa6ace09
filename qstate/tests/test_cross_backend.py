# qstate/tests/test_cross_backend.py
"""Single-thread kernels against parallel kernels and a plain Python sweep."""
import numpy as np
import pytest
from numba import config

from qstate import ops_numba, ops_serial
from qstate.state_cpu import QuantumStateCpu


def random_psi(n, seed=123):
    rng = np.random.default_rng(seed)
    return rng.standard_normal(1 << n) + 1j * rng.standard_normal(1 << n)

def reference_squared_norm(psi):
    s = 0.0
    for a in psi:
        s += a.real * a.real + a.imag * a.imag
    return s

def test_single_thread_norm_is_sequential_sweep():
    psi = random_psi(10)
    assert ops_serial.squared_norm(psi) == reference_squared_norm(psi)
    st = QuantumStateCpu(10)
    st.load(psi)
    assert st.get_squared_norm_single_thread() == reference_squared_norm(psi)

def test_single_thread_is_reproducible():
    st = QuantumStateCpu(12)
    st.set_Haar_random_state(3)
    first = st.get_squared_norm_single_thread()
    original = ops_numba.get_threads()
    try:
        for t in sorted({1, min(2, config.NUMBA_NUM_THREADS), original}):
            ops_numba.set_threads(t)
            assert st.get_squared_norm_single_thread() == first
    finally:
        ops_numba.set_threads(original)

@pytest.mark.parametrize("n", [1, 4, 9])
def test_reductions_match(n):
    psi = random_psi(n, seed=n)
    assert np.isclose(ops_serial.squared_norm(psi), ops_numba.squared_norm(psi), rtol=1e-12)
    assert np.isclose(ops_serial.entropy(psi, 1e-15), ops_numba.entropy(psi, 1e-15), rtol=1e-12)
    for k in range(n):
        assert np.isclose(ops_serial.zero_probability(psi, k),
                          ops_numba.zero_probability(psi, k), rtol=1e-12)
    for mask, value in ((0, 0), (1, 1), ((1 << n) - 1, 0), (1 << (n - 1), 1 << (n - 1))):
        assert np.isclose(ops_serial.marginal_probability(psi, mask, value),
                          ops_numba.marginal_probability(psi, mask, value), rtol=1e-12)

def test_elementwise_kernels_match():
    psi = random_psi(8, seed=1)
    other = random_psi(8, seed=2)
    a, b = psi.copy(), psi.copy()
    ops_serial.add_with_coef(a, other, 0.3 - 0.1j)
    ops_numba.add_with_coef(b, other, 0.3 - 0.1j)
    assert np.allclose(a, b, atol=1e-12, rtol=0)
    assert np.allclose(a, psi + (0.3 - 0.1j) * other, atol=1e-12, rtol=0)
    ops_serial.multiply_coef(a, 2j)
    ops_numba.multiply_coef(b, 2j)
    assert np.allclose(a, b, atol=1e-12, rtol=0)
    n2 = ops_serial.squared_norm(a)
    ops_serial.normalize(a, n2)
    ops_numba.normalize(b, n2)
    assert np.allclose(a, b, atol=1e-12, rtol=0)
    assert abs(ops_serial.squared_norm(a) - 1.0) < 1e-10

def test_state_paths_match():
    s = QuantumStateCpu(10); s.set_Haar_random_state(5)
    t = s.copy()
    other = QuantumStateCpu(10); other.set_Haar_random_state(6)
    s.add_state_with_coef_single_thread(0.25j, other)
    t.add_state_with_coef(0.25j, other)
    assert np.allclose(s.get_vector(), t.get_vector(), atol=1e-12, rtol=0)
    s.normalize_single_thread(s.get_squared_norm_single_thread())
    t.normalize(t.get_squared_norm())
    assert np.allclose(s.get_vector(), t.get_vector(), atol=1e-12, rtol=0)

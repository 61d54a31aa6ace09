# qstate/tests/test_composition.py
import itertools

import numpy as np
import pytest

from qstate.composition import (drop_qubit, inner_product, make_superposition,
                                permutate_qubit, tensor_product)
from qstate.errors import QubitIndexError, ShapeMismatchError
from qstate.layout import MultiNode
from qstate.state_cpu import QuantumStateCpu


def almost(p, q, tol=1e-10):
    return np.allclose(p, q, atol=tol, rtol=0)

def haar(n, seed=0, layout=None):
    st = QuantumStateCpu(n, layout=layout)
    st.set_Haar_random_state(seed)
    return st

def basis(n, b):
    st = QuantumStateCpu(n)
    st.set_computational_basis(b)
    return st

# ---------- inner_product ----------

@pytest.mark.parametrize("n", [1, 3, 6])
def test_inner_product_with_self_is_squared_norm(n):
    st = haar(n, seed=n)
    st.multiply_coef(0.7 + 0.2j)
    ip = inner_product(st, st)
    assert abs(ip.real - st.get_squared_norm()) < 1e-10
    assert abs(ip.imag) < 1e-12

def test_inner_product_orthogonal_basis_states():
    assert inner_product(basis(2, 0), basis(2, 1)) == 0j

def test_inner_product_conjugates_bra():
    bra = QuantumStateCpu(1); bra.load([0, 1j])
    ket = QuantumStateCpu(1); ket.load([0, 1])
    assert inner_product(bra, ket) == -1j
    assert inner_product(ket, bra) == 1j

def test_inner_product_shape_mismatch():
    with pytest.raises(ShapeMismatchError):
        inner_product(QuantumStateCpu(2), QuantumStateCpu(3))

# ---------- tensor_product ----------

def test_tensor_of_basis_states():
    # right state supplies qubit 0, left state supplies qubit 1
    out = tensor_product(basis(1, 0), basis(1, 1))
    assert out.qubit_count == 2
    psi = out.get_vector()
    assert psi[1] == 1.0
    assert np.count_nonzero(psi) == 1
    out = tensor_product(basis(1, 1), basis(1, 0))
    assert out.get_vector()[2] == 1.0 and np.count_nonzero(out.get_vector()) == 1

def test_tensor_product_amplitudes():
    left, right = haar(2, seed=1), haar(3, seed=2)
    out = tensor_product(left, right)
    assert out.qubit_count == 5
    l, r, psi = left.get_vector(), right.get_vector(), out.get_vector()
    for i in range(4):
        for j in range(8):
            assert abs(psi[(i << 3) | j] - l[i] * r[j]) < 1e-14
    assert abs(out.get_squared_norm() - 1.0) < 1e-10

def test_tensor_product_keeps_marginals():
    left, right = haar(2, seed=3), haar(2, seed=4)
    out = tensor_product(left, right)
    for q in range(2):
        assert abs(out.get_zero_probability(q) - right.get_zero_probability(q)) < 1e-10
        assert abs(out.get_zero_probability(q + 2) - left.get_zero_probability(q)) < 1e-10

def test_tensor_then_identity_permutation_is_unchanged():
    out = tensor_product(haar(2, seed=5), haar(2, seed=6))
    same = permutate_qubit(out, [0, 1, 2, 3])
    assert np.array_equal(same.get_vector(), out.get_vector())

# ---------- permutate_qubit ----------

def test_permutate_swaps_two_qubits():
    out = permutate_qubit(basis(2, 1), [1, 0])
    assert out.get_vector()[2] == 1.0

def test_permutate_matches_bit_relabeling():
    n = 4
    st = haar(n, seed=9)
    order = [2, 0, 3, 1]
    out = permutate_qubit(st, order)
    src, psi = st.get_vector(), out.get_vector()
    for i in range(1 << n):
        j = sum(((i >> k) & 1) << order[k] for k in range(n))
        assert psi[i] == src[j]
    # amplitudes only move
    assert abs(out.get_squared_norm() - st.get_squared_norm()) < 1e-12

def test_permutate_moves_qubit_marginals():
    st = haar(3, seed=10)
    order = [1, 2, 0]
    out = permutate_qubit(st, order)
    for k in range(3):
        assert abs(out.get_zero_probability(k) - st.get_zero_probability(order[k])) < 1e-10

def test_permutate_validates_order():
    st = QuantumStateCpu(3)
    with pytest.raises(ShapeMismatchError):
        permutate_qubit(st, [0, 1])
    with pytest.raises(ValueError, match="not a permutation"):
        permutate_qubit(st, [0, 1, 1])
    with pytest.raises(ValueError, match="not a permutation"):
        permutate_qubit(st, [0, 1, 3])

# ---------- drop_qubit ----------

def test_drop_qubit_amplitudes():
    st = haar(3, seed=12)
    out = drop_qubit(st, [1], [1])
    assert out.qubit_count == 2
    src, psi = st.get_vector(), out.get_vector()
    # surviving qubits 0 and 2 become 0 and 1
    for i in range(4):
        q0, q2 = i & 1, i >> 1
        assert psi[i] == src[q0 | (1 << 1) | (q2 << 2)]

def test_drop_qubit_norm_is_projection_probability():
    st = haar(4, seed=13)
    out = drop_qubit(st, [3, 0], [0, 1])
    assert out.qubit_count == 2
    expect = st.get_marginal_probability([1, 2, 2, 0])
    assert abs(out.get_squared_norm() - expect) < 1e-12

def test_drop_qubit_then_normalize():
    st = haar(3, seed=14)
    out = drop_qubit(st, [0], [0])
    out.normalize(out.get_squared_norm())
    assert abs(out.get_squared_norm() - 1.0) < 1e-10

def test_drop_qubit_of_product_state_recovers_factor():
    left, right = haar(2, seed=15), basis(1, 1)
    out = drop_qubit(tensor_product(left, right), [0], [1])
    assert almost(out.get_vector(), left.get_vector(), tol=1e-14)

def test_drop_qubit_validation():
    st = QuantumStateCpu(3)
    with pytest.raises(ShapeMismatchError):
        drop_qubit(st, [0, 1], [0])
    with pytest.raises(QubitIndexError):
        drop_qubit(st, [3], [0])
    with pytest.raises(ValueError, match="duplicate"):
        drop_qubit(st, [1, 1], [0, 0])
    with pytest.raises(ValueError, match="0 or 1"):
        drop_qubit(st, [1], [2])
    with pytest.raises(ValueError, match="every qubit"):
        drop_qubit(st, [0, 1, 2], [0, 0, 0])

# ---------- make_superposition ----------

def test_superposition_with_zero_coefficient_is_exact():
    s1, s2 = haar(3, seed=16), haar(3, seed=17)
    out = make_superposition(1, s1, 0, s2)
    assert np.array_equal(out.get_vector(), s1.get_vector())

def test_superposition_of_basis_states():
    c = 1 / np.sqrt(2)
    out = make_superposition(c, basis(1, 0), c, basis(1, 1))
    assert almost(out.get_vector(), [c, c])
    assert abs(out.get_squared_norm() - 1.0) < 1e-12
    out = make_superposition(1, basis(1, 0), 1, basis(1, 1))
    assert abs(out.get_squared_norm() - 2.0) < 1e-12  # caller renormalizes

def test_superposition_shape_mismatch():
    with pytest.raises(ShapeMismatchError):
        make_superposition(1, QuantumStateCpu(1), 1, QuantumStateCpu(2))

# ---------- layouts ----------

def test_results_follow_first_input_layout():
    layout = MultiNode(2)
    left = haar(2, seed=18, layout=layout)
    right = haar(2, seed=19)
    out = tensor_product(left, right)
    assert out.layout == layout and out.outer_qc == 1
    expect = np.kron(left.get_vector(), right.get_vector())
    assert almost(out.get_vector(), expect, tol=1e-14)
    mixed = make_superposition(0.5, left, 0.5, right)
    assert almost(mixed.get_vector(), 0.5 * (left.get_vector() + right.get_vector()))
    assert abs(inner_product(left, right) - np.vdot(left.get_vector(), right.get_vector())) < 1e-12

@pytest.mark.parametrize("order", list(itertools.permutations(range(3))))
def test_permutation_then_inverse_is_identity(order):
    st = haar(3, seed=20)
    inverse = [order.index(k) for k in range(3)]
    back = permutate_qubit(permutate_qubit(st, order), inverse)
    assert np.array_equal(back.get_vector(), st.get_vector())

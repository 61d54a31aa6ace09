# qstate/composition.py
"""
Backend-agnostic operations that build or compare states.

Everything here goes through the QuantumStateBase contract (get_vector,
load, add_state_with_coef, ...), so any conforming backend can be composed.
Results are created on the layout of the first input state.

Endianness: little-endian, qubit k is bit k of the basis index. Reshaping a
buffer to [2] * n therefore puts qubit n-1 on axis 0 and qubit 0 on the last
axis.
"""
from typing import Sequence

import numpy as np

from .backends import make_state
from .errors import ShapeMismatchError, check_qubit_index, check_same_qubit_count
from .state import QuantumStateBase


def _require_state_vectors(*states: QuantumStateBase):
    for s in states:
        if not s.is_state_vector():
            raise ValueError(f"{s!r} is not a state vector")


def inner_product(state_bra: QuantumStateBase, state_ket: QuantumStateBase) -> complex:
    """<bra|ket> = sum_i conj(bra[i]) * ket[i]."""
    _require_state_vectors(state_bra, state_ket)
    check_same_qubit_count(state_bra, state_ket)
    return complex(np.vdot(state_bra.get_vector(), state_ket.get_vector()))


def tensor_product(state_left: QuantumStateBase, state_right: QuantumStateBase) -> QuantumStateBase:
    """
    |left> (x) |right>. The right state's qubits become qubits
    0 .. right.qubit_count-1 of the result and the left state's qubits are
    placed above them, so result[(i << right.qubit_count) | j] = left[i] * right[j].
    """
    _require_state_vectors(state_left, state_right)
    psi = np.kron(state_left.get_vector(), state_right.get_vector())
    result = make_state(state_left.qubit_count + state_right.qubit_count,
                        layout=state_left.layout)
    result.load(psi)
    return result


def permutate_qubit(state: QuantumStateBase, qubit_order: Sequence[int]) -> QuantumStateBase:
    """New state whose qubit k is qubit qubit_order[k] of `state`."""
    _require_state_vectors(state)
    n = state.qubit_count
    order = [int(q) for q in qubit_order]
    if len(order) != n:
        raise ShapeMismatchError(f"qubit_order has length {len(order)}, expected {n}")
    if sorted(order) != list(range(n)):
        raise ValueError(f"qubit_order {order} is not a permutation of 0..{n - 1}")

    # new axis j holds new qubit n-1-j, i.e. old qubit order[n-1-j]
    axes = [n - 1 - order[n - 1 - j] for j in range(n)]
    psi = state.get_vector().reshape([2] * n).transpose(axes).reshape(-1)
    result = make_state(n, layout=state.layout)
    result.load(psi)
    return result


def drop_qubit(state: QuantumStateBase, target: Sequence[int],
               projection: Sequence[int]) -> QuantumStateBase:
    """
    Project qubits `target` onto the classical values `projection` and remove
    them. Remaining qubits keep their relative order. The result is not
    renormalized; its squared norm is the probability of the projection.
    """
    _require_state_vectors(state)
    n = state.qubit_count
    target = [int(t) for t in target]
    projection = [int(p) for p in projection]
    if len(target) != len(projection):
        raise ShapeMismatchError(
            f"target has {len(target)} entries but projection has {len(projection)}"
        )
    for t in target:
        check_qubit_index(t, n)
    if len(set(target)) != len(target):
        raise ValueError(f"duplicate qubits in target {target}")
    if any(p not in (0, 1) for p in projection):
        raise ValueError(f"projection values must be 0 or 1, got {projection}")
    if len(target) >= n:
        raise ValueError("cannot drop every qubit of a state")

    index = [slice(None)] * n
    for t, p in zip(target, projection):
        index[n - 1 - t] = p
    psi = state.get_vector().reshape([2] * n)[tuple(index)].reshape(-1)
    result = make_state(n - len(target), layout=state.layout)
    result.load(psi)
    return result


def make_superposition(coef1: complex, state1: QuantumStateBase,
                       coef2: complex, state2: QuantumStateBase) -> QuantumStateBase:
    """coef1|state1> + coef2|state2>, not renormalized."""
    _require_state_vectors(state1, state2)
    check_same_qubit_count(state1, state2)
    result = make_state(state1.qubit_count, layout=state1.layout)
    result.set_zero_norm_state()
    result.add_state_with_coef(coef1, state1)
    result.add_state_with_coef(coef2, state2)
    return result

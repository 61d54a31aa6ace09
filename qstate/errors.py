# qstate/errors.py


class StateError(Exception):
    """Base class for errors raised by quantum state operations."""


class ShapeMismatchError(StateError, ValueError):
    """Operands disagree on qubit count or buffer length."""


class QubitIndexError(StateError, IndexError):
    pass


class BasisIndexError(StateError, IndexError):
    pass


class ClassicalRegisterIndexError(StateError, IndexError):
    pass


def check_qubit_index(qubit: int, qubit_count: int):
    if not (0 <= qubit < qubit_count):
        raise QubitIndexError(f"qubit index {qubit} out of range [0, {qubit_count})")


def check_same_qubit_count(a, b, what: str = "states"):
    if a.qubit_count != b.qubit_count:
        raise ShapeMismatchError(
            f"{what} must have equal qubit counts, got {a.qubit_count} and {b.qubit_count}"
        )

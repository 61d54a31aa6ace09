# qstate/serialize.py
import json

import numpy as np

from .backends import make_state
from .layout import layout_from_dict
from .state import QuantumStateBase

REQUIRED_KEYS = {"qubit_count", "state_vector"}


def state_from_dict(tree: dict) -> QuantumStateBase:
    """Rebuild a state from QuantumStateBase.to_dict() output."""
    missing = REQUIRED_KEYS - set(tree)
    if missing:
        raise ValueError(f"state tree missing required keys: {sorted(missing)}")
    layout = layout_from_dict(tree.get("layout", {}))
    state = make_state(int(tree["qubit_count"]),
                       is_state_vector=bool(tree.get("is_state_vector", True)),
                       layout=layout)
    pairs = np.asarray(tree["state_vector"], dtype=np.float64).reshape(-1, 2)
    state.load(pairs[:, 0] + 1j * pairs[:, 1])
    for i, v in enumerate(tree.get("classical_register", [])):
        state.set_classical_value(i, v)
    return state


def dumps(state: QuantumStateBase) -> str:
    return json.dumps(state.to_dict())


def loads(text: str) -> QuantumStateBase:
    return state_from_dict(json.loads(text))

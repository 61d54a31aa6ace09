# qstate/backends.py
from typing import Optional

from .config import get_settings
from .layout import Device, Layout, MultiNode, SingleNode
from .state import QuantumStateBase
from .state_cpu import QuantumStateCpu


def make_state(qubit_count: int, is_state_vector: bool = True,
               layout: Optional[Layout] = None,
               use_multi_node: Optional[bool] = None) -> QuantumStateBase:
    """
    Build a state for one of the three construction shapes:

        make_state(n)                              single host buffer
        make_state(n, use_multi_node=True)         host buffer split over
                                                   Settings.NODE_COUNT nodes
        make_state(n, layout=Device(id))           accelerator `id`

    `layout` and `use_multi_node` are alternatives; passing both is an error.
    """
    if layout is not None and use_multi_node is not None:
        raise ValueError("pass either layout or use_multi_node, not both")
    if use_multi_node:
        layout = MultiNode(get_settings().NODE_COUNT)
    elif layout is None:
        layout = SingleNode()

    if isinstance(layout, Device):
        try:
            from .state_gpu import QuantumStateGpu
        except ImportError as e:
            raise RuntimeError("Device backend not available. Did you `pip install cupy`?") from e
        return QuantumStateGpu(qubit_count, is_state_vector, layout)
    return QuantumStateCpu(qubit_count, is_state_vector, layout)

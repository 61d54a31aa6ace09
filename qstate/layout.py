# qstate/layout.py
"""
Where a state's amplitudes live.

A layout is one of three mutually exclusive values chosen at construction:

    SingleNode()          one contiguous host buffer
    MultiNode(n)          host buffer split into n node partitions
    Device(id)            buffer on accelerator `id`

For MultiNode the top log2(n) bits of a basis index select the owning node
(outer qubits) and the remaining bits index inside that node's partition
(inner qubits).
"""
from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class SingleNode:
    kind = "single"


@dataclass(frozen=True)
class MultiNode:
    node_count: int = 1
    kind = "multi"

    def __post_init__(self):
        n = self.node_count
        if n < 1 or (n & (n - 1)) != 0:
            raise ValueError(f"node_count must be a positive power of two, got {n}")


@dataclass(frozen=True)
class Device:
    device_id: int = 0
    kind = "device"

    def __post_init__(self):
        if self.device_id < 0:
            raise ValueError(f"device_id must be non-negative, got {self.device_id}")


Layout = Union[SingleNode, MultiNode, Device]


def split_qubits(qubit_count: int, layout: Layout) -> Tuple[int, int]:
    """Return (inner_qc, outer_qc) for a state of `qubit_count` qubits."""
    if isinstance(layout, MultiNode):
        outer = layout.node_count.bit_length() - 1
        # too few qubits to give every node at least one local qubit: keep one partition
        if 0 < outer < qubit_count:
            return qubit_count - outer, outer
    return qubit_count, 0


def layout_to_dict(layout: Layout) -> dict:
    if isinstance(layout, MultiNode):
        return {"kind": layout.kind, "node_count": layout.node_count}
    if isinstance(layout, Device):
        return {"kind": layout.kind, "device_id": layout.device_id}
    return {"kind": SingleNode.kind}


def layout_from_dict(d: dict) -> Layout:
    kind = d.get("kind", SingleNode.kind)
    if kind == MultiNode.kind:
        return MultiNode(int(d["node_count"]))
    if kind == Device.kind:
        return Device(int(d["device_id"]))
    if kind == SingleNode.kind:
        return SingleNode()
    raise ValueError(f"unknown layout kind {kind!r}")

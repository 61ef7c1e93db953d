"""
CANopen SDO write request model.
"""
from dataclasses import dataclass
from enum import IntEnum

from canlink.constants import NODE_ID_MODULO


class SdoDataType(IntEnum):
    """Size class of an expedited SDO value, numerically its byte count."""
    UNSIGNED8 = 1
    UNSIGNED16 = 2
    UNSIGNED32 = 4


@dataclass
class SdoWriteRequest:
    """A single SDO download (write) aimed at one node.

    Attributes:
        index: Object index (one byte)
        subindex: Sub-index (two bytes)
        data_type: Size class of ``value``
        value: Value to write; must fit in ``data_type`` bytes
        node_id: Target node; reduced modulo 0x80 on construction
    """
    index: int
    subindex: int
    data_type: SdoDataType
    value: int
    node_id: int

    def __post_init__(self):
        self.data_type = SdoDataType(self.data_type)
        if not (0 <= self.index <= 0xFF):
            raise ValueError(f"SDO index must fit in one byte, got 0x{self.index:X}")
        if not (0 <= self.subindex <= 0xFFFF):
            raise ValueError(f"SDO sub-index must fit in two bytes, got 0x{self.subindex:X}")
        limit = 1 << (8 * int(self.data_type))
        if not (0 <= self.value < limit):
            raise ValueError(f"SDO value {self.value} does not fit in {int(self.data_type)} byte(s)")
        if self.node_id < 0:
            raise ValueError(f"Node id must be non-negative, got {self.node_id}")
        self.node_id = self.node_id % NODE_ID_MODULO

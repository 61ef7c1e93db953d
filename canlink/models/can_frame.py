"""
CAN Frame model for classic standard-identifier frames.
"""
from dataclasses import dataclass, field
from typing import Optional

from canlink.constants import CAN_ID_MIN, CAN_ID_MAX_STANDARD, CAN_FRAME_MAX_LENGTH
from canlink.exceptions import InvalidFrameLength


@dataclass
class CanFrame:
    """Represents a classic CAN frame with an 11-bit identifier.

    Attributes:
        can_id: CAN identifier (0-0x7FF, standard frames only)
        length: Declared data length (0-8)
        data: Always 8 bytes; shorter input is zero-filled
        timestamp: Optional receive timestamp (driver time base)
    """
    can_id: int
    length: int = 0
    data: bytes = field(default=bytes(CAN_FRAME_MAX_LENGTH))
    timestamp: Optional[float] = None

    def __post_init__(self):
        """Validate the frame and normalize data to 8 bytes."""
        if isinstance(self.data, (bytearray, memoryview)):
            self.data = bytes(self.data)
        if not isinstance(self.data, bytes):
            raise TypeError(f"data must be bytes, got {type(self.data)}")
        if not (0 <= self.length <= CAN_FRAME_MAX_LENGTH):
            raise InvalidFrameLength(f"CAN length must be 0-{CAN_FRAME_MAX_LENGTH}, got {self.length}",
                                     length=self.length)
        if len(self.data) > CAN_FRAME_MAX_LENGTH:
            raise InvalidFrameLength(f"CAN data must be <= {CAN_FRAME_MAX_LENGTH} bytes, got {len(self.data)}",
                                     length=len(self.data))
        if not (CAN_ID_MIN <= self.can_id <= CAN_ID_MAX_STANDARD):
            raise ValueError(f"CAN ID out of range for a standard frame: 0x{self.can_id:X}")
        if len(self.data) < CAN_FRAME_MAX_LENGTH:
            self.data = self.data + bytes(CAN_FRAME_MAX_LENGTH - len(self.data))

    @property
    def payload(self) -> bytes:
        """Return only the bytes covered by ``length``."""
        return self.data[:self.length]

    @property
    def data_hex(self) -> str:
        """Return the declared payload as a hexadecimal string."""
        return self.payload.hex()

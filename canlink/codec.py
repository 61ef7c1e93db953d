"""Frame codec: typed fields <-> 8-byte classic CAN frames.

All functions are pure. ``build_sdo`` produces the header of a CANopen SDO
client request (identifier and declared length); its data bytes stay zero.
"""
from __future__ import annotations

import struct
from typing import Tuple

from canlink.constants import CAN_FRAME_MAX_LENGTH, CAN_WORD_MAX, SDO_CLIENT_COB_ID_BASE, NODE_ID_MODULO
from canlink.exceptions import InvalidFrameLength
from canlink.models.can_frame import CanFrame
from canlink.models.sdo import SdoDataType, SdoWriteRequest

_WORDS = struct.Struct(">II")


def encode(can_id: int, length: int, data: bytes = b"") -> CanFrame:
    """Build a frame from an id, a declared length and up to ``length`` bytes.

    Bytes past ``length`` are dropped and the frame is zero-filled to 8 bytes.

    Raises:
        InvalidFrameLength: if ``length`` or ``len(data)`` exceeds 8
        ValueError: if ``can_id`` is not an 11-bit identifier
    """
    if length > CAN_FRAME_MAX_LENGTH or length < 0:
        raise InvalidFrameLength(f"CAN length must be 0-{CAN_FRAME_MAX_LENGTH}, got {length}", length=length)
    data = bytes(data)
    if len(data) > CAN_FRAME_MAX_LENGTH:
        raise InvalidFrameLength(f"CAN data must be <= {CAN_FRAME_MAX_LENGTH} bytes, got {len(data)}",
                                 length=len(data))
    return CanFrame(can_id=can_id, length=length, data=data[:length])


def decode(frame: CanFrame) -> Tuple[int, int, bytes]:
    """Return ``(can_id, length, data)`` with ``data`` always 8 bytes long."""
    return frame.can_id, frame.length, frame.data


def pack_words(high: int, low: int) -> bytes:
    """Pack two unsigned 32-bit words big-endian: ``high`` in bytes 0-3, ``low`` in 4-7."""
    for name, word in (('high', high), ('low', low)):
        if not (0 <= word <= CAN_WORD_MAX):
            raise ValueError(f"{name} word must be an unsigned 32-bit value, got {word}")
    return _WORDS.pack(high, low)


def unpack_words(data: bytes) -> Tuple[int, int]:
    """Inverse of :func:`pack_words` for an 8-byte payload."""
    return _WORDS.unpack(bytes(data[:CAN_FRAME_MAX_LENGTH]).ljust(CAN_FRAME_MAX_LENGTH, b"\x00"))


def sdo_cob_id(node_id: int) -> int:
    """Client -> server SDO identifier for ``node_id`` (reduced modulo 0x80)."""
    return SDO_CLIENT_COB_ID_BASE + (node_id % NODE_ID_MODULO)


def build_sdo_frame(request: SdoWriteRequest) -> CanFrame:
    # TODO: encode the SDO command specifier, index/sub-index and value bytes
    return CanFrame(can_id=sdo_cob_id(request.node_id), length=int(request.data_type))


def build_sdo(index: int, subindex: int, data_type: SdoDataType, value: int, node_id: int) -> CanFrame:
    """Build the request frame for an SDO write to ``node_id``.

    The declared frame length equals the numeric size class of ``data_type``.
    """
    request = SdoWriteRequest(index=index, subindex=subindex, data_type=data_type, value=value, node_id=node_id)
    return build_sdo_frame(request)

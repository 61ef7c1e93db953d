"""PCAN adapter gateway using python-can's PCAN-Basic wrapper.

This gateway is a thin layer over ``can.interfaces.pcan.basic.PCANBasic`` for
PEAK USB devices. Every call returns the raw driver status; interpreting it is
left to the caller (``error_text`` / ``raise_for_status``). The gateway does no
locking of its own, callers must serialize access to the bus.

Configuration (via environment variables):
- PCAN_CHANNEL (default: "PCAN_USBBUS1")
"""
from __future__ import annotations

import os
import logging
from typing import Any, Optional, Tuple

import can
from can.interfaces.pcan import basic as pcan_basic
from can.interfaces.pcan.basic import (
    PCANBasic, TPCANMsg,
    PCAN_ERROR_OK, PCAN_ERROR_ILLHW, PCAN_ERROR_QRCVEMPTY, PCAN_MESSAGE_STANDARD,
    PCAN_BAUD_1M, PCAN_BAUD_800K, PCAN_BAUD_500K, PCAN_BAUD_250K, PCAN_BAUD_125K,
    PCAN_BAUD_100K, PCAN_BAUD_95K, PCAN_BAUD_83K, PCAN_BAUD_50K, PCAN_BAUD_47K,
    PCAN_BAUD_33K, PCAN_BAUD_20K, PCAN_BAUD_10K, PCAN_BAUD_5K,
)

from canlink.constants import CAN_CHANNEL_DEFAULT, ERROR_TEXT_LANGUAGE_EN, CAN_FRAME_MAX_LENGTH
from canlink.exceptions import CanAdapterError, ConfigurationError, DriverError, HardwareRemoved
from canlink.models.bitrate import BitRate
from canlink.models.can_frame import CanFrame
from .interface import PcanDriver, status_code


logger = logging.getLogger(__name__)

# Indexed like canlink.models.bitrate.BITRATES
PCAN_BAUDRATES = (
    PCAN_BAUD_1M,
    PCAN_BAUD_800K,
    PCAN_BAUD_500K,
    PCAN_BAUD_250K,
    PCAN_BAUD_125K,
    PCAN_BAUD_100K,
    PCAN_BAUD_95K,
    PCAN_BAUD_83K,
    PCAN_BAUD_50K,
    PCAN_BAUD_47K,
    PCAN_BAUD_33K,
    PCAN_BAUD_20K,
    PCAN_BAUD_10K,
    PCAN_BAUD_5K,
)

STATUS_OK = status_code(PCAN_ERROR_OK)
STATUS_ILLEGAL_HARDWARE = status_code(PCAN_ERROR_ILLHW)
STATUS_QUEUE_EMPTY = status_code(PCAN_ERROR_QRCVEMPTY)
_STANDARD = status_code(PCAN_MESSAGE_STANDARD)


def resolve_channel(name: str) -> Any:
    """Map a channel name such as 'PCAN_USBBUS1' to its PCAN-Basic handle."""
    handle = getattr(pcan_basic, name, None) if name and name.startswith('PCAN_') else None
    if handle is None or not hasattr(handle, 'value'):
        raise ConfigurationError(f"Unknown PCAN channel: {name}", setting_name='channel',
                                 setting_value=name, expected="a PCAN-Basic handle name, e.g. 'PCAN_USBBUS1'")
    return handle


def message_from_frame(frame: CanFrame) -> TPCANMsg:
    msg = TPCANMsg()
    msg.ID = frame.can_id
    msg.MSGTYPE = _STANDARD
    msg.LEN = frame.length
    for i in range(CAN_FRAME_MAX_LENGTH):
        msg.DATA[i] = frame.data[i]
    return msg


def _timestamp_seconds(ts: Any) -> Optional[float]:
    if ts is None:
        return None
    micros = getattr(ts, 'micros', 0) + 1000 * getattr(ts, 'millis', 0)
    micros += 0x100000000 * 1000 * getattr(ts, 'millis_overflow', 0)
    return micros / 1000000.0


def frame_from_message(msg: Any, ts: Any = None) -> CanFrame:
    return CanFrame(can_id=int(msg.ID), length=int(msg.LEN), data=bytes(msg.DATA),
                    timestamp=_timestamp_seconds(ts))


class PcanGateway:
    def __init__(self, channel: Optional[str] = None, driver: Optional[PcanDriver] = None,
                 error_text_language: int = ERROR_TEXT_LANGUAGE_EN) -> None:
        self.channel = channel or os.environ.get("PCAN_CHANNEL", CAN_CHANNEL_DEFAULT)
        self.handle = resolve_channel(self.channel)
        self.error_text_language = error_text_language
        self._driver = driver

    @property
    def driver(self) -> PcanDriver:
        # the vendor library is loaded on first use so the gateway can be built without it
        if self._driver is None:
            logger.info("Loading PCAN-Basic driver for %s", self.channel)
            try:
                self._driver = PCANBasic()
            except (OSError, can.CanError) as e:
                raise CanAdapterError(f"PCAN-Basic library not available: {e}", adapter_type='pcan',
                                      operation='load', original_error=e) from e
        return self._driver

    def initialize(self, bitrate: BitRate) -> int:
        logger.debug("CAN_Initialize(%s, %s)", self.channel, bitrate.label)
        return status_code(self.driver.Initialize(self.handle, PCAN_BAUDRATES[bitrate.index]))

    def uninitialize(self) -> int:
        logger.debug("CAN_Uninitialize(%s)", self.channel)
        return status_code(self.driver.Uninitialize(self.handle))

    def get_status(self) -> int:
        return status_code(self.driver.GetStatus(self.handle))

    def write(self, frame: CanFrame) -> int:
        logger.debug("CAN_Write id=0x%x len=%d data=%s", frame.can_id, frame.length, frame.data_hex)
        return status_code(self.driver.Write(self.handle, message_from_frame(frame)))

    def read(self) -> Tuple[Optional[CanFrame], int]:
        """Read one frame; returns ``(None, status)`` when nothing usable was read."""
        status, msg, ts = self.driver.Read(self.handle)
        status = status_code(status)
        if status != STATUS_OK:
            return None, status
        if msg.MSGTYPE != _STANDARD:
            # extended, RTR and status frames are outside the standard-frame model
            logger.debug("Skipping non-standard message type 0x%x id=0x%x", msg.MSGTYPE, msg.ID)
            return None, status
        if msg.LEN > CAN_FRAME_MAX_LENGTH:
            logger.debug("Skipping message id=0x%x with length %d", msg.ID, msg.LEN)
            return None, status
        frame = frame_from_message(msg, ts)
        logger.debug("CAN_Read id=0x%x len=%d data=%s", frame.can_id, frame.length, frame.data_hex)
        return frame, status

    def error_text(self, status: int) -> str:
        """Decode ``status`` into the driver's English error text."""
        result, text = self.driver.GetErrorText(status, self.error_text_language)
        if status_code(result) != STATUS_OK:
            return f"Unknown PCAN status 0x{int(status):X}"
        if isinstance(text, bytes):
            text = text.decode('utf-8', errors='replace')
        return text

    @staticmethod
    def is_ok(status: int) -> bool:
        return int(status) == STATUS_OK

    @staticmethod
    def is_queue_empty(status: int) -> bool:
        return int(status) == STATUS_QUEUE_EMPTY

    def raise_for_status(self, status: int, operation: str) -> None:
        """Raise ``HardwareRemoved`` or ``DriverError`` for a non-OK status."""
        if self.is_ok(status):
            return
        text = self.error_text(status)
        if int(status) == STATUS_ILLEGAL_HARDWARE:
            raise HardwareRemoved(f"{operation}: {text}", status=int(status), operation=operation, error_text=text)
        raise DriverError(f"{operation}: {text}", status=int(status), operation=operation, error_text=text)

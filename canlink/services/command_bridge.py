"""
Command bridge: the entry point other subsystems use to put frames on the bus.

Writes go Command Bridge -> frame codec -> adapter gateway under the bus lock
shared with the link supervisor. Failures are reported as a boolean (or the
raw status for reads) and never retried here.
"""
import threading
import logging
from typing import Optional, Tuple

from canlink import codec, metrics
from canlink.adapters.pcan import PcanGateway
from canlink.constants import SDO_CLIENT_COB_ID_BASE
from canlink.models.can_frame import CanFrame
from canlink.models.sdo import SdoDataType

logger = logging.getLogger(__name__)


class CommandBridge:
    """Frame-level write/read interface over the adapter gateway.

    Attributes:
        gateway: Adapter gateway shared with the link supervisor
        bus_lock: The supervisor's bus lock
    """

    def __init__(self, gateway: PcanGateway, bus_lock: threading.RLock):
        """Initialize the bridge.

        Args:
            gateway: Adapter gateway
            bus_lock: Lock serializing bus access (use ``LinkSupervisor.bus_lock``)
        """
        self.gateway = gateway
        self.bus_lock = bus_lock

    def write(self, can_id: int, length: int, high_word: int, low_word: int) -> bool:
        """Send a frame whose 8 data bytes are two big-endian 32-bit words.

        ``high_word`` fills bytes 0-3 and ``low_word`` bytes 4-7, most
        significant byte first.

        Returns:
            True if the driver accepted the frame, False otherwise

        Raises:
            InvalidFrameLength: if ``length`` > 8
            ValueError: if ``can_id`` or a word is out of range
        """
        frame = codec.encode(can_id, length, codec.pack_words(high_word, low_word))
        return self.write_frame(frame)

    def write_frame(self, frame: CanFrame) -> bool:
        """Send an already built frame; True iff the driver reported no error."""
        metrics.inc("can_write")
        return self._send(frame, context="CAN write")

    def write_sdo(self, index: int, subindex: int, data_type: SdoDataType, value: int, node_id: int) -> bool:
        """Send an SDO write request frame to ``node_id``.

        Returns:
            True if the driver accepted the frame, False otherwise
        """
        frame = codec.build_sdo(index, subindex, data_type, value, node_id)
        metrics.inc("sdo_write")
        logger.debug(f"SDO write to node 0x{frame.can_id - SDO_CLIENT_COB_ID_BASE:02X}: index=0x{index:02X} "
                     f"subindex=0x{subindex:04X} value={value}")
        return self._send(frame, context="Could not write SDO")

    def read(self) -> Tuple[Optional[CanFrame], int]:
        """Read one received frame.

        Returns:
            ``(frame, status)``; ``frame`` is None when nothing was read
        """
        with self.bus_lock:
            frame, status = self.gateway.read()
            text = None
            if frame is None and not self.gateway.is_ok(status) and not self.gateway.is_queue_empty(status):
                text = self.gateway.error_text(status)
        if frame is not None:
            metrics.inc("can_read")
        if text is not None:
            logger.warning(f"CAN read: {text}")
        return frame, status

    def _send(self, frame: CanFrame, context: str) -> bool:
        with self.bus_lock:
            status = self.gateway.write(frame)
            ok = self.gateway.is_ok(status)
            text = None if ok else self.gateway.error_text(status)
        if not ok:
            metrics.inc("can_write_error")
            logger.warning(f"{context}: {text}")
        return ok

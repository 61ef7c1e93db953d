import queue
import threading
from typing import Any, List, Optional, Tuple

from can.interfaces.pcan.basic import (
    TPCANMsg,
    PCAN_ERROR_OK, PCAN_ERROR_ILLHW, PCAN_ERROR_INITIALIZE, PCAN_ERROR_HWINUSE,
    PCAN_ERROR_QRCVEMPTY, PCAN_ERROR_ILLPARAMVAL, PCAN_ERROR_BUSLIGHT, PCAN_ERROR_BUSOFF,
    PCAN_MESSAGE_STANDARD,
)

from canlink import metrics
from .interface import status_code

_STANDARD = status_code(PCAN_MESSAGE_STANDARD)

_ERROR_TEXTS = {
    status_code(PCAN_ERROR_OK): b"No error",
    status_code(PCAN_ERROR_ILLHW): b"PCAN-Hardware doesn't exist",
    status_code(PCAN_ERROR_INITIALIZE): b"The Channel is not initialized",
    status_code(PCAN_ERROR_HWINUSE): b"PCAN-Hardware already in use by a PCAN-Net",
    status_code(PCAN_ERROR_QRCVEMPTY): b"Receive queue is empty",
    status_code(PCAN_ERROR_BUSLIGHT): b"Bus error: an error counter reached the 'light' limit",
    status_code(PCAN_ERROR_BUSOFF): b"Bus error: the CAN controller is in bus-off state",
}


def _copy_message(msg: Any) -> TPCANMsg:
    out = TPCANMsg()
    out.ID = msg.ID
    out.MSGTYPE = msg.MSGTYPE
    out.LEN = msg.LEN
    for i in range(8):
        out.DATA[i] = msg.DATA[i]
    return out


class SimDriver:
    """An in-memory stand-in for the PCAN-Basic driver.

    Frames written while initialized are looped back to ``Read``. The
    ``unplug``/``plug`` pair simulates pulling the USB dongle.

    Usage:
      d = SimDriver()
      gw = PcanGateway(driver=d)
      gw.initialize(DEFAULT_BITRATE)
      gw.write(frame)
      frame, status = gw.read()
    """

    def __init__(self) -> None:
        self._q: "queue.Queue[TPCANMsg]" = queue.Queue()
        self._lock = threading.Lock()
        self._initialized = False
        self._plugged = True
        self._fail_inits = 0
        self._fail_status = status_code(PCAN_ERROR_ILLHW)
        self._bus_status = status_code(PCAN_ERROR_OK)
        self.bitrate: Optional[int] = None
        self.initialize_calls = 0
        self.uninitialize_calls = 0
        self.written: List[TPCANMsg] = []

    @property
    def initialized(self) -> bool:
        with self._lock:
            return self._initialized

    def Initialize(self, Channel: Any, Btr0Btr1: Any, *args: Any) -> int:
        with self._lock:
            self.initialize_calls += 1
            if not self._plugged:
                return status_code(PCAN_ERROR_ILLHW)
            if self._fail_inits > 0:
                self._fail_inits -= 1
                return self._fail_status
            if self._initialized:
                return status_code(PCAN_ERROR_HWINUSE)
            self._initialized = True
            self.bitrate = getattr(Btr0Btr1, 'value', Btr0Btr1)
            return status_code(PCAN_ERROR_OK)

    def Uninitialize(self, Channel: Any) -> int:
        with self._lock:
            self.uninitialize_calls += 1
            if not self._initialized:
                return status_code(PCAN_ERROR_INITIALIZE)
            self._initialized = False
        # drain queue
        while not self._q.empty():
            try:
                self._q.get_nowait()
            except queue.Empty:
                break
        return status_code(PCAN_ERROR_OK)

    def GetStatus(self, Channel: Any) -> int:
        with self._lock:
            if not self._plugged:
                return status_code(PCAN_ERROR_ILLHW)
            if not self._initialized:
                return status_code(PCAN_ERROR_INITIALIZE)
            return self._bus_status

    def Write(self, Channel: Any, MessageBuffer: Any) -> int:
        with self._lock:
            if not self._plugged:
                return status_code(PCAN_ERROR_ILLHW)
            if not self._initialized:
                return status_code(PCAN_ERROR_INITIALIZE)
            msg = _copy_message(MessageBuffer)
            self.written.append(msg)
        self._q.put(_copy_message(msg))
        metrics.inc("sim_write")
        return status_code(PCAN_ERROR_OK)

    def Read(self, Channel: Any) -> Tuple[int, TPCANMsg, None]:
        with self._lock:
            if not self._initialized:
                return status_code(PCAN_ERROR_INITIALIZE), TPCANMsg(), None
        try:
            msg = self._q.get_nowait()
        except queue.Empty:
            return status_code(PCAN_ERROR_QRCVEMPTY), TPCANMsg(), None
        metrics.inc("sim_read")
        return status_code(PCAN_ERROR_OK), msg, None

    def GetErrorText(self, Error: int, Language: int = 0) -> Tuple[int, bytes]:
        text = _ERROR_TEXTS.get(int(Error))
        if text is None:
            return status_code(PCAN_ERROR_ILLPARAMVAL), b""
        return status_code(PCAN_ERROR_OK), text

    # --- simulation controls -------------------------------------------------

    def unplug(self) -> None:
        """Simulate removing the USB dongle."""
        with self._lock:
            self._plugged = False

    def plug(self) -> None:
        with self._lock:
            self._plugged = True

    def fail_next_initializations(self, count: int, status: int = status_code(PCAN_ERROR_ILLHW)) -> None:
        """Make the next ``count`` Initialize calls return ``status``."""
        with self._lock:
            self._fail_inits = count
            self._fail_status = int(status)

    def set_bus_status(self, status: int) -> None:
        """Status reported by GetStatus while plugged and initialized."""
        with self._lock:
            self._bus_status = int(status)

    def inject(self, can_id: int, data: bytes, length: Optional[int] = None, msg_type: Optional[int] = None) -> None:
        """Queue a frame as if it had been received from the bus."""
        msg = TPCANMsg()
        msg.ID = can_id
        msg.MSGTYPE = _STANDARD if msg_type is None else msg_type
        data = bytes(data)[:8]
        msg.LEN = len(data) if length is None else length
        for i, b in enumerate(data):
            msg.DATA[i] = b
        self._q.put(msg)

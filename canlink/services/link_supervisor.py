"""
Link supervisor: background thread owning the adapter connection lifecycle.

The supervisor is the only component that initializes or uninitializes the
adapter. It keeps retrying initialization while the link is down, polls the
adapter status while it is up, and drops the link when the USB dongle is
pulled. Bit-rate changes requested from other threads are queued and applied
on the supervisor thread.

Every gateway call is made while holding ``bus_lock``; the command bridge
holds the same lock for writes and reads, so frame traffic never interleaves
with an initialize/uninitialize transition.
"""
import queue
import threading
import logging
from enum import Enum
from typing import Callable, List, Optional

from canlink import metrics
from canlink.adapters.pcan import PcanGateway, STATUS_OK
from canlink.constants import (
    BITRATE_INDEX_DEFAULT, POLL_INTERVAL_MS_DEFAULT, RETRY_DELAY_MS_DEFAULT, STOP_JOIN_TIMEOUT_S,
)
from canlink.exceptions import CanLinkException, DriverError, HardwareRemoved
from canlink.models.bitrate import BitRate, clamp_bitrate_index, get_bitrate

logger = logging.getLogger(__name__)


class LinkState(Enum):
    """Connection state of the adapter.

    FAULTED is entered only when the adapter disappears (illegal hardware);
    like UNINITIALIZED it is retried on every tick.
    """
    UNINITIALIZED = 'uninitialized'
    CONNECTED = 'connected'
    FAULTED = 'faulted'


StateListener = Callable[[LinkState], None]


class LinkSupervisor(threading.Thread):
    """Background thread that keeps the CAN adapter initialized.

    The loop runs ``tick()`` then sleeps for ``poll_interval`` (while
    connected) or ``retry_delay`` (while not). ``stop()`` is observed once per
    iteration; on exit a connected adapter is uninitialized.

    Attributes:
        gateway: Adapter gateway used for all driver calls
        bus_lock: Lock serializing every access to the bus handle
        poll_interval: Seconds between status polls while connected
        retry_delay: Seconds between initialization attempts
    """

    def __init__(self, gateway: PcanGateway, bitrate_index: int = BITRATE_INDEX_DEFAULT,
                 poll_interval: float = POLL_INTERVAL_MS_DEFAULT / 1000.0,
                 retry_delay: float = RETRY_DELAY_MS_DEFAULT / 1000.0,
                 bus_lock: Optional[threading.RLock] = None):
        """Initialize the supervisor (the thread is not started).

        Args:
            gateway: Adapter gateway
            bitrate_index: Initial bit-rate selection, clamped to 0-13
            poll_interval: Status poll period in seconds
            retry_delay: Delay between failed initialization attempts in seconds
            bus_lock: Lock to share with the command bridge (created if omitted)
        """
        super().__init__(name='can-link-supervisor', daemon=True)
        self.gateway = gateway
        self.bus_lock = bus_lock or threading.RLock()
        self.poll_interval = poll_interval
        self.retry_delay = retry_delay
        self._stop_event = threading.Event()
        self._bitrate_requests: "queue.Queue[int]" = queue.Queue()
        self._state_lock = threading.Lock()
        self._state_changed = threading.Condition(self._state_lock)
        self._state = LinkState.UNINITIALIZED
        self._bitrate_index = clamp_bitrate_index(bitrate_index)
        self._last_status = STATUS_OK
        self._last_failure: Optional[str] = None
        self._listeners: List[StateListener] = []

    # --- queries -------------------------------------------------------------

    @property
    def state(self) -> LinkState:
        with self._state_lock:
            return self._state

    def is_connected(self) -> bool:
        return self.state is LinkState.CONNECTED

    @property
    def bitrate_index(self) -> int:
        """Currently active bit-rate selection."""
        with self._state_lock:
            return self._bitrate_index

    @property
    def bitrate(self) -> BitRate:
        return get_bitrate(self.bitrate_index)

    @property
    def last_status(self) -> int:
        """Driver status cached by the last initialize/poll (0 after a disconnect)."""
        with self._state_lock:
            return self._last_status

    @property
    def running(self) -> bool:
        return not self._stop_event.is_set()

    def wait_for_state(self, state: LinkState, timeout: Optional[float] = None) -> bool:
        """Block until the link reaches ``state``; returns False on timeout."""
        with self._state_changed:
            return self._state_changed.wait_for(lambda: self._state is state, timeout)

    # --- commands ------------------------------------------------------------

    def add_listener(self, listener: StateListener) -> None:
        """Register ``listener(state)``, called after every state transition."""
        self._listeners.append(listener)

    def set_bitrate(self, index: int) -> int:
        """Request a new bit rate; returns the effective (clamped) index.

        The change is applied on the next tick. A connected adapter is
        released so the following tick re-initializes it at the new rate.
        Once the loop has stopped the change is applied immediately.
        """
        effective = clamp_bitrate_index(index)
        self._bitrate_requests.put(effective)
        logger.debug(f"Queued bit-rate change to index {effective}")
        if not self.running:
            self._apply_bitrate_requests()
        return effective

    def uninitialize(self) -> None:
        """Release the adapter if connected. Safe to call in any state."""
        with self.bus_lock:
            if self.state is not LinkState.CONNECTED:
                logger.debug("Uninitialize requested while not connected, nothing to do")
                return
            self._release(LinkState.UNINITIALIZED)
        logger.info("CAN de-initialised")
        self._notify(LinkState.UNINITIALIZED)

    def stop(self) -> None:
        """Ask the loop to exit after the current iteration."""
        self._stop_event.set()
        logger.debug("LinkSupervisor: stop() called")

    def cleanup(self) -> None:
        """Stop the loop and wait for the orderly uninitialize."""
        self.stop()
        if self.is_alive():
            if threading.current_thread() is not self:
                self.join(timeout=STOP_JOIN_TIMEOUT_S)
                if self.is_alive():
                    logger.warning("Link supervisor did not exit within %.1fs", STOP_JOIN_TIMEOUT_S)
        else:
            self._shutdown()

    # --- loop ----------------------------------------------------------------

    def run(self):
        """Main thread loop: tick, then sleep for the fixed interval."""
        logger.info(f"Link supervisor started on {self.gateway.channel} at {self.bitrate.label}")
        try:
            while not self._stop_event.is_set():
                try:
                    self.tick()
                except CanLinkException as e:
                    self._report_failure(str(e))
                except Exception as e:
                    self._report_failure(f"unexpected error: {e}", exc_info=True)
                delay = self.poll_interval if self.is_connected() else self.retry_delay
                self._stop_event.wait(delay)
        finally:
            self._shutdown()
            logger.info("Link supervisor stopped")

    def tick(self) -> None:
        """Run one supervision step: apply queued commands, then connect or poll."""
        self._apply_bitrate_requests()
        if self.is_connected():
            self._check_link()
        else:
            self._try_initialize()

    def _apply_bitrate_requests(self) -> None:
        while True:
            try:
                index = self._bitrate_requests.get_nowait()
            except queue.Empty:
                return
            with self._state_lock:
                self._bitrate_index = index
            metrics.inc("link_bitrate_change")
            logger.info(f"CAN bit rate set to {get_bitrate(index).label}")
            with self.bus_lock:
                faulted = self.state is LinkState.FAULTED
                if faulted:
                    # adapter already released when it was removed
                    self._set_state(LinkState.UNINITIALIZED, STATUS_OK)
            if faulted:
                self._notify(LinkState.UNINITIALIZED)
            else:
                self.uninitialize()

    def _try_initialize(self) -> None:
        bitrate = self.bitrate
        metrics.inc("link_init_attempt")
        with self.bus_lock:
            status = self.gateway.initialize(bitrate)
            try:
                self.gateway.raise_for_status(status, 'initialize')
            except DriverError as e:
                with self._state_lock:
                    self._last_status = status
                self._report_failure(f"CAN initialise failed: {e.error_text}")
                return
            self._set_state(LinkState.CONNECTED, status)
        self._last_failure = None
        metrics.inc("link_connected")
        logger.info(f"CAN successfully initialised at {bitrate.label}")
        self._notify(LinkState.CONNECTED)

    def _check_link(self) -> None:
        with self.bus_lock:
            status = self.gateway.get_status()
            try:
                self.gateway.raise_for_status(status, 'get_status')
            except HardwareRemoved:
                self._release(LinkState.FAULTED)
            except DriverError as e:
                # transient bus condition, the link stays up
                with self._state_lock:
                    self._last_status = status
                self._report_failure(f"CAN status: {e.error_text}")
                return
            else:
                with self._state_lock:
                    self._last_status = status
                self._last_failure = None
                return
        metrics.inc("link_removed")
        logger.warning("CAN de-initialised: USB-dongle removed?")
        self._notify(LinkState.FAULTED)

    def _shutdown(self) -> None:
        if self.is_connected():
            self.uninitialize()

    # --- helpers -------------------------------------------------------------

    def _set_state(self, state: LinkState, status: int) -> None:
        with self._state_changed:
            self._state = state
            self._last_status = status
            self._state_changed.notify_all()

    def _release(self, state: LinkState) -> None:
        # caller holds bus_lock
        self._set_state(state, STATUS_OK)
        self.gateway.uninitialize()

    def _report_failure(self, message: str, exc_info: bool = False) -> None:
        # the loop retries every few milliseconds; only log a failure when it changes
        if message != self._last_failure:
            logger.warning(message, exc_info=exc_info)
            self._last_failure = message
        else:
            logger.debug(message)

    def _notify(self, state: LinkState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.warning(f"Link state listener failed: {e}", exc_info=True)

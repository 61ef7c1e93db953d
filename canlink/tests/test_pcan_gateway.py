import pytest

from can.interfaces.pcan.basic import (
    TPCANMsg, PCAN_USBBUS1, PCAN_USBBUS2, PCAN_BAUD_500K,
    PCAN_ERROR_OK, PCAN_ERROR_ILLHW, PCAN_ERROR_BUSOFF, PCAN_ERROR_QRCVEMPTY,
)

import canlink.adapters.pcan as pcan_mod
from canlink.adapters.interface import status_code
from canlink.exceptions import CanAdapterError, ConfigurationError, DriverError, HardwareRemoved
from canlink.models.bitrate import get_bitrate
from canlink.models.can_frame import CanFrame

OK = status_code(PCAN_ERROR_OK)
ILLHW = status_code(PCAN_ERROR_ILLHW)
BUSOFF = status_code(PCAN_ERROR_BUSOFF)
QRCVEMPTY = status_code(PCAN_ERROR_QRCVEMPTY)


class FakeTimestamp:
    def __init__(self, millis, micros, millis_overflow=0):
        self.millis = millis
        self.micros = micros
        self.millis_overflow = millis_overflow


class FakeDriver:
    """Records every call and returns scripted statuses."""

    def __init__(self):
        self.calls = []
        self.status = OK
        self.read_result = (QRCVEMPTY, TPCANMsg(), None)

    def Initialize(self, Channel, Btr0Btr1):
        self.calls.append(('Initialize', Channel.value, Btr0Btr1.value))
        return self.status

    def Uninitialize(self, Channel):
        self.calls.append(('Uninitialize', Channel.value))
        return self.status

    def GetStatus(self, Channel):
        self.calls.append(('GetStatus', Channel.value))
        return self.status

    def Write(self, Channel, MessageBuffer):
        self.calls.append(('Write', Channel.value, MessageBuffer))
        return self.status

    def Read(self, Channel):
        self.calls.append(('Read', Channel.value))
        return self.read_result

    def GetErrorText(self, Error, Language=0):
        self.calls.append(('GetErrorText', Error, Language))
        if Error == ILLHW:
            return OK, b"PCAN-Hardware doesn't exist"
        if Error == BUSOFF:
            return OK, b"Bus error: bus-off"
        return status_code(PCAN_ERROR_ILLHW), b""


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def gateway(driver):
    return pcan_mod.PcanGateway(channel="PCAN_USBBUS1", driver=driver)


def test_channel_resolves_to_handle():
    gw = pcan_mod.PcanGateway(channel="PCAN_USBBUS2", driver=FakeDriver())
    assert gw.handle.value == PCAN_USBBUS2.value


def test_channel_defaults_from_environment(monkeypatch):
    monkeypatch.setenv("PCAN_CHANNEL", "PCAN_USBBUS2")
    gw = pcan_mod.PcanGateway(driver=FakeDriver())
    assert gw.channel == "PCAN_USBBUS2"


@pytest.mark.parametrize("name", ["can0", "PCAN_NOT_A_CHANNEL", ""])
def test_unknown_channel_is_a_configuration_error(name):
    with pytest.raises(ConfigurationError):
        pcan_mod.resolve_channel(name)


def test_initialize_passes_pcan_bitrate(gateway, driver):
    assert gateway.initialize(get_bitrate(2)) == OK
    assert driver.calls == [('Initialize', PCAN_USBBUS1.value, PCAN_BAUD_500K.value)]


def test_status_is_returned_uninterpreted(gateway, driver):
    driver.status = BUSOFF
    assert gateway.get_status() == BUSOFF
    assert gateway.uninitialize() == BUSOFF
    assert not any(c[0] == 'GetErrorText' for c in driver.calls)


def test_write_builds_standard_message(gateway, driver):
    frame = CanFrame(can_id=0x123, length=3, data=b"\x01\x02\x03")
    assert gateway.write(frame) == OK
    _, channel, msg = driver.calls[0]
    assert channel == PCAN_USBBUS1.value
    assert msg.ID == 0x123
    assert msg.LEN == 3
    assert msg.MSGTYPE == pcan_mod._STANDARD
    assert bytes(msg.DATA) == b"\x01\x02\x03" + bytes(5)


def test_read_converts_message(gateway, driver):
    msg = TPCANMsg()
    msg.ID = 0x200
    msg.LEN = 2
    msg.MSGTYPE = pcan_mod._STANDARD
    msg.DATA[0] = 0xAB
    msg.DATA[1] = 0xCD
    driver.read_result = (OK, msg, FakeTimestamp(millis=1500, micros=250))
    frame, status = gateway.read()
    assert status == OK
    assert frame.can_id == 0x200
    assert frame.length == 2
    assert frame.payload == b"\xab\xcd"
    assert frame.timestamp == pytest.approx(1.50025)


def test_read_empty_queue(gateway):
    frame, status = gateway.read()
    assert frame is None
    assert gateway.is_queue_empty(status)


def test_read_skips_non_standard_messages(gateway, driver):
    msg = TPCANMsg()
    msg.ID = 0x18FF0001
    msg.MSGTYPE = 0x02
    driver.read_result = (OK, msg, None)
    frame, status = gateway.read()
    assert frame is None
    assert status == OK


def test_error_text_decodes_bytes(gateway, driver):
    assert gateway.error_text(ILLHW) == "PCAN-Hardware doesn't exist"
    assert driver.calls[-1] == ('GetErrorText', ILLHW, 0x09)


def test_error_text_unknown_status(gateway):
    assert gateway.error_text(0x12345) == "Unknown PCAN status 0x12345"


def test_raise_for_status_classifies(gateway):
    gateway.raise_for_status(OK, 'initialize')
    with pytest.raises(HardwareRemoved) as exc:
        gateway.raise_for_status(ILLHW, 'get_status')
    assert exc.value.status == ILLHW
    assert exc.value.operation == 'get_status'
    with pytest.raises(DriverError) as exc:
        gateway.raise_for_status(BUSOFF, 'initialize')
    assert not isinstance(exc.value, HardwareRemoved)
    assert exc.value.error_text == "Bus error: bus-off"


def test_missing_library_raises_adapter_error(monkeypatch):
    def no_library():
        raise OSError("libpcanbasic.so library not found.")

    monkeypatch.setattr(pcan_mod, "PCANBasic", no_library)
    gw = pcan_mod.PcanGateway(channel="PCAN_USBBUS1")
    with pytest.raises(CanAdapterError) as exc:
        gw.get_status()
    assert exc.value.operation == 'load'
    assert isinstance(exc.value.original_error, OSError)


def test_driver_loaded_once(monkeypatch):
    created = []

    def fake_pcanbasic():
        created.append(FakeDriver())
        return created[-1]

    monkeypatch.setattr(pcan_mod, "PCANBasic", fake_pcanbasic)
    gw = pcan_mod.PcanGateway(channel="PCAN_USBBUS1")
    gw.get_status()
    gw.get_status()
    assert len(created) == 1


def test_read_skips_oversized_length(gateway, driver):
    msg = TPCANMsg()
    msg.ID = 0x123
    msg.LEN = 12
    msg.MSGTYPE = pcan_mod._STANDARD
    driver.read_result = (OK, msg, None)
    frame, status = gateway.read()
    assert frame is None
    assert status == OK

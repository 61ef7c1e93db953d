from __future__ import annotations
from typing import Any, Optional, Protocol, Tuple


class PcanDriver(Protocol):
    """Driver surface the gateway relies on.

    Matches python-can's ``PCANBasic`` wrapper of the vendor library: every
    call takes the channel handle and returns a raw ``TPCANStatus`` (an int).
    """

    def Initialize(self, Channel: Any, Btr0Btr1: Any) -> int:
        ...

    def Uninitialize(self, Channel: Any) -> int:
        ...

    def GetStatus(self, Channel: Any) -> int:
        ...

    def Write(self, Channel: Any, MessageBuffer: Any) -> int:
        ...

    def Read(self, Channel: Any) -> Tuple[int, Any, Optional[Any]]:
        """Return ``(status, TPCANMsg, TPCANTimestamp)``."""
        ...

    def GetErrorText(self, Error: int, Language: int = 0) -> Tuple[int, bytes]:
        ...


def status_code(value: Any) -> int:
    """Plain int from a PCAN-Basic constant (ctypes value or int)."""
    return int(getattr(value, 'value', value))

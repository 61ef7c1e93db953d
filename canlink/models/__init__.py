"""
Data models for the CAN link manager.

Models:
- CanFrame: A classic standard-identifier CAN frame
- BitRate: One entry of the 14-entry bit-rate selection table
- SdoWriteRequest: A CANopen SDO write aimed at one node
"""

from canlink.models.can_frame import CanFrame
from canlink.models.bitrate import BitRate, BITRATES
from canlink.models.sdo import SdoDataType, SdoWriteRequest

__all__ = ['CanFrame', 'BitRate', 'BITRATES', 'SdoDataType', 'SdoWriteRequest']

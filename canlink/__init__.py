"""CAN link manager for PEAK PCAN adapters.

Keeps a PCAN adapter initialized at a selectable bit rate, watches for the
USB dongle being removed, and offers a small frame write/read interface
including CANopen SDO write request frames.
"""

__version__ = "0.1.0"

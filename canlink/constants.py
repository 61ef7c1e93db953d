"""
Constants for the CAN link manager.

Values are grouped by concern:
- CAN frame limits
- Bit-rate selection bounds
- CANopen SDO identifiers
- Supervisor timing
- Driver defaults
"""

# CAN frame limits
CAN_ID_MIN = 0
CAN_ID_MAX_STANDARD = 0x7FF  # Standard CAN (11-bit)
CAN_FRAME_MAX_LENGTH = 8  # Classic CAN maximum data length
CAN_WORD_MAX = 0xFFFFFFFF

# Bit-rate selection (index into the fixed rate table)
BITRATE_INDEX_DEFAULT = 3  # 250 kBit/s
BITRATE_INDEX_MAX = 13  # 5 kBit/s

# CANopen SDO
SDO_CLIENT_COB_ID_BASE = 0x600  # client -> server
NODE_ID_MODULO = 0x80
NODE_ID_MAX = 0x7F

# Supervisor timing (milliseconds)
POLL_INTERVAL_MS_DEFAULT = 10
RETRY_DELAY_MS_DEFAULT = 10
STOP_JOIN_TIMEOUT_S = 2.0

# Driver defaults
CAN_CHANNEL_DEFAULT = 'PCAN_USBBUS1'
ADAPTER_TYPE_DEFAULT = 'pcan'
ADAPTER_TYPES = ('pcan', 'sim')
ERROR_TEXT_LANGUAGE_EN = 0x09

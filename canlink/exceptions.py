"""
Custom exception classes for the CAN link manager.

This module provides specific exception types for driver, codec and
configuration failures so callers can tell a removed adapter apart from a
transient bus error or a malformed frame.
"""

from typing import Any


class CanLinkException(Exception):
    """Base exception for all CAN link errors.

    All custom exceptions inherit from this class so callers can catch
    every application-specific error in one place.
    """
    pass


class CanAdapterError(CanLinkException):
    """Exception raised when the adapter driver cannot be loaded or used.

    Attributes:
        adapter_type: Type of adapter that failed (e.g., 'pcan', 'sim')
        operation: Operation that failed (e.g., 'load', 'initialize')
        original_error: Exception raised by the driver wrapper, if any
    """

    def __init__(self, message: str, adapter_type: str = None, operation: str = None,
                 original_error: Exception = None):
        super().__init__(message)
        self.adapter_type = adapter_type
        self.operation = operation
        self.original_error = original_error


class DriverError(CanLinkException):
    """Exception raised for a non-OK status returned by the hardware driver.

    Attributes:
        status: Raw driver status code
        operation: Driver primitive that returned the status (e.g., 'initialize')
        error_text: Decoded, human-readable status text from the driver
    """

    def __init__(self, message: str, status: int = None, operation: str = None, error_text: str = None):
        super().__init__(message)
        self.status = status
        self.operation = operation
        self.error_text = error_text


class HardwareRemoved(DriverError):
    """Raised when the driver reports illegal hardware, i.e. the USB dongle is gone."""
    pass


class InvalidFrameLength(CanLinkException):
    """Exception raised when a frame declares more than 8 data bytes.

    Attributes:
        length: The rejected length
    """

    def __init__(self, message: str, length: int = None):
        super().__init__(message)
        self.length = length


class InvalidBitRateIndex(CanLinkException):
    """Exception raised when a bit-rate selection is not an integer at all.

    Out of range integers are clamped, never rejected.

    Attributes:
        value: The rejected value
    """

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


class ConfigurationError(CanLinkException):
    """A setting (channel, adapter type, ...) that cannot be used as given.

    Attributes:
        setting_name: Which setting was rejected
        setting_value: The rejected value
        expected: What an acceptable value looks like
    """

    def __init__(self, message: str, setting_name: str = None, setting_value: Any = None,
                 expected: str = None):
        super().__init__(message)
        self.setting_name = setting_name
        self.setting_value = setting_value
        self.expected = expected

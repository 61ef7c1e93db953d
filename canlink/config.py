"""
Settings for the CAN link manager.

Three dataclass sections (adapter, supervisor timing, application) are
filled from defaults, then environment variables, then a JSON file.
Invalid sections fall back to their defaults with a warning, so a bad
value never keeps the link supervisor from starting.
"""

import os
import json
import logging
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional, Tuple
from pathlib import Path

from canlink.constants import (
    CAN_CHANNEL_DEFAULT, ADAPTER_TYPE_DEFAULT, ADAPTER_TYPES,
    BITRATE_INDEX_DEFAULT, POLL_INTERVAL_MS_DEFAULT, RETRY_DELAY_MS_DEFAULT,
    ERROR_TEXT_LANGUAGE_EN,
)
from canlink.exceptions import InvalidBitRateIndex
from canlink.models.bitrate import coerce_bitrate_index

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
USER_CONFIG_DIR = Path.home() / '.canlink'
CONFIG_FILE_NAME = 'config.json'


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the process.

    Args:
        level: Level name; falls back to the LOG_LEVEL environment variable, then INFO
    """
    level_name = (level or os.environ.get('LOG_LEVEL') or 'INFO').upper()
    numeric = getattr(logging, level_name, None)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)


@dataclass
class CanSettings:
    """Adapter selection.

    Attributes:
        channel: PCAN-Basic channel name (e.g., 'PCAN_USBBUS1')
        bitrate_index: Index into the bit-rate table (0-13, 3 = 250 kBit/s)
        adapter_type: 'pcan' for the vendor driver, 'sim' for the in-memory driver
    """
    channel: str = CAN_CHANNEL_DEFAULT
    bitrate_index: int = BITRATE_INDEX_DEFAULT
    adapter_type: str = ADAPTER_TYPE_DEFAULT

    def validate(self) -> List[str]:
        problems = []
        if not isinstance(self.channel, str) or not self.channel.startswith('PCAN_'):
            problems.append(f"Channel must be a PCAN-Basic channel name, got {self.channel!r}")
        if isinstance(self.bitrate_index, bool) or not isinstance(self.bitrate_index, int):
            problems.append(f"Bit-rate index must be an integer, got {self.bitrate_index!r}")
        if self.adapter_type not in ADAPTER_TYPES:
            problems.append(f"Adapter type must be one of {ADAPTER_TYPES}, got {self.adapter_type!r}")
        return problems


@dataclass
class LinkSettings:
    """Link supervisor timing and driver options.

    Attributes:
        poll_interval_ms: Status poll period while connected
        retry_delay_ms: Delay between failed initialization attempts
        error_text_language: Language code passed to the driver's error text lookup
    """
    poll_interval_ms: int = POLL_INTERVAL_MS_DEFAULT
    retry_delay_ms: int = RETRY_DELAY_MS_DEFAULT
    error_text_language: int = ERROR_TEXT_LANGUAGE_EN

    def validate(self) -> List[str]:
        problems = []
        for name in ('poll_interval_ms', 'retry_delay_ms'):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                problems.append(f"{name} must be a positive integer, got {value!r}")
        return problems

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def retry_delay(self) -> float:
        return self.retry_delay_ms / 1000.0


@dataclass
class AppSettings:
    log_level: str = 'INFO'

    def validate(self) -> List[str]:
        if self.log_level not in LOG_LEVELS:
            return [f"Log level must be one of {LOG_LEVELS}, got {self.log_level!r}"]
        return []


def _upper(value: Any) -> str:
    return str(value).upper()


def _lower(value: Any) -> str:
    return str(value).lower()


# environment variable -> (section, field, converter); first match wins per field
ENV_SETTINGS: Tuple[Tuple[str, str, str, Callable[[Any], Any]], ...] = (
    ('PCAN_CHANNEL', 'can_settings', 'channel', str),
    ('CAN_CHANNEL', 'can_settings', 'channel', str),
    ('CAN_BITRATE_INDEX', 'can_settings', 'bitrate_index', coerce_bitrate_index),
    ('CAN_ADAPTER', 'can_settings', 'adapter_type', _lower),
    ('LINK_POLL_INTERVAL_MS', 'link_settings', 'poll_interval_ms', int),
    ('LINK_RETRY_DELAY_MS', 'link_settings', 'retry_delay_ms', int),
    ('LOG_LEVEL', 'app_settings', 'log_level', _upper),
)

# JSON section -> field -> converter
FILE_SETTINGS: Dict[str, Dict[str, Callable[[Any], Any]]] = {
    'can_settings': {'channel': str, 'bitrate_index': coerce_bitrate_index, 'adapter_type': _lower},
    'link_settings': {'poll_interval_ms': int, 'retry_delay_ms': int, 'error_text_language': int},
    'app_settings': {'log_level': _upper},
}


class ConfigManager:
    """Loads, validates and saves the link settings.

    Priority, lowest first: dataclass defaults, environment variables, the
    JSON file (the explicit ``config_file`` or ``~/.canlink/config.json``).

    Attributes:
        can_settings: Adapter selection
        link_settings: Supervisor timing
        app_settings: Log level
    """

    def __init__(self, config_file: Optional[str] = None):
        self.can_settings = CanSettings()
        self.link_settings = LinkSettings()
        self.app_settings = AppSettings()
        self._config_file: Optional[str] = config_file

        self._load_from_environment()
        if config_file:
            self._load_from_file(config_file)
        else:
            default_file = USER_CONFIG_DIR / CONFIG_FILE_NAME
            if default_file.exists():
                self._load_from_file(str(default_file))

        problems = self.validate()
        if problems:
            logger.warning(f"Invalid settings, using defaults for the affected sections: {problems}")
            self._reset_invalid()

    @property
    def config_file(self) -> Optional[str]:
        return self._config_file

    def _assign(self, section: str, name: str, convert: Callable[[Any], Any], raw: Any, source: str) -> bool:
        try:
            value = convert(raw)
        except (ValueError, TypeError, InvalidBitRateIndex):
            logger.warning(f"Ignoring {section}.{name} from {source}: {raw!r}")
            return False
        setattr(getattr(self, section), name, value)
        return True

    def _load_from_environment(self) -> None:
        seen = set()
        for var, section, name, convert in ENV_SETTINGS:
            raw = os.environ.get(var)
            if not raw or (section, name) in seen:
                continue
            seen.add((section, name))
            self._assign(section, name, convert, raw, var)

    def _load_from_file(self, file_path: str) -> bool:
        """Apply the sections found in a JSON file.

        Returns:
            True if the file was read and parsed
        """
        if not os.path.exists(file_path):
            logger.debug(f"No config file at {file_path}")
            return False
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Config file {file_path} is not valid JSON: {e}")
            return False
        except OSError as e:
            logger.error(f"Could not read config file {file_path}: {e}", exc_info=True)
            return False

        for section, fields in FILE_SETTINGS.items():
            values = data.get(section) or {}
            for name, convert in fields.items():
                if name in values:
                    self._assign(section, name, convert, values[name], file_path)

        self._config_file = file_path
        logger.info(f"Loaded link settings from {file_path}")
        return True

    def _reset_invalid(self) -> None:
        for section, factory in (('can_settings', CanSettings), ('link_settings', LinkSettings),
                                 ('app_settings', AppSettings)):
            if getattr(self, section).validate():
                setattr(self, section, factory())

    def save_to_file(self, file_path: Optional[str] = None) -> bool:
        """Write every section to JSON.

        Args:
            file_path: Target path; defaults to the loaded file, then ``~/.canlink/config.json``

        Returns:
            True on success
        """
        save_path = file_path or self._config_file or str(USER_CONFIG_DIR / CONFIG_FILE_NAME)
        data = {section: asdict(getattr(self, section)) for section in FILE_SETTINGS}
        try:
            os.makedirs(os.path.dirname(os.path.abspath(save_path)), exist_ok=True)
            with open(save_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error(f"Could not write config file {save_path}: {e}", exc_info=True)
            return False

        self._config_file = save_path
        logger.info(f"Saved link settings to {save_path}")
        return True

    def validate(self) -> List[str]:
        """Return every validation problem across the three sections."""
        return (self.can_settings.validate() + self.link_settings.validate()
                + self.app_settings.validate())

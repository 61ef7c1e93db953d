"""
Bit-rate selection table.

The link is configured by an index into a fixed table of 14 standard CAN
bit rates, from 1 MBit/s (index 0) down to 5 kBit/s (index 13). Integer
indices outside the table clamp to the slowest rate instead of failing.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from canlink.constants import BITRATE_INDEX_DEFAULT, BITRATE_INDEX_MAX
from canlink.exceptions import InvalidBitRateIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BitRate:
    """One entry of the bit-rate table.

    Attributes:
        index: Selection index (0-13)
        bits_per_second: Nominal bus speed
        label: Display text, e.g. '250 kBit/s'
    """
    index: int
    bits_per_second: int
    label: str


BITRATES = (
    BitRate(0, 1000000, '1 MBit/s'),
    BitRate(1, 800000, '800 kBit/s'),
    BitRate(2, 500000, '500 kBit/s'),
    BitRate(3, 250000, '250 kBit/s'),
    BitRate(4, 125000, '125 kBit/s'),
    BitRate(5, 100000, '100 kBit/s'),
    BitRate(6, 95238, '95,238 kBit/s'),
    BitRate(7, 83333, '83,333 kBit/s'),
    BitRate(8, 50000, '50 kBit/s'),
    BitRate(9, 47619, '47,619 kBit/s'),
    BitRate(10, 33333, '33,333 kBit/s'),
    BitRate(11, 20000, '20 kBit/s'),
    BitRate(12, 10000, '10 kBit/s'),
    BitRate(13, 5000, '5 kBit/s'),
)

DEFAULT_BITRATE = BITRATES[BITRATE_INDEX_DEFAULT]


def clamp_bitrate_index(index: int) -> int:
    """Return ``index`` if it names a table entry, otherwise the last entry."""
    if 0 <= index <= BITRATE_INDEX_MAX:
        return index
    logger.info(f"Bit-rate index {index} out of range, using {BITRATE_INDEX_MAX} ({BITRATES[BITRATE_INDEX_MAX].label})")
    return BITRATE_INDEX_MAX


def coerce_bitrate_index(value: Any) -> int:
    """Parse a user-supplied selection (int or numeric string) and clamp it.

    Raises:
        InvalidBitRateIndex: if ``value`` is not an integer
    """
    if isinstance(value, bool):
        raise InvalidBitRateIndex(f"Bit-rate index must be an integer, got {value!r}", value=value)
    if isinstance(value, int):
        return clamp_bitrate_index(value)
    if isinstance(value, str):
        try:
            return clamp_bitrate_index(int(value.strip(), 0))
        except ValueError:
            pass
    raise InvalidBitRateIndex(f"Bit-rate index must be an integer, got {value!r}", value=value)


def get_bitrate(index: int) -> BitRate:
    """Look up the table entry for ``index`` after clamping."""
    return BITRATES[clamp_bitrate_index(index)]


def bitrate_rows(active_index: int) -> List[Dict[str, Any]]:
    """Describe every selectable rate and flag the active one."""
    active = clamp_bitrate_index(active_index)
    return [
        {
            'index': rate.index,
            'label': rate.label,
            'bits_per_second': rate.bits_per_second,
            'active': rate.index == active,
        }
        for rate in BITRATES
    ]


def format_bitrate_table(active_index: int) -> str:
    """Render the bit-rate options as a plain-text table."""
    rows = bitrate_rows(active_index)
    divider = '+-----+---------------+--------+'
    lines = [divider, '| CMD | Description   | Status |', divider]
    for row in rows:
        status = 'Active' if row['active'] else ''
        lines.append(f"| {row['index']:>3} | {row['label']:<13} | {status:<6} |")
    lines.append(divider)
    return '\n'.join(lines)

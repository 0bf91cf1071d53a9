# SPDX-FileCopyrightText: 2017 Scott Shawcroft, written for Adafruit Industries
# SPDX-FileCopyrightText: Copyright (c) 2022 Cyril Stoller
#
# SPDX-License-Identifier: MIT
from collections import namedtuple

from micropython import const

SPAD_MAP_SIZE = const(6)  # bytes, one bit per reference SPAD
_SPAD_COUNT = const(48)
_FIRST_APERTURE_SPAD = const(12)

SpadInfo = namedtuple('SpadInfo', 'count is_aperture')


def decode_spad_info(value: int) -> SpadInfo:
    # is_aperture(7) count(6:0)
    return SpadInfo(count=value & 0x7F, is_aperture=bool(value & 0x80))


def compute_spad_map(ref_spad_map, count: int, is_aperture: bool) -> bytearray:
    """Enable the first ``count`` usable reference SPADs.

    Bits already cleared in ``ref_spad_map`` belong to SPADs that can't be
    used and stay cleared. Aperture SPADs start at index 12, everything before
    that is disabled.
    """
    if len(ref_spad_map) != SPAD_MAP_SIZE:
        raise ValueError(f'Reference SPAD map must be {SPAD_MAP_SIZE} bytes, got {len(ref_spad_map)}')
    spad_map = bytearray(ref_spad_map)
    first_spad_to_enable = _FIRST_APERTURE_SPAD if is_aperture else 0
    spads_enabled = 0
    for i in range(_SPAD_COUNT):
        row, bit = i // 8, i % 8
        if i < first_spad_to_enable or spads_enabled == count:
            spad_map[row] &= ~(1 << bit) & 0xFF
        elif spad_map[row] >> bit & 0x01:
            spads_enabled += 1
    return spad_map

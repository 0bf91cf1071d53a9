# SPDX-FileCopyrightText: 2017 Scott Shawcroft, written for Adafruit Industries
# SPDX-FileCopyrightText: Copyright (c) 2022 Cyril Stoller
#
# SPDX-License-Identifier: MIT
"""
`vl53l0x.timing`
================================================================================

Clock arithmetic of the VL53L0X ranging sequence.

The sensor counts timeouts in macro clock periods (MCLKs) whose length depends
on the VCSEL pulse period of the ranging phase. Timeouts are stored in 16-bit
registers in the format ``(LSByte * 2^MSByte) + 1``. All conversions use
truncating integer division, which the sensor's own clock model relies on.
"""

from collections import namedtuple

from micropython import const

_MACRO_PERIOD_PCLKS = const(2304)
_PLL_PERIOD_PS = const(1655)

# Overheads in microseconds. Start overhead and DSS overhead differ between
# reading and writing the budget.
_START_OVERHEAD_GET = const(1910)
_START_OVERHEAD_SET = const(1320)
_END_OVERHEAD = const(960)
_MSRC_OVERHEAD = const(660)
_TCC_OVERHEAD = const(590)
_DSS_OVERHEAD_GET = const(590)
_DSS_OVERHEAD_SET = const(690)
_PRE_RANGE_OVERHEAD = const(660)
_FINAL_RANGE_OVERHEAD = const(550)

MIN_TIMING_BUDGET_US = const(20000)
FINAL_RANGE_OVERHEAD_US = _FINAL_RANGE_OVERHEAD

SequenceStepEnables = namedtuple('SequenceStepEnables', 'tcc dss msrc pre_range final_range')

SequenceStepTimeouts = namedtuple('SequenceStepTimeouts',
                                  'pre_range_vcsel_period_pclks final_range_vcsel_period_pclks '
                                  'msrc_dss_tcc_mclks pre_range_mclks final_range_mclks '
                                  'msrc_dss_tcc_us pre_range_us final_range_us')


def decode_timeout(reg_val: int) -> int:
    # format: "(LSByte * 2^MSByte) + 1"
    return ((reg_val & 0xFF) << ((reg_val >> 8) & 0xFF)) + 1


def encode_timeout(timeout_mclks: int) -> int:
    # format: "(LSByte * 2^MSByte) + 1"
    timeout_mclks = int(timeout_mclks)
    if timeout_mclks <= 0:
        return 0
    if timeout_mclks > 0xFFFF:
        timeout_mclks = 0xFFFF
    ls_byte = timeout_mclks - 1
    ms_byte = 0
    while ls_byte > 0xFF:
        ls_byte >>= 1
        ms_byte += 1
    return ((ms_byte << 8) | (ls_byte & 0xFF)) & 0xFFFF


def calc_macro_period(vcsel_period_pclks: int) -> int:
    """Length of one macro clock period in nanoseconds."""
    return (_MACRO_PERIOD_PCLKS * vcsel_period_pclks * _PLL_PERIOD_PS + 500) // 1000


def mclks_to_microseconds(timeout_period_mclks: int, vcsel_period_pclks: int) -> int:
    macro_period_ns = calc_macro_period(vcsel_period_pclks)
    return (timeout_period_mclks * macro_period_ns + macro_period_ns // 2) // 1000


def microseconds_to_mclks(timeout_period_us: int, vcsel_period_pclks: int) -> int:
    macro_period_ns = calc_macro_period(vcsel_period_pclks)
    return (timeout_period_us * 1000 + macro_period_ns // 2) // macro_period_ns


def decode_vcsel_period(reg_val: int) -> int:
    return (reg_val + 1) << 1


def encode_vcsel_period(period_pclks: int) -> int:
    return (period_pclks >> 1) - 1


def decode_sequence_step_enables(sequence_config: int) -> SequenceStepEnables:
    # final_range(7) pre_range(6) reserved(5) tcc(4) dss(3) msrc(2) reserved(1:0)
    return SequenceStepEnables(
        tcc=bool(sequence_config >> 4 & 0x01),
        dss=bool(sequence_config >> 3 & 0x01),
        msrc=bool(sequence_config >> 2 & 0x01),
        pre_range=bool(sequence_config >> 6 & 0x01),
        final_range=bool(sequence_config >> 7 & 0x01),
    )


def compute_sequence_step_timeouts(pre_range_vcsel_reg: int, final_range_vcsel_reg: int, msrc_timeout_reg: int,
                                   pre_range_timeout_raw: int, final_range_timeout_raw: int,
                                   pre_range_enabled: bool) -> SequenceStepTimeouts:
    """Turn the raw timeout registers into clock counts and microseconds.

    The final range timeout register holds the pre-range time as well when the
    pre-range step is enabled, so it is taken out again here.
    """
    pre_range_vcsel_period_pclks = decode_vcsel_period(pre_range_vcsel_reg)
    final_range_vcsel_period_pclks = decode_vcsel_period(final_range_vcsel_reg)

    msrc_dss_tcc_mclks = (msrc_timeout_reg + 1) & 0xFF
    msrc_dss_tcc_us = mclks_to_microseconds(msrc_dss_tcc_mclks, pre_range_vcsel_period_pclks)

    pre_range_mclks = decode_timeout(pre_range_timeout_raw)
    pre_range_us = mclks_to_microseconds(pre_range_mclks, pre_range_vcsel_period_pclks)

    final_range_mclks = decode_timeout(final_range_timeout_raw)
    if pre_range_enabled:
        final_range_mclks -= pre_range_mclks
    final_range_us = mclks_to_microseconds(final_range_mclks, final_range_vcsel_period_pclks)

    return SequenceStepTimeouts(
        pre_range_vcsel_period_pclks=pre_range_vcsel_period_pclks,
        final_range_vcsel_period_pclks=final_range_vcsel_period_pclks,
        msrc_dss_tcc_mclks=msrc_dss_tcc_mclks,
        pre_range_mclks=pre_range_mclks,
        final_range_mclks=final_range_mclks,
        msrc_dss_tcc_us=msrc_dss_tcc_us,
        pre_range_us=pre_range_us,
        final_range_us=final_range_us,
    )


def measurement_timing_budget(enables: SequenceStepEnables, timeouts: SequenceStepTimeouts) -> int:
    """Total time of one measurement in microseconds, as currently configured."""
    budget_us = _START_OVERHEAD_GET + _END_OVERHEAD
    if enables.tcc:
        budget_us += timeouts.msrc_dss_tcc_us + _TCC_OVERHEAD
    if enables.dss:
        budget_us += timeouts.msrc_dss_tcc_us + _DSS_OVERHEAD_GET
    elif enables.msrc:
        budget_us += timeouts.msrc_dss_tcc_us + _MSRC_OVERHEAD
    if enables.pre_range:
        budget_us += timeouts.pre_range_us + _PRE_RANGE_OVERHEAD
    if enables.final_range:
        budget_us += timeouts.final_range_us + _FINAL_RANGE_OVERHEAD
    return budget_us


def used_timing_budget(enables: SequenceStepEnables, timeouts: SequenceStepTimeouts) -> int:
    """Time taken by every step but the final range, as counted when setting a budget."""
    used_budget_us = _START_OVERHEAD_SET + _END_OVERHEAD
    if enables.tcc:
        used_budget_us += timeouts.msrc_dss_tcc_us + _TCC_OVERHEAD
    if enables.dss:
        used_budget_us += 2 * (timeouts.msrc_dss_tcc_us + _DSS_OVERHEAD_SET)
    elif enables.msrc:
        used_budget_us += timeouts.msrc_dss_tcc_us + _MSRC_OVERHEAD
    if enables.pre_range:
        used_budget_us += timeouts.pre_range_us + _PRE_RANGE_OVERHEAD
    return used_budget_us


def final_range_timeout_mclks(final_range_timeout_us: int, enables: SequenceStepEnables,
                              timeouts: SequenceStepTimeouts) -> int:
    # The register value is cumulative: pre-range clocks are added back in
    timeout_mclks = microseconds_to_mclks(final_range_timeout_us, timeouts.final_range_vcsel_period_pclks)
    if enables.pre_range:
        timeout_mclks += timeouts.pre_range_mclks
    return timeout_mclks

# SPDX-FileCopyrightText: 2017 Scott Shawcroft, written for Adafruit Industries
# SPDX-FileCopyrightText: Copyright (c) 2022 Cyril Stoller
#
# SPDX-License-Identifier: MIT
"""
`adafruit_vl53l0x`
================================================================================

Single-shot ranging driver for the ST VL53L0X time-of-flight distance sensor.

The initialization follows ST's reference sequence as condensed by Pololu
(https://github.com/pololu/vl53l0x-arduino): stop variable capture, reference
SPAD selection, tuning settings, timing budget restoration and the VHV/phase
reference calibrations.

Implementation Notes
--------------------

**Hardware:**

* ST VL53L0X breakout, default I2C address 0x29

**Software and Dependencies:**

* Adafruit Blinka (for ``busio`` on Linux SBCs) or CircuitPython firmware
* Adafruit's Bus Device library: https://github.com/adafruit/Adafruit_CircuitPython_BusDevice
* Adafruit's Ticks library: https://github.com/adafruit/Adafruit_CircuitPython_Ticks

The polling loops used while calibrating and ranging wait forever by default.
A sensor that never reports completion hangs the caller unless
``io_timeout_ms`` is set, in which case :class:`Timeout` is raised and the
sensor should be opened and initialized again.
"""

__version__ = "1.0.0+auto.0"

import logging
from pathlib import Path

from adafruit_bus_device import i2c_device
from adafruit_ticks import ticks_ms, ticks_add, ticks_less
from micropython import const

from .spad import SPAD_MAP_SIZE, SpadInfo, compute_spad_map, decode_spad_info
from .timing import (FINAL_RANGE_OVERHEAD_US, MIN_TIMING_BUDGET_US, SequenceStepEnables, SequenceStepTimeouts,
                     compute_sequence_step_timeouts, decode_sequence_step_enables, decode_vcsel_period,
                     encode_timeout, encode_vcsel_period, final_range_timeout_mclks, measurement_timing_budget,
                     microseconds_to_mclks, used_timing_budget)
from .vl53l0x_config import VL53L0X_Configuration

try:
    from typing import Callable, Iterable, Optional, Union
except ImportError:
    pass

# Registers:
_SYSRANGE_START = const(0x00)
_SYSTEM_SEQUENCE_CONFIG = const(0x01)
_SYSTEM_INTERRUPT_CONFIG_GPIO = const(0x0A)
_SYSTEM_INTERRUPT_CLEAR = const(0x0B)
_RESULT_INTERRUPT_STATUS = const(0x13)
_RESULT_RANGE_STATUS = const(0x14)
_GLOBAL_CONFIG_VCSEL_WIDTH = const(0x32)
_ALGO_PHASECAL_CONFIG_TIMEOUT = const(0x30)
_ALGO_PHASECAL_LIM = const(0x30)  # on page 1
_FINAL_RANGE_CONFIG_MIN_COUNT_RATE_RTN_LIMIT = const(0x44)
_MSRC_CONFIG_TIMEOUT_MACROP = const(0x46)
_FINAL_RANGE_CONFIG_VALID_PHASE_LOW = const(0x47)
_FINAL_RANGE_CONFIG_VALID_PHASE_HIGH = const(0x48)
_PRE_RANGE_CONFIG_VCSEL_PERIOD = const(0x50)
_PRE_RANGE_CONFIG_TIMEOUT_MACROP_HI = const(0x51)
_PRE_RANGE_CONFIG_VALID_PHASE_LOW = const(0x56)
_PRE_RANGE_CONFIG_VALID_PHASE_HIGH = const(0x57)
_MSRC_CONFIG_CONTROL = const(0x60)
_FINAL_RANGE_CONFIG_VCSEL_PERIOD = const(0x70)
_FINAL_RANGE_CONFIG_TIMEOUT_MACROP_HI = const(0x71)
_GPIO_HV_MUX_ACTIVE_HIGH = const(0x84)
_STOP_VARIABLE = const(0x91)
_GLOBAL_CONFIG_SPAD_ENABLES_REF_0 = const(0xB0)
_IDENTIFICATION_MODEL_ID = const(0xC0)
_PAGE_SELECT = const(0xFF)
_SPAD_INFO = const(0x83)

# Internal constants:
_VL53L0X_DEFAULT_I2C_ADDR = const(0x29)
_VL53L0X_MODEL_ID = const(0xEE)

_STATE_OPENED = const(1)
_STATE_INITIALIZED = const(2)

VCSEL_PERIOD_PRE_RANGE = const(0)
VCSEL_PERIOD_FINAL_RANGE = const(1)

# period_pclks: valid_phase_high
_PRE_RANGE_VCSEL_SETTINGS = {12: 0x18, 14: 0x30, 16: 0x40, 18: 0x50}
# period_pclks: (valid_phase_high, vcsel_width, phasecal_config_timeout, phasecal_lim)
_FINAL_RANGE_VCSEL_SETTINGS = {
    8: (0x10, 0x02, 0x0C, 0x30),
    10: (0x28, 0x03, 0x09, 0x20),
    12: (0x38, 0x03, 0x08, 0x20),
    14: (0x48, 0x03, 0x07, 0x20),
}


class VL53L0XError(Exception):
    pass


class BusError(VL53L0XError):
    pass


class DeviceNotFound(VL53L0XError):
    pass


class NotInitialized(VL53L0XError):
    pass


class Timeout(VL53L0XError):
    pass


class LimitTooLow(VL53L0XError, ValueError):
    pass


class LimitTooHigh(VL53L0XError, ValueError):
    pass


class BudgetTooSmall(VL53L0XError, ValueError):
    pass


class BudgetTooBig(VL53L0XError, ValueError):
    pass


class InvalidVcselPeriod(VL53L0XError, ValueError):
    pass


class VL53L0X:
    """Driver for one VL53L0X on an already addressed I2C bus.

    Creating the object opens the sensor: the address is probed and the model
    ID verified. :meth:`init` must then run once before :meth:`range`.
    The object isn't safe to share between threads without external locking.
    """

    def __init__(self, i2c: "busio.I2C", address: int = _VL53L0X_DEFAULT_I2C_ADDR,
                 config: "Optional[VL53L0X_Configuration]" = None, io_timeout_ms: "Optional[int]" = None) -> None:
        self._address = address
        self.log = logging.getLogger(f'vl53l0x.{address:x}')
        self.config = config or VL53L0X_Configuration()
        if io_timeout_ms is None:
            io_timeout_ms = self.config.io_timeout_ms or 0
        self.io_timeout_ms = io_timeout_ms
        self.measurement_timing_budget_us = None
        self._stop_variable = 0

        try:
            self._device = i2c_device.I2CDevice(i2c, address)
        except ValueError as e:
            raise DeviceNotFound(f'No device answering at address {address:#04x}') from e

        # Check if chip is responding and ID matches datasheet
        model_id = self.read_register(_IDENTIFICATION_MODEL_ID)
        if model_id != _VL53L0X_MODEL_ID:
            raise DeviceNotFound(f'Device at {address:#04x} has model ID {model_id:#04x}, '
                                 f'expected {_VL53L0X_MODEL_ID:#04x}')
        self._state = _STATE_OPENED
        self.log.debug('opened')


    @property
    def address(self) -> int:
        return self._address


    @property
    def initialized(self) -> bool:
        return self._state == _STATE_INITIALIZED


    def init(self) -> None:
        if self._state != _STATE_OPENED:
            raise VL53L0XError('Sensor is already initialized')

        self._write_sequence(self.config.BOOTSTRAP_SEQUENCE)
        stop_variable = self.read_register(_STOP_VARIABLE)
        self._write_sequence(self.config.BOOTSTRAP_RESTORE_SEQUENCE)
        self.log.debug('stop variable: %#04x', stop_variable)

        # disable SIGNAL_RATE_MSRC (bit 1) and SIGNAL_RATE_PRE_RANGE (bit 4) limit checks
        self._update_register(_MSRC_CONFIG_CONTROL, set_bits=0x12)
        self.set_signal_rate_limit(0.25)
        self.write_register(_SYSTEM_SEQUENCE_CONFIG, 0xFF)

        spad_info = self.get_spad_info()
        self.log.debug('spad info: %s', spad_info)
        ref_spad_map = self.read_register_multi(_GLOBAL_CONFIG_SPAD_ENABLES_REF_0, SPAD_MAP_SIZE)
        self._write_sequence(self.config.REF_SPAD_SEQUENCE)
        spad_map = compute_spad_map(ref_spad_map, spad_info.count, spad_info.is_aperture)
        self.write_register_multi(_GLOBAL_CONFIG_SPAD_ENABLES_REF_0, spad_map)

        self._write_sequence(self.config.TUNING_SETTINGS)

        # Interrupt on new sample ready, GPIO active low
        self.write_register(_SYSTEM_INTERRUPT_CONFIG_GPIO, 0x04)
        self._update_register(_GPIO_HV_MUX_ACTIVE_HIGH, clear_bits=0x10)
        self.write_register(_SYSTEM_INTERRUPT_CLEAR, 0x01)

        # Timeouts depend on the enabled steps, so the budget is recalculated for 0xE8
        budget_us = self.get_measurement_timing_budget()
        self.log.debug('timing budget: %dus', budget_us)
        self.write_register(_SYSTEM_SEQUENCE_CONFIG, 0xE8)
        self.set_measurement_timing_budget(budget_us)

        # VHV calibration, then phase calibration
        self.write_register(_SYSTEM_SEQUENCE_CONFIG, 0x01)
        self.perform_single_ref_calibration(0x40)
        self.write_register(_SYSTEM_SEQUENCE_CONFIG, 0x02)
        self.perform_single_ref_calibration(0x00)
        self.write_register(_SYSTEM_SEQUENCE_CONFIG, 0xE8)

        self._stop_variable = stop_variable
        self._state = _STATE_INITIALIZED
        self.log.info('initialized')


    def range(self) -> int:
        """Run one measurement and return the distance in millimeters."""
        self._check_initialized()
        self._write_sequence((
            (0x80, 0x01),
            (_PAGE_SELECT, 0x01),
            (0x00, 0x00),
            (_STOP_VARIABLE, self._stop_variable),
            (0x00, 0x01),
            (_PAGE_SELECT, 0x00),
            (0x80, 0x00),
            (_SYSRANGE_START, 0x01),
        ))
        self._read_until(_SYSRANGE_START, lambda value: not value & 0x01)
        self._read_until(_RESULT_INTERRUPT_STATUS, lambda value: value & 0x07)
        # Assumes the default linearity corrective gain and fractional ranging disabled
        range_mm = self.read_register_u16(_RESULT_RANGE_STATUS + 10)
        self.write_register(_SYSTEM_INTERRUPT_CLEAR, 0x01)
        self.log.debug('range: %dmm', range_mm)
        return range_mm


    @property
    def distance(self) -> int:
        return self.range()


    def perform_single_ref_calibration(self, vhv_init_byte: int) -> None:
        self.write_register(_SYSRANGE_START, 0x01 | (vhv_init_byte & 0xFF))
        self._read_until(_RESULT_INTERRUPT_STATUS, lambda value: value & 0x07)
        self.write_register(_SYSTEM_INTERRUPT_CLEAR, 0x01)
        self.write_register(_SYSRANGE_START, 0x00)


    def get_spad_info(self) -> SpadInfo:
        self._write_sequence(((0x80, 0x01), (_PAGE_SELECT, 0x01), (0x00, 0x00), (_PAGE_SELECT, 0x06)))
        self._update_register(_SPAD_INFO, set_bits=0x04)
        self._write_sequence(((_PAGE_SELECT, 0x07), (0x81, 0x01), (0x80, 0x01), (0x94, 0x6B), (_SPAD_INFO, 0x00)))

        self._read_until(_SPAD_INFO, lambda value: value != 0x00)

        self.write_register(_SPAD_INFO, 0x01)
        spad_info = decode_spad_info(self.read_register(_SPAD_INFO))

        self._write_sequence(((0x81, 0x00), (_PAGE_SELECT, 0x06)))
        self._update_register(_SPAD_INFO, clear_bits=0x04)
        self._write_sequence(((_PAGE_SELECT, 0x01), (0x00, 0x01), (_PAGE_SELECT, 0x00), (0x80, 0x00)))
        return spad_info


    def set_signal_rate_limit(self, limit_mcps: float) -> None:
        if not limit_mcps >= 0:
            raise LimitTooLow(f'Signal rate limit {limit_mcps} MCPS is below 0')
        if limit_mcps > 511.99:
            raise LimitTooHigh(f'Signal rate limit {limit_mcps} MCPS is above 511.99')
        # Q9.7 fixed point
        self.write_register_u16(_FINAL_RANGE_CONFIG_MIN_COUNT_RATE_RTN_LIMIT, int(limit_mcps * (1 << 7)))


    def get_signal_rate_limit(self) -> float:
        return self.read_register_u16(_FINAL_RANGE_CONFIG_MIN_COUNT_RATE_RTN_LIMIT) / (1 << 7)


    def get_sequence_step_enables(self) -> SequenceStepEnables:
        return decode_sequence_step_enables(self.read_register(_SYSTEM_SEQUENCE_CONFIG))


    def get_vcsel_pulse_period(self, period_type: int) -> int:
        if period_type == VCSEL_PERIOD_PRE_RANGE:
            return decode_vcsel_period(self.read_register(_PRE_RANGE_CONFIG_VCSEL_PERIOD))
        if period_type == VCSEL_PERIOD_FINAL_RANGE:
            return decode_vcsel_period(self.read_register(_FINAL_RANGE_CONFIG_VCSEL_PERIOD))
        raise InvalidVcselPeriod(f'Unknown VCSEL period type {period_type}')


    def get_sequence_step_timeouts(self, pre_range_enabled: bool) -> SequenceStepTimeouts:
        pre_range_vcsel_reg = self.read_register(_PRE_RANGE_CONFIG_VCSEL_PERIOD)
        msrc_timeout_reg = self.read_register(_MSRC_CONFIG_TIMEOUT_MACROP)
        pre_range_timeout_raw = self.read_register_u16(_PRE_RANGE_CONFIG_TIMEOUT_MACROP_HI)
        final_range_vcsel_reg = self.read_register(_FINAL_RANGE_CONFIG_VCSEL_PERIOD)
        final_range_timeout_raw = self.read_register_u16(_FINAL_RANGE_CONFIG_TIMEOUT_MACROP_HI)
        return compute_sequence_step_timeouts(pre_range_vcsel_reg, final_range_vcsel_reg, msrc_timeout_reg,
                                              pre_range_timeout_raw, final_range_timeout_raw, pre_range_enabled)


    def get_measurement_timing_budget(self) -> int:
        enables = self.get_sequence_step_enables()
        timeouts = self.get_sequence_step_timeouts(enables.pre_range)
        return measurement_timing_budget(enables, timeouts)


    def set_measurement_timing_budget(self, budget_us: int) -> None:
        if budget_us < MIN_TIMING_BUDGET_US:
            raise BudgetTooSmall(f'Timing budget {budget_us}us is below {MIN_TIMING_BUDGET_US}us')

        enables = self.get_sequence_step_enables()
        timeouts = self.get_sequence_step_timeouts(enables.pre_range)
        used_budget_us = used_timing_budget(enables, timeouts)

        if enables.final_range:
            used_budget_us += FINAL_RANGE_OVERHEAD_US
            if used_budget_us > budget_us:
                raise BudgetTooBig(f'Timing budget {budget_us}us is below the {used_budget_us}us '
                                   f'taken by the enabled sequence steps')
            timeout_mclks = final_range_timeout_mclks(budget_us - used_budget_us, enables, timeouts)
            self.write_register_u16(_FINAL_RANGE_CONFIG_TIMEOUT_MACROP_HI, encode_timeout(timeout_mclks))
        self.measurement_timing_budget_us = budget_us


    def set_vcsel_pulse_period(self, period_type: int, period_pclks: int) -> None:
        self._check_initialized()
        if period_type == VCSEL_PERIOD_PRE_RANGE:
            settings = _PRE_RANGE_VCSEL_SETTINGS.get(period_pclks)
        elif period_type == VCSEL_PERIOD_FINAL_RANGE:
            settings = _FINAL_RANGE_VCSEL_SETTINGS.get(period_pclks)
        else:
            raise InvalidVcselPeriod(f'Unknown VCSEL period type {period_type}')
        if settings is None:
            raise InvalidVcselPeriod(f'VCSEL period of {period_pclks} PCLKs is not supported')

        vcsel_period_reg = encode_vcsel_period(period_pclks)
        enables = self.get_sequence_step_enables()
        timeouts = self.get_sequence_step_timeouts(enables.pre_range)

        if period_type == VCSEL_PERIOD_PRE_RANGE:
            self.write_register(_PRE_RANGE_CONFIG_VALID_PHASE_HIGH, settings)
            self.write_register(_PRE_RANGE_CONFIG_VALID_PHASE_LOW, 0x08)
            self.write_register(_PRE_RANGE_CONFIG_VCSEL_PERIOD, vcsel_period_reg)

            # Keep the step durations, expressed in the new clock
            new_pre_range_timeout_mclks = microseconds_to_mclks(timeouts.pre_range_us, period_pclks)
            self.write_register_u16(_PRE_RANGE_CONFIG_TIMEOUT_MACROP_HI, encode_timeout(new_pre_range_timeout_mclks))
            new_msrc_timeout_mclks = microseconds_to_mclks(timeouts.msrc_dss_tcc_us, period_pclks)
            self.write_register(_MSRC_CONFIG_TIMEOUT_MACROP,
                                255 if new_msrc_timeout_mclks > 256 else new_msrc_timeout_mclks - 1)
        else:
            valid_phase_high, vcsel_width, phasecal_timeout, phasecal_lim = settings
            self.write_register(_FINAL_RANGE_CONFIG_VALID_PHASE_HIGH, valid_phase_high)
            self.write_register(_FINAL_RANGE_CONFIG_VALID_PHASE_LOW, 0x08)
            self.write_register(_GLOBAL_CONFIG_VCSEL_WIDTH, vcsel_width)
            self.write_register(_ALGO_PHASECAL_CONFIG_TIMEOUT, phasecal_timeout)
            self._write_sequence(((_PAGE_SELECT, 0x01), (_ALGO_PHASECAL_LIM, phasecal_lim), (_PAGE_SELECT, 0x00)))
            self.write_register(_FINAL_RANGE_CONFIG_VCSEL_PERIOD, vcsel_period_reg)

            new_final_range_timeout_mclks = microseconds_to_mclks(timeouts.final_range_us, period_pclks)
            if enables.pre_range:
                new_final_range_timeout_mclks += timeouts.pre_range_mclks
            self.write_register_u16(_FINAL_RANGE_CONFIG_TIMEOUT_MACROP_HI,
                                    encode_timeout(new_final_range_timeout_mclks))

        self.set_measurement_timing_budget(self.measurement_timing_budget_us)

        # Phase calibration must be redone after a period change
        sequence_config = self.read_register(_SYSTEM_SEQUENCE_CONFIG)
        self.write_register(_SYSTEM_SEQUENCE_CONFIG, 0x02)
        self.perform_single_ref_calibration(0x00)
        self.write_register(_SYSTEM_SEQUENCE_CONFIG, sequence_config)
        self.log.debug('vcsel period %d set to %d pclks', period_type, period_pclks)


    def write_configuration(self) -> None:
        self._check_initialized()
        if self.config.io_timeout_ms is not None:
            self.io_timeout_ms = self.config.io_timeout_ms
        self.set_signal_rate_limit(self.config.signal_rate_limit)
        if self.config.pre_range_vcsel_period is not None:
            self.set_vcsel_pulse_period(VCSEL_PERIOD_PRE_RANGE, self.config.pre_range_vcsel_period)
        if self.config.final_range_vcsel_period is not None:
            self.set_vcsel_pulse_period(VCSEL_PERIOD_FINAL_RANGE, self.config.final_range_vcsel_period)
        if self.config.measurement_timing_budget_us is not None:
            self.set_measurement_timing_budget(self.config.measurement_timing_budget_us)


    def load_configuration(self, config_file: "Union[Path, str]") -> VL53L0X_Configuration:
        self.config = VL53L0X_Configuration.load(config_file)
        self.write_configuration()
        return self.config


    def read_register(self, address: int) -> int:
        return self.read_register_multi(address, 1)[0]


    def read_register_u16(self, address: int) -> int:
        return int.from_bytes(self.read_register_multi(address, 2), 'big')


    def read_register_multi(self, address: int, length: int) -> bytearray:
        # Read and return multiple bytes from the specified register address.
        result = bytearray(length)
        try:
            with self._device as i2c:
                i2c.write_then_readinto(bytes([address & 0xFF]), result)
        except OSError as e:
            raise BusError(f'Reading {length} byte(s) from register {address:#04x} failed: {e}') from e
        return result


    def write_register(self, address: int, data: int) -> None:
        self.write_register_multi(address, bytes([data & 0xFF]))


    def write_register_u16(self, address: int, data: int) -> None:
        self.write_register_multi(address, (data & 0xFFFF).to_bytes(2, 'big'))


    def write_register_multi(self, address: int, data) -> None:
        # Write multiple bytes of data from the specified 8-bit register address.
        try:
            with self._device as i2c:
                i2c.write(bytes([address & 0xFF]) + bytes(data))
        except OSError as e:
            raise BusError(f'Writing {len(data)} byte(s) to register {address:#04x} failed: {e}') from e


    def _write_sequence(self, sequence: "Iterable[tuple]") -> None:
        for address, data in sequence:
            self.write_register(address, data)


    def _update_register(self, address: int, set_bits: int = 0x00, clear_bits: int = 0x00) -> None:
        value = self.read_register(address)
        self.write_register(address, (value | set_bits) & ~clear_bits)


    def _read_until(self, address: int, until: "Callable[[int], bool]") -> int:
        # Polls forever unless an I/O timeout is configured
        deadline = ticks_add(ticks_ms(), self.io_timeout_ms) if self.io_timeout_ms else None
        while True:
            value = self.read_register(address)
            if until(value):
                return value
            if deadline is not None and not ticks_less(ticks_ms(), deadline):
                raise Timeout(f'Register {address:#04x} still reads {value:#04x} after {self.io_timeout_ms}ms')


    def _check_initialized(self) -> None:
        if self._state != _STATE_INITIALIZED:
            raise NotInitialized('init() has to complete first')

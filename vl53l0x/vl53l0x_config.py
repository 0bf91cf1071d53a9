# SPDX-FileCopyrightText: 2017 Scott Shawcroft, written for Adafruit Industries
# SPDX-FileCopyrightText: Copyright (c) 2022 Cyril Stoller
#
# SPDX-License-Identifier: MIT
from pathlib import Path

import yaml

try:
    from typing import Optional, Union
except ImportError:
    pass


class VL53L0X_Configuration:
    # Register/value pairs from ST's VL53L0X_load_tuning_settings(), written once during init.
    # 0xFF selects the register page.
    TUNING_SETTINGS = (
        (0xFF, 0x01), (0x00, 0x00),
        (0xFF, 0x00), (0x09, 0x00), (0x10, 0x00), (0x11, 0x00),
        (0x24, 0x01), (0x25, 0xFF), (0x75, 0x00),
        (0xFF, 0x01), (0x4E, 0x2C), (0x48, 0x00), (0x30, 0x20),
        (0xFF, 0x00), (0x30, 0x09), (0x54, 0x00), (0x31, 0x04),
        (0x32, 0x03), (0x40, 0x83), (0x46, 0x25), (0x60, 0x00),
        (0x27, 0x00), (0x50, 0x06), (0x51, 0x00), (0x52, 0x96),
        (0x56, 0x08), (0x57, 0x30), (0x61, 0x00), (0x62, 0x00),
        (0x64, 0x00), (0x65, 0x00), (0x66, 0xA0),
        (0xFF, 0x01), (0x22, 0x32), (0x47, 0x14), (0x49, 0xFF), (0x4A, 0x00),
        (0xFF, 0x00), (0x7A, 0x0A), (0x7B, 0x00), (0x78, 0x21),
        (0xFF, 0x01), (0x23, 0x34), (0x42, 0x00), (0x44, 0xFF),
        (0x45, 0x26), (0x46, 0x05), (0x40, 0x40), (0x0E, 0x06),
        (0x20, 0x1A), (0x43, 0x40),
        (0xFF, 0x00), (0x34, 0x03), (0x35, 0x44),
        (0xFF, 0x01), (0x31, 0x04), (0x4B, 0x09), (0x4C, 0x05), (0x4D, 0x04),
        (0xFF, 0x00), (0x44, 0x00), (0x45, 0x20), (0x47, 0x08),
        (0x48, 0x28), (0x67, 0x00), (0x70, 0x04), (0x71, 0x01),
        (0x72, 0xFE), (0x76, 0x00), (0x77, 0x00),
        (0xFF, 0x01), (0x0D, 0x01),
        (0xFF, 0x00), (0x80, 0x01), (0x01, 0xF8),
        (0xFF, 0x01), (0x8E, 0x01), (0x00, 0x01), (0xFF, 0x00), (0x80, 0x00),
    )

    # Set I2C standard mode and open the page holding the stop variable
    BOOTSTRAP_SEQUENCE = ((0x88, 0x00), (0x80, 0x01), (0xFF, 0x01), (0x00, 0x00))
    BOOTSTRAP_RESTORE_SEQUENCE = ((0x00, 0x01), (0xFF, 0x00), (0x80, 0x00))

    # Reference SPAD start offset, number of requested SPADs and start select
    REF_SPAD_SEQUENCE = ((0xFF, 0x01), (0x4F, 0x00), (0x4E, 0x2C), (0xFF, 0x00), (0xB6, 0xB4))

    _DEFAULT_SETTINGS = {
        'signal_rate_limit': 0.25,  # MCPS
        'measurement_timing_budget_us': None,  # None keeps the budget restored by init()
        'pre_range_vcsel_period': None,  # PCLKs, None keeps the device default
        'final_range_vcsel_period': None,  # PCLKs, None keeps the device default
        'io_timeout_ms': None,  # None leaves the driver's timeout alone, 0 polls forever
    }

    pre_range_vcsel_periods = (12, 14, 16, 18)
    final_range_vcsel_periods = (8, 10, 12, 14)


    def __init__(self, **settings):
        self.settings = dict(self._DEFAULT_SETTINGS)
        self.update(settings)


    def update(self, settings: dict):
        unknown = set(settings) - set(self._DEFAULT_SETTINGS)
        if unknown:
            raise ValueError(f'Unknown VL53L0X setting(s): {", ".join(sorted(unknown))}')
        for key, value in settings.items():
            # Go through the property setters so every value is validated
            setattr(self, key, value)


    @property
    def signal_rate_limit(self) -> float:
        return self.settings['signal_rate_limit']


    @signal_rate_limit.setter
    def signal_rate_limit(self, value: float):
        if not 0 <= value <= 511.99:
            raise ValueError(f'Signal rate limit must be within 0..511.99 MCPS, got {value}')
        self.settings['signal_rate_limit'] = float(value)


    @property
    def measurement_timing_budget_us(self) -> "Optional[int]":
        return self.settings['measurement_timing_budget_us']


    @measurement_timing_budget_us.setter
    def measurement_timing_budget_us(self, value: "Optional[int]"):
        if value is not None and value < 20000:
            raise ValueError(f'Timing budget must be at least 20000us, got {value}')
        self.settings['measurement_timing_budget_us'] = None if value is None else int(value)


    @property
    def pre_range_vcsel_period(self) -> "Optional[int]":
        return self.settings['pre_range_vcsel_period']


    @pre_range_vcsel_period.setter
    def pre_range_vcsel_period(self, value: "Optional[int]"):
        if value is not None and value not in self.pre_range_vcsel_periods:
            raise ValueError(f'Pre-range VCSEL period must be one of {self.pre_range_vcsel_periods}, got {value}')
        self.settings['pre_range_vcsel_period'] = value


    @property
    def final_range_vcsel_period(self) -> "Optional[int]":
        return self.settings['final_range_vcsel_period']


    @final_range_vcsel_period.setter
    def final_range_vcsel_period(self, value: "Optional[int]"):
        if value is not None and value not in self.final_range_vcsel_periods:
            raise ValueError(f'Final range VCSEL period must be one of {self.final_range_vcsel_periods}, got {value}')
        self.settings['final_range_vcsel_period'] = value


    @property
    def io_timeout_ms(self) -> "Optional[int]":
        return self.settings['io_timeout_ms']


    @io_timeout_ms.setter
    def io_timeout_ms(self, value: "Optional[int]"):
        if value is not None:
            value = int(value)
            if value < 0:
                raise ValueError(f'I/O timeout can\'t be negative, got {value}')
        self.settings['io_timeout_ms'] = value


    @classmethod
    def load(cls, config_file: "Union[Path, str]") -> "VL53L0X_Configuration":
        config_file = Path(config_file)
        try:
            with open(config_file, 'r') as f:
                settings = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise RuntimeError(f'Configuration file "{config_file}" doesn\'t exist')
        if not isinstance(settings, dict):
            raise ValueError(f'Configuration file "{config_file}" must contain a mapping')
        return cls(**settings)


    def store(self, config_file: "Union[Path, str]"):
        config_file = Path(config_file)
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, 'w') as f:
            yaml.safe_dump(self.settings, f, default_flow_style=False)

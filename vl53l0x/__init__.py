# SPDX-FileCopyrightText: 2017 Scott Shawcroft, written for Adafruit Industries
# SPDX-FileCopyrightText: Copyright (c) 2022 Cyril Stoller
#
# SPDX-License-Identifier: MIT
from .adafruit_vl53l0x import (VCSEL_PERIOD_FINAL_RANGE, VCSEL_PERIOD_PRE_RANGE, VL53L0X, BudgetTooBig,
                               BudgetTooSmall, BusError, DeviceNotFound, InvalidVcselPeriod, LimitTooHigh,
                               LimitTooLow, NotInitialized, Timeout, VL53L0XError, __version__)
from .vl53l0x_config import VL53L0X_Configuration

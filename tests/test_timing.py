import unittest

from vl53l0x import timing


class TestTimeoutCodec(unittest.TestCase):
    def test_decode(self):
        self.assertEqual(timing.decode_timeout(0x0000), 1)
        self.assertEqual(timing.decode_timeout(0x0096), 151)
        self.assertEqual(timing.decode_timeout(0x01FE), 509)
        self.assertEqual(timing.decode_timeout(0x0281), 517)

    def test_encode(self):
        self.assertEqual(timing.encode_timeout(151), 0x0096)
        self.assertEqual(timing.encode_timeout(256), 0x00FF)
        self.assertEqual(timing.encode_timeout(257), 0x0180)
        self.assertEqual(timing.encode_timeout(520), 0x0281)

    def test_encode_clamps(self):
        self.assertEqual(timing.encode_timeout(0), 0)
        self.assertEqual(timing.encode_timeout(-5), 0)
        self.assertEqual(timing.encode_timeout(0x10000), timing.encode_timeout(0xFFFF))
        self.assertEqual(timing.encode_timeout(0x123456), timing.encode_timeout(0xFFFF))

    def test_round_trip_is_within_shift_precision(self):
        for mclks in range(1, 0x10000):
            encoded = timing.encode_timeout(mclks)
            shift_count = encoded >> 8
            decoded = timing.decode_timeout(encoded)
            self.assertLessEqual(abs(decoded - mclks), (1 << shift_count) - 1, msg=f'mclks={mclks}')

    def test_macro_period(self):
        self.assertEqual(timing.calc_macro_period(10), 38131)
        self.assertEqual(timing.calc_macro_period(14), 53384)
        self.assertEqual(timing.calc_macro_period(18), 68636)

    def test_mclks_to_microseconds(self):
        self.assertEqual(timing.mclks_to_microseconds(38, 14), 2055)
        self.assertEqual(timing.mclks_to_microseconds(151, 14), 8087)
        self.assertEqual(timing.mclks_to_microseconds(358, 10), 13669)

    def test_microseconds_to_mclks(self):
        self.assertEqual(timing.microseconds_to_mclks(14059, 10), 369)
        self.assertEqual(timing.microseconds_to_mclks(8087, 18), 118)

    def test_clock_conversion_inverse(self):
        for vcsel_period_pclks in (12, 18, 24):
            for mclks in range(0, 5000, 7):
                us = timing.mclks_to_microseconds(mclks, vcsel_period_pclks)
                back = timing.microseconds_to_mclks(us, vcsel_period_pclks)
                self.assertLessEqual(abs(back - mclks), 1, msg=f'mclks={mclks} pclks={vcsel_period_pclks}')

    def test_vcsel_period(self):
        self.assertEqual(timing.decode_vcsel_period(0x06), 14)
        self.assertEqual(timing.decode_vcsel_period(0x04), 10)
        for period_pclks in (8, 10, 12, 14, 16, 18):
            self.assertEqual(timing.decode_vcsel_period(timing.encode_vcsel_period(period_pclks)), period_pclks)


class TestSequenceStepEnables(unittest.TestCase):
    def test_decode_e8(self):
        enables = timing.decode_sequence_step_enables(0xE8)
        self.assertEqual(enables, timing.SequenceStepEnables(tcc=False, dss=True, msrc=False,
                                                             pre_range=True, final_range=True))

    def test_decode_ignores_reserved_bits(self):
        self.assertEqual(timing.decode_sequence_step_enables(0x23), timing.SequenceStepEnables(
            tcc=False, dss=False, msrc=False, pre_range=False, final_range=False))
        self.assertEqual(timing.decode_sequence_step_enables(0x14), timing.SequenceStepEnables(
            tcc=True, dss=False, msrc=True, pre_range=False, final_range=False))


class TestTimingBudget(unittest.TestCase):
    def setUp(self):
        # Register values left by the tuning settings
        self.timeouts = timing.compute_sequence_step_timeouts(0x06, 0x04, 0x25, 0x0096, 0x01FE, True)

    def test_step_timeouts(self):
        self.assertEqual(self.timeouts.pre_range_vcsel_period_pclks, 14)
        self.assertEqual(self.timeouts.final_range_vcsel_period_pclks, 10)
        self.assertEqual(self.timeouts.msrc_dss_tcc_mclks, 38)
        self.assertEqual(self.timeouts.msrc_dss_tcc_us, 2055)
        self.assertEqual(self.timeouts.pre_range_mclks, 151)
        self.assertEqual(self.timeouts.pre_range_us, 8087)
        self.assertEqual(self.timeouts.final_range_mclks, 358)
        self.assertEqual(self.timeouts.final_range_us, 13669)

    def test_final_range_not_reduced_without_pre_range(self):
        timeouts = timing.compute_sequence_step_timeouts(0x06, 0x04, 0x25, 0x0096, 0x01FE, False)
        self.assertEqual(timeouts.final_range_mclks, 509)

    def test_msrc_timeout_wraps_to_byte(self):
        timeouts = timing.compute_sequence_step_timeouts(0x06, 0x04, 0xFF, 0x0096, 0x01FE, True)
        self.assertEqual(timeouts.msrc_dss_tcc_mclks, 0)

    def test_measurement_timing_budget(self):
        all_steps = timing.decode_sequence_step_enables(0xFF)
        self.assertEqual(timing.measurement_timing_budget(all_steps, self.timeouts), 31126)
        default_steps = timing.decode_sequence_step_enables(0xE8)
        self.assertEqual(timing.measurement_timing_budget(default_steps, self.timeouts), 28481)

    def test_msrc_counted_only_without_dss(self):
        msrc_only = timing.decode_sequence_step_enables(0x04)
        self.assertEqual(timing.measurement_timing_budget(msrc_only, self.timeouts), 1910 + 960 + 2055 + 660)
        self.assertEqual(timing.used_timing_budget(msrc_only, self.timeouts), 1320 + 960 + 2055 + 660)

    def test_used_budget_doubles_dss(self):
        default_steps = timing.decode_sequence_step_enables(0xE8)
        self.assertEqual(timing.used_timing_budget(default_steps, self.timeouts),
                         1320 + 960 + 2 * (2055 + 690) + 8087 + 660)

    def test_final_range_timeout_mclks(self):
        default_steps = timing.decode_sequence_step_enables(0xE8)
        self.assertEqual(timing.final_range_timeout_mclks(14059, default_steps, self.timeouts), 369 + 151)
        no_pre_range = timing.decode_sequence_step_enables(0x80)
        self.assertEqual(timing.final_range_timeout_mclks(14059, no_pre_range, self.timeouts), 369)


if __name__ == '__main__':
    unittest.main()

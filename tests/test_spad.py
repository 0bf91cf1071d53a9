import unittest

from vl53l0x.spad import SpadInfo, compute_spad_map, decode_spad_info


class TestSpadMap(unittest.TestCase):
    def test_first_spads_enabled(self):
        spad_map = compute_spad_map(bytes([0xFF] * 6), 5, False)
        self.assertEqual(spad_map, bytearray([0x1F, 0x00, 0x00, 0x00, 0x00, 0x00]))

    def test_aperture_spads_start_at_twelve(self):
        spad_map = compute_spad_map(bytes([0xFF] * 6), 5, True)
        self.assertEqual(spad_map, bytearray([0x00, 0xF0, 0x01, 0x00, 0x00, 0x00]))

    def test_unusable_spads_are_skipped(self):
        # 0xF5: SPADs 1 and 3 can't be used
        spad_map = compute_spad_map(bytes([0xF5, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF]), 3, False)
        self.assertEqual(spad_map, bytearray([0x15, 0x00, 0x00, 0x00, 0x00, 0x00]))

    def test_not_enough_usable_spads(self):
        source = bytes([0x00, 0x81, 0x00, 0x00, 0x00, 0x40])
        self.assertEqual(compute_spad_map(source, 44, False), bytearray(source))

    def test_zero_count_disables_everything(self):
        self.assertEqual(compute_spad_map(bytes([0xFF] * 6), 0, False), bytearray(6))

    def test_source_is_not_modified(self):
        source = bytearray([0xFF] * 6)
        compute_spad_map(source, 3, False)
        self.assertEqual(source, bytearray([0xFF] * 6))

    def test_wrong_size(self):
        with self.assertRaises(ValueError):
            compute_spad_map(bytes(5), 3, False)


class TestSpadInfo(unittest.TestCase):
    def test_decode(self):
        self.assertEqual(decode_spad_info(0x85), SpadInfo(count=5, is_aperture=True))
        self.assertEqual(decode_spad_info(0x2C), SpadInfo(count=44, is_aperture=False))
        self.assertEqual(decode_spad_info(0xFF), SpadInfo(count=127, is_aperture=True))


if __name__ == '__main__':
    unittest.main()

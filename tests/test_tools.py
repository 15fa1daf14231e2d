import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from tools import MathTools


class MathToolsTestCase(unittest.TestCase):
    def test_e1rm_non_positive(self) -> None:
        self.assertEqual(MathTools.e1rm(0, 5), 0)
        self.assertEqual(MathTools.e1rm(100, 0), 0)
        self.assertEqual(MathTools.e1rm(-10, 5), 0)
        self.assertEqual(MathTools.e1rm(100, -1), 0)

    def test_e1rm_single_rep(self) -> None:
        self.assertEqual(MathTools.e1rm(142.5, 1), 142.5)

    def test_e1rm_brzycki(self) -> None:
        self.assertAlmostEqual(MathTools.e1rm(100, 5), 112.5)
        for reps in range(2, 11):
            self.assertAlmostEqual(
                MathTools.e1rm(80, reps),
                MathTools.round_half_up(80 * 36 / (37 - reps), 1),
            )

    def test_e1rm_rounds_halves_up(self) -> None:
        # 21.5 x 15 is exactly 32.25 before rounding
        self.assertEqual(MathTools.e1rm(21.5, 15), 32.3)
        self.assertEqual(MathTools.e1rm(110, 5), 123.8)

    def test_round_half_up(self) -> None:
        self.assertEqual(MathTools.round_half_up(2.5), 3)
        self.assertEqual(MathTools.round_half_up(12.5), 13)
        self.assertEqual(MathTools.round_half_up(0.25, 1), 0.3)
        self.assertEqual(MathTools.round_half_up(2.4), 2)
        self.assertIsInstance(MathTools.round_half_up(7.0), int)

    def test_e1rm_epley_above_ten(self) -> None:
        self.assertAlmostEqual(MathTools.e1rm(60, 12), 84.0)
        self.assertAlmostEqual(MathTools.e1rm(50, 15), round(50 * (1 + 15 / 30), 1))

    def test_volume(self) -> None:
        self.assertEqual(MathTools.volume([(100.0, 10), (50.0, 5)]), 1250.0)
        self.assertEqual(MathTools.volume([]), 0.0)

    def test_format_duration(self) -> None:
        self.assertEqual(MathTools.format_duration(59), "0:59")
        self.assertEqual(MathTools.format_duration(605), "10:05")
        self.assertEqual(MathTools.format_duration(3725), "1:02:05")

    def test_format_distance(self) -> None:
        self.assertEqual(MathTools.format_distance(850.4), "850 m")
        self.assertEqual(MathTools.format_distance(850.5), "851 m")
        self.assertEqual(MathTools.format_distance(1000), "1.00 km")
        self.assertEqual(MathTools.format_distance(5234), "5.23 km")

    def test_week_start(self) -> None:
        # 2024-01-03 is a Wednesday
        self.assertEqual(MathTools.week_start(datetime.date(2024, 1, 3)), "2024-01-01")
        self.assertEqual(MathTools.week_start(datetime.date(2024, 1, 1)), "2024-01-01")
        self.assertEqual(MathTools.week_start(datetime.date(2024, 1, 7)), "2024-01-01")
        self.assertEqual(
            MathTools.week_start("2024-01-08T06:30:00+00:00"), "2024-01-08"
        )
        self.assertEqual(MathTools.week_start("2024-01-07T23:30:00Z"), "2024-01-01")

    def test_days_ago(self) -> None:
        ts = MathTools.days_ago(7, today=datetime.date(2024, 3, 10))
        self.assertEqual(ts, "2024-03-03T00:00:00+00:00")

    def test_parse_timestamp(self) -> None:
        dt = MathTools.parse_timestamp("2024-01-01T10:00:00")
        self.assertEqual(dt.tzinfo, datetime.timezone.utc)
        dt = MathTools.parse_timestamp("2024-01-01T10:00:00+02:00")
        self.assertEqual(dt.hour, 8)

    def test_percentage(self) -> None:
        self.assertEqual(MathTools.percentage(1, 3), 33)
        self.assertEqual(MathTools.percentage(1, 6), 17)
        self.assertEqual(MathTools.percentage(5, 0), 0)


if __name__ == "__main__":
    unittest.main()

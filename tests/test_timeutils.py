from __future__ import annotations

import unittest
from datetime import UTC, datetime, timedelta, timezone

from gps_heatmap.timeutils import delta_stats, intervals_s, parse_dt, parse_timestamp, tzinfo_from_name


class TestParseTimestamp(unittest.TestCase):
    def test_forms(self) -> None:
        self.assertEqual(parse_timestamp("2019-11-10T20:49:52Z"), datetime(2019, 11, 10, 20, 49, 52, tzinfo=UTC))
        self.assertEqual(parse_timestamp(" 2019-11-10T21:49:52+01:00 "), datetime(2019, 11, 10, 20, 49, 52, tzinfo=UTC))
        self.assertEqual(parse_timestamp("2019-11-10T20:49:52"), datetime(2019, 11, 10, 20, 49, 52, tzinfo=UTC))
        self.assertIsNone(parse_timestamp(None))
        self.assertIsNone(parse_timestamp("  "))

    def test_garbage(self) -> None:
        with self.assertRaises(ValueError):
            parse_timestamp("10/11/2019")


class TestParseDt(unittest.TestCase):
    def test_date_only_is_whole_day(self) -> None:
        self.assertEqual(parse_dt("2024-05-31", "UTC"), datetime(2024, 5, 31, tzinfo=UTC))
        self.assertEqual(
            parse_dt("2024-05-31", "UTC", end_of_day=True),
            datetime(2024, 5, 31, 23, 59, 59, 999999, tzinfo=UTC),
        )

    def test_date_only_uses_timezone(self) -> None:
        dt = parse_dt("2024-05-01", "Asia/Shanghai")
        self.assertEqual(dt.astimezone(UTC), datetime(2024, 4, 30, 16, 0, tzinfo=UTC))

    def test_datetime_forms(self) -> None:
        self.assertEqual(parse_dt("2024-05-01 09:30:00", "UTC"), datetime(2024, 5, 1, 9, 30, tzinfo=UTC))
        self.assertEqual(parse_dt("2024-05-01T09:30", "UTC", end_of_day=True), datetime(2024, 5, 1, 9, 30, tzinfo=UTC))
        dt = parse_dt("2024-05-01T09:30:00+02:00", "UTC")
        self.assertEqual(dt, datetime(2024, 5, 1, 7, 30, tzinfo=timezone.utc))

    def test_errors(self) -> None:
        with self.assertRaises(ValueError):
            parse_dt("May 1st", "UTC")
        with self.assertRaises(ValueError):
            parse_dt("2024-05-01", "Mars/Olympus_Mons")
        with self.assertRaises(ValueError):
            tzinfo_from_name("not a zone")


class TestDeltaStats(unittest.TestCase):
    def test_intervals_skip_backwards_steps(self) -> None:
        t0 = datetime(2024, 1, 1, tzinfo=UTC)
        times = [t0, t0 + timedelta(seconds=2), t0 + timedelta(seconds=1), t0 + timedelta(seconds=4)]
        self.assertEqual(intervals_s(times), [2.0, 3.0])
        self.assertEqual(intervals_s([]), [])

    def test_stats(self) -> None:
        stats = delta_stats([4.0, 1.0, 2.0, 1.0])
        assert stats is not None
        self.assertEqual(stats.count, 4)
        self.assertEqual(stats.min_s, 1.0)
        self.assertEqual(stats.median_s, 1.5)
        self.assertEqual(stats.mean_s, 2.0)
        self.assertEqual(stats.p95_s, 4.0)
        self.assertEqual(stats.max_s, 4.0)
        self.assertIsNone(delta_stats([]))


if __name__ == "__main__":
    unittest.main()

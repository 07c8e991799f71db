from __future__ import annotations

import unittest
from datetime import UTC, datetime, timedelta

from gps_heatmap.errors import NumericFormatError, StructureError, TruncatedError, UnexpectedRootError
from gps_heatmap.gpx import GpxFormat
from gps_heatmap.models import ActivityKind, Coordinate, Sample

RIDE = """<?xml version="1.0" encoding="UTF-8"?>
<gpx xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" xsi:schemaLocation="http://www.topografix.com/GPX/1/1 http://www.topografix.com/GPX/1/1/gpx.xsd" version="1.1" xmlns="http://www.topografix.com/GPX/1/1">
 <metadata>
  <time>2019-05-09T02:39:00Z</time>
 </metadata>
 <trk>
  <name>Ride</name>
  <type>1</type>
  <trkseg>
   <trkpt lat="30.2430140" lon="-97.8100160">
    <ele>177.8</ele>
    <time>2019-11-10T20:49:52Z</time>
   </trkpt>
   <trkpt lat="30.2429950" lon="-97.8100270">
    <ele>177.6</ele>
    <time>2019-11-10T20:49:53Z</time>
   </trkpt>
   <trkpt lat="30.2428630" lon="-97.8101550">
    <ele>177.9</ele>
    <time>2019-11-10T20:49:54Z</time>
   </trkpt>
   <trkpt lat="30.2428470" lon="-97.8102190">
    <ele>178.0</ele>
    <time>2019-11-10T20:49:55Z</time>
   </trkpt>
   <trkpt lat="30.2428310" lon="-97.8102830">
    <ele>178.2</ele>
    <time>2019-11-10T20:49:56Z</time>
   </trkpt>
   <trkpt lat="30.2427670" lon="-97.8105240">
    <ele>179.0</ele>
    <time>2019-11-10T20:49:57Z</time>
   </trkpt>
   <trkpt lat="30.2427500" lon="-97.8105730">
    <ele>179.1</ele>
    <time>2019-11-10T20:49:58Z</time>
   </trkpt>
   <trkpt lat="30.2427330" lon="-97.8106130">
    <ele>179.3</ele>
    <time>2019-11-10T20:49:59Z</time>
   </trkpt>
  </trkseg>
 </trk>
</gpx>
"""

RIDE_COORDS = [
    (30.2430140, -97.8100160),
    (30.2429950, -97.8100270),
    (30.2428630, -97.8101550),
    (30.2428470, -97.8102190),
    (30.2428310, -97.8102830),
    (30.2427670, -97.8105240),
    (30.2427500, -97.8105730),
    (30.2427330, -97.8106130),
]
RIDE_START = datetime(2019, 11, 10, 20, 49, 52, tzinfo=UTC)


def _gpx(body: str, type_token: str | None = None) -> str:
    type_line = f"<type>{type_token}</type>\n" if type_token is not None else ""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<gpx version="1.1" xmlns="http://www.topografix.com/GPX/1/1">\n'
        "<trk>\n"
        f"{type_line}"
        "<trkseg>\n"
        f"{body}"
        "</trkseg>\n"
        "</trk>\n"
        "</gpx>\n"
    )


class TestGpxParse(unittest.TestCase):
    def setUp(self) -> None:
        self.fmt = GpxFormat()

    def test_eight_points_in_order(self) -> None:
        expected = [
            Sample(position=Coordinate(lat=lat, lng=lng), timestamp=RIDE_START + timedelta(seconds=i))
            for i, (lat, lng) in enumerate(RIDE_COORDS)
        ]
        self.assertEqual(self.fmt.parse(RIDE), expected)

    def test_type_filter_match(self) -> None:
        self.assertEqual(len(self.fmt.parse(RIDE, {ActivityKind.BIKE})), 8)
        self.assertEqual(len(self.fmt.parse(RIDE, {ActivityKind.RUN, ActivityKind.BIKE})), 8)

    def test_empty_filter_means_no_filter(self) -> None:
        self.assertEqual(len(self.fmt.parse(RIDE, set())), 8)

    def test_type_filter_mismatch_skips_rest_of_document(self) -> None:
        body = '<trkpt lat="not-a-number" lon="1.0"><time>2020-01-01T00:00:00Z</time></trkpt>\n'
        doc = _gpx(body, type_token="9")
        self.assertEqual(self.fmt.parse(doc, {ActivityKind.BIKE}), [])
        with self.assertRaises(NumericFormatError):
            self.fmt.parse(doc)

    def test_malformed_xml_is_fatal_even_when_filtered_out(self) -> None:
        doc = _gpx("<trkpt lat='1' lon='2'></oops>\n", type_token="10")
        with self.assertRaises(StructureError):
            self.fmt.parse(doc, {ActivityKind.RUN})

    def test_textual_type_tokens(self) -> None:
        doc = _gpx('<trkpt lat="1.0" lon="2.0"/>\n', type_token="running")
        self.assertEqual(len(self.fmt.parse(doc, {ActivityKind.RUN})), 1)
        self.assertEqual(self.fmt.parse(doc, {ActivityKind.WALK}), [])

    def test_undeclared_type_is_not_filtered(self) -> None:
        doc = _gpx('<trkpt lat="1.0" lon="2.0"/>\n')
        self.assertEqual(len(self.fmt.parse(doc, {ActivityKind.WALK})), 1)

    def test_missing_coordinates_are_dropped(self) -> None:
        body = (
            '<trkpt lat="1.0" lon="1.0"/>\n'
            '<trkpt lon="2.0"/>\n'
            '<trkpt lat="2.0" lon="2.0"/>\n'
            '<trkpt lat="3.0"/>\n'
            '<trkpt lat="3.0" lon="3.0"/>\n'
            "<trkpt/>\n"
            '<trkpt lat="4.0" lon="4.0"/>\n'
            '<trkpt lat="5.0" lon="5.0"/>\n'
        )
        samples = self.fmt.parse(_gpx(body))
        self.assertEqual([s.position.lat for s in samples], [1.0, 2.0, 3.0, 4.0, 5.0])

    def test_point_without_time_is_kept(self) -> None:
        samples = self.fmt.parse(_gpx('<trkpt lat="1.5" lon="2.5"><ele>3</ele></trkpt>\n'))
        self.assertEqual(samples, [Sample(position=Coordinate(lat=1.5, lng=2.5), timestamp=None)])

    def test_fractional_seconds(self) -> None:
        samples = self.fmt.parse(_gpx('<trkpt lat="1" lon="2"><time>2021-03-04T05:06:07.250Z</time></trkpt>\n'))
        self.assertEqual(samples[0].timestamp, datetime(2021, 3, 4, 5, 6, 7, 250000, tzinfo=UTC))

    def test_trkpt_outside_trkseg(self) -> None:
        doc = (
            '<gpx xmlns="http://www.topografix.com/GPX/1/1"><trk>\n'
            '<trkpt lat="1" lon="2"/>\n'
            "</trk></gpx>\n"
        )
        with self.assertRaises(StructureError):
            self.fmt.parse(doc)

    def test_trkseg_outside_trk(self) -> None:
        doc = '<gpx><trkseg><trkpt lat="1" lon="2"/></trkseg></gpx>\n'
        with self.assertRaises(StructureError):
            self.fmt.parse(doc)

    def test_truncated_document(self) -> None:
        doc = RIDE[: RIDE.index("</trkseg>")]
        with self.assertRaises(TruncatedError):
            self.fmt.parse(doc)

    def test_bad_numbers_are_fatal(self) -> None:
        with self.assertRaises(NumericFormatError):
            self.fmt.parse(_gpx('<trkpt lat="1.0" lon="east"/>\n'))
        with self.assertRaises(NumericFormatError):
            self.fmt.parse(_gpx('<trkpt lat="1.0" lon="2.0"><time>yesterday</time></trkpt>\n'))
        with self.assertRaises(NumericFormatError):
            self.fmt.parse(_gpx('<trkpt lat="nan" lon="2.0"/>\n'))

    def test_wrong_root(self) -> None:
        with self.assertRaises(UnexpectedRootError):
            self.fmt.parse("<kml><Document/></kml>")

    def test_time_window(self) -> None:
        inside = self.fmt.parse(RIDE, start=RIDE_START - timedelta(hours=1), end=RIDE_START + timedelta(hours=1))
        self.assertEqual(len(inside), 8)
        self.assertEqual(len(self.fmt.parse(RIDE, start=RIDE_START)), 8)
        self.assertEqual(self.fmt.parse(RIDE, start=RIDE_START + timedelta(seconds=1)), [])
        self.assertEqual(self.fmt.parse(RIDE, end=RIDE_START - timedelta(days=1)), [])

    def test_time_window_uses_first_timed_point(self) -> None:
        body = (
            '<trkpt lat="1" lon="1"/>\n'
            '<trkpt lat="2" lon="2"><time>2022-06-01T12:00:00Z</time></trkpt>\n'
            '<trkpt lat="3" lon="3"><time>2022-06-01T12:00:01Z</time></trkpt>\n'
        )
        june = datetime(2022, 6, 1, tzinfo=UTC)
        self.assertEqual(len(self.fmt.parse(_gpx(body), start=june, end=june + timedelta(days=1))), 3)
        self.assertEqual(self.fmt.parse(_gpx(body), start=june + timedelta(days=1)), [])

    def test_untimed_document_passes_time_window(self) -> None:
        doc = _gpx('<trkpt lat="1" lon="1"/>\n<trkpt lat="2" lon="2"/>\n')
        self.assertEqual(len(self.fmt.parse(doc, start=datetime(2030, 1, 1, tzinfo=UTC))), 2)

    def test_extension_elements_are_ignored(self) -> None:
        body = (
            '<trkpt lat="1" lon="2"><time>2020-01-01T00:00:00Z</time>'
            "<extensions><gpxtpx:TrackPointExtension xmlns:gpxtpx="
            '"http://www.garmin.com/xmlschemas/TrackPointExtension/v1">'
            "<gpxtpx:hr>140</gpxtpx:hr></gpxtpx:TrackPointExtension></extensions></trkpt>\n"
        )
        self.assertEqual(len(self.fmt.parse(_gpx(body))), 1)


def _trk(type_token: str, points: list[tuple[object, str | None]]) -> str:
    pts = "".join(
        f'<trkpt lat="{lat}" lon="1.0">' + (f"<time>{ts}</time>" if ts else "") + "</trkpt>\n" for lat, ts in points
    )
    return f"<trk>\n<type>{type_token}</type>\n<trkseg>\n{pts}</trkseg>\n</trk>\n"


def _multi(*tracks: str) -> str:
    return '<gpx version="1.1" xmlns="http://www.topografix.com/GPX/1/1">\n' + "".join(tracks) + "</gpx>\n"


class TestGpxMultipleTracks(unittest.TestCase):
    def setUp(self) -> None:
        self.fmt = GpxFormat()
        self.doc = _multi(
            _trk("9", [(1.0, "2020-01-05T10:00:00Z"), (2.0, "2020-01-05T10:00:01Z")]),
            _trk("1", [(3.0, "2025-06-05T10:00:00Z"), (4.0, "2025-06-05T10:00:01Z")]),
        )

    def test_each_trk_is_one_activity(self) -> None:
        activities = self.fmt.parse_activities(self.doc)
        self.assertEqual([[s.position.lat for s in a] for a in activities], [[1.0, 2.0], [3.0, 4.0]])
        self.assertEqual([s.position.lat for s in self.fmt.parse(self.doc)], [1.0, 2.0, 3.0, 4.0])

    def test_type_filter_applies_per_trk(self) -> None:
        run = self.fmt.parse_activities(self.doc, {ActivityKind.RUN})
        self.assertEqual([[s.position.lat for s in a] for a in run], [[1.0, 2.0]])
        bike = self.fmt.parse_activities(self.doc, {ActivityKind.BIKE})
        self.assertEqual([[s.position.lat for s in a] for a in bike], [[3.0, 4.0]])
        self.assertEqual(self.fmt.parse_activities(self.doc, {ActivityKind.WALK}), [])

    def test_time_window_applies_per_trk(self) -> None:
        jan_2020 = (datetime(2020, 1, 1, tzinfo=UTC), datetime(2020, 1, 31, tzinfo=UTC))
        samples = self.fmt.parse(self.doc, None, *jan_2020)
        self.assertEqual([s.position.lat for s in samples], [1.0, 2.0])
        samples = self.fmt.parse(self.doc, None, datetime(2025, 1, 1, tzinfo=UTC))
        self.assertEqual([s.position.lat for s in samples], [3.0, 4.0])

    def test_skipped_trk_points_are_not_parsed(self) -> None:
        doc = _multi(
            _trk("1", [("garbage", "not a time")]),
            _trk("9", [(5.0, "2020-01-05T10:00:00Z")]),
        )
        self.assertEqual([s.position.lat for s in self.fmt.parse(doc, {ActivityKind.RUN})], [5.0])
        with self.assertRaises(NumericFormatError):
            self.fmt.parse(doc)

    def test_untimed_points_before_start_are_dropped_with_their_trk(self) -> None:
        doc = _multi(_trk("9", [(1.0, None), (2.0, "2019-01-01T00:00:00Z"), (3.0, None)]))
        self.assertEqual(self.fmt.parse(doc, start=datetime(2020, 1, 1, tzinfo=UTC)), [])
        self.assertEqual(len(self.fmt.parse(doc, end=datetime(2020, 1, 1, tzinfo=UTC))), 3)


if __name__ == "__main__":
    unittest.main()

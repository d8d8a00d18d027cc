import io
import struct
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
sys.path.insert(0, str(Path(__file__).resolve().parent))

import bundle
from bundle_fixtures import SECONDARY_SIZE, RESERVED, build_bundle, record_at


def _rebuild(parsed: bundle.Bundle, **kwargs) -> bytes:
    out = io.BytesIO()
    written = bundle.serialize_bundle(parsed, out, **kwargs)
    data = out.getvalue()
    assert written == len(data)
    return data


class RoundTripTests(unittest.TestCase):
    def test_unmodified_bundle_is_byte_identical(self) -> None:
        archive = build_bundle(
            [
                {"name": "dlc\\ep1\\quest.w2phase", "payload": b"\x10" * 4096, "unknown": 3},
                {"name": "empty.txt", "payload": b""},
                {"name": "z\\last.xml", "payload": b"<x/>" * 333, "hash": bytes(range(16))},
            ]
        )
        self.assertEqual(_rebuild(bundle.parse_bundle(io.BytesIO(archive))), archive)

    def test_header_preserves_opaque_fields(self) -> None:
        archive = build_bundle([{"name": "a", "payload": b"1234"}])
        rebuilt = _rebuild(bundle.parse_bundle(io.BytesIO(archive)))
        total, secondary, data_offset = struct.unpack_from("<III", rebuilt, 8)
        self.assertEqual(total, len(rebuilt))
        self.assertEqual(secondary, SECONDARY_SIZE)
        self.assertEqual(data_offset, 320)
        self.assertEqual(rebuilt[20:32], RESERVED)


class GrowingPayloadTests(unittest.TestCase):
    def setUp(self) -> None:
        self.archive = build_bundle(
            [
                {"name": "one.xml", "payload": b"1" * 100},
                {"name": "two.xml", "payload": b"2" * 5000},
            ]
        )
        self.parsed = bundle.parse_bundle(io.BytesIO(self.archive))

    def test_following_entry_is_pushed_to_next_boundary(self) -> None:
        bundle.apply_overrides(self.parsed, {"one.xml": b"9" * 9000}.get)
        rebuilt = _rebuild(self.parsed)

        one = record_at(rebuilt, 0)
        two = record_at(rebuilt, 1)
        self.assertEqual(one["offset"], 4096)
        self.assertEqual(one["compressed"], 9000)
        self.assertEqual(one["uncompressed"], 9000)
        self.assertEqual(one["hash"], b"\xaa" * 16)
        self.assertEqual(two["offset"], 16384)
        self.assertEqual(two["offset"] % bundle.ALIGNMENT_TARGET, 0)
        self.assertGreaterEqual(two["offset"], one["offset"] + 9000)

        total = struct.unpack_from("<I", rebuilt, 8)[0]
        self.assertEqual(total, two["offset"] + 5000)
        self.assertEqual(len(rebuilt), total)
        self.assertEqual(rebuilt[4096 : 4096 + 9000], b"9" * 9000)
        self.assertEqual(rebuilt[16384:], b"2" * 5000)
        self.assertEqual(rebuilt[4096 + 9000 : 16384], bytes(16384 - 13096))

    def test_layout_and_emission_agree(self) -> None:
        bundle.apply_overrides(self.parsed, {"one.xml": b"9" * 9000}.get)
        total = bundle.compute_layout(self.parsed)
        offsets = [entry.offset for entry in self.parsed.entries]
        rebuilt = _rebuild(self.parsed)
        self.assertEqual(len(rebuilt), total)
        self.assertEqual([entry.offset for entry in self.parsed.entries], offsets)

    def test_shrinking_payload_keeps_offsets(self) -> None:
        bundle.apply_overrides(self.parsed, {"two.xml": b"s"}.get)
        rebuilt = _rebuild(self.parsed)
        self.assertEqual(record_at(rebuilt, 1)["offset"], 8192)
        self.assertEqual(len(rebuilt), 8193)

    def test_directory_order_is_unchanged_when_payload_order_differs(self) -> None:
        first, second = self.parsed.entries
        first.offset, second.offset = 12288, 4096
        rebuilt = _rebuild(self.parsed)
        self.assertEqual(record_at(rebuilt, 0)["name"], b"one.xml")
        self.assertEqual(record_at(rebuilt, 1)["name"], b"two.xml")
        self.assertEqual(rebuilt[4096 : 4096 + 5000], b"2" * 5000)
        self.assertEqual(rebuilt[12288 : 12288 + 100], b"1" * 100)


class WriterOptionTests(unittest.TestCase):
    def test_footer_padding_is_optional(self) -> None:
        archive = build_bundle([{"name": "a", "payload": b"abc"}])
        plain = _rebuild(bundle.parse_bundle(io.BytesIO(archive)))
        self.assertEqual(len(plain), 4099)

        padded = _rebuild(bundle.parse_bundle(io.BytesIO(archive)), pad_footer=True)
        self.assertEqual(len(padded), 4112)
        self.assertEqual(padded[4099:], bundle.FOOTER_DATA[:13])
        self.assertEqual(struct.unpack_from("<I", padded, 8)[0], 4112)

    def test_changed_data_offset_is_reported(self) -> None:
        archive = build_bundle([{"name": "a", "payload": b"abc"}])
        parsed = bundle.parse_bundle(io.BytesIO(archive))
        parsed.header.data_offset = 640
        with self.assertLogs("bundle", level="WARNING"):
            rebuilt = _rebuild(parsed)
        self.assertEqual(struct.unpack_from("<I", rebuilt, 16)[0], 320)

    def test_write_bundle_removes_partial_output(self) -> None:
        archive = build_bundle([{"name": "a", "payload": b"abc"}])
        parsed = bundle.parse_bundle(io.BytesIO(archive))
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "out.bundle"
            with mock.patch.object(bundle, "serialize_bundle", side_effect=OSError("disk full")):
                with self.assertRaises(bundle.BundleError):
                    bundle.write_bundle(parsed, output)
            self.assertFalse(output.exists())

    def test_write_bundle_to_missing_directory_fails(self) -> None:
        parsed = bundle.parse_bundle(io.BytesIO(build_bundle([{"name": "a", "payload": b"x"}])))
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(bundle.BundleError):
                bundle.write_bundle(parsed, Path(tmpdir) / "missing" / "out.bundle")

class SharedOffsetTests(unittest.TestCase):
    def _bundle(self) -> bundle.Bundle:
        entries = [
            bundle.BundleEntry(name="y", compressed_size=10, uncompressed_size=10, offset=16384, data=b"y" * 10),
            bundle.BundleEntry(name="a", compressed_size=100, uncompressed_size=100, offset=4096, data=b"a" * 100),
            bundle.BundleEntry(name="x", compressed_size=100, uncompressed_size=100, offset=8192, data=b"x" * 100),
        ]
        return bundle.Bundle(bundle.BundleHeader(data_offset=3 * 320), entries)

    def test_empty_override_pushed_onto_a_neighbour_offset(self) -> None:
        parsed = self._bundle()
        bundle.apply_overrides(parsed, {"a": b"9" * 9000, "x": b""}.get)
        rebuilt = _rebuild(parsed)

        y, a, x = (record_at(rebuilt, index) for index in range(3))
        self.assertEqual(a["offset"], 4096)
        self.assertEqual(x["offset"], 16384)
        self.assertEqual(x["compressed"], 0)
        self.assertEqual(y["offset"], 16384)
        self.assertEqual(len(rebuilt), 16394)
        self.assertEqual(struct.unpack_from("<I", rebuilt, 8)[0], 16394)
        self.assertEqual(rebuilt[16384:], b"y" * 10)
        self.assertEqual(rebuilt[4096 : 4096 + 9000], b"9" * 9000)

    def test_layout_order_is_reused_for_emission(self) -> None:
        parsed = self._bundle()
        bundle.apply_overrides(parsed, {"a": b"9" * 9000, "x": b""}.get)
        total = bundle.compute_layout(parsed)
        offsets = [entry.offset for entry in parsed.entries]
        self.assertEqual(len(_rebuild(parsed)), total)
        self.assertEqual([entry.offset for entry in parsed.entries], offsets)



if __name__ == "__main__":
    unittest.main()

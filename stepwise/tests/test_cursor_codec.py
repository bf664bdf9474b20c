import unittest
from datetime import datetime, date
from decimal import Decimal

from ..core.cursor_codec import JsonCursorCodec, values_match
from ..errors import CursorError


class TestJsonCursorCodec(unittest.TestCase):
    def setUp(self):
        self.codec = JsonCursorCodec()

    def test_lossless_cursors_pass(self):
        cursors = [
            None,
            0,
            123456789,
            -1,
            1.5,
            True,
            "2024-01-01T00:00:00",
            [1, "two", None],
            {"id": 10, "created_at": "2024-01-01"},
            {"outer": {"inner": [1, 2]}},
            [None, [3, 4]],
        ]
        for cursor in cursors:
            with self.subTest(cursor=cursor):
                self.codec.validate(cursor)

    def test_datetime_cursor_is_rejected(self):
        cursor = datetime(2024, 1, 1, 12, 30)
        with self.assertRaises(CursorError) as ctx:
            self.codec.validate(cursor)

        self.assertIs(ctx.exception.cursor, cursor)
        self.assertEqual(ctx.exception.cursor_type, "datetime")
        self.assertEqual(ctx.exception.decoded, "2024-01-01 12:30:00")
        self.assertIn("encodes losslessly", str(ctx.exception))

    def test_other_lossy_cursors_are_rejected(self):
        cursors = [
            date(2024, 1, 1),
            Decimal("1.5"),
            (1, 2),
            {1: "int key"},
            {"when": datetime(2024, 1, 1)},
            [1, (2, 3)],
            {1, 2},
            object(),
        ]
        for cursor in cursors:
            with self.subTest(cursor=cursor):
                with self.assertRaises(CursorError):
                    self.codec.validate(cursor)

    def test_circular_cursor_is_rejected(self):
        cursor = []
        cursor.append(cursor)
        with self.assertRaises(CursorError):
            self.codec.validate(cursor)

    def test_values_match_is_strict_about_types(self):
        self.assertFalse(values_match(1, 1.0))
        self.assertFalse(values_match(1, True))
        self.assertFalse(values_match({"a": 1, "b": 2}, {"b": 2, "a": 1}))
        self.assertTrue(values_match({"a": [1, {"b": None}]}, {"a": [1, {"b": None}]}))

    def test_encode_matches_transport_encoding(self):
        self.assertEqual(self.codec.encode({"cursor_position": 3}), '{"cursor_position": 3}')
        self.assertEqual(self.codec.decode('{"a": [1, 2]}'), {"a": [1, 2]})


if __name__ == '__main__':
    unittest.main()
